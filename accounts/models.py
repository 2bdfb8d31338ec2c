from django.db import models, transaction
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin


class UserManager(BaseUserManager):
    use_in_migrations = True

    def create_user(self, phone_number, password=None, **extra_fields):
        if not phone_number:
            raise ValueError("A phone number is required.")
        extra_fields.setdefault("role", "resident")
        user = self.model(phone_number=phone_number, **extra_fields)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_superuser(self, phone_number, password=None, **extra_fields):
        extra_fields.setdefault("role", "admin")
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        return self.create_user(phone_number, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Identity store for residents, workers and admins.

    Pickup requests copy name/email/phone from here at creation time.
    """

    ROLE_CHOICES = (
        ("resident", "Resident"),
        ("worker", "Worker"),
        ("admin", "Admin"),
    )

    PREFIXES = {
        "resident": "RES",
        "worker": "WRK",
        "admin": "ADM",
    }

    username = models.CharField(max_length=20, unique=True)
    first_name = models.CharField(max_length=100, blank=True)
    last_name = models.CharField(max_length=100, blank=True)
    phone_number = models.CharField(max_length=17, unique=True)
    email = models.EmailField(unique=True, null=True, blank=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES)
    address = models.CharField(max_length=255, blank=True, null=True)
    reward_points = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)

    objects = UserManager()

    USERNAME_FIELD = "username"
    REQUIRED_FIELDS = ["phone_number"]

    def get_full_name(self):
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.username

    def get_short_name(self):
        return self.first_name or self.username

    @property
    def is_admin(self):
        return self.role == "admin" or self.is_superuser

    def _next_username(self):
        prefix = self.PREFIXES.get(self.role, "USR")
        latest = (
            User.objects.select_for_update()
            .filter(username__startswith=prefix)
            .order_by("-username")
            .values_list("username", flat=True)
            .first()
        )
        number = int(latest[len(prefix):]) + 1 if latest else 1
        return f"{prefix}{number:03d}"  # RES001, WRK002, ...

    def save(self, *args, **kwargs):
        if self.username:
            super().save(*args, **kwargs)
            return

        # numbering and insert happen under one lock
        with transaction.atomic():
            self.username = self._next_username()
            super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.get_full_name()} ({self.username}, {self.role})"
