from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models


class Bin(models.Model):
    """
    A tracked physical container owned by a resident.

    `bin_id` is the business key workers scan in the field; collection
    records reference bins by it rather than by the storage id.
    """

    ACTIVE = 'ACTIVE'
    COLLECTED = 'COLLECTED'
    DAMAGED = 'DAMAGED'
    LOST = 'LOST'
    MAINTENANCE = 'MAINTENANCE'

    STATUS_CHOICES = [
        (ACTIVE, 'Active'),                # ready for collection
        (COLLECTED, 'Collected'),          # collected today
        (DAMAGED, 'Damaged'),
        (LOST, 'Lost'),
        (MAINTENANCE, 'Under Maintenance'),
    ]

    bin_id = models.CharField(max_length=50, unique=True, help_text="Business key printed on the bin tag")

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='bins'
    )

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=ACTIVE, db_index=True)

    # Location
    latitude = models.DecimalField(
        max_digits=9, decimal_places=6, null=True, blank=True,
        validators=[MinValueValidator(-90), MaxValueValidator(90)]
    )
    longitude = models.DecimalField(
        max_digits=9, decimal_places=6, null=True, blank=True,
        validators=[MinValueValidator(-180), MaxValueValidator(180)]
    )
    address = models.CharField(max_length=255, blank=True)

    # Audit
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['bin_id']
        indexes = [
            models.Index(fields=['owner', 'status']),
        ]

    def __str__(self):
        return f"Bin {self.bin_id} ({self.status})"

    @property
    def location_description(self):
        if self.address:
            return self.address
        if self.latitude is not None and self.longitude is not None:
            return f"{self.latitude}, {self.longitude}"
        return ""
