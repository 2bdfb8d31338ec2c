import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


class PickupRequest(models.Model):
    """
    Resident-initiated request to collect waste outside the bin network
    (bulky items, e-waste, ...).

    Fees are computed once at creation; the requester's name/email/phone
    are a snapshot taken at the same time.
    """

    # Waste types
    BULKY_WASTE = 'BULKY_WASTE'
    E_WASTE = 'E_WASTE'
    ORGANIC = 'ORGANIC'
    RECYCLABLE = 'RECYCLABLE'
    HAZARDOUS = 'HAZARDOUS'
    GENERAL = 'GENERAL'

    WASTE_TYPE_CHOICES = [
        (BULKY_WASTE, 'Bulky Waste'),
        (E_WASTE, 'E-Waste'),
        (ORGANIC, 'Organic'),
        (RECYCLABLE, 'Recyclable'),
        (HAZARDOUS, 'Hazardous'),
        (GENERAL, 'General'),
    ]

    # Pickup types
    REGULAR = 'REGULAR'
    EXTRA = 'EXTRA'
    EMERGENCY = 'EMERGENCY'

    PICKUP_TYPE_CHOICES = [
        (REGULAR, 'Regular'),
        (EXTRA, 'Extra'),
        (EMERGENCY, 'Emergency'),
    ]

    PAYMENT_METHOD_CHOICES = [
        ('Cash', 'Cash'),
        ('Card', 'Card'),
        ('Points', 'Reward Points'),
        ('PayLater', 'Pay Later'),
    ]

    # Payment status
    PAYMENT_PENDING = 'PENDING'
    PAYMENT_COMPLETED = 'COMPLETED'
    PAYMENT_DECLINED = 'DECLINED'
    PAYMENT_MISSED = 'MISSED'
    PAYMENT_REFUNDED = 'REFUNDED'
    PAYMENT_PARTIAL = 'PARTIAL'

    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_PENDING, 'Pending'),
        (PAYMENT_COMPLETED, 'Completed'),
        (PAYMENT_DECLINED, 'Declined'),
        (PAYMENT_MISSED, 'Missed'),
        (PAYMENT_REFUNDED, 'Refunded'),
        (PAYMENT_PARTIAL, 'Partial'),
    ]

    # Request status
    DRAFT = 'DRAFT'
    PENDING = 'PENDING'
    SCHEDULED = 'SCHEDULED'
    IN_PROGRESS = 'IN_PROGRESS'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'
    FAILED = 'FAILED'
    RESCHEDULED = 'RESCHEDULED'

    STATUS_CHOICES = [
        (DRAFT, 'Draft'),
        (PENDING, 'Pending Approval'),
        (SCHEDULED, 'Scheduled'),
        (IN_PROGRESS, 'In Progress'),
        (COMPLETED, 'Completed'),
        (CANCELLED, 'Cancelled'),
        (FAILED, 'Failed'),
        (RESCHEDULED, 'Rescheduled'),
    ]

    TERMINAL_STATUSES = (COMPLETED, CANCELLED)

    # Allowed status changes through an update. Cancellation through the
    # cancel operation is wider: anything but COMPLETED/CANCELLED.
    TRANSITIONS = {
        DRAFT: {PENDING},
        PENDING: {SCHEDULED, CANCELLED, RESCHEDULED, FAILED},
        SCHEDULED: {IN_PROGRESS, CANCELLED, RESCHEDULED, FAILED},
        IN_PROGRESS: {COMPLETED, CANCELLED, FAILED},
        RESCHEDULED: {PENDING, FAILED},
        FAILED: set(),
        COMPLETED: set(),
        CANCELLED: set(),
    }

    request_id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Requester (snapshot, not kept in sync with later profile edits)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='pickup_requests'
    )
    user_name = models.CharField(max_length=200, blank=True)
    user_email = models.EmailField(blank=True, null=True)
    user_phone = models.CharField(max_length=17, blank=True, null=True)

    # Waste details
    waste_type = models.CharField(max_length=20, choices=WASTE_TYPE_CHOICES)
    item_description = models.TextField(blank=True)
    item_images = models.JSONField(default=list, blank=True, help_text="URLs of uploaded item photos")
    estimated_weight = models.DecimalField(
        max_digits=8, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Estimated weight in kg"
    )
    special_instructions = models.TextField(blank=True)

    # Pickup details
    pickup_type = models.CharField(max_length=20, choices=PICKUP_TYPE_CHOICES, default=REGULAR)
    preferred_date_time = models.DateTimeField(null=True, blank=True)
    scheduled_date_time = models.DateTimeField(null=True, blank=True)
    pickup_location = models.CharField(max_length=255, blank=True)
    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100, blank=True)
    postal_code = models.CharField(max_length=20, blank=True)
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    # Pricing
    base_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'),
                                      validators=[MinValueValidator(Decimal('0.00'))])
    urgency_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'),
                                      validators=[MinValueValidator(Decimal('0.00'))])
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'),
                                       validators=[MinValueValidator(Decimal('0.00'))])
    reward_points_used = models.PositiveIntegerField(default=0)
    final_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'),
                                       validators=[MinValueValidator(Decimal('0.00'))])

    # Payment
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_PENDING)
    payment_reference = models.CharField(max_length=100, blank=True, null=True)
    payment_date = models.DateTimeField(null=True, blank=True)
    last_reminder_sent = models.DateTimeField(null=True, blank=True)

    # Status & assignment
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=DRAFT, db_index=True)
    assigned_worker = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_pickups'
    )
    assigned_worker_name = models.CharField(max_length=200, blank=True)
    admin_notes = models.TextField(blank=True)
    cancellation_reason = models.TextField(blank=True)

    # Audit
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', '-created_at']),
            models.Index(fields=['assigned_worker', 'status']),
            models.Index(fields=['pickup_type', 'status']),
            models.Index(fields=['payment_status']),
        ]

    def __str__(self):
        return f"Pickup {self.request_id} - {self.user_name} - {self.status}"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    def can_transition_to(self, new_status):
        return new_status in self.TRANSITIONS.get(self.status, set())

    def save(self, *args, **kwargs):
        if self.status == self.COMPLETED and not self.completed_at:
            self.completed_at = timezone.now()
        if self.status == self.CANCELLED and not self.cancelled_at:
            self.cancelled_at = timezone.now()
        super().save(*args, **kwargs)
