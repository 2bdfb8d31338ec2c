import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


def generate_request_id():
    return f"BR-{uuid.uuid4().hex[:8].upper()}"


class BinRequest(models.Model):
    """
    A resident's order for a new bin or a pack of bags, delivered to an
    address. Prices come from the catalogue at the time of ordering.
    """

    BIN = 'BIN'
    BAG = 'BAG'

    REQUEST_TYPE_CHOICES = [
        (BIN, 'Bin'),
        (BAG, 'Bag'),
    ]

    PENDING = 'PENDING'
    CONFIRMED = 'CONFIRMED'
    PROCESSING = 'PROCESSING'
    SHIPPED = 'SHIPPED'
    DELIVERED = 'DELIVERED'
    CANCELLED = 'CANCELLED'
    REFUNDED = 'REFUNDED'

    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (CONFIRMED, 'Confirmed'),
        (PROCESSING, 'Processing'),
        (SHIPPED, 'Shipped'),
        (DELIVERED, 'Delivered'),
        (CANCELLED, 'Cancelled'),
        (REFUNDED, 'Refunded'),
    ]

    TRANSITIONS = {
        PENDING: {CONFIRMED, PROCESSING, CANCELLED},
        CONFIRMED: {PROCESSING, CANCELLED, REFUNDED},
        PROCESSING: {SHIPPED, CANCELLED, REFUNDED},
        SHIPPED: {DELIVERED, CANCELLED},
        DELIVERED: {REFUNDED},
        CANCELLED: {REFUNDED},
        REFUNDED: set(),
    }

    request_id = models.CharField(max_length=20, unique=True, editable=False, default=generate_request_id)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='bin_requests'
    )

    request_type = models.CharField(max_length=10, choices=REQUEST_TYPE_CHOICES)
    item_type = models.CharField(max_length=50)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=10, decimal_places=2,
                                     validators=[MinValueValidator(Decimal('0.00'))])
    total_amount = models.DecimalField(max_digits=10, decimal_places=2,
                                       validators=[MinValueValidator(Decimal('0.00'))])

    delivery_address = models.CharField(max_length=255)
    special_instructions = models.TextField(blank=True)
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING, db_index=True)
    payment_reference = models.CharField(max_length=100, blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', '-created_at']),
            models.Index(fields=['status']),
        ]

    def __str__(self):
        return f"{self.request_id} - {self.quantity} x {self.item_type} {self.request_type} - {self.status}"

    def can_transition_to(self, new_status):
        return new_status in self.TRANSITIONS.get(self.status, set())

    def save(self, *args, **kwargs):
        if self.status == self.DELIVERED and not self.delivered_at:
            self.delivered_at = timezone.now()
        if self.status == self.CANCELLED and not self.cancelled_at:
            self.cancelled_at = timezone.now()
        super().save(*args, **kwargs)
