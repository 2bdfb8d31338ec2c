from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone


class CollectionRecord(models.Model):
    """
    Record of a worker servicing a bin on a given day.

    Records are append-only. At most one COLLECTED record may exist per bin
    and calendar day; an OVERRIDE is the supervisor escape hatch for
    re-collecting a bin and is exempt from that rule.
    """

    COLLECTED = 'COLLECTED'
    OVERRIDE = 'OVERRIDE'
    MISSED = 'MISSED'
    FAILED = 'FAILED'

    STATUS_CHOICES = [
        (COLLECTED, 'Collected'),
        (OVERRIDE, 'Override'),   # forced re-collection, bypasses the daily check
        (MISSED, 'Missed'),
        (FAILED, 'Failed'),
    ]

    # Statuses that make a bin count as collected for the day
    COUNTS_AS_COLLECTED = (COLLECTED, OVERRIDE)

    bin_id = models.CharField(max_length=50, db_index=True, help_text="Business key of the serviced bin")
    worker = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='collections'
    )

    # Snapshots of the bin at collection time
    bin_location = models.CharField(max_length=255, blank=True)
    bin_owner = models.CharField(max_length=200, blank=True)

    weight = models.DecimalField(
        max_digits=8, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Collected weight in kg"
    )
    fill_level = models.IntegerField(
        null=True, blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
        help_text="Fill level in percent"
    )
    waste_type = models.CharField(max_length=50, blank=True)

    collection_date = models.DateTimeField(default=timezone.now)
    collection_day = models.DateField(editable=False, db_index=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=COLLECTED)
    reason = models.TextField(blank=True)

    # Raw telemetry from the bin sensor (temperature, battery level, signal strength)
    sensor_data = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-collection_date']
        indexes = [
            models.Index(fields=['bin_id', 'collection_day']),
            models.Index(fields=['worker', '-collection_date']),
            models.Index(fields=['status']),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['bin_id', 'collection_day'],
                condition=Q(status='COLLECTED'),
                name='unique_collected_bin_per_day',
            ),
        ]

    def __str__(self):
        return f"Collection #{self.pk} - {self.bin_id} - {self.status}"

    def save(self, *args, **kwargs):
        # Day is derived in the project time zone, not UTC
        self.collection_day = timezone.localdate(self.collection_date)
        super().save(*args, **kwargs)
