"""
Collection recording with a once-per-day guard per bin.

Two workers scanning the same bin at the same moment must not both
produce a COLLECTED record. Creation runs in a transaction that first
locks the bin row, so the duplicate check and the insert are serialized
per bin; the partial unique constraint on CollectionRecord catches
anything that slips past (e.g. a bin row that does not exist yet).
"""
import logging
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Sum
from django.utils import timezone

from bins.models import Bin
from bins.services import mark_bin_collected
from common.exceptions import DuplicateCollection, InvalidArgument, InvalidBinState, NotFound
from pickups.fees import to_decimal
from .models import CollectionRecord

logger = logging.getLogger(__name__)

User = get_user_model()


def can_record_collection(bin_id, day=None):
    """True when nothing has been collected (or overridden) for the bin on `day`."""
    day = day or timezone.localdate()
    return not CollectionRecord.objects.filter(
        bin_id=bin_id,
        collection_day=day,
        status__in=CollectionRecord.COUNTS_AS_COLLECTED,
    ).exists()


def _validate_measurements(weight, fill_level):
    weight = to_decimal(weight, "weight")
    if weight is not None and weight < 0:
        raise InvalidArgument("Weight cannot be negative.")
    if fill_level is not None:
        try:
            fill_level = int(fill_level)
        except (TypeError, ValueError):
            raise InvalidArgument(f"fill_level must be an integer, got {fill_level!r}.")
        if not 0 <= fill_level <= 100:
            raise InvalidArgument("fill_level must be between 0 and 100.")
    return weight, fill_level


def create_collection_record(bin_id, worker_id, status=CollectionRecord.COLLECTED, weight=None,
                             fill_level=None, waste_type="", reason="", sensor_data=None,
                             collection_date=None):
    if status not in dict(CollectionRecord.STATUS_CHOICES):
        raise InvalidArgument(f"Unknown collection status: {status}")
    if status in (CollectionRecord.MISSED, CollectionRecord.FAILED) and not (reason or "").strip():
        raise InvalidArgument(f"A reason is required for {status} collections.")
    weight, fill_level = _validate_measurements(weight, fill_level)

    try:
        worker = User.objects.get(pk=worker_id)
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"Worker not found with ID: {worker_id}")

    collection_date = collection_date or timezone.now()
    if timezone.is_naive(collection_date):
        collection_date = timezone.make_aware(collection_date)
    day = timezone.localdate(collection_date)

    try:
        with transaction.atomic():
            bin_obj = Bin.objects.select_for_update().select_related('owner').filter(bin_id=bin_id).first()

            if status == CollectionRecord.COLLECTED and not can_record_collection(bin_id, day):
                raise DuplicateCollection(f"Bin {bin_id} has already been collected on {day}.")

            if bin_obj is None:
                raise NotFound(f"Bin not found with binId: {bin_id}")
            if status == CollectionRecord.COLLECTED and bin_obj.status != Bin.ACTIVE:
                raise InvalidBinState(
                    f"Bin {bin_id} is {bin_obj.status}; only ACTIVE bins can be collected."
                )

            record = CollectionRecord.objects.create(
                bin_id=bin_id,
                worker=worker,
                bin_location=bin_obj.location_description,
                bin_owner=bin_obj.owner.get_full_name(),
                weight=weight,
                fill_level=fill_level,
                waste_type=waste_type or "",
                collection_date=collection_date,
                status=status,
                reason=reason or "",
                sensor_data=sensor_data or {},
            )
    except IntegrityError:
        logger.info("Unique constraint rejected a second collection of bin %s on %s", bin_id, day)
        raise DuplicateCollection(f"Bin {bin_id} has already been collected on {day}.")

    logger.info("Collection #%s recorded: bin=%s worker=%s status=%s", record.pk, bin_id, worker.pk, status)

    if status == CollectionRecord.COLLECTED:
        try:
            mark_bin_collected(bin_id)
        except Exception:
            # The collection stands even if the bin could not be updated.
            logger.warning("Could not mark bin %s as collected after collection #%s",
                           bin_id, record.pk, exc_info=True)

    return record


# ---------------------------
# Queries
# ---------------------------

def get_collections_by_worker(worker_id):
    return CollectionRecord.objects.filter(worker_id=worker_id)


def get_collections_by_bin(bin_id):
    return CollectionRecord.objects.filter(bin_id=bin_id)


def get_collections_by_status(status):
    if status not in dict(CollectionRecord.STATUS_CHOICES):
        raise InvalidArgument(f"Unknown collection status: {status}")
    return CollectionRecord.objects.filter(status=status)


def get_todays_collections_for_worker(worker_id):
    return CollectionRecord.objects.filter(worker_id=worker_id, collection_day=timezone.localdate())


def get_latest_collection_for_bin(bin_id):
    record = CollectionRecord.objects.filter(bin_id=bin_id).order_by('-collection_date', '-pk').first()
    if record is None:
        raise NotFound(f"No collections found for bin: {bin_id}")
    return record


def is_bin_collected_today(bin_id):
    return not can_record_collection(bin_id, timezone.localdate())


def get_collection_stats_by_worker(worker_id):
    qs = CollectionRecord.objects.filter(worker_id=worker_id)
    return {
        "worker_id": worker_id,
        "total_collections": qs.count(),
        "collected_count": qs.filter(status=CollectionRecord.COLLECTED).count(),
        "override_count": qs.filter(status=CollectionRecord.OVERRIDE).count(),
        "missed_count": qs.filter(status=CollectionRecord.MISSED).count(),
        "failed_count": qs.filter(status=CollectionRecord.FAILED).count(),
        "total_weight": qs.aggregate(total=Sum('weight'))['total'] or Decimal('0.00'),
    }
