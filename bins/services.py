import logging

from django.utils import timezone

from common.exceptions import NotFound
from .models import Bin

logger = logging.getLogger(__name__)


def get_bin(bin_id):
    """Look a bin up by its business key."""
    try:
        return Bin.objects.get(bin_id=bin_id)
    except Bin.DoesNotExist:
        raise NotFound(f"Bin not found with binId: {bin_id}")


def update_bin_status(bin_id, new_status):
    bin_obj = get_bin(bin_id)
    bin_obj.status = new_status
    bin_obj.updated_at = timezone.now()
    bin_obj.save(update_fields=['status', 'updated_at'])
    logger.info("Bin %s status set to %s", bin_id, new_status)
    return bin_obj


def mark_bin_collected(bin_id):
    """
    Propagate a successful collection to the bin.

    Raises NotFound when the bin is gone; the collection pipeline treats
    that as non-fatal.
    """
    return update_bin_status(bin_id, Bin.COLLECTED)
