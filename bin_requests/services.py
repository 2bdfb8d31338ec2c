"""
Bin and bag orders.

A request is priced from the catalogue when it is placed, confirmed once
payment is recorded, then moves through PROCESSING and SHIPPED to
DELIVERED (see BinRequest.TRANSITIONS).
"""
import logging
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import Count, Sum
from django.utils import timezone

from common.exceptions import InvalidArgument, InvalidTransition, NotFound
from common.notifications import NotificationDispatcher
from pickups.fees import quantize, to_decimal
from .models import BinRequest

logger = logging.getLogger(__name__)

User = get_user_model()

DEFAULT_CATALOGUE = {
    BinRequest.BIN: {
        "general": "25.00",
        "recyclable": "30.00",
        "organic": "35.00",
        "hazardous": "50.00",
        "electronic": "45.00",
    },
    BinRequest.BAG: {
        "biodegradable": "2.00",
        "recyclable": "3.00",
        "heavy_duty": "5.00",
        "compostable": "4.00",
    },
}

CLOSED_STATUSES = (BinRequest.DELIVERED, BinRequest.CANCELLED, BinRequest.REFUNDED)


def get_catalogue():
    """Unit prices per request type and item, from settings.BIN_REQUEST_CATALOGUE."""
    configured = getattr(settings, "BIN_REQUEST_CATALOGUE", None) or DEFAULT_CATALOGUE
    return {
        request_type: {item: to_decimal(price, item) for item, price in items.items()}
        for request_type, items in configured.items()
    }


class BinRequestService:

    def __init__(self, dispatcher=None):
        self.dispatcher = dispatcher if dispatcher is not None else NotificationDispatcher()

    def get_bin_request(self, request_id):
        try:
            return BinRequest.objects.select_related('user').get(request_id=request_id)
        except BinRequest.DoesNotExist:
            raise NotFound(f"Bin request not found with ID: {request_id}")

    def create_bin_request(self, user_id, request_type, item_type, quantity, delivery_address,
                           special_instructions="", latitude=None, longitude=None):
        try:
            user = User.objects.get(pk=user_id)
        except (User.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"User not found with ID: {user_id}")

        if quantity is None or quantity < 1:
            raise InvalidArgument("Quantity must be at least 1.")
        if not delivery_address:
            raise InvalidArgument("A delivery address is required.")

        prices = get_catalogue().get(request_type)
        if prices is None:
            raise InvalidArgument(f"Unknown request type: {request_type}")
        if item_type not in prices:
            raise InvalidArgument(f"Unknown {request_type.lower()} item: {item_type}")

        unit_price = prices[item_type]
        bin_request = BinRequest.objects.create(
            user=user,
            request_type=request_type,
            item_type=item_type,
            quantity=quantity,
            unit_price=unit_price,
            total_amount=quantize(unit_price * quantity),
            delivery_address=delivery_address,
            special_instructions=special_instructions or "",
            latitude=latitude,
            longitude=longitude,
        )
        logger.info(
            "Bin request %s created for user %s (%s x %s %s, total=%s)",
            bin_request.request_id, user.pk, quantity, item_type, request_type, bin_request.total_amount,
        )

        self.dispatcher.bin_request_created(bin_request)
        return bin_request

    def record_payment(self, request_id, payment_reference):
        if not payment_reference:
            raise InvalidArgument("A payment reference is required.")

        bin_request = self.get_bin_request(request_id)
        if bin_request.status != BinRequest.PENDING:
            raise InvalidTransition(f"Cannot take payment for a bin request that is {bin_request.status}.")

        bin_request.payment_reference = payment_reference
        return self._set_status(bin_request, BinRequest.CONFIRMED)

    def update_status(self, request_id, new_status):
        if new_status not in dict(BinRequest.STATUS_CHOICES):
            raise InvalidArgument(f"Unknown bin request status: {new_status}")

        bin_request = self.get_bin_request(request_id)
        if new_status == bin_request.status:
            return bin_request
        if new_status == BinRequest.CANCELLED:
            return self.cancel_bin_request(request_id)
        if not bin_request.can_transition_to(new_status):
            raise InvalidTransition(
                f"Cannot move bin request {bin_request.request_id} from {bin_request.status} to {new_status}."
            )
        if new_status == BinRequest.REFUNDED and not bin_request.payment_reference:
            raise InvalidTransition("Cannot refund a bin request that was never paid.")
        return self._set_status(bin_request, new_status)

    def cancel_bin_request(self, request_id):
        bin_request = self.get_bin_request(request_id)
        if bin_request.status in CLOSED_STATUSES:
            raise InvalidTransition(f"Cannot cancel a bin request that is {bin_request.status}.")
        return self._set_status(bin_request, BinRequest.CANCELLED)

    def _set_status(self, bin_request, new_status):
        previous_status = bin_request.status
        bin_request.status = new_status
        bin_request.save()
        logger.info("Bin request %s status %s -> %s", bin_request.request_id, previous_status, new_status)

        self.dispatcher.bin_request_status_changed(bin_request)
        return bin_request

    # ---------------------------
    # Queries
    # ---------------------------

    def list_for_user(self, user_id):
        return BinRequest.objects.filter(user_id=user_id)

    def list_by_status(self, status):
        if status not in dict(BinRequest.STATUS_CHOICES):
            raise InvalidArgument(f"Unknown bin request status: {status}")
        return BinRequest.objects.filter(status=status)

    def get_stats(self, user_id=None):
        """Counts per status, delivered revenue and orders placed in the last 30 days."""
        qs = BinRequest.objects.all()
        if user_id is not None:
            qs = qs.filter(user_id=user_id)

        status_counts = {code: 0 for code, _ in BinRequest.STATUS_CHOICES}
        for row in qs.order_by().values('status').annotate(count=Count('id')):
            status_counts[row['status']] = row['count']

        revenue = qs.filter(status=BinRequest.DELIVERED).aggregate(total=Sum('total_amount'))['total']
        return {
            "total_requests": qs.count(),
            "status_counts": status_counts,
            "total_revenue": revenue or Decimal('0.00'),
            "recent_requests": qs.filter(created_at__gte=timezone.now() - timedelta(days=30)).count(),
        }
