"""
Payment processing for pickup requests.

Each payment method is its own small type carrying only the fields it
needs and knowing how to settle itself; the processor handles the shared
rules (amount check, persistence, confirmation).
"""
import logging
import time
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.utils import timezone

from common.exceptions import AmountMismatch, InvalidArgument, InvalidTransition
from common.notifications import NotificationDispatcher
from .fees import to_decimal
from .gateways import get_payment_gateway
from .models import PickupRequest

logger = logging.getLogger(__name__)


def _millis():
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Settlement:
    payment_status: str
    reference: Optional[str]


@dataclass(frozen=True)
class CashPayment:
    reference: Optional[str] = None

    method = "Cash"

    def settle(self, pickup, gateway, amount):
        return Settlement(PickupRequest.PAYMENT_COMPLETED, self.reference)


@dataclass(frozen=True)
class CardPayment:
    reference: Optional[str] = None
    card_token: Optional[str] = None

    method = "Card"

    def settle(self, pickup, gateway, amount):
        reference = self.reference or f"CARD_{_millis()}"
        approved = gateway.charge(amount, settings.PAYMENT_CURRENCY, reference, token=self.card_token)
        if not approved:
            logger.warning("Card payment declined for pickup %s (reference=%s)", pickup.request_id, reference)
            return Settlement(PickupRequest.PAYMENT_DECLINED, reference)
        return Settlement(PickupRequest.PAYMENT_COMPLETED, reference)


@dataclass(frozen=True)
class PointsPayment:
    method = "Points"

    def settle(self, pickup, gateway, amount):
        return Settlement(PickupRequest.PAYMENT_COMPLETED, f"POINTS_{_millis()}")


@dataclass(frozen=True)
class PayLaterPayment:
    method = "PayLater"

    def settle(self, pickup, gateway, amount):
        return Settlement(PickupRequest.PAYMENT_PENDING, f"PAYLATER_{_millis()}")


def build_payment(method, reference=None, card_token=None):
    if method == CashPayment.method:
        return CashPayment(reference=reference)
    if method == CardPayment.method:
        return CardPayment(reference=reference, card_token=card_token)
    if method == PointsPayment.method:
        return PointsPayment()
    if method == PayLaterPayment.method:
        return PayLaterPayment()
    raise InvalidArgument(f"Invalid payment method: {method}")


class PaymentProcessor:

    def __init__(self, gateway=None, dispatcher=None):
        self.gateway = gateway if gateway is not None else get_payment_gateway()
        self.dispatcher = dispatcher if dispatcher is not None else NotificationDispatcher()

    def process(self, pickup, payment, amount):
        amount = to_decimal(amount, "amount")
        if amount is None or amount != pickup.final_amount:
            raise AmountMismatch(
                f"Payment amount {amount} does not match the calculated amount {pickup.final_amount}."
            )
        if pickup.status == PickupRequest.CANCELLED:
            raise InvalidTransition("Cannot take payment for a cancelled pickup request.")
        if pickup.payment_status == PickupRequest.PAYMENT_COMPLETED:
            raise InvalidTransition("Payment for this pickup request is already completed.")

        settlement = payment.settle(pickup, self.gateway, amount)

        pickup.payment_method = payment.method
        pickup.payment_status = settlement.payment_status
        pickup.payment_reference = settlement.reference
        if settlement.payment_status == PickupRequest.PAYMENT_COMPLETED:
            pickup.payment_date = timezone.now()
        pickup.save()

        logger.info(
            "Pickup %s payment via %s -> %s", pickup.request_id, payment.method, pickup.payment_status
        )

        if pickup.payment_status == PickupRequest.PAYMENT_COMPLETED:
            self.dispatcher.payment_confirmed(pickup)
        return pickup
