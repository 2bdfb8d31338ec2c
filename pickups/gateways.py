"""
Card payment gateways.

The pickup service only needs a yes/no answer from `charge`; retries and
3-D Secure flows stay inside the gateway. The class used at runtime is
named by settings.PAYMENT_GATEWAY.
"""
import logging

from django.conf import settings
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


class BasePaymentGateway:

    def charge(self, amount, currency, reference, token=None):
        """Charge `amount` against the card behind `token`; True when the charge succeeded."""
        raise NotImplementedError


class AcceptAllGateway(BasePaymentGateway):
    """Approves every charge. For development and environments without a card processor."""

    def charge(self, amount, currency, reference, token=None):
        logger.info("Card charge approved: %s %s (reference=%s)", amount, currency, reference)
        return True


def get_payment_gateway():
    return import_string(settings.PAYMENT_GATEWAY)()
