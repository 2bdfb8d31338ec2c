"""
Typed failures shared by the pickup, bin and collection services.

Every failure is an APIException so views can let it propagate; the
project exception handler renders it as {"error": <code>, "detail": <msg>}.
"""
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler


class SmartWasteError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request could not be processed."
    default_code = "error"


class NotFound(SmartWasteError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found."
    default_code = "not_found"


class InvalidArgument(SmartWasteError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid argument."
    default_code = "invalid_argument"


class AmountMismatch(SmartWasteError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Payment amount does not match the calculated amount."
    default_code = "amount_mismatch"


class InvalidTransition(SmartWasteError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Status transition not allowed."
    default_code = "invalid_transition"


class InvalidBinState(SmartWasteError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Bin is not in a collectable state."
    default_code = "invalid_bin_state"


class DuplicateCollection(SmartWasteError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Bin was already collected today."
    default_code = "duplicate_collection"


def api_exception_handler(exc, context):
    """Render domain failures with a stable error code."""
    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, SmartWasteError):
        response.data = {"error": exc.default_code, "detail": str(exc.detail)}
    return response
