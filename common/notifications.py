"""
Notification dispatch for pickup and bin requests.

Delivery belongs to an external sink configured by NOTIFICATION_SINK.
Dispatch is fire-and-forget: a failing sink is logged and never undoes the
state change that triggered it.
"""
import logging

from django.conf import settings
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)

ADMIN_RECIPIENT = "admin"


class LoggingSink:
    """Default sink: writes every notification to the log."""

    def notify(self, recipient, title, body):
        logger.info("Notification to %s: %s | %s", recipient, title, body)


class NotificationDispatcher:

    def __init__(self, sink=None):
        self.sink = sink if sink is not None else import_string(settings.NOTIFICATION_SINK)()

    def notify(self, recipient, title, body):
        if not recipient:
            return
        try:
            self.sink.notify(str(recipient), title, body)
        except Exception:
            logger.exception("Notification to %s failed (title=%r)", recipient, title)

    # ---------------------------
    # Pickup request triggers
    # ---------------------------

    def pickup_created(self, pickup):
        body = (
            f"Dear {pickup.user_name},\n\n"
            "Your pickup request has been submitted successfully.\n\n"
            f"Request ID: {pickup.request_id}\n"
            f"Waste Type: {pickup.waste_type}\n"
            f"Pickup Type: {pickup.pickup_type}\n"
            f"Location: {pickup.address}\n"
            f"Preferred Date: {pickup.preferred_date_time}\n"
            f"Total Amount: ${pickup.final_amount:.2f}\n"
            f"Payment Status: {pickup.payment_status}\n\n"
            "We will contact you soon to confirm the pickup schedule."
        )
        self.notify(pickup.user_id, "Pickup Request Confirmation", body)
        self.notify(
            ADMIN_RECIPIENT,
            "New Pickup Request",
            f"New pickup request received: {pickup.request_id}. Type: {pickup.pickup_type}, "
            f"Location: {pickup.address}, Amount: ${pickup.final_amount:.2f}",
        )

    def payment_confirmed(self, pickup):
        self.notify(
            pickup.user_id,
            "Payment Confirmed",
            f"Payment confirmed for pickup request {pickup.request_id}. "
            f"Amount: ${pickup.final_amount:.2f}.",
        )

    def pickup_cancelled(self, pickup):
        self.notify(
            pickup.user_id,
            "Pickup Request Cancelled",
            f"Your pickup request {pickup.request_id} has been cancelled. "
            f"Reason: {pickup.cancellation_reason}",
        )

    def worker_assigned(self, pickup):
        self.notify(
            pickup.assigned_worker_id,
            "New Pickup Assignment",
            f"You have been assigned to pickup request {pickup.request_id}. "
            f"Location: {pickup.address}. Scheduled time: {pickup.scheduled_date_time}",
        )
        self.notify(
            pickup.user_id,
            "Worker Assigned",
            f"Your pickup request {pickup.request_id} has been assigned to worker "
            f"{pickup.assigned_worker_name}. Pickup scheduled for {pickup.scheduled_date_time}.",
        )

    def status_changed(self, pickup):
        self.notify(
            pickup.user_id,
            "Pickup Request Update",
            f"Your pickup request {pickup.request_id} is now {pickup.status}.",
        )

    def payment_reminder(self, pickup):
        self.notify(
            pickup.user_id,
            "Payment Reminder",
            f"Payment reminder: Your pickup request {pickup.request_id} requires payment of "
            f"${pickup.final_amount:.2f}. Please complete payment to schedule your pickup.",
        )

    # ---------------------------
    # Bin request triggers
    # ---------------------------

    def bin_request_created(self, bin_request):
        self.notify(
            bin_request.user_id,
            "Bin Request Confirmation",
            f"Your request {bin_request.request_id} for {bin_request.quantity} x {bin_request.item_type} "
            f"{bin_request.get_request_type_display().lower()} has been received. "
            f"Total Amount: ${bin_request.total_amount:.2f}. Delivery to: {bin_request.delivery_address}",
        )
        self.notify(
            ADMIN_RECIPIENT,
            "New Bin Request",
            f"New bin request received: {bin_request.request_id}. "
            f"{bin_request.quantity} x {bin_request.item_type} ({bin_request.request_type}), "
            f"Amount: ${bin_request.total_amount:.2f}",
        )

    def bin_request_status_changed(self, bin_request):
        self.notify(
            bin_request.user_id,
            "Bin Request Update",
            f"Your bin request {bin_request.request_id} is now {bin_request.status}.",
        )
