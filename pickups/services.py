"""
Pickup request lifecycle.

DRAFT -> PENDING -> SCHEDULED -> IN_PROGRESS -> COMPLETED, with
cancellation, rescheduling and failure branches (see
PickupRequest.TRANSITIONS). Every operation commits its state change
before notifying; a failed notification never rolls the change back.
"""
import logging
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db.models import Sum
from django.utils import timezone

from common.exceptions import InvalidArgument, InvalidTransition, NotFound
from common.notifications import NotificationDispatcher
from .fees import calculate_fees
from .models import PickupRequest
from .payments import PaymentProcessor, build_payment

logger = logging.getLogger(__name__)

User = get_user_model()

CREATE_DETAIL_FIELDS = (
    'item_description',
    'item_images',
    'special_instructions',
    'preferred_date_time',
    'pickup_location',
    'address',
    'city',
    'postal_code',
    'latitude',
    'longitude',
)

UPDATABLE_FIELDS = (
    'item_description',
    'item_images',
    'estimated_weight',
    'special_instructions',
    'preferred_date_time',
    'scheduled_date_time',
    'pickup_location',
    'address',
    'city',
    'postal_code',
    'latitude',
    'longitude',
    'admin_notes',
)


class PickupRequestService:

    def __init__(self, processor=None, dispatcher=None, fee_schedule=None):
        self.dispatcher = dispatcher if dispatcher is not None else NotificationDispatcher()
        self.processor = processor if processor is not None else PaymentProcessor(dispatcher=self.dispatcher)
        self.fee_schedule = fee_schedule

    # ---------------------------
    # Lookups
    # ---------------------------

    def get_pickup_request(self, request_id):
        try:
            return PickupRequest.objects.get(pk=request_id)
        except (PickupRequest.DoesNotExist, ValidationError, ValueError):
            raise NotFound(f"Pickup request not found with ID: {request_id}")

    def _get_user(self, user_id):
        try:
            return User.objects.get(pk=user_id)
        except (User.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"User not found with ID: {user_id}")

    # ---------------------------
    # Commands
    # ---------------------------

    def calculate_fees(self, waste_type, estimated_weight=None, pickup_type=PickupRequest.REGULAR,
                       reward_points_used=None):
        return calculate_fees(waste_type, estimated_weight, pickup_type, reward_points_used,
                              schedule=self.fee_schedule)

    def create_pickup_request(self, user_id, waste_type, payment_method, pickup_type=PickupRequest.REGULAR,
                              estimated_weight=None, reward_points_used=None, payment_reference=None,
                              card_token=None, **details):
        unknown = set(details) - set(CREATE_DETAIL_FIELDS)
        if unknown:
            raise InvalidArgument(f"Unknown pickup request fields: {', '.join(sorted(unknown))}")

        user = self._get_user(user_id)
        payment = build_payment(payment_method, reference=payment_reference, card_token=card_token)
        fees = self.calculate_fees(waste_type, estimated_weight, pickup_type, reward_points_used)

        pickup = PickupRequest(
            user=user,
            user_name=user.get_full_name(),
            user_email=user.email,
            user_phone=user.phone_number,
            waste_type=waste_type,
            pickup_type=pickup_type,
            estimated_weight=estimated_weight,
            base_amount=fees.base_amount,
            urgency_fee=fees.urgency_fee,
            total_amount=fees.total_amount,
            reward_points_used=fees.reward_points_used,
            final_amount=fees.final_amount,
            payment_method=payment.method,
            payment_status=PickupRequest.PAYMENT_PENDING,
            status=PickupRequest.DRAFT,
            **details,
        )
        pickup.save()
        logger.info(
            "Pickup %s created for user %s (%s/%s, final=%s)",
            pickup.request_id, user.pk, waste_type, pickup_type, pickup.final_amount,
        )

        self.processor.process(pickup, payment, pickup.final_amount)
        self.dispatcher.pickup_created(pickup)
        return pickup

    def update_pickup_request(self, request_id, **changes):
        """
        Merge the supplied fields into the request.

        A status change must be allowed by PickupRequest.TRANSITIONS;
        otherwise InvalidTransition is raised and nothing is written.
        """
        pickup = self.get_pickup_request(request_id)

        new_status = changes.pop('status', None)
        worker_supplied = 'assigned_worker' in changes
        worker = changes.pop('assigned_worker', None)

        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise InvalidArgument(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        if worker_supplied and worker is not None:
            if not isinstance(worker, User):
                worker = self._get_user(worker)
            if worker.role != 'worker':
                raise InvalidArgument(f"User {worker.pk} is not a worker.")

        status_changed = new_status is not None and new_status != pickup.status
        if status_changed:
            assigned = worker if worker_supplied else pickup.assigned_worker
            self._check_transition(pickup, new_status, assigned)

        for field_name, value in changes.items():
            setattr(pickup, field_name, value)

        worker_changed = worker_supplied and (worker.pk if worker else None) != pickup.assigned_worker_id
        if worker_supplied:
            pickup.assigned_worker = worker
            pickup.assigned_worker_name = worker.get_full_name() if worker else ""

        previous_status = pickup.status
        if status_changed:
            pickup.status = new_status
            if new_status == PickupRequest.SCHEDULED and not pickup.scheduled_date_time:
                pickup.scheduled_date_time = pickup.preferred_date_time

        pickup.save()

        if status_changed:
            logger.info("Pickup %s status %s -> %s", pickup.request_id, previous_status, new_status)
            if new_status == PickupRequest.CANCELLED:
                self.dispatcher.pickup_cancelled(pickup)
            else:
                self.dispatcher.status_changed(pickup)
        if worker_changed and worker is not None:
            self.dispatcher.worker_assigned(pickup)
        return pickup

    def _check_transition(self, pickup, new_status, assigned_worker):
        if not pickup.can_transition_to(new_status):
            raise InvalidTransition(
                f"Cannot move pickup request {pickup.request_id} from {pickup.status} to {new_status}."
            )
        if new_status == PickupRequest.IN_PROGRESS and assigned_worker is None:
            raise InvalidTransition("Cannot start a pickup request without an assigned worker.")
        if new_status == PickupRequest.COMPLETED and pickup.payment_status != PickupRequest.PAYMENT_COMPLETED:
            raise InvalidTransition("Cannot complete a pickup request while payment is outstanding.")

    def submit_pickup_request(self, request_id):
        return self.update_pickup_request(request_id, status=PickupRequest.PENDING)

    def reschedule_pickup_request(self, request_id, preferred_date_time=None, admin_notes=None):
        changes = {'status': PickupRequest.RESCHEDULED, 'scheduled_date_time': None}
        if preferred_date_time is not None:
            changes['preferred_date_time'] = preferred_date_time
        if admin_notes:
            changes['admin_notes'] = admin_notes
        return self.update_pickup_request(request_id, **changes)

    def cancel_pickup_request(self, request_id, reason=""):
        pickup = self.get_pickup_request(request_id)
        if pickup.status == PickupRequest.COMPLETED:
            raise InvalidTransition("Cannot cancel a completed pickup request.")
        if pickup.status == PickupRequest.CANCELLED:
            raise InvalidTransition("Pickup request is already cancelled.")

        previous_status = pickup.status
        pickup.status = PickupRequest.CANCELLED
        pickup.cancellation_reason = reason or ""
        pickup.save()
        logger.info("Pickup %s cancelled from %s", pickup.request_id, previous_status)

        self.dispatcher.pickup_cancelled(pickup)
        return pickup

    def process_payment(self, request_id, payment_method, amount, payment_reference=None, card_token=None):
        # Paying does not advance the request status; scheduling stays an admin action.
        pickup = self.get_pickup_request(request_id)
        payment = build_payment(payment_method, reference=payment_reference, card_token=card_token)
        return self.processor.process(pickup, payment, amount)

    def send_payment_reminder(self, request_id):
        pickup = self.get_pickup_request(request_id)
        if pickup.payment_status != PickupRequest.PAYMENT_PENDING:
            raise InvalidTransition("Payment reminders are only sent for pending payments.")
        if pickup.status == PickupRequest.CANCELLED:
            raise InvalidTransition("Cannot remind payment for a cancelled pickup request.")

        pickup.last_reminder_sent = timezone.now()
        pickup.save(update_fields=['last_reminder_sent', 'updated_at'])
        self.dispatcher.payment_reminder(pickup)
        return pickup

    # ---------------------------
    # Queries
    # ---------------------------

    def list_for_user(self, user_id):
        return PickupRequest.objects.filter(user_id=user_id)

    def list_by_status(self, status):
        if status not in dict(PickupRequest.STATUS_CHOICES):
            raise InvalidArgument(f"Unknown pickup status: {status}")
        return PickupRequest.objects.filter(status=status)

    def list_emergency(self):
        return PickupRequest.objects.filter(pickup_type=PickupRequest.EMERGENCY)

    def list_pending_payment(self):
        return PickupRequest.objects.filter(payment_status=PickupRequest.PAYMENT_PENDING)

    def get_stats(self):
        qs = PickupRequest.objects.all()
        now = timezone.now()

        def amount_sum(queryset):
            return queryset.aggregate(total=Sum('final_amount'))['total'] or Decimal('0.00')

        return {
            "total_requests": qs.count(),
            "pending_requests": qs.filter(status=PickupRequest.PENDING).count(),
            "scheduled_requests": qs.filter(status=PickupRequest.SCHEDULED).count(),
            "completed_requests": qs.filter(status=PickupRequest.COMPLETED).count(),
            "cancelled_requests": qs.filter(status=PickupRequest.CANCELLED).count(),
            "emergency_requests": qs.filter(pickup_type=PickupRequest.EMERGENCY).count(),
            "total_revenue": amount_sum(qs.filter(payment_status=PickupRequest.PAYMENT_COMPLETED)),
            "pending_payments": amount_sum(qs.filter(payment_status=PickupRequest.PAYMENT_PENDING)),
            "requests_this_week": qs.filter(created_at__gte=now - timedelta(weeks=1)).count(),
            "requests_this_month": qs.filter(created_at__gte=now - timedelta(days=30)).count(),
        }
