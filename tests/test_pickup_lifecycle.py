from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from common.exceptions import InvalidArgument, InvalidTransition, NotFound
from common.notifications import NotificationDispatcher
from pickups.models import PickupRequest
from pickups.services import PickupRequestService

ALL_STATUSES = [code for code, _ in PickupRequest.STATUS_CHOICES]


def create(service, user, **overrides):
    data = {
        "user_id": user.pk,
        "waste_type": PickupRequest.E_WASTE,
        "pickup_type": PickupRequest.EMERGENCY,
        "estimated_weight": 5,
        "payment_method": "Cash",
        "address": "12 Ring Road",
    }
    data.update(overrides)
    return service.create_pickup_request(**data)


def completed_pickup(service, user, worker):
    pickup = create(service, user)
    service.submit_pickup_request(pickup.pk)
    service.update_pickup_request(pickup.pk, status=PickupRequest.SCHEDULED)
    service.update_pickup_request(pickup.pk, status=PickupRequest.IN_PROGRESS, assigned_worker=worker)
    return service.update_pickup_request(pickup.pk, status=PickupRequest.COMPLETED)


@pytest.mark.django_db
def test_create_prices_snapshots_and_notifies(service, resident, sink):
    pickup = create(service, resident)

    assert pickup.status == PickupRequest.DRAFT
    assert pickup.base_amount == Decimal("25.00")
    assert pickup.urgency_fee == Decimal("12.50")
    assert pickup.final_amount == Decimal("37.50")
    assert pickup.payment_status == PickupRequest.PAYMENT_COMPLETED
    assert pickup.user_name == "Ama Mensah"
    assert pickup.user_email == "ama@example.com"
    assert pickup.user_phone == "0240000001"

    assert sink.titles() == ["Payment Confirmed", "Pickup Request Confirmation", "New Pickup Request"]
    assert sink.sent[-1][0] == "admin"


@pytest.mark.django_db
def test_snapshot_is_not_kept_in_sync(service, resident):
    pickup = create(service, resident)
    resident.first_name = "Akosua"
    resident.save()

    pickup.refresh_from_db()
    assert pickup.user_name == "Ama Mensah"


@pytest.mark.django_db
def test_create_for_unknown_user(service):
    with pytest.raises(NotFound):
        service.create_pickup_request(user_id=999999, waste_type=PickupRequest.GENERAL, payment_method="Cash")

    assert PickupRequest.objects.count() == 0


@pytest.mark.django_db
def test_create_rejects_invalid_input_before_saving(service, resident):
    with pytest.raises(InvalidArgument):
        create(service, resident, estimated_weight=-2)
    with pytest.raises(InvalidArgument):
        create(service, resident, payment_method="Cheque")

    assert PickupRequest.objects.count() == 0


@pytest.mark.django_db
def test_paylater_request_can_be_cancelled_from_draft(service, resident, sink):
    pickup = create(service, resident, payment_method="PayLater")
    assert pickup.payment_status == PickupRequest.PAYMENT_PENDING

    pickup = service.cancel_pickup_request(pickup.pk, reason="No longer needed")

    assert pickup.status == PickupRequest.CANCELLED
    assert pickup.payment_status == PickupRequest.PAYMENT_PENDING
    assert pickup.cancellation_reason == "No longer needed"
    assert pickup.cancelled_at is not None
    assert sink.titles()[-1] == "Pickup Request Cancelled"


@pytest.mark.django_db
def test_full_lifecycle_to_completion(service, resident, worker, sink):
    pickup = completed_pickup(service, resident, worker)

    assert pickup.status == PickupRequest.COMPLETED
    assert pickup.completed_at is not None
    assert pickup.assigned_worker == worker
    assert pickup.assigned_worker_name == "Kwame Asante"
    assert "New Pickup Assignment" in sink.titles()
    assert (str(worker.pk), "New Pickup Assignment") in [(r, t) for r, t, _ in sink.sent]


@pytest.mark.django_db
@pytest.mark.parametrize("new_status", [s for s in ALL_STATUSES if s != PickupRequest.COMPLETED])
def test_completed_request_is_closed(service, resident, worker, new_status):
    pickup = completed_pickup(service, resident, worker)

    with pytest.raises(InvalidTransition):
        service.update_pickup_request(pickup.pk, status=new_status)

    pickup.refresh_from_db()
    assert pickup.status == PickupRequest.COMPLETED


@pytest.mark.django_db
@pytest.mark.parametrize("new_status", [s for s in ALL_STATUSES if s != PickupRequest.CANCELLED])
def test_cancelled_request_is_closed(service, resident, new_status):
    pickup = create(service, resident)
    service.cancel_pickup_request(pickup.pk)

    with pytest.raises(InvalidTransition):
        service.update_pickup_request(pickup.pk, status=new_status)

    pickup.refresh_from_db()
    assert pickup.status == PickupRequest.CANCELLED


@pytest.mark.django_db
def test_terminal_requests_cannot_be_cancelled(service, resident, worker):
    pickup = completed_pickup(service, resident, worker)
    with pytest.raises(InvalidTransition):
        service.cancel_pickup_request(pickup.pk)

    other = create(service, resident)
    service.cancel_pickup_request(other.pk)
    with pytest.raises(InvalidTransition):
        service.cancel_pickup_request(other.pk)


@pytest.mark.django_db
@pytest.mark.parametrize("new_status", [
    PickupRequest.SCHEDULED,
    PickupRequest.IN_PROGRESS,
    PickupRequest.COMPLETED,
    PickupRequest.RESCHEDULED,
    PickupRequest.FAILED,
    PickupRequest.CANCELLED,
])
def test_draft_only_moves_to_pending(service, resident, new_status):
    pickup = create(service, resident)

    with pytest.raises(InvalidTransition):
        service.update_pickup_request(pickup.pk, status=new_status)

    assert service.submit_pickup_request(pickup.pk).status == PickupRequest.PENDING


@pytest.mark.django_db
@pytest.mark.parametrize("path", [
    [PickupRequest.PENDING],
    [PickupRequest.PENDING, PickupRequest.SCHEDULED],
    [PickupRequest.PENDING, PickupRequest.SCHEDULED, PickupRequest.IN_PROGRESS],
    [PickupRequest.PENDING, PickupRequest.RESCHEDULED],
])
def test_open_request_can_fail(service, resident, worker, sink, path):
    pickup = create(service, resident)
    for step in path:
        service.update_pickup_request(pickup.pk, status=step, assigned_worker=worker)

    failed = service.update_pickup_request(pickup.pk, status=PickupRequest.FAILED)
    assert failed.status == PickupRequest.FAILED
    assert sink.titles()[-1] == "Pickup Request Update"

    for new_status in ALL_STATUSES:
        if new_status == PickupRequest.FAILED:
            continue
        with pytest.raises(InvalidTransition):
            service.update_pickup_request(pickup.pk, status=new_status)

    cancelled = service.cancel_pickup_request(pickup.pk, reason="Truck broke down")
    assert cancelled.status == PickupRequest.CANCELLED


@pytest.mark.django_db
def test_start_requires_assigned_worker(service, resident):
    pickup = create(service, resident)
    service.submit_pickup_request(pickup.pk)
    service.update_pickup_request(pickup.pk, status=PickupRequest.SCHEDULED)

    with pytest.raises(InvalidTransition):
        service.update_pickup_request(pickup.pk, status=PickupRequest.IN_PROGRESS)


@pytest.mark.django_db
def test_completion_requires_completed_payment(service, resident, worker):
    pickup = create(service, resident, payment_method="PayLater")
    service.submit_pickup_request(pickup.pk)
    service.update_pickup_request(pickup.pk, status=PickupRequest.SCHEDULED)
    service.update_pickup_request(pickup.pk, status=PickupRequest.IN_PROGRESS, assigned_worker=worker)

    with pytest.raises(InvalidTransition):
        service.update_pickup_request(pickup.pk, status=PickupRequest.COMPLETED)

    service.process_payment(pickup.pk, "Cash", pickup.final_amount)
    assert service.update_pickup_request(pickup.pk, status=PickupRequest.COMPLETED).status == "COMPLETED"


@pytest.mark.django_db
def test_scheduling_falls_back_to_preferred_time(service, resident):
    preferred = timezone.now() + timedelta(days=2)
    pickup = create(service, resident, preferred_date_time=preferred)
    service.submit_pickup_request(pickup.pk)

    pickup = service.update_pickup_request(pickup.pk, status=PickupRequest.SCHEDULED)

    assert pickup.scheduled_date_time == preferred


@pytest.mark.django_db
def test_reschedule_goes_back_through_pending(service, resident):
    pickup = create(service, resident)
    service.submit_pickup_request(pickup.pk)
    service.update_pickup_request(pickup.pk, status=PickupRequest.SCHEDULED)

    new_time = timezone.now() + timedelta(days=5)
    pickup = service.reschedule_pickup_request(pickup.pk, preferred_date_time=new_time)

    assert pickup.status == PickupRequest.RESCHEDULED
    assert pickup.preferred_date_time == new_time
    assert pickup.scheduled_date_time is None
    assert service.submit_pickup_request(pickup.pk).status == PickupRequest.PENDING


@pytest.mark.django_db
def test_partial_update_leaves_other_fields(service, resident):
    pickup = create(service, resident, city="Accra", special_instructions="Gate code 42")

    pickup = service.update_pickup_request(pickup.pk, admin_notes="Bring a trolley")

    assert pickup.admin_notes == "Bring a trolley"
    assert pickup.city == "Accra"
    assert pickup.special_instructions == "Gate code 42"
    assert pickup.status == PickupRequest.DRAFT


@pytest.mark.django_db
def test_assigning_a_non_worker_is_rejected(service, resident, other_resident):
    pickup = create(service, resident)

    with pytest.raises(InvalidArgument):
        service.update_pickup_request(pickup.pk, assigned_worker=other_resident)


@pytest.mark.django_db
def test_payment_reminder(service, resident, sink):
    pickup = create(service, resident, payment_method="PayLater")

    pickup = service.send_payment_reminder(pickup.pk)

    assert pickup.last_reminder_sent is not None
    assert sink.titles()[-1] == "Payment Reminder"

    service.process_payment(pickup.pk, "Cash", pickup.final_amount)
    with pytest.raises(InvalidTransition):
        service.send_payment_reminder(pickup.pk)


@pytest.mark.django_db
def test_failing_sink_does_not_undo_the_change(processor, resident):
    class BrokenSink:
        def notify(self, recipient, title, body):
            raise RuntimeError("smtp down")

    dispatcher = NotificationDispatcher(sink=BrokenSink())
    processor.dispatcher = dispatcher
    service = PickupRequestService(processor=processor, dispatcher=dispatcher)

    pickup = create(service, resident)
    service.cancel_pickup_request(pickup.pk)

    pickup.refresh_from_db()
    assert pickup.status == PickupRequest.CANCELLED
    assert pickup.payment_status == PickupRequest.PAYMENT_COMPLETED


@pytest.mark.django_db
def test_queries_and_stats(service, resident, other_resident):
    create(service, resident)
    create(service, resident, pickup_type=PickupRequest.REGULAR, payment_method="PayLater")
    cancelled = create(service, other_resident, waste_type=PickupRequest.GENERAL, estimated_weight=None,
                       pickup_type=PickupRequest.REGULAR)
    service.cancel_pickup_request(cancelled.pk)

    assert service.list_for_user(resident.pk).count() == 2
    assert service.list_emergency().count() == 1
    assert service.list_pending_payment().count() == 1
    assert service.list_by_status(PickupRequest.CANCELLED).count() == 1
    with pytest.raises(InvalidArgument):
        service.list_by_status("LOST")

    stats = service.get_stats()
    assert stats["total_requests"] == 3
    assert stats["cancelled_requests"] == 1
    assert stats["emergency_requests"] == 1
    assert stats["total_revenue"] == Decimal("47.50")
    assert stats["pending_payments"] == Decimal("25.00")
    assert stats["requests_this_week"] == 3


@pytest.mark.django_db
def test_unknown_request_id(service):
    with pytest.raises(NotFound):
        service.get_pickup_request("not-a-uuid")
