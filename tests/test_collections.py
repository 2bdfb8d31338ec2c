import logging
import threading
from datetime import timedelta
from decimal import Decimal

import pytest
from django.db import connection
from django.utils import timezone

from accounts.models import User
from bins.models import Bin
from collection_management import services
from collection_management.models import CollectionRecord
from common.exceptions import DuplicateCollection, InvalidArgument, InvalidBinState, NotFound


@pytest.mark.django_db
def test_collection_marks_bin_collected(worker, active_bin):
    record = services.create_collection_record(
        bin_id=active_bin.bin_id,
        worker_id=worker.pk,
        weight="12.5",
        fill_level=80,
        waste_type="mixed",
        sensor_data={"temperature": 21.5, "battery_level": 88, "signal_strength": -71},
    )

    active_bin.refresh_from_db()
    assert active_bin.status == Bin.COLLECTED
    assert record.status == CollectionRecord.COLLECTED
    assert record.collection_day == timezone.localdate()
    assert record.bin_location == "12 Ring Road"
    assert record.bin_owner == "Ama Mensah"
    assert record.sensor_data["battery_level"] == 88


@pytest.mark.django_db
def test_second_collection_same_day_is_rejected(worker, active_bin):
    services.create_collection_record(bin_id=active_bin.bin_id, worker_id=worker.pk)
    # put the bin back so only the daily guard can refuse
    Bin.objects.filter(pk=active_bin.pk).update(status=Bin.ACTIVE)

    with pytest.raises(DuplicateCollection):
        services.create_collection_record(bin_id=active_bin.bin_id, worker_id=worker.pk)

    assert CollectionRecord.objects.filter(bin_id=active_bin.bin_id).count() == 1


@pytest.mark.django_db
def test_collection_allowed_again_next_day(worker, active_bin):
    services.create_collection_record(bin_id=active_bin.bin_id, worker_id=worker.pk)
    Bin.objects.filter(pk=active_bin.pk).update(status=Bin.ACTIVE)

    tomorrow = timezone.now() + timedelta(days=1)
    record = services.create_collection_record(bin_id=active_bin.bin_id, worker_id=worker.pk,
                                               collection_date=tomorrow)

    assert record.collection_day == timezone.localdate(tomorrow)
    assert services.can_record_collection(active_bin.bin_id, timezone.localdate(tomorrow)) is False


@pytest.mark.django_db
def test_override_bypasses_guard_but_counts(admin_user, worker, active_bin):
    services.create_collection_record(bin_id=active_bin.bin_id, worker_id=worker.pk)

    override = services.create_collection_record(
        bin_id=active_bin.bin_id,
        worker_id=admin_user.pk,
        status=CollectionRecord.OVERRIDE,
        reason="Resident asked for a second pickup",
    )

    assert override.status == CollectionRecord.OVERRIDE
    assert services.is_bin_collected_today(active_bin.bin_id) is True


@pytest.mark.django_db
def test_override_blocks_later_regular_collection(admin_user, worker, active_bin):
    services.create_collection_record(bin_id=active_bin.bin_id, worker_id=admin_user.pk,
                                      status=CollectionRecord.OVERRIDE)
    active_bin.refresh_from_db()
    # overrides leave the bin state alone
    assert active_bin.status == Bin.ACTIVE

    with pytest.raises(DuplicateCollection):
        services.create_collection_record(bin_id=active_bin.bin_id, worker_id=worker.pk)


@pytest.mark.django_db
@pytest.mark.parametrize("bin_status", [Bin.DAMAGED, Bin.LOST, Bin.MAINTENANCE, Bin.COLLECTED])
def test_only_active_bins_can_be_collected(worker, active_bin, bin_status):
    Bin.objects.filter(pk=active_bin.pk).update(status=bin_status)

    with pytest.raises(InvalidBinState):
        services.create_collection_record(bin_id=active_bin.bin_id, worker_id=worker.pk)

    assert CollectionRecord.objects.count() == 0
    active_bin.refresh_from_db()
    assert active_bin.status == bin_status


@pytest.mark.django_db
def test_unknown_bin(worker):
    with pytest.raises(NotFound):
        services.create_collection_record(bin_id="BIN-404", worker_id=worker.pk)


@pytest.mark.django_db
@pytest.mark.parametrize("record_status", [CollectionRecord.MISSED, CollectionRecord.FAILED])
def test_missed_and_failed_need_a_reason(worker, active_bin, record_status):
    with pytest.raises(InvalidArgument):
        services.create_collection_record(bin_id=active_bin.bin_id, worker_id=worker.pk, status=record_status)

    record = services.create_collection_record(bin_id=active_bin.bin_id, worker_id=worker.pk,
                                               status=record_status, reason="Gate locked")
    active_bin.refresh_from_db()
    assert record.reason == "Gate locked"
    assert active_bin.status == Bin.ACTIVE
    assert services.can_record_collection(active_bin.bin_id, timezone.localdate()) is True


@pytest.mark.django_db
@pytest.mark.parametrize("kwargs", [{"weight": -1}, {"fill_level": 101}, {"fill_level": -3}])
def test_measurements_are_validated(worker, active_bin, kwargs):
    with pytest.raises(InvalidArgument):
        services.create_collection_record(bin_id=active_bin.bin_id, worker_id=worker.pk, **kwargs)


@pytest.mark.django_db
def test_bin_sync_failure_keeps_the_record(worker, active_bin, monkeypatch, caplog):
    def broken_sync(bin_id):
        raise RuntimeError("bin store unavailable")

    monkeypatch.setattr(services, "mark_bin_collected", broken_sync)

    with caplog.at_level(logging.WARNING, logger="collection_management.services"):
        record = services.create_collection_record(bin_id=active_bin.bin_id, worker_id=worker.pk)

    assert CollectionRecord.objects.filter(pk=record.pk).exists()
    active_bin.refresh_from_db()
    assert active_bin.status == Bin.ACTIVE
    assert any(r.levelno == logging.WARNING and r.exc_info for r in caplog.records)


@pytest.mark.django_db
def test_queries_and_worker_stats(worker, admin_user, active_bin, resident):
    second_bin = Bin.objects.create(bin_id="BIN-002", owner=resident)
    services.create_collection_record(bin_id=active_bin.bin_id, worker_id=worker.pk, weight="10.25")
    services.create_collection_record(bin_id=second_bin.bin_id, worker_id=worker.pk, status=CollectionRecord.MISSED,
                                      reason="Blocked by car")
    services.create_collection_record(bin_id=active_bin.bin_id, worker_id=worker.pk,
                                      status=CollectionRecord.OVERRIDE, weight="4.75")

    assert services.get_collections_by_worker(worker.pk).count() == 3
    assert services.get_todays_collections_for_worker(worker.pk).count() == 3
    assert services.get_collections_by_bin(active_bin.bin_id).count() == 2
    assert services.get_collections_by_status(CollectionRecord.MISSED).count() == 1
    assert services.get_latest_collection_for_bin(second_bin.bin_id).status == CollectionRecord.MISSED
    assert services.is_bin_collected_today(second_bin.bin_id) is False

    stats = services.get_collection_stats_by_worker(worker.pk)
    assert stats["total_collections"] == 3
    assert stats["collected_count"] == 1
    assert stats["override_count"] == 1
    assert stats["missed_count"] == 1
    assert stats["failed_count"] == 0
    assert stats["total_weight"] == Decimal("15.00")

    assert services.get_collection_stats_by_worker(admin_user.pk)["total_weight"] == Decimal("0.00")


@pytest.mark.django_db
def test_latest_for_bin_without_records(active_bin):
    with pytest.raises(NotFound):
        services.get_latest_collection_for_bin(active_bin.bin_id)

    with pytest.raises(InvalidArgument):
        services.get_collections_by_status("DONE")


@pytest.mark.django_db(transaction=True)
def test_concurrent_collections_produce_one_record():
    owner = User.objects.create_user(phone_number="0250000001", role="resident")
    workers = [
        User.objects.create_user(phone_number="0250000002", role="worker"),
        User.objects.create_user(phone_number="0250000003", role="worker"),
    ]
    Bin.objects.create(bin_id="BIN-RACE", owner=owner)

    barrier = threading.Barrier(len(workers))
    outcomes = []
    lock = threading.Lock()

    def attempt(worker_id):
        try:
            barrier.wait()
            services.create_collection_record(bin_id="BIN-RACE", worker_id=worker_id)
            result = "collected"
        except DuplicateCollection:
            result = "duplicate"
        finally:
            connection.close()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt, args=(w.pk,)) for w in workers]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ["collected", "duplicate"]
    assert CollectionRecord.objects.filter(bin_id="BIN-RACE", status=CollectionRecord.COLLECTED).count() == 1
    assert Bin.objects.get(bin_id="BIN-RACE").status == Bin.COLLECTED
