import pytest
from django.utils import timezone

from bins.models import Bin
from bins.services import mark_bin_collected, update_bin_status
from common.exceptions import NotFound


@pytest.mark.django_db
def test_mark_bin_collected_stamps_update_time(active_bin):
    before = active_bin.updated_at

    bin_obj = mark_bin_collected(active_bin.bin_id)

    active_bin.refresh_from_db()
    assert bin_obj.status == Bin.COLLECTED
    assert active_bin.status == Bin.COLLECTED
    assert active_bin.updated_at >= before
    assert active_bin.updated_at <= timezone.now()


@pytest.mark.django_db
def test_mark_unknown_bin_collected():
    with pytest.raises(NotFound):
        mark_bin_collected("BIN-404")


@pytest.mark.django_db
def test_update_bin_status(active_bin):
    update_bin_status(active_bin.bin_id, Bin.MAINTENANCE)

    assert Bin.objects.get(bin_id=active_bin.bin_id).status == Bin.MAINTENANCE


@pytest.mark.django_db
def test_resident_registers_own_bin(client_for, resident, other_resident):
    response = client_for(resident).post(
        "/api/bins/",
        {"bin_id": "BIN-100", "owner": other_resident.pk, "address": "3 Oxford Street"},
        format="json",
    )

    assert response.status_code == 201
    assert response.data["owner"] == resident.pk
    assert response.data["status"] == Bin.ACTIVE


@pytest.mark.django_db
def test_admin_registers_bin_for_owner(client_for, admin_user, resident):
    response = client_for(admin_user).post("/api/bins/", {"bin_id": "BIN-101", "owner": resident.pk}, format="json")

    assert response.status_code == 201
    assert response.data["owner"] == resident.pk


@pytest.mark.django_db
def test_duplicate_bin_id_is_rejected(client_for, resident, active_bin):
    response = client_for(resident).post("/api/bins/", {"bin_id": active_bin.bin_id}, format="json")

    assert response.status_code == 400
    assert "bin_id" in response.data


@pytest.mark.django_db
def test_lookup_by_business_key_and_exists(client_for, worker, active_bin):
    client = client_for(worker)

    response = client.get(f"/api/bins/{active_bin.bin_id}/")
    assert response.status_code == 200
    assert response.data["address"] == "12 Ring Road"

    assert client.get(f"/api/bins/{active_bin.bin_id}/exists/").data["exists"] is True
    assert client.get("/api/bins/BIN-404/exists/").data["exists"] is False


@pytest.mark.django_db
def test_residents_only_see_their_bins(client_for, other_resident, active_bin):
    response = client_for(other_resident).get("/api/bins/")

    assert response.status_code == 200
    assert response.data == []


@pytest.mark.django_db
def test_filter_by_status_and_owner(client_for, admin_user, resident, active_bin):
    Bin.objects.create(bin_id="BIN-002", owner=resident, status=Bin.DAMAGED)
    client = client_for(admin_user)

    damaged = client.get("/api/bins/", {"status": Bin.DAMAGED}).data
    assert [b["bin_id"] for b in damaged] == ["BIN-002"]

    owned = client.get(f"/api/bins/owner/{resident.pk}/").data
    assert [b["bin_id"] for b in owned] == ["BIN-001", "BIN-002"]


@pytest.mark.django_db
def test_status_update_is_admin_only(client_for, admin_user, worker, active_bin):
    url = f"/api/bins/{active_bin.bin_id}/update_status/"

    assert client_for(worker).post(url, {"status": Bin.DAMAGED}, format="json").status_code == 403

    response = client_for(admin_user).post(url, {"status": Bin.DAMAGED}, format="json")
    assert response.status_code == 200
    assert response.data["status"] == Bin.DAMAGED


@pytest.mark.django_db
def test_stats(client_for, admin_user, resident, active_bin):
    Bin.objects.create(bin_id="BIN-002", owner=resident, status=Bin.LOST)

    data = client_for(admin_user).get("/api/bins/stats/").data

    assert data["active"] == 1
    assert data["lost"] == 1
    assert data["total"] == 2


@pytest.mark.django_db
def test_nearby_sorted_by_distance(client_for, worker, resident, active_bin):
    # roughly 1.1 km north of BIN-001
    Bin.objects.create(bin_id="BIN-FAR", owner=resident, latitude="5.613700", longitude="-0.187000")
    Bin.objects.create(bin_id="BIN-NEAR", owner=resident, latitude="5.604000", longitude="-0.187000")
    client = client_for(worker)

    data = client.get("/api/bins/nearby/", {"latitude": "5.603700", "longitude": "-0.187000", "radius": 500}).data
    assert [b["bin_id"] for b in data] == ["BIN-001", "BIN-NEAR"]
    assert data[0]["distance_m"] == 0

    response = client.get("/api/bins/nearby/", {"latitude": "north"})
    assert response.status_code == 400
    assert response.data["error"] == "invalid_argument"


@pytest.mark.django_db
def test_delete_is_admin_only(client_for, admin_user, resident, active_bin):
    url = f"/api/bins/{active_bin.bin_id}/"

    assert client_for(resident).delete(url).status_code == 403
    assert client_for(admin_user).delete(url).status_code == 204
    assert not Bin.objects.filter(bin_id=active_bin.bin_id).exists()
