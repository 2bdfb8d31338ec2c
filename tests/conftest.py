import pytest
from rest_framework.test import APIClient

from accounts.models import User
from bins.models import Bin
from common.notifications import NotificationDispatcher
from pickups.gateways import AcceptAllGateway, BasePaymentGateway
from pickups.payments import PaymentProcessor
from pickups.services import PickupRequestService


class RecordingSink:
    def __init__(self):
        self.sent = []

    def notify(self, recipient, title, body):
        self.sent.append((recipient, title, body))

    def titles(self):
        return [title for _recipient, title, _body in self.sent]


class DecliningGateway(BasePaymentGateway):
    def __init__(self):
        self.charges = []

    def charge(self, amount, currency, reference, token=None):
        self.charges.append((amount, currency, reference, token))
        return False


@pytest.fixture
def resident(db):
    return User.objects.create_user(
        phone_number="0240000001",
        first_name="Ama",
        last_name="Mensah",
        email="ama@example.com",
        role="resident",
        password="pass-1234",
    )


@pytest.fixture
def other_resident(db):
    return User.objects.create_user(phone_number="0240000002", first_name="Kofi", role="resident")


@pytest.fixture
def worker(db):
    return User.objects.create_user(phone_number="0240000003", first_name="Kwame", last_name="Asante",
                                    role="worker")


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(phone_number="0240000004", first_name="Efua", role="admin")


@pytest.fixture
def active_bin(resident):
    return Bin.objects.create(bin_id="BIN-001", owner=resident, address="12 Ring Road",
                              latitude="5.603700", longitude="-0.187000")


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def dispatcher(sink):
    return NotificationDispatcher(sink=sink)


@pytest.fixture
def processor(dispatcher):
    return PaymentProcessor(gateway=AcceptAllGateway(), dispatcher=dispatcher)


@pytest.fixture
def service(processor, dispatcher):
    return PickupRequestService(processor=processor, dispatcher=dispatcher)


@pytest.fixture
def declining_gateway():
    return DecliningGateway()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for():
    def make(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return make
