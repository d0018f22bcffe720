"""Pytest fixtures: generated auth keys, a controllable clock and a fake APNs gateway."""
import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from apns_dispatch import ApplePushNotificationCore, AuthOptions

TEAM_ID = "TEAM123456"
KEY_ID = "KEY1234567"
DEFAULT_TOPIC = "com.example.app"


def _pem_pair():
    private = ec.generate_private_key(ec.SECP256R1())
    private_pem = private.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode("utf-8")
    public_pem = (
        private.public_key()
        .public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode("utf-8")
    )
    return private_pem, public_pem


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeGateway:
    """
    MockTransport handler. Responses are keyed by device token:
    a (status, json_body) tuple, raw bytes for a 200 with that body, or an
    exception class to raise as a transport failure. Unknown tokens get 200.
    """

    def __init__(self, responses=None):
        self.responses = responses or {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        device_token = request.url.path.rsplit("/", 1)[-1]
        response = self.responses.get(device_token, (200, None))
        if isinstance(response, type) and issubclass(response, Exception):
            raise response("gateway unreachable", request=request)
        if isinstance(response, bytes):
            return httpx.Response(200, content=response)
        status, body = response
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)


@pytest.fixture(scope="session")
def key_pair():
    return _pem_pair()


@pytest.fixture(scope="session")
def other_key_pair():
    return _pem_pair()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def options(key_pair):
    private_pem, public_pem = key_pair
    return AuthOptions(
        team_id=TEAM_ID,
        key_id=KEY_ID,
        private_key=private_pem,
        public_key=public_pem,
        topic=DEFAULT_TOPIC,
    )


@pytest.fixture
def make_core(gateway, clock):
    def factory(opts):
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(gateway))
        return ApplePushNotificationCore(opts, http_client=http_client, clock=clock)

    return factory


@pytest.fixture
def apns(make_core, options):
    return make_core(options)
