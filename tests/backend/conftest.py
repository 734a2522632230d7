import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise

from account_service.core import db as db_module
from account_service.core.security import now_ms
from account_service.api.v1 import deps
from account_service.main import app
from account_service.services.accounts import AccountService
from account_service.services.credential_store import CredentialStore
from account_service.services.image_storage import ImageStorage
from account_service.services.notifications import NotificationGateway


TEST_DB_URL = "sqlite://:memory:"
db_module.TORTOISE_ORM["connections"]["default"] = TEST_DB_URL

SESSION_SECRET = "test-session-secret"
RESET_SECRET = "test-reset-secret"


class RecordingGateway(NotificationGateway):
    """Keeps every message instead of sending it."""

    def __init__(self):
        self.sent = []

    async def send(self, message):
        self.sent.append(message)

    def subjects_for(self, to: str) -> list[str]:
        return [m.subject for m in self.sent if m.to == to]


class FakeClock:
    """Manually advanced epoch-ms clock."""

    def __init__(self, start: int | None = None):
        self.now = start if start is not None else now_ms()

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeImageStorage(ImageStorage):
    def __init__(self, prefix: str):
        self.prefix = prefix
        self.saved = []

    async def save(self, filename, content, content_type=None):
        self.saved.append((filename, content, content_type))
        return f"{self.prefix}{filename}"


@pytest_asyncio.fixture
async def db():
    """
    Initialize a clean in-memory SQLite database for every test.
    Ensures tables are recreated from scratch.
    """
    await Tortoise.init(config=db_module.TORTOISE_ORM)
    await Tortoise.generate_schemas()
    yield
    await Tortoise.close_connections()


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return CredentialStore()


@pytest.fixture
def local_storage():
    return FakeImageStorage("uploads/")


@pytest.fixture
def remote_storage():
    return FakeImageStorage("https://images.example.com/")


@pytest.fixture
def accounts(db, store, gateway, clock, local_storage, remote_storage):
    return AccountService(
        store,
        gateway,
        local_storage=local_storage,
        remote_storage=remote_storage,
        session_secret=SESSION_SECRET,
        reset_secret=RESET_SECRET,
        clock=clock,
    )


@pytest_asyncio.fixture
async def client(db, gateway, clock, local_storage, remote_storage):
    """
    Provide an HTTPX AsyncClient bound to the FastAPI app with a fresh DB
    and test doubles for every outbound collaborator.
    """
    app.dependency_overrides[deps.get_notification_gateway] = lambda: gateway
    app.dependency_overrides[deps.get_clock] = lambda: clock
    app.dependency_overrides[deps.get_local_image_storage] = lambda: local_storage
    app.dependency_overrides[deps.get_remote_image_storage] = lambda: remote_storage
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def create_user(store):
    """
    Factory fixture to create users directly through the store.
    The hash is a placeholder, so these users cannot log in.
    """

    async def _create_user(username: str | None = None):
        name = username or f"user_{uuid.uuid4().hex[:6]}"
        return await store.create_user(
            username=name,
            email=f"{name}@example.com",
            password_hash="not-a-real-hash",
        )

    return _create_user
