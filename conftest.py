"""
Shared fixtures: in-memory database, host order seeding and a fake PassSource API.
"""
import json
from datetime import datetime, timezone

import httpx
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel.ext.asyncio.session import AsyncSession

from passbridge.core.database import init_db
from passbridge.models import Attendee, Event, EventLocation, Order, OrderItem, Ticket
from passbridge.schemas.settings import PassSettings

TEST_DATABASE_URL = "sqlite+aiosqlite://"

CONFIGURED = PassSettings(client_hash="client-abc", template_hash="template-xyz")
FIXED_TIME = 1700000000

DEFAULT_EVENT = {
    "event_id": 55,
    "title": "Summer Gala",
    "content": "<p>An evening of <strong>music</strong> and dancing.</p>",
    "excerpt": "",
    "start_date": "2024-06-01",
    "start_time": "18:00",
    "end_date": "2024-06-01",
    "end_time": "21:00",
    "venue": "Grand Hall",
}

DEFAULT_ATTENDEE = {
    "attendee_id": 501,
    "first_name": "Jane",
    "last_name": "Doe",
    "ticket_id": 7,
    "qr_code": "QR-501",
    "created_at": datetime(2024, 5, 20, 14, 30, tzinfo=timezone.utc),
}


@pytest.fixture
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def seed_order(session_maker):
    """Returns a coroutine that stores a host order with one event item and its attendees."""

    async def _seed(order_id=1001, status="completed", event=None, attendees=None,
                    ticket_item=True, item_name="Gala Ticket", locations=()):
        event_fields = dict(DEFAULT_EVENT, **(event or {}))
        if attendees is None:
            attendees = [DEFAULT_ATTENDEE]

        async with session_maker() as session:
            if await session.get(Event, event_fields["event_id"]) is None:
                session.add(Event(**event_fields))
                for name in locations:
                    session.add(EventLocation(event_id=event_fields["event_id"], name=name))
            if await session.get(Ticket, 7) is None:
                session.add(Ticket(ticket_id=7, title="VIP"))

            session.add(Order(order_id=order_id, status=status))
            if ticket_item:
                session.add(OrderItem(order_id=order_id, name=item_name, event_id=event_fields["event_id"]))
            else:
                session.add(OrderItem(order_id=order_id, name="T-Shirt"))

            for attendee in attendees:
                fields = {"event_id": event_fields["event_id"], **attendee}
                session.add(Attendee(order_id=order_id, **fields))
            await session.commit()
        return order_id

    return _seed


class FakePassSource:
    """Records requests and answers like the PassSource API."""

    def __init__(self):
        self.requests = []
        self.created = 0
        self.response = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.response is not None:
            if isinstance(self.response, Exception):
                raise self.response
            return self.response

        if request.url.path.endswith("template/info.php"):
            return httpx.Response(200, json={"success": True, "template": {"name": "Event Ticket"}})

        self.created += 1
        return httpx.Response(200, json={
            "success": True,
            "passUrl": f"https://passsource.test/pass/{self.created}",
            "serialNumber": f"serial-{self.created}",
            "hashedSerialNumber": f"hashed-{self.created}",
        })

    @property
    def create_requests(self):
        return [request for request in self.requests if request.url.path.endswith("pass/create.php")]

    def payload(self, index=-1):
        return json.loads(self.requests[index].content)


@pytest.fixture
def provider():
    return FakePassSource()


@pytest.fixture
async def http_client(provider):
    async with httpx.AsyncClient(transport=httpx.MockTransport(provider.handler)) as client:
        yield client


class FakeLockManager:
    """In-memory stand-in for the Redis lock calls."""

    def __init__(self):
        self.locks = {}
        self.acquired = []
        self.released = []
        self.unavailable = False

    async def acquire_lock(self, key, ttl):
        if self.unavailable:
            raise RedisConnectionError("Connection refused")
        if key in self.locks:
            return None
        token = f"token-{len(self.acquired)}"
        self.locks[key] = token
        self.acquired.append(key)
        return token

    async def release_lock(self, key, token):
        if self.locks.get(key) != token:
            return False
        del self.locks[key]
        self.released.append(key)
        return True


@pytest.fixture
def lock_manager():
    return FakeLockManager()


@pytest.fixture
def pass_settings():
    return CONFIGURED
