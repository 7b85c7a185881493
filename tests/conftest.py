"""
Pytest Configuration File

This module provides fixtures and configuration for all tests:
an in-memory Motor-like database, caller fixtures, mail transports and
FastAPI clients with dependency overrides.
"""

import os
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from fleetsheet.main import app
from fleetsheet.shared.auth import Caller, get_current_caller
from fleetsheet.shared.database import CLIENTS, EMPLOYEES, PROJECTS, VEHICLES, get_database
from fleetsheet.shared.errors import DeliveryError
from fleetsheet.shared.mailer import get_mail_transport
from fleetsheet.shared.models import Role


def _matches(document: dict, query: dict) -> bool:
    for key, expected in query.items():
        actual = document.get(key)
        if isinstance(expected, dict):
            for op, operand in expected.items():
                if op == "$in" and actual not in operand:
                    return False
                if op == "$ne" and actual == operand:
                    return False
                if op == "$gte" and (actual is None or actual < operand):
                    return False
                if op == "$lte" and (actual is None or actual > operand):
                    return False
        elif actual != expected:
            return False
    return True


class FakeCursor:
    def __init__(self, documents):
        self.documents = documents

    def sort(self, key_or_list, direction=1):
        keys = key_or_list if isinstance(key_or_list, list) else [(key_or_list, direction)]
        # Stable sorts applied from the last key to the first
        for key, key_direction in reversed(keys):
            self.documents.sort(
                key=lambda doc: (doc.get(key) is not None, doc.get(key) if doc.get(key) is not None else 0),
                reverse=key_direction == -1,
            )
        return self

    async def to_list(self, length=None):
        return self.documents if length is None else self.documents[:length]


class FakeCollection:
    """Just enough of AsyncIOMotorCollection for the services."""

    def __init__(self):
        self.documents = []

    async def insert_one(self, document):
        self.documents.append(dict(document))

    async def find_one(self, query):
        for document in self.documents:
            if _matches(document, query):
                return dict(document)
        return None

    def find(self, query=None):
        return FakeCursor([dict(doc) for doc in self.documents if _matches(doc, query or {})])

    async def replace_one(self, query, replacement):
        for index, document in enumerate(self.documents):
            if _matches(document, query):
                self.documents[index] = dict(replacement)
                return

    async def delete_one(self, query):
        for index, document in enumerate(self.documents):
            if _matches(document, query):
                del self.documents[index]
                return

    async def count_documents(self, query):
        return sum(1 for doc in self.documents if _matches(doc, query))


class FakeDatabase:
    def __init__(self):
        self.collections = {}

    def __getitem__(self, name):
        if name not in self.collections:
            self.collections[name] = FakeCollection()
        return self.collections[name]


class RecordingTransport:
    """Mail transport that accepts everything and keeps the messages."""

    def __init__(self):
        self.sent = []

    async def send(self, message):
        self.sent.append(message)
        return f"<message-{len(self.sent)}@fleetsheet>"


class FailingTransport:
    def __init__(self):
        self.attempts = 0

    async def send(self, message):
        self.attempts += 1
        raise DeliveryError("Mail transport rejected message: 550 mailbox unavailable")


EMPLOYER = Caller(caller_id="owner-1", tenant_id="t1", role=Role.EMPLOYER)
EMPLOYEE = Caller(caller_id="user-e1", tenant_id="t1", role=Role.EMPLOYEE)
OTHER_EMPLOYER = Caller(caller_id="owner-2", tenant_id="t2", role=Role.EMPLOYER)


@pytest.fixture
def employer():
    return EMPLOYER


@pytest.fixture
def employee():
    return EMPLOYEE


@pytest.fixture
def other_employer():
    return OTHER_EMPLOYER


@pytest.fixture
def fake_db():
    """Database seeded with two tenants' reference data"""
    db = FakeDatabase()
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    db[EMPLOYEES].documents.extend([
        {"_id": "e1", "tenant_id": "t1", "name": "Aroha Smith", "email": "aroha@example.com",
         "wage": 25.5, "user_id": "user-e1"},
        {"_id": "e2", "tenant_id": "t1", "name": "Ben Jones", "email": "ben@example.com",
         "wage": 30, "user_id": "user-e2"},
        {"_id": "e9", "tenant_id": "t2", "name": "Other Tenant", "email": "other@example.com",
         "wage": 20, "user_id": "user-e9"},
    ])
    db[CLIENTS].documents.extend([
        {"_id": "c1", "tenant_id": "t1", "name": "Acme Ltd"},
        {"_id": "c9", "tenant_id": "t2", "name": "Elsewhere Co"},
    ])
    db[PROJECTS].documents.extend([
        {"_id": "p1", "tenant_id": "t1", "name": "Fence Build"},
        {"_id": "p2", "tenant_id": "t1", "name": "Driveway"},
    ])
    db[VEHICLES].documents.extend([
        {"_id": "v1", "tenant_id": "t1", "name": "Hilux", "hours": 120, "wof_rego": "WOF due 2024-12-01",
         "created_at": created},
        {"_id": "v2", "tenant_id": "t1", "name": "Ranger", "hours": None, "wof_rego": None,
         "created_at": created},
        {"_id": "v9", "tenant_id": "t2", "name": "Transit", "hours": 50, "wof_rego": None,
         "created_at": created},
    ])
    return db


@pytest.fixture
def mail_transport():
    return RecordingTransport()


@pytest.fixture
def failing_transport():
    return FailingTransport()


@pytest.fixture
def client_for(fake_db, mail_transport):
    """Build a TestClient that acts as the given caller"""

    def _client(caller, transport=None):
        app.dependency_overrides[get_database] = lambda: fake_db
        app.dependency_overrides[get_current_caller] = lambda: caller
        app.dependency_overrides[get_mail_transport] = lambda: transport or mail_transport
        return TestClient(app)

    yield _client
    app.dependency_overrides.clear()


@pytest.fixture
def test_client(client_for, employer):
    """Fixture for FastAPI test client acting as the tenant's employer"""
    return client_for(employer)


@pytest.fixture(autouse=True)
def setup_test_env():
    """Automatically set up test environment variables"""
    os.environ["TESTING"] = "true"
    os.environ["ENVIRONMENT"] = "test"
    yield
    os.environ.pop("TESTING", None)
    os.environ.pop("ENVIRONMENT", None)
