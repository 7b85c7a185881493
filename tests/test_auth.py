"""
Test Authentication

This module tests bearer token handling including:
- Claim extraction
- Role defaults and tenant rules
- Missing and invalid tokens
"""

import jwt
import pytest
from fastapi.testclient import TestClient

from fleetsheet.main import app
from fleetsheet.shared.auth import caller_from_token
from fleetsheet.shared.config import JWT_ALGORITHM, JWT_SECRET
from fleetsheet.shared.database import get_database
from fleetsheet.shared.errors import AuthorizationError
from fleetsheet.shared.models import Role


def token(**claims):
    return jwt.encode(claims, JWT_SECRET, algorithm=JWT_ALGORITHM)


@pytest.fixture
def client(fake_db):
    """Client with real token verification"""
    app.dependency_overrides[get_database] = lambda: fake_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_employer_tenant_defaults_to_caller():
    caller = caller_from_token(token(sub="owner-1", role="employer"))

    assert caller.caller_id == "owner-1"
    assert caller.tenant_id == "owner-1"
    assert caller.role == Role.EMPLOYER


def test_employee_claims():
    caller = caller_from_token(token(user_id="user-e1", employerId="t1"))

    assert caller.role == Role.EMPLOYEE
    assert caller.tenant_id == "t1"
    assert not caller.is_employer


def test_token_problems_are_unauthorized():
    with pytest.raises(AuthorizationError) as exc_info:
        caller_from_token(token(user_id="user-e1"))
    assert exc_info.value.status_code == 401

    with pytest.raises(AuthorizationError) as exc_info:
        caller_from_token(token(sub="x", role="admin", tenant_id="t1"))
    assert exc_info.value.status_code == 401

    forged = jwt.encode({"sub": "owner-1", "role": "employer"}, "wrong-secret", algorithm="HS256")
    with pytest.raises(AuthorizationError) as exc_info:
        caller_from_token(forged)
    assert exc_info.value.status_code == 401


def test_missing_token(client):
    response = client.get("/api/vehicles")

    assert response.status_code == 401
    assert response.json() == {"message": "Not authorized, no token provided", "code": "authorization_error"}


def test_bearer_token_scopes_tenant(client):
    headers = {"Authorization": f"Bearer {token(sub='owner-1', role='employer', tenant_id='t1')}"}

    response = client.get("/api/vehicles", headers=headers)

    assert response.status_code == 200
    assert sorted(vehicle["name"] for vehicle in response.json()) == ["Hilux", "Ranger"]


def test_employee_token_cannot_delete(client):
    headers = {"Authorization": f"Bearer {token(sub='user-e1', tenant_id='t1')}"}

    response = client.delete("/api/vehicles/v2", headers=headers)

    assert response.status_code == 403
