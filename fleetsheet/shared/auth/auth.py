"""
Authentication Module

This module provides authentication and authorization functionality
for API endpoints and services.

Features:
- JWT validation
- Caller context extraction
- Role gating
- Tenant scoping

Data Model:
- Caller id
- Tenant id
- Role

Security:
- Signature verification
- Role verification
- Tenant isolation
- Secure defaults

Dependencies:
- FastAPI for dependencies
- JWT for tokens
- Pydantic for the caller model
- logging for tracking

Author: Fleetsheet Development Team
"""

import logging
from typing import Optional

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt.exceptions import InvalidTokenError
from pydantic import BaseModel

from fleetsheet.shared.config import JWT_ALGORITHM, JWT_SECRET
from fleetsheet.shared.errors import AuthorizationError
from fleetsheet.shared.models import Role

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

# Claim names checked in order for each caller field
CALLER_ID_FIELDS = ["sub", "id", "user_id"]
TENANT_ID_FIELDS = ["tenant_id", "employer_id", "employerId"]


class Caller(BaseModel):
    """
    Identity of the request's caller.

    Attributes:
        caller_id (str): Authenticated user id
        tenant_id (str): Employer account that scopes visibility
        role (Role): employer or employee
    """
    caller_id: str
    tenant_id: str
    role: Role

    @property
    def is_employer(self) -> bool:
        return self.role == Role.EMPLOYER


def _first_claim(decoded_token: dict, fields: list) -> Optional[str]:
    for field in fields:
        value = decoded_token.get(field)
        if value:
            return str(value)
    return None


def caller_from_token(token: str) -> Caller:
    """
    Decode a bearer token into a caller context.

    Args:
        token: Encoded JWT

    Returns:
        Caller: Caller id, tenant and role

    Raises:
        AuthorizationError: For invalid tokens or missing claims (401)

    Notes:
        - Employers own their tenant, so their tenant id defaults to
          their caller id
        - Employees must carry an explicit tenant claim
    """
    try:
        decoded_token = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError as e:
        logger.warning(f"Token verification failed: {e}")
        raise AuthorizationError("Not authorized, token failed", status_code=401)

    caller_id = _first_claim(decoded_token, CALLER_ID_FIELDS)
    if not caller_id:
        raise AuthorizationError("No user ID found in token", status_code=401)

    try:
        role = Role(str(decoded_token.get("role", Role.EMPLOYEE.value)).lower())
    except ValueError:
        raise AuthorizationError("Unknown role in token", status_code=401)

    tenant_id = _first_claim(decoded_token, TENANT_ID_FIELDS)
    if not tenant_id:
        if role != Role.EMPLOYER:
            raise AuthorizationError("No tenant found in token", status_code=401)
        tenant_id = caller_id

    return Caller(caller_id=caller_id, tenant_id=tenant_id, role=role)


async def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
) -> Caller:
    """
    Extract the caller context from the Authorization header.

    Raises:
        AuthorizationError: When no bearer token is supplied (401)
    """
    if credentials is None or not credentials.credentials:
        raise AuthorizationError("Not authorized, no token provided", status_code=401)
    return caller_from_token(credentials.credentials)


async def require_employer(caller: Caller = Depends(get_current_caller)) -> Caller:
    """Restrict a route to the employer role."""
    if not caller.is_employer:
        raise AuthorizationError("Access denied: Employer role required")
    return caller


def ensure_employer(caller: Caller):
    if not caller.is_employer:
        raise AuthorizationError("Access denied: Employer role required")


def ensure_same_tenant(caller: Caller, document: dict, entity: str = "resource"):
    """
    Reject access to a document owned by another tenant.

    Raises:
        AuthorizationError: When the document's tenant differs from the caller's
    """
    if document.get("tenant_id") != caller.tenant_id:
        logger.warning(
            f"Tenant mismatch: caller {caller.caller_id} ({caller.tenant_id}) "
            f"tried to access {entity} {document.get('_id')}"
        )
        raise AuthorizationError(f"Access denied to {entity}")
