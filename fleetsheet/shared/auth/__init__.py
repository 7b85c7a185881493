from .auth import (
    Caller,
    caller_from_token,
    get_current_caller,
    require_employer,
    ensure_employer,
    ensure_same_tenant
)

__all__ = [
    'Caller',
    'caller_from_token',
    'get_current_caller',
    'require_employer',
    'ensure_employer',
    'ensure_same_tenant'
]
