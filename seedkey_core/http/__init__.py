"""
SeedKey HTTP Layer
==================
FastAPI router, error handlers and app factory.
"""

from .app import create_app
from .errors import (
    register_error_handlers,
    seedkey_error_response,
    challenge_failure_response,
    internal_error_response,
)
from .router import create_auth_router, DEFAULT_PREFIX

__all__ = [
    "create_app",
    "create_auth_router",
    "DEFAULT_PREFIX",
    "register_error_handlers",
    "seedkey_error_response",
    "challenge_failure_response",
    "internal_error_response",
]
