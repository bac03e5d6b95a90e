"""
SeedKey Logging Module

Structured JSON logging shared by the core and its HTTP layer.
"""

from .structured import (
    # Setup
    setup_logging,
    JSONFormatter,

    # Middleware
    RequestLoggingMiddleware,

    # Context
    request_id_var,
    user_id_var,
    service_name_var,
)

__all__ = [
    "setup_logging",
    "JSONFormatter",
    "RequestLoggingMiddleware",
    "request_id_var",
    "user_id_var",
    "service_name_var",
]
