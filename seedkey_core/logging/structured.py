"""
SeedKey Structured Logging
==========================

JSON logging for services that embed the SeedKey core.

Library modules log through ``structlog.get_logger(__name__)``; `setup_logging`
routes those events into the stdlib root logger so one formatter handles both.

Usage (FastAPI):
    from seedkey_core.logging import setup_logging, RequestLoggingMiddleware

    setup_logging(service_name="seedkey-auth")
    app.add_middleware(RequestLoggingMiddleware)
"""

import json
import logging
import sys
import time
import traceback
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict

import structlog

# Context variables for request tracking
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str] = ContextVar("user_id", default="")
service_name_var: ContextVar[str] = ContextVar("service_name", default="seedkey")

REQUEST_ID_HEADER = b"x-request-id"


# =============================================================================
# JSON Formatter
# =============================================================================

class JSONFormatter(logging.Formatter):
    """
    Formats log records as one JSON object per line.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": service_name_var.get(),
            "request_id": request_id_var.get() or None,
            "user_id": user_id_var.get() or None,
        }

        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info),
            }

        log_data["source"] = {
            "file": record.filename,
            "line": record.lineno,
            "function": record.funcName,
        }

        return json.dumps(log_data, default=str)


def _to_extra_data(logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Turn a structlog event dict into stdlib ``logger.<method>`` kwargs."""
    kwargs: Dict[str, Any] = {"msg": event_dict.pop("event", "")}
    for key in ("exc_info", "stack_info"):
        if key in event_dict:
            kwargs[key] = event_dict.pop(key)
    if event_dict:
        kwargs["extra"] = {"extra_data": event_dict}
    return kwargs


# =============================================================================
# Setup
# =============================================================================

def setup_logging(
    service_name: str,
    level: str = "INFO",
    json_output: bool = True,
) -> logging.Logger:
    """
    Configure logging for a service.

    Args:
        service_name: Name of the service (e.g., "seedkey-auth")
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Whether to output JSON (for production)

    Returns:
        Configured root logger
    """
    service_name_var.set(service_name)
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s %(extra_data)s",
            defaults={"extra_data": ""},
        ))
    root_logger.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            _to_extra_data,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger.info(f"Logging configured for {service_name}", extra={
        "extra_data": {"event": "logging.configured", "service": service_name}
    })

    return root_logger


# =============================================================================
# Request Logging Middleware (ASGI)
# =============================================================================

class RequestLoggingMiddleware:
    """
    ASGI middleware that tags each request with an ID and logs
    request/response pairs with timing.

    An inbound ``X-Request-ID`` header is reused; otherwise one is generated.
    The ID is echoed back on the response.
    """

    def __init__(self, app):
        self.app = app
        self.logger = structlog.get_logger("seedkey.http")

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        req_id = headers.get(REQUEST_ID_HEADER, b"").decode()[:64] or str(uuid.uuid4())[:8]
        token = request_id_var.set(req_id)

        method = scope.get("method", "")
        path = scope.get("path", "")

        client = scope.get("client")
        client_ip = client[0] if client else ""
        forwarded = headers.get(b"x-forwarded-for", b"").decode()
        if forwarded:
            client_ip = forwarded.split(",")[0].strip()

        start_time = time.time()
        self.logger.info(
            f"Request: {method} {path}",
            http=True,
            direction="request",
            method=method,
            path=path,
            client_ip=client_ip,
            user_agent=headers.get(b"user-agent", b"").decode()[:200],
        )

        status_code = 500

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
                message.setdefault("headers", [])
                message["headers"] = list(message["headers"]) + [
                    (REQUEST_ID_HEADER, req_id.encode())
                ]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception:
            self.logger.exception(f"Unhandled error: {method} {path}")
            raise
        finally:
            duration_ms = int((time.time() - start_time) * 1000)
            log = self.logger.info if status_code < 400 else (
                self.logger.warning if status_code < 500 else self.logger.error
            )
            log(
                f"Response: {method} {path} -> {status_code} ({duration_ms}ms)",
                http=True,
                direction="response",
                method=method,
                path=path,
                status_code=status_code,
                duration_ms=duration_ms,
                client_ip=client_ip,
            )
            request_id_var.reset(token)
