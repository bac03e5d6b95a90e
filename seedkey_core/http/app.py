"""
SeedKey App Factory
===================
Assembles a FastAPI app around an AuthService and TokenService.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI

from ..logging import RequestLoggingMiddleware
from ..services import AuthService, TokenService
from .errors import register_error_handlers
from .router import DEFAULT_PREFIX, create_auth_router


def create_app(
    auth_service: AuthService,
    token_service: TokenService,
    prefix: str = DEFAULT_PREFIX,
    title: str = "SeedKey Auth",
    request_logging: bool = True,
    app: Optional[FastAPI] = None,
) -> FastAPI:
    """
    Build (or extend) a FastAPI app serving the SeedKey routes.

    Args:
        auth_service: Protocol orchestrator
        token_service: Bearer auth, refresh and logout
        prefix: Mount point for the auth routes
        title: App title when a new app is created
        request_logging: Add RequestLoggingMiddleware
        app: Existing app to mount onto

    Returns:
        The app, with error handlers, /health and the auth router installed
    """
    if app is None:
        app = FastAPI(title=title)

    register_error_handlers(app)
    if request_logging:
        app.add_middleware(RequestLoggingMiddleware)

    @app.get("/health", tags=["Health"])
    async def health():
        """Liveness probe."""
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    app.include_router(create_auth_router(auth_service, token_service, prefix=prefix))
    return app
