"""
SeedKey Auth Router
===================
FastAPI routes for the challenge/response flows and token management.

Usage:
    router = create_auth_router(auth_service, token_service)
    app.include_router(router)
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
import structlog

from ..errors import ErrorCode, SeedKeyError
from ..logging import user_id_var
from ..models import ChallengeRequest, RegisterRequest, TokenPayload, VerifyRequest
from ..services import AuthService, TokenService
from ..utils import now_ms
from .errors import challenge_failure_response

logger = structlog.get_logger(__name__)

DEFAULT_PREFIX = "/api/v1/seedkey"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ChallengeBody(_WireModel):
    public_key: Optional[str] = Field(default=None, alias="publicKey")
    action: Optional[str] = None


class RegisterBody(_WireModel):
    public_key: Optional[str] = Field(default=None, alias="publicKey")
    challenge: Optional[Dict[str, Any]] = None
    signature: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class VerifyBody(_WireModel):
    challenge_id: Optional[str] = Field(default=None, alias="challengeId")
    challenge: Optional[Dict[str, Any]] = None
    signature: Optional[str] = None
    public_key: Optional[str] = Field(default=None, alias="publicKey")


class RefreshBody(_WireModel):
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")


def _parse(request_type, body: _WireModel):
    try:
        return request_type.from_dict(body.wire())
    except (KeyError, ValueError, TypeError) as e:
        raise SeedKeyError(ErrorCode.VALIDATION_ERROR, f"Malformed challenge: {e}")


def create_auth_router(
    auth_service: AuthService,
    token_service: TokenService,
    prefix: str = DEFAULT_PREFIX,
) -> APIRouter:
    """
    Create the SeedKey auth router.

    Args:
        auth_service: Protocol orchestrator
        token_service: Bearer auth, refresh and logout
        prefix: Mount point for the routes

    Returns:
        FastAPI router with /challenge, /register, /verify, /logout,
        /refresh and /user
    """
    router = APIRouter(prefix=prefix, tags=["SeedKey"])

    async def current_token(authorization: Optional[str] = Header(default=None)) -> TokenPayload:
        payload = await token_service.authenticate(authorization)
        user_id_var.set(payload.sub)
        return payload

    @router.post("/challenge")
    async def create_challenge(body: ChallengeBody):
        """Issue a register or authenticate challenge."""
        result = await auth_service.create_challenge(ChallengeRequest.from_dict(body.wire()))
        if not result.success:
            return challenge_failure_response(result)
        return {"challenge": result.challenge.to_dict(), "challengeId": result.challenge_id}

    @router.post("/register", status_code=201)
    async def register(body: RegisterBody):
        """Register a new user from a signed challenge."""
        result = await auth_service.register(_parse(RegisterRequest, body))
        return {
            "success": True,
            "action": "register",
            "user": {
                "id": result.user.id,
                "publicKey": result.key_info.public_key,
                "createdAt": result.user.created_at,
            },
            "token": result.tokens.to_dict(),
        }

    @router.post("/verify")
    async def verify(body: VerifyBody):
        """Log in with a signed challenge."""
        result = await auth_service.verify(_parse(VerifyRequest, body))
        return {
            "success": True,
            "action": "login",
            "user": {
                "id": result.user.id,
                "publicKey": result.key_info.public_key,
                "createdAt": result.user.created_at,
                "lastLogin": result.user.last_login or now_ms(),
            },
            "token": result.tokens.to_dict(),
        }

    @router.post("/logout")
    async def logout(authorization: Optional[str] = Header(default=None)):
        """Invalidate the caller's session."""
        await token_service.logout(authorization)
        return {"success": True, "message": "Logged out successfully"}

    @router.post("/refresh")
    async def refresh(body: RefreshBody):
        """Exchange a refresh token for a new token pair."""
        tokens = await token_service.refresh(body.refresh_token)
        return tokens.to_dict()

    @router.get("/user")
    async def get_user(token: TokenPayload = Depends(current_token)):
        """Return the authenticated user and their key."""
        user = await auth_service.get_user(token.sub)
        if user is None:
            return JSONResponse(
                status_code=404,
                content={"error": ErrorCode.USER_NOT_FOUND.value, "message": "User not found"},
            )

        return {
            "user": {
                "id": user.id,
                "publicKey": user.public_key.to_dict(),
                "createdAt": user.created_at,
            }
        }

    return router
