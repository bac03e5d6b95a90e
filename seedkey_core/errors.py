"""
Protocol Errors
===============
Error codes and the typed error raised by the registration and login flows.

The codes are part of the wire contract with existing clients and must not
be renamed.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Machine-readable protocol error codes."""
    # User errors
    USER_NOT_FOUND = "USER_NOT_FOUND"
    USER_EXISTS = "USER_EXISTS"

    # Challenge errors
    CHALLENGE_EXPIRED = "CHALLENGE_EXPIRED"
    CHALLENGE_NOT_FOUND = "CHALLENGE_NOT_FOUND"
    NONCE_REUSED = "NONCE_REUSED"
    INVALID_CHALLENGE = "INVALID_CHALLENGE"

    # Auth errors
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    UNAUTHORIZED = "UNAUTHORIZED"

    # Key errors
    KEY_NOT_FOUND = "KEY_NOT_FOUND"
    KEY_EXISTS = "KEY_EXISTS"
    CANNOT_DELETE_LAST_KEY = "CANNOT_DELETE_LAST_KEY"

    # General errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class SeedKeyError(Exception):
    """
    Protocol violation raised by register/verify and the token service.

    Carries the error code, a human-readable message, the suggested
    transport status and an optional hint telling the client which flow
    to try instead.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int = 400,
        hint: Optional[str] = None,
    ):
        self.code = ErrorCode(code)
        self.message = message
        self.status_code = status_code
        self.hint = hint
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the `{error, message, hint?}` response body."""
        body: Dict[str, Any] = {
            "error": self.code.value,
            "message": self.message,
        }
        if self.hint:
            body["hint"] = self.hint
        return body

    def __repr__(self) -> str:
        return f"SeedKeyError(code={self.code.value!r}, message={self.message!r}, status_code={self.status_code})"


class PublicKeyConflictError(Exception):
    """Raised by user stores when a public key is already registered."""

    def __init__(self, public_key: str):
        self.public_key = public_key
        super().__init__("Public key is already registered")
