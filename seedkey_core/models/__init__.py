"""
SeedKey Models
==============
Plain records exchanged between the orchestrator, its stores and clients.
"""

from .challenge import (
    ChallengeAction,
    Challenge,
    StoredChallenge,
    ChallengeRequest,
    ChallengeResult,
)
from .user import PublicKeyInfo, User, UserMetadata, KeyMetadata
from .token import TokenType, TokenPayload, TokenPair, Session
from .auth import RegisterRequest, VerifyRequest, RefreshRequest, AuthResult

__all__ = [
    # Challenge
    "ChallengeAction",
    "Challenge",
    "StoredChallenge",
    "ChallengeRequest",
    "ChallengeResult",
    # User
    "PublicKeyInfo",
    "User",
    "UserMetadata",
    "KeyMetadata",
    # Token
    "TokenType",
    "TokenPayload",
    "TokenPair",
    "Session",
    # Auth
    "RegisterRequest",
    "VerifyRequest",
    "RefreshRequest",
    "AuthResult",
]
