"""
SeedKey Core
============
Passwordless public-key authentication: challenge issuance, Ed25519
signature verification, registration and login.
"""

__version__ = "0.1.0"

# Config
from seedkey_core.config import (
    SeedKeyConfig,
    ResolvedConfig,
    resolve_config,
    DEFAULT_CHALLENGE_TTL_MS,
)

# Errors
from seedkey_core.errors import ErrorCode, SeedKeyError, PublicKeyConflictError

# Models
from seedkey_core.models import (
    ChallengeAction,
    Challenge,
    StoredChallenge,
    ChallengeRequest,
    ChallengeResult,
    PublicKeyInfo,
    User,
    UserMetadata,
    KeyMetadata,
    TokenType,
    TokenPayload,
    TokenPair,
    Session,
    RegisterRequest,
    VerifyRequest,
    RefreshRequest,
    AuthResult,
)

# Crypto
from seedkey_core.crypto import (
    generate_nonce,
    generate_id,
    generate_token,
    verify_signature,
    secure_compare,
    canonicalize_challenge,
    verify_challenge_signature,
    validate_challenge,
    ChallengeValidation,
    MAX_CLOCK_SKEW_MS,
)

# Storage
from seedkey_core.storage import (
    UserStore,
    ChallengeStore,
    SessionStore,
    SeedKeyStores,
    create_memory_stores,
)

# Audit
from seedkey_core.audit import AuditEventType, AuditEvent, AuditLogger, verify_chain_integrity

# Services
from seedkey_core.services import AuthService, TokenService
from seedkey_core.tokens import JWTTokenIssuer

__all__ = [
    # Config
    "SeedKeyConfig",
    "ResolvedConfig",
    "resolve_config",
    "DEFAULT_CHALLENGE_TTL_MS",
    # Errors
    "ErrorCode",
    "SeedKeyError",
    "PublicKeyConflictError",
    # Models
    "ChallengeAction",
    "Challenge",
    "StoredChallenge",
    "ChallengeRequest",
    "ChallengeResult",
    "PublicKeyInfo",
    "User",
    "UserMetadata",
    "KeyMetadata",
    "TokenType",
    "TokenPayload",
    "TokenPair",
    "Session",
    "RegisterRequest",
    "VerifyRequest",
    "RefreshRequest",
    "AuthResult",
    # Crypto
    "generate_nonce",
    "generate_id",
    "generate_token",
    "verify_signature",
    "secure_compare",
    "canonicalize_challenge",
    "verify_challenge_signature",
    "validate_challenge",
    "ChallengeValidation",
    "MAX_CLOCK_SKEW_MS",
    # Storage
    "UserStore",
    "ChallengeStore",
    "SessionStore",
    "SeedKeyStores",
    "create_memory_stores",
    # Audit
    "AuditEventType",
    "AuditEvent",
    "AuditLogger",
    "verify_chain_integrity",
    # Services
    "AuthService",
    "TokenService",
    "JWTTokenIssuer",
]
