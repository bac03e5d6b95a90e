"""
SeedKey Crypto Module
=====================
Nonce generation, Ed25519 verification and challenge canonicalization.
"""

from .ed25519 import verify_signature, secure_compare, PUBLIC_KEY_LENGTH, SIGNATURE_LENGTH
from .nonce import generate_nonce, generate_id, generate_token
from .challenge import (
    canonicalize_challenge,
    verify_challenge_signature,
    validate_challenge,
    ChallengeValidation,
    MAX_CLOCK_SKEW_MS,
)

__all__ = [
    # Ed25519
    "verify_signature",
    "secure_compare",
    "PUBLIC_KEY_LENGTH",
    "SIGNATURE_LENGTH",
    # Nonce
    "generate_nonce",
    "generate_id",
    "generate_token",
    # Challenge
    "canonicalize_challenge",
    "verify_challenge_signature",
    "validate_challenge",
    "ChallengeValidation",
    "MAX_CLOCK_SKEW_MS",
]
