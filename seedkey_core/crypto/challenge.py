"""
Challenge Utilities
===================
Canonical encoding, signature verification and validity checks for
challenges.

Canonical Challenge Format:
    {"action":...,"domain":...,"expiresAt":...,"nonce":...,"timestamp":...}

Keys in this fixed order, no whitespace, integers as plain integers. This
is the exact message clients sign; any deviation rejects every valid
signature.
"""

import json
import time
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Union

from ..models.challenge import Challenge
from .ed25519 import verify_signature

# Tolerated clock skew for challenge timestamps (milliseconds)
MAX_CLOCK_SKEW_MS = 30_000

CANONICAL_KEYS = ("action", "domain", "expiresAt", "nonce", "timestamp")


def _field(challenge: Union[Challenge, Mapping[str, Any]], key: str) -> Any:
    if isinstance(challenge, Challenge):
        value = challenge.to_dict()[key]
    elif key == "expiresAt" and key not in challenge:
        value = challenge["expires_at"]
    else:
        value = challenge[key]

    if isinstance(value, float) and value.is_integer():
        return int(value)
    return getattr(value, "value", value)


def canonicalize_challenge(challenge: Union[Challenge, Mapping[str, Any]]) -> str:
    """
    Create the canonical representation of a challenge for signing.

    Args:
        challenge: A Challenge or a mapping with the five signable fields

    Returns:
        Compact JSON with keys in canonical order
    """
    canonical = {key: _field(challenge, key) for key in CANONICAL_KEYS}
    return json.dumps(canonical, separators=(",", ":"), ensure_ascii=False)


def verify_challenge_signature(
    challenge: Union[Challenge, Mapping[str, Any]],
    signature: str,
    public_key: str,
) -> bool:
    """Verify a signature over the canonical form of a challenge."""
    return verify_signature(signature, canonicalize_challenge(challenge), public_key)


@dataclass
class ChallengeValidation:
    """Result of challenge validation."""
    valid: bool
    error: Optional[str] = None


def validate_challenge(
    challenge: Challenge,
    allowed_domains: Optional[Union[str, Iterable[str]]] = None,
    now: Optional[int] = None,
) -> ChallengeValidation:
    """
    Check a challenge for expiry, future timestamps and domain.

    Pure: no I/O and no mutation of the challenge.

    Args:
        challenge: Challenge to check
        allowed_domains: A domain or collection of domains; skipped if None
        now: Current time in milliseconds (defaults to wall clock)

    Returns:
        ChallengeValidation with the first failing reason
    """
    if now is None:
        now = int(time.time() * 1000)

    if now > challenge.expires_at:
        return ChallengeValidation(valid=False, error="Challenge expired")

    if challenge.timestamp > now + MAX_CLOCK_SKEW_MS:
        return ChallengeValidation(valid=False, error="Challenge timestamp is in the future")

    if allowed_domains:
        domains = [allowed_domains] if isinstance(allowed_domains, str) else list(allowed_domains)
        if challenge.domain not in domains:
            return ChallengeValidation(
                valid=False,
                error=f"Domain mismatch. Allowed: {', '.join(domains)}",
            )

    return ChallengeValidation(valid=True)
