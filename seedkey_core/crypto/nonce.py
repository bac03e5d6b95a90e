"""
Nonce and ID Generation
=======================
Cryptographically secure nonces, opaque IDs and URL-safe tokens.
"""

import base64
import secrets
import time

NONCE_BYTES = 32

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_nonce() -> str:
    """Generate a random challenge nonce (32 bytes, base64)."""
    return base64.b64encode(secrets.token_bytes(NONCE_BYTES)).decode("ascii")


def generate_id(prefix: str) -> str:
    """
    Generate an opaque ID such as `ch_lq2x8k3a9f0b1c2d`.

    The time component keeps IDs roughly sortable; uniqueness is
    probabilistic, so stores needing a hard guarantee must enforce it.

    Args:
        prefix: Entity prefix (e.g. "ch", "user", "key", "ses")

    Returns:
        "{prefix}_{base36 millis}{8 random base36 chars}"
    """
    timestamp = _to_base36(int(time.time() * 1000))
    random_part = "".join(secrets.choice(_BASE36) for _ in range(8))
    return f"{prefix}_{timestamp}{random_part}"


def generate_token(length: int = 32) -> str:
    """Generate `length` random bytes as unpadded URL-safe base64."""
    return secrets.token_urlsafe(length)
