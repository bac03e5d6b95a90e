"""
Ed25519 Signature Verification
==============================
Fail-closed verification of base64-encoded Ed25519 signatures.
"""

import base64
import binascii

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
import structlog

logger = structlog.get_logger(__name__)

PUBLIC_KEY_LENGTH = 32
SIGNATURE_LENGTH = 64


def _decode(value: str) -> bytes:
    if isinstance(value, str):
        value = value.encode("ascii")
    return base64.b64decode(value)


def verify_signature(signature: str, message: str, public_key: str) -> bool:
    """
    Verify an Ed25519 signature over a text message.

    Malformed input never reaches the primitive: keys that do not decode
    to 32 bytes and signatures that do not decode to 64 bytes are rejected
    up front. This function never raises.

    Args:
        signature: Base64 signature (64 bytes decoded)
        message: Signed text, encoded as UTF-8
        public_key: Base64 public key (32 bytes decoded)

    Returns:
        True if the signature is valid
    """
    try:
        signature_bytes = _decode(signature)
        public_key_bytes = _decode(public_key)
    except (binascii.Error, ValueError, TypeError, AttributeError):
        return False

    if len(public_key_bytes) != PUBLIC_KEY_LENGTH:
        return False

    if len(signature_bytes) != SIGNATURE_LENGTH:
        return False

    try:
        key = Ed25519PublicKey.from_public_bytes(public_key_bytes)
        if isinstance(message, str):
            message = message.encode("utf-8")
        key.verify(signature_bytes, message)
        return True
    except InvalidSignature:
        return False
    except Exception as e:
        logger.warning("Signature verification error", error=str(e))
        return False


def secure_compare(a: str, b: str) -> bool:
    """
    Compare two strings without an early exit on the first difference.

    Lengths are compared first; equal-length inputs are always walked in
    full.
    """
    if len(a) != len(b):
        return False

    result = 0
    for x, y in zip(a, b):
        result |= ord(x) ^ ord(y)

    return result == 0
