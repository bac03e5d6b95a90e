"""
SeedKey Configuration
=====================
Domain and TTL settings for challenge issuance and validation.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

# Challenge TTL in milliseconds (5 minutes)
DEFAULT_CHALLENGE_TTL_MS = 5 * 60 * 1000


@dataclass
class SeedKeyConfig:
    """User-facing configuration, defaults applied by `resolve_config`."""
    allowed_domains: List[str] = field(default_factory=list)
    challenge_ttl: Optional[int] = None      # milliseconds
    current_domain: Optional[str] = None     # defaults to allowed_domains[0]
    session_ttl: Optional[int] = None        # seconds, store default if None

    @classmethod
    def from_env(cls) -> "SeedKeyConfig":
        """Build a config from SEEDKEY_* environment variables."""
        domains = [
            d.strip()
            for d in os.environ.get("SEEDKEY_ALLOWED_DOMAINS", "").split(",")
            if d.strip()
        ]
        challenge_ttl = os.environ.get("SEEDKEY_CHALLENGE_TTL_MS")
        session_ttl = os.environ.get("SEEDKEY_SESSION_TTL_SECONDS")

        return cls(
            allowed_domains=domains,
            challenge_ttl=int(challenge_ttl) if challenge_ttl else None,
            current_domain=os.environ.get("SEEDKEY_CURRENT_DOMAIN") or None,
            session_ttl=int(session_ttl) if session_ttl else None,
        )


@dataclass(frozen=True)
class ResolvedConfig:
    """Configuration with every default filled in."""
    allowed_domains: Tuple[str, ...]
    challenge_ttl: int
    current_domain: str
    session_ttl: Optional[int] = None


def resolve_config(config: SeedKeyConfig) -> ResolvedConfig:
    """
    Apply defaults to a SeedKeyConfig.

    Args:
        config: Partial configuration

    Returns:
        ResolvedConfig ready to hand to AuthService

    Raises:
        ValueError: If no allowed domain is configured or the TTL is not positive
    """
    if not config.allowed_domains:
        raise ValueError("At least one allowed domain is required")

    challenge_ttl = (
        config.challenge_ttl
        if config.challenge_ttl is not None
        else DEFAULT_CHALLENGE_TTL_MS
    )
    # Issued challenges must satisfy expires_at > timestamp
    if challenge_ttl <= 0:
        raise ValueError("challenge_ttl must be positive")

    return ResolvedConfig(
        allowed_domains=tuple(config.allowed_domains),
        challenge_ttl=challenge_ttl,
        current_domain=config.current_domain or config.allowed_domains[0],
        session_ttl=config.session_ttl,
    )
