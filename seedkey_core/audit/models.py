"""
Audit Models
============
Protocol audit event types and the chained event record.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class AuditEventType(str, Enum):
    """Protocol events worth a tamper-evident record."""
    CHALLENGE_CREATED = "challenge.created"
    USER_REGISTERED = "user.registered"
    AUTH_LOGIN = "auth.login"
    AUTH_FAILED = "auth.failed"
    AUTH_REPLAY_BLOCKED = "auth.replay_blocked"
    AUTH_TOKEN_REFRESH = "auth.token_refresh"
    AUTH_LOGOUT = "auth.logout"


@dataclass
class AuditEvent:
    """An audit entry linked to its predecessor by hash."""
    id: str
    timestamp: datetime
    service: str
    event_type: str
    outcome: str  # "success", "failure", "blocked"
    actor_id: Optional[str]
    resource_id: Optional[str]
    payload: Dict[str, Any]
    hash: str
    previous_hash: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["timestamp"] = self.timestamp.isoformat()
        return d
