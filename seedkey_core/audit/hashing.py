"""
Audit Hashing
=============
Hash chain computation and verification.
"""

import hashlib
import json
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import structlog

from .models import AuditEvent

logger = structlog.get_logger(__name__)


def compute_event_hash(
    previous_hash: Optional[str],
    timestamp: datetime,
    service: str,
    event_type: str,
    outcome: str,
    payload: Dict[str, Any],
) -> str:
    """
    SHA-256 over the event content and the previous event's hash.

    Changing any past event changes every hash after it.
    """
    hash_input = json.dumps({
        "previous_hash": previous_hash,
        "timestamp": timestamp.isoformat(),
        "service": service,
        "event_type": event_type,
        "outcome": outcome,
        "payload": payload,
    }, sort_keys=True, separators=(",", ":"))

    return hashlib.sha256(hash_input.encode()).hexdigest()


def verify_chain_integrity(events: List[AuditEvent]) -> Tuple[bool, Optional[int]]:
    """
    Verify a chain of events in chronological order.

    Returns:
        (is_valid, index of the first bad event or None)
    """
    for i, event in enumerate(events):
        expected_previous = events[i - 1].hash if i > 0 else None
        if event.previous_hash != expected_previous:
            logger.warning("Audit chain linkage broken", event_id=event.id, index=i)
            return False, i

        expected_hash = compute_event_hash(
            event.previous_hash,
            event.timestamp,
            event.service,
            event.event_type,
            event.outcome,
            event.payload,
        )
        if event.hash != expected_hash:
            logger.warning(
                "Audit chain integrity violation",
                event_id=event.id,
                index=i,
                expected_hash=expected_hash[:16],
                actual_hash=event.hash[:16],
            )
            return False, i

    return True, None
