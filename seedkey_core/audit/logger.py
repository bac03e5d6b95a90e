"""
Audit Logger
============
Buffers chained audit events for the auth flows.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import structlog

from .hashing import compute_event_hash
from .models import AuditEvent, AuditEventType

logger = structlog.get_logger(__name__)


class AuditLogger:
    """
    Append-only audit trail with hash chaining.

    Events are buffered; call `flush()` to hand them to durable storage.
    """

    def __init__(self, service_name: str = "seedkey"):
        self.service_name = service_name
        self._previous_hash: Optional[str] = None
        self._buffer: List[AuditEvent] = []

    def set_previous_hash(self, hash_value: str) -> None:
        """Continue a chain persisted elsewhere (e.g. loaded on startup)."""
        self._previous_hash = hash_value

    def log(
        self,
        event_type: Union[AuditEventType, str],
        outcome: str = "success",
        actor_id: Optional[str] = None,
        resource_id: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> AuditEvent:
        """
        Record an event.

        Args:
            event_type: Type of event
            outcome: "success", "failure" or "blocked"
            actor_id: User ID or public key ID behind the event
            resource_id: Challenge or session ID
            payload: Extra event data (never secrets)

        Returns:
            The created AuditEvent
        """
        timestamp = datetime.now(timezone.utc)
        payload = payload or {}
        event_type_str = getattr(event_type, "value", event_type)

        event_hash = compute_event_hash(
            self._previous_hash,
            timestamp,
            self.service_name,
            event_type_str,
            outcome,
            payload,
        )

        event = AuditEvent(
            id=str(uuid.uuid4()),
            timestamp=timestamp,
            service=self.service_name,
            event_type=event_type_str,
            outcome=outcome,
            actor_id=actor_id,
            resource_id=resource_id,
            payload=payload,
            hash=event_hash,
            previous_hash=self._previous_hash,
        )

        self._previous_hash = event_hash
        self._buffer.append(event)

        logger.debug(
            "Audit event logged",
            event_id=event.id,
            event_type=event.event_type,
            outcome=outcome,
        )
        return event

    def flush(self) -> List[AuditEvent]:
        """Return and clear buffered events."""
        events = self._buffer
        self._buffer = []
        return events
