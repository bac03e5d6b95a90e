"""
Audit Module
============
Tamper-evident trail of protocol events with hash chaining.
"""

from .models import AuditEventType, AuditEvent
from .hashing import compute_event_hash, verify_chain_integrity
from .logger import AuditLogger

__all__ = [
    "AuditEventType",
    "AuditEvent",
    "compute_event_hash",
    "verify_chain_integrity",
    "AuditLogger",
]
