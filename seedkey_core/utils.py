"""
Shared helpers.
"""

import time


def now_ms() -> int:
    """Current Unix time in milliseconds."""
    return int(time.time() * 1000)
