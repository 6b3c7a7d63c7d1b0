"""
Append-only audit logging.
"""

from portal.kernel.events.event_store import EventStore

__all__ = ["EventStore"]
