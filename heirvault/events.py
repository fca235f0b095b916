"""
Vault events.

Every successful state change emits one or more events. Events are
appended to an EventLog and written through the structured event logger.
"""

import itertools
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .config import EVENT_LOG_MAX_RECORDS


class EventType(str, Enum):
    """Observable vault events."""
    HEARTBEAT_RENEWED = "HEARTBEAT_RENEWED"
    HEIR_ADDED = "HEIR_ADDED"
    DEPOSITED = "DEPOSITED"
    EXPIRY_STARTED = "EXPIRY_STARTED"
    SNAPSHOT_TAKEN = "SNAPSHOT_TAKEN"
    EXPIRY_REVOKED = "EXPIRY_REVOKED"
    CLAIMED = "CLAIMED"


@dataclass
class VaultEvent:
    """Immutable record of one vault event."""
    event_id: str
    event_type: EventType
    timestamp: int
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "timestamp": datetime.fromtimestamp(self.timestamp, tz=timezone.utc)
                                 .isoformat().replace("+00:00", "Z"),
            "data": self.data,
        }


class EventLog(ABC):
    """
    Abstract interface for vault event storage.

    Implementations must preserve emission order.
    """

    @abstractmethod
    def record(self, event: VaultEvent) -> None:
        """Append an event."""
        pass

    @abstractmethod
    def query(
        self,
        event_type: Optional[EventType] = None,
        since: Optional[int] = None
    ) -> List[VaultEvent]:
        """Return events in emission order, optionally filtered."""
        pass


class InMemoryEventLog(EventLog):
    """
    In-memory event log for development/testing.

    WARNING: Not persistent. Oldest records are dropped past max_records.
    """

    def __init__(self, max_records: int = EVENT_LOG_MAX_RECORDS):
        self._events: List[VaultEvent] = []
        self._lock = threading.Lock()
        self._max_records = max_records

    def record(self, event: VaultEvent) -> None:
        with self._lock:
            self._events.append(event)
            if len(self._events) > self._max_records:
                self._events = self._events[-self._max_records:]

    def query(
        self,
        event_type: Optional[EventType] = None,
        since: Optional[int] = None
    ) -> List[VaultEvent]:
        with self._lock:
            events = self._events[:]

        if event_type:
            events = [e for e in events if e.event_type == event_type]
        if since is not None:
            events = [e for e in events if e.timestamp >= since]

        return events


class EventIdGenerator:
    """Sequential event identifiers scoped to one vault."""

    def __init__(self, prefix: str):
        self._prefix = prefix
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            n = next(self._counter)
        return f"{self._prefix}-{n:08d}"
