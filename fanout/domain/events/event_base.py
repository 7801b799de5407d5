"""
Domain Events Module

Architectural Intent:
- Base class for relay lifecycle events
- Events are immutable and describe something the relay already did
- Dispatched through the event bus to observers such as RelayStats
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Any


@dataclass(frozen=True)
class DomainEvent:
    occurred_at: str = field(
        default_factory=lambda: datetime.now(UTC).isoformat(), init=False, repr=False
    )

    @property
    def event_type(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> dict[str, Any]:
        return {
            "occurred_at": self.occurred_at,
            "event_type": self.event_type,
        }
