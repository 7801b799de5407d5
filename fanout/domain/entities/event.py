"""
Event Entity

Architectural Intent:
- An Event is one published (channel, payload) pair as received by the relay
- Events are immutable and ephemeral: never persisted, never replayed
- The payload is opaque bytes; the relay never interprets it
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Any

from fanout.domain.value_objects.channel import Channel


def _to_bytes(payload: bytes | bytearray | str) -> bytes:
    if isinstance(payload, str):
        return payload.encode("utf-8")
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return bytes(payload)
    raise TypeError(
        f"Event payload must be bytes or str, got {type(payload).__name__}"
    )


@dataclass(frozen=True)
class Event:
    channel: Channel
    payload: bytes
    received_at: str = field(
        default_factory=lambda: datetime.now(UTC).isoformat()
    )

    def __post_init__(self):
        object.__setattr__(self, "channel", Channel.of(self.channel))
        object.__setattr__(self, "payload", _to_bytes(self.payload))

    @classmethod
    def create(cls, channel: Channel | str, payload: bytes | str) -> Event:
        return cls(channel=Channel.of(channel), payload=_to_bytes(payload))

    @property
    def size(self) -> int:
        return len(self.payload)

    def to_dict(self) -> dict[str, Any]:
        return {
            "channel": self.channel.name,
            "size": self.size,
            "received_at": self.received_at,
        }
