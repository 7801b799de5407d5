"""
Control Command Value Object

Architectural Intent:
- Decodes inbound subscriber control frames into a tagged variant
- Keeps text parsing out of transport handlers
- Decoding never raises: anything unrecognised becomes an UNKNOWN command

Wire Format:
    subscribe|<channel>
    unsubscribe|<channel>

The channel is everything after the first "|" and may itself contain "|".
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from fanout.domain.value_objects.channel import Channel

FRAME_SEPARATOR = "|"


class CommandKind(Enum):
    SUBSCRIBE = auto()
    UNSUBSCRIBE = auto()
    UNKNOWN = auto()


_VERBS = {
    "subscribe": CommandKind.SUBSCRIBE,
    "unsubscribe": CommandKind.UNSUBSCRIBE,
}


@dataclass(frozen=True)
class ControlCommand:
    kind: CommandKind
    channel: Optional[Channel] = None
    raw: str = ""

    @classmethod
    def subscribe(cls, channel: Channel | str) -> ControlCommand:
        channel = Channel.of(channel)
        return cls(
            CommandKind.SUBSCRIBE,
            channel,
            encode_control_frame(CommandKind.SUBSCRIBE, channel),
        )

    @classmethod
    def unsubscribe(cls, channel: Channel | str) -> ControlCommand:
        channel = Channel.of(channel)
        return cls(
            CommandKind.UNSUBSCRIBE,
            channel,
            encode_control_frame(CommandKind.UNSUBSCRIBE, channel),
        )

    @classmethod
    def unknown(cls, raw: str) -> ControlCommand:
        return cls(CommandKind.UNKNOWN, None, raw)

    @property
    def is_actionable(self) -> bool:
        return self.kind is not CommandKind.UNKNOWN and self.channel is not None


def encode_control_frame(kind: CommandKind, channel: Channel | str) -> str:
    """Render the wire text for a SUBSCRIBE or UNSUBSCRIBE command."""
    if kind is CommandKind.UNKNOWN:
        raise ValueError("UNKNOWN commands have no wire form")
    return f"{kind.name.lower()}{FRAME_SEPARATOR}{Channel.of(channel).name}"


def decode_control_frame(text: str) -> ControlCommand:
    """Decode a single control frame.

    Trailing CR/LF is stripped. Unknown verbs, a missing separator, and empty
    or invalid channel names all decode to an UNKNOWN command.
    """
    line = text.rstrip("\r\n")
    verb, sep, name = line.partition(FRAME_SEPARATOR)
    kind = _VERBS.get(verb)
    if not sep or kind is None:
        return ControlCommand.unknown(line)

    try:
        channel = Channel(name)
    except ValueError:
        return ControlCommand.unknown(line)

    return ControlCommand(kind, channel, line)
