from dataclasses import dataclass

MAX_CHANNEL_LENGTH = 256


@dataclass(frozen=True)
class Channel:
    """
    Value Object naming a category of events.

    Channel names are opaque to the relay. Hierarchical names such as
    "posts/1/comments" are a caller convention only.
    """
    name: str

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("Channel name cannot be empty")
        if len(self.name) > MAX_CHANNEL_LENGTH:
            raise ValueError(
                f"Channel name exceeds {MAX_CHANNEL_LENGTH} characters"
            )
        if "\r" in self.name or "\n" in self.name:
            raise ValueError("Channel name cannot contain line breaks")

    @classmethod
    def of(cls, value: "Channel | str") -> "Channel":
        if isinstance(value, Channel):
            return value
        return cls(value)

    def __str__(self):
        return self.name
