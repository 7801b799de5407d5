import uuid
from dataclasses import dataclass


@dataclass(frozen=True)
class SubscriberId:
    """
    Value Object identifying one subscriber connection.

    The transport owns the underlying connection; everything else only uses
    the id as a routing key.
    """
    value: str

    def __post_init__(self):
        if not self.value:
            raise ValueError("Subscriber ID cannot be empty")

    @classmethod
    def generate(cls, prefix: str = "sub") -> "SubscriberId":
        return cls(f"{prefix}-{uuid.uuid4().hex[:12]}")

    def __str__(self):
        return self.value
