"""
Subscription Registry

Architectural Intent:
- Single owner of the subscriber -> channels interest mapping
- Answers "who is interested in this channel right now" with a snapshot
- Purges all interests of a subscriber on disconnect so stale entries
  never accumulate

Design Decisions:
- Forward index (subscriber -> channels) and reverse index
  (channel -> subscribers) are updated together under one lock
- threading.Lock rather than asyncio.Lock: reads also happen on the HTTP
  status threads, and no operation awaits while holding it
- Unknown subscribers are never an error; subscribe() creates the entry
- Empty sets are dropped from both indexes
"""

from __future__ import annotations
import logging
import threading
from collections import defaultdict

from fanout.domain.value_objects.channel import Channel
from fanout.domain.value_objects.subscriber_id import SubscriberId

logger = logging.getLogger(__name__)


class SubscriptionRegistry:
    """In-memory registry of channel interests per subscriber."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_subscriber: defaultdict[SubscriberId, set[Channel]] = defaultdict(set)
        self._by_channel: defaultdict[Channel, set[SubscriberId]] = defaultdict(set)

    def subscribe(self, subscriber: SubscriberId, channel: Channel | str) -> bool:
        """Add a channel to the subscriber's interest set.

        Returns True if the subscription is new, False if it already existed.
        """
        channel = Channel.of(channel)
        with self._lock:
            interests = self._by_subscriber[subscriber]
            if channel in interests:
                return False
            interests.add(channel)
            self._by_channel[channel].add(subscriber)
        logger.debug("%s subscribed to %s", subscriber, channel)
        return True

    def unsubscribe(self, subscriber: SubscriberId, channel: Channel | str) -> bool:
        """Remove a channel from the subscriber's interest set.

        Returns True if a subscription was removed, False if it was absent.
        """
        channel = Channel.of(channel)
        with self._lock:
            interests = self._by_subscriber.get(subscriber)
            if not interests or channel not in interests:
                return False
            interests.discard(channel)
            if not interests:
                del self._by_subscriber[subscriber]
            self._discard_from_channel(channel, subscriber)
        logger.debug("%s unsubscribed from %s", subscriber, channel)
        return True

    def remove_subscriber(self, subscriber: SubscriberId) -> frozenset[Channel]:
        """Purge every interest held by a subscriber.

        Returns the channels the subscriber was interested in.
        """
        with self._lock:
            interests = self._by_subscriber.pop(subscriber, set())
            for channel in interests:
                self._discard_from_channel(channel, subscriber)
        if interests:
            logger.debug(
                "Removed %s from %d channel(s)", subscriber, len(interests)
            )
        return frozenset(interests)

    def subscribers_for(self, channel: Channel | str) -> frozenset[SubscriberId]:
        """Snapshot of subscribers currently interested in a channel."""
        channel = Channel.of(channel)
        with self._lock:
            return frozenset(self._by_channel.get(channel, ()))

    def channels_for(self, subscriber: SubscriberId) -> frozenset[Channel]:
        with self._lock:
            return frozenset(self._by_subscriber.get(subscriber, ()))

    def channels(self) -> frozenset[Channel]:
        """Channels that currently have at least one subscriber."""
        with self._lock:
            return frozenset(self._by_channel)

    def snapshot(self) -> dict[str, int]:
        """Channel name -> subscriber count, sorted by channel name."""
        with self._lock:
            counts = {c.name: len(s) for c, s in self._by_channel.items()}
        return dict(sorted(counts.items()))

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._by_subscriber)

    @property
    def channel_count(self) -> int:
        with self._lock:
            return len(self._by_channel)

    def _discard_from_channel(self, channel: Channel, subscriber: SubscriberId) -> None:
        # Caller holds self._lock
        members = self._by_channel.get(channel)
        if members is None:
            return
        members.discard(subscriber)
        if not members:
            del self._by_channel[channel]
