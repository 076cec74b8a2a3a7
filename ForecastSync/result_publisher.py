"""Per-key broadcast of the latest value to any number of subscribers."""
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

Callback = Callable[[Any], None]


class Subscription:
    """Handle returned by ``subscribe``; ``unsubscribe`` may be called any number of times."""

    def __init__(self, publisher: "ResultPublisher", key: str, callback: Callback):
        self.key = key
        self.callback = callback
        self._publisher = publisher
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._active = False
            self._publisher._remove(self)


class _Channel:
    def __init__(self):
        self.lock = threading.RLock()
        self.subscriptions: List[Subscription] = []
        self.latest: Any = None
        self.has_value = False
        self.published = False  # set under the registry guard, pins the channel
        self.joining = 0  # subscribe calls in progress, guarded by the registry guard


class ResultPublisher:
    """
    Observable broadcast keyed by string (a place name).

    Guarantees:
        - every subscriber of a key sees every value published for that key,
          in publish order
        - a new subscriber immediately receives the last published value
          (if any) before anything newer
        - a failing callback is logged and does not stop delivery to others

    A key that was never published to is forgotten once its last subscriber
    leaves. Callbacks run on the publishing thread.
    """

    def __init__(self):
        self._channels: Dict[str, _Channel] = {}
        self._guard = threading.Lock()

    def _channel(self, key: str) -> _Channel:
        channel = self._channels.get(key)
        if channel is None:
            channel = self._channels[key] = _Channel()
        return channel

    def subscribe(self, key: str, callback: Callback, replay: bool = True) -> Subscription:
        """
        Register a callback for a key.

        Args:
            key: Key to observe
            callback: Called with every published value
            replay: Deliver the last published value right away

        Returns:
            Subscription: handle used to stop delivery
        """
        with self._guard:
            channel = self._channel(key)
            channel.joining += 1
        subscription = Subscription(self, key, callback)
        try:
            with channel.lock:
                channel.subscriptions.append(subscription)
                logging.debug(f"Subscribed to {key!r} ({len(channel.subscriptions)} subscribers)")
                if replay and channel.has_value:
                    self._deliver(subscription, channel.latest)
        finally:
            with self._guard:
                channel.joining -= 1
        return subscription

    def publish(self, key: str, value: Any) -> None:
        """Store ``value`` as the latest for ``key`` and deliver it to every subscriber."""
        with self._guard:
            channel = self._channel(key)
            channel.published = True
        with channel.lock:
            channel.latest = value
            channel.has_value = True
            for subscription in list(channel.subscriptions):
                if subscription.active:
                    self._deliver(subscription, value)

    def latest(self, key: str) -> Optional[Any]:
        """Last value published for ``key`` or None."""
        with self._guard:
            channel = self._channels.get(key)
        if channel is None:
            return None
        with channel.lock:
            return channel.latest

    def subscriber_count(self, key: str) -> int:
        with self._guard:
            channel = self._channels.get(key)
        if channel is None:
            return 0
        with channel.lock:
            return len(channel.subscriptions)

    def _remove(self, subscription: Subscription) -> None:
        key = subscription.key
        with self._guard:
            channel = self._channels.get(key)
        if channel is None:
            logging.warning(f"No channel for {key!r}, subscription already gone")
            return
        with channel.lock:
            try:
                channel.subscriptions.remove(subscription)
            except ValueError:
                logging.warning(f"Subscription for {key!r} not found")
        with self._guard:
            idle = not (channel.subscriptions or channel.joining or channel.published)
            if idle and self._channels.get(key) is channel:
                del self._channels[key]
                logging.debug(f"Dropped idle channel {key!r}")

    def __contains__(self, key: str) -> bool:
        with self._guard:
            return key in self._channels

    @staticmethod
    def _deliver(subscription: Subscription, value: Any) -> None:
        try:
            subscription.callback(value)
        except Exception as e:
            logging.error(f"Subscriber callback for {subscription.key!r} failed: {e}", exc_info=True)
