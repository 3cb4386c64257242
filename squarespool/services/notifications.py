"""
Event fan-out to display and real-time collaborators.

Subscribers receive (event, payload). A failing subscriber is logged and
skipped; it never fails the operation that published the event.
"""

import logging
import threading
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

BOARD_FILLED = "board_filled"
BOARD_ASSIGNED = "board_assigned"
GAME_SCORED = "game_scored"

Subscriber = Callable[[str, Dict[str, Any]], None]


class Notifier:
    """Thread-safe publish/subscribe hub."""

    def __init__(self) -> None:
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> bool:
        """
        Remove a subscriber.

        Returns:
            True if it was subscribed, False otherwise
        """
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)
                return True
            return False

    def publish(self, event: str, payload: Dict[str, Any]) -> int:
        """
        Deliver an event to every subscriber.

        Returns:
            Number of subscribers that handled the event without error
        """
        with self._lock:
            subscribers = list(self._subscribers)

        logger.debug(f"Publishing {event} to {len(subscribers)} subscribers")
        delivered = 0
        for callback in subscribers:
            try:
                callback(event, payload)
                delivered += 1
            except Exception:
                logger.exception(f"Subscriber {callback!r} failed on {event}")
        return delivered
