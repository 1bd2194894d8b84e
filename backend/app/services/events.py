"""
backend/app/services/events.py

Event publisher: pushes domain events to Redis for the notification workers.

Events are published only after the transaction that caused them commits.
Publishing is fire-and-forget: a failure is logged and never propagates
back into the reservation flow.

Queue:
- events:p2p: instant delivery to one user
"""

import json
import logging
import time
from typing import Any, Optional, Protocol

from redis import Redis
from redis.exceptions import RedisError

from ..config import settings

logger = logging.getLogger(__name__)

P2P_QUEUE = "events:p2p"

RESERVATION_CONFIRMED = "reservation_confirmed"
RESERVATION_CANCELLED = "reservation_cancelled"
POINTS_UPDATED = "points_updated"


class EventPublisher(Protocol):
    def notify(self, user_id: Optional[int], event: str, payload: dict[str, Any]) -> None:
        ...


class RedisEventPublisher:
    """RPUSH JSON envelopes to events:p2p."""

    def __init__(self, client: Redis, queue: str = P2P_QUEUE):
        self.client = client
        self.queue = queue

    def notify(self, user_id: Optional[int], event: str, payload: dict[str, Any]) -> None:
        envelope = {
            "type": event,
            "user_id": user_id,
            **payload,
            "ts": int(time.time()),
        }
        try:
            self.client.rpush(self.queue, json.dumps(envelope, default=str))
            logger.info(f"Event emitted: {event} → {self.queue}")
        except RedisError as e:
            logger.error(f"Failed to emit event {event}: {e}")


class NullEventPublisher:
    def notify(self, user_id: Optional[int], event: str, payload: dict[str, Any]) -> None:
        logger.debug(f"Events disabled, dropped {event} for user {user_id}")


class RecordingEventPublisher:
    """Keeps events in memory. Used by tests."""

    def __init__(self):
        self.events: list[dict[str, Any]] = []

    def notify(self, user_id: Optional[int], event: str, payload: dict[str, Any]) -> None:
        self.events.append({"type": event, "user_id": user_id, **payload})

    def of_type(self, event: str) -> list[dict[str, Any]]:
        return [e for e in self.events if e["type"] == event]


def get_event_publisher() -> EventPublisher:
    """FastAPI dependency."""
    if not settings.events_enabled:
        return NullEventPublisher()

    from ..redis_client import redis_client
    return RedisEventPublisher(redis_client)
