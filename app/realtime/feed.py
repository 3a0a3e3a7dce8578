"""Per-user bookmark change feed over Redis pub/sub."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from redis.asyncio import Redis
from redis.asyncio.client import PubSub

from app.core.redis_client import get_redis_client
from app.realtime.events import ChangeEvent

logger = structlog.get_logger(__name__)


class RedisChangeFeed:
    """Publishes and subscribes to bookmark change events, one channel per owner."""

    def __init__(self, redis_client: Redis):
        """Initialize change feed with Redis client."""
        self.redis = redis_client

    @staticmethod
    def channel_name(user_id: str) -> str:
        """Channel carrying the events of one user's bookmarks."""
        return f"bookmarks:{user_id}"

    async def publish(self, user_id: str, event: ChangeEvent) -> bool:
        """
        Publish a change event to the owner's channel.

        Returns:
            True if published, False if Redis was unavailable
        """
        try:
            await self.redis.publish(self.channel_name(user_id), event.model_dump_json())
            return True
        except Exception as e:
            logger.warning(
                "change_feed_publish_failed",
                user_id=user_id,
                event_type=event.event_type.value,
                error=str(e),
            )
            return False

    @asynccontextmanager
    async def subscribe(self, user_id: str) -> AsyncIterator[AsyncIterator[ChangeEvent]]:
        """
        Subscribe to a user's channel.

        The subscription is established when the context is entered, so the
        caller can acknowledge the handshake before reading events.
        """
        channel = self.channel_name(user_id)
        pubsub = self.redis.pubsub()
        await pubsub.subscribe(channel)
        logger.info("change_feed_subscribed", user_id=user_id)
        try:
            yield self._events(pubsub)
        finally:
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()
            logger.info("change_feed_unsubscribed", user_id=user_id)

    @staticmethod
    async def _events(pubsub: PubSub) -> AsyncIterator[ChangeEvent]:
        async for message in pubsub.listen():
            if message.get("type") != "message":
                continue
            yield ChangeEvent.model_validate_json(message["data"])


def get_change_feed() -> RedisChangeFeed:
    """Dependency for the change feed bound to the global Redis client."""
    return RedisChangeFeed(get_redis_client())
