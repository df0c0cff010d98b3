"""
Redis-backed conversation context store.

Each context is a Redis set; SADD makes concurrent merges atomic. Sets are
unordered, so loaded ids come back sorted.
"""

from typing import Iterable

import redis.asyncio as aioredis

from regintel.config import Settings, settings
from regintel.stores.base import ConversationContext, ConversationIdentity

KEY_PREFIX = "regintel:context:"


class RedisConversationContextStore:
    def __init__(self, redis: aioredis.Redis, ttl_seconds: int = 0):
        self._redis = redis
        self._ttl_seconds = ttl_seconds

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "RedisConversationContextStore":
        return cls(
            aioredis.from_url(config.redis_url, decode_responses=True),
            ttl_seconds=config.context_ttl_seconds,
        )

    @staticmethod
    def _key(identity: ConversationIdentity) -> str:
        return f"{KEY_PREFIX}{identity.key}"

    async def load(self, identity: ConversationIdentity) -> ConversationContext | None:
        members = await self._redis.smembers(self._key(identity))
        if not members:
            return None
        return ConversationContext(active_node_ids=sorted(members))

    async def save(self, identity: ConversationIdentity, context: ConversationContext) -> None:
        key = self._key(identity)
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.delete(key)
            if context.active_node_ids:
                pipe.sadd(key, *context.active_node_ids)
                if self._ttl_seconds:
                    pipe.expire(key, self._ttl_seconds)
            await pipe.execute()

    async def merge_active_node_ids(
        self, identity: ConversationIdentity, node_ids: Iterable[str]
    ) -> None:
        node_ids = list(node_ids)
        if not node_ids:
            return
        key = self._key(identity)
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.sadd(key, *node_ids)
            if self._ttl_seconds:
                pipe.expire(key, self._ttl_seconds)
            await pipe.execute()

    async def aclose(self) -> None:
        await self._redis.aclose()
