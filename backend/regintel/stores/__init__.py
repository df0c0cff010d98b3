"""
Conversation context stores.

Components:
- InMemoryConversationContextStore: process-local, lock-guarded
- SqlConversationContextStore: Postgres, row-locked merge (regintel.stores.sql)
- RedisConversationContextStore: Redis sets, SADD merge
- create_context_store: backend selection from settings
"""

from regintel.stores.base import (
    ConversationContext,
    ConversationContextStore,
    ConversationIdentity,
    InMemoryConversationContextStore,
    MergingConversationContextStore,
    merge_node_ids,
)
from regintel.stores.factory import create_context_store
from regintel.stores.redis_store import RedisConversationContextStore

__all__ = [
    "ConversationContext",
    "ConversationContextStore",
    "ConversationIdentity",
    "InMemoryConversationContextStore",
    "MergingConversationContextStore",
    "RedisConversationContextStore",
    "create_context_store",
    "merge_node_ids",
]
