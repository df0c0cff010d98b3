import logging

from regintel.config import Settings, settings
from regintel.stores.base import ConversationContextStore, InMemoryConversationContextStore
from regintel.stores.redis_store import RedisConversationContextStore

logger = logging.getLogger(__name__)


def create_context_store(config: Settings = settings) -> ConversationContextStore:
    """Build the conversation context store selected by CONTEXT_STORE_BACKEND."""
    backend = config.context_store_backend
    if backend == "redis":
        store = RedisConversationContextStore.from_settings(config)
    elif backend == "postgres":
        # Imported here so the engine is only created when postgres is selected
        from regintel.database import async_session
        from regintel.stores.sql import SqlConversationContextStore

        store = SqlConversationContextStore(async_session)
    else:
        store = InMemoryConversationContextStore()
    logger.info("Conversation context store: %s", backend)
    return store
