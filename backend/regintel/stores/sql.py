"""
Postgres-backed conversation context store.

Merges run in one transaction: ensure the row exists, lock it with
SELECT ... FOR UPDATE, then write the ordered union.
"""

import logging
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from regintel.models.conversation_context import ConversationContextRecord
from regintel.stores.base import ConversationContext, ConversationIdentity, merge_node_ids

logger = logging.getLogger(__name__)


class SqlConversationContextStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @staticmethod
    def _where(identity: ConversationIdentity):
        return (
            ConversationContextRecord.tenant_id == identity.tenant_id,
            ConversationContextRecord.conversation_id == identity.conversation_id,
        )

    async def load(self, identity: ConversationIdentity) -> ConversationContext | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ConversationContextRecord).where(*self._where(identity))
            )
            record = result.scalar_one_or_none()
            if record is None:
                return None
            return ConversationContext(active_node_ids=list(record.active_node_ids or []))

    async def save(self, identity: ConversationIdentity, context: ConversationContext) -> None:
        node_ids = list(dict.fromkeys(context.active_node_ids))
        stmt = pg_insert(ConversationContextRecord).values(
            tenant_id=identity.tenant_id,
            conversation_id=identity.conversation_id,
            active_node_ids=node_ids,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["conversation_id", "tenant_id"],
            set_={"active_node_ids": stmt.excluded.active_node_ids, "updated_at": func.now()},
        )
        async with self._session_factory.begin() as session:
            await session.execute(stmt)

    async def merge_active_node_ids(
        self, identity: ConversationIdentity, node_ids: Iterable[str]
    ) -> None:
        node_ids = list(node_ids)
        async with self._session_factory.begin() as session:
            await session.execute(
                pg_insert(ConversationContextRecord)
                .values(
                    tenant_id=identity.tenant_id,
                    conversation_id=identity.conversation_id,
                    active_node_ids=[],
                )
                .on_conflict_do_nothing(index_elements=["conversation_id", "tenant_id"])
            )
            result = await session.execute(
                select(ConversationContextRecord)
                .where(*self._where(identity))
                .with_for_update()
            )
            record = result.scalar_one()
            record.active_node_ids = merge_node_ids(record.active_node_ids or [], node_ids)
            logger.debug(
                "Merged %d node ids into context %s (%d total)",
                len(node_ids), identity.key, len(record.active_node_ids),
            )
