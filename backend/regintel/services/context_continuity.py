"""
Cross-turn concept continuity.

Loads the active node ids recorded for a conversation, resolves them to
display metadata, renders a one-paragraph summary for the system prompt, and
after a successful turn merges the turn's referenced node ids back into the
store. Every failure here is logged and treated as "no context".
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable

from regintel.observability.metrics import conversation_context_operations_total
from regintel.schemas.schemas import ResolvedNode
from regintel.services.node_resolver import NodeResolver
from regintel.stores.base import (
    ConversationContext,
    ConversationContextStore,
    ConversationIdentity,
    merge_node_ids,
)

logger = logging.getLogger(__name__)


@dataclass
class LoadedContext:
    active_node_ids: list[str] = field(default_factory=list)
    nodes: list[ResolvedNode] = field(default_factory=list)
    summary: str | None = None


def build_context_summary(nodes: list[ResolvedNode]) -> str | None:
    if not nodes:
        return None
    concepts = ", ".join(f"{node.label} ({node.type})" for node in nodes)
    return (
        f"Previous turns referenced: {concepts}. "
        "Keep follow-up answers consistent with these concepts and their related rules."
    )


def conversation_identity(
    tenant_id: str | None, conversation_id: str | None
) -> ConversationIdentity | None:
    """Context is only tracked when both tenant and conversation are known."""
    if not tenant_id or not conversation_id:
        return None
    return ConversationIdentity(tenant_id=tenant_id, conversation_id=conversation_id)


class ContextContinuity:
    def __init__(self, store: ConversationContextStore | None, resolver: NodeResolver):
        self._store = store
        self._resolver = resolver

    async def load(self, identity: ConversationIdentity | None) -> LoadedContext:
        if identity is None or self._store is None:
            return LoadedContext()

        try:
            stored = await self._store.load(identity)
        except Exception as e:
            logger.warning("Failed to load conversation context %s: %s", identity.key, e)
            conversation_context_operations_total.labels(operation="load", outcome="error").inc()
            return LoadedContext()
        conversation_context_operations_total.labels(operation="load", outcome="ok").inc()

        active_node_ids = list(stored.active_node_ids) if stored else []
        nodes = await self._resolver.resolve(active_node_ids)
        return LoadedContext(
            active_node_ids=active_node_ids,
            nodes=nodes,
            summary=build_context_summary(nodes),
        )

    async def persist(
        self, identity: ConversationIdentity | None, node_ids: Iterable[str]
    ) -> None:
        if identity is None or self._store is None:
            return
        node_ids = list(dict.fromkeys(node_ids))
        if not node_ids:
            return

        try:
            merge = getattr(self._store, "merge_active_node_ids", None)
            if merge is not None:
                await merge(identity, node_ids)
            else:
                existing = await self._store.load(identity) or ConversationContext()
                await self._store.save(
                    identity,
                    ConversationContext(active_node_ids=merge_node_ids(existing.active_node_ids, node_ids)),
                )
        except Exception as e:
            logger.warning("Failed to persist conversation context %s: %s", identity.key, e)
            conversation_context_operations_total.labels(operation="persist", outcome="error").inc()
            return
        conversation_context_operations_total.labels(operation="persist", outcome="ok").inc()
