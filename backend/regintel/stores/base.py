"""
Conversation context store contract and the in-process implementation.

A context is the set of graph node ids referenced so far in one
(tenant, conversation). Stores that can merge atomically expose
merge_active_node_ids; otherwise callers fall back to load + save.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Iterable, Protocol


@dataclass(frozen=True)
class ConversationIdentity:
    tenant_id: str
    conversation_id: str
    user_id: str | None = None

    @property
    def key(self) -> str:
        return f"{self.tenant_id}:{self.conversation_id}"


@dataclass
class ConversationContext:
    active_node_ids: list[str] = field(default_factory=list)


class ConversationContextStore(Protocol):
    async def load(self, identity: ConversationIdentity) -> ConversationContext | None:
        ...

    async def save(self, identity: ConversationIdentity, context: ConversationContext) -> None:
        ...


class MergingConversationContextStore(ConversationContextStore, Protocol):
    async def merge_active_node_ids(
        self, identity: ConversationIdentity, node_ids: Iterable[str]
    ) -> None:
        ...


def merge_node_ids(existing: Iterable[str], new: Iterable[str]) -> list[str]:
    """Ordered set union: existing ids first, then unseen new ids."""
    return list(dict.fromkeys([*existing, *new]))


class InMemoryConversationContextStore:
    """Process-local store. Suitable for tests and single-instance deployments."""

    def __init__(self):
        self._contexts: dict[str, list[str]] = {}
        self._lock = asyncio.Lock()

    async def load(self, identity: ConversationIdentity) -> ConversationContext | None:
        node_ids = self._contexts.get(identity.key)
        if node_ids is None:
            return None
        return ConversationContext(active_node_ids=list(node_ids))

    async def save(self, identity: ConversationIdentity, context: ConversationContext) -> None:
        async with self._lock:
            self._contexts[identity.key] = list(dict.fromkeys(context.active_node_ids))

    async def merge_active_node_ids(
        self, identity: ConversationIdentity, node_ids: Iterable[str]
    ) -> None:
        async with self._lock:
            existing = self._contexts.get(identity.key, [])
            self._contexts[identity.key] = merge_node_ids(existing, node_ids)
