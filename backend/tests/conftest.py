"""Shared fakes and fixtures for compliance engine tests."""

import json

import pytest

from regintel.agents.base import (
    AgentContext,
    AgentInput,
    AgentResult,
    AgentStreamResult,
    DomainAgent,
    StreamingDomainAgent,
)
from regintel.llm.types import LlmChatRequest
from regintel.observability.turn_context import get_tenant_id
from regintel.schemas.schemas import ChatMessage, ComplianceRequest, ResolvedNode, UserProfile
from regintel.services.compliance_engine import ComplianceEngine, ComplianceEngineDeps
from regintel.stores.base import ConversationContext, InMemoryConversationContextStore


CAPTURE_THEN_TEXT = [
    {
        "type": "tool",
        "name": "capture_concepts",
        "args_json": json.dumps({"concepts": [{"label": "VAT"}]}),
    },
    {"type": "text", "delta": "Hello "},
    {"type": "text", "delta": "world"},
    {"type": "done"},
]


# ── LLM router ───────────────────────────────────────────────────────────────

class FakeRouter:
    """Replays scripted chunk lists; one list per call, the last one repeats."""

    def __init__(self, *scripts: list[dict]):
        self.scripts = [list(s) for s in scripts] or [list(CAPTURE_THEN_TEXT)]
        self.calls: list[tuple[list[ChatMessage], object]] = []
        self.closed = 0

    async def stream_chat(self, messages, options=None):
        self.calls.append((list(messages), options))
        script = self.scripts[min(len(self.calls), len(self.scripts)) - 1]
        try:
            for chunk in script:
                yield dict(chunk)
        finally:
            self.closed += 1


# ── Graph ────────────────────────────────────────────────────────────────────

class FakeGraphClient:
    def __init__(self, rows=None, error: Exception | None = None):
        self.rows = rows
        self.error = error
        self.queries: list[tuple[str, dict | None]] = []

    async def execute_cypher(self, query, params=None):
        self.queries.append((query, params))
        if self.error:
            raise self.error
        if self.rows is not None:
            return self.rows
        return [
            {"id": node_id, "label": f"Label {node_id}", "type": "Rule"}
            for node_id in (params or {}).get("ids", [])
        ]


class FakeGraphWriter:
    def __init__(self):
        self.upserted = []

    async def upsert_concept(self, concept):
        self.upserted.append(concept)
        return f"concept-{concept.label.lower()}"


class FakeConceptHandler:
    """Resolves each concept to `concept-<label>` unless node_ids is given."""

    def __init__(self, node_ids: list[str] | None = None, error: Exception | None = None):
        self.node_ids = node_ids
        self.error = error
        self.calls = []

    async def resolve_and_upsert(self, concepts, graph_write):
        self.calls.append((list(concepts), graph_write))
        if self.error:
            raise self.error
        if self.node_ids is not None:
            return list(self.node_ids)
        return [f"concept-{c.label.lower()}" for c in concepts]


class FakeTimeline:
    def compute_lookback_range(self, timeline, now):
        return None

    def is_within_lookback(self, event_date, timeline, now):
        return None

    def compute_lock_in_end(self, trigger_date, timeline):
        return None

    def is_lock_in_active(self, trigger_date, timeline, now):
        return None


class FakeEgressGuard:
    def redact(self, payload):
        return payload

    def redact_text(self, text):
        return text


# ── Agents ───────────────────────────────────────────────────────────────────

def _agent_request(agent_input: AgentInput) -> LlmChatRequest:
    messages = [ChatMessage(role="system", content=agent_input.system_prompt or "")]
    messages.extend(agent_input.conversation_history)
    messages.append(ChatMessage(role="user", content=agent_input.question))
    return LlmChatRequest(messages=messages)


class FakeStreamingAgent(StreamingDomainAgent):
    id = "FakeStreamingAgent"
    name = "Fake streaming agent"
    description = "Answers through the turn's LLM client"

    def __init__(
        self,
        referenced_nodes: list[ResolvedNode] | None = None,
        follow_ups: list[str] | None = None,
        uncertainty_level: str | None = "medium",
        warm_up: bool = False,
        error: Exception | None = None,
    ):
        self.referenced_nodes = referenced_nodes or []
        self.follow_ups = follow_ups or []
        self.uncertainty_level = uncertainty_level
        self.warm_up = warm_up
        self.error = error
        self.inputs: list[AgentInput] = []
        self.contexts: list[AgentContext] = []

    async def can_handle(self, agent_input):
        return True

    async def handle(self, agent_input, ctx):
        self.inputs.append(agent_input)
        self.contexts.append(ctx)
        if self.error:
            raise self.error
        response = await ctx.llm_client.chat(_agent_request(agent_input))
        return AgentResult(
            answer=response.content,
            agent_id=self.id,
            referenced_nodes=list(self.referenced_nodes),
            uncertainty_level=self.uncertainty_level,
            follow_ups=list(self.follow_ups),
        )

    async def handle_stream(self, agent_input, ctx):
        self.inputs.append(agent_input)
        self.contexts.append(ctx)
        if self.error:
            raise self.error
        if self.warm_up:
            # A planning call made before the answer stream starts
            await ctx.llm_client.chat(_agent_request(agent_input))
        return AgentStreamResult(
            agent_id=self.id,
            stream=ctx.llm_client.stream_chat(_agent_request(agent_input)),
            referenced_nodes=list(self.referenced_nodes),
            uncertainty_level=self.uncertainty_level,
            follow_ups=list(self.follow_ups),
        )


class FakeBlockingAgent(DomainAgent):
    id = "FakeBlockingAgent"

    def __init__(self):
        self.calls = 0

    async def can_handle(self, agent_input):
        return True

    async def handle(self, agent_input, ctx):
        self.calls += 1
        return AgentResult(answer="blocking answer", agent_id=self.id)


class TrackedStream:
    """Agent stream that records when it is closed and the tenant bound at each step."""

    def __init__(self, chunks: list[dict]):
        self.chunks = list(chunks)
        self.closed = False
        self.tenants: list[str] = []

    def __aiter__(self):
        return self

    async def __anext__(self):
        self.tenants.append(get_tenant_id())
        if not self.chunks:
            raise StopAsyncIteration
        return self.chunks.pop(0)

    async def aclose(self):
        self.closed = True


class PreparedStreamAgent(StreamingDomainAgent):
    """Hands the engine a stream that exists before the first chunk is pulled."""

    id = "PreparedStreamAgent"

    def __init__(self, chunks: list[dict] | None = None):
        self.stream = TrackedStream(chunks or [{"type": "text", "delta": "ready"}])

    async def can_handle(self, agent_input):
        return True

    async def handle(self, agent_input, ctx):
        return AgentResult(answer="ready", agent_id=self.id)

    async def handle_stream(self, agent_input, ctx):
        return AgentStreamResult(agent_id=self.id, stream=self.stream)


# ── Context stores ───────────────────────────────────────────────────────────

class RecordingStore(InMemoryConversationContextStore):
    def __init__(self):
        super().__init__()
        self.loads = 0
        self.merges: list[list[str]] = []

    async def load(self, identity):
        self.loads += 1
        return await super().load(identity)

    async def merge_active_node_ids(self, identity, node_ids):
        node_ids = list(node_ids)
        self.merges.append(node_ids)
        await super().merge_active_node_ids(identity, node_ids)


class LoadSaveStore:
    """Store without an atomic merge primitive."""

    def __init__(self, initial: dict[str, list[str]] | None = None):
        self.contexts = dict(initial or {})
        self.saves: list[list[str]] = []

    async def load(self, identity):
        if identity.key not in self.contexts:
            return None
        return ConversationContext(active_node_ids=list(self.contexts[identity.key]))

    async def save(self, identity, context):
        self.saves.append(list(context.active_node_ids))
        self.contexts[identity.key] = list(context.active_node_ids)


class FailingStore:
    def __init__(self):
        self.calls: list[str] = []

    async def load(self, identity):
        self.calls.append("load")
        raise RuntimeError("context store unavailable")

    async def save(self, identity, context):
        self.calls.append("save")
        raise RuntimeError("context store unavailable")

    async def merge_active_node_ids(self, identity, node_ids):
        self.calls.append("merge")
        raise RuntimeError("context store unavailable")


# ── Fixtures ─────────────────────────────────────────────────────────────────

def make_request(
    question: str = "What is VAT?",
    history: list[ChatMessage] | None = None,
    tenant_id: str | None = "tenant-1",
    conversation_id: str | None = "conv-1",
    jurisdictions: list[str] | None = None,
) -> ComplianceRequest:
    return ComplianceRequest(
        messages=[*(history or []), ChatMessage(role="user", content=question)],
        profile=UserProfile(persona_type="single-director", jurisdictions=jurisdictions or ["IE"]),
        tenant_id=tenant_id,
        conversation_id=conversation_id,
    )


@pytest.fixture
def make_engine():
    """Build a ComplianceEngine from fakes; any collaborator may be overridden."""

    def _make(
        agent=None,
        router=None,
        graph_client=None,
        concept_handler=None,
        context_store=None,
        include_disclaimer: bool = True,
    ) -> ComplianceEngine:
        return ComplianceEngine(
            ComplianceEngineDeps(
                agent=agent if agent is not None else FakeStreamingAgent(),
                llm_router=router if router is not None else FakeRouter(),
                graph_client=graph_client if graph_client is not None else FakeGraphClient(),
                graph_write=FakeGraphWriter(),
                concept_handler=concept_handler if concept_handler is not None else FakeConceptHandler(),
                timeline_engine=FakeTimeline(),
                egress_guard=FakeEgressGuard(),
                context_store=context_store,
                include_disclaimer=include_disclaimer,
            )
        )

    return _make


async def collect(stream) -> list:
    return [chunk async for chunk in stream]
