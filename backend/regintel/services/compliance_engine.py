"""
Compliance Engine: orchestrates one conversational turn.

Turns a user question, profile and prior turns into a graph-grounded answer
by delegating domain reasoning to a DomainAgent.

Features:
- Validation of the turn (at least one user message)
- System prompt built through the prompt aspect pipeline, including a
  summary of concepts referenced in earlier turns
- Transparent concept capture: the agent's LLM client advertises the
  capture_concepts tool and records resolved node ids for the turn
- Referenced nodes merged from the agent and concept capture, deduplicated by id
- Streaming protocol: exactly one metadata chunk, text chunks in arrival
  order, then exactly one done or error chunk
- Best-effort persistence of active node ids per (tenant, conversation)
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Iterable

from regintel.agents.base import (
    AgentContext,
    AgentInput,
    DomainAgent,
    EgressGuard,
    TimelineEngine,
    supports_streaming,
)
from regintel.constants import (
    CONCEPT_PLACEHOLDER,
    ENGINE_AGENT_ID,
    NON_ADVICE_DISCLAIMER,
    REGULATORY_COPILOT_SYSTEM_PROMPT,
)
from regintel.errors import (
    AgentError,
    ComplianceError,
    RequestValidationError,
    StreamingNotSupportedError,
    get_error_message,
)
from regintel.graph.client import GraphClient
from regintel.graph.concepts import CanonicalConceptHandler, GraphWriteService
from regintel.llm.types import LlmRouter
from regintel.observability.metrics import compliance_turn_duration_seconds, compliance_turns_total
from regintel.observability.turn_context import bind_turn, new_turn_id
from regintel.prompts.aspects import AspectPromptPipeline, PromptPipeline
from regintel.schemas.schemas import (
    ChatMessage,
    ComplianceRequest,
    ComplianceResponse,
    ComplianceStreamChunk,
    DoneChunk,
    ErrorChunk,
    MetadataChunk,
    ResolvedNode,
    StreamMetadata,
    TextChunk,
    UserProfile,
)
from regintel.services.concept_capture import CapturedNodeIds, ConceptAwareLlmClient
from regintel.services.context_continuity import (
    ContextContinuity,
    LoadedContext,
    conversation_identity,
)
from regintel.services.node_resolver import NodeResolver
from regintel.stores.base import ConversationContextStore, ConversationIdentity

logger = logging.getLogger(__name__)


@dataclass
class ComplianceEngineDeps:
    agent: DomainAgent
    llm_router: LlmRouter
    graph_client: GraphClient
    graph_write: GraphWriteService
    concept_handler: CanonicalConceptHandler
    timeline_engine: TimelineEngine
    egress_guard: EgressGuard
    context_store: ConversationContextStore | None = None
    prompt_pipeline: PromptPipeline | None = None
    include_disclaimer: bool = True


@dataclass
class PromptMetadata:
    system_prompt: str
    jurisdictions: list[str]
    disclaimer: str


@dataclass
class _Turn:
    identity: ConversationIdentity | None
    prompt: PromptMetadata
    captured: CapturedNodeIds
    agent_input: AgentInput
    agent_context: AgentContext


def merge_referenced_nodes(
    agent_nodes: Iterable[ResolvedNode], captured_ids: Iterable[str]
) -> list[ResolvedNode]:
    """Union by id: agent nodes first (first occurrence wins), then captured ids as placeholders."""
    merged: list[ResolvedNode] = []
    seen: set[str] = set()
    for node in agent_nodes:
        if node.id in seen:
            continue
        seen.add(node.id)
        merged.append(node)
    for node_id in captured_ids:
        if node_id in seen:
            continue
        seen.add(node_id)
        merged.append(ResolvedNode(id=node_id, label=CONCEPT_PLACEHOLDER, type=CONCEPT_PLACEHOLDER))
    return merged


def locate_question(messages: list[ChatMessage]) -> int:
    """Index of the last user message; raises RequestValidationError if there is none."""
    if not messages:
        raise RequestValidationError("No messages provided")
    for index in range(len(messages) - 1, -1, -1):
        if messages[index].role == "user":
            return index
    raise RequestValidationError("No user message found")


def _chunk_field(chunk: Any, name: str) -> Any:
    if isinstance(chunk, dict):
        return chunk.get(name)
    return getattr(chunk, name, None)


class ComplianceEngine:
    def __init__(self, deps: ComplianceEngineDeps):
        self.deps = deps
        self._prompts = deps.prompt_pipeline or AspectPromptPipeline()
        self._continuity = ContextContinuity(deps.context_store, NodeResolver(deps.graph_client))

    # ------------------------------------------------------------------
    # Turn preparation (validated request -> prompt -> agent input)
    # ------------------------------------------------------------------

    async def _build_prompt_metadata(
        self, profile: UserProfile | None, loaded: LoadedContext
    ) -> PromptMetadata:
        prompt = await self._prompts.build(
            REGULATORY_COPILOT_SYSTEM_PROMPT,
            agent_id=ENGINE_AGENT_ID,
            include_disclaimer=self.deps.include_disclaimer,
            jurisdictions=profile.jurisdictions if profile else None,
            profile=profile,
            conversation_context_summary=loaded.summary,
            conversation_context_nodes=loaded.nodes,
        )
        context = prompt.context
        jurisdictions = context.jurisdictions or (context.profile.jurisdictions if context.profile else None) or []
        return PromptMetadata(
            system_prompt=prompt.system_prompt,
            jurisdictions=list(jurisdictions),
            disclaimer=NON_ADVICE_DISCLAIMER if context.include_disclaimer else "",
        )

    async def _prepare_turn(self, request: ComplianceRequest, question_index: int) -> _Turn:
        identity = conversation_identity(request.tenant_id, request.conversation_id)
        loaded = await self._continuity.load(identity)
        prompt = await self._build_prompt_metadata(request.profile, loaded)

        captured = CapturedNodeIds()
        llm_client = ConceptAwareLlmClient(
            self.deps.llm_router,
            self.deps.concept_handler,
            self.deps.graph_write,
            captured,
            tenant_id=request.tenant_id,
        )
        now = datetime.now(timezone.utc)
        agent_input = AgentInput(
            question=request.messages[question_index].content,
            profile=request.profile,
            conversation_history=list(request.messages[:question_index]),
            now=now,
            system_prompt=prompt.system_prompt,
            conversation_context_summary=loaded.summary,
        )
        agent_context = AgentContext(
            graph_client=self.deps.graph_client,
            timeline=self.deps.timeline_engine,
            egress_guard=self.deps.egress_guard,
            llm_client=llm_client,
            now=now,
            profile=request.profile,
        )
        return _Turn(identity, prompt, captured, agent_input, agent_context)

    # ------------------------------------------------------------------
    # Non-streaming
    # ------------------------------------------------------------------

    async def handle_chat(self, request: ComplianceRequest) -> ComplianceResponse:
        question_index = locate_question(request.messages)

        with bind_turn(request.tenant_id, request.conversation_id):
            start = time.monotonic()
            outcome = "error"
            try:
                turn = await self._prepare_turn(request, question_index)
                try:
                    result = await self.deps.agent.handle(turn.agent_input, turn.agent_context)
                except ComplianceError:
                    raise
                except Exception as e:
                    raise AgentError(get_error_message(e)) from e

                referenced_nodes = merge_referenced_nodes(result.referenced_nodes, turn.captured)
                await self._continuity.persist(turn.identity, [node.id for node in referenced_nodes])
                outcome = "ok"
                logger.info(
                    "Turn answered by %s with %d referenced nodes",
                    result.agent_id, len(referenced_nodes),
                )
                return ComplianceResponse(
                    answer=result.answer,
                    referenced_nodes=referenced_nodes,
                    agent_used=result.agent_id,
                    jurisdictions=turn.prompt.jurisdictions,
                    uncertainty_level=result.uncertainty_level,
                    follow_ups=list(result.follow_ups or []),
                    disclaimer=turn.prompt.disclaimer,
                )
            finally:
                compliance_turns_total.labels(mode="chat", outcome=outcome).inc()
                compliance_turn_duration_seconds.labels(mode="chat").observe(time.monotonic() - start)

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    async def handle_chat_stream(
        self, request: ComplianceRequest
    ) -> AsyncIterator[ComplianceStreamChunk]:
        """Yield metadata, text* and one terminal done/error chunk for the turn.

        Every failure, including an agent that cannot stream, ends the turn
        with a single error chunk. Closing the iterator early stops the
        provider stream and skips context persistence.

        Turn identifiers are bound only while the turn itself runs, so code
        consuming the stream between chunks logs under its own context.
        """
        turn_id = new_turn_id()
        steps = self._stream_turn(request)
        try:
            while True:
                with bind_turn(request.tenant_id, request.conversation_id, turn_id):
                    try:
                        chunk = await steps.__anext__()
                    except StopAsyncIteration:
                        return
                yield chunk
        finally:
            with bind_turn(request.tenant_id, request.conversation_id, turn_id):
                await steps.aclose()

    async def _stream_turn(
        self, request: ComplianceRequest
    ) -> AsyncIterator[ComplianceStreamChunk]:
        try:
            question_index = locate_question(request.messages)
        except RequestValidationError as e:
            compliance_turns_total.labels(mode="stream", outcome="invalid").inc()
            yield ErrorChunk(error=e.message)
            return

        agent = self.deps.agent
        start = time.monotonic()
        outcome = "cancelled"
        try:
            try:
                if not supports_streaming(agent):
                    raise StreamingNotSupportedError(
                        f"Agent {getattr(agent, 'id', type(agent).__name__)} does not support streaming"
                    )
                turn = await self._prepare_turn(request, question_index)
                result = await agent.handle_stream(turn.agent_input, turn.agent_context)
            except StreamingNotSupportedError as e:
                logger.warning("Turn rejected: %s", e.message)
                outcome = "error"
                yield ErrorChunk(error=e.message)
                return
            except Exception as e:
                logger.error("Turn failed before streaming: %s", e, exc_info=True)
                outcome = "error"
                yield ErrorChunk(error=get_error_message(e))
                return

            stream = result.stream
            try:
                yield MetadataChunk(
                    metadata=StreamMetadata(
                        agent_used=result.agent_id,
                        jurisdictions=turn.prompt.jurisdictions,
                        uncertainty_level=result.uncertainty_level,
                        referenced_nodes=merge_referenced_nodes(result.referenced_nodes, turn.captured),
                    )
                )
                async for chunk in stream:
                    kind = _chunk_field(chunk, "type")
                    if kind == "text":
                        delta = _chunk_field(chunk, "delta")
                        if delta:
                            yield TextChunk(delta=delta)
                    elif kind == "error":
                        outcome = "error"
                        message = get_error_message(_chunk_field(chunk, "error"))
                        logger.warning("Agent stream reported an error: %s", message)
                        yield ErrorChunk(error=message)
                        return
            except Exception as e:
                logger.error("Agent stream failed: %s", e, exc_info=True)
                outcome = "error"
                yield ErrorChunk(error=get_error_message(e))
                return
            finally:
                aclose = getattr(stream, "aclose", None)
                if aclose is not None:
                    await aclose()

            # Concept capture may have added ids while text was streaming
            referenced_nodes = merge_referenced_nodes(result.referenced_nodes, turn.captured)
            await self._continuity.persist(turn.identity, [node.id for node in referenced_nodes])
            outcome = "ok"
            yield DoneChunk(
                follow_ups=list(result.follow_ups or []),
                referenced_nodes=referenced_nodes,
                disclaimer=turn.prompt.disclaimer,
            )
        finally:
            compliance_turns_total.labels(mode="stream", outcome=outcome).inc()
            compliance_turn_duration_seconds.labels(mode="stream").observe(time.monotonic() - start)


def create_compliance_engine(deps: ComplianceEngineDeps) -> ComplianceEngine:
    return ComplianceEngine(deps)
