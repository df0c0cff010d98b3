"""
Domain agent contract.

An agent answers one compliance question given the user's profile, the prior
turns and a per-turn context of collaborators (graph, timeline, egress guard,
LLM client). Agents that can stream implement StreamingDomainAgent.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, AsyncIterator, Protocol

from regintel.graph.client import GraphClient
from regintel.llm.types import LlmClient, LlmStreamChunk
from regintel.schemas.schemas import ChatMessage, ResolvedNode, UncertaintyLevel, UserProfile


class TimelineEngine(Protocol):
    """Date arithmetic for lookback windows and lock-in periods."""

    def compute_lookback_range(self, timeline: Any, now: datetime) -> Any: ...

    def is_within_lookback(self, event_date: date, timeline: Any, now: datetime) -> Any: ...

    def compute_lock_in_end(self, trigger_date: date, timeline: Any) -> Any: ...

    def is_lock_in_active(self, trigger_date: date, timeline: Any, now: datetime) -> Any: ...


class EgressGuard(Protocol):
    """Redacts personal data before it leaves the process."""

    def redact(self, payload: Any) -> Any: ...

    def redact_text(self, text: str) -> str: ...


@dataclass
class AgentInput:
    question: str
    profile: UserProfile | None
    conversation_history: list[ChatMessage]
    now: datetime
    system_prompt: str | None = None
    conversation_context_summary: str | None = None


@dataclass
class AgentContext:
    graph_client: GraphClient
    timeline: TimelineEngine
    egress_guard: EgressGuard
    llm_client: LlmClient
    now: datetime
    profile: UserProfile | None = None


@dataclass
class AgentResult:
    """Result of a blocking agent run."""
    answer: str
    agent_id: str
    referenced_nodes: list[ResolvedNode] = field(default_factory=list)
    uncertainty_level: UncertaintyLevel | None = None
    follow_ups: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class AgentStreamResult:
    """Result of a streaming agent run; `stream` is consumed by the engine."""
    agent_id: str
    stream: AsyncIterator[LlmStreamChunk]
    referenced_nodes: list[ResolvedNode] = field(default_factory=list)
    uncertainty_level: UncertaintyLevel | None = None
    follow_ups: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class DomainAgent(ABC):
    """Abstract base class for compliance domain agents."""

    id: str
    name: str = ""
    description: str = ""

    @abstractmethod
    async def can_handle(self, agent_input: AgentInput) -> bool:
        pass

    @abstractmethod
    async def handle(self, agent_input: AgentInput, ctx: AgentContext) -> AgentResult:
        """
        Answer the question in one shot.

        Args:
            agent_input: question, profile, history and the composed system prompt
            ctx: per-turn collaborators; ctx.llm_client captures concepts

        Returns:
            AgentResult with answer, referenced nodes, uncertainty and follow-ups
        """
        pass


class StreamingDomainAgent(DomainAgent):
    """Agent that can also answer as a stream of chunks."""

    @abstractmethod
    async def handle_stream(
        self, agent_input: AgentInput, ctx: AgentContext
    ) -> AgentStreamResult:
        pass


def supports_streaming(agent: DomainAgent) -> bool:
    return isinstance(agent, StreamingDomainAgent)
