"""
Domain agent contract.

Components:
- DomainAgent: blocking agent ABC
- StreamingDomainAgent: agent that can also stream its answer
- AgentInput / AgentContext: per-turn input and collaborators
- AgentResult / AgentStreamResult: blocking and streaming results
"""

from regintel.agents.base import (
    AgentContext,
    AgentInput,
    AgentResult,
    AgentStreamResult,
    DomainAgent,
    EgressGuard,
    StreamingDomainAgent,
    TimelineEngine,
    supports_streaming,
)

__all__ = [
    "AgentContext",
    "AgentInput",
    "AgentResult",
    "AgentStreamResult",
    "DomainAgent",
    "EgressGuard",
    "StreamingDomainAgent",
    "TimelineEngine",
    "supports_streaming",
]
