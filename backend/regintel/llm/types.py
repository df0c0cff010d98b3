"""
LLM request/response types and the router and client protocols.

Stream chunks are plain dicts tagged by "type":
    {"type": "text", "delta": str}
    {"type": "tool", "name": str, "args_json": str | dict}
    {"type": "done"}
    {"type": "error", "error": Exception | str}
"""

from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Protocol, Sequence

from regintel.constants import MAIN_CHAT_TASK
from regintel.schemas.schemas import ChatMessage

LlmStreamChunk = dict[str, Any]


@dataclass
class LlmChatRequest:
    messages: list[ChatMessage]
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    tools: list[dict] | None = None
    tool_choice: str | dict | None = None


@dataclass
class LlmChatResponse:
    content: str
    usage: dict | None = None


@dataclass
class LlmCompletionOptions:
    """Per-call routing options passed to the LLM router."""
    task: str = MAIN_CHAT_TASK
    tenant_id: str | None = None
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    tools: list[dict] = field(default_factory=list)
    tool_choice: str | dict | None = None


class LlmRouter(Protocol):
    def stream_chat(
        self,
        messages: Sequence[ChatMessage],
        options: LlmCompletionOptions | None = None,
    ) -> AsyncIterator[LlmStreamChunk]:
        ...


class LlmClient(Protocol):
    """Client handed to agents for the current turn."""

    async def chat(self, request: LlmChatRequest) -> LlmChatResponse:
        ...

    def stream_chat(self, request: LlmChatRequest) -> AsyncIterator[LlmStreamChunk]:
        ...


def tool_name(tool: dict) -> str | None:
    """Name of a tool definition in either flat or {"function": {...}} form."""
    function = tool.get("function")
    if isinstance(function, dict) and function.get("name"):
        return function["name"]
    return tool.get("name")
