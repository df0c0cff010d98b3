"""
LLM routing for the compliance engine.

Components:
- LlmChatRequest / LlmCompletionOptions: per-call request and routing options
- LlmRouter / LlmClient: provider router and agent-facing client protocols
- OllamaRouter: streaming router backed by Ollama /api/chat
"""

from regintel.llm.ollama import OllamaRouter
from regintel.llm.types import (
    LlmChatRequest,
    LlmChatResponse,
    LlmClient,
    LlmCompletionOptions,
    LlmRouter,
    LlmStreamChunk,
)

__all__ = [
    "LlmChatRequest",
    "LlmChatResponse",
    "LlmClient",
    "LlmCompletionOptions",
    "LlmRouter",
    "LlmStreamChunk",
    "OllamaRouter",
]
