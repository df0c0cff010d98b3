"""
Ollama LLM router.

Streams /api/chat as newline-delimited JSON and translates each line into
router chunks (text, tool, done, error). Transport and provider failures are
reported as a terminal error chunk; the stream itself never raises.
"""

import json
import logging
from typing import AsyncIterator, Sequence

import httpx

from regintel.config import Settings, settings
from regintel.errors import LlmError
from regintel.llm.types import LlmCompletionOptions, LlmStreamChunk
from regintel.schemas.schemas import ChatMessage

logger = logging.getLogger(__name__)


def _as_ollama_tool(tool: dict) -> dict:
    """Ollama expects {"type": "function", "function": {...}}."""
    if isinstance(tool.get("function"), dict):
        return tool
    return {
        "type": "function",
        "function": {
            "name": tool.get("name"),
            "description": tool.get("description", ""),
            "parameters": tool.get("parameters", {"type": "object", "properties": {}}),
        },
    }


class OllamaRouter:
    """LLM router backed by a local Ollama server."""

    def __init__(
        self,
        base_url: str,
        model: str,
        temperature: float = 0.3,
        max_tokens: int = 2048,
        timeout_seconds: float = 180.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "OllamaRouter":
        return cls(
            config.ollama_url,
            config.llm_model,
            temperature=config.llm_temperature,
            max_tokens=config.llm_max_tokens,
            timeout_seconds=config.llm_timeout_seconds,
        )

    def build_payload(
        self, messages: Sequence[ChatMessage], options: LlmCompletionOptions
    ) -> dict:
        payload = {
            "model": options.model or self.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "stream": True,
            "options": {
                "temperature": self.temperature if options.temperature is None else options.temperature,
                "num_predict": options.max_tokens or self.max_tokens,
            },
        }
        if options.tools:
            payload["tools"] = [_as_ollama_tool(t) for t in options.tools]
        return payload

    async def stream_chat(
        self,
        messages: Sequence[ChatMessage],
        options: LlmCompletionOptions | None = None,
    ) -> AsyncIterator[LlmStreamChunk]:
        options = options or LlmCompletionOptions()
        payload = self.build_payload(messages, options)
        timeout = httpx.Timeout(connect=10.0, read=self.timeout_seconds, write=10.0, pool=10.0)

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                async with client.stream("POST", f"{self.base_url}/api/chat", json=payload) as resp:
                    if resp.status_code != 200:
                        body = (await resp.aread()).decode("utf-8", errors="replace")
                        logger.warning("Ollama returned HTTP %s for task %s", resp.status_code, options.task)
                        yield {
                            "type": "error",
                            "error": LlmError(
                                f"Ollama returned HTTP {resp.status_code}: {body[:200]}",
                                status_code=resp.status_code,
                            ),
                        }
                        return
                    async for line in resp.aiter_lines():
                        if not line:
                            continue
                        try:
                            data = json.loads(line)
                        except json.JSONDecodeError:
                            logger.debug("Skipping non-JSON line from Ollama: %.80s", line)
                            continue
                        if data.get("error"):
                            yield {"type": "error", "error": LlmError(str(data["error"]))}
                            return
                        message = data.get("message") or {}
                        for call in message.get("tool_calls") or []:
                            function = call.get("function") or {}
                            yield {
                                "type": "tool",
                                "name": function.get("name"),
                                "args_json": function.get("arguments"),
                            }
                        token = message.get("content", "")
                        if token:
                            yield {"type": "text", "delta": token}
                        if data.get("done"):
                            break
        except httpx.HTTPError as e:
            logger.warning("Ollama stream failed: %s", e)
            yield {"type": "error", "error": LlmError(f"Ollama request failed: {e}")}
            return

        yield {"type": "done"}
