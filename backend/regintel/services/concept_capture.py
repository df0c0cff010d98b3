"""
Concept-aware LLM client.

Wraps the LLM router for one turn. Every call advertises the capture_concepts
tool; tool-call chunks are consumed here (never forwarded to the agent), their
concepts resolved to canonical graph nodes, and the node ids accumulated for
the turn.
"""

import logging
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import AsyncIterator, Iterable

from regintel.constants import MAIN_CHAT_TASK
from regintel.errors import LlmError, get_error_message
from regintel.graph.concepts import CanonicalConceptHandler, GraphWriteService
from regintel.llm.types import (
    LlmChatRequest,
    LlmChatResponse,
    LlmCompletionOptions,
    LlmRouter,
    LlmStreamChunk,
    tool_name,
)
from regintel.observability.metrics import concept_capture_failures_total, concepts_captured_total
from regintel.services.concept_parser import parse_captured_concepts

logger = logging.getLogger(__name__)

CAPTURE_CONCEPTS_TOOL_NAME = "capture_concepts"

_OPTIONAL_STRING = {"type": "string"}
_STRING_LIST = {"type": "array", "items": {"type": "string"}}

CAPTURE_CONCEPTS_TOOL = {
    "type": "function",
    "name": CAPTURE_CONCEPTS_TOOL_NAME,
    "description": (
        "Capture canonical regulatory concepts referenced in the assistant answer "
        "for graph enrichment"
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "concepts": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "label": {"type": "string", "description": "Concept name as used in the answer"},
                        "type": _OPTIONAL_STRING,
                        "jurisdiction": _OPTIONAL_STRING,
                        "domain": _OPTIONAL_STRING,
                        "kind": _OPTIONAL_STRING,
                        "pref_label": _OPTIONAL_STRING,
                        "alt_labels": _STRING_LIST,
                        "definition": _OPTIONAL_STRING,
                        "source_urls": _STRING_LIST,
                        "canonical_id": _OPTIONAL_STRING,
                        "node_id": _OPTIONAL_STRING,
                    },
                    "required": ["label"],
                },
            },
        },
        "required": ["concepts"],
    },
}


@dataclass
class CapturedNodeIds:
    """Ordered, duplicate-free node ids captured during one turn."""
    ids: list[str] = field(default_factory=list)

    def update(self, node_ids: Iterable[str]) -> None:
        for node_id in node_ids:
            if node_id and node_id not in self.ids:
                self.ids.append(node_id)

    def __iter__(self):
        return iter(list(self.ids))

    def __len__(self) -> int:
        return len(self.ids)


def _tool_payload(chunk: LlmStreamChunk):
    for key in ("args_json", "arguments", "payload"):
        if chunk.get(key) is not None:
            return chunk[key]
    return None


class ConceptAwareLlmClient:
    """LlmClient handed to the agent for one turn."""

    def __init__(
        self,
        router: LlmRouter,
        concept_handler: CanonicalConceptHandler,
        graph_write: GraphWriteService,
        captured: CapturedNodeIds,
        tenant_id: str | None = None,
        task: str = MAIN_CHAT_TASK,
    ):
        self._router = router
        self._concept_handler = concept_handler
        self._graph_write = graph_write
        self.captured = captured
        self._tenant_id = tenant_id
        self._task = task

    def completion_options(self, request: LlmChatRequest) -> LlmCompletionOptions:
        tools = [CAPTURE_CONCEPTS_TOOL]
        for tool in request.tools or []:
            if tool_name(tool) != CAPTURE_CONCEPTS_TOOL_NAME:
                tools.append(tool)
        return LlmCompletionOptions(
            task=self._task,
            tenant_id=self._tenant_id,
            model=request.model,
            temperature=request.temperature,
            max_tokens=request.max_tokens,
            tools=tools,
            tool_choice=request.tool_choice or "auto",
        )

    async def stream_chat(self, request: LlmChatRequest) -> AsyncIterator[LlmStreamChunk]:
        stream = self._router.stream_chat(request.messages, self.completion_options(request))
        try:
            async for chunk in stream:
                if chunk.get("type") == "tool":
                    await self._handle_tool_chunk(chunk)
                    continue
                yield chunk
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    async def chat(self, request: LlmChatRequest) -> LlmChatResponse:
        parts: list[str] = []
        async with aclosing(self.stream_chat(request)) as chunks:
            async for chunk in chunks:
                if chunk.get("type") == "text":
                    parts.append(chunk.get("delta") or "")
                elif chunk.get("type") == "error":
                    error = chunk.get("error")
                    if isinstance(error, Exception):
                        raise error
                    raise LlmError(get_error_message(error))
        return LlmChatResponse(content="".join(parts))

    async def _handle_tool_chunk(self, chunk: LlmStreamChunk) -> None:
        name = chunk.get("name") or chunk.get("tool_name")
        if name != CAPTURE_CONCEPTS_TOOL_NAME:
            logger.debug("Dropping tool call %s; only %s is handled", name, CAPTURE_CONCEPTS_TOOL_NAME)
            return

        concepts = parse_captured_concepts(_tool_payload(chunk))
        if not concepts:
            return

        try:
            node_ids = await self._concept_handler.resolve_and_upsert(concepts, self._graph_write)
        except Exception as e:
            logger.warning("Concept resolution failed for %d concepts: %s", len(concepts), e)
            concept_capture_failures_total.labels(stage="resolve").inc()
            return

        before = len(self.captured)
        self.captured.update(node_ids or [])
        added = len(self.captured) - before
        if added:
            concepts_captured_total.inc(added)
        logger.info("Captured %d concepts -> %d new node ids", len(concepts), added)
