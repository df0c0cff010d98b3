"""Tests for the Ollama router using httpx.MockTransport."""

import json

import httpx
import pytest

from regintel.errors import LlmError
from regintel.llm.ollama import OllamaRouter
from regintel.llm.types import LlmCompletionOptions
from regintel.schemas.schemas import ChatMessage
from regintel.services.concept_capture import CAPTURE_CONCEPTS_TOOL

MESSAGES = [
    ChatMessage(role="system", content="You are a research tool."),
    ChatMessage(role="user", content="What is VAT?"),
]


def _ndjson(*lines: dict) -> bytes:
    return "\n".join(json.dumps(line) for line in lines).encode() + b"\n"


def _router(handler) -> OllamaRouter:
    return OllamaRouter(
        "http://ollama:11434/",
        "qwen3:8b",
        transport=httpx.MockTransport(handler),
    )


async def _collect(router, options=None) -> list[dict]:
    return [chunk async for chunk in router.stream_chat(MESSAGES, options)]


class TestPayload:
    def test_defaults_and_messages(self):
        payload = _router(lambda r: None).build_payload(MESSAGES, LlmCompletionOptions())
        assert payload["model"] == "qwen3:8b"
        assert payload["stream"] is True
        assert payload["messages"][1] == {"role": "user", "content": "What is VAT?"}
        assert payload["options"] == {"temperature": 0.3, "num_predict": 2048}
        assert "tools" not in payload

    def test_overrides_and_tools_in_ollama_format(self):
        options = LlmCompletionOptions(
            model="llama3.1:8b", temperature=0.0, max_tokens=256, tools=[CAPTURE_CONCEPTS_TOOL]
        )
        payload = _router(lambda r: None).build_payload(MESSAGES, options)
        assert payload["model"] == "llama3.1:8b"
        assert payload["options"] == {"temperature": 0.0, "num_predict": 256}
        [tool] = payload["tools"]
        assert tool["type"] == "function"
        assert tool["function"]["name"] == "capture_concepts"
        assert tool["function"]["parameters"]["required"] == ["concepts"]


@pytest.mark.asyncio
class TestStreamChat:
    async def test_text_tool_and_done_chunks(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, content=_ndjson(
                {"message": {"role": "assistant", "content": "Hello "}, "done": False},
                {"message": {"role": "assistant", "content": "", "tool_calls": [
                    {"function": {"name": "capture_concepts", "arguments": {"concepts": [{"label": "VAT"}]}}},
                ]}, "done": False},
                {"message": {"role": "assistant", "content": "world"}, "done": False},
                {"message": {"role": "assistant", "content": ""}, "done": True},
            ))

        chunks = await _collect(_router(handler))

        assert chunks == [
            {"type": "text", "delta": "Hello "},
            {"type": "tool", "name": "capture_concepts", "args_json": {"concepts": [{"label": "VAT"}]}},
            {"type": "text", "delta": "world"},
            {"type": "done"},
        ]
        assert str(requests[0].url) == "http://ollama:11434/api/chat"
        assert json.loads(requests[0].content)["stream"] is True

    async def test_non_json_lines_are_skipped(self):
        def handler(request):
            return httpx.Response(200, content=b"garbage\n" + _ndjson({"message": {"content": "ok"}, "done": True}))

        chunks = await _collect(_router(handler))
        assert chunks == [{"type": "text", "delta": "ok"}, {"type": "done"}]

    async def test_http_error_status_yields_error_chunk(self):
        chunks = await _collect(_router(lambda r: httpx.Response(500, content=b"model not loaded")))

        [chunk] = chunks
        assert chunk["type"] == "error"
        assert isinstance(chunk["error"], LlmError)
        assert chunk["error"].status_code == 500
        assert "model not loaded" in str(chunk["error"])

    async def test_provider_error_line_yields_error_chunk(self):
        def handler(request):
            return httpx.Response(200, content=_ndjson(
                {"message": {"content": "par"}, "done": False},
                {"error": "context length exceeded"},
            ))

        chunks = await _collect(_router(handler))
        assert chunks[0] == {"type": "text", "delta": "par"}
        assert chunks[1]["type"] == "error"
        assert str(chunks[1]["error"]) == "context length exceeded"
        assert len(chunks) == 2

    async def test_transport_failure_yields_error_chunk(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        [chunk] = await _collect(_router(handler))
        assert chunk["type"] == "error"
        assert "connection refused" in str(chunk["error"])
