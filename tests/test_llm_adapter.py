import asyncio
import json

import httpx
import pytest

from stilltrue.services.errors import UpstreamError
from stilltrue.services.llm_adapter import (
    GeminiAdapter,
    MockLLMAdapter,
    OpenAICompatibleAdapter,
    get_llm_adapter,
)
from stilltrue.services.response_parser import parse_fact_response


def _adapter(handler) -> OpenAICompatibleAdapter:
    return OpenAICompatibleAdapter(endpoint="https://gateway.test/v1/", key="k", model="m",
                                   transport=httpx.MockTransport(handler))


def test_openai_compatible_sends_system_and_reads_content():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "choices": [{"message": {"content": "  hello  "}}],
            "usage": {"prompt_tokens": 3, "completion_tokens": 1, "total_tokens": 4},
        })

    out = asyncio.run(_adapter(handler).generate("hi", max_tokens=50, temperature=0.4, system="be brief"))
    assert out["text"] == "hello"
    assert out["usage"]["total_tokens"] == 4
    assert seen["url"] == "https://gateway.test/v1/chat/completions"
    assert seen["auth"] == "Bearer k"
    assert seen["body"]["messages"][0] == {"role": "system", "content": "be brief"}
    assert seen["body"]["messages"][1] == {"role": "user", "content": "hi"}
    assert seen["body"]["temperature"] == 0.4


def test_openai_compatible_extracts_content_text_list():
    payload = {"choices": [{"message": {"content": [{"type": "text", "text": "alpha"}, {"type": "text", "text": "beta"}]}}]}
    out = asyncio.run(_adapter(lambda r: httpx.Response(200, json=payload)).generate("hi"))
    assert out["text"] == "alpha beta"


def test_openai_compatible_empty_choices_give_empty_text():
    out = asyncio.run(_adapter(lambda r: httpx.Response(200, json={"choices": []})).generate("hi"))
    assert out["text"] == ""


def test_openai_compatible_raises_upstream_error_on_auth_failure():
    with pytest.raises(UpstreamError):
        asyncio.run(_adapter(lambda r: httpx.Response(401, text="no")).generate("hi"))


def test_gemini_joins_candidate_parts():
    seen = {}

    def handler(request):
        seen["key"] = request.url.params["key"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "candidates": [{"content": {"parts": [{"text": "one "}, {"text": "two"}]}}],
            "usageMetadata": {"promptTokenCount": 2, "candidatesTokenCount": 2, "totalTokenCount": 4},
        })

    adapter = GeminiAdapter(key="g", model="gemini-test", transport=httpx.MockTransport(handler))
    out = asyncio.run(adapter.generate("hi", system="sys"))
    assert out["text"] == "one two"
    assert out["usage"]["total_tokens"] == 4
    assert seen["key"] == "g"
    assert seen["body"]["systemInstruction"]["parts"][0]["text"] == "sys"


def test_mock_adapter_payload_parses():
    out = asyncio.run(MockLLMAdapter().generate("anything"))
    res = parse_fact_response(out["text"])
    assert res.ok
    assert len(res.facts) == 2


def test_provider_selection(monkeypatch):
    monkeypatch.delenv("LLM_PROVIDER", raising=False)
    assert isinstance(get_llm_adapter(), MockLLMAdapter)

    monkeypatch.setenv("LLM_PROVIDER", "openai")
    monkeypatch.delenv("LLM_ENDPOINT", raising=False)
    monkeypatch.setenv("LLM_API_KEY", "secret")
    adapter = get_llm_adapter()
    assert isinstance(adapter, OpenAICompatibleAdapter)
    assert adapter.endpoint == "https://api.openai.com/v1"

    monkeypatch.setenv("LLM_PROVIDER", "gemini")
    monkeypatch.setenv("GEMINI_API_KEY", "g")
    assert isinstance(get_llm_adapter(), GeminiAdapter)

    monkeypatch.setenv("LLM_PROVIDER", "carrier-pigeon")
    with pytest.raises(RuntimeError):
        get_llm_adapter()


def test_openai_provider_requires_key(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "openai-compatible")
    for name in ("LLM_API_KEY", "LOVABLE_API_KEY", "OPENAI_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    with pytest.raises(RuntimeError):
        get_llm_adapter()
