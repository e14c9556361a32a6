"""LLM adapter interface and provider implementations."""

from typing import List, Dict, Any, Optional
import json
import logging
import os

import httpx

from stilltrue.utils.env import env_float
from stilltrue.utils.http import retry_request

logger = logging.getLogger("llm_adapter")

_LOVABLE_GATEWAY = "https://ai.gateway.lovable.dev/v1"
_GEMINI_BASE = "https://generativelanguage.googleapis.com/v1beta/models"


def _extract_usage(data: Dict[str, Any]) -> Dict[str, int]:
    usage = data.get("usage") or data.get("usageMetadata") or {}
    return {
        "prompt_tokens": int(usage.get("prompt_tokens", usage.get("promptTokenCount", 0)) or 0),
        "completion_tokens": int(usage.get("completion_tokens", usage.get("candidatesTokenCount", 0)) or 0),
        "total_tokens": int(usage.get("total_tokens", usage.get("totalTokenCount", 0)) or 0),
    }


class LLMAdapter:
    """Interface for text-generation providers.

    ``generate`` returns ``{"text": str, "raw": dict, "usage": dict}`` and
    raises ``UpstreamError`` when the provider cannot be reached.
    """

    name = "base"

    async def generate(self, prompt: str, max_tokens: int = 1024, temperature: float = 0.2,
                       system: Optional[str] = None) -> Dict[str, Any]:
        raise NotImplementedError()


class MockLLMAdapter(LLMAdapter):
    """Offline provider. Answers each prompt family with a fixed, well-formed payload."""

    name = "mock"

    _PAYLOAD = {
        "facts": [
            {
                "category": "Biology",
                "fact": "Students were taught that goldfish only have a three-second memory and forget their surroundings constantly.",
                "correction": "Goldfish can remember things for months and can be trained to respond to sounds and colours.",
                "yearDebunked": 2003,
                "mindBlowingFactor": "The 'three-second memory' line was repeated in classrooms for decades without any study behind it.",
                "sourceName": "https://en.wikipedia.org/wiki/Goldfish",
            },
            {
                "category": "Space",
                "fact": "Astronomy lessons listed Pluto as the ninth planet of the solar system in every textbook diagram.",
                "correction": "Since 2006 the IAU classifies Pluto as a dwarf planet, leaving eight planets.",
                "yearDebunked": 2006,
                "mindBlowingFactor": "A whole generation memorised a mnemonic for a planet that officially stopped being one.",
                "sourceName": "https://en.wikipedia.org/wiki/Pluto",
            },
        ],
        "educationProblems": [
            {
                "problem": "Textbooks updated slowly",
                "description": "Printed textbooks stayed in use for many years after the science changed.",
                "impact": "Several cohorts learned superseded facts.",
            }
        ],
    }

    _CHECK = {
        "isStillValid": False,
        "originalStatement": "",
        "correction": "The statement has been revised by later research.",
        "yearDebunked": 2000,
        "explanation": "See https://en.wikipedia.org/wiki/List_of_common_misconceptions for details.",
        "confidence": "medium",
    }

    _SCHOOL = {
        "whatHappenedAtSchool": [],
        "nostalgiaFactors": [],
        "localContext": [],
        "shareableQuotes": ["Who else remembers our school days?"],
    }

    def _respond(self, prompt: str, system: Optional[str]) -> str:
        system = system or ""
        if "fact-checker" in system:
            return json.dumps(dict(self._CHECK, originalStatement=prompt))
        if "school memories" in system:
            return json.dumps(self._SCHOOL)
        if "concise" in system:
            return "Students were taught that Pluto is the ninth planet of the solar system."
        return json.dumps(self._PAYLOAD)

    async def generate(self, prompt: str, max_tokens: int = 1024, temperature: float = 0.2,
                       system: Optional[str] = None) -> Dict[str, Any]:
        text = self._respond(prompt, system)
        return {"text": text, "raw": {}, "usage": {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}}


class OpenAICompatibleAdapter(LLMAdapter):
    """Adapter for OpenAI-compatible chat APIs (OpenAI, Lovable AI gateway, Groq)."""

    name = "openai-compatible"

    def __init__(self, endpoint: str, key: str, model: str, timeout: float = 25.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.endpoint = endpoint.rstrip("/")
        self.key = key
        self.model = model
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.key}",
            "Content-Type": "application/json",
        }

    def _extract_text(self, data: Dict[str, Any]) -> str:
        choices = data.get("choices") or []
        if not isinstance(choices, list) or not choices:
            return ""

        choice0 = choices[0] or {}
        message = choice0.get("message") or {}

        content = message.get("content")
        if isinstance(content, str) and content.strip():
            return content.strip()
        if isinstance(content, list):
            parts: List[str] = []
            for item in content:
                if isinstance(item, dict):
                    txt = item.get("text")
                    if isinstance(txt, str) and txt.strip():
                        parts.append(txt.strip())
            if parts:
                return " ".join(parts)

        text = choice0.get("text")
        if isinstance(text, str) and text.strip():
            return text.strip()

        return ""

    async def generate(self, prompt: str, max_tokens: int = 1024, temperature: float = 0.2,
                       system: Optional[str] = None) -> Dict[str, Any]:
        url = f"{self.endpoint}/chat/completions"
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        payload = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            resp = await retry_request(client, "POST", url, headers=self._headers(), json=payload)
        data = resp.json()
        return {"text": self._extract_text(data), "raw": data, "usage": _extract_usage(data)}


class GeminiAdapter(LLMAdapter):
    """Google AI Studio ``generateContent`` adapter (API key in the query string)."""

    name = "gemini"

    def __init__(self, key: str, model: str = "gemini-2.5-flash", timeout: float = 25.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.key = key
        self.model = model
        self.timeout = timeout
        self._transport = transport

    async def generate(self, prompt: str, max_tokens: int = 1024, temperature: float = 0.2,
                       system: Optional[str] = None) -> Dict[str, Any]:
        url = f"{_GEMINI_BASE}/{self.model}:generateContent"
        payload: Dict[str, Any] = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": temperature, "maxOutputTokens": max_tokens},
        }
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            resp = await retry_request(client, "POST", url, params={"key": self.key}, json=payload)
        data = resp.json()
        text = ""
        try:
            parts = data["candidates"][0]["content"]["parts"]
            text = "".join(p.get("text", "") for p in parts if isinstance(p, dict)).strip()
        except (KeyError, IndexError, TypeError):
            logger.warning("Unexpected Gemini response shape: %s", str(data)[:300])
        return {"text": text, "raw": data, "usage": _extract_usage(data)}


def get_llm_adapter() -> LLMAdapter:
    provider = os.getenv("LLM_PROVIDER", "mock").strip().lower()
    timeout = env_float("LLM_TIMEOUT_SEC", 25.0, 1.0, 120.0)

    if provider == "mock":
        return MockLLMAdapter()

    if provider == "gemini":
        key = os.getenv("GEMINI_API_KEY") or os.getenv("LLM_API_KEY")
        if not key:
            raise RuntimeError("GEMINI_API_KEY is not configured")
        return GeminiAdapter(key=key, model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"), timeout=timeout)

    if provider in ("openai-compatible", "openai", "lovable", "groq"):
        key = os.getenv("LLM_API_KEY") or os.getenv("LOVABLE_API_KEY") or os.getenv("OPENAI_API_KEY")
        default_endpoint = "https://api.openai.com/v1" if provider == "openai" else _LOVABLE_GATEWAY
        endpoint = os.getenv("LLM_ENDPOINT") or default_endpoint
        default_model = "gpt-4o-mini" if provider == "openai" else "google/gemini-2.5-flash"
        model = os.getenv("LLM_MODEL") or default_model
        if not key:
            raise RuntimeError("LLM_API_KEY is not configured for an OpenAI-compatible provider")
        return OpenAICompatibleAdapter(endpoint=endpoint, key=key, model=model, timeout=timeout)

    raise RuntimeError(f"LLM provider '{provider}' not implemented")
