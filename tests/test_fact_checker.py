import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from stilltrue.main import app
from stilltrue.services.errors import InputError, PipelineError, UpstreamError
from stilltrue.services.fact_checker import FactChecker, get_fact_checker, is_trusted_url, trusted_sources
from stilltrue.services.llm_adapter import LLMAdapter

client = TestClient(app)


class CannedLLM(LLMAdapter):
    def __init__(self, text):
        self.text = text
        self.prompts = []

    async def generate(self, prompt, max_tokens=1024, temperature=0.2, system=None):
        self.prompts.append(prompt)
        return {"text": self.text, "raw": {}, "usage": {}}


class DownLLM(LLMAdapter):
    async def generate(self, prompt, max_tokens=1024, temperature=0.2, system=None):
        raise UpstreamError("timeout")


def _verdict(**fields) -> str:
    base = {
        "isStillValid": False,
        "originalStatement": "ignored",
        "correction": "Goldfish remember for months.",
        "yearDebunked": "2003",
        "explanation": "See https://en.wikipedia.org/wiki/Goldfish and https://www.britannica.com/animal/goldfish. "
                       "Also https://random-blog.example.com/fish.",
        "confidence": "HIGH",
    }
    base.update(fields)
    return "```json\n" + json.dumps(base) + "\n```"


def test_trusted_domains():
    assert is_trusted_url("https://en.wikipedia.org/wiki/X")
    assert is_trusted_url("https://www.britannica.com/topic/x")
    assert is_trusted_url("https://biology.stanford.edu/page")
    assert is_trusted_url("https://www.nasa.gov/x")
    assert is_trusted_url("https://www.nature.com/articles/x")
    assert not is_trusted_url("https://notwikipedia.org.evil.com/x")
    assert not is_trusted_url("https://myblog.com/wikipedia.org")


def test_trusted_sources_titles_and_dedup():
    text = "Read https://www.britannica.com/a. Again https://www.britannica.com/a, and http://x.com/y"
    assert trusted_sources(text) == [{"title": "britannica.com", "url": "https://www.britannica.com/a"}]


def test_debunked_verdict_is_normalized():
    checker = FactChecker(llm=CannedLLM(_verdict()))
    out = asyncio.run(checker.check("  Goldfish have a three second memory.  "))
    assert out["isStillValid"] is False
    assert out["originalStatement"] == "Goldfish have a three second memory."
    assert out["yearDebunked"] == 2003
    assert out["correction"] == "Goldfish remember for months."
    assert out["confidence"] == "high"
    assert [s["title"] for s in out["sources"]] == ["en.wikipedia.org", "britannica.com"]


def test_still_valid_drops_correction_fields():
    checker = FactChecker(llm=CannedLLM(_verdict(isStillValid=True)))
    out = asyncio.run(checker.check("Water boils at 100 degrees at sea level."))
    assert out["isStillValid"] is True
    assert "correction" not in out and "yearDebunked" not in out


def test_non_finite_debunk_year_is_omitted():
    checker = FactChecker(llm=CannedLLM(_verdict(yearDebunked=float("inf"))))
    out = asyncio.run(checker.check("Goldfish have a three second memory."))
    assert out["isStillValid"] is False
    assert "yearDebunked" not in out
    assert out["correction"] == "Goldfish remember for months."


def test_no_trusted_source_downgrades_confidence():
    checker = FactChecker(llm=CannedLLM(_verdict(explanation="Trust me, https://myblog.com/post")))
    out = asyncio.run(checker.check("Goldfish have a three second memory."))
    assert out["confidence"] == "low"
    assert out["sources"] == []


def test_unparseable_output_gives_low_confidence_default():
    out = asyncio.run(FactChecker(llm=CannedLLM("I think it is true.")).check("The Earth orbits the Sun."))
    assert out["isStillValid"] is True
    assert out["confidence"] == "low"
    assert "Unable to verify" in out["explanation"]


def test_non_boolean_verdict_and_transport_failure_raise():
    with pytest.raises(PipelineError) as exc:
        asyncio.run(FactChecker(llm=CannedLLM(_verdict(isStillValid="no"))).check("The Earth orbits the Sun."))
    assert exc.value.stage == "parsing_validation"

    with pytest.raises(PipelineError) as exc:
        asyncio.run(FactChecker(llm=DownLLM()).check("The Earth orbits the Sun."))
    assert exc.value.stage == "ai_generation"


def test_statement_length_bounds():
    checker = FactChecker(llm=CannedLLM(_verdict()))
    for bad in ("", "   ", "too short", "x" * 1001):
        with pytest.raises(InputError):
            asyncio.run(checker.check(bad))


def test_route_renders_errors():
    app.dependency_overrides[get_fact_checker] = lambda: FactChecker(llm=CannedLLM(_verdict()))
    try:
        r = client.post("/check-single-fact", json={"statement": "Goldfish have a three second memory."})
        assert r.status_code == 200
        assert r.json()["yearDebunked"] == 2003

        r = client.post("/check-single-fact", json={"statement": "short"})
        assert r.status_code == 400
        assert "statement" in r.json()["error"]

        r = client.post("/check-single-fact", json={})
        assert r.status_code == 400

        app.dependency_overrides[get_fact_checker] = lambda: FactChecker(llm=DownLLM())
        r = client.post("/check-single-fact", json={"statement": "Goldfish have a three second memory."})
        assert r.status_code == 500
        body = r.json()
        assert body["stage"] == "ai_generation"
        assert body["suggestion"]
    finally:
        app.dependency_overrides.clear()
