import uuid

import pytest
from fastapi.testclient import TestClient

from stilltrue.db import create_db_and_tables
from stilltrue.main import app
from stilltrue.services.errors import UpstreamError
from stilltrue.services.fact_pipeline import FactPipeline, PipelineConfig, get_fact_pipeline
from stilltrue.services.fact_record import FactValidation
from stilltrue.services.llm_adapter import LLMAdapter, MockLLMAdapter
from stilltrue.services.quick_fact import QuickFactService, get_quick_fact_service
from stilltrue.services.rate_limiter import rate_limiter

client = TestClient(app)


def setup_module(module):
    create_db_and_tables()


class StubWiki:
    async def fetch_context(self, country, year, language="en"):
        return "Stub encyclopedia context."

    async def cross_check(self, statement, language="en"):
        return FactValidation(is_valid=False, confidence_score=0.3)

    async def snippet(self, topic, language="en", max_chars=200):
        return "A short snippet."


class FailingLLM(LLMAdapter):
    async def generate(self, prompt, max_tokens=1024, temperature=0.2, system=None):
        raise UpstreamError("gateway down", status_code=502)


class ExplodingPipeline:
    async def generate(self, country, graduation_year, language="en"):
        raise AssertionError("generation must not start for invalid input")


@pytest.fixture(autouse=True)
def _isolation():
    rate_limiter.clear()
    yield
    app.dependency_overrides.clear()


def _use_pipeline(llm=None):
    pipeline = FactPipeline(llm=llm or MockLLMAdapter(), encyclopedia=StubWiki(),
                            config=PipelineConfig(crosscheck_delay=0.0))
    app.dependency_overrides[get_fact_pipeline] = lambda: pipeline
    return pipeline


def _country() -> str:
    return f"Routeland-{uuid.uuid4().hex[:8]}"


def test_generate_then_cached():
    _use_pipeline()
    country = _country()
    r = client.post("/generate-facts", json={"country": country, "graduationYear": 1990, "language": "en"})
    assert r.status_code == 200
    first = r.json()
    assert first["cached"] is False
    assert "cacheAge" not in first
    assert 4 <= len(first["facts"]) <= 8
    assert all(f["yearDebunked"] > 1990 for f in first["facts"])
    assert first["qualityMetrics"]["factsGenerated"] == len(first["facts"])

    r = client.post("/generate-facts", json={"country": country, "graduationYear": 1990})
    assert r.status_code == 200
    second = r.json()
    assert second["cached"] is True
    assert second["cacheAge"] == 0
    assert second["facts"] == first["facts"]


def test_missing_graduation_year_is_400_without_generation():
    app.dependency_overrides[get_fact_pipeline] = lambda: ExplodingPipeline()
    r = client.post("/generate-facts", json={"country": "Germany"})
    assert r.status_code == 400
    body = r.json()
    assert "graduationYear" in body["error"]
    assert body["details"]


def test_unsupported_language_and_future_year_are_400():
    _use_pipeline()
    r = client.post("/generate-facts", json={"country": "Germany", "graduationYear": 1990, "language": "fr"})
    assert r.status_code == 400
    r = client.post("/generate-facts", json={"country": "Germany", "graduationYear": 3000})
    assert r.status_code == 400
    assert "graduationYear" in r.json()["error"]


def test_gateway_down_still_answers_200_with_facts():
    _use_pipeline(llm=FailingLLM())
    r = client.post("/generate-facts", json={"country": _country(), "graduationYear": 1979})
    assert r.status_code == 200
    facts = r.json()["facts"]
    assert len(facts) >= 1
    assert all(f["yearDebunked"] > 1979 for f in facts)


def test_rate_limit_returns_429(monkeypatch):
    monkeypatch.setenv("GENERATE_RATE_LIMIT_PER_MIN", "1")
    _use_pipeline()
    body = {"country": _country(), "graduationYear": 2000}
    assert client.post("/generate-facts", json=body).status_code == 200
    r = client.post("/generate-facts", json=body)
    assert r.status_code == 429
    assert "error" in r.json()


def test_options_preflight_is_empty_200():
    r = client.options("/generate-facts")
    assert r.status_code == 200
    assert r.content == b""

    r = client.options("/check-single-fact", headers={
        "Origin": "https://example.org",
        "Access-Control-Request-Method": "POST",
    })
    assert r.status_code == 200
    assert "access-control-allow-origin" in r.headers


def test_quick_fun_fact_and_its_fallback():
    app.dependency_overrides[get_quick_fact_service] = lambda: QuickFactService(llm=MockLLMAdapter(), encyclopedia=StubWiki())
    r = client.post("/quick-fun-fact", json={"country": "Germany", "graduationYear": 1990})
    assert r.status_code == 200
    assert r.json()["fallback"] is False
    assert "Pluto" in r.json()["funFact"]

    app.dependency_overrides[get_quick_fact_service] = lambda: QuickFactService(llm=FailingLLM(), encyclopedia=StubWiki())
    r = client.post("/quick-fun-fact", json={"country": "Germany", "graduationYear": 1990, "language": "de"})
    assert r.status_code == 200
    assert r.json()["fallback"] is True
    assert r.json()["funFact"].startswith("Im Jahr 1990")


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["db"] == "ok"
