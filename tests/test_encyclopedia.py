import asyncio

import httpx

from stilltrue.services.context_cache import TTLCache
from stilltrue.services.encyclopedia import (
    GENERIC_CONTEXT,
    WikipediaClient,
    context_topics,
    crosscheck_terms,
)


def _wiki(handler) -> WikipediaClient:
    return WikipediaClient(timeout=1.0, cache=TTLCache(ttl=60), transport=httpx.MockTransport(handler))


def _search_and_extract(request):
    params = request.url.params
    if params.get("list") == "search":
        return httpx.Response(200, json={"query": {"search": [
            {"title": "Education in Germany", "snippet": "The <span>German</span> school system"},
        ]}})
    return httpx.Response(200, json={"query": {"pages": {"1": {"extract": "Schooling is a state matter."}}}})


def test_context_topics_by_period():
    assert context_topics("Greece", 300)[0] == "Ancient Greece education"
    assert context_topics("France", 1200)[0] == "Medieval education France"
    assert context_topics("England", 1650)[0] == "Education in the 17th century"
    assert "List of common misconceptions" in context_topics("Germany", 1990)


def test_crosscheck_terms_strip_framing():
    terms = crosscheck_terms("In 1990, students in Germany were taught that goldfish memories last seconds.")
    assert "1990" not in terms and "Germany" not in terms
    assert terms.split() == ["taught", "goldfish", "memories"]


def test_fetch_context_joins_extracts_and_memoizes():
    calls = []

    def handler(request):
        calls.append(request)
        return _search_and_extract(request)

    wiki = _wiki(handler)
    text = asyncio.run(wiki.fetch_context("Germany", 1990))
    assert "[Education in Germany]: Schooling is a state matter." in text
    made = len(calls)
    assert made > 0

    again = asyncio.run(wiki.fetch_context("Germany", 1990))
    assert again == text
    assert len(calls) == made


def test_fetch_context_degrades_to_generic_text(monkeypatch):
    monkeypatch.setenv("HTTP_MAX_RETRIES", "0")
    wiki = _wiki(lambda request: httpx.Response(500))
    assert asyncio.run(wiki.fetch_context("Germany", 1990)) == GENERIC_CONTEXT


def test_cross_check_outcomes(monkeypatch):
    monkeypatch.setenv("HTTP_MAX_RETRIES", "0")
    statement = "In 1990, students in Germany were taught that goldfish memories last seconds."

    hit = asyncio.run(_wiki(_search_and_extract).cross_check(statement))
    assert hit.is_valid is True
    assert hit.confidence_score == 0.7
    assert hit.sources == ["https://en.wikipedia.org/wiki/Education_in_Germany"]
    assert hit.context == "The German school system"

    empty = lambda request: httpx.Response(200, json={"query": {"search": []}})
    miss = asyncio.run(_wiki(empty).cross_check(statement))
    assert (miss.is_valid, miss.confidence_score) == (False, 0.3)

    failed = asyncio.run(_wiki(lambda request: httpx.Response(503)).cross_check(statement))
    assert (failed.is_valid, failed.confidence_score) == (False, 0.5)


def test_snippet_is_truncated_and_never_raises(monkeypatch):
    monkeypatch.setenv("HTTP_MAX_RETRIES", "0")
    assert asyncio.run(_wiki(_search_and_extract).snippet("education", max_chars=10)) == "The German"
    assert asyncio.run(_wiki(lambda request: httpx.Response(500)).snippet("education")) == ""
