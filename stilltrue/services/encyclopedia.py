"""Wikipedia lookups: background context for prompts and per-fact cross-checks."""

from typing import Any, Dict, List, Optional
import asyncio
import logging
import re
from urllib.parse import quote

import httpx

from stilltrue.services.context_cache import TTLCache, context_cache
from stilltrue.services.errors import UpstreamError
from stilltrue.services.fact_record import FactValidation
from stilltrue.utils.env import env_float
from stilltrue.utils.http import retry_request, user_agent

logger = logging.getLogger("encyclopedia")

GENERIC_CONTEXT = (
    "No Wikipedia context available - MUST use only well-documented historical facts with verifiable sources"
)

_TAG_RE = re.compile(r"<[^>]*>")
_MAX_TOPICS = 4
_EXTRACT_CHARS = 500


def wiki_language(language: str) -> str:
    return "de" if (language or "").lower() == "de" else "en"


def article_url(title: str, language: str = "en") -> str:
    return f"https://{wiki_language(language)}.wikipedia.org/wiki/{quote(title.replace(' ', '_'))}"


def context_topics(country: str, year: int) -> List[str]:
    """Search topics for background context, picked by historical period."""
    if year < 500:
        return [
            f"Ancient {country} education",
            "Education in classical antiquity",
            f"Ancient philosophy {country}",
            f"{year} history",
        ]
    if year < 1500:
        return [
            f"Medieval education {country}",
            "Medieval university",
            "Scholasticism",
            "Medieval science",
        ]
    if year < 1800:
        return [
            f"Education in the {year // 100 + 1}th century",
            f"{country} education history",
            "Renaissance education",
            "Scientific Revolution",
        ]
    return [
        f"{country} education history",
        f"{year} education",
        "List of common misconceptions",
        "Science education history",
    ]


def crosscheck_terms(statement: str) -> str:
    """Up to three long words from a statement, minus the 'In 1990, students in X' framing."""
    text = re.sub(r"In \d{4},", "", statement or "")
    text = re.sub(r"students in \w+", "", text)
    words = [w.strip(".,;:!?\"'()") for w in text.split()]
    return " ".join([w for w in words if len(w) > 5][:3])


class WikipediaClient:
    def __init__(self, timeout: Optional[float] = None, cache: Optional[TTLCache] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout if timeout is not None else env_float("WIKI_TIMEOUT_SEC", 5.0, 0.5, 30.0)
        self.cache = cache if cache is not None else context_cache
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            headers={"User-Agent": user_agent()},
        )

    async def _api(self, client: httpx.AsyncClient, language: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"https://{wiki_language(language)}.wikipedia.org/w/api.php"
        query = {"action": "query", "format": "json", "origin": "*", **params}
        resp = await retry_request(client, "GET", url, params=query)
        data = resp.json()
        return data if isinstance(data, dict) else {}

    async def _search(self, client: httpx.AsyncClient, query: str, language: str, limit: int) -> List[Dict[str, str]]:
        data = await self._api(client, language, {"list": "search", "srsearch": query, "srlimit": limit})
        hits = (data.get("query") or {}).get("search") or []
        out = []
        for hit in hits:
            if isinstance(hit, dict) and hit.get("title"):
                out.append({
                    "title": str(hit["title"]),
                    "snippet": _TAG_RE.sub("", str(hit.get("snippet") or "")),
                })
        return out

    async def _extract(self, client: httpx.AsyncClient, title: str, language: str) -> str:
        data = await self._api(client, language, {
            "titles": title,
            "prop": "extracts",
            "exintro": "true",
            "explaintext": "true",
        })
        pages = (data.get("query") or {}).get("pages") or {}
        for page in pages.values():
            if isinstance(page, dict) and page.get("extract"):
                return str(page["extract"])
        return ""

    async def search(self, query: str, language: str = "en", limit: int = 2) -> List[Dict[str, str]]:
        async with self._client() as client:
            return await self._search(client, query, language, limit)

    async def _topic_context(self, client: httpx.AsyncClient, topic: str, language: str) -> str:
        hits = await self._search(client, topic, language, 2)
        if not hits:
            return ""
        title = hits[0]["title"]
        extract = await self._extract(client, title, language)
        if not extract:
            return ""
        return f"[{title}]: {extract[:_EXTRACT_CHARS]}"

    async def fetch_context(self, country: str, year: int, language: str = "en") -> str:
        """Background text for the generation prompt; never raises."""
        key = (country.lower(), year, wiki_language(language))
        cached = self.cache.get(key)
        if cached:
            return cached

        topics = context_topics(country, year)[:_MAX_TOPICS]
        try:
            async with self._client() as client:
                results = await asyncio.gather(
                    *(self._topic_context(client, t, language) for t in topics),
                    return_exceptions=True,
                )
        except Exception:
            logger.exception("Wikipedia context retrieval failed for %s %s", country, year)
            return GENERIC_CONTEXT

        contexts = []
        for topic, res in zip(topics, results):
            if isinstance(res, BaseException):
                logger.info("Wikipedia fetch failed for %r: %s", topic, res)
            elif res:
                contexts.append(res)

        if not contexts:
            return GENERIC_CONTEXT
        text = "\n\n".join(contexts)
        self.cache.set(key, text)
        return text

    async def snippet(self, topic: str, language: str = "en", max_chars: int = 200) -> str:
        try:
            hits = await self.search(topic, language, limit=1)
        except (UpstreamError, httpx.HTTPError, ValueError) as e:
            logger.info("Wikipedia snippet fetch failed for %r: %s", topic, e)
            return ""
        return hits[0]["snippet"][:max_chars] if hits else ""

    async def cross_check(self, statement: str, language: str = "en") -> FactValidation:
        """Corroborate a statement by searching its key terms. Never raises."""
        terms = crosscheck_terms(statement)
        if not terms:
            return FactValidation(is_valid=False, confidence_score=0.3)
        try:
            hits = await self.search(terms, language, limit=2)
        except (UpstreamError, httpx.HTTPError, ValueError) as e:
            logger.info("Wikipedia cross-check failed: %s", e)
            return FactValidation(is_valid=False, confidence_score=0.5)
        if not hits:
            return FactValidation(is_valid=False, confidence_score=0.3)
        top = hits[0]
        return FactValidation(
            is_valid=True,
            confidence_score=0.7,
            sources=[article_url(top["title"], language)],
            context=top["snippet"] or None,
        )
