from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import logging
import os

import httpx

from stilltrue.services.errors import UpstreamError
from stilltrue.utils.env import env_float
from stilltrue.utils.http import retry_request

logger = logging.getLogger("web_search")

_DEFAULT_ENDPOINT = "https://api.firecrawl.dev/v1/search"


@dataclass(frozen=True)
class SearchResult:
    url: str
    title: str
    content: str
    description: str = ""


class FirecrawlSearch:
    """Firecrawl-compatible web search. Without an API key every search is empty."""

    def __init__(self, api_key: Optional[str] = None, endpoint: Optional[str] = None,
                 timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key if api_key is not None else os.getenv("FIRECRAWL_API_KEY", "")
        self.endpoint = endpoint or os.getenv("FIRECRAWL_ENDPOINT") or _DEFAULT_ENDPOINT
        self.timeout = timeout or env_float("SEARCH_TIMEOUT_SEC", 15.0, 1.0, 60.0)
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def search(self, query: str, limit: int = 3) -> List[SearchResult]:
        """Search results carrying both a URL and some content; [] on any failure."""
        if not self.enabled:
            logger.debug("Search disabled, skipping %r", query)
            return []
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        payload = {"query": query, "limit": limit}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await retry_request(client, "POST", self.endpoint, headers=headers, json=payload)
            data = resp.json()
        except (UpstreamError, ValueError) as e:
            logger.warning("Search failed for %r: %s", query, e)
            return []
        return _results(data)


def _results(data: Any) -> List[SearchResult]:
    items = data.get("data") if isinstance(data, dict) else None
    if not isinstance(items, list):
        return []
    out: List[SearchResult] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        url = item.get("url") or ""
        content = item.get("content") or item.get("markdown") or item.get("description") or ""
        if not url or not content:
            continue
        out.append(SearchResult(
            url=url,
            title=item.get("title") or "Untitled",
            content=content,
            description=item.get("description") or "",
        ))
    return out


def result_dict(result: SearchResult) -> Dict[str, str]:
    return {"url": result.url, "title": result.title, "content": result.content,
            "description": result.description}
