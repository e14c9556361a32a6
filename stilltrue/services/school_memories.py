"""School memory research: web sources, LLM summary, provenance filtering, storage."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
import asyncio
import logging

from fastapi.concurrency import run_in_threadpool
from sqlmodel import select

from stilltrue.db import get_session, upsert_row
from stilltrue.models import SchoolMemory
from stilltrue.services.errors import InputError, PipelineError, UpstreamError
from stilltrue.services.fact_cache import as_utc
from stilltrue.services.llm_adapter import LLMAdapter, get_llm_adapter
from stilltrue.services.observability import metrics
from stilltrue.services.prompts import SCHOOL_SYSTEM_PROMPT, school_memories_prompt, shareable_content
from stilltrue.services.response_parser import extract_json_object
from stilltrue.services.web_search import FirecrawlSearch, SearchResult, result_dict
from stilltrue.utils.env import env_float, env_int

logger = logging.getLogger("school_memories")

CATEGORIES = ("schoolWebsite", "localNews", "historicalRecords", "educationalChanges")
SECTIONS = ("whatHappenedAtSchool", "nostalgiaFactors", "localContext")
_SUMMARY_PER_CATEGORY = 3
_SUMMARY_CONTENT_CHARS = 300


def search_queries(school_name: str, city: str, country: str, year: int) -> List[str]:
    return [
        f'"{school_name}" {city} school website official',
        f'"{school_name}" {city} school history',
        f"{school_name} {city} school {year}",
        f"{school_name} {city} {year} graduation news",
        f"{city} school news {year}",
        f"{city} education {year} changes",
        f"{city} {year} local events history",
        f"{city} newspaper {year} school",
        f"{country} education system {year} changes",
        f"school curriculum changes {year}",
    ]


def categorize(result: SearchResult, school_name: str) -> str:
    url = result.url.lower()
    text = f"{result.title} {result.content}".lower()
    if school_name.lower() in text and ("school" in url or "school" in text):
        return "schoolWebsite"
    if "news" in url or "zeitung" in url or "news" in text or "artikel" in text:
        return "localNews"
    if "history" in text or "geschichte" in text or "archive" in url:
        return "historicalRecords"
    if "education" in text or "bildung" in text or "curriculum" in text:
        return "educationalChanges"
    return "schoolWebsite"


@dataclass
class ResearchSources:
    queries: List[str]
    buckets: Dict[str, List[SearchResult]] = field(default_factory=lambda: {c: [] for c in CATEGORIES})
    search_success: bool = False

    def add(self, category: str, result: SearchResult) -> None:
        bucket = self.buckets[category]
        if any(r.url == result.url for r in bucket):
            return
        bucket.append(result)

    @property
    def total(self) -> int:
        return sum(len(b) for b in self.buckets.values())

    def breakdown(self) -> Dict[str, int]:
        return {c: len(b) for c, b in self.buckets.items()}

    def summary(self) -> str:
        lines: List[str] = []
        for category, results in self.buckets.items():
            if not results:
                continue
            lines.append(f"{category.upper()}:")
            for r in results[:_SUMMARY_PER_CATEGORY]:
                lines.append(f"- sourceName: {r.title}\n  sourceUrl: {r.url}\n  content: {r.content[:_SUMMARY_CONTENT_CHARS]}")
        return "\n".join(lines)


def has_provenance(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    url = item.get("sourceUrl")
    name = item.get("sourceName")
    return (
        isinstance(url, str) and url.strip().lower().startswith(("http://", "https://"))
        and isinstance(name, str) and bool(name.strip())
    )


def filter_unsourced(memories: Dict[str, Any]) -> Tuple[Dict[str, Any], int]:
    """Drop sub-items lacking a source URL and name. Returns ``(cleaned, removed)``."""
    cleaned = dict(memories)
    removed = 0
    for section in SECTIONS:
        items = memories.get(section)
        if not isinstance(items, list):
            cleaned[section] = []
            continue
        kept = [item for item in items if has_provenance(item)]
        removed += len(items) - len(kept)
        cleaned[section] = kept
    quotes = memories.get("shareableQuotes")
    cleaned["shareableQuotes"] = [q for q in quotes if isinstance(q, str)] if isinstance(quotes, list) else []
    return cleaned, removed


def research_confidence(total_sources: int) -> str:
    if total_sources > 3:
        return "high"
    if total_sources > 0:
        return "medium"
    return "low"


def _clean_text(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InputError(f"Missing required field: {name}")
    return value.strip()


class SchoolMemoryStore:
    def get(self, school_name: str, city: str, graduation_year: int) -> Optional[SchoolMemory]:
        with get_session() as db:
            q = select(SchoolMemory).where(
                (SchoolMemory.school_name == school_name)
                & (SchoolMemory.city == city)
                & (SchoolMemory.graduation_year == graduation_year)
            )
            return db.exec(q).one_or_none()

    def upsert(self, school_name: str, city: str, country: str, graduation_year: int,
               memories: Dict[str, Any], shareable: Dict[str, Any], research: Dict[str, Any]) -> None:
        now = datetime.now(timezone.utc)
        table = SchoolMemory.__table__
        row = SchoolMemory(school_name=school_name, city=city, country=country,
                           graduation_year=graduation_year, school_memories_data=memories,
                           shareable_content=shareable, research_sources=research,
                           created_at=now, updated_at=now)
        upsert_row(
            table,
            values={c.name: getattr(row, c.name) for c in table.columns},
            conflict_cols=["school_name", "city", "graduation_year"],
            update={
                "country": country,
                "school_memories_data": memories,
                "shareable_content": shareable,
                "research_sources": research,
                "created_at": now,
                "updated_at": now,
            },
        )


class SchoolMemoryResearcher:
    def __init__(self, llm: Optional[LLMAdapter] = None, search: Optional[FirecrawlSearch] = None,
                 store: Optional[SchoolMemoryStore] = None, retention_days: Optional[int] = None,
                 query_delay: Optional[float] = None):
        self._llm = llm
        self.search = search or FirecrawlSearch()
        self.store = store or SchoolMemoryStore()
        self.retention_days = env_int("FACTS_CACHE_RETENTION_DAYS", 7, 0, 365) if retention_days is None else retention_days
        self.query_delay = env_float("SEARCH_QUERY_DELAY_SEC", 0.5, 0.0, 5.0) if query_delay is None else query_delay

    async def research(self, school_name: str, city: str, graduation_year: int,
                       country: str = "Germany") -> Dict[str, Any]:
        school_name = _clean_text(school_name, "schoolName")
        city = _clean_text(city, "city")
        country = _clean_text(country or "Germany", "country")
        if isinstance(graduation_year, bool) or not isinstance(graduation_year, int) or graduation_year < 1:
            raise InputError("Missing required field: graduationYear")

        cached = await self._cached(school_name, city, graduation_year)
        if cached is not None:
            metrics.incr("school_memories_cache_hits")
            return cached

        with metrics.timed("school_memories_research"):
            sources = await self.collect_sources(school_name, city, country, graduation_year)
        logger.info("Research for %s/%s/%s found %d sources", school_name, city, graduation_year, sources.total)

        prompt = school_memories_prompt(school_name, city, country, graduation_year,
                                        sources.summary(), sources.total)
        llm = self._llm or get_llm_adapter()
        try:
            with metrics.timed("school_memories_llm"):
                out = await llm.generate(prompt, max_tokens=3000, temperature=0.3, system=SCHOOL_SYSTEM_PROMPT)
        except UpstreamError as e:
            logger.warning("School memory generation failed: %s", e)
            raise PipelineError("AI service unavailable", stage="ai_generation") from e

        obj, reason = extract_json_object(out.get("text", ""))
        if obj is None:
            logger.warning("School memory output unparseable: %s", reason)
            raise PipelineError("AI response was not valid JSON", stage="parsing_validation")

        memories, removed = filter_unsourced(obj)
        if removed:
            logger.info("Removed %d unsourced school memory items", removed)
            metrics.incr("school_memories_unsourced_removed", removed)
        confidence = research_confidence(sources.total)
        memories["dataQuality"] = {
            "confidenceLevel": confidence,
            "realSourcesFound": sources.total,
            "unsourcedItemsRemoved": removed,
            "sourcesBreakdown": sources.breakdown(),
        }
        shareable = shareable_content(school_name, graduation_year, sources.total, memories["shareableQuotes"])
        research_meta = {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "method": "real_sources_with_ai" if sources.search_success else "ai_generated_only",
            "total_sources_found": sources.total,
            "sources_breakdown": sources.breakdown(),
            "search_queries": sources.queries,
            "confidence_level": confidence,
            "sources": {c: [result_dict(r) for r in b] for c, b in sources.buckets.items()},
        }
        try:
            await run_in_threadpool(self.store.upsert, school_name, city, country, graduation_year,
                                    memories, shareable, research_meta)
        except Exception:
            logger.exception("Storing school memories failed for %s/%s/%s", school_name, city, graduation_year)

        return {
            "schoolMemories": memories,
            "shareableContent": shareable,
            "cached": False,
            "researchQuality": {
                "totalSourcesFound": sources.total,
                "confidenceLevel": confidence,
                "searchWorking": sources.search_success,
            },
        }

    async def collect_sources(self, school_name: str, city: str, country: str, year: int) -> ResearchSources:
        queries = search_queries(school_name, city, country, year)
        sources = ResearchSources(queries=queries)
        if not self.search.enabled:
            logger.info("Web search not configured; researching without sources")
            return sources
        for i, query in enumerate(queries):
            if i and self.query_delay > 0:
                await asyncio.sleep(self.query_delay)
            results = await self.search.search(query, limit=3)
            if results:
                sources.search_success = True
            for result in results:
                sources.add(categorize(result, school_name), result)
        return sources

    async def _cached(self, school_name: str, city: str, graduation_year: int) -> Optional[Dict[str, Any]]:
        try:
            row = await run_in_threadpool(self.store.get, school_name, city, graduation_year)
        except Exception:
            logger.exception("School memory cache read failed; treating as miss")
            return None
        if row is None:
            return None
        age = max(0, (datetime.now(timezone.utc) - as_utc(row.created_at)).days)
        if age > self.retention_days:
            return None
        return {
            "schoolMemories": row.school_memories_data,
            "shareableContent": row.shareable_content,
            "cached": True,
            "cacheAge": age,
        }


def get_school_researcher() -> SchoolMemoryResearcher:
    return SchoolMemoryResearcher()
