"""Per-request fact generation pipeline.

cache check -> context retrieval -> generation fan-out -> parse/validate ->
cross-check scoring -> dedup -> rank -> fallback fill -> cache write.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from time import perf_counter
from typing import Any, Dict, Iterator, List, Optional, Tuple
import asyncio
import logging

from fastapi.concurrency import run_in_threadpool

from stilltrue.services.dedup import drop_duplicates
from stilltrue.services.encyclopedia import WikipediaClient
from stilltrue.services.errors import InputError, PipelineError, suggestion_for
from stilltrue.services.fact_cache import FactCache, fact_cache
from stilltrue.services.fact_record import EducationProblem, FactRecord, facts_to_wire
from stilltrue.services.fact_validator import (
    DEFAULT_WEIGHTS,
    ScoringWeights,
    passes_structural_checks,
    score_fact,
    try_normalize_fact,
)
from stilltrue.services.fallback_bank import fallback_education_problems, fallback_facts
from stilltrue.services.llm_adapter import LLMAdapter, get_llm_adapter
from stilltrue.services.observability import metrics
from stilltrue.services.prompts import (
    FACT_SYSTEM_PROMPT,
    GENERATION_VARIANTS,
    GenerationVariant,
    fact_generation_prompt,
)
from stilltrue.services.response_parser import ParseResult, parse_fact_response
from stilltrue.utils.env import env_bool, env_float, env_int

logger = logging.getLogger("fact_pipeline")

MAX_PROBLEMS = 5


@dataclass(frozen=True)
class PipelineConfig:
    max_facts: int = 8
    min_facts: int = 5
    fanout: int = 2
    crosscheck_limit: int = 12
    crosscheck_delay: float = 0.2
    retention_days: int = 7
    duplicate_threshold: float = 0.7
    crosscheck_enabled: bool = True

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        max_facts = env_int("FACTS_MAX", 8, 1, 20)
        return cls(
            max_facts=max_facts,
            min_facts=min(env_int("FACTS_MIN", 5, 1, 20), max_facts),
            fanout=env_int("FACTS_FANOUT", 2, 1, len(GENERATION_VARIANTS)),
            crosscheck_limit=env_int("FACTS_CROSSCHECK_LIMIT", 12, 0, 50),
            crosscheck_delay=env_float("FACTS_CROSSCHECK_DELAY_SEC", 0.2, 0.0, 5.0),
            retention_days=env_int("FACTS_CACHE_RETENTION_DAYS", 7, 0, 365),
            duplicate_threshold=env_float("FACTS_DUPLICATE_THRESHOLD", 0.7, 0.0, 1.0),
            crosscheck_enabled=env_bool("FACTS_CROSSCHECK_ENABLED", True),
        )


@dataclass
class _Run:
    stage: str = "cache_check"
    stages: List[str] = field(default_factory=list)
    candidates_parsed: int = 0
    duplicates_removed: int = 0
    fallback_added: int = 0


def current_year() -> int:
    return datetime.now(timezone.utc).year


def validate_request(country: Any, graduation_year: Any) -> Tuple[str, int]:
    """Return the cleaned ``(country, graduation_year)`` or raise InputError."""
    if not isinstance(country, str) or not country.strip():
        raise InputError("Missing required field: country")
    if len(country.strip()) > 100:
        raise InputError("country must be at most 100 characters")
    if isinstance(graduation_year, bool) or not isinstance(graduation_year, int):
        raise InputError("Missing required field: graduationYear")
    if not 1 <= graduation_year < current_year():
        raise InputError(f"graduationYear must be between 1 and {current_year() - 1}")
    return country.strip(), graduation_year


def _problems(raw: List[Dict[str, Any]]) -> List[EducationProblem]:
    out: List[EducationProblem] = []
    seen = set()
    for item in raw:
        problem = item.get("problem")
        if not isinstance(problem, str) or not problem.strip():
            continue
        key = problem.strip().lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(EducationProblem(
            problem=problem.strip(),
            description=str(item.get("description") or ""),
            impact=str(item.get("impact") or ""),
        ))
    return out[:MAX_PROBLEMS]


class FactPipeline:
    def __init__(self, llm: Optional[LLMAdapter] = None, encyclopedia: Optional[WikipediaClient] = None,
                 cache: Optional[FactCache] = None, config: Optional[PipelineConfig] = None,
                 weights: ScoringWeights = DEFAULT_WEIGHTS):
        self._llm = llm
        self.encyclopedia = encyclopedia or WikipediaClient()
        self.cache = cache or fact_cache
        self.config = config or PipelineConfig.from_env()
        self.weights = weights

    @property
    def llm(self) -> LLMAdapter:
        if self._llm is None:
            self._llm = get_llm_adapter()
        return self._llm

    @contextmanager
    def _stage(self, run: _Run, name: str) -> Iterator[None]:
        run.stage = name
        run.stages.append(name)
        with metrics.timed(f"fact_pipeline_{name}"):
            yield

    async def generate(self, country: str, graduation_year: int, language: str = "en") -> Dict[str, Any]:
        country, graduation_year = validate_request(country, graduation_year)
        started = perf_counter()
        run = _Run()

        with self._stage(run, "cache_check"):
            hit = await self._cached(country, graduation_year)
        if hit is not None:
            metrics.incr("fact_pipeline_cache_hits")
            self._trace(country, graduation_year, run, started, cached=True)
            return hit
        metrics.incr("fact_pipeline_cache_misses")

        try:
            facts, problems = await self._produce(run, country, graduation_year, language)
        except Exception as e:
            logger.exception("Fact pipeline failed at stage %s for %s/%s", run.stage, country, graduation_year)
            payload = self._emergency(run, country, graduation_year, language, e)
            self._trace(country, graduation_year, run, started, cached=False, fallback=True)
            return payload

        wire = facts_to_wire(facts)
        problems_wire = [p.model_dump() for p in problems]
        with self._stage(run, "caching"):
            await self._store(country, graduation_year, wire, problems_wire)

        scores = [f.quality_score or 0.0 for f in facts]
        payload = {
            "facts": wire,
            "educationProblems": problems_wire,
            "cached": False,
            "qualityMetrics": {
                "averageQuality": round(sum(scores) / len(scores), 4) if scores else 0.0,
                "factsGenerated": len(facts),
                "candidatesParsed": run.candidates_parsed,
                "duplicatesRemoved": run.duplicates_removed,
                "fallbackUsed": run.fallback_added > 0,
                "fallbackFacts": run.fallback_added,
                "processingStages": list(run.stages),
            },
        }
        self._trace(country, graduation_year, run, started, cached=False)
        return payload

    async def _cached(self, country: str, graduation_year: int) -> Optional[Dict[str, Any]]:
        try:
            entry = await run_in_threadpool(self.cache.get, country, graduation_year)
        except Exception:
            logger.exception("Cache read failed for %s/%s; treating as miss", country, graduation_year)
            return None
        if entry is None:
            return None
        now = datetime.now(timezone.utc)
        if not entry.is_fresh(self.config.retention_days, now):
            logger.info("Cache entry for %s/%s is stale (%d days)", country, graduation_year, entry.age_days(now))
            return None
        return {
            "facts": entry.facts,
            "educationProblems": entry.education_problems,
            "cached": True,
            "cacheAge": entry.age_days(now),
        }

    async def _store(self, country: str, graduation_year: int, facts: List[Dict[str, Any]],
                     problems: List[Dict[str, Any]]) -> None:
        try:
            await run_in_threadpool(self.cache.upsert, country, graduation_year, facts, problems)
        except Exception:
            logger.exception("Cache write failed for %s/%s", country, graduation_year)
            metrics.incr("fact_pipeline_cache_write_failures")

    async def _produce(self, run: _Run, country: str, graduation_year: int,
                       language: str) -> Tuple[List[FactRecord], List[EducationProblem]]:
        with self._stage(run, "context_retrieval"):
            context = await self.encyclopedia.fetch_context(country, graduation_year, language)

        with self._stage(run, "ai_generation"):
            branches = await self._fan_out(country, graduation_year, language, context)

        with self._stage(run, "parsing_validation"):
            raw_facts = [f for b in branches for f in b.facts]
            raw_problems = [p for b in branches for p in b.education_problems]
            run.candidates_parsed = len(raw_facts)
            candidates = self._structurally_valid(raw_facts, graduation_year)

        with self._stage(run, "quality_assessment"):
            scored = await self._score(candidates, language)

        with self._stage(run, "deduplication"):
            unique = drop_duplicates(scored, self.config.duplicate_threshold)
            run.duplicates_removed = len(scored) - len(unique)

        with self._stage(run, "ranking"):
            ranked = sorted(unique, key=lambda f: f.quality_score or 0.0, reverse=True)[:self.config.max_facts]

        with self._stage(run, "fallback_fill"):
            facts = self._fill(run, ranked, country, graduation_year, language)
            problems = _problems(raw_problems) or fallback_education_problems(language)

        logger.info("Generated %d facts for %s/%s (%d parsed, %d duplicates, %d fallback)",
                    len(facts), country, graduation_year, run.candidates_parsed,
                    run.duplicates_removed, run.fallback_added)
        return facts, problems

    async def _fan_out(self, country: str, graduation_year: int, language: str,
                       context: str) -> List[ParseResult]:
        llm = self.llm
        year_now = current_year()
        variants = GENERATION_VARIANTS[:self.config.fanout]
        results = await asyncio.gather(
            *(self._branch(llm, country, graduation_year, language, context, v, year_now) for v in variants),
            return_exceptions=True,
        )
        parsed: List[ParseResult] = []
        for variant, res in zip(variants, results):
            if isinstance(res, BaseException):
                logger.warning("Generation branch %s failed: %s", variant.name, res)
                metrics.incr("fact_pipeline_branch_failures")
                continue
            if not res.ok:
                logger.warning("Generation branch %s returned unusable output: %s", variant.name, res.reason)
                metrics.incr("fact_pipeline_parse_failures")
            parsed.append(res)
        return parsed

    async def _branch(self, llm: LLMAdapter, country: str, graduation_year: int, language: str,
                      context: str, variant: GenerationVariant, year_now: int) -> ParseResult:
        prompt = fact_generation_prompt(country, graduation_year, context, language, variant,
                                        year_now, count=self.config.max_facts)
        out = await llm.generate(prompt, max_tokens=4000, temperature=variant.temperature,
                                 system=FACT_SYSTEM_PROMPT)
        return parse_fact_response(out.get("text", ""))

    def _structurally_valid(self, raw_facts: List[Dict[str, Any]], graduation_year: int) -> List[FactRecord]:
        year_now = current_year()
        out: List[FactRecord] = []
        for raw in raw_facts:
            fact = try_normalize_fact(raw)
            if fact is None or not passes_structural_checks(fact, graduation_year):
                logger.debug("Dropping malformed candidate: %s", str(raw)[:120])
                continue
            if fact.year_debunked > year_now:
                logger.debug("Dropping candidate debunked in the future (%d)", fact.year_debunked)
                continue
            out.append(fact)
        return out

    async def _score(self, candidates: List[FactRecord], language: str) -> List[FactRecord]:
        scored: List[FactRecord] = []
        checks = 0
        for i, fact in enumerate(candidates):
            crosscheck = None
            if self.config.crosscheck_enabled and i < self.config.crosscheck_limit:
                if checks and self.config.crosscheck_delay > 0:
                    await asyncio.sleep(self.config.crosscheck_delay)
                crosscheck = await self.encyclopedia.cross_check(fact.statement, language)
                checks += 1
            scored.append(score_fact(fact, crosscheck, self.weights))
        return scored

    def _fill(self, run: _Run, ranked: List[FactRecord], country: str, graduation_year: int,
              language: str) -> List[FactRecord]:
        if len(ranked) >= self.config.min_facts:
            return ranked
        need = self.config.max_facts - len(ranked)
        extra = fallback_facts(country, graduation_year, language, limit=need)
        run.fallback_added = len(extra)
        facts = ranked + extra
        if not facts:
            raise PipelineError("No facts survived generation and the fallback bank is empty", stage="fallback_fill")
        if len(facts) < self.config.min_facts:
            logger.warning("Only %d facts available for %s/%s", len(facts), country, graduation_year)
        return facts

    def _emergency(self, run: _Run, country: str, graduation_year: int, language: str,
                   error: Exception) -> Dict[str, Any]:
        stage = error.stage if isinstance(error, PipelineError) else run.stage
        metrics.incr("fact_pipeline_fallback_responses")
        facts = fallback_facts(country, graduation_year, language, limit=self.config.max_facts, shuffle=True)
        if not facts:
            raise PipelineError("Fact generation failed and no fallback facts apply", stage=stage)
        return {
            "facts": facts_to_wire(facts),
            "educationProblems": [p.model_dump() for p in fallback_education_problems(language)],
            "cached": False,
            "fallback": True,
            "stage": stage,
            "error": suggestion_for(stage),
        }

    def _trace(self, country: str, graduation_year: int, run: _Run, started: float, **extra: Any) -> None:
        elapsed = (perf_counter() - started) * 1000.0
        metrics.observe_ms("fact_pipeline_total_ms", elapsed)
        metrics.add_trace({
            "event": "generate_facts",
            "country": country,
            "graduation_year": graduation_year,
            "stages": list(run.stages),
            "latency_ms": round(elapsed, 2),
            **extra,
        })


def get_fact_pipeline() -> FactPipeline:
    return FactPipeline()
