from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal, Optional
from time import perf_counter

from stilltrue.services.fact_pipeline import FactPipeline, get_fact_pipeline
from stilltrue.services.observability import metrics
from stilltrue.services.quick_fact import QuickFactService, get_quick_fact_service
from stilltrue.services.rate_limiter import client_key, rate_limiter
from stilltrue.utils.env import env_int

router = APIRouter(tags=["facts"])


# ── Request models ──────────────────────────────────────────────

class GenerateFactsIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    country: str = Field(min_length=1, max_length=100)
    graduation_year: int = Field(alias="graduationYear")
    language: Literal["en", "de"] = "en"


# ── Response models ─────────────────────────────────────────────

class QualityMetrics(BaseModel):
    averageQuality: float
    factsGenerated: int
    candidatesParsed: int
    duplicatesRemoved: int
    fallbackUsed: bool
    fallbackFacts: int
    processingStages: List[str]


class GenerateFactsOut(BaseModel):
    facts: List[Dict[str, Any]]
    educationProblems: List[Dict[str, Any]]
    cached: bool
    cacheAge: Optional[int] = None
    fallback: Optional[bool] = None
    stage: Optional[str] = None
    error: Optional[str] = None
    qualityMetrics: Optional[QualityMetrics] = None


class QuickFactOut(BaseModel):
    funFact: str
    fallback: bool


def _enforce_rate_limit(request: Request, scope: str) -> None:
    limit = env_int("GENERATE_RATE_LIMIT_PER_MIN", 30, 0, 10000)
    if not rate_limiter.allow(client_key(request, scope), limit=limit, window_sec=60):
        metrics.incr(f"{scope}_rate_limited")
        raise HTTPException(status_code=429, detail="Too many requests. Please wait a minute and retry.")


@router.post(
    "/generate-facts",
    response_model=GenerateFactsOut,
    response_model_exclude_none=True,
    summary="Generate debunked school facts",
    description="Return 6-8 facts taught to students in a country around a graduation year that are now outdated. "
                "Served from cache when a fresh entry exists; degrades to verified fallback facts on failure.",
)
async def generate_facts(data: GenerateFactsIn, request: Request,
                         pipeline: FactPipeline = Depends(get_fact_pipeline)):
    _enforce_rate_limit(request, "generate_facts")
    started = perf_counter()
    metrics.incr("generate_facts_requests")
    result = await pipeline.generate(data.country, data.graduation_year, data.language)
    metrics.observe_ms("generate_facts_request_ms", (perf_counter() - started) * 1000.0)
    return result


@router.post(
    "/quick-fun-fact",
    response_model=QuickFactOut,
    summary="One quick fact",
    description="A single short fact for the loading screen, from one low-temperature model call.",
)
async def quick_fun_fact(data: GenerateFactsIn, request: Request,
                         service: QuickFactService = Depends(get_quick_fact_service)):
    _enforce_rate_limit(request, "quick_fun_fact")
    metrics.incr("quick_fun_fact_requests")
    return await service.quick_fact(data.country, data.graduation_year, data.language)
