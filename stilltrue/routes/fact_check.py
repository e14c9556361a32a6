from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from typing import List, Literal, Optional

from stilltrue.services.fact_checker import FactChecker, get_fact_checker

router = APIRouter(tags=["fact-check"])


class CheckFactIn(BaseModel):
    statement: str = Field(min_length=1)


class SourceOut(BaseModel):
    title: str
    url: str


class CheckFactOut(BaseModel):
    isStillValid: bool
    originalStatement: str
    correction: Optional[str] = None
    yearDebunked: Optional[int] = None
    explanation: str
    confidence: Literal["high", "medium", "low"]
    sources: List[SourceOut] = []


@router.post(
    "/check-single-fact",
    response_model=CheckFactOut,
    response_model_exclude_none=True,
    summary="Check one statement",
    description="Ask the model whether a statement is still considered true. Only sources on trusted "
                "educational domains are returned; without one the confidence is reported as low.",
)
async def check_single_fact(data: CheckFactIn, checker: FactChecker = Depends(get_fact_checker)):
    return await checker.check(data.statement)
