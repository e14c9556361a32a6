from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional

from stilltrue.services.observability import metrics
from stilltrue.services.school_memories import SchoolMemoryResearcher, get_school_researcher

router = APIRouter(tags=["school-memories"])


class SchoolMemoryIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    school_name: str = Field(alias="schoolName", min_length=1, max_length=200)
    city: str = Field(min_length=1, max_length=100)
    graduation_year: int = Field(alias="graduationYear")
    country: str = Field(default="Germany", max_length=100)


class SchoolMemoryOut(BaseModel):
    schoolMemories: Dict[str, Any]
    shareableContent: Dict[str, Any]
    cached: bool
    cacheAge: Optional[int] = None
    researchQuality: Optional[Dict[str, Any]] = None


@router.post(
    "/research-school-memories",
    response_model=SchoolMemoryOut,
    response_model_exclude_none=True,
    summary="Research school memories",
    description="Collect web sources about a school and year, summarize them with the model, and keep only "
                "items that cite a source URL and name.",
)
async def research_school_memories(data: SchoolMemoryIn,
                                   researcher: SchoolMemoryResearcher = Depends(get_school_researcher)):
    metrics.incr("school_memories_requests")
    return await researcher.research(data.school_name, data.city, data.graduation_year, data.country)
