from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

from stilltrue.auth import require_admin
from stilltrue.services import report_service
from stilltrue.services.observability import metrics

router = APIRouter(prefix="/fact-reports", tags=["reports"])


class ReportedFact(BaseModel):
    category: str = ""
    statement: str = Field(min_length=1)
    correction: str = ""


class ReportIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    fact: ReportedFact
    country: str = Field(min_length=1, max_length=100)
    graduation_year: int = Field(alias="graduationYear")
    reason: str = Field(min_length=1)
    user_fingerprint: Optional[str] = Field(default=None, alias="userFingerprint", max_length=200)


class ReportOut(BaseModel):
    id: str
    factHash: str
    totalReports: int


class ReportStatOut(BaseModel):
    factHash: str
    country: str
    graduationYear: int
    totalReports: int
    updatedAt: Optional[str] = None


@router.post("", status_code=201, response_model=ReportOut, summary="Report a fact",
             description="Flag a served fact as wrong or misleading. Reports are counted per fact, country and year.")
async def report_fact(data: ReportIn):
    metrics.incr("fact_reports_submitted")
    return await run_in_threadpool(
        report_service.submit_report,
        data.fact.model_dump(),
        data.country.strip(),
        data.graduation_year,
        data.reason,
        data.user_fingerprint,
    )


@router.get("/stats", response_model=List[ReportStatOut], dependencies=[Depends(require_admin)],
            summary="Most reported facts", description="Report counters ordered by number of reports (admin-protected when ADMIN_TOKEN is set).")
def report_stats(country: Optional[str] = None, graduationYear: Optional[int] = None, limit: int = 50):
    return report_service.report_stats(country, graduationYear, max(1, min(limit, 200)))
