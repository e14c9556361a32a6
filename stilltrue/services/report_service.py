from typing import Any, Dict, List, Optional
import hashlib
import logging

from sqlmodel import select

from stilltrue.db import get_session, upsert_row
from stilltrue.models import FactQualityStats, FactReport, gen_uuid, utcnow
from stilltrue.services.errors import InputError

logger = logging.getLogger("report_service")

MAX_REASON_CHARS = 2000


def fact_hash(category: str, statement: str, correction: str) -> str:
    """Stable identifier for a fact's content, independent of where it was served."""
    digest = hashlib.sha256(f"{category}|{statement}|{correction}".encode("utf-8")).hexdigest()
    return digest[:32]


def submit_report(fact: Dict[str, Any], country: str, graduation_year: int, reason: str,
                  user_fingerprint: Optional[str] = None) -> Dict[str, Any]:
    reason = (reason or "").strip()
    if not reason:
        raise InputError("Missing required field: reason")
    if len(reason) > MAX_REASON_CHARS:
        raise InputError(f"reason must be at most {MAX_REASON_CHARS} characters")
    statement = (fact.get("statement") or "").strip()
    if not statement:
        raise InputError("Missing required field: fact.statement")
    category = (fact.get("category") or "").strip()
    correction = (fact.get("correction") or "").strip()

    fhash = fact_hash(category, statement, correction)
    report = FactReport(
        fact_hash=fhash,
        country=country,
        graduation_year=graduation_year,
        fact_content=statement,
        report_reason=reason,
        user_fingerprint=user_fingerprint,
    )
    with get_session() as db:
        db.add(report)
        db.commit()
        db.refresh(report)

    now = utcnow()
    stats = FactQualityStats.__table__
    upsert_row(
        stats,
        values={
            "id": gen_uuid(),
            "fact_hash": fhash,
            "country": country,
            "graduation_year": graduation_year,
            "total_reports": 1,
            "created_at": now,
            "updated_at": now,
        },
        conflict_cols=["fact_hash", "country", "graduation_year"],
        update={
            "total_reports": lambda _: stats.c.total_reports + 1,
            "updated_at": now,
        },
    )
    total = report_count(fhash, country, graduation_year)
    logger.info("Fact %s reported for %s/%s (%d total)", fhash, country, graduation_year, total)
    return {"id": report.id, "factHash": fhash, "totalReports": total}


def report_count(fhash: str, country: str, graduation_year: int) -> int:
    with get_session() as db:
        q = select(FactQualityStats).where(
            (FactQualityStats.fact_hash == fhash)
            & (FactQualityStats.country == country)
            & (FactQualityStats.graduation_year == graduation_year)
        )
        row = db.exec(q).one_or_none()
        return row.total_reports if row else 0


def report_stats(country: Optional[str] = None, graduation_year: Optional[int] = None,
                 limit: int = 50) -> List[Dict[str, Any]]:
    with get_session() as db:
        q = select(FactQualityStats)
        if country:
            q = q.where(FactQualityStats.country == country)
        if graduation_year is not None:
            q = q.where(FactQualityStats.graduation_year == graduation_year)
        q = q.order_by(FactQualityStats.total_reports.desc(), FactQualityStats.updated_at.desc()).limit(limit)
        rows = db.exec(q).all()
    return [
        {
            "factHash": r.fact_hash,
            "country": r.country,
            "graduationYear": r.graduation_year,
            "totalReports": r.total_reports,
            "updatedAt": r.updated_at.isoformat() if r.updated_at else None,
        }
        for r in rows
    ]
