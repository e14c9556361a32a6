from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from sqlmodel import select

from stilltrue.db import get_session, upsert_row
from stilltrue.models import CachedFacts

logger = logging.getLogger("fact_cache")


def as_utc(ts: datetime) -> datetime:
    return ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ts


@dataclass
class CacheEntry:
    country: str
    graduation_year: int
    facts: List[Dict[str, Any]]
    education_problems: List[Dict[str, Any]] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def age_days(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.now(timezone.utc)
        delta = now - as_utc(self.created_at)
        return max(0, delta.days)

    def is_fresh(self, retention_days: int, now: Optional[datetime] = None) -> bool:
        return self.age_days(now) <= retention_days


class FactCache:
    """Fact sets keyed by (country, graduation_year).

    Rows are never deleted; a regeneration overwrites the row and resets
    ``created_at``. Concurrent writers for one key race and the last one wins.
    """

    def get(self, country: str, graduation_year: int) -> Optional[CacheEntry]:
        with get_session() as db:
            q = select(CachedFacts).where(
                (CachedFacts.country == country) & (CachedFacts.graduation_year == graduation_year)
            )
            row = db.exec(q).one_or_none()
            if not row:
                return None
            return CacheEntry(
                country=row.country,
                graduation_year=row.graduation_year,
                facts=list(row.facts_data or []),
                education_problems=list(row.education_system_problems or []),
                created_at=as_utc(row.created_at),
            )

    def upsert(self, country: str, graduation_year: int, facts: List[Dict[str, Any]],
               problems: List[Dict[str, Any]]) -> None:
        now = datetime.now(timezone.utc)
        table = CachedFacts.__table__
        row = CachedFacts(country=country, graduation_year=graduation_year,
                          facts_data=facts, education_system_problems=problems,
                          created_at=now, updated_at=now)
        upsert_row(
            table,
            values={c.name: getattr(row, c.name) for c in table.columns},
            conflict_cols=["country", "graduation_year"],
            update={
                "facts_data": facts,
                "education_system_problems": problems,
                "created_at": now,
                "updated_at": now,
            },
        )
        logger.info("Cached %d facts for %s/%s", len(facts), country, graduation_year)


fact_cache = FactCache()
