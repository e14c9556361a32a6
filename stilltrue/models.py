from typing import Optional, Dict, Any, List
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, UniqueConstraint
from sqlalchemy import JSON as SA_JSON
from datetime import datetime, timezone
import uuid


def gen_uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CachedFacts(SQLModel, table=True):
    """One generated fact set per (country, graduation_year)."""
    __tablename__ = "cached_facts"
    __table_args__ = (UniqueConstraint("country", "graduation_year", name="uq_cached_facts_country_year"),)
    id: str = Field(default_factory=gen_uuid, primary_key=True)
    country: str = Field(index=True)
    graduation_year: int
    facts_data: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(SA_JSON, nullable=False))
    education_system_problems: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(SA_JSON, nullable=True))
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class FactReport(SQLModel, table=True):
    __tablename__ = "fact_reports"
    id: str = Field(default_factory=gen_uuid, primary_key=True)
    fact_hash: str = Field(index=True)
    country: str
    graduation_year: int
    fact_content: str
    report_reason: str
    user_fingerprint: Optional[str] = None
    status: str = "pending"
    reported_at: datetime = Field(default_factory=utcnow)


class FactQualityStats(SQLModel, table=True):
    """Report counter per fact; one row per (fact_hash, country, graduation_year)."""
    __tablename__ = "fact_quality_stats"
    __table_args__ = (UniqueConstraint("fact_hash", "country", "graduation_year", name="uq_fact_quality_stats_key"),)
    id: str = Field(default_factory=gen_uuid, primary_key=True)
    fact_hash: str = Field(index=True)
    country: str
    graduation_year: int
    total_reports: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class SchoolMemory(SQLModel, table=True):
    __tablename__ = "school_memories"
    __table_args__ = (UniqueConstraint("school_name", "city", "graduation_year", name="uq_school_memories_key"),)
    id: str = Field(default_factory=gen_uuid, primary_key=True)
    school_name: str = Field(index=True)
    city: str
    country: str = "Germany"
    graduation_year: int
    school_memories_data: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(SA_JSON, nullable=False))
    shareable_content: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(SA_JSON, nullable=False))
    research_sources: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(SA_JSON, nullable=True))
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
