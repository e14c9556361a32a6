"""Wire/domain models for debunked-fact records.

Field names are snake_case in Python and camelCase on the wire (and in the
cached JSON blobs). Records are frozen: scoring returns a new copy.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ConfidenceLevel = Literal["high", "medium", "low"]


class FactValidation(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    is_valid: bool = Field(alias="isValid")
    confidence_score: float = Field(alias="confidenceScore", ge=0.0, le=1.0)
    sources: List[str] = Field(default_factory=list)
    context: Optional[str] = None


class FactRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    category: str
    statement: str
    correction: str
    year_debunked: int = Field(alias="yearDebunked")
    salience: str = ""
    source_url: Optional[str] = Field(default=None, alias="sourceUrl")
    source_name: Optional[str] = Field(default=None, alias="sourceName")
    quality_score: Optional[float] = Field(default=None, alias="qualityScore", ge=0.0, le=1.0)
    confidence_level: Optional[ConfidenceLevel] = Field(default=None, alias="confidenceLevel")
    validation: Optional[FactValidation] = None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class EducationProblem(BaseModel):
    problem: str
    description: str = ""
    impact: str = ""


def facts_to_wire(facts: List[FactRecord]) -> List[Dict[str, Any]]:
    return [f.to_wire() for f in facts]
