from dataclasses import dataclass
from typing import Any, Dict, Optional
import math

from stilltrue.services.errors import FactValidationError
from stilltrue.services.fact_record import ConfidenceLevel, FactRecord, FactValidation


@dataclass(frozen=True)
class ScoringWeights:
    """Additive heuristic weights. Changing any value changes every stored score."""

    accuracy_base: float = 0.5
    accuracy_plausible_year: float = 0.1
    accuracy_crosscheck_factor: float = 0.3
    source_base: float = 0.4
    source_name_present: float = 0.3
    source_url_present: float = 0.1
    relevance_base: float = 0.5
    relevance_long_statement: float = 0.2
    relevance_long_correction: float = 0.2
    plausible_year_after: int = 1950
    long_statement_chars: int = 50
    long_correction_chars: int = 30
    high_cutoff: float = 0.7
    medium_cutoff: float = 0.5


DEFAULT_WEIGHTS = ScoringWeights()

MIN_STATEMENT_CHARS = 20
MIN_CORRECTION_CHARS = 10


def parse_year(value: Any) -> Optional[int]:
    """Integer year from a JSON value; None for bools, non-finite floats and junk."""
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _text(raw: Dict[str, Any], *keys: str) -> str:
    for key in keys:
        val = raw.get(key)
        if isinstance(val, str) and val.strip():
            return val.strip()
    return ""


def normalize_fact(raw: Dict[str, Any]) -> FactRecord:
    """Build a ``FactRecord`` from a loosely-shaped model dict.

    Accepts the legacy keys ``fact`` and ``mindBlowingFactor``. When the model
    put a URL into ``sourceName`` it is mirrored into ``sourceUrl``.
    Raises FactValidationError when required fields are missing.
    """
    if not isinstance(raw, dict):
        raise FactValidationError("fact is not a JSON object")

    statement = _text(raw, "statement", "fact")
    correction = _text(raw, "correction")
    if not statement:
        raise FactValidationError("missing 'statement'")
    if not correction:
        raise FactValidationError("missing 'correction'")

    year = parse_year(raw.get("yearDebunked"))
    if year is None:
        raise FactValidationError("missing or invalid 'yearDebunked'")

    source_name = _text(raw, "sourceName") or None
    source_url = _text(raw, "sourceUrl") or None
    if not source_url and source_name and source_name.startswith(("http://", "https://")):
        source_url = source_name

    return FactRecord(
        category=_text(raw, "category") or "General",
        statement=statement,
        correction=correction,
        year_debunked=year,
        salience=_text(raw, "salience", "mindBlowingFactor"),
        source_url=source_url,
        source_name=source_name,
    )


def try_normalize_fact(raw: Dict[str, Any]) -> Optional[FactRecord]:
    try:
        return normalize_fact(raw)
    except FactValidationError:
        return None


def passes_structural_checks(fact: FactRecord, graduation_year: int) -> bool:
    return (
        len(fact.statement) > MIN_STATEMENT_CHARS
        and len(fact.correction) > MIN_CORRECTION_CHARS
        and fact.year_debunked > graduation_year
    )


def confidence_level(score: float, weights: ScoringWeights = DEFAULT_WEIGHTS) -> ConfidenceLevel:
    if score > weights.high_cutoff:
        return "high"
    if score > weights.medium_cutoff:
        return "medium"
    return "low"


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def quality_score(fact: FactRecord, crosscheck: Optional[FactValidation] = None,
                  weights: ScoringWeights = DEFAULT_WEIGHTS) -> float:
    accuracy = weights.accuracy_base
    if fact.year_debunked > weights.plausible_year_after:
        accuracy += weights.accuracy_plausible_year
    if crosscheck is not None and crosscheck.is_valid:
        accuracy += weights.accuracy_crosscheck_factor * crosscheck.confidence_score

    source = weights.source_base
    if fact.source_name:
        source += weights.source_name_present
    if fact.source_url:
        source += weights.source_url_present

    relevance = weights.relevance_base
    if len(fact.statement) > weights.long_statement_chars:
        relevance += weights.relevance_long_statement
    if len(fact.correction) > weights.long_correction_chars:
        relevance += weights.relevance_long_correction

    mean = (_clamp(accuracy) + _clamp(source) + _clamp(relevance)) / 3.0
    return round(mean, 4)


def score_fact(fact: FactRecord, crosscheck: Optional[FactValidation] = None,
               weights: ScoringWeights = DEFAULT_WEIGHTS) -> FactRecord:
    """Return a copy of ``fact`` with qualityScore, confidenceLevel and validation set."""
    score = quality_score(fact, crosscheck, weights)
    return fact.model_copy(update={
        "quality_score": score,
        "confidence_level": confidence_level(score, weights),
        "validation": crosscheck,
    })
