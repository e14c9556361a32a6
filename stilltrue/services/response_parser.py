"""Tolerant extraction of JSON payloads from free-form model output.

Nothing here raises on bad input: callers get a ``ParseResult`` whose
``reason`` says why it is empty.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import json
import logging
import re

logger = logging.getLogger("response_parser")

_FENCE_RE = re.compile(r"```[a-zA-Z]*")


@dataclass
class ParseResult:
    facts: List[Dict[str, Any]] = field(default_factory=list)
    education_problems: List[Dict[str, Any]] = field(default_factory=list)
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def empty(cls, reason: str) -> "ParseResult":
        return cls(reason=reason)


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def extract_json_object(text: str) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """Return ``(obj, None)`` for the outermost ``{...}`` in ``text`` or ``(None, reason)``."""
    if not isinstance(text, str) or not text.strip():
        return None, "empty response"
    cleaned = strip_code_fences(text)
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end == -1 or end < start:
        return None, "no JSON object found"
    try:
        parsed = json.loads(cleaned[start:end + 1])
    except ValueError as e:
        return None, f"invalid JSON: {e}"
    if not isinstance(parsed, dict):
        return None, "JSON payload is not an object"
    return parsed, None


def _dict_items(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def parse_fact_response(text: str) -> ParseResult:
    obj, reason = extract_json_object(text)
    if obj is None:
        logger.info("Fact response unparseable: %s", reason)
        return ParseResult.empty(reason or "unparseable")
    return ParseResult(
        facts=_dict_items(obj.get("facts")),
        education_problems=_dict_items(obj.get("educationProblems")),
    )
