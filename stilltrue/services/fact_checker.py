from typing import Any, Dict, List, Optional
from urllib.parse import urlparse
import logging
import re

from stilltrue.services.errors import InputError, PipelineError, UpstreamError
from stilltrue.services.fact_validator import parse_year
from stilltrue.services.llm_adapter import LLMAdapter, get_llm_adapter
from stilltrue.services.observability import metrics
from stilltrue.services.prompts import FACT_CHECK_SYSTEM_PROMPT, fact_check_prompt
from stilltrue.services.response_parser import extract_json_object

logger = logging.getLogger("fact_checker")

MIN_STATEMENT_CHARS = 10
MAX_STATEMENT_CHARS = 1000

TRUSTED_HOSTS = (
    "wikipedia.org",
    "britannica.com",
    "jstor.org",
    "science.org",
    "nature.com",
    "scholar.google.com",
)
TRUSTED_SUFFIXES = (".edu", ".gov")

_URL_RE = re.compile(r"https?://[^\s<>\"')\]]+")
_CONFIDENCE = ("high", "medium", "low")


def is_trusted_url(url: str) -> bool:
    host = (urlparse(url).hostname or "").lower()
    if not host:
        return False
    if host.endswith(TRUSTED_SUFFIXES):
        return True
    return any(host == h or host.endswith("." + h) for h in TRUSTED_HOSTS)


def trusted_sources(text: str) -> List[Dict[str, str]]:
    """Trusted URLs cited in ``text`` as ``[{title, url}]``, first occurrence order."""
    out: List[Dict[str, str]] = []
    seen = set()
    for match in _URL_RE.findall(text or ""):
        url = match.rstrip(".,;:")
        if url in seen or not is_trusted_url(url):
            continue
        seen.add(url)
        host = urlparse(url).hostname or url
        out.append({"title": host[4:] if host.startswith("www.") else host, "url": url})
    return out


def clean_statement(statement: Any) -> str:
    if not isinstance(statement, str) or not statement.strip():
        raise InputError("Missing required field: statement")
    statement = statement.strip()
    if len(statement) < MIN_STATEMENT_CHARS:
        raise InputError(f"statement must be at least {MIN_STATEMENT_CHARS} characters")
    if len(statement) > MAX_STATEMENT_CHARS:
        raise InputError(f"statement must be at most {MAX_STATEMENT_CHARS} characters")
    return statement


class FactChecker:
    def __init__(self, llm: Optional[LLMAdapter] = None):
        self._llm = llm

    @property
    def llm(self) -> LLMAdapter:
        if self._llm is None:
            self._llm = get_llm_adapter()
        return self._llm

    async def check(self, statement: str) -> Dict[str, Any]:
        statement = clean_statement(statement)
        metrics.incr("fact_check_requests")
        try:
            with metrics.timed("fact_check_llm"):
                out = await self.llm.generate(fact_check_prompt(statement), max_tokens=1500,
                                              temperature=0.2, system=FACT_CHECK_SYSTEM_PROMPT)
        except UpstreamError as e:
            logger.warning("Fact check generation failed: %s", e)
            raise PipelineError("AI service unavailable", stage="ai_generation") from e

        obj, reason = extract_json_object(out.get("text", ""))
        if obj is None:
            logger.info("Fact check output unparseable (%s)", reason)
            metrics.incr("fact_check_unparseable")
            return {
                "isStillValid": True,
                "originalStatement": statement,
                "explanation": "Unable to verify this statement. The response format was unexpected.",
                "confidence": "low",
                "sources": [],
            }
        return self._verdict(statement, obj)

    def _verdict(self, statement: str, obj: Dict[str, Any]) -> Dict[str, Any]:
        still_valid = obj.get("isStillValid")
        if not isinstance(still_valid, bool):
            raise PipelineError("Invalid fact-check result: isStillValid is not a boolean",
                                stage="parsing_validation")

        explanation = obj.get("explanation") if isinstance(obj.get("explanation"), str) else ""
        confidence = str(obj.get("confidence") or "").lower()
        if confidence not in _CONFIDENCE:
            confidence = "low"
        sources = trusted_sources(explanation)
        if not sources:
            logger.info("No trusted sources cited; downgrading confidence")
            confidence = "low"

        verdict: Dict[str, Any] = {
            "isStillValid": still_valid,
            "originalStatement": statement,
            "explanation": explanation,
            "confidence": confidence,
            "sources": sources,
        }
        if not still_valid:
            correction = obj.get("correction")
            if isinstance(correction, str) and correction.strip():
                verdict["correction"] = correction.strip()
            year = parse_year(obj.get("yearDebunked"))
            if year is not None:
                verdict["yearDebunked"] = year
        return verdict


def get_fact_checker() -> FactChecker:
    return FactChecker()
