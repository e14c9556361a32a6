from typing import Optional


STAGE_SUGGESTIONS = {
    "cache_check": "Database connection issue. Retry in a moment.",
    "context_retrieval": "Wikipedia API temporarily unavailable. Using cached knowledge.",
    "ai_generation": "AI service busy. Retry in a moment or check API limits.",
    "parsing_validation": "AI response format issue. Using fallback facts.",
    "quality_assessment": "Quality check failed. Using verified facts.",
    "deduplication": "Processing issue. Using available facts.",
    "ranking": "Processing issue. Using available facts.",
    "fallback_fill": "Verified fact bank unavailable. Please retry.",
    "caching": "Cache write failed (non-critical). Facts still returned.",
    "research": "Source research failed. Retry in a moment.",
}


def suggestion_for(stage: Optional[str]) -> str:
    return STAGE_SUGGESTIONS.get(stage or "", "Temporary issue. Please retry.")


class InputError(ValueError):
    """Malformed client input. Rendered as a 400 before any work starts."""


class UpstreamError(RuntimeError):
    """An external call failed after its retries were exhausted."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PipelineError(RuntimeError):
    """No usable output could be produced; carries the failing stage."""

    def __init__(self, message: str, stage: str):
        super().__init__(message)
        self.stage = stage

    @property
    def suggestion(self) -> str:
        return suggestion_for(self.stage)


class FactValidationError(ValueError):
    pass
