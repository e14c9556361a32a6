from typing import Any, Dict, Optional
import logging

from stilltrue.services.encyclopedia import WikipediaClient
from stilltrue.services.errors import UpstreamError
from stilltrue.services.fact_pipeline import validate_request
from stilltrue.services.fallback_bank import fallback_facts
from stilltrue.services.llm_adapter import LLMAdapter, get_llm_adapter
from stilltrue.services.prompts import QUICK_FACT_SYSTEM_PROMPT, quick_fact_prompt
from stilltrue.services.response_parser import strip_code_fences

logger = logging.getLogger("quick_fact")


def snippet_topic(country: str, year: int) -> str:
    if year >= 1900:
        return f"education {country} {year}"
    if year >= 1800:
        return f"history of education {country} 19th century"
    return f"history of {country}"


class QuickFactService:
    """One fast fact for the loading screen while the full pipeline runs."""

    def __init__(self, llm: Optional[LLMAdapter] = None, encyclopedia: Optional[WikipediaClient] = None):
        self._llm = llm
        self.encyclopedia = encyclopedia or WikipediaClient()

    async def quick_fact(self, country: str, graduation_year: int, language: str = "en") -> Dict[str, Any]:
        country, graduation_year = validate_request(country, graduation_year)
        snippet = await self.encyclopedia.snippet(snippet_topic(country, graduation_year), language)
        prompt = quick_fact_prompt(country, graduation_year, snippet, language)
        try:
            llm = self._llm or get_llm_adapter()
            out = await llm.generate(prompt, max_tokens=120, temperature=0.1, system=QUICK_FACT_SYSTEM_PROMPT)
            text = strip_code_fences(out.get("text", "")).strip().strip('"')
        except (UpstreamError, RuntimeError) as e:
            logger.warning("Quick fact generation failed: %s", e)
            text = ""

        if text:
            return {"funFact": text, "fallback": False}
        bank = fallback_facts(country, graduation_year, language, limit=1, shuffle=False)
        fallback_text = bank[0].statement if bank else (
            f"In {graduation_year}, students in {country} learned things that have since been revised."
        )
        return {"funFact": fallback_text, "fallback": True}


def get_quick_fact_service() -> QuickFactService:
    return QuickFactService()
