"""Prompt templates for every model call the service makes."""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class GenerationVariant:
    """One branch of the generation fan-out."""
    name: str
    temperature: float
    focus: str


GENERATION_VARIANTS = (
    GenerationVariant(
        name="science",
        temperature=0.1,
        focus="Biology, Medicine, Physics, Astronomy and Chemistry",
    ),
    GenerationVariant(
        name="humanities",
        temperature=0.4,
        focus="History, Geography, Technology, Society and Nutrition",
    ),
)

FACT_SYSTEM_PROMPT = """You are an expert educational historian specializing in debunked school facts.

CRITICAL RULES:
1. NEVER invent, fabricate, or make up any information
2. ONLY use documented facts with verifiable sources, preferably Wikipedia articles
3. Every sourceName MUST be a real Wikipedia URL
4. If you cannot find enough verifiable facts, generate fewer facts rather than inventing them
5. All historical information must be accurate and based on scholarly consensus"""


def language_instruction(language: str) -> str:
    if language == "de":
        return "WICHTIG: Generiere ALLE Inhalte auf Deutsch. Antworte auf Deutsch."
    return "IMPORTANT: Generate ALL content in English. Respond in English."


def fact_generation_prompt(country: str, year: int, context: str, language: str,
                           variant: GenerationVariant, current_year: int, count: int = 8) -> str:
    if year < 1800:
        era_rules = f"""- Focus on ACTUAL beliefs, teachings, and knowledge from {year}
- Reference REAL historical educational practices (monastery schools, Latin schools, apprenticeships)
- For medieval/early modern periods: cosmology, medicine, natural philosophy, alchemy
- DO NOT use modern misconceptions retrofitted to old periods"""
    else:
        era_rules = f"""- Use documented misconceptions (e.g. Wikipedia's "List of common misconceptions")
- Adapt each misconception to how it was taught in {country}'s schools around {year}
- Be specific about curriculum, textbooks, and teaching methods"""

    return f"""{language_instruction(language)}

**Task:** Generate {count} verifiable facts that students in {country} learned around {year} which are now debunked.
Concentrate on these subject areas: {variant.focus}.

**Wikipedia Research Context:**
{context}

**REQUIREMENTS:**
{era_rules}
- Every yearDebunked MUST be a realistic year after {year} and no later than {current_year}
- Each fact must be at least 80 characters long, each correction at least 50
- Never reference "hypothetical textbooks" or invented sources

**OUTPUT FORMAT (NO markdown, NO code blocks, PURE JSON):**
{{
  "facts": [
    {{
      "category": "Biology",
      "fact": "In {year}, students in {country} were taught that ...",
      "correction": "Today we know that ...",
      "yearDebunked": {min(year + 5, current_year)},
      "mindBlowingFactor": "Why this change is surprising",
      "sourceName": "https://en.wikipedia.org/wiki/Relevant_Article"
    }}
  ],
  "educationProblems": [
    {{
      "problem": "Systemic issue that let these misconceptions spread",
      "description": "How textbooks and teachers perpetuated them",
      "impact": "Who was affected and for how long"
    }}
  ]
}}"""


FACT_CHECK_SYSTEM_PROMPT = """You are an expert fact-checker who analyzes statements to determine if they are still scientifically, historically, or generally accurate based on current knowledge.

CRITICAL RULES:
1. Provide real, verifiable sources with FULL URLs from trusted educational platforms
2. ONLY use sources from: Wikipedia, Britannica, .edu domains, .gov domains, JSTOR, Nature, Science.org, or Google Scholar
3. Include at least 2 sources with complete URLs in your explanation text
4. Never invent or make up information
5. If you cannot verify the fact with reliable sources, set confidence to "low"

Return ONLY a valid JSON object with this exact structure:
{
  "isStillValid": boolean,
  "originalStatement": "the original statement",
  "correction": "corrected information (only if isStillValid is false)",
  "yearDebunked": number (only if isStillValid is false, approximate year),
  "explanation": "detailed explanation citing sources with FULL URLs",
  "confidence": "high" | "medium" | "low"
}"""


def fact_check_prompt(statement: str) -> str:
    return f'Please fact-check this statement and provide reliable sources with full URLs: "{statement}"'


QUICK_FACT_SYSTEM_PROMPT = (
    "You are an educational historian. Generate only verifiable, documented facts. Keep responses concise."
)


def quick_fact_prompt(country: str, year: int, snippet: str, language: str) -> str:
    lang = "Respond in German." if language == "de" else "Respond in English."
    if year >= 1900:
        body = (
            f"Generate ONE quick, verifiable fact about education in {country} around {year}. "
            f"Format: \"In {year}, {country} students were taught that [specific educational fact based on real curriculum].\""
        )
    elif year >= 1800:
        body = (
            f"Generate ONE quick, verifiable historical fact about education in {country} around {year}. "
            f"Format: \"In {year}, educated people in {country} learned that [specific historical belief].\""
        )
    else:
        body = (
            f"Generate ONE quick historical fact about knowledge in {country} around {year}. "
            f"Format: \"In {year}, people in {country} believed that [documented historical worldview].\""
        )
    context = f"Wikipedia context: {snippet}\n\n" if snippet else ""
    return f"{lang}\n\n{context}{body}\n\nKeep it 1-2 sentences, specific, and verifiable."


SCHOOL_SYSTEM_PROMPT = (
    "You are an expert researcher specializing in educational history and school memories. "
    "Always respond with valid JSON only, no markdown formatting. Only include sourceUrl and "
    "sourceName when you have real, verified sources from the provided data."
)


def school_memories_prompt(school_name: str, city: str, country: str, year: int,
                           source_summary: str, total_sources: int) -> str:
    if total_sources > 0:
        sources_block = f"""REAL SOURCE DATA FOUND:
{source_summary}

- Use ONLY the real information provided above
- Every item MUST include the exact sourceUrl and sourceName of the source it came from
- Items you cannot attribute to one of the sources above must be left out"""
    else:
        sources_block = f"""NO REAL SOURCES FOUND.
Only include items you can attribute to a real, public web page about {school_name}, {city} or
education in {country} around {year}, with its sourceUrl and sourceName. Leave everything else out."""

    return f"""You are researching school memories for {school_name} in {city}, {country} for someone who graduated in {year}.

{sources_block}

CRITICAL: Return ONLY valid JSON. No markdown formatting or explanatory text.

Response format:
{{
  "whatHappenedAtSchool": [
    {{"title": "Event Title", "description": "Detailed description",
      "category": "facilities|academics|sports|culture|technology",
      "sourceUrl": "https://...", "sourceName": "Source name"}}
  ],
  "nostalgiaFactors": [
    {{"memory": "Specific nostalgic memory", "shareableText": "Text optimized for social sharing",
      "sourceUrl": "https://...", "sourceName": "Source name"}}
  ],
  "localContext": [
    {{"event": "Local historical event or context", "relevance": "How it affected the school/students",
      "sourceUrl": "https://...", "sourceName": "Source name"}}
  ],
  "shareableQuotes": ["Quote optimized for social media sharing"]
}}"""


def shareable_content(school_name: str, year: int, total_sources: int, quotes: Any) -> Dict[str, Any]:
    tag = "".join(school_name.split())
    real = total_sources > 0
    return {
        "mainShare": f"Remember {school_name} in {year}? Here's what was happening at our school that year! "
                     f"{'Based on real sources! ' if real else ''}#{tag}Memories #ClassOf{year}",
        "whatsappShare": f"{school_name} {year} memories! "
                         f"{'Found some real info about our school days!' if real else 'Remember these times?'} "
                         "Share with your classmates!",
        "instagramStory": f"{school_name} • Class of {year}\n\nThrowback to our school days\n\n"
                          f"#TBT #SchoolMemories #ClassOf{year}",
        "twitterPost": f"{school_name} Class of {year} - who else remembers these school days? "
                       f"{'Found some real memories! ' if real else ''}Tag your classmates! "
                       f"#SchoolMemories #{year}Nostalgia",
        "variants": [q for q in quotes if isinstance(q, str)] if isinstance(quotes, list) else [],
    }
