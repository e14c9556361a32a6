"""Hand-curated, pre-scored facts used when generation comes up short.

Statements are templated with ``{country}`` and ``{year}``. Debunk years are
placed after the graduation year; entries that cannot satisfy
``yearDebunked > graduationYear`` (a graduation year in the present) are left
out rather than clamped into an invalid state.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional
import random

from stilltrue.services.fact_record import EducationProblem, FactRecord, FactValidation

_MISCONCEPTIONS = "https://en.wikipedia.org/wiki/List_of_common_misconceptions"

_BANK: Dict[str, List[dict]] = {
    "en": [
        {
            "category": "Biology",
            "statement": "In {year}, biology students in {country} were authoritatively taught in every textbook that bats are completely blind and navigate only through echolocation - this was presented as absolute scientific fact.",
            "correction": "All bat species actually have eyes and can see. Many bats have excellent night vision, and only some species primarily use echolocation for navigation.",
            "salience": "Students spent years believing mammals could be completely blind when bats actually have better night vision than most animals!",
            "sourceUrl": _MISCONCEPTIONS + "#Vertebrates",
            "score": 0.88,
        },
        {
            "category": "Physics",
            "statement": "In {year}, science students in {country} learned that Earth's seasons are caused by the planet being closer to the Sun in summer and farther away in winter - teachers presented this as basic astronomy.",
            "correction": "Seasons are actually caused by Earth's 23.4-degree axial tilt. Earth is actually closest to the Sun in January (Northern Hemisphere winter) and farthest in July.",
            "salience": "Schools taught the exact opposite of reality - summer happens when we're farther from the Sun, not closer!",
            "sourceUrl": _MISCONCEPTIONS + "#Astronomy",
            "score": 0.89,
        },
        {
            "category": "Science",
            "statement": "In {year}, students in {country} confidently learned that the tongue had specific taste zones - sweet at the tip, sour on the sides, bitter at the back - and memorized these zones for biology tests.",
            "correction": "Taste buds for all flavors are actually distributed across the entire tongue. The 'tongue map' was based on a mistranslation of a German study from 1901.",
            "salience": "Generations of students drew completely wrong tongue diagrams because of a translation error from over 100 years ago!",
            "sourceUrl": _MISCONCEPTIONS + "#Human_body_and_health",
            "score": 0.83,
        },
        {
            "category": "Geography",
            "statement": "In {year}, geography classes in {country} proudly taught that the Great Wall of China is the only human-made structure visible from space with the naked eye - this was a standard 'amazing fact' in textbooks.",
            "correction": "The Great Wall is NOT visible from space with the naked eye. No Apollo astronauts reported seeing any specific human structures from the Moon, and even from low Earth orbit it requires magnification.",
            "salience": "One of the most repeated 'facts' in schools was completely false - astronauts couldn't see it even when they tried!",
            "sourceUrl": _MISCONCEPTIONS + "#Structures_and_buildings",
            "score": 0.88,
        },
        {
            "category": "Medicine",
            "statement": "In {year}, health classes in {country} definitively taught that stomach ulcers are caused by stress, spicy food, and acid - doctors prescribed bland diets and stress management as the cure.",
            "correction": "Most stomach ulcers are actually caused by H. pylori bacteria and can be cured with antibiotics in about a week. The bacterial cause was proven in the 1980s.",
            "salience": "Medical textbooks were prescribing lifestyle changes for what turned out to be a simple bacterial infection - the discoverers even won a Nobel Prize!",
            "sourceUrl": "https://en.wikipedia.org/wiki/Helicobacter_pylori",
            "score": 0.91,
        },
        {
            "category": "History",
            "statement": "In {year}, history students in {country} learned that medieval people believed the Earth was flat until Columbus proved it was round by sailing to America.",
            "correction": "Educated people knew the Earth was spherical since ancient Greek times. Medieval scholars, navigators, and even common people understood Earth's roundness - the flat Earth myth was largely invented in the 1800s.",
            "salience": "Schools taught a completely fabricated story about medieval ignorance - they actually had better geographical knowledge than we gave them credit for!",
            "sourceUrl": "https://en.wikipedia.org/wiki/Myth_of_the_flat_Earth",
            "score": 0.83,
        },
        {
            "category": "Biology",
            "statement": "In {year}, students in {country} were told in class that humans only use ten percent of their brains, and that unlocking the rest would make them geniuses.",
            "correction": "Brain imaging shows that virtually every region of the brain is active over the course of a day; there is no dormant ninety percent.",
            "salience": "A motivational-poster myth made it into classrooms and stuck for generations, despite no neuroscience ever supporting it.",
            "sourceUrl": "https://en.wikipedia.org/wiki/Ten_percent_of_the_brain_myth",
            "score": 0.85,
        },
        {
            "category": "History",
            "statement": "In {year}, history lessons in {country} illustrated Viking warriors wearing horned helmets into battle as an accurate depiction of Norse culture.",
            "correction": "No horned helmet has ever been found from the Viking Age. The image comes from 19th-century costume design, notably for Wagner's operas.",
            "salience": "The most famous 'Viking' look was invented by an opera costume designer almost a thousand years later!",
            "sourceUrl": "https://en.wikipedia.org/wiki/Horned_helmet",
            "score": 0.84,
        },
    ],
    "de": [
        {
            "category": "Biologie",
            "statement": "Im Jahr {year} wurde Biologie-Schülern in {country} in jedem Lehrbuch als absolute wissenschaftliche Tatsache gelehrt, dass Fledermäuse völlig blind sind und nur durch Echoortung navigieren.",
            "correction": "Alle Fledermausarten haben tatsächlich Augen und können sehen. Viele Fledermäuse haben ausgezeichnetes Nachtsehen, und nur einige Arten nutzen hauptsächlich Echoortung zur Navigation.",
            "salience": "Schüler glaubten jahrelang, dass Säugetiere völlig blind sein könnten, obwohl Fledermäuse tatsächlich besseres Nachtsehen haben als die meisten Tiere!",
            "sourceUrl": _MISCONCEPTIONS + "#Vertebrates",
            "score": 0.88,
        },
        {
            "category": "Physik",
            "statement": "Im Jahr {year} lernten Naturwissenschafts-Schüler in {country}, dass die Jahreszeiten der Erde dadurch verursacht werden, dass der Planet im Sommer näher an der Sonne und im Winter weiter entfernt ist - Lehrer präsentierten dies als grundlegende Astronomie.",
            "correction": "Jahreszeiten werden tatsächlich durch die 23,4-Grad-Achsenneigung der Erde verursacht. Die Erde ist der Sonne im Januar am nächsten (Winter auf der Nordhalbkugel) und im Juli am weitesten entfernt.",
            "salience": "Schulen lehrten das genaue Gegenteil der Realität - der Sommer findet statt, wenn wir weiter von der Sonne entfernt sind, nicht näher!",
            "sourceUrl": _MISCONCEPTIONS + "#Astronomy",
            "score": 0.89,
        },
        {
            "category": "Naturwissenschaft",
            "statement": "Im Jahr {year} lernten Schüler in {country} selbstbewusst, dass die Zunge bestimmte Geschmackszonen hat - süß an der Spitze, sauer an den Seiten, bitter hinten - und memorierten diese Zonen für Biologietests.",
            "correction": "Geschmacksknospen für alle Geschmacksrichtungen sind tatsächlich über die gesamte Zunge verteilt. Die 'Zungenkarte' basierte auf einer Fehlübersetzung einer deutschen Studie von 1901.",
            "salience": "Generationen von Schülern zeichneten völlig falsche Zungendiagramme wegen eines Übersetzungsfehlers von vor über 100 Jahren!",
            "sourceUrl": _MISCONCEPTIONS + "#Human_body_and_health",
            "score": 0.83,
        },
        {
            "category": "Geographie",
            "statement": "Im Jahr {year} lehrten Geographie-Klassen in {country} stolz, dass die Chinesische Mauer die einzige von Menschen geschaffene Struktur ist, die mit bloßem Auge aus dem All sichtbar ist - dies war eine Standard-'erstaunliche Tatsache' in Lehrbüchern.",
            "correction": "Die Chinesische Mauer ist mit bloßem Auge NICHT aus dem All sichtbar. Keine Apollo-Astronauten berichteten, spezifische menschliche Strukturen vom Mond zu sehen, und selbst aus niedrigem Erdorbit benötigt man Vergrößerung.",
            "salience": "Eine der am häufigsten wiederholten 'Fakten' in Schulen war völlig falsch - Astronauten konnten sie nicht einmal sehen, als sie es versuchten!",
            "sourceUrl": _MISCONCEPTIONS + "#Structures_and_buildings",
            "score": 0.88,
        },
        {
            "category": "Medizin",
            "statement": "Im Jahr {year} lehrten Gesundheitsklassen in {country} definitiv, dass Magengeschwüre durch Stress, scharfes Essen und Säure verursacht werden - Ärzte verschrieben fade Diäten und Stressmanagement als Heilung.",
            "correction": "Die meisten Magengeschwüre werden tatsächlich durch H. pylori-Bakterien verursacht und können in etwa einer Woche mit Antibiotika geheilt werden. Die bakterielle Ursache wurde in den 1980er Jahren bewiesen.",
            "salience": "Medizinische Lehrbücher verschrieben Lebensstiländerungen für das, was sich als einfache bakterielle Infektion herausstellte - die Entdecker gewannen sogar einen Nobelpreis!",
            "sourceUrl": "https://de.wikipedia.org/wiki/Helicobacter_pylori",
            "score": 0.91,
        },
        {
            "category": "Geschichte",
            "statement": "Im Jahr {year} lernten Geschichts-Schüler in {country}, dass mittelalterliche Menschen glaubten, die Erde sei flach, bis Kolumbus durch seine Segelreise nach Amerika bewies, dass sie rund ist.",
            "correction": "Gebildete Menschen wussten seit der griechischen Antike, dass die Erde kugelförmig ist. Mittelalterliche Gelehrte, Seefahrer und sogar gewöhnliche Menschen verstanden die Rundheit der Erde - der Flacherde-Mythos wurde größtenteils im 19. Jahrhundert erfunden.",
            "salience": "Schulen lehrten eine völlig erfundene Geschichte über mittelalterliche Unwissenheit - sie hatten tatsächlich besseres geographisches Wissen, als wir ihnen zugestanden!",
            "sourceUrl": "https://de.wikipedia.org/wiki/Mythos_der_flachen_Erde",
            "score": 0.83,
        },
        {
            "category": "Biologie",
            "statement": "Im Jahr {year} hörten Schüler in {country} im Unterricht, dass Menschen nur zehn Prozent ihres Gehirns nutzen und mit dem Rest zu Genies werden könnten.",
            "correction": "Bildgebende Verfahren zeigen, dass praktisch jede Hirnregion im Laufe eines Tages aktiv ist; es gibt keine ungenutzten neunzig Prozent.",
            "salience": "Ein Motivationsposter-Mythos schaffte es ins Klassenzimmer und hielt sich über Generationen, ohne jemals neurowissenschaftlich belegt zu sein.",
            "sourceUrl": "https://de.wikipedia.org/wiki/10-Prozent-Mythos",
            "score": 0.85,
        },
        {
            "category": "Geschichte",
            "statement": "Im Jahr {year} zeigte der Geschichtsunterricht in {country} Wikinger mit Hörnerhelmen als zutreffende Darstellung der nordischen Kultur.",
            "correction": "Aus der Wikingerzeit wurde nie ein Hörnerhelm gefunden. Das Bild stammt aus Kostümentwürfen des 19. Jahrhunderts, vor allem für Wagners Opern.",
            "salience": "Der berühmteste 'Wikinger'-Look wurde fast tausend Jahre später von einem Opern-Kostümbildner erfunden!",
            "sourceUrl": "https://de.wikipedia.org/wiki/Hörnerhelm",
            "score": 0.84,
        },
    ],
}

_PROBLEMS: Dict[str, List[dict]] = {
    "en": [
        {
            "problem": "Slow textbook revision cycles",
            "description": "Printed textbooks stayed in classrooms for years after the underlying science had moved on.",
            "impact": "Several cohorts of students memorised facts that were already outdated.",
        },
        {
            "problem": "Teaching for recall instead of inquiry",
            "description": "Exams rewarded reproducing textbook statements rather than questioning sources.",
            "impact": "Misconceptions survived because nobody was asked to check them.",
        },
    ],
    "de": [
        {
            "problem": "Langsame Überarbeitung von Schulbüchern",
            "description": "Gedruckte Schulbücher blieben jahrelang im Einsatz, nachdem sich der Forschungsstand geändert hatte.",
            "impact": "Mehrere Jahrgänge lernten bereits überholte Fakten auswendig.",
        },
        {
            "problem": "Auswendiglernen statt Hinterfragen",
            "description": "Prüfungen belohnten das Wiedergeben von Lehrbuchsätzen statt der Prüfung von Quellen.",
            "impact": "Irrtümer überlebten, weil niemand sie überprüfen sollte.",
        },
    ],
}


def _bank_language(language: str) -> str:
    return language if language in _BANK else "en"


def _current_year() -> int:
    return datetime.now(timezone.utc).year


def fallback_facts(country: str, graduation_year: int, language: str = "en",
                   limit: Optional[int] = None, shuffle: bool = False,
                   current_year: Optional[int] = None) -> List[FactRecord]:
    """Bank facts for ``(country, graduation_year)`` in ``language``.

    Deterministic order unless ``shuffle`` is set. Callers must not rely on
    ordering across call sites.
    """
    now_year = current_year or _current_year()
    out: List[FactRecord] = []
    for i, entry in enumerate(_BANK[_bank_language(language)]):
        year_debunked = min(graduation_year + 8 + i, now_year)
        if year_debunked <= graduation_year:
            continue
        out.append(FactRecord(
            category=entry["category"],
            statement=entry["statement"].format(country=country, year=graduation_year),
            correction=entry["correction"],
            year_debunked=year_debunked,
            salience=entry["salience"],
            source_url=entry["sourceUrl"],
            source_name="Wikipedia",
            quality_score=entry["score"],
            confidence_level="high",
            validation=FactValidation(is_valid=True, confidence_score=entry["score"], sources=[entry["sourceUrl"]]),
        ))
    if shuffle:
        random.shuffle(out)
    if limit is not None:
        out = out[:max(0, limit)]
    return out


def fallback_education_problems(language: str = "en") -> List[EducationProblem]:
    return [EducationProblem(**p) for p in _PROBLEMS.get(language, _PROBLEMS["en"])]
