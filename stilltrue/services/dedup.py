from typing import List, Sequence, Set
import logging
import re

from stilltrue.services.fact_record import FactRecord

logger = logging.getLogger("dedup")

DEFAULT_THRESHOLD = 0.7


def _tokens(text: str) -> Set[str]:
    return {w for w in re.split(r"\W+", (text or "").lower()) if w}


def jaccard(a: str, b: str) -> float:
    ta, tb = _tokens(a), _tokens(b)
    union = ta | tb
    if not union:
        return 0.0
    return len(ta & tb) / len(union)


def find_duplicate_indices(facts: Sequence[FactRecord], threshold: float = DEFAULT_THRESHOLD) -> Set[int]:
    """Indices of records whose statement overlaps an earlier one by more than ``threshold``.

    Every unordered pair is compared; the higher index of a similar pair is
    marked. Quadratic, which is fine for the dozen candidates a request sees.
    """
    token_sets = [_tokens(f.statement) for f in facts]
    dupes: Set[int] = set()
    for i in range(len(token_sets)):
        for j in range(i + 1, len(token_sets)):
            union = token_sets[i] | token_sets[j]
            if not union:
                continue
            sim = len(token_sets[i] & token_sets[j]) / len(union)
            if sim > threshold:
                dupes.add(j)
    return dupes


def drop_duplicates(facts: Sequence[FactRecord], threshold: float = DEFAULT_THRESHOLD) -> List[FactRecord]:
    dupes = find_duplicate_indices(facts, threshold)
    for idx in sorted(dupes):
        logger.info("Duplicate removed: %s", facts[idx].statement[:60])
    return [f for i, f in enumerate(facts) if i not in dupes]
