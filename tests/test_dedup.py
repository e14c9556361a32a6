from stilltrue.services.dedup import drop_duplicates, find_duplicate_indices, jaccard
from stilltrue.services.fact_record import FactRecord


def _fact(statement: str) -> FactRecord:
    return FactRecord(category="Biology", statement=statement,
                      correction="Bats can see and many have good night vision.", year_debunked=2000)


def test_bats_are_blind_near_duplicates_collapse_to_one():
    facts = [
        _fact("In 1990, students in Germany were taught that bats are completely blind animals."),
        _fact("In 1990, students in Germany were taught that bats are completely blind creatures."),
        _fact("Students learned that Pluto was the ninth planet of the solar system."),
    ]
    survivors = drop_duplicates(facts)
    assert len(survivors) == 2
    assert survivors[0] is facts[0]
    assert survivors[1] is facts[2]


def test_higher_index_is_marked():
    a = "the quick brown fox jumps over the lazy dog"
    facts = [_fact("unrelated sentence about goldfish memory"), _fact(a), _fact(a + " again")]
    assert find_duplicate_indices(facts) == {2}


def test_threshold_is_strict():
    # 7 shared tokens of 10 total -> exactly 0.7, not a duplicate
    a = "one two three four five six seven eight"
    b = "one two three four five six seven nine ten"
    assert abs(jaccard(a, b) - 0.7) < 1e-9
    assert find_duplicate_indices([_fact(a), _fact(b)]) == set()


def test_tokenization_ignores_case_and_punctuation():
    assert jaccard("Bats, are BLIND!", "bats are blind") == 1.0
    assert jaccard("", "") == 0.0
