from stilltrue.services.fallback_bank import fallback_education_problems, fallback_facts


def test_bank_facts_respect_debunk_year_invariant():
    facts = fallback_facts("Germany", 1990, current_year=2026)
    assert len(facts) == 8
    for i, fact in enumerate(facts):
        assert fact.year_debunked == 1998 + i
        assert fact.year_debunked > 1990
        assert "Germany" in fact.statement and "1990" in fact.statement
        assert fact.confidence_level == "high"
        assert fact.quality_score >= 0.83
        assert fact.validation.is_valid is True


def test_debunk_year_is_capped_at_current_year():
    facts = fallback_facts("France", 2024, current_year=2026)
    assert facts
    assert all(f.year_debunked == 2026 for f in facts)
    assert fallback_facts("France", 2026, current_year=2026) == []


def test_language_variants_and_unknown_language():
    en = fallback_facts("Austria", 1985, "en", current_year=2026)
    de = fallback_facts("Austria", 1985, "de", current_year=2026)
    fr = fallback_facts("Austria", 1985, "fr", current_year=2026)
    assert de[0].statement.startswith("Im Jahr 1985")
    assert en[0].statement != de[0].statement
    assert [f.statement for f in fr] == [f.statement for f in en]


def test_limit_truncates_and_shuffle_keeps_members():
    ordered = fallback_facts("Spain", 1970, limit=3, current_year=2026)
    assert [f.category for f in ordered] == ["Biology", "Physics", "Science"]
    shuffled = fallback_facts("Spain", 1970, shuffle=True, current_year=2026)
    assert sorted(f.statement for f in shuffled) == sorted(f.statement for f in fallback_facts("Spain", 1970, current_year=2026))
    assert fallback_facts("Spain", 1970, limit=0, current_year=2026) == []


def test_education_problems_localized():
    en = fallback_education_problems("en")
    de = fallback_education_problems("de")
    assert en and de
    assert all(p.problem for p in en + de)
    assert en[0].problem != de[0].problem
