from stilltrue.services.response_parser import extract_json_object, parse_fact_response, strip_code_fences


def test_fenced_json_yields_embedded_arrays():
    text = (
        "Here you go:\n```json\n"
        '{"facts": [{"category": "Biology", "fact": "x"}], '
        '"educationProblems": [{"problem": "p", "description": "d", "impact": "i"}]}\n'
        "```\nHope this helps."
    )
    res = parse_fact_response(text)
    assert res.ok
    assert res.facts == [{"category": "Biology", "fact": "x"}]
    assert res.education_problems == [{"problem": "p", "description": "d", "impact": "i"}]


def test_garbage_yields_empty_result_with_reason():
    for text in ("", "no braces at all", "{not json}", "} backwards {", None):
        res = parse_fact_response(text)
        assert not res.ok
        assert res.facts == []
        assert res.education_problems == []
        assert res.reason


def test_missing_and_malformed_arrays_default_to_empty():
    res = parse_fact_response('{"facts": "oops", "other": 1}')
    assert res.ok
    assert res.facts == []
    assert res.education_problems == []

    res = parse_fact_response('{"facts": [1, "two", {"fact": "kept"}, null]}')
    assert res.facts == [{"fact": "kept"}]


def test_extract_json_object_needs_an_object():
    obj, reason = extract_json_object("[1, 2, 3]")
    assert obj is None
    assert reason


def test_strip_code_fences_keeps_payload():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
