from services.prompt_builder import (
    CLOSING_INSTRUCTIONS, DEFAULT_SPECIALTY, OUTPUT_SCHEMA, TRANSCRIPT_DELIMITER,
    build_prompt, serialize_template_hint
)

TRANSCRIPT = "Hasta: Başım ağrıyor."


def test_prompt_is_deterministic():
    structure = {"subjective": ["onset"], "objective": ["neuro exam"]}
    first = build_prompt(TRANSCRIPT, "Neurology", structure)
    second = build_prompt(TRANSCRIPT, "Neurology", dict(reversed(list(structure.items()))))
    assert first == second


def test_sections_appear_in_order():
    prompt = build_prompt(TRANSCRIPT, "Cardiology", {"plan": ["ECG"]})
    markers = [
        "You are an expert medical scribe",
        "PATIENT PRIVACY NOTICE",
        "TRANSCRIPT:",
        "SPECIALTY: Cardiology",
        "TEMPLATE STRUCTURE",
        "OUTPUT FORMAT (JSON):",
        "RULES:",
    ]
    positions = [prompt.index(marker) for marker in markers]
    assert positions == sorted(positions)


def test_transcript_is_delimited_verbatim():
    prompt = build_prompt(TRANSCRIPT)
    assert f"{TRANSCRIPT_DELIMITER}\n{TRANSCRIPT}\n{TRANSCRIPT_DELIMITER}" in prompt


def test_default_specialty_is_used():
    assert f"SPECIALTY: {DEFAULT_SPECIALTY}" in build_prompt(TRANSCRIPT)
    assert f"SPECIALTY: {DEFAULT_SPECIALTY}" in build_prompt(TRANSCRIPT, "")


def test_schema_and_rules_are_included():
    prompt = build_prompt(TRANSCRIPT)
    assert OUTPUT_SCHEMA in prompt
    assert prompt.endswith(CLOSING_INSTRUCTIONS)


def test_template_hint_serialization_is_sorted():
    assert serialize_template_hint(None) == "{}"
    rendered = serialize_template_hint({"b": 1, "a": 2})
    assert rendered.index('"a"') < rendered.index('"b"')
