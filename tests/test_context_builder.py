from datetime import datetime

import pytest

from courtroom.engine.context_builder import RESPOND_INSTRUCTION, build_prompt, render_transcript
from courtroom.engine.personas import PERSONAS, Persona, get_profile
from courtroom.models.session import Speaker, Turn


def _turn(speaker, name, text):
    return Turn(speaker=speaker, name=name, text=text, timestamp=datetime(2024, 3, 3, 12, 0))


@pytest.fixture
def history():
    return [
        _turn(Speaker.JUDGE, "Judge Van der Berg", "The court is in session."),
        _turn(Speaker.STUDENT, "Alex Vermeer (Defendant - YOU)", "I was not there."),
    ]


def test_prompt_sections_come_in_order(case, history):
    payload = build_prompt(case, history, Persona.PROSECUTOR, "Present the next item.", responding_to="I was not there.")
    text = payload.system

    positions = [
        text.index(f"CASE: {case.title}"),
        text.index(f"DESCRIPTION: {case.description}"),
        text.index("EVIDENCE: "),
        text.index("TRANSCRIPT SO FAR"),
        text.index("CURRENT SITUATION"),
        text.index("Present the next item."),
        text.index('RESPOND TO: "I was not there."'),
        text.index(PERSONAS[Persona.PROSECUTOR].instructions),
    ]
    assert positions == sorted(positions)
    assert text == text.strip()


def test_evidence_is_joined_with_semicolons(case):
    payload = build_prompt(case, [], Persona.JUDGE, "Open the hearing.")

    assert f"EVIDENCE: {case.evidence[0]}; {case.evidence[1]}" in payload.system


def test_transcript_lines_use_display_names(history):
    assert render_transcript(history) == (
        "Judge Van der Berg: The court is in session.\n"
        "Alex Vermeer (Defendant - YOU): I was not there."
    )


def test_empty_transcript_has_no_history_section(case):
    payload = build_prompt(case, [], Persona.JUDGE, "Open the hearing.")

    assert "TRANSCRIPT SO FAR" not in payload.system
    assert "RESPOND TO" not in payload.system


def test_long_quotes_are_flattened_and_truncated(case):
    message = "line one\nline two " + "z" * 400
    payload = build_prompt(case, [], Persona.JUDGE, "Ask a follow-up.", responding_to=message)

    quoted = payload.system.split('RESPOND TO: "', 1)[1].split('"', 1)[0]
    assert quoted.startswith("line one line two ")
    assert quoted.endswith("...")
    assert len(quoted) <= 203


def test_each_persona_gets_its_own_instructions(case):
    judge = build_prompt(case, [], Persona.JUDGE, "x").system
    prosecutor = build_prompt(case, [], Persona.PROSECUTOR, "x").system

    assert "Judge Van der Berg" in judge
    assert "Prosecutor Jansen" in prosecutor
    assert PERSONAS[Persona.JUDGE].instructions not in prosecutor


def test_persona_can_be_given_by_value(case):
    assert build_prompt(case, [], "judge", "x") == build_prompt(case, [], Persona.JUDGE, "x")


def test_unknown_persona_is_rejected(case):
    with pytest.raises(ValueError):
        build_prompt(case, [], "clerk", "x")
    with pytest.raises(ValueError):
        get_profile("bailiff")


def test_payload_becomes_chat_messages(case):
    messages = build_prompt(case, [], Persona.JUDGE, "Open the hearing.").to_messages()

    assert [m["role"] for m in messages] == ["system", "user"]
    assert messages[1]["content"] == RESPOND_INSTRUCTION


def test_build_prompt_does_not_touch_the_transcript(case, history):
    before = list(history)
    build_prompt(case, history, Persona.JUDGE, "x", responding_to="y")

    assert history == before
