# tests/test_prompt.py
from relay.services.prompt import build_instructions

def test_instructions_bind_name_and_fallback():
    text = build_instructions("Acme Helper", "Please contact support.")
    lines = text.split("\n")
    assert len(lines) == 5
    assert lines[0].startswith("You are Acme Helper.")
    assert "only the knowledge from your linked files" in lines[1]
    assert "short" in lines[2]
    assert '"Please contact support."' in lines[3]
    assert "citation markers" in lines[4]

def test_instructions_are_deterministic():
    assert build_instructions("Bot", "x") == build_instructions("Bot", "x")
