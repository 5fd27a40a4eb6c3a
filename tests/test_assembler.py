import pytest
from pydantic import ValidationError

from letex.assembler import (
    DEFAULT_DESCRIPTION,
    DEFAULT_INSTRUCTIONS,
    DEFAULT_TITLE,
    assemble,
    simulation_from_record,
    simulation_from_text,
)
from letex.llm_parsing import ParseError


PENDULUM_RAW = (
    '{"title":"Pendulum","description":"d","instructions":"i",'
    '"controls":[{"id":"speed","type":"slider","min":0,"max":5,"step":0.1}]}'
    "|||SPLIT|||"
    "<!DOCTYPE html><html><script>const bob;</script></html>"
)


def test_pendulum_response_end_to_end():
    sim = simulation_from_text(PENDULUM_RAW)
    assert sim.title == "Pendulum"
    assert sim.description == "d"
    assert sim.instructions == "i"
    assert sim.controls[0]["id"] == "speed"
    assert "let bob;" in sim.code
    assert "const bob;" not in sim.code


def test_split_fixture_keeps_controls_in_order(split_response):
    sim = simulation_from_text(split_response)
    assert sim.title == "Orbit Lab"
    assert sim.control_ids() == ["g", "reset"]
    assert sim.code.startswith("<!DOCTYPE html>")
    assert "let planet;" in sim.code


def test_missing_metadata_fields_get_defaults():
    sim = assemble({}, "<html></html>")
    assert sim.title == DEFAULT_TITLE
    assert sim.description == DEFAULT_DESCRIPTION
    assert sim.instructions == DEFAULT_INSTRUCTIONS
    assert sim.controls == []
    assert sim.code == "<html></html>"


def test_blank_and_non_string_fields():
    sim = assemble({"title": "   ", "description": 42, "instructions": None}, "")
    assert sim.title == DEFAULT_TITLE
    assert sim.description == "42"
    assert sim.instructions == DEFAULT_INSTRUCTIONS


@pytest.mark.parametrize("controls", [None, "slider", {"id": "x"}, 3])
def test_non_list_controls_become_empty(controls):
    assert assemble({"controls": controls}, "").controls == []


def test_malformed_controls_pass_through_unvalidated():
    odd = [{"type": "slider"}, "not-an-object"]
    sim = assemble({"controls": odd}, "")
    assert sim.controls == odd
    assert sim.control_ids() == []


def test_fallback_response_uses_default_text():
    raw = '{"controls": [{"id": "k", "type": "toggle"}]}\n<!DOCTYPE html><html><body></body></html>'
    sim = simulation_from_text(raw)
    assert sim.title == DEFAULT_TITLE
    assert sim.control_ids() == ["k"]


def test_simulation_is_immutable():
    sim = assemble({"title": "Fixed"}, "<html></html>")
    with pytest.raises(ValidationError):
        sim.title = "Changed"


def test_parse_failures_propagate():
    with pytest.raises(ParseError):
        simulation_from_text("no structure here")


def test_record_round_trip_ignores_store_columns():
    sim = simulation_from_text(PENDULUM_RAW)
    row = dict(sim.to_record(), id="abc", prompt="pendulum", created_at="2024-01-01T00:00:00Z")
    assert simulation_from_record(row) == sim
