"""Unit tests for clarifying-question selection."""

import pytest

from skillcoach.niche_requirements import STATE_FIELD, missing_fields, required_fields


@pytest.mark.parametrize(
    "args",
    [
        ("custom", "Custom", None, "Passing the DMV written test"),
        ("permit", "Permit Test Prep", None, None),
        ("cdl", "Trucking", "Covers the CDL general knowledge exam.", None),
        ("custom", "Custom", "", "state handbook review"),
    ],
)
def test_jurisdiction_niches_ask_for_state(args):
    fields = required_fields(*args)

    assert [f.key for f in fields] == ["state"]
    assert fields[0].placeholder


@pytest.mark.parametrize(
    "args",
    [
        ("custom", "Custom", None, "cooking basics"),
        ("fitness_health", "Fitness & Health", "Form cues and recovery.", None),
        ("", "", None, None),
    ],
)
def test_other_niches_need_nothing(args):
    assert required_fields(*args) == []


def test_match_is_case_insensitive():
    assert required_fields("x", "PERMIT TEST", None, None) == [STATE_FIELD]


def test_missing_fields_uses_answers():
    fields = [STATE_FIELD]

    assert missing_fields(fields, {}) == fields
    assert missing_fields(fields, {"state": "  "}) == fields
    assert missing_fields(fields, {"state": "Indiana"}) == []


def test_field_serialises_placeholder():
    assert STATE_FIELD.to_dict()["key"] == "state"
    assert "placeholder" in STATE_FIELD.to_dict()
