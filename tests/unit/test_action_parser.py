from __future__ import annotations

from packages.action_parser import get_summary, normalize_box, parse_action_text
from packages.contracts.models import ScreenSize
from tests.fixtures.sample_data import CLICK_PREDICTION


def test_click_point_parses_to_normalized_box() -> None:
    result = parse_action_text(CLICK_PREDICTION, factor=1000)
    assert len(result.parsed) == 1
    action = result.parsed[0]
    assert action.action_type == "click"
    assert action.action_inputs["start_box"] == "[0.072,0.646,0.072,0.646]"
    assert action.thought == "Click the box"
    assert action.reflection is None


def test_full_box_and_end_box() -> None:
    text = "Thought: move it\nAction: drag(start_box='[100,200,300,400]', end_box='[500,500,600,600]')"
    action = parse_action_text(text).parsed[0]
    assert action.action_type == "drag"
    assert action.action_inputs["start_box"] == "[0.1,0.2,0.3,0.4]"
    assert action.action_inputs["end_box"] == "[0.5,0.5,0.6,0.6]"


def test_out_of_range_values_are_clamped() -> None:
    assert normalize_box("(1500,-20)", 1000) == "[1,0,1,0]"


def test_per_axis_factor() -> None:
    assert normalize_box("(640,360)", (1280, 720)) == "[0.5,0.5,0.5,0.5]"


def test_unparseable_box_becomes_empty() -> None:
    action = parse_action_text("Thought: x\nAction: click(start_box='nowhere')").parsed[0]
    assert action.action_inputs["start_box"] == ""


def test_no_action_marker_yields_nothing() -> None:
    assert parse_action_text("Thought: I am thinking only").parsed == []
    assert parse_action_text("").parsed == []


def test_type_content_keeps_escaped_newline_and_apostrophes() -> None:
    text = "Thought: search\nAction: type(content='it's raining\\n')"
    action = parse_action_text(text).parsed[0]
    assert action.action_type == "type"
    assert action.action_inputs["content"] == "it's raining\\n"


def test_escaped_quote_inside_value() -> None:
    action = parse_action_text("Action: type(content='say \\'hi\\'')").parsed[0]
    assert action.action_inputs["content"] == "say 'hi'"


def test_multiple_actions_share_thought() -> None:
    text = "Thought: two steps\nAction: hotkey(key='ctrl c')\n\nhotkey(key='ctrl v')"
    parsed = parse_action_text(text).parsed
    assert [p.action_type for p in parsed] == ["hotkey", "hotkey"]
    assert [p.action_inputs["key"] for p in parsed] == ["ctrl c", "ctrl v"]
    assert all(p.thought == "two steps" for p in parsed)


def test_bare_action_name_without_parens() -> None:
    parsed = parse_action_text("Thought: done\nAction: finished").parsed
    assert len(parsed) == 1
    assert parsed[0].action_type == "finished"
    assert parsed[0].action_inputs == {}


def test_unknown_action_passes_through() -> None:
    action = parse_action_text("Action: teleport(where='home')").parsed[0]
    assert action.action_type == "teleport"
    assert action.action_inputs == {"where": "home"}


def test_reflection_and_action_summary() -> None:
    text = (
        "Reflection: The last click missed.\n"
        "Action_Summary: Click the search field again.\n"
        "Action: click(start_box='(10,10)')"
    )
    action = parse_action_text(text).parsed[0]
    assert action.reflection == "The last click missed."
    assert action.thought == "Click the search field again."


def test_screen_context_adds_pixel_coords() -> None:
    action = parse_action_text(
        "Action: click(start_box='(500,500)')",
        screen_context=ScreenSize(width=1000, height=800),
        scale_factor=2.0,
    ).parsed[0]
    assert action.action_inputs["start_coords"] == "[1000,800]"


def test_summary_strips_reflection() -> None:
    text = "Reflection: wrong tab.\nAction_Summary: switch tab\nAction: hotkey(key='ctrl tab')"
    summary = get_summary(text)
    assert "Reflection" not in summary
    assert summary.startswith("Action_Summary: switch tab")


def test_action_marker_inside_thought_is_ignored() -> None:
    parsed = parse_action_text("Thought: the next Action: is obvious\nAction: finished()").parsed
    assert [p.action_type for p in parsed] == ["finished"]
    assert parsed[0].thought == "the next Action: is obvious"


def test_last_action_line_wins() -> None:
    text = "Thought: retry\nAction: wait()\nAction: click(start_box='(10,20)')"
    parsed = parse_action_text(text).parsed
    assert [p.action_type for p in parsed] == ["click"]
    assert parsed[0].thought == "retry"
