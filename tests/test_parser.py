import warnings

import pytest

from tool_agent.parser import (
    DEFAULT_COMPLETION_MESSAGE,
    NO_DECISION_MESSAGE,
    ToolDecisionWarning,
    extract_field,
    infer_tool_decision,
    parse_input,
    parse_tool_decision,
)

TOOLS = ["read_file", "write_file", "list_files", "execute_code"]

BLOCK = """<TOOL_DECISION>
ACTION: read_file
INPUT: {"filepath": "src/app.py"}
REASONING: Need to see the entry point
STATUS: continue
</TOOL_DECISION>"""


# ---------------------------------------------------------------------------
# Block parsing
# ---------------------------------------------------------------------------

def test_parse_block_valid():
    decision = parse_tool_decision(BLOCK, TOOLS)
    assert decision.action == "read_file"
    assert decision.input == {"filepath": "src/app.py"}
    assert decision.reasoning == "Need to see the entry point"
    assert decision.status == "continue"


@pytest.mark.parametrize(
    "wrap",
    [
        lambda b: b,
        lambda b: "Let me look at the file first.\n\n" + b + "\n\nThen I'll decide.",
        lambda b: b.replace("\n", "\r\n"),
        lambda b: b.replace("\n", "\n   "),
        lambda b: b.replace("TOOL_DECISION", "tool_decision"),
    ],
)
def test_parse_block_invariant_to_prose_and_whitespace(wrap):
    expected = parse_tool_decision(BLOCK, TOOLS)
    assert parse_tool_decision(wrap(BLOCK), TOOLS) == expected


def test_parse_block_empty_input_is_empty_dict():
    reply = "<TOOL_DECISION>\nACTION: list_files\nINPUT: {}\nREASONING: look around\n</TOOL_DECISION>"
    decision = parse_tool_decision(reply, TOOLS)
    assert decision.action == "list_files"
    assert decision.input == {}


def test_parse_block_malformed_json_warns_and_empties_input():
    reply = "<TOOL_DECISION>\nACTION: read_file\nINPUT: {filepath: oops}\nREASONING: r\n</TOOL_DECISION>"
    with pytest.warns(ToolDecisionWarning, match="Failed to parse INPUT JSON"):
        decision = parse_tool_decision(reply, TOOLS)
    assert decision.action == "read_file"
    assert decision.input == {}


def test_parse_block_fenced_json():
    reply = (
        "<TOOL_DECISION>\nACTION: write_file\n"
        'INPUT: ```json\n{"filepath": "a.txt", "content": "x: y"}\n```\n'
        "REASONING: save it\n</TOOL_DECISION>"
    )
    decision = parse_tool_decision(reply, TOOLS)
    assert decision.input == {"filepath": "a.txt", "content": "x: y"}


def test_parse_block_multiline_json_input():
    reply = (
        "<TOOL_DECISION>\nACTION: execute_code\n"
        'INPUT: {\n  "code": "print(1)"\n}\n'
        "REASONING: run it\nSTATUS: continue\n</TOOL_DECISION>"
    )
    decision = parse_tool_decision(reply, TOOLS)
    assert decision.input == {"code": "print(1)"}


@pytest.mark.parametrize("action", ["", "none", "NULL"])
def test_parse_block_null_action(action):
    reply = f"<TOOL_DECISION>\nACTION: {action}\nINPUT: {{}}\nREASONING: nothing to do\n</TOOL_DECISION>"
    assert parse_tool_decision(reply, TOOLS).action is None


def test_parse_block_status_final_only_on_exact_match():
    final = BLOCK.replace("STATUS: continue", "STATUS:  Final ")
    almost = BLOCK.replace("STATUS: continue", "STATUS: finalize")
    assert parse_tool_decision(final, TOOLS).status == "final"
    assert parse_tool_decision(almost, TOOLS).status == "continue"


# ---------------------------------------------------------------------------
# Completion marker
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("marker", ["TASK COMPLETE", "task_complete", "Task Complete"])
def test_completion_marker(marker):
    decision = parse_tool_decision(f"All done.\n{marker}: wrote 3 files", TOOLS)
    assert decision.status == "final"
    assert decision.action is None
    assert decision.reasoning == "wrote 3 files"


def test_completion_marker_without_summary():
    decision = parse_tool_decision("TASK COMPLETE", TOOLS)
    assert decision.status == "final"
    assert decision.reasoning == DEFAULT_COMPLETION_MESSAGE


# ---------------------------------------------------------------------------
# Heuristic inference
# ---------------------------------------------------------------------------

def test_infer_first_mentioned_tool_wins():
    reply = "I should use list_files first, then read_file on what I find."
    decision = parse_tool_decision(reply, TOOLS)
    assert decision.action == "list_files"
    assert decision.reasoning == "Inferred: list_files mentioned in response"
    assert decision.status == "continue"


def test_infer_extracts_quoted_path_for_file_tools():
    decision = infer_tool_decision("Next I will read_file on 'config/settings.yaml'.", TOOLS)
    assert decision.action == "read_file"
    assert decision.input == {"filepath": "config/settings.yaml"}


def test_infer_requires_whole_word():
    decision = infer_tool_decision("my_read_file_helper is unrelated", TOOLS)
    assert decision.action is None


def test_infer_ignores_tools_outside_allow_list():
    decision = parse_tool_decision("maybe execute_code would help", ["read_file"])
    assert decision.action is None
    assert decision.reasoning == NO_DECISION_MESSAGE


def test_no_tool_in_reply():
    decision = parse_tool_decision("I am thinking about the problem.", TOOLS)
    assert decision.action is None
    assert decision.status == "continue"
    assert decision.input == {}


def test_empty_reply():
    assert parse_tool_decision("", TOOLS).action is None


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def test_extract_field_keeps_later_colons():
    text = "ACTION: read_file\nREASONING: note: the path is relative\nSTATUS: continue"
    assert extract_field(text, "REASONING") == "note: the path is relative"


def test_extract_field_missing_returns_empty():
    assert extract_field("ACTION: read_file", "INPUT") == ""


def test_parse_input_non_object_warns():
    with pytest.warns(ToolDecisionWarning):
        assert parse_input("[1, 2, 3]") == {}


def test_parse_input_blank_is_silent():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        assert parse_input("   ") == {}
