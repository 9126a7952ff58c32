# parser.py
# Decision parser for free-text assistant replies.
#
# Two stages, one output shape:
#   1. strict — completion marker, then a <TOOL_DECISION> block
#   2. heuristic — first allowed tool name mentioned in the reply
#
# Callers always get a ToolDecision and never need to know which stage
# produced it. Nothing in here raises on malformed model output.

import json
import re
import warnings

from tool_agent.models import ToolDecision

FIELD_LABELS = ("ACTION", "INPUT", "REASONING", "STATUS")

# Tools whose first argument is a path; inference looks for a quoted path.
FILE_TOOLS = frozenset({"read_file", "write_file"})

DEFAULT_COMPLETION_MESSAGE = "Task completed successfully"
NO_DECISION_MESSAGE = "No tool decision found"

_COMPLETION_RE = re.compile(r"TASK[ _]COMPLETE\b[ \t]*:?(.*)", re.IGNORECASE | re.DOTALL)
_BLOCK_RE = re.compile(r"<TOOL_DECISION>(.*?)</TOOL_DECISION>", re.IGNORECASE | re.DOTALL)
_QUOTED_PATH_RE = re.compile(r"""(['"])([^'"\s]+?)\1""")
_NULL_ACTIONS = {"", "none", "null", "n/a"}


class ToolDecisionWarning(UserWarning):
    """Recoverable problem in a decision block (the decision is still usable)."""


def _normalize(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def extract_field(text: str, field: str) -> str:
    """
    Return the value after `FIELD:` up to the next field label or end of text.

    Only the first colon delimits; later colons stay in the value.
    Missing fields yield an empty string.
    """
    labels = "|".join(FIELD_LABELS)
    pattern = (
        rf"(?:^|\n)[ \t]*{re.escape(field)}[ \t]*:(.*?)"
        rf"(?=\n[ \t]*(?:{labels})[ \t]*:|\Z)"
    )
    match = re.search(pattern, _normalize(text), re.IGNORECASE | re.DOTALL)
    if not match:
        return ""
    return match.group(1).strip()


def parse_input(raw: str) -> dict:
    """Loosely parse INPUT text into a dict. Warns and returns {} on failure."""
    raw = raw.strip()
    if not raw:
        return {}

    # Strip markdown code fences if the model wrapped the JSON.
    if raw.startswith("```"):
        raw = re.sub(r"^```(?:json)?\s*", "", raw)
        raw = re.sub(r"\s*```$", "", raw)

    try:
        value = json.loads(raw, strict=False)
    except json.JSONDecodeError as exc:
        warnings.warn(f"Failed to parse INPUT JSON: {exc}", ToolDecisionWarning, stacklevel=3)
        return {}

    if not isinstance(value, dict):
        warnings.warn(
            f"Failed to parse INPUT JSON: expected an object, got {type(value).__name__}",
            ToolDecisionWarning,
            stacklevel=3,
        )
        return {}
    return value


def _completion_decision(reply: str) -> ToolDecision | None:
    match = _COMPLETION_RE.search(reply)
    if not match:
        return None
    summary = match.group(1).strip()
    return ToolDecision(
        action=None,
        status="final",
        reasoning=summary or DEFAULT_COMPLETION_MESSAGE,
    )


def _block_decision(reply: str) -> ToolDecision | None:
    match = _BLOCK_RE.search(_normalize(reply))
    if not match:
        return None

    block = match.group(1)
    action = extract_field(block, "ACTION")
    status = extract_field(block, "STATUS").lower()

    return ToolDecision(
        action=None if action.lower() in _NULL_ACTIONS else action,
        input=parse_input(extract_field(block, "INPUT")),
        reasoning=extract_field(block, "REASONING"),
        status="final" if status == "final" else "continue",
    )


def infer_tool_decision(reply: str, allowed_tools: list[str]) -> ToolDecision:
    """
    Heuristic fallback: the earliest whole-word mention of an allowed tool wins.

    For file tools, the first quoted path-like token becomes input["filepath"].
    """
    best_tool: str | None = None
    best_pos = len(reply) + 1
    for tool in allowed_tools:
        match = re.search(rf"\b{re.escape(tool)}\b", reply)
        if match and match.start() < best_pos:
            best_tool, best_pos = tool, match.start()

    if best_tool is None:
        return ToolDecision(action=None, status="continue", reasoning=NO_DECISION_MESSAGE)

    tool_input: dict = {}
    if best_tool in FILE_TOOLS:
        for quoted in _QUOTED_PATH_RE.finditer(reply):
            candidate = quoted.group(2)
            if "." in candidate or "/" in candidate or "\\" in candidate:
                tool_input["filepath"] = candidate
                break

    return ToolDecision(
        action=best_tool,
        input=tool_input,
        status="continue",
        reasoning=f"Inferred: {best_tool} mentioned in response",
    )


def parse_tool_decision(reply: str, allowed_tools: list[str]) -> ToolDecision:
    """Extract a ToolDecision from one assistant reply."""
    reply = reply or ""
    return (
        _completion_decision(reply)
        or _block_decision(reply)
        or infer_tool_decision(reply, allowed_tools)
    )
