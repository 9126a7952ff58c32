"""Approval gate for risky tool calls.

An approval strategy is any callable ``(action, input, reasoning)`` returning
an :class:`ApprovalDecision` (or a dict with ``approved`` / ``input``). The
console prompt is one strategy among several; hosts can plug in their own
policy function instead.
"""

import json
from typing import Any, Callable, Union

from rich.markup import escape
from rich.prompt import Prompt

from tool_agent import display
from tool_agent.models import ApprovalDecision, ToolSpec
from tool_agent.tools import TOOLS, get_tool_info

ApprovalStrategy = Callable[[str, dict, str], Union[ApprovalDecision, dict]]

_CHOICES = ["y", "yes", "n", "no", "e", "edit", "v", "view"]

# Square brackets are rich markup; the choice hint must be escaped to show.
APPROVAL_PROMPT = f"[cyan]❯ Approve? {escape('[y/n/e(dit)/v(iew)]')}[/cyan]"


def needs_approval(action: str, safe_mode: bool, registry: dict[str, ToolSpec] = TOOLS) -> bool:
    spec = registry.get(action)
    return safe_mode and spec is not None and spec.risky


def auto_approve(action: str, tool_input: dict, reasoning: str) -> ApprovalDecision:
    return ApprovalDecision(approved=True, input=tool_input)


def auto_deny(action: str, tool_input: dict, reasoning: str) -> ApprovalDecision:
    return ApprovalDecision(approved=False, input=tool_input)


def _edit_input(tool_input: dict) -> dict:
    """Ask for replacement JSON until it parses; blank keeps the current input."""
    while True:
        raw = Prompt.ask("New JSON [dim](Enter keeps current)[/dim]", default="", show_default=False,
                         console=display.console)
        if not raw.strip():
            return tool_input
        try:
            edited = json.loads(raw)
        except json.JSONDecodeError as exc:
            display.invalid_json(str(exc))
            continue
        if not isinstance(edited, dict):
            display.invalid_json("expected a JSON object")
            continue
        return edited


def console_approval(action: str, tool_input: dict, reasoning: str) -> ApprovalDecision:
    """Interactive prompt: approve, deny, edit the parameters, or view tool details."""
    while True:
        display.approval_request(action, tool_input, reasoning)
        answer = Prompt.ask(
            APPROVAL_PROMPT,
            choices=_CHOICES,
            default="y",
            show_choices=False,
            console=display.console,
        ).strip().lower()

        if answer in ("n", "no"):
            display.action_denied(action)
            return ApprovalDecision(approved=False, input=tool_input)

        if answer in ("v", "view"):
            display.tool_details(get_tool_info(action), tool_input)
            continue

        if answer in ("e", "edit"):
            edited = _edit_input(tool_input)
            display.approval_granted(edited=edited != tool_input)
            return ApprovalDecision(approved=True, input=edited)

        display.approval_granted()
        return ApprovalDecision(approved=True, input=tool_input)


def _normalize(outcome: Any, tool_input: dict) -> ApprovalDecision:
    if isinstance(outcome, ApprovalDecision):
        return outcome
    if isinstance(outcome, bool):
        return ApprovalDecision(approved=outcome, input=tool_input)
    if isinstance(outcome, dict):
        edited = outcome.get("input")
        return ApprovalDecision(
            approved=bool(outcome.get("approved", False)),
            input=tool_input if edited is None else edited,
        )
    raise TypeError(f"Approval callback returned {type(outcome).__name__}; expected ApprovalDecision or dict")


def request_approval(
    action: str,
    tool_input: dict,
    reasoning: str,
    callback: ApprovalStrategy | None = None,
) -> ApprovalDecision:
    """Run the callback (or the console prompt) and normalise its answer."""
    strategy = callback or console_approval
    return _normalize(strategy(action, dict(tool_input), reasoning), tool_input)
