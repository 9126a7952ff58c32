# display.py
# All terminal output for the agentic tool loop.
#
# This module owns presentation entirely. harness.py never prints;
# it calls named functions here. Swap this file to change the entire UI.
#
# Colour language:
#   cyan    — orchestration / routing events
#   blue    — assistant calls and replies
#   yellow  — approval gate and guard warnings
#   green   — success / confirmed
#   red     — failures, denials, halts
#   magenta — decision internals (Action / Input / Reasoning)

import json

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from tool_agent.models import AgenticResult, MessageSize, ToolDecision, ToolSpec

console = Console()


def set_quiet(quiet: bool) -> None:
    console.quiet = quiet


def is_quiet() -> bool:
    return console.quiet


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _mono(value: str, max_len: int = 120) -> str:
    if len(value) > max_len:
        value = value[:max_len] + "…"
    return escape(value)


def _json(value: dict) -> str:
    return json.dumps(value, indent=2, default=str, ensure_ascii=False)


def _limit(max_iterations: int | float) -> str:
    return "∞" if max_iterations == float("inf") else str(max_iterations)


# ---------------------------------------------------------------------------
# Task lifecycle
# ---------------------------------------------------------------------------


def task_start(task: str, session_id: str, tools: list[str], safe_mode: bool, max_iterations) -> None:
    console.print()
    console.print(Rule("[cyan]AGENTIC TASK[/cyan]", style="cyan"))
    console.print(
        Panel(
            f"[white]{escape(task)}[/white]\n\n"
            f"[dim]Session        :[/dim] [white]{session_id}[/white]\n"
            f"[dim]Tools          :[/dim] [white]{', '.join(tools)}[/white]\n"
            f"[dim]Safe mode      :[/dim] [white]{safe_mode}[/white]\n"
            f"[dim]Max iterations :[/dim] [white]{_limit(max_iterations)}[/white]",
            title=_label("TASK", "cyan"),
            border_style="cyan",
            padding=(0, 2),
        )
    )


def iteration_start(iteration: int, max_iterations) -> None:
    console.print()
    console.print(Rule(f"[cyan]ITERATION {iteration}/{_limit(max_iterations)}[/cyan]", style="cyan"))


def calling_assistant() -> None:
    console.print(_label("ORCHESTRATOR", "cyan"), "[cyan] → Consulting assistant…[/cyan]")


def assistant_reply(reply: str) -> None:
    console.print(f"  [blue]Reply[/blue]    [dim white]{_mono(reply, 300)}[/dim white]")


def decision(tool_decision: ToolDecision) -> None:
    console.print(
        f"  [magenta]Action[/magenta]   [bold white]{escape(tool_decision.action or '—')}[/bold white]"
        f"  [dim]{_mono(json.dumps(tool_decision.input, default=str), 200)}[/dim]"
    )
    console.print(f"  [magenta]Reason[/magenta]   [dim white]{_mono(tool_decision.reasoning, 200)}[/dim white]")


def executing(action: str) -> None:
    console.print(f"  [cyan]↳ Executing[/cyan] [bold white]{action}[/bold white]…")


def tool_success(action: str, result: str) -> None:
    console.print(f"  [bold green]✓ {action}[/bold green]  [white]{_mono(result, 140)}[/white]")


def tool_failure(action: str, error: str) -> None:
    console.print(f"  [bold red]✗ {action} failed[/bold red]  [white]{_mono(error, 200)}[/white]")


def no_decision(reasoning: str) -> None:
    console.print(
        f"  [yellow]No usable tool decision[/yellow] [dim]({_mono(reasoning)})[/dim] "
        "[yellow]— asking the assistant to correct itself.[/yellow]"
    )


def disallowed_tool(action: str, allowed: list[str]) -> None:
    console.print(
        f"  [bold red]✗ Tool {_mono(repr(action))} is not in the allow-list[/bold red] "
        f"[dim]({', '.join(allowed)})[/dim]"
    )


def describer_fallback(path: str, reason: str) -> None:
    console.print(f"  [yellow]Could not describe {escape(path)}; returning raw text[/yellow] [dim]({_mono(reason)})[/dim]")


# ---------------------------------------------------------------------------
# Approval gate
# ---------------------------------------------------------------------------


def approval_request(action: str, tool_input: dict, reasoning: str) -> None:
    console.print()
    console.print(
        Panel(
            Syntax(_json(tool_input), "json", theme="ansi_dark", word_wrap=True),
            title=_label(f"APPROVAL: {action}", "yellow"),
            subtitle=f"[dim]{_mono(reasoning, 100)}[/dim]",
            border_style="yellow",
            padding=(0, 1),
        )
    )


def tool_details(info: dict | None, tool_input: dict) -> None:
    if info is None:
        console.print("[yellow]  Tool details unavailable.[/yellow]")
        return

    table = Table(box=box.SIMPLE, show_header=True, header_style="bold yellow", padding=(0, 1))
    table.add_column("Parameter", style="bold white")
    table.add_column("Description", style="dim white")
    table.add_column("Current", style="white")
    for name, doc in info["parameters"].items():
        current = tool_input.get(name)
        table.add_row(name, doc, "" if current is None else _mono(str(current), 40))

    console.print(
        Panel(
            table,
            title=_label(f"TOOL: {info['name']}", "yellow"),
            subtitle=f"[dim]{escape(info['description'])} · risky={info['risky']}[/dim]",
            border_style="yellow",
            padding=(0, 1),
        )
    )


def approval_granted(edited: bool = False) -> None:
    suffix = " with edited parameters" if edited else ""
    console.print(f"  [bold green]✓ Action approved{suffix}[/bold green]")


def action_denied(action: str) -> None:
    console.print(f"  [bold red]✗ Action denied:[/bold red] [white]{escape(action)}[/white]")


def approval_error(action: str, error: str) -> None:
    console.print(
        f"  [bold red]✗ Approval failed for[/bold red] [white]{escape(action)}[/white] "
        f"[dim]({_mono(error)})[/dim] [red]treating as denied[/red]"
    )


def invalid_json(error: str) -> None:
    console.print(f"  [red]Invalid JSON:[/red] [white]{_mono(error)}[/white]")


# ---------------------------------------------------------------------------
# Timeout & complexity guard
# ---------------------------------------------------------------------------


def complex_task_detected() -> None:
    console.print("  [yellow]Complex request detected — asking for incremental delivery.[/yellow]")


def size_warning(size: MessageSize) -> None:
    if size.risk == "high":
        console.print(
            f"  [bold yellow]Very large input:[/bold yellow] [white]{size.size:,}[/white] characters"
        )
        console.print("  [red]High risk of timeout. Consider breaking this into smaller messages.[/red]")
    elif size.risk == "medium":
        console.print(f"  [yellow]Large input:[/yellow] [white]{size.size:,}[/white] characters")
        console.print("  [dim]Timeout possible. The message is retried automatically if it times out.[/dim]")


def timeout_detected(error: str) -> None:
    console.print(
        f"  [bold yellow]⏱ Request timed out[/bold yellow] [dim]({_mono(error, 80)})[/dim] "
        "[yellow]— retrying once with continuation guidance…[/yellow]"
    )


def timeout_failed(error: str) -> None:
    console.print(f"  [bold red]⏱ Retry timed out as well[/bold red] [dim]({_mono(error, 80)})[/dim]")


# ---------------------------------------------------------------------------
# Termination
# ---------------------------------------------------------------------------


def task_complete(summary: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[white]{escape(summary)}[/white]",
            title=_label("TASK COMPLETE ✓", "green"),
            border_style="green",
            padding=(1, 2),
        )
    )


def max_iterations_reached(max_iterations) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold yellow]Stopped after {_limit(max_iterations)} iteration(s) without a final answer.[/bold yellow]",
            title=_label("EXHAUSTED", "yellow"),
            border_style="yellow",
            padding=(0, 2),
        )
    )


def halt(reason: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold white]{escape(reason)}[/bold white]",
            title=_label("HALT", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )
    console.print()


def agentic_result(result: AgenticResult) -> None:
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="dim",
        show_header=True,
        header_style="bold dim",
        padding=(0, 1),
    )
    table.add_column("#", justify="center", width=4)
    table.add_column("Iter", justify="center", width=6)
    table.add_column("Action", width=14)
    table.add_column("OK", justify="center", width=4)
    table.add_column("Result", style="dim white")

    for index, record in enumerate(result.actions_taken, start=1):
        ok = "[bold green]✓[/bold green]" if record.success else "[bold red]✗[/bold red]"
        table.add_row(str(index), str(record.iteration), record.action or "—", ok, _mono(record.result, 60))

    status = "[bold green]success[/bold green]" if result.success else f"[bold red]{result.state}[/bold red]"
    console.print()
    console.print(
        Panel(
            table if result.actions_taken else Text("No actions taken.", style="dim"),
            title=_label("AGENTIC TASK RESULT", "green" if result.success else "red"),
            subtitle=f"[dim]{result.iterations} iteration(s) · {len(result.actions_taken)} action(s) ·[/dim] {status}",
            border_style="dim",
            padding=(0, 1),
        )
    )
    console.print(f"[white]{escape(result.final_response)}[/white]")
    console.print()


def tool_catalog(specs: list[ToolSpec]) -> None:
    table = Table(box=box.SIMPLE_HEAVY, border_style="cyan", header_style="bold cyan", padding=(0, 1))
    table.add_column("Tool", style="bold white", width=14)
    table.add_column("Risky", justify="center", width=6)
    table.add_column("Description", style="white")
    for spec in specs:
        risky = "[bold yellow]⚠[/bold yellow]" if spec.risky else "[green]·[/green]"
        table.add_row(spec.name, risky, spec.description)

    console.print(
        Panel(
            table,
            title=_label(f"AVAILABLE TOOLS ({len(specs)})", "cyan"),
            subtitle="[dim]⚠ requires approval in safe mode[/dim]",
            border_style="cyan",
            padding=(0, 1),
        )
    )
