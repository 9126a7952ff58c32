# harness.py
# Agentic tool-orchestration loop.
#
# The Orchestrator owns all control flow and state. The remote assistant is
# a passive responder: it only ever sees text, and its replies are parsed
# into one ToolDecision per iteration.
#
# Control flow (per iteration):
#   guard screens outgoing text → assistant reply → decision parser
#   → final? stop : (approval gate if risky) → execute_tool
#   → record action → feed result back → next iteration
#
# State is threaded through run() locals only; nothing persists between
# tasks except what the memory tool writes to disk.
#
# All terminal output is delegated to display.py; nothing here prints.

import os
from typing import Any, Callable

from tool_agent import display, guard
from tool_agent.approval import ApprovalStrategy, needs_approval, request_approval
from tool_agent.assistant import AssistantClient, OpenRouterAssistant
from tool_agent.config import UNBOUNDED, AgentConfig, parse_max_iterations
from tool_agent.context import describe_source_file
from tool_agent.models import ActionRecord, AgenticResult, ToolDecision, ToolSpec
from tool_agent.parser import parse_tool_decision
from tool_agent.tools import TOOLS, execute_tool, format_tool_docs


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class AgentError(Exception):
    """Base class for errors raised before the loop starts."""


class TaskValidationError(AgentError):
    """Raised for an empty task, an unknown tool or a bad iteration cap."""


class MissingCredentialsError(AgentError):
    """Raised when no assistant client was given and no API key is configured."""


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = """\
You are an expert programming assistant working in: {working_dir}

You complete tasks by asking the host to run tools for you, one tool per reply.
After each tool runs you will receive its RESULT or ERROR and can adjust.

To use a tool, include exactly one block in this format:

<TOOL_DECISION>
ACTION: <tool_name>
INPUT: {{"param_name": "value"}}
REASONING: <why this tool, and what you expect to learn>
STATUS: continue
</TOOL_DECISION>

INPUT must be a JSON object (use {{}} when the tool needs no parameters).
Relative paths are resolved against the working directory.

Available tools:
{tool_docs}

Guidelines:
- Break the task into small, verifiable steps
- Be precise about file paths and parameter names
- If a tool fails, read the error and correct the parameters
- You have {iteration_budget} iterations to complete the task

When the task is complete, reply with 'TASK COMPLETE:' followed by a summary
of what was accomplished."""

NO_DECISION_PROMPT = """\
I could not find a usable tool decision in your previous reply ({reason}).

Your previous reply was:
{reply}

Reply with a single <TOOL_DECISION> block naming one of: {tools}
or reply with 'TASK COMPLETE:' and a summary if the task is finished."""

DISALLOWED_TOOL_PROMPT = """\
ERROR: Tool '{action}' is not available for this task.
Available tools: {tools}

Choose one of the available tools or reply with 'TASK COMPLETE:' and a summary."""

DENIED_PROMPT = """\
DENIED: The user did not approve the '{action}' action.
Try a different approach or ask for clarification."""

TIMEOUT_NOOP_PROMPT = """\
The previous request timed out twice. Continue the task from where you left
off with a short reply containing a single tool decision, or 'TASK COMPLETE:'."""

INCOMPLETE_MESSAGE = "Task incomplete (max iterations reached)"
DENIED_RESULT = "Action denied by approval"
APPROVAL_ERROR_RESULT = "Approval error"
TIMEOUT_RESULT = "Assistant request timed out after one retry"


class _AssistantTimeout(Exception):
    """Internal: both the request and its retry timed out."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def build_system_prompt(working_dir: str, tools: list[str], max_iterations, registry=TOOLS) -> str:
    budget = "unlimited" if max_iterations == UNBOUNDED else str(max_iterations)
    return SYSTEM_PROMPT.format(
        working_dir=working_dir,
        tool_docs=format_tool_docs(tools, registry),
        iteration_budget=budget,
    )


def build_initial_message(task: str, system_prompt: str, initial_context: str | None = None) -> str:
    parts = [system_prompt]
    if initial_context:
        parts.append(f"CONTEXT:\n{initial_context}")
    parts.append(f"TASK: {guard.add_chunking_guidance(task)}")
    return "\n\n".join(parts)


def format_tool_feedback(action: str, success: bool, text: str) -> str:
    if success:
        return f"RESULT ({action}):\n{text}"
    return f"ERROR ({action}):\n{text}\n\nTry a different approach or adjust parameters."


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class Orchestrator:
    """
    Runs agentic tasks against a remote assistant.

    Pass an AssistantClient to use any backend; otherwise an
    OpenRouterAssistant is created from the config's API key.

    Example:
        orchestrator = Orchestrator(AgentConfig.from_env())
        result = orchestrator.run(
            "List the Python files and summarise what they do",
            tools=["list_files", "read_file"],
        )
    """

    def __init__(
        self,
        config: AgentConfig | None = None,
        assistant: AssistantClient | None = None,
        approval_callback: ApprovalStrategy | None = None,
        registry: dict[str, ToolSpec] | None = None,
        context_gatherer: Callable[..., str] | None = None,
        file_describer: Callable[[str], str] | None = describe_source_file,
    ) -> None:
        self._config = config or AgentConfig.from_env()
        self._assistant = assistant
        self._approval_callback = approval_callback
        self._registry = registry or TOOLS
        self._context_gatherer = context_gatherer
        self._file_describer = file_describer

    @property
    def config(self) -> AgentConfig:
        return self._config

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate(self, task: str, tools: list[str], max_iterations) -> int | float:
        if not task or not task.strip():
            raise TaskValidationError("Task cannot be empty")

        if not tools:
            raise TaskValidationError("At least one tool must be allowed")
        unknown = [t for t in tools if t not in self._registry]
        if unknown:
            raise TaskValidationError(f"Unknown tool(s) in allow-list: {', '.join(unknown)}")

        try:
            return parse_max_iterations(max_iterations)
        except ValueError as exc:
            raise TaskValidationError(str(exc)) from exc

    def _resolve_assistant(self) -> AssistantClient:
        if self._assistant is not None:
            return self._assistant
        if not self._config.api_key:
            raise MissingCredentialsError(
                "API key not found. Set OPENROUTER_API_KEY in your environment or .env file."
            )
        self._assistant = OpenRouterAssistant(
            api_key=self._config.api_key,
            model=self._config.model,
            base_url=self._config.base_url,
        )
        return self._assistant

    # ------------------------------------------------------------------
    # Remote calls
    # ------------------------------------------------------------------

    def _send(self, assistant: AssistantClient, session_id: str, text: str) -> str:
        """
        Send one message, retrying once if the failure looks like a timeout.

        Raises _AssistantTimeout when the retry times out too; any other
        error propagates to run().
        """
        guard.validate_message_size(text)
        display.calling_assistant()
        try:
            return assistant.send(session_id, text, self._config.timeout)
        except Exception as exc:
            if not guard.is_timeout_error(exc):
                raise
            display.timeout_detected(str(exc))

        try:
            return assistant.send(session_id, guard.timeout_retry_prompt() + text, self._config.timeout)
        except Exception as exc:
            if not guard.is_timeout_error(exc):
                raise
            display.timeout_failed(str(exc))
            raise _AssistantTimeout(str(exc)) from exc

    # ------------------------------------------------------------------
    # Tool step
    # ------------------------------------------------------------------

    def _run_tool(
        self,
        tool_decision: ToolDecision,
        iteration: int,
        working_dir: str,
        safe_mode: bool,
        approval_callback: ApprovalStrategy | None,
        namespace: dict | None,
    ) -> tuple[ActionRecord, str, bool]:
        """Approve (if needed) and execute one decision. Returns (record, feedback, denied)."""
        action = tool_decision.action
        tool_input = dict(tool_decision.input)

        if needs_approval(action, safe_mode, self._registry):
            try:
                approval = request_approval(action, tool_input, tool_decision.reasoning, approval_callback)
            except Exception as exc:
                # A broken approver never approves.
                display.approval_error(action, str(exc))
                record = ActionRecord(
                    iteration=iteration,
                    action=action,
                    input=tool_input,
                    result=f"{APPROVAL_ERROR_RESULT}: {exc}",
                    success=False,
                )
                return record, DENIED_PROMPT.format(action=action), True
            if not approval.approved:
                display.action_denied(action)
                record = ActionRecord(
                    iteration=iteration, action=action, input=tool_input, result=DENIED_RESULT, success=False
                )
                return record, DENIED_PROMPT.format(action=action), True
            tool_input = dict(approval.input)

        display.executing(action)
        result = execute_tool(
            action,
            tool_input,
            working_dir,
            namespace=namespace,
            context_gatherer=self._context_gatherer,
            file_describer=self._file_describer,
            registry=self._registry,
        )

        if result.success:
            display.tool_success(action, result.text)
        else:
            display.tool_failure(action, result.text)

        record = ActionRecord(
            iteration=iteration, action=action, input=tool_input, result=result.text, success=result.success
        )
        return record, format_tool_feedback(action, result.success, result.text), False

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(
        self,
        task: str,
        tools: list[str] | None = None,
        working_dir: str | None = None,
        max_iterations: Any = None,
        initial_context: str | None = None,
        safe_mode: bool | None = None,
        approval_callback: ApprovalStrategy | None = None,
        namespace: dict | None = None,
    ) -> AgenticResult:
        """
        Run one task to completion.

        Raises TaskValidationError / MissingCredentialsError before the loop
        starts; every other outcome is reported in the returned AgenticResult.
        """
        tools = list(tools) if tools is not None else list(self._registry)
        limit = self._validate(
            task, tools, self._config.max_iterations if max_iterations is None else max_iterations
        )
        assistant = self._resolve_assistant()

        working_dir = working_dir or os.getcwd()
        safe_mode = self._config.safe_mode if safe_mode is None else safe_mode
        approval_callback = approval_callback or self._approval_callback
        quiet = display.is_quiet()
        display.set_quiet(not self._config.verbose)
        try:
            return self._loop(
                task, tools, limit, assistant, working_dir, safe_mode, approval_callback, initial_context, namespace
            )
        finally:
            display.set_quiet(quiet)

    def _loop(
        self,
        task: str,
        tools: list[str],
        limit: int | float,
        assistant: AssistantClient,
        working_dir: str,
        safe_mode: bool,
        approval_callback: ApprovalStrategy | None,
        initial_context: str | None,
        namespace: dict | None,
    ) -> AgenticResult:
        """RUNNING state: iterate until final, exhausted or failed."""
        session_id = assistant.create_session()
        display.task_start(task, session_id, tools, safe_mode, limit)

        message = build_initial_message(
            task, build_system_prompt(working_dir, tools, limit, self._registry), initial_context
        )
        if guard.is_complex_task(task):
            display.complex_task_detected()

        iteration = 0
        counted = 0
        actions: list[ActionRecord] = []
        last_reply = ""

        def finish(final_response: str, success: bool, state: str) -> AgenticResult:
            result = AgenticResult(
                task=task,
                final_response=final_response,
                iterations=iteration,
                actions_taken=actions,
                session_id=session_id,
                success=success,
                state=state,
            )
            display.agentic_result(result)
            return result

        while counted < limit:
            iteration += 1
            counted += 1
            display.iteration_start(iteration, limit)

            # ── Step 1: consult the assistant ───────────────────────────
            try:
                reply = self._send(assistant, session_id, message)
            except _AssistantTimeout:
                actions.append(
                    ActionRecord(iteration=iteration, action=None, result=TIMEOUT_RESULT, success=False)
                )
                message = TIMEOUT_NOOP_PROMPT
                continue
            except Exception as exc:
                display.halt(f"Assistant error: {exc}")
                return finish(f"Assistant error: {exc}", success=False, state="failed")

            last_reply = reply
            display.assistant_reply(reply)

            # ── Step 2: parse the decision ──────────────────────────────
            tool_decision = parse_tool_decision(reply, tools)
            display.decision(tool_decision)

            # ── Step 3: final answer ────────────────────────────────────
            if tool_decision.status == "final":
                display.task_complete(tool_decision.reasoning)
                return finish(tool_decision.reasoning, success=True, state="final")

            # ── Step 4: nothing usable, feed the reply back ─────────────
            if tool_decision.action is None:
                display.no_decision(tool_decision.reasoning)
                actions.append(
                    ActionRecord(
                        iteration=iteration, action=None, result=tool_decision.reasoning, success=False
                    )
                )
                message = NO_DECISION_PROMPT.format(
                    reason=tool_decision.reasoning, reply=reply, tools=", ".join(tools)
                )
                continue

            if tool_decision.action not in tools:
                display.disallowed_tool(tool_decision.action, tools)
                actions.append(
                    ActionRecord(
                        iteration=iteration,
                        action=None,
                        input=dict(tool_decision.input),
                        result=f"Tool not available: {tool_decision.action}",
                        success=False,
                    )
                )
                message = DISALLOWED_TOOL_PROMPT.format(action=tool_decision.action, tools=", ".join(tools))
                continue

            # ── Step 5: approve and execute ─────────────────────────────
            record, message, denied = self._run_tool(
                tool_decision, iteration, working_dir, safe_mode, approval_callback, namespace
            )
            actions.append(record)
            if denied and not self._config.count_denied_iterations:
                counted -= 1

        display.max_iterations_reached(limit)
        return finish(last_reply or INCOMPLETE_MESSAGE, success=False, state="exhausted")


def run_agentic_task(
    task: str,
    config: AgentConfig | None = None,
    assistant: AssistantClient | None = None,
    **kwargs,
) -> AgenticResult:
    """Functional wrapper: build an Orchestrator and run a single task."""
    return Orchestrator(config=config, assistant=assistant).run(task, **kwargs)
