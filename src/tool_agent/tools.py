# tools.py
# Tool registry: all callable implementations plus the executor.
# The harness looks tools up in TOOLS and only ever calls execute_tool().

import ast
import builtins
import contextlib
import inspect
import io
import os
import re
from pathlib import Path
from typing import Any, Callable

from tool_agent import display
from tool_agent.context import (
    CONTEXT_LEVELS,
    describe_dataframe,
    describe_source_file,
    gather_project_context,
    is_tabular,
)
from tool_agent.memory import memory_tool
from tool_agent.models import ToolResult, ToolSpec

# Parameters the executor fills in from the host, never from the model.
# working_dir is only injected when the caller left it out.
HOST_PARAMETERS = ("namespace", "context_gatherer", "file_describer")

SOURCE_SUFFIXES = (".py",)


def _resolve(path: str, working_dir: str | None) -> Path:
    candidate = Path(path).expanduser()
    if candidate.is_absolute():
        return candidate
    return Path(working_dir or os.getcwd()) / candidate


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _tool_read_file(
    filepath: str,
    working_dir: str | None = None,
    file_describer: Callable[[str], str] | None = None,
) -> str:
    full_path = _resolve(filepath, working_dir)
    if not full_path.is_file():
        raise FileNotFoundError(f"File not found: {full_path}")

    if file_describer is not None and full_path.suffix.lower() in SOURCE_SUFFIXES:
        try:
            return file_describer(str(full_path))
        except Exception as exc:
            display.describer_fallback(str(full_path), str(exc))

    return full_path.read_text(encoding="utf-8", errors="replace")


def _tool_write_file(filepath: str, content: str, working_dir: str | None = None) -> str:
    full_path = _resolve(filepath, working_dir)
    full_path.parent.mkdir(parents=True, exist_ok=True)
    full_path.write_text(content, encoding="utf-8")
    return f"File written successfully: {full_path}"


def _exit(code: Any = None) -> None:
    # site's exit()/quit() close sys.stdin before raising; this one only raises.
    raise SystemExit(code)


def _tool_execute_code(code: str, namespace: dict | None = None) -> str:
    # Bindings land in a private scope; the caller's namespace is only read.
    scope: dict[str, Any] = dict(namespace or {})
    scope["__builtins__"] = builtins
    scope["exit"] = scope["quit"] = _exit
    scope.setdefault("__name__", "__agent__")

    buffer = io.StringIO()
    value: Any = None
    try:
        tree = ast.parse(code, mode="exec")
        tail = None
        if tree.body and isinstance(tree.body[-1], ast.Expr):
            tail = ast.Expression(tree.body.pop().value)
        with contextlib.redirect_stdout(buffer):
            exec(compile(tree, "<agent>", "exec"), scope)
            if tail is not None:
                value = eval(compile(tail, "<agent>", "eval"), scope)
    except (Exception, SystemExit) as exc:
        raise RuntimeError(f"Code execution error: {type(exc).__name__}: {exc}") from exc

    output = buffer.getvalue().rstrip("\n")
    if output:
        return f"Output:\n{output}\n\nResult:\n{value!r}"
    return repr(value)


def _tool_list_files(
    directory: str = ".",
    pattern: str | None = None,
    path: str | None = None,
    working_dir: str | None = None,
) -> str:
    # `path` is accepted as an alias; models use both names.
    base = _resolve(path if path and directory == "." else directory, working_dir)
    if not base.is_dir():
        raise NotADirectoryError(f"Directory not found: {base}")

    regex = re.compile(pattern) if pattern else None
    files = sorted(
        p.relative_to(base).as_posix()
        for p in base.rglob("*")
        if p.is_file() and (regex is None or regex.search(p.name))
    )
    if not files:
        return "No files found"
    return "\n".join(files)


def _tool_search_files(
    pattern: str,
    directory: str = ".",
    file_pattern: str | None = None,
    working_dir: str | None = None,
) -> str:
    base = _resolve(directory, working_dir)
    if not base.is_dir():
        raise NotADirectoryError(f"Directory not found: {base}")

    regex = re.compile(pattern)
    name_regex = re.compile(file_pattern) if file_pattern else None
    files = sorted(
        p for p in base.rglob("*") if p.is_file() and (name_regex is None or name_regex.search(p.name))
    )
    if not files:
        return "No files to search"

    groups: list[str] = []
    for file in files:
        try:
            lines = file.read_text(encoding="utf-8").splitlines()
        except (OSError, UnicodeDecodeError):
            continue
        hits = [line for line in lines if regex.search(line)]
        if hits:
            rel = file.relative_to(base).as_posix()
            groups.append("\n".join([f"File: {rel}"] + [f"  {line}" for line in hits]))

    if not groups:
        return "No matches found"
    return "\n\n".join(groups)


def _tool_get_context(
    level: str = "standard",
    working_dir: str | None = None,
    context_gatherer: Callable[..., str] | None = None,
) -> str:
    if level not in CONTEXT_LEVELS:
        raise ValueError(f"Invalid context level: {level!r}. Use one of: {', '.join(CONTEXT_LEVELS)}")
    gatherer = context_gatherer or gather_project_context
    return gatherer(level=level, working_dir=working_dir)


def _tool_describe_data(name: str, method: str = "basic", namespace: dict | None = None) -> str:
    namespace = namespace or {}
    if name not in namespace:
        raise LookupError(f"Object not found: {name}")
    obj = namespace[name]
    if not is_tabular(obj):
        raise TypeError(f"Object is not a data frame: {name} ({type(obj).__name__})")
    return describe_dataframe(name, obj, method=method)


TOOLS: dict[str, ToolSpec] = {
    spec.name: spec
    for spec in (
        ToolSpec(
            name="read_file",
            description="Read contents of a file",
            parameters={
                "filepath": "Path to the file to read",
                "working_dir": "Working directory (optional)",
            },
            handler=_tool_read_file,
        ),
        ToolSpec(
            name="write_file",
            description="Write content to a file",
            risky=True,
            parameters={
                "filepath": "Path to the file to write",
                "content": "Content to write",
                "working_dir": "Working directory (optional)",
            },
            handler=_tool_write_file,
        ),
        ToolSpec(
            name="execute_code",
            description="Execute Python code in an isolated scope",
            risky=True,
            parameters={"code": "Python code to execute; the last expression is returned"},
            handler=_tool_execute_code,
        ),
        ToolSpec(
            name="list_files",
            description="List files in a directory",
            parameters={
                "directory": "Directory to list (default: current; 'path' also accepted)",
                "pattern": "Optional regex matched against file names",
            },
            handler=_tool_list_files,
        ),
        ToolSpec(
            name="search_files",
            description="Search for text in files",
            parameters={
                "pattern": "Regex to search for",
                "directory": "Directory to search (default: current)",
                "file_pattern": "Optional regex to limit which file names are searched",
            },
            handler=_tool_search_files,
        ),
        ToolSpec(
            name="get_context",
            description="Get project context information",
            parameters={"level": "Context level: 'minimal', 'standard', or 'comprehensive'"},
            handler=_tool_get_context,
        ),
        ToolSpec(
            name="describe_data",
            description="Describe a data frame in the host namespace",
            parameters={
                "name": "Name of the data frame",
                "method": "Description method: 'basic', 'summary', or 'codebook'",
            },
            handler=_tool_describe_data,
        ),
        ToolSpec(
            name="memory",
            description="Persistent memory files that survive across tasks",
            parameters={
                "command": "One of: view, read, write, delete, rename",
                "path": "Relative path inside the memory directory",
                "content": "Content to write (write only)",
                "new_path": "Destination path (rename only)",
            },
            handler=memory_tool,
        ),
    )
}


TOOL_PRESETS: dict[str, list[str]] = {
    "all": list(TOOLS),
    "read_only": ["read_file", "list_files", "search_files", "get_context", "describe_data"],
    "code_analysis": ["read_file", "list_files", "search_files", "get_context"],
    "data_analysis": ["describe_data", "execute_code", "get_context"],
    "code_generation": ["read_file", "list_files", "write_file", "get_context"],
}


# ---------------------------------------------------------------------------
# Registry queries
# ---------------------------------------------------------------------------


def tool_preset(preset: str = "all") -> list[str]:
    if preset not in TOOL_PRESETS:
        raise ValueError(f"Unknown tool preset: {preset!r}. Use one of: {', '.join(TOOL_PRESETS)}")
    return list(TOOL_PRESETS[preset])


def is_risky_tool(tool_name: str, registry: dict[str, ToolSpec] = TOOLS) -> bool:
    spec = registry.get(tool_name)
    return bool(spec and spec.risky)


def get_tool_info(tool_name: str, registry: dict[str, ToolSpec] = TOOLS) -> dict | None:
    spec = registry.get(tool_name)
    if spec is None:
        return None
    return {
        "name": spec.name,
        "description": spec.description,
        "risky": spec.risky,
        "parameters": dict(spec.parameters),
    }


def list_tools(registry: dict[str, ToolSpec] = TOOLS) -> list[str]:
    """Print the tool catalog and return the tool names."""
    display.tool_catalog(list(registry.values()))
    return list(registry)


def format_tool_docs(tool_names: list[str], registry: dict[str, ToolSpec] = TOOLS) -> str:
    """Render the allow-listed tools for the system prompt."""
    blocks: list[str] = []
    for name in tool_names:
        spec = registry[name]
        flag = " (requires approval)" if spec.risky else ""
        lines = [f"- {name}{flag}: {spec.description}"]
        for param, doc in spec.parameters.items():
            if param != "working_dir":
                lines.append(f"    {param}: {doc}")
        blocks.append("\n".join(lines))
    return "\n".join(blocks)


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------


def _bind_arguments(spec: ToolSpec, arguments: dict[str, Any]) -> inspect.BoundArguments:
    """Bind model-supplied arguments, with an error message the model can act on."""
    signature = inspect.signature(spec.handler)
    try:
        return signature.bind(**arguments)
    except TypeError as exc:
        accepted = [p for p in signature.parameters if p not in HOST_PARAMETERS]
        required = [
            p.name
            for p in signature.parameters.values()
            if p.default is inspect.Parameter.empty and p.name not in HOST_PARAMETERS
        ]
        unknown = sorted(set(arguments) - set(signature.parameters))
        detail = f"unknown parameter(s): {', '.join(unknown)}" if unknown else str(exc)
        raise TypeError(
            f"Invalid input for {spec.name}: {detail}. "
            f"Accepted parameters: {', '.join(accepted)}"
            + (f" (required: {', '.join(required)})" if required else "")
        ) from exc


def execute_tool(
    tool_name: str,
    tool_input: dict[str, Any] | None,
    working_dir: str | None = None,
    *,
    namespace: dict | None = None,
    context_gatherer: Callable[..., str] | None = None,
    file_describer: Callable[[str], str] | None = describe_source_file,
    registry: dict[str, ToolSpec] = TOOLS,
) -> ToolResult:
    """
    Run one tool and return its envelope.

    Never raises: unknown tools, bad arguments and handler exceptions all
    come back as ToolResult(success=False, error=...).
    """
    spec = registry.get(tool_name)
    if spec is None:
        return ToolResult(success=False, error=f"Unknown tool: {tool_name}")

    params = inspect.signature(spec.handler).parameters
    arguments = {k: v for k, v in (tool_input or {}).items() if k not in HOST_PARAMETERS}

    if "working_dir" in params and not arguments.get("working_dir"):
        arguments["working_dir"] = working_dir or os.getcwd()

    host_values = {
        "namespace": namespace,
        "context_gatherer": context_gatherer,
        "file_describer": file_describer,
    }

    try:
        bound = _bind_arguments(spec, arguments)
        for key, value in host_values.items():
            if key in params:
                bound.arguments[key] = value
        result = spec.handler(*bound.args, **bound.kwargs)
    except Exception as exc:
        return ToolResult(success=False, error=str(exc) or type(exc).__name__)

    return ToolResult(success=True, result=result if isinstance(result, str) else repr(result))
