# context.py
# Default collaborators for the context-oriented tools.
#
# Hosts can inject their own gatherer / describer; these exist so the
# built-in tools work without one. Output is plain text for the model.

import ast
import os
from collections import Counter
from pathlib import Path
from typing import Any

CONTEXT_LEVELS = ("minimal", "standard", "comprehensive")
DESCRIBE_METHODS = ("basic", "summary", "codebook")

_SKIP_DIRS = {".git", "__pycache__", ".venv", "venv", "node_modules", ".mypy_cache", ".pytest_cache"}
_README_NAMES = ("README.md", "README.rst", "README.txt", "README")


# ---------------------------------------------------------------------------
# Project context
# ---------------------------------------------------------------------------


def _walk_files(root: Path) -> list[Path]:
    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in _SKIP_DIRS)
        files.extend(Path(dirpath) / name for name in sorted(filenames))
    return files


def gather_project_context(level: str = "standard", working_dir: str | None = None) -> str:
    """Describe the project rooted at `working_dir` at one of three detail levels."""
    if level not in CONTEXT_LEVELS:
        raise ValueError(f"Invalid context level: {level!r}. Use one of: {', '.join(CONTEXT_LEVELS)}")

    root = Path(working_dir or os.getcwd())
    if not root.is_dir():
        raise NotADirectoryError(f"Directory not found: {root}")

    files = _walk_files(root)
    lines = [
        "## Project Context",
        "",
        f"Working directory: {root}",
        f"Files: {len(files)}",
    ]

    top_level = sorted(p.name + ("/" if p.is_dir() else "") for p in root.iterdir() if p.name not in _SKIP_DIRS)
    lines.append("Top level: " + (", ".join(top_level) or "(empty)"))
    if level == "minimal":
        return "\n".join(lines)

    extensions = Counter(p.suffix or "(none)" for p in files)
    lines.append("")
    lines.append("### File types")
    lines.extend(f"- {ext}: {count}" for ext, count in extensions.most_common())

    for name in _README_NAMES:
        readme = root / name
        if readme.is_file():
            head = readme.read_text(encoding="utf-8", errors="replace").splitlines()[:20]
            lines.append("")
            lines.append(f"### {name} (first {len(head)} lines)")
            lines.extend(head)
            break

    if level == "comprehensive":
        lines.append("")
        lines.append("### File tree")
        lines.extend(f"- {p.relative_to(root).as_posix()}" for p in files)

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Source files
# ---------------------------------------------------------------------------


def _signature(node: ast.FunctionDef | ast.AsyncFunctionDef) -> str:
    return f"{node.name}({ast.unparse(node.args)})"


def describe_source_file(path: str | Path) -> str:
    """Structured summary of a Python module followed by its source."""
    path = Path(path)
    source = path.read_text(encoding="utf-8")
    tree = ast.parse(source, filename=str(path))

    lines = [f"## File: {path.name}", f"Lines: {len(source.splitlines())}"]
    docstring = ast.get_docstring(tree)
    if docstring:
        lines.append(f"Docstring: {docstring.splitlines()[0]}")

    imports = sorted(
        {alias.name for node in tree.body if isinstance(node, ast.Import) for alias in node.names}
        | {node.module for node in tree.body if isinstance(node, ast.ImportFrom) and node.module}
    )
    if imports:
        lines.append("Imports: " + ", ".join(imports))

    for node in tree.body:
        if isinstance(node, ast.ClassDef):
            lines.append(f"- class {node.name}")
            for item in node.body:
                if isinstance(item, (ast.FunctionDef, ast.AsyncFunctionDef)):
                    lines.append(f"    - def {_signature(item)}")
        elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            lines.append(f"- def {_signature(node)}")

    lines.append("")
    lines.append("### Source")
    lines.append(source)
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Tabular data
# ---------------------------------------------------------------------------


def is_tabular(obj: Any) -> bool:
    """Data-frame-like objects, or a non-empty list of dict records."""
    if hasattr(obj, "columns") and hasattr(obj, "shape"):
        return True
    return isinstance(obj, list) and bool(obj) and all(isinstance(row, dict) for row in obj)


def _columns(obj: Any) -> list[str]:
    if hasattr(obj, "columns"):
        return [str(c) for c in obj.columns]
    seen: dict[str, None] = {}
    for row in obj:
        seen.update(dict.fromkeys(str(k) for k in row))
    return list(seen)


def _column_values(obj: Any, column: str) -> list[Any]:
    if hasattr(obj, "columns"):
        return list(obj[column])
    return [row.get(column) for row in obj]


def _describe_basic(name: str, obj: Any) -> str:
    columns = _columns(obj)
    rows = obj.shape[0] if hasattr(obj, "shape") else len(obj)
    lines = [f"## Data: {name}", f"Rows: {rows}", f"Columns: {len(columns)}", ""]
    dtypes = getattr(obj, "dtypes", None)
    for column in columns:
        if dtypes is not None:
            kind = str(dtypes[column])
        else:
            kinds = {type(v).__name__ for v in _column_values(obj, column) if v is not None}
            kind = "/".join(sorted(kinds)) or "unknown"
        lines.append(f"- {column}: {kind}")
    return "\n".join(lines)


def _describe_summary(name: str, obj: Any) -> str:
    return f"{_describe_basic(name, obj)}\n\n### Summary\n{obj.describe()}"


def _describe_codebook(name: str, obj: Any) -> str:
    lines = [_describe_basic(name, obj), "", "### Codebook"]
    for column in _columns(obj):
        values = _column_values(obj, column)
        present = [v for v in values if v is not None and v == v]
        distinct = len({repr(v) for v in present})
        sample = ", ".join(repr(v) for v in present[:3])
        lines.append(
            f"- {column}: {len(values) - len(present)} missing, {distinct} distinct; e.g. {sample}"
        )
    return "\n".join(lines)


def describe_dataframe(name: str, obj: Any, method: str = "basic") -> str:
    """Describe a tabular object. `summary` falls back to `basic` when the
    object has no ``describe()`` of its own."""
    if method not in DESCRIBE_METHODS:
        raise ValueError(f"Invalid describe method: {method!r}. Use one of: {', '.join(DESCRIBE_METHODS)}")
    if method == "summary":
        if callable(getattr(obj, "describe", None)):
            return _describe_summary(name, obj)
        return _describe_basic(name, obj) + "\n\n(summary unavailable for this object; showing basic description)"
    if method == "codebook":
        return _describe_codebook(name, obj)
    return _describe_basic(name, obj)
