"""Memory store: durable, path-addressed scratch space shared across tasks.

Files live under ``<agent home>/memory``. Every path handed to this module is
validated before the filesystem is touched. There is no locking: the store is
safe for sequential use only, and concurrent writers to one path will race.
"""

import re
import time
from pathlib import Path

from tool_agent.config import agent_home
from tool_agent.models import MemoryFile

MEMORY_COMMANDS = ("view", "read", "write", "delete", "rename")

_ENCODED_TRAVERSAL_RE = re.compile(r"%2e%2e", re.IGNORECASE)


class MemoryPathError(ValueError):
    """Raised when a memory path is empty or escapes the memory directory."""


def get_memory_dir() -> Path:
    memory_dir = agent_home() / "memory"
    memory_dir.mkdir(parents=True, exist_ok=True)
    return memory_dir


def validate_memory_path(path: str | None, memory_dir: Path | None = None) -> Path:
    """Return the absolute location of `path` inside the memory directory.

    The lexical checks (empty, ``..`` segments, URL-encoded ``..``) run before
    any filesystem access.
    """
    if path is None or not str(path).strip():
        raise MemoryPathError("Path cannot be empty")

    path = str(path).strip()
    segments = re.split(r"[\\/]+", path)
    if any(".." in segment for segment in segments):
        raise MemoryPathError(f"Path contains directory traversal sequence: {path}")
    if _ENCODED_TRAVERSAL_RE.search(path):
        raise MemoryPathError(f"Path contains URL-encoded traversal sequence: {path}")

    relative = path.lstrip("/\\")
    if not relative:
        raise MemoryPathError("Path cannot be empty")

    memory_dir = (memory_dir or get_memory_dir()).resolve()
    candidate = (memory_dir / relative).resolve()
    if candidate != memory_dir and memory_dir not in candidate.parents:
        raise MemoryPathError(f"Path is outside memory directory: {path}")
    return candidate


def _size_human(size: int) -> str:
    if size < 1024:
        return f"{size}B"
    if size < 1024**2:
        return f"{round(size / 1024, 1)}K"
    return f"{round(size / 1024**2, 1)}M"


def _time_ago(timestamp: float) -> str:
    hours = (time.time() - timestamp) / 3600
    if hours < 1:
        return "just now"
    if hours < 24:
        return f"{round(hours)}h ago"
    if hours < 168:
        return f"{round(hours / 24)}d ago"
    if hours < 720:
        return f"{round(hours / 168)}w ago"
    return f"{round(hours / 720)}mo ago"


def list_memory_files(memory_dir: Path | None = None) -> list[MemoryFile]:
    memory_dir = memory_dir or get_memory_dir()
    files: list[MemoryFile] = []
    for file in sorted(p for p in memory_dir.rglob("*") if p.is_file()):
        stat = file.stat()
        files.append(
            MemoryFile(
                path=file.relative_to(memory_dir).as_posix(),
                size=stat.st_size,
                modified=time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(stat.st_mtime)),
                size_human=_size_human(stat.st_size),
            )
        )
    return files


def format_memory_listing(memory_dir: Path | None = None) -> str:
    """Compact listing of the store, suitable for feeding back to the model."""
    memory_dir = memory_dir or get_memory_dir()
    files = list_memory_files(memory_dir)
    if not files:
        return "## Memory Directory\n\nNo memory files yet."

    lines = []
    for entry in files:
        mtime = (memory_dir / entry.path).stat().st_mtime
        lines.append(
            f"- {entry.path} ({entry.size_human}, {entry.size} bytes, "
            f"modified {entry.modified}, {_time_ago(mtime)})"
        )
    return (
        "## Memory Directory\n\n"
        f"Available memory files ({len(files)}):\n"
        + "\n".join(lines)
        + "\n\nUse the memory tool to read specific files when needed."
    )


def read_memory_file(path: str, memory_dir: Path | None = None) -> str:
    target = validate_memory_path(path, memory_dir)
    if not target.is_file():
        raise FileNotFoundError(f"Memory file not found: {path}")
    return target.read_text(encoding="utf-8")


def write_memory_file(path: str, content: str, memory_dir: Path | None = None) -> Path:
    target = validate_memory_path(path, memory_dir)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")
    return target


def delete_memory_file(path: str, memory_dir: Path | None = None) -> None:
    target = validate_memory_path(path, memory_dir)
    if not target.is_file():
        raise FileNotFoundError(f"Memory file not found: {path}")
    target.unlink()


def rename_memory_file(old_path: str, new_path: str, memory_dir: Path | None = None) -> Path:
    source = validate_memory_path(old_path, memory_dir)
    destination = validate_memory_path(new_path, memory_dir)
    if not source.is_file():
        raise FileNotFoundError(f"Memory file not found: {old_path}")
    if destination.exists():
        raise FileExistsError(f"Destination file already exists: {new_path}")
    destination.parent.mkdir(parents=True, exist_ok=True)
    source.rename(destination)
    return destination


def memory_tool(
    command: str,
    path: str | None = None,
    content: str | None = None,
    new_path: str | None = None,
) -> str:
    """Handler for the `memory` tool."""
    command = (command or "").strip().lower()
    if command not in MEMORY_COMMANDS:
        raise ValueError(
            f"Invalid memory command: {command!r}. Use one of: {', '.join(MEMORY_COMMANDS)}"
        )

    if command == "view":
        return format_memory_listing()

    if not path:
        raise ValueError(f"'path' parameter required for {command}")

    if command == "read":
        return f"File: {path}\n\n{read_memory_file(path)}"

    if command == "write":
        if content is None:
            raise ValueError("'content' parameter required for write")
        write_memory_file(path, content)
        return f"Memory file written: {path}"

    if command == "delete":
        delete_memory_file(path)
        return f"Memory file deleted: {path}"

    if not new_path:
        raise ValueError("'new_path' parameter required for rename")
    rename_memory_file(path, new_path)
    return f"Memory file renamed: {path} -> {new_path}"
