from __future__ import annotations
import logging
import os
import re
from typing import List

from ..config import ToolLimits
from .result import ToolError, ToolErrorCode, ToolResult
from .sandbox import WorkingRoot

"""
Tool: READ_LINES
Description: Read a numbered slice of a text file. Never more than max_read_lines.
Args: path, start, end (1-based, inclusive)

Tool: GREP
Description: Case-insensitive regex search in one file, or in the files directly inside a
directory (no recursion). Stops at max_grep_results matches.
Args: pattern, path

Tool: LIST
Description: Names in a directory, directories suffixed with '/', sorted. Capped at max_list_entries.
Args: path

Tool: FILE_INFO
Description: Existence, type, size and line count. Never content. Succeeds for missing paths.
Args: path
"""

logger = logging.getLogger(__name__)


def load_lines(path: str, errors: str = "replace") -> List[str]:
    """Lines split on '\\n' only; a trailing newline does not add an empty line."""
    with open(path, "r", encoding="utf-8", errors=errors, newline="\n") as f:
        text = f.read()
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


def _count_lines(path: str) -> int:
    with open(path, "r", encoding="utf-8", errors="replace", newline="\n") as f:
        return sum(1 for _ in f)


def _require_file(resolved: str, path: str) -> None:
    if not os.path.exists(resolved):
        raise ToolError(ToolErrorCode.NOT_FOUND, f"File not found: {path}")
    if os.path.isdir(resolved):
        raise ToolError(ToolErrorCode.IS_A_DIRECTORY, f"Is a directory: {path}")


def check_range(start: int, end: int) -> None:
    if start < 1 or end < start:
        raise ToolError(ToolErrorCode.INVALID_RANGE,
                        "Invalid line range. Use 1-indexed positive integers with start <= end.")


def read_lines(root: WorkingRoot, limits: ToolLimits, path: str, start: int, end: int) -> ToolResult:
    check_range(start, end)
    requested = end - start + 1
    if requested > limits.max_read_lines:
        raise ToolError(ToolErrorCode.RANGE_TOO_LARGE,
                        f"Too many lines requested ({requested}). Maximum is "
                        f"{limits.max_read_lines}. Narrow your request.")

    resolved = root.resolve(path, limits.max_path_length)
    _require_file(resolved, path)
    lines = load_lines(resolved)

    last = min(end, len(lines))
    out = [f"{n}: {lines[n - 1]}" for n in range(start, last + 1)]
    if end > len(lines):
        out.append(f"[EOF at line {len(lines)}]")
    logger.debug("READ_LINES %s %d-%d -> %d lines", path, start, end, max(0, last - start + 1))
    return ToolResult.ok("\n".join(out) + "\n", lines_returned=max(0, last - start + 1))


def grep(root: WorkingRoot, limits: ToolLimits, pattern: str, path: str = ".") -> ToolResult:
    try:
        rx = re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        raise ToolError(ToolErrorCode.INVALID_PATTERN, f"Invalid regex pattern: {e}") from None

    resolved = root.resolve(path, limits.max_path_length)
    if os.path.isdir(resolved):
        files = []
        for name in sorted(os.listdir(resolved)):
            child = os.path.realpath(os.path.join(resolved, name))
            # symlinked children may point outside the root
            if os.path.isfile(child) and root.contains(child):
                files.append(child)
    elif os.path.exists(resolved):
        files = [resolved]
    else:
        raise ToolError(ToolErrorCode.NOT_FOUND, f"Path not found: {path}")

    hits: List[str] = []
    truncated = False
    for fp in files:
        rel = root.relative(fp)
        with open(fp, "r", encoding="utf-8", errors="replace", newline="\n") as f:
            for i, line in enumerate(f, 1):
                line = line.rstrip("\n")
                if rx.search(line):
                    hits.append(f"{rel}:{i}: {line}")
                    if len(hits) >= limits.max_grep_results:
                        truncated = True
                        break
        if truncated:
            break

    if not hits:
        out = f"No matches found for pattern: {pattern}\n"
    else:
        out = "\n".join(hits) + "\n"
        if truncated:
            out += f"[Results truncated at {limits.max_grep_results} matches]\n"
    logger.debug("GREP %r in %s -> %d matches (truncated=%s)", pattern, path, len(hits), truncated)
    return ToolResult.ok(out, lines_returned=len(hits), truncated=truncated)


def list_dir(root: WorkingRoot, limits: ToolLimits, path: str = ".") -> ToolResult:
    resolved = root.resolve(path, limits.max_path_length)
    if not os.path.exists(resolved):
        raise ToolError(ToolErrorCode.NOT_FOUND, f"Directory not found: {path}")
    if not os.path.isdir(resolved):
        raise ToolError(ToolErrorCode.NOT_A_DIRECTORY, f"Not a directory: {path}")

    with os.scandir(resolved) as it:
        entries = sorted(e.name + "/" if e.is_dir() else e.name for e in it)

    if not entries:
        return ToolResult.ok("[Empty directory]\n")

    shown = entries[:limits.max_list_entries]
    out = "\n".join(shown) + "\n"
    truncated = len(entries) > len(shown)
    if truncated:
        out += f"[... {len(entries) - len(shown)} more entries]\n"
    return ToolResult.ok(out, lines_returned=len(shown), truncated=truncated)


def file_info(root: WorkingRoot, limits: ToolLimits, path: str) -> ToolResult:
    resolved = root.resolve(path, limits.max_path_length)
    if not os.path.exists(resolved):
        return ToolResult.ok(f"exists: false\npath: {path}\n")

    info = ["exists: true", f"path: {path}"]
    if os.path.isdir(resolved):
        info.append("type: directory")
        info.append(f"entries: {len(os.listdir(resolved))}")
    else:
        info.append("type: file")
        info.append(f"size_bytes: {os.path.getsize(resolved)}")
        info.append(f"line_count: {_count_lines(resolved)}")
    return ToolResult.ok("\n".join(info) + "\n")
