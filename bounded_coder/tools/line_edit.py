from __future__ import annotations
import logging
import os
from typing import List

from ..config import ToolLimits
from .filesystem import check_range, load_lines
from .result import ToolError, ToolErrorCode, ToolResult
from .sandbox import WorkingRoot

"""
Tool: WRITE / INSERT / DELETE_LINES / CREATE
Purpose: Line-number anchored edits of a single file.
Notes:
- 1-based line indexing at the interface, 0-based slicing inside
- WRITE replaces [start, end]; end is clamped to the file, start past EOF pads with blank lines
  (padding plus new lines bounded by max_write_lines)
- INSERT after_line=0 inserts at the top; past EOF appends
- DELETE_LINES fails when start is past EOF; end is clamped
- Files must exist before WRITE/INSERT/DELETE_LINES; CREATE refuses existing paths
- Undecodable bytes round-trip unchanged (surrogateescape)
"""

logger = logging.getLogger(__name__)

_ERRORS = "surrogateescape"


def split_content(content: str) -> List[str]:
    """'a\\nb' -> ['a', 'b']; '' -> []; a single trailing newline is ignored."""
    if not content:
        return []
    lines = content.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


def _write(path: str, lines: List[str]) -> None:
    with open(path, "w", encoding="utf-8", errors=_ERRORS, newline="\n") as f:
        f.write("\n".join(lines) + ("\n" if lines else ""))


def _existing_file(root: WorkingRoot, limits: ToolLimits, path: str) -> str:
    resolved = root.resolve(path, limits.max_path_length)
    if not os.path.exists(resolved):
        raise ToolError(ToolErrorCode.NOT_FOUND, f"File not found: {path}. Use CREATE first for new files.")
    if os.path.isdir(resolved):
        raise ToolError(ToolErrorCode.IS_A_DIRECTORY, f"Is a directory: {path}")
    return resolved


def _new_lines(limits: ToolLimits, content: str) -> List[str]:
    lines = split_content(content)
    if len(lines) > limits.max_write_lines:
        raise ToolError(ToolErrorCode.TOO_MANY_LINES,
                        f"Too many lines to write ({len(lines)}). Maximum is {limits.max_write_lines}.")
    return lines


def write_lines(root: WorkingRoot, limits: ToolLimits, path: str, start: int, end: int,
                content: str) -> ToolResult:
    check_range(start, end)
    resolved = _existing_file(root, limits, path)
    new = _new_lines(limits, content)
    lines = load_lines(resolved, errors=_ERRORS)

    lo = start - 1
    hi = min(end, len(lines))  # exclusive, clamped
    before = lines[:lo]
    gap = lo - len(before)
    if gap + len(new) > limits.max_write_lines:
        raise ToolError(ToolErrorCode.TOO_MANY_LINES,
                        f"Start line {start} is {gap} lines past end of file ({len(lines)} lines). "
                        f"Padding plus content may not exceed {limits.max_write_lines} lines.")
    padding = [""] * gap
    after = lines[hi:]
    result = before + padding + new + after
    _write(resolved, result)

    logger.debug("WRITE %s %d-%d: %d -> %d lines", path, start, end, len(lines), len(result))
    return ToolResult.ok(f"Replaced lines {start}-{end} with {len(new)} new lines.\n"
                         f"File now has {len(result)} lines.\n")


def insert_lines(root: WorkingRoot, limits: ToolLimits, path: str, after_line: int,
                 content: str) -> ToolResult:
    if after_line < 0:
        raise ToolError(ToolErrorCode.INVALID_RANGE, "Invalid line number. Use 0 to insert at beginning.")
    resolved = _existing_file(root, limits, path)
    new = _new_lines(limits, content)
    lines = load_lines(resolved, errors=_ERRORS)

    pos = min(after_line, len(lines))
    lines[pos:pos] = new
    _write(resolved, lines)

    logger.debug("INSERT %s after %d: +%d lines", path, after_line, len(new))
    return ToolResult.ok(f"Inserted {len(new)} lines after line {pos}.\n"
                         f"File now has {len(lines)} lines.\n")


def delete_lines(root: WorkingRoot, limits: ToolLimits, path: str, start: int, end: int) -> ToolResult:
    check_range(start, end)
    resolved = _existing_file(root, limits, path)
    lines = load_lines(resolved, errors=_ERRORS)

    if start > len(lines):
        raise ToolError(ToolErrorCode.START_BEYOND_EOF,
                        f"Start line {start} is beyond end of file ({len(lines)} lines).")
    hi = min(end, len(lines))
    deleted = hi - (start - 1)
    del lines[start - 1:hi]
    _write(resolved, lines)

    logger.debug("DELETE_LINES %s %d-%d: -%d lines", path, start, end, deleted)
    return ToolResult.ok(f"Deleted {deleted} lines.\nFile now has {len(lines)} lines.\n")


def create_file(root: WorkingRoot, limits: ToolLimits, path: str) -> ToolResult:
    resolved = root.resolve(path, limits.max_path_length)
    if os.path.exists(resolved):
        raise ToolError(ToolErrorCode.ALREADY_EXISTS, f"File already exists: {path}. Use WRITE to modify.")
    os.makedirs(os.path.dirname(resolved), exist_ok=True)
    # exclusive create: never truncates an existing file
    with open(resolved, "x", encoding="utf-8"):
        pass
    logger.debug("CREATE %s", path)
    return ToolResult.ok(f"Created empty file: {path}\n")
