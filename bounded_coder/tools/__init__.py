from __future__ import annotations
import logging
from typing import Callable, Dict, Optional, Type

from .. import grammar
from ..config import ToolLimits
from .commands import (
    COMMAND_TYPES, CreateFile, DeleteLines, FileInfo, Finish, Grep, InsertLines,
    ListDir, ReadLines, ToolCommand, Unknown, WriteLines, parse_command,
)
from .filesystem import file_info, grep, list_dir, read_lines
from .line_edit import create_file, delete_lines, insert_lines, write_lines
from .result import ToolError, ToolErrorCode, ToolResult
from .sandbox import WorkingRoot

__all__ = [
    "ToolInterpreter", "ToolResult", "ToolError", "ToolErrorCode", "WorkingRoot",
    "parse_command",
]

logger = logging.getLogger(__name__)

Handler = Callable[[ToolCommand], ToolResult]


class ToolInterpreter:
    """Executes one command at a time against a sandboxed working root.

    No model awareness: text or a parsed ToolCommand in, ToolResult out. Every
    failure, including OS errors, comes back as a failed result.
    """

    def __init__(self, working_dir: str = ".", limits: Optional[ToolLimits] = None):
        self._root = WorkingRoot(working_dir)
        self.limits = limits or ToolLimits()
        self._handlers: Dict[Type, Handler] = {
            ReadLines: lambda c: read_lines(self._root, self.limits, c.path, c.start, c.end),
            Grep: lambda c: grep(self._root, self.limits, c.pattern, c.path),
            ListDir: lambda c: list_dir(self._root, self.limits, c.path),
            FileInfo: lambda c: file_info(self._root, self.limits, c.path),
            WriteLines: lambda c: write_lines(self._root, self.limits, c.path, c.start, c.end, c.content),
            InsertLines: lambda c: insert_lines(self._root, self.limits, c.path, c.after_line, c.content),
            DeleteLines: lambda c: delete_lines(self._root, self.limits, c.path, c.start, c.end),
            CreateFile: lambda c: create_file(self._root, self.limits, c.path),
            Finish: lambda c: ToolResult.ok(c.summary, finished=True),
            Unknown: self._unknown,
        }
        missing = [t.__name__ for t in COMMAND_TYPES if t not in self._handlers]
        if missing:
            raise TypeError(f"no handler for command types: {', '.join(missing)}")

    @property
    def working_directory(self) -> str:
        return self._root.path

    def set_working_directory(self, path: str) -> None:
        self._root.set(path)

    # ---------- Front doors ----------
    def execute(self, raw: str) -> ToolResult:
        """Parse and run one command string as emitted after CMD:."""
        try:
            command = parse_command(raw)
        except ToolError as e:
            logger.debug("command rejected: %s (%s)", e.code.value, e.message)
            return ToolResult.fail(e.code, e.message)
        return self.run(command)

    def run(self, command: ToolCommand) -> ToolResult:
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f"not a tool command: {command!r}")
        try:
            return handler(command)
        except ToolError as e:
            logger.debug("%s failed: %s (%s)", type(command).__name__, e.code.value, e.message)
            return ToolResult.fail(e.code, e.message)
        except OSError as e:
            logger.warning("%s failed with OS error: %s", type(command).__name__, e)
            return ToolResult.fail(ToolErrorCode.IO_ERROR, f"{type(e).__name__}: {e.strerror or e}")

    @staticmethod
    def _unknown(command: Unknown) -> ToolResult:
        return ToolResult.fail(ToolErrorCode.UNKNOWN_COMMAND,
                               f"Unknown command: {command.name.upper()}\n"
                               f"Available: {grammar.vocabulary_text()}")

    # ---------- One method per operation ----------
    def read_lines(self, path: str, start: int, end: int) -> ToolResult:
        return self.run(ReadLines(path, start, end))

    def grep(self, pattern: str, path: str = ".") -> ToolResult:
        return self.run(Grep(pattern, path))

    def list_dir(self, path: str = ".") -> ToolResult:
        return self.run(ListDir(path))

    def file_info(self, path: str) -> ToolResult:
        return self.run(FileInfo(path))

    def write_lines(self, path: str, start: int, end: int, content: str) -> ToolResult:
        return self.run(WriteLines(path, start, end, content))

    def insert_lines(self, path: str, after_line: int, content: str) -> ToolResult:
        return self.run(InsertLines(path, after_line, content))

    def delete_lines(self, path: str, start: int, end: int) -> ToolResult:
        return self.run(DeleteLines(path, start, end))

    def create_file(self, path: str) -> ToolResult:
        return self.run(CreateFile(path))

    def finish(self, summary: str) -> ToolResult:
        return self.run(Finish(summary))
