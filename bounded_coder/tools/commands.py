from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Tuple, Union

from .. import grammar
from .result import ToolError, ToolErrorCode

"""
Textual command parsing.

parse_command() turns one CMD: payload into exactly one ToolCommand variant.
Arguments are read left to right as either a double-quoted segment (spaces
allowed, no escape sequences) or a single whitespace-delimited word. WRITE and
INSERT take their body from everything after the first newline, cut at the
END_WRITE / END_INSERT line when present.
"""


@dataclass(frozen=True)
class ReadLines:
    path: str
    start: int
    end: int


@dataclass(frozen=True)
class Grep:
    pattern: str
    path: str = "."


@dataclass(frozen=True)
class ListDir:
    path: str = "."


@dataclass(frozen=True)
class FileInfo:
    path: str


@dataclass(frozen=True)
class WriteLines:
    path: str
    start: int
    end: int
    content: str


@dataclass(frozen=True)
class InsertLines:
    path: str
    after_line: int
    content: str


@dataclass(frozen=True)
class DeleteLines:
    path: str
    start: int
    end: int


@dataclass(frozen=True)
class CreateFile:
    path: str


@dataclass(frozen=True)
class Finish:
    summary: str


@dataclass(frozen=True)
class Unknown:
    raw: str
    name: str = ""


ToolCommand = Union[ReadLines, Grep, ListDir, FileInfo, WriteLines, InsertLines,
                    DeleteLines, CreateFile, Finish, Unknown]

COMMAND_TYPES = (ReadLines, Grep, ListDir, FileInfo, WriteLines, InsertLines,
                 DeleteLines, CreateFile, Finish, Unknown)

USAGE = {
    grammar.READ_LINES: "READ_LINES <path> <start>-<end>",
    grammar.GREP: "GREP <pattern> <path>",
    grammar.LIST: "LIST <path>",
    grammar.FILE_INFO: "FILE_INFO <path>",
    grammar.WRITE: "WRITE <path> <start>-<end>\\n<content>\\nEND_WRITE",
    grammar.INSERT: "INSERT <path> <after_line>\\n<content>\\nEND_INSERT",
    grammar.DELETE_LINES: "DELETE_LINES <path> <start>-<end>",
    grammar.CREATE: "CREATE <path>",
    grammar.FINISH: "FINISH <summary>",
}

_HEAD = re.compile(r"(\S+)[ \t]*(.*)", re.DOTALL)


class _ArgReader:
    """Left-to-right reader over the argument tail."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def next(self) -> str:
        text = self.text
        while self.pos < len(text) and text[self.pos].isspace():
            self.pos += 1
        if self.pos >= len(text):
            return ""
        if text[self.pos] == '"':
            self.pos += 1
            start = self.pos
            while self.pos < len(text) and text[self.pos] != '"':
                self.pos += 1
            value = text[start:self.pos]
            if self.pos < len(text):
                self.pos += 1  # closing quote
            return value
        start = self.pos
        while self.pos < len(text) and not text[self.pos].isspace():
            self.pos += 1
        return text[start:self.pos]

    def body(self, end_marker: str) -> str:
        """Everything after the next newline, cut at the end marker line."""
        newline = self.text.find("\n", self.pos)
        if newline == -1:
            raise ToolError(ToolErrorCode.MISSING_CONTENT_BLOCK,
                            "Missing content block. Content should follow on the next line.")
        block = self.text[newline + 1:]
        marker = re.search(rf"^[ \t]*{re.escape(end_marker)}\b", block, re.MULTILINE)
        if marker:
            block = block[:marker.start()]
        if block.endswith("\n"):
            block = block[:-1]
        return block


def _malformed(name: str) -> ToolError:
    return ToolError(ToolErrorCode.MALFORMED_ARGUMENTS, f"Invalid format. Use: {USAGE[name]}")


def parse_line_range(text: str) -> Tuple[int, int]:
    """'3-5' -> (3, 5). Raises ValueError on anything else."""
    start, sep, end = text.partition("-")
    if not sep:
        raise ValueError(f"not a line range: {text!r}")
    return int(start), int(end)


def _require(name: str, value: str) -> str:
    if not value:
        raise _malformed(name)
    return value


def parse_command(raw: str) -> ToolCommand:
    """Parse one command payload. Raises ToolError for empty or malformed input."""
    text = raw.lstrip()
    if not text:
        raise ToolError(ToolErrorCode.EMPTY_COMMAND, "Empty command.")

    head = _HEAD.match(text)
    name = head.group(1).upper()
    args = _ArgReader(head.group(2))

    if name in (grammar.READ_LINES, grammar.DELETE_LINES, grammar.WRITE):
        path = _require(name, args.next())
        try:
            start, end = parse_line_range(args.next())
        except ValueError:
            raise _malformed(name) from None
        if name == grammar.READ_LINES:
            return ReadLines(path, start, end)
        if name == grammar.DELETE_LINES:
            return DeleteLines(path, start, end)
        return WriteLines(path, start, end, args.body(grammar.END_MARKERS[grammar.WRITE]))

    if name == grammar.INSERT:
        path = _require(name, args.next())
        try:
            after_line = int(args.next())
        except ValueError:
            raise _malformed(name) from None
        return InsertLines(path, after_line, args.body(grammar.END_MARKERS[grammar.INSERT]))

    if name == grammar.GREP:
        pattern = _require(name, args.next())
        return Grep(pattern, args.next() or ".")

    if name == grammar.LIST:
        return ListDir(args.next() or ".")

    if name == grammar.FILE_INFO:
        return FileInfo(_require(name, args.next()))

    if name == grammar.CREATE:
        return CreateFile(_require(name, args.next()))

    if name == grammar.FINISH:
        return Finish(_require(name, head.group(2).strip()))

    return Unknown(raw=text, name=head.group(1))
