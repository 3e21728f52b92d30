from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ToolErrorCode(str, Enum):
    PATH_OUTSIDE_ROOT = "PathOutsideRoot"
    PATH_TOO_LONG = "PathTooLong"
    INVALID_RANGE = "InvalidRange"
    RANGE_TOO_LARGE = "RangeTooLarge"
    NOT_FOUND = "NotFound"
    NOT_A_DIRECTORY = "NotADirectory"
    IS_A_DIRECTORY = "IsADirectory"
    INVALID_PATTERN = "InvalidPattern"
    TOO_MANY_LINES = "TooManyLines"
    START_BEYOND_EOF = "StartBeyondEOF"
    ALREADY_EXISTS = "AlreadyExists"
    EMPTY_COMMAND = "EmptyCommand"
    UNKNOWN_COMMAND = "UnknownCommand"
    MISSING_CONTENT_BLOCK = "MissingContentBlock"
    MALFORMED_ARGUMENTS = "MalformedArguments"
    IO_ERROR = "IOError"


class ToolError(Exception):
    """A recoverable tool failure; becomes a failed ToolResult, never escapes the interpreter."""

    def __init__(self, code: ToolErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass(frozen=True)
class ToolResult:
    success: bool = False
    output: str = ""
    error: str = ""
    lines_returned: int = 0
    truncated: bool = False
    finished: bool = False
    error_code: Optional[ToolErrorCode] = None

    @classmethod
    def ok(cls, output: str, lines_returned: int = 0, truncated: bool = False,
           finished: bool = False) -> "ToolResult":
        return cls(success=True, output=output, lines_returned=lines_returned,
                   truncated=truncated, finished=finished)

    @classmethod
    def fail(cls, code: ToolErrorCode, message: str) -> "ToolResult":
        return cls(success=False, error=message, error_code=code)

    def observation(self) -> str:
        """Text shown to the model for this result."""
        return self.output if self.success else f"ERROR: {self.error}"
