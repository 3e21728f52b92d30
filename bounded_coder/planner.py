from __future__ import annotations
from typing import Optional, Sequence

from .grammar import ACTION_MARKER, THOUGHT_MARKER

SYSTEM_PROMPT = """You are a code assistant working inside one directory. You act through commands and see only their results.
Reply with exactly two parts: one THOUGHT line, then one CMD.

Commands:
  LIST <path>                        list a directory
  FILE_INFO <path>                   size and line count, no content
  READ_LINES <path> <start>-<end>    read at most 50 lines
  GREP <pattern> <path>              case-insensitive regex, file or directory (not recursive)
  CREATE <path>                      create an empty file
  WRITE <path> <start>-<end>         replace those lines with the block that follows, ended by END_WRITE
  INSERT <path> <after_line>         insert the block that follows after that line (0 = top), ended by END_INSERT
  DELETE_LINES <path> <start>-<end>  delete those lines
  FINISH <answer>                    stop and report

Example:
TASK: Add a greeting to hello.py
THOUGHT: I will check how long hello.py is.
CMD: FILE_INFO hello.py
RESULT: exists: true  type: file  line_count: 2
THOUGHT: I will read both lines.
CMD: READ_LINES hello.py 1-2
RESULT: 1: def main():  2:     pass
THOUGHT: I will replace line 2 with a print call.
CMD: WRITE hello.py 2-2
    print("hello")
END_WRITE
RESULT: Replaced lines 2-2 with 1 new lines.
THOUGHT: The edit is done.
CMD: FINISH hello.py now prints a greeting.

RULES:
1. Only use the commands listed above, one per reply
2. Read before you edit; line numbers shift after WRITE, INSERT and DELETE_LINES
3. New files need CREATE before WRITE or INSERT
4. Paths are relative to DIR and cannot leave it
5. FINISH must include the actual answer with details
6. Do NOT create or modify files unless the task asks for it"""

USER_TEMPLATE = """TASK: {task}
DIR: {directory}
"""

FIRST_STEP = "Begin by exploring. What is your first action?"

NEXT_STEP = "Based on this result, what is your NEXT action? (Use FINISH if done)"

MAX_RESULT_DISPLAY_CHARS = 1000
TRUNCATION_MARK = "...[truncated]"


def truncate(text: str, limit: int = MAX_RESULT_DISPLAY_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARK


def make_prompt(task: str, directory: str, last_command: Optional[str] = None,
                last_observation: Optional[str] = None) -> str:
    """Preamble, task, then either an opening invitation or the last action and its result."""
    parts = [SYSTEM_PROMPT, "", USER_TEMPLATE.format(task=task, directory=directory)]
    if last_command is None:
        parts.append(FIRST_STEP)
    else:
        parts.append("YOUR LAST ACTION:")
        parts.append(f"{ACTION_MARKER} {last_command}")
        parts.append("RESULT:")
        parts.append(truncate(last_observation or "").rstrip("\n"))
        parts.append("")
        parts.append(NEXT_STEP)
    parts.append(f"Answer as:\n{THOUGHT_MARKER} ...\n{ACTION_MARKER} ...\n")
    return "\n".join(parts)


def window(history: Sequence, size: int) -> Sequence:
    """The part of the history that may be rendered into a prompt."""
    if size <= 0:
        return []
    return history[-size:]
