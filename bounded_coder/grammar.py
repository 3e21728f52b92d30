from __future__ import annotations
import re

"""
Command protocol shared by the inference backend and the parser.

One model turn is exactly:

    THOUGHT: <one line of reasoning>
    CMD: <one action>

Actions:
    READ_LINES <path> <start>-<end>      read at most 50 lines
    GREP <pattern> <path>                case-insensitive regex, shallow
    LIST <path>                          directory listing
    FILE_INFO <path>                     metadata only, never content
    CREATE <path>                        new empty file
    WRITE <path> <start>-<end>           replace lines, body until END_WRITE
    INSERT <path> <after_line>           insert lines, body until END_INSERT
    DELETE_LINES <path> <start>-<end>    delete lines
    FINISH <summary>                     task complete
"""

THOUGHT_MARKER = "THOUGHT:"
ACTION_MARKER = "CMD:"

READ_LINES = "READ_LINES"
GREP = "GREP"
LIST = "LIST"
FILE_INFO = "FILE_INFO"
WRITE = "WRITE"
INSERT = "INSERT"
DELETE_LINES = "DELETE_LINES"
CREATE = "CREATE"
FINISH = "FINISH"

VOCABULARY = (READ_LINES, GREP, LIST, FILE_INFO, WRITE, INSERT, DELETE_LINES, CREATE, FINISH)

END_MARKERS = {
    WRITE: "END_WRITE",
    INSERT: "END_INSERT",
}

# GBNF, for backends that support grammar-constrained decoding
AGENT_GRAMMAR = r'''
root ::= thought command

thought ::= "THOUGHT: " thought-text "\n"
thought-text ::= [^\n]+

command ::= "CMD: " cmd-body

cmd-body ::= read-cmd | grep-cmd | list-cmd | file-info-cmd | create-cmd | write-cmd | insert-cmd | delete-cmd | finish-cmd

read-cmd ::= "READ_LINES " path " " line-range "\n"
grep-cmd ::= "GREP " pattern " " path "\n"
list-cmd ::= "LIST " path "\n"
file-info-cmd ::= "FILE_INFO " path "\n"
create-cmd ::= "CREATE " path "\n"
write-cmd ::= "WRITE " path " " line-range "\n" content-block "END_WRITE\n"
insert-cmd ::= "INSERT " path " " number "\n" content-block "END_INSERT\n"
delete-cmd ::= "DELETE_LINES " path " " line-range "\n"
finish-cmd ::= "FINISH " [^\n]+ "\n"

line-range ::= number "-" number
number ::= [0-9]+
path ::= [a-zA-Z0-9_./-]+
pattern ::= "\"" [^"]* "\"" | [a-zA-Z0-9_.*?|\\[\]^$]+
content-block ::= content-line*
content-line ::= [^\n]* "\n"
'''

# Same language as AGENT_GRAMMAR, for backends that can only check output after the fact.
_PATH = r"[A-Za-z0-9_./-]+"
_RANGE = r"[0-9]+-[0-9]+"
_PATTERN = r'(?:"[^"\n]*"|[A-Za-z0-9_.*?|\\\[\]^$]+)'
_BODY = r"(?:[^\n]*\n)*?"

_CMD_BODY = "|".join([
    rf"READ_LINES {_PATH} {_RANGE}\n",
    rf"GREP {_PATTERN} {_PATH}\n",
    rf"LIST {_PATH}\n",
    rf"FILE_INFO {_PATH}\n",
    rf"CREATE {_PATH}\n",
    rf"WRITE {_PATH} {_RANGE}\n{_BODY}END_WRITE\n",
    rf"INSERT {_PATH} [0-9]+\n{_BODY}END_INSERT\n",
    rf"DELETE_LINES {_PATH} {_RANGE}\n",
    r"FINISH [^\n]+\n",
])

TURN_PATTERN = re.compile(rf"THOUGHT: [^\n]+\nCMD: (?:{_CMD_BODY})")


def is_complete_turn(text: str) -> bool:
    """True once `text` (ignoring leading whitespace) holds one full turn."""
    return TURN_PATTERN.match(text.lstrip()) is not None


def vocabulary_text() -> str:
    return ", ".join(VOCABULARY)
