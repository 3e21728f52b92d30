#!/usr/bin/env python3
"""
Tests for command parsing and the turn grammar.
"""

import pytest
import os

# Add parent directory to path for imports
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from bounded_coder import grammar
from bounded_coder.tools import ToolError, ToolErrorCode
from bounded_coder.tools.commands import (
    CreateFile, DeleteLines, FileInfo, Finish, Grep, InsertLines, ListDir, ReadLines,
    Unknown, WriteLines, parse_command, parse_line_range,
)


class TestParseCommand:

    def test_read_lines(self):
        assert parse_command("READ_LINES src/main.py 10-20") == ReadLines("src/main.py", 10, 20)

    def test_command_name_is_case_insensitive(self):
        assert parse_command("read_lines a.py 1-5") == ReadLines("a.py", 1, 5)
        assert parse_command("List src") == ListDir("src")

    def test_grep_quoted_pattern(self):
        assert parse_command('GREP "def main" src') == Grep("def main", "src")

    def test_grep_defaults_to_root(self):
        assert parse_command("GREP TODO") == Grep("TODO", ".")

    def test_list_defaults_to_root(self):
        assert parse_command("LIST") == ListDir(".")

    def test_quoted_path_with_spaces(self):
        assert parse_command('FILE_INFO "my notes.txt"') == FileInfo("my notes.txt")

    def test_simple_commands(self):
        assert parse_command("CREATE pkg/new.py") == CreateFile("pkg/new.py")
        assert parse_command("DELETE_LINES a.py 3-4") == DeleteLines("a.py", 3, 4)

    def test_finish_keeps_whole_summary(self):
        assert parse_command("FINISH  Found 2 callers: a.py and b.py. ") == \
            Finish("Found 2 callers: a.py and b.py.")

    def test_leading_whitespace_ignored(self):
        assert parse_command("  \tLIST .") == ListDir(".")

    def test_write_body_cut_at_marker(self):
        cmd = parse_command("WRITE a.py 1-2\ndef f():\n    return 1\nEND_WRITE\nTHOUGHT: stray")
        assert cmd == WriteLines("a.py", 1, 2, "def f():\n    return 1")

    def test_insert_body_without_marker(self):
        cmd = parse_command("INSERT a.py 0\nimport os\nimport sys")
        assert cmd == InsertLines("a.py", 0, "import os\nimport sys")

    def test_marker_only_counts_at_line_start(self):
        cmd = parse_command("WRITE a.py 1-1\nprint('END_WRITE')\nEND_WRITE")
        assert cmd.content == "print('END_WRITE')"

    def test_indented_marker(self):
        cmd = parse_command("INSERT a.py 3\n    pass\n    END_INSERT")
        assert cmd.content == "    pass"

    def test_empty_body(self):
        assert parse_command("WRITE a.py 2-3\nEND_WRITE").content == ""

    def test_missing_body(self):
        with pytest.raises(ToolError) as exc:
            parse_command("INSERT a.py 3")
        assert exc.value.code is ToolErrorCode.MISSING_CONTENT_BLOCK

    @pytest.mark.parametrize("raw", [
        "READ_LINES a.py",
        "READ_LINES a.py 5",
        "READ_LINES a.py x-y",
        "DELETE_LINES a.py 1-",
        "INSERT a.py after\nx",
        "FILE_INFO",
        "CREATE",
        "GREP",
        "FINISH",
        "FINISH   ",
    ])
    def test_malformed(self, raw):
        with pytest.raises(ToolError) as exc:
            parse_command(raw)
        assert exc.value.code is ToolErrorCode.MALFORMED_ARGUMENTS
        assert exc.value.message.startswith("Invalid format. Use: ")

    @pytest.mark.parametrize("raw", ["", "   ", "\n"])
    def test_empty(self, raw):
        with pytest.raises(ToolError) as exc:
            parse_command(raw)
        assert exc.value.code is ToolErrorCode.EMPTY_COMMAND

    def test_unknown(self):
        cmd = parse_command("SHELL ls -la")
        assert isinstance(cmd, Unknown)
        assert cmd.name == "SHELL"

    def test_parse_line_range(self):
        assert parse_line_range("3-5") == (3, 5)
        with pytest.raises(ValueError):
            parse_line_range("35")


class TestGrammar:

    def test_every_command_in_grammar(self):
        for name in grammar.VOCABULARY:
            assert f'"{name} ' in grammar.AGENT_GRAMMAR

    def test_end_markers_in_grammar(self):
        for marker in grammar.END_MARKERS.values():
            assert marker in grammar.AGENT_GRAMMAR

    @pytest.mark.parametrize("text", [
        "THOUGHT: look around\nCMD: LIST .\n",
        "THOUGHT: search\nCMD: GREP \"def main\" src\n",
        "THOUGHT: edit\nCMD: WRITE a.py 1-2\nx = 1\ny = 2\nEND_WRITE\n",
        "THOUGHT: add import\nCMD: INSERT a.py 0\nimport os\nEND_INSERT\n",
        "THOUGHT: done\nCMD: FINISH all good\n",
    ])
    def test_complete_turns(self, text):
        assert grammar.is_complete_turn(text)

    @pytest.mark.parametrize("text", [
        "THOUGHT: look around\nCMD: LIST .",
        "THOUGHT: edit\nCMD: WRITE a.py 1-2\nx = 1\n",
        "THOUGHT: hmm\n",
        "CMD: LIST .\n",
        "THOUGHT: run it\nCMD: SHELL ls\n",
    ])
    def test_incomplete_turns(self, text):
        assert not grammar.is_complete_turn(text)

    def test_vocabulary_text(self):
        assert grammar.vocabulary_text().split(", ") == list(grammar.VOCABULARY)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
