import pytest

from claude_voice.classifier import ResponseCategory
from claude_voice.summarizer import (
    CONTINUE_PROMPT,
    count_created_files,
    count_lines,
    detect_language,
    extract_error_message,
    extract_first_paragraph,
    needs_summary,
    suggest_error_solution,
    summarize,
)


class TestThreshold:
    def test_short_response_is_not_summarized(self):
        text = "\n".join(f"line {i}" for i in range(5))
        assert count_lines(text) == 5
        assert not needs_summary(text, 50)

    def test_threshold_is_strict(self):
        text = "\n".join(f"line {i}" for i in range(50))
        assert not needs_summary(text, 50)
        assert needs_summary(text + "\nline 50", 50)


class TestGeneric:
    def test_first_lines_then_remaining_count(self):
        lines = [f"plain line {i}" for i in range(60)]
        summary = summarize(ResponseCategory.GENERIC, "\n".join(lines), 10)
        assert summary == (
            "\n".join(lines[:10])
            + "... and 50 more lines. Check your terminal for the complete response."
        )

    def test_nothing_remaining_reads_everything(self):
        summary = summarize(ResponseCategory.GENERIC, "a\nb", 10)
        assert summary == "a\nb"


class TestError:
    def test_command_not_found(self):
        summary = summarize(ResponseCategory.ERROR, "Running build\nError: command not found: foo\n", 10)
        assert "command not found: foo" in summary
        assert "Check if the command is installed and in your PATH." in summary
        assert summary == "Error: command not found: foo. Check if the command is installed and in your PATH."

    @pytest.mark.parametrize(
        "message, hint",
        [
            ("Permission denied: /etc/hosts", "check file ownership"),
            ("open config.yml: no such file or directory", "Verify the file path is correct."),
            ("Syntax error near line 3", "Review the syntax"),
            ("something odd happened", "Check the error details above"),
        ],
    )
    def test_solution_hints(self, message, hint):
        assert hint in suggest_error_solution(message)

    def test_label_is_stripped_case_insensitively(self):
        assert extract_error_message("ERROR:   disk full.") == "disk full"

    def test_falls_back_to_other_labels(self):
        assert extract_error_message("Failed: could not compile") == "could not compile"

    def test_never_empty_handed(self):
        assert extract_error_message("") == ""
        assert summarize(ResponseCategory.ERROR, "", 10).startswith("Error: ")


class TestCode:
    def test_counts_created_files(self):
        text = "Created index.js\nCreated utils.js\nconst x = 1;\nAll done."
        assert count_created_files(text) == 2
        assert summarize(ResponseCategory.CODE, text, 10) == (
            "I've created 2 files with JavaScript code. Check your editor for the complete implementation."
        )

    def test_generated_code_without_files(self):
        text = "```python\ndef main():\n    pass\n```"
        assert summarize(ResponseCategory.CODE, text, 10) == (
            "I've generated Python code. Check your editor for the complete implementation."
        )

    @pytest.mark.parametrize(
        "text, language",
        [
            ("function greet() {\n  return 'hi';\n}", "JavaScript"),
            ("interface User {\n  name: string;\n}", "TypeScript"),
            ("from pathlib import Path", "Python"),
            ("#!/bin/bash\necho hi", "Bash"),
            ("public class Main {\n}", "Java"),
            ("package main\n\nfunc main() {\n}", "Go"),
            ("fn main() {\n    println!(\"hi\");\n}", "Rust"),
            ("```\nSELECT 1;\n```", "code"),
        ],
    )
    def test_detect_language(self, text, language):
        assert detect_language(text) == language

    def test_javascript_checked_before_typescript(self):
        assert detect_language("const x = 1;\ninterface A {}") == "JavaScript"


class TestExplanation:
    def test_first_paragraph_only(self):
        text = "Caching works by\nkeeping   results around\n\nSecond paragraph here."
        assert extract_first_paragraph(text) == "Caching works by keeping results around"
        assert summarize(ResponseCategory.EXPLANATION, text, 10) == (
            f"Caching works by keeping results around. {CONTINUE_PROMPT}"
        )

    def test_leading_blank_lines_skipped(self):
        assert extract_first_paragraph("\n\nHello there.\n\nBye.") == "Hello there."

    def test_existing_punctuation_kept(self):
        summary = summarize(ResponseCategory.EXPLANATION, "Is it fast?\n\nYes.", 10)
        assert summary == f"Is it fast? {CONTINUE_PROMPT}"


def test_summarize_trusts_the_category():
    # Looks like an error, but the caller says it's generic
    text = "\n".join(["Error: nope"] + [f"line {i}" for i in range(20)])
    summary = summarize(ResponseCategory.GENERIC, text, 2)
    assert summary.startswith("Error: nope\nline 0... and 19 more lines.")
