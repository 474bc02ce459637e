"""
Shorten long Claude Code responses into something worth listening to.

The category is decided by the caller (see `claude_voice.classifier`); nothing
here classifies again. Every function is total over arbitrary text.
"""

import re
from typing import Callable, Dict

from claude_voice.classifier import ERROR_LINE_PATTERN, SOURCE_EXTENSIONS, ResponseCategory

CONTINUE_PROMPT = "Would you like me to continue with more details?"

# First match wins, so the order matters.
LANGUAGE_PATTERNS = (
    (
        "JavaScript",
        re.compile(
            r"\.jsx?\b|\bfunction\b[^\n]*\{|\b(?:const|let|var)\s+\w+\s*=",
        ),
    ),
    (
        "TypeScript",
        re.compile(
            r"\.tsx?\b|^\s*(?:export\s+)?interface\s+\w+|^\s*(?:export\s+)?type\s+\w+\s*=",
            re.MULTILINE,
        ),
    ),
    (
        "Python",
        re.compile(
            r"\.py\b|^\s*def\s+\w+\s*\(|^\s*from\s+[\w.]+\s+import\b|^\s*class\s+\w+[^\n{]*:\s*$",
            re.MULTILINE,
        ),
    ),
    (
        "Bash",
        re.compile(r"\.sh\b|^#!\s*/bin/(?:ba)?sh|^#!\s*/usr/bin/env\s+(?:ba)?sh", re.MULTILINE),
    ),
    (
        "Java",
        re.compile(
            r"\.java\b|\bpublic\s+(?:static\s+)?class\b|\b(?:public|private|protected)\s+(?:static\s+)?void\b"
        ),
    ),
    (
        "Go",
        re.compile(r"\.go\b|^\s*package\s+main\b|\bfunc\s+(?:\([^)]*\)\s*)?\w+\s*\(", re.MULTILINE),
    ),
    (
        "Rust",
        re.compile(r"\.rs\b|\bfn\s+\w+\s*[(<]|^\s*impl\b|\buse\s+std::", re.MULTILINE),
    ),
)
GENERIC_LANGUAGE = "code"

CREATED_FILE_PATTERN = re.compile(
    r"\b(?:created|generated|saved|wrote)\b.*\.(?:%s)\b" % "|".join(SOURCE_EXTENSIONS),
    re.IGNORECASE,
)
ERROR_LABEL_PATTERN = re.compile(r"^.*error:", re.IGNORECASE)

ERROR_SOLUTIONS = (
    ("command not found", "Check if the command is installed and in your PATH."),
    ("permission denied", "Try running with appropriate permissions or check file ownership."),
    ("no such file", "Verify the file path is correct."),
    ("syntax error", "Review the syntax and fix any typos."),
)
DEFAULT_SOLUTION = "Check the error details above for more information."


def count_lines(text: str) -> int:
    return len(text.splitlines())


def needs_summary(text: str, threshold: int) -> bool:
    return count_lines(text) > threshold


def detect_language(text: str) -> str:
    for language, pattern in LANGUAGE_PATTERNS:
        if pattern.search(text):
            return language
    return GENERIC_LANGUAGE


def count_created_files(text: str) -> int:
    """Count lines that report creating, generating, saving or writing a source file."""
    return sum(1 for line in text.splitlines() if CREATED_FILE_PATTERN.search(line))


def extract_error_message(text: str) -> str:
    """
    Pull the message out of the first line that mentions "error:".

    Falls back to the first labelled line (``Failed: ...``) and then to the
    first non-blank line, so there is always something to say.
    """
    lines = text.splitlines()
    for line in lines:
        if "error:" in line.lower():
            message = ERROR_LABEL_PATTERN.sub("", line, count=1)
            return message.strip().rstrip(".")
    for line in lines:
        match = ERROR_LINE_PATTERN.match(line)
        if match:
            return line[match.end():].strip().rstrip(".")
    for line in lines:
        if line.strip():
            return line.strip().rstrip(".")
    return ""


def suggest_error_solution(message: str) -> str:
    lowered = message.lower()
    for needle, solution in ERROR_SOLUTIONS:
        if needle in lowered:
            return solution
    return DEFAULT_SOLUTION


def extract_first_paragraph(text: str) -> str:
    paragraph = []
    for line in text.splitlines():
        if not line.strip():
            if paragraph:
                break
            continue
        paragraph.append(line)
    return re.sub(r" {2,}", " ", " ".join(paragraph)).strip()


def summarize_code(text: str, max_spoken_lines: int) -> str:
    language = detect_language(text)
    file_count = count_created_files(text)
    if file_count > 0:
        summary = f"I've created {file_count} files with {language} code. "
    else:
        summary = f"I've generated {language} code. "
    return summary + "Check your editor for the complete implementation."


def summarize_error(text: str, max_spoken_lines: int) -> str:
    message = extract_error_message(text)
    return f"Error: {message}. {suggest_error_solution(message)}"


def summarize_explanation(text: str, max_spoken_lines: int) -> str:
    paragraph = extract_first_paragraph(text)
    if paragraph and paragraph[-1] not in ".!?":
        paragraph += "."
    return f"{paragraph} {CONTINUE_PROMPT}".strip()


def summarize_generic(text: str, max_spoken_lines: int) -> str:
    lines = text.splitlines()
    max_spoken_lines = max(max_spoken_lines, 0)
    first_lines = "\n".join(lines[:max_spoken_lines])
    remaining = len(lines) - max_spoken_lines
    if remaining <= 0:
        return first_lines
    return (
        f"{first_lines}... and {remaining} more lines. "
        "Check your terminal for the complete response."
    )


SUMMARIZERS: Dict[ResponseCategory, Callable[[str, int], str]] = {
    ResponseCategory.CODE: summarize_code,
    ResponseCategory.ERROR: summarize_error,
    ResponseCategory.EXPLANATION: summarize_explanation,
    ResponseCategory.GENERIC: summarize_generic,
}


def summarize(category: ResponseCategory, text: str, max_spoken_lines: int) -> str:
    """Summarize `text` using the template for `category`."""
    summarizer = SUMMARIZERS.get(category, summarize_generic)
    return summarizer(text, max_spoken_lines)
