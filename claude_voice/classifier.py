"""
Decide what kind of response Claude Code produced.

Each category has its own predicate so the keyword patterns can grow without
touching `classify`. Predicates are checked in table order and the first match
wins; anything unmatched is GENERIC.
"""

import re
from enum import Enum

SOURCE_EXTENSIONS = ("js", "py", "sh", "ts", "jsx", "tsx", "java", "cpp", "c", "go", "rs", "rb")
CODE_KEYWORDS = ("function", "class", "def", "import", "const", "let", "var", "public", "private")
ERROR_LABELS = ("error", "exception", "failed", "failure")
EXPLANATION_MIN_WORDS = 100

FENCE_MARKER = "```"
CODE_KEYWORD_PATTERN = re.compile(
    r"^\s*(?:%s)\b" % "|".join(CODE_KEYWORDS), re.MULTILINE
)
FILE_MENTION_PATTERN = re.compile(
    r"\b(?:created|generated|saved|wrote)\b.*\.(?:%s)\b" % "|".join(SOURCE_EXTENSIONS),
    re.IGNORECASE,
)
ERROR_LINE_PATTERN = re.compile(
    r"^(?:%s):" % "|".join(ERROR_LABELS), re.IGNORECASE | re.MULTILINE
)


class ResponseCategory(Enum):
    CODE = "code"
    ERROR = "error"
    EXPLANATION = "explanation"
    GENERIC = "generic"


def mentions_file_creation(text: str) -> bool:
    return FILE_MENTION_PATTERN.search(text) is not None


def is_code_response(text: str) -> bool:
    """Fenced block, a line opening with a language keyword, or a created source file."""
    if FENCE_MARKER in text:
        return True
    if CODE_KEYWORD_PATTERN.search(text):
        return True
    return mentions_file_creation(text)


def is_error_response(text: str) -> bool:
    return ERROR_LINE_PATTERN.search(text) is not None


def word_count(text: str) -> int:
    return len(text.split())


def is_explanation_response(text: str) -> bool:
    # Long prose; code of any length never counts as an explanation.
    return word_count(text) > EXPLANATION_MIN_WORDS and not is_code_response(text)


CATEGORY_CHECKS = (
    (ResponseCategory.CODE, is_code_response),
    (ResponseCategory.ERROR, is_error_response),
    (ResponseCategory.EXPLANATION, is_explanation_response),
)


def classify(text: str) -> ResponseCategory:
    for category, check in CATEGORY_CHECKS:
        if check(text):
            return category
    return ResponseCategory.GENERIC
