"""Rewrite symbols as words so the TTS engine reads them out."""

import re

# Two-character operators are listed first so the alternation tries them
# before their single-character prefixes.
SPOKEN_SYMBOLS = {
    "==": "equals equals",
    "!=": "not equals",
    "<=": "less than or equal to",
    ">=": "greater than or equal to",
    "`": "backtick",
    "$": "dollar",
    "#": "hash",
    "*": "asterisk",
    "|": "pipe",
    "\\": "backslash",
    "~": "tilde",
    "^": "caret",
    "&": "ampersand",
    "@": "at",
    "[": "open bracket",
    "]": "close bracket",
    "{": "open brace",
    "}": "close brace",
    "<": "less than",
    ">": "greater than",
}

SYMBOL_PATTERN = re.compile("|".join(re.escape(symbol) for symbol in SPOKEN_SYMBOLS))
WHITESPACE_PATTERN = re.compile(r"\s+")


def _spoken(match: "re.Match[str]") -> str:
    return f" {SPOKEN_SYMBOLS[match.group(0)]} "


def normalize(text: str) -> str:
    text = SYMBOL_PATTERN.sub(_spoken, text)
    return WHITESPACE_PATTERN.sub(" ", text).strip()
