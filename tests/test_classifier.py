import pytest

from claude_voice.classifier import (
    ResponseCategory,
    classify,
    is_code_response,
    is_error_response,
    is_explanation_response,
)

LONG_PROSE = " ".join(["The cache keeps recent results so repeated lookups stay fast."] * 12)


def test_fenced_block_wins_over_everything():
    text = "Error: this looks bad\n```python\nprint('hi')\n```\n" + LONG_PROSE
    assert classify(text) is ResponseCategory.CODE


@pytest.mark.parametrize(
    "text",
    [
        "def main():\n    return 1",
        "  import os",
        "const answer = 42;",
        "public static void main(String[] args) {}",
        "class Greeter:\n    pass",
    ],
)
def test_language_keyword_at_line_start_is_code(text):
    assert is_code_response(text)
    assert classify(text) is ResponseCategory.CODE


def test_created_source_file_is_code():
    assert classify("I created server.py and wrote the tests.") is ResponseCategory.CODE
    assert classify("Saved the changes to src/App.tsx") is ResponseCategory.CODE


def test_keyword_must_be_a_whole_word():
    assert not is_code_response("definitely works now\nclassic problem")


def test_file_without_source_extension_is_not_code():
    assert not is_code_response("I created notes.txt for you")


@pytest.mark.parametrize(
    "text",
    ["Error: command not found: foo", "error: bad thing", "Some output\nFAILED: 3 tests", "Exception: boom", "failure: disk"],
)
def test_error_label_at_line_start(text):
    assert is_error_response(text)
    assert classify(text) is ResponseCategory.ERROR


def test_error_label_mid_line_is_not_error():
    assert not is_error_response("There was no error: everything passed")


def test_long_prose_is_explanation():
    assert is_explanation_response(LONG_PROSE)
    assert classify(LONG_PROSE) is ResponseCategory.EXPLANATION


def test_long_code_is_never_explanation():
    text = LONG_PROSE + "\ndef helper():\n    pass"
    assert not is_explanation_response(text)
    assert classify(text) is ResponseCategory.CODE


def test_exactly_one_hundred_words_is_generic():
    text = " ".join(["word"] * 100)
    assert classify(text) is ResponseCategory.GENERIC


@pytest.mark.parametrize("text", ["", "   ", "Done.", "\n\n\n", "ok\x00\x01", "🎉 all set"])
def test_fallback_is_generic(text):
    assert classify(text) is ResponseCategory.GENERIC


def test_classify_is_deterministic():
    for text in (LONG_PROSE, "Error: x", "```\ncode\n```", "plain"):
        assert classify(text) is classify(text)
