import pytest

from claude_voice import pipeline
from claude_voice.pipeline import (
    EMPTY_RESPONSE_MESSAGE,
    STATUS_MESSAGES,
    prepare_spoken_text,
    spoken_response,
    status_message,
)
from claude_voice.runner import ExecutionResult, ExecutionStatus


def test_short_response_spoken_in_full():
    text = "line one\nline two\nline three\nline four\nline five"
    assert prepare_spoken_text(text, summarize_threshold=50, max_spoken_lines=10) == (
        "line one line two line three line four line five"
    )


def test_short_response_never_classified(monkeypatch):
    def explode(text):
        raise AssertionError("classified a short response")

    monkeypatch.setattr(pipeline, "classify", explode)
    assert prepare_spoken_text("a == b", 50, 10) == "a equals equals b"


def test_long_response_summarized_then_normalized():
    text = "\n".join(f"$V{i}" for i in range(60))
    spoken = prepare_spoken_text(text, summarize_threshold=50, max_spoken_lines=2)
    assert spoken == (
        "dollar V0 dollar V1... and 58 more lines. "
        "Check your terminal for the complete response."
    )


def test_long_error_response():
    text = "Error: command not found: foo\n" + "\n".join(f"trace {i}" for i in range(60))
    spoken = prepare_spoken_text(text, summarize_threshold=50, max_spoken_lines=10)
    assert spoken.startswith("Error: command not found: foo.")
    assert "PATH" in spoken


@pytest.mark.parametrize(
    "status",
    [
        ExecutionStatus.TIMEOUT,
        ExecutionStatus.AUTH_ERROR,
        ExecutionStatus.NETWORK_ERROR,
        ExecutionStatus.RATE_LIMITED,
        ExecutionStatus.GENERAL_ERROR,
    ],
)
def test_failures_use_status_message(status, monkeypatch):
    monkeypatch.setattr(pipeline, "classify", lambda text: pytest.fail("failure was classified"))
    result = ExecutionResult(status=status, stdout="partial\n" * 100)
    assert spoken_response(result, 50, 10) == STATUS_MESSAGES[status]
    assert status_message(result) == STATUS_MESSAGES[status]


def test_every_failure_has_a_distinct_message():
    assert len(set(STATUS_MESSAGES.values())) == len(STATUS_MESSAGES)
    assert ExecutionStatus.SUCCESS not in STATUS_MESSAGES


def test_success_without_output():
    result = ExecutionResult(status=ExecutionStatus.SUCCESS, stdout="  \n", exit_code=0)
    assert spoken_response(result, 50, 10) == EMPTY_RESPONSE_MESSAGE
    assert status_message(result) == ""
