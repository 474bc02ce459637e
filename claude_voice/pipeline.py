"""Turn a Claude Code run into the sentence that gets spoken."""

import logging

from claude_voice.classifier import classify
from claude_voice.normalizer import normalize
from claude_voice.runner import ExecutionResult, ExecutionStatus
from claude_voice.summarizer import count_lines, summarize

log = logging.getLogger(__name__)

STATUS_MESSAGES = {
    ExecutionStatus.TIMEOUT: "Claude took too long to respond. Try a shorter request or raise the timeout.",
    ExecutionStatus.AUTH_ERROR: "Claude Code is not authenticated. Run claude and log in, then try again.",
    ExecutionStatus.NETWORK_ERROR: "I couldn't reach Claude. Check your internet connection and try again.",
    ExecutionStatus.RATE_LIMITED: "Claude is rate limited right now. Wait a moment and try again.",
    ExecutionStatus.GENERAL_ERROR: "I'm sorry, but I encountered an error while processing your request. Please try again.",
}
EMPTY_RESPONSE_MESSAGE = "Claude finished without saying anything."


def prepare_spoken_text(text: str, summarize_threshold: int, max_spoken_lines: int) -> str:
    """
    Summarize `text` when it has more than `summarize_threshold` lines, then normalize it.

    Shorter responses are normalized and spoken in full.
    """
    line_count = count_lines(text)
    if line_count > summarize_threshold:
        category = classify(text)
        log.info(f"Summarized {line_count} lines of output as {category.value}")
        text = summarize(category, text, max_spoken_lines)
    return normalize(text)


def status_message(result: ExecutionResult) -> str:
    if result.ok:
        return ""
    return STATUS_MESSAGES[result.status]


def spoken_response(result: ExecutionResult, summarize_threshold: int, max_spoken_lines: int) -> str:
    """What to say for a finished run; failures never reach the classifier."""
    if not result.ok:
        return status_message(result)
    if not result.stdout.strip():
        return EMPTY_RESPONSE_MESSAGE
    return prepare_spoken_text(result.stdout, summarize_threshold, max_spoken_lines)
