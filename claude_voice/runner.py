"""
Run Claude Code headlessly (`claude -p <prompt>`) and classify how the run ended.

The prompt is passed as a single argv element, never through a shell. Output is
captured in temporary files that are removed when the run finishes, whatever
the outcome. A run that outlives its timeout is terminated, then killed, along
with anything it spawned.
"""

import logging
import os
import re
import shlex
import signal
import subprocess
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import IO, List, Optional, Sequence, Union

from claude_voice.errors import LaunchError

log = logging.getLogger(__name__)

# Checked in this order; the first set found in stderr decides the status.
# Phrases match as whole words, so digits and words inside paths, line
# numbers or module names ("build-14291.log", "src/network/") do not count.
AUTH_KEYWORDS = (
    "authentication failed",
    "authentication error",
    "authentication_error",
    "unauthorized",
    "not logged in",
    "please log in",
    "please run /login",
    "invalid api key",
    "invalid x-api-key",
    "status 401",
    "http 401",
    "error 401",
)
NETWORK_KEYWORDS = (
    "network error",
    "network is unreachable",
    "network unreachable",
    "host unreachable",
    "connection refused",
    "connection reset",
    "connection error",
    "could not resolve",
    "getaddrinfo",
    "econnrefused",
    "econnreset",
    "enotfound",
    "etimedout",
    "socket hang up",
)
RATE_LIMIT_KEYWORDS = (
    "rate limit",
    "rate limited",
    "rate limits",
    "rate_limit_error",
    "ratelimit",
    "too many requests",
    "status 429",
    "http 429",
    "error 429",
    "quota exceeded",
    "overloaded_error",
    "is overloaded",
)


class ExecutionStatus(Enum):
    SUCCESS = "success"
    TIMEOUT = "timeout"
    AUTH_ERROR = "auth_error"
    NETWORK_ERROR = "network_error"
    RATE_LIMITED = "rate_limited"
    GENERAL_ERROR = "general_error"


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one Claude Code run."""

    status: ExecutionStatus
    stdout: str = ""
    stderr: str = ""
    exit_code: Optional[int] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status is ExecutionStatus.SUCCESS


def keyword_pattern(keywords: Sequence[str]) -> "re.Pattern[str]":
    alternatives = "|".join(re.escape(keyword) for keyword in keywords)
    return re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE)


AUTH_PATTERN = keyword_pattern(AUTH_KEYWORDS)
NETWORK_PATTERN = keyword_pattern(NETWORK_KEYWORDS)
RATE_LIMIT_PATTERN = keyword_pattern(RATE_LIMIT_KEYWORDS)


def is_auth_failure(stderr: str) -> bool:
    return AUTH_PATTERN.search(stderr) is not None


def is_network_failure(stderr: str) -> bool:
    return NETWORK_PATTERN.search(stderr) is not None


def is_rate_limited(stderr: str) -> bool:
    return RATE_LIMIT_PATTERN.search(stderr) is not None


FAILURE_CHECKS = (
    (ExecutionStatus.AUTH_ERROR, is_auth_failure),
    (ExecutionStatus.NETWORK_ERROR, is_network_failure),
    (ExecutionStatus.RATE_LIMITED, is_rate_limited),
)


def classify_failure(stderr: str, exit_code: int) -> ExecutionStatus:
    """
    Resolve stderr text and an exit code into exactly one status.

    Keyword sets win over the exit code, so a run that exits 0 but reports an
    authentication problem on stderr is still an AUTH_ERROR.
    """
    for status, check in FAILURE_CHECKS:
        if check(stderr):
            return status
    if exit_code != 0:
        return ExecutionStatus.GENERAL_ERROR
    return ExecutionStatus.SUCCESS


def first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


def _read(buffer: IO[bytes]) -> str:
    buffer.flush()
    buffer.seek(0)
    return buffer.read().decode("utf-8", errors="replace")


class ClaudeRunner:
    """Runs the assistant CLI once per prompt."""

    def __init__(
        self,
        command: str = "claude",
        extra_flags: Union[str, Sequence[str]] = (),
        grace_period: float = 2.0,
        cwd: Optional[str] = None,
        temp_dir: Optional[Union[str, Path]] = None,
    ):
        if isinstance(extra_flags, str):
            extra_flags = shlex.split(extra_flags)
        self.command = command
        self.extra_flags = list(extra_flags)
        self.grace_period = grace_period
        self.cwd = cwd
        self.temp_dir = Path(temp_dir) if temp_dir else None

    def build_command(self, prompt: str) -> List[str]:
        return [self.command, "-p", prompt, *self.extra_flags]

    def execute(self, prompt: str, timeout_seconds: int) -> ExecutionResult:
        """
        Run the CLI with `prompt` and wait at most `timeout_seconds`.

        Args:
            prompt: The spoken request, passed verbatim as one argument
            timeout_seconds: Wall-clock budget for the whole run

        Returns:
            ExecutionResult with exactly one status

        Raises:
            LaunchError: If the CLI binary cannot be started
        """
        cmd = self.build_command(prompt)
        log.info(f"execute(prompt_length={len(prompt)}, timeout={timeout_seconds}s)")
        log.debug(f"Command: {' '.join(cmd[:2])}... (truncated)")

        temp_dir = None
        if self.temp_dir:
            self.temp_dir.mkdir(parents=True, exist_ok=True)
            temp_dir = str(self.temp_dir)

        with tempfile.NamedTemporaryFile(
            dir=temp_dir, prefix="claude-", suffix=".out"
        ) as out, tempfile.NamedTemporaryFile(
            dir=temp_dir, prefix="claude-", suffix=".err"
        ) as err:
            try:
                process = subprocess.Popen(
                    cmd,
                    stdin=subprocess.DEVNULL,
                    stdout=out,
                    stderr=err,
                    cwd=self.cwd,
                    start_new_session=True,
                )
            except OSError as e:
                raise LaunchError(f"Could not start '{self.command}': {e}") from e

            try:
                exit_code = process.wait(timeout=timeout_seconds)
            except subprocess.TimeoutExpired:
                self.stop(process)
                partial = _read(out)
                log.warning(f"Claude Code timed out after {timeout_seconds}s")
                log.debug(f"Discarded partial output ({len(partial)} chars): {partial[:500]}")
                return ExecutionResult(
                    status=ExecutionStatus.TIMEOUT,
                    message=f"No response within {timeout_seconds} seconds",
                )
            except BaseException:
                # Ctrl+C or task cancellation while waiting
                self.stop(process)
                raise

            stdout = _read(out)
            stderr = _read(err)

        status = classify_failure(stderr, exit_code)
        log.info(f"Process finished with return code {exit_code}, status {status.value}")
        if status is not ExecutionStatus.SUCCESS:
            log.error(f"Claude Code failed ({status.value})\nError: {stderr[:500]}")

        return ExecutionResult(
            status=status,
            stdout=stdout,
            stderr=stderr,
            exit_code=exit_code,
            message=first_line(stderr),
        )

    def stop(self, process: subprocess.Popen) -> None:
        """
        Terminate the run's process group, wait out the grace period, then kill it.

        The group is only signalled while the CLI itself is still unreaped, so
        its pid (and group id) cannot have been handed to another process.
        """
        if process.poll() is not None:
            return
        self._signal_group(process, signal.SIGTERM)
        try:
            process.wait(timeout=self.grace_period)
        except subprocess.TimeoutExpired:
            log.warning("Claude Code ignored SIGTERM, killing it")
            self._signal_group(process, signal.SIGKILL)
            process.wait()

    @staticmethod
    def _signal_group(process: subprocess.Popen, sig: int) -> None:
        if process.returncode is not None:
            return
        try:
            os.killpg(process.pid, sig)
        except (ProcessLookupError, PermissionError):
            pass
