"""
Voice capture: turn the user's speech into a prompt.

Recognition itself is RealtimeSTT's job. This module only reduces whatever
happened to one of three results: recognized text, a timeout, or an error.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from rich.console import Console

from claude_voice.errors import DependencyError, UnexpectedCaptureResult

log = logging.getLogger(__name__)

# Once speech has started, how long a single utterance may take to finish
MAX_UTTERANCE_SECONDS = 60
# How long an aborted recorder gets to hand back control
ABORT_GRACE_SECONDS = 5


class CaptureKind(Enum):
    RECOGNIZED = "recognized"
    TIMEOUT = "timeout"
    ERROR = "error"


@dataclass(frozen=True)
class CaptureResult:
    kind: CaptureKind
    text: str = ""
    error: str = ""

    @classmethod
    def recognized(cls, text: str) -> "CaptureResult":
        return cls(CaptureKind.RECOGNIZED, text=text)

    @classmethod
    def timed_out(cls) -> "CaptureResult":
        return cls(CaptureKind.TIMEOUT)

    @classmethod
    def failed(cls, error: str) -> "CaptureResult":
        return cls(CaptureKind.ERROR, error=error)


def validate_capture(result: Any) -> Optional[str]:
    """
    Return the prompt for a recognized result, None for a timeout or error.

    Raises:
        UnexpectedCaptureResult: For anything that is not a CaptureResult, or
            a recognized result without any text
    """
    if not isinstance(result, CaptureResult) or not isinstance(result.kind, CaptureKind):
        raise UnexpectedCaptureResult(f"Unexpected capture result: {result!r}")
    if result.kind is CaptureKind.RECOGNIZED:
        prompt = result.text.strip() if isinstance(result.text, str) else ""
        if not prompt:
            raise UnexpectedCaptureResult("Speech was recognized but contained no text")
        return prompt
    return None


class VoiceCapture:
    """Speech recognition through RealtimeSTT's AudioToTextRecorder."""

    def __init__(self, model: str = "small.en", language: str = "en"):
        self.model = model
        self.language = language
        self.recorder = None
        # Replaced on every listen() so a late callback from an aborted
        # turn cannot mark the next turn as started.
        self._speech_started = threading.Event()
        self._worker: Optional[threading.Thread] = None

    def setup_recorder(self):
        """Set up the RealtimeSTT recorder"""
        log.info(f"Setting up STT recorder with model {self.model}")
        try:
            from RealtimeSTT import AudioToTextRecorder
        except ImportError as e:
            raise DependencyError(
                "RealtimeSTT is not installed. Install claude-voice[voice] or use --text."
            ) from e

        self.recorder = AudioToTextRecorder(
            model=self.model,
            language=self.language,
            compute_type="float32",
            post_speech_silence_duration=0.8,
            beam_size=5,
            spinner=False,
            print_transcription_time=False,
            on_recording_start=self._recording_started,
        )
        log.info(f"STT recorder initialized with model {self.model}")

    def _recording_started(self):
        self._speech_started.set()

    def listen(self, timeout_seconds: int) -> CaptureResult:
        """
        Wait up to `timeout_seconds` for speech to start, then for it to be transcribed.
        """
        if self.recorder is None:
            self.setup_recorder()
        self._join_worker()

        started = self._speech_started = threading.Event()
        done = threading.Event()
        outcome: Dict[str, Any] = {}

        def transcribe():
            try:
                outcome["text"] = self.recorder.text()
            except Exception as e:
                outcome["error"] = e
            finally:
                done.set()
                started.set()

        self._worker = threading.Thread(target=transcribe, daemon=True)
        self._worker.start()

        try:
            if not started.wait(timeout_seconds):
                log.warning("Timeout waiting for speech")
                self._abort()
                return CaptureResult.timed_out()
            if not done.wait(MAX_UTTERANCE_SECONDS):
                log.warning("Timeout waiting for transcription")
                self._abort()
                return CaptureResult.timed_out()
        except BaseException:
            self._abort()
            raise
        self._join_worker()

        if "error" in outcome:
            log.error(f"Error during speech recognition: {outcome['error']}")
            return CaptureResult.failed(str(outcome["error"]))

        text = (outcome.get("text") or "").strip()
        if not text:
            return CaptureResult.timed_out()
        log.info(f'Heard: "{text}"')
        return CaptureResult.recognized(text)

    def _abort(self):
        self.recorder.abort()
        self._join_worker()

    def _join_worker(self):
        """Wait for the previous transcription thread so two never share the recorder."""
        if self._worker is None:
            return
        self._worker.join(ABORT_GRACE_SECONDS)
        if self._worker.is_alive():
            log.warning("Previous transcription did not stop after abort")
        self._worker = None

    def shutdown(self):
        if self.recorder is not None:
            self.recorder.shutdown()
            self.recorder = None


class TextCapture:
    """Typed input with the same result contract, for --text mode."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def listen(self, timeout_seconds: int) -> CaptureResult:
        # EOFError propagates so the loop can end on Ctrl+D
        text = self.console.input("[bold cyan]You:[/bold cyan] ")
        if not text.strip():
            return CaptureResult.timed_out()
        return CaptureResult.recognized(text.strip())

    def shutdown(self):
        pass
