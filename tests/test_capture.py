import threading
import time

import pytest

from claude_voice import capture as capture_module
from claude_voice.capture import (
    CaptureKind,
    CaptureResult,
    TextCapture,
    VoiceCapture,
    validate_capture,
)
from claude_voice.errors import UnexpectedCaptureResult


class FakeRecorder:
    """Stands in for RealtimeSTT's AudioToTextRecorder."""

    def __init__(self, text=None, error=None):
        self._text = text
        self._error = error
        self.aborted = threading.Event()
        self.shut_down = False

    def text(self):
        if self._error:
            raise self._error
        if self._text is None:
            # Nobody speaks until abort()
            self.aborted.wait(5)
            return ""
        return self._text

    def abort(self):
        self.aborted.set()

    def shutdown(self):
        self.shut_down = True


def voice_capture(recorder):
    capture = VoiceCapture()
    capture.recorder = recorder
    return capture


def test_validate_recognized_text_is_trimmed():
    assert validate_capture(CaptureResult.recognized("  make a todo app  ")) == "make a todo app"


def test_validate_timeout_and_error_give_no_prompt():
    assert validate_capture(CaptureResult.timed_out()) is None
    assert validate_capture(CaptureResult.failed("mic unplugged")) is None


@pytest.mark.parametrize("result", ["hello", None, {"text": "hi"}, CaptureResult.recognized("   ")])
def test_validate_rejects_unexpected_results(result):
    with pytest.raises(UnexpectedCaptureResult):
        validate_capture(result)


def test_voice_capture_recognizes_speech():
    result = voice_capture(FakeRecorder(text=" create a readme ")).listen(5)
    assert result == CaptureResult.recognized("create a readme")


def test_voice_capture_times_out_and_aborts_recorder():
    recorder = FakeRecorder()
    result = voice_capture(recorder).listen(0.2)
    assert result.kind is CaptureKind.TIMEOUT
    assert recorder.aborted.is_set()


class SlowAbortRecorder(FakeRecorder):
    """Silent recorder whose text() returns a little while after abort()."""

    def __init__(self):
        super().__init__()
        self.active = 0
        self.most_active = 0
        self.lock = threading.Lock()

    def text(self):
        with self.lock:
            self.active += 1
            self.most_active = max(self.most_active, self.active)
        self.aborted.wait(5)
        time.sleep(0.3)
        self.aborted.clear()
        with self.lock:
            self.active -= 1
        return ""


def test_next_listen_keeps_its_own_speech_timeout(monkeypatch):
    monkeypatch.setattr(capture_module, "MAX_UTTERANCE_SECONDS", 3)
    recorder = SlowAbortRecorder()
    capture = voice_capture(recorder)

    assert capture.listen(0.2).kind is CaptureKind.TIMEOUT
    started = time.monotonic()
    result = capture.listen(1)
    elapsed = time.monotonic() - started

    assert result.kind is CaptureKind.TIMEOUT
    assert elapsed < 2.5
    assert recorder.most_active == 1


def test_voice_capture_reports_errors():
    result = voice_capture(FakeRecorder(error=RuntimeError("no input device"))).listen(5)
    assert result.kind is CaptureKind.ERROR
    assert "no input device" in result.error


def test_voice_capture_shutdown():
    recorder = FakeRecorder(text="hi")
    capture = voice_capture(recorder)
    capture.shutdown()
    assert recorder.shut_down
    assert capture.recorder is None


class FakeConsole:
    def __init__(self, *answers):
        self.answers = list(answers)

    def input(self, prompt=""):
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)


def test_text_capture():
    capture = TextCapture(FakeConsole("  run the tests ", ""))
    assert capture.listen(10) == CaptureResult.recognized("run the tests")
    assert capture.listen(10).kind is CaptureKind.TIMEOUT
    with pytest.raises(EOFError):
        capture.listen(10)
