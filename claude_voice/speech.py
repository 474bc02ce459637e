"""
Speech output through the macOS `say` command or Piper.

With interruption enabled the engine runs as a child process that `cancel()`
can stop at any point; the rest of the text is dropped and any temporary
audio is removed before `speak()` returns.
"""

import logging
import os
import shutil
import subprocess
import tempfile
import threading
import time
from typing import Optional

from claude_voice.config import VoiceConfig
from claude_voice.errors import DependencyError

log = logging.getLogger(__name__)

DEFAULT_RATE = 200  # words per minute, Piper's natural pace
STOP_TIMEOUT = 1.0
PLAYBACK_POLL_INTERVAL = 0.05


class SpeechOutput:
    """Speaks text with the configured engine, voice, rate and volume."""

    def __init__(
        self,
        engine: str = "say",
        voice: Optional[str] = None,
        rate: int = DEFAULT_RATE,
        volume: float = 0.7,
        interruptible: bool = True,
        piper_model: Optional[str] = None,
        temp_dir: Optional[str] = None,
    ):
        self.engine = engine
        self.voice = voice
        self.rate = rate
        self.volume = volume
        self.interruptible = interruptible
        self.piper_model = piper_model
        self.temp_dir = temp_dir
        self.current_process: Optional[subprocess.Popen] = None
        self._cancelled = threading.Event()
        self._playing_audio = False

    @classmethod
    def from_config(cls, config: VoiceConfig) -> "SpeechOutput":
        return cls(
            engine=config.tts_engine,
            voice=config.tts_voice,
            rate=config.tts_rate,
            volume=config.tts_volume,
            interruptible=config.enable_interruption,
            piper_model=config.piper_model,
            temp_dir=str(config.temp_dir),
        )

    def check_available(self) -> None:
        """Raise DependencyError if the engine cannot run on this machine."""
        binary = "say" if self.engine == "say" else "piper"
        if shutil.which(binary) is None:
            raise DependencyError(f"TTS engine '{binary}' not found in PATH")
        if self.engine == "piper" and not (self.piper_model and os.path.exists(self.piper_model)):
            raise DependencyError(f"Piper model not found: {self.piper_model}")

    @property
    def is_speaking(self) -> bool:
        process = self.current_process
        running = process is not None and process.poll() is None
        return running or self._playing_audio

    def say_command(self) -> list:
        cmd = ["say"]
        if self.voice:
            cmd += ["-v", self.voice]
        if self.rate:
            cmd += ["-r", str(self.rate)]
        return cmd

    def speak(self, text: str) -> bool:
        """
        Speak `text`. Returns False if playback was cancelled.
        """
        if not text.strip():
            return True

        self._cancelled.clear()
        log.info(f'Speaking: "{text[:50]}..."')
        if self.engine == "piper":
            self._speak_piper(text)
        else:
            # say has no volume flag; it takes an inline volume command instead
            self._run_engine(self.say_command(), f"[[volm {self.volume:.2f}]] {text}")
        return not self._cancelled.is_set()

    def cancel(self) -> None:
        """
        Stop playback. Safe to call when nothing is playing, and from a signal handler.

        Only signals here; `speak()` reaps the engine before it returns.
        """
        self._cancelled.set()
        process = self.current_process
        if process is not None and process.poll() is None:
            process.terminate()
        if self._playing_audio:
            import sounddevice as sd

            sd.stop()

    def _run_engine(self, cmd: list, text: str) -> None:
        if not self.interruptible:
            subprocess.run(cmd, input=text, text=True, check=False, capture_output=True)
            return

        self.current_process = subprocess.Popen(
            cmd,
            stdin=subprocess.PIPE,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
        )
        try:
            _, stderr = self.current_process.communicate(text)
            if self.current_process.returncode not in (0, None) and not self._cancelled.is_set():
                log.error(f"{cmd[0]} failed: {stderr.strip()}")
        except BrokenPipeError:
            # Cancelled before the engine read all of its input
            pass
        finally:
            self._stop_process()
            self.current_process = None

    def _stop_process(self) -> None:
        process = self.current_process
        if process is None or process.poll() is not None:
            return
        process.terminate()
        try:
            process.wait(timeout=STOP_TIMEOUT)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()

    def _speak_piper(self, text: str) -> None:
        import sounddevice as sd
        import soundfile as sf

        with tempfile.NamedTemporaryFile(suffix=".wav", dir=self.temp_dir, delete=False) as audio_file:
            audio_filename = audio_file.name

        try:
            piper_cmd = [
                "piper",
                "--model", self.piper_model,
                "--length_scale", f"{DEFAULT_RATE / self.rate:.2f}",
                "--output_file", audio_filename,
            ]
            self._run_engine(piper_cmd, text)
            if self._cancelled.is_set():
                return

            data, samplerate = sf.read(audio_filename)
            self._playing_audio = True
            sd.play(data * self.volume, samplerate)

            if not self.interruptible:
                sd.wait()
                return

            # Poll so cancel() can stop playback mid-sentence
            while not self._cancelled.is_set():
                stream = sd.get_stream()
                if stream is None or not stream.active:
                    break
                time.sleep(PLAYBACK_POLL_INTERVAL)
        finally:
            if self._playing_audio and self._cancelled.is_set():
                sd.stop()
            self._playing_audio = False
            if os.path.exists(audio_filename):
                os.unlink(audio_filename)
