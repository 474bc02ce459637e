"""
The voice loop: listen, run Claude Code, speak the answer.

One interaction at a time, each stage finishing before the next starts.
Ctrl+C while speaking stops the speech; Ctrl+C while listening or waiting on
Claude cancels that turn; two presses within two seconds exit.
"""

import contextlib
import logging
import signal
import time
from typing import Optional

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel

from claude_voice.capture import CaptureKind, validate_capture
from claude_voice.config import VoiceConfig
from claude_voice.errors import UnexpectedCaptureResult
from claude_voice.pipeline import spoken_response, status_message
from claude_voice.runner import ClaudeRunner, ExecutionResult
from claude_voice.speech import SpeechOutput

log = logging.getLogger(__name__)

EXIT_WINDOW_SECONDS = 2


class ClaudeVoiceAssistant:
    def __init__(
        self,
        config: VoiceConfig,
        capture,
        runner: ClaudeRunner,
        speaker: SpeechOutput,
        console: Optional[Console] = None,
        wait_for_enter: bool = True,
    ):
        log.info("Initializing Claude Voice Assistant")
        self.config = config
        self.capture = capture
        self.runner = runner
        self.speaker = speaker
        self.console = console or Console()
        self.wait_for_enter = wait_for_enter and not config.continuous_mode
        self.last_sigint_time = 0.0
        self._previous_sigint_handler = None

    def setup_sigint_handler(self):
        """Set up SIGINT (Ctrl+C) handling for interrupting speech and turns"""

        def sigint_handler(signum, frame):
            current_time = time.time()

            if current_time - self.last_sigint_time < EXIT_WINDOW_SECONDS:
                self.console.print("\n[bold red]Exiting...[/bold red]")
                self.speaker.cancel()
                raise SystemExit(0)

            self.last_sigint_time = current_time
            if self.speaker.is_speaking:
                log.info("Ctrl+C pressed - stopping speech")
                self.speaker.cancel()
                self.console.print("\n[yellow]⏹  Speech interrupted[/yellow]")
                return
            raise KeyboardInterrupt

        self._previous_sigint_handler = signal.signal(signal.SIGINT, sigint_handler)
        log.info("SIGINT handler set up (Ctrl+C to interrupt, twice to exit)")

    def restore_sigint_handler(self):
        if self._previous_sigint_handler is not None:
            signal.signal(signal.SIGINT, self._previous_sigint_handler)
            self._previous_sigint_handler = None

    def listen(self) -> Optional[str]:
        """Capture one request. Returns None when nothing usable was heard."""
        log.info("Listening for speech...")
        result = self.capture.listen(self.config.speech_timeout)
        prompt = validate_capture(result)
        if prompt is not None:
            return prompt
        if result.kind is CaptureKind.ERROR:
            self.console.print(f"[red]Error during speech recognition: {result.error}[/red]")
        return None

    def speak(self, text: str) -> None:
        if not text:
            return
        try:
            completed = self.speaker.speak(text)
        except OSError as e:
            log.error(f"Error in speech synthesis: {e}")
            self.console.print(f"[bold red]Error in speech synthesis:[/bold red] {e}")
            self.console.print(f"[italic yellow]Text:[/italic yellow] {text}")
            return
        if not completed:
            log.info("Speech was interrupted")

    def handle_prompt(self, prompt: str) -> ExecutionResult:
        """Run one prompt through Claude Code and speak the outcome."""
        log.info(f'Processing message: "{prompt}"')
        self.console.print(Panel(title="You", title_align="left", renderable=Markdown(prompt)))

        progress = (
            self.console.status("[bold blue]🔄 Running Claude Code...[/bold blue]")
            if self.config.show_progress
            else contextlib.nullcontext()
        )
        with progress:
            result = self.runner.execute(prompt, self.config.claude_timeout)

        if result.ok:
            self.console.print(Panel(title="Claude Response", renderable=Markdown(result.stdout)))
        else:
            self.console.print(f"[bold red]❌ {status_message(result)}[/bold red]")
            if result.message:
                self.console.print(f"[dim]{result.message}[/dim]")

        self.speak(
            spoken_response(result, self.config.summarize_threshold, self.config.max_spoken_lines)
        )
        return result

    def run_once(self, prompt: str) -> ExecutionResult:
        self.setup_sigint_handler()
        try:
            return self.handle_prompt(prompt)
        finally:
            self.speaker.cancel()
            self.restore_sigint_handler()

    def conversation_loop(self):
        """Run the main conversation loop"""
        log.info("Starting conversation loop")

        self.console.print(
            Panel.fit(
                "[bold magenta]🎤 Claude Voice Assistant Ready[/bold magenta]\n"
                f"Speak your request; responses are read with voice '{self.config.tts_voice}'.\n"
                f"Responses over {self.config.summarize_threshold} lines are summarized.\n"
                "[yellow]Press Ctrl+C to interrupt, twice quickly to exit.[/yellow]"
            )
        )

        self.setup_sigint_handler()
        try:
            while True:
                try:
                    if self.wait_for_enter:
                        self.console.input("[dim]Press Enter to speak...[/dim]")
                    prompt = self.listen()
                    if prompt is None:
                        self.console.print("[yellow]No speech detected. Try again.[/yellow]")
                        continue
                    self.handle_prompt(prompt)
                except KeyboardInterrupt:
                    log.info("Turn cancelled by keyboard interrupt")
                    self.console.print(
                        "\n[yellow]⏹  Cancelled. (Press Ctrl+C again within 2 seconds to exit)[/yellow]"
                    )
                except UnexpectedCaptureResult as e:
                    log.error(str(e))
                    self.console.print(f"[bold red]Error:[/bold red] {e}")
        except EOFError:
            log.info("Input closed")
        finally:
            # Speech must be fully stopped before anything else touches audio
            self.speaker.cancel()
            try:
                self.capture.shutdown()
            except Exception as shutdown_error:
                log.error(f"Error during shutdown: {shutdown_error}")
            self.restore_sigint_handler()
            self.console.print("[bold red]Assistant stopped.[/bold red]")
            log.info("Conversation loop ended")
