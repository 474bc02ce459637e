"""
Command-line entry point for claude-voice.

Exit codes: 0 success, 1 general error, 2 configuration error,
3 dependency missing, 124 timeout.
"""

import argparse
import logging
import shutil
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from claude_voice import __version__
from claude_voice.assistant import ClaudeVoiceAssistant
from claude_voice.capture import TextCapture, VoiceCapture
from claude_voice.config import (
    USER_CONFIG,
    ConfigLoader,
    VoiceConfig,
    create_default_user_config,
    describe_config,
    ensure_directories,
)
from claude_voice.errors import ClaudeVoiceError, ConfigError, DependencyError
from claude_voice.runner import ClaudeRunner, ExecutionStatus
from claude_voice.speech import SpeechOutput

EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG = 2
EXIT_DEPENDENCY = 3
EXIT_TIMEOUT = 124

# Third-party loggers that are noisy at INFO
QUIET_LOGGERS = ("RealtimeSTT", "faster_whisper", "faster_whisper.transcribe", "audio_recorder", "transcribe")

console = Console()
log = logging.getLogger("claude_voice")


def setup_logging(config: Optional[VoiceConfig] = None) -> logging.Logger:
    """Route claude_voice logs to a Rich console handler and, if configured, a log file."""
    level = logging.WARNING
    if config is not None and config.verbose:
        level = logging.INFO
    elif config is not None and config.quiet:
        level = logging.ERROR

    log.setLevel(logging.DEBUG)
    log.handlers.clear()
    log.propagate = False

    console_handler = RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    log.addHandler(console_handler)

    if config is not None and config.log_file is not None:
        try:
            file_handler = RotatingFileHandler(
                config.log_file, maxBytes=config.max_log_size * 1024, backupCount=1
            )
        except OSError as e:
            log.warning(f"Could not open log file {config.log_file}: {e}")
        else:
            file_handler.setLevel(logging.INFO)
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
            log.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.ERROR)

    return log


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="claude-voice",
        description="Talk to Claude Code: speak a request, hear the answer.",
    )
    parser.add_argument("--prompt", "-p", type=str, help="Run a single prompt and speak the response")
    parser.add_argument("--text", action="store_true", help="Type requests instead of speaking them")
    parser.add_argument(
        "--continuous", action="store_true", default=None, help="Listen again immediately after each response"
    )
    parser.add_argument("--config", type=Path, help="Additional config file, applied after all others")
    parser.add_argument("--voice", type=str, help="TTS voice name")
    parser.add_argument("--rate", type=int, help="Speech rate in words per minute (90-720)")
    parser.add_argument("--volume", type=float, help="Speech volume (0.0-1.0)")
    parser.add_argument("--engine", choices=("say", "piper"), help="TTS engine")
    parser.add_argument("--timeout", type=int, help="Seconds to wait for Claude Code")
    parser.add_argument(
        "--no-interrupt", action="store_true", help="Speak synchronously; Ctrl+C does not stop speech"
    )
    parser.add_argument("--verbose", "-v", action="store_true", default=None, help="Show progress logs")
    parser.add_argument("--quiet", "-q", action="store_true", default=None, help="Only show errors")
    parser.add_argument(
        "--directory", "-d", type=str, help="Working directory for Claude Code (defaults to current directory)"
    )
    parser.add_argument("--show-config", action="store_true", help="Print the effective configuration and exit")
    parser.add_argument("--init-config", action="store_true", help="Create a user config file and exit")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def overrides_from_args(args: argparse.Namespace) -> dict:
    return {
        "TTS_VOICE": args.voice,
        "TTS_RATE": args.rate,
        "TTS_VOLUME": args.volume,
        "TTS_ENGINE": args.engine,
        "CLAUDE_TIMEOUT": args.timeout,
        "ENABLE_INTERRUPTION": False if args.no_interrupt else None,
        "CONTINUOUS_MODE": args.continuous,
        "VERBOSE": args.verbose,
        "QUIET": args.quiet,
    }


def show_config(config: VoiceConfig, loader: ConfigLoader) -> None:
    table = Table(title="Claude Voice Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in describe_config(config):
        table.add_row(key, value)
    console.print(table)
    console.print("Config files loaded:")
    for path in loader.loaded_files:
        console.print(f"  - {path}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    if args.init_config:
        if create_default_user_config():
            console.print(f"Created user configuration file: {USER_CONFIG}")
            console.print("Edit this file to customize your Claude Voice experience.")
        else:
            console.print(f"User config already exists: {USER_CONFIG}")
        return EXIT_SUCCESS

    if args.directory and not Path(args.directory).is_dir():
        console.print(f"[bold red]Error: Not a directory: {args.directory}[/bold red]")
        return EXIT_CONFIG

    loader = ConfigLoader()
    try:
        config = loader.load(config_file=args.config, overrides=overrides_from_args(args))
    except ConfigError as e:
        console.print(f"[bold red]{e}[/bold red]")
        return EXIT_CONFIG

    if args.show_config:
        show_config(config, loader)
        return EXIT_SUCCESS

    ensure_directories(config)
    setup_logging(config)
    log.info("Starting Claude Voice Assistant")

    runner = ClaudeRunner(
        command=config.claude_command,
        extra_flags=config.claude_extra_flags,
        cwd=args.directory,
        temp_dir=config.temp_dir,
    )
    speaker = SpeechOutput.from_config(config)
    typed = args.text or args.prompt is not None
    capture = TextCapture(console) if typed else VoiceCapture(model=config.stt_model)

    try:
        if shutil.which(config.claude_command) is None:
            raise DependencyError(f"Claude Code CLI '{config.claude_command}' not found in PATH")
        speaker.check_available()

        assistant = ClaudeVoiceAssistant(
            config, capture, runner, speaker, console=console, wait_for_enter=not typed
        )
        if args.prompt is not None:
            result = assistant.run_once(args.prompt)
            if result.status is ExecutionStatus.TIMEOUT:
                return EXIT_TIMEOUT
            return EXIT_SUCCESS if result.ok else EXIT_ERROR

        assistant.conversation_loop()
        return EXIT_SUCCESS
    except ClaudeVoiceError as e:
        log.error(str(e))
        console.print(f"[bold red]Error:[/bold red] {e}")
        if isinstance(e, DependencyError) and not typed:
            console.print("Use --text to type requests without speech recognition.")
        return e.exit_code
    except KeyboardInterrupt:
        log.info("Program terminated by user")
        console.print("\n[bold red]Program terminated by user.[/bold red]")
        return EXIT_ERROR


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
