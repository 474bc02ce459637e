"""
Configuration loading and validation.

Sources, lowest to highest priority:
1. Built-in defaults (DEFAULTS below)
2. Bundled config (claude_voice/claude-voice.conf)
3. System config (/etc/claude-voice/claude-voice.conf)
4. User config (~/.config/claude-voice/claude-voice.conf)
5. Environment variables (CLAUDE_VOICE_*), including a local .env
6. A config file named on the command line (--config)
7. Command-line flags

Config files use shell-style ``KEY="value"`` lines and are read with
python-dotenv. The result is a frozen VoiceConfig passed explicitly to
whatever needs it.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from dotenv import dotenv_values, load_dotenv

from claude_voice.errors import ConfigError

log = logging.getLogger(__name__)

ENV_PREFIX = "CLAUDE_VOICE_"
BUNDLED_CONFIG = Path(__file__).parent / "claude-voice.conf"
SYSTEM_CONFIG = Path("/etc/claude-voice/claude-voice.conf")
USER_CONFIG_DIR = Path.home() / ".config" / "claude-voice"
USER_CONFIG = USER_CONFIG_DIR / "claude-voice.conf"

TTS_ENGINES = ("say", "piper")

DEFAULTS = {
    # Voice & TTS
    "TTS_ENGINE": "say",
    "TTS_VOICE": "Samantha",
    "TTS_RATE": "200",
    "TTS_VOLUME": "0.7",
    "PIPER_MODEL": str(Path.home() / ".local/share/piper/models/en_US-amy-low.onnx"),
    # Recognition
    "SPEECH_TIMEOUT": "10",
    "STT_MODEL": "small.en",
    # Response processing
    "MAX_SPOKEN_LINES": "10",
    "SUMMARIZE_THRESHOLD": "50",
    "ENABLE_INTERRUPTION": "true",
    # Interface
    "SHOW_PROGRESS": "true",
    "VERBOSE": "false",
    "QUIET": "false",
    "CONTINUOUS_MODE": "false",
    # Claude Code
    "CLAUDE_COMMAND": "claude",
    "CLAUDE_TIMEOUT": "30",
    "CLAUDE_EXTRA_FLAGS": "",
    # System
    "TEMP_DIR": str(Path(tempfile.gettempdir()) / "claude-voice"),
    "LOG_FILE": str(USER_CONFIG_DIR / "claude-voice.log"),
    "MAX_LOG_SIZE": "1024",
}

BOOLEAN_OPTIONS = ("ENABLE_INTERRUPTION", "SHOW_PROGRESS", "VERBOSE", "QUIET", "CONTINUOUS_MODE")
POSITIVE_INT_OPTIONS = (
    "SPEECH_TIMEOUT",
    "MAX_SPOKEN_LINES",
    "SUMMARIZE_THRESHOLD",
    "CLAUDE_TIMEOUT",
    "MAX_LOG_SIZE",
)

USER_CONFIG_TEMPLATE = """\
# Claude Voice - User Configuration
#
# Uncomment and change any setting below. Values shown are the defaults.
# Environment variables named CLAUDE_VOICE_<SETTING> override this file.

# ============================================================
# Voice & Text-to-Speech
# ============================================================

# TTS engine: say (macOS) or piper
# TTS_ENGINE="say"

# Voice name (run 'say -v ?' to list voices)
# TTS_VOICE="Samantha"

# Words per minute, 90-720
# TTS_RATE="200"

# Volume, 0.0-1.0
# TTS_VOLUME="0.7"

# ============================================================
# Behavior
# ============================================================

# Seconds to wait for you to start speaking
# SPEECH_TIMEOUT="10"

# Responses longer than SUMMARIZE_THRESHOLD lines are summarized;
# plain text summaries read the first MAX_SPOKEN_LINES lines
# MAX_SPOKEN_LINES="10"
# SUMMARIZE_THRESHOLD="50"

# Press Ctrl+C to stop speech mid-sentence
# ENABLE_INTERRUPTION="true"

# Seconds to wait for Claude Code
# CLAUDE_TIMEOUT="30"

# Extra flags passed to claude, e.g. "--model sonnet"
# CLAUDE_EXTRA_FLAGS=""

# ============================================================
# Your Custom Settings
# ============================================================

"""


@dataclass(frozen=True)
class VoiceConfig:
    """Validated, typed configuration. Read-only once loaded."""

    tts_engine: str = "say"
    tts_voice: str = "Samantha"
    tts_rate: int = 200
    tts_volume: float = 0.7
    piper_model: str = DEFAULTS["PIPER_MODEL"]
    speech_timeout: int = 10
    stt_model: str = "small.en"
    max_spoken_lines: int = 10
    summarize_threshold: int = 50
    enable_interruption: bool = True
    show_progress: bool = True
    verbose: bool = False
    quiet: bool = False
    continuous_mode: bool = False
    claude_command: str = "claude"
    claude_timeout: int = 30
    claude_extra_flags: str = ""
    temp_dir: Path = Path(DEFAULTS["TEMP_DIR"])
    log_file: Optional[Path] = Path(DEFAULTS["LOG_FILE"])
    max_log_size: int = 1024


def read_config_file(path: Path) -> Dict[str, str]:
    """Read a KEY="value" config file; missing files read as empty."""
    if not path.is_file():
        return {}
    values = dotenv_values(path)
    return {key.upper(): value for key, value in values.items() if value is not None}


def env_overrides(environ: Mapping[str, str]) -> Dict[str, str]:
    """CLAUDE_VOICE_TTS_RATE=180 becomes TTS_RATE=180."""
    return {
        name[len(ENV_PREFIX):]: value
        for name, value in environ.items()
        if name.startswith(ENV_PREFIX) and len(name) > len(ENV_PREFIX)
    }


def _parse_bool(key: str, value: str, errors: List[str]) -> bool:
    lowered = value.strip().lower()
    if lowered not in ("true", "false"):
        errors.append(f"{key} must be 'true' or 'false' (current: {value})")
        return False
    return lowered == "true"


def _parse_positive_int(key: str, value: str, errors: List[str]) -> int:
    try:
        number = int(value)
    except ValueError:
        number = 0
    if number <= 0:
        errors.append(f"{key} must be a positive integer (current: {value})")
    return number


def validate(raw: Mapping[str, str]) -> VoiceConfig:
    """
    Convert merged raw values into a VoiceConfig.

    Raises:
        ConfigError: Listing every invalid value at once
    """
    errors: List[str] = []
    values: Dict[str, Any] = {}

    try:
        values["tts_rate"] = int(raw["TTS_RATE"])
        if not 90 <= values["tts_rate"] <= 720:
            raise ValueError
    except ValueError:
        errors.append(f"TTS_RATE must be between 90 and 720 (current: {raw['TTS_RATE']})")

    try:
        values["tts_volume"] = float(raw["TTS_VOLUME"])
        if not 0.0 <= values["tts_volume"] <= 1.0:
            raise ValueError
    except ValueError:
        errors.append(f"TTS_VOLUME must be between 0.0 and 1.0 (current: {raw['TTS_VOLUME']})")

    engine = raw["TTS_ENGINE"].strip().lower()
    if engine not in TTS_ENGINES:
        errors.append(f"TTS_ENGINE must be one of {', '.join(TTS_ENGINES)} (current: {raw['TTS_ENGINE']})")
    values["tts_engine"] = engine

    for key in BOOLEAN_OPTIONS:
        values[key.lower()] = _parse_bool(key, raw[key], errors)
    for key in POSITIVE_INT_OPTIONS:
        values[key.lower()] = _parse_positive_int(key, raw[key], errors)

    if values["verbose"] and values["quiet"]:
        errors.append("Cannot enable both VERBOSE and QUIET modes")

    if errors:
        raise ConfigError("Configuration errors:\n" + "\n".join(errors))

    values.update(
        tts_voice=raw["TTS_VOICE"],
        piper_model=os.path.expanduser(raw["PIPER_MODEL"]),
        stt_model=raw["STT_MODEL"],
        claude_command=raw["CLAUDE_COMMAND"],
        claude_extra_flags=raw["CLAUDE_EXTRA_FLAGS"],
        temp_dir=Path(raw["TEMP_DIR"]).expanduser(),
        log_file=Path(raw["LOG_FILE"]).expanduser() if raw["LOG_FILE"] else None,
    )
    return VoiceConfig(**values)


class ConfigLoader:
    """Merges every configuration source into one VoiceConfig."""

    def __init__(
        self,
        bundled_config: Path = BUNDLED_CONFIG,
        system_config: Path = SYSTEM_CONFIG,
        user_config: Path = USER_CONFIG,
    ):
        self.bundled_config = bundled_config
        self.system_config = system_config
        self.user_config = user_config
        self.loaded_files: List[Path] = []

    def load(
        self,
        config_file: Optional[Path] = None,
        overrides: Optional[Mapping[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> VoiceConfig:
        """
        Load configuration from every source.

        Args:
            config_file: Extra config file from the command line
            overrides: Command-line values keyed by option name (None values skipped)
            environ: Environment to read CLAUDE_VOICE_* from (defaults to os.environ)

        Returns:
            Validated configuration
        """
        if environ is None:
            # A project-local .env may hold CLAUDE_VOICE_* settings
            load_dotenv()
            environ = os.environ

        raw = dict(DEFAULTS)
        self.loaded_files = []
        for path in (self.bundled_config, self.system_config, self.user_config):
            self._merge_file(raw, path)

        raw.update(env_overrides(environ))

        if config_file is not None:
            config_file = Path(config_file).expanduser()
            if not config_file.is_file():
                raise ConfigError(f"Config file not found: {config_file}")
            self._merge_file(raw, config_file)

        for key, value in (overrides or {}).items():
            if value is None:
                continue
            if isinstance(value, bool):
                value = "true" if value else "false"
            raw[key.upper()] = str(value)

        return validate(raw)

    def _merge_file(self, raw: Dict[str, str], path: Path) -> None:
        values = read_config_file(path)
        if values:
            log.debug(f"Loaded {len(values)} settings from {path}")
            self.loaded_files.append(path)
            raw.update(values)


def ensure_directories(config: VoiceConfig) -> None:
    """Create the user config and temp directories, warning on failure."""
    directories = [config.temp_dir]
    if config.log_file is not None:
        directories.append(config.log_file.parent)
    for directory in directories:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            log.warning(f"Could not create directory {directory}: {e}")


def create_default_user_config(path: Path = USER_CONFIG) -> bool:
    """Write the commented user config template. Returns False if one already exists."""
    if path.exists():
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(USER_CONFIG_TEMPLATE)
    return True


def describe_config(config: VoiceConfig) -> List[Tuple[str, str]]:
    return [(field.name.upper(), str(getattr(config, field.name))) for field in fields(config)]
