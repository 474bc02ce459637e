"""Exception types shared across claude-voice."""


class ClaudeVoiceError(Exception):
    """Base class for claude-voice errors."""

    exit_code = 1


class ConfigError(ClaudeVoiceError):
    """Raised when configuration is invalid."""

    exit_code = 2


class DependencyError(ClaudeVoiceError):
    """Raised when a required external program or library is missing."""

    exit_code = 3


class LaunchError(DependencyError):
    """Raised when the assistant CLI cannot be started."""

    pass


class UnexpectedCaptureResult(ClaudeVoiceError):
    """Raised when voice capture returns something other than text, timeout or error."""

    pass
