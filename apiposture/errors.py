"""Exceptions raised by ApiPosture outside per-file processing."""


class ApiPostureError(Exception):
    """Base class for ApiPosture errors."""


class ConfigError(ApiPostureError, ValueError):
    """Configuration file is unreadable or malformed."""


class SourceError(ApiPostureError, OSError):
    """A Go source file could not be read or parsed."""

    def __init__(self, file_path: str, message: str):
        super().__init__(f"{file_path}: {message}")
        self.file_path = file_path
        self.reason = message
