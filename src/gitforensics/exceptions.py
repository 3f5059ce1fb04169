"""Exception taxonomy for forensic analysis."""

from typing import Dict, Optional


class ForensicsError(Exception):
    """Base exception for all gitforensics errors."""

    def __init__(self, message: str, details: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class NotARepositoryError(ForensicsError, ValueError):
    """No repository root was found above the target path."""


class InvalidInputError(ForensicsError, ValueError):
    """Caller supplied an unusable argument, such as a missing target file."""


class EngineIOError(ForensicsError):
    """A read against the repository or working tree failed."""


class ConfigParseError(ForensicsError, ValueError):
    """Repository configuration file is malformed or fails validation."""
