"""Exception hierarchy for the beacon tracker."""

from __future__ import annotations

from pathlib import Path


class TrackerError(Exception):
    """Base exception for all beacon tracker errors."""


class SourceUnavailable(TrackerError):
    """The positioning source could not be opened, listed or refreshed."""

    def __init__(self, message: str, *, operation: str = "") -> None:
        self.operation = operation
        super().__init__(message)


class ConfigError(TrackerError):
    """The deployment description could not be turned into a roster."""

    def __init__(
        self,
        message: str,
        *,
        path: str | Path | None = None,
        field: str = "",
    ) -> None:
        self.path = path
        self.field = field
        super().__init__(message)


class ConfigMissingField(ConfigError):
    """A required section or value is absent."""


class ConfigParseFailure(ConfigError):
    """A value is present but malformed."""


class ConfigIoFailure(ConfigError):
    """The INI file or the floorplan image could not be read."""


class RecordingIoFailure(TrackerError):
    """The CSV log could not be created or written."""

    def __init__(self, message: str, *, path: str | Path | None = None) -> None:
        self.path = path
        super().__init__(message)
