"""Exceptions raised by clapper components and handled by the service."""


class ClapperError(Exception):
    """Base exception for all clapper errors."""


class ConfigError(ClapperError):
    """Raised when the service is given an unusable configuration or callback."""


class EngineInitError(ClapperError):
    """Raised when the audio engine instance could not be created."""

    def __init__(self, message: str = "Audio engine could not be created") -> None:
        super().__init__(message)


class EngineStartError(ClapperError):
    """Raised when the audio engine refuses to start (e.g. device locked)."""

    def __init__(self, status: int | None = None, message: str | None = None) -> None:
        self.status = status
        msg = message or "Couldn't start the audio engine: is the soundcard locked?"
        if status is not None:
            msg += f" (status {status})"
        super().__init__(msg)
