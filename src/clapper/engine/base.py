"""Abstract base class for audio analysis engines."""

from abc import ABC, abstractmethod
from collections.abc import Callable

from clapper.audio.event_parser import Severity

# (raw text, severity) for every message the engine prints
EventCallback = Callable[[str, Severity], None]

# Perform result: > 0 end of score reached, 0 halted by stop(), < 0 error
CompletionCallback = Callable[[int], None]


class AudioEngine(ABC):
    """One instance of an external engine running a fixed-duration score.

    Callbacks may be invoked from the engine's own thread; deliveries for
    one performance are serialized and in order, with the completion last.
    """

    name: str

    @abstractmethod
    def start(self, on_event: EventCallback, on_complete: CompletionCallback) -> None:
        """Begin one asynchronous performance of the score.

        The first call also opens the audio device.

        Raises:
            EngineStartError: If the engine cannot start (e.g. device locked).
        """

    @abstractmethod
    def rewind(self) -> None:
        """Rewind the score to its beginning."""

    @abstractmethod
    def stop(self) -> None:
        """Ask the current performance to halt; completion follows asynchronously."""

    @abstractmethod
    def destroy(self) -> None:
        """Release the engine instance and its audio device."""
