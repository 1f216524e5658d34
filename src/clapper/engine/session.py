"""Engine session driver: keeps a fixed-duration engine score running.

The engine's score has a fixed duration, so each performance eventually
ends.  The driver rewinds and re-performs it on the next event-loop turn,
turning a bounded session into unbounded listening, and tears the session
down on stop or natural completion.

All engine callbacks are marshalled onto the asyncio loop, so driver state
is only ever touched from the loop thread.
"""

import asyncio
import enum
import functools
import logging
from collections.abc import Callable

from clapper.audio.event_parser import Severity
from clapper.config import ClapperConfig
from clapper.engine.base import AudioEngine, EventCallback
from clapper.errors import EngineInitError, EngineStartError

logger = logging.getLogger(__name__)

EngineFactory = Callable[[ClapperConfig], "AudioEngine | None"]


class SessionState(enum.Enum):
    """Lifecycle of one engine session."""

    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    RESTARTING = "restarting"
    STOPPED = "stopped"
    FAILED = "failed"


class EngineSessionDriver:
    """Owns the single engine instance and its perform/restart cycle."""

    def __init__(self, engine_factory: EngineFactory) -> None:
        self._engine_factory = engine_factory
        self._engine: AudioEngine | None = None
        self._state = SessionState.STOPPED
        self._loop: asyncio.AbstractEventLoop | None = None
        self._on_event: EventCallback | None = None
        self._stop_requested = False
        self._restart_count = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def has_session(self) -> bool:
        """True while an engine instance is held."""
        return self._engine is not None

    @property
    def restart_count(self) -> int:
        """Number of automatic restarts in the current session."""
        return self._restart_count

    def init_session(self, config: ClapperConfig) -> None:
        """Create a new engine instance in the IDLE state.

        Raises:
            EngineInitError: If the factory fails or returns no engine.
        """
        self._release()
        self._state = SessionState.STOPPED

        try:
            engine = self._engine_factory(config)
        except EngineInitError:
            raise
        except Exception as e:
            raise EngineInitError(f"Audio engine could not be created: {e}") from e
        if engine is None:
            raise EngineInitError()

        self._engine = engine
        self._state = SessionState.IDLE
        self._stop_requested = False
        self._restart_count = 0
        logger.debug("Engine session created (%s)", getattr(engine, "name", "engine"))

    def start(self, loop: asyncio.AbstractEventLoop, on_event: EventCallback) -> None:
        """Begin performing the score.

        Args:
            loop: Event loop that receives all engine callbacks.
            on_event: Called on the loop for every engine message.

        Raises:
            EngineStartError: If there is no idle session or the engine
                refuses to start.  A refused engine is released.
        """
        if self._engine is None or self._state is not SessionState.IDLE:
            raise EngineStartError(message=f"No idle engine session (state={self._state.value})")

        self._loop = loop
        self._on_event = on_event
        self._state = SessionState.STARTING

        try:
            self._perform()
        except EngineStartError:
            self._finish(SessionState.FAILED)
            raise
        except Exception as e:
            self._finish(SessionState.FAILED)
            raise EngineStartError(message=f"Audio engine failed to start: {e}") from e

        self._state = SessionState.RUNNING

    def stop(self) -> None:
        """Request the session to stop.

        Teardown completes when the engine reports completion (or when an
        already scheduled restart runs), never synchronously.
        """
        if self._state not in (SessionState.RUNNING, SessionState.RESTARTING):
            logger.debug("Stop ignored (state=%s)", self._state.value)
            return

        self._stop_requested = True
        if self._engine is not None:
            self._engine.stop()

    # ------------------------------------------------------------------
    # Engine callbacks (any thread) → loop
    # ------------------------------------------------------------------

    def _deliver_event(self, engine: AudioEngine, text: str, severity: Severity) -> None:
        self._loop.call_soon_threadsafe(self._handle_event, engine, text, severity)

    def _deliver_complete(self, engine: AudioEngine, result: int) -> None:
        self._loop.call_soon_threadsafe(self._handle_complete, engine, result)

    def _handle_event(self, engine: AudioEngine, text: str, severity: Severity) -> None:
        # Messages queued by an engine that has since been released
        if engine is not self._engine:
            return
        if self._on_event is not None:
            self._on_event(text, severity)

    def _handle_complete(self, engine: AudioEngine, result: int) -> None:
        # Completion of an engine that has since been released
        if engine is not self._engine:
            return

        if self._stop_requested:
            logger.debug("Engine stopped on request")
            self._finish(SessionState.STOPPED)
        elif result > 0:
            logger.debug("Restarting engine listener")
            self._state = SessionState.RESTARTING
            self._loop.call_soon(self._restart, engine)
        else:
            logger.debug("Engine stopped (result=%d)", result)
            self._finish(SessionState.STOPPED)

    def _restart(self, engine: AudioEngine) -> None:
        if engine is not self._engine:
            return
        if self._stop_requested:
            logger.debug("Restart cancelled by stop request")
            self._finish(SessionState.STOPPED)
            return

        try:
            self._perform()
        except Exception:
            logger.exception("Engine restart failed")
            self._finish(SessionState.FAILED)
            return

        self._restart_count += 1
        self._state = SessionState.RUNNING

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _perform(self) -> None:
        """Rewind the score and launch one asynchronous performance."""
        engine = self._engine
        engine.rewind()
        engine.start(
            functools.partial(self._deliver_event, engine),
            functools.partial(self._deliver_complete, engine),
        )

    def _finish(self, state: SessionState) -> None:
        self._state = state
        self._release()

    def _release(self) -> None:
        """Destroy the held engine exactly once."""
        engine, self._engine = self._engine, None
        if engine is None:
            return
        try:
            engine.destroy()
        except Exception:
            logger.warning("Error destroying audio engine", exc_info=True)
