"""Clapper service — wires configuration, the engine session and the detector.

Exposes the public ``init / start / stop / update_config`` API.  Failures are
reported through the log and a boolean result; nothing is raised to the
caller.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from clapper.audio.clap_detector import GestureDetector
from clapper.audio.event_parser import ClapEvent, Severity, dispatch
from clapper.config import ClapperConfig, merge_config
from clapper.engine.csound_engine import CsoundEngine
from clapper.engine.session import EngineFactory, EngineSessionDriver, SessionState
from clapper.errors import ClapperError, ConfigError, EngineInitError
from clapper.utils.logger import apply_verbosity

logger = logging.getLogger(__name__)


class ClapperService:
    """Listens for double claps and calls back on each one."""

    def __init__(self, engine_factory: EngineFactory = CsoundEngine) -> None:
        self._config = ClapperConfig()
        self._callback: Callable[[], None] | None = None
        self._detector = GestureDetector()
        self._driver = EngineSessionDriver(engine_factory)

    @property
    def config(self) -> ClapperConfig:
        return self._config

    @property
    def state(self) -> SessionState:
        return self._driver.state

    @property
    def detector(self) -> GestureDetector:
        return self._detector

    def init(
        self,
        callback: Callable[[], None] | None,
        config: "dict[str, Any] | ClapperConfig | None" = None,
    ) -> bool:
        """Configure the service and create the engine session.

        Args:
            callback: Zero-argument function called on every double clap.
            config: Partial settings merged over the defaults.

        Returns:
            True if the engine session was created.
        """
        try:
            self._config = merge_config(self._config, config)
        except ConfigError as e:
            logger.error("%s", e)
            return False

        apply_verbosity(self._config.debug)

        if callback is None or not callable(callback):
            logger.error("No callback supplied")
            return False

        self._callback = callback
        self._detector.reset()

        try:
            self._driver.init_session(self._config)
        except EngineInitError as e:
            logger.error("%s", e)
            return False
        return True

    def start(self, loop: asyncio.AbstractEventLoop | None = None) -> bool:
        """Start listening.

        Args:
            loop: Event loop delivering engine callbacks (the running loop
                by default).

        Returns:
            False if the service is not initialized or the engine cannot start.
        """
        if self._callback is None:
            logger.error("Service not initialized: call init() first")
            return False

        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.error("start() needs a running asyncio event loop")
                return False

        try:
            # A stopped or failed session is replaced by a fresh one
            if not self._driver.has_session:
                self._driver.init_session(self._config)
            self._driver.start(loop, self._on_engine_message)
        except ClapperError as e:
            logger.error("%s", e)
            return False

        logger.info("Listening for double claps")
        return True

    def stop(self) -> None:
        """Ask the engine to stop; teardown completes asynchronously."""
        self._driver.stop()

    def update_config(self, config: "dict[str, Any] | ClapperConfig | None") -> None:
        """Merge *config* into the live settings; applies from the next event."""
        try:
            self._config = merge_config(self._config, config)
        except ConfigError as e:
            logger.error("%s", e)
            return
        apply_verbosity(self._config.debug)

    # ------------------------------------------------------------------
    # Event routing
    # ------------------------------------------------------------------

    def _on_engine_message(self, text: str, severity: Severity) -> None:
        dispatch(text, severity, self._on_clap)

    def _on_clap(self, event: ClapEvent) -> None:
        self._detector.on_clap(event, self._config, self._fire)

    def _fire(self) -> None:
        try:
            self._callback()
        except Exception:
            logger.exception("Double clap callback failed")
