"""Csound engine adapter built on the official ctcsound binding.

Csound is compiled with the fixed clap orchestra and performed k-cycle by
k-cycle in a dedicated thread.  Engine messages are collected through the
Csound message buffer and delivered with their decoded severity after each
k-cycle, so the host never deals with C varargs callbacks.
"""

import logging
import threading
from collections.abc import Callable

from clapper.audio.event_parser import Severity
from clapper.config import ClapperConfig
from clapper.engine.base import AudioEngine, CompletionCallback, EventCallback
from clapper.engine.orchestra import ORCHESTRA, SCORE, engine_options
from clapper.errors import EngineInitError, EngineStartError

logger = logging.getLogger(__name__)

_CSOUND_SUCCESS = 0


def _default_factory() -> Callable[[], object]:
    """Return ``ctcsound.Csound``, importing the binding lazily."""
    try:
        import ctcsound
    except (ImportError, OSError) as e:
        raise EngineInitError(f"ctcsound is not available: {e}") from e
    return ctcsound.Csound


class CsoundEngine(AudioEngine):
    """Runs the clap orchestra in a Csound instance."""

    name = "csound"

    def __init__(
        self,
        config: ClapperConfig,
        csound_factory: Callable[[], object] | None = None,
    ) -> None:
        """Create and configure the Csound instance.

        Args:
            config: Settings providing the input device, buffers and debug flag.
            csound_factory: Callable returning a Csound object (ctcsound.Csound
                by default).

        Raises:
            EngineInitError: If Csound cannot be created or rejects the program.
        """
        factory = csound_factory or _default_factory()
        csound = factory()
        if not csound:
            raise EngineInitError()

        self._csound = csound
        self._started = False
        self._halt = threading.Event()
        self._thread: threading.Thread | None = None

        # Capture messages (including compile output) instead of printing them
        csound.createMessageBuffer(False)

        for option in engine_options(
            config.engine_input,
            config.engine_hardware_buffer,
            config.engine_software_buffer,
        ):
            csound.setOption(option)

        if csound.compileOrc(ORCHESTRA) != _CSOUND_SUCCESS:
            raise EngineInitError("Csound rejected the clap orchestra")
        if csound.readScore(SCORE) != _CSOUND_SUCCESS:
            raise EngineInitError("Csound rejected the clap score")
        csound.setDebug(config.debug)

        logger.debug("Csound engine created (input=%s)", config.engine_input)

    def start(self, on_event: EventCallback, on_complete: CompletionCallback) -> None:
        if not self._started:
            status = self._csound.start()
            if status != _CSOUND_SUCCESS:
                raise EngineStartError(status)
            self._started = True
            logger.info("Started Csound")

        # A finished perform thread is done with Csound once it reports completion
        self._halt.clear()
        self._thread = threading.Thread(
            target=self._perform_loop,
            args=(on_event, on_complete),
            name="csound-perform",
            daemon=True,
        )
        self._thread.start()

    def rewind(self) -> None:
        self._csound.rewindScore()

    def stop(self) -> None:
        self._halt.set()

    def destroy(self) -> None:
        self._halt.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=2.0)
        self._thread = None

        if self._started:
            self._csound.cleanup()
        self._csound.destroyMessageBuffer()
        self._csound = None
        logger.debug("Csound engine destroyed")

    def _perform_loop(self, on_event: EventCallback, on_complete: CompletionCallback) -> None:
        """Perform k-cycles until the score ends or a halt is requested.

        Runs in the ``csound-perform`` thread.
        """
        result = 0
        try:
            while not self._halt.is_set():
                result = self._csound.performKsmps()
                self._drain_messages(on_event)
                if result != 0:
                    break
        except Exception:
            logger.exception("Csound performance failed")
            result = -1

        self._drain_messages(on_event)
        on_complete(result)

    def _drain_messages(self, on_event: EventCallback) -> None:
        """Deliver every buffered Csound message in order."""
        while self._csound.messageCnt() > 0:
            attr = self._csound.firstMessageAttr()
            text = self._csound.firstMessage()
            self._csound.popFirstMessage()
            on_event(text, Severity.from_csound_attr(attr))
