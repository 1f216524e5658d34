"""Double-clap detector fed by the engine's timed clap events.

The engine already does the signal work (high-pass, RMS envelope, attack
detection); this module only decides whether two impulses form a deliberate
double clap, using a power threshold and a timing window around the
configured spacing.
"""

import logging
from collections.abc import Callable

from clapper.audio.event_parser import ClapEvent
from clapper.config import ClapperConfig

logger = logging.getLogger(__name__)


class GestureDetector:
    """Detects double-clap patterns in a stream of ClapEvents.

    Detection logic:
        1. Impulses below ``power_threshold`` are ignored entirely; they
           neither fire nor move the reference timestamp.
        2. delta = time since the last qualifying impulse.
        3. If ``spacing - tolerance < delta < spacing + tolerance`` the
           gesture callback fires.
        4. Every qualifying impulse becomes the new reference point.
    """

    def __init__(self) -> None:
        self._last_clap_time: float | None = None

    @property
    def last_clap_time(self) -> float | None:
        """Time of the most recent qualifying impulse, or None."""
        return self._last_clap_time

    def on_clap(
        self,
        event: ClapEvent,
        config: ClapperConfig,
        on_gesture: Callable[[], None],
    ) -> bool:
        """Process one clap event.

        Args:
            event: Impulse reported by the engine.
            config: Current configuration snapshot.
            on_gesture: Called synchronously when a double clap is recognized.

        Returns:
            True if a double clap was recognized.
        """
        clap = config.clap

        if event.power < clap.power_threshold:
            logger.debug(
                "Clap power - %s - below power threshold - %s",
                event.power,
                clap.power_threshold,
            )
            return False

        detected = False
        if self._last_clap_time is None:
            logger.debug("Clap detected! First clap at t=%.3f", event.time)
        else:
            delta = event.time - self._last_clap_time
            logger.debug("Clap detected! Delta: %s", delta)

            lower = clap.spacing - clap.rhythm_tolerance
            upper = clap.spacing + clap.rhythm_tolerance
            if lower < delta < upper:
                logger.info("Double clap detected - %.1fms spacing", delta * 1000)
                on_gesture()
                detected = True

        self._last_clap_time = event.time
        return detected

    def reset(self) -> None:
        """Forget the reference timestamp."""
        self._last_clap_time = None
