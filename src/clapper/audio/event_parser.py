"""Classification of the audio engine's text message channel.

The engine prints free-text diagnostics plus one structured line per detected
impulse (``Clap! t=<time> p=<power>``).  Each raw line is classified as a
:class:`ClapEvent`, a :class:`LogLine`, or ignored (whitespace only).
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

_CLAP_RE = re.compile(r"Clap! t=(\d+\.\d+) p=(\d+\.\d+)")
_NON_WHITESPACE_RE = re.compile(r"\S")

# Csound message attribute encoding (csound.h): the type lives in a 3-bit field
_CSOUNDMSG_TYPE_MASK = 0x7000
_CSOUNDMSG_ERROR = 0x1000
_CSOUNDMSG_WARNING = 0x4000


class Severity(Enum):
    """Severity of an engine message."""

    ERROR = "error"
    WARNING = "warning"
    DEBUG = "debug"

    @classmethod
    def from_csound_attr(cls, attr: int) -> "Severity":
        """Decode a Csound message attribute into a Severity."""
        msg_type = attr & _CSOUNDMSG_TYPE_MASK
        if msg_type == _CSOUNDMSG_ERROR:
            return cls.ERROR
        if msg_type == _CSOUNDMSG_WARNING:
            return cls.WARNING
        return cls.DEBUG


@dataclass(frozen=True)
class ClapEvent:
    """A single impulse reported by the engine."""

    time: float  # seconds since the score started
    power: float  # RMS difference at the attack


@dataclass(frozen=True)
class LogLine:
    """A diagnostic line from the engine."""

    level: Severity
    text: str


def classify(raw_line: str, severity: Severity = Severity.DEBUG) -> ClapEvent | LogLine | None:
    """Classify one raw engine line.

    Args:
        raw_line: Text exactly as delivered by the engine.
        severity: Severity the engine attached to the message.

    Returns:
        ``None`` for whitespace-only lines, a ClapEvent when the clap
        pattern matches anywhere in the line, otherwise a LogLine with
        the trimmed text.
    """
    if not _NON_WHITESPACE_RE.search(raw_line):
        return None

    match = _CLAP_RE.search(raw_line)
    if match:
        return ClapEvent(time=float(match.group(1)), power=float(match.group(2)))

    return LogLine(level=severity, text=raw_line.strip())


def dispatch(
    raw_line: str,
    severity: Severity,
    on_clap: Callable[[ClapEvent], None],
) -> None:
    """Route a raw engine line: log lines to the log, clap events to *on_clap*."""
    result = classify(raw_line, severity)
    if result is None:
        return

    if isinstance(result, ClapEvent):
        on_clap(result)
    elif result.level is Severity.ERROR:
        logger.error(result.text)
    elif result.level is Severity.WARNING:
        logger.warning(result.text)
    else:
        logger.debug("engine: %s", result.text)
