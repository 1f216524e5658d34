"""Shared fixtures: an in-memory audio engine that replays scripted output."""

import pytest

from clapper.audio.event_parser import Severity
from clapper.engine.base import AudioEngine
from clapper.errors import EngineStartError


class FakeEngine(AudioEngine):
    """AudioEngine double; the test drives messages and completions."""

    name = "fake"

    def __init__(self, config=None, fail_start: bool = False) -> None:
        self.config = config
        self.fail_start = fail_start
        self.starts = 0
        self.rewinds = 0
        self.stops = 0
        self.destroys = 0
        self._on_event = None
        self._on_complete = None

    def start(self, on_event, on_complete) -> None:
        if self.fail_start:
            raise EngineStartError(-1)
        self.starts += 1
        self._on_event = on_event
        self._on_complete = on_complete

    def rewind(self) -> None:
        self.rewinds += 1

    def stop(self) -> None:
        self.stops += 1

    def destroy(self) -> None:
        self.destroys += 1

    def emit(self, text: str, severity: Severity = Severity.DEBUG) -> None:
        self._on_event(text, severity)

    def finish(self, result: int) -> None:
        self._on_complete(result)


class FakeEngineFactory:
    """Engine factory that records every engine it builds."""

    def __init__(self) -> None:
        self.engines: list[FakeEngine] = []
        self.fail_start = False
        self.return_none = False

    def __call__(self, config) -> FakeEngine | None:
        if self.return_none:
            return None
        engine = FakeEngine(config, fail_start=self.fail_start)
        self.engines.append(engine)
        return engine

    @property
    def engine(self) -> FakeEngine:
        return self.engines[-1]


@pytest.fixture
def engine_factory():
    return FakeEngineFactory()

