"""Tests for the Csound adapter, using an in-memory stand-in for ctcsound.Csound."""

import threading
from unittest.mock import MagicMock

import pytest

from clapper.audio.event_parser import Severity
from clapper.config import ClapperConfig
from clapper.engine.csound_engine import CsoundEngine
from clapper.engine.orchestra import ORCHESTRA, SCORE, engine_options
from clapper.errors import EngineInitError, EngineStartError


class FakeCsound:
    """Mimics the subset of ctcsound.Csound the adapter uses."""

    def __init__(self, ksmps_results=(0, 0, 1), start_status=0, compile_status=0) -> None:
        self.options: list[str] = []
        self.messages: list[tuple[int, str]] = []
        self.ksmps_results = list(ksmps_results)
        self.start_status = start_status
        self.compile_status = compile_status
        self.debug = None
        self.rewinds = 0
        self.cleaned_up = False
        self.buffer_destroyed = False

    def createMessageBuffer(self, to_stdout):
        self.messages.append((0, "virtual_keyboard real time MIDI plugin for Csound\n"))

    def setOption(self, option):
        self.options.append(option)
        return 0

    def compileOrc(self, orc):
        self.orc = orc
        return self.compile_status

    def readScore(self, sco):
        self.sco = sco
        return 0

    def setDebug(self, debug):
        self.debug = debug

    def start(self):
        return self.start_status

    def performKsmps(self):
        result = self.ksmps_results.pop(0) if self.ksmps_results else 1
        if result == 0 and len(self.ksmps_results) == 1:
            self.messages.append((0, "Clap! t=1.000000 p=0.300000\n"))
        return result

    def rewindScore(self):
        self.rewinds += 1

    def cleanup(self):
        self.cleaned_up = True

    def messageCnt(self):
        return len(self.messages)

    def firstMessageAttr(self):
        return self.messages[0][0]

    def firstMessage(self):
        return self.messages[0][1]

    def popFirstMessage(self):
        self.messages.pop(0)

    def destroyMessageBuffer(self):
        self.buffer_destroyed = True


def _run_once(engine):
    """Start one performance and wait for its completion."""
    events = []
    results = []
    done = threading.Event()

    def on_complete(result):
        results.append(result)
        done.set()

    engine.start(lambda text, severity: events.append((text, severity)), on_complete)
    assert done.wait(timeout=5)
    return events, results


class TestOrchestra:
    def test_prints_clap_lines(self):
        assert 'printf "Clap! t=%f p=%f\\n"' in ORCHESTRA

    def test_score_has_fixed_duration(self):
        assert 'i "ClapListener" 0 65535' in SCORE

    def test_engine_options(self):
        assert engine_options("-iadc") == ["-iadc", "--nosound", "-B2048", "-b512"]


class TestCsoundEngineInit:
    def test_configures_csound(self):
        fake = FakeCsound()
        config = ClapperConfig(debug=True, engine_input="-iadc:hw:2")
        CsoundEngine(config, csound_factory=lambda: fake)

        assert fake.options == ["-iadc:hw:2", "--nosound", "-B2048", "-b512"]
        assert fake.orc == ORCHESTRA
        assert fake.sco == SCORE
        assert fake.debug is True

    def test_factory_returning_nothing(self):
        with pytest.raises(EngineInitError):
            CsoundEngine(ClapperConfig(), csound_factory=lambda: None)

    def test_rejected_orchestra(self):
        with pytest.raises(EngineInitError, match="orchestra"):
            CsoundEngine(ClapperConfig(), csound_factory=lambda: FakeCsound(compile_status=-1))


class TestCsoundEnginePerform:
    def test_perform_delivers_messages_and_completion(self):
        engine = CsoundEngine(ClapperConfig(), csound_factory=lambda: FakeCsound())
        events, results = _run_once(engine)

        assert results == [1]
        assert [text for text, _ in events] == [
            "virtual_keyboard real time MIDI plugin for Csound\n",
            "Clap! t=1.000000 p=0.300000\n",
        ]
        assert all(severity is Severity.DEBUG for _, severity in events)

    def test_message_severity_is_decoded(self):
        fake = FakeCsound(ksmps_results=(1,))
        engine = CsoundEngine(ClapperConfig(), csound_factory=lambda: fake)
        fake.messages.append((0x1000, "INIT ERROR\n"))

        events, _ = _run_once(engine)
        assert ("INIT ERROR\n", Severity.ERROR) in events

    def test_start_failure(self):
        engine = CsoundEngine(ClapperConfig(), csound_factory=lambda: FakeCsound(start_status=-1))
        with pytest.raises(EngineStartError, match="soundcard locked"):
            engine.start(MagicMock(), MagicMock())

    def test_csound_started_once_across_restarts(self):
        fake = FakeCsound(ksmps_results=(1, 1))
        fake.start = MagicMock(return_value=0)
        engine = CsoundEngine(ClapperConfig(), csound_factory=lambda: fake)

        _run_once(engine)
        engine.rewind()
        _run_once(engine)

        fake.start.assert_called_once()
        assert fake.rewinds == 1

    def test_restart_does_not_wait_for_previous_thread(self):
        fake = FakeCsound(ksmps_results=(1, 1))
        engine = CsoundEngine(ClapperConfig(), csound_factory=lambda: fake)
        _run_once(engine)

        previous = MagicMock()
        engine._thread = previous
        engine.rewind()
        _run_once(engine)

        previous.join.assert_not_called()

    def test_stop_ends_performance_with_zero_result(self):
        fake = FakeCsound(ksmps_results=[0] * 1000)
        engine = CsoundEngine(ClapperConfig(), csound_factory=lambda: fake)
        engine.stop()

        results = []
        engine._perform_loop(MagicMock(), results.append)
        assert results == [0]
        assert len(fake.ksmps_results) == 1000

    def test_destroy_releases_csound(self):
        fake = FakeCsound(ksmps_results=(1,))
        engine = CsoundEngine(ClapperConfig(), csound_factory=lambda: fake)
        _run_once(engine)

        engine.destroy()
        assert fake.cleaned_up
        assert fake.buffer_destroyed
