"""Tests for the enforcement monitor."""

import time

import pytest

from screenbudget.monitor import (
    EnforcementMonitor,
    MonitorConfig,
    Trigger,
    Verdict,
    make_usage_window_probe,
)
from conftest import OWN_PACKAGE, FakeHost, record_usage

GAME = "com.example.game"


@pytest.fixture
def exhausted(engine, usage, clock):
    """An engine with no time left."""
    engine.set_daily_limit(30)
    record_usage(usage, clock, 45)
    return engine


def make_monitor(engine, host, probes=None, **config):
    return EnforcementMonitor(
        engine,
        host,
        OWN_PACKAGE,
        probes=probes,
        config=MonitorConfig(**config) if config else None,
    )


class TestForegroundEvents:
    """Test decisions on foreground-app-changed events."""

    def test_allowed_with_time_left(self, engine, host):
        engine.set_daily_limit(60)
        monitor = make_monitor(engine, host)

        decision = monitor.on_foreground_changed(GAME)

        assert decision.verdict is Verdict.ALLOWED
        assert decision.remaining_minutes == 60
        assert host.home_requests == 0

    def test_evicts_without_time(self, exhausted, host):
        monitor = make_monitor(exhausted, host)

        decision = monitor.on_foreground_changed(GAME)

        assert decision.verdict is Verdict.EVICTED
        assert decision.trigger is Trigger.EVENT
        assert host.home_requests == 1
        assert host.killed == [GAME]
        assert monitor.last_known_package is None

    def test_own_package_exempt(self, exhausted, host):
        monitor = make_monitor(exhausted, host)

        decision = monitor.on_foreground_changed(OWN_PACKAGE)

        assert decision.verdict is Verdict.EXEMPT_SELF
        assert host.home_requests == 0

    @pytest.mark.parametrize(
        "package",
        ["com.google.android.leanbacklauncher", "com.android.systemui", "android"],
    )
    def test_system_packages_exempt(self, exhausted, host, package):
        monitor = make_monitor(exhausted, host)
        monitor.on_foreground_changed(GAME)

        decision = monitor.on_foreground_changed(package)

        assert decision.verdict is Verdict.EXEMPT_SYSTEM
        assert host.home_requests == 1  # Only the earlier eviction
        assert monitor.last_known_package is None

    def test_kill_failure_is_best_effort(self, exhausted):
        host = FakeHost(fail_kill=True)
        monitor = make_monitor(exhausted, host)

        decision = monitor.on_foreground_changed(GAME)

        assert decision.verdict is Verdict.EVICTED
        assert host.home_requests == 1


class TestDebounce:
    """Test suppression of back-to-back evictions."""

    def test_second_eviction_suppressed(self, exhausted, host):
        monitor = make_monitor(exhausted, host)

        monitor.on_foreground_changed(GAME)
        decision = monitor.on_foreground_changed(GAME)

        assert decision.verdict is Verdict.DEBOUNCED
        assert host.home_requests == 1

    def test_eviction_after_interval(self, exhausted, host, clock):
        monitor = make_monitor(exhausted, host)

        monitor.on_foreground_changed(GAME)
        clock.advance(milliseconds=600)
        decision = monitor.on_foreground_changed(GAME)

        assert decision.verdict is Verdict.EVICTED
        assert host.home_requests == 2

    def test_custom_interval(self, exhausted, host, clock):
        monitor = make_monitor(exhausted, host, min_eviction_interval_ms=2000)

        monitor.on_foreground_changed(GAME)
        clock.advance(milliseconds=1500)

        assert monitor.on_foreground_changed(GAME).verdict is Verdict.DEBOUNCED


class TestTick:
    """Test the periodic check and foreground resolution."""

    def test_tick_with_time_left(self, engine, host):
        engine.set_daily_limit(60)
        monitor = make_monitor(engine, host, probes=[lambda: GAME])

        decision = monitor.tick()

        assert decision.verdict is Verdict.ALLOWED
        assert host.home_requests == 0

    def test_first_probe_wins(self, exhausted, host):
        calls = []

        def first():
            calls.append("first")
            return "com.example.video"

        def second():
            calls.append("second")
            return GAME

        monitor = make_monitor(exhausted, host, probes=[first, second])

        decision = monitor.tick()

        assert decision.package == "com.example.video"
        assert decision.verdict is Verdict.EVICTED
        assert calls == ["first"]

    def test_failing_probe_falls_through(self, exhausted, host):
        def broken():
            raise RuntimeError("accessibility tree unavailable")

        monitor = make_monitor(exhausted, host, probes=[broken, lambda: None, lambda: GAME])

        assert monitor.tick().package == GAME

    def test_last_known_fallback(self, exhausted, host, clock):
        monitor = make_monitor(exhausted, host, probes=[lambda: None])
        monitor.on_foreground_changed(OWN_PACKAGE)

        assert monitor.tick().verdict is Verdict.EXEMPT_SELF

    def test_unknown_foreground(self, exhausted, host):
        monitor = make_monitor(exhausted, host, probes=[lambda: None, lambda: ""])

        decision = monitor.tick()

        assert decision.verdict is Verdict.UNKNOWN
        assert decision.package is None
        assert host.home_requests == 0

    def test_tick_system_package(self, exhausted, host):
        monitor = make_monitor(exhausted, host, probes=[lambda: "com.android.tv.launcher"])

        assert monitor.tick().verdict is Verdict.EXEMPT_SYSTEM
        assert host.home_requests == 0

    def test_usage_window_probe(self, exhausted, host, usage, clock):
        record_usage(usage, clock, 1, package="com.example.video")
        probe = make_usage_window_probe(usage, clock)
        monitor = make_monitor(exhausted, host, probes=[probe])

        decision = monitor.tick()

        assert decision.package == "com.example.video"
        assert decision.trigger is Trigger.TICK


class TestDecisionChannel:
    """Test publishing evictions to subscribers."""

    def test_subscribers_receive_evictions(self, exhausted, host):
        monitor = make_monitor(exhausted, host)
        received = []
        monitor.subscribe(received.append)

        monitor.on_foreground_changed(GAME)

        assert len(received) == 1
        assert received[0].package == GAME
        assert received[0].verdict is Verdict.EVICTED

    def test_non_evictions_not_published(self, engine, host):
        engine.set_daily_limit(60)
        monitor = make_monitor(engine, host)
        received = []
        monitor.subscribe(received.append)

        monitor.on_foreground_changed(GAME)
        monitor.on_foreground_changed(OWN_PACKAGE)

        assert received == []

    def test_unsubscribe(self, exhausted, host):
        monitor = make_monitor(exhausted, host)
        received = []
        unsubscribe = monitor.subscribe(received.append)
        unsubscribe()

        monitor.on_foreground_changed(GAME)

        assert received == []

    def test_failing_subscriber_isolated(self, exhausted, host):
        monitor = make_monitor(exhausted, host)
        received = []

        def broken(decision):
            raise ValueError("ui gone")

        monitor.subscribe(broken)
        monitor.subscribe(received.append)

        decision = monitor.on_foreground_changed(GAME)

        assert decision.verdict is Verdict.EVICTED
        assert len(received) == 1


class TestBackgroundSchedule:
    """Test the periodic tick thread."""

    def test_start_and_stop(self, exhausted, host):
        monitor = make_monitor(exhausted, host, probes=[lambda: GAME], check_interval_seconds=0.01)

        monitor.start()
        deadline = time.time() + 2.0
        while host.home_requests == 0 and time.time() < deadline:
            time.sleep(0.01)
        monitor.stop(timeout=2.0)

        assert host.home_requests >= 1
        assert monitor.running is False

    def test_tick_errors_do_not_stop_loop(self, engine, host):
        calls = []

        def flaky():
            calls.append(1)
            raise RuntimeError("usage service died")

        engine.remaining_minutes = flaky
        monitor = make_monitor(engine, host, check_interval_seconds=0.01)

        monitor.start()
        deadline = time.time() + 2.0
        while len(calls) < 3 and time.time() < deadline:
            time.sleep(0.01)
        monitor.stop(timeout=2.0)

        assert len(calls) >= 3
