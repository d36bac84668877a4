# =============================================================================
# tests/unit/test_connectivity_probe.py
# Unit Tests for with_timeout and ConnectivityProbe
# =============================================================================

import pytest
import threading
import time

from pos_core.errors import ConnectivityError
from pos_core.models import BackendKind
from pos_core.offline.connectivity_probe import ConnectivityProbe, NOT_CONFIGURED
from pos_core.offline.timeouts import CallTimeout, with_timeout


class TestWithTimeout:

    def test_returns_value(self):
        assert with_timeout(lambda: 42, 1000) == 42

    def test_reraises_call_error(self):
        def boom():
            raise ValueError("bad row")

        with pytest.raises(ValueError, match="bad row"):
            with_timeout(boom, 1000)

    def test_deadline_wins(self):
        release = threading.Event()

        started = time.monotonic()
        with pytest.raises(CallTimeout) as exc_info:
            with_timeout(lambda: release.wait(5), 50)
        elapsed = time.monotonic() - started
        release.set()

        assert exc_info.value.timeout_ms == 50
        assert str(exc_info.value) == "timeout"
        assert elapsed < 2

    def test_timeout_is_a_timeout_error(self):
        assert issubclass(CallTimeout, TimeoutError)


class TestConnectivityProbe:

    def test_reachable(self, fake_backends):
        probe = ConnectivityProbe(fake_backends)
        result = probe.probe(BackendKind.SUPABASE, 500)

        assert result.reachable
        assert result.error is None
        assert result.latency_ms >= 0
        assert fake_backends[BackendKind.SUPABASE].calls == ["health_check"]

    def test_error_is_reported_not_raised(self, fake_backends):
        fake_backends[BackendKind.NEON].health_error = ConnectivityError("connection refused")
        result = ConnectivityProbe(fake_backends).probe(BackendKind.NEON, 500)

        assert not result.reachable
        assert "connection refused" in result.error

    def test_timeout(self, fake_backends):
        fake_backends[BackendKind.FIREBASE].health_delay = 1.0
        result = ConnectivityProbe(fake_backends).probe(BackendKind.FIREBASE, 50)

        assert not result.reachable
        assert result.error == "timeout"
        assert result.latency_ms < 1000

    def test_unconfigured_backend(self, fake_backends):
        del fake_backends[BackendKind.NEON]
        result = ConnectivityProbe(fake_backends).probe(BackendKind.NEON, 500)

        assert not result.reachable
        assert result.error == NOT_CONFIGURED

    def test_local_always_reachable(self):
        result = ConnectivityProbe({}).probe(BackendKind.LOCAL, 500)
        assert result.reachable

    def test_latency_uses_clock(self, fake_backends):
        ticks = iter([10.0, 10.25])
        probe = ConnectivityProbe(fake_backends, clock=lambda: next(ticks))
        assert probe.probe(BackendKind.SUPABASE, 500).latency_ms == 250

    def test_result_to_dict(self, fake_backends):
        data = ConnectivityProbe(fake_backends).probe(BackendKind.SUPABASE, 500).to_dict()
        assert data["backend"] == "supabase"
        assert data["reachable"] is True
