"""Tests for the ordered time service reconfiguration"""

import pytest

from w32peer.config.profiles import select_profile
from w32peer.errors import CommandError, RegistryError, ServiceControlError
from w32peer.service.backend import DryRunTimeService, ServiceState
from w32peer.service.sequencer import PENDING_POLLS, STEPS, ReconfigurationSequencer


def _run(backend, settings, source="Google", sleep=None):
    seq = ReconfigurationSequencer(backend, settings, sleep=sleep or (lambda s: None))
    return seq.run(select_profile(source))


def _report_states(backend, *states):
    """Make ``get_service_state`` return ``states`` in turn, still recording each call."""
    remaining = iter(states)
    record = backend.get_service_state

    def polled():
        record()
        return next(remaining)

    backend.get_service_state = polled


class TestOrdering:
    """Test that the OS calls happen in the required order"""

    def test_full_sequence(self, fake_backend, fast_settings):
        """A running service goes through every step exactly once"""
        result = _run(fake_backend, fast_settings)

        assert result.completed
        assert tuple(result.steps) == STEPS
        assert result.warnings == []
        assert fake_backend.names() == [
            "service_exists",
            "set_startup_mode",
            "get_service_state",
            "stop_service",
            "unregister",
            "register",
            "set_config_value:MaxPosPhaseCorrection",
            "set_config_value:MaxNegPhaseCorrection",
            "set_config_value:MinPollInterval",
            "set_config_value:MaxPollInterval",
            "set_config_value:ClientType",
            "set_config_value:UtilizeSslTimeData",
            "set_config_value:ProviderEnabled",
            "start_service",
            "set_manual_peerlist",
            "restart_service",
            "resync",
        ]

    def test_unregister_precedes_register(self, fake_backend, fast_settings):
        """The final register comes after unregister"""
        _run(fake_backend, fast_settings)
        calls = fake_backend.names()
        assert calls.index("unregister") < len(calls) - 1 - calls[::-1].index("register")

    def test_peerlist_follows_provider_enable(self, fake_backend, fast_settings):
        """Peers are pushed only once the NTP client provider is enabled"""
        _run(fake_backend, fast_settings)
        calls = fake_backend.names()
        assert calls.index("set_config_value:ProviderEnabled") < calls.index("set_manual_peerlist")

    def test_resync_follows_restart(self, fake_backend, fast_settings):
        """Resync is requested after the final restart"""
        _run(fake_backend, fast_settings)
        calls = fake_backend.names()
        assert calls.index("restart_service") < calls.index("resync")

    def test_missing_service_is_registered_first(self, make_backend, fast_settings):
        """A missing service is registered and started before the reset"""
        backend = make_backend(exists=False, state=ServiceState.STOPPED)
        _run(backend, fast_settings)
        calls = backend.names()
        assert calls[:2] == ["service_exists", "register"]
        assert calls.index("start_service") < calls.index("unregister")


class TestPendingStart:
    """Test a service that is still starting when the run begins"""

    def test_waits_for_pending_start(self, make_backend, fast_settings):
        """START_PENDING is re-polled instead of issuing a second start"""
        backend = make_backend(state=ServiceState.START_PENDING)
        _report_states(backend, ServiceState.START_PENDING, ServiceState.RUNNING)
        delays = []
        settings = fast_settings.model_copy(update={"SETTLE_DELAY": 1.0})

        result = _run(backend, settings, sleep=delays.append)

        assert result.completed
        calls = backend.names()
        assert calls[:5] == [
            "service_exists", "set_startup_mode", "get_service_state", "get_service_state", "stop_service",
        ]
        # one poll, then stop, unregister, register, start, restart
        assert delays == [1.0] * 6

    def test_still_pending_is_not_started(self, make_backend, fast_settings):
        """A start that stays pending is left to the best-effort stop"""
        backend = make_backend(state=ServiceState.START_PENDING)

        result = _run(backend, fast_settings)

        assert result.completed
        calls = backend.names()
        assert calls.count("get_service_state") == 1 + PENDING_POLLS
        assert calls.index("start_service") > calls.index("unregister")


class TestEffects:
    """Test what the sequence leaves behind"""

    def test_registry_and_peers_written(self, fake_backend, fast_settings):
        """Registry values, provider flag, peers and startup mode are all set"""
        _run(fake_backend, fast_settings, source="NTPPool")

        assert fake_backend.registry[("Config", "MinPollInterval")] == fast_settings.MIN_POLL_INTERVAL
        assert fake_backend.registry[("Config", "UtilizeSslTimeData")] == fast_settings.UTILIZE_SSL_TIME_DATA
        assert fake_backend.registry[("Parameters", "Type")] == "NTP"
        assert fake_backend.registry[(r"TimeProviders\NtpClient", "Enabled")] == 1
        assert fake_backend.peer_list == select_profile("NTPPool").peer_list
        assert fake_backend.startup_mode == "auto"

    def test_settle_delay_after_transitions(self, fake_backend, fast_settings):
        """Each service transition is followed by the settle delay"""
        delays = []
        settings = fast_settings.model_copy(update={"SETTLE_DELAY": 3.0})
        _run(fake_backend, settings, sleep=delays.append)
        # stop, unregister, register, start, restart
        assert delays == [3.0] * 5


class TestErrors:
    """Fatal and best-effort failures"""

    def test_initial_stop_failure_is_suppressed(self, fake_backend, fast_settings):
        """The stop before unregister may fail without aborting"""
        fake_backend.fail["stop_service"] = ServiceControlError("stop", "w32time", "not started")
        result = _run(fake_backend, fast_settings)
        assert result.completed

    @pytest.mark.parametrize("method", ["start_service", "restart_service"])
    def test_service_control_failure_halts(self, fake_backend, fast_settings, method):
        """Start and restart failures abort the sequence"""
        fake_backend.fail[method] = ServiceControlError(method, "w32time", "access denied")
        with pytest.raises(ServiceControlError):
            _run(fake_backend, fast_settings)
        assert "resync" not in fake_backend.names()

    def test_command_error_during_start_is_wrapped(self, fake_backend, fast_settings):
        """A raw command failure while starting becomes a ServiceControlError"""
        fake_backend.fail["start_service"] = CommandError(["net", "start", "w32time"], 2, "System error 5")
        with pytest.raises(ServiceControlError) as exc:
            _run(fake_backend, fast_settings)
        assert exc.value.action == "start"
        assert "set_manual_peerlist" not in fake_backend.names()

    def test_registry_write_failure_halts(self, fake_backend, fast_settings):
        """An OS error writing a registry value aborts as RegistryError"""
        fake_backend.fail["set_config_value:MinPollInterval"] = PermissionError(5, "Access is denied")
        with pytest.raises(RegistryError) as exc:
            _run(fake_backend, fast_settings)
        assert exc.value.name == "MinPollInterval"
        assert exc.value.key.endswith(r"W32Time\Config")
        assert "start_service" not in fake_backend.names()

    def test_resync_failure_is_a_warning(self, fake_backend, fast_settings):
        """Resync failure is reported but does not fail the run"""
        fake_backend.fail["resync"] = CommandError(["w32tm", "/resync"], 1, "no time data was available")
        result = _run(fake_backend, fast_settings)
        assert result.completed
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("resync:")


def test_dry_run_skips_mutations(fake_backend, fast_settings):
    """The dry-run wrapper reads state but skips every mutation"""
    dry = DryRunTimeService(fake_backend)
    result = _run(dry, fast_settings)

    assert result.completed
    assert fake_backend.names() == ["service_exists", "get_service_state"]
    assert fake_backend.registry == {}
    assert "unregister" in dry.skipped
    assert dry.skipped.index("restart_service") < dry.skipped.index("resync")
