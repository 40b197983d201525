"""Ordered reconfiguration of the Windows Time Service.

Steps run strictly in this order; the sequence is not safe to interrupt and
no rollback is attempted:

 1. ensure_registered     register the service if it is missing
 2. set_startup_mode      startup type "auto"
 3. ensure_running        start the service if needed (fatal on failure);
                          a pending start is polled, not restarted
 4. stop                  best-effort, anticipated errors suppressed
 5. unregister            clears all prior configuration
 6. register              restores the defaults
 7. apply_registry        poll intervals, phase correction limits, ...
 8. enable_provider       NtpClient\\Enabled = 1
 9. start                 fatal on failure
10. set_peerlist          manual peer list plus /update
11. restart               fatal on failure
12. resync                failure is a warning
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, List

import structlog

from w32peer.config.profiles import PeerProfile
from w32peer.errors import CommandError, RegistryError, ServiceControlError
from w32peer.service.backend import ServiceState, TimeServiceBackend
from w32peer.service.registry import build_registry_settings, provider_enabled_setting

logger = structlog.get_logger(__name__)

STARTUP_MODE = "auto"

# settle intervals to wait for a service reported as START_PENDING
PENDING_POLLS = 3

STEPS = (
    "ensure_registered",
    "set_startup_mode",
    "ensure_running",
    "stop",
    "unregister",
    "register",
    "apply_registry",
    "enable_provider",
    "start",
    "set_peerlist",
    "restart",
    "resync",
)


@dataclass
class SequenceResult:
    profile: str
    steps: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def completed(self) -> bool:
        return tuple(self.steps) == STEPS


class ReconfigurationSequencer:
    def __init__(
        self,
        backend: TimeServiceBackend,
        settings,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.backend = backend
        self.settings = settings
        self._sleep = sleep
        self._log = logger.bind(service=backend.service_name)

    def _settle(self) -> None:
        if self.settings.SETTLE_DELAY > 0:
            self._sleep(self.settings.SETTLE_DELAY)

    def _done(self, result: SequenceResult, step: str, **details) -> None:
        result.steps.append(step)
        self._log.info("Step completed", step=step, **details)

    def _warn(self, result: SequenceResult, step: str, message: str) -> None:
        result.warnings.append(f"{step}: {message}")
        self._log.warning("Step degraded", step=step, reason=message)

    def _service_action(self, action: Callable[[], None], verb: str) -> None:
        try:
            action()
        except ServiceControlError:
            self._log.error("Service control failed", action=verb)
            raise
        except CommandError as e:
            self._log.error("Service control failed", action=verb, error=str(e))
            raise ServiceControlError(verb, self.backend.service_name, str(e)) from e

    def _write(self, setting) -> None:
        try:
            self.backend.set_config_value(setting, setting.value)
        except OSError as e:
            self._log.error("Registry write failed", key=setting.key_path, name=setting.value_name, error=str(e))
            raise RegistryError(setting.key_path, setting.value_name, str(e)) from e

    def _current_state(self) -> ServiceState:
        state = self.backend.get_service_state()
        polls = 0
        while state is ServiceState.START_PENDING and polls < PENDING_POLLS:
            self._log.info("Service is starting, waiting", poll=polls + 1)
            self._settle()
            state = self.backend.get_service_state()
            polls += 1
        return state

    def run(self, profile: PeerProfile) -> SequenceResult:
        backend = self.backend
        result = SequenceResult(profile=profile.name)
        self._log.info("Reconfiguration started", profile=profile.name, peers=profile.peer_list)

        if not backend.service_exists():
            self._log.info("Service not registered, registering")
            backend.register()
            self._settle()
        self._done(result, "ensure_registered")

        backend.set_startup_mode(STARTUP_MODE)
        self._done(result, "set_startup_mode", mode=STARTUP_MODE)

        # a start still pending after the polls is left alone; the stop below is best-effort
        if self._current_state() not in (ServiceState.RUNNING, ServiceState.START_PENDING):
            self._service_action(backend.start_service, "start")
            self._settle()
        self._done(result, "ensure_running")

        # The service may already be stopping or refuse to stop; unregister works either way
        try:
            backend.stop_service()
        except (ServiceControlError, CommandError) as e:
            self._log.debug("Ignoring stop failure before unregister", error=str(e))
        self._settle()
        self._done(result, "stop")

        backend.unregister()
        self._settle()
        self._done(result, "unregister")

        backend.register()
        self._settle()
        self._done(result, "register")

        applied = []
        for setting in build_registry_settings(self.settings):
            self._write(setting)
            applied.append(setting.name)
        self._done(result, "apply_registry", settings=applied)

        provider = provider_enabled_setting()
        self._write(provider)
        self._done(result, "enable_provider")

        self._service_action(backend.start_service, "start")
        self._settle()
        self._done(result, "start")

        backend.set_manual_peerlist(profile.peer_list)
        self._done(result, "set_peerlist", peers=profile.peer_list)

        self._service_action(backend.restart_service, "restart")
        self._settle()
        self._done(result, "restart")

        try:
            backend.resync()
        except CommandError as e:
            self._warn(result, "resync", str(e))
        self._done(result, "resync")

        self._log.info("Reconfiguration finished", profile=profile.name, warnings=len(result.warnings))
        return result
