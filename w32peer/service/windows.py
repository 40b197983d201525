"""Windows implementation of the time service backend.

Service control goes through ``sc.exe`` and ``net``; time service
configuration through ``w32tm``; registry values through ``winreg``.
``winreg`` and ``ctypes.windll`` only exist on Windows, so they are imported
where they are used.
"""

from __future__ import annotations

import re
import subprocess
from typing import Callable, List, Optional, Sequence

import structlog

from w32peer.errors import CommandError, RegistryError, ServiceControlError
from w32peer.service.backend import QueryKind, RegistryValue, ServiceState, TimeServiceBackend
from w32peer.service.registry import REG_SZ, RegistrySetting

logger = structlog.get_logger(__name__)

# sc.exe: "The specified service does not exist as an installed service."
ERROR_SERVICE_DOES_NOT_EXIST = 1060

_SC_STATES = {
    1: ServiceState.STOPPED,
    2: ServiceState.START_PENDING,
    3: ServiceState.STOP_PENDING,
    4: ServiceState.RUNNING,
}
_STATE_RE = re.compile(r"^\s*STATE\s*:\s*(\d+)", re.MULTILINE)

Runner = Callable[..., subprocess.CompletedProcess]


def parse_sc_state(output: str) -> ServiceState:
    """Extract the service state from ``sc query`` output."""
    match = _STATE_RE.search(output)
    if not match:
        return ServiceState.UNKNOWN
    return _SC_STATES.get(int(match.group(1)), ServiceState.UNKNOWN)


class WindowsTimeService(TimeServiceBackend):
    def __init__(self, service_name: str = "w32time", runner: Runner = subprocess.run) -> None:
        self.service_name = service_name
        self._runner = runner

    def _run(self, args: Sequence[str], check: bool = True) -> subprocess.CompletedProcess:
        logger.debug("Running command", command=" ".join(args))
        try:
            result = self._runner(
                list(args),
                capture_output=True,
                text=True,
                errors="replace",
            )
        except OSError as e:
            raise CommandError(args, -1, str(e)) from e
        if check and result.returncode != 0:
            raise CommandError(args, result.returncode, (result.stdout or "") + (result.stderr or ""))
        return result

    def _w32tm(self, *args: str) -> str:
        return self._run(["w32tm", *args]).stdout or ""

    # Privilege

    def is_admin(self) -> bool:
        try:
            import ctypes

            return ctypes.windll.shell32.IsUserAnAdmin() != 0
        except (AttributeError, OSError):
            return False

    # Service control

    def service_exists(self) -> bool:
        result = self._run(["sc.exe", "query", self.service_name], check=False)
        return result.returncode != ERROR_SERVICE_DOES_NOT_EXIST

    def get_service_state(self) -> ServiceState:
        result = self._run(["sc.exe", "query", self.service_name], check=False)
        if result.returncode == ERROR_SERVICE_DOES_NOT_EXIST:
            return ServiceState.MISSING
        return parse_sc_state(result.stdout or "")

    def set_startup_mode(self, mode: str) -> None:
        # sc.exe requires the space after "start="
        self._run(["sc.exe", "config", self.service_name, "start=", mode])

    def _net(self, action: str) -> None:
        try:
            self._run(["net", action, self.service_name])
        except CommandError as e:
            raise ServiceControlError(action, self.service_name, str(e)) from e

    def start_service(self) -> None:
        self._net("start")

    def stop_service(self) -> None:
        self._net("stop")

    def restart_service(self) -> None:
        self.stop_service()
        self.start_service()

    def register(self) -> None:
        self._w32tm("/register")

    def unregister(self) -> None:
        self._w32tm("/unregister")

    # Registry

    def get_config_value(self, setting: RegistrySetting) -> Optional[RegistryValue]:
        import winreg

        try:
            with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, setting.key_path, 0, winreg.KEY_READ) as key:
                value, _ = winreg.QueryValueEx(key, setting.value_name)
        except FileNotFoundError:
            return None
        return value

    def set_config_value(self, setting: RegistrySetting, value: RegistryValue) -> None:
        import winreg

        kind = winreg.REG_SZ if setting.kind == REG_SZ else winreg.REG_DWORD
        try:
            with winreg.CreateKeyEx(winreg.HKEY_LOCAL_MACHINE, setting.key_path, 0, winreg.KEY_WRITE) as key:
                winreg.SetValueEx(key, setting.value_name, 0, kind, value)
        except OSError as e:
            raise RegistryError(setting.key_path, setting.value_name, str(e)) from e
        logger.info("Registry value written", key=setting.key_path, name=setting.value_name, value=value)

    # w32tm

    def query(self, kind: QueryKind) -> str:
        if kind is QueryKind.TIMEZONE:
            return self._w32tm("/tz")
        return self._w32tm("/query", f"/{kind.value}")

    def set_manual_peerlist(self, peer_list: str) -> None:
        args: List[str] = [
            "/config",
            f"/manualpeerlist:{peer_list}",
            "/syncfromflags:manual",
            "/reliable:yes",
            "/update",
        ]
        self._w32tm(*args)

    def resync(self) -> None:
        self._w32tm("/resync", "/rediscover")

    def stripchart(self, server: str, samples: int) -> str:
        return self._w32tm("/stripchart", f"/computer:{server}", "/dataonly", f"/samples:{samples}")
