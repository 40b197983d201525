"""Interface to the operating system's time service.

The sequencer and reporter only talk to a ``TimeServiceBackend``; the
Windows implementation lives in ``w32peer.service.windows`` and tests
substitute a recording fake.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional, Union

import structlog

from w32peer.service.registry import RegistrySetting

logger = structlog.get_logger(__name__)

RegistryValue = Union[int, str]


class ServiceState(Enum):
    RUNNING = "running"
    STOPPED = "stopped"
    START_PENDING = "start_pending"
    STOP_PENDING = "stop_pending"
    MISSING = "missing"
    UNKNOWN = "unknown"


class QueryKind(Enum):
    """``w32tm /query`` sub-commands."""
    CONFIGURATION = "configuration"
    STATUS = "status"
    PEERS = "peers"
    TIMEZONE = "tz"


class TimeServiceBackend(ABC):
    """Operations the reconfiguration sequence needs from the OS."""

    service_name: str = "w32time"

    @abstractmethod
    def is_admin(self) -> bool: ...

    @abstractmethod
    def service_exists(self) -> bool: ...

    @abstractmethod
    def get_service_state(self) -> ServiceState: ...

    @abstractmethod
    def set_startup_mode(self, mode: str) -> None: ...

    @abstractmethod
    def start_service(self) -> None: ...

    @abstractmethod
    def stop_service(self) -> None: ...

    @abstractmethod
    def restart_service(self) -> None: ...

    @abstractmethod
    def register(self) -> None: ...

    @abstractmethod
    def unregister(self) -> None: ...

    @abstractmethod
    def get_config_value(self, setting: RegistrySetting) -> Optional[RegistryValue]:
        """Current value, or None when the value does not exist."""

    @abstractmethod
    def set_config_value(self, setting: RegistrySetting, value: RegistryValue) -> None: ...

    @abstractmethod
    def query(self, kind: QueryKind) -> str:
        """Raw text output of ``w32tm /query``."""

    @abstractmethod
    def set_manual_peerlist(self, peer_list: str) -> None:
        """Set the manual peer list and signal the service to reload it."""

    @abstractmethod
    def resync(self) -> None: ...

    @abstractmethod
    def stripchart(self, server: str, samples: int) -> str: ...


class DryRunTimeService(TimeServiceBackend):
    """Pass reads through to ``inner``; log and skip every mutation."""

    def __init__(self, inner: TimeServiceBackend) -> None:
        self.inner = inner
        self.service_name = inner.service_name
        self.skipped: list[str] = []

    def _skip(self, operation: str, **details) -> None:
        self.skipped.append(operation)
        logger.info("Dry run, skipping", operation=operation, **details)

    def is_admin(self) -> bool:
        return self.inner.is_admin()

    def service_exists(self) -> bool:
        return self.inner.service_exists()

    def get_service_state(self) -> ServiceState:
        return self.inner.get_service_state()

    def set_startup_mode(self, mode: str) -> None:
        self._skip("set_startup_mode", mode=mode)

    def start_service(self) -> None:
        self._skip("start_service")

    def stop_service(self) -> None:
        self._skip("stop_service")

    def restart_service(self) -> None:
        self._skip("restart_service")

    def register(self) -> None:
        self._skip("register")

    def unregister(self) -> None:
        self._skip("unregister")

    def get_config_value(self, setting: RegistrySetting) -> Optional[RegistryValue]:
        return self.inner.get_config_value(setting)

    def set_config_value(self, setting: RegistrySetting, value: RegistryValue) -> None:
        self._skip("set_config_value", setting=setting.name, value=value)

    def query(self, kind: QueryKind) -> str:
        return self.inner.query(kind)

    def set_manual_peerlist(self, peer_list: str) -> None:
        self._skip("set_manual_peerlist", peer_list=peer_list)

    def resync(self) -> None:
        self._skip("resync")

    def stripchart(self, server: str, samples: int) -> str:
        return self.inner.stripchart(server, samples)
