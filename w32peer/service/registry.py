"""Registry values owned by the Windows Time Service.

All paths are relative to
``HKEY_LOCAL_MACHINE\\SYSTEM\\CurrentControlSet\\Services\\W32Time``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Union

W32TIME_ROOT = r"SYSTEM\CurrentControlSet\Services\W32Time"

REG_DWORD = "REG_DWORD"
REG_SZ = "REG_SZ"


@dataclass(frozen=True)
class RegistrySetting:
    name: str
    subkey: str
    value_name: str
    value: Union[int, str]
    kind: str = REG_DWORD

    @property
    def key_path(self) -> str:
        return f"{W32TIME_ROOT}\\{self.subkey}"


def ssl_time_data_setting(value: int = 0) -> RegistrySetting:
    return RegistrySetting("UtilizeSslTimeData", "Config", "UtilizeSslTimeData", value)


def provider_enabled_setting() -> RegistrySetting:
    return RegistrySetting("ProviderEnabled", r"TimeProviders\NtpClient", "Enabled", 1)


def build_registry_settings(settings) -> List[RegistrySetting]:
    """Values applied right after the service is re-registered, in order.

    The NTP client provider flag is applied separately by the sequencer; see
    ``provider_enabled_setting``.
    """
    return [
        RegistrySetting("MaxPosPhaseCorrection", "Config", "MaxPosPhaseCorrection", settings.MAX_POS_PHASE_CORRECTION),
        RegistrySetting("MaxNegPhaseCorrection", "Config", "MaxNegPhaseCorrection", settings.MAX_NEG_PHASE_CORRECTION),
        RegistrySetting("MinPollInterval", "Config", "MinPollInterval", settings.MIN_POLL_INTERVAL),
        RegistrySetting("MaxPollInterval", "Config", "MaxPollInterval", settings.MAX_POLL_INTERVAL),
        RegistrySetting("ClientType", "Parameters", "Type", "NTP", kind=REG_SZ),
        ssl_time_data_setting(settings.UTILIZE_SSL_TIME_DATA),
    ]


def snapshot_settings(settings) -> List[RegistrySetting]:
    """Values shown in the report's registry section.

    UtilizeSslTimeData has a report section of its own and is left out here.
    """
    ssl_name = ssl_time_data_setting().name
    values = [s for s in build_registry_settings(settings) if s.name != ssl_name]
    return values + [provider_enabled_setting()]
