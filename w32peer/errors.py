"""Exception types raised by w32peer.

Everything deriving from W32PeerError is fatal: the CLI reports the message
and exits non-zero. Advisory conditions (clock check failures, missing
registry values, diagnostic query failures) are logged, never raised.
"""

from __future__ import annotations


class W32PeerError(Exception):
    """Base class for fatal configuration errors."""


class ProfileSelectionError(W32PeerError):
    """Unknown NTP peer source requested."""


class PrivilegeError(W32PeerError):
    """The process lacks administrative rights (or is not on Windows)."""


class SettingsError(W32PeerError):
    """Invalid values in the environment or .env file."""


class CommandError(W32PeerError):
    """An external command (w32tm, sc.exe, net) exited non-zero."""

    def __init__(self, args, returncode: int, output: str = "") -> None:
        self.command = list(args)
        self.returncode = returncode
        self.output = output
        detail = output.strip().splitlines()[-1] if output.strip() else "no output"
        super().__init__(f"{' '.join(self.command)} exited with {returncode}: {detail}")


class ServiceControlError(W32PeerError):
    """Starting, stopping or restarting the time service failed."""

    def __init__(self, action: str, service: str, reason: str = "") -> None:
        self.action = action
        self.service = service
        self.reason = reason
        message = f"Failed to {action} service '{service}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class RegistryError(W32PeerError):
    """Writing a time service registry value failed."""

    def __init__(self, key: str, name: str, reason: str = "") -> None:
        self.key = key
        self.name = name
        message = f"Cannot write registry value {key}\\{name}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


__all__ = [
    "W32PeerError",
    "ProfileSelectionError",
    "PrivilegeError",
    "SettingsError",
    "CommandError",
    "ServiceControlError",
    "RegistryError",
]
