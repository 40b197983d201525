"""Static NTP peer profiles.

Each profile is a fixed, ordered set of public NTP servers plus one host used
for strip chart diagnostics:

Facebook:  time1..time5.facebook.com    (diagnostic: time.facebook.com)
Google:    time1..time4.google.com      (diagnostic: time.google.com)
NTPPool:   0..3.pool.ntp.org            (diagnostic: pool.ntp.org)

Peers are rendered in w32tm's manual peer list syntax, ``host,0x8``, where
0x8 asks w32time to talk to the peer in client mode.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple, Union

from w32peer.errors import ProfileSelectionError

CLIENT_MODE = 0x8


class PeerSource(Enum):
    FACEBOOK = "Facebook"
    GOOGLE = "Google"
    NTPPOOL = "NTPPool"

    @classmethod
    def parse(cls, name: Union[str, "PeerSource"]) -> "PeerSource":
        if isinstance(name, cls):
            return name
        key = str(name).strip().lower()
        for source in cls:
            if source.value.lower() == key:
                return source
        valid = ", ".join(s.value for s in cls)
        raise ProfileSelectionError(f"Unknown NTP source '{name}'. Expected one of: {valid}")


@dataclass(frozen=True)
class PeerServer:
    host: str
    flags: int = CLIENT_MODE

    def render(self) -> str:
        return f"{self.host},{self.flags:#x}"


@dataclass(frozen=True)
class PeerProfile:
    source: PeerSource
    peers: Tuple[PeerServer, ...]
    diagnostic_server: str

    @property
    def name(self) -> str:
        return self.source.value

    @property
    def peer_list(self) -> str:
        """Space separated list accepted by ``w32tm /config /manualpeerlist``."""
        return " ".join(p.render() for p in self.peers)

    @property
    def hosts(self) -> List[str]:
        return [p.host for p in self.peers]


def _servers(*hosts: str) -> Tuple[PeerServer, ...]:
    return tuple(PeerServer(host=h) for h in hosts)


PROFILES = {
    PeerSource.FACEBOOK: PeerProfile(
        source=PeerSource.FACEBOOK,
        peers=_servers(*(f"time{i}.facebook.com" for i in range(1, 6))),
        diagnostic_server="time.facebook.com",
    ),
    PeerSource.GOOGLE: PeerProfile(
        source=PeerSource.GOOGLE,
        peers=_servers(*(f"time{i}.google.com" for i in range(1, 5))),
        diagnostic_server="time.google.com",
    ),
    PeerSource.NTPPOOL: PeerProfile(
        source=PeerSource.NTPPOOL,
        peers=_servers(*(f"{i}.pool.ntp.org" for i in range(0, 4))),
        diagnostic_server="pool.ntp.org",
    ),
}


def available_sources() -> List[str]:
    return [s.value for s in PeerSource]


def select_profile(source: Union[str, PeerSource]) -> PeerProfile:
    """Return the profile for ``source``; unknown names raise ProfileSelectionError."""
    return PROFILES[PeerSource.parse(source)]
