import logging

import pytest
import structlog

from w32peer.config.settings import Settings
from w32peer.service.backend import QueryKind, ServiceState, TimeServiceBackend


class FakeTimeService(TimeServiceBackend):
    """In-memory time service that records every call in order."""

    def __init__(self, admin=True, exists=True, state=ServiceState.RUNNING):
        self.service_name = "w32time"
        self.calls = []
        self.admin = admin
        self.exists = exists
        self.state = state
        self.registry = {}
        self.peer_list = None
        self.fail = {}  # method name -> exception to raise
        self.query_output = {
            QueryKind.CONFIGURATION: "[Configuration]\nEventLogFlags: 2 (Local)\nType: NT5DS (Local)\n",
            QueryKind.STATUS: "Leap Indicator: 3(not synchronized)\nSource: Local CMOS Clock\n",
            QueryKind.PEERS: "#Peers: 1\n\nPeer: time.windows.com,0x9\n",
            QueryKind.TIMEZONE: "Time zone: Current:TIME_ZONE_ID_UNKNOWN Bias: 0min (UTC=LocalTime+Bias)\n",
        }

    def _call(self, name, *args):
        self.calls.append(name)
        if name in self.fail:
            raise self.fail[name]

    def names(self):
        return list(self.calls)

    def is_admin(self):
        return self.admin

    def service_exists(self):
        self._call("service_exists")
        return self.exists

    def get_service_state(self):
        self._call("get_service_state")
        return self.state

    def set_startup_mode(self, mode):
        self._call("set_startup_mode", mode)
        self.startup_mode = mode

    def start_service(self):
        self._call("start_service")
        self.state = ServiceState.RUNNING

    def stop_service(self):
        self._call("stop_service")
        self.state = ServiceState.STOPPED

    def restart_service(self):
        self._call("restart_service")
        self.state = ServiceState.RUNNING

    def register(self):
        self._call("register")
        self.exists = True

    def unregister(self):
        self._call("unregister")
        self.registry.clear()
        self.peer_list = None

    def get_config_value(self, setting):
        return self.registry.get((setting.subkey, setting.value_name))

    def set_config_value(self, setting, value):
        self._call(f"set_config_value:{setting.name}")
        self.registry[(setting.subkey, setting.value_name)] = value

    def query(self, kind):
        if f"query:{kind.value}" in self.fail:
            raise self.fail[f"query:{kind.value}"]
        output = self.query_output[kind]
        if kind is QueryKind.PEERS and self.peer_list:
            peers = self.peer_list.split()
            output = f"#Peers: {len(peers)}\n\n" + "\n".join(f"Peer: {p}" for p in peers) + "\n"
        return output

    def set_manual_peerlist(self, peer_list):
        self._call("set_manual_peerlist", peer_list)
        self.peer_list = peer_list

    def resync(self):
        self._call("resync")

    def stripchart(self, server, samples):
        self._call("stripchart")
        return f"Tracking {server} [1.2.3.4:123].\n" + "\n".join(
            f"09:00:0{i}, +00.0012345s" for i in range(samples)
        )


@pytest.fixture
def fake_backend():
    return FakeTimeService()


@pytest.fixture
def fast_settings(tmp_path):
    return Settings(_env_file=None, SETTLE_DELAY=0, TIME_CHECK_RETRY_DELAY=0, LOG_DIR=str(tmp_path / "logs"))


@pytest.fixture
def make_backend():
    return FakeTimeService


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers bound to a test's captured stdout once the test ends."""
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
