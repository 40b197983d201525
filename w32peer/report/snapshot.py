"""Before/after snapshots of the time service configuration.

The report pairs lines by position only. It is an approximate side-by-side
view for a human reader, not a semantic diff: a line inserted near the top of
one side shifts every row below it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import structlog

from w32peer.config.profiles import PeerProfile
from w32peer.errors import CommandError
from w32peer.service.backend import QueryKind, TimeServiceBackend
from w32peer.service.registry import snapshot_settings, ssl_time_data_setting

logger = structlog.get_logger(__name__)

NOT_SET = "<not set>"

SECTION_QUERIES = (
    ("configuration", QueryKind.CONFIGURATION),
    ("status", QueryKind.STATUS),
    ("peers", QueryKind.PEERS),
    ("timezone", QueryKind.TIMEZONE),
)


@dataclass
class Snapshot:
    label: str
    sections: Dict[str, List[str]] = field(default_factory=dict)

    def lines(self, section: str) -> List[str]:
        return self.sections.get(section, [])


@dataclass(frozen=True)
class LinePair:
    index: int
    before: str
    after: str

    @property
    def changed(self) -> bool:
        return self.before != self.after


def _query_lines(backend: TimeServiceBackend, kind: QueryKind) -> List[str]:
    try:
        output = backend.query(kind)
    except CommandError as e:
        logger.warning("Diagnostic query failed", query=kind.value, error=str(e))
        return [f"<unavailable: {e}>"]
    return [line.rstrip() for line in output.splitlines() if line.strip()]


def _registry_value(backend: TimeServiceBackend, setting) -> str:
    try:
        value = backend.get_config_value(setting)
    except OSError as e:
        logger.warning("Registry value unreadable", key=setting.key_path, name=setting.value_name, error=str(e))
        return f"<unavailable: {e}>"
    if value is None:
        logger.warning("Registry value not set", key=setting.key_path, name=setting.value_name)
        return NOT_SET
    return str(value)


def capture_snapshot(backend: TimeServiceBackend, settings, label: str) -> Snapshot:
    """Collect everything shown in the report; failures are recorded, not raised."""
    snapshot = Snapshot(label=label)
    for name, kind in SECTION_QUERIES:
        snapshot.sections[name] = _query_lines(backend, kind)

    ssl = ssl_time_data_setting()
    snapshot.sections["ssl_time_data"] = [f"UtilizeSslTimeData = {_registry_value(backend, ssl)}"]
    snapshot.sections["registry"] = [
        f"{s.name} = {_registry_value(backend, s)}" for s in snapshot_settings(settings)
    ]
    logger.debug("Snapshot captured", label=label, sections=list(snapshot.sections))
    return snapshot


def pair_lines(before: List[str], after: List[str]) -> List[LinePair]:
    """Pair two line lists by index, padding the shorter one with empty strings."""
    total = max(len(before), len(after))
    padded_before = list(before) + [""] * (total - len(before))
    padded_after = list(after) + [""] * (total - len(after))
    return [LinePair(i, b, a) for i, (b, a) in enumerate(zip(padded_before, padded_after))]


def render_report(before: Snapshot, after: Snapshot, max_width: int = 60) -> str:
    """Side-by-side table, one block per section; ``*`` marks rows that differ."""
    names = list(before.sections)
    names += [n for n in after.sections if n not in names]

    out: List[str] = []
    for name in names:
        pairs = pair_lines(before.lines(name), after.lines(name))
        width = min(max([len(before.label)] + [len(p.before) for p in pairs]), max_width)
        out.append(f"==== {name} ====")
        out.append(f"  {before.label.ljust(width)} | {after.label}")
        out.append(f"  {'-' * width}-+-{'-' * max(len(after.label), 8)}")
        for pair in pairs:
            marker = "*" if pair.changed else " "
            out.append(f"{marker} {pair.before.ljust(width)} | {pair.after}")
        out.append("")
    return "\n".join(out)


def render_stripchart(backend: TimeServiceBackend, profile: PeerProfile, samples: int) -> Optional[str]:
    """Offset samples against the profile's diagnostic server, or None if unavailable."""
    if samples <= 0:
        return None
    try:
        output = backend.stripchart(profile.diagnostic_server, samples)
    except CommandError as e:
        logger.warning("Strip chart failed", server=profile.diagnostic_server, error=str(e))
        return None
    lines = [line.rstrip() for line in output.splitlines() if line.strip()]
    header = f"==== stripchart: {profile.diagnostic_server} ({samples} samples) ===="
    return "\n".join([header, *lines])
