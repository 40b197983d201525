"""Per-run console transcript.

While active, everything written to ``sys.stdout`` (report, prompts, log
records) is also appended to a log file, one file per run.
"""

from __future__ import annotations

import os
import sys
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional, TextIO


class TeeStream:
    """Write-through wrapper duplicating output to a second stream."""

    def __init__(self, primary: TextIO, copy: TextIO) -> None:
        self.primary = primary
        self.copy = copy

    def write(self, data: str) -> int:
        # handlers configured during the run may outlive the transcript file
        if not self.copy.closed:
            self.copy.write(data)
        return self.primary.write(data)

    def flush(self) -> None:
        if not self.copy.closed:
            self.copy.flush()
        self.primary.flush()

    def isatty(self) -> bool:
        return self.primary.isatty()

    @property
    def encoding(self) -> str:
        return getattr(self.primary, "encoding", "utf-8")


def transcript_path(log_dir: str | os.PathLike, source: str, now: Optional[datetime] = None) -> Path:
    """Timestamped transcript file name, e.g. ``w32peer-Google-20260101-093000.log``."""
    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    return Path(log_dir) / f"w32peer-{source}-{stamp}.log"


@contextmanager
def transcript(path: Optional[str | os.PathLike]) -> Iterator[Optional[Path]]:
    """Tee ``sys.stdout`` into ``path`` for the duration of the block.

    ``None`` disables the transcript and yields ``None``.
    """
    if path is None:
        yield None
        return

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    original = sys.stdout
    with open(target, "a", encoding="utf-8") as f:
        f.write(f"**** Transcript started {datetime.now().isoformat(timespec='seconds')}\n")
        sys.stdout = TeeStream(original, f)
        try:
            yield target
        finally:
            sys.stdout.flush()
            sys.stdout = original
            f.write(f"**** Transcript ended {datetime.now().isoformat(timespec='seconds')}\n")
