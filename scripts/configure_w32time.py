#!/usr/bin/env python3
"""Configure the Windows Time Service from a source checkout.

Usage examples:
  - python scripts/configure_w32time.py --source Google
  - python scripts/configure_w32time.py --source NTPPool --unattended --skip-time-check

Run from an elevated prompt. Same flags as the ``w32peer`` console script.
"""

from __future__ import annotations

import sys
from pathlib import Path


# Ensure repo root is on sys.path (similar to other scripts)
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from w32peer.app.main import main  # noqa: E402


if __name__ == "__main__":
    sys.exit(main())
