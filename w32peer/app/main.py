"""Command line entry point: point the Windows Time Service at public NTP peers.

Usage examples:
  - w32peer --source Google
  - w32peer --source NTPPool --unattended --skip-time-check
  - w32peer --source Facebook --dry-run --no-log
"""

from __future__ import annotations

import argparse
import sys
import time
from contextlib import ExitStack
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from w32peer.config.profiles import PeerProfile, available_sources, select_profile
from w32peer.config.settings import Settings, get_settings
from w32peer.errors import PrivilegeError, W32PeerError
from w32peer.report.snapshot import capture_snapshot, render_report, render_stripchart
from w32peer.service.backend import DryRunTimeService, TimeServiceBackend
from w32peer.service.sequencer import ReconfigurationSequencer
from w32peer.service.windows import WindowsTimeService
from w32peer.time.clock_check import ClockCheckConfig, check_clock
from w32peer.utils.logging_config import setup_logging
from w32peer.utils.transcript import transcript, transcript_path
from w32peer.utils.validation import validate_environment, validate_platform

EXIT_OK = 0
EXIT_FATAL = 1


@dataclass(frozen=True)
class RunOptions:
    source: str
    skip_time_check: bool = False
    unattended: bool = False
    skip_confirmation: bool = False
    log_file: Optional[str] = None
    no_log: bool = False
    dry_run: bool = False
    log_level: Optional[str] = None
    json_logs: bool = False

    @property
    def prompts_allowed(self) -> bool:
        return not self.unattended


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="w32peer",
        description="Reconfigure the Windows Time Service to sync with public NTP peers",
    )
    sources = available_sources()
    parser.add_argument(
        "--source",
        required=True,
        type=lambda s: next((v for v in sources if v.lower() == s.lower()), s),
        choices=sources,
        help="NTP peer source to configure",
    )
    parser.add_argument(
        "--skip-time-check",
        action="store_true",
        help="Do not compare the local clock against an HTTPS Date header first",
    )
    parser.add_argument(
        "--skip-confirmation",
        action="store_true",
        help="Do not ask before changing the time service",
    )
    parser.add_argument(
        "--unattended",
        action="store_true",
        help="Never wait for input (implies --skip-confirmation, no final pause)",
    )
    log_group = parser.add_mutually_exclusive_group()
    log_group.add_argument(
        "--log-file",
        default=None,
        help="Transcript path (default: <LOG_DIR>/w32peer-<source>-<timestamp>.log)",
    )
    log_group.add_argument(
        "--no-log",
        action="store_true",
        help="Do not write a transcript file",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would change without touching the service or registry",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Console log level (default: W32PEER_LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Render log records as JSON",
    )
    return parser


def parse_options(argv: Optional[Sequence[str]] = None) -> RunOptions:
    args = build_parser().parse_args(argv)
    return RunOptions(
        source=args.source,
        skip_time_check=args.skip_time_check,
        unattended=args.unattended,
        skip_confirmation=args.skip_confirmation or args.unattended,
        log_file=args.log_file,
        no_log=args.no_log,
        dry_run=args.dry_run,
        log_level=args.log_level,
        json_logs=args.json_logs,
    )


def confirm(prompt: str, input_fn: Callable[[str], str] = input) -> bool:
    try:
        answer = input_fn(f"{prompt} [y/N]: ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def print_banner(profile: PeerProfile, settings: Settings, dry_run: bool) -> None:
    print("=" * 60)
    print(f"Windows Time Service peer configuration: {profile.name}")
    if dry_run:
        print("DRY RUN: no changes will be made")
    print("=" * 60)
    print(f"Service:            {settings.SERVICE_NAME}")
    print(f"Peers:              {profile.peer_list}")
    print(f"Diagnostic server:  {profile.diagnostic_server}")
    print(f"Poll interval:      2^{settings.MIN_POLL_INTERVAL}s .. 2^{settings.MAX_POLL_INTERVAL}s")
    print(
        f"Phase correction:   +{settings.MAX_POS_PHASE_CORRECTION}s / "
        f"-{settings.MAX_NEG_PHASE_CORRECTION}s"
    )
    print(f"UtilizeSslTimeData: {settings.UTILIZE_SSL_TIME_DATA}")
    print()


def run_configuration(
    options: RunOptions,
    profile: PeerProfile,
    settings: Settings,
    backend: TimeServiceBackend,
    session=None,
    input_fn: Callable[[str], str] = input,
    sleep: Callable[[float], None] = time.sleep,
    platform: str = sys.platform,
    interactive: bool = False,
) -> int:
    """Everything after argument parsing; raises W32PeerError on fatal errors."""
    logger = setup_logging(
        level=options.log_level or settings.LOG_LEVEL,
        component="w32peer",
        json_logs=options.json_logs,
    )

    if options.dry_run:
        valid, errors = validate_platform(platform)
        backend = DryRunTimeService(backend)
    else:
        valid, errors = validate_environment(backend, platform)
    if not valid:
        raise PrivilegeError("; ".join(errors))

    print_banner(profile, settings, options.dry_run)
    logger.info(
        "SSL time data setting",
        utilize_ssl_time_data=settings.UTILIZE_SSL_TIME_DATA,
        note="set W32PEER_UTILIZE_SSL_TIME_DATA=1 to leave it enabled",
    )

    if options.skip_time_check:
        logger.info("Clock check skipped")
    else:
        result = check_clock(ClockCheckConfig.from_settings(settings), session=session, sleep=sleep)
        print(result.describe())
        print()

    if options.prompts_allowed and not options.skip_confirmation:
        if not confirm(f"Reset {settings.SERVICE_NAME} and configure {profile.name} peers?", input_fn):
            print("Aborted; no changes were made.")
            logger.info("Aborted at confirmation prompt")
            return EXIT_OK

    before = capture_snapshot(backend, settings, "Before")
    outcome = ReconfigurationSequencer(backend, settings, sleep=sleep).run(profile)
    after = capture_snapshot(backend, settings, "After")

    print()
    print(render_report(before, after))
    chart = render_stripchart(backend, profile, settings.STRIPCHART_SAMPLES)
    if chart:
        print(chart)
        print()

    for warning in outcome.warnings:
        print(f"WARNING: {warning}")
    verb = "would now synchronize" if options.dry_run else "now synchronizes"
    print(f"SUCCESS: {settings.SERVICE_NAME} {verb} with {profile.name} peers ({profile.peer_list})")

    if options.prompts_allowed and interactive:
        try:
            input_fn("Press Enter to exit...")
        except EOFError:
            pass
    return EXIT_OK


def run(
    options: RunOptions,
    backend: Optional[TimeServiceBackend] = None,
    settings: Optional[Settings] = None,
    session=None,
    input_fn: Callable[[str], str] = input,
    sleep: Callable[[float], None] = time.sleep,
    platform: str = sys.platform,
    interactive: Optional[bool] = None,
) -> int:
    if interactive is None:
        interactive = sys.stdin is not None and sys.stdin.isatty()
    try:
        settings = settings or get_settings()
        profile = select_profile(options.source)
    except W32PeerError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_FATAL

    log_path = None
    if not options.no_log:
        log_path = options.log_file or transcript_path(settings.LOG_DIR, profile.name)

    stack = ExitStack()
    try:
        path = stack.enter_context(transcript(log_path))
    except OSError as e:
        print(f"ERROR: cannot open transcript {log_path}: {e}", file=sys.stderr)
        return EXIT_FATAL

    if backend is None:
        backend = WindowsTimeService(settings.SERVICE_NAME)
    with stack:
        try:
            code = run_configuration(
                options,
                profile,
                settings,
                backend,
                session=session,
                input_fn=input_fn,
                sleep=sleep,
                platform=platform,
                interactive=interactive,
            )
        except W32PeerError as e:
            print(f"ERROR: {e}")
            code = EXIT_FATAL
        if path is not None:
            print(f"Transcript written to {path}")
    return code


def main(argv: Optional[Sequence[str]] = None) -> int:
    return run(parse_options(argv))


if __name__ == "__main__":
    sys.exit(main())
