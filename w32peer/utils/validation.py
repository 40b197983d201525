"""
Environment validation utilities.

Reconfiguring the time service requires Windows and an elevated process.
These checks run before anything is changed.
"""

import sys
from typing import List, Tuple

import structlog

from w32peer.service.backend import TimeServiceBackend

logger = structlog.get_logger(__name__)


def validate_platform(platform: str = sys.platform) -> Tuple[bool, List[str]]:
    """
    Validate that we are running on Windows.

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []
    if not platform.startswith("win"):
        errors.append(f"Windows is required (detected platform: {platform})")
    return len(errors) == 0, errors


def validate_privileges(backend: TimeServiceBackend) -> Tuple[bool, List[str]]:
    """
    Validate that the process holds administrative rights.

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []
    if not backend.is_admin():
        errors.append("Administrative privileges are required; run from an elevated prompt")
    return len(errors) == 0, errors


def validate_environment(backend: TimeServiceBackend, platform: str = sys.platform) -> Tuple[bool, List[str]]:
    """
    Run all environment checks.

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    platform_valid, platform_errors = validate_platform(platform)
    # Privilege checks only make sense on Windows
    if platform_valid:
        _, privilege_errors = validate_privileges(backend)
    else:
        privilege_errors = []

    all_errors = platform_errors + privilege_errors
    if all_errors:
        logger.error("Environment validation failed", errors=all_errors)
        return False, all_errors

    logger.info("Environment validation passed")
    return True, []
