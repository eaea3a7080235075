"""Guess a remote operating system from service banner text."""
from __future__ import annotations

import re
from typing import Optional, Pattern, Tuple

from lanscan_host.engine.models import UNKNOWN_VERSION, OSInfo

# (triggers, os name, version patterns tried in order)
# Distro-specific entries must stay ahead of the generic "linux" one.
OS_PATTERNS: Tuple[Tuple[Tuple[str, ...], str, Tuple[Pattern[str], ...]], ...] = (
    (("ubuntu",), "Linux (Ubuntu)", (re.compile(r"ubuntu[^\d]*(\d{2}\.\d{2})"),)),
    (("debian",), "Linux (Debian)", (re.compile(r"debian[^\d]*(\d+)"),)),
    (("centos",), "Linux (CentOS)", (re.compile(r"centos[^\d]*(\d+)"),)),
    (("redhat",), "Linux (RedHat)", (re.compile(r"redhat[^\d]*(\d+)"),)),
    (
        ("windows", "microsoft"),
        "Windows",
        (
            re.compile(r"windows[^\d]*(\d+(?:\.\d+)?)"),
            # IIS Server headers carry no Windows version, only their own
            re.compile(r"iis/(\d+(?:\.\d+)?)"),
        ),
    ),
    (("freebsd",), "FreeBSD", (re.compile(r"freebsd[^\d]*(\d+\.\d+)"),)),
    (("darwin", "macos"), "macOS (Darwin)", (re.compile(r"darwin[^\d]*(\d+\.\d+\.\d+)"),)),
    (("linux",), "Linux", (re.compile(r"linux[^\d]*(\d+\.\d+(?:\.\d+)?)"),)),
)


def _extract_version(text: str, patterns: Tuple[Pattern[str], ...]) -> str:
    for pattern in patterns:
        match = pattern.search(text)
        if match and match.group(1):
            return match.group(1)
    return UNKNOWN_VERSION


def classify_banner(banner: Optional[str]) -> Optional[OSInfo]:
    """Return the first OS whose trigger appears in ``banner``.

    Args:
        banner: Raw text received from a service, possibly partial.

    Returns:
        ``OSInfo`` for the first matching entry of ``OS_PATTERNS`` (version is
        ``"Unknown"`` when no version token is present), otherwise ``None``.
    """

    if not banner:
        return None

    text = banner.lower()
    for triggers, os_name, patterns in OS_PATTERNS:
        if any(t in text for t in triggers):
            return OSInfo(os=os_name, version=_extract_version(text, patterns))
    return None


__all__ = ["OS_PATTERNS", "classify_banner"]
