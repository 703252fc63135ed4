"""Host-derived fingerprint generation."""
from __future__ import annotations

import logging
import sys
import time
from dataclasses import dataclass
from typing import Optional, Tuple

from ..models import DEFAULT_LOCALE, FingerprintProfile

LOGGER = logging.getLogger(__name__)

CANONICAL_DEVICE = "Desktop Chrome"

# (lower bound exclusive, upper bound inclusive, zone); None means unbounded.
# Offsets use the JavaScript getTimezoneOffset convention: UTC+8 -> -480.
# Ranges overlap, so order matters and the first match wins.
TIMEZONE_BUCKETS: Tuple[Tuple[Optional[int], Optional[int], str], ...] = (
    (-600, -480, "Asia/Shanghai"),
    (None, -540, "Asia/Tokyo"),
    (-480, -420, "Asia/Bangkok"),
    (-60, 0, "Europe/London"),
    (0, 60, "Europe/Berlin"),
    (240, 300, "America/New_York"),
)

PLATFORM_DEVICES = {
    "darwin": "Desktop Safari",
    "win32": "Desktop Edge",
    "linux": "Desktop Firefox",
}


@dataclass(frozen=True)
class HostHints:
    """Host signals a fingerprint is derived from."""

    locale_override: Optional[str] = None
    env_locale: Optional[str] = None
    utc_offset_minutes: int = -480
    platform: str = "linux"
    hour: int = 12

    @classmethod
    def collect(
        cls,
        locale_override: Optional[str] = None,
        env_locale: Optional[str] = None,
    ) -> "HostHints":
        """Read clock and platform signals from the running host."""
        now = time.localtime()
        return cls(
            locale_override=locale_override,
            env_locale=env_locale,
            utc_offset_minutes=-(now.tm_gmtoff or 0) // 60,
            platform=sys.platform,
            hour=now.tm_hour,
        )


def timezone_for_offset(offset_minutes: int) -> str:
    """Map a getTimezoneOffset-style offset to an IANA zone."""
    for lower, upper, zone in TIMEZONE_BUCKETS:
        if lower is not None and offset_minutes <= lower:
            continue
        if upper is not None and offset_minutes > upper:
            continue
        return zone
    return TIMEZONE_BUCKETS[0][2]


def color_scheme_for_hour(hour: int) -> str:
    return "dark" if hour >= 19 or hour < 7 else "light"


def device_for_platform(platform: str) -> str:
    return PLATFORM_DEVICES.get(platform, CANONICAL_DEVICE)


def generate_fingerprint(hints: HostHints) -> FingerprintProfile:
    """Generate a complete fingerprint from one set of host signals.

    Parameters
    ----------
    hints : HostHints
        Locale override, environment locale, UTC offset, platform and hour

    Returns
    -------
    FingerprintProfile
        Profile whose fields all come from ``hints``
    """
    host_device = device_for_platform(hints.platform)
    if host_device != CANONICAL_DEVICE:
        # Result selectors are tuned against Chrome's markup.
        LOGGER.debug("Host suggests %s, pinning %s", host_device, CANONICAL_DEVICE)

    profile = FingerprintProfile(
        device_name=CANONICAL_DEVICE,
        locale=hints.locale_override or hints.env_locale or DEFAULT_LOCALE,
        timezone_id=timezone_for_offset(hints.utc_offset_minutes),
        color_scheme=color_scheme_for_hour(hints.hour),
        reduced_motion="no-preference",
        forced_colors="none",
    )
    LOGGER.info(
        "Generated fingerprint: locale=%s timezone=%s scheme=%s device=%s",
        profile.locale,
        profile.timezone_id,
        profile.color_scheme,
        profile.device_name,
    )
    return profile
