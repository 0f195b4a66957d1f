"""Quality chain construction and quality announcement parsing."""

from __future__ import annotations

import re

BASE_QUALITY_ORDER: tuple[str, ...] = ("4k", "1080p", "720p", "480p", "360p", "240p", "144p")

HIGH_FPS_SUFFIXES: tuple[str, ...] = ("60", "50", "", "30", "25", "24")
STANDARD_FPS_SUFFIXES: tuple[str, ...] = ("", "30", "25", "24")

WORST_QUALITY = "worst"
UNKNOWN_QUALITY = "unknown"

_TRAILING_DIGITS = re.compile(r"\d+$")

_QUALITY_ANNOUNCEMENTS: tuple[re.Pattern[str], ...] = (
    re.compile(r"Opening stream: ([^\s(]+)"),
    re.compile(r"Selected quality: (\S+)"),
    re.compile(r"Stream ended, will restart.*quality (\S+)"),
)


def base_quality(quality: str) -> str:
    """Strip the FPS suffix from a quality token (``720p60`` -> ``720p``)."""
    return _TRAILING_DIGITS.sub("", quality)


def quality_variants(base: str, record_high_fps: bool) -> list[str]:
    """FPS variants of one quality level, in preference order."""
    suffixes = HIGH_FPS_SUFFIXES if record_high_fps else STANDARD_FPS_SUFFIXES
    return [f"{base}{suffix}" for suffix in suffixes]


def build_quality_chain(quality: str, record_high_fps: bool) -> str:
    """
    Build the comma-separated quality chain passed to the helper.

    Starting at the requested base quality, every lower level contributes its
    FPS variants, and the chain always ends in ``worst`` so that a recording
    starts even when the preferred quality is not offered.

    Args:
        quality: Requested quality token, e.g. ``720p`` or ``1080p60``
        record_high_fps: Prefer 60/50 fps variants over standard frame rates

    Returns:
        The chain, e.g. ``720p,720p30,720p25,720p24,...,worst``
    """
    base = base_quality(quality)
    if base not in BASE_QUALITY_ORDER:
        return f"{quality},{WORST_QUALITY}"

    chain: list[str] = []
    for level in BASE_QUALITY_ORDER[BASE_QUALITY_ORDER.index(base):]:
        chain.extend(quality_variants(level, record_high_fps))
    chain.append(WORST_QUALITY)
    return ",".join(chain)


def extract_quality(line: str | None) -> str | None:
    """Return the quality announced on a helper output line, if any."""
    if not line:
        return None
    for pattern in _QUALITY_ANNOUNCEMENTS:
        match = pattern.search(line)
        if match:
            return match.group(1)
    return None
