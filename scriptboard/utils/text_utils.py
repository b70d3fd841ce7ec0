"""Text utility functions for script processing."""

import re

WORDS_PER_MINUTE = 150

HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    return len(text.split())


def estimate_spoken_duration(text: str, words_per_minute: int = WORDS_PER_MINUTE) -> int:
    """
    Estimate the spoken duration of text in seconds.

    Args:
        text: Text to estimate duration for.
        words_per_minute: Average speaking rate (default 150 WPM).

    Returns:
        Estimated duration in seconds, rounded to the nearest second.
    """
    return round(count_words(text) / words_per_minute * 60)


def first_words(text: str, count: int) -> str:
    """Return the first `count` words of text joined by single spaces."""
    return " ".join(text.split()[:count])


def format_duration(seconds: float) -> str:
    """Format seconds as m:ss."""
    total = int(round(seconds))
    return f"{total // 60}:{total % 60:02d}"


def is_hex_color(value: str) -> bool:
    return bool(value) and bool(HEX_COLOR_RE.match(value))
