"""Duration/Aspect Reconciler - pure compatibility checks between assets and segments."""

from typing import Optional

from scriptboard.core.errors import DurationMismatchError, PlaceholderThresholdError
from scriptboard.models.schemas import (
    DurationCheck,
    MismatchLevel,
    Orientation,
    PlaceholderCheck,
)

SILENT_ADJUST_RATIO = 0.05
WARN_RATIO = 0.20
MAX_PLACEHOLDER_PERCENT = 30.0

AUDIO_WARN_RATIO = 0.20
AUDIO_BLOCK_RATIO = 0.50


def aspect_ratio(width: int, height: int) -> float:
    """Width / height, 0.0 when the height is unknown."""
    if not height or height <= 0:
        return 0.0
    return width / height


def orientation_for(width: int, height: int) -> Orientation:
    if width > height:
        return Orientation.LANDSCAPE
    if width < height:
        return Orientation.PORTRAIT
    return Orientation.SQUARE


def check_duration_mismatch(selected_duration: Optional[float], target_duration: float) -> DurationCheck:
    """
    Compare a selected asset's native duration with a segment's target.

    Args:
        selected_duration: Asset duration in seconds, None for images
        target_duration: Segment target duration in seconds

    Returns:
        DurationCheck with level good (image), silent (<=5%), warn (<=20%) or
        block (>20%). Speed factor is target / selected for silent and warn.
    """
    if selected_duration is None:
        return DurationCheck(
            level=MismatchLevel.GOOD,
            percentage=0.0,
            message="Image will be converted to video",
        )

    if target_duration <= 0 or selected_duration <= 0:
        return DurationCheck(
            level=MismatchLevel.BLOCK,
            percentage=100.0,
            message="Cannot reconcile non-positive durations",
        )

    ratio = abs(selected_duration - target_duration) / target_duration
    percentage = ratio * 100
    speed_factor = target_duration / selected_duration

    if ratio <= SILENT_ADJUST_RATIO:
        return DurationCheck(
            level=MismatchLevel.SILENT,
            percentage=percentage,
            speed_factor=speed_factor,
            message="Good match",
        )

    if ratio <= WARN_RATIO:
        direction = "slowed" if speed_factor > 1 else "sped up"
        return DurationCheck(
            level=MismatchLevel.WARN,
            percentage=percentage,
            speed_factor=speed_factor,
            message=f"Will be {direction} {abs(speed_factor - 1) * 100:.0f}%",
        )

    return DurationCheck(
        level=MismatchLevel.BLOCK,
        percentage=percentage,
        message=f"Duration mismatch too large ({percentage:.0f}%)",
    )


def ensure_selectable(selected_duration: Optional[float], target_duration: float) -> DurationCheck:
    """Same as check_duration_mismatch but raises DurationMismatchError on block."""
    check = check_duration_mismatch(selected_duration, target_duration)
    if check.level == MismatchLevel.BLOCK:
        raise DurationMismatchError(check.percentage, check.message)
    return check


def validate_placeholder_ratio(placeholder_count: int, total_segments: int) -> PlaceholderCheck:
    """
    Check that placeholders make up at most 30% of the storyboard.

    An empty storyboard reports 0% and is valid here; render readiness
    separately requires at least one segment.
    """
    percentage = (placeholder_count / total_segments * 100) if total_segments > 0 else 0.0
    valid = percentage <= MAX_PLACEHOLDER_PERCENT
    if valid:
        message = f"{placeholder_count}/{total_segments} segments use placeholders ({percentage:.0f}%)"
    else:
        message = (
            f"Too many placeholders: {placeholder_count}/{total_segments} ({percentage:.0f}%). "
            f"Maximum allowed is {MAX_PLACEHOLDER_PERCENT:.0f}%."
        )
    return PlaceholderCheck(
        valid=valid,
        placeholder_count=placeholder_count,
        total_segments=total_segments,
        percentage=percentage,
        message=message,
    )


def ensure_placeholder_ratio(placeholder_count: int, total_segments: int) -> PlaceholderCheck:
    check = validate_placeholder_ratio(placeholder_count, total_segments)
    if not check.valid:
        raise PlaceholderThresholdError(check.percentage, check.message)
    return check


def check_audio_duration(actual_duration: float, expected_duration: float) -> DurationCheck:
    """
    Compare synthesized audio length with the segment's expected duration.

    Drift up to 20% is fine, up to 50% warns, beyond that blocks.
    """
    if expected_duration <= 0:
        return DurationCheck(level=MismatchLevel.GOOD, percentage=0.0, message="No expected duration")

    ratio = abs(actual_duration - expected_duration) / expected_duration
    percentage = ratio * 100

    if ratio > AUDIO_BLOCK_RATIO:
        level = MismatchLevel.BLOCK
        message = f"Audio is {percentage:.0f}% off the expected {expected_duration:.1f}s"
    elif ratio > AUDIO_WARN_RATIO:
        level = MismatchLevel.WARN
        message = f"Audio differs from the expected duration by {percentage:.0f}%"
    else:
        level = MismatchLevel.GOOD
        message = "Audio duration within tolerance"
    return DurationCheck(level=level, percentage=percentage, message=message)
