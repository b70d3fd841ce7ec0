"""Utility functions for scriptboard."""

from scriptboard.utils.parallel_executor import ParallelExecutor
from scriptboard.utils.rate_limiter import PacingPolicy
from scriptboard.utils.retry import RetryPolicy, call_with_retry
from scriptboard.utils.text_utils import (
    count_words,
    estimate_spoken_duration,
    first_words,
    format_duration,
    is_hex_color,
)

__all__ = [
    "ParallelExecutor",
    "PacingPolicy",
    "RetryPolicy",
    "call_with_retry",
    "count_words",
    "estimate_spoken_duration",
    "first_words",
    "format_duration",
    "is_hex_color",
]
