"""Error Handler - turns exceptions into log lines and machine-readable payloads."""

from typing import Any, Optional

from scriptboard.core.errors import ScriptboardError


def format_error_message(
    operation: str,
    error: Exception,
    context: Optional[dict] = None,
) -> str:
    """
    Format an error for the log.

    Args:
        operation: What was being done (e.g., "Searching stock assets")
        error: The exception that occurred
        context: Extra identifiers (e.g., {"project_id": "p1", "segment_id": "s1"})

    Returns:
        Single-line message
    """
    context_str = ""
    if context:
        context_str = " (" + ", ".join(f"{k}={v}" for k, v in context.items()) + ")"
    return f"❌ {operation} failed{context_str}: {type(error).__name__}: {error}"


def failure_reason(error: BaseException) -> str:
    """Machine-readable reason code for an exception."""
    if isinstance(error, ScriptboardError):
        return error.reason
    return "internal_error"


def error_payload(error: BaseException) -> dict[str, Any]:
    """
    Build the user-facing error body.

    Scriptboard errors expose their own message and details (flagged
    categories, mismatch percentage, placeholder percentage). Anything else
    is reported generically so raw provider text does not leak.
    """
    if isinstance(error, ScriptboardError):
        return error.to_dict()
    return {"reason": "internal_error", "message": "Unexpected error", "details": {}}
