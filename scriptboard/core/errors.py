"""Exception taxonomy shared by every scriptboard component."""

from typing import Any, Optional


class ScriptboardError(Exception):
    """Base error. `reason` is a stable machine-readable code."""

    reason = "internal_error"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"reason": self.reason, "message": self.message, "details": self.details}


# ============================================================================
# Validation
# ============================================================================


class InputValidationError(ScriptboardError):
    """Malformed input. Rejected synchronously and never retried."""

    reason = "validation_error"


class InvalidTransition(InputValidationError):
    """Requested project status change is not in the transition table."""

    reason = "invalid_transition"

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot transition project from '{current}' to '{requested}'",
            {"current": current, "requested": requested},
        )
        self.current = current
        self.requested = requested


class DurationMismatchError(InputValidationError):
    """Selected asset is too far from the segment's target duration."""

    reason = "duration_mismatch"

    def __init__(self, percentage: float, message: str):
        super().__init__(message, {"percentage": round(percentage, 2)})
        self.percentage = percentage


class PlaceholderThresholdError(InputValidationError):
    """Too many placeholder segments for the storyboard to be rendered."""

    reason = "placeholder_threshold"

    def __init__(self, percentage: float, message: str):
        super().__init__(message, {"percentage": round(percentage, 2)})
        self.percentage = percentage


# ============================================================================
# Moderation
# ============================================================================


class ModerationFailure(ScriptboardError):
    """Content was flagged by the moderation classifier."""

    reason = "content_flagged"

    def __init__(self, categories: list[str], message: Optional[str] = None):
        super().__init__(
            message or f"Content flagged for: {', '.join(categories)}",
            {"categories": list(categories)},
        )
        self.categories = list(categories)


# ============================================================================
# External providers
# ============================================================================


class ProviderError(ScriptboardError):
    """A single external-service call failed."""

    reason = "provider_error"

    def __init__(self, message: str, provider: Optional[str] = None, details: Optional[dict[str, Any]] = None):
        details = dict(details or {})
        if provider:
            details.setdefault("provider", provider)
        super().__init__(message, details)
        self.provider = provider


class ProviderTimeout(ProviderError):
    """An external call exceeded its time bound."""

    reason = "provider_timeout"


class LLMResponseError(ProviderError):
    """The language model replied with something that cannot be parsed."""

    reason = "llm_response_invalid"


class InvalidSegmentation(LLMResponseError):
    """Segmentation reply was empty or not a list of segments."""

    reason = "invalid_segmentation"


class RetryExhausted(ScriptboardError):
    """Every attempt failed. Carries the last underlying error."""

    reason = "retry_exhausted"

    def __init__(self, message: str, last_error: Optional[BaseException] = None, attempts: int = 0):
        details = {"attempts": attempts}
        if last_error is not None:
            details["last_error"] = str(last_error)
        super().__init__(message, details)
        self.last_error = last_error
        self.attempts = attempts


class SynthesisFailed(RetryExhausted):
    """Primary and secondary speech providers both exhausted their retries."""

    reason = "synthesis_failed"


class AutoOptimizeExhausted(ScriptboardError):
    """The auto-optimize loop hit its attempt bound without improving the score."""

    reason = "auto_optimize_exhausted"

    def __init__(self, attempts: int, best_score: Optional[int] = None):
        super().__init__(
            f"Could not improve script quality after {attempts} attempts",
            {"attempts": attempts, "score": best_score},
        )
        self.attempts = attempts
        self.best_score = best_score


# ============================================================================
# Persistence
# ============================================================================


class PersistenceError(ScriptboardError):
    """Datastore operation failed. Always fatal."""

    reason = "persistence_error"


class ProjectNotFound(PersistenceError):
    """Project does not exist or belongs to another owner."""

    reason = "project_not_found"

    def __init__(self, project_id: str):
        super().__init__(f"Project not found: {project_id}", {"project_id": project_id})
        self.project_id = project_id


class SegmentNotFound(PersistenceError):
    reason = "segment_not_found"

    def __init__(self, segment_id: str):
        super().__init__(f"Segment not found: {segment_id}", {"segment_id": segment_id})
        self.segment_id = segment_id
