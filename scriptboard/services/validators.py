"""Input validators for project and segment edits."""

from scriptboard.core.errors import InputValidationError
from scriptboard.utils.text_utils import is_hex_color

MIN_SCRIPT_CHARS = 100
MAX_SCRIPT_CHARS = 50000
MAX_SEGMENT_CHARS = 2000
MAX_TITLE_CHARS = 200

MIN_SEGMENT_DURATION = 0.5
MAX_SEGMENT_DURATION = 600.0
MIN_SILENCE_DURATION = 0.5
MAX_SILENCE_DURATION = 60.0


def validate_title(title: str) -> str:
    title = (title or "").strip()
    if not title:
        raise InputValidationError("Title cannot be empty")
    if len(title) > MAX_TITLE_CHARS:
        raise InputValidationError(f"Title must be at most {MAX_TITLE_CHARS} characters")
    return title


def validate_script(script: str) -> str:
    """Script must be 100-50000 characters after trimming."""
    script = (script or "").strip()
    if len(script) < MIN_SCRIPT_CHARS:
        raise InputValidationError(f"Script must be at least {MIN_SCRIPT_CHARS} characters")
    if len(script) > MAX_SCRIPT_CHARS:
        raise InputValidationError(f"Script must be at most {MAX_SCRIPT_CHARS} characters")
    return script


def validate_segment_text(text: str) -> str:
    text = (text or "").strip()
    if not text:
        raise InputValidationError("Segment text cannot be empty")
    if len(text) > MAX_SEGMENT_CHARS:
        raise InputValidationError(f"Segment text must be at most {MAX_SEGMENT_CHARS} characters")
    return text


def validate_duration(seconds: float, silence: bool = False) -> float:
    """0.5-600s for segments, 0.5-60s for silence."""
    low = MIN_SILENCE_DURATION if silence else MIN_SEGMENT_DURATION
    high = MAX_SILENCE_DURATION if silence else MAX_SEGMENT_DURATION
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)) or not low <= seconds <= high:
        raise InputValidationError(f"Duration must be between {low} and {high} seconds")
    return float(seconds)


def validate_color(color: str) -> str:
    """Hex colour in #RRGGBB form."""
    if not is_hex_color(color):
        raise InputValidationError(f"Invalid color '{color}'. Use the #RRGGBB format")
    return color.lower()
