"""Script Engine - length validation, segmentation, rewriting and visual query generation."""

from typing import Any, Optional

from scriptboard.core.config import Settings
from scriptboard.core.errors import InvalidSegmentation
from scriptboard.models.schemas import (
    LengthStatus,
    LengthValidation,
    ScriptSegmentDraft,
    SegmentIntent,
    VisualQueries,
)
from scriptboard.services.llm_client import LLMClient, parse_json_response
from scriptboard.utils.text_utils import count_words, estimate_spoken_duration

MIN_OPTIMAL_WORDS = 300
MAX_OPTIMAL_WORDS = 5000

DEFAULT_ENERGY = 50
DEFAULT_DURATION_HINT = 20.0
DEFAULT_FALLBACK_QUERY = "generic footage"

SEGMENTATION_SYSTEM = """You are a video script analyzer. Break scripts into segments for video production.
Each segment should be 15-30 seconds of spoken content.
Identify the energy level and intent of each segment."""

SEGMENTATION_USER = """Analyze this script and break it into segments:

{script}

Return a JSON array with this structure:
[
  {{
    "text": "segment text",
    "energy": 0-100,
    "intent": "hook|explain|transition|conclude",
    "est_duration_hint": seconds
  }}
]"""

REWRITE_SYSTEM = """You are a script editor optimizing text for spoken video narration.
Make text conversational, punchy, and engaging while preserving meaning.
Shorten long sentences. Add verbal hooks. Maintain the author's voice."""

REWRITE_USER = """Rewrite this segment for video narration:

Original: {text}

Requirements:
- Keep under {target_duration:g} seconds when spoken
- Maintain original meaning
- Make it more engaging and conversational
- Energy level: {energy}/100

Return only the rewritten text."""

VISUAL_QUERY_SYSTEM = """You are a video editor generating stock footage search queries.
Create specific, visual search terms that will find relevant B-roll footage."""

VISUAL_QUERY_USER = """Generate 3 stock footage search queries for this narration:

"{text}"

Requirements:
- 3-6 words per query
- Visual and specific (not abstract concepts)
- Suitable for Pexels/Pixabay search
- Prefer video clips over static images

Also provide 1 fallback descriptive phrase.

Return JSON:
{{
  "queries": ["query1", "query2", "query3"],
  "fallback": "descriptive phrase"
}}"""

IMPROVE_SYSTEM = """You are an expert script editor. Improve this script based on quality feedback.
Focus on the specific areas mentioned in the suggestions.
Make targeted improvements without changing the overall structure or meaning."""

IMPROVE_USER = """Improve this script based on the following feedback:

Script:
{script}

Suggestions to address:
{suggestions}

Return only the improved script text."""


def validate_script_length(script: str) -> LengthValidation:
    """
    Classify a script by word count and estimate its spoken duration.

    Under 300 words is too_short, over 5000 too_long, anything else optimal.
    Duration assumes 150 words per minute.
    """
    word_count = count_words(script)
    estimated_duration = estimate_spoken_duration(script)

    if word_count < MIN_OPTIMAL_WORDS:
        status = LengthStatus.TOO_SHORT
        message = (
            f"Your script is quite short ({word_count} words). Consider expanding it for a more "
            f"engaging video, or proceed with a shorter video."
        )
    elif word_count > MAX_OPTIMAL_WORDS:
        status = LengthStatus.TOO_LONG
        message = (
            f"Your script is quite long ({word_count} words). Consider trimming it for optimal "
            f"viewer engagement, or proceed with a longer video."
        )
    else:
        status = LengthStatus.OPTIMAL
        message = f"Script length is optimal ({word_count} words, ~{round(estimated_duration / 60)} minutes)."

    return LengthValidation(
        word_count=word_count,
        char_count=len(script),
        estimated_duration=estimated_duration,
        status=status,
        message=message,
    )


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def normalize_segment(raw: Any) -> ScriptSegmentDraft:
    """Clamp energy to [0, 100], default intent to explain and duration hint to 20s."""
    raw = raw if isinstance(raw, dict) else {}

    energy = _number(raw.get("energy"))
    energy = DEFAULT_ENERGY if energy is None else int(round(min(100.0, max(0.0, energy))))

    intent = raw.get("intent")
    valid_intents = {i.value for i in SegmentIntent}
    intent = SegmentIntent(intent) if intent in valid_intents else SegmentIntent.EXPLAIN

    hint = _number(raw.get("est_duration_hint"))
    hint = hint if hint is not None and hint > 0 else DEFAULT_DURATION_HINT

    text = raw.get("text")
    return ScriptSegmentDraft(
        text=text.strip() if isinstance(text, str) else "",
        energy=energy,
        intent=intent,
        est_duration_hint=hint,
    )


def fallback_visual_queries(text: str) -> VisualQueries:
    """Queries built from the first three long words of the segment plus generic filler."""
    keywords = " ".join([w for w in text.split() if len(w) > 4][:3])
    queries = [q for q in (keywords, "generic footage", "background video") if q]
    return VisualQueries(queries=queries, fallback="abstract background")


class ScriptEngine:
    """Language-model driven segmentation and rewriting."""

    def __init__(self, settings: Settings, logger: Any, llm_client: LLMClient):
        """
        Initialize script engine.

        Args:
            settings: Application settings
            logger: Logger instance
            llm_client: Completion client
        """
        self.settings = settings
        self.logger = logger
        self.llm_client = llm_client

    def segment_script(self, script: str) -> list[ScriptSegmentDraft]:
        """
        Split a script into spoken segments.

        Returns:
            Normalized segments in script order

        Raises:
            InvalidSegmentation: If the reply is not a non-empty JSON array
            LLMResponseError: If the reply is not JSON at all
        """
        reply = self.llm_client.complete(SEGMENTATION_SYSTEM, SEGMENTATION_USER.format(script=script), max_tokens=4000)
        data = parse_json_response(reply)

        if isinstance(data, dict) and isinstance(data.get("segments"), list):
            data = data["segments"]
        if not isinstance(data, list) or not data:
            raise InvalidSegmentation("Invalid segmentation response: expected a non-empty array of segments")

        segments = [normalize_segment(item) for item in data]
        self.logger.info(f"Script split into {len(segments)} segments")
        return segments

    def optimize_segment(self, text: str, target_duration: float, energy: int) -> str:
        """Rewrite one segment for narration. Returns the trimmed rewrite."""
        reply = self.llm_client.complete(
            REWRITE_SYSTEM,
            REWRITE_USER.format(text=text, target_duration=target_duration, energy=energy),
            max_tokens=500,
        )
        return reply.strip()

    def generate_visual_queries(self, text: str) -> VisualQueries:
        """
        Three stock search phrases plus a fallback phrase for a segment.

        A reply that parses but has no usable queries falls back to keywords
        taken from the segment text.
        """
        reply = self.llm_client.complete(VISUAL_QUERY_SYSTEM, VISUAL_QUERY_USER.format(text=text), max_tokens=300)
        data = parse_json_response(reply)

        queries = data.get("queries") if isinstance(data, dict) else None
        queries = [q.strip() for q in queries if isinstance(q, str) and q.strip()] if isinstance(queries, list) else []
        if not queries:
            self.logger.warning("Visual query reply had no queries, using keyword fallback")
            return fallback_visual_queries(text)

        fallback = data.get("fallback")
        return VisualQueries(
            queries=queries[:3],
            fallback=fallback.strip() if isinstance(fallback, str) and fallback.strip() else DEFAULT_FALLBACK_QUERY,
        )

    def improve_script(self, script: str, suggestions: list[str]) -> str:
        """Targeted rewrite addressing quality suggestions. No suggestions, no call."""
        if not suggestions:
            return script

        numbered = "\n".join(f"{i + 1}. {s}" for i, s in enumerate(suggestions))
        reply = self.llm_client.complete(
            IMPROVE_SYSTEM,
            IMPROVE_USER.format(script=script, suggestions=numbered),
            max_tokens=4000,
        )
        return reply.strip()
