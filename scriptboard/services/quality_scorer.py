"""Quality Scorer - LLM-rated clarity, pacing and hook scores for a script."""

from typing import Any, Optional

from scriptboard.core.config import Settings
from scriptboard.models.schemas import QualityLevel, QualityScore
from scriptboard.services.llm_client import LLMClient, parse_json_response

GREEN_THRESHOLD = 75
YELLOW_THRESHOLD = 60
DEFAULT_SUBSCORE = 50
MAX_SUGGESTIONS = 5

CLARITY_WEIGHT = 0.40
PACING_WEIGHT = 0.35
HOOK_WEIGHT = 0.25

SCORING_SYSTEM = """You are a script quality analyzer for video production.
Score scripts on clarity, pacing, and hook effectiveness."""

SCORING_USER = """Analyze this optimized script and provide quality scores:

{script}

Score 0-100 on:
- Clarity: Is it easy to understand?
- Pacing: Good rhythm and flow?
- Hook: Does it grab attention?

Return JSON:
{{
  "clarity": score,
  "pacing": score,
  "hook": score,
  "overall": average_score,
  "suggestions": ["suggestion1", "suggestion2"]
}}"""


def quality_level(score: float) -> QualityLevel:
    """>= 75 green, >= 60 yellow, else red."""
    if score >= GREEN_THRESHOLD:
        return QualityLevel.GREEN
    if score >= YELLOW_THRESHOLD:
        return QualityLevel.YELLOW
    return QualityLevel.RED


def _subscore(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_SUBSCORE
    return int(round(min(100.0, max(0.0, float(value)))))


def build_quality_score(data: Any) -> QualityScore:
    """
    Turn a raw scoring reply into a QualityScore.

    Missing or non-numeric sub-scores default to 50; all are clamped to
    [0, 100]. The model's own "overall" is ignored in favour of
    round(0.40 * clarity + 0.35 * pacing + 0.25 * hook).
    """
    data = data if isinstance(data, dict) else {}
    clarity = _subscore(data.get("clarity"))
    pacing = _subscore(data.get("pacing"))
    hook = _subscore(data.get("hook"))
    overall = round(clarity * CLARITY_WEIGHT + pacing * PACING_WEIGHT + hook * HOOK_WEIGHT)

    suggestions = data.get("suggestions")
    suggestions = [str(s) for s in suggestions][:MAX_SUGGESTIONS] if isinstance(suggestions, list) else []

    return QualityScore(
        clarity=clarity,
        pacing=pacing,
        hook=hook,
        overall=overall,
        suggestions=suggestions,
        level=quality_level(overall),
    )


class QualityScorer:
    """Scores a whole script through the language model."""

    def __init__(self, settings: Settings, logger: Any, llm_client: LLMClient):
        self.settings = settings
        self.logger = logger
        self.llm_client = llm_client

    def score_quality(self, script: str, logger: Optional[Any] = None) -> QualityScore:
        """
        Score a script.

        Args:
            script: Script text (usually the joined optimized segments)
            logger: Optional logger carrying project context

        Returns:
            QualityScore with level and up to 5 suggestions
        """
        log = logger or self.logger
        reply = self.llm_client.complete(SCORING_SYSTEM, SCORING_USER.format(script=script), max_tokens=500)
        score = build_quality_score(parse_json_response(reply))
        log.info(
            f"Quality score: {score.overall} ({score.level.value}) "
            f"clarity={score.clarity} pacing={score.pacing} hook={score.hook}"
        )
        return score
