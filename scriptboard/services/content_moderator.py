"""Content Moderator - thresholds over moderation scores with an explicit failure policy."""

from typing import Any

from scriptboard.core.config import Settings
from scriptboard.core.errors import ModerationFailure, ProviderError
from scriptboard.models.schemas import ModerationResult
from scriptboard.services.llm_client import LLMClient

# A category is flagged when its score reaches its threshold.
# Exploitation-adjacent categories block almost immediately; violence, hate
# and harassment need high scores so educational and historical scripts pass.
MODERATION_THRESHOLDS: dict[str, float] = {
    "sexual/minors": 0.01,
    "self-harm/intent": 0.3,
    "self-harm/instructions": 0.3,
    "hate/threatening": 0.7,
    "violence/graphic": 0.7,
    "violence": 0.85,
    "hate": 0.8,
    "harassment/threatening": 0.7,
    "harassment": 0.8,
    "self-harm": 0.6,
    "sexual": 0.7,
}

CLASSIFIER_UNAVAILABLE = "moderation_unavailable"


def flagged_categories(scores: dict[str, float], thresholds: dict[str, float] = MODERATION_THRESHOLDS) -> list[str]:
    """Categories whose score is at or above the threshold, in threshold-table order."""
    return [
        category
        for category, threshold in thresholds.items()
        if scores.get(category) is not None and scores[category] >= threshold
    ]


class ContentModerator:
    """Checks scripts before any generation work starts."""

    def __init__(self, settings: Settings, logger: Any, llm_client: LLMClient):
        """
        Initialize content moderator.

        Args:
            settings: Application settings (moderation_failure_policy)
            logger: Logger instance
            llm_client: Client exposing moderation_scores()
        """
        self.settings = settings
        self.logger = logger
        self.llm_client = llm_client

    def moderate(self, text: str) -> ModerationResult:
        """
        Score text and flag categories over threshold.

        When the classifier itself fails, `moderation_failure_policy` decides:
        "allow" logs a warning and returns an unflagged result marked
        classifier_failed; "block" raises ModerationFailure.

        Returns:
            ModerationResult (flagged results are returned, not raised)
        """
        try:
            scores = self.llm_client.moderation_scores(text)
        except ProviderError as e:
            if self.settings.moderation_failure_policy == "block":
                self.logger.error(f"[Moderation] Classifier unavailable, blocking content: {e}")
                raise ModerationFailure([CLASSIFIER_UNAVAILABLE], "Moderation classifier unavailable") from e
            self.logger.warning(f"[Moderation] Classifier unavailable, allowing content through: {e}")
            return ModerationResult(flagged=False, categories=[], classifier_failed=True)

        categories = flagged_categories(scores)
        for category in categories:
            self.logger.info(
                f"[Moderation] Category '{category}' flagged: score={scores[category]:.3f}, "
                f"threshold={MODERATION_THRESHOLDS[category]}"
            )
        self.logger.debug(f"[Moderation] Scores: {scores}")

        return ModerationResult(flagged=bool(categories), categories=categories, scores=scores)
