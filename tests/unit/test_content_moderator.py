"""Tests for content moderation thresholds and failure policy."""

import pytest

from conftest import FakeLLMClient
from scriptboard.core.errors import ModerationFailure, ProviderError
from scriptboard.services.content_moderator import (
    CLASSIFIER_UNAVAILABLE,
    ContentModerator,
    flagged_categories,
)


def test_flagged_categories_at_threshold():
    assert flagged_categories({"violence": 0.85}) == ["violence"]
    assert flagged_categories({"violence": 0.84}) == []


def test_historical_violence_passes():
    assert flagged_categories({"violence": 0.6, "violence/graphic": 0.5, "hate": 0.3}) == []


def test_minor_safety_blocks_almost_immediately():
    assert flagged_categories({"sexual/minors": 0.02}) == ["sexual/minors"]


def test_unknown_categories_ignored():
    assert flagged_categories({"illicit": 0.99}) == []


def test_moderate_clean_text(settings, logger):
    moderator = ContentModerator(settings, logger, FakeLLMClient(moderation={"violence": 0.1}))

    result = moderator.moderate("A calm story")

    assert result.flagged is False
    assert result.categories == []
    assert result.classifier_failed is False


def test_moderate_flagged_text_returns_categories(settings, logger):
    moderator = ContentModerator(settings, logger, FakeLLMClient(moderation={"harassment": 0.9, "hate": 0.95}))

    result = moderator.moderate("Nasty text")

    assert result.flagged is True
    assert result.categories == ["hate", "harassment"]


def test_classifier_failure_allow_policy(settings, logger):
    settings.moderation_failure_policy = "allow"
    moderator = ContentModerator(settings, logger, FakeLLMClient(moderation=ProviderError("down", provider="openai")))

    result = moderator.moderate("text")

    assert result.flagged is False
    assert result.classifier_failed is True


def test_classifier_failure_block_policy(settings, logger):
    settings.moderation_failure_policy = "block"
    moderator = ContentModerator(settings, logger, FakeLLMClient(moderation=ProviderError("down", provider="openai")))

    with pytest.raises(ModerationFailure) as exc_info:
        moderator.moderate("text")

    assert exc_info.value.categories == [CLASSIFIER_UNAVAILABLE]
