"""Tests for the quality scorer."""

import json

import pytest

from conftest import FakeLLMClient
from scriptboard.core.errors import LLMResponseError
from scriptboard.models.schemas import QualityLevel
from scriptboard.services.quality_scorer import (
    SCORING_SYSTEM,
    QualityScorer,
    build_quality_score,
    quality_level,
)


def test_quality_level_steps():
    assert quality_level(75) == QualityLevel.GREEN
    assert quality_level(74) == QualityLevel.YELLOW
    assert quality_level(60) == QualityLevel.YELLOW
    assert quality_level(59) == QualityLevel.RED


def test_overall_is_weighted_and_rounded():
    score = build_quality_score({"clarity": 80, "pacing": 70, "hook": 60})

    # 80*0.40 + 70*0.35 + 60*0.25 = 71.5
    assert score.overall == round(71.5)
    assert score.level == QualityLevel.YELLOW


def test_subscores_are_clamped_and_defaulted():
    score = build_quality_score({"clarity": 150, "pacing": -20, "hook": "great"})

    assert score.clarity == 100
    assert score.pacing == 0
    assert score.hook == 50


def test_suggestions_capped_at_five():
    score = build_quality_score({"clarity": 50, "pacing": 50, "hook": 50, "suggestions": [f"s{i}" for i in range(8)]})
    assert score.suggestions == ["s0", "s1", "s2", "s3", "s4"]


def test_non_dict_reply_scores_neutral():
    score = build_quality_score(["not", "a", "dict"])
    assert (score.clarity, score.pacing, score.hook, score.overall) == (50, 50, 50, 50)


def test_score_quality_uses_llm(settings, logger):
    llm = FakeLLMClient({SCORING_SYSTEM: "```json\n" + json.dumps({"clarity": 90, "pacing": 80, "hook": 70}) + "\n```"})
    scorer = QualityScorer(settings, logger, llm)

    score = scorer.score_quality("Some script")

    assert score.overall == round(90 * 0.4 + 80 * 0.35 + 70 * 0.25)
    assert score.level == QualityLevel.GREEN
    assert "Some script" in llm.calls_for(SCORING_SYSTEM)[0]


def test_score_quality_malformed_json_raises(settings, logger):
    scorer = QualityScorer(settings, logger, FakeLLMClient({SCORING_SYSTEM: "not json"}))
    with pytest.raises(LLMResponseError):
        scorer.score_quality("Some script")
