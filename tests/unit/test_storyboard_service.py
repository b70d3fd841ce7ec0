"""Tests for project creation, segment edits, summary and render gating."""

import pytest

from conftest import SAMPLE_SCRIPT, FakeSpeechProvider, FixedProbe, make_asset, make_ready_project
from scriptboard.core.errors import (
    DurationMismatchError,
    InputValidationError,
    InvalidTransition,
    PlaceholderThresholdError,
    SynthesisFailed,
)
from scriptboard.models.schemas import AssetStatus, JobStatus, JobType, MismatchLevel, ProjectStatus
from scriptboard.services.asset_cache import AssetCache
from scriptboard.services.speech_synthesizer import SpeechSynthesisService
from scriptboard.services.storyboard_service import StoryboardService
from scriptboard.services.tts_cache import TTSCache
from scriptboard.storage.object_storage import LocalObjectStorage

OWNER = "alice"


@pytest.fixture
def asset_cache(settings, logger):
    return AssetCache(settings, logger)


@pytest.fixture
def speech_provider(settings, logger):
    return FakeSpeechProvider(settings, logger)


@pytest.fixture
def service(settings, logger, repository, asset_cache, speech_provider):
    synthesizer = SpeechSynthesisService(
        settings,
        logger,
        [speech_provider],
        TTSCache(settings, logger),
        LocalObjectStorage(settings, logger),
        probe=FixedProbe(4.0),
        sleep=lambda _: None,
    )
    return StoryboardService(settings, logger, repository, asset_cache=asset_cache, synthesizer=synthesizer)


@pytest.fixture
def project(repository):
    return make_ready_project(
        repository,
        OWNER,
        suggestions=[make_asset("20", duration=20), make_asset("22", duration=22), make_asset("30", duration=30)],
    )


class TestCreateProject:
    def test_creates_draft(self, service):
        project = service.create_project(OWNER, "  Coffee  ", SAMPLE_SCRIPT, "calm_educator")

        assert project.status == ProjectStatus.DRAFT
        assert project.title == "Coffee"
        assert project.voice_preset.value == "calm_educator"

    @pytest.mark.parametrize(
        "title,script,preset",
        [
            ("", SAMPLE_SCRIPT, "professional_narrator"),
            ("Coffee", "Too short", "professional_narrator"),
            ("Coffee", SAMPLE_SCRIPT, "robot"),
        ],
    )
    def test_rejects_invalid_input(self, service, title, script, preset):
        with pytest.raises(InputValidationError):
            service.create_project(OWNER, title, script, preset)


class TestSelectAsset:
    def test_exact_match_needs_no_speed_change(self, service, project):
        segment, check = service.select_asset(project.id, OWNER, "seg_1", "pexels", "20")

        assert check.level == MismatchLevel.SILENT
        assert segment.asset_status == AssetStatus.HAS_ASSET
        assert segment.selected_asset.provider_asset_id == "20"
        assert segment.speed_adjusted is False
        assert segment.speed_factor == 1.0

    def test_ten_percent_off_is_speed_adjusted(self, service, project):
        segment, check = service.select_asset(project.id, OWNER, "seg_1", "pexels", "22")

        assert check.level == MismatchLevel.WARN
        assert segment.speed_adjusted is True
        assert segment.speed_factor == pytest.approx(20 / 22)

    def test_fifty_percent_off_is_rejected(self, service, project, repository):
        with pytest.raises(DurationMismatchError):
            service.select_asset(project.id, OWNER, "seg_1", "pexels", "30")

        assert repository.get_segment(project.id, OWNER, "seg_1").selected_asset is None

    def test_selection_clears_placeholder(self, service, project):
        service.set_placeholder(project.id, OWNER, "seg_2", "#FF0000")

        segment, _ = service.select_asset(project.id, OWNER, "seg_2", "pexels", "20")

        assert segment.placeholder_color is None
        assert segment.asset_status == AssetStatus.HAS_ASSET

    def test_cached_asset_outside_suggestions(self, service, project, asset_cache):
        asset_cache.put_many([make_asset("777", duration=18)])

        segment, check = service.select_asset(project.id, OWNER, "seg_3", "pexels", "777")

        assert segment.selected_asset.provider_asset_id == "777"
        assert check.level == MismatchLevel.WARN

    def test_unknown_candidate(self, service, project):
        with pytest.raises(InputValidationError):
            service.select_asset(project.id, OWNER, "seg_1", "pixabay", "20")

    def test_project_must_be_ready(self, service, repository):
        draft = service.create_project(OWNER, "Coffee", SAMPLE_SCRIPT)
        with pytest.raises(InputValidationError):
            service.select_asset(draft.id, OWNER, "seg_1", "pexels", "20")


class TestPlaceholderAndSilence:
    def test_placeholder_replaces_asset(self, service, project):
        service.select_asset(project.id, OWNER, "seg_1", "pexels", "20")

        segment = service.set_placeholder(project.id, OWNER, "seg_1", "#ABCDEF")

        assert segment.asset_status == AssetStatus.PLACEHOLDER
        assert segment.placeholder_color == "#abcdef"
        assert segment.selected_asset is None

    def test_bad_colour_rejected(self, service, project):
        with pytest.raises(InputValidationError):
            service.set_placeholder(project.id, OWNER, "seg_1", "red")

    def test_silence_defaults_to_segment_duration(self, service, project):
        segment = service.set_silence(project.id, OWNER, "seg_1", True)

        assert segment.is_silent is True
        assert segment.silent_duration == 20
        assert segment.selected_asset is None and segment.placeholder_color is None

    def test_silence_duration_bounds(self, service, project):
        with pytest.raises(InputValidationError):
            service.set_silence(project.id, OWNER, "seg_1", True, duration=90)

    def test_unsilence(self, service, project):
        service.set_silence(project.id, OWNER, "seg_1", True, duration=3)

        segment = service.set_silence(project.id, OWNER, "seg_1", False)

        assert segment.is_silent is False
        assert segment.silent_duration is None
        assert segment.placeholder_color == "#1a1a1a"


def test_update_segment_text_recomputes_duration(service, project):
    segment = service.update_segment_text(project.id, OWNER, "seg_1", " ".join(["word"] * 75))

    assert segment.estimated_duration == 30
    assert segment.optimized_text.startswith("word word")


class TestSummary:
    def test_counts_and_duration(self, service, project):
        service.select_asset(project.id, OWNER, "seg_1", "pexels", "20")
        service.set_silence(project.id, OWNER, "seg_3", True, duration=5)

        summary = service.storyboard_summary(project.id, OWNER)

        assert summary.total_segments == 3
        assert summary.has_asset == 1
        assert summary.needs_selection == 1
        assert summary.silent == 1
        assert summary.placeholder == 0
        assert summary.estimated_duration == 45
        assert summary.formatted_duration == "0:45"
        assert summary.visual_completion == pytest.approx(33.3)
        assert summary.can_render is True

    def test_too_many_placeholders_blocks_render(self, service, project):
        service.set_placeholder(project.id, OWNER, "seg_1")
        service.set_placeholder(project.id, OWNER, "seg_2")

        summary = service.storyboard_summary(project.id, OWNER)

        assert summary.can_render is False
        assert "Too many placeholders" in summary.render_block_reason

    def test_draft_project_has_no_summary(self, service):
        draft = service.create_project(OWNER, "Coffee", SAMPLE_SCRIPT)
        with pytest.raises(InputValidationError):
            service.storyboard_summary(draft.id, OWNER)


class TestRender:
    def test_start_and_complete_render(self, service, project, repository):
        rendering = service.start_render(project.id, OWNER)
        assert rendering.status == ProjectStatus.RENDERING

        done = service.complete_render(project.id, OWNER)
        assert done.status == ProjectStatus.COMPLETED

        render_logs = [j for j in repository.list_job_logs(project.id, OWNER) if j.job_type == JobType.RENDER]
        assert [j.status for j in render_logs] == [JobStatus.PENDING, JobStatus.SUCCESS]

    def test_render_blocked_by_placeholders(self, service, project, repository):
        service.set_placeholder(project.id, OWNER, "seg_1")
        service.set_placeholder(project.id, OWNER, "seg_2")

        with pytest.raises(PlaceholderThresholdError):
            service.start_render(project.id, OWNER)
        assert repository.get_project(project.id, OWNER).status == ProjectStatus.READY

    def test_render_requires_ready(self, service):
        draft = service.create_project(OWNER, "Coffee", SAMPLE_SCRIPT)
        with pytest.raises(InvalidTransition):
            service.start_render(draft.id, OWNER)

    def test_failed_render(self, service, project):
        service.start_render(project.id, OWNER)

        failed = service.complete_render(project.id, OWNER, success=False, error="encoder crashed")

        assert failed.status == ProjectStatus.FAILED
        assert failed.error_message == "encoder crashed"

    def test_cannot_delete_while_rendering(self, service, project):
        service.start_render(project.id, OWNER)
        with pytest.raises(InputValidationError):
            service.delete_project(project.id, OWNER)


class TestSynthesizeSegment:
    def test_stores_audio_on_segment(self, service, project, repository):
        result = service.synthesize_segment(project.id, OWNER, "seg_1")

        segment = repository.get_segment(project.id, OWNER, "seg_1")
        assert segment.tts_audio_url == result.audio_url
        assert segment.tts_duration == 4.0

    def test_silent_segment_skipped(self, service, project, speech_provider):
        service.set_silence(project.id, OWNER, "seg_1", True, duration=2)

        assert service.synthesize_segment(project.id, OWNER, "seg_1") is None
        assert speech_provider.calls == []

    def test_failure_is_logged_and_raised(self, service, project, repository, speech_provider):
        speech_provider.failures = 100

        with pytest.raises(SynthesisFailed):
            service.synthesize_segment(project.id, OWNER, "seg_1")

        tts_logs = [j for j in repository.list_job_logs(project.id, OWNER) if j.job_type == JobType.TTS]
        assert tts_logs[-1].status == JobStatus.FAILED
