"""Storyboard Service - project creation, segment edits, summary and render gating."""

import uuid
from typing import Any, Optional

from scriptboard.core.config import Settings
from scriptboard.core.errors import InputValidationError
from scriptboard.models.schemas import (
    DEFAULT_PLACEHOLDER_COLOR,
    AssetStatus,
    DurationCheck,
    JobStatus,
    JobType,
    MismatchLevel,
    Project,
    ProjectStatus,
    RankedAsset,
    Segment,
    StoryboardSummary,
    SynthesisResult,
)
from scriptboard.services import project_state
from scriptboard.services.asset_cache import AssetCache
from scriptboard.services.asset_ranker import rank_asset
from scriptboard.services.duration_reconciler import (
    check_audio_duration,
    ensure_placeholder_ratio,
    ensure_selectable,
    validate_placeholder_ratio,
)
from scriptboard.services.speech_synthesizer import SpeechSynthesisService
from scriptboard.services.validators import (
    validate_color,
    validate_duration,
    validate_script,
    validate_segment_text,
    validate_title,
)
from scriptboard.services.voice_presets import validate_voice_preset
from scriptboard.storage.repository import ProjectRepository
from scriptboard.utils.text_utils import estimate_spoken_duration, format_duration

SUMMARY_STATUSES = {ProjectStatus.READY, ProjectStatus.RENDERING, ProjectStatus.COMPLETED}


class StoryboardService:
    """User-facing operations on a project and its segments."""

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        repository: ProjectRepository,
        asset_cache: Optional[AssetCache] = None,
        synthesizer: Optional[SpeechSynthesisService] = None,
    ):
        """
        Initialize storyboard service.

        Args:
            settings: Application settings
            logger: Logger instance
            repository: Project repository
            asset_cache: Asset cache used to resolve selections outside the suggestions
            synthesizer: Speech synthesis service for segment narration
        """
        self.settings = settings
        self.logger = logger
        self.repository = repository
        self.asset_cache = asset_cache
        self.synthesizer = synthesizer

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(self, owner_id: str, title: str, script: str, voice_preset: str = "professional_narrator") -> Project:
        project = Project(
            id=uuid.uuid4().hex,
            owner_id=owner_id,
            title=validate_title(title),
            original_script=validate_script(script),
            voice_preset=validate_voice_preset(voice_preset),
        )
        return self.repository.create_project(project)

    def delete_project(self, project_id: str, owner_id: str) -> None:
        project = self.repository.get_project(project_id, owner_id)
        if not project_state.can_delete(project.status):
            raise InputValidationError(f"Cannot delete a project while it is {project.status.value}")
        self.repository.delete_project(project_id, owner_id)

    def _editable(self, project_id: str, owner_id: str) -> Project:
        project = self.repository.get_project(project_id, owner_id)
        if not project_state.can_edit(project.status):
            raise InputValidationError(
                f"Project cannot be edited in '{project.status.value}' status", {"status": project.status.value}
            )
        return project

    # ------------------------------------------------------------------
    # Segment edits
    # ------------------------------------------------------------------

    def select_asset(
        self,
        project_id: str,
        owner_id: str,
        segment_id: str,
        provider: str,
        provider_asset_id: str,
    ) -> tuple[Segment, DurationCheck]:
        """
        Make a candidate the segment's visual.

        The candidate comes from the segment's suggestions or, failing that,
        from the asset cache. Its duration is reconciled with the segment
        target: up to 20% off is accepted with a speed factor, more is
        rejected.

        Returns:
            (updated segment, duration check)

        Raises:
            InputValidationError: Unknown candidate or non-editable project
            DurationMismatchError: Mismatch above 20%
        """
        self._editable(project_id, owner_id)
        segment = self.repository.get_segment(project_id, owner_id, segment_id)

        asset = self._resolve_candidate(segment, provider, provider_asset_id)
        check = ensure_selectable(asset.duration, segment.estimated_duration)
        speed_adjusted = check.speed_factor is not None and check.speed_factor != 1.0

        updated = self.repository.update_segment(
            project_id,
            owner_id,
            segment_id,
            selected_asset=asset.model_dump(),
            asset_status=AssetStatus.HAS_ASSET,
            placeholder_color=None,
            is_silent=False,
            silent_duration=None,
            speed_adjusted=speed_adjusted,
            speed_factor=check.speed_factor if speed_adjusted else 1.0,
        )
        self.logger.info(
            f"Segment {segment.segment_number}: selected {asset.id} ({check.level.value}, {check.percentage:.1f}%)"
        )
        return updated, check

    def _resolve_candidate(self, segment: Segment, provider: str, provider_asset_id: str) -> RankedAsset:
        for suggestion in segment.suggestions:
            if suggestion.provider.value == provider and suggestion.provider_asset_id == provider_asset_id:
                return suggestion

        if self.asset_cache is not None:
            cached = self.asset_cache.get(provider, provider_asset_id)
            if cached is not None:
                query = segment.search_queries[0] if segment.search_queries else ""
                return rank_asset(cached.asset, query, segment.estimated_duration)

        raise InputValidationError(
            f"Asset {provider}/{provider_asset_id} is not a candidate for this segment",
            {"provider": provider, "provider_asset_id": provider_asset_id},
        )

    def set_placeholder(
        self, project_id: str, owner_id: str, segment_id: str, color: str = DEFAULT_PLACEHOLDER_COLOR
    ) -> Segment:
        """Use a flat colour instead of a stock asset."""
        self._editable(project_id, owner_id)
        return self.repository.update_segment(
            project_id,
            owner_id,
            segment_id,
            placeholder_color=validate_color(color),
            asset_status=AssetStatus.PLACEHOLDER,
            selected_asset=None,
            is_silent=False,
            silent_duration=None,
            speed_adjusted=False,
            speed_factor=1.0,
        )

    def set_silence(
        self, project_id: str, owner_id: str, segment_id: str, is_silent: bool, duration: Optional[float] = None
    ) -> Segment:
        """Turn a segment into a pause (0.5-60s) or back into a normal segment."""
        self._editable(project_id, owner_id)
        if not is_silent:
            return self.repository.update_segment(
                project_id,
                owner_id,
                segment_id,
                is_silent=False,
                silent_duration=None,
                placeholder_color=DEFAULT_PLACEHOLDER_COLOR,
            )

        segment = self.repository.get_segment(project_id, owner_id, segment_id)
        seconds = validate_duration(duration if duration is not None else segment.estimated_duration, silence=True)
        return self.repository.update_segment(
            project_id,
            owner_id,
            segment_id,
            is_silent=True,
            silent_duration=seconds,
            selected_asset=None,
            placeholder_color=None,
            asset_status=AssetStatus.NEEDS_SELECTION,
            speed_adjusted=False,
            speed_factor=1.0,
            tts_audio_url=None,
            tts_duration=None,
        )

    def update_segment_text(self, project_id: str, owner_id: str, segment_id: str, text: str) -> Segment:
        """Replace a segment's narration; its target duration and audio are recomputed later."""
        self._editable(project_id, owner_id)
        text = validate_segment_text(text)
        return self.repository.update_segment(
            project_id,
            owner_id,
            segment_id,
            optimized_text=text,
            estimated_duration=max(1, estimate_spoken_duration(text)),
            tts_audio_url=None,
            tts_duration=None,
        )

    # ------------------------------------------------------------------
    # Narration audio
    # ------------------------------------------------------------------

    def synthesize_segment(
        self, project_id: str, owner_id: str, segment_id: str, force: bool = False
    ) -> Optional[SynthesisResult]:
        """
        Generate narration for one segment and store it on the segment.

        Silent and empty segments are skipped (returns None).
        """
        if self.synthesizer is None:
            raise InputValidationError("Speech synthesis is not configured")

        project = self.repository.get_project(project_id, owner_id)
        segment = self.repository.get_segment(project_id, owner_id, segment_id)
        if segment.is_silent or not segment.optimized_text.strip():
            self.logger.info(f"Segment {segment.segment_number}: no narration needed")
            return None

        self.repository.append_job_log(project_id, owner_id, JobType.TTS, JobStatus.RUNNING, details={"segment_id": segment_id})
        try:
            result = self.synthesizer.synthesize(segment.optimized_text, project.voice_preset, project_id, force=force)
        except Exception as e:
            self.repository.append_job_log(
                project_id, owner_id, JobType.TTS, JobStatus.FAILED, error_message=str(e), details={"segment_id": segment_id}
            )
            raise

        drift = check_audio_duration(result.duration_seconds or 0.0, segment.estimated_duration)
        if drift.level != MismatchLevel.GOOD:
            self.logger.warning(f"Segment {segment.segment_number}: {drift.message}")

        self.repository.update_segment(
            project_id, owner_id, segment_id, tts_audio_url=result.audio_url, tts_duration=result.duration_seconds
        )
        self.repository.append_job_log(
            project_id,
            owner_id,
            JobType.TTS,
            JobStatus.SUCCESS,
            details={"segment_id": segment_id, "cached": result.cached, "duration_check": drift.level.value},
        )
        return result

    # ------------------------------------------------------------------
    # Summary and rendering
    # ------------------------------------------------------------------

    def storyboard_summary(self, project_id: str, owner_id: str) -> StoryboardSummary:
        """
        Counts, total duration and render readiness of a processed project.

        Raises:
            InputValidationError: If the project is not ready, rendering or completed
        """
        project = self.repository.get_project(project_id, owner_id)
        if project.status not in SUMMARY_STATUSES:
            raise InputValidationError(
                f"Cannot summarize a project in '{project.status.value}' status",
                {"status": project.status.value},
            )

        segments = self.repository.get_segments(project_id, owner_id)
        total = len(segments)
        has_asset = sum(1 for s in segments if s.asset_status == AssetStatus.HAS_ASSET)
        placeholder = sum(1 for s in segments if s.asset_status == AssetStatus.PLACEHOLDER)
        silent = sum(1 for s in segments if s.is_silent)
        needs_selection = sum(
            1 for s in segments if s.asset_status == AssetStatus.NEEDS_SELECTION and not s.is_silent
        )
        duration = sum(s.effective_duration for s in segments)

        placeholder_check = validate_placeholder_ratio(placeholder, total)
        can_render = placeholder_check.valid and total > 0
        block_reason = None
        if not can_render:
            block_reason = "No segments in project" if total == 0 else placeholder_check.message

        return StoryboardSummary(
            project_id=project_id,
            total_segments=total,
            has_asset=has_asset,
            needs_selection=needs_selection,
            placeholder=placeholder,
            silent=silent,
            estimated_duration=duration,
            formatted_duration=format_duration(duration),
            visual_completion=round(has_asset / total * 100, 1) if total else 0.0,
            placeholder_check=placeholder_check,
            can_render=can_render,
            render_block_reason=block_reason,
        )

    def start_render(self, project_id: str, owner_id: str) -> Project:
        """
        Hand a ready storyboard to rendering (ready -> rendering).

        Raises:
            InvalidTransition: If the project is not ready
            PlaceholderThresholdError: If more than 30% of segments are placeholders
            InputValidationError: If the project has no segments
        """
        project = self.repository.get_project(project_id, owner_id)
        project_state.ensure_transition(project.status, ProjectStatus.RENDERING)

        summary = self.storyboard_summary(project_id, owner_id)
        if summary.total_segments == 0:
            raise InputValidationError("No segments in project")
        ensure_placeholder_ratio(summary.placeholder, summary.total_segments)

        project = self.repository.transition_status(project_id, owner_id, ProjectStatus.RENDERING)
        self.repository.append_job_log(project_id, owner_id, JobType.RENDER, JobStatus.PENDING)
        return project

    def complete_render(self, project_id: str, owner_id: str, success: bool = True, error: Optional[str] = None) -> Project:
        """Record the external renderer's outcome (rendering -> completed, or failed)."""
        target = ProjectStatus.COMPLETED if success else ProjectStatus.FAILED
        project = self.repository.transition_status(project_id, owner_id, target, error_message=error)
        self.repository.append_job_log(
            project_id, owner_id, JobType.RENDER, JobStatus.SUCCESS if success else JobStatus.FAILED, error_message=error
        )
        return project
