"""Pipeline orchestrator - script → segments (Pipeline A) → stock suggestions (Pipeline B)."""

import uuid
from typing import Any, Optional

from scriptboard.core.config import Settings
from scriptboard.core.errors import (
    AutoOptimizeExhausted,
    InputValidationError,
    ModerationFailure,
    PersistenceError,
)
from scriptboard.models.schemas import (
    DEFAULT_PLACEHOLDER_COLOR,
    AssetSearchOptions,
    AssetStatus,
    JobStatus,
    JobType,
    OptimizationPreview,
    PipelineResult,
    ProjectStatus,
    QualityScore,
    Segment,
    SegmentAssetResult,
)
from scriptboard.services import project_state
from scriptboard.services.asset_search import AssetSearchEngine
from scriptboard.services.content_moderator import ContentModerator
from scriptboard.services.quality_scorer import GREEN_THRESHOLD, QualityScorer
from scriptboard.services.script_engine import ScriptEngine, validate_script_length
from scriptboard.services.validators import validate_script
from scriptboard.storage.repository import ProjectRepository
from scriptboard.utils.error_handler import error_payload, failure_reason, format_error_message
from scriptboard.utils.rate_limiter import PacingPolicy
from scriptboard.utils.text_utils import first_words

FALLBACK_QUERY_WORDS = 5
MIN_SEARCH_DURATION = 3.0


class PipelineOrchestrator:
    """
    Runs the two storyboard pipelines for a project.

    Pipeline A: processing → length check → moderation → segmentation →
    per-segment rewrite and visual queries → quality score → segments saved
    → Pipeline B → ready.

    Pipeline B: per segment, search every stock provider, rank, keep the top
    suggestions. Segments are handled one at a time with a fixed delay
    between them.

    Segments and the optimized script are saved in a single document write;
    status changes are separate writes. A failure after the segment write
    leaves the segments in place and the project marked failed.
    """

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        repository: ProjectRepository,
        script_engine: ScriptEngine,
        moderator: ContentModerator,
        quality_scorer: QualityScorer,
        asset_search: AssetSearchEngine,
        segment_pacing: Optional[PacingPolicy] = None,
        llm_pacing: Optional[PacingPolicy] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            settings: Application settings
            logger: Logger instance
            repository: Project repository
            script_engine: Segmentation/rewrite engine
            moderator: Content moderator
            quality_scorer: Script quality scorer
            asset_search: Stock search and ranking engine
            segment_pacing: Pacing between Pipeline B segments
                (defaults to sequential with `asset_segment_delay`)
            llm_pacing: Pacing between Pipeline A segment rewrites
                (defaults to sequential with `llm_segment_delay`)
        """
        self.settings = settings
        self.logger = logger
        self.repository = repository
        self.script_engine = script_engine
        self.moderator = moderator
        self.quality_scorer = quality_scorer
        self.asset_search = asset_search
        self.segment_pacing = segment_pacing or PacingPolicy.sequential(settings.asset_segment_delay)
        self.llm_pacing = llm_pacing or PacingPolicy.sequential(settings.llm_segment_delay)

    # ------------------------------------------------------------------
    # Pipeline A
    # ------------------------------------------------------------------

    def run_pipeline_a(self, project_id: str, owner_id: str) -> PipelineResult:
        """
        Optimize a draft project's script into segments and fetch suggestions.

        Args:
            project_id: Project id
            owner_id: Owning user id

        Returns:
            PipelineResult. Failures are returned (not raised) with the
            project marked failed and a machine-readable reason.

        Raises:
            ProjectNotFound: If the project does not exist for this owner
            InvalidTransition: If the project is not in draft
        """
        log = self.logger.bind(project_id=project_id)
        project = self.repository.get_project(project_id, owner_id)
        self.repository.transition_status(project_id, owner_id, ProjectStatus.PROCESSING, error_message=None)
        log.info(f"[Pipeline A] Starting optimization for project {project_id}")

        stage = JobType.OPTIMIZATION
        try:
            self.repository.append_job_log(project_id, owner_id, JobType.OPTIMIZATION, JobStatus.RUNNING)
            script = project.original_script

            length = validate_script_length(script)
            log.info(f"[Pipeline A] Script length: {length.word_count} words, status: {length.status.value}")

            moderation = self.moderator.moderate(script)
            if moderation.flagged:
                raise ModerationFailure(moderation.categories)
            log.info("[Pipeline A] Content moderation passed")

            segments = self._build_segments(project_id, script, log)
            optimized_script = "\n\n".join(s.optimized_text for s in segments)
            quality = self.quality_scorer.score_quality(optimized_script, logger=log)

            self.repository.replace_segments(
                project_id,
                owner_id,
                segments,
                optimized_script=optimized_script,
                quality_score=quality.model_dump(),
            )
            self.repository.append_job_log(
                project_id,
                owner_id,
                JobType.OPTIMIZATION,
                JobStatus.SUCCESS,
                details={"segments": len(segments), "quality": quality.overall, "length": length.status.value},
            )

            stage = JobType.ASSETS
            assets = self.run_pipeline_b(project_id, owner_id)
            if not assets.success:
                log.warning(f"[Pipeline A] Pipeline B had issues: {assets.error}")

            self.repository.transition_status(project_id, owner_id, ProjectStatus.READY)
            log.info(f"[Pipeline A] ✅ Optimization complete, project {project_id} is ready")

            return PipelineResult(
                success=True,
                project_id=project_id,
                status=ProjectStatus.READY,
                segments_created=len(segments),
                quality_score=quality,
                length=length,
                asset_results=assets.asset_results,
            )

        except Exception as e:
            return self._fail(project_id, owner_id, stage, e, log)

    def _build_segments(self, project_id: str, script: str, log: Any) -> list[Segment]:
        drafts = self.script_engine.segment_script(script)
        log.info(f"[Pipeline A] Created {len(drafts)} segments")

        segments = []
        for number, draft in enumerate(drafts, start=1):
            with self.llm_pacing.slot():
                optimized = self.script_engine.optimize_segment(draft.text, draft.est_duration_hint, draft.energy)
                queries = self.script_engine.generate_visual_queries(optimized or draft.text)

            segments.append(
                Segment(
                    id=uuid.uuid4().hex,
                    project_id=project_id,
                    segment_number=number,
                    original_text=draft.text,
                    optimized_text=optimized or draft.text,
                    estimated_duration=draft.est_duration_hint,
                    energy=draft.energy,
                    intent=draft.intent,
                    search_queries=queries.queries,
                    fallback_query=queries.fallback,
                )
            )
            log.info(f"[Pipeline A] Segment {number}/{len(drafts)} processed")
        return segments

    def _fail(self, project_id: str, owner_id: str, stage: JobType, error: Exception, log: Any) -> PipelineResult:
        """Mark the project failed, log the failed job and build the failed result."""
        log.error(format_error_message(f"Pipeline ({stage.value})", error, {"project_id": project_id}))
        payload = error_payload(error)

        try:
            self.repository.transition_status(project_id, owner_id, ProjectStatus.FAILED, error_message=payload["message"])
            self.repository.append_job_log(
                project_id,
                owner_id,
                stage,
                JobStatus.FAILED,
                error_message=str(error),
                details={"reason": failure_reason(error)},
            )
        except PersistenceError as e:
            log.error(f"Could not mark project {project_id} as failed: {e}")

        return PipelineResult(
            success=False,
            project_id=project_id,
            status=ProjectStatus.FAILED,
            reason=failure_reason(error),
            error=payload["message"],
            details=payload["details"],
        )

    # ------------------------------------------------------------------
    # Pipeline B
    # ------------------------------------------------------------------

    def run_pipeline_b(self, project_id: str, owner_id: str) -> PipelineResult:
        """
        Fetch ranked stock suggestions for every segment of a project.

        Provider failures on one segment are recorded in that segment's
        result and do not stop the run; persistence errors propagate.

        Returns:
            PipelineResult with one SegmentAssetResult per segment.
            `success` is False when any segment hit an error.
        """
        log = self.logger.bind(project_id=project_id)
        segments = self.repository.get_segments(project_id, owner_id)
        self.repository.append_job_log(project_id, owner_id, JobType.ASSETS, JobStatus.RUNNING)
        log.info(f"[Pipeline B] Processing {len(segments)} segments")

        self.segment_pacing.reset()
        results = []
        for segment in segments:
            with self.segment_pacing.slot():
                results.append(self.process_segment_assets(project_id, owner_id, segment))

        errors = [f"Segment {r.segment_number}: {r.error}" for r in results if r.error]
        found = sum(r.suggestions_found for r in results)
        placeholders = sum(1 for r in results if r.is_placeholder)
        log.info(f"[Pipeline B] Complete: {found} assets found, {placeholders} without suggestions")

        self.repository.append_job_log(
            project_id,
            owner_id,
            JobType.ASSETS,
            JobStatus.SUCCESS if not errors else JobStatus.FAILED,
            error_message="; ".join(errors) or None,
            details={"segments": len(segments), "assets_found": found, "placeholders": placeholders},
        )

        project = self.repository.get_project(project_id, owner_id)
        return PipelineResult(
            success=not errors,
            project_id=project_id,
            status=project.status,
            asset_results=results,
            error="; ".join(errors) or None,
        )

    def process_segment_assets(self, project_id: str, owner_id: str, segment: Segment) -> SegmentAssetResult:
        """
        Search, rank and store suggestions for one segment.

        Queries: the segment's visual queries, else its fallback phrase, else
        the first five words of its text. Videos are searched in a window of
        max(3, 0.5 × target) to 2 × target seconds.
        """
        queries = list(segment.search_queries)
        if not queries:
            if segment.fallback_query:
                queries = [segment.fallback_query]
            else:
                queries = [first_words(segment.optimized_text, FALLBACK_QUERY_WORDS)]

        target = segment.estimated_duration
        options = AssetSearchOptions(
            min_duration=max(MIN_SEARCH_DURATION, target * 0.5),
            max_duration=target * 2,
            per_page=self.settings.stock_results_per_page,
            include_photos=self.settings.stock_include_photos,
        )
        self.logger.info(f"[Pipeline B] Segment {segment.segment_number}: queries {queries}")

        try:
            ranked = self.asset_search.search_and_rank(queries, target, options)
        except PersistenceError:
            raise
        except Exception as e:
            self.logger.error(
                format_error_message("Searching stock assets", e, {"segment": segment.segment_number})
            )
            return SegmentAssetResult(
                segment_id=segment.id,
                segment_number=segment.segment_number,
                is_placeholder=True,
                error=str(e),
            )

        fields: dict[str, Any] = {
            "suggestions": [asset.model_dump() for asset in ranked],
            "asset_status": AssetStatus.NEEDS_SELECTION,
        }
        # A pause keeps its silence; anything else falls back to the flat colour
        if not segment.is_silent:
            fields.update(
                selected_asset=None,
                placeholder_color=DEFAULT_PLACEHOLDER_COLOR,
                speed_adjusted=False,
                speed_factor=1.0,
            )
        self.repository.update_segment(project_id, owner_id, segment.id, **fields)
        if not ranked:
            self.logger.info(f"[Pipeline B] No assets found for segment {segment.segment_number}")
        else:
            self.logger.info(f"[Pipeline B] Saved {len(ranked)} suggestions for segment {segment.segment_number}")

        return SegmentAssetResult(
            segment_id=segment.id,
            segment_number=segment.segment_number,
            suggestions_found=len(ranked),
            is_placeholder=not ranked,
        )

    def regenerate_segment_assets(self, project_id: str, owner_id: str, segment_id: str) -> SegmentAssetResult:
        """
        Refresh one segment's suggestions.

        Raises:
            ProjectNotFound: If the project does not exist for this owner
            SegmentNotFound: If the segment is not part of the project
            InputValidationError: If the project is not ready
        """
        project = self.repository.get_project(project_id, owner_id)
        if project.status != ProjectStatus.READY:
            raise InputValidationError(
                f'Cannot regenerate assets for project in "{project.status.value}" status',
                {"status": project.status.value},
            )
        segment = self.repository.get_segment(project_id, owner_id, segment_id)
        result = self.process_segment_assets(project_id, owner_id, segment)
        self.repository.append_job_log(
            project_id,
            owner_id,
            JobType.ASSETS,
            JobStatus.FAILED if result.error else JobStatus.SUCCESS,
            error_message=result.error,
            details={"segment_id": segment_id, "assets_found": result.suggestions_found},
        )
        return result

    # ------------------------------------------------------------------
    # Quality
    # ------------------------------------------------------------------

    def auto_optimize(self, project_id: str, owner_id: str, max_attempts: Optional[int] = None) -> PipelineResult:
        """
        Improve a ready project's script until its quality score goes up.

        Each attempt scores the current script, stops early if it is already
        green, otherwise asks for a rewrite addressing the suggestions and
        scores that. The first rewrite that scores higher replaces the
        original script, the project goes back to draft and Pipeline A runs
        again.

        Returns:
            The re-run's PipelineResult, or a success result carrying the
            current score when it is already green

        Raises:
            InvalidTransition: If the project is not ready
            AutoOptimizeExhausted: If no attempt improved the score
        """
        max_attempts = max_attempts or self.settings.auto_optimize_max_attempts
        log = self.logger.bind(project_id=project_id)
        project = self.repository.get_project(project_id, owner_id)
        project_state.ensure_reoptimizable(project.status)

        script = project.optimized_script or project.original_script
        best: Optional[int] = None

        for attempt in range(1, max_attempts + 1):
            log.info(f"[Auto-Optimize] Attempt {attempt}/{max_attempts}")
            current = self.quality_scorer.score_quality(script, logger=log)
            if current.overall >= GREEN_THRESHOLD:
                log.info(f"[Auto-Optimize] Score {current.overall} already good, nothing to do")
                return PipelineResult(
                    success=True, project_id=project_id, status=project.status, quality_score=current
                )

            improved = self.script_engine.improve_script(script, current.suggestions)
            new = self.quality_scorer.score_quality(improved, logger=log)
            best = max(new.overall, best if best is not None else new.overall)
            log.info(f"[Auto-Optimize] Score {current.overall} -> {new.overall}")

            if new.overall > current.overall:
                self.repository.update_project(
                    project_id,
                    owner_id,
                    status=ProjectStatus.DRAFT,
                    original_script=improved,
                    optimized_script=None,
                    quality_score=None,
                    error_message=None,
                )
                self.repository.append_job_log(
                    project_id,
                    owner_id,
                    JobType.OPTIMIZATION,
                    JobStatus.SUCCESS,
                    details={"auto_optimize_attempt": attempt, "from": current.overall, "to": new.overall},
                )
                return self.run_pipeline_a(project_id, owner_id)

        error = AutoOptimizeExhausted(max_attempts, best)
        self.repository.append_job_log(
            project_id, owner_id, JobType.OPTIMIZATION, JobStatus.FAILED, error_message=error.message, details=error.details
        )
        raise error

    def preview_optimization(self, script: str) -> OptimizationPreview:
        """Segment, rewrite and score a script without saving anything."""
        script = validate_script(script)
        drafts = self.script_engine.segment_script(script)

        optimized_texts = []
        for draft in drafts:
            with self.llm_pacing.slot():
                optimized_texts.append(
                    self.script_engine.optimize_segment(draft.text, draft.est_duration_hint, draft.energy)
                )

        optimized_script = "\n\n".join(optimized_texts)
        return OptimizationPreview(
            segments=drafts,
            optimized_texts=optimized_texts,
            optimized_script=optimized_script,
            quality_score=self.quality_scorer.score_quality(optimized_script),
        )

    def score_project(self, project_id: str, owner_id: str) -> QualityScore:
        """Score the project's current script and store the result."""
        project = self.repository.get_project(project_id, owner_id)
        score = self.quality_scorer.score_quality(
            project.optimized_script or project.original_script,
            logger=self.logger.bind(project_id=project_id),
        )
        self.repository.update_project(project_id, owner_id, quality_score=score.model_dump())
        return score
