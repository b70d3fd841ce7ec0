"""FastAPI routes for projects, segments and storyboards."""

from fastapi import APIRouter, BackgroundTasks, Depends, Response, status

from scriptboard.api.dependencies import get_container, require_user_id
from scriptboard.models.schemas import (
    AssetSelectionResponse,
    CreateProjectRequest,
    JobLog,
    OptimizationPreview,
    PipelineResult,
    PlaceholderRequest,
    PreviewRequest,
    Project,
    ProjectDetail,
    QualityScore,
    RenderCompleteRequest,
    Segment,
    SegmentAssetResult,
    SegmentTextRequest,
    SelectAssetRequest,
    SilenceRequest,
    StoryboardSummary,
    SynthesisResult,
    SynthesizeRequest,
)
from scriptboard.services.container import ServiceContainer

router = APIRouter(prefix="/projects", tags=["projects"])


# ----------------------------------------------------------------------
# Projects
# ----------------------------------------------------------------------


@router.post("", response_model=Project, status_code=status.HTTP_201_CREATED)
def create_project(
    payload: CreateProjectRequest,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
) -> Project:
    """Create a project and, unless told otherwise, start Pipeline A in the background."""
    project = container.storyboard.create_project(user_id, payload.title, payload.script, payload.voice_preset)
    if payload.process:
        background_tasks.add_task(container.orchestrator.run_pipeline_a, project.id, user_id)
    return project


@router.get("", response_model=list[Project])
def list_projects(
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
) -> list[Project]:
    return container.repository.list_projects(user_id)


@router.post("/preview", response_model=OptimizationPreview)
def preview_optimization(
    payload: PreviewRequest,
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
) -> OptimizationPreview:
    return container.orchestrator.preview_optimization(payload.script)


@router.get("/{project_id}", response_model=ProjectDetail)
def get_project(
    project_id: str,
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
) -> ProjectDetail:
    return ProjectDetail(
        project=container.repository.get_project(project_id, user_id),
        segments=container.repository.get_segments(project_id, user_id),
    )


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(
    project_id: str,
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
) -> Response:
    container.storyboard.delete_project(project_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{project_id}/jobs", response_model=list[JobLog])
def list_jobs(
    project_id: str,
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
) -> list[JobLog]:
    return container.repository.list_job_logs(project_id, user_id)


# ----------------------------------------------------------------------
# Pipelines
# ----------------------------------------------------------------------


@router.post("/{project_id}/optimize", response_model=PipelineResult)
def optimize_project(
    project_id: str,
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
) -> PipelineResult:
    """Run Pipeline A synchronously. A failed run comes back with success=false and a reason."""
    return container.orchestrator.run_pipeline_a(project_id, user_id)


@router.post("/{project_id}/auto-optimize", response_model=PipelineResult)
def auto_optimize(
    project_id: str,
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
) -> PipelineResult:
    return container.orchestrator.auto_optimize(project_id, user_id)


@router.get("/{project_id}/quality", response_model=QualityScore)
def score_project(
    project_id: str,
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
) -> QualityScore:
    return container.orchestrator.score_project(project_id, user_id)


# ----------------------------------------------------------------------
# Storyboard and rendering
# ----------------------------------------------------------------------


@router.get("/{project_id}/storyboard", response_model=StoryboardSummary)
def storyboard_summary(
    project_id: str,
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
) -> StoryboardSummary:
    return container.storyboard.storyboard_summary(project_id, user_id)


@router.post("/{project_id}/render", response_model=Project)
def start_render(
    project_id: str,
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
) -> Project:
    return container.storyboard.start_render(project_id, user_id)


@router.post("/{project_id}/render/complete", response_model=Project)
def complete_render(
    project_id: str,
    payload: RenderCompleteRequest,
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
) -> Project:
    return container.storyboard.complete_render(project_id, user_id, success=payload.success, error=payload.error)


# ----------------------------------------------------------------------
# Segments
# ----------------------------------------------------------------------


@router.put("/{project_id}/segments/{segment_id}/asset", response_model=AssetSelectionResponse)
def select_asset(
    project_id: str,
    segment_id: str,
    payload: SelectAssetRequest,
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
) -> AssetSelectionResponse:
    segment, check = container.storyboard.select_asset(
        project_id, user_id, segment_id, payload.provider.value, payload.provider_asset_id
    )
    return AssetSelectionResponse(segment=segment, duration_check=check)


@router.put("/{project_id}/segments/{segment_id}/placeholder", response_model=Segment)
def set_placeholder(
    project_id: str,
    segment_id: str,
    payload: PlaceholderRequest,
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
) -> Segment:
    return container.storyboard.set_placeholder(project_id, user_id, segment_id, payload.color)


@router.put("/{project_id}/segments/{segment_id}/silence", response_model=Segment)
def set_silence(
    project_id: str,
    segment_id: str,
    payload: SilenceRequest,
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
) -> Segment:
    return container.storyboard.set_silence(project_id, user_id, segment_id, payload.is_silent, payload.duration)


@router.put("/{project_id}/segments/{segment_id}/text", response_model=Segment)
def update_segment_text(
    project_id: str,
    segment_id: str,
    payload: SegmentTextRequest,
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
) -> Segment:
    return container.storyboard.update_segment_text(project_id, user_id, segment_id, payload.text)


@router.post("/{project_id}/segments/{segment_id}/regenerate-assets", response_model=SegmentAssetResult)
def regenerate_assets(
    project_id: str,
    segment_id: str,
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
) -> SegmentAssetResult:
    return container.orchestrator.regenerate_segment_assets(project_id, user_id, segment_id)


@router.post("/{project_id}/segments/{segment_id}/tts", response_model=SynthesisResult)
def synthesize_segment(
    project_id: str,
    segment_id: str,
    payload: SynthesizeRequest,
    user_id: str = Depends(require_user_id),
    container: ServiceContainer = Depends(get_container),
) -> SynthesisResult:
    result = container.storyboard.synthesize_segment(project_id, user_id, segment_id, force=payload.force)
    return result or SynthesisResult(success=True, duration_seconds=0.0)
