"""Pydantic models and schemas for the script-to-storyboard pipeline."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator

SCHEMA_VERSION = 1
DEFAULT_PLACEHOLDER_COLOR = "#1a1a1a"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Enums
# ============================================================================


class ProjectStatus(str, Enum):
    """Project lifecycle states."""

    DRAFT = "draft"
    PROCESSING = "processing"
    READY = "ready"
    RENDERING = "rendering"
    COMPLETED = "completed"
    FAILED = "failed"


class SegmentIntent(str, Enum):
    """Narrative purpose of a segment."""

    HOOK = "hook"
    EXPLAIN = "explain"
    TRANSITION = "transition"
    CONCLUDE = "conclude"


class AssetStatus(str, Enum):
    HAS_ASSET = "has_asset"
    NEEDS_SELECTION = "needs_selection"
    PLACEHOLDER = "placeholder"


class AssetType(str, Enum):
    VIDEO = "video"
    IMAGE = "image"


class Orientation(str, Enum):
    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    SQUARE = "square"


class StockProvider(str, Enum):
    PEXELS = "pexels"
    PIXABAY = "pixabay"


class VoicePreset(str, Enum):
    """Named narration styles mapped to provider-specific voice settings."""

    PROFESSIONAL_NARRATOR = "professional_narrator"
    ENERGETIC_HOST = "energetic_host"
    CALM_EDUCATOR = "calm_educator"


class SpeechProviderName(str, Enum):
    ELEVENLABS = "elevenlabs"
    OPENAI = "openai"


class QualityLevel(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


class LengthStatus(str, Enum):
    TOO_SHORT = "too_short"
    OPTIMAL = "optimal"
    TOO_LONG = "too_long"


class MismatchLevel(str, Enum):
    """Outcome of comparing an asset's duration with a segment's target."""

    GOOD = "good"
    SILENT = "silent"
    WARN = "warn"
    BLOCK = "block"


class JobType(str, Enum):
    OPTIMIZATION = "optimization"
    ASSETS = "assets"
    TTS = "tts"
    RENDER = "render"


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


# ============================================================================
# Stock Asset Models
# ============================================================================


class StockAsset(BaseModel):
    """A normalized search result from a stock-footage provider."""

    id: str = Field(..., description="Stable id, e.g. 'pexels_video_123'")
    provider: StockProvider = Field(..., description="Provider that returned the asset")
    provider_asset_id: str = Field(..., description="Asset id on the provider side")
    asset_type: AssetType = Field(..., description="video or image")
    url: str = Field(..., description="Direct media URL")
    thumbnail_url: str = Field(default="", description="Preview image URL")
    duration: Optional[float] = Field(default=None, description="Duration in seconds (None for images)")
    width: int = Field(default=0, ge=0, description="Width in pixels")
    height: int = Field(default=0, ge=0, description="Height in pixels")
    orientation: Orientation = Field(default=Orientation.LANDSCAPE, description="Derived from width/height")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Query, tags and engagement counts")

    @property
    def aspect_ratio(self) -> float:
        if self.height <= 0:
            return 0.0
        return self.width / self.height

    @property
    def cache_key(self) -> tuple[str, str]:
        return (self.provider.value, self.provider_asset_id)


class RankedAsset(StockAsset):
    """Stock asset with its four sub-scores and composite ranking score."""

    keyword_score: int = Field(default=0, description="Keyword match (0-100)")
    duration_score: int = Field(default=0, description="Duration match (0-100)")
    orientation_score: int = Field(default=0, description="Orientation match (0-100)")
    quality_score: int = Field(default=0, description="Popularity/quality (0-100)")
    ranking_score: float = Field(default=0.0, description="Weighted composite score")
    rank_position: Optional[int] = Field(default=None, description="1-based position among suggestions")


class AssetSearchOptions(BaseModel):
    """Per-query search constraints handed to every stock provider."""

    min_duration: float = Field(default=5.0, description="Minimum video duration (seconds)")
    max_duration: float = Field(default=60.0, description="Maximum video duration (seconds)")
    per_page: int = Field(default=5, ge=1, description="Results per provider request")
    include_photos: bool = Field(default=True, description="Allow photo fallback")


class CachedAsset(BaseModel):
    asset: StockAsset
    cached_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime


# ============================================================================
# Script Engine Models
# ============================================================================


class ModerationResult(BaseModel):
    flagged: bool = Field(default=False, description="True when any category crossed its threshold")
    categories: list[str] = Field(default_factory=list, description="Flagged categories")
    scores: dict[str, float] = Field(default_factory=dict, description="Raw classifier scores")
    classifier_failed: bool = Field(default=False, description="True when the classifier could not be reached")


class LengthValidation(BaseModel):
    word_count: int
    char_count: int
    estimated_duration: int = Field(..., description="Estimated spoken duration in seconds")
    status: LengthStatus
    message: str


class ScriptSegmentDraft(BaseModel):
    """One segment as proposed by the language model, after clamping."""

    text: str = Field(default="", description="Segment narration text")
    energy: int = Field(default=50, ge=0, le=100, description="Delivery energy (0-100)")
    intent: SegmentIntent = Field(default=SegmentIntent.EXPLAIN, description="Narrative purpose")
    est_duration_hint: float = Field(default=20.0, gt=0, description="Target spoken duration (seconds)")


class VisualQueries(BaseModel):
    queries: list[str] = Field(default_factory=list, description="Up to 3 stock search phrases")
    fallback: str = Field(default="generic footage", description="Descriptive fallback phrase")


class QualityScore(BaseModel):
    clarity: int = Field(..., ge=0, le=100)
    pacing: int = Field(..., ge=0, le=100)
    hook: int = Field(..., ge=0, le=100)
    overall: int = Field(..., ge=0, le=100)
    suggestions: list[str] = Field(default_factory=list)
    level: QualityLevel = Field(default=QualityLevel.RED)


# ============================================================================
# Reconciliation Models
# ============================================================================


class DurationCheck(BaseModel):
    level: MismatchLevel
    percentage: float = Field(..., description="Relative difference in percent")
    speed_factor: Optional[float] = Field(default=None, description="target / selected playback multiplier")
    message: str


class PlaceholderCheck(BaseModel):
    valid: bool
    placeholder_count: int
    total_segments: int
    percentage: float
    message: str


# ============================================================================
# Persistence Models
# ============================================================================


class Project(BaseModel):
    """A user's script and its processing state."""

    schema_version: int = Field(default=SCHEMA_VERSION, description="Document schema version")
    id: str = Field(..., description="Project identifier")
    owner_id: str = Field(..., description="Owning user id")
    title: str = Field(..., description="Project title")
    status: ProjectStatus = Field(default=ProjectStatus.DRAFT)
    original_script: str = Field(..., description="Script as submitted")
    optimized_script: Optional[str] = Field(default=None, description="Joined optimized segment texts")
    voice_preset: VoicePreset = Field(default=VoicePreset.PROFESSIONAL_NARRATOR)
    quality_score: Optional[QualityScore] = Field(default=None)
    error_message: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Segment(BaseModel):
    """One spoken unit of a storyboard."""

    schema_version: int = Field(default=SCHEMA_VERSION)
    id: str
    project_id: str
    segment_number: int = Field(..., ge=1, description="1-based ordinal, contiguous within a project")
    original_text: str
    optimized_text: str
    estimated_duration: float = Field(..., gt=0, description="Target spoken duration (seconds)")
    energy: int = Field(default=50, ge=0, le=100)
    intent: SegmentIntent = Field(default=SegmentIntent.EXPLAIN)
    search_queries: list[str] = Field(default_factory=list)
    fallback_query: Optional[str] = Field(default=None)
    asset_status: AssetStatus = Field(default=AssetStatus.NEEDS_SELECTION)
    selected_asset: Optional[RankedAsset] = Field(default=None)
    placeholder_color: Optional[str] = Field(
        default=DEFAULT_PLACEHOLDER_COLOR, description="Flat colour shown until an asset is chosen"
    )
    speed_adjusted: bool = Field(default=False)
    speed_factor: float = Field(default=1.0, gt=0)
    is_silent: bool = Field(default=False)
    silent_duration: Optional[float] = Field(default=None)
    tts_audio_url: Optional[str] = Field(default=None)
    tts_duration: Optional[float] = Field(default=None)
    suggestions: list[RankedAsset] = Field(default_factory=list, description="Ranked candidates, best first")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _single_treatment(self) -> "Segment":
        treatments = [self.selected_asset is not None, self.placeholder_color is not None, self.is_silent]
        if sum(treatments) != 1:
            raise ValueError("A segment needs exactly one of: selected asset, placeholder colour, silence")
        return self

    @property
    def effective_duration(self) -> float:
        if self.is_silent and self.silent_duration:
            return self.silent_duration
        return self.estimated_duration


class CachedTTS(BaseModel):
    text_hash: str
    voice_preset: VoicePreset
    audio_url: str
    storage_path: str
    duration_seconds: float
    provider: SpeechProviderName
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime


class JobLog(BaseModel):
    id: str
    project_id: str
    job_type: JobType
    status: JobStatus
    error_message: Optional[str] = Field(default=None)
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)


# ============================================================================
# Result Models
# ============================================================================


class SynthesisResult(BaseModel):
    success: bool = True
    audio_url: Optional[str] = None
    duration_seconds: Optional[float] = None
    provider: Optional[SpeechProviderName] = None
    cached: bool = False
    text_hash: Optional[str] = None
    error: Optional[str] = None


class SegmentAssetResult(BaseModel):
    segment_id: str
    segment_number: int
    suggestions_found: int = 0
    is_placeholder: bool = False
    error: Optional[str] = None


class PipelineResult(BaseModel):
    """Outcome of a pipeline run. Failures carry a machine-readable reason."""

    success: bool
    project_id: str
    status: ProjectStatus
    segments_created: int = 0
    quality_score: Optional[QualityScore] = None
    length: Optional[LengthValidation] = None
    asset_results: list[SegmentAssetResult] = Field(default_factory=list)
    reason: Optional[str] = None
    error: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)


class OptimizationPreview(BaseModel):
    segments: list[ScriptSegmentDraft]
    optimized_texts: list[str]
    optimized_script: str
    quality_score: QualityScore


class StoryboardSummary(BaseModel):
    project_id: str
    total_segments: int
    has_asset: int
    needs_selection: int
    placeholder: int
    silent: int
    estimated_duration: float
    formatted_duration: str
    visual_completion: float = Field(..., description="Percentage of segments with a selected asset")
    placeholder_check: PlaceholderCheck
    can_render: bool
    render_block_reason: Optional[str] = None


# ============================================================================
# API Request/Response Models
# ============================================================================


class CreateProjectRequest(BaseModel):
    title: str = Field(..., description="Project title")
    script: str = Field(..., description="Script text (100-50000 characters)")
    voice_preset: VoicePreset = Field(default=VoicePreset.PROFESSIONAL_NARRATOR)
    process: bool = Field(default=True, description="Start the pipeline in the background after creation")


class PreviewRequest(BaseModel):
    script: str


class SelectAssetRequest(BaseModel):
    provider: StockProvider
    provider_asset_id: str


class PlaceholderRequest(BaseModel):
    color: str = Field(default="#1a1a1a", description="#RRGGBB")


class SilenceRequest(BaseModel):
    is_silent: bool
    duration: Optional[float] = Field(default=None, description="Pause length in seconds (0.5-60)")


class SegmentTextRequest(BaseModel):
    text: str


class SynthesizeRequest(BaseModel):
    force: bool = Field(default=False, description="Bypass the TTS cache")


class RenderCompleteRequest(BaseModel):
    success: bool = True
    error: Optional[str] = None


class ProjectDetail(BaseModel):
    project: Project
    segments: list[Segment]


class AssetSelectionResponse(BaseModel):
    segment: Segment
    duration_check: DurationCheck
