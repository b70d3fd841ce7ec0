"""Shared pytest fixtures and configuration."""

import json
from typing import Callable, Optional, Union

import pytest

from scriptboard.core.config import Settings
from scriptboard.core.errors import ProviderError
from scriptboard.core.logging_config import get_logger
from scriptboard.models.schemas import (
    AssetSearchOptions,
    AssetType,
    Orientation,
    Project,
    ProjectStatus,
    Segment,
    SpeechProviderName,
    StockAsset,
    StockProvider,
    VoicePreset,
)
from scriptboard.pipelines.orchestrator import PipelineOrchestrator
from scriptboard.services.asset_cache import AssetCache
from scriptboard.services.asset_ranker import rank_asset
from scriptboard.services.asset_search import AssetSearchEngine
from scriptboard.services.container import ServiceContainer
from scriptboard.services.content_moderator import ContentModerator
from scriptboard.services.quality_scorer import SCORING_SYSTEM, QualityScorer
from scriptboard.services.script_engine import (
    IMPROVE_SYSTEM,
    REWRITE_SYSTEM,
    SEGMENTATION_SYSTEM,
    VISUAL_QUERY_SYSTEM,
    ScriptEngine,
)
from scriptboard.services.speech_synthesizer import SpeechSynthesisService
from scriptboard.services.stock_sources import StockSource
from scriptboard.services.storyboard_service import StoryboardService
from scriptboard.services.tts_cache import TTSCache
from scriptboard.services.tts_client import SpeechProvider
from scriptboard.storage.object_storage import LocalObjectStorage
from scriptboard.storage.repository import ProjectRepository

SAMPLE_SCRIPT = (
    "Coffee has a surprising history. Legend says a goat herder noticed his goats dancing after eating red "
    "berries. Centuries later the drink spread from Ethiopian highlands to Yemeni monasteries and then to "
    "European coffee houses, where merchants and thinkers traded ideas over steaming cups."
)


@pytest.fixture
def settings(tmp_path):
    """Create test settings instance with every path under tmp_path and no pacing delays."""
    return Settings(
        storage_path=str(tmp_path / "projects"),
        cache_db_path=str(tmp_path / "cache.db"),
        object_storage_path=str(tmp_path / "objects"),
        object_storage_base_url="http://localhost:8000/storage",
        openai_api_key=None,
        pexels_api_key=None,
        pixabay_api_key=None,
        elevenlabs_api_key=None,
        asset_segment_delay=0.0,
        llm_segment_delay=0.0,
        tts_initial_delay=0.0,
        llm_retry_base_delay=0.0,
    )


@pytest.fixture
def logger():
    """Create test logger instance."""
    return get_logger(__name__)


@pytest.fixture
def repository(settings, logger):
    return ProjectRepository(settings, logger)


def make_asset(
    asset_id: str = "1",
    provider: StockProvider = StockProvider.PEXELS,
    duration: Optional[float] = 20.0,
    width: int = 1920,
    height: int = 1080,
    tags: str = "coffee cup morning",
    query: str = "coffee cup",
    **metadata,
) -> StockAsset:
    """Build a stock asset. duration=None makes an image."""
    asset_type = AssetType.IMAGE if duration is None else AssetType.VIDEO
    return StockAsset(
        id=f"{provider.value}_{asset_type.value}_{asset_id}",
        provider=provider,
        provider_asset_id=asset_id,
        asset_type=asset_type,
        url=f"https://example.com/{provider.value}/{asset_id}.mp4",
        thumbnail_url=f"https://example.com/{provider.value}/{asset_id}.jpg",
        duration=duration,
        width=width,
        height=height,
        orientation=Orientation.LANDSCAPE if width >= height else Orientation.PORTRAIT,
        metadata={"tags": tags, "query": query, **metadata},
    )


class FakeLLMClient:
    """
    Stands in for LLMClient. Replies are chosen by system prompt.

    Each handler is either a fixed reply string or a callable taking the
    user prompt and returning the reply.
    """

    def __init__(
        self,
        handlers: Optional[dict[str, Union[str, Callable[[str], str]]]] = None,
        moderation: Optional[Union[dict[str, float], Exception]] = None,
    ):
        self.handlers = handlers or {}
        self.moderation = moderation if moderation is not None else {}
        self.calls: list[tuple[str, str]] = []

    def complete(self, system_prompt, user_prompt, max_tokens=2000, temperature=None):
        self.calls.append((system_prompt, user_prompt))
        handler = self.handlers[system_prompt]
        return handler(user_prompt) if callable(handler) else handler

    def moderation_scores(self, text):
        if isinstance(self.moderation, Exception):
            raise self.moderation
        return dict(self.moderation)

    def calls_for(self, system_prompt):
        return [user for system, user in self.calls if system == system_prompt]


def default_llm_handlers(segment_count: int = 2, quality: Optional[dict] = None) -> dict:
    segments = [
        {"text": f"Segment {i} about coffee history", "energy": 60, "intent": "explain", "est_duration_hint": 20}
        for i in range(1, segment_count + 1)
    ]
    segments[0]["intent"] = "hook"
    scores = quality or {"clarity": 80, "pacing": 75, "hook": 70, "suggestions": ["Tighten the intro"]}
    return {
        SEGMENTATION_SYSTEM: "```json\n" + json.dumps(segments) + "\n```",
        REWRITE_SYSTEM: lambda user: "Rewritten: " + user.split("Original: ", 1)[1].split("\n", 1)[0],
        VISUAL_QUERY_SYSTEM: json.dumps({"queries": ["coffee cup", "coffee beans roasting"], "fallback": "warm cafe"}),
        SCORING_SYSTEM: json.dumps(scores),
        IMPROVE_SYSTEM: "Improved script text",
    }


@pytest.fixture
def fake_llm():
    return FakeLLMClient(default_llm_handlers(), moderation={"violence": 0.01, "hate": 0.0})


class FakeStockSource(StockSource):
    """In-memory stock source returning a fixed list per query (or raising)."""

    def __init__(self, settings, logger, name: str = "pexels", results=None, error: Optional[Exception] = None):
        super().__init__(settings, logger)
        self.name = name
        self.results = results or {}
        self.error = error
        self.queries: list[tuple[str, AssetSearchOptions]] = []

    def get_source_name(self) -> str:
        return self.name

    def is_configured(self) -> bool:
        return True

    def search_videos(self, query, options):
        return []

    def search_photos(self, query, options):
        return []

    def search(self, query, options):
        self.queries.append((query, options))
        if self.error is not None:
            raise self.error
        return list(self.results.get(query, self.results.get("*", [])))


class FakeSpeechProvider(SpeechProvider):
    """Fails the first `failures` calls, then returns fixed bytes."""

    def __init__(
        self,
        settings,
        logger,
        name: SpeechProviderName = SpeechProviderName.ELEVENLABS,
        audio: bytes = b"\xff" * 16000,
        failures: int = 0,
        configured: bool = True,
    ):
        super().__init__(settings, logger)
        self.name = name
        self.audio = audio
        self.failures = failures
        self.configured = configured
        self.calls: list[tuple[str, VoicePreset]] = []

    def is_configured(self) -> bool:
        return self.configured

    def synthesize(self, text, preset):
        self.calls.append((text, preset))
        if len(self.calls) <= self.failures:
            raise ProviderError(f"{self.name.value} unavailable", provider=self.name.value)
        return self.audio


class FixedProbe:
    """Duration probe returning a fixed value, or raising ProviderError."""

    def __init__(self, duration: Optional[float] = 4.0):
        self.duration = duration

    def measure(self, audio):
        if self.duration is None:
            raise ProviderError("probe failed", provider="ffmpeg")
        return self.duration


def make_ready_project(
    repository: ProjectRepository,
    owner_id: str = "alice",
    project_id: str = "proj_ready",
    segment_count: int = 3,
    suggestions: Optional[list[StockAsset]] = None,
) -> Project:
    """Store a project in ready status with `segment_count` 20-second segments."""
    repository.create_project(
        Project(id=project_id, owner_id=owner_id, title="Coffee", original_script=SAMPLE_SCRIPT)
    )
    ranked = [rank_asset(a, "coffee cup", 20) for a in (suggestions or [])]
    segments = [
        Segment(
            id=f"seg_{i}",
            project_id=project_id,
            segment_number=i,
            original_text=f"Segment {i} about coffee",
            optimized_text=f"Segment {i} about coffee history and the people who drank it",
            estimated_duration=20,
            search_queries=["coffee cup"],
            fallback_query="warm cafe",
            suggestions=ranked,
        )
        for i in range(1, segment_count + 1)
    ]
    repository.transition_status(project_id, owner_id, ProjectStatus.PROCESSING)
    repository.replace_segments(project_id, owner_id, segments, optimized_script="Optimized coffee script")
    return repository.transition_status(project_id, owner_id, ProjectStatus.READY)


def build_test_container(
    settings: Settings,
    logger,
    llm: FakeLLMClient,
    sources: Optional[list[StockSource]] = None,
    speech_providers: Optional[list[SpeechProvider]] = None,
) -> ServiceContainer:
    """Wire the real services around fake LLM, stock and speech backends."""
    repository = ProjectRepository(settings, logger)
    asset_cache = AssetCache(settings, logger)
    if sources is None:
        sources = [
            FakeStockSource(
                settings,
                logger,
                results={
                    "*": [
                        make_asset("1", duration=20),
                        make_asset("2", duration=22),
                        make_asset("3", provider=StockProvider.PIXABAY, duration=18),
                    ]
                },
            )
        ]
    synthesizer = SpeechSynthesisService(
        settings,
        logger,
        speech_providers or [FakeSpeechProvider(settings, logger)],
        TTSCache(settings, logger),
        LocalObjectStorage(settings, logger),
        probe=FixedProbe(4.0),
        sleep=lambda _: None,
    )
    orchestrator = PipelineOrchestrator(
        settings,
        logger,
        repository=repository,
        script_engine=ScriptEngine(settings, logger, llm),
        moderator=ContentModerator(settings, logger, llm),
        quality_scorer=QualityScorer(settings, logger, llm),
        asset_search=AssetSearchEngine(settings, logger, sources, cache=asset_cache),
    )
    return ServiceContainer(
        settings=settings,
        logger=logger,
        repository=repository,
        storyboard=StoryboardService(settings, logger, repository, asset_cache=asset_cache, synthesizer=synthesizer),
        orchestrator=orchestrator,
        synthesizer=synthesizer,
        asset_cache=asset_cache,
    )


@pytest.fixture
def container(settings, logger, fake_llm):
    return build_test_container(settings, logger, fake_llm)
