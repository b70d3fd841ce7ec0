"""Wires every service once per process."""

from typing import Any

from scriptboard.core.config import Settings
from scriptboard.pipelines.orchestrator import PipelineOrchestrator
from scriptboard.services.asset_cache import AssetCache
from scriptboard.services.asset_search import AssetSearchEngine
from scriptboard.services.content_moderator import ContentModerator
from scriptboard.services.llm_client import LLMClient
from scriptboard.services.quality_scorer import QualityScorer
from scriptboard.services.script_engine import ScriptEngine
from scriptboard.services.speech_synthesizer import SpeechSynthesisService
from scriptboard.services.stock_sources import build_stock_sources
from scriptboard.services.storyboard_service import StoryboardService
from scriptboard.services.tts_cache import TTSCache
from scriptboard.services.tts_client import build_speech_providers
from scriptboard.storage.object_storage import LocalObjectStorage
from scriptboard.storage.repository import ProjectRepository


class ServiceContainer:
    """Holds the shared clients and the services built on top of them."""

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        repository: ProjectRepository,
        storyboard: StoryboardService,
        orchestrator: PipelineOrchestrator,
        synthesizer: SpeechSynthesisService,
        asset_cache: AssetCache,
    ):
        self.settings = settings
        self.logger = logger
        self.repository = repository
        self.storyboard = storyboard
        self.orchestrator = orchestrator
        self.synthesizer = synthesizer
        self.asset_cache = asset_cache

    @classmethod
    def build(cls, settings: Settings, logger: Any) -> "ServiceContainer":
        """
        Construct every client and service from settings.

        Args:
            settings: Application settings
            logger: Logger instance

        Returns:
            Ready-to-use container
        """
        repository = ProjectRepository(settings, logger)
        asset_cache = AssetCache(settings, logger)
        llm_client = LLMClient(settings, logger)

        synthesizer = SpeechSynthesisService(
            settings,
            logger,
            providers=build_speech_providers(settings, logger),
            cache=TTSCache(settings, logger),
            storage=LocalObjectStorage(settings, logger),
        )
        orchestrator = PipelineOrchestrator(
            settings,
            logger,
            repository=repository,
            script_engine=ScriptEngine(settings, logger, llm_client),
            moderator=ContentModerator(settings, logger, llm_client),
            quality_scorer=QualityScorer(settings, logger, llm_client),
            asset_search=AssetSearchEngine(settings, logger, build_stock_sources(settings, logger), cache=asset_cache),
        )
        storyboard = StoryboardService(settings, logger, repository, asset_cache=asset_cache, synthesizer=synthesizer)

        return cls(
            settings=settings,
            logger=logger,
            repository=repository,
            storyboard=storyboard,
            orchestrator=orchestrator,
            synthesizer=synthesizer,
            asset_cache=asset_cache,
        )

    def clean_caches(self) -> dict[str, int]:
        """Sweep expired stock-asset and narration-audio cache entries."""
        return {
            "assets": self.asset_cache.clean_expired(),
            "tts": self.synthesizer.clean_expired_cache(),
        }
