"""Speech Synthesis Service - cached, retried, multi-provider narration audio."""

import time
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field

from scriptboard.core.config import Settings
from scriptboard.core.errors import InputValidationError, ProviderError, RetryExhausted, SynthesisFailed
from scriptboard.models.schemas import SynthesisResult, VoicePreset
from scriptboard.services.audio_probe import AudioDurationProbe, estimate_duration_from_size
from scriptboard.services.tts_cache import TTSCache, tts_cache_key
from scriptboard.services.tts_client import SpeechProvider
from scriptboard.services.voice_presets import validate_voice_preset
from scriptboard.storage.object_storage import LocalObjectStorage
from scriptboard.utils.parallel_executor import ParallelExecutor
from scriptboard.utils.retry import RetryPolicy, call_with_retry


class SynthesisRequest(BaseModel):
    text: str
    voice_preset: VoicePreset = VoicePreset.PROFESSIONAL_NARRATOR
    project_id: str
    force: bool = Field(default=False, description="Bypass the cache")


class SpeechSynthesisService:
    """
    Text + voice preset -> stored mp3 with a measured duration.

    Flow: cache lookup -> providers in order, each under the retry policy ->
    duration probe (size-based estimate on failure) -> upload -> cache write.
    """

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        providers: list[SpeechProvider],
        cache: TTSCache,
        storage: LocalObjectStorage,
        probe: Optional[AudioDurationProbe] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize speech synthesis service.

        Args:
            settings: Application settings
            logger: Logger instance
            providers: Speech providers in failover order (primary first)
            cache: TTS cache
            storage: Object storage for the audio files
            probe: Audio duration probe
            sleep: Sleep function used between retries (injectable for tests)
        """
        self.settings = settings
        self.logger = logger
        self.providers = providers
        self.cache = cache
        self.storage = storage
        self.probe = probe or AudioDurationProbe(logger)
        self._sleep = sleep
        self.retry_policy = RetryPolicy(
            max_attempts=settings.tts_max_attempts,
            initial_delay=settings.tts_initial_delay,
            multiplier=settings.tts_backoff_multiplier,
            max_delay=settings.tts_max_delay,
        )
        self.executor = ParallelExecutor(logger, max_workers=settings.tts_max_concurrent)

    def synthesize(
        self,
        text: str,
        voice_preset: VoicePreset,
        project_id: str,
        force: bool = False,
    ) -> SynthesisResult:
        """
        Produce narration audio for text.

        Args:
            text: Narration text (trimmed before hashing)
            voice_preset: Voice preset name
            project_id: Owning project, used in the storage path
            force: Skip the cache lookup and regenerate

        Returns:
            SynthesisResult with cached=True when served from the cache

        Raises:
            InputValidationError: For empty text or an unknown preset
            SynthesisFailed: When every provider exhausted its retries
        """
        if not text or not text.strip():
            raise InputValidationError("Text cannot be empty")
        preset = validate_voice_preset(voice_preset)
        text_hash = tts_cache_key(text, preset)

        if not force:
            hit = self.cache.get(text_hash, preset)
            if hit is not None:
                self.logger.info(f"[TTS] Cache hit for {text_hash}")
                return SynthesisResult(
                    audio_url=hit.audio_url,
                    duration_seconds=hit.duration_seconds,
                    provider=hit.provider,
                    cached=True,
                    text_hash=text_hash,
                )

        provider, audio = self._generate_with_failover(text.strip(), preset)
        duration = self._measure(audio)

        storage_path = f"{project_id}/{text_hash}.mp3"
        audio_url = self.storage.upload(self.settings.tts_bucket, storage_path, audio, content_type="audio/mpeg")

        _, created = self.cache.put(
            text_hash, preset, audio_url, storage_path, duration, provider.name, replace=force
        )
        if not created:
            self.logger.debug(f"[TTS] Kept the existing cache entry for {text_hash}")
        self.logger.info(
            f"[TTS] Generated {duration:.2f}s of audio with {provider.name.value} for {text_hash}"
        )
        return SynthesisResult(
            audio_url=audio_url,
            duration_seconds=duration,
            provider=provider.name,
            cached=False,
            text_hash=text_hash,
        )

    def _generate_with_failover(self, text: str, preset: VoicePreset) -> tuple[SpeechProvider, bytes]:
        configured = [p for p in self.providers if p.is_configured()]
        if not configured:
            raise SynthesisFailed("No speech provider configured")

        last_error: Optional[BaseException] = None
        for provider in configured:
            try:
                audio = call_with_retry(
                    lambda p=provider: p.synthesize(text, preset),
                    self.retry_policy,
                    self.logger,
                    f"[TTS] {provider.name.value}",
                    sleep=self._sleep,
                )
                return provider, audio
            except RetryExhausted as e:
                last_error = e.last_error
                self.logger.warning(f"[TTS] {provider.name.value} exhausted retries, trying next provider")

        raise SynthesisFailed(
            f"All speech providers failed: {last_error}",
            last_error=last_error,
            attempts=self.retry_policy.max_attempts * len(configured),
        )

    def _measure(self, audio: bytes) -> float:
        try:
            return self.probe.measure(audio)
        except ProviderError as e:
            estimate = estimate_duration_from_size(len(audio), self.settings.tts_fallback_bitrate)
            self.logger.warning(f"[TTS] Duration probe failed ({e}), estimating {estimate:.2f}s from file size")
            return estimate

    def synthesize_batch(self, requests: list[SynthesisRequest]) -> list[SynthesisResult]:
        """
        Synthesize many texts with at most `tts_max_concurrent` in flight.

        Returns:
            One result per request, in request order. Failed items have
            success=False and the error text instead of raising.
        """
        outcomes = self.executor.execute_batch(
            [lambda r=req: self.synthesize(r.text, r.voice_preset, r.project_id, force=r.force) for req in requests],
            task_names=[f"tts[{i}]" for i in range(len(requests))],
            max_workers=self.settings.tts_max_concurrent,
        )
        return [
            result if error is None else SynthesisResult(success=False, error=str(error))
            for result, error in outcomes
        ]

    def clean_expired_cache(self) -> int:
        """Delete expired audio objects, then their cache rows. Returns rows removed."""
        expired = self.cache.expired_entries()
        if not expired:
            return 0
        self.storage.delete(self.settings.tts_bucket, [e.storage_path for e in expired])
        removed = self.cache.delete(expired)
        self.logger.info(f"[TTS] Removed {removed} expired cache entries")
        return removed
