"""TTS (Text-to-Speech) provider clients: ElevenLabs (primary) and OpenAI (secondary)."""

from abc import ABC, abstractmethod
from typing import Any, Optional

import requests
from openai import APITimeoutError, OpenAI

from scriptboard.core.config import Settings
from scriptboard.core.errors import InputValidationError, ProviderError, ProviderTimeout
from scriptboard.models.schemas import SpeechProviderName, VoicePreset
from scriptboard.services.voice_presets import get_voice_preset


class SpeechProvider(ABC):
    """One speech-synthesis backend. A single call is one attempt; retries live in the caller."""

    name: SpeechProviderName

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize speech provider.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger

    @abstractmethod
    def is_configured(self) -> bool:
        """True when credentials are present."""

    @abstractmethod
    def synthesize(self, text: str, preset: VoicePreset) -> bytes:
        """
        Generate mp3 audio.

        Raises:
            ProviderTimeout: If the request exceeded its timeout
            ProviderError: For any other provider failure
        """


class ElevenLabsProvider(SpeechProvider):
    """ElevenLabs text-to-speech over its REST API."""

    name = SpeechProviderName.ELEVENLABS

    def __init__(self, settings: Settings, logger: Any, session: Optional[requests.Session] = None):
        super().__init__(settings, logger)
        self.session = session or requests.Session()

    def is_configured(self) -> bool:
        return bool(self.settings.elevenlabs_api_key)

    def synthesize(self, text: str, preset: VoicePreset) -> bytes:
        if not self.is_configured():
            raise ProviderError("ElevenLabs API key not configured", provider=self.name.value)

        voice = get_voice_preset(preset).elevenlabs
        url = f"{self.settings.elevenlabs_base_url}/text-to-speech/{voice.voice_id}"
        payload = {
            "text": text,
            "model_id": self.settings.elevenlabs_model,
            "voice_settings": {
                "stability": voice.stability,
                "similarity_boost": voice.similarity_boost,
                "style": voice.style,
                "use_speaker_boost": voice.use_speaker_boost,
            },
        }
        headers = {
            "xi-api-key": self.settings.elevenlabs_api_key,
            "Content-Type": "application/json",
            "Accept": "audio/mpeg",
        }

        try:
            response = self.session.post(
                url,
                json=payload,
                headers=headers,
                params={"output_format": self.settings.elevenlabs_output_format},
                timeout=self.settings.tts_request_timeout,
            )
        except requests.Timeout as e:
            raise ProviderTimeout(
                f"ElevenLabs request timed out after {self.settings.tts_request_timeout}s", provider=self.name.value
            ) from e
        except requests.RequestException as e:
            raise ProviderError(f"ElevenLabs request failed: {e}", provider=self.name.value) from e

        if not response.ok:
            raise ProviderError(
                f"ElevenLabs API error {response.status_code}: {self._error_message(response)}",
                provider=self.name.value,
                details={"status_code": response.status_code},
            )
        if not response.content:
            raise ProviderError("ElevenLabs returned empty audio", provider=self.name.value)

        self.logger.debug(f"[TTS] ElevenLabs generated {len(response.content)} bytes")
        return response.content

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200] or "Unknown error"
        detail = body.get("detail") if isinstance(body, dict) else None
        if isinstance(detail, dict) and detail.get("message"):
            return detail["message"]
        if isinstance(body, dict) and body.get("message"):
            return body["message"]
        return str(body)[:200]

    def get_usage(self) -> Optional[dict[str, int]]:
        """
        Character quota for the configured account.

        Returns:
            {"character_count", "character_limit", "remaining_characters"} or
            None when unavailable
        """
        if not self.is_configured():
            return None
        try:
            response = self.session.get(
                f"{self.settings.elevenlabs_base_url}/user/subscription",
                headers={"xi-api-key": self.settings.elevenlabs_api_key},
                timeout=self.settings.tts_request_timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            self.logger.warning(f"[TTS] Could not fetch ElevenLabs usage: {e}")
            return None

        count = data.get("character_count") or 0
        limit = data.get("character_limit") or 0
        return {"character_count": count, "character_limit": limit, "remaining_characters": limit - count}


class OpenAISpeechProvider(SpeechProvider):
    """OpenAI speech endpoint through the openai SDK."""

    name = SpeechProviderName.OPENAI

    def __init__(self, settings: Settings, logger: Any, client: Optional[Any] = None):
        super().__init__(settings, logger)
        self._client = client

    def is_configured(self) -> bool:
        return self._client is not None or bool(self.settings.openai_api_key)

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self.settings.openai_api_key:
                raise InputValidationError("OpenAI API key not configured")
            self._client = OpenAI(api_key=self.settings.openai_api_key, timeout=self.settings.tts_request_timeout)
        return self._client

    def synthesize(self, text: str, preset: VoicePreset) -> bytes:
        voice = get_voice_preset(preset).openai
        try:
            response = self.client.audio.speech.create(
                model=self.settings.openai_tts_model,
                voice=voice.voice,
                input=text,
                speed=voice.speed,
                response_format="mp3",
            )
        except InputValidationError:
            raise
        except APITimeoutError as e:
            raise ProviderTimeout("OpenAI TTS request timed out", provider=self.name.value) from e
        except Exception as e:
            raise ProviderError(f"OpenAI TTS request failed: {e}", provider=self.name.value) from e

        audio = response.content
        if not audio:
            raise ProviderError("OpenAI TTS returned empty audio", provider=self.name.value)

        self.logger.debug(f"[TTS] OpenAI generated {len(audio)} bytes")
        return audio


def build_speech_providers(settings: Settings, logger: Any, openai_client: Optional[Any] = None) -> list[SpeechProvider]:
    """Providers in failover order: ElevenLabs first, OpenAI second."""
    return [
        ElevenLabsProvider(settings, logger),
        OpenAISpeechProvider(settings, logger, client=openai_client),
    ]
