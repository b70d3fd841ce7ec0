"""Voice presets mapped to ElevenLabs and OpenAI voice parameters."""

from pydantic import BaseModel, Field

from scriptboard.core.errors import InputValidationError
from scriptboard.models.schemas import VoicePreset


class ElevenLabsVoice(BaseModel):
    voice_id: str
    stability: float = Field(..., ge=0, le=1)
    similarity_boost: float = Field(..., ge=0, le=1)
    style: float = Field(..., ge=0, le=1)
    use_speaker_boost: bool = True


class OpenAIVoice(BaseModel):
    voice: str
    speed: float = Field(default=1.0, ge=0.25, le=4.0)


class VoicePresetConfig(BaseModel):
    name: str
    description: str
    elevenlabs: ElevenLabsVoice
    openai: OpenAIVoice


VOICE_PRESETS: dict[VoicePreset, VoicePresetConfig] = {
    VoicePreset.PROFESSIONAL_NARRATOR: VoicePresetConfig(
        name="Professional Narrator",
        description="Clear, authoritative delivery for documentaries and explainers",
        elevenlabs=ElevenLabsVoice(
            voice_id="21m00Tcm4TlvDq8ikWAM",
            stability=0.75,
            similarity_boost=0.75,
            style=0.4,
            use_speaker_boost=True,
        ),
        openai=OpenAIVoice(voice="onyx", speed=1.0),
    ),
    VoicePreset.ENERGETIC_HOST: VoicePresetConfig(
        name="Energetic Host",
        description="Upbeat, dynamic delivery for entertainment content",
        elevenlabs=ElevenLabsVoice(
            voice_id="TxGEqnHWrfWFTfGW9XjX",
            stability=0.5,
            similarity_boost=0.8,
            style=0.7,
            use_speaker_boost=True,
        ),
        openai=OpenAIVoice(voice="nova", speed=1.05),
    ),
    VoicePreset.CALM_EDUCATOR: VoicePresetConfig(
        name="Calm Educator",
        description="Measured, warm delivery for tutorials and lessons",
        elevenlabs=ElevenLabsVoice(
            voice_id="21m00Tcm4TlvDq8ikWAM",
            stability=0.8,
            similarity_boost=0.65,
            style=0.3,
            use_speaker_boost=False,
        ),
        openai=OpenAIVoice(voice="shimmer", speed=0.95),
    ),
}


def validate_voice_preset(value: str) -> VoicePreset:
    """
    Parse a preset name.

    Raises:
        InputValidationError: For unknown presets
    """
    try:
        return VoicePreset(value)
    except ValueError as e:
        valid = ", ".join(p.value for p in VoicePreset)
        raise InputValidationError(f"Invalid voice preset '{value}'. Must be one of: {valid}") from e


def get_voice_preset(preset: VoicePreset) -> VoicePresetConfig:
    return VOICE_PRESETS[validate_voice_preset(preset)]
