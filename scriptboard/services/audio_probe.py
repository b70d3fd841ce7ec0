"""Audio duration probing with pydub, plus a size-based estimate."""

import io
from typing import Any

from pydub import AudioSegment

from scriptboard.core.errors import ProviderError

DEFAULT_BITRATE = 128000


def estimate_duration_from_size(num_bytes: int, bitrate: int = DEFAULT_BITRATE) -> float:
    """Seconds of constant-bitrate audio in `num_bytes` bytes."""
    if bitrate <= 0:
        raise ValueError("bitrate must be positive")
    return round(num_bytes * 8 / bitrate, 2)


class AudioDurationProbe:
    """Measures encoded audio length (pydub decodes through ffmpeg)."""

    def __init__(self, logger: Any, audio_format: str = "mp3"):
        self.logger = logger
        self.audio_format = audio_format

    def measure(self, audio: bytes) -> float:
        """
        Duration of the encoded audio in seconds.

        Raises:
            ProviderError: If the audio cannot be decoded
        """
        try:
            segment = AudioSegment.from_file(io.BytesIO(audio), format=self.audio_format)
        except Exception as e:
            raise ProviderError(f"Could not probe audio duration: {e}", provider="ffmpeg") from e
        return round(len(segment) / 1000.0, 2)
