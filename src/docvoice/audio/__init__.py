"""Audio output for docvoice.

Provides the playback protocol and a factory that picks the available
backend.

Usage:
    playback = create_audio_playback(config.audio)

    # For testing, use the mock implementation
    from docvoice.audio.mock import MockAudioPlayback
"""

import logging
from typing import TYPE_CHECKING

from ..errors import PlaybackError
from .playback import AudioPlayback

if TYPE_CHECKING:
    from ..config import AudioConfig

logger = logging.getLogger(__name__)


def create_audio_playback(
    config: "AudioConfig | None" = None,
    use_mock: bool = False,
) -> AudioPlayback:
    """Create an audio playback instance.

    Args:
        config: Audio configuration (uses defaults if None)
        use_mock: If True, return mock implementation for testing

    Returns:
        AudioPlayback implementation

    Raises:
        PlaybackError: If audio output is disabled or no backend is available
    """
    device_name = "default"
    sample_rate = 22050

    if config is not None:
        if not config.enabled:
            raise PlaybackError("Audio output disabled by configuration")
        device_name = config.output_device
        sample_rate = config.sample_rate

    if use_mock:
        from .mock import MockAudioPlayback

        return MockAudioPlayback(sample_rate=sample_rate)

    from .backends.portaudio import PortAudioPlayback

    return PortAudioPlayback(device_name=device_name, sample_rate=sample_rate)


def open_audio_playback(
    config: "AudioConfig | None" = None,
    use_mock: bool = False,
) -> AudioPlayback | None:
    """Create audio playback, returning None if audio is unavailable."""
    try:
        return create_audio_playback(config, use_mock=use_mock)
    except PlaybackError as e:
        logger.warning(f"Audio output unavailable, native speech only: {e}")
        return None


__all__ = [
    "AudioPlayback",
    "create_audio_playback",
    "open_audio_playback",
]
