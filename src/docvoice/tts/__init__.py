"""Text-to-speech module for docvoice.

Offline speech with persistent caching and graceful fallback:
- WaveformSynthesizer renders prosody-shaped audio with numpy
- AudioCache keeps encoded WAV clips in SQLite for 14 days
- Native platform speech (macOS `say`, pyttsx3) is the last resort
"""

import logging
from typing import TYPE_CHECKING

from ..audio import open_audio_playback
from ..errors import NativeSpeechError
from .cache import AudioCache, open_audio_cache
from .engine import SpeechEngine, SpeechState
from .native import NativeSpeechEngine, NativeVoice, select_native_voice
from .platform import Platform, detect_platform
from .synthesizer import AudioBuffer, Synthesizer
from .voices import DEFAULT_VOICE_ID, VoiceProfile, get_voice_profile, list_voices
from .waveform import WaveformSynthesizer

if TYPE_CHECKING:
    from ..config import DocvoiceConfig, TTSConfig

logger = logging.getLogger(__name__)


def create_native_engine(config: "TTSConfig | None" = None) -> NativeSpeechEngine | None:
    """Create the native speech engine for the current platform.

    Selection for native_engine="auto":
    - macOS: `say`, then pyttsx3
    - Other: pyttsx3

    Returns:
        A native engine, or None if none is usable. Never raises.
    """
    choice = config.native_engine if config is not None else "auto"
    if choice == "none":
        logger.info("TTS: Native speech disabled")
        return None

    platform = detect_platform()
    logger.debug(f"TTS: Detected platform: {platform.name}")

    if choice == "say" or (choice == "auto" and platform == Platform.MACOS):
        from .native import SayEngine

        engine = SayEngine()
        if engine.is_available:
            logger.info("TTS: Using SayEngine for native fallback")
            return engine
        logger.warning("TTS: macOS say command not available")
        if choice == "say":
            return None

    try:
        from .native import Pyttsx3Engine

        engine = Pyttsx3Engine()
        logger.info("TTS: Using Pyttsx3Engine for native fallback")
        return engine
    except NativeSpeechError as e:
        logger.warning(f"TTS: No native speech engine: {e}")
        return None


def create_speech_engine(
    config: "DocvoiceConfig | None" = None,
    use_mock: bool = False,
) -> SpeechEngine:
    """Build a SpeechEngine from configuration.

    Audio output, cache and native engine are each best-effort: a part
    that fails to initialize is left out and the engine degrades.

    Args:
        config: Full docvoice configuration (defaults if None)
        use_mock: If True, use mock playback, native engine and no cache

    Returns:
        A ready SpeechEngine. Never raises for unavailable subsystems.
    """
    from ..config import DocvoiceConfig

    if config is None:
        config = DocvoiceConfig()

    synthesizer = WaveformSynthesizer(
        sample_rate=config.audio.sample_rate,
        max_duration_seconds=config.tts.max_duration_seconds,
        prosody=config.tts.prosody,
    )

    if use_mock:
        from .mock import MockNativeSpeechEngine

        logger.info("TTS: Using mock playback and native engine (requested)")
        return SpeechEngine(
            synthesizer,
            playback=open_audio_playback(config.audio, use_mock=True),
            cache=None,
            native=MockNativeSpeechEngine(),
            options=config.speech_options(),
            native_language=config.tts.native_language,
            fallback_tone=config.tts.fallback_tone,
        )

    return SpeechEngine(
        synthesizer,
        playback=open_audio_playback(config.audio),
        cache=open_audio_cache(config.cache),
        native=create_native_engine(config.tts),
        options=config.speech_options(),
        native_language=config.tts.native_language,
        fallback_tone=config.tts.fallback_tone,
    )


__all__ = [
    "DEFAULT_VOICE_ID",
    "AudioBuffer",
    "AudioCache",
    "NativeSpeechEngine",
    "NativeVoice",
    "Platform",
    "SpeechEngine",
    "SpeechState",
    "Synthesizer",
    "VoiceProfile",
    "WaveformSynthesizer",
    "create_native_engine",
    "create_speech_engine",
    "detect_platform",
    "get_voice_profile",
    "list_voices",
    "select_native_voice",
]
