"""Configuration module for docvoice.

This module provides the typed configuration tree. Values are loaded from
YAML profiles by ``docvoice.config.loader`` and passed explicitly to the
components that need them.
"""

from dataclasses import dataclass, field

from .settings import SpeechOptions, parse_rate


@dataclass
class AudioConfig:
    """Audio output configuration."""

    enabled: bool = True
    output_device: str = "default"
    sample_rate: int = 22050


@dataclass
class TTSConfig:
    """Text-to-speech configuration."""

    enabled: bool = True
    voice: str = "alloy"
    speed: float = 1.0
    max_duration_seconds: float = 10.0
    prosody: bool = True
    fallback_tone: bool = False
    native_engine: str = "auto"  # auto, say, pyttsx3, none
    native_language: str = "en"


@dataclass
class CacheConfig:
    """Persistent audio cache configuration."""

    enabled: bool = True
    path: str = "~/.docvoice/tts_cache.db"
    retention_days: int = 14


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"


@dataclass
class DocvoiceConfig:
    """Main docvoice configuration."""

    audio: AudioConfig = field(default_factory=AudioConfig)
    tts: TTSConfig = field(default_factory=TTSConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def speech_options(self) -> SpeechOptions:
        """Default speech options from the tts section."""
        return SpeechOptions(
            enabled=self.tts.enabled,
            voice=self.tts.voice,
            rate=parse_rate(self.tts.speed),
        )


__all__ = [
    "AudioConfig",
    "CacheConfig",
    "DocvoiceConfig",
    "LoggingConfig",
    "SpeechOptions",
    "TTSConfig",
]
