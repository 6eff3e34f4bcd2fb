"""Per-conversation speech options.

The chat layer stores TTS settings per conversation as ``ttsEnabled``,
``ttsVoice`` and ``ttsSpeechRate`` (the rate is stored as a string).
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

MIN_RATE = 0.5
MAX_RATE = 2.0


def parse_rate(value: Any, default: float = 1.0) -> float:
    """Parse a speech rate, clamped to [0.5, 2.0].

    Unparseable or non-positive values fall back to default.
    """
    try:
        rate = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid speech rate {value!r}, using {default}")
        return default

    if rate != rate or rate <= 0:  # NaN or non-positive
        logger.warning(f"Invalid speech rate {value!r}, using {default}")
        return default
    return max(MIN_RATE, min(MAX_RATE, rate))


@dataclass(frozen=True)
class SpeechOptions:
    """Speech settings applied to each speak() call.

    Attributes:
        enabled: Speak at all
        voice: Catalog voice id
        rate: Speaking rate multiplier
    """

    enabled: bool = True
    voice: str = "alloy"
    rate: float = 1.0

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> "SpeechOptions":
        """Build options from a conversation settings record."""
        return cls(
            enabled=bool(settings.get("ttsEnabled", True)),
            voice=settings.get("ttsVoice") or "alloy",
            rate=parse_rate(settings.get("ttsSpeechRate", "1.0")),
        )


__all__ = ["SpeechOptions", "parse_rate"]
