"""Synthesizer protocol and data classes.

Defines the interface for offline waveform synthesis.
"""

from dataclasses import dataclass, field
from typing import Protocol

import numpy as np

from .voices import VoiceProfile


@dataclass
class AudioBuffer:
    """In-memory float audio produced by a synthesizer.

    Attributes:
        sample_rate: Sample rate in Hz
        channels: One float array per channel, samples in [-1, 1]
    """

    sample_rate: int
    channels: list[np.ndarray] = field(default_factory=list)

    @classmethod
    def mono(cls, samples: np.ndarray, sample_rate: int) -> "AudioBuffer":
        """Wrap a single sample array as a mono buffer."""
        return cls(sample_rate=sample_rate, channels=[np.asarray(samples, dtype=np.float64)])

    @property
    def channel_count(self) -> int:
        """Number of channels."""
        return len(self.channels)

    @property
    def frame_count(self) -> int:
        """Number of frames (samples per channel)."""
        if not self.channels:
            return 0
        return len(self.channels[0])

    @property
    def duration_seconds(self) -> float:
        """Buffer duration in seconds."""
        if self.sample_rate <= 0:
            return 0.0
        return self.frame_count / self.sample_rate


class Synthesizer(Protocol):
    """Interface for offline text-to-waveform synthesis.

    Implementations render text into raw float samples; encoding and
    playback are handled elsewhere.
    """

    def synthesize(self, text: str, profile: VoiceProfile, rate: float = 1.0) -> AudioBuffer:
        """Render text as audio samples.

        Args:
            text: Cleaned, non-empty text to render
            profile: Voice profile to render with
            rate: Speaking rate multiplier (1.0 = normal)

        Returns:
            AudioBuffer with mono samples

        Raises:
            SynthesisError: If rendering fails irrecoverably
        """
        ...

    @property
    def sample_rate(self) -> int:
        """Output sample rate in Hz."""
        ...


__all__ = ["AudioBuffer", "Synthesizer"]
