"""Audio playback protocol.

Defines the interface for audio output that playback backends implement.
"""

from collections.abc import Callable
from typing import Protocol


class AudioPlayback(Protocol):
    """Interface for audio output playback."""

    def play_async(
        self,
        audio: bytes,
        sample_rate: int,
        on_complete: Callable[[], None] | None = None,
    ) -> None:
        """Start playing audio and return immediately.

        Args:
            audio: Raw PCM audio bytes (16-bit, mono)
            sample_rate: Sample rate in Hz
            on_complete: Called from the playback thread when audio
                finishes or is stopped

        Raises:
            PlaybackError: If playback cannot be started
        """
        ...

    def stop(self) -> None:
        """Stop current playback.

        Safe to call even if nothing is playing.
        """
        ...

    @property
    def is_playing(self) -> bool:
        """Return True if audio is currently playing."""
        ...

    @property
    def sample_rate(self) -> int:
        """Get the configured output sample rate in Hz."""
        ...


__all__ = ["AudioPlayback"]
