"""Mock audio playback for testing.

Records all audio that would be played for later verification.
"""

from collections.abc import Callable

from ..errors import PlaybackError


class MockAudioPlayback:
    """Mock audio playback implementing the AudioPlayback protocol.

    Asynchronous playback stays "playing" until finish() or stop() is
    called, which lets tests observe the speaking state.
    """

    def __init__(self, sample_rate: int = 22050, fail_on_play: bool = False) -> None:
        """Initialize mock playback.

        Args:
            sample_rate: Output sample rate in Hz
            fail_on_play: If True, every play call raises PlaybackError
        """
        self._sample_rate = sample_rate
        self._is_playing = False
        self._played_audio: list[tuple[bytes, int]] = []
        self._play_count = 0
        self._stop_count = 0
        self._on_complete: Callable[[], None] | None = None
        self.fail_on_play = fail_on_play

    def play_async(
        self,
        audio: bytes,
        sample_rate: int,
        on_complete: Callable[[], None] | None = None,
    ) -> None:
        """Record audio and mark playback as running."""
        if self.fail_on_play:
            raise PlaybackError("Mock playback failure")
        self._played_audio.append((audio, sample_rate))
        self._play_count += 1
        self._is_playing = True
        self._on_complete = on_complete

    def finish(self) -> None:
        """Simulate the end of the current audio."""
        callback = self._on_complete
        self._on_complete = None
        self._is_playing = False
        if callback is not None:
            callback()

    def stop(self) -> None:
        """Stop mock playback without firing completion."""
        self._stop_count += 1
        self._is_playing = False
        self._on_complete = None

    @property
    def is_playing(self) -> bool:
        """Return True if 'playing'."""
        return self._is_playing

    @property
    def sample_rate(self) -> int:
        """Get output sample rate."""
        return self._sample_rate

    @property
    def play_count(self) -> int:
        """Get number of times play was called."""
        return self._play_count

    @property
    def stop_count(self) -> int:
        """Get number of times stop was called."""
        return self._stop_count

    @property
    def played_audio(self) -> bytes | None:
        """Get the last played audio bytes."""
        if not self._played_audio:
            return None
        return self._played_audio[-1][0]

    @property
    def all_played_audio(self) -> list[tuple[bytes, int]]:
        """Get list of all (audio, sample_rate) pairs that were played."""
        return self._played_audio.copy()

    def clear(self) -> None:
        """Clear recorded audio."""
        self._played_audio.clear()
        self._play_count = 0
        self._stop_count = 0


__all__ = ["MockAudioPlayback"]
