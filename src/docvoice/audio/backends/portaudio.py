"""PortAudio playback backend using PyAudio."""

import logging
import threading
from collections.abc import Callable
from typing import Any

from ...errors import PlaybackError

logger = logging.getLogger(__name__)

# PyAudio import with fallback for type hints
try:
    import pyaudio

    PYAUDIO_AVAILABLE = True
except ImportError:
    PYAUDIO_AVAILABLE = False
    pyaudio = None

CHUNK_FRAMES = 1024


class PortAudioPlayback:
    """Audio playback through PortAudio via PyAudio.

    Implements the AudioPlayback protocol. Asynchronous playback runs on a
    daemon thread that checks its own stop event between chunks.
    """

    def __init__(
        self,
        device_name: str = "default",
        sample_rate: int = 22050,
    ) -> None:
        """Initialize playback.

        Args:
            device_name: Audio output device name or "default"
            sample_rate: Default output sample rate in Hz

        Raises:
            PlaybackError: If PyAudio is not available
        """
        if not PYAUDIO_AVAILABLE:
            raise PlaybackError("PyAudio not available. Install with: pip install pyaudio")

        self._device_name = device_name
        self._sample_rate = sample_rate
        self._is_playing = False
        self._stop_event: threading.Event | None = None

    def _get_device_index(self, pa: Any) -> int | None:
        """Get device index for configured device name."""
        if self._device_name == "default":
            return None

        for i in range(pa.get_device_count()):
            info = pa.get_device_info_by_index(i)
            if self._device_name.lower() in info["name"].lower() and info["maxOutputChannels"] > 0:
                return i

        logger.warning(f"Output device {self._device_name!r} not found, using default")
        return None

    def _open_stream(self, pa: Any, sample_rate: int) -> Any:
        try:
            return pa.open(
                format=pyaudio.paInt16,
                channels=1,
                rate=sample_rate,
                output=True,
                output_device_index=self._get_device_index(pa),
            )
        except OSError as e:
            raise PlaybackError(f"Cannot open output stream: {e}") from e

    def _write(self, stream: Any, audio: bytes, stop_event: threading.Event) -> None:
        for i in range(0, len(audio), CHUNK_FRAMES * 2):
            if stop_event.is_set():
                break
            stream.write(audio[i : i + CHUNK_FRAMES * 2])

    def play_async(
        self,
        audio: bytes,
        sample_rate: int,
        on_complete: Callable[[], None] | None = None,
    ) -> None:
        """Open the stream, then stream audio from a background thread.

        The stream is opened on the calling thread so device errors raise
        here instead of being lost in the worker.
        """
        self.stop()
        pa = pyaudio.PyAudio()
        try:
            stream = self._open_stream(pa, sample_rate)
        except PlaybackError:
            pa.terminate()
            raise

        stop_event = threading.Event()

        def _run() -> None:
            try:
                self._write(stream, audio, stop_event)
            except OSError as e:
                logger.error(f"Playback failed mid-stream: {e}")
            finally:
                stream.stop_stream()
                stream.close()
                pa.terminate()
                if self._stop_event is stop_event:
                    self._is_playing = False
                if on_complete is not None:
                    on_complete()

        self._stop_event = stop_event
        self._is_playing = True
        threading.Thread(target=_run, daemon=True, name="docvoice-playback").start()

    def stop(self) -> None:
        """Signal the playback thread to stop after its current chunk."""
        if self._stop_event is not None:
            self._stop_event.set()
            self._stop_event = None
        self._is_playing = False

    @property
    def is_playing(self) -> bool:
        """Return True if audio is playing."""
        return self._is_playing

    @property
    def sample_rate(self) -> int:
        """Get output sample rate."""
        return self._sample_rate


__all__ = ["PYAUDIO_AVAILABLE", "PortAudioPlayback"]
