"""Speech engine: cache-first offline TTS with a fallback ladder.

Each speak() call runs the stages in order:

    PREPARING -> CACHE_CHECK -> (hit) PLAYING
                             -> (miss) SYNTHESIZING -> ENCODING
                                       -> CACHING_RESULT -> PLAYING

Any failure drops to NATIVE_FALLBACK, which hands the text to the platform
speech engine. speak() never raises; exhausted fallbacks are reported via
the ``error`` attribute and the engine returns to IDLE.
"""

import asyncio
import functools
import logging
import threading
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..config.settings import SpeechOptions
from ..errors import DocvoiceError, FailureKind, SynthesisError, classify_failure
from .native import Utterance, select_native_voice
from .text import prepare_text
from .voices import VoiceProfile, get_voice_gender, get_voice_profile, list_voices
from .wav import encode_wav, float_to_pcm16, pcm16_frames
from .waveform import generate_fallback_tone

if TYPE_CHECKING:
    from ..audio.playback import AudioPlayback
    from .cache import AudioCache
    from .native import NativeSpeechEngine
    from .synthesizer import Synthesizer

logger = logging.getLogger(__name__)

PLAYBACK_FAILED_MESSAGE = "Audio playback failed. Using fallback voice."
PLAYBACK_ERROR = "Failed to play audio. Try again or check audio settings."
NATIVE_UNAVAILABLE_ERROR = "Speech synthesis not available"


class SpeechState(Enum):
    """Stages of a speak() call."""

    IDLE = "idle"
    PREPARING = "preparing"
    CACHE_CHECK = "cache_check"
    SYNTHESIZING = "synthesizing"
    ENCODING = "encoding"
    CACHING_RESULT = "caching_result"
    PLAYING = "playing"
    NATIVE_FALLBACK = "native_fallback"


class SpeechEngine:
    """Coordinates cache, synthesis, encoding, playback and fallback.

    At most one utterance is audible at a time: a new speak() stops the
    previous one, and results of superseded calls are discarded.

    Usage:
        engine = SpeechEngine(WaveformSynthesizer(), playback, cache, native)
        await engine.speak("Hello world.")
        ...
        engine.stop()
    """

    def __init__(
        self,
        synthesizer: "Synthesizer",
        playback: "AudioPlayback | None" = None,
        cache: "AudioCache | None" = None,
        native: "NativeSpeechEngine | None" = None,
        options: SpeechOptions | None = None,
        native_language: str = "en",
        fallback_tone: bool = False,
    ) -> None:
        """Initialize the speech engine.

        Args:
            synthesizer: Offline waveform synthesizer
            playback: Audio output, or None if audio failed to initialize
            cache: Persistent audio cache, or None to always synthesize
            native: Platform speech engine for the last fallback tier
            options: Voice, rate and enabled flag
            native_language: Language prefix used to pick native voices
            fallback_tone: Play a tone when no native engine can speak
        """
        self._synthesizer = synthesizer
        self._playback = playback
        self._cache = cache
        self._native = native
        self._options = options or SpeechOptions()
        self._native_language = native_language
        self._fallback_tone = fallback_tone

        self._state = SpeechState.IDLE
        self._is_speaking = False
        self._is_loading = False
        self._error: str | None = None
        self._last_audio: bytes | None = None
        self._generation = 0

        self._loop: asyncio.AbstractEventLoop | None = None
        self._loop_thread: int | None = None
        self._idle = asyncio.Event()
        self._idle.set()
        self._listeners: list[Callable[["SpeechEngine"], None]] = []
        self._tasks: set[asyncio.Task[None]] = set()

    # Observable state

    @property
    def state(self) -> SpeechState:
        """Current stage."""
        return self._state

    @property
    def is_speaking(self) -> bool:
        """True while audio or a native utterance is audible."""
        return self._is_speaking

    @property
    def is_loading(self) -> bool:
        """True while cache lookup or synthesis is in flight."""
        return self._is_loading

    @property
    def available(self) -> bool:
        """False if the audio subsystem failed to initialize."""
        return self._playback is not None

    @property
    def error(self) -> str | None:
        """Last user-visible error, cleared at the start of each speak()."""
        return self._error

    @property
    def last_audio(self) -> bytes | None:
        """WAV bytes most recently handed to playback."""
        return self._last_audio

    @property
    def voices(self) -> list[VoiceProfile]:
        """Voice catalog for selection controls."""
        return list_voices()

    @property
    def options(self) -> SpeechOptions:
        """Current speech options."""
        return self._options

    def set_options(self, options: SpeechOptions) -> None:
        """Replace speech options; applies to the next speak() call."""
        self._options = options

    def add_listener(self, listener: Callable[["SpeechEngine"], None]) -> None:
        """Register a callback invoked after every observable change."""
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Speech engine listener failed")

    def _set_state(self, state: SpeechState) -> None:
        self._state = state
        if state == SpeechState.IDLE:
            self._idle.set()
        else:
            self._idle.clear()
        self._notify()

    def _dispatch(self, callback: Callable[..., None], *args: Any) -> None:
        """Run a callback on the event loop thread.

        Playback and native engines report from worker threads.
        """
        loop = self._loop
        if loop is None or threading.get_ident() == self._loop_thread or loop.is_closed():
            callback(*args)
        else:
            loop.call_soon_threadsafe(callback, *args)

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _log_failure(self, stage: str, error: BaseException) -> None:
        kind = classify_failure(error)
        logger.warning(f"{stage} failed ({kind.value}): {error}")

    # Public API

    async def speak(self, text: str) -> None:
        """Speak text, stopping anything already playing.

        Never raises. Failures descend the fallback ladder and, if every
        tier fails, set ``error``.
        """
        if not self._options.enabled:
            return

        cleaned = prepare_text(text)
        if not cleaned:
            kind = FailureKind.INPUT_REJECTED.value
            logger.debug(f"Nothing speakable after removing markdown ({kind})")
            return

        self._loop = asyncio.get_running_loop()
        self._loop_thread = threading.get_ident()

        self.stop()
        generation = self._generation
        self._error = None
        self._is_loading = True
        self._set_state(SpeechState.PREPARING)

        try:
            await self._run(cleaned, generation)
        except Exception as e:
            self._log_failure("Speech", e)
            if self._is_current(generation):
                self._error = f"TTS error: {e}"
                self._native_fallback(cleaned, generation)
        finally:
            if self._is_current(generation):
                self._is_loading = False
                self._notify()

    def speak_nowait(self, text: str) -> "asyncio.Task[None]":
        """Schedule speak() on the running loop and return the task."""
        task = asyncio.get_running_loop().create_task(self.speak(text))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def stop(self) -> None:
        """Stop playback and native speech immediately.

        In-flight rendering is not interrupted; its result is discarded.
        """
        self._generation += 1
        if self._playback is not None:
            self._playback.stop()
        if self._native is not None:
            self._native.cancel()
        self._is_speaking = False
        self._is_loading = False
        self._set_state(SpeechState.IDLE)

    async def wait_until_idle(self) -> None:
        """Wait until the current utterance has finished or been stopped."""
        await self._idle.wait()

    async def render(self, text: str) -> bytes:
        """Produce WAV bytes for text without playing them.

        Uses and fills the cache like speak().

        Raises:
            SynthesisError: If nothing speakable remains or rendering fails
            EncodingError: If the samples cannot be encoded
        """
        cleaned = prepare_text(text)
        if not cleaned:
            raise SynthesisError("Nothing to speak after removing markdown")

        voice = self._options.voice
        cached = await self._cache_call("get", voice, cleaned)
        if cached is not None:
            await self._cache_call("record_usage", voice, len(cleaned), False)
            return cached

        loop = asyncio.get_running_loop()
        buffer = await loop.run_in_executor(
            None,
            functools.partial(
                self._synthesizer.synthesize, cleaned, get_voice_profile(voice), self._options.rate
            ),
        )
        audio = encode_wav(buffer)
        await self._cache_call("put", voice, cleaned, audio)
        await self._cache_call("record_usage", voice, len(cleaned), True)
        return audio

    async def close(self) -> None:
        """Stop speech, wait for scheduled calls, and close the cache."""
        self.stop()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        if self._cache is not None:
            self._cache.close()

    # Pipeline

    async def _cache_call(self, method: str, *args: Any) -> Any:
        """Run a cache method off the event loop. No-op without a cache."""
        if self._cache is None:
            return None
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, getattr(self._cache, method), *args)

    async def _run(self, text: str, generation: int) -> None:
        if self._playback is None:
            self._native_fallback(text, generation)
            return

        voice = self._options.voice
        rate = self._options.rate

        self._set_state(SpeechState.CACHE_CHECK)
        cached = await self._cache_call("get", voice, text)
        if not self._is_current(generation):
            return
        if cached is not None:
            logger.debug(f"Cache hit for voice {voice} ({len(text)} chars)")
            await self._cache_call("record_usage", voice, len(text), False)
            if self._is_current(generation):
                self._start_playback(cached, generation)
            return

        self._set_state(SpeechState.SYNTHESIZING)
        loop = asyncio.get_running_loop()
        try:
            buffer = await loop.run_in_executor(
                None,
                functools.partial(
                    self._synthesizer.synthesize, text, get_voice_profile(voice), rate
                ),
            )
        except Exception as e:
            # Any renderer failure is recoverable through native speech
            self._log_failure("Synthesis", e)
            if self._is_current(generation):
                self._native_fallback(text, generation)
            return

        if not self._is_current(generation):
            logger.debug("Discarding audio from superseded speak() call")
            return

        self._set_state(SpeechState.ENCODING)
        try:
            audio = encode_wav(buffer)
        except DocvoiceError as e:
            self._log_failure("Encoding", e)
            self._native_fallback(text, generation)
            return

        self._set_state(SpeechState.CACHING_RESULT)
        await self._cache_call("put", voice, text, audio)
        await self._cache_call("record_usage", voice, len(text), True)

        if self._is_current(generation):
            self._start_playback(audio, generation)

    def _start_playback(self, audio: bytes, generation: int) -> None:
        self._set_state(SpeechState.PLAYING)
        try:
            pcm, sample_rate = pcm16_frames(audio)
            self._playback.play_async(
                pcm,
                sample_rate,
                on_complete=lambda: self._dispatch(self._on_audio_complete, generation),
            )
        except (DocvoiceError, OSError) as e:
            self._log_failure("Playback start", e)
            self._error = PLAYBACK_ERROR
            self._is_speaking = False
            self._native_fallback(PLAYBACK_FAILED_MESSAGE, generation)
            return

        self._last_audio = audio
        self._is_speaking = True
        self._notify()

    def _on_audio_complete(self, generation: int) -> None:
        if not self._is_current(generation):
            return
        self._is_speaking = False
        self._set_state(SpeechState.IDLE)

    # Fallback tiers

    def _native_fallback(self, text: str, generation: int) -> None:
        """Hand text to the platform speech engine."""
        if self._native is None or not self._native.is_available:
            logger.error(f"No native speech engine; giving up on utterance ({len(text)} chars)")
            self._error = NATIVE_UNAVAILABLE_ERROR
            if not self._play_fallback_tone(generation):
                self._set_state(SpeechState.IDLE)
            return

        self._set_state(SpeechState.NATIVE_FALLBACK)
        try:
            voice = select_native_voice(
                self._native.get_voices(),
                self._options.voice,
                get_voice_gender(self._options.voice),
                self._native_language,
            )
            utterance = Utterance(
                text=text,
                rate=self._options.rate,
                voice=voice,
                on_start=lambda: self._dispatch(self._on_native_start, generation),
                on_end=lambda: self._dispatch(self._on_native_end, generation),
                on_error=lambda message: self._dispatch(
                    self._on_native_error, generation, message
                ),
            )
            logger.info(f"Using native speech ({voice.name if voice else 'default voice'})")
            self._native.speak(utterance)
        except Exception as e:
            # Platform drivers raise arbitrary errors; this is the last tier
            self._log_failure("Native speech", e)
            self._error = NATIVE_UNAVAILABLE_ERROR
            self._set_state(SpeechState.IDLE)

    def _play_fallback_tone(self, generation: int) -> bool:
        """Play the failure tone if enabled. Returns True if it started."""
        if not self._fallback_tone or self._playback is None:
            return False

        tone = generate_fallback_tone(self._playback.sample_rate)
        try:
            self._playback.play_async(
                float_to_pcm16(tone.channels[0]).tobytes(),
                tone.sample_rate,
                on_complete=lambda: self._dispatch(self._on_audio_complete, generation),
            )
        except (DocvoiceError, OSError) as e:
            self._log_failure("Fallback tone", e)
            return False

        self._is_speaking = True
        self._set_state(SpeechState.PLAYING)
        return True

    def _on_native_start(self, generation: int) -> None:
        if not self._is_current(generation):
            return
        self._is_speaking = True
        self._set_state(SpeechState.PLAYING)

    def _on_native_end(self, generation: int) -> None:
        if not self._is_current(generation):
            return
        self._is_speaking = False
        self._set_state(SpeechState.IDLE)

    def _on_native_error(self, generation: int, message: str) -> None:
        if not self._is_current(generation):
            return
        self._error = f"Speech synthesis error: {message}"
        self._is_speaking = False
        self._set_state(SpeechState.IDLE)


__all__ = [
    "NATIVE_UNAVAILABLE_ERROR",
    "PLAYBACK_FAILED_MESSAGE",
    "SpeechEngine",
    "SpeechState",
]
