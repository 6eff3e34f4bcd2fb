"""Offline waveform synthesizer.

Renders text into a prosody-shaped oscillator signal using numpy. No
network or model files are involved: pitch follows the voice profile,
varies per sentence and per word, and the amplitude envelope ramps in and
out to avoid clicks at the buffer edges.
"""

import hashlib
import logging
import math
import re

import numpy as np

from ..errors import SynthesisError
from .synthesizer import AudioBuffer
from .voices import VoiceProfile

logger = logging.getLogger(__name__)

# Reading-speed heuristic, tunable
WORDS_PER_MINUTE = 150.0
CHARS_PER_WORD = 5.0

DEFAULT_SAMPLE_RATE = 22050
MAX_DURATION_SECONDS = 10.0

ENVELOPE_LEVEL = 0.5
ATTACK_SECONDS = 0.02
RELEASE_SECONDS = 0.05

# Sentence pitch offsets by sentence index parity
EVEN_SENTENCE_PITCH = 1.05
ODD_SENTENCE_PITCH = 0.97

PAUSE_SLOT_FACTOR = 1.3
BASE_MIX = 0.7
FORMANT_MIX = 0.3
BREATH_LEVEL = 0.05

FALLBACK_TONE_HZ = 440.0
FALLBACK_TONE_SECONDS = 0.5
FALLBACK_TONE_AMPLITUDE = 0.8
FALLBACK_TONE_FADE_SECONDS = 0.05

_SENTENCE_SPLIT = re.compile(r"[.!?]+")


def estimate_duration(text: str, rate: float = 1.0) -> float:
    """Estimate spoken duration of text in seconds.

    Assumes 150 words per minute and 5 characters per word, scaled by rate.
    """
    words = len(text) / CHARS_PER_WORD
    return (words / WORDS_PER_MINUTE) * 60.0 / rate


def split_sentences(text: str) -> list[str]:
    """Split text on sentence punctuation, dropping empty segments."""
    return [s.strip() for s in _SENTENCE_SPLIT.split(text) if s.strip()]


def build_envelope(num_samples: int, sample_rate: int, level: float = ENVELOPE_LEVEL) -> np.ndarray:
    """Build the attack/hold/release amplitude envelope.

    Ramps 0 -> level over 20ms, holds, and ramps level -> 0 over the final
    50ms. Ramps are shortened proportionally when the buffer is too short
    to fit both.
    """
    envelope = np.full(num_samples, level, dtype=np.float64)
    attack = int(sample_rate * ATTACK_SECONDS)
    release = int(sample_rate * RELEASE_SECONDS)

    if attack + release > num_samples:
        scale = num_samples / (attack + release)
        attack = int(attack * scale)
        release = num_samples - attack

    if attack > 0:
        envelope[:attack] = np.linspace(0.0, level, attack, endpoint=False)
    if release > 0:
        envelope[num_samples - release :] = np.linspace(level, 0.0, release)
    return envelope


def generate_fallback_tone(sample_rate: int = DEFAULT_SAMPLE_RATE) -> AudioBuffer:
    """Generate the 0.5s 440Hz fallback tone with 50ms fades."""
    num_samples = int(sample_rate * FALLBACK_TONE_SECONDS)
    fade = int(sample_rate * FALLBACK_TONE_FADE_SECONDS)
    index = np.arange(num_samples, dtype=np.float64)

    amplitude = np.ones(num_samples, dtype=np.float64)
    if fade > 0:
        amplitude = np.where(index < fade, index / fade, amplitude)
        amplitude = np.where(index > num_samples - fade, (num_samples - index) / fade, amplitude)

    samples = np.sin(2.0 * np.pi * FALLBACK_TONE_HZ * index / sample_rate)
    samples *= FALLBACK_TONE_AMPLITUDE * amplitude
    return AudioBuffer.mono(samples, sample_rate)


def _phase(frequency: np.ndarray, sample_rate: int) -> np.ndarray:
    """Integrate an instantaneous frequency track into oscillator phase."""
    return 2.0 * np.pi * np.cumsum(frequency) / sample_rate


def _text_seed(text: str) -> int:
    digest = hashlib.blake2b(text.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "little")


class WaveformSynthesizer:
    """Prosody-shaped oscillator synthesizer.

    Output is deterministic: the same (text, profile, rate) always renders
    the same samples, which keeps cached and fresh audio byte-identical.
    """

    def __init__(
        self,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        max_duration_seconds: float = MAX_DURATION_SECONDS,
        prosody: bool = True,
    ) -> None:
        """Initialize the synthesizer.

        Args:
            sample_rate: Output sample rate in Hz
            max_duration_seconds: Hard ceiling on rendered audio length
            prosody: Enable the per-word pitch and emphasis pass
        """
        self._sample_rate = sample_rate
        self._max_duration_seconds = max_duration_seconds
        self._prosody = prosody

    @property
    def sample_rate(self) -> int:
        """Output sample rate in Hz."""
        return self._sample_rate

    @property
    def max_samples(self) -> int:
        """Largest number of samples a single render may produce."""
        return int(self._max_duration_seconds * self._sample_rate)

    def synthesize(self, text: str, profile: VoiceProfile, rate: float = 1.0) -> AudioBuffer:
        """Render text as mono samples.

        Text implying more than the duration ceiling is rendered at the
        ceiling, compressing the prosody into the available samples.

        Raises:
            SynthesisError: If text is empty, rate is invalid, or numeric
                rendering fails
        """
        if not text or not text.strip():
            raise SynthesisError("Nothing to synthesize")
        if not math.isfinite(rate) or rate <= 0:
            raise SynthesisError(f"Invalid speaking rate: {rate}")

        num_samples = math.ceil(estimate_duration(text, rate) * self._sample_rate)
        num_samples = max(1, min(num_samples, self.max_samples))

        try:
            with np.errstate(invalid="raise", over="raise"):
                samples = self._render(text, profile, num_samples)
        except (ValueError, FloatingPointError) as e:
            raise SynthesisError(f"Waveform rendering failed: {e}") from e

        logger.debug(
            f"Rendered {num_samples} samples ({num_samples / self._sample_rate:.2f}s) "
            f"for voice {profile.id}"
        )
        return AudioBuffer.mono(samples, self._sample_rate)

    def _render(self, text: str, profile: VoiceProfile, num_samples: int) -> np.ndarray:
        sentence_pitch = self._sentence_pitch(text, num_samples)
        signal = np.sin(_phase(profile.base_frequency_hz * sentence_pitch, self._sample_rate))

        if self._prosody:
            try:
                signal = self._apply_prosody(signal, text, profile, sentence_pitch)
            except MemoryError:
                logger.warning("Skipping prosody pass: not enough memory")

        peak = float(np.max(np.abs(signal))) if num_samples else 0.0
        if peak > 1.0:
            signal = signal / peak

        return signal * build_envelope(num_samples, self._sample_rate)

    def _sentence_pitch(self, text: str, num_samples: int) -> np.ndarray:
        """Pitch multiplier per sample, alternating by sentence parity."""
        sentence_count = max(len(split_sentences(text)), 1)
        index = np.minimum(
            (np.arange(num_samples) * sentence_count) // num_samples,
            sentence_count - 1,
        )
        return np.where(index % 2 == 0, EVEN_SENTENCE_PITCH, ODD_SENTENCE_PITCH)

    def _word_slots(self, words: list[str], num_samples: int) -> np.ndarray:
        """Sample length of each word slot; pauses after punctuation."""
        weights = np.array(
            [PAUSE_SLOT_FACTOR if w.endswith((",", ".", "?", "!")) else 1.0 for w in words]
        )
        bounds = np.round(np.cumsum(weights) / weights.sum() * num_samples).astype(int)
        return np.diff(np.concatenate(([0], bounds)))

    def _apply_prosody(
        self,
        base: np.ndarray,
        text: str,
        profile: VoiceProfile,
        sentence_pitch: np.ndarray,
    ) -> np.ndarray:
        num_samples = len(base)
        words = text.split()
        slots = self._word_slots(words, num_samples)
        starts = np.concatenate(([0], np.cumsum(slots)[:-1]))

        # Rise early in each word, fall late in each word
        knot_x = [0.0]
        knot_y = [1.0]
        for i, (start, length) in enumerate(zip(starts, slots)):
            knot_x += [start + 0.2 * length, start + 0.8 * length]
            knot_y += [1.0 + 0.03 * math.sin(i), 1.0 - 0.02 * math.sin(i * 0.7)]
        contour = np.interp(np.arange(num_samples), knot_x, knot_y)

        emphasis = np.array(
            [
                profile.emphasis_factor if i % 4 == 0 or w.endswith(("?", "!")) else 1.0
                for i, w in enumerate(words)
            ]
        )
        word_gain = np.repeat(emphasis, slots)

        total_gain = sum(f.gain for f in profile.formants) or 1.0
        formants = np.zeros(num_samples)
        for formant in profile.formants:
            track = formant.frequency_hz * contour * sentence_pitch
            formants += formant.gain * np.sin(_phase(track, self._sample_rate))
        formants /= total_gain

        voiced = np.sin(
            _phase(profile.base_frequency_hz * sentence_pitch * contour, self._sample_rate)
        )
        signal = (BASE_MIX * voiced + FORMANT_MIX * formants) * word_gain

        if profile.breathiness > 0:
            rng = np.random.default_rng(_text_seed(text))
            signal += profile.breathiness * BREATH_LEVEL * rng.standard_normal(num_samples)

        return signal


__all__ = [
    "CHARS_PER_WORD",
    "DEFAULT_SAMPLE_RATE",
    "MAX_DURATION_SECONDS",
    "WORDS_PER_MINUTE",
    "WaveformSynthesizer",
    "build_envelope",
    "estimate_duration",
    "generate_fallback_tone",
    "split_sentences",
]
