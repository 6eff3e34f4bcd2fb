"""Mock synthesizer and native speech engine for testing.

Provides controllable implementations for unit and integration tests.
"""

import numpy as np

from ..errors import NativeSpeechError, SynthesisError
from .native import NativeVoice, Utterance
from .synthesizer import AudioBuffer
from .voices import VoiceProfile


class MockSynthesizer:
    """Mock synthesizer for testing.

    Generates a short tone at the voice's base frequency instead of speech.
    Duration is proportional to word count.
    """

    def __init__(self, sample_rate: int = 22050, fail_with: Exception | None = None) -> None:
        """Initialize mock synthesizer.

        Args:
            sample_rate: Output sample rate
            fail_with: Exception to raise from every synthesize call
        """
        self._sample_rate = sample_rate
        self._call_count = 0
        self._synthesized_texts: list[str] = []
        self.fail_with = fail_with

    @property
    def sample_rate(self) -> int:
        """Output sample rate in Hz."""
        return self._sample_rate

    def synthesize(self, text: str, profile: VoiceProfile, rate: float = 1.0) -> AudioBuffer:
        """Synthesize text to a tone."""
        self._call_count += 1
        self._synthesized_texts.append(text)

        if self.fail_with is not None:
            raise self.fail_with
        if not text:
            raise SynthesisError("Nothing to synthesize")

        # Roughly 100ms per word at normal speed
        duration_s = max(1, len(text.split())) * 0.1 / rate
        t = np.arange(int(self._sample_rate * duration_s)) / self._sample_rate
        samples = 0.3 * np.sin(2 * np.pi * profile.base_frequency_hz * t)
        return AudioBuffer.mono(samples, self._sample_rate)

    @property
    def call_count(self) -> int:
        """Get number of synthesize calls."""
        return self._call_count

    @property
    def synthesized_texts(self) -> list[str]:
        """Get list of synthesized texts."""
        return self._synthesized_texts.copy()

    def clear(self) -> None:
        """Reset mock state."""
        self._call_count = 0
        self._synthesized_texts.clear()


DEFAULT_MOCK_VOICES = [
    NativeVoice(id="mock-samantha", name="Samantha", lang="en_US", gender="female"),
    NativeVoice(id="mock-daniel", name="Daniel", lang="en_GB", gender="male"),
    NativeVoice(id="mock-thomas", name="Thomas", lang="fr_FR", gender="male"),
]


class MockNativeSpeechEngine:
    """Mock native speech engine.

    Records utterances. Each utterance stays "speaking" until finish() or
    cancel() is called.
    """

    def __init__(
        self,
        voices: list[NativeVoice] | None = None,
        fail_on_speak: bool = False,
    ) -> None:
        """Initialize mock engine.

        Args:
            voices: Voices to report (defaults to DEFAULT_MOCK_VOICES)
            fail_on_speak: If True, speak raises NativeSpeechError
        """
        self._voices = list(DEFAULT_MOCK_VOICES if voices is None else voices)
        self._utterances: list[Utterance] = []
        self._current: Utterance | None = None
        self._cancel_count = 0
        self.fail_on_speak = fail_on_speak

    @property
    def is_available(self) -> bool:
        """Always available."""
        return True

    @property
    def is_speaking(self) -> bool:
        """Return True while an utterance is pending."""
        return self._current is not None

    def speak(self, utterance: Utterance) -> None:
        """Record the utterance and fire its start callback."""
        if self.fail_on_speak:
            raise NativeSpeechError("Mock native speech failure")
        self._utterances.append(utterance)
        self._current = utterance
        utterance.started()

    def finish(self) -> None:
        """Simulate the end of the current utterance."""
        utterance, self._current = self._current, None
        if utterance is not None:
            utterance.ended()

    def cancel(self) -> None:
        """Drop the current utterance without callbacks."""
        self._cancel_count += 1
        self._current = None

    def get_voices(self) -> list[NativeVoice]:
        """Return configured voices."""
        return list(self._voices)

    @property
    def utterances(self) -> list[Utterance]:
        """All utterances spoken so far."""
        return self._utterances.copy()

    @property
    def spoken_texts(self) -> list[str]:
        """Texts of all utterances spoken so far."""
        return [u.text for u in self._utterances]

    @property
    def cancel_count(self) -> int:
        """Number of cancel calls."""
        return self._cancel_count


__all__ = ["DEFAULT_MOCK_VOICES", "MockNativeSpeechEngine", "MockSynthesizer"]
