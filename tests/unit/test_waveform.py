"""Unit tests for the offline waveform synthesizer."""

from unittest.mock import patch

import numpy as np
import pytest

from docvoice.errors import SynthesisError
from docvoice.tts.voices import VOICE_PROFILES
from docvoice.tts.waveform import (
    ENVELOPE_LEVEL,
    EVEN_SENTENCE_PITCH,
    ODD_SENTENCE_PITCH,
    WaveformSynthesizer,
    build_envelope,
    estimate_duration,
    generate_fallback_tone,
    split_sentences,
)


class TestEstimateDuration:
    """Tests for the reading-speed heuristic."""

    def test_150_words_per_minute(self) -> None:
        """750 characters is 150 words, one minute at normal rate."""
        assert estimate_duration("x" * 750) == pytest.approx(60.0)

    def test_rate_scales_duration(self) -> None:
        """Doubling the rate halves the duration."""
        text = "The quick brown fox jumps over the lazy dog."
        assert estimate_duration(text, rate=2.0) == pytest.approx(estimate_duration(text) / 2)


class TestSplitSentences:
    """Tests for sentence splitting."""

    def test_splits_on_terminal_punctuation(self) -> None:
        """Periods, question and exclamation marks end sentences."""
        assert split_sentences("One. Two? Three!") == ["One", "Two", "Three"]

    def test_drops_empty_segments(self) -> None:
        """Runs of punctuation do not create empty sentences."""
        assert split_sentences("Wait... what?!") == ["Wait", "what"]


class TestBuildEnvelope:
    """Tests for the amplitude envelope."""

    def test_attack_hold_release(self) -> None:
        """Envelope ramps in over 20ms and out over 50ms."""
        envelope = build_envelope(22050, 22050)

        assert envelope[0] == 0.0
        assert envelope[441] == pytest.approx(ENVELOPE_LEVEL)
        assert envelope[11025] == pytest.approx(ENVELOPE_LEVEL)
        assert envelope[-1] == 0.0
        assert np.all(np.diff(envelope[:441]) > 0)
        assert np.all(np.diff(envelope[-1102:]) < 0)

    def test_short_buffer_shrinks_ramps(self) -> None:
        """Ramps are shortened to fit a buffer shorter than both."""
        envelope = build_envelope(100, 22050)

        assert len(envelope) == 100
        assert envelope[0] == 0.0
        assert envelope[-1] == 0.0
        assert np.max(envelope) <= ENVELOPE_LEVEL

    def test_single_sample(self) -> None:
        """A one-sample buffer does not fail."""
        assert len(build_envelope(1, 22050)) == 1


class TestWaveformSynthesizer:
    """Tests for WaveformSynthesizer."""

    @pytest.fixture
    def synth(self) -> WaveformSynthesizer:
        """Create a synthesizer at the default rate."""
        return WaveformSynthesizer(sample_rate=22050)

    def test_duration_follows_text_length(self, synth: WaveformSynthesizer) -> None:
        """Sample count is the estimated duration times sample rate."""
        buffer = synth.synthesize("Hello world.", VOICE_PROFILES["alloy"])

        assert buffer.sample_rate == 22050
        assert buffer.channel_count == 1
        assert abs(buffer.frame_count - 21168) <= 1

    def test_duration_is_clamped(self, synth: WaveformSynthesizer) -> None:
        """Long text is rendered at the 10 second ceiling."""
        text = "word " * 2000
        buffer = synth.synthesize(text, VOICE_PROFILES["echo"])

        assert buffer.frame_count == synth.max_samples == 220500
        assert buffer.duration_seconds == pytest.approx(10.0)

    def test_custom_ceiling(self) -> None:
        """The ceiling is configurable."""
        synth = WaveformSynthesizer(sample_rate=8000, max_duration_seconds=2.0)
        buffer = synth.synthesize("word " * 500, VOICE_PROFILES["nova"])
        assert buffer.frame_count == 16000

    def test_faster_rate_is_shorter(self, synth: WaveformSynthesizer) -> None:
        """Rate 2.0 produces about half the samples."""
        text = "This sentence is read at two different speeds."
        normal = synth.synthesize(text, VOICE_PROFILES["alloy"])
        fast = synth.synthesize(text, VOICE_PROFILES["alloy"], rate=2.0)
        assert abs(fast.frame_count - normal.frame_count / 2) <= 1

    def test_samples_within_envelope(self, synth: WaveformSynthesizer) -> None:
        """Output stays within the envelope level and starts silent."""
        samples = synth.synthesize("Is this loud? Yes!", VOICE_PROFILES["onyx"]).channels[0]

        assert np.all(np.isfinite(samples))
        assert np.max(np.abs(samples)) <= ENVELOPE_LEVEL + 1e-9
        assert samples[0] == 0.0
        assert samples[-1] == 0.0

    def test_deterministic(self, synth: WaveformSynthesizer) -> None:
        """Same input renders identical samples."""
        text = "Deterministic output, every time."
        first = synth.synthesize(text, VOICE_PROFILES["shimmer"]).channels[0]
        second = synth.synthesize(text, VOICE_PROFILES["shimmer"]).channels[0]
        assert np.array_equal(first, second)

    def test_voices_sound_different(self, synth: WaveformSynthesizer) -> None:
        """Different profiles render different samples."""
        text = "Same words, different voice."
        alloy = synth.synthesize(text, VOICE_PROFILES["alloy"]).channels[0]
        onyx = synth.synthesize(text, VOICE_PROFILES["onyx"]).channels[0]
        assert len(alloy) == len(onyx)
        assert not np.array_equal(alloy, onyx)

    def test_prosody_disabled(self) -> None:
        """Without prosody the output is a plain enveloped oscillator."""
        synth = WaveformSynthesizer(prosody=False)
        samples = synth.synthesize("Plain tone.", VOICE_PROFILES["fable"]).channels[0]
        assert np.max(np.abs(samples)) <= ENVELOPE_LEVEL + 1e-9

    def test_sentence_pitch_alternates(self) -> None:
        """Even sentences are pitched up 5% and odd sentences down 3%."""
        synth = WaveformSynthesizer(sample_rate=22050, prosody=False)
        text = "This is the first sentence here. And this is the second one here."
        samples = synth.synthesize(text, VOICE_PROFILES["alloy"]).channels[0]
        base = VOICE_PROFILES["alloy"].base_frequency_hz

        def measured_hz(start: float, end: float) -> float:
            window = samples[int(len(samples) * start) : int(len(samples) * end)]
            rising = np.count_nonzero((window[:-1] < 0) & (window[1:] >= 0))
            return rising * 22050 / len(window)

        assert measured_hz(0.1, 0.4) == pytest.approx(base * EVEN_SENTENCE_PITCH, abs=1.5)
        assert measured_hz(0.6, 0.9) == pytest.approx(base * ODD_SENTENCE_PITCH, abs=1.5)

    def test_single_character(self, synth: WaveformSynthesizer) -> None:
        """Very short text still produces audio."""
        buffer = synth.synthesize("a", VOICE_PROFILES["alloy"])
        assert buffer.frame_count >= 1

    @pytest.mark.parametrize("text", ["", "   "])
    def test_empty_text_raises(self, synth: WaveformSynthesizer, text: str) -> None:
        """Empty text is rejected."""
        with pytest.raises(SynthesisError):
            synth.synthesize(text, VOICE_PROFILES["alloy"])

    @pytest.mark.parametrize("rate", [0.0, -1.0, float("nan"), float("inf")])
    def test_invalid_rate_raises(self, synth: WaveformSynthesizer, rate: float) -> None:
        """Non-positive or non-finite rates are rejected."""
        with pytest.raises(SynthesisError):
            synth.synthesize("Hello.", VOICE_PROFILES["alloy"], rate=rate)

    def test_numeric_failure_becomes_synthesis_error(self, synth: WaveformSynthesizer) -> None:
        """Floating point errors during rendering raise SynthesisError."""
        with (
            patch.object(
                WaveformSynthesizer, "_render", side_effect=FloatingPointError("overflow")
            ),
            pytest.raises(SynthesisError),
        ):
            synth.synthesize("Hello.", VOICE_PROFILES["alloy"])

    def test_prosody_skipped_on_memory_error(self, synth: WaveformSynthesizer) -> None:
        """The prosody pass is skipped, not fatal, when memory runs out."""
        with patch.object(WaveformSynthesizer, "_apply_prosody", side_effect=MemoryError):
            buffer = synth.synthesize("Hello world.", VOICE_PROFILES["alloy"])
        assert abs(buffer.frame_count - 21168) <= 1


class TestFallbackTone:
    """Tests for the failure tone."""

    def test_tone_shape(self) -> None:
        """Half a second at 0.8 peak with faded edges."""
        tone = generate_fallback_tone(22050)
        samples = tone.channels[0]

        assert tone.frame_count == 11025
        assert samples[0] == 0.0
        assert np.max(np.abs(samples)) <= 0.8
        assert np.max(np.abs(samples[2000:9000])) > 0.75
