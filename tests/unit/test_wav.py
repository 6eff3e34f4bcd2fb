"""Unit tests for WAV encoding."""

import struct

import numpy as np
import pytest

from docvoice.errors import EncodingError
from docvoice.tts.synthesizer import AudioBuffer
from docvoice.tts.wav import (
    PCM16_SCALE,
    WAV_HEADER_SIZE,
    build_wav_header,
    decode_wav,
    encode_wav,
    float_to_pcm16,
    pcm16_frames,
)


class TestFloatToPcm16:
    """Tests for float to 16-bit conversion."""

    def test_full_scale(self) -> None:
        """+1 and -1 map to +/-32767."""
        pcm = float_to_pcm16(np.array([1.0, -1.0, 0.0]))
        assert pcm.tolist() == [32767, -32767, 0]

    def test_out_of_range_is_clipped(self) -> None:
        """Samples beyond [-1, 1] are clipped, not wrapped."""
        pcm = float_to_pcm16(np.array([3.5, -7.0]))
        assert pcm.tolist() == [32767, -32767]

    def test_little_endian_int16(self) -> None:
        """Output is little-endian 16-bit."""
        pcm = float_to_pcm16(np.array([0.5]))
        assert pcm.dtype == np.dtype("<i2")
        assert pcm.tobytes() == struct.pack("<h", 16384)


class TestWavHeader:
    """Tests for the 44-byte WAV header."""

    def test_header_fields(self) -> None:
        """Header carries the canonical PCM layout."""
        header = build_wav_header(sample_rate=22050, channel_count=1, data_size=200)

        assert len(header) == WAV_HEADER_SIZE
        assert header[0:4] == b"RIFF"
        assert struct.unpack("<I", header[4:8])[0] == 236
        assert header[8:16] == b"WAVEfmt "
        fmt = struct.unpack("<IHHIIHH", header[16:36])
        assert fmt == (16, 1, 1, 22050, 44100, 2, 16)
        assert header[36:40] == b"data"
        assert struct.unpack("<I", header[40:44])[0] == 200

    def test_stereo_block_align(self) -> None:
        """Stereo doubles block align and byte rate."""
        header = build_wav_header(sample_rate=16000, channel_count=2, data_size=0)
        _, _, channels, rate, byte_rate, block_align, bits = struct.unpack(
            "<IHHIIHH", header[16:36]
        )
        assert (channels, rate, byte_rate, block_align, bits) == (2, 16000, 64000, 4, 16)


class TestEncodeWav:
    """Tests for encode_wav and decode_wav."""

    def test_size_matches_frames(self) -> None:
        """Encoded size is header plus two bytes per sample per channel."""
        buffer = AudioBuffer.mono(np.zeros(1000), 22050)
        data = encode_wav(buffer)
        assert len(data) == WAV_HEADER_SIZE + 2000

    def test_round_trip_within_one_step(self) -> None:
        """Decoded samples are within one quantization step of the input."""
        rng = np.random.default_rng(7)
        samples = rng.uniform(-1.0, 1.0, 4096)
        decoded = decode_wav(encode_wav(AudioBuffer.mono(samples, 22050)))

        assert decoded.sample_rate == 22050
        assert decoded.channel_count == 1
        assert np.max(np.abs(decoded.channels[0] - samples)) <= 1.0 / PCM16_SCALE

    def test_stereo_is_interleaved(self) -> None:
        """Channels are interleaved frame by frame."""
        left = np.array([1.0, 1.0])
        right = np.array([-1.0, -1.0])
        data = encode_wav(AudioBuffer(sample_rate=8000, channels=[left, right]))

        frames = struct.unpack("<4h", data[WAV_HEADER_SIZE:])
        assert frames == (32767, -32767, 32767, -32767)

    def test_empty_buffer_is_header_only(self) -> None:
        """A zero-length buffer still produces a valid header."""
        data = encode_wav(AudioBuffer.mono(np.zeros(0), 22050))
        assert len(data) == WAV_HEADER_SIZE
        assert decode_wav(data).frame_count == 0

    def test_mismatched_channels_raise(self) -> None:
        """Channels of different lengths cannot be interleaved."""
        buffer = AudioBuffer(sample_rate=8000, channels=[np.zeros(4), np.zeros(5)])
        with pytest.raises(EncodingError):
            encode_wav(buffer)

    def test_no_channels_raise(self) -> None:
        """A buffer with no channels is rejected."""
        with pytest.raises(EncodingError):
            encode_wav(AudioBuffer(sample_rate=8000))


class TestWavReading:
    """Tests for reading WAV bytes back."""

    def test_pcm16_frames(self) -> None:
        """Raw frames and sample rate are extracted from the container."""
        data = encode_wav(AudioBuffer.mono(np.full(10, 0.5), 16000))
        pcm, rate = pcm16_frames(data)
        assert rate == 16000
        assert pcm == data[WAV_HEADER_SIZE:]

    def test_duration(self) -> None:
        """Decoded duration is frames over sample rate."""
        data = encode_wav(AudioBuffer.mono(np.zeros(11025), 22050))
        assert decode_wav(data).duration_seconds == pytest.approx(0.5)

    def test_invalid_data(self) -> None:
        """Garbage bytes raise EncodingError."""
        with pytest.raises(EncodingError):
            pcm16_frames(b"not a wav file")
        with pytest.raises(EncodingError):
            decode_wav(b"not a wav file")
