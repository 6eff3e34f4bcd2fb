"""Voice profile table for the offline synthesizer.

Each profile describes the acoustic signature of one synthetic voice:
fundamental pitch, an ordered list of formants (one synthesis channel per
formant), emphasis and breathiness. The table is static and immutable.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Formant:
    """A resonant band mixed into the voice.

    Attributes:
        frequency_hz: Center frequency in Hz
        gain: Relative gain in [0, 1]
        wave_shape: Oscillator shape ("sine")
    """

    frequency_hz: float
    gain: float
    wave_shape: str = "sine"


@dataclass(frozen=True)
class VoiceProfile:
    """Acoustic parameters for one synthetic voice.

    Attributes:
        id: Stable voice identifier (e.g. "alloy")
        display_name: Human-readable name
        gender: Gender label used when matching native voices
        description: Short description for voice pickers
        base_frequency_hz: Fundamental pitch in Hz
        formants: Ordered formants; position is the synthesis channel index
        emphasis_factor: Gain multiplier applied to stressed words
        breathiness: Noise admixture in [0, 1]
        syllable_rate: Syllables per second, informs pacing
    """

    id: str
    display_name: str
    gender: str
    description: str
    base_frequency_hz: float
    formants: tuple[Formant, ...]
    emphasis_factor: float
    breathiness: float
    syllable_rate: float


DEFAULT_VOICE_ID = "alloy"

DEFAULT_PROFILE = VoiceProfile(
    id="default",
    display_name="Default",
    gender="female",
    description="Neutral fallback voice",
    base_frequency_hz=160.0,
    formants=(
        Formant(500.0, 1.0),
        Formant(1500.0, 0.5),
        Formant(2500.0, 0.25),
    ),
    emphasis_factor=1.2,
    breathiness=0.1,
    syllable_rate=4.0,
)

VOICE_PROFILES: dict[str, VoiceProfile] = {
    "alloy": VoiceProfile(
        id="alloy",
        display_name="Alloy",
        gender="female",
        description="A versatile neutral voice with balanced tone",
        base_frequency_hz=175.0,
        formants=(Formant(600.0, 1.0), Formant(1400.0, 0.6), Formant(2400.0, 0.4)),
        emphasis_factor=1.1,
        breathiness=0.15,
        syllable_rate=4.2,
    ),
    "echo": VoiceProfile(
        id="echo",
        display_name="Echo",
        gender="male",
        description="A deep and resonant voice with a formal style",
        base_frequency_hz=120.0,
        formants=(Formant(500.0, 1.0), Formant(1500.0, 0.4), Formant(2200.0, 0.2)),
        emphasis_factor=1.4,
        breathiness=0.05,
        syllable_rate=3.8,
    ),
    "fable": VoiceProfile(
        id="fable",
        display_name="Fable",
        gender="male",
        description="A narrative voice ideal for storytelling",
        base_frequency_hz=140.0,
        formants=(Formant(550.0, 1.0), Formant(1600.0, 0.5), Formant(2300.0, 0.3)),
        emphasis_factor=1.5,
        breathiness=0.1,
        syllable_rate=4.0,
    ),
    "onyx": VoiceProfile(
        id="onyx",
        display_name="Onyx",
        gender="male",
        description="A rich, deep voice with authoritative tone",
        base_frequency_hz=110.0,
        formants=(Formant(450.0, 1.0), Formant(1300.0, 0.4), Formant(2100.0, 0.15)),
        emphasis_factor=1.6,
        breathiness=0.05,
        syllable_rate=3.5,
    ),
    "nova": VoiceProfile(
        id="nova",
        display_name="Nova",
        gender="female",
        description="A bright, energetic female voice",
        base_frequency_hz=200.0,
        formants=(Formant(650.0, 1.0), Formant(1700.0, 0.6), Formant(2500.0, 0.4)),
        emphasis_factor=1.3,
        breathiness=0.2,
        syllable_rate=4.4,
    ),
    "shimmer": VoiceProfile(
        id="shimmer",
        display_name="Shimmer",
        gender="female",
        description="A warm and expressive voice with emotional range",
        base_frequency_hz=220.0,
        formants=(Formant(700.0, 1.0), Formant(1800.0, 0.7), Formant(2600.0, 0.5)),
        emphasis_factor=1.2,
        breathiness=0.25,
        syllable_rate=4.3,
    ),
}


def get_voice_profile(voice_id: str | None) -> VoiceProfile:
    """Look up a voice profile by id.

    Lookup is case-insensitive. Unknown or empty ids resolve to
    DEFAULT_PROFILE rather than raising.
    """
    if not voice_id:
        return DEFAULT_PROFILE
    return VOICE_PROFILES.get(voice_id.strip().lower(), DEFAULT_PROFILE)


def list_voices() -> list[VoiceProfile]:
    """Return the built-in voice catalog in display order."""
    return list(VOICE_PROFILES.values())


def get_voice_gender(voice_id: str | None) -> str:
    """Return the gender label for a catalog voice ("female" if unknown)."""
    if voice_id and voice_id.strip().lower() in VOICE_PROFILES:
        return VOICE_PROFILES[voice_id.strip().lower()].gender
    return "female"


__all__ = [
    "DEFAULT_PROFILE",
    "DEFAULT_VOICE_ID",
    "VOICE_PROFILES",
    "Formant",
    "VoiceProfile",
    "get_voice_gender",
    "get_voice_profile",
    "list_voices",
]
