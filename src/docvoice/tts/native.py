"""Native platform speech engines.

Last-resort fallback when offline synthesis or playback fails. Two engines
are provided:
- SayEngine: macOS `say` command
- Pyttsx3Engine: pyttsx3 (SAPI5, NSSpeechSynthesizer, eSpeak)

Both speak without blocking the caller and report start/end/error through
the utterance callbacks.
"""

import logging
import re
import shutil
import subprocess
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from ..errors import NativeSpeechError

logger = logging.getLogger(__name__)

PYTTSX3_AVAILABLE = False
try:
    import pyttsx3

    PYTTSX3_AVAILABLE = True
except ImportError:
    pass

# Words per minute at rate 1.0
SAY_BASE_WPM = 175
PYTTSX3_BASE_WPM = 200

_FEMALE_PATTERN = re.compile(r"female|woman|girl", re.IGNORECASE)
_MALE_PATTERN = re.compile(r"\b(male|man|boy)\b", re.IGNORECASE)
_SAY_VOICE_LINE = re.compile(r"^(?P<name>.+?)\s+(?P<lang>[a-z]{2,3}[_-][A-Za-z0-9]+)\s+#")


@dataclass(frozen=True)
class NativeVoice:
    """A voice offered by the platform speech engine.

    Attributes:
        id: Engine-specific voice identifier
        name: Display name
        lang: Language tag (e.g. "en_US", "en-gb")
        gender: Gender reported by the engine, if any
    """

    id: str
    name: str
    lang: str = ""
    gender: str | None = None


@dataclass
class Utterance:
    """A request to the native speech engine."""

    text: str
    rate: float = 1.0
    voice: NativeVoice | None = None
    on_start: Callable[[], None] | None = None
    on_end: Callable[[], None] | None = None
    on_error: Callable[[str], None] | None = None

    def started(self) -> None:
        if self.on_start is not None:
            self.on_start()

    def ended(self) -> None:
        if self.on_end is not None:
            self.on_end()

    def failed(self, message: str) -> None:
        if self.on_error is not None:
            self.on_error(message)


class NativeSpeechEngine(Protocol):
    """Interface for platform speech engines."""

    def speak(self, utterance: Utterance) -> None:
        """Start speaking without blocking.

        Raises:
            NativeSpeechError: If speech cannot be started
        """
        ...

    def cancel(self) -> None:
        """Cancel the current utterance. Safe to call when idle."""
        ...

    def get_voices(self) -> list[NativeVoice]:
        """Return voices installed on this system.

        Raises:
            NativeSpeechError: If the platform cannot list voices
        """
        ...

    @property
    def is_speaking(self) -> bool:
        """Return True while an utterance is in progress."""
        ...

    @property
    def is_available(self) -> bool:
        """Return True if the engine can speak on this system."""
        ...


def _gender_matches(voice: NativeVoice, gender: str) -> bool:
    # pyttsx3 reports e.g. "Female" or "VoiceGenderFemale"
    reported = (voice.gender or "").lower()
    if "female" in reported:
        return gender == "female"
    if "male" in reported:
        return gender == "male"
    if gender == "female":
        return bool(_FEMALE_PATTERN.search(voice.name))
    if gender == "male":
        return bool(_MALE_PATTERN.search(voice.name)) and not _FEMALE_PATTERN.search(voice.name)
    return False


def _lang_matches(voice: NativeVoice, language: str) -> bool:
    return voice.lang.lower().replace("-", "_").startswith(language.lower())


def select_native_voice(
    voices: list[NativeVoice],
    voice_id: str,
    gender: str,
    language: str = "en",
) -> NativeVoice | None:
    """Pick the closest native voice for a synthetic voice.

    Heuristic ranking, since native catalogs differ per host:
    1. Voice whose name contains the voice id
    2. Voice in the language whose gender matches
    3. First voice in the language

    Returns:
        The chosen voice, or None to use the engine default.
    """
    if not voices:
        return None

    needle = voice_id.strip().lower()
    if needle:
        for voice in voices:
            if needle in voice.name.lower():
                return voice

    for voice in voices:
        if _lang_matches(voice, language) and _gender_matches(voice, gender):
            return voice

    for voice in voices:
        if _lang_matches(voice, language):
            return voice

    return None


class SayEngine:
    """Native speech via the macOS `say` command."""

    def __init__(self) -> None:
        """Initialize the engine and locate the `say` binary."""
        self._say_path = shutil.which("say")
        self._process: subprocess.Popen[bytes] | None = None
        self._lock = threading.Lock()
        self._voices: list[NativeVoice] | None = None

    @property
    def is_available(self) -> bool:
        """Check if the `say` command is available."""
        return self._say_path is not None

    @property
    def is_speaking(self) -> bool:
        """Return True while `say` is running."""
        with self._lock:
            return self._process is not None and self._process.poll() is None

    def speak(self, utterance: Utterance) -> None:
        """Run `say` in the background for the utterance."""
        if not self.is_available:
            raise NativeSpeechError("macOS speech not available: say command not found")

        self.cancel()
        cmd = ["say", "-r", str(int(SAY_BASE_WPM * utterance.rate))]
        if utterance.voice is not None:
            cmd += ["-v", utterance.voice.id]
        cmd.append(utterance.text)

        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise NativeSpeechError(f"Failed to start say: {e}") from e

        with self._lock:
            self._process = process
        utterance.started()
        threading.Thread(
            target=self._wait,
            args=(process, utterance),
            daemon=True,
            name="docvoice-say",
        ).start()

    def _wait(self, process: "subprocess.Popen[bytes]", utterance: Utterance) -> None:
        _, stderr = process.communicate()
        with self._lock:
            if self._process is process:
                self._process = None

        # Negative return codes mean we terminated it in cancel()
        if process.returncode is not None and process.returncode > 0:
            message = stderr.decode(errors="replace").strip() or f"exit {process.returncode}"
            utterance.failed(message)
        else:
            utterance.ended()

    def cancel(self) -> None:
        """Terminate the running `say` process, if any."""
        with self._lock:
            process = self._process
            self._process = None
        if process is not None and process.poll() is None:
            process.terminate()

    def get_voices(self) -> list[NativeVoice]:
        """List voices reported by `say -v ?`."""
        if not self.is_available:
            return []
        if self._voices is not None:
            return self._voices

        try:
            result = subprocess.run(
                ["say", "-v", "?"],
                check=True,
                capture_output=True,
                text=True,
                timeout=10,
            )
        except (subprocess.SubprocessError, OSError):
            logger.warning("Failed to list macOS voices")
            return []

        voices = []
        for line in result.stdout.splitlines():
            # Format: "Samantha            en_US    # Hello, my name is Samantha."
            match = _SAY_VOICE_LINE.match(line)
            if match:
                name = match.group("name").strip()
                voices.append(NativeVoice(id=name, name=name, lang=match.group("lang")))

        self._voices = voices
        return voices


def _pyttsx3_lang(languages: Any) -> str:
    """Normalize pyttsx3's voice.languages to a plain tag."""
    for lang in languages or []:
        if isinstance(lang, bytes):
            # eSpeak prefixes the tag with a priority byte
            lang = lang[1:].decode(errors="ignore")
        if lang:
            return str(lang)
    return ""


class Pyttsx3Engine:
    """Native speech via pyttsx3.

    pyttsx3 blocks in runAndWait(), so each utterance runs on a worker
    thread. A new worker waits for the previous run loop to wind down
    before starting its own.
    """

    def __init__(self) -> None:
        """Initialize pyttsx3.

        Raises:
            NativeSpeechError: If pyttsx3 is missing or fails to initialize
        """
        if not PYTTSX3_AVAILABLE:
            raise NativeSpeechError("pyttsx3 not available. Install with: pip install pyttsx3")

        try:
            self._engine = pyttsx3.init()
        except Exception as e:
            # pyttsx3 drivers raise a wide range of platform errors on init
            raise NativeSpeechError(f"pyttsx3 failed to initialize: {e}") from e

        self._thread: threading.Thread | None = None

    @property
    def is_available(self) -> bool:
        """pyttsx3 initialized successfully."""
        return True

    @property
    def is_speaking(self) -> bool:
        """Return True while an utterance is running."""
        thread = self._thread
        return thread is not None and thread.is_alive()

    def speak(self, utterance: Utterance) -> None:
        """Speak the utterance on a background thread.

        Raises:
            NativeSpeechError: If the driver rejects the rate or voice
        """
        previous = self._thread
        self.cancel()
        try:
            self._engine.setProperty("rate", int(PYTTSX3_BASE_WPM * utterance.rate))
            if utterance.voice is not None:
                self._engine.setProperty("voice", utterance.voice.id)
        except Exception as e:
            raise NativeSpeechError(f"pyttsx3 rejected speech settings: {e}") from e

        self._thread = threading.Thread(
            target=self._run,
            args=(utterance, previous),
            daemon=True,
            name="docvoice-pyttsx3",
        )
        self._thread.start()

    def _run(self, utterance: Utterance, previous: threading.Thread | None) -> None:
        if previous is not None:
            previous.join()
        utterance.started()
        try:
            self._engine.say(utterance.text)
            self._engine.runAndWait()
        except Exception as e:
            logger.error(f"pyttsx3 speech failed: {e}")
            utterance.failed(str(e))
            return
        utterance.ended()

    def cancel(self) -> None:
        """Signal the current utterance to stop without waiting for it."""
        if self.is_speaking:
            try:
                self._engine.stop()
            except Exception as e:
                logger.warning(f"pyttsx3 stop failed: {e}")
        self._thread = None

    def get_voices(self) -> list[NativeVoice]:
        """List voices known to pyttsx3.

        Raises:
            NativeSpeechError: If the driver cannot list voices
        """
        try:
            driver_voices = self._engine.getProperty("voices")
        except Exception as e:
            raise NativeSpeechError(f"pyttsx3 could not list voices: {e}") from e

        return [
            NativeVoice(
                id=v.id,
                name=v.name or v.id,
                lang=_pyttsx3_lang(getattr(v, "languages", None)),
                gender=getattr(v, "gender", None),
            )
            for v in driver_voices
        ]


__all__ = [
    "PYTTSX3_AVAILABLE",
    "NativeSpeechEngine",
    "NativeVoice",
    "Pyttsx3Engine",
    "SayEngine",
    "Utterance",
    "select_native_voice",
]
