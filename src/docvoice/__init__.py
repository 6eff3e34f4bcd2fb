"""docvoice - offline speech for a document-grounded chat client.

Reads chat responses aloud without any network service:
- Offline waveform synthesis with per-voice prosody (numpy)
- 16-bit PCM WAV encoding
- Persistent SQLite audio cache with 14-day retention
- Fallback to the platform's native speech engine

Usage:
    python -m docvoice "Hello world."
    python -m docvoice --voice onyx --output hello.wav "Hello world."
"""

__version__ = "0.1.0"

from .config import DocvoiceConfig, SpeechOptions
from .config.loader import load_config

__all__ = [
    "DocvoiceConfig",
    "SpeechOptions",
    "__version__",
    "load_config",
]
