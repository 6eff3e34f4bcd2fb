"""Platform detection for native speech engine selection."""

import platform as platform_module
from enum import Enum, auto


class Platform(Enum):
    """Detected platform for native engine selection."""

    MACOS = auto()
    WINDOWS = auto()
    LINUX = auto()
    OTHER = auto()


def detect_platform() -> Platform:
    """Detect the current platform.

    Returns:
        Platform enum value. This function never raises exceptions.
    """
    system = platform_module.system()

    if system == "Darwin":
        return Platform.MACOS
    elif system == "Windows":
        return Platform.WINDOWS
    elif system == "Linux":
        return Platform.LINUX
    else:
        return Platform.OTHER


__all__ = ["Platform", "detect_platform"]
