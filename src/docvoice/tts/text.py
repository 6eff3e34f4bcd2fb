"""Text preparation for speech.

Chat responses arrive as markdown; the speech engine only wants the words.
"""

import re

# Longest text accepted for a single utterance
MAX_TEXT_LENGTH = 5000

_CODE_BLOCK = re.compile(r"```[\s\S]*?```")
_INLINE_CODE = re.compile(r"`[^`]*`")
_IMAGE = re.compile(r"!\[.*?\]\(.*?\)")
_LINK = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_HEADING = re.compile(r"#{1,6}\s+")
_EMPHASIS = re.compile(r"\*\*|\*|__|_|~~|`")
_BULLET = re.compile(r"\n\s*[-*+]\s+")
_NUMBERED = re.compile(r"\n\s*\d+\.\s+")
_WHITESPACE = re.compile(r"\s+")


def strip_markdown(text: str) -> str:
    """Reduce markdown to plain speakable text.

    Removes code blocks, inline code and images, keeps link text, drops
    heading markers and emphasis, turns list items into sentence breaks,
    and collapses whitespace.

    Examples:
        >>> strip_markdown("## Title\\n\\nSee [docs](http://x).")
        'Title See docs.'
    """
    if not text:
        return ""

    cleaned = _CODE_BLOCK.sub("", text)
    cleaned = _INLINE_CODE.sub("", cleaned)
    cleaned = _IMAGE.sub("", cleaned)
    cleaned = _LINK.sub(r"\1", cleaned)
    cleaned = _HEADING.sub("", cleaned)
    # List markers must be matched before emphasis removal eats "*" bullets
    cleaned = _BULLET.sub(". ", cleaned)
    cleaned = _NUMBERED.sub(". ", cleaned)
    cleaned = _EMPHASIS.sub("", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned)
    return cleaned.strip()


def prepare_text(text: str, max_length: int = MAX_TEXT_LENGTH) -> str:
    """Clean text for synthesis and cap its length.

    Returns an empty string when nothing speakable remains.
    """
    cleaned = strip_markdown(text)
    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length].rstrip()
    return cleaned


__all__ = ["MAX_TEXT_LENGTH", "prepare_text", "strip_markdown"]
