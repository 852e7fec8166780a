"""
Text preprocessing for TTS consumption.

Strips Markdown syntax so the engine reads prose rather than
punctuation, and loads input text from ``.md`` / ``.txt`` files.
"""

import logging
import re
from pathlib import Path
from typing import Optional

from bibo.errors import (
    EmptyFileError,
    InputFileNotFoundError,
    NoTextProvidedError,
    UnsupportedFileTypeError,
)

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS = {"md", "markdown"}
SUPPORTED_EXTENSIONS = MARKDOWN_EXTENSIONS | {"txt"}

# -----------------------------------------------------------------
# Regex patterns
# -----------------------------------------------------------------

# Fenced code blocks, removed entirely
_RE_CODE_BLOCK = re.compile(r"```[\s\S]*?```")

# Inline code: `x` → x
_RE_INLINE_CODE = re.compile(r"`([^`]+)`")

# Images: ![alt](src) → alt
_RE_IMAGE = re.compile(r"!\[([^\]]*)\]\([^)]+\)")

# Links: [text](href) → text
_RE_LINK = re.compile(r"\[([^\]]+)\]\([^)]+\)")

# ATX headings at line start
_RE_HEADING = re.compile(r"^#{1,6}[ \t]+", re.MULTILINE)

# Emphasis, longest marker first
_RE_BOLD_ITALIC = re.compile(r"\*\*\*([^*]+)\*\*\*")
_RE_BOLD = re.compile(r"\*\*([^*]+)\*\*")
_RE_ITALIC = re.compile(r"\*([^*]+)\*")

# List markers at line start
_RE_BULLET = re.compile(r"^[ \t]*[-*+][ \t]+", re.MULTILINE)
_RE_NUMBERED = re.compile(r"^[ \t]*\d+\.[ \t]+", re.MULTILINE)

# Three or more newlines → one blank line
_RE_MULTI_NEWLINE = re.compile(r"\n{3,}")


# -----------------------------------------------------------------
# Public API
# -----------------------------------------------------------------


def clean_markdown(text: str) -> str:
    """
    Convert Markdown source into plain text for synthesis.

    Steps:
    1. Drop fenced code blocks
    2. Unwrap inline code
    3. Replace images with their alt text
    4. Replace links with their link text
    5. Strip heading markers
    6. Strip bold / italic markers
    7. Strip bullet and numbered list markers
    8. Collapse runs of blank lines and trim
    """
    if not text:
        return ""

    t = text

    # 1–4. Code, images, links
    t = _RE_CODE_BLOCK.sub("", t)
    t = _RE_INLINE_CODE.sub(r"\1", t)
    t = _RE_IMAGE.sub(r"\1", t)
    t = _RE_LINK.sub(r"\1", t)

    # 5. Headings
    t = _RE_HEADING.sub("", t)

    # 6. Emphasis
    t = _RE_BOLD_ITALIC.sub(r"\1", t)
    t = _RE_BOLD.sub(r"\1", t)
    t = _RE_ITALIC.sub(r"\1", t)

    # 7. Lists
    t = _RE_BULLET.sub("", t)
    t = _RE_NUMBERED.sub("", t)

    # 8. Whitespace
    t = _RE_MULTI_NEWLINE.sub("\n\n", t)

    return t.strip()


def read_text_file(path, quiet: bool = False) -> str:
    """
    Read a text or Markdown file, cleaning Markdown syntax.

    Args:
        path:  File to read (``.md``, ``.markdown`` or ``.txt``).
        quiet: Suppress the informational log lines.

    Returns:
        The text to synthesise.

    Raises:
        InputFileNotFoundError:   If *path* does not exist or cannot be read.
        UnsupportedFileTypeError: If the extension is not supported.
        EmptyFileError:           If nothing speakable remains.
    """
    p = Path(path)
    if not p.exists():
        raise InputFileNotFoundError(str(p))

    ext = p.suffix.lower().lstrip(".")
    if ext not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileTypeError(ext)

    try:
        content = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise InputFileNotFoundError(f"{p}: {e}") from e

    if not quiet:
        logger.info("Reading: %s (%d chars)", p.name, len(content))

    if ext in MARKDOWN_EXTENSIONS:
        content = clean_markdown(content)
        if not quiet:
            logger.info("Cleaned: %d chars", len(content))

    if not content.strip():
        raise EmptyFileError(str(p))

    return content


def resolve_text(
    input_path: Optional[str] = None,
    text: Optional[str] = None,
    quiet: bool = False,
) -> str:
    """
    Pick the text to speak: an input file wins over a literal argument.

    Raises:
        NoTextProvidedError: If neither source yields any text.
    """
    if input_path:
        return read_text_file(input_path, quiet=quiet)
    if text is None or not text.strip():
        raise NoTextProvidedError()
    return text
