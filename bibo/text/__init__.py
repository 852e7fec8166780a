"""Input text loading and Markdown cleanup."""

from .preprocessor import clean_markdown, read_text_file, resolve_text

__all__ = [
    "clean_markdown",
    "read_text_file",
    "resolve_text",
]
