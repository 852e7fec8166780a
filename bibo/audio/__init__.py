"""Audio playback."""

from .player import AudioPlayer

__all__ = ["AudioPlayer"]
