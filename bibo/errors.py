"""
Error types for bibo.

Every fallible operation raises a :class:`BiboError` subclass; the CLI
catches them at the top level, prints the message plus a short list of
remediation hints, and exits with status 1.
"""

from typing import List


class BiboError(Exception):
    """
    Base class for all bibo failures.

    Raised directly for infrastructure problems (directory creation,
    running ``tar``) that have no more specific kind.
    """

    def hints(self) -> List[str]:
        """Actionable suggestions shown under the error message."""
        return ["bibo --help      # Show usage"]


class VoiceNotFoundError(BiboError):
    def __init__(self, voice_id: str):
        self.voice_id = voice_id
        super().__init__(f"Voice '{voice_id}' not found")

    def hints(self) -> List[str]:
        return [
            "bibo -l          # List installed voices",
            "bibo -d list     # Show downloadable voices",
        ]


class VoiceNotInstalledError(BiboError):
    def __init__(self, voice_id: str):
        self.voice_id = voice_id
        super().__init__(f"Voice '{voice_id}' not installed")

    def hints(self) -> List[str]:
        return [
            f"bibo -d {self.voice_id}  # Download this voice",
            "bibo -d list     # Show all downloadable voices",
        ]


class InputFileNotFoundError(BiboError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File not found: {path}")

    def hints(self) -> List[str]:
        return [
            "Check the file path for typos",
            "Use absolute path: bibo -i /full/path/to/file.md",
        ]


class UnsupportedFileTypeError(BiboError):
    def __init__(self, extension: str):
        self.extension = extension
        super().__init__(f"Unsupported file type: {extension or '(none)'}")

    def hints(self) -> List[str]:
        return [
            "bibo -i file.md   # Markdown files",
            "bibo -i file.txt  # Text files",
            'bibo "text"       # Or just pass text directly',
        ]


class EmptyFileError(BiboError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Empty file: {path}")

    def hints(self) -> List[str]:
        return [
            "Check if the file contains text content",
            "For Markdown: ensure text outside code blocks",
        ]


class NoTextProvidedError(BiboError):
    def __init__(self):
        super().__init__("No text provided")

    def hints(self) -> List[str]:
        return [
            'bibo "Hello world"     # Direct text',
            "bibo -i README.md      # From file",
        ]


class InvalidSpeedError(BiboError):
    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid speed: {value}")

    def hints(self) -> List[str]:
        return [
            'bibo "text" -s slow   # Slow speed',
            'bibo "text" -s normal # Normal speed',
            'bibo "text" -s fast   # Fast speed',
            'bibo "text" -f        # Fast mode shortcut',
        ]


class DownloadFailedError(BiboError):
    def __init__(self, reason: str):
        super().__init__(f"Download failed: {reason}")

    def hints(self) -> List[str]:
        return [
            "Check your internet connection",
            "Try again later",
            "Set BIBO_HF_MIRROR or BIBO_GITHUB_MIRROR if the default host is blocked",
        ]


class SynthesisFailedError(BiboError):
    def __init__(self, reason: str):
        super().__init__(f"TTS synthesis failed: {reason}")

    def hints(self) -> List[str]:
        return [
            "Check if voice model is valid",
            "bibo -d <voice>  # Re-download the voice",
        ]


class PlaybackFailedError(BiboError):
    def __init__(self, reason: str):
        super().__init__(f"Audio playback failed: {reason}")

    def hints(self) -> List[str]:
        return [
            "Check that an audio output device is available",
            'bibo "text" -o out.wav  # Save to a file instead',
        ]


class ConfigError(BiboError):
    def __init__(self, reason: str):
        super().__init__(f"Config error: {reason}")


class EngineNotFoundError(BiboError):
    def __init__(self, reason: str = "sherpa-onnx-offline-tts not found"):
        super().__init__(reason)

    def hints(self) -> List[str]:
        return [
            "Set BIBO_SHERPA_PATH to an existing sherpa-onnx-offline-tts binary",
            "bibo --engine piper \"text\"  # Use the Python piper-tts engine",
        ]
