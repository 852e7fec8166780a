"""TTS engines and the voice catalog."""

from .base_engine import BaseTTSEngine, read_wav_samples
from .engine import create_engine
from .piper_engine import PiperEngine
from .sherpa_engine import SherpaEngine, find_sherpa_tts
from .voice import PIPER_VOICES, SHERPA_VOICES, Voice, VoiceCatalog

__all__ = [
    "BaseTTSEngine",
    "PIPER_VOICES",
    "PiperEngine",
    "SHERPA_VOICES",
    "SherpaEngine",
    "Voice",
    "VoiceCatalog",
    "create_engine",
    "find_sherpa_tts",
    "read_wav_samples",
]
