"""
Piper TTS engine wrapper.

Runs ``piper-tts`` in a Python interpreter subprocess.  The script is a
fixed string; model paths and the length scale travel as argv and the
text is piped through stdin, so no user input is ever spliced into
source code.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from bibo.tts.base_engine import BaseTTSEngine, resolve_voice_files
from bibo.tts.voice import VoiceCatalog

logger = logging.getLogger(__name__)

_PIPER_SCRIPT = """\
import sys
import wave

from piper.config import SynthesisConfig
from piper.voice import PiperVoice

model, config, length_scale, output = sys.argv[1:5]
text = sys.stdin.buffer.read().decode("utf-8")

voice = PiperVoice.load(model, config_path=config)
syn_config = SynthesisConfig(length_scale=float(length_scale))

with wave.open(output, "wb") as wav_file:
    voice.synthesize_wav(text, wav_file, syn_config=syn_config)
"""


class PiperEngine(BaseTTSEngine):
    """
    Synthesis through the Python ``piper-tts`` package.

    Usage::

        engine = PiperEngine(catalog, "amy", python_cmd=["python3"])
        engine.synthesize_to_file("Hello world", 1.0, "hello.wav")
    """

    def __init__(
        self,
        catalog: VoiceCatalog,
        voice_id: str,
        python_cmd: Optional[Sequence[str]] = None,
    ):
        """
        Raises:
            VoiceNotFoundError:     Unknown voice id.
            VoiceNotInstalledError: Model file absent.
            ConfigError:            ``.onnx.json`` config absent.
        """
        voice, files = resolve_voice_files(catalog, voice_id)
        super().__init__(voice, files)
        self._python_cmd: List[str] = list(python_cmd or ["python3"])
        self._sample_rate = self._read_sample_rate(files.config, voice.sample_rate)

    @staticmethod
    def _read_sample_rate(config_path: Path, default: int) -> int:
        """Piper configs declare their output rate under ``audio``."""
        try:
            with open(config_path, encoding="utf-8") as fh:
                data = json.load(fh)
            return int(data["audio"]["sample_rate"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.debug("Using catalog sample rate for %s: %s", config_path, e)
            return default

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def engine_name(self) -> str:
        return f"Piper ({self._voice.id})"

    def build_command(self, length_scale: float, output_path) -> List[str]:
        return self._python_cmd + [
            "-c",
            _PIPER_SCRIPT,
            str(self._files.model),
            str(self._files.config),
            str(length_scale),
            str(output_path),
        ]

    def synthesize_to_file(self, text: str, length_scale: float, output_path) -> None:
        self._check_text(text)
        cmd = self.build_command(length_scale, output_path)
        self._run(cmd, input=text.encode("utf-8"))

    def __repr__(self) -> str:
        return f"PiperEngine(voice={self._voice.id}, rate={self._sample_rate}Hz)"
