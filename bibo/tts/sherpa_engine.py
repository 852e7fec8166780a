"""
sherpa-onnx TTS engine wrapper.

Invokes the native ``sherpa-onnx-offline-tts`` executable with the
voice's model, tokens and optional lexicon / dictionary / espeak data
paths.  The shared libraries shipped next to the binary are made
visible through the platform's dynamic-library search variable.
"""

import logging
import os
import platform
import shutil
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from bibo.config import BiboConfig
from bibo.download.sherpa import TTS_BINARY, sherpa_lib_dir, sherpa_tts_path
from bibo.errors import EngineNotFoundError
from bibo.tts.base_engine import BaseTTSEngine, resolve_voice_files
from bibo.tts.voice import VoiceCatalog

logger = logging.getLogger(__name__)

# Engine bundled by the Homebrew formula
_HOMEBREW_PATHS = (
    Path("/opt/homebrew/opt/bibo/libexec/sherpa/bin") / TTS_BINARY,
    Path("/usr/local/opt/bibo/libexec/sherpa/bin") / TTS_BINARY,
)


def find_sherpa_tts(config: BiboConfig, system: Optional[str] = None) -> Path:
    """
    Locate ``sherpa-onnx-offline-tts``.

    Order: ``BIBO_SHERPA_PATH``, Homebrew bundle (macOS), the user data
    directory, then ``PATH``.

    Raises:
        EngineNotFoundError: If none of them has the binary.
    """
    system = system or platform.system()

    candidates: List[Path] = []
    if config.sherpa_path:
        candidates.append(Path(config.sherpa_path))
    if system == "Darwin":
        candidates.extend(_HOMEBREW_PATHS)
    candidates.append(sherpa_tts_path(config))

    for path in candidates:
        if path.exists():
            return path

    found = shutil.which(TTS_BINARY)
    if found:
        return Path(found)

    raise EngineNotFoundError()


def sherpa_env(
    lib_dir: Path,
    system: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """Copy of *environ* with *lib_dir* prepended to the library path."""
    system = system or platform.system()
    env = dict(os.environ if environ is None else environ)

    var = {"Darwin": "DYLD_LIBRARY_PATH", "Linux": "LD_LIBRARY_PATH"}.get(system)
    if var:
        current = env.get(var, "")
        env[var] = f"{lib_dir}{os.pathsep}{current}" if current else str(lib_dir)
    return env


class SherpaEngine(BaseTTSEngine):
    """
    Synthesis through the native sherpa-onnx executable.

    Usage::

        engine = SherpaEngine(catalog, "melo", binary=path, lib_dir=lib)
        samples, rate = engine.synthesize("你好, hello", 0.8)
    """

    def __init__(
        self,
        catalog: VoiceCatalog,
        voice_id: str,
        binary: Path,
        lib_dir: Optional[Path] = None,
    ):
        """
        Raises:
            VoiceNotFoundError:     Unknown voice id.
            VoiceNotInstalledError: Model file absent.
            ConfigError:            Tokens, lexicon, dict or data dir absent.
        """
        voice, files = resolve_voice_files(catalog, voice_id)
        super().__init__(voice, files)
        self._binary = Path(binary)
        self._lib_dir = Path(lib_dir) if lib_dir else self._binary.parent.parent / "lib"

    @classmethod
    def from_config(cls, config: BiboConfig, catalog: VoiceCatalog) -> "SherpaEngine":
        """Build an engine using the binary found by :func:`find_sherpa_tts`."""
        binary = find_sherpa_tts(config)
        return cls(catalog, config.voice, binary=binary, lib_dir=sherpa_lib_dir(config))

    @property
    def engine_name(self) -> str:
        return f"sherpa-onnx ({self._voice.id})"

    @property
    def binary(self) -> Path:
        return self._binary

    def build_command(self, text: str, length_scale: float, output_path) -> List[str]:
        f = self._files
        cmd = [
            str(self._binary),
            f"--vits-model={f.model}",
            f"--vits-tokens={f.tokens}",
        ]
        if f.lexicon:
            cmd.append(f"--vits-lexicon={f.lexicon}")
        if f.dict_dir:
            cmd.append(f"--vits-dict-dir={f.dict_dir}")
        if f.data_dir:
            cmd.append(f"--vits-data-dir={f.data_dir}")
        cmd += [
            f"--vits-length-scale={length_scale}",
            f"--output-filename={output_path}",
            # Text starting with "-" must not parse as an option
            "--",
            text,
        ]
        return cmd

    def synthesize_to_file(self, text: str, length_scale: float, output_path) -> None:
        self._check_text(text)
        cmd = self.build_command(text, length_scale, output_path)
        self._run(cmd, env=sherpa_env(self._lib_dir))

    def __repr__(self) -> str:
        return (
            f"SherpaEngine(voice={self._voice.id}, "
            f"rate={self.sample_rate}Hz, binary='{self._binary}')"
        )
