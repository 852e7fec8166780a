"""
Runtime configuration for bibo.

Values come from ``BIBO_*`` environment variables first and can then be
overridden by command-line flags.

Usage::

    from bibo.config import BiboConfig

    config = BiboConfig.from_env()
    print(config.models_dir)
"""

import os
import shlex
import shutil
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Mapping, Optional

from bibo.errors import ConfigError, InvalidSpeedError

# Default data directory: models/ and sherpa/ live under here
_DEFAULT_DATA_DIR = Path.home() / ".local" / "share" / "bibo"

DEFAULT_VOICE = "melo"
DEFAULT_HF_MIRROR = "https://hf-mirror.com"

ENGINE_SHERPA = "sherpa"
ENGINE_PIPER = "piper"
ENGINES = (ENGINE_SHERPA, ENGINE_PIPER)


class Speed(Enum):
    """Named speech speeds and their length-scale values."""

    SLOW = "slow"
    NORMAL = "normal"
    FAST = "fast"

    @property
    def length_scale(self) -> float:
        """Duration multiplier passed to the engine (lower = faster)."""
        return _LENGTH_SCALES[self]

    @classmethod
    def parse(cls, value: str) -> "Speed":
        """
        Parse a case-insensitive speed name.

        Raises:
            InvalidSpeedError: If *value* is not slow, normal or fast.
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise InvalidSpeedError(value) from None


_LENGTH_SCALES = {
    Speed.SLOW: 1.2,
    Speed.NORMAL: 1.0,
    Speed.FAST: 0.8,
}


def effective_speed(speed: Speed, fast: bool) -> Speed:
    """The ``--fast`` flag wins over any explicit ``--speed``."""
    return Speed.FAST if fast else speed


def _default_python_cmd() -> List[str]:
    # Prefer uv so piper-tts can come from the project environment
    if shutil.which("uv"):
        return ["uv", "run", "python"]
    return [sys.executable]


@dataclass
class BiboConfig:
    """
    All tuneable parameters for a bibo run.

    Attributes:
        voice:         Voice identifier from the catalog.
        speed:         Named speech speed.
        engine:        Synthesis backend, ``"sherpa"`` or ``"piper"``.
        data_dir:      Per-user data directory holding models and the
                       sherpa-onnx engine.
        sherpa_path:   Explicit path to ``sherpa-onnx-offline-tts``.
        python_cmd:    Interpreter command used by the piper backend.
        hf_mirror:     Fallback host for HuggingFace downloads.
        github_mirror: Optional prefix for GitHub release downloads
                       (e.g. a proxy such as ``https://ghproxy.example``).
        quiet:         Suppress progress output.
    """

    voice: str = DEFAULT_VOICE
    speed: Speed = Speed.NORMAL
    engine: str = ENGINE_SHERPA
    data_dir: Path = _DEFAULT_DATA_DIR
    sherpa_path: Optional[Path] = None
    python_cmd: List[str] = field(default_factory=_default_python_cmd)
    hf_mirror: str = DEFAULT_HF_MIRROR
    github_mirror: Optional[str] = None
    quiet: bool = False

    def __post_init__(self):
        if self.engine not in ENGINES:
            raise ConfigError(
                f"Unknown engine '{self.engine}'. Available: {', '.join(ENGINES)}"
            )

    @property
    def models_dir(self) -> Path:
        return self.data_dir / "models"

    @property
    def sherpa_dir(self) -> Path:
        return self.data_dir / "sherpa"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BiboConfig":
        """
        Build a config from ``BIBO_*`` environment variables.

        Raises:
            InvalidSpeedError: If ``BIBO_SPEED`` is not a known speed.
            ConfigError:       If ``BIBO_ENGINE`` is not a known engine.
        """
        env = os.environ if environ is None else environ
        kwargs = {}

        if env.get("BIBO_VOICE"):
            kwargs["voice"] = env["BIBO_VOICE"]
        if env.get("BIBO_SPEED"):
            kwargs["speed"] = Speed.parse(env["BIBO_SPEED"])
        if env.get("BIBO_ENGINE"):
            kwargs["engine"] = env["BIBO_ENGINE"].strip().lower()
        if env.get("BIBO_DATA_DIR"):
            kwargs["data_dir"] = Path(env["BIBO_DATA_DIR"]).expanduser()
        if env.get("BIBO_SHERPA_PATH"):
            kwargs["sherpa_path"] = Path(env["BIBO_SHERPA_PATH"]).expanduser()
        if env.get("BIBO_PYTHON"):
            kwargs["python_cmd"] = shlex.split(env["BIBO_PYTHON"])
        if env.get("BIBO_HF_MIRROR"):
            kwargs["hf_mirror"] = env["BIBO_HF_MIRROR"].rstrip("/")
        if env.get("BIBO_GITHUB_MIRROR"):
            kwargs["github_mirror"] = env["BIBO_GITHUB_MIRROR"].rstrip("/")

        return cls(**kwargs)
