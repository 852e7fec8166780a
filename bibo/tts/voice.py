"""
Voice catalog.

A fixed, curated table of neural voices bibo knows how to download and
run, plus the on-disk layout conventions for an installed voice.  The
existence of a voice's files under the models directory is the only
record of whether it is installed.

Two tables exist, one per engine:

* :data:`PIPER_VOICES` - flat ``<name>.onnx`` + ``<name>.onnx.json``
  pairs fetched from the ``rhasspy/piper-voices`` HuggingFace repo.
* :data:`SHERPA_VOICES` - one directory per voice, unpacked from the
  sherpa-onnx ``tts-models`` release archives.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from bibo.config import ENGINE_PIPER, ENGINE_SHERPA, ENGINES
from bibo.errors import ConfigError, VoiceNotFoundError

# Medium and high quality models output 22.05 kHz; "low" piper models 16 kHz
DEFAULT_SAMPLE_RATE = 22050

_SHERPA_MODELS_URL = "https://github.com/k2-fsa/sherpa-onnx/releases/download/tts-models"


@dataclass(frozen=True)
class Voice:
    """
    Immutable catalog entry.

    Piper voices set ``hf_path`` (the template path under the
    HuggingFace repo, without extension).  Sherpa voices set
    ``archive_url`` and ``model_dir`` plus the component files found
    inside the unpacked archive.
    """

    id: str
    name: str
    lang: str
    gender: str
    quality: str
    size_mb: int
    sample_rate: int = DEFAULT_SAMPLE_RATE
    hf_path: Optional[str] = None
    archive_url: Optional[str] = None
    model_dir: Optional[str] = None
    model_file: str = "model.onnx"
    tokens_file: str = "tokens.txt"
    lexicon: Optional[str] = None
    dict_dir: Optional[str] = None
    data_dir: Optional[str] = None

    @property
    def basename(self) -> str:
        if self.hf_path:
            return self.hf_path.rsplit("/", 1)[-1]
        return self.id

    @property
    def model_filename(self) -> str:
        return f"{self.basename}.onnx"

    @property
    def config_filename(self) -> str:
        return f"{self.basename}.onnx.json"


@dataclass(frozen=True)
class VoiceFiles:
    """Resolved paths for one voice, built per synthesis run."""

    model: Path
    config: Optional[Path] = None
    tokens: Optional[Path] = None
    lexicon: Optional[Path] = None
    dict_dir: Optional[Path] = None
    data_dir: Optional[Path] = None

    def auxiliary(self) -> List[Path]:
        """Every required path other than the model itself."""
        return [
            p
            for p in (self.config, self.tokens, self.lexicon, self.dict_dir, self.data_dir)
            if p is not None
        ]


def _piper(id, name, lang, gender, quality, size_mb, hf_path) -> Voice:
    return Voice(
        id=id,
        name=name,
        lang=lang,
        gender=gender,
        quality=quality,
        size_mb=size_mb,
        hf_path=hf_path,
    )


def _sherpa(id, name, lang, gender, quality, size_mb, model_dir, model_file, **extra) -> Voice:
    return Voice(
        id=id,
        name=name,
        lang=lang,
        gender=gender,
        quality=quality,
        size_mb=size_mb,
        archive_url=f"{_SHERPA_MODELS_URL}/{model_dir}.tar.bz2",
        model_dir=model_dir,
        model_file=model_file,
        **extra,
    )


PIPER_VOICES: Tuple[Voice, ...] = (
    # English - US
    _piper("amy", "Amy", "en_US", "F", "medium", 60, "en/en_US/amy/medium/en_US-amy-medium"),
    _piper("lessac", "Lessac", "en_US", "F", "high", 120, "en/en_US/lessac/high/en_US-lessac-high"),
    _piper("ryan", "Ryan", "en_US", "M", "high", 120, "en/en_US/ryan/high/en_US-ryan-high"),
    _piper("joe", "Joe", "en_US", "M", "medium", 60, "en/en_US/joe/medium/en_US-joe-medium"),
    # English - GB
    _piper("alan", "Alan", "en_GB", "M", "medium", 45, "en/en_GB/alan/medium/en_GB-alan-medium"),
    _piper("alba", "Alba", "en_GB", "F", "medium", 45, "en/en_GB/alba/medium/en_GB-alba-medium"),
    # German
    _piper("thorsten", "Thorsten", "de_DE", "M", "high", 120, "de/de_DE/thorsten/high/de_DE-thorsten-high"),
    # French
    _piper("siwis", "Siwis", "fr_FR", "F", "medium", 60, "fr/fr_FR/siwis/medium/fr_FR-siwis-medium"),
    # Chinese
    _piper("huayan", "Huayan", "zh_CN", "F", "medium", 60, "zh/zh_CN/huayan/medium/zh_CN-huayan-medium"),
    # Spanish
    _piper("davefx", "DaveFX", "es_ES", "M", "medium", 60, "es/es_ES/davefx/medium/es_ES-davefx-medium"),
    # Russian
    _piper("irina", "Irina", "ru_RU", "F", "medium", 60, "ru/ru_RU/irina/medium/ru_RU-irina-medium"),
    _piper("ruslan", "Ruslan", "ru_RU", "M", "medium", 60, "ru/ru_RU/ruslan/medium/ru_RU-ruslan-medium"),
)

SHERPA_VOICES: Tuple[Voice, ...] = (
    # Chinese + English bilingual, 44.1 kHz output
    Voice(
        id="melo",
        name="Melo",
        lang="zh_en",
        gender="F",
        quality="high",
        size_mb=163,
        sample_rate=44100,
        archive_url=f"{_SHERPA_MODELS_URL}/vits-melo-tts-zh_en.tar.bz2",
        model_dir="vits-melo-tts-zh_en",
        model_file="model.onnx",
        lexicon="lexicon.txt",
        dict_dir="dict",
    ),
    _sherpa("amy", "Amy", "en_US", "F", "low", 64,
            "vits-piper-en_US-amy-low", "en_US-amy-low.onnx", sample_rate=16000,
            data_dir="espeak-ng-data"),
    _sherpa("lessac", "Lessac", "en_US", "F", "medium", 64,
            "vits-piper-en_US-lessac-medium", "en_US-lessac-medium.onnx", data_dir="espeak-ng-data"),
    _sherpa("ryan", "Ryan", "en_US", "M", "medium", 64,
            "vits-piper-en_US-ryan-medium", "en_US-ryan-medium.onnx", data_dir="espeak-ng-data"),
    _sherpa("alan", "Alan", "en_GB", "M", "medium", 64,
            "vits-piper-en_GB-alan-medium", "en_GB-alan-medium.onnx", data_dir="espeak-ng-data"),
    _sherpa("kss", "KSS", "ko_KO", "F", "low", 65,
            "vits-mimic3-ko_KO-kss_low", "ko_KO-kss_low.onnx", data_dir="espeak-ng-data"),
    _sherpa("huayan", "Huayan", "zh_CN", "F", "medium", 64,
            "vits-piper-zh_CN-huayan-medium", "zh_CN-huayan-medium.onnx", data_dir="espeak-ng-data"),
    _sherpa("thorsten", "Thorsten", "de_DE", "M", "medium", 64,
            "vits-piper-de_DE-thorsten-medium", "de_DE-thorsten-medium.onnx", data_dir="espeak-ng-data"),
    _sherpa("siwis", "Siwis", "fr_FR", "F", "medium", 64,
            "vits-piper-fr_FR-siwis-medium", "fr_FR-siwis-medium.onnx", data_dir="espeak-ng-data"),
    _sherpa("davefx", "DaveFX", "es_ES", "M", "medium", 64,
            "vits-piper-es_ES-davefx-medium", "es_ES-davefx-medium.onnx", data_dir="espeak-ng-data"),
    _sherpa("irina", "Irina", "ru_RU", "F", "medium", 64,
            "vits-piper-ru_RU-irina-medium", "ru_RU-irina-medium.onnx", data_dir="espeak-ng-data"),
)

_CATALOGS = {
    ENGINE_PIPER: PIPER_VOICES,
    ENGINE_SHERPA: SHERPA_VOICES,
}


class VoiceCatalog:
    """
    Lookup and installation checks for one engine's voice table.

    Usage::

        catalog = VoiceCatalog("sherpa", Path("~/.local/share/bibo/models"))
        voice = catalog.get("melo")
        if catalog.is_installed("melo"):
            files = catalog.files(voice)
    """

    def __init__(self, engine: str, models_dir: Path):
        if engine not in ENGINES:
            raise ConfigError(f"Unknown engine '{engine}'")
        self.engine = engine
        self.models_dir = Path(models_dir)
        self.voices: Tuple[Voice, ...] = _CATALOGS[engine]

    # ------------------------------------------------------------------
    # Lookup (no filesystem access)
    # ------------------------------------------------------------------

    def find(self, voice_id: str) -> Optional[Voice]:
        """Case-insensitive exact match against catalog identifiers."""
        wanted = voice_id.strip().lower()
        for voice in self.voices:
            if voice.id.lower() == wanted:
                return voice
        return None

    def get(self, voice_id: str) -> Voice:
        """
        Like :meth:`find`, but raises instead of returning ``None``.

        Raises:
            VoiceNotFoundError: If *voice_id* is not in the catalog.
        """
        voice = self.find(voice_id)
        if voice is None:
            raise VoiceNotFoundError(voice_id)
        return voice

    def index(self, number: int) -> Optional[Voice]:
        """Return the voice at 1-based catalog position *number*."""
        if 1 <= number <= len(self.voices):
            return self.voices[number - 1]
        return None

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def voice_dir(self, voice: Voice) -> Path:
        """Directory holding the voice's files."""
        if self.engine == ENGINE_SHERPA:
            return self.models_dir / voice.model_dir
        return self.models_dir

    def model_path(self, voice: Voice) -> Path:
        """The decisive model file: a voice without it is not installed."""
        if self.engine == ENGINE_SHERPA:
            return self.voice_dir(voice) / voice.model_file
        return self.models_dir / voice.model_filename

    def installed_name(self, voice: Voice) -> str:
        """The name :meth:`installed` reports for *voice*."""
        if self.engine == ENGINE_SHERPA:
            return voice.model_dir
        return voice.basename

    def files(self, voice: Voice) -> VoiceFiles:
        """Resolve every path the engine needs for *voice*."""
        model = self.model_path(voice)
        if self.engine == ENGINE_PIPER:
            return VoiceFiles(model=model, config=self.models_dir / voice.config_filename)

        base = self.voice_dir(voice)
        return VoiceFiles(
            model=model,
            tokens=base / voice.tokens_file,
            lexicon=base / voice.lexicon if voice.lexicon else None,
            dict_dir=base / voice.dict_dir if voice.dict_dir else None,
            data_dir=base / voice.data_dir if voice.data_dir else None,
        )

    def required_paths(self, voice: Voice) -> List[Path]:
        files = self.files(voice)
        return [files.model] + files.auxiliary()

    # ------------------------------------------------------------------
    # Installation state
    # ------------------------------------------------------------------

    def installed(self) -> List[str]:
        """Names of locally detected voice models, sorted."""
        if not self.models_dir.is_dir():
            return []

        names = []
        for entry in sorted(self.models_dir.iterdir()):
            if self.engine == ENGINE_PIPER:
                if entry.is_file() and entry.suffix == ".onnx":
                    names.append(entry.stem)
            elif entry.is_dir() and any(entry.glob("*.onnx")):
                names.append(entry.name)
        return names

    def is_installed(self, voice_id: str) -> bool:
        """True iff *voice_id* is cataloged and all its files are present."""
        voice = self.find(voice_id)
        if voice is None:
            return False
        return self.is_voice_installed(voice)

    def is_voice_installed(self, voice: Voice) -> bool:
        return all(p.exists() for p in self.required_paths(voice))

    def __repr__(self) -> str:
        return (
            f"VoiceCatalog(engine={self.engine}, dir='{self.models_dir}', "
            f"voices={len(self.voices)})"
        )
