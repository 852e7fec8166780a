"""
Abstract base class for TTS engines.

Both backends run an external process that writes a WAV file; this
class supplies the shared pieces: voice file resolution, process
execution, and decoding a WAV back into samples for playback.
"""

import logging
import os
import subprocess
import tempfile
import wave
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping, Optional, Sequence, Tuple

import numpy as np

from bibo.errors import (
    ConfigError,
    NoTextProvidedError,
    SynthesisFailedError,
    VoiceNotInstalledError,
)
from bibo.tts.voice import Voice, VoiceCatalog, VoiceFiles

logger = logging.getLogger(__name__)


def resolve_voice_files(catalog: VoiceCatalog, voice_id: str) -> Tuple[Voice, VoiceFiles]:
    """
    Look up *voice_id* and check its files are on disk.

    Raises:
        VoiceNotFoundError:     Unknown id.
        VoiceNotInstalledError: The model file is absent.
        ConfigError:            The model exists but an auxiliary file
                                (config, tokens, lexicon...) is missing.
    """
    voice = catalog.get(voice_id)
    files = catalog.files(voice)

    if not files.model.exists():
        raise VoiceNotInstalledError(voice_id)

    for path in files.auxiliary():
        if not path.exists():
            raise ConfigError(f"{path.name} missing for voice: {voice_id}")

    return voice, files


def read_wav_samples(
    path, sample_width: int = 2, channels: Optional[int] = None
) -> Tuple[np.ndarray, int]:
    """
    Decode a 16-bit PCM WAV file.

    Returns:
        ``(samples, frame_rate)``.  Samples are ``int16``; multi-channel
        files come back shaped ``(frames, channels)``.  The rate is the
        one in the WAV header, not a catalog value.

    Raises:
        SynthesisFailedError: If the file is missing, its sample width is
            not *sample_width*, or its channel count differs from
            *channels* (when given).
    """
    try:
        with wave.open(str(path), "rb") as wf:
            width = wf.getsampwidth()
            n_channels = wf.getnchannels()
            rate = wf.getframerate()
            frames = wf.readframes(wf.getnframes())
    except (wave.Error, EOFError, OSError) as e:
        raise SynthesisFailedError(f"Failed to read WAV {path}: {e}") from e

    if width != sample_width:
        raise SynthesisFailedError(
            f"Expected {sample_width * 8}-bit WAV, got {width * 8}-bit: {path}"
        )
    if channels is not None and n_channels != channels:
        raise SynthesisFailedError(
            f"Expected {channels} channel(s), got {n_channels}: {path}"
        )

    samples = np.frombuffer(frames, dtype="<i2").astype(np.int16)
    if n_channels > 1:
        samples = samples.reshape(-1, n_channels)
    return samples, rate


class BaseTTSEngine(ABC):
    """
    Common interface for the synthesis backends.

    Subclasses implement :meth:`synthesize_to_file` and expose
    ``sample_rate`` and ``engine_name``.
    """

    def __init__(self, voice: Voice, files: VoiceFiles):
        self._voice = voice
        self._files = files

    @property
    def voice(self) -> Voice:
        return self._voice

    @property
    def files(self) -> VoiceFiles:
        return self._files

    @property
    def sample_rate(self) -> int:
        """Nominal output rate in Hz from the voice catalog."""
        return self._voice.sample_rate

    @property
    def sample_width(self) -> int:
        """Sample width in bytes (16-bit PCM)."""
        return 2

    @property
    def channels(self) -> int:
        """Engines write mono audio."""
        return 1

    @property
    @abstractmethod
    def engine_name(self) -> str:
        """Human-readable engine identifier."""

    @abstractmethod
    def synthesize_to_file(self, text: str, length_scale: float, output_path) -> None:
        """
        Synthesise *text* into a WAV file at *output_path*.

        Args:
            text:         UTF-8 text to speak.
            length_scale: Duration multiplier (<1 = faster, >1 = slower).
            output_path:  Destination ``.wav`` path.

        Raises:
            SynthesisFailedError: If the engine cannot be started or
                exits non-zero.
        """

    def synthesize(self, text: str, length_scale: float = 1.0) -> Tuple[np.ndarray, int]:
        """
        Synthesise *text* and return ``(samples, sample_rate)``.

        The rate is read back from the WAV the engine wrote, so playback
        stays correct when a model's real output rate differs from the
        catalog entry.

        Raises:
            SynthesisFailedError: If the engine fails or its output is
                not mono 16-bit PCM.
        """
        fd, tmp_name = tempfile.mkstemp(prefix="bibo-", suffix=".wav")
        os.close(fd)
        tmp_path = Path(tmp_name)
        try:
            self.synthesize_to_file(text, length_scale, tmp_path)
            samples, rate = read_wav_samples(
                tmp_path, sample_width=self.sample_width, channels=self.channels
            )
        finally:
            try:
                tmp_path.unlink()
            except OSError:
                pass

        if rate != self.sample_rate:
            logger.debug(
                "%s wrote %d Hz audio (catalog: %d Hz)", self.engine_name, rate, self.sample_rate
            )
        return samples, rate

    # ------------------------------------------------------------------
    # Process execution
    # ------------------------------------------------------------------

    @staticmethod
    def _check_text(text: str) -> None:
        if not text or not text.strip():
            raise NoTextProvidedError()

    def _run(
        self,
        cmd: Sequence[str],
        input: Optional[bytes] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Run *cmd* to completion; non-zero exit is a synthesis failure."""
        logger.debug("Running %s: %s", self.engine_name, cmd[0])
        try:
            result = subprocess.run(
                list(cmd),
                input=input,
                env=dict(env) if env is not None else None,
                capture_output=True,
            )
        except OSError as e:
            raise SynthesisFailedError(f"Failed to run {cmd[0]}: {e}") from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise SynthesisFailedError(
                f"{self.engine_name} exited with status {result.returncode}: {stderr}"
            )
