"""
Audio playback on the default output device.

``sounddevice`` needs the PortAudio shared library at import time, so it
is imported lazily: machines that only write WAV files never load it.
"""

import logging
from pathlib import Path

import numpy as np
from pydub import AudioSegment

from bibo.errors import PlaybackFailedError

logger = logging.getLogger(__name__)


def _sounddevice():
    try:
        import sounddevice
    except (ImportError, OSError) as e:
        raise PlaybackFailedError(
            f"Failed to get audio output: {e}. "
            "Install with: pip install sounddevice (requires PortAudio)"
        ) from e
    return sounddevice


class AudioPlayer:
    """
    Blocking playback helpers.

    Usage::

        AudioPlayer.play_samples(samples, 22050)
        AudioPlayer.play_file("hello.wav")
    """

    @staticmethod
    def play_samples(samples: np.ndarray, sample_rate: int) -> None:
        """
        Play ``int16`` samples and block until playback completes.

        Raises:
            PlaybackFailedError: If no output device is usable.
        """
        sd = _sounddevice()
        if len(samples) == 0:
            logger.debug("Nothing to play")
            return

        # int16 → float32 in [-1, 1)
        audio = np.asarray(samples, dtype=np.int16).astype(np.float32) / 32768.0
        logger.debug("Playing %d samples at %d Hz", len(audio), sample_rate)
        try:
            sd.play(audio, sample_rate)
            sd.wait()
        except Exception as e:
            raise PlaybackFailedError(str(e)) from e

    @staticmethod
    def play_file(path) -> None:
        """
        Decode an audio file and play it at its own sample rate.

        Raises:
            PlaybackFailedError: If the file cannot be opened or decoded,
                or no output device is usable.
        """
        path = Path(path)
        try:
            segment = AudioSegment.from_file(str(path))
        except Exception as e:
            raise PlaybackFailedError(f"Failed to decode audio {path}: {e}") from e

        segment = segment.set_sample_width(2)
        samples = np.array(segment.get_array_of_samples(), dtype=np.int16)
        if segment.channels > 1:
            samples = samples.reshape(-1, segment.channels)
        AudioPlayer.play_samples(samples, segment.frame_rate)
