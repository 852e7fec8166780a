"""Voice model and engine binary downloads."""

from .archive import extract_tar_bz2
from .fetch import download_file, download_with_mirrors
from .sherpa import SHERPA_VERSION, SherpaInstaller
from .voices import VoiceInstaller

__all__ = [
    "SHERPA_VERSION",
    "SherpaInstaller",
    "VoiceInstaller",
    "download_file",
    "download_with_mirrors",
    "extract_tar_bz2",
]
