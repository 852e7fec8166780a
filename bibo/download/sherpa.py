"""
sherpa-onnx engine installer.

Fetches the prebuilt shared-library release of sherpa-onnx for the
current platform and unpacks it under ``<data_dir>/sherpa`` so that
``bin/sherpa-onnx-offline-tts`` and ``lib/`` sit side by side.
"""

import logging
import os
import platform
from pathlib import Path
from typing import List

from bibo.config import BiboConfig
from bibo.errors import BiboError, EngineNotFoundError

from .archive import extract_tar_bz2
from .fetch import download_with_mirrors

logger = logging.getLogger(__name__)

SHERPA_VERSION = "1.12.20"

_RELEASE_URL = "https://github.com/k2-fsa/sherpa-onnx/releases/download"

# (system, machine) -> release asset platform tag
_PLATFORM_TAGS = {
    ("Darwin", "arm64"): "osx-universal2-shared",
    ("Darwin", "x86_64"): "osx-universal2-shared",
    ("Linux", "x86_64"): "linux-x64-shared",
    ("Linux", "aarch64"): "linux-aarch64-shared",
    ("Linux", "arm64"): "linux-aarch64-shared",
}

TTS_BINARY = "sherpa-onnx-offline-tts"


def sherpa_tts_path(config: BiboConfig) -> Path:
    """User-directory location of the TTS binary."""
    return config.sherpa_dir / "bin" / TTS_BINARY


def sherpa_lib_dir(config: BiboConfig) -> Path:
    return config.sherpa_dir / "lib"


class SherpaInstaller:
    """Downloads and unpacks the sherpa-onnx engine on first use."""

    def __init__(self, config: BiboConfig):
        self.config = config

    def download_url(self, system: str = None, machine: str = None) -> str:
        """
        Release asset URL for the given (or current) platform.

        Raises:
            EngineNotFoundError: If no prebuilt release exists for it.
        """
        system = system or platform.system()
        machine = machine or platform.machine()
        tag = _PLATFORM_TAGS.get((system, machine))
        if tag is None:
            raise EngineNotFoundError(
                f"No prebuilt sherpa-onnx for {system}/{machine}"
            )
        return (
            f"{_RELEASE_URL}/v{SHERPA_VERSION}/"
            f"sherpa-onnx-v{SHERPA_VERSION}-{tag}.tar.bz2"
        )

    def source_urls(self) -> List[str]:
        url = self.download_url()
        urls = [url]
        if self.config.github_mirror:
            urls.append(f"{self.config.github_mirror}/{url}")
        return urls

    def needs_download(self) -> bool:
        return not sherpa_tts_path(self.config).exists()

    def install(self, quiet: bool = False) -> Path:
        """
        Install the engine unless it is already present.

        Returns:
            Path to ``sherpa-onnx-offline-tts``.

        Raises:
            DownloadFailedError: If the archive cannot be fetched.
            BiboError:           If extraction fails or the archive lacks
                                 the expected binary.
        """
        binary = sherpa_tts_path(self.config)
        if binary.exists():
            if not quiet:
                logger.info("Sherpa-onnx already installed")
            return binary

        bin_dir = self.config.sherpa_dir
        urls = self.source_urls()

        if not quiet:
            logger.info("Downloading sherpa-onnx TTS engine...")

        try:
            bin_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BiboError(f"Failed to create bin dir {bin_dir}: {e}") from e

        archive = bin_dir / "sherpa_temp.tar.bz2"
        download_with_mirrors(urls, archive, quiet=quiet)

        if not quiet:
            logger.info("   Extracting...")
        try:
            # Release archives wrap everything in sherpa-onnx-v<ver>-<platform>/
            extract_tar_bz2(archive, bin_dir, strip_components=1)
        finally:
            try:
                archive.unlink()
            except OSError:
                pass

        if not binary.exists():
            raise BiboError(f"{TTS_BINARY} binary not found in extracted archive")

        if os.name == "posix":
            self._make_executable(binary.parent)

        if not quiet:
            logger.info("Sherpa-onnx installed successfully!")
        return binary

    @staticmethod
    def _make_executable(bin_subdir: Path) -> None:
        for entry in bin_subdir.iterdir():
            if entry.is_file():
                try:
                    entry.chmod(0o755)
                except OSError as e:
                    logger.debug("chmod failed for %s: %s", entry, e)
