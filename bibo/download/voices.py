"""
Voice model installer.

Downloads, unpacks and verifies catalog voices under the models
directory.  Installation is idempotent: a voice whose model file is
already present is not fetched again.

Usage::

    catalog = VoiceCatalog(config.engine, config.models_dir)
    installer = VoiceInstaller(catalog, config)
    installer.install("melo")
    installer.install_spec("1,3,5")
"""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import List

from bibo.config import ENGINE_SHERPA, BiboConfig
from bibo.errors import BiboError, DownloadFailedError
from bibo.tts.voice import Voice, VoiceCatalog

from .archive import extract_tar_bz2
from .fetch import download_with_mirrors

logger = logging.getLogger(__name__)

# Primary host for Piper voice files
_PIPER_VOICES_REPO = "rhasspy/piper-voices/resolve/main"
_HF_BASE = "https://huggingface.co"


class VoiceInstaller:
    """Makes cataloged voices present on disk."""

    def __init__(self, catalog: VoiceCatalog, config: BiboConfig):
        self.catalog = catalog
        self.config = config

    # ------------------------------------------------------------------
    # Source URLs
    # ------------------------------------------------------------------

    def piper_urls(self, voice: Voice, filename: str) -> List[str]:
        """HuggingFace URL first, then the configured mirror."""
        subdir = voice.hf_path.rsplit("/", 1)[0]
        hosts = [_HF_BASE]
        if self.config.hf_mirror and self.config.hf_mirror != _HF_BASE:
            hosts.append(self.config.hf_mirror)
        return [f"{host}/{_PIPER_VOICES_REPO}/{subdir}/{filename}" for host in hosts]

    def archive_urls(self, voice: Voice) -> List[str]:
        """Release archive URL, then the GitHub mirror when configured."""
        urls = [voice.archive_url]
        if self.config.github_mirror:
            urls.append(f"{self.config.github_mirror}/{voice.archive_url}")
        return urls

    # ------------------------------------------------------------------
    # Single voice
    # ------------------------------------------------------------------

    def install(self, voice_id: str, quiet: bool = False) -> Path:
        """
        Download *voice_id* unless it is already installed.

        Returns:
            Path to the voice's model file.

        Raises:
            VoiceNotFoundError:  If the id is not in the catalog.
            DownloadFailedError: If every source fails or the archive
                                 does not contain the expected model.
            BiboError:           If the models directory cannot be
                                 created or ``tar`` fails.
        """
        voice = self.catalog.get(voice_id)
        models_dir = self.catalog.models_dir

        try:
            models_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BiboError(f"Failed to create models dir {models_dir}: {e}") from e

        model_path = self.catalog.model_path(voice)
        if self.catalog.is_voice_installed(voice) or (
            self.catalog.engine == ENGINE_SHERPA and model_path.exists()
        ):
            if not quiet:
                logger.info("%s (%s) already installed", voice.name, voice.lang)
            return model_path

        if not quiet:
            logger.info(
                "Downloading: %s (%s, %s, %s, ~%dMB)",
                voice.name,
                voice.lang,
                voice.gender,
                voice.quality,
                voice.size_mb,
            )

        if self.catalog.engine == ENGINE_SHERPA:
            self._install_archive(voice, quiet)
        else:
            self._install_piper_files(voice, quiet)

        if not model_path.exists():
            raise DownloadFailedError(
                f"model file not found after extraction: {voice.name}"
            )

        if not quiet:
            logger.info("%s installed successfully!", voice.name)
        return model_path

    def _install_piper_files(self, voice: Voice, quiet: bool) -> None:
        """Fetch the config first so the decisive model file lands last."""
        files = self.catalog.files(voice)
        for dest, filename in (
            (files.config, voice.config_filename),
            (files.model, voice.model_filename),
        ):
            if dest.exists():
                continue
            partial = dest.with_name(dest.name + ".part")
            download_with_mirrors(self.piper_urls(voice, filename), partial, quiet=quiet)
            partial.replace(dest)

    def _install_archive(self, voice: Voice, quiet: bool) -> None:
        """
        Download the release archive and unpack it into a staging
        directory, then move the voice directory into place.
        """
        models_dir = self.catalog.models_dir
        archive = models_dir / f"{voice.model_dir}.tar.bz2"
        staging = Path(tempfile.mkdtemp(prefix=".staging-", dir=models_dir))

        try:
            download_with_mirrors(self.archive_urls(voice), archive, quiet=quiet)

            if not quiet:
                logger.info("   Extracting...")
            try:
                extract_tar_bz2(archive, staging)
            finally:
                try:
                    archive.unlink()
                except OSError:
                    pass

            staged = staging / voice.model_dir
            if not (staged / voice.model_file).exists():
                raise DownloadFailedError(
                    f"model file not found after extraction: {voice.name}"
                )

            target = self.catalog.voice_dir(voice)
            if target.exists():
                shutil.rmtree(target)
            shutil.move(str(staged), str(target))
        finally:
            shutil.rmtree(staging, ignore_errors=True)

    # ------------------------------------------------------------------
    # Bulk spec
    # ------------------------------------------------------------------

    def install_spec(self, spec: str, quiet: bool = False) -> int:
        """
        Install voices described by *spec*.

        * ``"list"`` - show the catalog, install nothing.
        * ``"all"`` - every cataloged voice.
        * ``"1,3,5"`` - 1-based catalog indices; invalid ones are
          reported and skipped.
        * anything else - a single voice id.

        Returns:
            Number of voices successfully installed (or already present).

        Raises:
            BiboError: Only for the single-id form; batch failures are
                logged and counted instead.
        """
        spec = spec.strip().lower()

        if spec == "list":
            self.show_catalog()
            return 0

        if spec == "all":
            if not quiet:
                logger.info("Downloading all voices...")
            success = self._install_batch(list(self.catalog.voices), quiet)
            if not quiet:
                logger.info("Downloaded %d/%d voices", success, len(self.catalog.voices))
            return success

        if "," in spec or spec.isdigit():
            voices = []
            for part in spec.split(","):
                part = part.strip()
                if not part:
                    continue
                if not part.isdigit():
                    logger.warning("Invalid number: %s", part)
                    continue
                voice = self.catalog.index(int(part))
                if voice is None:
                    logger.warning(
                        "Invalid number: %s (valid: 1-%d)", part, len(self.catalog.voices)
                    )
                    continue
                voices.append(voice)
            success = self._install_batch(voices, quiet)
            if not quiet:
                logger.info("Downloaded %d/%d voices", success, len(voices))
            return success

        self.install(spec, quiet=quiet)
        return 1

    def _install_batch(self, voices: List[Voice], quiet: bool) -> int:
        success = 0
        for voice in voices:
            try:
                self.install(voice.id, quiet=quiet)
                success += 1
            except BiboError as e:
                logger.error("%s: %s", voice.id, e)
        return success

    # ------------------------------------------------------------------
    # Catalog listing
    # ------------------------------------------------------------------

    def show_catalog(self) -> None:
        """Print the downloadable voices with their install status."""
        logger.info("Available voices for download (%s engine):", self.catalog.engine)
        logger.info("")
        logger.info(
            "%-3s %-10s %-10s %-7s %-2s %-7s %-6s %s",
            "#", "ID", "NAME", "LANG", "G", "QUALITY", "SIZE", "STATUS",
        )
        logger.info("-" * 64)
        for idx, voice in enumerate(self.catalog.voices, start=1):
            status = "installed" if self.catalog.is_voice_installed(voice) else ""
            logger.info(
                "%-3d %-10s %-10s %-7s %-2s %-7s %-6s %s",
                idx,
                voice.id,
                voice.name,
                voice.lang,
                voice.gender,
                voice.quality,
                f"{voice.size_mb}MB",
                status,
            )
        logger.info("")
        logger.info("Usage:")
        logger.info("   bibo -d <id>        Download single voice")
        logger.info("   bibo -d all         Download all voices")
        logger.info("   bibo -d 1,3,5       Download by numbers")
