"""
Engine selection.

Picks the synthesis backend named by the configuration so the CLI and
catalog code never depend on which one is active.
"""

import logging
from typing import Optional

from bibo.config import ENGINE_PIPER, BiboConfig
from bibo.download.sherpa import SherpaInstaller
from bibo.errors import EngineNotFoundError
from bibo.tts.base_engine import BaseTTSEngine, resolve_voice_files
from bibo.tts.piper_engine import PiperEngine
from bibo.tts.sherpa_engine import SherpaEngine
from bibo.tts.voice import VoiceCatalog

logger = logging.getLogger(__name__)


def create_engine(
    config: BiboConfig,
    catalog: Optional[VoiceCatalog] = None,
    quiet: bool = False,
) -> BaseTTSEngine:
    """
    Build the engine for ``config.voice``.

    The voice is checked before anything else, so an uninstalled voice
    fails without touching the network or spawning a process.  For the
    sherpa backend a missing engine binary is downloaded on first use,
    unless ``BIBO_SHERPA_PATH`` points somewhere explicit.

    Raises:
        VoiceNotFoundError, VoiceNotInstalledError, ConfigError,
        EngineNotFoundError, DownloadFailedError
    """
    catalog = catalog or VoiceCatalog(config.engine, config.models_dir)

    if config.engine == ENGINE_PIPER:
        return PiperEngine(catalog, config.voice, python_cmd=config.python_cmd)

    resolve_voice_files(catalog, config.voice)

    try:
        return SherpaEngine.from_config(config, catalog)
    except EngineNotFoundError:
        if config.sherpa_path:
            raise
        logger.info("sherpa-onnx engine not found, installing it")

    SherpaInstaller(config).install(quiet=quiet)
    return SherpaEngine.from_config(config, catalog)
