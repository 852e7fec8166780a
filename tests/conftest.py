"""Shared fixtures: an isolated data directory and voice install helpers."""

import io
import logging
import wave

import pytest

from bibo.config import ENGINE_PIPER, ENGINE_SHERPA, BiboConfig
from bibo.tts.voice import VoiceCatalog


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "BIBO_VOICE",
        "BIBO_SPEED",
        "BIBO_ENGINE",
        "BIBO_DATA_DIR",
        "BIBO_SHERPA_PATH",
        "BIBO_PYTHON",
        "BIBO_HF_MIRROR",
        "BIBO_GITHUB_MIRROR",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _reset_bibo_logger():
    yield
    logger = logging.getLogger("bibo")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture()
def config(tmp_path):
    return BiboConfig(data_dir=tmp_path / "data", python_cmd=["python3"])


@pytest.fixture()
def sherpa_catalog(config):
    return VoiceCatalog(ENGINE_SHERPA, config.models_dir)


@pytest.fixture()
def piper_catalog(config):
    return VoiceCatalog(ENGINE_PIPER, config.models_dir)


def install_files(catalog, voice_id, skip=()):
    """Create every required file for *voice_id*, except names in *skip*."""
    voice = catalog.get(voice_id)
    for path in catalog.required_paths(voice):
        if path.name in skip:
            continue
        if path.suffix in (".onnx", ".txt", ".json"):
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(b"x")
        else:
            path.mkdir(parents=True, exist_ok=True)
    return voice


def make_wav(path, samples, sample_rate=22050):
    """Write int16 mono *samples* to a WAV file."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(b"".join(int(s).to_bytes(2, "little", signed=True) for s in samples))
    path.write_bytes(buf.getvalue())
