"""Synthesis backends: voice checks, command lines, and process handling."""

import subprocess
import wave
from pathlib import Path

import numpy as np
import pytest

import bibo.tts.engine as engine_mod
import bibo.tts.sherpa_engine as sherpa_engine_mod
from bibo.config import ENGINE_PIPER, BiboConfig
from bibo.download.sherpa import sherpa_tts_path
from bibo.errors import (
    ConfigError,
    EngineNotFoundError,
    NoTextProvidedError,
    SynthesisFailedError,
    VoiceNotFoundError,
    VoiceNotInstalledError,
)
from bibo.tts import PiperEngine, SherpaEngine, create_engine, find_sherpa_tts, read_wav_samples
from bibo.tts.sherpa_engine import sherpa_env

from conftest import install_files, make_wav


class FakeRun:
    """Stands in for subprocess.run; writes a WAV to the output path."""

    def __init__(self, returncode=0, stderr=b"", samples=(0, 100, -100, 32767), sample_rate=22050):
        self.returncode = returncode
        self.stderr = stderr
        self.samples = samples
        self.sample_rate = sample_rate
        self.calls = []

    def __call__(self, cmd, input=None, env=None, capture_output=False):
        self.calls.append({"cmd": cmd, "input": input, "env": env})
        if self.returncode == 0:
            make_wav(Path(self.output_of(cmd)), self.samples, self.sample_rate)
        return subprocess.CompletedProcess(cmd, self.returncode, b"", self.stderr)

    @staticmethod
    def output_of(cmd):
        for arg in cmd:
            if arg.startswith("--output-filename="):
                return arg.split("=", 1)[1]
        return cmd[-1]


@pytest.fixture()
def fake_run(monkeypatch):
    run = FakeRun()
    monkeypatch.setattr(subprocess, "run", run)
    return run


@pytest.fixture()
def binary(tmp_path):
    path = tmp_path / "sherpa" / "bin" / "sherpa-onnx-offline-tts"
    path.parent.mkdir(parents=True)
    path.write_bytes(b"")
    return path


# ------------------------------------------------------------------
# Voice checks
# ------------------------------------------------------------------


def test_unknown_voice(sherpa_catalog, binary):
    with pytest.raises(VoiceNotFoundError):
        SherpaEngine(sherpa_catalog, "nobody", binary=binary)


def test_uninstalled_voice_spawns_nothing(sherpa_catalog, binary, fake_run):
    with pytest.raises(VoiceNotInstalledError) as excinfo:
        SherpaEngine(sherpa_catalog, "amy", binary=binary)
    assert "bibo -d amy" in " ".join(excinfo.value.hints())
    assert fake_run.calls == []


def test_missing_tokens_is_config_error(sherpa_catalog, binary):
    install_files(sherpa_catalog, "amy", skip={"tokens.txt"})
    with pytest.raises(ConfigError, match="tokens.txt missing for voice: amy"):
        SherpaEngine(sherpa_catalog, "amy", binary=binary)


def test_missing_piper_config_is_config_error(piper_catalog):
    install_files(piper_catalog, "amy", skip={"en_US-amy-medium.onnx.json"})
    with pytest.raises(ConfigError):
        PiperEngine(piper_catalog, "amy")


# ------------------------------------------------------------------
# sherpa-onnx
# ------------------------------------------------------------------


def test_sherpa_command_for_bilingual_voice(sherpa_catalog, binary):
    install_files(sherpa_catalog, "melo")
    engine = SherpaEngine(sherpa_catalog, "melo", binary=binary)
    base = sherpa_catalog.models_dir / "vits-melo-tts-zh_en"

    cmd = engine.build_command("你好 hello", 0.8, "/tmp/out.wav")

    assert cmd == [
        str(binary),
        f"--vits-model={base / 'model.onnx'}",
        f"--vits-tokens={base / 'tokens.txt'}",
        f"--vits-lexicon={base / 'lexicon.txt'}",
        f"--vits-dict-dir={base / 'dict'}",
        "--vits-length-scale=0.8",
        "--output-filename=/tmp/out.wav",
        "--",
        "你好 hello",
    ]
    assert engine.sample_rate == 44100


def test_sherpa_command_for_espeak_voice(sherpa_catalog, binary):
    install_files(sherpa_catalog, "amy")
    engine = SherpaEngine(sherpa_catalog, "amy", binary=binary)

    cmd = engine.build_command("Hi", 1.2, "out.wav")

    assert any(a.startswith("--vits-data-dir=") and a.endswith("espeak-ng-data") for a in cmd)
    assert not any(a.startswith("--vits-lexicon") for a in cmd)
    assert "--vits-length-scale=1.2" in cmd
    assert engine.sample_rate == 16000


def test_text_is_a_single_argument(sherpa_catalog, binary):
    install_files(sherpa_catalog, "amy")
    engine = SherpaEngine(sherpa_catalog, "amy", binary=binary)
    text = "$(rm -rf ~); echo 'hi' | cat"
    assert engine.build_command(text, 1.0, "o.wav")[-1] == text


def test_leading_dash_text_follows_option_terminator(sherpa_catalog, binary):
    install_files(sherpa_catalog, "amy")
    engine = SherpaEngine(sherpa_catalog, "amy", binary=binary)

    cmd = engine.build_command("-5 degrees", 1.0, "o.wav")

    assert cmd[-2:] == ["--", "-5 degrees"]
    assert all(a.startswith("--") for a in cmd[1:-1])


def test_sherpa_env_linux():
    env = sherpa_env(Path("/x/lib"), system="Linux", environ={"LD_LIBRARY_PATH": "/usr/lib"})
    assert env["LD_LIBRARY_PATH"].split(":") == ["/x/lib", "/usr/lib"]


def test_sherpa_env_darwin():
    env = sherpa_env(Path("/x/lib"), system="Darwin", environ={"HOME": "/h"})
    assert env["DYLD_LIBRARY_PATH"] == "/x/lib"
    assert env["HOME"] == "/h"


def test_synthesize_returns_samples_and_cleans_up(sherpa_catalog, binary, fake_run):
    install_files(sherpa_catalog, "amy")
    engine = SherpaEngine(sherpa_catalog, "amy", binary=binary, lib_dir=Path("/x/lib"))

    samples, rate = engine.synthesize("Hello", 1.0)

    assert samples.dtype == np.int16
    assert rate == 22050
    assert samples.tolist() == list(fake_run.samples)
    out = Path(FakeRun.output_of(fake_run.calls[0]["cmd"]))
    assert not out.exists()
    env = fake_run.calls[0]["env"]
    assert "/x/lib" in env.get("LD_LIBRARY_PATH", "") + env.get("DYLD_LIBRARY_PATH", "")


def test_synthesize_reports_rate_from_wav_header(sherpa_catalog, binary, monkeypatch):
    install_files(sherpa_catalog, "ryan")
    monkeypatch.setattr(subprocess, "run", FakeRun(sample_rate=16000))
    engine = SherpaEngine(sherpa_catalog, "ryan", binary=binary)
    assert engine.sample_rate == 22050

    _, rate = engine.synthesize("Hello", 1.0)

    assert rate == 16000


def test_stereo_output_is_rejected(sherpa_catalog, binary, monkeypatch):
    install_files(sherpa_catalog, "amy")

    def stereo_run(cmd, input=None, env=None, capture_output=False):
        with wave.open(FakeRun.output_of(cmd), "wb") as wf:
            wf.setnchannels(2)
            wf.setsampwidth(2)
            wf.setframerate(16000)
            wf.writeframes(b"\x00\x00" * 8)
        return subprocess.CompletedProcess(cmd, 0, b"", b"")

    monkeypatch.setattr(subprocess, "run", stereo_run)
    engine = SherpaEngine(sherpa_catalog, "amy", binary=binary)

    with pytest.raises(SynthesisFailedError, match="Expected 1 channel"):
        engine.synthesize("Hello", 1.0)


def test_nonzero_exit_is_synthesis_failure(sherpa_catalog, binary, monkeypatch, tmp_path):
    install_files(sherpa_catalog, "amy")
    monkeypatch.setattr(subprocess, "run", FakeRun(returncode=1, stderr=b"bad model"))
    engine = SherpaEngine(sherpa_catalog, "amy", binary=binary)

    with pytest.raises(SynthesisFailedError, match="bad model"):
        engine.synthesize_to_file("Hello", 1.0, tmp_path / "o.wav")


def test_spawn_failure_is_synthesis_failure(sherpa_catalog, binary, monkeypatch, tmp_path):
    install_files(sherpa_catalog, "amy")

    def cannot_exec(*args, **kwargs):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(subprocess, "run", cannot_exec)
    engine = SherpaEngine(sherpa_catalog, "amy", binary=binary)

    with pytest.raises(SynthesisFailedError, match="Permission denied"):
        engine.synthesize_to_file("Hello", 1.0, tmp_path / "o.wav")


def test_blank_text_rejected(sherpa_catalog, binary, fake_run, tmp_path):
    install_files(sherpa_catalog, "amy")
    engine = SherpaEngine(sherpa_catalog, "amy", binary=binary)
    with pytest.raises(NoTextProvidedError):
        engine.synthesize_to_file("  ", 1.0, tmp_path / "o.wav")
    assert fake_run.calls == []


# ------------------------------------------------------------------
# Binary discovery
# ------------------------------------------------------------------


def test_find_prefers_explicit_path(config, binary):
    config.sherpa_path = binary
    assert find_sherpa_tts(config, system="Linux") == binary


def test_find_homebrew_before_user_dir(config, tmp_path, monkeypatch):
    brew = tmp_path / "brew" / "sherpa-onnx-offline-tts"
    brew.parent.mkdir()
    brew.write_bytes(b"")
    user = sherpa_tts_path(config)
    user.parent.mkdir(parents=True)
    user.write_bytes(b"")
    monkeypatch.setattr(sherpa_engine_mod, "_HOMEBREW_PATHS", (brew,))

    assert find_sherpa_tts(config, system="Darwin") == brew
    assert find_sherpa_tts(config, system="Linux") == user


def test_find_falls_back_to_path(config, monkeypatch):
    monkeypatch.setattr(sherpa_engine_mod.shutil, "which", lambda name: "/usr/bin/" + name)
    assert find_sherpa_tts(config, system="Linux") == Path("/usr/bin/sherpa-onnx-offline-tts")


def test_find_nothing(config, monkeypatch):
    monkeypatch.setattr(sherpa_engine_mod.shutil, "which", lambda name: None)
    with pytest.raises(EngineNotFoundError):
        find_sherpa_tts(config, system="Linux")


# ------------------------------------------------------------------
# Piper
# ------------------------------------------------------------------


def test_piper_command_passes_text_on_stdin(piper_catalog, fake_run, tmp_path):
    install_files(piper_catalog, "amy")
    engine = PiperEngine(piper_catalog, "amy", python_cmd=["uv", "run", "python"])
    out = tmp_path / "o.wav"

    engine.synthesize_to_file("Hello \"world\"", 0.8, out)

    call = fake_run.calls[0]
    assert call["cmd"][:4] == ["uv", "run", "python", "-c"]
    assert call["cmd"][-4:] == [
        str(piper_catalog.models_dir / "en_US-amy-medium.onnx"),
        str(piper_catalog.models_dir / "en_US-amy-medium.onnx.json"),
        "0.8",
        str(out),
    ]
    assert "Hello" not in call["cmd"][4]
    assert call["input"] == 'Hello "world"'.encode("utf-8")
    samples, rate = read_wav_samples(out)
    assert samples.size == len(fake_run.samples)
    assert rate == 22050


def test_piper_sample_rate_from_voice_config(piper_catalog):
    install_files(piper_catalog, "amy")
    config_path = piper_catalog.models_dir / "en_US-amy-medium.onnx.json"
    config_path.write_text('{"audio": {"sample_rate": 16000}}', encoding="utf-8")

    assert PiperEngine(piper_catalog, "amy").sample_rate == 16000


def test_piper_sample_rate_falls_back_to_catalog(piper_catalog):
    install_files(piper_catalog, "amy")
    assert PiperEngine(piper_catalog, "amy").sample_rate == 22050


# ------------------------------------------------------------------
# Engine selection
# ------------------------------------------------------------------


def test_create_piper_engine(tmp_path, monkeypatch):
    config = BiboConfig(engine=ENGINE_PIPER, voice="ryan", data_dir=tmp_path, python_cmd=["py"])
    from bibo.tts.voice import VoiceCatalog

    install_files(VoiceCatalog(ENGINE_PIPER, config.models_dir), "ryan")
    engine = create_engine(config)
    assert isinstance(engine, PiperEngine)
    assert engine.voice.id == "ryan"


@pytest.fixture()
def no_system_sherpa(monkeypatch):
    monkeypatch.setattr(sherpa_engine_mod.shutil, "which", lambda name: None)
    monkeypatch.setattr(sherpa_engine_mod, "_HOMEBREW_PATHS", ())


def test_create_sherpa_installs_engine_on_first_use(config, sherpa_catalog, monkeypatch, no_system_sherpa):
    install_files(sherpa_catalog, "melo")
    installs = []

    class FakeInstaller:
        def __init__(self, cfg):
            self.cfg = cfg

        def install(self, quiet=False):
            installs.append(quiet)
            path = sherpa_tts_path(self.cfg)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(b"")
            return path

    monkeypatch.setattr(engine_mod, "SherpaInstaller", FakeInstaller)

    engine = create_engine(config, sherpa_catalog, quiet=True)

    assert isinstance(engine, SherpaEngine)
    assert engine.binary == sherpa_tts_path(config)
    assert installs == [True]


def test_create_sherpa_checks_voice_before_engine(config, sherpa_catalog, monkeypatch, no_system_sherpa):
    def forbidden(cfg):
        raise AssertionError("engine install attempted")

    monkeypatch.setattr(engine_mod, "SherpaInstaller", forbidden)

    with pytest.raises(VoiceNotInstalledError):
        create_engine(config, sherpa_catalog)


def test_explicit_sherpa_path_is_not_replaced(config, sherpa_catalog, monkeypatch, no_system_sherpa, tmp_path):
    install_files(sherpa_catalog, "melo")
    config.sherpa_path = tmp_path / "missing" / "tts"

    def forbidden(cfg):
        raise AssertionError("engine install attempted")

    monkeypatch.setattr(engine_mod, "SherpaInstaller", forbidden)

    with pytest.raises(EngineNotFoundError):
        create_engine(config, sherpa_catalog)
