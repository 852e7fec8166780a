"""
bibo: fast, local neural text-to-speech.

Voice catalog, model downloads, synthesis through piper-tts or the
sherpa-onnx native engine, and audio playback.
"""

__version__ = "0.3.0"
