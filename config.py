"""
Runtime configuration via environment variables.
Loaded with python-dotenv; no hardcoded model paths.
"""
import os

from dotenv import load_dotenv

# .env in cwd is optional; real environment wins
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


# ----- ASR model -----
# Whisper size (tiny, base, small, medium, large, large-v3) or a local checkpoint path
WHISPER_MODEL = os.environ.get("WHISPER_MODEL", "base")
# Single language code passed to the engine
ASR_LANGUAGE = os.environ.get("ASR_LANGUAGE", "en")

# ----- Device -----
# auto | cuda | cpu
DEVICE = os.environ.get("DEVICE", "auto")


def resolve_device(device: str = "") -> str:
    """Resolve "auto" to cuda when available, else cpu."""
    device = device or DEVICE
    if device != "auto":
        return device
    try:
        import torch
        return "cuda" if torch.cuda.is_available() else "cpu"
    except Exception:
        return "cpu"


# ----- Streaming -----
# Recognition unit size in bytes; 32000 = 1 s of 16 kHz 16-bit mono
UNIT_SIZE_BYTES = int(os.environ.get("UNIT_SIZE_BYTES", "32000"))
# Bytes read from the decoder per chunk
SOURCE_READ_SIZE = int(os.environ.get("SOURCE_READ_SIZE", "8192"))
# ffmpeg | librosa
SOURCE_BACKEND = os.environ.get("SOURCE_BACKEND", "ffmpeg")
FFMPEG_BINARY = os.environ.get("FFMPEG_BINARY", "ffmpeg")
# Max decoded chunks queued ahead of recognition (0 = decode inline)
PREFETCH_CHUNKS = int(os.environ.get("PREFETCH_CHUNKS", "16"))

# ----- Reports & logging -----
REPORT_DIR = os.environ.get("REPORT_DIR", "reports")
WRITE_REPORTS = _env_bool("WRITE_REPORTS", "true")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
