"""
Recognition engine: Whisper on raw PCM buffers.

One engine handle is constructed per process (or per batch of runs), passed
to the orchestrator, and released with close(). Every call is independent:
no decoding context is carried between recognize() calls.
"""

import logging
import threading
import time
from typing import Any, Dict, Optional, Tuple

import numpy as np

from streaming.audio_buffer import BYTES_PER_SAMPLE, bytes_to_duration_ms

logger = logging.getLogger(__name__)


def pcm16_to_float32(audio_bytes: bytes) -> np.ndarray:
    """Convert 16-bit little-endian mono PCM to float32 samples in [-1, 1)."""
    samples = np.frombuffer(audio_bytes, dtype="<i2")
    return samples.astype(np.float32) / 32768.0


class WhisperEngine:
    """
    Stateless-per-call wrapper around an OpenAI Whisper model.

    Calls are serialized with an internal lock; Whisper models are not
    reentrant on a shared device.
    """

    def __init__(
        self,
        model: Any,
        language: Optional[str] = "en",
        device: str = "cpu",
        model_name: Optional[str] = None,
    ):
        """
        Args:
            model: Loaded Whisper model (exposes transcribe(audio, **options)).
            language: Language code passed to Whisper (None = auto-detect).
            device: Device the model lives on; fp16 is only used on cuda.
            model_name: Name for logs.
        """
        self._model = model
        self.language = language
        self.device = device
        self.model_name = model_name or type(model).__name__
        self._lock = threading.Lock()
        self.calls = 0

    @classmethod
    def load(cls, model_name: str = "base", device: str = "cpu", language: Optional[str] = "en") -> "WhisperEngine":
        """Load a Whisper checkpoint by name or path and wrap it."""
        import whisper

        logger.info("Loading Whisper model '%s' on %s", model_name, device)
        start = time.perf_counter()
        model = whisper.load_model(model_name, device=device)
        logger.info("Whisper model loaded in %.2fs", time.perf_counter() - start)
        return cls(model, language=language, device=device, model_name=model_name)

    @property
    def closed(self) -> bool:
        return self._model is None

    def recognize(self, audio_bytes: bytes) -> str:
        """
        Transcribe raw 16 kHz 16-bit mono PCM.

        Raises:
            ValueError: empty buffer or a length that is not whole samples.
            RuntimeError: engine already closed.
        """
        text, _meta = self.recognize_with_meta(audio_bytes)
        return text

    def recognize_with_meta(self, audio_bytes: bytes) -> Tuple[str, Dict[str, Any]]:
        """Like recognize(), also returning duration_ms / inference_ms / bytes."""
        if not audio_bytes:
            raise ValueError("Cannot recognize an empty PCM buffer")
        if len(audio_bytes) % BYTES_PER_SAMPLE != 0:
            raise ValueError(f"PCM buffer of {len(audio_bytes)} bytes is not whole 16-bit samples")
        meta: Dict[str, Any] = {
            "duration_ms": bytes_to_duration_ms(len(audio_bytes)),
            "inference_ms": None,
            "bytes": len(audio_bytes),
        }
        audio = pcm16_to_float32(audio_bytes)
        with self._lock:
            if self._model is None:
                raise RuntimeError("WhisperEngine is closed")
            start = time.perf_counter()
            result = self._model.transcribe(
                audio,
                language=self.language,
                fp16=self.device == "cuda",
                condition_on_previous_text=False,
            )
            self.calls += 1
        meta["inference_ms"] = round((time.perf_counter() - start) * 1000)
        text = (result.get("text") or "").strip()
        return text, meta

    def close(self) -> None:
        """Release the model. Further recognize() calls raise RuntimeError."""
        with self._lock:
            if self._model is None:
                return
            self._model = None
        if self.device == "cuda":
            try:
                import torch
                torch.cuda.empty_cache()
            except Exception as e:
                logger.debug("CUDA cache release failed: %s", e)
        logger.info("Released Whisper model '%s' after %d calls", self.model_name, self.calls)

    def __enter__(self) -> "WhisperEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
