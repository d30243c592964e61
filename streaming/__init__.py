"""
Streaming transcription layer.

- audio_buffer: ChunkAccumulator slicing PCM into fixed-size recognition units.
- streaming_asr: WhisperEngine, one explicit engine handle per process.
- pcm_source: ffmpeg / librosa / in-memory PCM sources, bounded prefetch.
- orchestrator: incremental + full-buffer recognition passes (import separately).
- report: logging and file report sinks.
"""

from streaming.audio_buffer import ChunkAccumulator, bytes_to_duration_ms, duration_ms_to_bytes
from streaming.streaming_asr import WhisperEngine

__all__ = [
    "ChunkAccumulator",
    "bytes_to_duration_ms",
    "duration_ms_to_bytes",
    "WhisperEngine",
]
