"""
PCM sources: turn an audio file into an ordered stream of 16 kHz 16-bit mono
PCM byte chunks.

Sources are plain iterables of bytes. Decoder failures are raised as
SourceError from inside the iteration, at the point in the stream where
they happen.
"""

import logging
import os
import queue
import shutil
import subprocess
import tempfile
import threading
import warnings
from typing import Iterable, Iterator

import numpy as np

from core.errors import SourceError
from streaming.audio_buffer import SAMPLE_RATE

logger = logging.getLogger(__name__)

DEFAULT_READ_SIZE = 8192
# Last N bytes of decoder stderr kept for error messages
STDERR_TAIL_BYTES = 2000


def iter_pcm_chunks(data: bytes, chunk_size: int = DEFAULT_READ_SIZE) -> Iterator[bytes]:
    """Yield an in-memory PCM byte string in chunk_size slices."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    for start in range(0, len(data), chunk_size):
        yield bytes(data[start:start + chunk_size])


class FFmpegPCMSource:
    """
    Decode any media file through an ffmpeg subprocess writing raw
    s16le / mono / 16 kHz to stdout.
    """

    def __init__(self, path: str, read_size: int = DEFAULT_READ_SIZE, ffmpeg_binary: str = "ffmpeg"):
        self.path = path
        self.read_size = read_size
        self.ffmpeg_binary = ffmpeg_binary

    def command(self) -> list:
        return [
            self.ffmpeg_binary,
            "-nostdin",
            "-hide_banner",
            "-loglevel", "error",
            "-i", self.path,
            "-vn",
            "-ac", "1",
            "-ar", str(SAMPLE_RATE),
            "-acodec", "pcm_s16le",
            "-f", "s16le",
            "pipe:1",
        ]

    def __iter__(self) -> Iterator[bytes]:
        if not os.path.isfile(self.path):
            raise SourceError(f"Audio file not found at {self.path}")
        if shutil.which(self.ffmpeg_binary) is None:
            raise SourceError(f"ffmpeg not found ({self.ffmpeg_binary}); install ffmpeg or set FFMPEG_BINARY")

        logger.debug("Starting decoder: %s", " ".join(self.command()))
        # stderr goes to a temp file so a chatty decoder cannot block on a full pipe
        with open(os.devnull, "rb") as devnull, _StderrCapture() as err:
            proc = subprocess.Popen(
                self.command(),
                stdin=devnull,
                stdout=subprocess.PIPE,
                stderr=err.handle,
            )
            try:
                while True:
                    chunk = proc.stdout.read(self.read_size)
                    if not chunk:
                        break
                    yield chunk
                returncode = proc.wait()
            finally:
                if proc.poll() is None:
                    proc.kill()
                    proc.wait()
                proc.stdout.close()
            if returncode != 0:
                raise SourceError(
                    f"ffmpeg failed on {self.path} (exit {returncode}): {err.tail()}"
                )


class _StderrCapture:
    """Temporary file that collects decoder stderr."""

    def __enter__(self) -> "_StderrCapture":
        self.handle = tempfile.TemporaryFile()
        return self

    def tail(self) -> str:
        self.handle.seek(0, os.SEEK_END)
        size = self.handle.tell()
        self.handle.seek(max(0, size - STDERR_TAIL_BYTES))
        return self.handle.read().decode("utf-8", errors="ignore").strip()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.handle.close()


def _load_audio(path: str, sr: int = SAMPLE_RATE):
    """Load mono audio at sr with librosa, warnings suppressed."""
    import librosa

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", UserWarning)
        warnings.simplefilter("ignore", FutureWarning)
        return librosa.load(path, sr=sr, mono=True)


def float_to_pcm16(y: np.ndarray) -> bytes:
    """Float samples in [-1, 1] to 16-bit little-endian PCM bytes."""
    clipped = np.clip(y, -1.0, 1.0)
    return (clipped * 32767.0).astype("<i2").tobytes()


class LibrosaPCMSource:
    """
    Decode with librosa (resampled to 16 kHz mono), then hand the PCM out in
    read_size slices. Decodes the whole file up front.
    """

    def __init__(self, path: str, read_size: int = DEFAULT_READ_SIZE):
        self.path = path
        self.read_size = read_size

    def __iter__(self) -> Iterator[bytes]:
        if not os.path.isfile(self.path):
            raise SourceError(f"Audio file not found at {self.path}")
        try:
            y, _sr = _load_audio(self.path)
        except Exception as e:
            raise SourceError(f"Could not decode {self.path}: {e}") from e
        yield from iter_pcm_chunks(float_to_pcm16(y), self.read_size)


def open_source(path: str, backend: str = "ffmpeg", read_size: int = DEFAULT_READ_SIZE, ffmpeg_binary: str = "ffmpeg") -> Iterable[bytes]:
    """Build a PCM source for a media file by backend name (ffmpeg | librosa)."""
    if backend == "ffmpeg":
        return FFmpegPCMSource(path, read_size=read_size, ffmpeg_binary=ffmpeg_binary)
    if backend == "librosa":
        return LibrosaPCMSource(path, read_size=read_size)
    raise ValueError(f"Unknown source backend: {backend!r} (expected 'ffmpeg' or 'librosa')")


_END = object()


class _Failure:
    def __init__(self, error: BaseException):
        self.error = error


def prefetch(source: Iterable[bytes], max_pending: int = 16) -> Iterator[bytes]:
    """
    Decode ahead on a reader thread through a bounded queue.

    The reader blocks when max_pending chunks are waiting (backpressure).
    Chunks come out in the same order; a producer exception is re-raised
    after the chunks that preceded it. If the consumer stops early, the
    reader is told to stop and the source is left to its own cleanup.
    """
    if max_pending <= 0:
        yield from source
        return

    channel: "queue.Queue" = queue.Queue(maxsize=max_pending)
    stop = threading.Event()

    def _put(item) -> bool:
        while not stop.is_set():
            try:
                channel.put(item, timeout=0.1)
                return True
            except queue.Full:
                continue
        return False

    def _reader() -> None:
        try:
            for chunk in source:
                if not _put(chunk):
                    return
        except BaseException as e:  # handed to the consumer thread
            _put(_Failure(e))
            return
        _put(_END)

    reader = threading.Thread(target=_reader, name="pcm-prefetch", daemon=True)
    reader.start()
    try:
        while True:
            item = channel.get()
            if item is _END:
                break
            if isinstance(item, _Failure):
                raise item.error
            yield item
    finally:
        stop.set()
        reader.join(timeout=5.0)
