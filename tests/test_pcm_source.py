"""
PCM source tests: in-memory chunking, bounded prefetch, ffmpeg and librosa
decoders with the subprocess / loader mocked out.
"""
import io
import os
import tempfile
import unittest
from unittest.mock import MagicMock, patch

import numpy as np

from core.errors import SourceError
from streaming.pcm_source import (
    FFmpegPCMSource,
    LibrosaPCMSource,
    float_to_pcm16,
    iter_pcm_chunks,
    open_source,
    prefetch,
)


def _fake_proc(stdout_bytes: bytes, returncode: int = 0):
    proc = MagicMock()
    proc.stdout = io.BytesIO(stdout_bytes)
    proc.wait.return_value = returncode
    proc.poll.return_value = returncode
    return proc


class _AudioFileCase(unittest.TestCase):
    def setUp(self):
        fd, self.audio_path = tempfile.mkstemp(suffix=".mp3")
        os.close(fd)

    def tearDown(self):
        os.unlink(self.audio_path)


class TestIterPcmChunks(unittest.TestCase):
    def test_slices_in_order(self):
        self.assertEqual(list(iter_pcm_chunks(b"abcdefg", 3)), [b"abc", b"def", b"g"])

    def test_empty(self):
        self.assertEqual(list(iter_pcm_chunks(b"", 3)), [])

    def test_bad_chunk_size(self):
        with self.assertRaises(ValueError):
            list(iter_pcm_chunks(b"abc", 0))


class TestPrefetch(unittest.TestCase):
    def test_preserves_order(self):
        chunks = [bytes([i]) * 10 for i in range(200)]
        self.assertEqual(list(prefetch(iter(chunks), max_pending=4)), chunks)

    def test_disabled_passthrough(self):
        self.assertEqual(list(prefetch([b"a", b"b"], max_pending=0)), [b"a", b"b"])

    def test_error_after_preceding_chunks(self):
        def source():
            yield b"one"
            yield b"two"
            raise SourceError("decoder failed")

        received = []
        with self.assertRaises(SourceError):
            for chunk in prefetch(source(), max_pending=1):
                received.append(chunk)
        self.assertEqual(received, [b"one", b"two"])

    def test_consumer_stops_early(self):
        gen = prefetch(iter([b"x"] * 100), max_pending=2)
        self.assertEqual(next(gen), b"x")
        gen.close()


class TestFFmpegSource(_AudioFileCase):
    def test_missing_file(self):
        with self.assertRaises(SourceError):
            list(FFmpegPCMSource("/nonexistent/audio.mp3"))

    @patch("streaming.pcm_source.shutil.which", return_value=None)
    def test_missing_ffmpeg(self, _which):
        with self.assertRaises(SourceError) as ctx:
            list(FFmpegPCMSource(self.audio_path))
        self.assertIn("ffmpeg not found", str(ctx.exception))

    @patch("streaming.pcm_source.shutil.which", return_value="/usr/bin/ffmpeg")
    @patch("streaming.pcm_source.subprocess.Popen")
    def test_reads_stdout_in_chunks(self, popen, _which):
        pcm = bytes(range(256)) * 40
        popen.return_value = _fake_proc(pcm)
        chunks = list(FFmpegPCMSource(self.audio_path, read_size=1000))
        self.assertEqual(b"".join(chunks), pcm)
        self.assertTrue(all(len(c) <= 1000 for c in chunks))
        cmd = popen.call_args[0][0]
        self.assertIn("pcm_s16le", cmd)
        self.assertEqual(cmd[cmd.index("-ar") + 1], "16000")
        self.assertEqual(cmd[cmd.index("-ac") + 1], "1")

    @patch("streaming.pcm_source.shutil.which", return_value="/usr/bin/ffmpeg")
    @patch("streaming.pcm_source.subprocess.Popen")
    def test_nonzero_exit_raises_after_data(self, popen, _which):
        popen.return_value = _fake_proc(b"\x00" * 100, returncode=1)
        received = []
        with self.assertRaises(SourceError) as ctx:
            for chunk in FFmpegPCMSource(self.audio_path, read_size=50):
                received.append(chunk)
        self.assertEqual(len(received), 2)
        self.assertIn("exit 1", str(ctx.exception))


class TestLibrosaSource(_AudioFileCase):
    @patch("streaming.pcm_source._load_audio")
    def test_decodes_to_pcm16(self, load):
        load.return_value = (np.zeros(1600, dtype=np.float32), 16000)
        chunks = list(LibrosaPCMSource(self.audio_path, read_size=1000))
        self.assertEqual(sum(len(c) for c in chunks), 3200)

    @patch("streaming.pcm_source._load_audio", side_effect=RuntimeError("corrupt"))
    def test_decode_failure(self, _load):
        with self.assertRaises(SourceError) as ctx:
            list(LibrosaPCMSource(self.audio_path))
        self.assertIn("corrupt", str(ctx.exception))

    def test_float_to_pcm16_clips(self):
        pcm = float_to_pcm16(np.array([-2.0, 0.0, 2.0], dtype=np.float32))
        samples = np.frombuffer(pcm, dtype="<i2")
        self.assertEqual(list(samples), [-32767, 0, 32767])


class TestOpenSource(unittest.TestCase):
    def test_backends(self):
        self.assertIsInstance(open_source("a.wav", backend="ffmpeg"), FFmpegPCMSource)
        self.assertIsInstance(open_source("a.wav", backend="librosa"), LibrosaPCMSource)

    def test_unknown_backend(self):
        with self.assertRaises(ValueError):
            open_source("a.wav", backend="sox")


if __name__ == "__main__":
    unittest.main()
