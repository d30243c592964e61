"""
CLI tests with the Whisper loader and decoder mocked out.
"""
import json
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from io import StringIO
from unittest.mock import MagicMock, patch

import main
from streaming.pcm_source import iter_pcm_chunks
from streaming.streaming_asr import WhisperEngine


def _mock_engine(texts):
    model = MagicMock()
    model.transcribe.side_effect = [{"text": t} for t in texts]
    return WhisperEngine(model, language="en", device="cpu", model_name="mock")


class TestMain(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.audio = os.path.join(self.tmp.name, "speech.wav")
        with open(self.audio, "wb") as f:
            f.write(b"\x00" * 100)

    def tearDown(self):
        self.tmp.cleanup()

    def test_missing_audio_returns_2(self):
        self.assertEqual(main.main([os.path.join(self.tmp.name, "missing.wav"), "--no-report"]), 2)

    @patch("main.open_source")
    @patch("main.WhisperEngine.load")
    def test_json_output_with_reference(self, load, open_source):
        engine = _mock_engine(["the quick", "brown fox", "the quick brown fox"])
        load.return_value = engine
        open_source.return_value = iter_pcm_chunks(b"\x00" * 8, 3)
        out = StringIO()
        with redirect_stdout(out):
            code = main.main([
                self.audio, "--unit-size", "4", "--no-report", "--json",
                "--reference", "The quick brown fox",
            ])
        self.assertEqual(code, 0)
        data = json.loads(out.getvalue())
        self.assertEqual(data["final_transcript"], "the quick brown fox")
        self.assertEqual([u["text"] for u in data["incremental"]], ["the quick", "brown fox"])
        self.assertEqual(data["score"]["accuracy"], 100.0)
        self.assertTrue(engine.closed)

    @patch("main.open_source")
    @patch("main.WhisperEngine.load")
    def test_reports_written(self, load, open_source):
        load.return_value = _mock_engine(["x", "x y"])
        open_source.return_value = iter_pcm_chunks(b"\x00" * 4, 4)
        report_dir = os.path.join(self.tmp.name, "reports")
        with redirect_stdout(StringIO()):
            code = main.main([self.audio, "--unit-size", "4", "--report-dir", report_dir])
        self.assertEqual(code, 0)
        names = sorted(os.listdir(report_dir))
        self.assertEqual(len(names), 2)
        self.assertTrue(names[0].startswith("performance_"))
        self.assertTrue(names[1].startswith("transcription_"))

    @patch("main.open_source")
    @patch("main.WhisperEngine.load")
    def test_final_failure_returns_1(self, load, open_source):
        model = MagicMock()
        model.transcribe.side_effect = [{"text": "a"}, RuntimeError("out of memory")]
        load.return_value = WhisperEngine(model, model_name="mock")
        open_source.return_value = iter_pcm_chunks(b"\x00" * 4, 4)
        with redirect_stdout(StringIO()):
            code = main.main([self.audio, "--unit-size", "4", "--no-report"])
        self.assertEqual(code, 1)

    @patch("main.open_source")
    @patch("main.WhisperEngine.load")
    def test_model_load_failure_returns_1(self, load, open_source):
        load.side_effect = RuntimeError("checkpoint not found")
        open_source.return_value = iter_pcm_chunks(b"\x00" * 4, 4)
        report_dir = os.path.join(self.tmp.name, "reports")
        with redirect_stdout(StringIO()):
            code = main.main([self.audio, "--unit-size", "4", "--report-dir", report_dir])
        self.assertEqual(code, 1)
        self.assertFalse(os.path.exists(report_dir))

    def test_reference_file(self):
        ref_path = os.path.join(self.tmp.name, "ref.txt")
        with open(ref_path, "w", encoding="utf-8") as f:
            f.write("hello world\n")
        args = main.build_parser().parse_args([self.audio, "--reference-file", ref_path])
        self.assertEqual(main.read_reference(args), "hello world")


if __name__ == "__main__":
    unittest.main()
