"""
Streaming transcription CLI.

Decodes an audio file to 16 kHz mono PCM, runs incremental Whisper
recognition per fixed-size unit, then a final pass over the whole audio.
With a reference text, the final transcript is scored (WER / word accuracy).

Usage:
  python main.py harvard.wav
  python main.py nicole.mp3 --reference "With a soft and whispery American accent ..."
  python main.py speech.wav --reference-file speech.txt --unit-size 16000 --json
"""
import argparse
import json
import logging
import os
import sys
from typing import List, Optional

import config
from core.errors import TranscriptionError
from streaming.orchestrator import TranscriptionOrchestrator
from streaming.pcm_source import open_source, prefetch
from streaming.report import FileReportSink, LoggingReportSink, ReportSink
from streaming.streaming_asr import WhisperEngine

logger = logging.getLogger("stream_transcribe")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Streaming Whisper transcription with WER scoring")
    parser.add_argument("audio", help="Path to audio/video file (anything ffmpeg can decode)")
    ref = parser.add_mutually_exclusive_group()
    ref.add_argument("--reference", default=None, help="Reference text to score the final transcript against")
    ref.add_argument("--reference-file", default=None, help="File containing the reference text")
    parser.add_argument("--unit-size", type=int, default=config.UNIT_SIZE_BYTES, help="Recognition unit size in bytes")
    parser.add_argument("--model", default=config.WHISPER_MODEL, help="Whisper model name or checkpoint path")
    parser.add_argument("--device", default=config.DEVICE, help="auto | cpu | cuda")
    parser.add_argument("--language", default=config.ASR_LANGUAGE, help="Language code passed to Whisper")
    parser.add_argument("--backend", default=config.SOURCE_BACKEND, choices=("ffmpeg", "librosa"), help="PCM decoder")
    parser.add_argument("--report-dir", default=config.REPORT_DIR, help="Directory for transcription/performance reports")
    parser.add_argument("--no-report", action="store_true", help="Do not write report files")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    return parser


def read_reference(args: argparse.Namespace) -> Optional[str]:
    if args.reference_file:
        with open(args.reference_file, "r", encoding="utf-8") as f:
            return f.read().strip()
    return args.reference


def build_sink(args: argparse.Namespace) -> ReportSink:
    if args.no_report or not config.WRITE_REPORTS:
        return LoggingReportSink()
    return FileReportSink(args.report_dir)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not os.path.isfile(args.audio):
        logger.error("Audio file not found at %s", args.audio)
        return 2
    reference = read_reference(args)

    source = open_source(
        args.audio,
        backend=args.backend,
        read_size=config.SOURCE_READ_SIZE,
        ffmpeg_binary=config.FFMPEG_BINARY,
    )
    device = config.resolve_device(args.device)
    try:
        engine = WhisperEngine.load(args.model, device=device, language=args.language)
    except Exception as e:
        logger.error("Could not load Whisper model %r on %s: %s", args.model, device, e)
        return 1

    with engine, build_sink(args) as sink:
        orchestrator = TranscriptionOrchestrator(engine, unit_size=args.unit_size, sink=sink)
        try:
            result = orchestrator.run(
                prefetch(source, config.PREFETCH_CHUNKS),
                reference=reference,
                source_name=args.audio,
                input_size_bytes=os.path.getsize(args.audio),
            )
        except TranscriptionError as e:
            partial = e.partial_result
            if partial is not None and partial.incremental:
                logger.error("Transcription failed after %d chunks: %s", len(partial.incremental), e)
            else:
                logger.error("Transcription failed: %s", e)
            return 1

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    else:
        print("\nComplete transcription:")
        print(result.final_transcript)
        if result.score is not None:
            print(f"Word Accuracy: {result.score.accuracy:.2f}% (WER {result.score.wer:.4f})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
