#!/usr/bin/env python3
"""
Benchmark WER / word accuracy over a dataset.

Usage:
  # Score precomputed transcripts ("hypothesis" or "transcript" in each item)
  python scripts/benchmark_wer.py dataset.json

  # Run the streaming pipeline for each item's audio (loads Whisper once)
  AUDIO_BASE_DIR=/path/to/audio python scripts/benchmark_wer.py dataset.json --run-asr

Expects JSON:
  - List of {"id": "...", "reference": "...", "audio": "path", "hypothesis"?: "..."}
"""
import argparse
import json
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import config
from evaluation.benchmark_runner import run_benchmark, write_report
from streaming.orchestrator import TranscriptionOrchestrator
from streaming.pcm_source import open_source
from streaming.streaming_asr import WhisperEngine


def main():
    parser = argparse.ArgumentParser(description="Benchmark WER for the streaming transcriber")
    parser.add_argument("dataset", help="Path to dataset JSON")
    parser.add_argument("--run-asr", action="store_true", help="Transcribe each item's audio (requires Whisper)")
    parser.add_argument("--audio-base-dir", default=None, help="Base directory for relative audio paths")
    parser.add_argument("--limit", type=int, default=None, help="Max number of items to process")
    parser.add_argument("--output", "-o", default=None, help="Write report to JSON file")
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, config.LOG_LEVEL, logging.INFO))

    engine = None
    transcribe_fn = None
    if args.run_asr:
        engine = WhisperEngine.load(
            config.WHISPER_MODEL,
            device=config.resolve_device(),
            language=config.ASR_LANGUAGE,
        )
        orchestrator = TranscriptionOrchestrator(engine, unit_size=config.UNIT_SIZE_BYTES)

        def transcribe_fn(audio_path: str) -> str:
            source = open_source(
                audio_path,
                backend=config.SOURCE_BACKEND,
                read_size=config.SOURCE_READ_SIZE,
                ffmpeg_binary=config.FFMPEG_BINARY,
            )
            return orchestrator.run(source, source_name=audio_path).final_transcript

    try:
        report = run_benchmark(
            args.dataset,
            audio_base_dir=args.audio_base_dir,
            transcribe_fn=transcribe_fn,
            limit=args.limit,
        )
    finally:
        if engine is not None:
            engine.close()

    if report.n_samples == 0:
        print("No items with a reference text. Add 'reference' to the JSON items.")
        return 1

    if args.output:
        write_report(report, args.output)
        print(f"Wrote {args.output}")
    else:
        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
    print(f"\nProcessed {report.n_samples} items.")
    print(f"Average WER: {report.wer_mean:.4f}")
    print(f"Average Word Accuracy: {report.accuracy_mean:.2f}%")
    return 0


if __name__ == "__main__":
    sys.exit(main())
