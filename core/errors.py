"""
Pipeline error taxonomy.

Run-level failures (SourceError, EngineFinalError, ScorerDomainError) abort a
transcription run and carry whatever was computed before the failure in
`partial_result`. EngineUnitError is only ever recorded per recognition unit.
"""
from typing import Any, Optional


class TranscriptionError(Exception):
    """Base class for transcription pipeline failures."""

    def __init__(self, message: str, partial_result: Optional[Any] = None):
        super().__init__(message)
        self.partial_result = partial_result


class SourceError(TranscriptionError):
    """The PCM producer failed (missing file, decoder error, bad media)."""


class EngineUnitError(TranscriptionError):
    """The recognizer failed on a single recognition unit."""

    def __init__(self, message: str, unit_index: int, partial_result: Optional[Any] = None):
        super().__init__(message, partial_result=partial_result)
        self.unit_index = unit_index


class EngineFinalError(TranscriptionError):
    """The recognizer failed on the full-buffer final pass."""


class ScorerDomainError(TranscriptionError, ValueError):
    """Reference text has no words, so WER is undefined."""
