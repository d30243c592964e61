"""
Transcript quality metrics: Word Error Rate (WER) and word accuracy.
Word-level Levenshtein distance (S+D+I) divided by reference length.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from core.errors import ScorerDomainError
from core.normalization import tokenize_words


@dataclass(frozen=True)
class ScoreResult:
    """Scoring of one hypothesis against one reference."""
    wer: float
    accuracy: float
    distance: int
    substitutions: int
    deletions: int
    insertions: int
    reference_words: int
    hypothesis_words: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "wer": round(self.wer, 4),
            "accuracy": self.accuracy,
            "distance": self.distance,
            "substitutions": self.substitutions,
            "deletions": self.deletions,
            "insertions": self.insertions,
            "reference_words": self.reference_words,
            "hypothesis_words": self.hypothesis_words,
        }


def word_edit_distance(ref_words: List[str], hyp_words: List[str]) -> Tuple[int, int, int, int]:
    """
    Levenshtein edit distance at word level.
    Returns (distance, substitutions, deletions, insertions).
    """
    R, H = len(ref_words), len(hyp_words)
    # dp[i][j] = minimum edits to turn ref_words[:i] into hyp_words[:j]
    dp = [[0] * (H + 1) for _ in range(R + 1)]
    for i in range(R + 1):
        dp[i][0] = i
    for j in range(H + 1):
        dp[0][j] = j
    for i in range(1, R + 1):
        for j in range(1, H + 1):
            if ref_words[i - 1] == hyp_words[j - 1]:
                dp[i][j] = dp[i - 1][j - 1]
            else:
                dp[i][j] = 1 + min(
                    dp[i - 1][j - 1],  # substitution
                    dp[i][j - 1],      # insertion
                    dp[i - 1][j],      # deletion
                )

    # Backtrack for S, D, I
    s, d, ins = 0, 0, 0
    i, j = R, H
    while i > 0 or j > 0:
        if i > 0 and j > 0 and ref_words[i - 1] == hyp_words[j - 1] and dp[i][j] == dp[i - 1][j - 1]:
            i -= 1
            j -= 1
        elif i > 0 and j > 0 and dp[i][j] == dp[i - 1][j - 1] + 1:
            s += 1
            i -= 1
            j -= 1
        elif i > 0 and dp[i][j] == dp[i - 1][j] + 1:
            d += 1
            i -= 1
        else:
            ins += 1
            j -= 1
    return dp[R][H], s, d, ins


def score_transcript(reference: str, hypothesis: str) -> ScoreResult:
    """
    Score hypothesis against reference.

    Both texts are lowercased and split on whitespace. Raises ScorerDomainError
    when the reference has no words.
    """
    ref_words = tokenize_words(reference)
    hyp_words = tokenize_words(hypothesis)
    if not ref_words:
        raise ScorerDomainError("Reference transcript contains no words; WER is undefined")
    distance, s, d, ins = word_edit_distance(ref_words, hyp_words)
    rate = distance / len(ref_words)
    return ScoreResult(
        wer=rate,
        accuracy=round((1 - rate) * 100, 2),
        distance=distance,
        substitutions=s,
        deletions=d,
        insertions=ins,
        reference_words=len(ref_words),
        hypothesis_words=len(hyp_words),
    )


def word_error_rate(reference: str, hypothesis: str) -> float:
    """
    Word Error Rate: (S + D + I) / N where N = number of reference words.
    Returns value in [0, +inf); 0 = perfect match.
    """
    return score_transcript(reference, hypothesis).wer


def accuracy_percent(reference: str, hypothesis: str) -> float:
    """
    Word accuracy (1 - WER) * 100, rounded to 2 decimals.
    Negative when the hypothesis has more errors than the reference has words.
    """
    return score_transcript(reference, hypothesis).accuracy
