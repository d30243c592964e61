from typing import List, Optional


def normalize_transcript(text: Optional[str]) -> str:
    """
    Normalize a transcript for word matching: lowercase, single spaces.
    Punctuation is kept; "fox." and "fox" are different words.
    """
    if not text:
        return ""
    return " ".join(text.lower().split())


def tokenize_words(text: Optional[str]) -> List[str]:
    """Split normalized text into words on any whitespace."""
    return normalize_transcript(text).split()
