"""
Overlap merging for chunk transcripts.

Adjacent chunks share a couple of seconds of audio, so the end of one
transcript usually repeats at the start of the next. Matching is on
normalized words: "Fox." and "fox" are the same word.
"""

import re
from typing import List, Sequence

from .types import OVERLAP, MERGE_WINDOW


def normalize_word(word: str) -> str:
    """
    Lowercase and strip punctuation for comparison.

    Examples:
        "Hello," -> "hello"
        "world." -> "world"
    """
    return re.sub(r"[^\w]", "", word.lower())


def find_overlap(prev_words: Sequence[str], next_words: Sequence[str], window: int = MERGE_WINDOW) -> int:
    """
    Length of the longest run of trailing `prev_words` equal to leading `next_words`.

    Candidates are tried from min(window, len(prev), len(next)) down to 1;
    the first (longest) match wins. Returns 0 if nothing matches.
    """
    max_k = min(window, len(prev_words), len(next_words))
    if max_k <= 0:
        return 0

    tail = [normalize_word(w) for w in prev_words[-max_k:]]
    head = [normalize_word(w) for w in next_words[:max_k]]

    for k in range(max_k, 0, -1):
        if tail[-k:] == head[:k]:
            return k
    return 0


def merge_transcripts(
    texts: Sequence[str],
    overlap_seconds: float = OVERLAP,
    window: int = MERGE_WINDOW,
) -> str:
    """
    Join ordered chunk transcripts, keeping one copy of duplicated boundary words.

    Args:
        texts: Transcripts of consecutive chunks, in time order
        overlap_seconds: Audio shared by adjacent chunks; 0 disables dedup
        window: Max number of words searched on each side of a boundary

    Returns:
        Single transcript with words separated by single spaces
    """
    merged: List[str] = []

    for text in texts:
        words = (text or "").split()
        if not words:
            continue

        if merged and overlap_seconds > 0:
            skip = find_overlap(merged, words, window)
            words = words[skip:]

        merged.extend(words)

    return " ".join(merged)
