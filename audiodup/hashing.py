"""Audiodup — Platform-stable hashing of numeric sequences."""

from __future__ import annotations

import hashlib
from collections.abc import Iterable

from audiodup.config import HASH_DECIMALS, HASH_LENGTH


def hash_array(values: Iterable[float], decimals: int = HASH_DECIMALS) -> str:
    """Return a fixed-length hex digest of *values*.

    Every value is rounded to *decimals* places and printed with the same
    fixed precision before hashing, so numerically equal inputs hash the
    same regardless of float representation or int/float type.
    """
    parts = []
    for v in values:
        text = f"{round(float(v), decimals):.{decimals}f}"
        if text.startswith("-") and float(text) == 0.0:
            text = text[1:]
        parts.append(text)
    raw = "|".join(parts).encode()
    return hashlib.sha1(raw).hexdigest()[:HASH_LENGTH]


def hash_peaks(peaks: Iterable[Iterable[int]]) -> str:
    """Hash a ``[(frame, bin), …]`` sequence flattened in frame order."""
    return hash_array(v for pair in peaks for v in pair)
