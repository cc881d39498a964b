"""Audiodup — Fingerprint assembler.

1. Validate the PCM buffer and compute a magnitude spectrogram.
2. Run the peak, chroma, MFCC and tempo extractors (optionally in parallel).
3. Detect the key from the chroma matrix and hash the peak sequence.
4. Slice the result into fixed-duration chunks for partial matching.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Sequence
from concurrent.futures import Executor
from typing import Literal

import numpy as np

from audiodup.config import CHUNK_DURATION, HOP_LENGTH
from audiodup.errors import InvalidInput
from audiodup.features import (
    detect_key,
    detect_tempo,
    extract_chroma,
    extract_mfcc,
    extract_peaks,
)
from audiodup.hashing import hash_peaks
from audiodup.models import AudioFingerprint, FingerprintChunk
from audiodup.spectrogram import magnitude_spectrogram, validate_samples

logger = logging.getLogger(__name__)

ChunkAlignment = Literal["proportional", "time"]


# ── Public API ───────────────────────────────────────────────────────────────

def generate_fingerprint(
    samples: Sequence[float] | np.ndarray,
    sample_rate: int,
    executor: Executor | None = None,
) -> AudioFingerprint:
    """Return the :class:`AudioFingerprint` of decoded mono *samples*.

    When *executor* is given the four spectrogram extractors are submitted
    to it and joined before assembly; otherwise they run in sequence.
    Raises :class:`InvalidInput` for empty, non-finite or non-mono input
    and for a non-positive sample rate.
    """
    audio = validate_samples(samples, sample_rate)
    spec = magnitude_spectrogram(audio)
    spec.setflags(write=False)

    if executor is None:
        peaks = extract_peaks(spec)
        chroma = extract_chroma(spec, sample_rate)
        mfcc = extract_mfcc(spec, sample_rate)
        tempo = detect_tempo(spec, sample_rate)
    else:
        peaks_f = executor.submit(extract_peaks, spec)
        chroma_f = executor.submit(extract_chroma, spec, sample_rate)
        mfcc_f = executor.submit(extract_mfcc, spec, sample_rate)
        tempo_f = executor.submit(detect_tempo, spec, sample_rate)
        peaks, chroma, mfcc, tempo = (
            peaks_f.result(),
            chroma_f.result(),
            mfcc_f.result(),
            tempo_f.result(),
        )

    key = detect_key(chroma)
    duration = audio.size / sample_rate

    logger.debug(
        "fingerprinted %.2fs @ %d Hz: %d frames, tempo=%s, key=%s",
        duration, sample_rate, len(peaks), tempo, key,
    )

    return AudioFingerprint(
        spectrogram_hash=hash_peaks(peaks),
        frequency_peaks=tuple(peaks),
        chroma_features=tuple(tuple(row) for row in chroma.tolist()),
        mfcc_data=tuple(tuple(row) for row in mfcc.tolist()),
        tempo_signature=tempo,
        key_signature=key,
        duration=duration,
        sample_rate=int(sample_rate),
    )


def generate_fingerprint_chunks(
    fingerprint: AudioFingerprint,
    chunk_duration: float = CHUNK_DURATION,
    alignment: ChunkAlignment = "proportional",
) -> list[FingerprintChunk]:
    """Split *fingerprint* into ``ceil(duration / chunk_duration)`` chunks.

    ``"proportional"`` gives every chunk ``ceil(frames / chunks)`` frames,
    leaving the residue to the last one. ``"time"`` cuts at
    ``chunk_index * chunk_duration`` seconds, so chunk ``n`` of two
    fingerprints covers the same wall-clock window.
    """
    if chunk_duration <= 0:
        raise InvalidInput(f"chunk duration must be positive, got {chunk_duration}")
    if alignment not in ("proportional", "time"):
        raise InvalidInput(f"unknown chunk alignment {alignment!r}")

    total_chunks = max(1, math.ceil(fingerprint.duration / chunk_duration))
    frame_rate = fingerprint.sample_rate / HOP_LENGTH

    def bounds(length: int, index: int) -> tuple[int, int]:
        if alignment == "time":
            start = math.floor(index * chunk_duration * frame_rate)
            end = math.floor((index + 1) * chunk_duration * frame_rate)
            if index == total_chunks - 1:
                end = length
            return min(start, length), min(end, length)
        per_chunk = math.ceil(length / total_chunks)
        return min(index * per_chunk, length), min((index + 1) * per_chunk, length)

    chunks: list[FingerprintChunk] = []
    for i in range(total_chunks):
        p0, p1 = bounds(len(fingerprint.frequency_peaks), i)
        c0, c1 = bounds(len(fingerprint.chroma_features), i)
        m0, m1 = bounds(len(fingerprint.mfcc_data), i)

        peaks = fingerprint.frequency_peaks[p0:p1]
        chroma = fingerprint.chroma_features[c0:c1]
        mfcc = fingerprint.mfcc_data[m0:m1]

        if i == total_chunks - 1:
            duration = fingerprint.duration - i * chunk_duration
        else:
            duration = chunk_duration

        chunks.append(
            FingerprintChunk(
                chunk_index=i,
                chunk_duration=duration,
                spectrogram_hash=hash_peaks(peaks),
                frequency_peaks=json.dumps([list(p) for p in peaks]),
                chroma_features=json.dumps([list(r) for r in chroma]) if chroma else None,
                mfcc_data=json.dumps([list(r) for r in mfcc]) if mfcc else None,
                tempo_signature=fingerprint.tempo_signature,
                key_signature=fingerprint.key_signature,
            )
        )

    logger.debug("split %.2fs fingerprint into %d %s chunks", fingerprint.duration, total_chunks, alignment)
    return chunks
