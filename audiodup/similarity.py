"""Audiodup — Similarity comparator.

Whole fingerprints are scored as a weighted sum of per-feature similarities;
chunk sequences are scored by the fraction of aligned chunks that match.
Comparison never raises for well-formed records.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

import numpy as np

from audiodup.config import (
    KEY_MISMATCH_SCORE,
    MAX_ALIGN_LAG,
    NEUTRAL_SCORE,
    NO_PEAK,
    PEAK_TOLERANCE,
    SIMILARITY_THRESHOLD,
    WEIGHT_CHROMA,
    WEIGHT_KEY,
    WEIGHT_MFCC,
    WEIGHT_PEAKS,
    WEIGHT_TEMPO,
)
from audiodup.models import AudioFingerprint, FingerprintChunk, Peak, SimilarityResult

logger = logging.getLogger(__name__)


# ── Public API ───────────────────────────────────────────────────────────────

def compare_fingerprints(
    a: AudioFingerprint,
    b: AudioFingerprint,
    threshold: float = SIMILARITY_THRESHOLD,
) -> SimilarityResult:
    """Score *a* against *b* as a weighted sum of per-feature similarities.

    Equal spectrogram hashes short-circuit to 1.0, but only when the peak
    sequence holds at least one real peak: an all-sentinel sequence says
    nothing about the content, so those pairs are scored on their features.
    Fingerprints taken at different sample rates are compared on the grid
    of the lower rate.
    """
    same_peaks = (
        a.sample_rate == b.sample_rate
        and a.spectrogram_hash == b.spectrogram_hash
        and has_peaks(a.frequency_peaks)
    )
    if a == b or same_peaks:
        similarity = 1.0
    else:
        rate = min(a.sample_rate, b.sample_rate)
        peaks_a, chroma_a, mfcc_a = align_to_rate(a, rate)
        peaks_b, chroma_b, mfcc_b = align_to_rate(b, rate)
        scores = {
            "peaks": peak_similarity(peaks_a, peaks_b),
            "chroma": feature_similarity(chroma_a, chroma_b),
            "mfcc": feature_similarity(mfcc_a, mfcc_b),
            "tempo": tempo_similarity(a.tempo_signature, b.tempo_signature),
            "key": key_similarity(a.key_signature, b.key_signature),
        }
        similarity = (
            WEIGHT_PEAKS * scores["peaks"]
            + WEIGHT_CHROMA * scores["chroma"]
            + WEIGHT_MFCC * scores["mfcc"]
            + WEIGHT_TEMPO * scores["tempo"]
            + WEIGHT_KEY * scores["key"]
        )
        similarity = min(1.0, max(0.0, similarity))
        logger.debug("feature scores %s → %.4f", scores, similarity)

    is_match = similarity >= threshold
    return SimilarityResult(
        similarity=similarity,
        matched_chunks=1 if is_match else 0,
        total_chunks=1,
        is_match=is_match,
    )


def compare_fingerprint_chunks(
    chunks_a: Sequence[FingerprintChunk],
    chunks_b: Sequence[FingerprintChunk],
    threshold: float = SIMILARITY_THRESHOLD,
    excerpt: bool = False,
) -> SimilarityResult:
    """Count chunk-by-chunk matches over the common prefix.

    The score divides by the longer sequence, so a short excerpt of a long
    track scores low. ``excerpt=True`` divides by the shorter one instead.
    """
    longest = max(len(chunks_a), len(chunks_b))
    shortest = min(len(chunks_a), len(chunks_b))
    if shortest == 0:
        return SimilarityResult(similarity=0.0, matched_chunks=0, total_chunks=longest, is_match=False)

    matched = 0
    for ca, cb in zip(chunks_a, chunks_b):
        if ca.spectrogram_hash == cb.spectrogram_hash:
            matched += 1
            continue
        if peak_similarity(ca.peaks(), cb.peaks()) >= threshold:
            matched += 1

    total = shortest if excerpt else longest
    similarity = matched / total
    logger.debug("%d/%d chunks matched", matched, total)
    return SimilarityResult(
        similarity=similarity,
        matched_chunks=matched,
        total_chunks=total,
        is_match=similarity >= threshold,
    )


# ── Frame grids ──────────────────────────────────────────────────────────────

def has_peaks(peaks: Sequence[Sequence[int]]) -> bool:
    return any(p[1] != NO_PEAK for p in peaks)


def align_to_rate(
    fingerprint: AudioFingerprint,
    sample_rate: int,
) -> tuple[Sequence[Peak], Sequence[Sequence[float]], Sequence[Sequence[float]]]:
    """Peaks, chroma and MFCC of *fingerprint* on the frame grid of *sample_rate*.

    Frames and bins are both sample-rate dependent: a frame spans
    ``HOP_LENGTH / rate`` seconds and a bin ``rate / FFT_SIZE`` Hz. Each
    target frame takes the source frame that starts it, and peak bins are
    rescaled to the target bin width.
    """
    if fingerprint.sample_rate == sample_rate:
        return fingerprint.frequency_peaks, fingerprint.chroma_features, fingerprint.mfcc_data

    count = fingerprint.frame_count
    if count == 0:
        return (), (), ()
    ratio = fingerprint.sample_rate / sample_rate
    frames = max(1, round(count / ratio))
    source = np.minimum((np.arange(frames) * ratio).astype(np.int64), count - 1).tolist()

    peaks = []
    for frame, j in enumerate(source):
        b = fingerprint.frequency_peaks[j][1]
        peaks.append((frame, b if b == NO_PEAK else int(round(b * ratio))))
    chroma = [fingerprint.chroma_features[j] for j in source]
    mfcc = [fingerprint.mfcc_data[j] for j in source]

    logger.debug("regridded %d frames @ %d Hz to %d frames @ %d Hz",
                 count, fingerprint.sample_rate, frames, sample_rate)
    return peaks, chroma, mfcc


# ── Per-feature scores ───────────────────────────────────────────────────────

def peak_similarity(
    peaks_a: Sequence[Sequence[int]],
    peaks_b: Sequence[Sequence[int]],
    tolerance: int = PEAK_TOLERANCE,
    max_lag: int = MAX_ALIGN_LAG,
) -> float:
    """Fraction of frames whose peak bins agree within *tolerance*.

    Peaks are compared by position, so chunk slices can be compared
    directly. The sequences are tried at every relative lag up to
    *max_lag* frames and the best alignment wins. Frames without a peak on
    both sides count as agreeing.
    """
    if len(peaks_a) == 0 or len(peaks_b) == 0:
        return 0.0

    bins_a = np.array([p[1] for p in peaks_a], dtype=np.int64)
    bins_b = np.array([p[1] for p in peaks_b], dtype=np.int64)
    longest = max(bins_a.size, bins_b.size)

    best = 0
    for lag in range(-max_lag, max_lag + 1):
        if lag >= 0:
            x, y = bins_a[lag:], bins_b
        else:
            x, y = bins_a, bins_b[-lag:]
        n = min(x.size, y.size)
        if n == 0:
            continue
        x, y = x[:n], y[:n]
        silent_x, silent_y = x == NO_PEAK, y == NO_PEAK
        agree = np.where(
            silent_x | silent_y,
            silent_x & silent_y,
            np.abs(x - y) <= tolerance,
        )
        best = max(best, int(agree.sum()))
    return best / longest


def feature_similarity(
    frames_a: Sequence[Sequence[float]],
    frames_b: Sequence[Sequence[float]],
) -> float:
    """Cosine similarity over the frames both sequences share, in ``[0, 1]``."""
    n = min(len(frames_a), len(frames_b))
    if n == 0:
        return 0.0

    x = np.asarray(frames_a[:n], dtype=np.float64).ravel()
    y = np.asarray(frames_b[:n], dtype=np.float64).ravel()
    norm_x = math.sqrt((x * x).sum())
    norm_y = math.sqrt((y * y).sum())
    if norm_x == 0 and norm_y == 0:
        return 1.0
    if norm_x == 0 or norm_y == 0:
        return 0.0
    cosine = float((x * y).sum() / (norm_x * norm_y))
    return min(1.0, max(0.0, cosine))


def tempo_similarity(bpm_a: float | None, bpm_b: float | None) -> float:
    if bpm_a is None or bpm_b is None:
        return NEUTRAL_SCORE
    top = max(bpm_a, bpm_b)
    if top <= 0:
        return NEUTRAL_SCORE
    return 1.0 - abs(bpm_a - bpm_b) / top


def key_similarity(key_a: str | None, key_b: str | None) -> float:
    if key_a is None or key_b is None:
        return NEUTRAL_SCORE
    return 1.0 if key_a == key_b else KEY_MISMATCH_SCORE
