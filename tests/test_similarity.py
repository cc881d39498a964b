import json

import numpy as np
import pytest

from audiodup.config import NO_PEAK, SIMILARITY_THRESHOLD
from audiodup.fingerprint import generate_fingerprint, generate_fingerprint_chunks
from audiodup.hashing import hash_peaks
from audiodup.models import AudioFingerprint, FingerprintChunk
from audiodup.similarity import (
    align_to_rate,
    compare_fingerprint_chunks,
    compare_fingerprints,
    feature_similarity,
    key_similarity,
    peak_similarity,
    tempo_similarity,
)

from .conftest import SR, make_sine


def _chunk(index, peaks):
    return FingerprintChunk(
        chunk_index=index,
        chunk_duration=5.0,
        spectrogram_hash=hash_peaks(peaks),
        frequency_peaks=json.dumps(peaks),
    )


@pytest.fixture(scope="module")
def e660_fp():
    return generate_fingerprint(make_sine(660.0, 10.0), SR)


# ── compare_fingerprints ─────────────────────────────────────────────────────

def test_self_similarity(a440_fp):
    result = compare_fingerprints(a440_fp, a440_fp)
    assert result.similarity == 1.0
    assert result.is_match
    assert (result.matched_chunks, result.total_chunks) == (1, 1)


def test_symmetry(a440_fp, e660_fp):
    ab = compare_fingerprints(a440_fp, e660_fp)
    ba = compare_fingerprints(e660_fp, a440_fp)
    assert ab.similarity == pytest.approx(ba.similarity, abs=1e-12)


def test_shift_by_one_hop_still_matches(a440, a440_fp):
    shifted = generate_fingerprint(a440[512:], SR)
    assert shifted.spectrogram_hash != a440_fp.spectrogram_hash
    result = compare_fingerprints(a440_fp, shifted)
    assert result.similarity >= 0.85
    assert result.is_match


def test_different_tones_do_not_match(a440_fp):
    other = generate_fingerprint(make_sine(3000.0, 10.0), SR)
    result = compare_fingerprints(a440_fp, other)
    assert 0.0 <= result.similarity < SIMILARITY_THRESHOLD
    assert not result.is_match
    assert result.matched_chunks == 0


def test_threshold_is_tunable(a440_fp, e660_fp):
    score = compare_fingerprints(a440_fp, e660_fp).similarity
    assert compare_fingerprints(a440_fp, e660_fp, threshold=score).is_match
    assert not compare_fingerprints(a440_fp, e660_fp, threshold=min(1.0, score + 0.01)).is_match


def test_similarity_degrades_with_noise(a440, a440_fp):
    noise = np.random.default_rng(42).standard_normal(a440.size)
    scores = [
        compare_fingerprints(a440_fp, generate_fingerprint(a440 + level * noise, SR)).similarity
        for level in (0.0, 0.05, 0.5, 2.0, 8.0)
    ]
    assert scores[0] == 1.0
    assert all(later <= earlier + 1e-9 for earlier, later in zip(scores, scores[1:]))
    assert scores[-1] < scores[0]


def test_equal_hash_implies_match():
    rng = np.random.default_rng(99)
    clips = [rng.standard_normal(SR) * 0.3 for _ in range(6)]
    clips += [make_sine(f, 1.0) for f in (220.0, 440.0, 880.0, 1760.0)]
    clips += [make_sine(f, 1.0, amplitude=2e-4) for f in (330.0, 3000.0)]
    clips += [np.zeros(SR), np.zeros(SR)]
    fps = [generate_fingerprint(c, SR) for c in clips]

    # the two silent clips are the only pair that share a hash
    assert len({fp.spectrogram_hash for fp in fps}) == len(fps) - 1
    for a in fps:
        for b in fps:
            if a.spectrogram_hash == b.spectrogram_hash:
                assert compare_fingerprints(a, b).is_match


def test_quiet_different_tones_do_not_match():
    low = generate_fingerprint(make_sine(440.0, 5.0, amplitude=2e-4), SR)
    high = generate_fingerprint(make_sine(3000.0, 5.0, amplitude=2e-4), SR)
    assert low.spectrogram_hash != high.spectrogram_hash
    result = compare_fingerprints(low, high)
    assert result.similarity < SIMILARITY_THRESHOLD
    assert not result.is_match


def test_quiet_copy_matches_loud_original(a440, a440_fp):
    quiet = generate_fingerprint(a440 * 4e-4, SR)
    assert quiet.frequency_peaks == a440_fp.frequency_peaks
    assert compare_fingerprints(a440_fp, quiet).is_match


def _peakless(chroma_row):
    peaks = tuple((i, NO_PEAK) for i in range(4))
    return AudioFingerprint(
        spectrogram_hash=hash_peaks(peaks),
        frequency_peaks=peaks,
        chroma_features=(chroma_row,) * 4,
        mfcc_data=((-20.0,) + (0.0,) * 12,) * 4,
        duration=0.1,
        sample_rate=SR,
    )


def test_peakless_hash_collision_is_scored_on_features():
    a = _peakless((1.0,) + (0.0,) * 11)
    b = _peakless((0.0,) * 6 + (1.0,) + (0.0,) * 5)
    assert a.spectrogram_hash == b.spectrogram_hash

    result = compare_fingerprints(a, b)
    # peaks 1, chroma 0, mfcc 1, tempo and key unknown
    assert result.similarity == pytest.approx(0.35 + 0.25 + 0.05 + 0.025)
    assert not result.is_match
    assert compare_fingerprints(a, a).similarity == 1.0


def test_same_tone_at_different_sample_rates(a440_fp):
    low_rate = generate_fingerprint(make_sine(440.0, 10.0, sr=22050), 22050)
    other = generate_fingerprint(make_sine(3000.0, 10.0, sr=22050), 22050)

    peaks, chroma, mfcc = align_to_rate(a440_fp, 22050)
    assert len(peaks) == len(chroma) == len(mfcc) == round(a440_fp.frame_count / 2)
    assert peak_similarity(peaks, low_rate.frequency_peaks) >= 0.95

    same = compare_fingerprints(a440_fp, low_rate)
    assert same.similarity == pytest.approx(compare_fingerprints(low_rate, a440_fp).similarity)
    assert same.similarity > 0.6
    assert same.similarity > compare_fingerprints(a440_fp, other).similarity


def test_align_to_rate_rescales_bins():
    peaks = ((0, 40), (1, 81), (2, NO_PEAK), (3, 10))
    fp = AudioFingerprint(
        spectrogram_hash=hash_peaks(peaks),
        frequency_peaks=peaks,
        chroma_features=((0.0,) * 12,) * 4,
        mfcc_data=((0.0,) * 13,) * 4,
        duration=0.1,
        sample_rate=44100,
    )
    assert align_to_rate(fp, 44100)[0] == peaks
    assert list(align_to_rate(fp, 22050)[0]) == [(0, 80), (1, NO_PEAK)]


# ── Per-feature scores ───────────────────────────────────────────────────────

def test_peak_similarity_tolerance():
    a = [(0, 100), (1, 100), (2, 100), (3, 100)]
    assert peak_similarity(a, a) == 1.0
    assert peak_similarity(a, [(t, b + 3) for t, b in a]) == 1.0
    assert peak_similarity(a, [(t, b + 4) for t, b in a]) == 0.0


def test_peak_similarity_sentinels():
    silent = [(0, NO_PEAK), (1, NO_PEAK)]
    assert peak_similarity(silent, silent) == 1.0
    assert peak_similarity(silent, [(0, 1), (1, 2)]) == 0.0


def test_peak_similarity_aligns_small_offsets():
    a = [(i, 10 * i) for i in range(20)]
    b = a[2:]
    assert peak_similarity(a, b) == pytest.approx(18 / 20)
    assert peak_similarity(b, a) == pytest.approx(18 / 20)


def test_peak_similarity_uses_position_not_frame_index():
    assert peak_similarity([(100, 5), (101, 6)], [(0, 5), (1, 6)]) == 1.0


def test_peak_similarity_empty():
    assert peak_similarity([], [(0, 1)]) == 0.0


def test_feature_similarity():
    a = [[1.0, 0.0], [0.0, 1.0]]
    assert feature_similarity(a, a) == pytest.approx(1.0)
    assert feature_similarity(a, a + [[5.0, 5.0]]) == pytest.approx(1.0)
    assert feature_similarity([[1.0, 0.0]], [[0.0, 1.0]]) == 0.0
    assert feature_similarity([[1.0, 0.0]], [[-1.0, 0.0]]) == 0.0
    assert feature_similarity([[0.0, 0.0]], [[0.0, 0.0]]) == 1.0
    assert feature_similarity([[0.0, 0.0]], [[1.0, 0.0]]) == 0.0
    assert feature_similarity([], a) == 0.0


@pytest.mark.parametrize(
    "a, b, expected",
    [(120.0, 120.0, 1.0), (120.0, 60.0, 0.5), (None, 120.0, 0.5), (None, None, 0.5)],
)
def test_tempo_similarity(a, b, expected):
    assert tempo_similarity(a, b) == pytest.approx(expected)


@pytest.mark.parametrize(
    "a, b, expected",
    [("A minor", "A minor", 1.0), ("A minor", "C major", 0.3), ("A minor", None, 0.5), (None, None, 0.5)],
)
def test_key_similarity(a, b, expected):
    assert key_similarity(a, b) == expected


# ── compare_fingerprint_chunks ───────────────────────────────────────────────

def test_identical_chunks_match(a440_fp):
    chunks = generate_fingerprint_chunks(a440_fp)
    result = compare_fingerprint_chunks(chunks, chunks)
    assert result.similarity == 1.0
    assert (result.matched_chunks, result.total_chunks) == (2, 2)
    assert result.is_match


def test_chunk_match_without_hash_equality():
    a = [_chunk(0, [[0, 20], [1, 20], [2, 21]])]
    b = [_chunk(0, [[50, 21], [51, 22], [52, 21]])]
    assert a[0].spectrogram_hash != b[0].spectrogram_hash
    assert compare_fingerprint_chunks(a, b).matched_chunks == 1


def test_chunk_mismatch():
    a = [_chunk(0, [[0, 20], [1, 20]])]
    b = [_chunk(0, [[0, 400], [1, 400]])]
    result = compare_fingerprint_chunks(a, b)
    assert result.similarity == 0.0
    assert not result.is_match


def test_excerpt_denominator():
    long = [_chunk(i, [[i, 20 + i]]) for i in range(3)]
    short = long[:1]

    strict = compare_fingerprint_chunks(long, short)
    assert strict.similarity == pytest.approx(1 / 3)
    assert strict.total_chunks == 3
    assert not strict.is_match

    excerpt = compare_fingerprint_chunks(long, short, excerpt=True)
    assert excerpt.similarity == 1.0
    assert excerpt.total_chunks == 1
    assert excerpt.is_match


def test_empty_chunk_lists():
    assert compare_fingerprint_chunks([], []).similarity == 0.0
    result = compare_fingerprint_chunks([], [_chunk(0, [[0, 1]])])
    assert result.similarity == 0.0
    assert result.total_chunks == 1
