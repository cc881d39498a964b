"""Audiodup — Feature extractors.

Every extractor is a pure function of the read-only spectrogram produced by
:func:`audiodup.spectrogram.compute_spectrogram`; none of them depends on
another, except key detection which consumes the chroma output.

1. Peaks  — strongest local maximum per frame.
2. Chroma — magnitudes folded into 12 pitch classes (C = 0).
3. MFCC   — mel filterbank → log energy → DCT-II.
4. Tempo  — spectral-flux onset envelope → autocorrelation.
5. Key    — average chroma vs. Krumhansl–Schmuckler profiles.
"""

from __future__ import annotations

import math
from functools import lru_cache

import librosa
import numpy as np
from scipy.fft import dct
from scipy.ndimage import maximum_filter1d

from audiodup.config import (
    CHROMA_BINS,
    CHROMA_MAX_FREQ,
    CHROMA_MIN_FREQ,
    FFT_SIZE,
    HOP_LENGTH,
    KEY_CONFIDENCE,
    LOG_FLOOR,
    MAX_BPM,
    MEL_BANDS,
    MFCC_COEFFICIENTS,
    MIN_BPM,
    NO_PEAK,
    ONSET_ENERGY_FLOOR,
    PEAK_NEIGHBORHOOD,
    PEAK_NOISE_FLOOR,
    REFERENCE_FREQ,
    REFERENCE_MIDI,
    TEMPO_CONFIDENCE,
)
from audiodup.spectrogram import bin_frequencies

PITCH_NAMES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")

# Krumhansl–Schmuckler key profiles, tonic first
MAJOR_PROFILE = np.array([6.35, 2.23, 3.48, 2.33, 4.38, 4.09, 2.52, 5.19, 2.39, 3.66, 2.29, 2.88])
MINOR_PROFILE = np.array([6.33, 2.68, 3.52, 5.38, 2.60, 3.53, 2.54, 4.75, 3.98, 2.69, 3.34, 3.17])
MAJOR_PROFILE.setflags(write=False)
MINOR_PROFILE.setflags(write=False)


# ── Peaks ────────────────────────────────────────────────────────────────────

def extract_peaks(
    spectrogram: np.ndarray,
    neighborhood: int = PEAK_NEIGHBORHOOD,
    floor: float = PEAK_NOISE_FLOOR,
) -> list[tuple[int, int]]:
    """Return one ``(frame, bin)`` pair per frame.

    The bin is the strongest local maximum (over ±*neighborhood* bins) above
    *floor* times the loudest magnitude in the spectrogram, so peak picking
    does not depend on playback level. Frames without one carry ``NO_PEAK``
    so that frame alignment with the other features is preserved.
    """
    level = float(spectrogram.max()) if spectrogram.size else 0.0
    local_max = maximum_filter1d(
        spectrogram, size=2 * neighborhood + 1, axis=1, mode="constant", cval=0.0
    )
    mask = (spectrogram == local_max) & (spectrogram > floor * level)
    best = np.where(mask, spectrogram, -1.0).argmax(axis=1)
    bins = np.where(mask.any(axis=1), best, NO_PEAK)
    return [(frame, int(b)) for frame, b in enumerate(bins.tolist())]


# ── Chroma ───────────────────────────────────────────────────────────────────

@lru_cache(maxsize=16)
def pitch_classes(sample_rate: int) -> np.ndarray:
    """Pitch class of every spectrogram bin, ``-1`` outside the chroma range."""
    freqs = bin_frequencies(sample_rate)
    classes = np.full(freqs.shape, -1, dtype=np.int64)
    valid = (freqs >= CHROMA_MIN_FREQ) & (freqs <= CHROMA_MAX_FREQ)
    midi = np.round(12 * np.log2(freqs[valid] / REFERENCE_FREQ) + REFERENCE_MIDI)
    classes[valid] = midi.astype(np.int64) % CHROMA_BINS
    classes.setflags(write=False)
    return classes


def extract_chroma(spectrogram: np.ndarray, sample_rate: int) -> np.ndarray:
    """Return a ``(frames, 12)`` sum-normalised chroma matrix.

    Frames without energy in the chroma range stay all-zero.
    """
    classes = pitch_classes(sample_rate)
    chroma = np.zeros((spectrogram.shape[0], CHROMA_BINS))
    for pc in range(CHROMA_BINS):
        chroma[:, pc] = spectrogram[:, classes == pc].sum(axis=1)

    totals = chroma.sum(axis=1, keepdims=True)
    return np.divide(chroma, totals, out=np.zeros_like(chroma), where=totals > 0)


# ── MFCC ─────────────────────────────────────────────────────────────────────

@lru_cache(maxsize=16)
def mel_filterbank(sample_rate: int) -> np.ndarray:
    """``(MEL_BANDS, bins)`` HTK mel filterbank with unit-peak triangles.

    Same weights as ``librosa.filters.mel(htk=True, norm=None)``, built
    from librosa's frequency grids directly. ``filters.mel`` may warn about
    empty bands, and extractor threads must not touch the warnings filters.
    """
    edges = librosa.mel_frequencies(
        n_mels=MEL_BANDS + 2, fmin=0.0, fmax=sample_rate / 2.0, htk=True
    )
    freqs = librosa.fft_frequencies(sr=sample_rate, n_fft=FFT_SIZE)
    widths = np.diff(edges)
    ramps = np.subtract.outer(edges, freqs)

    fb = np.zeros((MEL_BANDS, freqs.size))
    for band in range(MEL_BANDS):
        rising = -ramps[band] / widths[band]
        falling = ramps[band + 2] / widths[band + 1]
        fb[band] = np.maximum(0.0, np.minimum(rising, falling))
    fb.setflags(write=False)
    return fb


def extract_mfcc(spectrogram: np.ndarray, sample_rate: int) -> np.ndarray:
    """Return a ``(frames, 13)`` MFCC matrix; coefficient 0 is log-energy."""
    fb = mel_filterbank(sample_rate)
    mel = np.zeros((spectrogram.shape[0], MEL_BANDS))
    for band in range(MEL_BANDS):
        support = np.flatnonzero(fb[band])
        if support.size:
            lo, hi = support[0], support[-1] + 1
            mel[:, band] = (spectrogram[:, lo:hi] * fb[band, lo:hi]).sum(axis=1)

    log_mel = np.log(np.maximum(mel, LOG_FLOOR))
    return dct(log_mel, type=2, norm="ortho", axis=1)[:, :MFCC_COEFFICIENTS]


# ── Tempo ────────────────────────────────────────────────────────────────────

def onset_envelope(spectrogram: np.ndarray) -> np.ndarray:
    """Positive spectral flux per frame transition, summed across bins."""
    if spectrogram.shape[0] < 2:
        return np.zeros(0)
    return np.maximum(np.diff(spectrogram, axis=0), 0.0).sum(axis=1)


def detect_tempo(spectrogram: np.ndarray, sample_rate: int) -> float | None:
    """Estimate BPM from the onset envelope, or ``None`` if arrhythmic."""
    envelope = onset_envelope(spectrogram)

    min_lag = max(1, math.ceil(60.0 * sample_rate / (HOP_LENGTH * MAX_BPM)))
    max_lag = math.floor(60.0 * sample_rate / (HOP_LENGTH * MIN_BPM))
    max_lag = min(max_lag, envelope.size // 2)
    if max_lag < min_lag:
        return None

    spectral_energy = spectrogram.sum(axis=1).mean()
    if spectral_energy <= 0 or envelope.mean() < ONSET_ENERGY_FLOOR * spectral_energy:
        return None

    centered = envelope - envelope.mean()
    energy = (centered * centered).sum()
    if energy <= 0:
        return None

    lags = np.arange(min_lag, max_lag + 1)
    corr = np.array([(centered[:-lag] * centered[lag:]).sum() for lag in lags]) / energy
    best = int(corr.argmax())
    if corr[best] < TEMPO_CONFIDENCE:
        return None
    return round(60.0 * sample_rate / (HOP_LENGTH * int(lags[best])), 2)


# ── Key ──────────────────────────────────────────────────────────────────────

def _pearson(a: np.ndarray, b: np.ndarray) -> float:
    da = a - a.mean()
    db = b - b.mean()
    denom = math.sqrt((da * da).sum() * (db * db).sum())
    return float((da * db).sum() / denom) if denom > 0 else 0.0


def detect_key(chroma: np.ndarray) -> str | None:
    """Return e.g. ``"A minor"``, or ``None`` when no key is confident."""
    if chroma.shape[0] == 0:
        return None
    profile = chroma.mean(axis=0)
    if not profile.any():
        return None

    best_key: str | None = None
    best_corr = -math.inf
    for shift, name in enumerate(PITCH_NAMES):
        rotated = np.roll(profile, -shift)
        for mode, template in (("major", MAJOR_PROFILE), ("minor", MINOR_PROFILE)):
            corr = _pearson(rotated, template)
            if corr > best_corr:
                best_corr = corr
                best_key = f"{name} {mode}"

    if best_corr < KEY_CONFIDENCE:
        return None
    return best_key
