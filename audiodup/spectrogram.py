"""Audiodup — Spectrogram engine.

Turns decoded mono PCM into a ``(frames, bins)`` magnitude matrix using a
Hann-windowed STFT without centring, so frame ``i`` always starts at sample
``i * HOP_LENGTH``.
"""

from __future__ import annotations

from collections.abc import Sequence

import librosa
import numpy as np

from audiodup.config import FFT_SIZE, HOP_LENGTH, WINDOW
from audiodup.errors import InvalidInput, NonFiniteSamples


def validate_samples(samples: Sequence[float] | np.ndarray, sample_rate: int) -> np.ndarray:
    """Return *samples* as a float64 array or raise :class:`InvalidInput`."""
    if isinstance(sample_rate, bool) or not isinstance(sample_rate, (int, np.integer)):
        raise InvalidInput(f"sample rate must be an integer, got {sample_rate!r}")
    if sample_rate <= 0:
        raise InvalidInput(f"sample rate must be positive, got {sample_rate}")

    try:
        audio = np.asarray(samples, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"samples are not numeric: {exc}") from exc

    if audio.ndim != 1:
        raise InvalidInput(f"expected mono samples, got array of shape {audio.shape}")
    if audio.size == 0:
        raise InvalidInput("sample buffer is empty")
    if not np.all(np.isfinite(audio)):
        raise NonFiniteSamples("sample buffer contains NaN or infinite values")
    return audio


def frame_count(num_samples: int) -> int:
    """Number of analysis frames produced for *num_samples* samples."""
    if num_samples < FFT_SIZE:
        return 1
    return (num_samples - FFT_SIZE) // HOP_LENGTH + 1


def compute_spectrogram(samples: Sequence[float] | np.ndarray, sample_rate: int) -> np.ndarray:
    """Return the magnitude spectrogram of *samples* as ``[frame][bin]``.

    Magnitudes are divided by the window length. Buffers shorter than one
    window are zero-padded to a single frame.
    """
    return magnitude_spectrogram(validate_samples(samples, sample_rate))


def magnitude_spectrogram(audio: np.ndarray) -> np.ndarray:
    """STFT magnitudes of a buffer already checked by :func:`validate_samples`."""
    if audio.size < FFT_SIZE:
        audio = librosa.util.fix_length(audio, size=FFT_SIZE)

    stft = librosa.stft(
        audio,
        n_fft=FFT_SIZE,
        hop_length=HOP_LENGTH,
        window=WINDOW,
        center=False,
    )
    return np.ascontiguousarray(np.abs(stft).T) / FFT_SIZE


def bin_frequencies(sample_rate: int) -> np.ndarray:
    """Centre frequency (Hz) of every spectrogram bin."""
    return librosa.fft_frequencies(sr=sample_rate, n_fft=FFT_SIZE)
