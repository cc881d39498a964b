from __future__ import annotations

import numpy as np
import pytest

from audiodup.fingerprint import generate_fingerprint

SR = 44100


def make_sine(freq: float = 440.0, seconds: float = 10.0, sr: int = SR, amplitude: float = 0.5) -> np.ndarray:
    t = np.arange(int(round(seconds * sr))) / sr
    return amplitude * np.sin(2 * np.pi * freq * t)


def make_clicks(period: int, seconds: float, sr: int = SR) -> np.ndarray:
    """Short 1 kHz bursts every *period* samples."""
    audio = np.zeros(int(round(seconds * sr)))
    burst = np.hanning(256) * np.sin(2 * np.pi * 1000 * np.arange(256) / sr)
    for start in range(0, audio.size - burst.size, period):
        audio[start : start + burst.size] += burst
    return audio


@pytest.fixture(scope="session")
def a440():
    return make_sine(440.0, 10.0)


@pytest.fixture(scope="session")
def a440_fp(a440):
    return generate_fingerprint(a440, SR)
