"""Audiodup — Configuration settings."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# ── Spectrogram ──────────────────────────────────────────────────────────────
FFT_SIZE = 2048              # Analysis window (samples)
HOP_LENGTH = 512             # STFT hop length (75% overlap)
WINDOW = "hann"

# ── Peak Extraction ──────────────────────────────────────────────────────────
PEAK_NEIGHBORHOOD = 2        # Local-max half-width in bins (±2)
PEAK_NOISE_FLOOR = 1e-4      # Minimum magnitude for a peak, relative to the loudest bin
NO_PEAK = -1                 # Sentinel bin for frames without a peak

# ── Chroma ───────────────────────────────────────────────────────────────────
CHROMA_BINS = 12
CHROMA_MIN_FREQ = 20.0       # Hz
CHROMA_MAX_FREQ = 5000.0     # Hz
REFERENCE_FREQ = 440.0       # A4
REFERENCE_MIDI = 69          # MIDI number of A4, puts C at chroma index 0

# ── MFCC ─────────────────────────────────────────────────────────────────────
MEL_BANDS = 128
MFCC_COEFFICIENTS = 13
LOG_FLOOR = 1e-10

# ── Tempo ────────────────────────────────────────────────────────────────────
MIN_BPM = 40.0
MAX_BPM = 220.0
TEMPO_CONFIDENCE = 0.3       # Normalised autocorrelation needed at best lag
ONSET_ENERGY_FLOOR = 1e-3    # Mean flux relative to mean spectral energy

# ── Key ──────────────────────────────────────────────────────────────────────
KEY_CONFIDENCE = 0.3         # Minimum Pearson correlation for a key label

# ── Hashing ──────────────────────────────────────────────────────────────────
HASH_DECIMALS = 3            # Fixed precision before hashing
HASH_LENGTH = 20             # Hex characters kept from the SHA-1 digest

# ── Chunking ─────────────────────────────────────────────────────────────────
CHUNK_DURATION = float(os.getenv("AUDIODUP_CHUNK_DURATION", "5.0"))  # seconds

# ── Similarity ───────────────────────────────────────────────────────────────
SIMILARITY_THRESHOLD = float(os.getenv("AUDIODUP_SIMILARITY_THRESHOLD", "0.85"))
PEAK_TOLERANCE = 3           # Bins a peak may drift and still match
MAX_ALIGN_LAG = 8            # Frames searched either way when aligning peaks
NEUTRAL_SCORE = 0.5          # Tempo/key score when either side is unknown
KEY_MISMATCH_SCORE = 0.3

WEIGHT_PEAKS = 0.35
WEIGHT_CHROMA = 0.25
WEIGHT_MFCC = 0.25
WEIGHT_TEMPO = 0.10
WEIGHT_KEY = 0.05

# ── Runtime ──────────────────────────────────────────────────────────────────
MAX_WORKERS = int(os.getenv("AUDIODUP_MAX_WORKERS", "4"))
LOG_LEVEL = os.getenv("AUDIODUP_LOG_LEVEL", "INFO")
