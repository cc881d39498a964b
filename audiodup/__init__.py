"""Audiodup — Audio fingerprinting for duplicate and near-duplicate detection."""

from audiodup.errors import DecodeError, FingerprintError, InvalidInput, NonFiniteSamples
from audiodup.fingerprint import generate_fingerprint, generate_fingerprint_chunks
from audiodup.hashing import hash_array
from audiodup.models import AudioFingerprint, FingerprintChunk, SimilarityResult
from audiodup.similarity import compare_fingerprint_chunks, compare_fingerprints
from audiodup.spectrogram import compute_spectrogram

__version__ = "1.0.0"

__all__ = [
    "AudioFingerprint",
    "DecodeError",
    "FingerprintChunk",
    "FingerprintError",
    "InvalidInput",
    "NonFiniteSamples",
    "SimilarityResult",
    "compare_fingerprint_chunks",
    "compare_fingerprints",
    "compute_spectrogram",
    "generate_fingerprint",
    "generate_fingerprint_chunks",
    "hash_array",
]
