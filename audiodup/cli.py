"""Audiodup — Command-line entry point.

Decodes audio files with librosa and hands the PCM to the fingerprinting
core. Run with:
    audiodup fingerprint song.mp3 --chunks
    audiodup compare original.wav reupload.mp3
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import librosa
import numpy as np

from audiodup.config import CHUNK_DURATION, LOG_LEVEL, MAX_WORKERS, SIMILARITY_THRESHOLD
from audiodup.errors import DecodeError, FingerprintError
from audiodup.fingerprint import generate_fingerprint, generate_fingerprint_chunks
from audiodup.logging_config import setup_logger
from audiodup.models import AudioFingerprint
from audiodup.similarity import compare_fingerprint_chunks, compare_fingerprints

logger = logging.getLogger(__name__)

EXIT_MATCH = 0
EXIT_NO_MATCH = 1
EXIT_ERROR = 2


def load_audio(path: Path) -> tuple[np.ndarray, int]:
    """Decode *path* to mono float samples at its native sample rate."""
    try:
        audio, sr = librosa.load(str(path), sr=None, mono=True)
    except Exception as exc:
        raise DecodeError(f"could not decode {path}: {exc}") from exc
    logger.info("loaded %s: %.2fs @ %d Hz", path.name, len(audio) / sr, sr)
    return audio, int(sr)


def fingerprint_file(path: Path) -> AudioFingerprint:
    audio, sr = load_audio(path)
    return generate_fingerprint(audio, sr)


def fingerprint_files(paths: list[Path], workers: int = MAX_WORKERS) -> list[AudioFingerprint]:
    """Fingerprint *paths* concurrently, one file per worker."""
    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        return list(pool.map(fingerprint_file, paths))


# ── Commands ─────────────────────────────────────────────────────────────────

def _cmd_fingerprint(args: argparse.Namespace) -> int:
    for path, fp in zip(args.paths, fingerprint_files(args.paths, args.workers)):
        if args.chunks:
            chunks = generate_fingerprint_chunks(fp, args.chunk_duration, args.alignment)
            payload = {
                "file": str(path),
                "chunks": [c.model_dump(by_alias=True) for c in chunks],
            }
        else:
            payload = {"file": str(path), "fingerprint": fp.model_dump(by_alias=True)}
        print(json.dumps(payload))
    return EXIT_MATCH


def _cmd_compare(args: argparse.Namespace) -> int:
    fp_a, fp_b = fingerprint_files([args.first, args.second], args.workers)

    if args.chunks:
        result = compare_fingerprint_chunks(
            generate_fingerprint_chunks(fp_a, args.chunk_duration, args.alignment),
            generate_fingerprint_chunks(fp_b, args.chunk_duration, args.alignment),
            threshold=args.threshold,
            excerpt=args.excerpt,
        )
    else:
        result = compare_fingerprints(fp_a, fp_b, threshold=args.threshold)

    logger.info(
        "%s vs %s: similarity=%.3f (%s)",
        args.first.name, args.second.name, result.similarity,
        "match" if result.is_match else "no match",
    )
    print(result.to_json())
    return EXIT_MATCH if result.is_match else EXIT_NO_MATCH


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="audiodup",
        description="Audiodup — Fingerprint audio and detect duplicates",
    )
    parser.add_argument("--log-level", default=LOG_LEVEL, help="Logging level (default: %(default)s)")
    parser.add_argument("--workers", type=int, default=MAX_WORKERS, help="Files decoded in parallel")
    sub = parser.add_subparsers(dest="command", required=True)

    chunking = argparse.ArgumentParser(add_help=False)
    chunking.add_argument("--chunks", action="store_true", help="Work on fixed-duration chunks")
    chunking.add_argument("--chunk-duration", type=float, default=CHUNK_DURATION, help="Chunk length in seconds")
    chunking.add_argument(
        "--alignment",
        choices=("proportional", "time"),
        default="proportional",
        help="How chunk boundaries are placed",
    )

    fp = sub.add_parser("fingerprint", parents=[chunking], help="Print fingerprints as JSON lines")
    fp.add_argument("paths", nargs="+", type=Path, help="Audio files to fingerprint")
    fp.set_defaults(func=_cmd_fingerprint)

    cmp = sub.add_parser("compare", parents=[chunking], help="Compare two audio files")
    cmp.add_argument("first", type=Path)
    cmp.add_argument("second", type=Path)
    cmp.add_argument("--threshold", type=float, default=SIMILARITY_THRESHOLD, help="Match threshold")
    cmp.add_argument("--excerpt", action="store_true", help="Score chunks against the shorter file")
    cmp.set_defaults(func=_cmd_compare)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logger("audiodup", level=args.log_level.upper())

    try:
        return args.func(args)
    except FingerprintError as exc:
        logger.error("%s", exc)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
