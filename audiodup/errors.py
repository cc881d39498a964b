"""Audiodup — Exceptions raised by the fingerprinting core."""


class FingerprintError(ValueError):
    """Base class for every error raised while fingerprinting audio."""


class InvalidInput(FingerprintError):
    """Samples or sample rate cannot be fingerprinted.

    Raised for an empty buffer, a non-positive sample rate, non-finite
    sample values or a buffer that is not one-dimensional.
    """


class DecodeError(FingerprintError):
    """Audio could not be decoded into PCM samples.

    The core never decodes containers itself; callers that do (the CLI)
    raise this so that both failures can be handled as one.
    """


class NonFiniteSamples(InvalidInput, DecodeError):
    """Sample buffer holds NaN or infinite values.

    Usually the sign of a broken decode, so it is catchable as either.
    """
