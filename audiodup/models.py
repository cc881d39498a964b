from __future__ import annotations

import json
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Peak = tuple[int, int]


class _Record(BaseModel):
    """Immutable value record serialised with camelCase field names."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class AudioFingerprint(_Record):
    spectrogram_hash: str
    frequency_peaks: tuple[Peak, ...]
    chroma_features: tuple[tuple[float, ...], ...]
    mfcc_data: tuple[tuple[float, ...], ...]
    tempo_signature: Optional[float] = None
    key_signature: Optional[str] = None
    duration: float = Field(ge=0.0)
    sample_rate: int = Field(gt=0)

    @property
    def frame_count(self) -> int:
        return len(self.frequency_peaks)


class FingerprintChunk(_Record):
    chunk_index: int = Field(ge=0)
    chunk_duration: float
    spectrogram_hash: str
    frequency_peaks: str  # JSON list of [frame, bin]
    chroma_features: Optional[str] = None
    mfcc_data: Optional[str] = None
    tempo_signature: Optional[float] = None
    key_signature: Optional[str] = None

    def peaks(self) -> list[list[int]]:
        return json.loads(self.frequency_peaks)

    def chroma(self) -> list[list[float]]:
        return json.loads(self.chroma_features) if self.chroma_features else []

    def mfcc(self) -> list[list[float]]:
        return json.loads(self.mfcc_data) if self.mfcc_data else []


class SimilarityResult(_Record):
    similarity: float = Field(ge=0.0, le=1.0)
    matched_chunks: int = 0
    total_chunks: int = 0
    is_match: bool = False
