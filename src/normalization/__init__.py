"""
Normalization Package

Turns raw store documents into canonical records.
"""

from src.normalization.normalizer import (
    MissingFieldError,
    NormalizationError,
    RecordNormalizer,
    UnparseableDateError,
    normalize,
    normalize_snapshot,
    resolve_instant,
    resolve_status,
)

__all__ = [
    "MissingFieldError",
    "NormalizationError",
    "RecordNormalizer",
    "UnparseableDateError",
    "normalize",
    "normalize_snapshot",
    "resolve_instant",
    "resolve_status",
]
