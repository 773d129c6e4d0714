"""Pluggable compression transforms layered over the row section."""

from __future__ import annotations

from .base import Transform
from .codecs import (
    TRANSFORMS,
    Bzip2Transform,
    GzipTransform,
    LzmaTransform,
    ZstdTransform,
    get_transform,
)

__all__ = [
    "Transform",
    "GzipTransform",
    "Bzip2Transform",
    "LzmaTransform",
    "ZstdTransform",
    "TRANSFORMS",
    "get_transform",
]
