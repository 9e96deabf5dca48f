"""Shared utilities for hairswap."""

from hairswap.core.utils.images import fit_to_jpeg, sniff_extension, sniff_media_type

__all__ = [
    "fit_to_jpeg",
    "sniff_extension",
    "sniff_media_type",
]
