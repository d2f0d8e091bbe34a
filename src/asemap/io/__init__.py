"""
I/O module for asemap.

Provides the variant key, the count file reader, the sample mapping reader
and reference genotype panels.
"""

from .variant_source import (
    Genotype,
    VariantKey,
    VariantSource,
)
from .count_reader import CountRecord, read_counts
from .sample_mapping import read_sample_mapping

# Import format handlers to register them with factory
from . import vcf_source  # noqa: F401

__all__ = [
    "CountRecord",
    "Genotype",
    "VariantKey",
    "VariantSource",
    "read_counts",
    "read_sample_mapping",
]
