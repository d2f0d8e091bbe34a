"""
Variant source module for asemap.

This module provides the variant key used throughout the pipeline and an
abstract base class for reference genotype panels (VCF, BCF).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class Genotype(Enum):
    """Genotype encoding for variants.

    Standard VCF-style encoding:
    - HOM_REF: Homozygous reference (0/0)
    - HET: Heterozygous (0/1 or 1/0)
    - HOM_ALT: Homozygous alternate (1/1)
    - MISSING: Missing genotype (./.) or variant absent from the panel
    """

    HOM_REF = 0
    HET = 1
    HOM_ALT = 2
    MISSING = -1


@dataclass(frozen=True, slots=True)
class VariantKey:
    """Immutable identity of a variant.

    Two observations belong to the same variant iff chromosome, position
    and both alleles match. Uses 1-based genomic coordinates (VCF standard).

    Attributes:
        chrom: Chromosome name (e.g., "chr1", "1")
        pos: 1-based genomic position
        ref: Reference allele sequence
        alt: Alternate allele sequence
    """

    chrom: str
    pos: int
    ref: str
    alt: str

    @property
    def pos0(self) -> int:
        """Return 0-based position for BED/htslib region queries."""
        return self.pos - 1

    def __str__(self) -> str:
        return f"{self.chrom}:{self.pos}:{self.ref}>{self.alt}"


class VariantSource(ABC):
    """Abstract base class for reference genotype panels with factory pattern.

    A panel answers two questions during ingestion: what is a sample's
    genotype at a variant, and what identifier does the panel assign to it.
    Implementations must be safe to call from several loader threads.

    Usage:
        with VariantSource.open("panel.vcf.gz") as panel:
            if panel.genotype(key, "sample1") is Genotype.HET:
                ...

    Registering a new format handler:
        @VariantSource.register("vcf", "bcf")
        class VCFSource(VariantSource):
            ...
    """

    _registry: dict[str, type] = {}

    @classmethod
    def register(cls, *extensions: str):
        """Decorator to register format handlers for specific file extensions.

        Args:
            *extensions: File extensions (with or without leading dot).
                        Normalized to lowercase without leading dots.

        Returns:
            Decorator function that registers the subclass and returns it unchanged.
        """

        def decorator(subclass):
            for ext in extensions:
                cls._registry[ext.lower().lstrip(".")] = subclass
            return subclass

        return decorator

    @classmethod
    def _detect_format(cls, path: Path) -> str:
        """Detect file format from path extension.

        For compressed files (.gz, .bgz) the second-to-last suffix decides.

        Examples:
            >>> VariantSource._detect_format(Path("data.vcf"))
            'vcf'
            >>> VariantSource._detect_format(Path("data.vcf.gz"))
            'vcf'
        """
        suffixes = path.suffixes
        compression_exts = {".gz", ".bgz"}

        if not suffixes:
            raise ValueError(f"Cannot detect format: no extension in {path}")

        if len(suffixes) >= 2 and suffixes[-1] in compression_exts:
            return suffixes[-2].lstrip(".").lower()
        return suffixes[-1].lstrip(".").lower()

    @classmethod
    def open(cls, path: str, **kwargs) -> "VariantSource":
        """Open a reference panel with automatic format detection.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the file format is not supported (no registered handler)
        """
        file_path = Path(path)

        if not file_path.exists():
            raise FileNotFoundError(f"Variant file not found: {path}")

        format_ext = cls._detect_format(file_path)

        if format_ext not in cls._registry:
            supported = ", ".join(sorted(cls._registry.keys()))
            raise ValueError(
                f"Unsupported variant file format: '{format_ext}'. Supported formats: {supported}"
            )

        handler_class = cls._registry[format_ext]
        return handler_class(path, **kwargs)

    @property
    @abstractmethod
    def samples(self) -> list[str]:
        """Sample IDs in file order."""

    @abstractmethod
    def genotype(self, key: VariantKey, sample: str) -> Genotype:
        """Genotype of ``sample`` at ``key``.

        Returns Genotype.MISSING when the panel has no record with matching
        alleles at the position or the sample is unknown to the panel.
        """

    @abstractmethod
    def variant_id(self, key: VariantKey) -> str | None:
        """Identifier (e.g. rsID) the panel assigns to ``key``, if any."""

    def is_het(self, key: VariantKey, sample: str) -> bool:
        return self.genotype(key, sample) is Genotype.HET

    def close(self):  # noqa: B027
        """Release file handles. Default implementation does nothing."""

    def __enter__(self) -> "VariantSource":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return None
