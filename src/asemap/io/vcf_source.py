"""
VCF/BCF reference panel for asemap.

This module provides VCFSource, a VariantSource implementation that looks
up reference genotypes in an indexed VCF or BCF file using pysam.
"""

import threading
from pathlib import Path
from typing import List, Optional, Tuple

import pysam

from .variant_source import (
    Genotype,
    VariantKey,
    VariantSource,
)


@VariantSource.register('vcf', 'vcf.gz', 'bcf')
class VCFSource(VariantSource):
    """Reference genotype panel backed by an indexed VCF/BCF.

    Lookups are position queries (``fetch(chrom, pos - 1, pos)``) so the file
    needs a tabix or CSI index. The pysam handle is not safe to share between
    threads; every query holds ``_lock`` and results are memoized per key
    because several loader threads usually ask for the same variant.

    Attributes:
        path: Path to the VCF/BCF file
        vcf: pysam.VariantFile handle

    Example:
        >>> with VCFSource("panel.vcf.gz") as panel:
        ...     panel.genotype(VariantKey("chr1", 100, "A", "G"), "sample1")
        <Genotype.HET: 1>
    """

    def __init__(self, path: str, **kwargs):
        """Initialize VCF source.

        Raises:
            ValueError: If the file cannot be opened or has no index
        """
        self.path = Path(path)

        try:
            self.vcf = pysam.VariantFile(str(self.path))
        except (OSError, ValueError) as e:
            raise ValueError(f"Failed to open VCF file {self.path}: {e}")

        if self.vcf.index is None:
            self.vcf.close()
            raise ValueError(
                f"VCF file {self.path} is not indexed. "
                "Create an index with: bcftools index -t <file>"
            )

        self._samples = list(self.vcf.header.samples)
        self._lock = threading.Lock()
        self._cache: dict[VariantKey, Optional[Tuple[Optional[str], dict]]] = {}

    @property
    def samples(self) -> List[str]:
        return self._samples

    def genotype(self, key: VariantKey, sample: str) -> Genotype:
        if sample not in self._samples:
            return Genotype.MISSING

        entry = self._lookup(key)
        if entry is None:
            return Genotype.MISSING

        return entry[1].get(sample, Genotype.MISSING)

    def variant_id(self, key: VariantKey) -> Optional[str]:
        entry = self._lookup(key)
        if entry is None:
            return None
        return entry[0]

    def _lookup(self, key: VariantKey) -> Optional[Tuple[Optional[str], dict]]:
        with self._lock:
            if key in self._cache:
                return self._cache[key]

            entry = None
            try:
                records = self.vcf.fetch(key.chrom, key.pos0, key.pos)
            except ValueError:
                # Contig not in panel
                records = []

            for record in records:
                if record.pos != key.pos or record.ref != key.ref:
                    continue
                alts = list(record.alts or [])
                if key.alt not in alts:
                    continue

                alt_idx = alts.index(key.alt) + 1
                genotypes = {
                    sample: self._parse_gt(record.samples[sample].get('GT', None), alt_idx)
                    for sample in self._samples
                }
                entry = (record.id, genotypes)
                break

            self._cache[key] = entry
            return entry

    def _parse_gt(self, gt_tuple: Optional[Tuple[int, ...]], alt_idx: int = 1) -> Genotype:
        """Convert pysam GT tuple to Genotype enum relative to one alt allele.

        Examples:
            >>> _parse_gt((0, 1))  # 0/1
            Genotype.HET
            >>> _parse_gt((1, 2), alt_idx=2)  # other alt present
            Genotype.MISSING
        """
        if gt_tuple is None or None in gt_tuple:
            return Genotype.MISSING

        if any(allele not in (0, alt_idx) for allele in gt_tuple):
            return Genotype.MISSING

        num_alts = sum(1 for allele in gt_tuple if allele == alt_idx)

        if num_alts == 0:
            return Genotype.HOM_REF
        elif num_alts == len(gt_tuple):
            return Genotype.HOM_ALT
        else:
            return Genotype.HET

    def close(self):
        if hasattr(self, 'vcf') and self.vcf is not None:
            self.vcf.close()
