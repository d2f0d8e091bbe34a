"""
Ranking of ASE variants and multiple testing correction.

Variants are ranked by descending absolute meta Z-score. A correction
method walks the ranking and stops at the first variant whose meta
P-value exceeds the cutoff for its rank; everything before that point is
retained.
"""

# Default Python package Imports
import math
from enum import Enum
from typing import Iterable, Iterator, List, NamedTuple

# Local script imports
from asemap.errors import ProcessingConsistencyError
from asemap.results.ase_variant import AseVariant


SIGNIFICANCE = 0.05


class CorrectionMethod(Enum):
    """Multiple testing correction policies."""

    NONE = "none"
    NOMINAL = "nominal"
    BONFERRONI = "bonferroni"
    HOLM = "holm"
    BH = "bh"

    def cutoff(self, rank: int, n_tests: int, significance: float = SIGNIFICANCE) -> float:
        """
        P-value cutoff for the variant at 0-based ``rank`` out of ``n_tests``.

        >>> CorrectionMethod.HOLM.cutoff(1, 4)
        0.016666666666666666
        """
        if self is CorrectionMethod.NONE:
            return math.inf
        if self is CorrectionMethod.NOMINAL:
            return significance
        if self is CorrectionMethod.BONFERRONI:
            return significance / n_tests
        if self is CorrectionMethod.HOLM:
            return significance / (n_tests - rank)
        if self is CorrectionMethod.BH:
            return ((rank + 1) / n_tests) * significance
        raise ProcessingConsistencyError(f"Multiple testing method: {self} is not supported")

    @property
    def out_name(self) -> str:
        """Output file name, ``ase.txt`` for NONE and ``ase_<method>.txt`` otherwise."""
        if self is CorrectionMethod.NONE:
            return "ase.txt"
        return f"ase_{self.value}.txt"

    @classmethod
    def parse(cls, name: str) -> "CorrectionMethod":
        try:
            return cls(name.strip().lower())
        except ValueError:
            supported = ", ".join(m.value for m in cls)
            raise ProcessingConsistencyError(
                f"Multiple testing method: {name} is not supported. Supported methods: {supported}"
            ) from None


class RankedVariant(NamedTuple):
    rank: int
    variant: AseVariant


def sort_by_significance(variants: Iterable[AseVariant]) -> List[AseVariant]:
    """
    Sort finalized variants by descending absolute meta Z-score.

    Ties are ordered by chromosome, position and alleles so that the
    ranking does not depend on the order variants were loaded in.
    """
    return sorted(
        variants,
        key=lambda v: (-abs(v.meta_z), v.key.chrom, v.key.pos, v.key.ref, v.key.alt),
    )


def rank_variants(
    variants: List[AseVariant],
    method: CorrectionMethod,
    significance: float = SIGNIFICANCE,
) -> Iterator[RankedVariant]:
    """
    Yield the variants retained by ``method`` in rank order.

    Parameters
    ----------
    variants : list of AseVariant
        Finalized variants, already sorted by :func:`sort_by_significance`.
    method : CorrectionMethod
        Correction policy.
    significance : float
        Family-wise / false discovery level, 0.05 by default.

    Yields
    ------
    RankedVariant

    Raises
    ------
    ProcessingConsistencyError
        If a later variant has a larger absolute Z-score than an earlier one.
    """
    if not isinstance(method, CorrectionMethod):
        raise ProcessingConsistencyError(f"Multiple testing method: {method} is not supported")

    n_tests = len(variants)
    last_abs_z = math.inf

    for rank, variant in enumerate(variants):
        abs_z = abs(variant.meta_z)
        if abs_z > last_abs_z:
            raise ProcessingConsistencyError("ASE results not sorted")
        last_abs_z = abs_z

        # First failure ends the scan, later ranks are not revisited
        if variant.meta_p > method.cutoff(rank, n_tests, significance):
            break

        yield RankedVariant(rank, variant)


def count_retained(
    variants: List[AseVariant],
    method: CorrectionMethod,
    significance: float = SIGNIFICANCE,
) -> int:
    return sum(1 for _ in rank_variants(variants, method, significance))
