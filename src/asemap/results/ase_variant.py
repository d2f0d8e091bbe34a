"""
Per-variant accumulator of allele counts across samples.
"""

import math
import threading
from dataclasses import dataclass
from typing import List, Optional

from asemap.analysis.meta_stats import count_pearson_r, meta_zscore
from asemap.errors import ProcessingConsistencyError
from asemap.io.variant_source import VariantKey


@dataclass(frozen=True)
class SampleObservation:
    """One sample's ref/alt read counts at one variant."""

    sample_id: str
    ref_count: int
    alt_count: int
    ref_base_quality: Optional[float] = None
    alt_base_quality: Optional[float] = None

    @property
    def has_base_quality(self) -> bool:
        return self.ref_base_quality is not None or self.alt_base_quality is not None


class AseVariant:
    """
    Observations of one variant and the statistics derived from them.

    Observations are appended by loader threads under a per-variant lock.
    ``calculate_statistics`` is called once after loading has finished,
    after which the Pearson R, meta Z and meta P are fixed.

    Attributes
    ----------
    key : VariantKey
        Chromosome, position and alleles.
    variant_id : str or None
        First non-missing identifier seen for the variant.
    """

    def __init__(self, key: VariantKey) -> None:
        self.key: VariantKey = key
        self.variant_id: Optional[str] = None
        self._observations: List[SampleObservation] = []
        self._lock = threading.Lock()

        self._count_pearson_r: Optional[float] = None
        self._meta_z: Optional[float] = None
        self._meta_p: Optional[float] = None
        self._finalized: bool = False

    def add_observation(self, observation: SampleObservation, variant_id: Optional[str] = None) -> None:
        with self._lock:
            if self._finalized:
                raise ProcessingConsistencyError(
                    f"Cannot add observations to {self.key} after statistics were calculated"
                )
            self._observations.append(observation)
            if self.variant_id is None and variant_id is not None:
                self.variant_id = variant_id

    def calculate_statistics(self) -> None:
        """Compute Pearson R of ref/alt counts and the meta Z-score and P-value."""
        with self._lock:
            if self._finalized:
                raise ProcessingConsistencyError(f"Statistics for {self.key} already calculated")

            ref_counts = self.ref_counts
            alt_counts = self.alt_counts

            self._count_pearson_r = count_pearson_r(ref_counts, alt_counts)
            self._meta_z, self._meta_p = meta_zscore(ref_counts, alt_counts)
            self._finalized = True

    def _require_stats(self, value: Optional[float]) -> float:
        if not self._finalized:
            raise ProcessingConsistencyError(f"Statistics for {self.key} not calculated yet")
        return value

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    @property
    def count_pearson_r(self) -> float:
        return self._require_stats(self._count_pearson_r)

    @property
    def meta_z(self) -> float:
        return self._require_stats(self._meta_z)

    @property
    def meta_p(self) -> float:
        return self._require_stats(self._meta_p)

    # Convenience accessors
    @property
    def chrom(self) -> str:
        return self.key.chrom

    @property
    def pos(self) -> int:
        return self.key.pos

    @property
    def sample_count(self) -> int:
        return len(self._observations)

    @property
    def observations(self) -> List[SampleObservation]:
        return list(self._observations)

    @property
    def sample_ids(self) -> List[str]:
        return [obs.sample_id for obs in self._observations]

    @property
    def ref_counts(self) -> List[int]:
        return [obs.ref_count for obs in self._observations]

    @property
    def alt_counts(self) -> List[int]:
        return [obs.alt_count for obs in self._observations]

    @property
    def ref_base_qualities(self) -> List[Optional[float]]:
        return [obs.ref_base_quality for obs in self._observations]

    @property
    def alt_base_qualities(self) -> List[Optional[float]]:
        return [obs.alt_base_quality for obs in self._observations]

    @staticmethod
    def mean_base_quality(qualities: List[Optional[float]]) -> float:
        """Mean over the samples that report a quality, NaN if none do."""
        present = [q for q in qualities if q is not None]
        if not present:
            return math.nan
        return math.fsum(present) / len(present)

    def __repr__(self) -> str:
        return f"AseVariant({self.key}, samples={self.sample_count})"
