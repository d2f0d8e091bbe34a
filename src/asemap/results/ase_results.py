"""
Shared, thread-safe collection of AseVariant objects keyed by variant.
"""

import threading
from typing import Callable, Dict, Iterator, Optional

from asemap.io.variant_source import VariantKey
from asemap.results.ase_variant import AseVariant, SampleObservation


class AseResults:
    """
    Variant-keyed store that loader threads write into concurrently.

    ``get_or_create`` holds the store lock for the whole check-and-insert,
    so threads racing on an unseen key all receive the same AseVariant.
    Iteration and ``remove_where`` are only valid once loading has ended.
    """

    def __init__(self) -> None:
        self._variants: Dict[VariantKey, AseVariant] = {}
        self._lock = threading.Lock()
        self._encountered_base_quality = False

    def get_or_create(self, key: VariantKey) -> AseVariant:
        with self._lock:
            variant = self._variants.get(key)
            if variant is None:
                variant = AseVariant(key)
                self._variants[key] = variant
            return variant

    def add_observation(
        self,
        key: VariantKey,
        observation: SampleObservation,
        variant_id: Optional[str] = None,
    ) -> AseVariant:
        """Append an observation to the variant at ``key``, creating it if needed."""
        variant = self.get_or_create(key)
        variant.add_observation(observation, variant_id=variant_id)

        if observation.has_base_quality and not self._encountered_base_quality:
            with self._lock:
                self._encountered_base_quality = True

        return variant

    @property
    def encountered_base_quality(self) -> bool:
        """True if any observation carried a ref or alt base quality."""
        return self._encountered_base_quality

    def size(self) -> int:
        return len(self._variants)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: VariantKey) -> bool:
        return key in self._variants

    def get(self, key: VariantKey) -> Optional[AseVariant]:
        return self._variants.get(key)

    def remove_where(self, predicate: Callable[[AseVariant], bool]) -> int:
        """
        Drop every variant for which ``predicate`` is true.

        Returns the number of variants removed.
        """
        drop = [key for key, variant in self._variants.items() if predicate(variant)]
        for key in drop:
            del self._variants[key]
        return len(drop)

    def iterate(self) -> Iterator[AseVariant]:
        return iter(list(self._variants.values()))

    def __iter__(self) -> Iterator[AseVariant]:
        return self.iterate()
