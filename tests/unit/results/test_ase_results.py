"""
Unit tests for the results package.

Tests cover:
- AseVariant observation bookkeeping and statistics lifecycle
- AseResults get-or-create atomicity under concurrent callers
- Filtering and the base quality flag

Run with: pytest tests/unit/results/test_ase_results.py -v
"""

import math
import threading

import pytest

from asemap.errors import ProcessingConsistencyError
from asemap.io.variant_source import VariantKey
from asemap.results.ase_results import AseResults
from asemap.results.ase_variant import AseVariant, SampleObservation


KEY = VariantKey("chr1", 100, "A", "G")


class TestAseVariant:
    """Tests for the per-variant accumulator."""

    def test_observations_keep_append_order(self):
        variant = AseVariant(KEY)
        variant.add_observation(SampleObservation("s1", 10, 2))
        variant.add_observation(SampleObservation("s2", 3, 9))

        assert variant.sample_count == 2
        assert variant.sample_ids == ["s1", "s2"]
        assert variant.ref_counts == [10, 3]
        assert variant.alt_counts == [2, 9]

    def test_first_variant_id_wins(self):
        variant = AseVariant(KEY)
        variant.add_observation(SampleObservation("s1", 10, 2))
        variant.add_observation(SampleObservation("s2", 10, 2), variant_id="rs1")
        variant.add_observation(SampleObservation("s3", 10, 2), variant_id="rs9")

        assert variant.variant_id == "rs1"

    def test_statistics_unavailable_before_calculation(self):
        variant = AseVariant(KEY)
        variant.add_observation(SampleObservation("s1", 10, 2))

        assert variant.is_finalized is False
        with pytest.raises(ProcessingConsistencyError):
            _ = variant.meta_z
        with pytest.raises(ProcessingConsistencyError):
            _ = variant.meta_p
        with pytest.raises(ProcessingConsistencyError):
            _ = variant.count_pearson_r

    def test_calculate_statistics_once(self):
        variant = AseVariant(KEY)
        variant.add_observation(SampleObservation("s1", 30, 2))
        variant.add_observation(SampleObservation("s2", 25, 5))
        variant.calculate_statistics()

        assert variant.meta_z > 0
        assert 0 <= variant.meta_p < 0.05
        assert variant.count_pearson_r == pytest.approx(-1.0)

        with pytest.raises(ProcessingConsistencyError):
            variant.calculate_statistics()

    def test_no_append_after_calculation(self):
        variant = AseVariant(KEY)
        variant.add_observation(SampleObservation("s1", 30, 2))
        variant.calculate_statistics()

        with pytest.raises(ProcessingConsistencyError):
            variant.add_observation(SampleObservation("s2", 1, 1))

    def test_mean_base_quality_skips_missing(self):
        assert AseVariant.mean_base_quality([30.0, None, 20.0]) == pytest.approx(25.0)
        assert math.isnan(AseVariant.mean_base_quality([None, None]))


class TestAseResults:
    """Tests for the shared variant store."""

    def test_get_or_create_returns_same_instance(self):
        results = AseResults()
        first = results.get_or_create(KEY)
        second = results.get_or_create(VariantKey("chr1", 100, "A", "G"))

        assert first is second
        assert results.size() == 1
        assert len(results) == 1

    def test_alleles_are_part_of_identity(self):
        results = AseResults()
        results.get_or_create(KEY)
        results.get_or_create(VariantKey("chr1", 100, "A", "T"))

        assert results.size() == 2

    def test_concurrent_first_touch_creates_one_variant(self):
        results = AseResults()
        n_threads = 16
        barrier = threading.Barrier(n_threads)
        seen = []
        seen_lock = threading.Lock()

        def touch():
            barrier.wait()
            variant = results.get_or_create(KEY)
            with seen_lock:
                seen.append(variant)

        threads = [threading.Thread(target=touch) for _ in range(n_threads)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.size() == 1
        assert all(v is seen[0] for v in seen)

    def test_concurrent_appends_lose_nothing(self):
        results = AseResults()
        keys = [VariantKey("chr1", pos, "A", "G") for pos in range(1, 11)]
        n_threads = 8
        per_thread = 200
        barrier = threading.Barrier(n_threads)

        def worker(worker_idx):
            barrier.wait()
            for i in range(per_thread):
                key = keys[i % len(keys)]
                results.add_observation(key, SampleObservation(f"w{worker_idx}_{i}", i, 1))

        threads = [threading.Thread(target=worker, args=(w,)) for w in range(n_threads)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.size() == len(keys)
        total = sum(variant.sample_count for variant in results)
        assert total == n_threads * per_thread
        for variant in results:
            assert variant.sample_count == n_threads * per_thread // len(keys)

    def test_remove_where(self):
        results = AseResults()
        results.add_observation(KEY, SampleObservation("s1", 5, 5))
        results.add_observation(KEY, SampleObservation("s2", 5, 5))
        other = VariantKey("chr2", 5, "C", "T")
        results.add_observation(other, SampleObservation("s1", 5, 5))

        removed = results.remove_where(lambda v: v.sample_count < 2)

        assert removed == 1
        assert KEY in results
        assert other not in results
        assert [v.key for v in results.iterate()] == [KEY]

    def test_base_quality_flag(self):
        results = AseResults()
        results.add_observation(KEY, SampleObservation("s1", 5, 5))
        assert results.encountered_base_quality is False

        results.add_observation(KEY, SampleObservation("s2", 5, 5, ref_base_quality=31.5))
        assert results.encountered_base_quality is True
