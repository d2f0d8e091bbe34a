"""
Tests for VariantKey and the VariantSource factory.

Run with: pytest tests/unit/io/test_variant_source.py -v
"""

from pathlib import Path

import pytest

from asemap.io.variant_source import Genotype, VariantKey, VariantSource
from asemap.io.vcf_source import VCFSource


# ============================================================================
# Tests for VariantKey
# ============================================================================

class TestVariantKey:
    """Tests for the variant identity."""

    def test_equal_keys_hash_equal(self):
        a = VariantKey("chr1", 100, "A", "G")
        b = VariantKey("chr1", 100, "A", "G")

        assert a == b
        assert len({a, b}) == 1

    def test_alleles_distinguish(self):
        assert VariantKey("chr1", 100, "A", "G") != VariantKey("chr1", 100, "A", "T")

    def test_immutable(self):
        key = VariantKey("chr1", 100, "A", "G")
        with pytest.raises(AttributeError):
            key.pos = 5

    def test_pos0(self):
        assert VariantKey("chr1", 100, "A", "G").pos0 == 99

    def test_str(self):
        assert str(VariantKey("chr1", 100, "A", "G")) == "chr1:100:A>G"


# ============================================================================
# Tests for format detection and the factory
# ============================================================================

class TestVariantSourceFactory:
    """Tests for VariantSource.open and format detection."""

    @pytest.mark.parametrize(
        "name, fmt",
        [
            ("panel.vcf", "vcf"),
            ("panel.vcf.gz", "vcf"),
            ("panel.vcf.bgz", "vcf"),
            ("panel.bcf", "bcf"),
        ],
    )
    def test_detect_format(self, name, fmt):
        assert VariantSource._detect_format(Path(name)) == fmt

    def test_detect_format_no_extension(self):
        with pytest.raises(ValueError, match="no extension"):
            VariantSource._detect_format(Path("panel"))

    def test_vcf_handlers_registered(self):
        for ext in ("vcf", "vcf.gz", "bcf"):
            assert VariantSource._registry[ext] is VCFSource

    def test_open_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            VariantSource.open(str(tmp_path / "missing.vcf.gz"))

    def test_open_unsupported_format(self, tmp_path):
        path = tmp_path / "panel.pgen"
        path.write_text("")
        with pytest.raises(ValueError, match="Unsupported variant file format"):
            VariantSource.open(str(path))

    def test_open_dispatches_to_vcf(self, sample_vcf_gz):
        with VariantSource.open(str(sample_vcf_gz)) as panel:
            assert isinstance(panel, VCFSource)
            assert panel.samples == ["ref1", "ref2"]

    def test_is_het_uses_genotype(self):
        class OnlyHet(VariantSource):
            samples = ["s1"]

            def genotype(self, key, sample):
                return Genotype.HET if sample == "s1" else Genotype.MISSING

            def variant_id(self, key):
                return None

        source = OnlyHet()
        key = VariantKey("chr1", 1, "A", "C")

        assert source.is_het(key, "s1") is True
        assert source.is_het(key, "s2") is False
