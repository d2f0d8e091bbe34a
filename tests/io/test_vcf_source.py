"""
Tests for the VCF/BCF reference panel.

Run with: pytest tests/io/test_vcf_source.py -v
"""

import pytest

from asemap.io.variant_source import Genotype, VariantKey
from asemap.io.vcf_source import VCFSource


@pytest.fixture
def panel(sample_vcf_gz):
    source = VCFSource(str(sample_vcf_gz))
    yield source
    source.close()


class TestVCFSource:
    """Genotype and identifier lookups."""

    def test_samples(self, panel):
        assert panel.samples == ["ref1", "ref2"]

    def test_biallelic_genotypes(self, panel):
        key = VariantKey("chr1", 100, "A", "G")

        assert panel.genotype(key, "ref1") is Genotype.HET
        assert panel.genotype(key, "ref2") is Genotype.HOM_REF
        assert panel.is_het(key, "ref1")
        assert not panel.is_het(key, "ref2")

    def test_hom_alt(self, panel):
        assert panel.genotype(VariantKey("chr1", 200, "C", "T"), "ref1") is Genotype.HOM_ALT

    def test_multiallelic_relative_to_alt(self, panel):
        second_alt = VariantKey("chr1", 300, "G", "T")
        first_alt = VariantKey("chr1", 300, "G", "A")

        # 0/2 is het for the second alt allele only
        assert panel.genotype(second_alt, "ref1") is Genotype.HET
        assert panel.genotype(first_alt, "ref1") is Genotype.MISSING
        # 1/2 carries another alt allele for either key
        assert panel.genotype(second_alt, "ref2") is Genotype.MISSING

    def test_phased_and_missing(self, panel):
        key = VariantKey("chr2", 100, "A", "T")

        assert panel.genotype(key, "ref1") is Genotype.HET
        assert panel.genotype(key, "ref2") is Genotype.MISSING

    def test_allele_mismatch_is_missing(self, panel):
        assert panel.genotype(VariantKey("chr1", 100, "A", "C"), "ref1") is Genotype.MISSING
        assert panel.genotype(VariantKey("chr1", 100, "T", "G"), "ref1") is Genotype.MISSING

    def test_absent_position_and_contig(self, panel):
        assert panel.genotype(VariantKey("chr1", 150, "A", "G"), "ref1") is Genotype.MISSING
        assert panel.genotype(VariantKey("chrUn", 100, "A", "G"), "ref1") is Genotype.MISSING

    def test_unknown_sample(self, panel):
        assert panel.genotype(VariantKey("chr1", 100, "A", "G"), "nobody") is Genotype.MISSING

    def test_variant_id(self, panel):
        assert panel.variant_id(VariantKey("chr1", 100, "A", "G")) == "rs1"
        assert panel.variant_id(VariantKey("chr2", 100, "A", "T")) is None
        assert panel.variant_id(VariantKey("chr1", 150, "A", "G")) is None

    def test_unindexed_file_rejected(self, tmp_path, sample_vcf_content):
        path = tmp_path / "plain.vcf"
        path.write_text(sample_vcf_content)

        with pytest.raises(ValueError, match="not indexed"):
            VCFSource(str(path))
