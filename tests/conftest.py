"""
Pytest configuration and shared fixtures for asemap tests.

This module provides:
- Count file fixtures and a factory for writing new ones
- A reference panel VCF (bgzipped and tabix-indexed with pysam)
- A small GTF
- Isolation from the user's ~/.asemap configuration
"""

from pathlib import Path
from typing import Callable, Dict, List, Sequence

import pytest

from asemap import config as asemap_config


COUNT_HEADER = ["chrom", "pos", "id", "ref", "alt", "ref_count", "alt_count", "other_count"]


# ============================================================================
# Session-scoped fixtures (created once per test session)
# ============================================================================

@pytest.fixture(scope="session")
def sample_vcf_content() -> str:
    """Minimal reference panel VCF content."""
    return """\
##fileformat=VCFv4.2
##contig=<ID=chr1,length=248956422>
##contig=<ID=chr2,length=242193529>
##FORMAT=<ID=GT,Number=1,Type=String,Description="Genotype">
#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\tFORMAT\tref1\tref2
chr1\t100\trs1\tA\tG\t30\tPASS\t.\tGT\t0/1\t0/0
chr1\t200\trs2\tC\tT\t30\tPASS\t.\tGT\t1/1\t0/1
chr1\t300\trs3\tG\tA,T\t30\tPASS\t.\tGT\t0/2\t1/2
chr2\t100\t.\tA\tT\t30\tPASS\t.\tGT\t0|1\t./.
"""


@pytest.fixture(scope="session")
def sample_vcf_gz(tmp_path_factory, sample_vcf_content) -> Path:
    """Bgzipped and tabix-indexed reference panel."""
    pysam = pytest.importorskip("pysam")

    vcf_path = tmp_path_factory.mktemp("panel") / "panel.vcf"
    vcf_path.write_text(sample_vcf_content)
    gz_path = pysam.tabix_index(str(vcf_path), preset="vcf", force=True)
    return Path(gz_path)


@pytest.fixture(scope="session")
def sample_gtf_content() -> str:
    """GTF with two exons of the same gene and an overlapping second gene."""
    return (
        '#!genome-build test\n'
        'chr1\ttest\tgene\t50\t500\t.\t+\t.\tgene_id "GENE1"; gene_name "G1";\n'
        'chr1\ttest\texon\t90\t150\t.\t+\t.\tgene_id "GENE1"; transcript_id "T1";\n'
        'chr1\ttest\texon\t95\t110\t.\t+\t.\tgene_id "GENE1"; transcript_id "T2";\n'
        'chr1\ttest\tgene\t100\t300\t.\t-\t.\tgene_id "GENE2"; gene_name "G2";\n'
        'chr2\ttest\tgene\t1\t1000\t.\t+\t.\tgene_id "GENE3"; gene_name "G3";\n'
    )


# ============================================================================
# Function-scoped fixtures (created per test)
# ============================================================================

@pytest.fixture(autouse=True)
def default_config(monkeypatch, tmp_path):
    """Never read or write the real user configuration."""
    monkeypatch.setattr(asemap_config, "CONFIG_DIR", tmp_path / ".asemap")
    monkeypatch.setattr(asemap_config, "CONFIG_FILE", tmp_path / ".asemap" / "config.yaml")
    monkeypatch.setattr(asemap_config, "_config", asemap_config.AseConfig())
    yield


@pytest.fixture
def tmp_output_dir(tmp_path) -> Path:
    """Provide a temporary directory for test outputs."""
    output_dir = tmp_path / "output"
    output_dir.mkdir()
    return output_dir


@pytest.fixture
def write_counts(tmp_path) -> Callable[..., Path]:
    """Factory writing a count file from rows of COUNT_HEADER values."""
    count_dir = tmp_path / "counts"
    count_dir.mkdir(exist_ok=True)

    def _write(name: str, rows: Sequence[Sequence], header: List[str] = COUNT_HEADER) -> Path:
        path = count_dir / name
        lines = ["\t".join(header)]
        lines.extend("\t".join(str(v) for v in row) for row in rows)
        path.write_text("\n".join(lines) + "\n")
        return path

    return _write


@pytest.fixture
def sample_count_rows() -> Dict[str, List[tuple]]:
    """Per-sample rows: chrom, pos, id, ref, alt, ref_count, alt_count, other_count."""
    return {
        "sampleA": [
            ("chr1", 100, "rs1", "A", "G", 40, 5, 0),
            ("chr1", 200, ".", "C", "T", 12, 11, 1),
            ("chr2", 100, "rs5", "A", "T", 3, 30, 0),
        ],
        "sampleB": [
            ("chr1", 100, "rs1", "A", "G", 35, 8, 0),
            ("chr1", 200, ".", "C", "T", 10, 14, 0),
        ],
        "sampleC": [
            ("chr1", 100, ".", "A", "G", 50, 2, 0),
            ("chr2", 100, "rs5", "A", "T", 5, 25, 2),
            ("chr2", 500, ".", "G", "C", 20, 20, 0),
        ],
    }


@pytest.fixture
def sample_count_files(write_counts, sample_count_rows) -> List[Path]:
    return [write_counts(f"{sample}.tsv", rows) for sample, rows in sample_count_rows.items()]


@pytest.fixture
def sample_gtf(tmp_path, sample_gtf_content) -> Path:
    gtf_path = tmp_path / "genes.gtf"
    gtf_path.write_text(sample_gtf_content)
    return gtf_path
