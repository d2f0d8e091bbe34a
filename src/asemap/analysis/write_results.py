"""
Writing ranked ASE results to tab separated tables.
"""

# Default Python package Imports
import logging
import math
import os
import uuid
from pathlib import Path
from typing import Iterable, List, Optional

# External package imports
import polars as pl

# Local script imports
from asemap.analysis.annotate import GeneIntervalIndex, join_genes
from asemap.analysis.correction import CorrectionMethod, RankedVariant, rank_variants
from asemap.results.ase_variant import AseVariant


logger = logging.getLogger(__name__)

MISSING = "."

BASE_COLS = [
    "Meta_P", "Meta_Z", "Chr", "Pos", "SnpId", "Sample_Count",
    "Ref_Allele", "Alt_Allele", "Count_Pearson_R",
]
GENE_COLS = ["Genes"]
SAMPLE_COLS = ["Ref_Counts", "Alt_Counts", "SampleIds"]
BASE_QUALITY_COLS = [
    "Ref_MeanBaseQuality", "Alt_MeanBaseQuality",
    "Ref_MeanBaseQualities", "Alt_MeanBaseQualities",
]


def format_float(value: Optional[float]) -> str:
    if value is None:
        return MISSING
    if math.isnan(value):
        return "NaN"
    return repr(float(value))


def make_header(with_genes: bool, with_base_quality: bool) -> List[str]:
    cols = list(BASE_COLS)
    if with_genes:
        cols += GENE_COLS
    cols += SAMPLE_COLS
    if with_base_quality:
        cols += BASE_QUALITY_COLS
    return cols


def format_row(
    variant: AseVariant,
    gene_index: Optional[GeneIntervalIndex] = None,
    with_base_quality: bool = False,
) -> List[str]:
    """Output fields for one finalized variant, per-sample lists in load order."""
    fields = [
        format_float(variant.meta_p),
        format_float(variant.meta_z),
        variant.chrom,
        str(variant.pos),
        variant.variant_id if variant.variant_id is not None else MISSING,
        str(variant.sample_count),
        variant.key.ref,
        variant.key.alt,
        format_float(variant.count_pearson_r),
    ]

    genes = join_genes(gene_index, variant.chrom, variant.pos)
    if genes is not None:
        fields.append(genes)

    fields += [
        ",".join(str(c) for c in variant.ref_counts),
        ",".join(str(c) for c in variant.alt_counts),
        ",".join(variant.sample_ids),
    ]

    if with_base_quality:
        ref_bq = variant.ref_base_qualities
        alt_bq = variant.alt_base_qualities
        fields += [
            format_float(AseVariant.mean_base_quality(ref_bq)),
            format_float(AseVariant.mean_base_quality(alt_bq)),
            ",".join(format_float(q) for q in ref_bq),
            ",".join(format_float(q) for q in alt_bq),
        ]

    return fields


def write_rows(
    out_file: str,
    ranked: Iterable[RankedVariant],
    gene_index: Optional[GeneIntervalIndex] = None,
    with_base_quality: bool = False,
) -> int:
    """
    Write ranked variants to ``out_file`` and return the number of rows.

    The table goes to a temporary file next to ``out_file`` which replaces
    it only once every row is written; on failure the temporary file is
    removed and no output file is left behind.
    """
    out_path = Path(out_file)
    header = make_header(gene_index is not None, with_base_quality)

    # Ranking errors surface here, before anything touches the disk
    rows = [format_row(r.variant, gene_index, with_base_quality) for r in ranked]

    ase_df = pl.DataFrame(
        {col: [row[i] for row in rows] for i, col in enumerate(header)},
        schema={col: pl.String for col in header},
    )

    tmp_path = out_path.with_name(f".{out_path.name}.{uuid.uuid4().hex}.tmp")
    try:
        ase_df.write_csv(tmp_path, separator="\t", include_header=True, quote_style="never")
        os.replace(tmp_path, out_path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise

    return ase_df.height


def write_ase_results(
    out_dir: str,
    variants: List[AseVariant],
    method: CorrectionMethod,
    gene_index: Optional[GeneIntervalIndex] = None,
    with_base_quality: bool = False,
) -> int:
    """
    Rank, correct and write one result table.

    Parameters
    ----------
    out_dir : str
        Output directory, the file name follows the correction method.
    variants : list of AseVariant
        Finalized variants sorted by descending absolute meta Z-score.
    method : CorrectionMethod
        Correction policy deciding how many ranked variants are written.
    gene_index : GeneIntervalIndex, optional
        Gene annotation; without it the Genes column is omitted.
    with_base_quality : bool
        Include the four base quality columns.

    Returns
    -------
    int
        Number of variants written.
    """
    out_file = Path(out_dir) / method.out_name
    written = write_rows(
        str(out_file),
        rank_variants(variants, method),
        gene_index=gene_index,
        with_base_quality=with_base_quality,
    )
    logger.debug(f"Wrote {written} variants to {out_file}")
    return written
