"""
Reader for per-sample allele count files.

A count file is a tab separated table with a header. Required columns are
``chrom, pos, ref, alt, ref_count, alt_count``. Optional columns ``sample``,
``id``, ``ref_bq`` and ``alt_bq`` carry the sample ID, variant ID and mean
base quality of ref/alt supporting reads. Any other column is ignored, so
the ``counts.tsv`` written by allele counting tools can be used directly.
"""

import re
from pathlib import Path
from typing import Iterator, NamedTuple, Optional

import polars as pl

from asemap.errors import CountFileError
from asemap.io.variant_source import VariantKey


REQUIRED_COLS = ["chrom", "pos", "ref", "alt", "ref_count", "alt_count"]
OPTIONAL_COLS = ["sample", "id", "ref_bq", "alt_bq"]

# Treated as a missing variant ID
MISSING_IDS = {"", "."}


class CountRecord(NamedTuple):
    key: VariantKey
    sample_id: str
    variant_id: Optional[str]
    ref_count: int
    alt_count: int
    ref_base_quality: Optional[float]
    alt_base_quality: Optional[float]


def sample_id_from_path(count_file: str) -> str:
    """
    Derive a sample ID from a count file name.

    >>> sample_id_from_path("/data/NA12878.counts.tsv.gz")
    'NA12878'
    """
    return re.sub(r'(\.counts)?(\.tsv|\.txt)?(\.gz)?$', '', Path(count_file).name)


def read_count_df(count_file: str) -> pl.DataFrame:
    """
    Read and validate one count file into a Polars DataFrame.

    All columns are read as strings first and cast afterwards so allele
    columns are never mis-inferred and bad values point at the file.

    Raises
    ------
    CountFileError
        On missing columns, unparsable numbers or negative counts.
    """
    try:
        df = pl.read_csv(
            count_file,
            separator="\t",
            has_header=True,
            infer_schema_length=0,
            comment_prefix="#",
        )
    except (OSError, pl.exceptions.PolarsError) as e:
        raise CountFileError(count_file, f"unable to read count file ({e})") from e

    missing = [col for col in REQUIRED_COLS if col not in df.columns]
    if missing:
        raise CountFileError(count_file, f"missing required columns: {', '.join(missing)}")

    keep_cols = REQUIRED_COLS + [col for col in OPTIONAL_COLS if col in df.columns]

    cast_cols = [
        pl.col("pos").cast(pl.Int64),
        pl.col("ref_count").cast(pl.Int64),
        pl.col("alt_count").cast(pl.Int64),
    ]
    for bq_col in ("ref_bq", "alt_bq"):
        if bq_col in df.columns:
            cast_cols.append(pl.col(bq_col).cast(pl.Float64))

    try:
        df = df.select(keep_cols).with_columns(cast_cols)
    except pl.exceptions.PolarsError as e:
        raise CountFileError(count_file, f"invalid numeric value ({e})") from e

    if df.height > 0:
        if df.select(pl.sum_horizontal(pl.col(REQUIRED_COLS).null_count())).item() > 0:
            raise CountFileError(count_file, "empty value in required column")
        if df.filter((pl.col("ref_count") < 0) | (pl.col("alt_count") < 0)).height > 0:
            raise CountFileError(count_file, "negative allele count")
        if df.filter(pl.col("pos") < 1).height > 0:
            raise CountFileError(count_file, "positions must be 1-based")

    return df


def read_counts(count_file: str) -> Iterator[CountRecord]:
    """
    Yield one CountRecord per row of a count file.

    Parameters
    ----------
    count_file : str
        Path to the (optionally gzipped) count file.

    Yields
    ------
    CountRecord
    """
    df = read_count_df(count_file)
    default_sample = sample_id_from_path(count_file)

    for row in df.iter_rows(named=True):
        sample_id = row.get("sample") or default_sample
        variant_id = row.get("id")
        if variant_id in MISSING_IDS:
            variant_id = None

        yield CountRecord(
            key=VariantKey(row["chrom"], row["pos"], row["ref"], row["alt"]),
            sample_id=sample_id,
            variant_id=variant_id,
            ref_count=row["ref_count"],
            alt_count=row["alt_count"],
            ref_base_quality=row.get("ref_bq"),
            alt_base_quality=row.get("alt_bq"),
        )
