"""
Annotation of variants with overlapping genes.

A GTF file is parsed with Polars into one IntervalTree per chromosome.
Variants are annotated with the identifiers of every feature that
contains their position, deduplicated with the first occurrence kept.
"""

# Default Python package Imports
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

# External package imports
import polars as pl
from intervaltree import Interval, IntervalTree

# Local script imports
from asemap.errors import ConfigurationError


GTF_COLS = [
    "seqname", "source", "feature",
    "start", "end", "score",
    "strand", "frame", "attribute"
]


class GeneIntervalIndex:
    """
    Per-chromosome interval index of gene features.

    Intervals are stored half-open (``Interval(start, end + 1)``) so that a
    1-based closed GTF feature ``[start, end]`` contains ``pos`` iff
    ``start <= pos <= end``. Each interval carries ``(order, gene_id)``
    where ``order`` is the feature's position in the input, used to keep
    query results stable.
    """

    def __init__(self) -> None:
        self._trees: Dict[str, IntervalTree] = defaultdict(IntervalTree)
        self._count = 0

    def add(self, chrom: str, start: int, end: int, gene_id: str) -> None:
        """Add a 1-based closed interval."""
        if end < start:
            raise ValueError(f"Invalid interval {chrom}:{start}-{end} for {gene_id}")
        self._trees[chrom].add(Interval(start, end + 1, (self._count, gene_id)))
        self._count += 1

    @classmethod
    def from_records(cls, records: Iterable[Tuple[str, int, int, str]]) -> "GeneIntervalIndex":
        index = cls()
        for chrom, start, end, gene_id in records:
            index.add(chrom, start, end, gene_id)
        return index

    def search_position(self, chrom: str, pos: int) -> List[str]:
        """
        Gene IDs of all features containing ``pos``, possibly repeated.

        Ordered by feature start, then by input order.
        """
        tree = self._trees.get(chrom)
        if tree is None:
            return []

        hits = sorted(tree.at(pos), key=lambda iv: (iv.begin, iv.data[0]))
        return [iv.data[1] for iv in hits]

    def genes_at(self, chrom: str, pos: int) -> List[str]:
        """Deduplicated gene IDs overlapping ``pos``, first occurrence wins."""
        return list(dict.fromkeys(self.search_position(chrom, pos)))

    @property
    def chromosomes(self) -> List[str]:
        return list(self._trees.keys())

    def __len__(self) -> int:
        return self._count


def join_genes(index: Optional[GeneIntervalIndex], chrom: str, pos: int, sep: str = ",") -> Optional[str]:
    """
    Genes field for one variant.

    Returns None when no index is configured, which means the column is
    left out of the output entirely.
    """
    if index is None:
        return None
    return sep.join(index.genes_at(chrom, pos))


def parse_gtf(
    gtf_file: str,
    feature: Optional[str] = None,
    attribute: str = "gene_id",
) -> pl.DataFrame:
    """
    Parse a GTF file into a DataFrame of intervals.

    Parameters
    ----------
    gtf_file : str
        Path to the GTF (optionally gzipped).
    feature : str, optional
        Only keep rows of this feature type (e.g. "exon", "gene"). All rows
        are kept by default.
    attribute : str
        Attribute used as the gene identifier. Defaults to "gene_id".

    Returns
    -------
    polars.DataFrame
        Columns: "seqname", "start", "end", attribute. Coordinates are
        1-based closed, as in the GTF.

    Raises
    ------
    ConfigurationError
        If the file cannot be read or has no usable rows.
    """
    if not Path(gtf_file).is_file():
        raise ConfigurationError(f"Cannot read GTF file: {gtf_file}")

    try:
        df = pl.read_csv(
            gtf_file,
            separator="\t",
            comment_prefix="#",
            has_header=False,
            new_columns=GTF_COLS,
            infer_schema_length=0,
            quote_char=None,
        )
    except (OSError, pl.exceptions.PolarsError) as e:
        raise ConfigurationError(f"Cannot read GTF file: {gtf_file}. Error: {e}") from e

    if df.width != len(GTF_COLS):
        raise ConfigurationError(f"Expected {len(GTF_COLS)} columns in GTF file {gtf_file}, found {df.width}")

    if feature is not None:
        df = df.filter(pl.col("feature") == feature)

    attr_regex = fr'{attribute}[=\s]\"?\'?(.*?)\"?\'?;'

    try:
        df = df.with_columns(
            pl.col("start").cast(pl.Int64),
            pl.col("end").cast(pl.Int64),
            pl.col("attribute").str.extract(attr_regex).alias(attribute),
        ).select(["seqname", "start", "end", attribute])
    except pl.exceptions.PolarsError as e:
        raise ConfigurationError(f"Invalid coordinates in GTF file {gtf_file}: {e}") from e

    # Features without the attribute cannot be reported
    return df.filter(pl.col(attribute).is_not_null())


def make_gene_index(
    gtf_file: str,
    feature: Optional[str] = None,
    attribute: str = "gene_id",
) -> GeneIntervalIndex:
    """Parse a GTF file and build a GeneIntervalIndex from it."""
    df = parse_gtf(gtf_file, feature=feature, attribute=attribute)
    return GeneIntervalIndex.from_records(df.iter_rows())
