"""
ASE meta-analysis pipeline: load counts, compute statistics, write tables.
"""

# Default Python package Imports
import logging
import timeit
from pathlib import Path
from typing import Callable, Dict, List, Optional

# Local script imports
from asemap.analysis.annotate import GeneIntervalIndex, make_gene_index
from asemap.analysis.correction import CorrectionMethod, sort_by_significance
from asemap.analysis.write_results import write_ase_results
from asemap.errors import ConfigurationError
from asemap.io.sample_mapping import read_sample_mapping
from asemap.io.variant_source import VariantSource
from asemap.loading.read_counts_loader import load_read_counts
from asemap.results.ase_results import AseResults


logger = logging.getLogger(__name__)


class AseRunFiles:
    """
    Input files and parameters of one ASE run.

    Validates every input path up front so that configuration problems are
    reported before any work is done or any output written.

    Attributes
    ----------
    count_files : list of str
        Count files to load, from ``count_files`` and/or ``input_list``.
    out_dir : str
        Output folder, created if missing.
    ref_file : str or None
        Indexed VCF/BCF reference genotype panel.
    sample_mapping_file : str or None
        Study to reference sample ID mapping.
    gtf_file : str or None
        GTF used to annotate variants with genes.
    corrections : list of CorrectionMethod
        Tables to write, NONE always first.
    """

    def __init__(
        self,
        count_files: Optional[List[str]] = None,
        out_dir: Optional[str] = None,
        input_list: Optional[str] = None,
        ref_file: Optional[str] = None,
        sample_mapping_file: Optional[str] = None,
        gtf_file: Optional[str] = None,
        corrections: Optional[List[str]] = None,
    ) -> None:
        self.count_files: List[str] = [str(f) for f in (count_files or [])]
        self.out_dir: str = out_dir if out_dir is not None else str(Path.cwd())
        self.ref_file: Optional[str] = ref_file
        self.sample_mapping_file: Optional[str] = sample_mapping_file
        self.gtf_file: Optional[str] = gtf_file

        # File with one count file per line
        if input_list is not None:
            if not Path(input_list).is_file():
                raise ConfigurationError(f"Input list not found: {input_list}")
            with open(input_list, encoding="utf-8") as f:
                self.count_files.extend(line.strip() for line in f if line.strip())

        if not self.count_files:
            raise ConfigurationError("No input count files given")

        missing = [f for f in self.count_files if not Path(f).is_file()]
        if missing:
            shown = ", ".join(missing[:5]) + (" ..." if len(missing) > 5 else "")
            raise ConfigurationError(f"{len(missing)} input files not found: {shown}")

        for path, description in [
            (self.ref_file, "Reference genotype file"),
            (self.sample_mapping_file, "Sample mapping file"),
            (self.gtf_file, "GTF file"),
        ]:
            if path is not None and not Path(path).is_file():
                raise ConfigurationError(f"{description} not found: {path}")

        methods = [CorrectionMethod.parse(m) for m in (corrections or [])]
        self.corrections: List[CorrectionMethod] = [CorrectionMethod.NONE] + [
            m for m in dict.fromkeys(methods) if m is not CorrectionMethod.NONE
        ]

        out_path = Path(self.out_dir)
        if out_path.exists() and not out_path.is_dir():
            raise ConfigurationError(f"Output folder is a file: {self.out_dir}")


def open_reference(ref_file: str) -> VariantSource:
    try:
        return VariantSource.open(ref_file)
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Unable to load reference genotypes file: {e}") from e


def run_ase(
    count_files: Optional[List[str]] = None,
    out_dir: Optional[str] = None,
    input_list: Optional[str] = None,
    threads: int = 1,
    min_samples: int = 1,
    min_total_reads: int = 0,
    min_allele_reads: int = 0,
    ref_file: Optional[str] = None,
    sample_mapping_file: Optional[str] = None,
    gtf_file: Optional[str] = None,
    gene_feature: Optional[str] = None,
    gene_attribute: str = "gene_id",
    corrections: Optional[List[str]] = None,
    report: Optional[Callable[[str], None]] = None,
) -> Dict[str, int]:
    """
    Run the ASE meta-analysis pipeline.

    Loads all count files concurrently, drops variants seen in fewer than
    ``min_samples`` samples, computes per-variant statistics, sorts by
    descending absolute meta Z-score and writes one table per correction
    method (``ase.txt`` plus ``ase_<method>.txt``).

    Parameters
    ----------
    count_files : list of str, optional
        Count files, one or more samples each.
    out_dir : str, optional
        Output folder. Defaults to the current working directory.
    input_list : str, optional
        File listing additional count files, one per line.
    threads : int
        Loader threads, capped at the number of files.
    min_samples : int
        Minimum number of samples for a variant to be reported.
    min_total_reads, min_allele_reads : int
        Per-sample read filters applied while loading.
    ref_file : str, optional
        Indexed reference genotype VCF/BCF; only heterozygous samples are used.
    sample_mapping_file : str, optional
        Tab separated reference/study sample ID pairs, applied with ``ref_file``.
    gtf_file : str, optional
        GTF for gene annotation.
    gene_feature : str, optional
        GTF feature type to annotate with. All features by default.
    gene_attribute : str
        GTF attribute reported as gene ID.
    corrections : list of str, optional
        Correction methods besides NONE.
    report : callable, optional
        Sink for user-facing progress messages. Defaults to logging.

    Returns
    -------
    dict
        Output file name -> number of variants written.

    Examples
    --------
    >>> run_ase(["s1.tsv", "s2.tsv"], out_dir="out", threads=2, corrections=["bonferroni"])
    {'ase.txt': 120, 'ase_bonferroni.txt': 4}
    """
    if report is None:
        report = logger.info

    if threads < 1:
        raise ConfigurationError(f"Thread count must be at least 1, got {threads}")

    run_files = AseRunFiles(
        count_files=count_files,
        out_dir=out_dir,
        input_list=input_list,
        ref_file=ref_file,
        sample_mapping_file=sample_mapping_file,
        gtf_file=gtf_file,
        corrections=corrections,
    )
    Path(run_files.out_dir).mkdir(parents=True, exist_ok=True)

    # Everything that can fail on bad input is loaded before counting
    sample_mapping = None
    if run_files.sample_mapping_file is not None:
        sample_mapping = read_sample_mapping(run_files.sample_mapping_file)
        if run_files.ref_file is None:
            logger.warning("Sample mapping ignored, it only applies together with a reference genotype file")
            sample_mapping = None
        else:
            report(f"Found {len(sample_mapping):,} sample mappings")

    gene_index: Optional[GeneIntervalIndex] = None
    if run_files.gtf_file is not None:
        report("Started loading GTF file.")
        gene_index = make_gene_index(run_files.gtf_file, feature=gene_feature, attribute=gene_attribute)
        report(f"Loaded {len(gene_index):,} annotations from GTF file.")

    reference = None
    if run_files.ref_file is not None:
        reference = open_reference(run_files.ref_file)
        report("Loading reference data complete")

    start = timeit.default_timer()
    results = AseResults()
    try:
        samples = load_read_counts(
            run_files.count_files,
            results,
            threads=threads,
            reference=reference,
            sample_mapping=sample_mapping,
            min_total_reads=min_total_reads,
            min_allele_reads=min_allele_reads,
            report=report,
        )
    finally:
        if reference is not None:
            reference.close()

    report(
        f"Loading files complete. Detected {len(samples):,} samples "
        f"in {timeit.default_timer() - start:.2f} seconds."
    )

    removed = results.remove_where(lambda v: v.sample_count < min_samples)
    logger.info(f"Removed {removed} variants with fewer than {min_samples} samples")

    for variant in results:
        variant.calculate_statistics()

    variants = sort_by_significance(results)
    logger.info(f"Performed {len(variants):,} tests")

    written: Dict[str, int] = {}
    for method in run_files.corrections:
        n_written = write_ase_results(
            run_files.out_dir,
            variants,
            method,
            gene_index=gene_index,
            with_base_quality=results.encountered_base_quality,
        )
        written[method.out_name] = n_written

        if method is CorrectionMethod.NONE:
            report(f"Completed writing all {n_written:,} ASE variants")
        else:
            report(f"Completed writing {n_written:,} {method.value} significant ASE variants")

    return written
