from pathlib import Path
from typing import List, Optional
from typing_extensions import Annotated

import typer

# Local Imports
from asemap.analysis.run_ase import run_ase
from asemap.cli_utils import (
    check_output_writable,
    console,
    create_dry_run_panel,
    create_input_validation_table,
    handle_error,
)
from asemap.config import get_config, setup_logging

app = typer.Typer(pretty_exceptions_short=False)


@app.command()
def run(
    count_files: Annotated[
        Optional[List[str]],
        typer.Argument(help="Allele count files, one or more samples each")
    ] = None,
    out_dir: Annotated[
        str,
        typer.Option(
            "--output",
            "--out",
            "-o",
            help="Output folder for ase.txt and corrected result tables."
        )
    ] = ".",
    input_list: Annotated[
        Optional[str],
        typer.Option(
            "--input_list",
            "--list",
            "-l",
            help="File with one count file path per line, added to the arguments."
        )
    ] = None,
    threads: Annotated[
        Optional[int],
        typer.Option("--threads", "-t", help="Number of loader threads. (Default: 1)")
    ] = None,
    min_samples: Annotated[
        Optional[int],
        typer.Option(
            "--min_samples",
            "-s",
            help="Minimum number of samples with counts to test a variant. (Default: 1)"
        )
    ] = None,
    min_total_reads: Annotated[
        Optional[int],
        typer.Option(
            "--min_total_reads",
            "--min_reads",
            "-r",
            help="Minimum ref + alt reads for a sample to be used. (Default: 10)"
        )
    ] = None,
    min_allele_reads: Annotated[
        Optional[int],
        typer.Option(
            "--min_allele_reads",
            "-a",
            help="Minimum reads on each allele for a sample to be used. (Default: 0)"
        )
    ] = None,
    ref_file: Annotated[
        Optional[str],
        typer.Option(
            "--ref",
            "--reference",
            "-g",
            help=(
                "Indexed VCF/BCF with reference genotypes. "
                "Only samples heterozygous for a variant are used."
            )
        )
    ] = None,
    sample_mapping: Annotated[
        Optional[str],
        typer.Option(
            "--sample_mapping",
            "--mapping",
            "-m",
            help="Tab separated file: reference sample ID, study sample ID. Used with --ref."
        )
    ] = None,
    gtf: Annotated[
        Optional[str],
        typer.Option("--gtf", help="GTF file used to annotate variants with genes.")
    ] = None,
    gene_feature: Annotated[
        Optional[str],
        typer.Option(
            "--gene_feature",
            "--feature",
            help="Only annotate with this GTF feature type. (Default: all features)"
        )
    ] = None,
    gene_attribute: Annotated[
        Optional[str],
        typer.Option(
            "--gene_attribute",
            "--attribute",
            help="GTF attribute reported as gene ID. (Default: gene_id)"
        )
    ] = None,
    corrections: Annotated[
        Optional[List[str]],
        typer.Option(
            "--correction",
            "-c",
            help=(
                "Multiple testing correction to write a table for: "
                "nominal, bonferroni, holm or bh. Repeatable. "
                "(Default: bonferroni, holm, bh)"
            )
        )
    ] = None,
    verbose: Annotated[
        int,
        typer.Option("--verbose", "-v", count=True, help="Increase log verbosity (-v, -vv).")
    ] = 0,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Validate inputs without running the analysis.")
    ] = False,
) -> None:
    """
    Combine allele counts across samples into per-variant meta Z-scores.

    Writes ase.txt with all tested variants and ase_<method>.txt with the
    variants significant after each multiple testing correction.
    """
    config = get_config().merge(
        threads=threads,
        min_samples=min_samples,
        min_total_reads=min_total_reads,
        min_allele_reads=min_allele_reads,
        corrections=corrections,
        gene_feature=gene_feature,
        gene_attribute=gene_attribute,
    )

    if dry_run:
        inputs = [("Counts", f) for f in (count_files or [])]
        for description, path in [
            ("Input list", input_list),
            ("Reference", ref_file),
            ("Sample mapping", sample_mapping),
            ("GTF", gtf),
        ]:
            if path is not None:
                inputs.append((description, path))

        console.print(create_dry_run_panel())
        console.print(create_input_validation_table(inputs))
        console.print(f"Output folder writable: {check_output_writable(Path(out_dir))}")
        return

    if verbose == 0:
        verbose = {"INFO": 1, "DEBUG": 2}.get(config.log_level.upper(), 0)

    try:
        Path(out_dir).mkdir(parents=True, exist_ok=True)
        setup_logging(verbose, log_file=config.log_file or str(Path(out_dir) / "ase.log"))

        run_ase(
            count_files=count_files,
            out_dir=out_dir,
            input_list=input_list,
            threads=config.threads,
            min_samples=config.min_samples,
            min_total_reads=config.min_total_reads,
            min_allele_reads=config.min_allele_reads,
            ref_file=ref_file,
            sample_mapping_file=sample_mapping,
            gtf_file=gtf,
            gene_feature=config.gene_feature,
            gene_attribute=config.gene_attribute,
            corrections=config.corrections,
            report=console.print,
        )
    except Exception as e:
        handle_error(e, "ASE analysis")

    console.print("Program completed")


if __name__ == "__main__":
    app()
