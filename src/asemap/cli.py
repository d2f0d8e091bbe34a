import platform
import sys
from importlib.metadata import PackageNotFoundError, version as pkg_version
from typing import Optional
from typing_extensions import Annotated

import typer
from rich.table import Table

# Local Imports
from asemap import __version__
from asemap.analysis.__main__ import run as run_command
from asemap.cli_utils import console
from asemap.config import AseConfig, get_config, get_config_path, save_config

# Create a Typer app instance with a brief description.
app: typer.Typer = typer.Typer(help="asemap: meta-analysis of allele-specific expression across samples.")

app.command(name="run")(run_command)

DEPENDENCIES = ["numpy", "scipy", "polars", "pysam", "intervaltree", "typer", "rich", "pyyaml"]


def version_callback(value: bool) -> None:
    if value:
        console.print(f"asemap version {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit.")
    ] = None,
) -> None:
    """Allele-specific expression meta-analysis toolkit."""


@app.command()
def info() -> None:
    """Show version, platform, dependency and configuration information."""
    table = Table(title="asemap", show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_row("asemap Version", __version__)
    table.add_row("Python Version", sys.version.split()[0])
    table.add_row("Platform", platform.platform())
    console.print(table)

    deps = Table(title="Dependencies", show_header=True)
    deps.add_column("Package", style="cyan")
    deps.add_column("Version")
    for dep in DEPENDENCIES:
        try:
            deps.add_row(dep, pkg_version(dep))
        except PackageNotFoundError:
            deps.add_row(dep, "[red]not installed[/red]")
    console.print(deps)

    console.print(f"Config file: {get_config_path()}")


@app.command()
def config(
    save: Annotated[
        bool,
        typer.Option("--save", help="Write the current (or default) settings to the config file.")
    ] = False,
    reset: Annotated[
        bool,
        typer.Option("--reset", help="With --save, write defaults instead of current settings.")
    ] = False,
) -> None:
    """Show the active configuration, optionally saving it."""
    current = AseConfig() if reset else get_config()

    table = Table(title="Configuration", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in current.to_dict().items():
        table.add_row(key, str(value))
    console.print(table)

    if save:
        path = save_config(current)
        console.print(f"Saved configuration to {path}")


def main() -> None:
    """
    Entry point for the asemap CLI.

    **Usage Examples:**
      - Combine count files and write corrected tables:
        ```
        asemap run counts/*.tsv -o results -t 8
        ```
      - Use a reference panel and annotate with genes:
        ```
        asemap run -l files.txt -o results --ref panel.vcf.gz --gtf genes.gtf
        ```
    """
    app()


if __name__ == "__main__":
    main()
