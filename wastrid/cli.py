"""
Command-line entry point for wastrid.

    wastrid -i genes.tre -o species.tre -m internode -t 8
    wastrid -i genes.tre --matrix -o distances.phy
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Tuple

import typer
from pydantic import ValidationError
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from wastrid import __version__
from wastrid._collection import TreeCollection
from wastrid._config import Mode, WastridConfig
from wastrid._exceptions import WastridError
from wastrid._pipeline import distance_matrix_text, estimate_species_tree

app = typer.Typer(
    name="wastrid",
    help="Species tree estimation from gene trees via averaged pairwise distances",
    add_completion=False,
)

console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        rprint(f"wastrid version {__version__}")
        raise typer.Exit


def parse_bounds(text: str) -> Tuple[float, float]:
    """Parse a ``"LOWER UPPER"`` support range."""
    parts = text.split()
    if len(parts) != 2:
        raise typer.BadParameter("expected two numbers, e.g. '0 100'")
    try:
        lower, upper = float(parts[0]), float(parts[1])
    except ValueError:
        raise typer.BadParameter(f"not a number in {text!r}") from None
    if not upper > lower:
        raise typer.BadParameter("first bound must be less than second bound")
    return lower, upper


def _configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@app.command()
def main(
    input: Path = typer.Option(
        ...,
        "--input",
        "-i",
        help="Newline-delimited Newick gene trees",
        dir_okay=False,
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Output path (standard output if omitted)",
    ),
    mode: Mode = typer.Option(
        Mode.SUPPORT,
        "--mode",
        "-m",
        help="Distance mode: support, internode or nlength",
    ),
    bounds: str = typer.Option(
        "0.0 1.0",
        "--bounds",
        "-b",
        help="Raw support range mapped linearly onto [0, 1]",
    ),
    threads: int = typer.Option(
        1,
        "--threads",
        "-t",
        help="Worker threads for distance accumulation",
        min=1,
    ),
    impute: Mode = typer.Option(
        Mode.INTERNODE,
        "--impute",
        help="Distance mode used to write UPGMA* estimates into missing cells",
    ),
    matrix: bool = typer.Option(
        False,
        "--matrix",
        help="Write the completed distance matrix (PHYLIP) instead of a tree",
    ),
    backend: str = typer.Option(
        "best",
        "--backend",
        help="Accumulation backend: best, numba or python",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging"
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Only log warnings and errors"
    ),
    version: bool = typer.Option(
        None,
        "--version",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """
    Estimate a species tree from gene trees.

    Each gene tree is turned into pairwise taxon distances, the distances
    are averaged over all gene trees, missing pairs are imputed with UPGMA*,
    and the completed matrix is searched with balanced minimum evolution
    plus nearest-neighbour interchange.
    """
    _configure_logging(verbose, quiet)
    lower, upper = parse_bounds(bounds)

    try:
        config = WastridConfig(
            mode=mode,
            lower_bound=lower,
            upper_bound=upper,
            threads=threads,
            impute_mode=impute,
            backend=backend,
        )
    except ValidationError as e:
        console.print(f"[red]Error: invalid configuration: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None

    try:
        collection = TreeCollection.from_newick(input, config)
        if matrix:
            text = distance_matrix_text(collection, config)
        else:
            text = estimate_species_tree(collection, config) + "\n"
    except (WastridError, OSError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None

    if output is None:
        typer.echo(text, nl=False)
        return
    try:
        output.write_text(text, encoding="utf-8")
    except OSError as e:
        console.print(f"[red]Error writing {output}: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None
    console.print(f"[green]Wrote {output}[/green]")


if __name__ == "__main__":
    app()
