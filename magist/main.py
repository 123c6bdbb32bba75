"""
Magist Market Analysis: CLI Entrypoint.

Usage:
    python -m magist.main generate    # Generate a synthetic Magist dataset
    python -m magist.main pipeline    # Build every report from the raw tables
    python -m magist.main analyze     # Print the tech segment fit assessment
    python -m magist.main run-all     # Full end-to-end run
"""

import click
from rich.console import Console

from magist.contracts.errors import DataUnavailable
from magist.contracts.schemas import RAW_DATA_DIR, REPORT_FORMATS, REPORT_OUTPUT_DIR

console = Console()

data_dir_option = click.option(
    "--data-dir",
    default=RAW_DATA_DIR,
    show_default=True,
    type=click.Path(file_okay=False),
    help="Directory holding the raw marketplace tables (env: MAGIST_DATA_DIR).",
)
output_dir_option = click.option(
    "--output-dir",
    default=REPORT_OUTPUT_DIR,
    show_default=True,
    type=click.Path(file_okay=False),
    help="Directory for report tables (env: MAGIST_OUTPUT_DIR).",
)


@click.group()
def cli():
    """Magist marketplace fit assessment for a premium tech product line."""
    pass


@cli.command()
@data_dir_option
@click.option("--orders", "n_orders", default=2_000, show_default=True, type=click.IntRange(min=1))
@click.option("--seed", default=42, show_default=True, type=int)
def generate(data_dir, n_orders, seed):
    """Generate a synthetic Magist dataset."""
    console.rule("[bold]Step 1: Data Generation[/bold]")
    from magist.data_generator.generate import main
    main(data_dir, n_orders, seed)
    console.print("[green]Data generation complete.[/green]\n")


@cli.command()
@data_dir_option
@output_dir_option
@click.option(
    "--format", "formats",
    multiple=True,
    type=click.Choice(REPORT_FORMATS),
    help="Report file format; repeat for several. Defaults to all.",
)
def pipeline(data_dir, output_dir, formats):
    """Build every report from the raw tables."""
    console.rule("[bold]Step 2: Pipeline[/bold]")
    from magist.pipeline.__main__ import main as pipeline_main
    try:
        pipeline_main(data_dir, output_dir, list(formats) or None)
    except DataUnavailable as exc:
        raise click.ClickException(str(exc)) from exc
    console.print("[green]Pipeline complete.[/green]\n")


@cli.command()
@output_dir_option
def analyze(output_dir):
    """Print the tech segment fit assessment from written reports."""
    console.rule("[bold]Step 3: Analytics[/bold]")
    from magist.analytics.__main__ import main as analytics_main
    try:
        analytics_main(output_dir)
    except DataUnavailable as exc:
        raise click.ClickException(str(exc)) from exc
    console.print("[green]Analytics complete.[/green]\n")


@cli.command(name="run-all")
@data_dir_option
@output_dir_option
@click.pass_context
def run_all(ctx, data_dir, output_dir):
    """Run the full pipeline end-to-end on a fresh synthetic dataset."""
    console.rule("[bold cyan]Magist Market Analysis[/bold cyan]")
    console.print("Running full end-to-end pipeline...\n")

    ctx.invoke(generate, data_dir=data_dir, n_orders=2_000, seed=42)
    ctx.invoke(pipeline, data_dir=data_dir, output_dir=output_dir, formats=())
    ctx.invoke(analyze, output_dir=output_dir)

    console.rule("[bold green]Pipeline Complete[/bold green]")
    console.print("\nOutputs:")
    console.print(f"  Raw tables: {data_dir}/*.csv")
    console.print(f"  Reports:    {output_dir}/*.csv, {output_dir}/*.parquet")


if __name__ == "__main__":
    cli()
