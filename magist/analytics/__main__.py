"""
CLI entrypoint for the fit assessment summary.

Usage:
    python -m magist.analytics
"""

from __future__ import annotations

from pathlib import Path

import polars as pl
from rich import box
from rich.console import Console
from rich.table import Table

from magist.analytics.comparison import compare_segments
from magist.contracts.errors import DataUnavailable
from magist.contracts.schemas import ERROR_COLUMN, REPORT_OUTPUT_DIR

console = Console()


def load_report(name: str, output_dir: str | Path = REPORT_OUTPUT_DIR) -> pl.DataFrame:
    """Load a report written by the pipeline, preferring parquet over CSV."""
    for ext, reader in ((".parquet", pl.read_parquet), (".csv", pl.read_csv)):
        path = Path(output_dir) / f"{name}{ext}"
        if path.exists():
            return reader(path)
    raise DataUnavailable(name, f"no report in '{output_dir}'. Run the pipeline first.")


def _fmt(value) -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        return f"{value:,.2f}"
    if isinstance(value, int):
        return f"{value:,}"
    return str(value)


def _render(df: pl.DataFrame, title: str, max_rows: int | None = None) -> Table:
    """Render a report as a rich table, dropping the error column when unused."""
    if ERROR_COLUMN in df.columns and df[ERROR_COLUMN].null_count() == len(df):
        df = df.drop(ERROR_COLUMN)
    table = Table(title=title, box=box.ROUNDED, header_style="bold magenta", expand=False)
    for col in df.columns:
        justify = "right" if df.schema[col].is_numeric() else "left"
        table.add_column(col, justify=justify)
    rows = df.head(max_rows) if max_rows else df
    for row in rows.iter_rows():
        table.add_row(*(_fmt(v) for v in row))
    return table


def _difference_colour(metric: str, diff: float | None) -> str:
    if diff is None or diff == 0:
        return "white"
    # Lower is better for delays, delivery times and low scores
    lower_is_better = metric.startswith(("avg_delay", "avg_abs", "avg_estimated", "pct_delayed", "pct_low"))
    good = diff < 0 if lower_is_better else diff > 0
    return "green" if good else "red"


def main(output_dir: str | Path = REPORT_OUTPUT_DIR) -> pl.DataFrame:
    console.rule("[bold blue]Magist: Tech Segment Fit Assessment")

    console.print("\n[bold cyan]Segment size[/]")
    console.print(_render(load_report("tech_share_overall", output_dir), "Refined tech share of items sold"))
    console.print(_render(load_report("refined_tech_prices", output_dir), "Refined tech price levels"))
    console.print(_render(load_report("tech_sellers", output_dir), "Top tech sellers", max_rows=10))

    console.print("\n[bold cyan]Delivery and satisfaction[/]")
    delivery = load_report("delivery_performance", output_dir)
    reviews = load_report("review_scores", output_dir)
    console.print(_render(delivery, "Delivery performance"))
    console.print(_render(reviews, "Review scores"))

    comparison = compare_segments(delivery, reviews)
    table = Table(title="TECH_SEGMENT vs ALL_ITEMS", box=box.ROUNDED, header_style="bold magenta")
    table.add_column("Metric", style="bold")
    table.add_column("All items", justify="right")
    table.add_column("Tech segment", justify="right")
    table.add_column("Difference", justify="right")
    for row in comparison.iter_rows(named=True):
        colour = _difference_colour(row["metric"], row["difference"])
        diff = "-" if row["difference"] is None else f"[{colour}]{row['difference']:+.2f}[/{colour}]"
        table.add_row(row["metric"], _fmt(row["all_items"]), _fmt(row["tech_segment"]), diff)
    console.print(table)

    console.rule()
    console.print(f"[dim]Reports read from {output_dir}[/dim]")
    return comparison


if __name__ == "__main__":
    main()
