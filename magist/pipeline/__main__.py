"""
CLI entrypoint: python -m magist.pipeline
Loads the marketplace snapshot, builds every report and writes them out.
"""

from __future__ import annotations

from pathlib import Path

import polars as pl

from magist.analytics.reports import ReportInputs, build_reports
from magist.contracts.schemas import (
    ERROR_COLUMN,
    RAW_DATA_DIR,
    REPORT_FORMATS,
    REPORT_OUTPUT_DIR,
)
from magist.pipeline.ingest import load_dataset


def write_reports(
    reports: dict[str, pl.DataFrame],
    output_dir: str | Path = REPORT_OUTPUT_DIR,
    formats: list[str] | None = None,
) -> list[Path]:
    """Write one file per report and format; returns the written paths."""
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    written = []
    for name, df in reports.items():
        for fmt in formats or REPORT_FORMATS:
            path = out / f"{name}.{fmt}"
            if fmt == "csv":
                df.write_csv(path)
            elif fmt == "parquet":
                df.write_parquet(path)
            else:
                raise ValueError(f"Unsupported report format: {fmt}")
            written.append(path)
    return written


def main(
    data_dir: str | Path = RAW_DATA_DIR,
    output_dir: str | Path = REPORT_OUTPUT_DIR,
    formats: list[str] | None = None,
) -> dict[str, pl.DataFrame]:
    print("[pipeline] Starting Magist market analysis pipeline")

    # Step 1: Ingest
    print("[pipeline] Step 1/3: Loading marketplace tables...")
    inputs = ReportInputs(load_dataset(data_dir))
    items = inputs.items
    tech = int(items["is_refined_tech"].sum())
    print(f"  {len(items):,} order items | {tech:,} in the refined tech segment")

    # Step 2: Reports
    print("[pipeline] Step 2/3: Building reports...")
    reports = build_reports(inputs)
    for name, df in reports.items():
        failed = df.filter(pl.col(ERROR_COLUMN).is_not_null()).height
        note = f" ({failed} empty group(s))" if failed else ""
        print(f"  {name:<28} {len(df):>4} rows{note}")

    # Step 3: Export
    print("[pipeline] Step 3/3: Writing reports...")
    written = write_reports(reports, output_dir, formats)

    print("\n[pipeline] Done.")
    print(f"  {len(written)} files -> {output_dir}")
    return reports


if __name__ == "__main__":
    main()
