"""
Load the raw marketplace relations, validate required columns, coerce dtypes.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import polars as pl

from magist.contracts.errors import DataUnavailable
from magist.contracts.schemas import (
    RAW_DATA_DIR,
    SOURCE_EXTENSIONS,
    SOURCE_TABLES,
    TIMESTAMP_FORMATS,
)

_BOM = "\ufeff"


@dataclass(frozen=True)
class Dataset:
    """Immutable snapshot of the six source relations."""

    orders: pl.DataFrame
    order_items: pl.DataFrame
    products: pl.DataFrame
    category_translation: pl.DataFrame
    payments: pl.DataFrame
    reviews: pl.DataFrame


def _find_source(data_dir: Path, relation: str) -> Path:
    """Return the first existing file for a relation, trying every stem and extension."""
    _, stems = SOURCE_TABLES[relation]
    for stem in stems:
        for ext in SOURCE_EXTENSIONS:
            candidate = data_dir / f"{stem}{ext}"
            if candidate.exists():
                return candidate
    tried = ", ".join(f"{s}{{{','.join(SOURCE_EXTENSIONS)}}}" for s in stems)
    raise DataUnavailable(relation, f"no file in '{data_dir}' (tried {tried})")


def _read_file(path: Path, relation: str) -> pl.DataFrame:
    try:
        if path.suffix == ".parquet":
            df = pl.read_parquet(path)
        else:
            # Read every column as text; dtypes are enforced by _coerce_schema
            df = pl.read_csv(path, infer_schema=False)
    except (OSError, pl.exceptions.PolarsError) as exc:
        raise DataUnavailable(relation, f"cannot read '{path}': {exc}") from exc
    return df.rename({c: c.lstrip(_BOM).strip() for c in df.columns})


def _timestamp_expr(col: str) -> pl.Expr:
    """Parse a text column with the first matching format; blank text is null."""
    text = pl.col(col).str.strip_chars()
    parsed = pl.coalesce([
        text.str.to_datetime(fmt, time_unit="us", strict=False) for fmt in TIMESTAMP_FORMATS
    ])
    return pl.when(text == "").then(None).otherwise(parsed).alias(col)


def _check_timestamps(raw: pl.Series, parsed: pl.Series, relation: str) -> None:
    """Raise if a non-blank value did not parse."""
    text = raw.str.strip_chars()
    bad = raw.filter(parsed.is_null() & text.is_not_null() & (text != ""))
    if len(bad):
        raise DataUnavailable(
            relation,
            f"column '{raw.name}' has {len(bad):,} value(s) matching none of "
            f"{', '.join(TIMESTAMP_FORMATS)} (first: '{bad[0]}')",
        )


def _coerce_schema(df: pl.DataFrame, relation: str) -> pl.DataFrame:
    """Raise if df is missing required columns; cast required columns to contract dtypes."""
    schema, _ = SOURCE_TABLES[relation]
    missing = [col for col in schema if col not in df.columns]
    if missing:
        raise DataUnavailable(relation, f"missing required columns: {', '.join(missing)}")

    exprs = []
    text_timestamps = []
    for col, dtype in schema.items():
        if isinstance(dtype, pl.Datetime) and df.schema[col] == pl.Utf8:
            exprs.append(_timestamp_expr(col).cast(dtype))
            text_timestamps.append(col)
        else:
            exprs.append(pl.col(col).cast(dtype))
    try:
        coerced = df.select(exprs)
    except pl.exceptions.PolarsError as exc:
        raise DataUnavailable(relation, f"column types do not match the contract: {exc}") from exc

    for col in text_timestamps:
        _check_timestamps(df[col], coerced[col], relation)
    return coerced


def load_relation(relation: str, data_dir: str | Path = RAW_DATA_DIR) -> pl.DataFrame:
    """Load a single source relation by name."""
    if relation not in SOURCE_TABLES:
        raise DataUnavailable(relation, "unknown relation")
    path = _find_source(Path(data_dir), relation)
    return _coerce_schema(_read_file(path, relation), relation)


def load_dataset(data_dir: str | Path = RAW_DATA_DIR) -> Dataset:
    """
    Load and validate every source relation from data_dir.
    Raises DataUnavailable on the first relation that cannot be read.
    """
    print(f"[ingest] Reading marketplace tables from {data_dir}")
    tables = {name: load_relation(name, data_dir) for name in SOURCE_TABLES}
    for name, df in tables.items():
        print(f"  {name:<36} {len(df):>9,} rows")
    return Dataset(
        orders=tables["orders"],
        order_items=tables["order_items"],
        products=tables["products"],
        category_translation=tables["product_category_name_translation"],
        payments=tables["order_payments"],
        reviews=tables["order_reviews"],
    )
