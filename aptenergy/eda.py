"""Exploratory summaries of the joined table."""

from __future__ import annotations

import polars as pl
import polars.selectors as cs
from loguru import logger


def summary(data: pl.DataFrame) -> pl.DataFrame:
    return data.describe()


def missingness(data: pl.DataFrame) -> pl.DataFrame:
    """
    Null count and fraction per column, most incomplete first.

    Float NaN is counted as missing.
    """
    df = data.with_columns(cs.float().fill_nan(None))
    return (
        df.null_count()
        .unpivot(variable_name='column', value_name='missing')
        .with_columns(
            fraction=pl.col('missing') / df.height if df.height else pl.lit(0.0)
        )
        .sort('missing', 'column', descending=[True, False])
    )


def correlation(data: pl.DataFrame) -> pl.DataFrame:
    """
    Pearson correlation matrix of the numeric columns.

    Rows with a missing value in any numeric column are excluded. Columns
    without variance in the remaining rows are left out of the matrix.

    Returns
    -------
    pl.DataFrame
        `column` followed by one column per numeric variable.
    """
    numeric = (
        data.select(cs.numeric())
        .with_columns(cs.float().fill_nan(None))
        .drop_nulls()
        .cast(pl.Float64)
    )

    if numeric.height < 2:  # noqa: PLR2004
        logger.warning('Correlation needs two complete rows, {} found', numeric.height)
        return pl.DataFrame(schema={'column': pl.String})

    std = numeric.std().row(0, named=True)
    if constant := [k for k, v in std.items() if not v]:
        logger.warning('Zero variance columns excluded from correlation: {}', constant)
        numeric = numeric.drop(constant)

    if not numeric.width:
        return pl.DataFrame(schema={'column': pl.String})

    return numeric.corr().select(
        pl.Series('column', numeric.columns), pl.all()
    )
