"""Console report of the exploratory summaries and model metrics."""

from __future__ import annotations

from typing import TYPE_CHECKING

import polars as pl
import polars.selectors as cs
from rich.table import Table

from aptenergy import eda
from aptenergy.model import summarize_cv
from aptenergy.utils import console

if TYPE_CHECKING:
    from rich.console import Console

    from aptenergy.model import Evaluation


def table(data: pl.DataFrame, title: str | None = None, precision: int = 4) -> Table:
    t = Table(title=title, title_justify='left')
    numeric = set(data.select(cs.numeric()).columns)

    for name in data.columns:
        t.add_column(name, justify='right' if name in numeric else 'left')

    df = data.with_columns(cs.float().round(precision))
    for row in df.iter_rows():
        t.add_row(*('' if x is None else str(x) for x in row))

    return t


def metrics_table(metrics: pl.DataFrame, title: str = 'Test metrics') -> Table:
    wide = metrics.pivot('metric', index='model', values='estimate')
    return table(wide, title=title)


def eda_report(data: pl.DataFrame, out: Console | None = None):
    out = out or console
    out.print(table(eda.summary(data), title='Summary statistics'))
    out.print(table(eda.missingness(data), title='Missing values'))
    out.print(table(eda.correlation(data), title='Correlation', precision=2))


def model_report(evaluation: Evaluation, out: Console | None = None):
    out = out or console
    split = evaluation.split
    out.print(f'train={split.train.height}, test={split.test.height}')
    out.print(metrics_table(evaluation.metrics))

    if evaluation.cv is not None:
        out.print(table(summarize_cv(evaluation.cv), title='Cross validation'))
