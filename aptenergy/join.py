"""Hourly join of apartment and weather records and cleanup for modeling."""

from __future__ import annotations

import dataclasses as dc
from collections.abc import Collection, Iterable
from typing import TYPE_CHECKING

import polars as pl
import polars.selectors as cs
from loguru import logger

from aptenergy.tidy import POWER, DataFormatError

if TYPE_CHECKING:
    from aptenergy.config import JoinConfig

KEYS = ('date', 'hour')


class JoinError(ValueError):
    pass


class JoinCardinalityError(JoinError):
    pass


class MissingValueError(JoinError):
    def __init__(self, columns: Iterable[str]) -> None:
        self.columns = sorted(columns)
        super().__init__(f'Missing values remain in {self.columns}')


class OutcomeTypeError(JoinError):
    pass


def key_counts(apartments: pl.DataFrame, weather: pl.DataFrame) -> pl.DataFrame:
    """
    Row count of each (`date`, `hour`) key on both sides.

    Returns
    -------
    pl.DataFrame
        `date`, `hour`, `apartment`, `weather`, `rows` where `rows` is the
        number of joined rows the key produces.
    """
    a = apartments.group_by(KEYS).len('apartment')
    w = weather.group_by(KEYS).len('weather')
    return (
        a.join(w, on=KEYS, how='full', coalesce=True)
        .with_columns(pl.col('apartment', 'weather').fill_null(0))
        .with_columns(
            rows=pl.max_horizontal(pl.col('apartment'), 1)
            * pl.max_horizontal(pl.col('weather'), 1)
        )
        .sort(KEYS)
    )


def join(
    apartments: pl.DataFrame,
    weather: pl.DataFrame,
    max_fanout: int | None = None,
) -> pl.DataFrame:
    """
    Full outer join on (`date`, `hour`).

    Every apartment row of a key is paired with every weather row of the same
    key. Keys present on one side only keep their rows with nulls on the
    other side.

    Parameters
    ----------
    apartments : pl.DataFrame
    weather : pl.DataFrame
    max_fanout : int | None, optional
        Largest accepted number of joined rows per key.

    Returns
    -------
    pl.DataFrame

    Raises
    ------
    JoinCardinalityError
        A key exceeds `max_fanout`, or the joined height differs from the
        height implied by the key counts.
    """
    counts = key_counts(apartments, weather)

    if max_fanout is not None and (
        over := counts.filter(pl.col('rows') > max_fanout)
    ).height:
        msg = f'{over.height} (date, hour) keys exceed {max_fanout=}'
        raise JoinCardinalityError(msg, over.head())

    joined = apartments.join(weather, on=KEYS, how='full', coalesce=True)

    if joined.height != (expected := counts['rows'].sum()):
        msg = f'Joined {joined.height} rows, expected {expected}'
        raise JoinCardinalityError(msg)

    logger.debug(
        'joined {} apartment rows and {} weather rows into {} rows',
        apartments.height,
        weather.height,
        joined.height,
    )
    return joined.sort(KEYS)


def coerce(
    data: pl.DataFrame,
    numeric: Collection[str] = (),
    categorical: Collection[str] = (),
) -> pl.DataFrame:
    """Cast the listed columns that are present to Float64 and Categorical."""
    exprs: list[pl.Expr] = []
    if num := [x for x in numeric if x in data.columns]:
        exprs.append(pl.col(num).cast(pl.Float64))
    if cat := [x for x in categorical if x in data.columns]:
        exprs.append(pl.col(cat).cast(pl.String).cast(pl.Categorical))

    try:
        return data.with_columns(exprs)
    except pl.exceptions.PolarsError as e:
        msg = 'Column type coercion failed'
        raise DataFormatError(msg) from e


@dc.dataclass(frozen=True)
class ModelDataset:
    """Modeling table without missing values and with a numeric outcome."""

    dataframe: pl.DataFrame
    outcome: str = POWER

    def __post_init__(self):
        if self.outcome not in self.dataframe.columns:
            msg = f'Outcome column {self.outcome!r} not found'
            raise OutcomeTypeError(msg, self.dataframe.columns)

        if not self.dataframe.schema[self.outcome].is_numeric():
            msg = f'Outcome {self.outcome!r} is not numeric'
            raise OutcomeTypeError(msg, self.dataframe.schema[self.outcome])

        df = self.dataframe
        nulls = {k for k, v in df.null_count().row(0, named=True).items() if v}
        if floats := df.select(cs.float()).columns:
            nan = df.select(pl.col(floats).is_nan().sum()).row(0, named=True)
            nulls |= {k for k, v in nan.items() if v}

        if nulls:
            raise MissingValueError(nulls)

    @property
    def height(self):
        return self.dataframe.height

    @property
    def columns(self):
        return self.dataframe.columns


def clean(
    data: pl.DataFrame,
    drop: Collection[str] = ('cloudCover', 'icon'),
    outcome: str = POWER,
) -> ModelDataset:
    """
    Drop unused columns and every row with a missing value.

    Float NaN is treated as missing.

    Parameters
    ----------
    data : pl.DataFrame
    drop : Collection[str], optional
        Columns removed before the row filter. Absent columns are ignored.
    outcome : str, optional

    Returns
    -------
    ModelDataset
    """
    cleaned = (
        data.drop(drop, strict=False)
        .with_columns(cs.float().fill_nan(None))
        .drop_nulls()
    )
    logger.info(
        'Dropped {} of {} rows with missing values',
        data.height - cleaned.height,
        data.height,
    )

    return ModelDataset(cleaned, outcome=outcome)


@dc.dataclass(frozen=True)
class Joiner:
    numeric: Collection[str] = ()
    categorical: Collection[str] = ()
    drop: Collection[str] = ('cloudCover', 'icon')
    max_fanout: int | None = None
    outcome: str = POWER

    @classmethod
    def from_config(cls, conf: JoinConfig, outcome: str = POWER):
        return cls(
            numeric=conf.numeric,
            categorical=conf.categorical,
            drop=conf.drop,
            max_fanout=conf.max_fanout,
            outcome=outcome,
        )

    def joined(self, apartments: pl.DataFrame, weather: pl.DataFrame):
        """Joined and type-coerced table, before cleanup."""
        return coerce(
            join(apartments, weather, max_fanout=self.max_fanout),
            numeric=self.numeric,
            categorical=self.categorical,
        )

    def clean(self, joined: pl.DataFrame) -> ModelDataset:
        return clean(joined, drop=self.drop, outcome=self.outcome)

    def __call__(self, apartments: pl.DataFrame, weather: pl.DataFrame):
        return self.clean(self.joined(apartments, weather))
