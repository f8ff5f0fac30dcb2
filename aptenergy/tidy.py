"""
Weather and apartment CSV parsing.

Weather files carry a unix timestamp per row, apartment files one power
reading [kW] per timestamp. Both are reduced to records keyed by local
(`date`, `hour`) for the hourly join.
"""

from __future__ import annotations

import dataclasses as dc
import re
from pathlib import Path
from typing import TYPE_CHECKING

import polars as pl
from loguru import logger
from whenever import PlainDateTime

from aptenergy.utils import Progress

if TYPE_CHECKING:
    from collections.abc import Iterable

    from aptenergy.config import ApartmentConfig, WeatherConfig

POWER = 'hourly_average_power_kw'
TIME_FIELDS = ('datetime', 'date', 'hour', 'month', 'year')

_APT_ID = re.compile(r'Apt(\d+)')


class TidyError(ValueError):
    pass


class DataFormatError(TidyError):
    pass


class ApartmentIdError(TidyError):
    def __init__(self, path: str | Path) -> None:
        self.path = path
        super().__init__(f'No apartment id ("Apt<digits>") in file name: "{path}"')


def apartment_id(path: str | Path) -> int:
    """
    Apartment number embedded in a file name.

    Parameters
    ----------
    path : str | Path

    Returns
    -------
    int

    Raises
    ------
    ApartmentIdError
        File name does not contain `Apt<digits>`.

    Examples
    --------
    >>> apartment_id('2016/Apt12_2016.csv')
    12
    """
    if (m := _APT_ID.search(Path(path).name)) is None:
        raise ApartmentIdError(path)

    return int(m.group(1))


def zoned_timestamp(text: str, timezone: str) -> int:
    """
    Unix timestamp of an ISO wall-clock time in `timezone`.

    A repeated local time resolves to its earlier occurrence, a skipped one
    is shifted forward by the gap.
    """
    return (
        PlainDateTime.parse_common_iso(text)
        .assume_tz(timezone, disambiguate='compatible')
        .timestamp()
    )


@dc.dataclass(frozen=True)
class WeatherTidier:
    timezone: str = 'America/New_York'
    cutoff: str = '2016-01-01T00:00:00'
    timestamp: str = 'time'

    @classmethod
    def from_config(cls, conf: WeatherConfig):
        return cls(timezone=conf.timezone, cutoff=conf.cutoff, timestamp=conf.timestamp)

    @property
    def cutoff_timestamp(self) -> int:
        return zoned_timestamp(self.cutoff, self.timezone)

    def read(self, path: str | Path) -> pl.DataFrame:
        try:
            data = pl.read_csv(path, infer_schema_length=None)
        except pl.exceptions.PolarsError as e:
            msg = f'Cannot parse weather file "{path}"'
            raise DataFormatError(msg) from e

        if self.timestamp not in data.columns:
            msg = f'Column {self.timestamp!r} not found in "{path}"'
            raise DataFormatError(msg, data.columns)

        if data.schema[self.timestamp].is_integer():
            return data

        msg = f'Non-integral unix timestamp in "{path}"'
        try:
            ts = data[self.timestamp].cast(pl.Float64)
        except pl.exceptions.PolarsError as e:
            raise DataFormatError(msg) from e

        # NaN compares equal to itself in polars
        if not (ts.is_finite() & (ts == ts.floor())).all():
            raise DataFormatError(msg)

        return data.with_columns(ts.cast(pl.Int64))

    def tidy(self, data: pl.DataFrame | pl.LazyFrame) -> pl.DataFrame:
        """
        Convert the unix timestamp and derive local time fields.

        Rows earlier than `cutoff` are removed.

        Parameters
        ----------
        data : pl.DataFrame | pl.LazyFrame

        Returns
        -------
        pl.DataFrame
            `datetime` (zone-aware), `date`, `hour`, `month`, `year` followed
            by the weather attributes. The raw timestamp column is dropped.
        """
        ts = self.timestamp
        dtc = pl.col('datetime')

        return (
            data.lazy()
            .filter(pl.col(ts) >= self.cutoff_timestamp)
            .with_columns(
                pl.from_epoch(ts, time_unit='s')
                .dt.replace_time_zone('UTC')
                .dt.convert_time_zone(self.timezone)
                .alias('datetime')
            )
            .with_columns(
                date=dtc.dt.date(),
                hour=dtc.dt.hour(),
                month=dtc.dt.month(),
                year=dtc.dt.year(),
            )
            .drop(ts)
            .select(*TIME_FIELDS, pl.exclude(TIME_FIELDS))
            .sort('datetime')
            .collect()
        )

    def __call__(self, paths: Iterable[str | Path]) -> pl.DataFrame:
        frames: list[pl.DataFrame] = []
        for path in Progress.trace(list(paths), description='Weather'):
            frame = self.tidy(self.read(path))
            logger.debug('weather "{}": {} rows', Path(path).name, frame.height)
            frames.append(frame)

        return pl.concat(frames, how='diagonal_relaxed')


@dc.dataclass(frozen=True)
class ApartmentTidier:
    has_header: bool = False
    datetime_format: str = '%Y-%m-%d %H:%M:%S'

    @classmethod
    def from_config(cls, conf: ApartmentConfig):
        return cls(has_header=conf.has_header, datetime_format=conf.datetime_format)

    def read(self, path: str | Path) -> pl.DataFrame:
        try:
            return pl.read_csv(
                path,
                has_header=self.has_header,
                schema={'datetime': pl.String, 'power_kw': pl.Float64},
                null_values=['', 'NA', 'NaN'],
            )
        except pl.exceptions.PolarsError as e:
            msg = f'Cannot parse apartment file "{path}"'
            raise DataFormatError(msg) from e

    def tidy(self, data: pl.DataFrame | pl.LazyFrame, apartment: int) -> pl.DataFrame:
        """
        Hourly mean power of one apartment.

        Parameters
        ----------
        data : pl.DataFrame | pl.LazyFrame
            `datetime` (string) and `power_kw` columns.
        apartment : int
            Apartment id.

        Returns
        -------
        pl.DataFrame
            `apartment_id`, `date`, `hour`, `hourly_average_power_kw`.
            Missing readings (null or NaN) are ignored by the mean.
        """
        dtc = pl.col('datetime')
        lf = (
            data.lazy()
            .with_columns(dtc.str.to_datetime(self.datetime_format, strict=True))
            .with_columns(
                date=dtc.dt.date(),
                hour=dtc.dt.hour(),
                apartment_id=pl.lit(apartment, dtype=pl.Int64),
            )
            .group_by('apartment_id', 'date', 'hour')
            .agg(pl.col('power_kw').fill_nan(None).mean().alias(POWER))
            .sort('apartment_id', 'date', 'hour')
        )

        try:
            return lf.collect()
        except pl.exceptions.PolarsError as e:
            msg = f'Cannot parse datetime of apartment {apartment}'
            raise DataFormatError(msg) from e

    def __call__(self, paths: Iterable[str | Path]) -> pl.DataFrame:
        frames: list[pl.DataFrame] = []
        for path in Progress.trace(list(paths), description='Apartments'):
            apt = apartment_id(path)
            frame = self.tidy(self.read(path), apartment=apt)
            logger.debug(
                'apartment {} "{}": {} hours', apt, Path(path).name, frame.height
            )
            frames.append(frame)

        return pl.concat(frames)
