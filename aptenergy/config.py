"""TOML configuration of the tidy/join/model pipeline."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import msgspec
from msgspec import Struct

WEATHER_NUMERIC = (
    'temperature',
    'humidity',
    'visibility',
    'apparentTemperature',
    'pressure',
    'windSpeed',
    'windBearing',
    'precipIntensity',
    'dewPoint',
    'precipProbability',
)
WEATHER_CATEGORICAL = ('summary', 'icon', 'cloudCover')


def dec_hook(t: type, obj):
    if t is Path:
        return Path(obj)

    return obj


_dec_hook = dec_hook


class Dirs(Struct, kw_only=True):
    weather: Path = Path('data/weather')
    apartment: Path = Path('data/apartment')


class WeatherConfig(Struct, kw_only=True):
    timezone: str = 'America/New_York'
    cutoff: str = '2016-01-01T00:00:00'  # wall-clock time in `timezone`
    timestamp: str = 'time'  # unix seconds
    pattern: str = '*.csv'


class ApartmentConfig(Struct, kw_only=True):
    pattern: str = 'Apt*.csv'
    has_header: bool = False
    datetime_format: str = '%Y-%m-%d %H:%M:%S'


class JoinConfig(Struct, kw_only=True):
    numeric: tuple[str, ...] = WEATHER_NUMERIC
    categorical: tuple[str, ...] = WEATHER_CATEGORICAL
    drop: tuple[str, ...] = ('cloudCover', 'icon')
    max_fanout: int | None = None


class ModelConfig(Struct, kw_only=True):
    outcome: str = 'hourly_average_power_kw'
    prop: float = 0.75
    seed: int = 42
    strata_bins: int = 4

    remove: tuple[str, ...] = ('datetime', 'date', 'apartment_id')
    interactions: tuple[str, ...] = ('temperature', 'humidity', 'windSpeed')

    neighbors: int = 7
    folds: int = 0  # cross validation on the training partition, 0 to skip


class Config(Struct, kw_only=True):
    dirs: Dirs = msgspec.field(default_factory=Dirs)
    weather: WeatherConfig = msgspec.field(default_factory=WeatherConfig)
    apartment: ApartmentConfig = msgspec.field(default_factory=ApartmentConfig)
    join: JoinConfig = msgspec.field(default_factory=JoinConfig)
    model: ModelConfig = msgspec.field(default_factory=ModelConfig)

    @classmethod
    def read(
        cls,
        path: str | Path = 'config/config.toml',
        *,
        strict: bool = True,
        dec_hook: Callable | None = None,
    ):
        return msgspec.toml.decode(
            Path(path).read_bytes(),
            type=cls,
            strict=strict,
            dec_hook=dec_hook or _dec_hook,
        )
