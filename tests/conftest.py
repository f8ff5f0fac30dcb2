from __future__ import annotations

import dataclasses as dc
from typing import TYPE_CHECKING

import numpy as np
import polars as pl
import pytest

if TYPE_CHECKING:
    from pathlib import Path

# 2016-01-01 00:00 America/New_York
T0 = 1451624400


@dc.dataclass
class Files:
    weather: Path
    apartment: Path


def weather_frame(hours: int = 24, start: int = T0, seed: int = 0) -> pl.DataFrame:
    rng = np.random.default_rng(seed)
    return pl.DataFrame({
        'time': [start + 3600 * h for h in range(hours)],
        'temperature': rng.normal(30, 8, hours).round(2),
        'icon': ['clear-night' if h % 2 else 'cloudy' for h in range(hours)],
        'humidity': rng.uniform(0.3, 0.9, hours).round(2),
        'visibility': rng.uniform(5, 10, hours).round(2),
        'summary': ['Clear' if h % 3 else 'Overcast' for h in range(hours)],
        'apparentTemperature': rng.normal(25, 8, hours).round(2),
        'pressure': rng.normal(1015, 5, hours).round(1),
        'windSpeed': rng.uniform(0, 12, hours).round(2),
        'cloudCover': rng.uniform(0, 1, hours).round(2),
        'windBearing': rng.integers(0, 360, hours),
        'precipIntensity': rng.uniform(0, 0.1, hours).round(3),
        'dewPoint': rng.normal(20, 5, hours).round(2),
        'precipProbability': rng.uniform(0, 1, hours).round(2),
    })


def apartment_lines(hours: int = 24, seed: int = 0, per_hour: int = 4) -> list[str]:
    rng = np.random.default_rng(seed)
    lines = []
    for h in range(hours):
        for q in range(per_hour):
            minute = q * (60 // per_hour)
            value = rng.uniform(0.1, 3.0)
            lines.append(f'2016-01-01 {h:02d}:{minute:02d}:00,{value:.4f}')

    return lines


@pytest.fixture
def files(tmp_path: Path) -> Files:
    """Two apartments x 24 hours and 24 hours of matching weather."""
    weather = tmp_path / 'weather'
    apartment = tmp_path / 'apartment' / '2016'
    weather.mkdir()
    apartment.mkdir(parents=True)

    # one hour before the cutoff
    weather_frame(hours=25, start=T0 - 3600).write_csv(weather / 'apartment2016.csv')

    for apt in (1, 2):
        (apartment / f'Apt{apt}_2016.csv').write_text(
            '\n'.join(apartment_lines(seed=apt)) + '\n', encoding='UTF-8'
        )

    return Files(weather=weather, apartment=tmp_path / 'apartment')
