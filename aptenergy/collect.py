"""Input file discovery."""

from __future__ import annotations

import dataclasses as dc
from pathlib import Path

from loguru import logger


class CollectError(ValueError):
    pass


class NoInputFilesError(CollectError):
    def __init__(self, directory: Path, pattern: str) -> None:
        self.directory = directory
        self.pattern = pattern

        super().__init__(f'No files matching {pattern!r} in "{directory}"')


def _directory(path: str | Path) -> Path:
    path = Path(path)
    if not path.is_dir():
        msg = f'Directory not found: "{path}"'
        raise FileNotFoundError(msg)

    return path


def collect_weather(directory: str | Path, pattern: str = '*.csv') -> list[Path]:
    directory = _directory(directory)
    if not (files := sorted(directory.glob(pattern))):
        raise NoInputFilesError(directory, pattern)

    logger.debug('{} weather files in "{}"', len(files), directory)
    return files


def collect_apartments(directory: str | Path, pattern: str = 'Apt*.csv') -> list[Path]:
    """
    Apartment files under `directory`, searched recursively.

    Parameters
    ----------
    directory : str | Path
        Root of the apartment data (usually one subdirectory per year).
    pattern : str, optional

    Returns
    -------
    list[Path]
    """
    directory = _directory(directory)
    if not (files := sorted(directory.rglob(pattern))):
        raise NoInputFilesError(directory, pattern)

    logger.debug('{} apartment files in "{}"', len(files), directory)
    return files


@dc.dataclass(frozen=True)
class FileCollector:
    weather_dir: Path
    apartment_dir: Path

    weather_pattern: str = '*.csv'
    apartment_pattern: str = 'Apt*.csv'

    def weather(self) -> list[Path]:
        return collect_weather(self.weather_dir, self.weather_pattern)

    def apartments(self) -> list[Path]:
        return collect_apartments(self.apartment_dir, self.apartment_pattern)
