"""Collect → tidy → join → model, in one pass."""

from __future__ import annotations

from functools import cached_property

import polars as pl
from loguru import logger

from aptenergy.collect import FileCollector
from aptenergy.config import Config
from aptenergy.join import Joiner, ModelDataset
from aptenergy.model import Evaluation, evaluate
from aptenergy.tidy import ApartmentTidier, WeatherTidier


class Pipeline:
    def __init__(self, config: Config | None = None) -> None:
        self.config = config or Config()

    @cached_property
    def collector(self) -> FileCollector:
        conf = self.config
        return FileCollector(
            weather_dir=conf.dirs.weather,
            apartment_dir=conf.dirs.apartment,
            weather_pattern=conf.weather.pattern,
            apartment_pattern=conf.apartment.pattern,
        )

    @cached_property
    def joiner(self) -> Joiner:
        return Joiner.from_config(self.config.join, outcome=self.config.model.outcome)

    def tidy(self) -> tuple[pl.DataFrame, pl.DataFrame]:
        """Tidied (weather, apartments) records."""
        weather = WeatherTidier.from_config(self.config.weather)(
            self.collector.weather()
        )
        logger.info('Weather: {} rows', weather.height)

        apartments = ApartmentTidier.from_config(self.config.apartment)(
            self.collector.apartments()
        )
        logger.info(
            'Apartments: {} hourly rows of {} apartments',
            apartments.height,
            apartments['apartment_id'].n_unique(),
        )
        return weather, apartments

    def joined(self) -> pl.DataFrame:
        weather, apartments = self.tidy()
        return self.joiner.joined(apartments, weather)

    def dataset(self, joined: pl.DataFrame | None = None) -> ModelDataset:
        if joined is None:
            joined = self.joined()

        dataset = self.joiner.clean(joined)
        logger.info(
            'Model dataset: {} rows, {} columns', dataset.height, len(dataset.columns)
        )
        return dataset

    def evaluate(self, dataset: ModelDataset | None = None) -> Evaluation:
        if dataset is None:
            dataset = self.dataset()

        return evaluate(dataset, self.config.model)
