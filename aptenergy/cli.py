from __future__ import annotations

from pathlib import Path
from typing import Annotated

import cyclopts
from loguru import logger

from aptenergy import report
from aptenergy.config import Config
from aptenergy.pipeline import Pipeline
from aptenergy.utils import LogHandler, console

app = cyclopts.App(help='Apartment power and weather: tidy, explore, model.')


def _pipeline(config: Path | None, log_level: str) -> Pipeline:
    LogHandler.set(log_level)

    conf = Config.read(config) if config is not None else Config()
    logger.debug('config: {}', conf)
    return Pipeline(conf)


_ConfigPath = Annotated[
    Path | None, cyclopts.Parameter(help='TOML configuration file.')
]


@app.command
def tidy(*, config: _ConfigPath = None, log_level: str = 'INFO'):
    """Tidy the weather and apartment files and show the joined table."""
    pipeline = _pipeline(config, log_level)
    joined = pipeline.joined()
    console.print(joined)


@app.command
def eda(*, config: _ConfigPath = None, log_level: str = 'INFO'):
    """Summary statistics, missing values and correlations of the joined table."""
    pipeline = _pipeline(config, log_level)
    report.eda_report(pipeline.joined())


@app.command
def model(*, config: _ConfigPath = None, log_level: str = 'INFO'):
    """Fit the linear and KNN models and report test metrics."""
    pipeline = _pipeline(config, log_level)
    report.model_report(pipeline.evaluate())


@app.command
def run(*, config: _ConfigPath = None, log_level: str = 'INFO'):
    """Exploratory summaries followed by modeling."""
    pipeline = _pipeline(config, log_level)
    joined = pipeline.joined()

    report.eda_report(joined)
    report.model_report(pipeline.evaluate(pipeline.dataset(joined)))
