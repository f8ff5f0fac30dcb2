"""Baseline regression models of hourly apartment power."""

from __future__ import annotations

import dataclasses as dc
from typing import TYPE_CHECKING, Literal, Self

import numpy as np
import polars as pl
from loguru import logger
from sklearn import metrics as skm
from sklearn.linear_model import LinearRegression
from sklearn.model_selection import KFold
from sklearn.neighbors import KNeighborsRegressor

from aptenergy.recipe import PreparedRecipe, Recipe
from aptenergy.split import Split, stratified_split

if TYPE_CHECKING:
    from collections.abc import Iterable

    from numpy.typing import ArrayLike
    from sklearn.base import RegressorMixin

    from aptenergy.config import ModelConfig
    from aptenergy.join import ModelDataset

type ModelKind = Literal['linear', 'knn']

PRED = '.pred'
METRICS = ('rmse', 'rsq', 'mae')


class ModelError(ValueError):
    pass


class NotFittedError(ModelError):
    pass


def metrics(truth: ArrayLike, estimate: ArrayLike) -> dict[str, float]:
    """
    Regression error metrics.

    Parameters
    ----------
    truth : ArrayLike
    estimate : ArrayLike

    Returns
    -------
    dict[str, float]
        `rmse` (root mean squared error), `rsq` (coefficient of
        determination) and `mae` (mean absolute error).

    Examples
    --------
    >>> m = metrics([1.0, 2.0, 3.0], [1.0, 2.0, 4.0])
    >>> round(m['mae'], 4), round(m['rsq'], 4)
    (0.3333, 0.5)
    """
    return {
        'rmse': float(np.sqrt(skm.mean_squared_error(truth, estimate))),
        'rsq': float(skm.r2_score(truth, estimate)),
        'mae': float(skm.mean_absolute_error(truth, estimate)),
    }


@dc.dataclass(frozen=True)
class ModelSpec:
    kind: ModelKind = 'linear'
    neighbors: int = 7

    @property
    def name(self) -> str:
        return self.kind

    @property
    def min_samples(self) -> int:
        return self.neighbors if self.kind == 'knn' else 2

    def estimator(self) -> RegressorMixin:
        match self.kind:
            case 'linear':
                return LinearRegression()
            case 'knn':
                return KNeighborsRegressor(n_neighbors=self.neighbors)

        msg = f'Unknown model kind: {self.kind!r}'
        raise ModelError(msg)


class Workflow:
    """Recipe and estimator fitted together on one training partition."""

    def __init__(self, recipe: Recipe, model: ModelSpec) -> None:
        self.recipe = recipe
        self.model = model

        self._prepared: PreparedRecipe | None = None
        self._estimator: RegressorMixin | None = None

    @property
    def prepared(self) -> PreparedRecipe:
        if self._prepared is None:
            msg = 'Workflow is not fitted'
            raise NotFittedError(msg)

        return self._prepared

    @property
    def estimator(self) -> RegressorMixin:
        if self._estimator is None:
            msg = 'Workflow is not fitted'
            raise NotFittedError(msg)

        return self._estimator

    def fit(self, train: pl.DataFrame) -> Self:
        if train.height < self.model.min_samples:
            msg = (
                f'{self.model.name} requires at least {self.model.min_samples} '
                f'training rows, {train.height} given'
            )
            raise ModelError(msg)

        prepared = self.recipe.prep(train)
        estimator = self.model.estimator()
        estimator.fit(
            prepared.matrix(train), train[self.recipe.outcome].to_numpy()
        )

        self._prepared = prepared
        self._estimator = estimator
        logger.debug(
            'fitted {} on {} rows, {} predictors',
            self.model.name,
            train.height,
            len(prepared.predictors),
        )
        return self

    def predict(self, data: pl.DataFrame) -> pl.DataFrame:
        """
        Predictions next to the observed outcome (when present).

        Returns
        -------
        pl.DataFrame
            Outcome column (if in `data`) and `.pred`.
        """
        estimate = self.estimator.predict(self.prepared.matrix(data))
        pred = pl.Series(PRED, estimate, dtype=pl.Float64)

        if (outcome := self.recipe.outcome) in data.columns:
            return data.select(outcome).with_columns(pred)

        return pred.to_frame()

    def score(self, data: pl.DataFrame) -> dict[str, float]:
        pred = self.predict(data)
        return metrics(pred[self.recipe.outcome], pred[PRED])


def _long(rows: Iterable[dict]) -> pl.DataFrame:
    return pl.DataFrame(
        list(rows),
        schema={
            'model': pl.String,
            'fold': pl.Int64,
            'metric': pl.String,
            'estimate': pl.Float64,
        },
    )


def cross_validate(
    train: pl.DataFrame,
    recipe: Recipe,
    model: ModelSpec,
    folds: int = 5,
    seed: int = 42,
) -> pl.DataFrame:
    """
    K-fold cross validation on the training partition.

    The recipe is re-prepared on every analysis fold, so the assessment fold
    never contributes to the centering/scaling statistics.

    Returns
    -------
    pl.DataFrame
        `model`, `fold`, `metric`, `estimate`.
    """
    if folds < 2:  # noqa: PLR2004
        msg = f'{folds=} < 2'
        raise ModelError(msg)

    kfold = KFold(n_splits=folds, shuffle=True, random_state=seed)

    def it():
        for fold, (analysis, assessment) in enumerate(
            kfold.split(np.arange(train.height))
        ):
            wf = Workflow(recipe, model).fit(train[analysis])
            for metric, value in wf.score(train[assessment]).items():
                yield {
                    'model': model.name,
                    'fold': fold,
                    'metric': metric,
                    'estimate': value,
                }

    return _long(it())


def summarize_cv(cv: pl.DataFrame) -> pl.DataFrame:
    return (
        cv.group_by('model', 'metric', maintain_order=True)
        .agg(
            pl.col('estimate').mean().alias('mean'),
            pl.col('estimate').std().alias('std'),
            pl.len().alias('n'),
        )
        .sort('model', 'metric')
    )


@dc.dataclass(frozen=True)
class Evaluation:
    split: Split
    workflows: dict[str, Workflow]
    predictions: pl.DataFrame  # model, outcome, .pred (test partition)
    metrics: pl.DataFrame  # model, metric, estimate (test partition)
    cv: pl.DataFrame | None = None  # model, fold, metric, estimate

    def metric(self, model: str, metric: str) -> float:
        return (
            self.metrics.filter(pl.col('model') == model, pl.col('metric') == metric)
            .select('estimate')
            .item()
        )


def specs(conf: ModelConfig) -> tuple[ModelSpec, ...]:
    return (
        ModelSpec('linear'),
        ModelSpec('knn', neighbors=conf.neighbors),
    )


def evaluate(dataset: ModelDataset, conf: ModelConfig) -> Evaluation:
    """
    Split, fit the linear and KNN workflows and score the test partition.

    Parameters
    ----------
    dataset : ModelDataset
    conf : ModelConfig

    Returns
    -------
    Evaluation
    """
    if dataset.outcome != conf.outcome:
        msg = f'Dataset outcome {dataset.outcome!r} != {conf.outcome!r}'
        raise ModelError(msg)

    split = stratified_split(
        dataset.dataframe,
        outcome=conf.outcome,
        prop=conf.prop,
        seed=conf.seed,
        bins=conf.strata_bins,
    )
    recipe = Recipe(
        outcome=conf.outcome, remove=conf.remove, interactions=conf.interactions
    )

    workflows: dict[str, Workflow] = {}
    predictions: list[pl.DataFrame] = []
    rows: list[dict] = []
    cv: list[pl.DataFrame] = []

    for spec in specs(conf):
        wf = Workflow(recipe, spec).fit(split.train)
        workflows[spec.name] = wf

        pred = wf.predict(split.test)
        predictions.append(pred.select(pl.lit(spec.name).alias('model'), pl.all()))
        scores = metrics(pred[conf.outcome], pred[PRED])
        rows.extend(
            {'model': spec.name, 'metric': k, 'estimate': v} for k, v in scores.items()
        )
        logger.info(
            '{}: {}', spec.name, ', '.join(f'{k}={v:.4g}' for k, v in scores.items())
        )

        if conf.folds:
            cv.append(
                cross_validate(
                    split.train, recipe, spec, folds=conf.folds, seed=conf.seed
                )
            )

    return Evaluation(
        split=split,
        workflows=workflows,
        predictions=pl.concat(predictions),
        metrics=pl.DataFrame(
            rows,
            schema={'model': pl.String, 'metric': pl.String, 'estimate': pl.Float64},
        ),
        cv=pl.concat(cv) if cv else None,
    )
