"""
Predictor preprocessing with statistics learned from the training partition.

Steps, in order: remove columns, one-hot encode categorical predictors,
pairwise interaction terms, centering and scaling. `Recipe.prep` learns the
dummy levels and the mean/standard deviation of every predictor;
`PreparedRecipe.bake` applies them unchanged to any partition.
"""

from __future__ import annotations

import dataclasses as dc
import itertools
import re
from collections.abc import Sequence
from functools import cached_property

import numpy as np
import polars as pl
import polars.selectors as cs
from loguru import logger
from numpy.typing import NDArray

_CATEGORICAL = cs.string() | cs.categorical()
_NUMERIC = cs.numeric() | cs.boolean()


class RecipeError(ValueError):
    pass


def dummy_name(column: str, level: str) -> str:
    """
    Name of a one-hot column.

    Examples
    --------
    >>> dummy_name('summary', 'Partly Cloudy')
    'summary_Partly_Cloudy'
    """
    slug = re.sub(r'\W+', '_', level).strip('_')
    return f'{column}_{slug}'


def interaction_name(a: str, b: str) -> str:
    return f'{a}_x_{b}'


@dc.dataclass(frozen=True)
class Recipe:
    outcome: str
    remove: Sequence[str] = ('datetime', 'date', 'apartment_id')
    interactions: Sequence[str] = ('temperature', 'humidity', 'windSpeed')

    def _check(self, data: pl.DataFrame):
        required = [*self.remove, *self.interactions, self.outcome]
        if missing := [x for x in required if x not in data.columns]:
            msg = f'Columns not found: {missing}'
            raise RecipeError(msg)

        if removed := sorted(set(self.interactions) & set(self.remove)):
            msg = f'Interaction columns are removed: {removed}'
            raise RecipeError(msg)

        predictors = data.drop(*self.remove, self.outcome)
        if other := predictors.select(~(_CATEGORICAL | _NUMERIC)).columns:
            msg = f'Predictors neither numeric nor categorical: {other}'
            raise RecipeError(msg)

        if other := [
            x for x in self.interactions if x not in predictors.select(_NUMERIC).columns
        ]:
            msg = f'Interaction columns must be numeric: {other}'
            raise RecipeError(msg)

        return predictors

    def prep(self, train: pl.DataFrame) -> PreparedRecipe:
        """
        Learn dummy levels and centering/scaling statistics from `train`.

        The first (sorted) level of each categorical predictor is the
        reference level and gets no dummy column.

        Parameters
        ----------
        train : pl.DataFrame

        Returns
        -------
        PreparedRecipe
        """
        predictors = self._check(train)

        levels = {
            c: tuple(sorted(predictors[c].cast(pl.String).drop_nulls().unique()))
            for c in predictors.select(_CATEGORICAL).columns
        }
        pairs = tuple(itertools.combinations(self.interactions, 2))
        expanded = _expand(predictors, levels=levels, pairs=pairs)

        stats = pl.DataFrame(
            {
                'column': expanded.columns,
                'mean': [expanded[c].mean() for c in expanded.columns],
                'std': [expanded[c].std(ddof=1) for c in expanded.columns],
            },
            schema={'column': pl.String, 'mean': pl.Float64, 'std': pl.Float64},
        )

        if constant := stats.filter(
            pl.col('std').is_null() | (pl.col('std') == 0)
        )['column'].to_list():
            logger.warning('Zero variance predictors (centered only): {}', constant)

        return PreparedRecipe(recipe=self, levels=levels, pairs=pairs, stats=stats)


def _expand(
    predictors: pl.DataFrame,
    levels: dict[str, tuple[str, ...]],
    pairs: Sequence[tuple[str, str]],
) -> pl.DataFrame:
    dummies = [
        (pl.col(c).cast(pl.String) == level)
        .cast(pl.Float64)
        .alias(dummy_name(c, level))
        for c, lv in levels.items()
        for level in lv[1:]
    ]
    interactions = [
        (pl.col(a).cast(pl.Float64) * pl.col(b).cast(pl.Float64)).alias(
            interaction_name(a, b)
        )
        for a, b in pairs
    ]
    return predictors.select(
        *(pl.col(c).cast(pl.Float64) for c in predictors.columns if c not in levels),
        *dummies,
        *interactions,
    )


@dc.dataclass(frozen=True)
class PreparedRecipe:
    recipe: Recipe
    levels: dict[str, tuple[str, ...]]
    pairs: tuple[tuple[str, str], ...]
    stats: pl.DataFrame  # column, mean, std

    @cached_property
    def predictors(self) -> list[str]:
        return self.stats['column'].to_list()

    def bake(self, data: pl.DataFrame) -> pl.DataFrame:
        """
        Apply the learned transformation.

        Parameters
        ----------
        data : pl.DataFrame
            Partition with the training columns. The outcome is optional and is
            passed through unchanged when present.

        Returns
        -------
        pl.DataFrame
            Transformed predictors (training order) followed by the outcome.
        """
        outcome = self.recipe.outcome
        predictors = data.drop(*self.recipe.remove, outcome, strict=False)
        if missing := sorted(set(self.levels) - set(predictors.columns)):
            msg = f'Categorical predictors not found: {missing}'
            raise RecipeError(msg)

        expanded = _expand(predictors, levels=self.levels, pairs=self.pairs)
        if missing := sorted(set(self.predictors) - set(expanded.columns)):
            msg = f'Predictors not found: {missing}'
            raise RecipeError(msg)

        scaled = [
            ((pl.col(c) - (m or 0.0)) / (s or 1.0)).alias(c)
            for c, m, s in self.stats.iter_rows()
        ]
        if outcome in data.columns:
            return expanded.select(*scaled).with_columns(data[outcome])

        return expanded.select(*scaled)

    def matrix(self, data: pl.DataFrame) -> NDArray[np.float64]:
        return self.bake(data).select(self.predictors).to_numpy()
