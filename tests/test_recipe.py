from __future__ import annotations

import datetime as dt

import numpy as np
import polars as pl
import pytest

from aptenergy import recipe as rc
from aptenergy.split import stratified_split


def _data(n: int = 60, seed: int = 0):
    rng = np.random.default_rng(seed)
    return pl.DataFrame({
        'date': [dt.date(2016, 1, 1)] * n,
        'apartment_id': rng.integers(1, 5, n),
        'temperature': rng.normal(30, 8, n),
        'humidity': rng.uniform(0.3, 0.9, n),
        'windSpeed': rng.uniform(0, 12, n),
        'summary': rng.choice(['Clear', 'Overcast', 'Partly Cloudy'], n),
        'y': rng.gamma(2, 1, n),
    }).with_columns(pl.col('summary').cast(pl.Categorical))


@pytest.fixture
def recipe():
    return rc.Recipe(outcome='y', remove=('date', 'apartment_id'))


def test_prep_columns(recipe: rc.Recipe):
    prepared = recipe.prep(_data())

    assert prepared.levels == {'summary': ('Clear', 'Overcast', 'Partly Cloudy')}
    assert prepared.predictors == [
        'temperature',
        'humidity',
        'windSpeed',
        'summary_Overcast',
        'summary_Partly_Cloudy',
        'temperature_x_humidity',
        'temperature_x_windSpeed',
        'humidity_x_windSpeed',
    ]


def test_bake_train_normalized(recipe: rc.Recipe):
    train = _data()
    baked = recipe.prep(train).bake(train)

    assert baked.columns[-1] == 'y'
    assert baked['y'].to_list() == train['y'].to_list()

    predictors = baked.drop('y')
    np.testing.assert_allclose(predictors.mean().row(0), 0, atol=1e-10)
    np.testing.assert_allclose(predictors.std().row(0), 1, atol=1e-10)


def test_bake_reuses_training_statistics(recipe: rc.Recipe):
    split = stratified_split(_data(200), outcome='y', seed=1)
    prepared = recipe.prep(split.train)
    baked = prepared.bake(split.test)

    t = split.train['temperature']
    expected = (split.test['temperature'] - t.mean()) / t.std()
    np.testing.assert_allclose(baked['temperature'].to_numpy(), expected.to_numpy())

    # test statistics are not recomputed
    assert abs(baked['temperature'].mean() or 0) > 1e-6

    ti = split.train['temperature'] * split.train['humidity']
    interaction = (
        split.test['temperature'] * split.test['humidity'] - ti.mean()
    ) / ti.std()
    np.testing.assert_allclose(
        baked['temperature_x_humidity'].to_numpy(), interaction.to_numpy()
    )


def test_bake_unseen_level(recipe: rc.Recipe):
    train = _data().filter(pl.col('summary') != 'Overcast')
    prepared = recipe.prep(train)
    assert prepared.levels == {'summary': ('Clear', 'Partly Cloudy')}

    test = _data(seed=1).with_columns(
        pl.lit('Rain').cast(pl.Categorical).alias('summary')
    )
    baked = prepared.bake(test)
    mean, std = (
        prepared.stats.filter(pl.col('column') == 'summary_Partly_Cloudy')
        .select('mean', 'std')
        .row(0)
    )
    np.testing.assert_allclose(baked['summary_Partly_Cloudy'].to_numpy(), -mean / std)


def test_bake_without_outcome(recipe: rc.Recipe):
    data = _data()
    prepared = recipe.prep(data)
    baked = prepared.bake(data.drop('y'))

    assert baked.columns == prepared.predictors
    assert prepared.matrix(data).shape == (data.height, len(prepared.predictors))


def test_zero_variance(recipe: rc.Recipe):
    data = _data().with_columns(pl.lit(3.0).alias('constant'))
    baked = recipe.prep(data).bake(data)

    assert baked['constant'].to_list() == [0.0] * data.height


def test_recipe_errors():
    data = _data()

    with pytest.raises(rc.RecipeError, match='Columns not found'):
        rc.Recipe(outcome='y', remove=('missing',)).prep(data)

    with pytest.raises(rc.RecipeError, match='Interaction columns are removed'):
        rc.Recipe(outcome='y', remove=('date', 'humidity', 'apartment_id')).prep(data)

    with pytest.raises(rc.RecipeError, match='neither numeric nor categorical'):
        rc.Recipe(outcome='y', remove=('apartment_id',)).prep(data)

    with pytest.raises(rc.RecipeError, match='must be numeric'):
        rc.Recipe(
            outcome='y',
            remove=('date',),
            interactions=('temperature', 'summary'),
        ).prep(data)


def test_dummy_name():
    assert rc.dummy_name('summary', 'Mostly Cloudy') == 'summary_Mostly_Cloudy'
    assert rc.dummy_name('icon', 'clear-day') == 'icon_clear_day'
