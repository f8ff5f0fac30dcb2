from __future__ import annotations

import dataclasses as dc
import math

import numpy as np
import polars as pl
from loguru import logger
from sklearn.model_selection import train_test_split


class SplitError(ValueError):
    pass


@dc.dataclass(frozen=True)
class Split:
    train: pl.DataFrame
    test: pl.DataFrame


def strata(values: pl.Series, bins: int = 4) -> np.ndarray:
    """
    Quantile bin index of each value.

    Bins are assigned on the ordinal rank, so tied values may fall into
    adjacent bins and every bin holds `n / bins` values (±1).

    Examples
    --------
    >>> strata(pl.Series([0.4, 0.1, 0.3, 0.2]), bins=2).tolist()
    [1, 0, 1, 0]
    """
    n = values.len()
    rank = values.rank('ordinal').to_numpy().astype(np.int64) - 1
    return (rank * bins) // max(n, 1)


def _n_bins(n: int, prop: float, bins: int) -> int:
    # every stratum needs two members and a row in each partition
    n_train = math.floor(n * prop)
    return max(1, min(bins, n // 2, n_train, n - n_train))


def stratified_split(
    data: pl.DataFrame,
    outcome: str,
    prop: float = 0.75,
    seed: int = 42,
    bins: int = 4,
) -> Split:
    """
    Random train/test split stratified by quantiles of the outcome.

    Parameters
    ----------
    data : pl.DataFrame
    outcome : str
        Numeric column whose distribution is kept in both partitions.
    prop : float, optional
        Training fraction. The training partition holds `floor(n * prop)` rows.
    seed : int, optional
    bins : int, optional
        Maximum number of quantile strata. Reduced for small data; with a
        single stratum the split is a plain random split.

    Returns
    -------
    Split
    """
    if not 0 < prop < 1:
        msg = f'{prop=} not in (0, 1)'
        raise SplitError(msg)

    n = data.height
    if (n_train := math.floor(n * prop)) < 1 or n_train == n:
        msg = f'Cannot split {n} rows with {prop=}'
        raise SplitError(msg)

    k = _n_bins(n, prop, bins)
    stratify = strata(data[outcome], bins=k) if k > 1 else None

    train_idx, test_idx = train_test_split(
        np.arange(n),
        train_size=n_train,
        random_state=seed,
        stratify=stratify,
    )
    logger.debug(
        'split {} rows into {} train, {} test ({} strata)', n, n_train, n - n_train, k
    )

    return Split(
        train=data[np.sort(train_idx)],
        test=data[np.sort(test_idx)],
    )
