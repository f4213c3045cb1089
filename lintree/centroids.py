"""
centroids
=========

Summarize observations into one representative coordinate vector per cluster.
"""

import numpy as np
import pandas as pd

from ._logging import _gen_logger
from ._utils import as_labels, as_points, has_labels
from .exceptions import ConfigurationError

logger = _gen_logger(__name__)


def is_soft_assignment(clusters):
    """ Return `True` if ``clusters`` is a matrix of soft assignment weights. """
    if isinstance(clusters, pd.DataFrame):
        return True
    return isinstance(clusters, np.ndarray) and clusters.ndim == 2


def soft_weights(clusters, n=None):
    """ Validate soft assignment weights and rescale each row to sum to 1.

    Parameters
    ----------
    clusters : {`numpy.ndarray`, `pandas.DataFrame`}
        Weights of size (n_observations, n_clusters).
        If a `numpy.ndarray`, clusters are labeled ``'0', '1', ...``.
    n : `int`, optional
        Expected number of observations.

    Returns
    -------
    weights : `pandas.DataFrame`
        Row-normalized weights with `str` cluster labels as columns.
    """
    if isinstance(clusters, pd.DataFrame):
        weights = pd.DataFrame(clusters.values.astype(float), columns=clusters.columns.astype(str))
    else:
        weights = pd.DataFrame(np.asarray(clusters, dtype=float))
        weights.columns = weights.columns.astype(str)

    if (n is not None) and (weights.shape[0] != n):
        raise ConfigurationError(f"Got {weights.shape[0]} rows of assignment weights for {n} observations.")
    if not weights.columns.is_unique:
        raise ConfigurationError("Cluster names in the assignment weights must be unique.")
    if not np.isfinite(weights.values).all():
        raise ConfigurationError("Assignment weights must be finite.")
    if (weights.values < 0).any():
        raise ConfigurationError("Assignment weights must be non-negative.")

    totals = weights.sum(axis=1)
    if (totals <= 0).any():
        raise ConfigurationError(f"{int((totals <= 0).sum())} observation(s) have no positive assignment weight.")
    weights = weights.div(totals, axis=0)

    empty = weights.columns[weights.sum(axis=0) <= 0].tolist()
    if empty:
        raise ConfigurationError(f"Cluster(s) {empty} have no assigned weight.")
    return weights


def harden(weights):
    """ Convert soft assignment weights to hard labels, taking the first maximal column of each row. """
    weights = soft_weights(weights)
    return weights.columns.values[np.argmax(weights.values, axis=1)].astype(str)


def cluster_sizes(clusters):
    """ Number of observations in each cluster.

    For soft assignments, this is the number of observations with non-zero weight.

    Returns
    -------
    sizes : `pandas.Series`
        Cluster sizes indexed by cluster label.
    """
    if is_soft_assignment(clusters):
        weights = soft_weights(clusters)
        return (weights > 0).sum(axis=0)
    labels = as_labels(clusters)
    return pd.Series(labels).value_counts().sort_index()


def row_mean(x, labels):
    """ Per-cluster mean of the rows of ``x``. """
    return x.groupby(as_labels(labels, n=x.shape[0])).mean()


def row_median(x, labels):
    """ Per-cluster coordinate-wise median of the rows of ``x``. """
    return x.groupby(as_labels(labels, n=x.shape[0])).median()


def weighted_mean(x, weights):
    """ Weighted mean of the rows of ``x`` for each column of ``weights``. """
    num = weights.values.T @ x.values
    centers = num / weights.values.sum(axis=0)[:, None]
    return pd.DataFrame(centers, index=weights.columns, columns=x.columns)


def weighted_median(values, weights):
    """ Weighted median.

    The lowest value whose cumulative weight reaches half of the total weight.

    Parameters
    ----------
    values : `numpy.ndarray`, (n, )
        Values.
    weights : `numpy.ndarray`, (n, )
        Non-negative weights with a positive sum.

    Returns
    -------
    median : `float`
    """
    values = np.asarray(values, dtype=float)
    weights = np.asarray(weights, dtype=float)
    keep = weights > 0
    values, weights = values[keep], weights[keep]
    order = np.argsort(values, kind='stable')
    cumulative = np.cumsum(weights[order])
    ix = np.searchsorted(cumulative, 0.5 * cumulative[-1], side='left')
    return values[order][min(ix, len(values) - 1)]


def weighted_row_median(x, weights):
    """ Weighted coordinate-wise median of the rows of ``x`` for each column of ``weights``. """
    centers = [[weighted_median(x.values[:, d], weights[c].values) for d in range(x.shape[1])]
               for c in weights.columns]
    return pd.DataFrame(centers, index=weights.columns, columns=x.columns)


def summarize_clusters(x, clusters=None, use_median=False):
    """ Compute the centroid of each cluster.

    Parameters
    ----------
    x : {`numpy.ndarray`, `pandas.DataFrame`, `dict`}
        Coordinates of size (n_observations, n_dims).
    clusters : {`None`, array-like, `numpy.ndarray`, `pandas.DataFrame`}
        Hard labels (1-d), soft assignment weights (2-d) or `None` if the rows
        of ``x`` already are labeled centroids.
    use_median : `bool`
        If `True`, use the (weighted) coordinate-wise median rather than the mean.

    Returns
    -------
    centers : `pandas.DataFrame`, (n_clusters, n_dims)
        Centroids indexed by `str` cluster label.
    """
    if clusters is None:
        if not has_labels(x):
            raise ConfigurationError("'x' must have row names corresponding to cluster names when 'clusters' is None.",
                                     suggestion="Pass a pandas.DataFrame indexed by cluster name or provide 'clusters'.")
        centers = as_points(x)
        centers.index = centers.index.astype(str)
        if not centers.index.is_unique:
            raise ConfigurationError("Centroid names must be unique.")
        return centers

    points = as_points(x)
    if is_soft_assignment(clusters):
        weights = soft_weights(clusters, n=points.shape[0])
        centers = weighted_row_median(points, weights) if use_median else weighted_mean(points, weights)
    else:
        labels = as_labels(clusters, n=points.shape[0])
        centers = row_median(points, labels) if use_median else row_mean(points, labels)

    centers.index = centers.index.astype(str)
    centers.index.name = None
    logger.debug(f"Computed {centers.shape[0]} {'median' if use_median else 'mean'} centroids in {centers.shape[1]} dimensions.")
    return centers
