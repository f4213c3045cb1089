"""
distances
=========

Distances between cluster centroids.

Distances may be computed in multiple ways, see :class:`DistMethod`:

- ``'simple'`` : Euclidean distance between centroids.
- ``'scaled.diag'`` : distance between centroids downscaled by the sum of the
  variances of the two clusters, accounting for cluster width.
- ``'scaled.full'`` : as above with the full covariance matrices, accounting
  for cluster shape. Requires more observations than dimensions in every cluster.
- ``'adaptive'`` : ``'scaled.full'`` for pairs of clusters that both have more
  observations than dimensions, ``'scaled.diag'`` otherwise.
- ``'mnn'`` : median distance between mutual nearest neighbors of the two
  clusters, see :mod:`lintree.neighbors`.
"""

from enum import Enum
import itertools
import warnings

import numpy as np
import pandas as pd
import scipy.spatial.distance as ssd

from ._logging import _gen_logger
from .centroids import cluster_sizes, is_soft_assignment, soft_weights
from ._utils import as_labels
from .exceptions import ConfigurationError, MedianCentroidWarning, NumericalError
from .neighbors import MNN_K, mnn_distances

logger = _gen_logger(__name__)

FLOOR_RATIO = 1e-6


class DistMethod(Enum):
    """ Distance between clusters. """
    SIMPLE = 'simple'
    SCALED_DIAG = 'scaled.diag'
    SCALED_FULL = 'scaled.full'
    ADAPTIVE = 'adaptive'
    MNN = 'mnn'

    @classmethod
    def parse(cls, value):
        """ Return the method referenced by ``value``.

        Accepts members, their values and the aliases ``'scaled.diagonal'`` and ``'slingshot'``.
        """
        if isinstance(value, cls):
            return value
        aliases = {'scaled.diagonal': cls.SCALED_DIAG, 'slingshot': cls.ADAPTIVE}
        if value in aliases:
            return aliases[value]
        try:
            return cls(value)
        except ValueError:
            options = [m.value for m in cls] + list(aliases)
            raise ConfigurationError(f"{value!r} not recognized for value of dist_method, must be one of {options}.") from None

    @property
    def is_scaled(self):
        return self in (DistMethod.SCALED_DIAG, DistMethod.SCALED_FULL, DistMethod.ADAPTIVE)


def simple_distances(centers):
    """ Euclidean distances between centroids.

    Parameters
    ----------
    centers : `pandas.DataFrame`, (n_clusters, n_dims)
        Centroids indexed by cluster label.

    Returns
    -------
    dmat : `pandas.DataFrame`, (n_clusters, n_clusters)
        Symmetric distance matrix.
    """
    d = ssd.cdist(centers.values, centers.values, metric='euclidean')
    return pd.DataFrame(d, index=centers.index, columns=centers.index)


def cluster_covariances(x, clusters, centers):
    """ Covariance matrix of each cluster.

    For hard assignments, this is the sample covariance of the cluster members.
    For soft assignments, the weights are treated as effective frequencies:
    :math:`S_c = \\sum_i w_{ic} (x_i - \\mu_c)(x_i - \\mu_c)^T / (\\sum_i w_{ic} - 1)`.

    Parameters
    ----------
    x : `pandas.DataFrame`, (n_observations, n_dims)
        Coordinates of the observations.
    clusters : {array-like, `numpy.ndarray`, `pandas.DataFrame`}
        Hard labels or soft assignment weights.
    centers : `pandas.DataFrame`, (n_clusters, n_dims)
        Centroids used as cluster centers.

    Returns
    -------
    covariances : `dict` [`str`, `numpy.ndarray`]
        Covariance matrix of size (n_dims, n_dims) keyed by cluster label.
    """
    covariances = {}
    if is_soft_assignment(clusters):
        weights = soft_weights(clusters, n=x.shape[0])
        for c in centers.index:
            w = weights[c].values
            if w.sum() <= 1.:
                raise NumericalError(f"Covariance of cluster {c!r} is undefined, total assignment weight {w.sum():.3g} <= 1.")
            out = (x.values - centers.loc[c].values) * np.sqrt(w)[:, None]
            covariances[c] = out.T @ out / (w.sum() - 1.)
    else:
        labels = as_labels(clusters, n=x.shape[0])
        for c in centers.index:
            members = x.values[labels == c]
            if members.shape[0] < 2:
                raise NumericalError(f"Covariance of cluster {c!r} is undefined with {members.shape[0]} observation(s).",
                                     suggestion="Use dist_method='simple' or merge small clusters.")
            covariances[c] = np.atleast_2d(np.cov(members, rowvar=False, ddof=1))
    return covariances


def scaled_distance(mu1, mu2, s1, s2, pair=None):
    """ Mahalanobis-type distance between two centroids, scaled by their combined covariance.

    :math:`d = \\sqrt{(\\mu_1 - \\mu_2)^T (S_1 + S_2)^{-1} (\\mu_1 - \\mu_2)}`

    Raises
    ------
    NumericalError
        If :math:`S_1 + S_2` is singular.
    """
    s = s1 + s2
    diff = mu1 - mu2
    try:
        q = float(diff @ np.linalg.solve(s, diff))
    except np.linalg.LinAlgError as e:
        raise NumericalError(f"Combined covariance matrix is singular: {e}", pair=pair,
                             suggestion="Check for clusters without spread along some dimension, "
                                        "or use dist_method='simple'.") from e
    if not np.isfinite(q):
        raise NumericalError("Scaled distance is not finite", pair=pair)
    return np.sqrt(max(q, 0.))


def scaled_distances(x, clusters, centers, method=DistMethod.SCALED_FULL):
    """ Distances between centroids scaled by the cluster covariances.

    Parameters
    ----------
    x : `pandas.DataFrame`, (n_observations, n_dims)
        Coordinates of the observations.
    clusters : {array-like, `numpy.ndarray`, `pandas.DataFrame`}
        Hard labels or soft assignment weights.
    centers : `pandas.DataFrame`, (n_clusters, n_dims)
        Centroids indexed by cluster label.
    method : {`DistMethod.SCALED_DIAG`, `DistMethod.SCALED_FULL`, `DistMethod.ADAPTIVE`}
        Which part of the covariance matrices to use.

    Returns
    -------
    dmat : `pandas.DataFrame`, (n_clusters, n_clusters)
        Symmetric distance matrix.
    """
    n_dims = x.shape[1]
    sizes = cluster_sizes(clusters).reindex(centers.index, fill_value=0)
    if method == DistMethod.SCALED_FULL:
        small = sizes[sizes <= n_dims].index.tolist()
        if small:
            raise NumericalError(f"Full covariance requires more than {n_dims} observations per cluster, "
                                 f"cluster(s) {small} are too small.",
                                 suggestion="Use dist_method='adaptive' to fall back to diagonal scaling for small clusters.")

    covariances = cluster_covariances(x, clusters, centers)
    diagonals = {c: np.diag(np.diag(s)) for c, s in covariances.items()}

    labels = centers.index.tolist()
    output = np.zeros((len(labels), len(labels)))
    for i, j in itertools.combinations(range(len(labels)), 2):
        c1, c2 = labels[i], labels[j]
        if method == DistMethod.SCALED_DIAG:
            full = False
        elif method == DistMethod.SCALED_FULL:
            full = True
        else:
            full = (sizes[c1] > n_dims) and (sizes[c2] > n_dims)
            if not full:
                logger.info(f"Clusters {c1!r} and {c2!r}: too few observations for full covariance, using diagonal scaling.")
        s1, s2 = (covariances[c1], covariances[c2]) if full else (diagonals[c1], diagonals[c2])
        output[i, j] = output[j, i] = scaled_distance(centers.loc[c1].values, centers.loc[c2].values,
                                                      s1, s2, pair=(c1, c2))

    return pd.DataFrame(output, index=centers.index, columns=centers.index)


def floor_distances(dmat, ratio=FLOOR_RATIO):
    """ Ensure all off-diagonal distances are positive.

    Zero weights are interpreted as missing edges when the graph is built, so
    every off-diagonal entry not above zero is replaced by the smallest positive
    distance times ``ratio``. The diagonal is set to zero.

    Parameters
    ----------
    dmat : `pandas.DataFrame`
        Symmetric distance matrix.
    ratio : `float`
        Fraction of the smallest positive distance used as the floor.

    Returns
    -------
    floored : `pandas.DataFrame`
        A new distance matrix.
    """
    values = dmat.values.astype(float)
    positive = values[values > 0]
    if positive.size == 0:
        if values.shape[0] > 1:
            raise NumericalError("All distances between clusters are zero.",
                                 suggestion="Check that clusters have distinct centroids.")
        lower = 0.
    else:
        lower = positive.min() * ratio
    values = np.maximum(values, lower)
    np.fill_diagonal(values, 0.)
    logger.trace(f"Distance floor set to {lower:.3g}.")
    return pd.DataFrame(values, index=dmat.index, columns=dmat.columns)


def compute_distances(x, clusters, centers, method=DistMethod.SIMPLE, use_median=False,
                      mnn_k=MNN_K, proc=1, progress=False):
    """ Compute the distance matrix between clusters.

    Parameters
    ----------
    x : {`None`, `pandas.DataFrame`}
        Coordinates of the observations, (n_observations, n_dims).
        Ignored when ``method`` is ``'simple'``.
    clusters : {`None`, array-like, `numpy.ndarray`, `pandas.DataFrame`}
        Hard labels or soft assignment weights, required unless ``method`` is ``'simple'``.
    centers : `pandas.DataFrame`, (n_clusters, n_dims)
        Centroids indexed by cluster label.
    method : {`DistMethod`, `str`}
        The distance, see :class:`DistMethod`.
    use_median : `bool`
        Whether ``centers`` are medians, issues a warning with scaled distances.
    mnn_k : `int`
        Number of nearest neighbors for ``'mnn'``.
    proc : `int`
        Number of processes for ``'mnn'``.
    progress : `bool`
        If `True`, show a progress bar for ``'mnn'``.

    Returns
    -------
    dmat : `pandas.DataFrame`, (n_clusters, n_clusters)
        Symmetric distance matrix, not yet floored.
    """
    method = DistMethod.parse(method)

    if method == DistMethod.SIMPLE:
        dmat = simple_distances(centers)
    elif clusters is None:
        raise ConfigurationError(f"'clusters' must be specified when dist_method is {method.value!r}.",
                                 suggestion="Provide per-observation cluster labels or use dist_method='simple'.")
    elif method == DistMethod.MNN:
        dmat = mnn_distances(x, clusters, mnn_k=mnn_k, proc=proc, progress=progress).reindex(index=centers.index, columns=centers.index)
        if dmat.isna().values.any():
            missing = dmat.index[dmat.isna().all(axis=1)].tolist()
            raise ConfigurationError(f"Cluster(s) {missing} have no observations for the mutual nearest-neighbor search.")
    elif method.is_scaled:
        if use_median:
            warnings.warn(f"'use_median=True' with dist_method={method.value!r} may yield unpredictable results",
                          MedianCentroidWarning, stacklevel=2)
        dmat = scaled_distances(x, clusters, centers, method=method)
    else:
        raise AssertionError(f"Unhandled distance method {method!r}.")

    logger.debug(f"Computed {method.value!r} distances between {dmat.shape[0]} clusters.")
    return dmat
