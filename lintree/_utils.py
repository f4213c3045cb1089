from collections.abc import Mapping
from textwrap import dedent

import numpy as np
import pandas as pd

from .exceptions import ConfigurationError


def _docstring_parameter(**kwds):
    """\
    Docstrings should start with "\" in the first line for proper formatting.
    """
    def dec(obj):
        obj.__orig_doc__ = obj.__doc__
        obj.__doc__ = dedent(obj.__doc__).format_map(kwds)
        return obj
    return dec


_desc_tree_params = """\
clusters : {`None`, array-like, `numpy.ndarray`, `pandas.DataFrame`}, optional
    Cluster assignment of each observation:

    - 1-d array-like : the cluster label of each observation (hard assignment).
    - 2-d `numpy.ndarray` or `pandas.DataFrame` : soft assignment weights
      of size (n_observations, n_clusters). Weights must be non-negative;
      each row is rescaled to sum to 1. Columns name the clusters.
    - `None` : each row already is a labeled cluster centroid.
use_median : `bool`
    If `True`, centroids are (weighted) coordinate-wise medians instead of means.
outgroup : {`bool`, `float`}
    If `True`, insert an outgroup to split unrelated trajectories, with the
    threshold set from the median MST edge length times ``outscale``.
    A positive number is used directly as the threshold.
outscale : `float`
    Scaling of the median MST edge length used for the outgroup threshold.
    The default of 1.5 breaks any branch that is 50% longer than the median length.
endpoints : list-like of `str`, optional
    Clusters that must be leaves (degree at most 1) of the tree.
columns : list-like, optional
    Dimension labels (or positions) of the coordinates to use. All by default.
dist_method : {'simple', 'scaled.diag', 'scaled.full', 'adaptive', 'mnn'}
    Distance between clusters, see :mod:`lintree.distances`.
with_mnn : `bool`
    Deprecated, use ``dist_method='mnn'`` instead.
mnn_k : `int`
    Number of nearest neighbors considered when ``dist_method='mnn'``.
precomputed_distance : {`pandas.DataFrame`, `numpy.ndarray`}, optional
    Symmetric distance matrix between clusters. If provided, centroid and
    distance computations are skipped.
proc : `int`
    Number of processes used for the mutual nearest-neighbor searches.
verbose : {`None`, 'DEBUG', 'TRACE', 'INFO', 'WARN', 'MSG', 'ERROR'}
    Logging verbosity, unchanged if `None`."""


def has_labels(x):
    """ Return `True` if ``x`` carries row labels (`pandas` object or mapping). """
    return isinstance(x, (pd.DataFrame, pd.Series, Mapping))


def as_points(x, columns=None):
    """ Convert input coordinates to a float `pandas.DataFrame` of size (n_observations, n_dims).

    Parameters
    ----------
    x : {`numpy.ndarray`, `pandas.DataFrame`, `dict`}
        Coordinates where each row is an observation. A `dict` is read as
        ``{label: coordinates}``.
    columns : list-like, optional
        Column labels (or integer positions, or a boolean mask) to keep.

    Returns
    -------
    points : `pandas.DataFrame`
        A copy of the requested coordinates.
    """
    if isinstance(x, pd.DataFrame):
        points = x.copy()
    elif isinstance(x, Mapping):
        points = pd.DataFrame.from_dict({k: np.ravel(v) for k, v in x.items()}, orient='index')
    else:
        arr = np.asarray(x)
        if arr.ndim != 2:
            raise ConfigurationError(f"Coordinates must be 2-dimensional, got {arr.ndim} dimension(s).")
        points = pd.DataFrame(arr)

    if columns is not None:
        points = select_columns(points, columns)

    try:
        points = points.astype(float)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Coordinates must be numeric: {e}") from e

    if not np.isfinite(points.values).all():
        raise ConfigurationError("Coordinates must be finite, NaN or infinite values detected.")
    return points


def select_columns(points, columns):
    """ Restrict ``points`` to the requested columns.

    Raises
    ------
    ConfigurationError
        If a requested column label or position does not exist.
    """
    columns = list(columns) if not isinstance(columns, (str, int)) else [columns]
    if len(columns) == 0:
        raise ConfigurationError("At least one column must be selected.")

    if all(isinstance(c, (bool, np.bool_)) for c in columns):
        if len(columns) != points.shape[1]:
            raise ConfigurationError(f"Boolean column mask has length {len(columns)}, expected {points.shape[1]}.")
        return points.loc[:, np.asarray(columns, dtype=bool)]

    missing = [c for c in columns if c not in points.columns]
    if not missing:
        return points.loc[:, columns]

    if all(isinstance(c, (int, np.integer)) for c in columns):
        out_of_range = [c for c in columns if not -points.shape[1] <= c < points.shape[1]]
        if not out_of_range:
            return points.iloc[:, columns]
        missing = out_of_range

    raise ConfigurationError(f"Requested columns not found: {missing}.",
                             suggestion=f"Available columns: {list(points.columns)[:10]}")


def as_labels(labels, n=None):
    """ Convert cluster labels to a `numpy.ndarray` of `str`.

    Parameters
    ----------
    labels : array-like
        Labels, one per observation.
    n : `int`, optional
        Expected number of labels.
    """
    labels = np.asarray(labels)
    if labels.ndim != 1:
        raise ConfigurationError(f"Cluster labels must be 1-dimensional, got {labels.ndim} dimensions.")
    if (n is not None) and (labels.shape[0] != n):
        raise ConfigurationError(f"Got {labels.shape[0]} cluster labels for {n} observations.")
    return labels.astype(str)


def stack_triu_where_(df, condition, name=None):
    """ Stack the upper triangular entries of the dataframe above the diagonal where the condition is True

    Parameters
    ----------
    df : `pandas.DataFrame`
        Dataframe to stack.
        Note, upper triangular entries are taken from ``df`` as provided,
        with no check that the rows and columns are symmetric.
    condition : `numpy.ndarray`
        Boolean array of the same size and order of rows and columns as ``df`` indicating
        values, where `True`, to include in the stacked dataframe.
    name : `str`
        Optional name of pandas Series output ``df_stacked``.

    Returns
    -------
    df_stacked : `pandas.Series`
        The stacked upper triangular entries above the diagonal of the dataframe,
        where ``condition`` is `True`, in row-major order.
    """
    mask = np.triu(np.asarray(condition).astype(bool), 1)
    rows, cols = np.nonzero(mask)
    df_stacked = pd.Series(data=df.values[rows, cols],
                           index=pd.MultiIndex.from_arrays([df.index[rows], df.columns[cols]]),
                           name=name, dtype=float)
    return df_stacked
