import networkx as nx
import numpy as np

from .exceptions import ConfigurationError


def check_matrix_no_nan(A):
    """ Raises ConfigurationError if the matrix has NaN or infinite entries. """
    if not np.isfinite(np.asarray(A, dtype=float)).all():
        raise ConfigurationError("Matrix must not contain NaN or infinite values.")


def check_symmetric(A, tol=1e-8):
    """ Raises ConfigurationError if the matrix is not symmetric. """
    A = np.asarray(A, dtype=float)
    if not np.allclose(A, A.T, rtol=0., atol=tol):
        raise ConfigurationError("Distance matrix is not symmetric.")


def check_distance_matrix(A):
    """ Raises ConfigurationError if the distance matrix is not square, finite, non-negative and symmetric.

    Parameters
    ----------
    A : {`numpy.ndarray`, `pandas.DataFrame`}
        The distance matrix. If a dataframe, rows and columns must carry the same labels
        in the same order.
    """
    if hasattr(A, 'index') and hasattr(A, 'columns'):
        if list(A.index) != list(A.columns):
            raise ConfigurationError("Distance matrix rows and columns must have the same labels in the same order.")
        if not A.index.is_unique:
            raise ConfigurationError("Distance matrix labels must be unique.")
    A = np.asarray(A, dtype=float)
    if A.ndim != 2:
        raise ConfigurationError("Distance matrix must be 2-dimensional.")
    if A.shape[0] != A.shape[1]:
        raise ConfigurationError("Distance matrix must have the same number of rows as columns.",
                                 suggestion=f"Got shape {A.shape}.")
    check_matrix_no_nan(A)
    check_symmetric(A)
    if A.size and (np.min(A) < 0.):
        raise ConfigurationError("Distance matrix must be non-negative.")


def check_forest(G):
    """ Raises AssertionError if the graph contains a cycle. """
    assert nx.is_forest(G) if len(G) else True, "The graph must be a tree or a forest."


def check_labels(labels, available):
    """ Raises ConfigurationError if not all labels are in ``available``. """
    available = list(available)
    missing = [k for k in labels if k not in available]
    if missing:
        raise ConfigurationError(f"Unknown cluster(s): {missing}.",
                                 suggestion=f"Available clusters: {available[:10]}")
