"""
Shared pytest fixtures for lintree tests.

Provides the Y-shaped four-cluster layout and simulated point clouds
around it with a fixed random seed.
"""

import numpy as np
import pandas as pd
import pytest

from lintree._logging import set_package_verbose


# =============================================================================
# Centroid Fixtures
# =============================================================================


STAR = [[0., 0.], [0., -1.], [1., 1.], [-1., 1.]]


@pytest.fixture
def star_centers() -> pd.DataFrame:
    """Four centroids forming a Y: '0' at the origin, '1' below, '2' and '3' above.

    Distances: 0-1 = 1, 0-2 = 0-3 = sqrt(2), 2-3 = 2, 1-2 = 1-3 = sqrt(5).
    """
    return pd.DataFrame(STAR, index=['0', '1', '2', '3'], columns=['x', 'y'])


@pytest.fixture
def star_distances(star_centers) -> pd.DataFrame:
    """Euclidean distance matrix of the star centroids."""
    values = star_centers.values
    d = np.sqrt(((values[:, None, :] - values[None, :, :]) ** 2).sum(axis=2))
    return pd.DataFrame(d, index=star_centers.index, columns=star_centers.index)


@pytest.fixture
def star_edges() -> list:
    """Edges of the MST of the star centroids."""
    return [('0', '1'), ('0', '2'), ('0', '3')]


# =============================================================================
# Point Cloud Fixtures
# =============================================================================


@pytest.fixture
def star_points():
    """100 observations per star cluster with standard deviation 0.1.

    Returns
    -------
    points : pandas.DataFrame
        Coordinates indexed by observation name.
    labels : numpy.ndarray
        Cluster label of each observation.
    """
    rng = np.random.default_rng(0)
    n = 100
    coords = np.concatenate([rng.normal(loc=c, scale=0.1, size=(n, 2)) for c in STAR])
    labels = np.repeat(['0', '1', '2', '3'], n)
    points = pd.DataFrame(coords, index=[f"cell{i}" for i in range(coords.shape[0])],
                          columns=['x', 'y'])
    return points, labels


@pytest.fixture
def small_cluster_points():
    """Two clusters of 20 observations and one cluster of 2 observations in 2-d."""
    rng = np.random.default_rng(0)
    coords = np.concatenate([rng.normal(loc=[0., 0.], scale=0.5, size=(20, 2)),
                             rng.normal(loc=[5., 0.], scale=0.5, size=(20, 2)),
                             rng.normal(loc=[5., 5.], scale=0.5, size=(2, 2))])
    labels = np.array(['a'] * 20 + ['b'] * 20 + ['c'] * 2)
    return pd.DataFrame(coords, columns=['x', 'y']), labels


@pytest.fixture(autouse=True)
def quiet_logging():
    """Reset package verbosity after each test."""
    yield
    set_package_verbose("WARN")
