"""
neighbors
=========

Nearest-neighbor search between clusters of observations.

An MNN pair is made of two observations in separate clusters that are each
among the other's ``k`` nearest neighbors in the other cluster. The
distance between two clusters is then taken as the median distance between
their MNN pairs, focusing on cluster pairs that are close at their boundaries
rather than at their centers.
"""

from functools import partial
import itertools
import multiprocessing as mp

import numpy as np
import pandas as pd
import scipy.spatial as ss
from tqdm import tqdm

from ._logging import _gen_logger
from ._utils import as_labels
from .centroids import harden, is_soft_assignment

logger = _gen_logger(__name__)

MNN_K = 50


def build_index(points):
    """ Build a queryable nearest-neighbor index.

    Parameters
    ----------
    points : array-like, (n, n_dims)
        The indexed points.

    Returns
    -------
    index : `scipy.spatial.cKDTree`
    """
    return ss.cKDTree(np.asarray(points, dtype=float))


def query_knn(index, queries, k):
    """ Indices of the ``k`` nearest indexed points of each query, closest first.

    Returns
    -------
    indices : `numpy.ndarray`, (n_queries, k)
    """
    queries = np.asarray(queries, dtype=float)
    _, indices = index.query(queries, k=k)
    return np.asarray(indices).reshape(queries.shape[0], -1)


def find_mutual_nn(data1, data2, k1, k2=None, index1=None, index2=None):
    """ Find mutual nearest neighbors between two sets of points.

    Parameters
    ----------
    data1 : array-like, (n1, n_dims)
        First set of points.
    data2 : array-like, (n2, n_dims)
        Second set of points.
    k1 : `int`
        Number of neighbors searched in ``data1`` for each point of ``data2``.
    k2 : `int`, optional
        Number of neighbors searched in ``data2`` for each point of ``data1``.
        Defaults to ``k1``.
    index1, index2 : `scipy.spatial.cKDTree`, optional
        Prebuilt indices of ``data1`` and ``data2``.

    Returns
    -------
    first : `numpy.ndarray`
        Row indices in ``data1`` of the MNN pairs.
    second : `numpy.ndarray`
        Row indices in ``data2`` of the MNN pairs, paired with ``first``.
    """
    k2 = k1 if k2 is None else k2
    index1 = build_index(data1) if index1 is None else index1
    index2 = build_index(data2) if index2 is None else index2

    nn_in_2 = query_knn(index2, data1, min(k2, index2.n))  # for each point in data1
    nn_in_1 = query_knn(index1, data2, min(k1, index1.n))  # for each point in data2

    reverse = {(a, b) for b, nbrs in enumerate(nn_in_1) for a in nbrs}
    pairs = [(a, b) for a, nbrs in enumerate(nn_in_2) for b in nbrs if (a, b) in reverse]
    pairs.sort()

    first = np.array([a for a, _ in pairs], dtype=int)
    second = np.array([b for _, b in pairs], dtype=int)
    return first, second


def _mnn_pair_distance(pair, collated, indices, mnn_k):
    """ Square root of the median squared distance between MNN pairs of two clusters. """
    f, s = pair
    left, right = collated[f], collated[s]
    first, second = find_mutual_nn(left, right, k1=mnn_k,
                                   index1=indices[f], index2=indices[s])
    dist2 = np.sum((left[first] - right[second]) ** 2, axis=1)
    return np.sqrt(np.median(dist2))


def mnn_distances(x, clusters, mnn_k=MNN_K, proc=1, progress=False):
    """ Distances between clusters from their mutual nearest neighbors.

    Parameters
    ----------
    x : `pandas.DataFrame`, (n_observations, n_dims)
        Coordinates of the observations.
    clusters : {array-like, `numpy.ndarray`, `pandas.DataFrame`}
        Hard labels, or soft assignment weights that are hardened by taking
        the cluster with the largest weight of each observation.
    mnn_k : `int`
        Number of nearest neighbors considered (capped at the cluster sizes).
    proc : `int`
        Number of processes used for the pairwise searches.
    progress : `bool`
        If `True`, show a progress bar for the pairwise searches.

    Returns
    -------
    dmat : `pandas.DataFrame`, (n_clusters, n_clusters)
        Symmetric distance matrix indexed by sorted cluster label.
    """
    if is_soft_assignment(clusters):
        labels = harden(clusters)
    else:
        labels = as_labels(clusters, n=x.shape[0])

    levels = np.unique(labels).tolist()
    values = np.asarray(x, dtype=float)
    collated = [values[labels == k] for k in levels]
    indices = [build_index(c) for c in collated]
    logger.debug(f"Built nearest-neighbor indices for {len(levels)} clusters.")

    pairs = list(itertools.combinations(range(len(levels)), 2))
    search = partial(_mnn_pair_distance, collated=collated, indices=indices, mnn_k=mnn_k)

    if (proc is not None) and (proc > 1) and (len(pairs) > 1):
        chunksize = int(np.round(max(1, len(pairs) / proc)))
        with mp.Pool(proc) as pool:
            dists = pool.map(search, pairs, chunksize=chunksize)
    else:
        dists = [search(pair) for pair in tqdm(pairs, desc="MNN distances", disable=not progress)]

    distances = np.zeros((len(levels), len(levels)))
    for (f, s), d in zip(pairs, dists):
        distances[f, s] = distances[s, f] = d

    return pd.DataFrame(distances, index=levels, columns=levels)
