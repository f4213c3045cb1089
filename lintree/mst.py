"""
mst
===

Minimum spanning trees (MST) on cluster distance matrices, the outgroup used
to split the MST into a forest, and the confidence of each MST edge.

**Outgroup**

An artificial outgroup cluster is appended to the distance matrix at distance
:math:`\\omega` from all real clusters. Any MST edge between real clusters
longer than :math:`\\omega` is then rerouted through the outgroup, so that
removing the outgroup breaks up the MST into a minimum spanning forest.
By default :math:`\\omega` is the median MST edge length times ``outscale``.

**Edge confidence**

The confidence of an MST edge is the distance gained if that edge were not
present, divided by the length of the edge. Ambiguous parts of the tree are
less penalized by the deletion of an edge (small gain), while parts with clear
structure receive a large gain. Normalizing by the edge length avoids
penalizing edges between broad clusters. A gain of one means that the
alternative tree travels an additional distance equal to the edge length.
Edges that cannot be replaced (e.g., edges of forced endpoints) have infinite gain.
"""

import networkx as nx
import numpy as np
import pandas as pd

from ._logging import _gen_logger
from ._utils import stack_triu_where_
from .exceptions import ConfigurationError, NumericalError

logger = _gen_logger(__name__)

OUTSCALE = 1.5
GAIN_OFFSET_RATIO = 1e-8


def graph_from_distances(dmat, weight='weight'):
    """ Weighted graph from a distance matrix where zero entries are missing edges.

    Nodes are added in the order of the matrix labels and edges in row-major
    order of the upper triangle, which fixes the tie-break of the MST.

    Parameters
    ----------
    dmat : `pandas.DataFrame`
        Symmetric distance matrix.
    weight : `str`
        Edge attribute holding the distance.

    Returns
    -------
    G : `networkx.Graph`
    """
    edgelist = stack_triu_where_(dmat, dmat.values > 0, name=weight)
    G = nx.Graph()
    G.add_nodes_from(dmat.index)
    G.add_weighted_edges_from(((i, j, w) for (i, j), w in edgelist.items()), weight=weight)
    return G


def minimum_spanning_tree(G, weight='weight'):
    """ Minimum spanning tree (or forest, if ``G`` is disconnected) with Kruskal's algorithm.

    Ties are broken by the insertion order of the edges in ``G``.
    """
    return nx.minimum_spanning_tree(G, weight=weight, algorithm='kruskal')


def total_weight(G, weight='weight'):
    """ Sum of the edge weights. """
    return float(sum(w for _, _, w in G.edges(data=weight)))


def outgroup_threshold(dmat, outscale=OUTSCALE):
    """ Default outgroup distance threshold: the median MST edge length scaled by ``outscale``.

    Parameters
    ----------
    dmat : `pandas.DataFrame`
        Symmetric distance matrix, zero entries are missing edges.
    outscale : `float`
        Scaling of the median edge length.

    Returns
    -------
    omega : `float`
    """
    mst = minimum_spanning_tree(graph_from_distances(dmat))
    weights = [w for _, _, w in mst.edges(data='weight')]
    if len(weights) == 0:
        raise NumericalError("Cannot compute an outgroup threshold from a tree without edges.",
                             suggestion="Provide a numeric outgroup threshold or disable the outgroup.")
    return float(np.median(weights)) * outscale


def outgroup_name(labels):
    """ A label distinct from all ``labels``: ``'x'`` repeated one more time than the longest label. """
    return "x" * (max((len(str(k)) for k in labels), default=0) + 1)


def add_outgroup(dmat, omega):
    """ Append an outgroup at distance ``omega`` from every cluster.

    Parameters
    ----------
    dmat : `pandas.DataFrame`, (n, n)
        Symmetric distance matrix.
    omega : `float`
        Distance between the outgroup and every cluster, ``omega > 0``.

    Returns
    -------
    augmented : `pandas.DataFrame`, (n + 1, n + 1)
        A new distance matrix with the outgroup as the last row and column.
    name : `str`
        Label of the outgroup.
    """
    if not omega > 0:
        raise ConfigurationError(f"Outgroup threshold must be positive, got {omega}.")
    name = outgroup_name(dmat.index)
    labels = list(dmat.index) + [name]
    values = np.full((len(labels), len(labels)), float(omega))
    values[:-1, :-1] = dmat.values
    values[-1, -1] = 0.
    return pd.DataFrame(values, index=labels, columns=labels), name


def estimate_edge_confidence(mst, G, weight='weight', name='gain'):
    """ Estimate the confidence of each MST edge from the distance gained when it is removed.

    For an edge :math:`(u, v)` of length :math:`W`, the gain is
    :math:`(R - T) / (W + o \\cdot 10^{-8})` where :math:`T` is the total MST weight,
    :math:`R` the total weight of the MST of ``G`` without the edge and :math:`o`
    the shortest MST edge. The gain is infinite if :math:`u` or :math:`v` has
    degree at most 1 in ``G``, or if no alternative route exists.

    Parameters
    ----------
    mst : `networkx.Graph`
        Minimum spanning tree of ``G``. Gains are added in place as edge attribute ``name``.
    G : `networkx.Graph`
        The full weighted graph.
    weight : `str`
        Edge attribute holding the distance.
    name : `str`
        Edge attribute the gain is stored under.

    Returns
    -------
    mst : `networkx.Graph`
        The annotated MST.
    """
    edges = list(mst.edges(data=weight))
    if len(edges) == 0:
        return mst

    W = np.array([w for _, _, w in edges], dtype=float)
    total = W.sum()
    offset = W.min()
    to_skip = {node for node, degree in G.degree() if degree <= 1}
    n_components = nx.number_connected_components(G)

    gains = {}
    for (u, v, w) in edges:
        if (u in to_skip) or (v in to_skip):
            reweight = np.inf
        else:
            G_copy = G.copy()
            G_copy.remove_edge(u, v)
            if nx.number_connected_components(G_copy) > n_components:
                reweight = np.inf
            else:
                reweight = total_weight(minimum_spanning_tree(G_copy, weight=weight), weight=weight)
        gains[(u, v)] = max(reweight - total, 0.) / (w + offset * GAIN_OFFSET_RATIO)
        logger.trace(f"Edge ({u}, {v}): weight = {w:.4g}, gain = {gains[(u, v)]:.4g}.")

    nx.set_edge_attributes(mst, gains, name=name)
    return mst
