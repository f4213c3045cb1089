"""
tree
====

Minimum spanning trees on cluster centroids.

Build an MST where each node is a cluster centroid and each edge is weighted by
the distance between centroids. This represents the most parsimonious
explanation for a particular trajectory and is directly interpretable with
respect to pre-existing clusters.

References
----------
Ji Z and Ji H (2016). TSCAN: Pseudo-time reconstruction and evaluation in
single-cell RNA-seq analysis. Nucleic Acids Res. 44, e117

Street K et al. (2018). Slingshot: cell lineage and pseudotime inference for
single-cell transcriptomics. BMC Genomics, 477.
"""

import logging
import numbers
import warnings

import networkx as nx
import numpy as np
import pandas as pd

from ._logging import _gen_logger, set_package_verbose
from ._utils import _docstring_parameter, _desc_tree_params, as_points, has_labels
from .centroids import summarize_clusters
from .checks import check_distance_matrix, check_forest, check_labels
from .distances import DistMethod, compute_distances, floor_distances
from .endpoints import enforce_endpoints
from .exceptions import ConfigurationError
from .mst import OUTSCALE, add_outgroup, estimate_edge_confidence, graph_from_distances, \
    minimum_spanning_tree, outgroup_threshold
from .neighbors import MNN_K

logger = _gen_logger(__name__)


@_docstring_parameter(tree_params=_desc_tree_params)
class ClusterMST:
    """\
    Minimum spanning tree on cluster centroids.

    The steps are run in order by :meth:`run`: centroids, distances, positivity
    floor, endpoint constraints, outgroup, MST, edge confidence and outgroup removal.
    Intermediate results are available as attributes.

    Parameters
    ----------
    points : {{`None`, `numpy.ndarray`, `pandas.DataFrame`, `dict`}}
        Coordinates where each row is an observation and each column a dimension.
        If ``clusters`` is `None`, each row is a cluster centroid labeled by the row name.
        Ignored if ``precomputed_distance`` is provided.
    {tree_params}
    """

    def __init__(self, points=None, clusters=None, use_median=False, outgroup=False,
                 outscale=OUTSCALE, endpoints=None, columns=None, dist_method='simple',
                 with_mnn=False, mnn_k=MNN_K, precomputed_distance=None, proc=1,
                 verbose=None):
        if verbose is not None:
            set_package_verbose(verbose)

        if with_mnn:
            warnings.warn("'with_mnn=True' is deprecated, use dist_method='mnn' instead",
                          FutureWarning, stacklevel=2)
            dist_method = DistMethod.MNN

        self.dist_method = DistMethod.parse(dist_method)
        self.use_median = use_median
        self.outgroup = self._parse_outgroup(outgroup)
        self.outscale = outscale
        self.endpoints = None if endpoints is None else [str(e) for e in np.ravel(endpoints)]
        self.mnn_k = mnn_k
        self.proc = proc

        if (mnn_k is None) or (mnn_k < 1):
            raise ConfigurationError(f"mnn_k must be a positive integer, got {mnn_k}.")

        self.points = None
        self.clusters = clusters
        self.precomputed_distance = precomputed_distance
        if precomputed_distance is None:
            if points is None:
                raise ConfigurationError("Either 'points' or 'precomputed_distance' must be provided.")
            if (clusters is None) and (not has_labels(points)):
                raise ConfigurationError("'points' must have row names corresponding to cluster names when 'clusters' is None.",
                                         suggestion="Pass a pandas.DataFrame indexed by cluster name or provide 'clusters'.")
            self.points = as_points(points, columns=columns)

        self._centers = None
        self._distances = None
        self._omega = None
        self._outgroup_label = None
        self._full_graph = None
        self._graph = None

    @staticmethod
    def _parse_outgroup(outgroup):
        if isinstance(outgroup, (bool, np.bool_)):
            return bool(outgroup)
        if isinstance(outgroup, numbers.Real):
            if not outgroup > 0:
                raise ConfigurationError(f"Outgroup threshold must be positive, got {outgroup}.")
            return float(outgroup)
        raise ConfigurationError(f"outgroup must be a bool or a positive number, got {outgroup!r}.")

    @property
    def centers(self):
        """ Cluster centroids, (n_clusters, n_dims). `None` with a precomputed distance. """
        return self._centers

    @property
    def distances(self):
        """ Floored distances between clusters, before endpoint and outgroup modifications. """
        return self._distances

    @property
    def omega(self):
        """ Outgroup distance threshold, `None` without outgroup. """
        return self._omega

    @property
    def outgroup_label(self):
        """ Label of the outgroup node in :attr:`full_graph`. """
        return self._outgroup_label

    @property
    def full_graph(self):
        """ The weighted graph the MST was drawn from, including the outgroup. """
        return self._full_graph

    @property
    def graph(self):
        """ The final MST. """
        return self._graph

    def compute_centers(self):
        """ Compute the cluster centroids. """
        if self.points is None:
            return
        self._centers = summarize_clusters(self.points, self.clusters, use_median=self.use_median)
        logger.debug(f"Centroids: {self._centers.shape}")

    def compute_distances(self):
        """ Compute the floored distance matrix between clusters. """
        if self.precomputed_distance is not None:
            dmat = self.precomputed_distance
            if not isinstance(dmat, pd.DataFrame):
                dmat = pd.DataFrame(np.asarray(dmat, dtype=float))
            check_distance_matrix(dmat)
            labels = dmat.index.astype(str)
            dmat = pd.DataFrame(dmat.values.astype(float), index=labels, columns=labels)
        else:
            if self._centers is None:
                logger.msg("Must compute centroids before distances can be computed, running `compute_centers` now.")
                self.compute_centers()
            dmat = compute_distances(self.points, self.clusters, self._centers,
                                     method=self.dist_method, use_median=self.use_median,
                                     mnn_k=self.mnn_k, proc=self.proc,
                                     progress=logger.isEnabledFor(logging.INFO))
        self._distances = floor_distances(dmat)

    def run(self):
        """ Build the tree.

        Returns
        -------
        mst : `networkx.Graph`
            The MST (or forest) on the clusters. Edge attribute ``'weight'`` is
            the distance and ``'gain'`` the confidence of the edge. Node attribute
            ``'coordinates'`` holds the centroid when centroids were computed.
        """
        if self._distances is None:
            self.compute_distances()

        dmat = self._distances
        if dmat.shape[0] < 2:
            logger.msg("Fewer than two clusters, returning a tree without edges.")

        if self.endpoints and (dmat.shape[0] < 2):
            # a lone cluster already has degree 0
            check_labels(self.endpoints, dmat.index)
        elif self.endpoints:
            # endpoint dyads form separate components, only possible with an outgroup
            allow_dyads = (self.outgroup is not False) or (dmat.shape[0] == 2)
            dmat = enforce_endpoints(dmat, self.endpoints, allow_dyads=allow_dyads)

        self._omega = None
        self._outgroup_label = None
        if (self.outgroup is not False) and (dmat.shape[0] > 1):
            if self.outgroup is True:
                self._omega = outgroup_threshold(dmat, outscale=self.outscale)
            else:
                self._omega = self.outgroup
            dmat, self._outgroup_label = add_outgroup(dmat, self._omega)
            logger.info(f"Added outgroup at distance {self._omega:.4g}.")

        self._full_graph = graph_from_distances(dmat)
        mst = minimum_spanning_tree(self._full_graph)
        mst = estimate_edge_confidence(mst, self._full_graph)

        if self._outgroup_label is not None:
            mst.remove_node(self._outgroup_label)

        if self._centers is not None:
            nx.set_node_attributes(mst, {k: self._centers.loc[k].values.copy() for k in mst},
                                   name='coordinates')

        check_forest(mst)
        logger.debug(f"MST: {mst.number_of_nodes()} nodes, {mst.number_of_edges()} edges, "
                     f"{nx.number_connected_components(mst) if len(mst) else 0} component(s).")
        self._graph = mst
        return mst


@_docstring_parameter(tree_params=_desc_tree_params)
def build_cluster_tree(points=None, clusters=None, use_median=False, outgroup=False,
                       outscale=OUTSCALE, endpoints=None, columns=None, dist_method='simple',
                       with_mnn=False, mnn_k=MNN_K, precomputed_distance=None, proc=1,
                       verbose=None):
    """\
    Minimum spanning tree on cluster centroids.

    Parameters
    ----------
    points : {{`None`, `numpy.ndarray`, `pandas.DataFrame`, `dict`}}
        Coordinates where each row is an observation and each column a dimension.
        If ``clusters`` is `None`, each row is a cluster centroid labeled by the row name.
    {tree_params}

    Returns
    -------
    mst : `networkx.Graph`
        The MST (or minimum spanning forest with an outgroup) where each node is a
        cluster labeled by its `str` name with the centroid in the ``'coordinates'``
        attribute. Edge attribute ``'weight'`` is the distance between clusters and
        ``'gain'`` the confidence of the edge.

    Examples
    --------
    >>> centers = pd.DataFrame([[0, 0], [0, -1], [1, 1], [-1, 1]], index=['0', '1', '2', '3'])
    >>> mst = build_cluster_tree(centers)
    >>> sorted(mst.edges())
    [('0', '1'), ('0', '2'), ('0', '3')]
    """
    builder = ClusterMST(points=points, clusters=clusters, use_median=use_median,
                         outgroup=outgroup, outscale=outscale, endpoints=endpoints,
                         columns=columns, dist_method=dist_method, with_mnn=with_mnn,
                         mnn_k=mnn_k, precomputed_distance=precomputed_distance, proc=proc,
                         verbose=verbose)
    builder.compute_centers()
    builder.compute_distances()
    return builder.run()
