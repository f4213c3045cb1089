"""Tests for building cluster trees end to end."""

import networkx as nx
import numpy as np
import pandas as pd
import pytest

from lintree import ClusterMST, build_cluster_tree
from lintree.exceptions import (
    ConfigurationError,
    MedianCentroidWarning,
    NumericalError,
    UnsatisfiableConstraintError,
)


def undirected(edges):
    return sorted(tuple(sorted(e)) for e in edges)


def gains(mst):
    return nx.get_edge_attributes(mst, 'gain')


# =============================================================================
# Scenarios
# =============================================================================


class TestStarScenarios:
    """The Y-shaped star with the center '0' at the origin."""

    def test_star(self, star_centers, star_edges):
        """Every cluster should be joined to the center with finite positive gains."""
        mst = build_cluster_tree(star_centers)
        assert undirected(mst.edges) == star_edges
        assert mst['0']['1']['weight'] == pytest.approx(1.)
        assert mst['0']['2']['weight'] == pytest.approx(np.sqrt(2.))
        assert all(np.isfinite(g) and g > 0 for g in gains(mst).values())

    def test_outgroup_keeps_star(self, star_centers, star_edges):
        """The default outgroup threshold is longer than every star edge."""
        builder = ClusterMST(star_centers, outgroup=True)
        mst = builder.run()
        assert builder.omega == pytest.approx(1.5 * np.sqrt(2.))
        assert undirected(mst.edges) == star_edges
        assert builder.outgroup_label not in mst
        assert builder.outgroup_label in builder.full_graph

    def test_endpoints_keep_star(self, star_centers, star_edges):
        """Leaves of the star are valid endpoints, and endpoint edges have infinite gain."""
        mst = build_cluster_tree(star_centers, endpoints=['2', '3'])
        assert undirected(mst.edges) == star_edges
        assert np.isinf(mst['0']['2']['gain'])
        assert np.isinf(mst['0']['3']['gain'])

    def test_all_endpoints(self, star_centers):
        """Every cluster as an endpoint has no solution without an outgroup."""
        with pytest.raises(UnsatisfiableConstraintError):
            build_cluster_tree(star_centers, endpoints=['0', '1', '2', '3'])

    def test_all_endpoints_with_outgroup(self, star_centers):
        """With an outgroup, endpoints may pair up into isolated dyads."""
        mst = build_cluster_tree(star_centers, endpoints=['0', '1', '2', '3'], outgroup=True)
        assert undirected(mst.edges) == [('0', '1'), ('2', '3')]
        assert all(d <= 1 for _, d in mst.degree)

    def test_numeric_outgroup(self, star_centers):
        """Edges longer than an explicit threshold should be cut."""
        mst = build_cluster_tree(star_centers, outgroup=1.2)
        assert undirected(mst.edges) == [('0', '1')]
        assert sorted(mst.nodes) == ['0', '1', '2', '3']
        assert nx.number_connected_components(mst) == 3


class TestSmallClusterScenario:
    """A cluster with no more observations than dimensions."""

    def test_full_fails(self, small_cluster_points):
        """Full covariance scaling is undefined for the small cluster."""
        points, labels = small_cluster_points
        with pytest.raises(NumericalError):
            build_cluster_tree(points, labels, dist_method='scaled.full')

    def test_adaptive_succeeds(self, small_cluster_points):
        """Adaptive scaling falls back to the diagonal and builds a tree."""
        points, labels = small_cluster_points
        mst = build_cluster_tree(points, labels, dist_method='adaptive')
        assert sorted(mst.nodes) == ['a', 'b', 'c']
        assert nx.is_tree(mst)


# =============================================================================
# Properties
# =============================================================================


class TestTreeProperties:
    """Properties that hold for every tree."""

    @pytest.mark.parametrize("dist_method", ['simple', 'scaled.diag', 'scaled.full', 'adaptive', 'mnn'])
    def test_star_points(self, star_points, star_edges, dist_method):
        """Every distance should recover the star from simulated observations."""
        points, labels = star_points
        builder = ClusterMST(points, labels, dist_method=dist_method, mnn_k=20)
        mst = builder.run()
        dmat = builder.distances.values
        np.testing.assert_allclose(dmat, dmat.T)
        np.testing.assert_array_equal(np.diag(dmat), 0.)
        assert (dmat[~np.eye(4, dtype=bool)] > 0).all()
        assert undirected(mst.edges) == star_edges
        assert mst.number_of_edges() == 3

    def test_coordinates_attached(self, star_points):
        """Nodes should carry their centroid."""
        points, labels = star_points
        mst = build_cluster_tree(points, labels)
        np.testing.assert_allclose(mst.nodes['2']['coordinates'], [1., 1.], atol=0.05)
        assert len(mst.nodes['0']['coordinates']) == 2

    def test_gains_non_negative(self, star_points):
        """Gains are non-negative or infinite."""
        points, labels = star_points
        mst = build_cluster_tree(points, labels, endpoints=['1'])
        values = np.array(list(gains(mst).values()))
        assert ((values >= 0) | np.isinf(values)).all()
        assert np.isinf(mst['0']['1']['gain'])

    def test_endpoints_are_leaves(self, star_centers):
        """Requested endpoints should have degree at most one."""
        mst = build_cluster_tree(star_centers, endpoints=['0'])
        assert mst.degree['0'] <= 1
        assert nx.is_tree(mst)

    def test_outgroup_splits_distant_cluster(self, star_centers):
        """A cluster far from the others should be split off by the outgroup."""
        centers = pd.concat([star_centers, pd.DataFrame([[20., 20.]], index=['4'], columns=['x', 'y'])])
        assert nx.is_tree(build_cluster_tree(centers))
        mst = build_cluster_tree(centers, outgroup=True)
        assert nx.number_connected_components(mst) == 2
        assert mst.degree['4'] == 0

    def test_deterministic(self, star_points):
        """Repeated runs should give identical trees."""
        points, labels = star_points
        first = build_cluster_tree(points, labels)
        second = build_cluster_tree(points, labels)
        assert list(first.edges(data='weight')) == list(second.edges(data='weight'))
        assert gains(first) == gains(second)

    def test_soft_assignment(self, star_points, star_edges):
        """Soft assignment weights should build the same tree."""
        points, labels = star_points
        weights = pd.get_dummies(pd.Series(labels, index=points.index)).astype(float)
        mst = build_cluster_tree(points, weights)
        assert undirected(mst.edges) == star_edges

    def test_single_cluster(self):
        """A single cluster is a tree without edges."""
        mst = build_cluster_tree(pd.DataFrame([[1., 2.]], index=['only']), outgroup=True)
        assert list(mst.nodes) == ['only']
        assert mst.number_of_edges() == 0

    def test_single_cluster_endpoint(self):
        """A lone cluster already is an endpoint."""
        mst = build_cluster_tree(pd.DataFrame([[1., 2.]], index=['only']), endpoints=['only'])
        assert list(mst.nodes) == ['only']
        with pytest.raises(ConfigurationError, match="Unknown cluster"):
            build_cluster_tree(pd.DataFrame([[1., 2.]], index=['only']), endpoints=['other'])

    def test_duplicate_centroids(self):
        """Coinciding centroids are joined through the positivity floor."""
        centers = pd.DataFrame([[0., 0.], [0., 0.], [3., 0.]], index=['a', 'b', 'c'])
        mst = build_cluster_tree(centers)
        assert mst['a']['b']['weight'] == pytest.approx(3e-6)
        assert nx.is_tree(mst)


# =============================================================================
# Inputs
# =============================================================================


class TestInputs:
    """Tests for the accepted inputs."""

    def test_mapping(self):
        """A mapping should be read as labeled centroids."""
        mst = build_cluster_tree({'a': [0., 0.], 'b': [1., 0.], 'c': [3., 0.]})
        assert undirected(mst.edges) == [('a', 'b'), ('b', 'c')]

    def test_columns(self, star_centers, star_edges):
        """Only the requested dimensions should be used."""
        centers = star_centers.assign(z=[0., 100., -100., 50.])
        assert undirected(build_cluster_tree(centers, columns=['x', 'y']).edges) == star_edges
        assert undirected(build_cluster_tree(centers, columns=[0, 1]).edges) == star_edges

    def test_unknown_column(self, star_centers):
        """Should reject dimensions that do not exist."""
        with pytest.raises(ConfigurationError, match="not found"):
            build_cluster_tree(star_centers, columns=['w'])

    def test_unlabeled_centroids(self):
        """Should reject centroid rows without names."""
        with pytest.raises(ConfigurationError, match="row names"):
            build_cluster_tree(np.zeros((3, 2)))

    def test_missing_input(self):
        """Should require points or a precomputed distance."""
        with pytest.raises(ConfigurationError):
            build_cluster_tree()

    def test_non_finite(self, star_centers):
        """Should reject NaN coordinates."""
        centers = star_centers.copy()
        centers.iloc[0, 0] = np.nan
        with pytest.raises(ConfigurationError, match="finite"):
            build_cluster_tree(centers)

    def test_scaled_without_clusters(self, star_centers):
        """Scaled distances need the observations of each cluster."""
        with pytest.raises(ConfigurationError, match="'clusters' must be specified"):
            build_cluster_tree(star_centers, dist_method='scaled.diag')

    def test_unknown_endpoint(self, star_centers):
        """Should reject endpoints that are not clusters."""
        with pytest.raises(ConfigurationError, match="Unknown cluster"):
            build_cluster_tree(star_centers, endpoints=['9'])

    @pytest.mark.parametrize("outgroup", [0., -1., 'yes'])
    def test_invalid_outgroup(self, star_centers, outgroup):
        """Should reject thresholds that are not positive numbers."""
        with pytest.raises(ConfigurationError):
            build_cluster_tree(star_centers, outgroup=outgroup)

    def test_invalid_mnn_k(self, star_centers):
        """Should reject a neighbor count below one."""
        with pytest.raises(ConfigurationError, match="mnn_k"):
            build_cluster_tree(star_centers, mnn_k=0)

    def test_errors_are_value_errors(self, star_centers):
        """Library errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            build_cluster_tree(star_centers, dist_method='unknown')

    def test_integer_labels(self, star_points, star_edges):
        """Cluster labels should be converted to strings."""
        points, labels = star_points
        mst = build_cluster_tree(points.values, labels.astype(int))
        assert undirected(mst.edges) == star_edges


class TestPrecomputedDistance:
    """Tests for a precomputed distance matrix."""

    def test_labeled(self, star_distances, star_edges):
        """A labeled matrix skips centroids, so nodes carry no coordinates."""
        mst = build_cluster_tree(precomputed_distance=star_distances)
        assert undirected(mst.edges) == star_edges
        assert 'coordinates' not in mst.nodes['0']

    def test_array_labels(self, star_distances, star_edges):
        """An unlabeled matrix is labeled by position."""
        mst = build_cluster_tree(precomputed_distance=star_distances.values)
        assert undirected(mst.edges) == star_edges

    def test_asymmetric(self, star_distances):
        """Should reject an asymmetric matrix."""
        dmat = star_distances.copy()
        dmat.loc['0', '1'] = 5.
        with pytest.raises(ConfigurationError, match="symmetric"):
            build_cluster_tree(precomputed_distance=dmat)

    def test_negative(self):
        """Should reject negative distances."""
        dmat = np.array([[0., -1.], [-1., 0.]])
        with pytest.raises(ConfigurationError, match="non-negative"):
            build_cluster_tree(precomputed_distance=dmat)

    def test_not_square(self):
        """Should reject a non-square matrix."""
        with pytest.raises(ConfigurationError):
            build_cluster_tree(precomputed_distance=np.zeros((2, 3)))

    def test_two_endpoints_form_dyad(self):
        """Two clusters may both be endpoints without an outgroup."""
        dmat = pd.DataFrame([[0., 2.], [2., 0.]], index=['a', 'b'], columns=['a', 'b'])
        mst = build_cluster_tree(precomputed_distance=dmat, endpoints=['a', 'b'])
        assert undirected(mst.edges) == [('a', 'b')]
        assert np.isinf(mst['a']['b']['gain'])


class TestAdvisories:
    """Tests for warnings issued during the build."""

    def test_with_mnn_deprecated(self, star_points, star_edges):
        """The deprecated flag should switch to MNN distances with a warning."""
        points, labels = star_points
        with pytest.warns(FutureWarning, match="dist_method='mnn'"):
            builder = ClusterMST(points, labels, with_mnn=True, mnn_k=20)
        assert builder.dist_method.value == 'mnn'
        assert undirected(builder.run().edges) == star_edges

    def test_median_with_scaled(self, star_points):
        """Median centroids with scaled distances should warn."""
        points, labels = star_points
        with pytest.warns(MedianCentroidWarning):
            build_cluster_tree(points, labels, use_median=True, dist_method='scaled.diag')
