"""
The :mod:`lintree` module builds lineage trees on clusters of observations.

Each cluster is summarized by a centroid, clusters are connected by a minimum
spanning tree on the distances between centroids, and each edge is scored by
how much the tree would lose without it.

To do:
======
- Currently, __version__ must be manually updated in _version.py and setup.py.
  This should be automated to ensure agreement.
"""

from ._version import __version__

from lintree._logging import set_verbose, set_package_verbose
from lintree.distances import DistMethod
from lintree.exceptions import ConfigurationError, LintreeError, MedianCentroidWarning, \
    NumericalError, UnsatisfiableConstraintError
from lintree.keepers.keeper import Keeper
from lintree.tree import ClusterMST, build_cluster_tree
