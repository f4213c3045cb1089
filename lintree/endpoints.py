"""
endpoints
=========

Force clusters to be endpoints (leaves) of the MST.

Each endpoint is assigned exactly one partner, and all of its other distances
are set to zero so that the only edge left for the endpoint in the graph is the
edge to its partner. The assignment minimizing the total distance between
endpoints and their partners is found with an exhaustive depth-first search.

Two endpoints may be partnered with each other, forming an isolated two-node
component, only if dyads are allowed.
"""

import numpy as np

from ._logging import _gen_logger
from .checks import check_labels
from .exceptions import UnsatisfiableConstraintError

logger = _gen_logger(__name__)


class EndpointSearch:
    """ Branch-and-bound search for the endpoint partners.

    Parameters
    ----------
    dmat : `pandas.DataFrame`
        Symmetric distance matrix with positive off-diagonal entries.
    endpoints : list-like of `str`
        Clusters that must be endpoints, searched in the given order.
    allow_dyads : `bool`
        If `True`, two endpoints may be partnered with each other.
    """

    def __init__(self, dmat, endpoints, allow_dyads=False):
        self.endpoints = list(dict.fromkeys(str(e) for e in endpoints))
        check_labels(self.endpoints, dmat.index)
        self.allow_dyads = allow_dyads
        self.labels = dmat.columns.tolist()
        self.available = dmat.loc[self.endpoints].values

        self.best_distance = np.inf
        self.best_path = None

    def search(self, path=(), distance=0.):
        """ Extend a partial assignment ``path`` with accumulated ``distance``. """
        i = len(path)
        if i == len(self.endpoints):
            if distance < self.best_distance:
                self.best_distance = distance
                self.best_path = path
            return
        if distance > self.best_distance:
            return

        current = self.endpoints[i]
        if current in path:
            # the partner of an endpoint that chose this endpoint is reciprocated
            # at no extra distance
            reciprocal = self.endpoints[path.index(current)]
            if self.allow_dyads and (reciprocal not in path):
                self.search(path + (reciprocal,), distance)
            return

        used = {current}
        used.update(self.endpoints[:i])
        used.update(k for k in path if k in self.endpoints)
        for j, partner in enumerate(self.labels):
            if partner not in used:
                self.search(path + (partner,), distance + self.available[i, j])

    def solve(self):
        """ Run the search.

        Returns
        -------
        partners : `dict` [`str`, `str`]
            The partner of each endpoint.

        Raises
        ------
        UnsatisfiableConstraintError
            If no assignment exists.
        """
        self.best_distance = np.inf
        self.best_path = None
        self.search()
        if self.best_path is None:
            raise UnsatisfiableConstraintError(self.endpoints)
        logger.debug(f"Endpoint assignment with total distance {self.best_distance:.4g}.")
        return dict(zip(self.endpoints, self.best_path))


def enforce_endpoints(dmat, endpoints, allow_dyads=False):
    """ Restrict the distance matrix so that its MST has the requested endpoints.

    Parameters
    ----------
    dmat : `pandas.DataFrame`
        Symmetric distance matrix with positive off-diagonal entries.
    endpoints : list-like of `str`
        Clusters that must be endpoints.
    allow_dyads : `bool`
        If `True`, two endpoints may be connected to each other only.

    Returns
    -------
    restricted : `pandas.DataFrame`
        A new distance matrix where each endpoint only has a non-zero distance to its partner.
    """
    partners = EndpointSearch(dmat, endpoints, allow_dyads=allow_dyads).solve()

    restricted = dmat.copy()
    for current, partner in partners.items():
        others = [k for k in restricted.columns if k != partner]
        restricted.loc[current, others] = 0.
        restricted.loc[others, current] = 0.
        logger.trace(f"Endpoint {current!r} connected to {partner!r}.")
    return restricted
