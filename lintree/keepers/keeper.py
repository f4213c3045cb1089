"""
keeper
======

Class used for data storage and extraction of the coordinates and cluster
labels that trees are built from.
"""

import networkx as nx
import numpy as np
import pandas as pd

from .. import checks
from .._logging import _gen_logger, set_package_verbose
from .._utils import as_labels, select_columns
from ..exceptions import ConfigurationError
from ..tree import build_cluster_tree

logger = _gen_logger(__name__)


class Keeper:
    """ A class to store data sets, observation-level annotations and graphs.

    Parameters
    ----------
    data : {`numpy.ndarray`, `pandas.DataFrame`, `dict` [`str`, `numpy.ndarray`], `dict` [`str`, `pandas.DataFrame`]}
        One or multiple feature data sets (or layers), where each data set is size (num_features, num_observations).

        - `numpy.ndarray` or `pandas.DataFrame` : A single data set stored with label ``'data'``.
          For a dataframe, the index indicates feature labels and the columns observation labels.
        - `dict` : Data sets keyed by their label.
    misc : `dict`
        Observation-level annotations keyed by label, e.g., cluster labels (1-d, of length
        num_observations) or low-dimensional embeddings (num_observations, n_dims).
    graphs : `dict` [`str`, `networkx.Graph`]
        Networks keyed by label.
    observation_labels : `list` [`str`], optional
        Labels of the observations. If not provided, taken from the columns of the first
        dataframe, or set to ``'X0', 'X1', ...``.
    verbose : {`None`, 'DEBUG', 'TRACE', 'INFO', 'WARN', 'MSG', 'ERROR'}
        Logging verbosity, unchanged if `None`.

    Notes
    -----
    All data sets and annotations are assumed to contain the same observations in the same order.
    """

    def __init__(self, data=None, misc=None, graphs=None, observation_labels=None,
                 verbose=None):
        if verbose is not None:
            set_package_verbose(verbose)

        if observation_labels is not None:
            if len(observation_labels) != len(set(observation_labels)):
                raise ConfigurationError("Observation labels must be unique.")
            observation_labels = list(observation_labels)
        self._observation_labels = observation_labels
        self._data = {}
        self._misc = {}
        self._graphs = {}

        if isinstance(data, (pd.DataFrame, np.ndarray)):
            self.add_data(data, 'data')
        elif isinstance(data, dict):
            for label, cur_data in data.items():
                self.add_data(cur_data, label)
        elif data is not None:
            raise ConfigurationError("Unrecognized type for data, must be one of [pandas.DataFrame, numpy.ndarray, dict].")

        for label, cur_misc in (misc or {}).items():
            self.add_misc(cur_misc, label)
        for label, graph in (graphs or {}).items():
            self.add_graph(graph, label)

    @property
    def data(self):
        """ A dictionary of all data sets, each of size (num_features, num_observations). """
        return self._data

    @property
    def misc(self):
        """ A dictionary of observation-level annotations. """
        return self._misc

    @property
    def graphs(self):
        """ A dictionary of all graphs. """
        return self._graphs

    @property
    def observation_labels(self):
        """ Labels for each observation. """
        return self._observation_labels

    @property
    def num_observations(self):
        """ Number of observations. """
        return None if self._observation_labels is None else len(self._observation_labels)

    def _set_observation_labels(self, n, labels=None):
        if self._observation_labels is None:
            self._observation_labels = list(labels) if labels is not None else [f"X{i}" for i in range(n)]
            logger.debug("Set observation labels.")
        elif n != len(self._observation_labels):
            raise ConfigurationError(f"Inconsistent data size, expected {len(self._observation_labels)} observations, got {n}.")

    def add_data(self, data, label):
        """ Add a feature data set to the keeper.

        Parameters
        ----------
        data : {`numpy.ndarray`, `pandas.DataFrame`}
            The data set of size (num_features, num_observations).
        label : `str`
            Reference label describing the data set.
        """
        if label in self._data:
            raise KeyError(f"Duplicate label detected, {label} already exists in the keeper.")

        if isinstance(data, pd.DataFrame):
            if not data.columns.is_unique:
                raise ConfigurationError("Observation labels must be unique.")
            if not data.index.is_unique:
                raise ConfigurationError("Feature labels must be unique.")
            self._set_observation_labels(data.shape[1], labels=data.columns)
            if set(data.columns) != set(self._observation_labels):
                unknown = [k for k in data.columns if k not in set(self._observation_labels)]
                raise ConfigurationError(f"Data {label} has observations not in the keeper: {unknown[:10]}.",
                                         suggestion="Layers must share the observation labels of the keeper.")
            frame = data[self._observation_labels].copy()
        elif isinstance(data, np.ndarray):
            if data.ndim != 2:
                raise ConfigurationError("Data must be 2-dimensional.")
            self._set_observation_labels(data.shape[1])
            frame = pd.DataFrame(data, columns=self._observation_labels)
        else:
            raise ConfigurationError("Unrecognized type, data must be numpy ndarray or pandas DataFrame.")

        checks.check_matrix_no_nan(frame.values)
        self._data[label] = frame
        logger.debug(f"Data {label} with {frame.shape[0]} features added to keeper.")

    def add_misc(self, data, label):
        """ Add an observation-level annotation.

        Parameters
        ----------
        data : {array-like, `pandas.Series`, `pandas.DataFrame`, `numpy.ndarray`}
            Cluster labels (1-d), soft assignment weights or an embedding
            with one row per observation.
        label : `str`
            Reference label describing the input.
        """
        if label in self._misc:
            raise KeyError(f"Duplicate label detected, {label} already exists in the keeper.")

        n = len(data)
        if self._observation_labels is None:
            self._set_observation_labels(n, labels=data.index if isinstance(data, (pd.Series, pd.DataFrame)) else None)
        elif n != len(self._observation_labels):
            raise ConfigurationError(f"Annotation {label} has {n} rows, expected {len(self._observation_labels)}.")

        self._misc[label] = data
        logger.info(f"Added misc input {label} to the keeper.")

    def add_graph(self, graph, label):
        """ Add a network to the keeper.

        Parameters
        ----------
        graph : `networkx.Graph`
            The network.
        label : `str`
            Reference label describing the network.
        """
        if not isinstance(graph, nx.Graph):
            raise ConfigurationError("Unrecognized type, graph must be a networkx.Graph.")
        if label in self._graphs:
            raise KeyError(f"Duplicate label detected, {label} already exists in the keeper.")
        self._graphs[label] = graph
        logger.debug(f"Added graph {label} to the keeper.")

    def coordinates(self, layer, features=None):
        """ Coordinates of the observations from a data set, transposed so that rows are observations.

        Parameters
        ----------
        layer : `str`
            Label of the data set.
        features : list-like, optional
            Feature labels (or positions) to use. All by default.

        Returns
        -------
        points : `pandas.DataFrame`, (num_observations, n_features)
        """
        if layer not in self._data:
            raise ConfigurationError(f"No data set {layer!r} in the keeper.",
                                     suggestion=f"Available data sets: {list(self._data)}")
        points = self._data[layer].T
        if features is not None:
            points = select_columns(points, features)
        return points

    def embedding(self, key, dims=None):
        """ Low-dimensional embedding of the observations, with no transposition.

        Parameters
        ----------
        key : `str`
            Label of the embedding in ``misc``.
        dims : list-like, optional
            Dimension labels (or positions) to use. All by default.

        Returns
        -------
        points : `pandas.DataFrame`, (num_observations, n_dims)
        """
        if key not in self._misc:
            raise ConfigurationError(f"No embedding {key!r} in the keeper.",
                                     suggestion=f"Available annotations: {list(self._misc)}")
        emb = self._misc[key]
        if isinstance(emb, pd.DataFrame):
            points = emb.copy()
        else:
            points = pd.DataFrame(np.asarray(emb), index=self._observation_labels)
        if points.ndim != 2 or points.shape[1] < 1:
            raise ConfigurationError(f"Annotation {key!r} is not an embedding.")
        if dims is not None:
            points = select_columns(points, dims)
        return points

    def cluster_labels(self, clusters='label'):
        """ Cluster assignment of the observations.

        Parameters
        ----------
        clusters : {`str`, array-like, `numpy.ndarray`, `pandas.DataFrame`}
            If a `str`, the label of the assignment stored in ``misc``.
            Otherwise, an explicit assignment that is returned after checking its length.

        Returns
        -------
        clusters : {`numpy.ndarray`, `pandas.DataFrame`}
            Hard labels as `str` or soft assignment weights.
        """
        if isinstance(clusters, str):
            if clusters not in self._misc:
                raise ConfigurationError(f"No cluster labels {clusters!r} in the keeper.",
                                         suggestion="Add them with `add_misc` or pass the labels explicitly.")
            clusters = self._misc[clusters]

        if isinstance(clusters, pd.DataFrame) or (isinstance(clusters, np.ndarray) and clusters.ndim == 2):
            if (self.num_observations is not None) and (clusters.shape[0] != self.num_observations):
                raise ConfigurationError(f"Got {clusters.shape[0]} rows of assignment weights for {self.num_observations} observations.")
            return clusters
        return as_labels(clusters, n=self.num_observations)

    def construct_cluster_mst(self, layer=None, use_embedding=None, features=None,
                              clusters='label', label=None, **kwargs):
        """ Construct the MST on cluster centroids and store it in ``graphs``.

        Parameters
        ----------
        layer : `str`, optional
            Label of the data set used for the coordinates (transposed).
        use_embedding : `str`, optional
            Label of the embedding in ``misc`` used for the coordinates.
            Takes precedence over ``layer``.
        features : list-like, optional
            Features (or dimensions) to use.
        clusters : {`str`, array-like, `numpy.ndarray`, `pandas.DataFrame`}
            Cluster assignment, see :meth:`cluster_labels`.
        label : `str`, optional
            Label of the graph in ``graphs``. Defaults to ``'cluster_mst_<source>'``.
        **kwargs
            Additional key-word arguments passed to :func:`lintree.build_cluster_tree`.

        Returns
        -------
        mst : `networkx.Graph`
            The cluster MST.
        """
        if use_embedding is not None:
            points = self.embedding(use_embedding, dims=features)
            source = use_embedding
        elif layer is not None:
            points = self.coordinates(layer, features=features)
            source = layer
        else:
            raise ConfigurationError("Either 'layer' or 'use_embedding' must be provided.")

        mst = build_cluster_tree(points, clusters=self.cluster_labels(clusters), **kwargs)

        label = f"cluster_mst_{source}" if label is None else label
        self.add_graph(mst, label)
        return mst
