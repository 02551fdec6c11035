# -*- coding: utf-8 -*-
"""
Spatial Weights Module for evicthotspots
=========================================
Exact k-nearest-neighbour graphs and row-standardised spatial weights.

Neighbours are found with a full planar distance matrix and a stable sort,
so among equidistant candidates the lowest feature index always wins. The
resulting adjacency is handed to :class:`libpysal.weights.W` and
row-standardised (``transform = "r"``).
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np
from libpysal.weights import W
from scipy.spatial.distance import cdist

from .exceptions import InsufficientDataError, InvalidGeometryError, InvalidParameterError


__all__ = [
    "MIN_FEATURES",
    "NeighborGraph",
    "SpatialWeights",
    "resolve_k",
    "knn_neighbors",
    "build_weights",
]


MIN_FEATURES = 3


# ---------------------------------------------------------------------------
# k adjustment
# ---------------------------------------------------------------------------
def _as_int_k(k) -> int:
    if isinstance(k, bool) or not isinstance(k, numbers.Real):
        raise InvalidParameterError(
            f"`k` must be an integer, got {type(k).__name__}.",
            details={"k": k},
        )
    if not float(k).is_integer():
        raise InvalidParameterError(f"`k` must be an integer, got {k}.", details={"k": k})
    return int(k)


def resolve_k(n: int, k: int) -> Tuple[int, List[str]]:
    """
    Apply the neighbour-count adjustment policy.

    ``k`` is first clamped to ``n - 1``; it is then capped at
    ``max(1, n // 3)`` so small samples do not end up with an almost
    complete graph. Only the second step produces a warning.

    Args:
        n: Number of features.
        k: Requested neighbour count.

    Returns:
        ``(k_used, warnings)``.

    Raises:
        InsufficientDataError: ``n < 3``.
        InvalidParameterError: ``k`` is not an integer or is below 1.
    """
    if n < MIN_FEATURES:
        raise InsufficientDataError(
            f"Need at least {MIN_FEATURES} features to compute neighbors, got {n}.",
            details={"n": n},
        )
    k = _as_int_k(k)
    if k < 1:
        raise InvalidParameterError("`k` must be >= 1.", details={"k": k})

    warnings: List[str] = []
    k = min(k, n - 1)

    k_max = max(1, n // 3)
    if k > k_max:
        warnings.append(f"Reducing k from {k} to {k_max} because n={n} is small.")
        k = k_max

    return k, warnings


# ---------------------------------------------------------------------------
# Neighbour graph
# ---------------------------------------------------------------------------
@dataclass
class NeighborGraph:
    """
    Directed k-nearest-neighbour adjacency.

    Attributes:
        neighbors: ``{i: [j, …]}`` ordered from nearest to farthest.
        k: Neighbour count used for every feature.
    """

    neighbors: Dict[int, List[int]]
    k: int

    @property
    def n(self) -> int:
        return len(self.neighbors)

    @property
    def cardinalities(self) -> Dict[int, int]:
        return {i: len(js) for i, js in self.neighbors.items()}

    def is_symmetric(self) -> bool:
        """``True`` when every edge ``i → j`` has a matching ``j → i``."""
        return all(i in self.neighbors[j] for i, js in self.neighbors.items() for j in js)

    def to_dense(self) -> np.ndarray:
        """Binary ``n × n`` adjacency matrix."""
        adj = np.zeros((self.n, self.n))
        for i, js in self.neighbors.items():
            adj[i, js] = 1.0
        return adj


def knn_neighbors(coords: np.ndarray, k: int) -> NeighborGraph:
    """
    Exact k-nearest neighbours by Euclidean distance.

    Ties are broken by ascending feature index.

    Args:
        coords: ``(n, 2)`` coordinate array.
        k: Neighbour count, ``1 <= k <= n - 1``.

    Returns:
        :class:`NeighborGraph`.
    """
    coords = np.asarray(coords, dtype=float)
    if coords.ndim != 2 or coords.shape[1] != 2:
        raise InvalidGeometryError(
            f"Coordinates must have shape (n, 2), got {coords.shape}.",
        )
    if not np.isfinite(coords).all():
        bad = np.flatnonzero(~np.isfinite(coords).all(axis=1))
        raise InvalidGeometryError(
            f"Non-finite coordinates at positions {bad.tolist()}.",
            details={"positions": bad.tolist()},
        )
    n = len(coords)
    if not 1 <= k <= n - 1:
        raise InvalidParameterError(
            f"`k` must be between 1 and n - 1 = {n - 1}, got {k}.",
            details={"k": k, "n": n},
        )

    distances = cdist(coords, coords)
    np.fill_diagonal(distances, np.inf)  # exclude self

    order = np.argsort(distances, axis=1, kind="stable")[:, :k]
    neighbors = {i: [int(j) for j in order[i]] for i in range(n)}
    return NeighborGraph(neighbors=neighbors, k=k)


# ---------------------------------------------------------------------------
# Spatial weights
# ---------------------------------------------------------------------------
@dataclass
class SpatialWeights:
    """
    Row-standardised spatial weights built from a :class:`NeighborGraph`.

    Attributes:
        graph: Underlying neighbour graph.
        w: ``libpysal.weights.W`` with ``transform == "R"``.
        k: Neighbour count actually used.
        requested_k: Neighbour count the caller asked for.
        warnings: Advisory messages raised while building the graph.
    """

    graph: NeighborGraph
    w: W
    k: int
    requested_k: int
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def from_graph(
        cls,
        graph: NeighborGraph,
        requested_k: Optional[int] = None,
        warnings: Optional[List[str]] = None,
    ) -> "SpatialWeights":
        # Islands are legal and keep an all-zero row.
        w = W(
            {i: list(js) for i, js in graph.neighbors.items()},
            id_order=list(range(graph.n)),
            silence_warnings=True,
        )
        w.transform = "r"
        return cls(
            graph=graph,
            w=w,
            k=graph.k,
            requested_k=graph.k if requested_k is None else requested_k,
            warnings=list(warnings or []),
        )

    @property
    def n(self) -> int:
        return self.w.n

    @property
    def s0(self) -> float:
        """Sum of all weights."""
        return float(self.w.s0)

    def to_dense(self) -> np.ndarray:
        """Dense ``n × n`` weight matrix in feature order."""
        return self.w.sparse.toarray()

    def row_sums(self) -> np.ndarray:
        return np.asarray(self.w.sparse.sum(axis=1)).ravel()

    def lag(self, values: np.ndarray) -> np.ndarray:
        """Spatial lag ``W @ values``."""
        return self.w.sparse @ np.asarray(values, dtype=float)


def build_weights(coords: np.ndarray, k: int = 4) -> SpatialWeights:
    """
    Build row-standardised k-NN weights from coordinates.

    Args:
        coords: ``(n, 2)`` coordinate array.
        k: Requested neighbour count (adjusted by :func:`resolve_k`).

    Returns:
        :class:`SpatialWeights`; ``.k`` is the neighbour count actually used
        and ``.warnings`` lists any adjustment notices.
    """
    coords = np.asarray(coords, dtype=float)
    k_used, warnings = resolve_k(len(coords), k)
    graph = knn_neighbors(coords, k_used)
    return SpatialWeights.from_graph(graph, requested_k=int(k), warnings=warnings)
