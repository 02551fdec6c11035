# -*- coding: utf-8 -*-
"""
evicthotspots: Spatial Hotspot Detection with Moran's I
========================================================

A Python package for finding statistically significant clusters of a
numeric intensity variable (e.g. eviction counts) measured at point or
area locations.

Features:
- Point, line and polygon features (lines and polygons via centroids)
- Exact k-nearest-neighbour graphs with deterministic tie-breaking
- Row-standardised libpysal spatial weights
- Global Moran's I (esda) with analytical inference
- Local Moran's I (LISA) with analytical z-scores and p-values
- Hotspot labelling, static / interactive maps and a markdown report

Example:
    >>> from evicthotspots import calculate_hotspots, plot_hotspots
    >>> result = calculate_hotspots(gdf, variable="evictions", k=4)
    >>> print(result.global_moran)
    >>> fig = plot_hotspots(result.data)
"""

__version__ = "0.1.0"
__author__ = "evicthotspots contributors"

from .exceptions import (
    HotspotError,
    ValidationError,
    InvalidInputError,
    InsufficientDataError,
    InvalidParameterError,
    InvalidGeometryError,
)
from .geometry import (
    GeometryKind,
    geometry_kind,
    extract_coordinates,
    to_geodataframe,
    numeric_column,
)
from .weights import (
    NeighborGraph,
    SpatialWeights,
    resolve_k,
    knn_neighbors,
    build_weights,
)
from .spatial import (
    HOTSPOT_ALPHA,
    SpatialAnalyzer,
    MoranResult,
    LocalMoranResult,
    moran_global,
    moran_local,
    classify_hotspots,
)
from .pipeline import HotspotConfig, HotspotResult, calculate_hotspots
from .visualization import plot_hotspots, generate_report


__all__ = [
    # Version
    "__version__",

    # Pipeline (main API)
    "calculate_hotspots",
    "HotspotConfig",
    "HotspotResult",

    # Geometry
    "GeometryKind",
    "geometry_kind",
    "extract_coordinates",
    "to_geodataframe",
    "numeric_column",

    # Spatial weights
    "NeighborGraph",
    "SpatialWeights",
    "resolve_k",
    "knn_neighbors",
    "build_weights",

    # Spatial analysis
    "HOTSPOT_ALPHA",
    "SpatialAnalyzer",
    "MoranResult",
    "LocalMoranResult",
    "moran_global",
    "moran_local",
    "classify_hotspots",

    # Visualization
    "plot_hotspots",
    "generate_report",

    # Errors
    "HotspotError",
    "ValidationError",
    "InvalidInputError",
    "InsufficientDataError",
    "InvalidParameterError",
    "InvalidGeometryError",
]
