# -*- coding: utf-8 -*-
"""
Geometry Module for evicthotspots
==================================
Feature Set helpers and the coordinate extractor: every feature is reduced
to one representative planar point before neighbours are searched.

Point features are used as-is. Polygon and line features are reduced to
their centroids. When a layer mixes both, every feature goes through the
centroid reduction so all coordinates come from the same operation (the
centroid of a point is the point itself).
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, List, Sequence, Union

import geopandas as gpd
import numpy as np
import pandas as pd
from pandas.api.types import is_bool_dtype, is_numeric_dtype
from shapely.geometry.base import BaseGeometry

from .exceptions import InvalidGeometryError, ValidationError


__all__ = [
    "GeometryKind",
    "geometry_kind",
    "extract_coordinates",
    "to_geodataframe",
    "numeric_column",
]


class GeometryKind(str, Enum):
    """Geometry variants a feature may carry."""

    POINT = "Point"
    POLYGON = "Polygon"
    MULTIPOLYGON = "MultiPolygon"
    LINESTRING = "LineString"
    MULTILINESTRING = "MultiLineString"

    @property
    def needs_centroid(self) -> bool:
        return self is not GeometryKind.POINT

    def reduce(self, geom: BaseGeometry) -> tuple:
        """Representative ``(x, y)`` for *geom* under this variant."""
        if self is GeometryKind.POINT:
            return (geom.x, geom.y)
        centroid = geom.centroid
        return (centroid.x, centroid.y)


_KINDS = {kind.value: kind for kind in GeometryKind}


def geometry_kind(geom: BaseGeometry, position: int = 0) -> GeometryKind:
    """
    Tag a shapely geometry with its :class:`GeometryKind`.

    Args:
        geom: Shapely geometry (``None`` is rejected).
        position: Row position, used in error messages only.

    Raises:
        InvalidGeometryError: Geometry is missing, empty or of a type
            without a representative point (e.g. ``GeometryCollection``).
    """
    if geom is None or (isinstance(geom, float) and np.isnan(geom)):
        raise InvalidGeometryError(
            f"Feature at position {position} has no geometry.",
            details={"position": position},
        )
    if not isinstance(geom, BaseGeometry):
        raise InvalidGeometryError(
            f"Feature at position {position} is not a geometry: {type(geom).__name__}",
            details={"position": position},
        )
    if geom.is_empty:
        raise InvalidGeometryError(
            f"Feature at position {position} has an empty geometry.",
            details={"position": position},
        )
    kind = _KINDS.get(geom.geom_type)
    if kind is None:
        raise InvalidGeometryError(
            f"Unsupported geometry type at position {position}: {geom.geom_type}",
            suggestion="Use Point, Polygon, MultiPolygon, LineString or MultiLineString.",
            details={"position": position, "geom_type": geom.geom_type},
        )
    return kind


def _as_geometries(
    features: Union[gpd.GeoDataFrame, gpd.GeoSeries, Sequence[BaseGeometry]],
) -> List[BaseGeometry]:
    if isinstance(features, gpd.GeoDataFrame):
        return list(features.geometry)
    if isinstance(features, gpd.GeoSeries):
        return list(features)
    return list(features)


def extract_coordinates(
    features: Union[gpd.GeoDataFrame, gpd.GeoSeries, Iterable[BaseGeometry]],
) -> np.ndarray:
    """
    Derive one ``(x, y)`` coordinate per feature, preserving order.

    Args:
        features: GeoDataFrame, GeoSeries or a sequence of shapely geometries.

    Returns:
        ``(n, 2)`` float array.

    Raises:
        InvalidGeometryError: On missing, empty or unsupported geometry.
    """
    geoms = _as_geometries(features)
    kinds = [geometry_kind(g, i) for i, g in enumerate(geoms)]

    if any(kind.needs_centroid for kind in kinds):
        coords = [(g.centroid.x, g.centroid.y) for g in geoms]
    else:
        coords = [kind.reduce(g) for kind, g in zip(kinds, geoms)]

    return np.asarray(coords, dtype=float).reshape(len(geoms), 2)


def to_geodataframe(
    df: pd.DataFrame,
    lat_col: str = "lat",
    lon_col: str = "lon",
    crs: str = "EPSG:4326",
) -> gpd.GeoDataFrame:
    """
    Convert a DataFrame with lat/lon columns to a point GeoDataFrame.

    A GeoDataFrame is returned unchanged, except that *crs* is assigned
    when it has none.

    Args:
        df: Input DataFrame.
        lat_col: Name of latitude column.
        lon_col: Name of longitude column.
        crs: Coordinate reference system.

    Returns:
        GeoDataFrame with Point geometry.
    """
    if isinstance(df, gpd.GeoDataFrame) and "geometry" in df.columns:
        if df.crs is None:
            df = df.set_crs(crs)
        return df

    if lat_col not in df.columns or lon_col not in df.columns:
        raise ValidationError(
            f"DataFrame must have '{lat_col}' and '{lon_col}' columns",
            details={"columns": list(df.columns)},
        )

    geometry = gpd.points_from_xy(df[lon_col], df[lat_col])
    return gpd.GeoDataFrame(df.copy(), geometry=geometry, crs=crs)


def numeric_column(gdf: pd.DataFrame, name: str) -> np.ndarray:
    """
    Resolve *name* to a complete float vector.

    Args:
        gdf: Feature Set.
        name: Column name.

    Returns:
        ``float64`` array in row order.

    Raises:
        ValidationError: Column is missing, non-numeric (booleans included)
            or has missing / infinite values.
    """
    if name not in gdf.columns:
        raise ValidationError(
            f"`{name}` not found in `data`.",
            details={"columns": [str(c) for c in gdf.columns]},
        )
    series = gdf[name]
    if not is_numeric_dtype(series) or is_bool_dtype(series):
        raise ValidationError(
            f"`data['{name}']` must be numeric, got dtype {series.dtype}.",
        )
    values = series.to_numpy(dtype=float, na_value=np.nan)
    bad = ~np.isfinite(values)
    if bad.any():
        raise ValidationError(
            f"`data['{name}']` has {int(bad.sum())} missing or infinite value(s).",
            suggestion="Drop or impute those rows before computing hotspots.",
            details={"positions": np.flatnonzero(bad).tolist()},
        )
    return values
