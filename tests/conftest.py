# -*- coding: utf-8 -*-
"""
Shared pytest fixtures for evicthotspots tests.
"""

from __future__ import annotations

import geopandas as gpd
import numpy as np
import pandas as pd
import pytest
from shapely.geometry import Point, box


# ---------------------------------------------------------------------------
# Two well-separated clusters of points
# ---------------------------------------------------------------------------
LOW_CLUSTER = [(0.0, 0.0), (1.0, 0.2), (0.3, 1.1), (1.2, 1.3), (0.6, 0.5)]
HIGH_CLUSTER = [(x + 100.0, y) for x, y in LOW_CLUSTER]


@pytest.fixture
def cluster_gdf() -> gpd.GeoDataFrame:
    """10 points: five low values near the origin, five high values 100 units east."""
    coords = LOW_CLUSTER + HIGH_CLUSTER
    return gpd.GeoDataFrame(
        {
            "tract": [f"t{i:02d}" for i in range(10)],
            "evictions": [1, 1, 1, 1, 1, 50, 50, 50, 50, 50],
        },
        geometry=[Point(x, y) for x, y in coords],
        crs="EPSG:3857",
    )


@pytest.fixture
def constant_gdf(cluster_gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Same layout as ``cluster_gdf`` with every value equal to 10."""
    gdf = cluster_gdf.copy()
    gdf["evictions"] = 10
    return gdf


# ---------------------------------------------------------------------------
# Polygon grid (census-tract-like)
# ---------------------------------------------------------------------------
@pytest.fixture
def polygon_grid_gdf() -> gpd.GeoDataFrame:
    """6 × 6 grid of unit squares with high counts in the lower-left 3 × 3 block."""
    cells, values = [], []
    for row in range(6):
        for col in range(6):
            cells.append(box(col, row, col + 1, row + 1))
            values.append(40 + row + col if (row < 3 and col < 3) else 2 + (row * col) % 3)
    return gpd.GeoDataFrame({"evictions": values}, geometry=cells, crs="EPSG:3857")


# ---------------------------------------------------------------------------
# Random points (lat / lon)
# ---------------------------------------------------------------------------
@pytest.fixture
def sample_gdf() -> gpd.GeoDataFrame:
    """30 random points around Milwaukee with Poisson eviction counts."""
    rng = np.random.RandomState(42)
    n = 30
    df = pd.DataFrame(
        {
            "tract": [f"tract_{i:03d}" for i in range(n)],
            "evictions": rng.poisson(12, size=n),
            "lat": (43.0 + rng.rand(n) * 0.1).tolist(),
            "lon": (-87.95 + rng.rand(n) * 0.1).tolist(),
        }
    )
    geometry = [Point(lon, lat) for lon, lat in zip(df["lon"], df["lat"])]
    return gpd.GeoDataFrame(df, geometry=geometry, crs="EPSG:4326")
