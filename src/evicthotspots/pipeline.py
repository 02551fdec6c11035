# -*- coding: utf-8 -*-
"""
Pipeline Module for evicthotspots
==================================
End-to-end hotspot detection: validate → coordinates → k-NN weights →
Global / Local Moran's I → hotspot labels.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import geopandas as gpd

from .exceptions import InvalidParameterError, ValidationError
from .geometry import extract_coordinates, numeric_column
from .spatial import (
    ALTERNATIVES,
    ASSUMPTIONS,
    HOTSPOT,
    MoranResult,
    add_local_moran_columns,
    moran_global,
    moran_local,
)
from .weights import SpatialWeights, build_weights, resolve_k


__all__ = [
    "HotspotConfig",
    "HotspotResult",
    "calculate_hotspots",
]


@dataclass
class HotspotConfig:
    """
    Configuration for :func:`calculate_hotspots`.

    Attributes:
        k: Requested number of nearest neighbours.
        assumption: Global Moran's I assumption (``"randomization"`` or ``"normality"``).
        alternative: Global Moran's I alternative hypothesis.
        conditional: Use conditional-randomisation moments for Local Moran's I.
        verbosity: ``0`` is silent; ``1`` prints steps and warnings.
    """

    k: int = 4
    assumption: str = "randomization"
    alternative: str = "two-sided"
    conditional: bool = True
    verbosity: int = 0

    def __post_init__(self):
        if self.assumption not in ASSUMPTIONS:
            raise InvalidParameterError(
                f"assumption must be one of {ASSUMPTIONS}, got {self.assumption!r}"
            )
        if self.alternative not in ALTERNATIVES:
            raise InvalidParameterError(
                f"alternative must be one of {ALTERNATIVES}, got {self.alternative!r}"
            )


@dataclass
class HotspotResult:
    """
    Output of :func:`calculate_hotspots`.

    Attributes:
        global_moran: Global Moran's I test.
        data: Copy of the input with ``local_moran_I``, ``local_moran_z``,
            ``local_moran_p`` and ``hotspot`` columns.
        weights: Spatial weights used for both statistics.
        k: Neighbour count actually used.
        warnings: Advisory messages (e.g. automatic reduction of *k*).
    """

    global_moran: MoranResult
    data: gpd.GeoDataFrame
    weights: SpatialWeights
    k: int
    warnings: List[str] = field(default_factory=list)

    @property
    def hotspots(self) -> gpd.GeoDataFrame:
        return self.data[self.data["hotspot"] == HOTSPOT]

    def summary(self) -> Dict[str, Any]:
        n_hot = int((self.data["hotspot"] == HOTSPOT).sum())
        return {
            "n": len(self.data),
            "k": self.k,
            "n_hotspots": n_hot,
            "moran_I": self.global_moran.I,
            "moran_p_value": self.global_moran.p_value,
            "warnings": list(self.warnings),
        }


def _validate(data, variable) -> None:
    if not isinstance(data, gpd.GeoDataFrame):
        raise ValidationError(
            "`data` must be a GeoDataFrame.",
            suggestion="Build one with geopandas or evicthotspots.to_geodataframe().",
            details={"type": type(data).__name__},
        )
    if not isinstance(variable, str):
        if isinstance(variable, (list, tuple)):
            raise ValidationError(
                f"`variable` must be a single column name, got {len(variable)} names.",
            )
        raise ValidationError(
            f"`variable` must be a column name string, got {type(variable).__name__}.",
        )


def calculate_hotspots(
    data: gpd.GeoDataFrame,
    variable: str,
    k: Optional[int] = None,
    config: Optional[HotspotConfig] = None,
    verbosity: Optional[int] = None,
) -> HotspotResult:
    """
    Compute Global and Local Moran's I and flag hotspots.

    Args:
        data: GeoDataFrame with point, line or polygon geometry.
        variable: Name of the numeric intensity column (e.g. eviction counts).
        k: Requested nearest-neighbour count (default 4, reduced for small
            samples; overrides ``config.k``).
        config: Optional :class:`HotspotConfig`.
        verbosity: Overrides ``config.verbosity``.

    Returns:
        :class:`HotspotResult`. The input GeoDataFrame is not modified.

    Raises:
        ValidationError: Bad input object, column name or column values.
        InsufficientDataError: Fewer than 3 features.
        InvalidParameterError: ``k`` is not an integer >= 1.
        InvalidGeometryError: Missing, empty or unsupported geometry.

    Example:
        >>> from evicthotspots import calculate_hotspots
        >>> result = calculate_hotspots(gdf, "evictions", k=4)
        >>> result.global_moran.I
        >>> result.hotspots
    """
    cfg = config or HotspotConfig()
    k_req = cfg.k if k is None else k
    verbose = cfg.verbosity if verbosity is None else verbosity

    _validate(data, variable)
    x = numeric_column(data, variable)
    # fail on n / k before touching geometry
    resolve_k(len(data), k_req)

    if verbose > 0:
        print(f"Step 1: Extracting coordinates for {len(data)} features...")
    coords = extract_coordinates(data)

    if verbose > 0:
        print(f"Step 2: Building k-nearest-neighbour weights (k={k_req})...")
    weights = build_weights(coords, k=k_req)
    if verbose > 0:
        for msg in weights.warnings:
            print(f"  Warning: {msg}")

    if verbose > 0:
        print("Step 3: Computing Global and Local Moran's I...")
    global_result = moran_global(
        x, weights, assumption=cfg.assumption, alternative=cfg.alternative,
    )
    local_result = moran_local(x, weights, conditional=cfg.conditional)
    enriched = add_local_moran_columns(data, local_result)

    result = HotspotResult(
        global_moran=global_result,
        data=enriched,
        weights=weights,
        k=weights.k,
        warnings=list(weights.warnings),
    )

    if verbose > 0:
        s = result.summary()
        print(
            f"  Moran's I = {global_result.I:.4f}, "
            f"p-value = {global_result.p_value:.4f}, "
            f"{s['n_hotspots']} hotspot(s) out of {s['n']} features"
        )

    return result
