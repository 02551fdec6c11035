# -*- coding: utf-8 -*-
"""
Spatial Analysis Module for evicthotspots
==========================================
Global Moran's I, Local Moran's I (LISA) with analytical moments, and
hotspot classification.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Sequence

import geopandas as gpd
import numpy as np
import pandas as pd
from esda.moran import Moran
from scipy import stats

from .exceptions import InvalidInputError, InvalidParameterError
from .geometry import extract_coordinates, numeric_column
from .weights import SpatialWeights, build_weights


__all__ = [
    "HOTSPOT_ALPHA",
    "ASSUMPTIONS",
    "ALTERNATIVES",
    "HOTSPOT",
    "NOT_HOTSPOT",
    "SpatialAnalyzer",
    "MoranResult",
    "LocalMoranResult",
    "moran_global",
    "moran_local",
    "classify_hotspots",
    "add_local_moran_columns",
    "p_value_from_z",
]


HOTSPOT_ALPHA = 0.05
HOTSPOT = "Hotspot"
NOT_HOTSPOT = "Not Hotspot"

ASSUMPTIONS = ("randomization", "normality")
ALTERNATIVES = ("two-sided", "greater", "less")
_METHOD_LABELS = {
    "randomization": "Moran I test under randomisation",
    "normality": "Moran I test under normality",
}


# ---------------------------------------------------------------------------
# Result containers
# ---------------------------------------------------------------------------
@dataclass
class MoranResult:
    """
    Container for a Global Moran's I test.

    Attributes:
        I: Moran's I statistic.
        expected_I: Expected I under the null hypothesis, ``-1 / (n - 1)``.
        variance: Variance of I under *assumption*.
        std_deviate: Standardised deviate ``(I - E[I]) / sqrt(variance)``.
        p_value: p-value of *std_deviate* against the standard normal.
        method: Human-readable test label.
        assumption: ``"randomization"`` or ``"normality"``.
        alternative: ``"two-sided"``, ``"greater"`` or ``"less"``.
        n: Number of observations.
    """

    I: float
    expected_I: float
    variance: float
    std_deviate: float
    p_value: float
    method: str
    assumption: str = "randomization"
    alternative: str = "two-sided"
    n: int = 0

    @property
    def z_score(self) -> float:
        return self.std_deviate

    @property
    def is_degenerate(self) -> bool:
        """``True`` when the statistic is undefined (zero-variance input)."""
        return bool(np.isnan(self.I))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class LocalMoranResult:
    """
    Per-feature Local Moran's I statistics (arrays of length *n*).

    Attributes:
        Ii: Local Moran's I.
        E_Ii: Expected value of ``Ii``.
        Var_Ii: Variance of ``Ii``.
        Z_Ii: Standardised ``Ii``.
        p_value: Two-tailed p-value of ``Z_Ii``.
    """

    Ii: np.ndarray
    E_Ii: np.ndarray
    Var_Ii: np.ndarray
    Z_Ii: np.ndarray
    p_value: np.ndarray

    def __len__(self) -> int:
        return len(self.Ii)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "Ii": self.Ii,
                "E.Ii": self.E_Ii,
                "Var.Ii": self.Var_Ii,
                "Z.Ii": self.Z_Ii,
                "Pr(z != E(Ii))": self.p_value,
            }
        )


# ---------------------------------------------------------------------------
# Input checks
# ---------------------------------------------------------------------------
def _as_vector(x: Sequence[float], weights: SpatialWeights) -> np.ndarray:
    arr = np.asarray(x)
    if arr.dtype.kind not in "iuf":
        raise InvalidInputError(
            f"`x` must contain numeric values, got dtype {arr.dtype}.",
        )
    arr = arr.astype(float).ravel()
    if len(arr) != weights.n:
        raise InvalidInputError(
            f"`x` has {len(arr)} values but the weights cover {weights.n} features.",
            details={"len_x": len(arr), "n": weights.n},
        )
    if not np.isfinite(arr).all():
        raise InvalidInputError("`x` contains missing or infinite values.")
    return arr


def _check_choice(name: str, value: str, choices: Sequence[str]) -> None:
    if value not in choices:
        raise InvalidParameterError(
            f"Invalid value for parameter '{name}': {value}",
            suggestion=f"Valid values: {', '.join(choices)}",
        )


def p_value_from_z(z, alternative: str = "two-sided"):
    """p-value of a standard normal deviate (NaN stays NaN)."""
    _check_choice("alternative", alternative, ALTERNATIVES)
    if alternative == "greater":
        return stats.norm.sf(z)
    if alternative == "less":
        return stats.norm.cdf(z)
    return 2.0 * stats.norm.sf(np.abs(z))


# ---------------------------------------------------------------------------
# Global Moran's I
# ---------------------------------------------------------------------------
def moran_global(
    x: Sequence[float],
    weights: SpatialWeights,
    assumption: str = "randomization",
    alternative: str = "two-sided",
) -> MoranResult:
    """
    Global Moran's I with analytical inference.

    Args:
        x: Numeric vector, one value per feature.
        weights: Row-standardised spatial weights.
        assumption: ``"randomization"`` (default) or ``"normality"``.
        alternative: ``"two-sided"`` (default), ``"greater"`` or ``"less"``.

    Returns:
        :class:`MoranResult`. A constant *x* gives NaN for everything but
        ``expected_I``.
    """
    _check_choice("assumption", assumption, ASSUMPTIONS)
    _check_choice("alternative", alternative, ALTERNATIVES)
    y = _as_vector(x, weights)
    n = len(y)
    expected = -1.0 / (n - 1)

    if np.ptp(y) == 0:
        return MoranResult(
            I=float("nan"),
            expected_I=expected,
            variance=float("nan"),
            std_deviate=float("nan"),
            p_value=float("nan"),
            method=_METHOD_LABELS[assumption],
            assumption=assumption,
            alternative=alternative,
            n=n,
        )

    moran = Moran(y, weights.w, transformation="r", permutations=0)
    if assumption == "randomization":
        variance, z = moran.VI_rand, moran.z_rand
    else:
        variance, z = moran.VI_norm, moran.z_norm

    return MoranResult(
        I=float(moran.I),
        expected_I=float(moran.EI),
        variance=float(variance),
        std_deviate=float(z),
        p_value=float(p_value_from_z(z, alternative)),
        method=_METHOD_LABELS[assumption],
        assumption=assumption,
        alternative=alternative,
        n=n,
    )


# ---------------------------------------------------------------------------
# Local Moran's I (LISA)
# ---------------------------------------------------------------------------
def moran_local(
    x: Sequence[float],
    weights: SpatialWeights,
    conditional: bool = True,
) -> LocalMoranResult:
    """
    Local Moran's I with analytical moments.

    ``Ii = (z_i / m2) * sum_j w_ij z_j`` with ``z = x - mean(x)`` and
    ``m2 = sum(z**2) / n``.

    With ``conditional=True`` the moments come from conditional
    randomisation (``x_i`` held fixed, the others permuted)::

        E[Ii]   = -z_i**2 * W_i / ((n - 1) * m2)
        Var[Ii] = (z_i / m2)**2 * n / (n - 2)
                  * (W_i2 - W_i**2 / (n - 1)) * (m2 - z_i**2 / (n - 1))

    With ``conditional=False`` the total-randomisation moments of
    Anselin (1995) are used instead. ``W_i`` is the row sum and ``W_i2`` the
    row sum of squares of the weights.

    Undefined values (zero-variance *x*, ``z_i == 0`` under conditional
    moments, isolated features) come out as NaN.
    """
    y = _as_vector(x, weights)
    n = len(y)
    z = y - y.mean()
    sparse = weights.w.sparse
    wi = np.asarray(sparse.sum(axis=1)).ravel()
    wi2 = np.asarray(sparse.multiply(sparse).sum(axis=1)).ravel()

    if np.ptp(y) == 0:
        nan = np.full(n, np.nan)
        return LocalMoranResult(Ii=nan, E_Ii=nan.copy(), Var_Ii=nan.copy(),
                                Z_Ii=nan.copy(), p_value=nan.copy())

    m2 = np.sum(z * z) / n
    lag = sparse @ z
    with np.errstate(divide="ignore", invalid="ignore"):
        ii = (z / m2) * lag
        if conditional:
            e_ii = -(z ** 2 * wi) / ((n - 1) * m2)
            var_ii = (
                (z / m2) ** 2
                * (n / (n - 2.0))
                * (wi2 - wi ** 2 / (n - 1))
                * (m2 - z ** 2 / (n - 1))
            )
        else:
            b2 = (np.sum(z ** 4) / n) / m2 ** 2
            a = (n - b2) / (n - 1)
            b = (2 * b2 - n) / ((n - 1) * (n - 2))
            e_ii = -wi / (n - 1)
            var_ii = a * wi2 + b * (wi ** 2 - wi2) - wi ** 2 / (n - 1) ** 2
        z_ii = (ii - e_ii) / np.sqrt(var_ii)

    return LocalMoranResult(
        Ii=ii,
        E_Ii=e_ii,
        Var_Ii=var_ii,
        Z_Ii=z_ii,
        p_value=p_value_from_z(z_ii, "two-sided"),
    )


# ---------------------------------------------------------------------------
# Hotspot classification
# ---------------------------------------------------------------------------
def classify_hotspots(Ii: Sequence[float], p_values: Sequence[float]) -> np.ndarray:
    """
    Label features ``"Hotspot"`` or ``"Not Hotspot"``.

    A feature is a hotspot when its p-value is defined, at most
    :data:`HOTSPOT_ALPHA`, and its local statistic is positive.
    """
    Ii = np.asarray(Ii, dtype=float)
    p = np.asarray(p_values, dtype=float)
    with np.errstate(invalid="ignore"):
        mask = ~np.isnan(p) & (p <= HOTSPOT_ALPHA) & (Ii > 0)
    return np.where(mask, HOTSPOT, NOT_HOTSPOT).astype(object)


def add_local_moran_columns(
    gdf: gpd.GeoDataFrame,
    local: LocalMoranResult,
) -> gpd.GeoDataFrame:
    """Copy of *gdf* carrying the four per-feature LISA columns."""
    gdf = gdf.copy()
    gdf["local_moran_I"] = local.Ii
    gdf["local_moran_z"] = local.Z_Ii
    gdf["local_moran_p"] = local.p_value
    gdf["hotspot"] = classify_hotspots(local.Ii, local.p_value)
    return gdf


# ---------------------------------------------------------------------------
# Analyser class
# ---------------------------------------------------------------------------
class SpatialAnalyzer:
    """
    Spatial autocorrelation analyser for GeoDataFrames.

    Computes **Global Moran's I** and **Local Moran's I (LISA)** using
    row-standardised k-nearest-neighbour weights.

    Args:
        k_neighbors: Requested neighbour count (reduced for small samples).
        assumption: Global test assumption, ``"randomization"`` or ``"normality"``.
        alternative: Global test alternative hypothesis.
        conditional: Use conditional-randomisation local moments.

    Example:
        >>> from evicthotspots import SpatialAnalyzer
        >>> sa = SpatialAnalyzer(k_neighbors=4)
        >>> result = sa.moran_global(gdf, column="evictions")
        >>> print(result.I, result.p_value)
    """

    def __init__(
        self,
        k_neighbors: int = 4,
        assumption: str = "randomization",
        alternative: str = "two-sided",
        conditional: bool = True,
    ):
        _check_choice("assumption", assumption, ASSUMPTIONS)
        _check_choice("alternative", alternative, ALTERNATIVES)
        self.k_neighbors = k_neighbors
        self.assumption = assumption
        self.alternative = alternative
        self.conditional = conditional

    # ------------------------------------------------------------------
    # Spatial weights
    # ------------------------------------------------------------------
    def spatial_weights(self, gdf: gpd.GeoDataFrame, k: Optional[int] = None) -> SpatialWeights:
        """
        Build row-standardised KNN weights for *gdf*.

        Args:
            gdf: GeoDataFrame with point, line or polygon geometry.
            k: Override ``self.k_neighbors``.
        """
        k_val = self.k_neighbors if k is None else k
        return build_weights(extract_coordinates(gdf), k=k_val)

    # ------------------------------------------------------------------
    # Global Moran's I
    # ------------------------------------------------------------------
    def moran_global(
        self,
        gdf: gpd.GeoDataFrame,
        column: str,
        weights: Optional[SpatialWeights] = None,
    ) -> MoranResult:
        """Global Moran's I of *column*."""
        x = numeric_column(gdf, column)
        w = weights if weights is not None else self.spatial_weights(gdf)
        return moran_global(x, w, assumption=self.assumption, alternative=self.alternative)

    # ------------------------------------------------------------------
    # Local Moran's I (LISA)
    # ------------------------------------------------------------------
    def moran_local(
        self,
        gdf: gpd.GeoDataFrame,
        column: str,
        weights: Optional[SpatialWeights] = None,
    ) -> gpd.GeoDataFrame:
        """
        Compute Local Moran's I and add classification columns.

        New columns on the returned copy:

        * ``local_moran_I``: local statistic.
        * ``local_moran_z``: standardised local statistic.
        * ``local_moran_p``: two-tailed p-value.
        * ``hotspot``: ``"Hotspot"`` / ``"Not Hotspot"``.
        """
        x = numeric_column(gdf, column)
        w = weights if weights is not None else self.spatial_weights(gdf)
        return add_local_moran_columns(gdf, moran_local(x, w, conditional=self.conditional))
