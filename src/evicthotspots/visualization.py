# -*- coding: utf-8 -*-
"""
Visualization Module for evicthotspots
=======================================
Static (matplotlib) and interactive (folium) hotspot maps, plus a
markdown findings report.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Tuple, Union

import geopandas as gpd
import numpy as np

from .exceptions import ValidationError
from .geometry import extract_coordinates
from .spatial import HOTSPOT, NOT_HOTSPOT

if TYPE_CHECKING:
    from .pipeline import HotspotResult


__all__ = [
    "plot_hotspots",
    "generate_report",
]


_HOTSPOT_COLORS = {
    HOTSPOT: "red",
    NOT_HOTSPOT: "gray",
}


def _check_hotspot_input(gdf, hotspot_column) -> None:
    if not isinstance(gdf, gpd.GeoDataFrame):
        raise ValidationError("`data` must be a GeoDataFrame.")
    if not isinstance(hotspot_column, str):
        raise ValidationError("`hotspot_column` must be a single column name.")
    if hotspot_column not in gdf.columns:
        raise ValidationError(f"`{hotspot_column}` not found in `data`.")


# ---------------------------------------------------------------------------
# Hotspot map
# ---------------------------------------------------------------------------
def plot_hotspots(
    gdf: gpd.GeoDataFrame,
    hotspot_column: str = "hotspot",
    interactive: bool = False,
    title: Optional[str] = None,
    figsize: Tuple[int, int] = (10, 8),
    markersize: float = 20,
    alpha: float = 0.8,
    zoom_start: int = 12,
):
    """
    Map hotspot labels: hotspots in red, everything else in gray.

    Args:
        gdf: GeoDataFrame returned by
            :func:`~evicthotspots.pipeline.calculate_hotspots`.
        hotspot_column: Column with ``"Hotspot"`` / ``"Not Hotspot"`` labels.
        interactive: Return a ``folium.Map`` instead of a matplotlib figure.
        title: Plot title (static map only).
        figsize: Matplotlib figure size.
        markersize: Marker size for point features (static map only).
        alpha: Fill transparency.
        zoom_start: Initial zoom level (interactive map only).

    Returns:
        ``matplotlib.figure.Figure`` or ``folium.Map``.
    """
    _check_hotspot_input(gdf, hotspot_column)
    if interactive:
        return _interactive_hotspot_map(gdf, hotspot_column, alpha, zoom_start)

    import matplotlib.pyplot as plt
    from matplotlib.patches import Patch

    fig, ax = plt.subplots(figsize=figsize)
    is_hot = gdf[hotspot_column] == HOTSPOT

    for mask, label in ((~is_hot, NOT_HOTSPOT), (is_hot, HOTSPOT)):
        subset = gdf[mask]
        if len(subset) > 0:
            subset.plot(
                ax=ax,
                color=_HOTSPOT_COLORS[label],
                markersize=markersize,
                alpha=alpha,
                edgecolor="black",
                linewidth=0.5,
            )

    legend_elements = [Patch(facecolor=c, label=lbl) for lbl, c in _HOTSPOT_COLORS.items()]
    ax.legend(handles=legend_elements, title="Hotspots", loc="lower right", fontsize=9)
    ax.set_title(title or "Hotspot Map", fontsize=14)
    fig.tight_layout()
    return fig


def _interactive_hotspot_map(
    gdf: gpd.GeoDataFrame,
    hotspot_column: str,
    alpha: float,
    zoom_start: int,
):
    import folium

    if gdf.crs is not None:
        gdf = gdf.to_crs("EPSG:4326")
    coords = extract_coordinates(gdf)

    center = [float(np.mean(coords[:, 1])), float(np.mean(coords[:, 0]))]
    m = folium.Map(location=center, zoom_start=zoom_start, tiles="OpenStreetMap")

    for (lon, lat), label in zip(coords, gdf[hotspot_column]):
        folium.CircleMarker(
            location=[float(lat), float(lon)],
            radius=5,
            color="black",
            weight=1,
            fill=True,
            fill_color="red" if label == HOTSPOT else "gray",
            fill_opacity=alpha,
            popup=f"Hotspot: {label}",
        ).add_to(m)

    return m


# ---------------------------------------------------------------------------
# Markdown findings report
# ---------------------------------------------------------------------------
def _fmt(value: float) -> str:
    return "NaN" if np.isnan(value) else f"{value:.4f}"


def generate_report(
    result: "HotspotResult",
    variable: Optional[str] = None,
    output_path: Optional[Union[str, Path]] = None,
) -> str:
    """
    Generate a Markdown findings report for a hotspot analysis.

    Args:
        result: Output of :func:`~evicthotspots.pipeline.calculate_hotspots`.
        variable: Name of the analysed column (used in headings only).
        output_path: If given, the report is written to this file.

    Returns:
        The full report as a Markdown string.
    """
    import datetime

    gm = result.global_moran
    gdf = result.data
    lines: List[str] = []

    lines.append("# Hotspot Analysis Report\n")
    lines.append(f"**Analysis Date:** {datetime.date.today().isoformat()}\n")
    if variable:
        lines.append(f"**Variable:** `{variable}`\n")
    lines.append(f"**Features Analysed:** {len(gdf):,}\n")
    lines.append(f"**Nearest Neighbours (k):** {result.k}\n\n")

    if result.warnings:
        lines.append("> **Notes**\n")
        for msg in result.warnings:
            lines.append(f"> - {msg}\n")
        lines.append("\n")

    # ---- Global statistic ------------------------------------------------
    lines.append("## 1. Global Moran's I\n")
    lines.append(f"*{gm.method}, alternative: {gm.alternative}*\n\n")
    lines.append("| Moran's I | Expected I | Variance | Std. deviate | p-value | Sig. |\n")
    lines.append("|-----------|------------|----------|--------------|---------|------|\n")
    p = gm.p_value
    if np.isnan(p):
        sig = "n/a"
    else:
        sig = "***" if p < 0.001 else "**" if p < 0.01 else "*" if p < 0.05 else "ns"
    lines.append(
        f"| {_fmt(gm.I)} | {_fmt(gm.expected_I)} | {_fmt(gm.variance)} "
        f"| {_fmt(gm.std_deviate)} | {_fmt(p)} | {sig} |\n"
    )
    lines.append(
        "\n*Significance: \\*\\*\\* p<0.001, \\*\\* p<0.01, * p<0.05, "
        "ns = not significant*\n\n"
    )

    # ---- Local hotspots ---------------------------------------------------
    hot = result.hotspots
    lines.append("## 2. Local Hotspots (LISA)\n")
    lines.append(
        f"**{len(hot)} out of {len(gdf)} features** are hotspots "
        "(local Moran's I > 0, p <= 0.05).\n\n"
    )
    if len(hot) > 0:
        lines.append("| Feature | Local I | z | p-value |\n")
        lines.append("|---------|---------|---|---------|\n")
        for idx, row in hot.iterrows():
            lines.append(
                f"| {idx} | {row['local_moran_I']:.4f} | {row['local_moran_z']:.4f} "
                f"| {row['local_moran_p']:.4f} |\n"
            )
        lines.append("\n")

    report_text = "".join(lines)

    if output_path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(report_text, encoding="utf-8")
        print(f"Saved report to {output_path}")

    return report_text
