# -*- coding: utf-8 -*-
"""Tests for evicthotspots.pipeline module."""

from __future__ import annotations

from unittest.mock import patch

import numpy as np
import pandas as pd
import pytest


def _assert_hotspot_rule(gdf):
    p = gdf["local_moran_p"].to_numpy(dtype=float)
    Ii = gdf["local_moran_I"].to_numpy(dtype=float)
    with np.errstate(invalid="ignore"):
        expected = ~np.isnan(p) & (p <= 0.05) & (Ii > 0)
    assert ((gdf["hotspot"] == "Hotspot").to_numpy() == expected).all()
    assert set(gdf["hotspot"]) <= {"Hotspot", "Not Hotspot"}


class TestCalculateHotspots:
    """End-to-end behaviour of calculate_hotspots."""

    def test_two_clusters(self, cluster_gdf):
        from evicthotspots.pipeline import HotspotResult, calculate_hotspots

        result = calculate_hotspots(cluster_gdf, "evictions")
        assert isinstance(result, HotspotResult)
        assert result.global_moran.I > 0
        assert result.global_moran.p_value < 0.05
        high = result.data["evictions"] == 50
        assert (result.data.loc[high, "hotspot"] == "Hotspot").all()
        assert (result.data.loc[result.data["hotspot"] == "Hotspot", "local_moran_I"] > 0).all()

    def test_adds_four_columns(self, cluster_gdf):
        from evicthotspots.pipeline import calculate_hotspots

        result = calculate_hotspots(cluster_gdf, "evictions")
        added = set(result.data.columns) - set(cluster_gdf.columns)
        assert added == {"local_moran_I", "local_moran_z", "local_moran_p", "hotspot"}
        assert len(result.data) == len(cluster_gdf)

    def test_input_not_mutated(self, cluster_gdf):
        from evicthotspots.pipeline import calculate_hotspots

        before = cluster_gdf.copy()
        calculate_hotspots(cluster_gdf, "evictions")
        pd.testing.assert_frame_equal(
            pd.DataFrame(cluster_gdf.drop(columns="geometry")),
            pd.DataFrame(before.drop(columns="geometry")),
        )
        assert list(cluster_gdf.columns) == list(before.columns)

    def test_k_reduction_warning(self, cluster_gdf):
        from evicthotspots.pipeline import calculate_hotspots

        result = calculate_hotspots(cluster_gdf, "evictions", k=4)
        assert result.k == 3
        assert result.warnings == ["Reducing k from 4 to 3 because n=10 is small."]

    def test_three_features(self, cluster_gdf):
        from evicthotspots.pipeline import calculate_hotspots

        result = calculate_hotspots(cluster_gdf.iloc[[0, 1, 5]], "evictions", k=4)
        assert result.k == 1
        assert len(result.warnings) == 1
        _assert_hotspot_rule(result.data)

    def test_no_warning_for_large_sample(self, sample_gdf):
        from evicthotspots.pipeline import calculate_hotspots

        result = calculate_hotspots(sample_gdf, "evictions", k=4)
        assert result.k == 4
        assert result.warnings == []

    def test_constant_values(self, constant_gdf):
        from evicthotspots.pipeline import calculate_hotspots

        result = calculate_hotspots(constant_gdf, "evictions")
        assert result.global_moran.is_degenerate
        assert (result.data["hotspot"] == "Not Hotspot").all()
        assert result.hotspots.empty

    def test_polygons(self, polygon_grid_gdf):
        from evicthotspots.pipeline import calculate_hotspots

        result = calculate_hotspots(polygon_grid_gdf, "evictions")
        assert result.k == 4
        assert result.global_moran.I > 0
        hot = result.hotspots
        assert len(hot) > 0
        # the high-valued lower-left block
        assert (hot["evictions"] >= 40).any()

    @pytest.mark.parametrize(
        "fixture", ["cluster_gdf", "constant_gdf", "polygon_grid_gdf", "sample_gdf"]
    )
    def test_hotspot_rule_holds(self, request, fixture):
        from evicthotspots.pipeline import calculate_hotspots

        gdf = request.getfixturevalue(fixture)
        _assert_hotspot_rule(calculate_hotspots(gdf, "evictions").data)

    def test_idempotent(self, sample_gdf):
        from evicthotspots.pipeline import calculate_hotspots

        a = calculate_hotspots(sample_gdf, "evictions", k=5)
        b = calculate_hotspots(sample_gdf, "evictions", k=5)
        cols = ["local_moran_I", "local_moran_z", "local_moran_p", "hotspot"]
        pd.testing.assert_frame_equal(
            pd.DataFrame(a.data[cols]), pd.DataFrame(b.data[cols])
        )
        assert a.global_moran == b.global_moran

    def test_config(self, polygon_grid_gdf):
        from evicthotspots.pipeline import HotspotConfig, calculate_hotspots

        config = HotspotConfig(k=6, assumption="normality", alternative="greater")
        result = calculate_hotspots(polygon_grid_gdf, "evictions", config=config)
        assert result.k == 6
        assert result.global_moran.assumption == "normality"
        assert result.global_moran.alternative == "greater"

    def test_explicit_k_overrides_config(self, polygon_grid_gdf):
        from evicthotspots.pipeline import HotspotConfig, calculate_hotspots

        result = calculate_hotspots(
            polygon_grid_gdf, "evictions", k=5, config=HotspotConfig(k=8)
        )
        assert result.k == 5

    def test_summary(self, cluster_gdf):
        from evicthotspots.pipeline import calculate_hotspots

        summary = calculate_hotspots(cluster_gdf, "evictions").summary()
        assert summary["n"] == 10
        assert summary["k"] == 3
        assert summary["n_hotspots"] >= 5
        assert len(summary["warnings"]) == 1

    def test_verbose_output(self, cluster_gdf, capsys):
        from evicthotspots.pipeline import calculate_hotspots

        calculate_hotspots(cluster_gdf, "evictions", verbosity=1)
        out = capsys.readouterr().out
        assert "Step 1" in out
        assert "Warning: Reducing k" in out

    def test_silent_by_default(self, cluster_gdf, capsys):
        from evicthotspots.pipeline import calculate_hotspots

        calculate_hotspots(cluster_gdf, "evictions")
        assert capsys.readouterr().out == ""


class TestCalculateHotspotsErrors:
    def test_not_a_geodataframe(self, cluster_gdf):
        from evicthotspots.exceptions import ValidationError
        from evicthotspots.pipeline import calculate_hotspots

        with pytest.raises(ValidationError, match="GeoDataFrame"):
            calculate_hotspots(pd.DataFrame(cluster_gdf.drop(columns="geometry")), "evictions")

    def test_missing_column(self, cluster_gdf):
        from evicthotspots.exceptions import ValidationError
        from evicthotspots.pipeline import calculate_hotspots

        with pytest.raises(ValidationError, match="not found"):
            calculate_hotspots(cluster_gdf, "filings")

    @pytest.mark.parametrize("variable", [["evictions", "tract"], ("evictions",), 3])
    def test_variable_must_be_single_name(self, cluster_gdf, variable):
        from evicthotspots.exceptions import ValidationError
        from evicthotspots.pipeline import calculate_hotspots

        with pytest.raises(ValidationError):
            calculate_hotspots(cluster_gdf, variable)

    def test_non_numeric_fails_before_graph(self, cluster_gdf):
        from evicthotspots.exceptions import ValidationError
        from evicthotspots.pipeline import calculate_hotspots

        with patch("evicthotspots.pipeline.extract_coordinates") as coords_mock, \
                patch("evicthotspots.pipeline.build_weights") as weights_mock:
            with pytest.raises(ValidationError):
                calculate_hotspots(cluster_gdf, "tract")
        coords_mock.assert_not_called()
        weights_mock.assert_not_called()
        assert "hotspot" not in cluster_gdf.columns

    def test_too_few_features(self, cluster_gdf):
        from evicthotspots.exceptions import InsufficientDataError
        from evicthotspots.pipeline import calculate_hotspots

        with pytest.raises(InsufficientDataError):
            calculate_hotspots(cluster_gdf.iloc[:2], "evictions")

    @pytest.mark.parametrize("k", [0, -1, 1.5])
    def test_invalid_k(self, cluster_gdf, k):
        from evicthotspots.exceptions import InvalidParameterError
        from evicthotspots.pipeline import calculate_hotspots

        with pytest.raises(InvalidParameterError):
            calculate_hotspots(cluster_gdf, "evictions", k=k)

    def test_bad_geometry(self, cluster_gdf):
        from evicthotspots.exceptions import InvalidGeometryError
        from evicthotspots.pipeline import calculate_hotspots

        gdf = cluster_gdf.copy()
        gdf.loc[3, "geometry"] = None
        with pytest.raises(InvalidGeometryError):
            calculate_hotspots(gdf, "evictions")

    def test_invalid_config(self):
        from evicthotspots.exceptions import InvalidParameterError
        from evicthotspots.pipeline import HotspotConfig

        with pytest.raises(InvalidParameterError):
            HotspotConfig(assumption="bootstrap")

    def test_errors_share_base_class(self, cluster_gdf):
        from evicthotspots.exceptions import HotspotError
        from evicthotspots.pipeline import calculate_hotspots

        with pytest.raises(HotspotError):
            calculate_hotspots(cluster_gdf, "evictions", k=0)
