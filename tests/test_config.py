"""Tests for configuration resolution."""

from __future__ import annotations

import pytest

from causegraph.config import (
    DEFAULT_TYPE_LABELS,
    Algorithm,
    LayoutConfig,
    Spacing,
    SubgroupStyle,
    resolve_config,
)
from causegraph.errors import LayoutConfigError
from causegraph.types import EdgeRouting, Tier


class TestDefaults:
    def test_none_gives_defaults(self):
        """No configuration resolves to the documented defaults."""
        config = resolve_config(None)
        assert config == LayoutConfig()
        assert config.algorithm is Algorithm.LAYERED
        assert config.spacing == Spacing(tier_gap=30, leaf_spacing=0, cause_spacing=40)
        assert config.edge_routing is EdgeRouting.CURVED
        assert config.hide_containers is False

    def test_empty_mapping_gives_defaults(self):
        assert resolve_config({}) == LayoutConfig()

    def test_resolved_config_passes_through(self):
        """An already resolved LayoutConfig is returned as is."""
        config = LayoutConfig(algorithm=Algorithm.RANKED)
        assert resolve_config(config) is config

    def test_unknown_keys_ignored(self):
        assert resolve_config({"colour": "red", "zoom": 3}) == LayoutConfig()


class TestAlgorithm:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("layered", Algorithm.LAYERED),
            ("ranked", Algorithm.RANKED),
            ("clustered", Algorithm.CLUSTERED),
            ("elk", Algorithm.LAYERED),
            ("dagre", Algorithm.RANKED),
            ("Grouped", Algorithm.CLUSTERED),
        ],
    )
    def test_names_and_aliases(self, name, expected):
        assert resolve_config({"algorithm": name}).algorithm is expected

    def test_unknown_algorithm(self):
        """An unknown algorithm names the available ones."""
        with pytest.raises(LayoutConfigError, match="Available: layered, ranked, clustered"):
            resolve_config({"algorithm": "force"})


class TestSpacing:
    def test_camel_case_keys(self):
        config = resolve_config({"spacing": {"tierGap": 50, "causeSpacing": 10}})
        assert config.spacing.tier_gap == 50
        assert config.spacing.cause_spacing == 10
        assert config.spacing.effect_spacing == 80

    def test_layer_gap_alias(self):
        assert resolve_config({"spacing": {"layerGap": 12}}).spacing.tier_gap == 12

    def test_negative_spacing_rejected(self):
        with pytest.raises(LayoutConfigError, match="spacing.tier_gap"):
            resolve_config({"spacing": {"tierGap": -1}})

    def test_non_numeric_spacing_rejected(self):
        with pytest.raises(LayoutConfigError):
            resolve_config({"spacing": {"effectSpacing": "wide"}})

    def test_spacing_must_be_mapping(self):
        with pytest.raises(LayoutConfigError):
            resolve_config({"spacing": 10})

    def test_for_tier(self):
        spacing = Spacing()
        assert spacing.for_tier(Tier.INTERMEDIATE) == 60
        assert spacing.for_tier(Tier.LEAF) == 0


class TestOptions:
    def test_node_width_must_be_positive(self):
        with pytest.raises(LayoutConfigError):
            resolve_config({"nodeWidth": 0})
        assert resolve_config({"nodeWidth": 240}).node_width == 240

    def test_booleans_are_not_numbers(self):
        with pytest.raises(LayoutConfigError):
            resolve_config({"nodeSpacing": True})

    def test_hide_containers_and_alias(self):
        assert resolve_config({"hideContainers": True}).hide_containers is True
        assert resolve_config({"hideGroupBackgrounds": True}).hide_containers is True

    def test_edge_routing(self):
        assert resolve_config({"edgeRouting": "straight"}).edge_routing is EdgeRouting.STRAIGHT
        assert resolve_config({"straightEdges": True}).edge_routing is EdgeRouting.STRAIGHT
        with pytest.raises(LayoutConfigError):
            resolve_config({"edgeRouting": "orthogonal"})

    def test_center_x_may_be_negative(self):
        assert resolve_config({"centerX": -100}).center_x == -100

    @pytest.mark.parametrize(
        "key,value",
        [
            ("crossingIterations", -1),
            ("maxTransposePasses", 1.5),
            ("maxClusterColumns", 0),
            ("maxRowWidth", 0),
            ("containerWidth", -5),
            ("rankTolerance", -0.1),
        ],
    )
    def test_out_of_range_tunables(self, key, value):
        with pytest.raises(LayoutConfigError):
            resolve_config({key: value})

    def test_tunables_resolved(self):
        config = resolve_config({"crossingIterations": 2, "maxTransposePasses": 0, "maxClusterColumns": 1})
        assert (config.crossing_iterations, config.max_transpose_passes, config.max_cluster_columns) == (2, 0, 1)

    def test_config_must_be_mapping(self):
        with pytest.raises(LayoutConfigError):
            resolve_config(["layered"])


class TestLabelsAndSubgroups:
    def test_subgroup_colours_nested_and_flat(self):
        config = resolve_config(
            {
                "subgroups": {
                    "ai": {"label": "AI", "colors": {"bg": "#eef", "border": "#33f"}},
                    "gov": {"label": "Governance", "bgColor": "#efe", "borderColor": "#3f3"},
                }
            }
        )
        assert config.subgroup_style("ai") == SubgroupStyle(label="AI", fill="#eef", border="#33f")
        assert config.subgroup_style("gov") == SubgroupStyle(label="Governance", fill="#efe", border="#3f3")

    def test_unknown_subgroup_falls_back_to_unstyled(self):
        """A subgroup without configuration is labelled with its key and has no colours."""
        assert resolve_config({}).subgroup_style("misc") == SubgroupStyle(label="misc")

    def test_type_labels_override(self):
        config = resolve_config({"typeLabels": {"cause": "Drivers"}})
        assert config.tier_label(Tier.CAUSE) == "Drivers"
        assert config.tier_label(Tier.EFFECT) == DEFAULT_TYPE_LABELS[Tier.EFFECT]

    def test_type_labels_unknown_tier(self):
        with pytest.raises(LayoutConfigError):
            resolve_config({"typeLabels": {"outcome": "Outcomes"}})
