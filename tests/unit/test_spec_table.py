"""Tests for ArtifactSpecTable: resolution, ordering, per-network overrides."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from deployforge.core.errors import CyclicDependency, UnknownArtifact
from deployforge.core.spec_table import ArtifactSpecTable, network_sections
from deployforge.models.artifacts import ArtifactSpec


class TestResolve:
    def test_resolves_declared(self, make_table):
        table = make_table({"Lib": {}, "Contract": {"baseLibs": ["Lib"]}})
        assert table.resolve("Contract").base_libs == ["Lib"]
        assert table.resolve("Contract").contract == "Contract"

    def test_unknown_raises(self, make_table):
        table = make_table({"Lib": {}})
        with pytest.raises(UnknownArtifact) as exc_info:
            table.resolve("Nope")
        assert exc_info.value.artifact == "Nope"

    def test_implicit_library(self, make_table):
        table = make_table({"Contract": {"baseLibs": ["Lib"]}})
        assert "Lib" in table
        assert table.resolve("Lib") == ArtifactSpec(name="Lib")
        assert table.names == ["Contract"]
        assert len(table) == 1

    def test_implicit_libraries_disabled(self):
        table = ArtifactSpecTable.from_mapping(
            {"Contract": {"baseLibs": ["Lib"]}}, implicit_libraries=False
        )
        assert "Lib" not in table
        with pytest.raises(UnknownArtifact):
            table.topological_order()

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValueError):
            ArtifactSpecTable([ArtifactSpec(name="A"), ArtifactSpec(name="A")])


class TestTopologicalOrder:
    def test_dependencies_first(self, make_table):
        table = make_table({"A": {"baseDeps": ["B"]}, "B": {}})
        assert table.topological_order() == ["B", "A"]

    def test_declaration_order_breaks_ties(self, make_table):
        table = make_table({"C": {}, "A": {"baseLibs": ["L"]}, "B": {}})
        assert table.topological_order() == ["C", "L", "A", "B"]

    def test_every_dependency_precedes_dependents(self, make_table):
        table = make_table({
            "App": {"baseDeps": ["Registry", "Token"], "baseLibs": ["Math"]},
            "Token": {"baseLibs": ["Math", "Strings"]},
            "Registry": {"baseDeps": ["Token"]},
        })
        order = table.topological_order()
        for name in order:
            for dep in table.resolve(name).dependencies:
                assert order.index(dep) < order.index(name)
        assert len(order) == len(set(order)) == 5

    def test_order_is_stable_across_calls(self, make_table):
        data = {"X": {"baseLibs": ["L2", "L1"]}, "Y": {"baseLibs": ["L1"]}}
        assert make_table(data).topological_order() == make_table(data).topological_order()
        assert make_table(data).topological_order() == ["L2", "L1", "X", "Y"]

    def test_selection_pulls_in_dependencies(self, make_table):
        table = make_table({"Lib": {}, "Contract": {"baseLibs": ["Lib"]}, "Other": {}})
        assert table.topological_order(["Contract"]) == ["Lib", "Contract"]

    def test_selection_unknown_name(self, make_table):
        table = make_table({"Lib": {}})
        with pytest.raises(UnknownArtifact):
            table.topological_order(["Ghost"])

    def test_cycle_reports_members(self, make_table):
        table = make_table({"A": {"baseDeps": ["B"]}, "B": {"baseLibs": ["A"]}})
        with pytest.raises(CyclicDependency) as exc_info:
            table.topological_order()
        assert exc_info.value.members == ["A", "B", "A"]

    def test_self_cycle(self, make_table):
        table = make_table({"A": {"baseDeps": ["A"]}})
        with pytest.raises(CyclicDependency):
            table.validate()

    def test_dependents_of(self, make_table):
        table = make_table({"B": {}, "A": {"baseDeps": ["B"]}, "C": {"baseDeps": ["A"]}, "D": {}})
        assert table.dependents_of("B") == ["A", "C"]
        assert table.dependents_of("D") == []


class TestNetworkOverrides:
    DATA = {
        "default": {
            "Board": {
                "vanity": 1,
                "immutables": {"types": ["uint256"], "values": [10]},
            },
        },
        "polygon": {"Board": {"vanity": 2}},
        "polygon:amoy": {
            "Board": {"vanity": 3, "immutables": {"values": [99]}},
        },
    }

    def test_sections(self):
        assert network_sections(None) == ["default"]
        assert network_sections("test") == ["default", "test"]
        assert network_sections("Polygon:Amoy") == ["default", "polygon", "polygon:amoy"]

    def test_default_only(self, make_table):
        assert make_table(self.DATA).resolve("Board").vanity_seed == 1

    def test_ecosystem_override(self, make_table):
        assert make_table(self.DATA, "polygon:mainnet").resolve("Board").vanity_seed == 2

    def test_network_override_merges_nested(self, make_table):
        board = make_table(self.DATA, "polygon:amoy").resolve("Board")
        assert board.vanity_seed == 3
        assert board.immutables.types == ["uint256"]
        assert board.immutables.values == [99]

    def test_lists_are_replaced(self, make_table):
        data = {
            "default": {"A": {"baseLibs": ["L1", "L2"]}},
            "test": {"A": {"baseLibs": ["L3"]}},
        }
        assert make_table(data, "test").resolve("A").base_libs == ["L3"]


class TestFromFile:
    def test_json(self, tmp_dir: Path):
        path = tmp_dir / "specs.json"
        path.write_text(json.dumps({"Lib": {}, "Contract": {"baseLibs": ["Lib"]}}))
        table = ArtifactSpecTable.from_file(path)
        assert table.topological_order() == ["Lib", "Contract"]

    def test_toml(self, tmp_dir: Path):
        path = tmp_dir / "specs.toml"
        path.write_text(
            "[default.Lib]\n"
            "\n"
            "[default.Contract]\n"
            'baseLibs = ["Lib"]\n'
            "\n"
            "[test.Contract]\n"
            "vanity = 5\n"
        )
        table = ArtifactSpecTable.from_file(path, "test")
        assert table.resolve("Contract").vanity_seed == 5
        assert table.topological_order() == ["Lib", "Contract"]
