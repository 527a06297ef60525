"""Tests for unit registry, type graph projection and unit selection."""

from __future__ import annotations

import pytest

from assetflow.dag import TypeGraph, UnitRegistry, select_units
from assetflow.errors import ConfigurationError
from assetflow.model import AssetType, Unit

TS = AssetType.TS
LESS = AssetType.LESS
CSS = AssetType.CSS


def u(name: str, *types: AssetType, needs: list[str] | None = None) -> Unit:
    return Unit(name=name, types=frozenset(types), dependencies=list(needs or []))


def test_dependents_are_inverse_of_dependencies() -> None:
    registry = UnitRegistry([
        u("base", TS),
        u("lib", TS, needs=["base"]),
        u("app", TS, needs=["base", "lib"]),
    ])

    assert registry["base"].dependents == ["lib", "app"]
    assert registry["lib"].dependents == ["app"]
    assert registry["app"].dependents == []


def test_unknown_dependency_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="unknown unit 'missing'"):
        UnitRegistry([u("app", TS, needs=["missing"])])


def test_duplicate_unit_names_are_rejected() -> None:
    with pytest.raises(ConfigurationError, match="Duplicate unit name: a"):
        UnitRegistry([u("a", TS), u("a", LESS)])


def test_cycle_is_rejected_before_scheduling() -> None:
    with pytest.raises(ConfigurationError, match="cycle") as exc_info:
        UnitRegistry([
            u("a", TS, needs=["c"]),
            u("b", TS, needs=["a"]),
            u("c", TS, needs=["b"]),
            u("free", TS),
        ])
    assert exc_info.value.details["stuck"] == ["a", "b", "c"]


def test_type_graph_drops_edges_to_units_without_the_type() -> None:
    registry = UnitRegistry([
        u("core", TS),                       # no stylesheets
        u("theme", LESS),
        u("app", TS, LESS, needs=["core", "theme"]),
    ])

    ts_graph = registry.type_graph(TS)
    less_graph = registry.type_graph(LESS)

    assert ts_graph.names == ["core", "app"]
    assert {n.name: n.dependencies for n in ts_graph.nodes} == {"core": (), "app": ("core",)}
    assert less_graph.names == ["theme", "app"]
    assert {n.name: n.dependencies for n in less_graph.nodes} == {"theme": (), "app": ("theme",)}
    assert {n.name: n.dependents for n in less_graph.nodes} == {"theme": ("app",), "app": ()}


def test_bundle_graph_keeps_edges_between_bundles() -> None:
    registry = UnitRegistry([
        u("theme", CSS),
        u("widgets", TS, needs=["theme"]),
        u("app", CSS, TS, needs=["theme", "widgets"]),
    ])

    graph = TypeGraph.project(registry, CSS)

    assert graph.stages() == [["theme"], ["app"]]


def test_empty_type_graph() -> None:
    registry = UnitRegistry([u("a", TS)])
    graph = TypeGraph.project(registry, CSS)

    assert len(graph) == 0
    assert graph.stages() == []


def test_stages_follow_dependency_depth() -> None:
    registry = UnitRegistry([
        u("x", TS),
        u("y", TS, needs=["x"]),
        u("z", TS, needs=["y"]),
        u("w", TS),
    ])

    assert registry.type_graph(TS).stages() == [["w", "x"], ["y"], ["z"]]


def test_select_units_keeps_roots_and_transitive_dependencies() -> None:
    units = [
        u("base", TS),
        u("lib", TS, needs=["base"]),
        u("app", TS, needs=["lib"]),
        u("other", TS),
    ]

    selected = select_units(units, ["app"])

    assert [s.name for s in selected] == ["base", "lib", "app"]
    # fresh copies: building a registry from them leaves the originals alone
    UnitRegistry(selected)
    assert units[0].dependents == []


def test_select_units_without_roots_keeps_everything() -> None:
    units = [u("a", TS), u("b", LESS)]
    assert [s.name for s in select_units(units, [])] == ["a", "b"]


def test_select_unknown_root() -> None:
    with pytest.raises(ConfigurationError, match="Unknown unit selected: nope"):
        select_units([u("a", TS)], ["nope"])
