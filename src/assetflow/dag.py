# dag.py
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, replace
from typing import Dict, Iterable, Iterator, List, Set, Tuple

from .errors import ConfigurationError
from .model import AssetType, Unit


def build_dag(nodes: Dict[str, List[str]]) -> Tuple[Dict[str, Set[str]], Dict[str, int]]:
    """
    Build adjacency + in-degree maps from name -> dependency names.

    Edge dep -> name (dep must run before name).
    """
    adj: Dict[str, Set[str]] = {n: set() for n in nodes}
    indeg: Dict[str, int] = {n: 0 for n in nodes}

    for name, deps in nodes.items():
        for dep in deps:
            if dep not in adj:
                raise ConfigurationError(
                    f"Unit '{name}' depends on unknown unit '{dep}'",
                    {"known": sorted(nodes)},
                )
            if name not in adj[dep]:
                adj[dep].add(name)
                indeg[name] += 1

    return adj, indeg


def topo_levels(adj: Dict[str, Set[str]], indeg: Dict[str, int]) -> List[List[str]]:
    """
    Convert DAG into topological "levels" (stages).
    Every node in a stage only depends on nodes from earlier stages.
    """
    indeg = dict(indeg)  # copy (we mutate it)
    q = deque(sorted([n for n, d in indeg.items() if d == 0]))

    levels: List[List[str]] = []
    processed = 0

    while q:
        level_size = len(q)
        level: List[str] = []

        for _ in range(level_size):
            node = q.popleft()
            level.append(node)
            processed += 1

            for child in sorted(adj.get(node, set())):
                indeg[child] -= 1
                if indeg[child] == 0:
                    q.append(child)

        levels.append(level)

    if processed != len(indeg):
        remaining = sorted([n for n, d in indeg.items() if d > 0])
        raise ConfigurationError("Dependency cycle detected", {"stuck": remaining})

    return levels


class UnitRegistry:
    """
    Every unit of a run, resolved and validated.

    Construction fails with ConfigurationError on duplicate names, unknown
    dependencies or cycles. Dependents are populated here, exactly once.
    """

    def __init__(self, units: Iterable[Unit]):
        self._units: Dict[str, Unit] = {}
        for u in units:
            if u.name in self._units:
                raise ConfigurationError(f"Duplicate unit name: {u.name}")
            self._units[u.name] = u

        adj, indeg = build_dag({u.name: list(u.dependencies) for u in self._units.values()})
        topo_levels(adj, indeg)

        for u in self._units.values():
            for dep in u.dependencies:
                dependents = self._units[dep].dependents
                if u.name not in dependents:
                    dependents.append(u.name)

    def __getitem__(self, name: str) -> Unit:
        try:
            return self._units[name]
        except KeyError:
            raise ConfigurationError(f"Unknown unit: {name}") from None

    def __contains__(self, name: object) -> bool:
        return name in self._units

    def __iter__(self) -> Iterator[Unit]:
        return iter(self._units.values())

    def __len__(self) -> int:
        return len(self._units)

    @property
    def names(self) -> List[str]:
        return list(self._units)

    def with_type(self, asset_type: AssetType) -> List[Unit]:
        return [u for u in self._units.values() if u.has(asset_type)]

    def type_graph(self, asset_type: AssetType) -> TypeGraph:
        return TypeGraph.project(self, asset_type)


@dataclass(frozen=True)
class GraphNode:
    name: str
    dependencies: Tuple[str, ...]
    dependents: Tuple[str, ...]


@dataclass(frozen=True)
class TypeGraph:
    """Dependency graph restricted to the units that carry one asset type."""
    asset_type: AssetType
    nodes: Tuple[GraphNode, ...]

    @classmethod
    def project(cls, registry: UnitRegistry, asset_type: AssetType) -> TypeGraph:
        selected = {u.name for u in registry.with_type(asset_type)}
        nodes = tuple(
            GraphNode(
                name=u.name,
                # both endpoints must carry the type, otherwise the edge is dropped
                dependencies=tuple(d for d in u.dependencies if d in selected),
                dependents=tuple(d for d in u.dependents if d in selected),
            )
            for u in registry
            if u.name in selected
        )
        return cls(asset_type=asset_type, nodes=nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def names(self) -> List[str]:
        return [n.name for n in self.nodes]

    def stages(self) -> List[List[str]]:
        if not self.nodes:
            return []
        adj, indeg = build_dag({n.name: list(n.dependencies) for n in self.nodes})
        return topo_levels(adj, indeg)


def select_units(units: Iterable[Unit], roots: Iterable[str]) -> List[Unit]:
    """
    Keep only `roots` and everything they transitively depend on.
    No roots -> every unit. Returned units are fresh copies (dependents reset).
    """
    units = list(units)
    roots = list(roots)
    if not roots:
        return [replace(u, dependencies=list(u.dependencies)) for u in units]

    by_name = {u.name: u for u in units}
    keep: Set[str] = set()
    stack: List[str] = []
    for r in roots:
        if r not in by_name:
            raise ConfigurationError(f"Unknown unit selected: {r}", {"known": sorted(by_name)})
        stack.append(r)

    while stack:
        name = stack.pop()
        if name in keep:
            continue
        keep.add(name)
        for dep in by_name[name].dependencies:
            if dep not in by_name:
                raise ConfigurationError(f"Unit '{name}' depends on unknown unit '{dep}'")
            stack.append(dep)

    return [replace(u, dependencies=list(u.dependencies)) for u in units if u.name in keep]
