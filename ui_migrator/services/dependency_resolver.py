"""
Dependency Resolver.

Builds the component dependency graph with networkx, reports cycles and
produces a deterministic processing order where prerequisites come first.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple
from enum import Enum
import logging
import posixpath

import networkx as nx

from ..errors import ResolutionError
from ..models.component import ComponentModel, DependencyKind, DependencyReference

logger = logging.getLogger(__name__)

SOURCE_EXTENSIONS = (".tsx", ".ts", ".jsx", ".js")
INDEX_STEMS = ("index", "page")


class EdgeKind(str, Enum):
    COMPONENT_REFERENCE = "component_reference"
    SHARED_UTILITY = "shared_utility"


@dataclass(frozen=True)
class DependencyEdge:
    """`from_component` must be migrated before `to_component`, which uses it."""
    from_component: str
    to_component: str
    kind: EdgeKind = EdgeKind.COMPONENT_REFERENCE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_component,
            "to": self.to_component,
            "kind": self.kind.value,
        }


@dataclass
class ResolutionResult:
    """Processing order and cycle report for a batch of components."""
    ordered: List[str] = field(default_factory=list)
    cycles: List[List[str]] = field(default_factory=list)
    edges: List[DependencyEdge] = field(default_factory=list)
    graph: nx.DiGraph = field(default_factory=nx.DiGraph)
    errors: List[str] = field(default_factory=list)
    cyclic_nodes: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.cycles

    @property
    def cyclic_components(self) -> List[str]:
        """Every component inside a strongly connected component that holds a cycle."""
        return sorted(set(self.cyclic_nodes).union(*self.cycles))

    def generations(self) -> List[List[str]]:
        """
        Dependency levels: every component's prerequisites sit in an earlier level.

        Components inside one level are independent of each other.
        """
        if not nx.is_directed_acyclic_graph(self.graph):
            return []
        return [sorted(level) for level in nx.topological_generations(self.graph)]

    def prerequisites(self, component_id: str) -> List[str]:
        if component_id not in self.graph:
            return []
        return sorted(self.graph.predecessors(component_id))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "ordered": self.ordered,
            "cycles": self.cycles,
            "edges": [e.to_dict() for e in self.edges],
            "errors": self.errors,
        }


def _strip_extension(path: str) -> str:
    for extension in SOURCE_EXTENSIONS:
        if path.endswith(extension):
            return path[: -len(extension)]
    return path


def find_cycles(graph: nx.DiGraph) -> Tuple[List[List[str]], List[str]]:
    """
    One representative cycle per strongly connected component that has one.

    Returns the sorted cycles and every node inside those components.
    Linear in nodes plus edges.
    """
    cycles = []
    members = set()
    for component in nx.strongly_connected_components(graph):
        start = min(component)
        if len(component) == 1 and not graph.has_edge(start, start):
            continue
        members.update(component)
        edges = nx.find_cycle(graph.subgraph(component), source=start)
        cycles.append(normalize_cycle([u for u, _ in edges]))
    return sorted(cycles), sorted(members)


def normalize_cycle(cycle: List[str]) -> List[str]:
    """Rotate a cycle so its smallest id leads."""
    start = cycle.index(min(cycle))
    return cycle[start:] + cycle[:start]


class DependencyResolver:
    """
    Resolver that orders components so every prerequisite precedes its consumers.

    An edge exists only where an import names another discovered component,
    either by the component's name or by the basename of the import path.
    """

    def build_graph(self, models: Iterable[ComponentModel]) -> nx.DiGraph:
        models = list(models)
        graph = nx.DiGraph()
        for model in models:
            graph.add_node(model.id, name=model.name, kind=model.kind.value)

        by_name: Dict[str, List[str]] = {}
        by_stem: Dict[str, List[str]] = {}
        for model in models:
            by_name.setdefault(model.name, []).append(model.id)
            for stem in self._stems(model.id):
                by_stem.setdefault(stem, []).append(model.id)

        for model in models:
            for reference in model.component_dependencies():
                target = self._match(reference, model, by_name, by_stem)
                if target is None or target == model.id:
                    continue
                kind = (
                    EdgeKind.COMPONENT_REFERENCE
                    if reference.kind == DependencyKind.COMPONENT
                    else EdgeKind.SHARED_UTILITY
                )
                if not graph.has_edge(target, model.id):
                    graph.add_edge(target, model.id, kind=kind)
        return graph

    def _stems(self, component_id: str) -> List[str]:
        path = _strip_extension(component_id)
        stem = posixpath.basename(path)
        stems = [stem]
        if stem in INDEX_STEMS:
            parent = posixpath.basename(posixpath.dirname(path))
            if parent:
                stems.append(parent)
        return stems

    def _match(
        self,
        reference: DependencyReference,
        consumer: ComponentModel,
        by_name: Dict[str, List[str]],
        by_stem: Dict[str, List[str]],
    ) -> Optional[str]:
        candidates = by_name.get(reference.name) or by_stem.get(
            _strip_extension(reference.module_basename)
        )
        if not candidates:
            return None
        candidates = [c for c in candidates if c != consumer.id]
        if not candidates:
            return None
        if len(candidates) == 1:
            return candidates[0]

        # Same name in several directories: prefer the one the import path points at.
        tail = _strip_extension(reference.source).lstrip("./")
        for candidate in sorted(candidates):
            if _strip_extension(candidate).endswith(tail):
                return candidate
        return sorted(candidates)[0]

    def resolve(self, models: Iterable[ComponentModel]) -> ResolutionResult:
        """
        Resolve a processing order.

        Returns:
            ResolutionResult. When cycles exist, `ordered` is empty and
            `success` is False.
        """
        graph = self.build_graph(models)
        edges = sorted(
            (
                DependencyEdge(u, v, data.get("kind", EdgeKind.COMPONENT_REFERENCE))
                for u, v, data in graph.edges(data=True)
            ),
            key=lambda e: (e.from_component, e.to_component),
        )

        cycles, cyclic_nodes = find_cycles(graph)
        if cycles:
            errors = [f"Circular dependency: {' -> '.join(c + [c[0]])}" for c in cycles]
            for error in errors:
                logger.warning(error)
            return ResolutionResult(
                ordered=[], cycles=cycles, edges=edges, graph=graph, errors=errors, cyclic_nodes=cyclic_nodes,
            )

        ordered = list(nx.lexicographical_topological_sort(graph))
        logger.info(f"Resolved order for {len(ordered)} components ({len(edges)} edges)")
        return ResolutionResult(ordered=ordered, cycles=[], edges=edges, graph=graph)

    def resolve_or_raise(self, models: Iterable[ComponentModel]) -> ResolutionResult:
        result = self.resolve(models)
        if not result.success:
            raise ResolutionError("; ".join(result.errors), cycles=result.cycles)
        return result

    def resolve_excluding_cycles(self, models: Iterable[ComponentModel]) -> ResolutionResult:
        """
        Order the acyclic remainder of a batch.

        Cyclic components, and anything depending on them, are left out of
        `ordered`; `cycles` still reports every cycle.
        """
        models = list(models)
        full = self.resolve(models)
        if full.success:
            return full
        blocked = set(full.cyclic_components)
        for node in list(blocked):
            blocked.update(nx.descendants(full.graph, node))
        remainder = full.graph.subgraph(n for n in full.graph if n not in blocked).copy()
        ordered = list(nx.lexicographical_topological_sort(remainder))
        return ResolutionResult(
            ordered=ordered,
            cycles=full.cycles,
            edges=full.edges,
            graph=remainder,
            errors=full.errors,
            cyclic_nodes=full.cyclic_nodes,
        )
