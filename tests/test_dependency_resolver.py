"""Tests for ui_migrator.services.dependency_resolver."""

import time

import pytest

from ui_migrator.errors import ResolutionError
from ui_migrator.models.component import (
    ComponentKind,
    ComponentModel,
    DependencyKind,
    DependencyReference,
)
from ui_migrator.services.dependency_resolver import DependencyResolver, EdgeKind, normalize_cycle


def _model(component_id, *imports, kind=DependencyKind.COMPONENT):
    name = component_id.rsplit("/", 1)[-1].split(".")[0]
    return ComponentModel(
        id=component_id,
        name=name,
        kind=ComponentKind.STATELESS_VIEW,
        source_path=component_id,
        dependencies=tuple(
            DependencyReference(name=imported, source=f"./{imported}", kind=kind) for imported in imports
        ),
    )


@pytest.fixture
def resolver():
    return DependencyResolver()


class TestOrdering:
    """Prerequisites precede consumers."""

    def test_dependency_comes_first(self, resolver):
        result = resolver.resolve([_model("Toolbar.tsx", "Button"), _model("Button.tsx")])
        assert result.success
        assert result.ordered == ["Button.tsx", "Toolbar.tsx"]
        (edge,) = result.edges
        assert (edge.from_component, edge.to_component) == ("Button.tsx", "Toolbar.tsx")
        assert edge.kind == EdgeKind.COMPONENT_REFERENCE

    def test_independent_components_are_lexicographic(self, resolver):
        result = resolver.resolve([_model("c.tsx"), _model("a.tsx"), _model("b.tsx")])
        assert result.ordered == ["a.tsx", "b.tsx", "c.tsx"]

    def test_library_imports_create_no_edges(self, resolver):
        models = [
            _model("Toolbar.tsx", "Button", kind=DependencyKind.LIBRARY),
            _model("Button.tsx"),
        ]
        assert resolver.resolve(models).edges == []

    def test_utility_import_matches_by_path_stem(self, resolver):
        consumer = ComponentModel(
            id="Report.tsx",
            name="Report",
            kind=ComponentKind.STATELESS_VIEW,
            source_path="Report.tsx",
            dependencies=(DependencyReference("formatDate", "./utils/format", DependencyKind.UTILITY),),
        )
        helper = ComponentModel(
            id="utils/format.ts",
            name="formatMoney",
            kind=ComponentKind.UTILITY_FUNCTION,
            source_path="utils/format.ts",
        )
        result = resolver.resolve([consumer, helper])
        assert result.ordered == ["utils/format.ts", "Report.tsx"]
        assert result.edges[0].kind == EdgeKind.SHARED_UTILITY

    def test_generations_group_independent_components(self, resolver):
        models = [
            _model("Page.tsx", "Toolbar", "Card"),
            _model("Toolbar.tsx", "Button"),
            _model("Card.tsx"),
            _model("Button.tsx"),
        ]
        result = resolver.resolve(models)
        assert result.generations() == [
            ["Button.tsx", "Card.tsx"],
            ["Toolbar.tsx"],
            ["Page.tsx"],
        ]
        assert result.prerequisites("Page.tsx") == ["Card.tsx", "Toolbar.tsx"]


class TestCycles:
    """Cycles are reported, never silently broken."""

    def test_two_component_cycle(self, resolver):
        result = resolver.resolve([_model("B.tsx", "A"), _model("A.tsx", "B")])
        assert not result.success
        assert result.ordered == []
        assert result.cycles == [["A.tsx", "B.tsx"]]
        assert result.errors == ["Circular dependency: A.tsx -> B.tsx -> A.tsx"]
        assert result.generations() == []

    def test_resolve_or_raise(self, resolver):
        with pytest.raises(ResolutionError) as info:
            resolver.resolve_or_raise([_model("A.tsx", "B"), _model("B.tsx", "A")])
        assert info.value.cycles == [["A.tsx", "B.tsx"]]

    def test_excluding_cycles_blocks_dependents(self, resolver):
        models = [
            _model("A.tsx", "B"),
            _model("B.tsx", "A"),
            _model("Page.tsx", "A"),
            _model("Button.tsx"),
        ]
        result = resolver.resolve_excluding_cycles(models)
        assert result.ordered == ["Button.tsx"]
        assert result.cyclic_components == ["A.tsx", "B.tsx"]

    def test_one_cycle_per_strongly_connected_group(self, resolver):
        names = [f"C{i}" for i in range(10)]
        models = [_model(f"{name}.tsx", *[other for other in names if other != name]) for name in names]

        started = time.monotonic()
        result = resolver.resolve(models)

        assert time.monotonic() - started < 5
        assert len(result.edges) == 90
        assert len(result.cycles) == 1
        assert len(result.errors) == 1
        assert result.cycles[0][0] == "C0.tsx"
        assert result.cyclic_components == sorted(f"{name}.tsx" for name in names)

    def test_separate_cycles_are_reported_separately(self, resolver):
        models = [
            _model("A.tsx", "B"),
            _model("B.tsx", "A"),
            _model("X.tsx", "Y"),
            _model("Y.tsx", "Z"),
            _model("Z.tsx", "X"),
            _model("Button.tsx"),
        ]
        result = resolver.resolve(models)
        assert result.cycles == [["A.tsx", "B.tsx"], ["X.tsx", "Z.tsx", "Y.tsx"]]
        assert result.cyclic_components == ["A.tsx", "B.tsx", "X.tsx", "Y.tsx", "Z.tsx"]

    def test_excluding_cycles_blocks_the_whole_group(self, resolver):
        names = ["P", "Q", "R", "S"]
        models = [_model(f"{name}.tsx", *[other for other in names if other != name]) for name in names]
        models += [_model("Page.tsx", "S"), _model("Button.tsx")]

        result = resolver.resolve_excluding_cycles(models)

        assert result.ordered == ["Button.tsx"]
        assert result.cyclic_components == ["P.tsx", "Q.tsx", "R.tsx", "S.tsx"]

    def test_normalize_cycle_rotates_to_smallest(self):
        assert normalize_cycle(["c", "a", "b"]) == ["a", "b", "c"]
