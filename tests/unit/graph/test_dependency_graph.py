"""
specgraph — unit tests for the dependency graph

File: tests/unit/graph/test_dependency_graph.py

Purpose
- Validate reachability, cycle prediction and cycle reporting.

What this test file should cover
- Transitive closure terminates on pre-existing cycles.
- ``would_create_cycle`` is only true for edges that close a loop back to the source.
- Lazy loading from a corpus and overlaying unsaved dependencies.
"""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from specgraph.graph.dependency_graph import DependencyGraph, dependency_keys
from specgraph.workspace.corpus import InMemoryCorpus

pytestmark = pytest.mark.unit


def _doc(*depends_on: str) -> str:
    items = ", ".join(f'"{item}"' for item in depends_on)
    return f"---\ndepends-on: [{items}]\n---\n"


def test_transitive_dependencies_follow_chains() -> None:
    graph = DependencyGraph([("a.req", "b.req"), ("b.req", "c.req"), ("x.req", "a.req")])

    assert graph.transitive_dependencies("a.req") == {"b.req", "c.req"}
    assert graph.transitive_dependencies("c.req") == frozenset()


def test_transitive_dependencies_terminate_on_existing_cycles() -> None:
    graph = DependencyGraph([("a.req", "b.req"), ("b.req", "c.req"), ("c.req", "b.req")])
    assert graph.transitive_dependencies("a.req") == {"b.req", "c.req"}


def test_would_create_cycle() -> None:
    graph = DependencyGraph([("b.req", "c.req"), ("c.req", "a.req")])

    assert graph.would_create_cycle("a.req", "b.req")
    assert graph.would_create_cycle("a.req", "a.req")
    assert not graph.would_create_cycle("a.req", "d.req")
    assert graph.would_create_cycle("c.req", "b.req")


def test_unrelated_edges_never_report_cycles() -> None:
    graph = DependencyGraph([("a.req", "b.req"), ("c.req", "d.req")])
    assert not graph.would_create_cycle("a.req", "c.req")
    assert graph.detect_cycles() == ()


def test_detect_cycles_returns_canonical_closed_paths() -> None:
    graph = DependencyGraph(
        [
            ("c.req", "a.req"),
            ("a.req", "b.req"),
            ("b.req", "c.req"),
            ("d.req", "d.req"),
        ]
    )
    assert graph.detect_cycles() == (
        ("a.req", "b.req", "c.req", "a.req"),
        ("d.req", "d.req"),
    )


def test_duplicate_edges_are_collapsed() -> None:
    graph = DependencyGraph([("a.req", "b.req"), ("a.req", "b.req")])
    assert graph.edges == (("a.req", "b.req"),)
    assert graph.nodes == ("a.req", "b.req")


def test_empty_node_is_rejected() -> None:
    graph = DependencyGraph()
    with pytest.raises(ValueError):
        graph.add_edge("", "a.req")


def test_lazy_graph_reads_depends_on_from_corpus() -> None:
    corpus = InMemoryCorpus(
        {
            "specs/requirements/a.req.md": _doc("b.req"),
            "specs/requirements/b.req.md": _doc("c.req", "bogus", "d.req[x]"),
            "specs/requirements/c.req.md": _doc(),
        }
    )
    graph = DependencyGraph.lazy(corpus)

    assert graph.dependencies_of("a.req") == ("b.req",)
    assert graph.transitive_dependencies("a.req") == {"b.req", "c.req"}
    assert graph.dependencies_of("missing.req") == ()


def test_overlay_replaces_stored_dependencies() -> None:
    corpus = InMemoryCorpus(
        {
            "specs/requirements/a.req.md": _doc("b.req"),
            "specs/requirements/b.req.md": _doc(),
        }
    )
    graph = DependencyGraph.lazy(corpus)
    graph.set_dependencies("b.req", ["a.req"])

    assert graph.would_create_cycle("a.req", "b.req")


def test_from_corpus_serializes_every_document() -> None:
    corpus = InMemoryCorpus(
        {
            "specs/requirements/c.req.md": _doc("d.req"),
            "specs/requirements/d.req.md": _doc("c.req"),
            "specs/design/c.design.md": _doc("c.req"),
            "specs/ConOps.md": "# Summary\n",
        }
    )

    payload = DependencyGraph.from_corpus(corpus).serialize()

    assert payload["nodes"] == ["c.design", "c.req", "d.req"]
    assert payload["edges"] == [["c.design", "c.req"], ["c.req", "d.req"], ["d.req", "c.req"]]
    assert payload["cycles"] == [["c.req", "d.req", "c.req"]]


def test_dependency_keys_keep_only_bare_references() -> None:
    assert dependency_keys(["a.req", "b.design#x", "junk", "c.impl"]) == ("a.req", "c.impl")


_nodes = st.sampled_from([f"n{index}.req" for index in range(6)])


@given(st.lists(st.tuples(_nodes, _nodes), max_size=20), _nodes, _nodes)
def test_would_create_cycle_matches_reachability(
    edges: list[tuple[str, str]], source: str, target: str
) -> None:
    graph = DependencyGraph(edges)
    expected = source == target or source in graph.transitive_dependencies(target)
    assert graph.would_create_cycle(source, target) is expected

    graph.add_edge(source, target)
    if expected:
        assert source in graph.transitive_dependencies(source)
