"""Deterministic ``depends-on`` graph over artifact-phase identifiers, loaded on demand."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Sequence
from typing import TYPE_CHECKING

from specgraph.documents.model import Reference
from specgraph.documents.parser import parse
from specgraph.observability.logging import get_logger
from specgraph.workspace.corpus import read_optional
from specgraph.workspace.layout import SpecLayout

if TYPE_CHECKING:
    from specgraph.workspace.corpus import SpecCorpus

DependencyLoader = Callable[[str], Sequence[str]]


class DependencyGraph:
    """
    Directed ``node -> dependency`` graph keyed by ``artifact.tag`` strings.

    With a loader attached, a node's outgoing edges are read the first time the node is
    expanded; nodes whose document is absent have no edges. Explicitly set nodes are never
    reloaded, which lets callers overlay an unsaved buffer on top of the corpus.
    """

    __slots__ = ("_edges", "_loader", "_logger")

    def __init__(
        self,
        edges: Iterable[tuple[str, str]] | None = None,
        *,
        loader: DependencyLoader | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._edges: dict[str, tuple[str, ...]] = {}
        self._loader = loader
        self._logger = logger or get_logger("graph")
        for source, target in edges or ():
            self.add_edge(source, target)

    @classmethod
    def lazy(
        cls,
        corpus: SpecCorpus,
        *,
        layout: SpecLayout | None = None,
        logger: logging.Logger | None = None,
    ) -> DependencyGraph:
        """Graph that reads each node's ``depends-on`` from ``corpus`` on first expansion."""
        return cls(loader=corpus_loader(corpus, layout or SpecLayout(), logger), logger=logger)

    @classmethod
    def from_corpus(
        cls,
        corpus: SpecCorpus,
        *,
        layout: SpecLayout | None = None,
        logger: logging.Logger | None = None,
    ) -> DependencyGraph:
        """Fully loaded graph over every spec document present in ``corpus``."""
        spec_layout = layout or SpecLayout()
        graph = cls.lazy(corpus, layout=spec_layout, logger=logger)
        for reference in spec_layout.known_references(corpus).references:
            graph.dependencies_of(reference.key)
        return graph

    @property
    def nodes(self) -> tuple[str, ...]:
        """Loaded nodes and every target they point at, sorted."""
        found: set[str] = set(self._edges)
        for targets in self._edges.values():
            found.update(targets)
        return tuple(sorted(found))

    @property
    def edges(self) -> tuple[tuple[str, str], ...]:
        return tuple(
            (source, target)
            for source in sorted(self._edges)
            for target in sorted(set(self._edges[source]))
        )

    def add_edge(self, source: str, target: str) -> None:
        _validate_node(source)
        _validate_node(target)
        current = self._edges.get(source, ())
        if target not in current:
            self._edges[source] = (*current, target)

    def set_dependencies(self, node: str, targets: Iterable[str]) -> None:
        """Pin ``node``'s outgoing edges, replacing anything loaded for it."""
        _validate_node(node)
        self._edges[node] = tuple(dict.fromkeys(targets))

    def dependencies_of(self, node: str) -> tuple[str, ...]:
        if node not in self._edges:
            loaded: tuple[str, ...] = ()
            if self._loader is not None:
                loaded = tuple(dict.fromkeys(self._loader(node)))
            self._edges[node] = loaded
        return self._edges[node]

    def transitive_dependencies(self, node: str) -> frozenset[str]:
        """
        Every node reachable from ``node`` via ``depends-on`` edges.

        ``node`` itself is included only when a cycle leads back to it. Pre-existing cycles
        elsewhere terminate because each node is expanded at most once per call.
        """
        visited: set[str] = set()
        pending: list[str] = list(self.dependencies_of(node))
        while pending:
            current = pending.pop()
            if current in visited:
                continue
            visited.add(current)
            for neighbor in self.dependencies_of(current):
                if neighbor not in visited:
                    pending.append(neighbor)
        return frozenset(visited)

    def would_create_cycle(self, source: str, target: str) -> bool:
        """Whether edge ``source -> target`` closes a cycle back to ``source``."""
        if source == target:
            return True
        return source in self.transitive_dependencies(target)

    def detect_cycles(self) -> tuple[tuple[str, ...], ...]:
        """
        Detect directed cycles among loaded nodes.

        Returns canonical closed paths, e.g. ``("a.req", "b.req", "a.req")``.
        """
        state: dict[str, int] = {}
        stack: list[str] = []
        stack_index: dict[str, int] = {}
        cycles: dict[tuple[str, ...], None] = {}

        for start in sorted(self._edges):
            if state.get(start, 0) != 0:
                continue

            state[start] = 1
            stack.append(start)
            stack_index[start] = 0
            frames: list[tuple[str, Iterator[str]]] = [
                (start, iter(sorted(set(self.dependencies_of(start)))))
            ]

            while frames:
                node, targets = frames[-1]
                try:
                    target = next(targets)
                except StopIteration:
                    frames.pop()
                    state[node] = 2
                    stack.pop()
                    del stack_index[node]
                    continue

                target_state = state.get(target, 0)
                if target_state == 0:
                    state[target] = 1
                    stack_index[target] = len(stack)
                    stack.append(target)
                    frames.append((target, iter(sorted(set(self.dependencies_of(target))))))
                elif target_state == 1:
                    cycle = (*stack[stack_index[target] :], target)
                    cycles[_canonicalize_cycle(cycle)] = None

        return tuple(sorted(cycles))

    def serialize(self) -> dict[str, object]:
        """Stable mapping with ``nodes``, ``edges`` and ``cycles``."""
        return {
            "nodes": list(self.nodes),
            "edges": [[source, target] for source, target in self.edges],
            "cycles": [list(cycle) for cycle in self.detect_cycles()],
        }


def corpus_loader(
    corpus: SpecCorpus, layout: SpecLayout, logger: logging.Logger | None = None
) -> DependencyLoader:
    """Loader returning the bare ``depends-on`` keys of a node's document."""
    log = logger or get_logger("graph")

    def load(node: str) -> tuple[str, ...]:
        reference = Reference.try_parse(node)
        if reference is None or reference.is_over_specified:
            return ()
        path = layout.path_for(reference)
        text = read_optional(corpus, path, logger=log)
        if text is None:
            return ()
        return dependency_keys(parse(text, path).depends_on)

    return load


def dependency_keys(entries: Iterable[str]) -> tuple[str, ...]:
    """Keys of the well-formed, bare entries; anything else contributes no edge."""
    keys: list[str] = []
    for entry in entries:
        reference = Reference.try_parse(entry)
        if reference is not None and not reference.is_over_specified:
            keys.append(reference.key)
    return tuple(keys)


def _canonicalize_cycle(cycle: Sequence[str]) -> tuple[str, ...]:
    core = tuple(cycle[:-1])
    if len(core) == 1:
        return (core[0], core[0])
    best = min(core[offset:] + core[:offset] for offset in range(len(core)))
    return (*best, best[0])


def _validate_node(node: str) -> None:
    if not node:
        raise ValueError("node must be non-empty")


__all__ = ["DependencyGraph", "DependencyLoader", "corpus_loader", "dependency_keys"]
