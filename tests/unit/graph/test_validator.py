"""
specgraph — unit tests for document validation

File: tests/unit/graph/test_validator.py

Purpose
- Validate the three issue kinds and their precedence over one another.

What this test file should cover
- Clean dependency chains.
- Mutual dependencies reported on each side.
- Over-specified references reported regardless of target existence.
- Missing targets for every relation.
- Unsaved buffer text taking precedence over the stored document.
"""

from __future__ import annotations

import pytest

from specgraph.graph.extractor import Relation
from specgraph.graph.validator import DocumentValidator, IssueKind, validate_document
from specgraph.workspace.corpus import InMemoryCorpus
from specgraph.workspace.layout import SpecLayout

pytestmark = pytest.mark.unit

A_REQ = "specs/requirements/a.req.md"
B_DESIGN = "specs/design/b.design.md"
C_DESIGN = "specs/design/c.design.md"
D_DESIGN = "specs/design/d.design.md"
FOO_REQ = "specs/requirements/foo.req.md"


def _doc(depends_on: str = "", references: str = "", body: str = "") -> str:
    lines = ["---"]
    if depends_on:
        lines.append(f"depends-on: [{depends_on}]")
    if references:
        lines.append(f"references: [{references}]")
    lines.append("---")
    lines.append(body)
    return "\n".join(lines) + "\n"


def test_clean_dependency_yields_no_issues() -> None:
    corpus = InMemoryCorpus({A_REQ: _doc(), B_DESIGN: _doc(depends_on="a.req")})
    assert validate_document(B_DESIGN, corpus) == []


@pytest.mark.parametrize(("path", "target"), [(C_DESIGN, "d.design"), (D_DESIGN, "c.design")])
def test_mutual_dependency_is_circular_on_both_sides(path: str, target: str) -> None:
    corpus = InMemoryCorpus(
        {C_DESIGN: _doc(depends_on="d.design"), D_DESIGN: _doc(depends_on="c.design")}
    )

    issues = validate_document(path, corpus)

    assert len(issues) == 1
    (issue,) = issues
    assert issue.kind is IssueKind.CIRCULAR_DEPENDENCY
    assert issue.relation is Relation.DEPENDS_ON
    assert issue.site.raw == target
    assert issue.span.line == 1
    assert issue.message == f"Dependency '{target}' creates a circular dependency"


@pytest.mark.parametrize("with_target", [True, False])
def test_over_specified_reference_ignores_target_existence(with_target: bool) -> None:
    files = {A_REQ: _doc(references='"foo.req[extra]"')}
    if with_target:
        files[FOO_REQ] = _doc()
    corpus = InMemoryCorpus(files)

    issues = validate_document(A_REQ, corpus)

    assert [issue.kind for issue in issues] == [IssueKind.OVER_SPECIFIED]
    assert issues[0].message == "Reference 'foo.req[extra]' is over-specified"


def test_missing_reference_target() -> None:
    corpus = InMemoryCorpus({A_REQ: _doc(references='"ghost.design"')})

    issues = validate_document(A_REQ, corpus)

    assert [issue.kind for issue in issues] == [IssueKind.MISSING_TARGET]
    assert issues[0].message == "Reference 'ghost.design' not found"


def test_adding_a_back_edge_is_circular_but_unrelated_edge_is_not() -> None:
    corpus = InMemoryCorpus(
        {
            "specs/requirements/t.req.md": _doc(depends_on="m.req"),
            "specs/requirements/m.req.md": _doc(depends_on="d.req"),
            "specs/requirements/d.req.md": _doc(),
            "specs/requirements/u.req.md": _doc(),
        }
    )
    validator = DocumentValidator(corpus)

    back_edge = validator.validate("specs/requirements/d.req.md", _doc(depends_on="t.req"))
    unrelated = validator.validate("specs/requirements/d.req.md", _doc(depends_on="u.req"))

    assert [issue.kind for issue in back_edge] == [IssueKind.CIRCULAR_DEPENDENCY]
    assert unrelated == []


def test_self_dependency_is_circular() -> None:
    corpus = InMemoryCorpus({A_REQ: _doc(depends_on="a.req")})
    issues = validate_document(A_REQ, corpus)
    assert [issue.kind for issue in issues] == [IssueKind.CIRCULAR_DEPENDENCY]


def test_every_relation_reports_in_document_order() -> None:
    text = _doc(
        depends_on="a.req, gone.req, a.req#1",
        references="missing.design",
        body="See @a.req, @nobody.impl and @a.req[x].",
    )
    corpus = InMemoryCorpus({A_REQ: _doc(), B_DESIGN: text})

    issues = validate_document(B_DESIGN, corpus)

    assert [(issue.kind, issue.message) for issue in issues] == [
        (IssueKind.MISSING_TARGET, "Dependency 'gone.req' not found"),
        (IssueKind.OVER_SPECIFIED, "Depends-on 'a.req#1' is over-specified"),
        (IssueKind.MISSING_TARGET, "Reference 'missing.design' not found"),
        (IssueKind.MISSING_TARGET, "Mention 'nobody.impl' not found"),
        (IssueKind.OVER_SPECIFIED, "Mention '@a.req[x]' is over-specified"),
    ]


def test_unparsable_entry_is_over_specified() -> None:
    corpus = InMemoryCorpus({B_DESIGN: _doc(depends_on="not-a-reference")})
    issues = validate_document(B_DESIGN, corpus)
    assert [issue.kind for issue in issues] == [IssueKind.OVER_SPECIFIED]


def test_buffer_text_overrides_stored_document() -> None:
    corpus = InMemoryCorpus({A_REQ: _doc(), B_DESIGN: _doc(depends_on="a.req")})
    issues = validate_document(B_DESIGN, corpus, _doc(depends_on="zzz.req"))
    assert [issue.message for issue in issues] == ["Dependency 'zzz.req' not found"]


def test_missing_document_has_no_issues() -> None:
    assert validate_document(B_DESIGN, InMemoryCorpus()) == []


def test_document_outside_the_naming_convention_skips_cycle_checks() -> None:
    corpus = InMemoryCorpus(
        {A_REQ: _doc(depends_on="a.req"), "specs/notes.md": _doc(depends_on="a.req")}
    )
    assert validate_document("specs/notes.md", corpus) == []


def test_custom_layout_locates_targets() -> None:
    layout = SpecLayout(specs_dir="docs")
    corpus = InMemoryCorpus(
        {
            "docs/requirements/a.req.md": _doc(),
            "docs/design/b.design.md": _doc(depends_on="a.req"),
        },
        layout=layout,
    )
    assert validate_document("docs/design/b.design.md", corpus, layout=layout) == []
