"""Command-line interface router for specgraph."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Final

import yaml

from specgraph.config import (
    ConfigLoadError,
    ConfigValidationError,
    dump_effective_config,
    layout_from_config,
    load_config,
    logging_config_from,
    watch_settings_from,
)
from specgraph.documents.front_matter import convert_filename_mentions, refresh_metadata
from specgraph.graph.dependency_graph import DependencyGraph
from specgraph.graph.extractor import SourceSpan
from specgraph.graph.validator import DocumentValidator
from specgraph.main import ExitCode
from specgraph.observability.logging import (
    correlation_scope,
    get_logger,
    setup_structured_logging,
)
from specgraph.query.navigation import SpecQueryService
from specgraph.resolution.identifiers import ResolutionError, ResolvedTarget
from specgraph.ui.render import CLIRenderer, create_renderer, format_location
from specgraph.workspace.corpus import FileSystemCorpus, read_optional

RELATIONS: Final[tuple[str, ...]] = ("depends-on", "references", "mentions")
GRAPH_FORMATS: Final[tuple[str, ...]] = ("json", "yaml")


class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    def __init__(self, message: str, exit_code: int = ExitCode.INTERNAL_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class _Session:
    root: Path
    config: dict[str, Any]
    corpus: FileSystemCorpus
    renderer: CLIRenderer
    json_output: bool

    def service(self) -> SpecQueryService:
        return SpecQueryService(
            self.corpus, layout=self.corpus.layout, logger=get_logger("cli.query")
        )


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="specgraph",
        description=(
            "specgraph — dependency graph and navigation for interlinked spec documents.\n\n"
            "Common workflows:\n"
            "  specgraph validate                 Validate every spec document\n"
            "  specgraph refs FR-0001             Find every mention of an element\n"
            "  specgraph graph --format yaml      Export the dependency graph\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--root",
        default=".",
        help="Project root directory (default: current working directory).",
    )
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to specgraph TOML config (default: <root>/specgraph.toml if present).",
    )
    common.add_argument("--json", action="store_true", help="Emit deterministic JSON output")
    common.add_argument(
        "--verbose", "-v", action="store_true", default=False, help="Show detailed output."
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_parser = subparsers.add_parser(
        "validate",
        parents=[common],
        help="Validate spec documents",
        description="Validate the given documents, or every spec document when none is given.",
    )
    validate_parser.add_argument("files", nargs="*", help="Documents to validate")
    validate_parser.set_defaults(handler=_cmd_validate)

    resolve_parser = subparsers.add_parser(
        "resolve", parents=[common], help="Resolve an element identifier to its document"
    )
    _add_element_arguments(resolve_parser)
    resolve_parser.set_defaults(handler=_cmd_resolve)

    block_parser = subparsers.add_parser(
        "block", parents=[common], help="Print the defining block of an element"
    )
    _add_element_arguments(block_parser)
    block_parser.set_defaults(handler=_cmd_block)

    refs_parser = subparsers.add_parser(
        "refs", parents=[common], help="Find every whole-token occurrence of an element"
    )
    refs_parser.add_argument("element_id", help="Element identifier, e.g. FR-0001")
    refs_parser.set_defaults(handler=_cmd_refs)

    impls_parser = subparsers.add_parser(
        "impls", parents=[common], help="Find implementations of an element one phase down"
    )
    _add_element_arguments(impls_parser)
    impls_parser.set_defaults(handler=_cmd_impls)

    suggest_parser = subparsers.add_parser(
        "suggest", parents=[common], help="List candidate identifiers for a document"
    )
    suggest_parser.add_argument("file", help="Document to suggest candidates for")
    suggest_parser.add_argument(
        "--relation",
        choices=RELATIONS,
        default="depends-on",
        help="Relation to suggest for (default: depends-on)",
    )
    suggest_parser.set_defaults(handler=_cmd_suggest)

    graph_parser = subparsers.add_parser(
        "graph", parents=[common], help="Export the corpus dependency graph and its cycles"
    )
    graph_parser.add_argument(
        "--format", dest="graph_format", choices=GRAPH_FORMATS, default="json"
    )
    graph_parser.set_defaults(handler=_cmd_graph)

    refresh_parser = subparsers.add_parser(
        "refresh", parents=[common], help="Refresh a document's front matter"
    )
    refresh_parser.add_argument("file", help="Document to refresh")
    refresh_parser.add_argument(
        "--sync-references",
        action="store_true",
        default=None,
        help="Replace 'references' with the document's mentions",
    )
    refresh_parser.add_argument(
        "--today", default=None, help="ISO date to stamp (default: the current date)"
    )
    refresh_parser.set_defaults(handler=_cmd_refresh)

    config_parser = subparsers.add_parser(
        "config", parents=[common], help="Print the effective configuration"
    )
    config_parser.set_defaults(handler=_cmd_config)

    return parser


def _add_element_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("element_id", help="Element identifier, e.g. FR-0001")
    parser.add_argument(
        "--file", dest="current_file", default=None, help="Document the identifier appears in"
    )
    parser.add_argument(
        "--line", dest="line_text", default="", help="Text of the line the identifier is on"
    )


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return int(ExitCode.CONFIG_ERROR)

    try:
        session = _open_session(namespace)
        with setup_structured_logging(logging_config_from(session.config)):
            with correlation_scope(command=str(namespace.command)):
                result = handler(namespace, session)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return int(exc.exit_code)
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_validate(args: argparse.Namespace, session: _Session) -> int:
    corpus = session.corpus
    paths = [_corpus_path(session, raw) for raw in args.files] or corpus.list_artifact_files()
    validator = DocumentValidator(
        corpus, layout=corpus.layout, logger=get_logger("cli.validate")
    )

    documents: list[dict[str, object]] = []
    per_document: list[tuple[str, str]] = []
    issue_count = 0
    for path in paths:
        issues = validator.validate(path)
        issue_count += len(issues)
        per_document.append((path, str(len(issues))))
        documents.append(
            {
                "path": path,
                "issues": [
                    {
                        "kind": issue.kind.value,
                        "message": issue.message,
                        **_span_payload(issue.span),
                    }
                    for issue in issues
                ],
            }
        )
        if not session.json_output:
            for issue in issues:
                session.renderer.location(path, issue.span, f"{issue.kind.value}: {issue.message}")

    exit_code = ExitCode.ISSUES_FOUND if issue_count else ExitCode.SUCCESS
    if session.json_output:
        _emit_json({"command": "validate", "documents": documents, "issue_count": issue_count})
        return int(exit_code)

    if session.renderer.verbose:
        session.renderer.table(("Document", "Issues"), per_document)
        session.renderer.section("Summary")
    session.renderer.kv("Documents", len(paths))
    session.renderer.kv("Issues", issue_count)
    return int(exit_code)


def _cmd_resolve(args: argparse.Namespace, session: _Session) -> int:
    target = _resolve_or_fail(args, session)
    if target is None:
        return _unknown_type(args, session)

    exists = read_optional(session.corpus, target.path) is not None
    if session.json_output:
        _emit_json({"command": "resolve", **_target_payload(target), "exists": exists})
        return int(ExitCode.SUCCESS)

    renderer = session.renderer
    renderer.kv("Element", target.element_id)
    renderer.kv("Artifact", target.artifact)
    renderer.kv("Phase", target.phase.label)
    renderer.kv("Document", target.path)
    renderer.kv("Exists", str(exists).lower())
    return int(ExitCode.SUCCESS)


def _cmd_block(args: argparse.Namespace, session: _Session) -> int:
    target = _resolve_or_fail(args, session)
    if target is None:
        return _unknown_type(args, session)

    service = session.service()
    text = read_optional(session.corpus, target.path)
    block = service.locate_element_block(text, target.element_id) if text is not None else None
    if session.json_output:
        _emit_json({"command": "block", **_target_payload(target), "block": block})
    elif block is None:
        print(f"no block for {target.element_id} in {target.path}", file=sys.stderr)
    else:
        session.renderer.text(block)
    return int(ExitCode.SUCCESS if block is not None else ExitCode.ISSUES_FOUND)


def _cmd_refs(args: argparse.Namespace, session: _Session) -> int:
    locations = session.service().find_all_referencing_locations(args.element_id)
    if session.json_output:
        _emit_json(
            {
                "command": "refs",
                "element_id": args.element_id,
                "locations": [
                    {"path": item.path, **_span_payload(item.span)}
                    for item in locations
                ],
            }
        )
        return int(ExitCode.SUCCESS)
    for item in locations:
        session.renderer.text(format_location(item.path, item.span))
    return int(ExitCode.SUCCESS)


def _cmd_impls(args: argparse.Namespace, session: _Session) -> int:
    target = _resolve_or_fail(args, session)
    if target is None:
        return _unknown_type(args, session)

    current_file = _optional_corpus_path(session, args.current_file)
    locations = session.service().find_implementations(
        args.element_id, args.line_text, current_file
    )
    if session.json_output:
        _emit_json(
            {
                "command": "impls",
                **_target_payload(target),
                "locations": [
                    {"path": item.path, **_span_payload(item.span)}
                    for item in locations
                ],
            }
        )
        return int(ExitCode.SUCCESS)
    for item in locations:
        session.renderer.text(format_location(item.path, item.span))
    return int(ExitCode.SUCCESS)


def _cmd_suggest(args: argparse.Namespace, session: _Session) -> int:
    path = _corpus_path(session, args.file)
    service = session.service()
    if args.relation == "depends-on":
        candidates = service.suggest_depends_on_candidates(path)
    elif args.relation == "references":
        candidates = service.suggest_reference_candidates(path)
    else:
        candidates = service.suggest_mention_candidates(path)

    keys = [candidate.key for candidate in candidates]
    if session.json_output:
        _emit_json(
            {"command": "suggest", "path": path, "relation": args.relation, "candidates": keys}
        )
        return int(ExitCode.SUCCESS)
    for key in keys:
        session.renderer.text(key)
    return int(ExitCode.SUCCESS)


def _cmd_graph(args: argparse.Namespace, session: _Session) -> int:
    graph = DependencyGraph.from_corpus(
        session.corpus, layout=session.corpus.layout, logger=get_logger("cli.graph")
    )
    payload = graph.serialize()
    if args.graph_format == "yaml":
        sys.stdout.write(yaml.safe_dump(payload, sort_keys=True, default_flow_style=False))
    else:
        _emit_json(payload)
    return int(ExitCode.ISSUES_FOUND if payload["cycles"] else ExitCode.SUCCESS)


def _cmd_refresh(args: argparse.Namespace, session: _Session) -> int:
    path = _corpus_path(session, args.file)
    text = read_optional(session.corpus, path)
    if text is None:
        raise CLIError(f"document not found: {path}", exit_code=ExitCode.CONFIG_ERROR)

    sync = args.sync_references
    if sync is None:
        sync = watch_settings_from(session.config).sync_references
    refreshed = refresh_metadata(
        convert_filename_mentions(text),
        path,
        today=_parse_date(args.today),
        sync_references=sync,
    )
    changed = refreshed != text
    if changed:
        session.corpus.write_file(path, refreshed)

    if session.json_output:
        _emit_json({"command": "refresh", "path": path, "changed": changed})
    else:
        session.renderer.kv("Refreshed" if changed else "Unchanged", path)
    return int(ExitCode.SUCCESS)


def _cmd_config(args: argparse.Namespace, session: _Session) -> int:
    sys.stdout.write(dump_effective_config(session.config) + "\n")
    return int(ExitCode.SUCCESS)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _open_session(args: argparse.Namespace) -> _Session:
    root = Path(str(args.root)).expanduser().resolve()
    if not root.is_dir():
        raise CLIError(f"project root is not a directory: {root}", exit_code=ExitCode.CONFIG_ERROR)

    try:
        config = load_config(args.config_path, base_dir=root)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=ExitCode.CONFIG_ERROR) from exc

    corpus = FileSystemCorpus(
        root,
        layout=layout_from_config(config),
        source_globs=config["search"]["source_globs"],
        exclude_dirs=config["search"]["exclude_dirs"],
    )
    return _Session(
        root=root,
        config=config,
        corpus=corpus,
        renderer=create_renderer(verbose=bool(args.verbose)),
        json_output=bool(args.json),
    )


def _resolve_or_fail(args: argparse.Namespace, session: _Session) -> ResolvedTarget | None:
    current_file = _optional_corpus_path(session, args.current_file)
    try:
        return session.service().resolve(args.element_id, args.line_text, current_file)
    except ResolutionError as exc:
        raise CLIError(str(exc), exit_code=ExitCode.RESOLUTION_ERROR) from exc


def _unknown_type(args: argparse.Namespace, session: _Session) -> int:
    if session.json_output:
        _emit_json({"command": str(args.command), "element_id": args.element_id, "path": None})
    else:
        print(f"unknown element type: {args.element_id}", file=sys.stderr)
    return int(ExitCode.RESOLUTION_ERROR)


def _corpus_path(session: _Session, raw: str) -> str:
    candidate = Path(raw).expanduser()
    if not candidate.is_absolute():
        candidate = Path.cwd() / candidate
        if not candidate.exists():
            candidate = session.root / raw
    try:
        return session.corpus.relative_path(candidate)
    except ValueError as exc:
        raise CLIError(
            f"path is outside the project root: {raw}", exit_code=ExitCode.CONFIG_ERROR
        ) from exc


def _optional_corpus_path(session: _Session, raw: str | None) -> str | None:
    return _corpus_path(session, raw) if raw else None


def _parse_date(raw: str | None) -> date | None:
    if raw is None:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise CLIError(f"invalid date {raw!r}; expected YYYY-MM-DD", exit_code=2) from exc


def _target_payload(target: ResolvedTarget) -> dict[str, object]:
    return {
        "element_id": target.element_id,
        "artifact": target.artifact,
        "phase": target.phase.label,
        "path": target.path,
    }


def _span_payload(span: SourceSpan) -> dict[str, int]:
    return {"line": span.line, "column": span.column, "length": span.length}


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


__all__ = ["CLIError", "build_parser", "run_cli"]
