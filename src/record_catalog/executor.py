"""Executes parsed catalog commands."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from record_catalog.analytics import stats_for
from record_catalog.catalog import Catalog
from record_catalog.graph import DependencyGraph
from record_catalog.parsing.command_parser import (
    Command,
    DependenciesCommand,
    DescribeCommand,
    FindCommand,
    GraphCommand,
    OrphansCommand,
    PathCommand,
    RebuildCommand,
    ReferencesCommand,
    ShowCategoriesCommand,
    ShowTypesCommand,
    StatsCommand,
    TopCommand,
)
from record_catalog.record import Record

logger = structlog.get_logger(__name__)

RECORD_COLUMNS = ["key", "name", "type"]


@dataclass
class CommandResult:
    """Result of a command execution."""

    columns: list[str]
    rows: list[dict[str, Any]]
    message: str | None = None


@dataclass
class DotResult(CommandResult):
    """Result of a GRAPH command."""

    dot: str = ""
    output_file: str | None = None
    node_count: int = 0
    edge_count: int = 0


def _record_row(record: Record) -> dict[str, Any]:
    return {"key": record.key, "name": record.name, "type": record.type_name}


def _dot_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def format_dot(graph: DependencyGraph, title: str | None = None) -> str:
    """Format a dependency graph as a DOT file for Graphviz.

    Orphan records are drawn in a separate color. Edges point from a record
    to the records it references.
    """
    lines: list[str] = []
    lines.append("digraph dependencies {")
    lines.append("    rankdir=LR;")
    lines.append("    node [shape=box, style=filled];")
    if title:
        lines.append(f"    label={_dot_quote(title)};")
        lines.append("    labelloc=t;")
        lines.append("    fontsize=18;")

    lines.append("")

    for node in graph.nodes:
        color = "#FFB347" if node.is_orphan else "#ADD8E6"
        lines.append(f"    {_dot_quote(node.key)} [label={_dot_quote(node.display_name())}, fillcolor=\"{color}\"];")

    lines.append("")

    for source, target in graph.edges():
        lines.append(f"    {_dot_quote(source.key)} -> {_dot_quote(target.key)};")

    lines.append("}")
    lines.append("")
    return "\n".join(lines)


def write_dot(graph: DependencyGraph, path: str | Path, title: str | None = None) -> Path:
    """Write the graph as DOT to ``path`` and return the path."""
    path = Path(path)
    path.write_text(format_dot(graph, title), encoding="utf-8")
    logger.info("dot_written", path=str(path), nodes=graph.node_count, edges=graph.edge_count)
    return path


class CommandExecutor:
    """Runs commands against a catalog."""

    def __init__(self, catalog: Catalog) -> None:
        self.catalog = catalog

    def execute(self, command: Command) -> CommandResult:
        """Execute a parsed command."""
        if isinstance(command, FindCommand):
            return self._execute_find(command)
        if isinstance(command, OrphansCommand):
            return self._execute_orphans(command)
        if isinstance(command, TopCommand):
            return self._execute_top(command)
        if isinstance(command, PathCommand):
            return self._execute_path(command)
        if isinstance(command, StatsCommand):
            return self._execute_stats(command)
        if isinstance(command, ReferencesCommand):
            return self._execute_related(command.key, referencers=True)
        if isinstance(command, DependenciesCommand):
            return self._execute_related(command.key, referencers=False)
        if isinstance(command, ShowTypesCommand):
            return self._execute_show_types()
        if isinstance(command, ShowCategoriesCommand):
            return self._execute_show_categories()
        if isinstance(command, DescribeCommand):
            return self._execute_describe(command)
        if isinstance(command, RebuildCommand):
            return self._execute_rebuild()
        if isinstance(command, GraphCommand):
            return self._execute_graph(command)
        raise ValueError(f"Unknown command type: {type(command).__name__}")

    def _missing(self, key: str) -> CommandResult:
        return CommandResult(columns=[], rows=[], message=f"No record with key '{key}'")

    def _execute_find(self, command: FindCommand) -> CommandResult:
        if command.type_name is not None and self.catalog.get_type(command.type_name) is None:
            return CommandResult(columns=[], rows=[], message=f"Unknown type '{command.type_name}'")

        records = self.catalog.find(command.group, command.type_name)

        # Show the filtered fields next to the identity columns
        extra: list[str] = []
        if command.group is not None:
            for condition in command.group.conditions:
                if condition.enabled and condition.field_name not in extra and condition.field_name not in RECORD_COLUMNS:
                    extra.append(condition.field_name)

        engine = self.catalog.query_engine
        rows = []
        for record in records:
            row = _record_row(record)
            for field_name in extra:
                row[field_name] = engine.field_value(record, field_name)
            rows.append(row)
        return CommandResult(columns=RECORD_COLUMNS + extra, rows=rows)

    def _execute_orphans(self, command: OrphansCommand) -> CommandResult:
        orphans = self.catalog.orphans(
            include_expected=command.include_all,
            excluded_types=command.excluded_types,
        )
        return CommandResult(columns=RECORD_COLUMNS, rows=[_record_row(r) for r in orphans])

    def _execute_top(self, command: TopCommand) -> CommandResult:
        count = command.count if command.count is not None else self.catalog.settings.default_top_n
        analysis = self.catalog.analysis
        if command.by_dependencies:
            nodes = analysis.find_most_dependencies(count)
            metric = "dependencies"
        else:
            nodes = analysis.find_most_referenced(count)
            metric = "references"

        rows = []
        for rank, node in enumerate(nodes, start=1):
            row = {"rank": rank, **_record_row(node.record)}
            row[metric] = node.dependency_count if command.by_dependencies else node.reference_count
            rows.append(row)
        return CommandResult(columns=["rank"] + RECORD_COLUMNS + [metric], rows=rows)

    def _execute_path(self, command: PathCommand) -> CommandResult:
        start = self.catalog.get_record(command.from_key)
        if start is None:
            return self._missing(command.from_key)
        goal = self.catalog.get_record(command.to_key)
        if goal is None:
            return self._missing(command.to_key)

        path = self.catalog.analysis.find_shortest_path(start, goal)
        if path is None:
            return CommandResult(
                columns=[], rows=[],
                message=f"No dependency path from '{command.from_key}' to '{command.to_key}'",
            )
        rows = [{"step": i, **_record_row(r)} for i, r in enumerate(path)]
        return CommandResult(columns=["step"] + RECORD_COLUMNS, rows=rows)

    def _execute_stats(self, command: StatsCommand) -> CommandResult:
        if command.key is None:
            stats = self.catalog.analysis.graph_stats()
            rows = [
                {"metric": "nodes", "value": stats.total_nodes},
                {"metric": "edges", "value": stats.total_edges},
                {"metric": "orphans", "value": stats.orphan_count},
                {"metric": "orphan_percentage", "value": round(stats.orphan_percentage, 2)},
                {"metric": "average_dependencies", "value": round(stats.average_dependencies, 2)},
            ]
            return CommandResult(columns=["metric", "value"], rows=rows)

        record = self.catalog.get_record(command.key)
        if record is None:
            return self._missing(command.key)
        stats = self.catalog.analysis.get_stats(record)
        row = {
            "key": stats.record_key,
            "name": stats.record_name,
            "type": stats.record_type,
            "references": stats.reference_count,
            "dependencies": stats.dependency_count,
            "orphan": stats.is_orphan,
        }
        return CommandResult(columns=list(row), rows=[row])

    def _execute_related(self, key: str, referencers: bool) -> CommandResult:
        record = self.catalog.get_record(key)
        if record is None:
            return self._missing(key)
        analysis = self.catalog.analysis
        related = analysis.get_referencers(record) if referencers else analysis.get_dependencies(record)
        return CommandResult(columns=RECORD_COLUMNS, rows=[_record_row(r) for r in related])

    def _execute_show_types(self) -> CommandResult:
        scan = self.catalog.ensure_scanned()
        rows = []
        for record_type in sorted(self.catalog.record_types(), key=lambda t: t.name):
            rows.append({
                "type": record_type.name,
                "parent": record_type.parent.name if record_type.parent else None,
                "category": record_type.category,
                "fields": len(self.catalog.accessor.queryable_fields(record_type)),
                "records": len(scan.records_of_type(record_type.name)),
            })
        return CommandResult(columns=["type", "parent", "category", "fields", "records"], rows=rows)

    def _execute_show_categories(self) -> CommandResult:
        scan = self.catalog.ensure_scanned()
        rows = []
        for folder in scan.category_tree:
            for depth, node in folder.walk():
                rows.append({
                    "category": folder.display_name if depth == 0 else "",
                    "type": node.record_type.name if node.record_type is not None else "",
                    "display_name": node.display_name if depth > 0 else "",
                    "records": node.record_count,
                })
        return CommandResult(columns=["category", "type", "display_name", "records"], rows=rows)

    def _execute_describe(self, command: DescribeCommand) -> CommandResult:
        record_type = self.catalog.get_type(command.type_name)
        if record_type is None:
            return CommandResult(columns=[], rows=[], message=f"Unknown type '{command.type_name}'")

        fields = self.catalog.accessor.queryable_fields(record_type)
        rows = [
            {"field": f.name, "kind": f.kind.value, "declared_in": f.owner}
            for f in fields.values()
        ]
        return CommandResult(columns=["field", "kind", "declared_in"], rows=rows)

    def _execute_rebuild(self) -> CommandResult:
        self.catalog.scan()
        graph = self.catalog.builder.get_cached_graph()
        return CommandResult(
            columns=[], rows=[],
            message=f"Rebuilt dependency graph: {graph.node_count} records, {graph.edge_count} references",
        )

    def _execute_graph(self, command: GraphCommand) -> DotResult:
        graph = self.catalog.builder.get_cached_graph()
        if command.output_file:
            write_dot(graph, command.output_file, title="Record dependencies")
            message = f"Wrote {graph.node_count} records and {graph.edge_count} references to {command.output_file}"
            return DotResult(
                columns=[], rows=[], message=message,
                output_file=command.output_file,
                node_count=graph.node_count, edge_count=graph.edge_count,
            )
        return DotResult(
            columns=[], rows=[],
            dot=format_dot(graph, title="Record dependencies"),
            node_count=graph.node_count, edge_count=graph.edge_count,
        )
