"""Tests for executing parsed commands against the fixture catalog."""

from pathlib import Path

import pytest

from record_catalog.catalog import Catalog
from record_catalog.executor import CommandExecutor, CommandResult, DotResult, format_dot
from record_catalog.graph import DependencyGraph
from record_catalog.parsing import CommandParser
from record_catalog.record import Record
from record_catalog.types import RecordType


@pytest.fixture
def run(catalog: Catalog):
    """Parse and execute one command."""
    parser = CommandParser()
    parser.build(debug=False, write_tables=False)
    executor = CommandExecutor(catalog)

    def _run(text: str) -> CommandResult:
        return executor.execute(parser.parse(text))

    return _run


def keys(result: CommandResult) -> list[str]:
    return [row["key"] for row in result.rows]


class TestFind:
    """Tests for the find command."""

    def test_find_with_filter(self, run):
        result = run("find Enemy where hp > 50")
        assert result.columns == ["key", "name", "type", "hp"]
        assert result.rows == [{"key": "enemies/dragon", "name": "Dragon", "type": "Enemy", "hp": 500}]

    def test_find_includes_subtypes(self, run):
        assert keys(run("find Unit")) == ["enemies/goblin", "enemies/dragon"]

    def test_find_all_types(self, run):
        result = run('find where name contains "go"')
        assert result.columns == ["key", "name", "type"]
        assert keys(result) == ["enemies/goblin", "enemies/dragon"]

    def test_find_or(self, run):
        result = run("find where damage > 10 or hp > 100")
        assert keys(result) == ["enemies/dragon", "items/sword"]
        assert result.columns == ["key", "name", "type", "damage", "hp"]
        assert result.rows[0]["damage"] is None

    def test_find_dotted_path(self, run):
        result = run('find Enemy where loot.name = "Sword"')
        assert keys(result) == ["enemies/goblin"]
        assert result.rows[0]["loot.name"] == "Sword"

    def test_find_everything(self, run):
        assert len(run("find").rows) == 6

    def test_unknown_type(self, run):
        result = run("find Ghost")
        assert result.rows == []
        assert result.message == "Unknown type 'Ghost'"


class TestAnalysisCommands:
    """Tests for orphans, top, path, stats and neighbour listings."""

    def test_orphans(self, run):
        assert keys(run("orphans")) == ["enemies/goblin", "enemies/dragon", "notes/readme"]
        assert "db/loot" in keys(run("orphans all"))
        assert keys(run("orphans excluding Enemy")) == ["notes/readme"]

    def test_top(self, run):
        result = run("top 2")
        assert result.columns == ["rank", "key", "name", "type", "references"]
        assert [(r["rank"], r["key"], r["references"]) for r in result.rows] == [
            (1, "items/shield", 2),
            (2, "items/sword", 2),
        ]

    def test_top_default_count(self, run):
        assert len(run("top").rows) == 6

    def test_top_dependencies(self, run):
        result = run("top dependencies 1")
        assert result.columns[-1] == "dependencies"
        assert result.rows == [{"rank": 1, "key": "db/loot", "name": "Loot Table", "type": "LootDatabase", "dependencies": 2}]

    def test_path(self, run):
        result = run('path "enemies/goblin" to "items/sword"')
        assert result.columns == ["step", "key", "name", "type"]
        assert [(r["step"], r["key"]) for r in result.rows] == [(0, "enemies/goblin"), (1, "items/sword")]

    def test_no_path(self, run):
        result = run('path "items/sword" to "enemies/goblin"')
        assert result.rows == []
        assert result.message == "No dependency path from 'items/sword' to 'enemies/goblin'"

    def test_path_unknown_record(self, run):
        assert run('path "nope" to "items/sword"').message == "No record with key 'nope'"
        assert run('path "items/sword" to "nope"').message == "No record with key 'nope'"

    def test_graph_stats(self, run):
        result = run("stats")
        values = {r["metric"]: r["value"] for r in result.rows}
        assert values == {
            "nodes": 6,
            "edges": 4,
            "orphans": 4,
            "orphan_percentage": 66.67,
            "average_dependencies": 0.67,
        }

    def test_record_stats(self, run):
        result = run('stats "items/sword"')
        assert result.rows == [{
            "key": "items/sword",
            "name": "Sword",
            "type": "Item",
            "references": 2,
            "dependencies": 0,
            "orphan": False,
        }]
        assert run('stats "nope"').message == "No record with key 'nope'"

    def test_references_and_dependencies(self, run):
        assert keys(run('references "items/sword"')) == ["enemies/goblin", "db/loot"]
        assert keys(run('dependencies "db/loot"')) == ["items/sword", "items/shield"]
        assert keys(run('dependencies "notes/readme"')) == []
        assert run('references "nope"').message == "No record with key 'nope'"


class TestInspectionCommands:
    """Tests for show, describe and rebuild."""

    def test_show_types(self, run):
        result = run("show types")
        assert [r["type"] for r in result.rows] == ["Enemy", "Item", "LootDatabase", "Note", "Unit"]
        enemy = result.rows[0]
        assert enemy == {"type": "Enemy", "parent": "Unit", "category": "Characters", "fields": 9, "records": 2}
        assert result.rows[4]["records"] == 0

    def test_show_categories(self, run):
        result = run("show categories")
        assert [(r["category"], r["type"]) for r in result.rows] == [
            ("Characters", ""),
            ("", "Enemy"),
            ("Databases", ""),
            ("", "LootDatabase"),
            ("Items", ""),
            ("", "Item"),
            ("Other", ""),
            ("", "Note"),
        ]
        assert result.rows[0]["records"] == 2

    def test_describe(self, run):
        result = run("describe Enemy")
        assert result.columns == ["field", "kind", "declared_in"]
        assert result.rows[0] == {"field": "loot", "kind": "ref", "declared_in": "Enemy"}
        assert {"field": "hp", "kind": "int", "declared_in": "Unit"} in result.rows
        assert result.rows[-1] == {"field": "key", "kind": "string", "declared_in": "Record"}
        assert "_meta" not in [r["field"] for r in result.rows]
        assert "on_death" not in [r["field"] for r in result.rows]

    def test_describe_unknown(self, run):
        assert run("describe Ghost").message == "Unknown type 'Ghost'"

    def test_rebuild(self, run, catalog: Catalog, source, registry):
        source.add(Record("items/axe", registry.get("Item"), "Axe"))
        result = run("rebuild")
        assert result.message == "Rebuilt dependency graph: 7 records, 4 references"
        assert catalog.last_scan.total_record_count == 7

    def test_unknown_command_object(self, catalog: Catalog):
        with pytest.raises(ValueError, match="Unknown command type"):
            CommandExecutor(catalog).execute(object())


class TestGraphOutput:
    """Tests for DOT output."""

    def test_format_dot(self):
        asset = RecordType(name="Asset")
        a, b = Record("a", asset, "A"), Record("b", asset, 'Say "B"')
        graph = DependencyGraph()
        graph.add_dependency(a, b)
        assert format_dot(graph) == "\n".join([
            "digraph dependencies {",
            "    rankdir=LR;",
            "    node [shape=box, style=filled];",
            "",
            '    "a" [label="A (Asset)", fillcolor="#FFB347"];',
            '    "b" [label="Say \\"B\\" (Asset)", fillcolor="#ADD8E6"];',
            "",
            '    "a" -> "b";',
            "}",
            "",
        ])

    def test_format_dot_title(self):
        dot = format_dot(DependencyGraph(), title="Deps")
        assert '    label="Deps";' in dot
        assert "    labelloc=t;" in dot

    def test_graph_command(self, run):
        result = run("graph")
        assert isinstance(result, DotResult)
        assert (result.node_count, result.edge_count) == (6, 4)
        assert '"enemies/goblin" -> "items/sword";' in result.dot
        assert '"items/sword" [label="Sword (Item)", fillcolor="#ADD8E6"];' in result.dot
        assert '"notes/readme" [label="Readme (Note)", fillcolor="#FFB347"];' in result.dot

    def test_graph_to_file(self, run, tmp_path: Path):
        out = tmp_path / "deps.dot"
        result = run(f'graph to "{out}"')
        assert result.output_file == str(out)
        assert result.dot == ""
        assert out.read_text(encoding="utf-8").startswith("digraph dependencies {")
        assert result.message == f"Wrote 6 records and 4 references to {out}"
