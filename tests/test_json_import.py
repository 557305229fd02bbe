"""Tests for loading catalogs from JSON documents."""

import json
from pathlib import Path

import pytest
from structlog.testing import capture_logs

from record_catalog.catalog import Catalog
from record_catalog.json_import import load_catalog, load_catalog_data
from record_catalog.types import Color, ValueKind, Vector2


class TestLoadCatalogData:
    """Tests for load_catalog_data."""

    def test_types(self, catalog_document: dict):
        """Test that a parent may be declared after its subtype."""
        imported = load_catalog_data(catalog_document)
        registry = imported.registry
        assert registry.list_types() == ["Unit", "Enemy", "Item", "LootDatabase"]
        enemy = registry.get("Enemy")
        assert enemy.parent is registry.get("Unit")
        assert enemy.category == "Characters"
        assert enemy.priority == 1
        assert enemy.get_field("loot").kind is ValueKind.REFERENCE

    def test_records_and_references(self, catalog_document: dict):
        source = load_catalog_data(catalog_document).source
        assert len(source) == 5
        goblin = source.load_by_identity("enemies/goblin")
        sword = source.load_by_identity("items/sword")
        assert goblin.name == "Goblin"
        assert goblin.get("loot") is sword
        loot = source.load_by_identity("db/loot")
        assert [r.key for r in loot.get("entries")] == ["items/sword", "items/shield"]

    def test_struct_values(self, catalog_document: dict):
        """Test vector and color conversion from objects and lists."""
        source = load_catalog_data(catalog_document).source
        assert source.load_by_identity("enemies/goblin").get("position") == Vector2(1, 2)
        assert source.load_by_identity("items/sword").get("tint") == Color(1, 0, 0, 1.0)

    def test_name_defaults_to_key(self):
        doc = {
            "types": [{"name": "Item"}],
            "records": [{"key": "items/axe", "type": "Item"}],
        }
        record = load_catalog_data(doc).source.load_by_identity("items/axe")
        assert record.name == "axe"
        assert record.values == {}

    def test_dangling_reference(self):
        """Test that a reference to a missing record becomes null and is logged."""
        doc = {
            "types": [{"name": "Enemy", "fields": {"loot": "ref"}}],
            "records": [{"key": "e", "type": "Enemy", "values": {"loot": {"$ref": "missing"}}}],
        }
        with capture_logs() as logs:
            record = load_catalog_data(doc).source.load_by_identity("e")
        assert record.get("loot") is None
        warnings = [e for e in logs if e["event"] == "dangling_reference"]
        assert warnings == [
            {"event": "dangling_reference", "record": "e", "target": "missing", "log_level": "warning"}
        ]

    def test_nested_references(self):
        doc = {
            "types": [{"name": "T", "fields": {"data": "object"}}],
            "records": [
                {"key": "a", "type": "T", "values": {"data": {"next": {"$ref": "b"}, "n": 1}}},
                {"key": "b", "type": "T"},
            ],
        }
        source = load_catalog_data(doc).source
        assert source.load_by_identity("a").get("data")["next"] is source.load_by_identity("b")

    def test_empty_document(self):
        imported = load_catalog_data({})
        assert len(imported.registry) == 0
        assert len(imported.source) == 0

    def test_catalog_over_import(self, catalog_document: dict):
        imported = load_catalog_data(catalog_document)
        catalog = Catalog(imported.source, registry=imported.registry)
        catalog.scan()
        graph = catalog.analysis.graph
        assert (graph.node_count, graph.edge_count) == (5, 4)
        assert [r.key for r in catalog.orphans()] == ["enemies/goblin", "enemies/dragon"]


class TestMalformedDocuments:
    """Tests for rejected documents."""

    @pytest.mark.parametrize(
        "doc, message",
        [
            ([], "must be a JSON object"),
            ({"types": {}}, "must be arrays"),
            ({"records": "x"}, "must be arrays"),
            ({"types": [{"fields": {}}]}, "must be an object with a name"),
            ({"types": [{"name": "A"}, {"name": "A"}]}, "declared twice"),
            ({"types": [{"name": "A", "fields": []}]}, "must be an object"),
            ({"types": [{"name": "A", "parent": "B"}]}, "Unknown parent type 'B'"),
            ({"types": [{"name": "A", "parent": "B"}, {"name": "B", "parent": "A"}]}, "inherits from itself"),
            ({"types": [{"name": "A", "fields": {"x": "quaternion"}}]}, "Unknown value kind"),
            ({"types": [{"name": "A", "fields": {"hp": 5}}]}, "must be strings"),
            ({"records": ["x"]}, "must be an object"),
            ({"types": [{"name": "A"}], "records": [{"type": "A"}]}, "non-empty key"),
            ({"types": [{"name": "A"}], "records": [{"key": "k", "type": "A"}, {"key": "k", "type": "A"}]}, "declared twice"),
            ({"records": [{"key": "k", "type": "Nope"}]}, "unknown type 'Nope'"),
            ({"types": [{"name": "A"}], "records": [{"key": "k", "type": "A", "values": []}]}, "must be an object"),
        ],
    )
    def test_rejected(self, doc, message: str):
        with pytest.raises(ValueError, match=message):
            load_catalog_data(doc)

    def test_bad_struct_value(self):
        doc = {
            "types": [{"name": "A", "fields": {"pos": "Vector2"}}],
            "records": [{"key": "k", "type": "A", "values": {"pos": {"x": 1, "q": 2}}}],
        }
        with pytest.raises(ValueError, match="Record 'k'"):
            load_catalog_data(doc)


class TestLoadCatalog:
    """Tests for load_catalog."""

    def test_load_from_file(self, tmp_path: Path, catalog_document: dict):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(catalog_document), encoding="utf-8")
        imported = load_catalog(path)
        assert len(imported.source) == 5
        assert load_catalog(str(path)).registry.list_types() == imported.registry.list_types()

    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError, match="invalid JSON"):
            load_catalog(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_catalog(tmp_path / "missing.json")
