"""Shared fixtures: a small catalog of units, items and a loot database."""

import enum

import pytest

from record_catalog.catalog import Catalog, InMemoryRecordSource
from record_catalog.config import Settings
from record_catalog.record import Record
from record_catalog.types import Color, TypeRegistry, Vector2


class Element(enum.Enum):
    FIRE = 1
    ICE = 2


@pytest.fixture
def registry() -> TypeRegistry:
    reg = TypeRegistry()
    reg.define("Unit", {"hp": "int", "speed": "float", "tags": "list"}, category="Characters")
    reg.define(
        "Enemy",
        {
            "loot": "ref",
            "element": "enum",
            "stats": "object",
            "position": "Vector2",
            "on_death": "delegate",
            "_meta": "string",
        },
        parent="Unit",
        category="Characters",
        priority=1,
    )
    reg.define("Item", {"damage": "int", "tint": "Color"}, category="Items")
    reg.define("LootDatabase", {"entries": "list"}, category="Databases")
    reg.define("Note", {"text": "string"})
    return reg


@pytest.fixture
def records(registry: TypeRegistry) -> dict[str, Record]:
    sword = Record("items/sword", registry.get("Item"), "Sword", {"damage": 12, "tint": Color(1, 0, 0)})
    shield = Record("items/shield", registry.get("Item"), "Shield", {"damage": 0})
    goblin = Record(
        "enemies/goblin",
        registry.get("Enemy"),
        "Goblin",
        {
            "hp": 30,
            "speed": 1.5,
            "tags": ["small", "green"],
            "loot": sword,
            "element": Element.FIRE,
            "stats": {"str": 5},
            "position": Vector2(1, 2),
            "on_death": lambda: None,
            "_meta": "internal",
        },
    )
    dragon = Record(
        "enemies/dragon",
        registry.get("Enemy"),
        "Dragon",
        {"hp": 500, "speed": 3.0, "loot": shield, "element": Element.ICE},
    )
    loot_db = Record("db/loot", registry.get("LootDatabase"), "Loot Table", {"entries": [sword, shield]})
    readme = Record("notes/readme", registry.get("Note"), "Readme", {"text": "hello"})
    return {r.key: r for r in (goblin, dragon, sword, shield, loot_db, readme)}


@pytest.fixture
def source(records: dict[str, Record]) -> InMemoryRecordSource:
    return InMemoryRecordSource(records.values())


@pytest.fixture
def catalog(source: InMemoryRecordSource, registry: TypeRegistry) -> Catalog:
    cat = Catalog(source, settings=Settings(), registry=registry)
    cat.scan()
    return cat


@pytest.fixture
def catalog_document() -> dict:
    """The same world as a JSON import document (without enum and delegate values)."""
    return {
        "types": [
            {"name": "Enemy", "parent": "Unit", "category": "Characters", "priority": 1,
             "fields": {"loot": "ref", "position": "Vector2"}},
            {"name": "Unit", "category": "Characters", "fields": {"hp": "int", "speed": "float"}},
            {"name": "Item", "category": "Items", "fields": {"damage": "int", "tint": "Color"}},
            {"name": "LootDatabase", "category": "Databases", "fields": {"entries": "list"}},
        ],
        "records": [
            {"key": "enemies/goblin", "type": "Enemy", "name": "Goblin",
             "values": {"hp": 30, "loot": {"$ref": "items/sword"}, "position": {"x": 1, "y": 2}}},
            {"key": "enemies/dragon", "type": "Enemy", "name": "Dragon",
             "values": {"hp": 500, "loot": {"$ref": "items/shield"}}},
            {"key": "items/sword", "type": "Item", "name": "Sword",
             "values": {"damage": 12, "tint": [1, 0, 0]}},
            {"key": "items/shield", "type": "Item", "name": "Shield", "values": {"damage": 0}},
            {"key": "db/loot", "type": "LootDatabase", "name": "Loot Table",
             "values": {"entries": [{"$ref": "items/sword"}, {"$ref": "items/shield"}]}},
        ],
    }
