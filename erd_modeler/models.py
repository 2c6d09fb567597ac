"""Entity-relationship model shared by the layout engine and the DDL generator."""

import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal


DatabaseType = Literal["postgresql", "mysql", "sqlserver", "oracle", "sqlite"]
Cardinality = Literal["1", "M", "0..1", "1..M", "0..M"]
EntityCategory = Literal["standard", "lookup", "junction", "view"]
RelationshipType = Literal["identifying", "non-identifying"]
NotationType = Literal["crowsfoot", "idef1x", "ie"]

DATABASE_TYPES: tuple[str, ...] = ("postgresql", "mysql", "sqlserver", "oracle", "sqlite")
CARDINALITIES: tuple[str, ...] = ("1", "M", "0..1", "1..M", "0..M")
ENTITY_CATEGORIES: tuple[str, ...] = ("standard", "lookup", "junction", "view")
RELATIONSHIP_TYPES: tuple[str, ...] = ("identifying", "non-identifying")
NOTATIONS: tuple[str, ...] = ("crowsfoot", "idef1x", "ie")

# Entity box geometry
DEFAULT_ENTITY_WIDTH = 220
DEFAULT_ENTITY_HEIGHT = 150
ATTRIBUTE_ROW_HEIGHT = 24
ENTITY_HEADER_HEIGHT = 32
ENTITY_PADDING = 8

_ID_ALPHABET = string.ascii_lowercase + string.digits


def calculate_entity_height(attribute_count: int) -> int:
    """Height of an entity box holding ``attribute_count`` attribute rows."""
    return ENTITY_HEADER_HEIGHT + ENTITY_PADDING * 2 + attribute_count * ATTRIBUTE_ROW_HEIGHT


def generate_id() -> str:
    """Generate a short random identifier."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(22))


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Attribute:
    """Entity attribute (table column)."""
    id: str
    name: str
    type: str
    is_primary_key: bool = False
    is_foreign_key: bool = False
    is_required: bool = False
    is_unique: bool = False
    is_indexed: bool = False
    default_value: str | None = None
    description: str | None = None
    referenced_entity: str | None = None
    referenced_attribute: str | None = None

    @property
    def is_not_null(self) -> bool:
        """Primary key columns are NOT NULL regardless of ``is_required``."""
        return self.is_required or self.is_primary_key


@dataclass
class Entity:
    """Table or view on the diagram."""
    id: str
    name: str
    attributes: list[Attribute] = field(default_factory=list)
    physical_name: str | None = None
    category: EntityCategory = "standard"
    x: float = 0.0
    y: float = 0.0
    width: float = DEFAULT_ENTITY_WIDTH
    height: float = DEFAULT_ENTITY_HEIGHT
    description: str | None = None
    color: str | None = None

    def __post_init__(self) -> None:
        self.refresh_height()

    def refresh_height(self) -> None:
        self.height = calculate_entity_height(len(self.attributes))

    def get_attribute(self, attribute_id: str | None) -> Attribute | None:
        if attribute_id is None:
            return None
        return next((a for a in self.attributes if a.id == attribute_id), None)

    @property
    def primary_key_attributes(self) -> list[Attribute]:
        return [a for a in self.attributes if a.is_primary_key]

    @property
    def has_foreign_key(self) -> bool:
        return any(a.is_foreign_key for a in self.attributes)


@dataclass
class Relationship:
    """Directed edge between two entities.

    ``source_attribute_id`` and ``target_attribute_id`` optionally pin the
    referencing and referenced columns; without them the DDL generator picks
    the first foreign key and the first primary key attribute.
    """
    id: str
    source_entity_id: str
    target_entity_id: str
    type: RelationshipType = "non-identifying"
    source_cardinality: Cardinality = "1"
    target_cardinality: Cardinality = "M"
    name: str | None = None
    source_attribute_id: str | None = None
    target_attribute_id: str | None = None


@dataclass
class DataModel:
    """Complete entity-relationship model.

    The model owns its entity and relationship lists. Structural helpers
    below refresh ``updated_at``; code that edits the lists directly should
    call :meth:`touch` afterwards.
    """
    id: str
    name: str
    entities: list[Entity] = field(default_factory=list)
    relationships: list[Relationship] = field(default_factory=list)
    description: str = ""
    target_database: DatabaseType = "postgresql"
    notation: NotationType = "crowsfoot"
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)

    def touch(self) -> None:
        self.updated_at = utc_now_iso()

    def get_entity(self, entity_id: str) -> Entity | None:
        return next((e for e in self.entities if e.id == entity_id), None)

    def get_relationship(self, relationship_id: str) -> Relationship | None:
        return next((r for r in self.relationships if r.id == relationship_id), None)

    def add_entity(self, entity: Entity) -> Entity:
        entity.refresh_height()
        self.entities.append(entity)
        self.touch()
        return entity

    def remove_entity(self, entity_id: str) -> Entity | None:
        """Remove an entity and every relationship that references it."""
        entity = self.get_entity(entity_id)
        if entity is None:
            return None
        self.entities = [e for e in self.entities if e.id != entity_id]
        self.relationships = [
            r for r in self.relationships
            if r.source_entity_id != entity_id and r.target_entity_id != entity_id
        ]
        self.touch()
        return entity

    def add_attribute(self, entity_id: str, attribute: Attribute) -> Attribute | None:
        entity = self.get_entity(entity_id)
        if entity is None:
            return None
        entity.attributes.append(attribute)
        entity.refresh_height()
        self.touch()
        return attribute

    def remove_attribute(self, entity_id: str, attribute_id: str) -> Attribute | None:
        entity = self.get_entity(entity_id)
        attribute = entity.get_attribute(attribute_id) if entity else None
        if entity is None or attribute is None:
            return None
        entity.attributes = [a for a in entity.attributes if a.id != attribute_id]
        entity.refresh_height()
        # Explicit column links to the removed attribute no longer resolve
        for rel in self.relationships:
            if rel.source_entity_id == entity_id and rel.source_attribute_id == attribute_id:
                rel.source_attribute_id = None
            if rel.target_entity_id == entity_id and rel.target_attribute_id == attribute_id:
                rel.target_attribute_id = None
        self.touch()
        return attribute

    def add_relationship(self, relationship: Relationship) -> Relationship:
        self.relationships.append(relationship)
        self.touch()
        return relationship

    def remove_relationship(self, relationship_id: str) -> Relationship | None:
        relationship = self.get_relationship(relationship_id)
        if relationship is None:
            return None
        self.relationships = [r for r in self.relationships if r.id != relationship_id]
        self.touch()
        return relationship


def create_empty_model(name: str = "Untitled Model") -> DataModel:
    """Create a model with no entities or relationships."""
    now = utc_now_iso()
    return DataModel(id=generate_id(), name=name, created_at=now, updated_at=now)
