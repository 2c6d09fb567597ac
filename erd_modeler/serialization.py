"""JSON interchange for data models.

Models travel as JSON documents using the camelCase keys of the diagram
editor (``sourceEntityId``, ``isPrimaryKey``, ``physicalName`` ...).
"""

import json
from pathlib import Path
from typing import Any

from erd_modeler.models import (
    CARDINALITIES,
    DATABASE_TYPES,
    DEFAULT_ENTITY_WIDTH,
    ENTITY_CATEGORIES,
    NOTATIONS,
    RELATIONSHIP_TYPES,
    Attribute,
    DataModel,
    Entity,
    Relationship,
    generate_id,
    utc_now_iso,
)


def _choice(value: Any, allowed: tuple[str, ...], default: str, field_name: str) -> str:
    if value is None or value == "":
        return default
    value = str(value)
    if value not in allowed:
        raise ValueError(f"Invalid {field_name}: {value!r} (expected one of {', '.join(allowed)})")
    return value


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def attribute_from_dict(data: dict[str, Any]) -> Attribute:
    return Attribute(
        id=str(data.get("id") or generate_id()),
        name=str(data["name"]),
        type=str(data.get("type") or ""),
        is_primary_key=bool(data.get("isPrimaryKey", False)),
        is_foreign_key=bool(data.get("isForeignKey", False)),
        is_required=bool(data.get("isRequired", False)),
        is_unique=bool(data.get("isUnique", False)),
        is_indexed=bool(data.get("isIndexed", False)),
        default_value=_optional_str(data.get("defaultValue")),
        description=_optional_str(data.get("description")),
        referenced_entity=_optional_str(data.get("referencedEntity")),
        referenced_attribute=_optional_str(data.get("referencedAttribute")),
    )


def entity_from_dict(data: dict[str, Any]) -> Entity:
    return Entity(
        id=str(data.get("id") or generate_id()),
        name=str(data["name"]),
        attributes=[attribute_from_dict(a) for a in data.get("attributes", [])],
        physical_name=_optional_str(data.get("physicalName")),
        category=_choice(data.get("category"), ENTITY_CATEGORIES, "standard", "entity category"),
        x=float(data.get("x", 0.0)),
        y=float(data.get("y", 0.0)),
        width=float(data.get("width") or DEFAULT_ENTITY_WIDTH),
        description=_optional_str(data.get("description")),
        color=_optional_str(data.get("color")),
    )


def _resolve_attribute_id(entity: Entity | None, value: Any) -> str | None:
    """Accept either an attribute id or an attribute name."""
    value = _optional_str(value)
    if value is None or entity is None:
        return value
    if entity.get_attribute(value) is not None:
        return value
    match = next((a for a in entity.attributes if a.name == value), None)
    return match.id if match else value


def relationship_from_dict(data: dict[str, Any], entities: list[Entity] | None = None) -> Relationship:
    by_id = {e.id: e for e in entities or []}
    source_id = str(data["sourceEntityId"])
    target_id = str(data["targetEntityId"])
    return Relationship(
        id=str(data.get("id") or generate_id()),
        source_entity_id=source_id,
        target_entity_id=target_id,
        type=_choice(data.get("type"), RELATIONSHIP_TYPES, "non-identifying", "relationship type"),
        source_cardinality=_choice(data.get("sourceCardinality"), CARDINALITIES, "1", "cardinality"),
        target_cardinality=_choice(data.get("targetCardinality"), CARDINALITIES, "M", "cardinality"),
        name=_optional_str(data.get("name")),
        source_attribute_id=_resolve_attribute_id(
            by_id.get(source_id), data.get("sourceAttributeId", data.get("sourceAttribute"))
        ),
        target_attribute_id=_resolve_attribute_id(
            by_id.get(target_id), data.get("targetAttributeId", data.get("targetAttribute"))
        ),
    )


def model_from_dict(data: dict[str, Any]) -> DataModel:
    """Build a DataModel from its JSON document form.

    Raises:
        ValueError: If an enumerated field holds an unknown value
        KeyError: If a required field is missing
    """
    entities = [entity_from_dict(e) for e in data.get("entities", [])]
    now = utc_now_iso()
    return DataModel(
        id=str(data.get("id") or generate_id()),
        name=str(data.get("name") or "Untitled Model"),
        description=str(data.get("description") or ""),
        entities=entities,
        relationships=[relationship_from_dict(r, entities) for r in data.get("relationships", [])],
        target_database=_choice(data.get("targetDatabase"), DATABASE_TYPES, "postgresql", "target database"),
        notation=_choice(data.get("notation"), NOTATIONS, "crowsfoot", "notation"),
        created_at=str(data.get("createdAt") or now),
        updated_at=str(data.get("updatedAt") or now),
    )


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


def attribute_to_dict(attr: Attribute) -> dict[str, Any]:
    return _drop_none({
        "id": attr.id,
        "name": attr.name,
        "type": attr.type,
        "isPrimaryKey": attr.is_primary_key,
        "isForeignKey": attr.is_foreign_key,
        "isRequired": attr.is_required,
        "isUnique": attr.is_unique,
        "isIndexed": attr.is_indexed,
        "defaultValue": attr.default_value,
        "description": attr.description,
        "referencedEntity": attr.referenced_entity,
        "referencedAttribute": attr.referenced_attribute,
    })


def entity_to_dict(entity: Entity) -> dict[str, Any]:
    return _drop_none({
        "id": entity.id,
        "name": entity.name,
        "physicalName": entity.physical_name,
        "category": entity.category,
        "x": entity.x,
        "y": entity.y,
        "width": entity.width,
        "height": entity.height,
        "attributes": [attribute_to_dict(a) for a in entity.attributes],
        "description": entity.description,
        "color": entity.color,
    })


def relationship_to_dict(rel: Relationship) -> dict[str, Any]:
    return _drop_none({
        "id": rel.id,
        "name": rel.name,
        "type": rel.type,
        "sourceEntityId": rel.source_entity_id,
        "targetEntityId": rel.target_entity_id,
        "sourceCardinality": rel.source_cardinality,
        "targetCardinality": rel.target_cardinality,
        "sourceAttributeId": rel.source_attribute_id,
        "targetAttributeId": rel.target_attribute_id,
    })


def model_to_dict(model: DataModel) -> dict[str, Any]:
    return {
        "id": model.id,
        "name": model.name,
        "description": model.description,
        "entities": [entity_to_dict(e) for e in model.entities],
        "relationships": [relationship_to_dict(r) for r in model.relationships],
        "targetDatabase": model.target_database,
        "notation": model.notation,
        "createdAt": model.created_at,
        "updatedAt": model.updated_at,
    }


def load_model(path: Path) -> DataModel:
    """Read a model JSON document from disk."""
    return model_from_dict(json.loads(path.read_text()))


def dump_model(model: DataModel, indent: int = 2) -> str:
    return json.dumps(model_to_dict(model), indent=indent)
