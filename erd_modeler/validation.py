"""Model quality checks surfaced before DDL export."""

import re
from dataclasses import dataclass
from typing import Literal

from erd_modeler.models import Attribute, DataModel, Entity

Severity = Literal["error", "warning", "info"]

VAGUE_ATTRIBUTE_NAMES = {"data", "info", "value", "field", "item", "thing"}
_PASCAL_CASE_RE = re.compile(r"[A-Z][a-zA-Z0-9]*")


@dataclass
class ValidationIssue:
    """A single finding about the model."""
    severity: Severity
    category: str
    message: str
    entity_id: str | None = None
    entity_name: str | None = None
    attribute_id: str | None = None
    attribute_name: str | None = None
    suggestion: str | None = None


def _fk_is_linked(model: DataModel, entity: Entity, attr: Attribute) -> bool:
    for rel in model.relationships:
        if rel.source_entity_id != entity.id and rel.target_entity_id != entity.id:
            continue
        if attr.id in (rel.source_attribute_id, rel.target_attribute_id):
            return True
        # Unpinned relationships fall back to the entity's first foreign key
        if rel.source_attribute_id is None and rel.target_attribute_id is None:
            first_fk = next((a for a in entity.attributes if a.is_foreign_key), None)
            if first_fk is attr:
                return True
    return False


def _check_entity(model: DataModel, entity: Entity) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []

    def add(severity: Severity, category: str, message: str, suggestion: str, attr: Attribute | None = None) -> None:
        issues.append(
            ValidationIssue(
                severity=severity,
                category=category,
                message=message,
                entity_id=entity.id,
                entity_name=entity.name,
                attribute_id=attr.id if attr else None,
                attribute_name=attr.name if attr else None,
                suggestion=suggestion,
            )
        )

    if not entity.primary_key_attributes:
        add("error", "Primary Keys", f'Entity "{entity.name}" has no primary key defined',
            "Add a primary key attribute to uniquely identify records")

    if not entity.attributes:
        add("warning", "Empty Entities", f'Entity "{entity.name}" has no attributes',
            "Add attributes to define the entity structure")

    if not (entity.description or "").strip():
        add("info", "Documentation", f'Entity "{entity.name}" has no description',
            "Add a description to document the entity purpose")

    if not _PASCAL_CASE_RE.fullmatch(re.sub(r"\s", "", entity.name)):
        add("info", "Naming Conventions",
            f"Entity \"{entity.name}\" doesn't follow PascalCase naming convention",
            'Consider using PascalCase (e.g., "CustomerOrder" instead of "customer_order")')

    for attr in entity.attributes:
        if attr.name.lower() in VAGUE_ATTRIBUTE_NAMES:
            add("warning", "Naming Conventions",
                f'Attribute "{attr.name}" in "{entity.name}" has a vague name',
                "Use more descriptive names that indicate the attribute purpose", attr)

        if not attr.type.strip():
            add("error", "Data Types", f'Attribute "{attr.name}" in "{entity.name}" has no data type',
                "Specify a data type for the attribute", attr)

        if attr.is_foreign_key and not _fk_is_linked(model, entity, attr):
            add("warning", "Relationships",
                f'Foreign key "{attr.name}" in "{entity.name}" has no associated relationship',
                "Create a relationship or remove the foreign key flag", attr)

    related = any(entity.id in (r.source_entity_id, r.target_entity_id) for r in model.relationships)
    if not related and len(model.entities) > 1:
        add("warning", "Relationships", f'Entity "{entity.name}" has no relationships with other entities',
            "Consider adding relationships or confirm this entity should be standalone")

    return issues


def validate_model(model: DataModel) -> list[ValidationIssue]:
    """Run every check against ``model``, entity issues first."""
    issues: list[ValidationIssue] = []
    for entity in model.entities:
        issues.extend(_check_entity(model, entity))

    seen: dict[str, int] = {}
    for entity in model.entities:
        key = entity.name.lower()
        seen[key] = seen.get(key, 0) + 1
    for entity in model.entities:
        if seen[entity.name.lower()] > 1:
            issues.append(
                ValidationIssue(
                    severity="error",
                    category="Duplicates",
                    message=f'Duplicate entity name: "{entity.name}"',
                    entity_id=entity.id,
                    entity_name=entity.name,
                    suggestion="Rename one of the entities to have unique names",
                )
            )

    for rel in model.relationships:
        source = model.get_entity(rel.source_entity_id)
        target = model.get_entity(rel.target_entity_id)
        if source is None:
            issues.append(ValidationIssue(
                severity="error",
                category="Relationships",
                message="Relationship references missing source entity",
                suggestion="Delete this relationship or restore the source entity",
            ))
        if target is None:
            issues.append(ValidationIssue(
                severity="error",
                category="Relationships",
                message="Relationship references missing target entity",
                suggestion="Delete this relationship or restore the target entity",
            ))
        if source is not None and source is target:
            label = (rel.name or "").lower()
            if "self" not in label and "parent" not in label:
                issues.append(ValidationIssue(
                    severity="info",
                    category="Relationships",
                    message=f'Self-referencing relationship in "{source.name}" could use clearer naming',
                    entity_id=source.id,
                    entity_name=source.name,
                    suggestion='Consider naming like "ParentChild" or "Hierarchy" to clarify the relationship',
                ))

    if not model.entities:
        issues.append(ValidationIssue(
            severity="warning",
            category="Model Structure",
            message="Model has no entities",
            suggestion="Add entities to start building your data model",
        ))

    if not model.name.strip():
        issues.append(ValidationIssue(
            severity="info",
            category="Documentation",
            message="Model has no name",
            suggestion="Add a name to identify your model",
        ))

    return issues


def has_errors(issues: list[ValidationIssue]) -> bool:
    return any(issue.severity == "error" for issue in issues)
