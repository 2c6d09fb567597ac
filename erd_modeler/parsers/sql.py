"""Reverse engineering of SQL DDL into a data model, using sqlglot."""

import logging
from dataclasses import dataclass

import sqlglot
from sqlglot import exp

from erd_modeler.layout import auto_layout_entities
from erd_modeler.models import (
    Attribute,
    DatabaseType,
    DataModel,
    Entity,
    Relationship,
    create_empty_model,
    generate_id,
)

logger = logging.getLogger(__name__)

SQLGLOT_DIALECTS: dict[str, str] = {
    "postgresql": "postgres",
    "mysql": "mysql",
    "sqlserver": "tsql",
    "oracle": "oracle",
    "sqlite": "sqlite",
}


@dataclass
class _PendingReference:
    """Foreign key column waiting for its referenced table to be known."""
    entity: Entity
    column: str
    table: str
    referenced_column: str | None = None


class SQLParser:
    """Parser turning CREATE TABLE / CREATE INDEX statements into a DataModel."""

    def __init__(self, dialect: DatabaseType = "postgresql"):
        if dialect not in SQLGLOT_DIALECTS:
            raise ValueError(f"Unsupported dialect: {dialect}")
        self.dialect = dialect

    def parse(self, sql: str, name: str = "Imported Model") -> DataModel:
        """Parse SQL DDL and return a laid-out DataModel.

        Raises:
            sqlglot.errors.ParseError: If the SQL cannot be parsed
        """
        statements = sqlglot.parse(sql, dialect=SQLGLOT_DIALECTS[self.dialect])
        entities: list[Entity] = []
        references: list[_PendingReference] = []
        index_statements: list[exp.Create] = []

        for stmt in statements:
            if stmt is None:
                continue
            if isinstance(stmt, exp.Create):
                kind = (stmt.kind or "").upper()
                if kind == "TABLE":
                    entity = self._parse_create_table(stmt, references)
                    if entity is not None:
                        entities.append(entity)
                elif kind == "INDEX":
                    index_statements.append(stmt)

        for index_stmt in index_statements:
            self._apply_index(entities, index_stmt)

        model = create_empty_model(name)
        model.target_database = self.dialect
        model.entities = auto_layout_entities(entities)
        model.relationships = self._link_references(model.entities, references)
        return model

    def _parse_create_table(
        self,
        stmt: exp.Create,
        references: list[_PendingReference],
    ) -> Entity | None:
        """Parse a CREATE TABLE statement."""
        # stmt.this is a sqlglot Schema: .this is the table, .expressions the body
        schema_obj = stmt.this
        if not isinstance(schema_obj, exp.Schema) or schema_obj.this is None:
            logger.debug("Skipping CREATE TABLE without a column list: %s", stmt.sql())
            return None

        table_name = schema_obj.this.name
        entity = Entity(id=generate_id(), name=table_name, physical_name=table_name)
        primary_key_columns: list[str] = []
        unique_columns: list[str] = []

        for expression in schema_obj.expressions or []:
            if isinstance(expression, exp.ColumnDef):
                attribute = self._parse_column(expression, entity, references)
                entity.attributes.append(attribute)
            else:
                constraints = (
                    expression.expressions if isinstance(expression, exp.Constraint) else [expression]
                )
                for constraint in constraints:
                    self._parse_table_constraint(
                        constraint, entity, primary_key_columns, unique_columns, references
                    )

        for attr in entity.attributes:
            if attr.name in primary_key_columns:
                attr.is_primary_key = True
                attr.is_required = True
            if attr.name in unique_columns:
                attr.is_unique = True

        entity.refresh_height()
        return entity

    def _parse_table_constraint(
        self,
        constraint: exp.Expression,
        entity: Entity,
        primary_key_columns: list[str],
        unique_columns: list[str],
        references: list[_PendingReference],
    ) -> None:
        if isinstance(constraint, exp.PrimaryKey):
            primary_key_columns.extend(self._column_names(constraint.expressions))

        elif isinstance(constraint, exp.ForeignKey):
            local_columns = self._column_names(constraint.expressions)
            target = self._reference_target(constraint.args.get("reference"))
            if target is None or not local_columns:
                return
            table, referenced_columns = target
            for position, column in enumerate(local_columns):
                referenced = referenced_columns[position] if position < len(referenced_columns) else None
                references.append(_PendingReference(entity, column, table, referenced))

        elif isinstance(constraint, exp.UniqueColumnConstraint):
            # Only single-column UNIQUE constraints map onto an attribute flag
            unique_schema = constraint.this
            columns = self._column_names(unique_schema.expressions) if unique_schema else []
            if len(columns) == 1:
                unique_columns.append(columns[0])

    def _parse_column(
        self,
        col_def: exp.ColumnDef,
        entity: Entity,
        references: list[_PendingReference],
    ) -> Attribute:
        """Parse a column definition."""
        attribute = Attribute(
            id=generate_id(),
            name=col_def.name,
            type=self._render(col_def.args.get("kind"), missing="UNKNOWN"),
        )

        for constraint in col_def.constraints or []:
            kind = constraint.kind
            if isinstance(kind, exp.NotNullColumnConstraint):
                attribute.is_required = not kind.args.get("allow_null")
            elif isinstance(kind, exp.PrimaryKeyColumnConstraint):
                attribute.is_primary_key = True
                attribute.is_required = True
            elif isinstance(kind, exp.UniqueColumnConstraint):
                attribute.is_unique = True
            elif isinstance(kind, exp.DefaultColumnConstraint):
                attribute.default_value = self._render(kind.this) or None
            elif isinstance(kind, exp.Reference):
                target = self._reference_target(kind)
                if target is not None:
                    table, referenced_columns = target
                    referenced = referenced_columns[0] if referenced_columns else None
                    references.append(_PendingReference(entity, attribute.name, table, referenced))

        return attribute

    def _reference_target(self, reference: exp.Expression | None) -> tuple[str, list[str]] | None:
        """Referenced table name and columns of a REFERENCES clause."""
        if reference is None:
            return None
        # reference.this is either a Schema (table + columns) or a bare Table
        target = reference.this
        if isinstance(target, exp.Schema):
            table = target.this
            columns = self._column_names(target.expressions)
        else:
            table = target
            columns = []
        if table is None:
            return None
        return table.name, columns

    def _column_names(self, expressions: list[exp.Expression] | None) -> list[str]:
        names = []
        for expression in expressions or []:
            if isinstance(expression, exp.Ordered):
                expression = expression.this
            if expression.name:
                names.append(expression.name)
        return names

    def _render(self, expression: exp.Expression | None, missing: str = "") -> str:
        """SQL text for a column type or default, in the parser's dialect."""
        if expression is None:
            return missing
        return expression.sql(dialect=SQLGLOT_DIALECTS[self.dialect])

    def _apply_index(self, entities: list[Entity], index_stmt: exp.Create) -> None:
        """Flag the column targeted by a single-column CREATE INDEX."""
        index = index_stmt.this
        if not isinstance(index, exp.Index):
            return
        table = index.args.get("table")
        if table is None:
            return

        columns = self._column_names(list(index.find_all(exp.Ordered))) or [
            c.name for c in index.find_all(exp.Column)
        ]
        if len(columns) != 1:
            logger.debug("Ignoring multi-column index %s", index.name)
            return

        entity = next((e for e in entities if e.physical_name == table.name), None)
        if entity is None:
            return
        attribute = next((a for a in entity.attributes if a.name == columns[0]), None)
        if attribute is None:
            return
        if index_stmt.args.get("unique"):
            attribute.is_unique = True
        else:
            attribute.is_indexed = True

    def _link_references(
        self,
        entities: list[Entity],
        references: list[_PendingReference],
    ) -> list[Relationship]:
        """Flag foreign key columns and build one relationship per reference."""
        by_table = {e.physical_name: e for e in entities}
        by_id = {e.id: e for e in entities}
        relationships: list[Relationship] = []

        for ref in references:
            # Entities were copied by the layout pass; look them up again
            child = by_id.get(ref.entity.id)
            if child is None:
                continue
            attribute = next((a for a in child.attributes if a.name == ref.column), None)
            if attribute is None:
                continue
            attribute.is_foreign_key = True
            attribute.referenced_entity = ref.table
            attribute.referenced_attribute = ref.referenced_column

            parent = by_table.get(ref.table)
            if parent is None:
                logger.debug("Reference from %s.%s to unknown table %s", child.name, ref.column, ref.table)
                continue

            parent_attribute = None
            if ref.referenced_column:
                parent_attribute = next(
                    (a for a in parent.attributes if a.name == ref.referenced_column), None
                )
            if parent_attribute is None:
                parent_attribute = next((a for a in parent.attributes if a.is_primary_key), None)

            relationships.append(
                Relationship(
                    id=generate_id(),
                    source_entity_id=child.id,
                    target_entity_id=parent.id,
                    type="identifying" if attribute.is_primary_key else "non-identifying",
                    source_cardinality="0..1" if attribute.is_unique else "M",
                    target_cardinality="1" if attribute.is_required else "0..1",
                    source_attribute_id=attribute.id,
                    target_attribute_id=parent_attribute.id if parent_attribute else None,
                )
            )

        return relationships


def parse_sql(sql: str, dialect: DatabaseType = "postgresql", name: str = "Imported Model") -> DataModel:
    """Reverse-engineer SQL DDL into a DataModel."""
    return SQLParser(dialect).parse(sql, name=name)
