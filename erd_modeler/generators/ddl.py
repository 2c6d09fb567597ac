"""SQL DDL generator.

Renders a :class:`DataModel` as CREATE TABLE, ALTER TABLE ... FOREIGN KEY
and CREATE INDEX statements for PostgreSQL, MySQL, SQL Server, Oracle or
SQLite.
"""

import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime, timezone

import networkx as nx

from erd_modeler.models import (
    DATABASE_TYPES,
    Attribute,
    DatabaseType,
    DataModel,
    Entity,
    Relationship,
)

logger = logging.getLogger(__name__)

BANNER = "-- ============================================"


@dataclass
class DDLOptions:
    """Options for DDL generation."""
    include_drop_statements: bool = False
    include_comments: bool = True
    include_foreign_keys: bool = True
    include_indexes: bool = True
    schema_name: str | None = None


# Canonical base type -> native type, per dialect
TYPE_MAPPINGS: dict[str, dict[str, str]] = {
    "postgresql": {
        "INT": "INTEGER",
        "VARCHAR": "VARCHAR",
        "TEXT": "TEXT",
        "BOOLEAN": "BOOLEAN",
        "DATE": "DATE",
        "DATETIME": "TIMESTAMP",
        "TIMESTAMP": "TIMESTAMP",
        "DECIMAL": "DECIMAL",
        "FLOAT": "REAL",
        "DOUBLE": "DOUBLE PRECISION",
        "BLOB": "BYTEA",
        "JSON": "JSONB",
    },
    "mysql": {
        "INT": "INT",
        "INTEGER": "INT",
        "VARCHAR": "VARCHAR",
        "TEXT": "TEXT",
        "BOOLEAN": "TINYINT(1)",
        "DATE": "DATE",
        "DATETIME": "DATETIME",
        "TIMESTAMP": "TIMESTAMP",
        "DECIMAL": "DECIMAL",
        "FLOAT": "FLOAT",
        "DOUBLE": "DOUBLE",
        "BLOB": "BLOB",
        "JSON": "JSON",
        "BYTEA": "BLOB",
        "JSONB": "JSON",
    },
    "sqlserver": {
        "INT": "INT",
        "INTEGER": "INT",
        "VARCHAR": "NVARCHAR",
        "TEXT": "NVARCHAR(MAX)",
        "BOOLEAN": "BIT",
        "DATE": "DATE",
        "DATETIME": "DATETIME2",
        "TIMESTAMP": "DATETIME2",
        "DECIMAL": "DECIMAL",
        "FLOAT": "FLOAT",
        "DOUBLE": "FLOAT",
        "BLOB": "VARBINARY(MAX)",
        "JSON": "NVARCHAR(MAX)",
        "BYTEA": "VARBINARY(MAX)",
        "JSONB": "NVARCHAR(MAX)",
        "REAL": "REAL",
    },
    "oracle": {
        "INT": "NUMBER(10)",
        "INTEGER": "NUMBER(10)",
        "VARCHAR": "VARCHAR2",
        "TEXT": "CLOB",
        "BOOLEAN": "NUMBER(1)",
        "DATE": "DATE",
        "DATETIME": "TIMESTAMP",
        "TIMESTAMP": "TIMESTAMP",
        "DECIMAL": "NUMBER",
        "FLOAT": "FLOAT",
        "DOUBLE": "BINARY_DOUBLE",
        "BLOB": "BLOB",
        "JSON": "CLOB",
        "BYTEA": "BLOB",
        "JSONB": "CLOB",
    },
    "sqlite": {
        "INT": "INTEGER",
        "INTEGER": "INTEGER",
        "VARCHAR": "TEXT",
        "TEXT": "TEXT",
        "BOOLEAN": "INTEGER",
        "DATE": "TEXT",
        "DATETIME": "TEXT",
        "TIMESTAMP": "TEXT",
        "DECIMAL": "REAL",
        "FLOAT": "REAL",
        "DOUBLE": "REAL",
        "BLOB": "BLOB",
        "JSON": "TEXT",
        "BYTEA": "BLOB",
        "JSONB": "TEXT",
    },
}

DATABASE_NAMES: dict[str, str] = {
    "postgresql": "PostgreSQL",
    "mysql": "MySQL",
    "sqlserver": "SQL Server",
    "oracle": "Oracle",
    "sqlite": "SQLite",
}

_PARAMS_RE = re.compile(r"\(.*\)")
_WHITESPACE_RE = re.compile(r"\s+")
_PLAIN_IDENTIFIER_RE = re.compile(r"[a-z_][a-z0-9_]*")


@dataclass
class ForeignKeyLink:
    """Resolved referencing and referenced columns of a relationship."""
    child: Entity
    child_attribute: Attribute
    parent: Entity
    parent_attribute: Attribute


def convert_type(type_name: str, target_db: DatabaseType) -> str:
    """Map a column type onto the dialect's native type.

    Parameters such as ``(255)`` are carried over onto the mapped base type.
    Unknown types are returned unchanged.
    """
    mapping = TYPE_MAPPINGS[target_db]
    upper_type = type_name.strip().upper()

    if upper_type in mapping:
        return mapping[upper_type]

    base_type = upper_type.split("(")[0].strip()
    if base_type in mapping:
        mapped = mapping[base_type]
        params = _PARAMS_RE.search(type_name)
        # Types like NVARCHAR(MAX) already carry their own size
        if params and "(" not in mapped:
            return mapped + params.group(0)
        return mapped

    return type_name


def _snake(name: str) -> str:
    return _WHITESPACE_RE.sub("_", name.strip().lower())


def get_table_name(entity: Entity) -> str:
    """Physical table name, falling back to the snake_cased entity name."""
    return entity.physical_name or _snake(entity.name)


def get_column_name(attr: Attribute) -> str:
    return _snake(attr.name)


def quote_identifier(name: str, target_db: DatabaseType) -> str:
    if target_db == "mysql":
        return f"`{name}`"
    if target_db == "sqlserver":
        return f"[{name}]"
    return f'"{name}"'


def _constraint_identifier(name: str, target_db: DatabaseType) -> str:
    """Generated constraint and index names stay bare unless they need quoting."""
    if _PLAIN_IDENTIFIER_RE.fullmatch(name):
        return name
    return quote_identifier(name, target_db)


def _qualified_table(entity: Entity, target_db: DatabaseType, opts: DDLOptions) -> str:
    quoted = quote_identifier(get_table_name(entity), target_db)
    if opts.schema_name:
        return f"{quote_identifier(opts.schema_name, target_db)}.{quoted}"
    return quoted


def _raw_table(entity: Entity, opts: DDLOptions) -> str:
    table_name = get_table_name(entity)
    return f"{opts.schema_name}.{table_name}" if opts.schema_name else table_name


def _escape_literal(text: str) -> str:
    return text.replace("'", "''")


def _has_autoincrement_type(attr: Attribute) -> bool:
    return "INT" in attr.type.upper()


def generate_column_def(attr: Attribute, target_db: DatabaseType, inline_primary_key: bool = False) -> str:
    """Column definition line for ``attr``."""
    parts = [f"  {quote_identifier(get_column_name(attr), target_db)}", convert_type(attr.type, target_db)]

    if attr.is_required and not attr.is_primary_key:
        parts.append("NOT NULL")

    if attr.is_primary_key and inline_primary_key:
        parts.append("PRIMARY KEY")
        if _has_autoincrement_type(attr):
            parts.append("AUTOINCREMENT")

    if attr.is_unique and not attr.is_primary_key:
        parts.append("UNIQUE")

    if attr.default_value:
        parts.append(f"DEFAULT {attr.default_value}")

    return " ".join(parts)


def _drop_table_lines(entity: Entity, target_db: DatabaseType, opts: DDLOptions) -> list[str]:
    quoted = _qualified_table(entity, target_db, opts)
    raw = _raw_table(entity, opts)
    if target_db in ("postgresql", "mysql", "sqlite"):
        return [f"DROP TABLE IF EXISTS {quoted};"]
    if target_db == "sqlserver":
        return [f"IF OBJECT_ID('{_escape_literal(raw)}', 'U') IS NOT NULL DROP TABLE {quoted};"]
    # oracle: the dynamic statement must match the quoted, case-sensitive CREATE
    return [
        f"BEGIN EXECUTE IMMEDIATE 'DROP TABLE {_escape_literal(quoted)}'; EXCEPTION WHEN OTHERS THEN NULL; END;",
        "/",
    ]


def generate_create_table(entity: Entity, target_db: DatabaseType, opts: DDLOptions) -> str:
    """CREATE TABLE statement for one entity, with its preamble and comments."""
    lines: list[str] = []
    quoted_table = _qualified_table(entity, target_db, opts)

    if opts.include_comments and entity.description:
        lines.append(f"-- {entity.description}")

    if opts.include_drop_statements:
        lines.extend(_drop_table_lines(entity, target_db, opts))
        lines.append("")

    pk_attrs = entity.primary_key_attributes
    # SQLite only accepts a single-column inline PRIMARY KEY
    inline_pk = target_db == "sqlite" and len(pk_attrs) == 1

    column_defs = [generate_column_def(a, target_db, inline_pk) for a in entity.attributes]
    if pk_attrs and not inline_pk:
        pk_columns = ", ".join(quote_identifier(get_column_name(a), target_db) for a in pk_attrs)
        column_defs.append(f"  PRIMARY KEY ({pk_columns})")

    lines.append(f"CREATE TABLE {quoted_table} (")
    lines.append(",\n".join(column_defs))
    lines.append(");")

    if opts.include_comments and target_db == "postgresql":
        if entity.description:
            lines.append(f"COMMENT ON TABLE {quoted_table} IS '{_escape_literal(entity.description)}';")
        for attr in entity.attributes:
            if attr.description:
                column = quote_identifier(get_column_name(attr), target_db)
                lines.append(
                    f"COMMENT ON COLUMN {quoted_table}.{column} IS '{_escape_literal(attr.description)}';"
                )

    return "\n".join(lines)


def resolve_foreign_key(
    relationship: Relationship,
    entities_by_id: dict[str, Entity],
) -> ForeignKeyLink | None:
    """Find the referencing and referenced columns of a relationship.

    Explicit ``source_attribute_id``/``target_attribute_id`` links win.
    Otherwise the first foreign key attribute of the source references the
    first primary key attribute of the target. When only the reverse pairing
    exists, the target entity is the one holding the foreign key.
    """
    source = entities_by_id.get(relationship.source_entity_id)
    target = entities_by_id.get(relationship.target_entity_id)
    if source is None or target is None:
        return None

    source_attr = source.get_attribute(relationship.source_attribute_id)
    target_attr = target.get_attribute(relationship.target_attribute_id)

    fk_attr = source_attr or next((a for a in source.attributes if a.is_foreign_key), None)
    pk_attr = target_attr or next((a for a in target.attributes if a.is_primary_key), None)
    if fk_attr and pk_attr:
        return ForeignKeyLink(source, fk_attr, target, pk_attr)

    if relationship.source_attribute_id is None and relationship.target_attribute_id is None:
        fk_attr = next((a for a in target.attributes if a.is_foreign_key), None)
        pk_attr = next((a for a in source.attributes if a.is_primary_key), None)
        if fk_attr and pk_attr:
            return ForeignKeyLink(target, fk_attr, source, pk_attr)

    return None


def _entities_by_id(entities: list[Entity]) -> dict[str, Entity]:
    by_id: dict[str, Entity] = {}
    for entity in entities:
        by_id.setdefault(entity.id, entity)
    return by_id


def sort_entities(model: DataModel) -> list[Entity]:
    """Order entities so referenced tables come before referencing ones.

    Entities without foreign key attributes lead; input order breaks
    ties. Circular references fall back to that ordering alone.
    """
    entities = model.entities
    by_id = _entities_by_id(entities)
    index_of = {}
    for idx, entity in enumerate(entities):
        index_of.setdefault(entity.id, idx)

    g = nx.DiGraph()
    g.add_nodes_from(range(len(entities)))
    for relationship in model.relationships:
        link = resolve_foreign_key(relationship, by_id)
        if link is None or link.child.id == link.parent.id:
            continue
        g.add_edge(index_of[link.parent.id], index_of[link.child.id])

    def sort_key(idx: int) -> tuple[bool, int]:
        return (entities[idx].has_foreign_key, idx)

    try:
        order = list(nx.lexicographical_topological_sort(g, key=sort_key))
    except nx.NetworkXUnfeasible:
        logger.debug("Foreign key cycle in model %r, ordering by foreign key presence", model.name)
        order = sorted(range(len(entities)), key=sort_key)

    return [entities[idx] for idx in order]


def generate_foreign_keys(model: DataModel, target_db: DatabaseType, opts: DDLOptions) -> list[str]:
    """ALTER TABLE statements for every resolvable relationship."""
    by_id = _entities_by_id(model.entities)
    statements: list[str] = []

    for number, relationship in enumerate(model.relationships, start=1):
        link = resolve_foreign_key(relationship, by_id)
        if link is None:
            logger.debug("Skipping relationship %s: no resolvable foreign key", relationship.id)
            continue

        constraint_name = _snake(f"fk_{link.child.name}_{link.parent.name}_{number}")
        statements.append(
            f"ALTER TABLE {_qualified_table(link.child, target_db, opts)} "
            f"ADD CONSTRAINT {_constraint_identifier(constraint_name, target_db)} "
            f"FOREIGN KEY ({quote_identifier(get_column_name(link.child_attribute), target_db)}) "
            f"REFERENCES {_qualified_table(link.parent, target_db, opts)} "
            f"({quote_identifier(get_column_name(link.parent_attribute), target_db)});"
        )

    return statements


def generate_indexes(model: DataModel, target_db: DatabaseType, opts: DDLOptions) -> list[str]:
    """CREATE INDEX statements for indexed columns lacking an implicit index."""
    statements: list[str] = []
    for entity in model.entities:
        for attr in entity.attributes:
            if not attr.is_indexed or attr.is_primary_key or attr.is_unique:
                continue
            index_name = _snake(f"idx_{entity.name}_{attr.name}")
            statements.append(
                f"CREATE INDEX {_constraint_identifier(index_name, target_db)} "
                f"ON {_qualified_table(entity, target_db, opts)} "
                f"({quote_identifier(get_column_name(attr), target_db)});"
            )
    return statements


def _schema_lines(schema_name: str, target_db: DatabaseType) -> list[str]:
    """Schema creation preamble, quoted the same way as qualified table names."""
    quoted = quote_identifier(schema_name, target_db)
    if target_db == "postgresql":
        return [f"CREATE SCHEMA IF NOT EXISTS {quoted};"]
    if target_db == "sqlserver":
        return [
            f"IF NOT EXISTS (SELECT * FROM sys.schemas WHERE name = '{_escape_literal(schema_name)}')",
            f"  EXEC('CREATE SCHEMA {_escape_literal(quoted)}');",
            "GO",
        ]
    if target_db == "mysql":
        return [f"CREATE DATABASE IF NOT EXISTS {quoted};", f"USE {quoted};"]
    return []


def _section(title: str) -> list[str]:
    return [BANNER, f"-- {title}", BANNER, ""]


def generate_ddl(
    model: DataModel,
    target_db: DatabaseType | None = None,
    options: DDLOptions | None = None,
    *,
    generated_at: datetime | None = None,
    **overrides,
) -> str:
    """Generate the DDL script for ``model``.

    Args:
        model: The model to render
        target_db: Dialect to emit; defaults to the model's target database
        options: Generation options; keyword ``overrides`` patch individual fields
        generated_at: Timestamp written in the header (default: now)

    Returns:
        The newline-joined SQL script

    Raises:
        ValueError: If the dialect is not supported
    """
    db = target_db or model.target_database
    if db not in DATABASE_TYPES:
        raise ValueError(f"Unsupported database: {db}")
    opts = replace(options or DDLOptions(), **overrides)
    timestamp = (generated_at or datetime.now(timezone.utc)).isoformat()

    lines = [
        BANNER,
        "-- DDL Generated by AI Data Modeler",
        f"-- Model: {model.name}",
        f"-- Database: {db.upper()}",
        f"-- Generated: {timestamp}",
        BANNER,
        "",
    ]

    if opts.schema_name:
        lines.extend(_schema_lines(opts.schema_name, db))
        lines.append("")

    lines.extend(_section("Tables"))
    for entity in sort_entities(model):
        lines.append(generate_create_table(entity, db, opts))
        lines.append("")

    if opts.include_foreign_keys:
        fk_statements = generate_foreign_keys(model, db, opts)
        if fk_statements:
            lines.extend(_section("Foreign Key Constraints"))
            for statement in fk_statements:
                lines.append(statement)
                lines.append("")

    if opts.include_indexes:
        index_statements = generate_indexes(model, db, opts)
        if index_statements:
            lines.extend(_section("Indexes"))
            lines.extend(index_statements)

    return "\n".join(lines)
