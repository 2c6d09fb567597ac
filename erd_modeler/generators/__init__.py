"""Output generators for data models."""

from erd_modeler.generators.ddl import DATABASE_NAMES, DDLOptions, TYPE_MAPPINGS, generate_ddl

__all__ = ["DATABASE_NAMES", "DDLOptions", "TYPE_MAPPINGS", "generate_ddl"]
