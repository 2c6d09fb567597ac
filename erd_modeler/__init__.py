"""erd-modeler: SQL DDL generation and diagram layout for entity-relationship models."""

from erd_modeler.models import Attribute, DataModel, Entity, Relationship, create_empty_model
from erd_modeler.generators import DDLOptions, generate_ddl
from erd_modeler.layout import LayoutOptions, auto_layout_entities, minimize_crossings, smart_layout

__version__ = "0.1.0"
__all__ = [
    "Attribute",
    "DataModel",
    "DDLOptions",
    "Entity",
    "LayoutOptions",
    "Relationship",
    "auto_layout_entities",
    "create_empty_model",
    "generate_ddl",
    "minimize_crossings",
    "smart_layout",
]
