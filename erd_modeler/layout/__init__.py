"""Entity placement on the diagram canvas."""

from erd_modeler.layout.networkx_layout import (
    LayoutOptions,
    auto_layout_entities,
    layout_model,
    minimize_crossings,
    smart_layout,
)

__all__ = [
    "LayoutOptions",
    "auto_layout_entities",
    "layout_model",
    "minimize_crossings",
    "smart_layout",
]
