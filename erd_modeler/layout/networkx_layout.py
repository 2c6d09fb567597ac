"""Layout engine positioning entities on the diagram canvas."""

import logging
import math
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Any, Literal

import networkx as nx

from erd_modeler.models import (
    DEFAULT_ENTITY_WIDTH,
    DataModel,
    Entity,
    calculate_entity_height,
    utc_now_iso,
)

logger = logging.getLogger(__name__)

LayoutMode = Literal["grid", "smart", "crossings"]


@dataclass
class LayoutOptions:
    """Options for layout calculation."""
    horizontal_gap: int = 80
    vertical_gap: int = 60
    padding: int = 50
    entities_per_row: int = 3
    start_x: float | None = None
    start_y: float | None = None
    entity_width: int = DEFAULT_ENTITY_WIDTH
    # Smart layout
    center_x: float = 400
    center_y: float = 300
    orphan_offset_y: float = 400
    orphan_wrap_x: float = 1200
    orphan_row_step: float = 200


def _endpoints(relationship: Any) -> tuple[str, str]:
    """Source and target entity ids of a relationship-like value."""
    if isinstance(relationship, tuple):
        return relationship[0], relationship[1]
    if isinstance(relationship, dict):
        return relationship["sourceEntityId"], relationship["targetEntityId"]
    return relationship.source_entity_id, relationship.target_entity_id


def _positioned(entity: Entity, x: float, y: float, opts: LayoutOptions) -> Entity:
    """Copy of ``entity`` at (x, y) with width and height refreshed."""
    return replace(
        entity,
        attributes=list(entity.attributes),
        x=x,
        y=y,
        width=entity.width or opts.entity_width,
        height=calculate_entity_height(len(entity.attributes)),
    )


def auto_layout_entities(
    entities: Iterable[Entity],
    options: LayoutOptions | None = None,
) -> list[Entity]:
    """Lay entities out left to right, top to bottom, in fixed-size rows.

    Each row is as tall as its tallest entity. Output order equals input
    order.
    """
    opts = options or LayoutOptions()
    start_x = opts.padding if opts.start_x is None else opts.start_x
    start_y = opts.padding if opts.start_y is None else opts.start_y
    per_row = max(opts.entities_per_row, 1)

    current_x = start_x
    current_y = start_y
    max_height_in_row = 0
    column = 0

    positioned: list[Entity] = []
    for entity in entities:
        placed = _positioned(entity, current_x, current_y, opts)
        positioned.append(placed)

        max_height_in_row = max(max_height_in_row, placed.height)
        column += 1
        if column >= per_row:
            column = 0
            current_x = start_x
            current_y += max_height_in_row + opts.vertical_gap
            max_height_in_row = 0
        else:
            current_x += placed.width + opts.horizontal_gap

    return positioned


def build_adjacency(entities: list[Entity], relationships: Iterable[Any]) -> nx.Graph:
    """Undirected graph of entity ids linked by relationships.

    Relationships with an endpoint outside ``entities`` contribute no edge.
    A self-relationship becomes a self-loop, so it counts once toward the
    entity's neighbors.
    """
    g = nx.Graph()
    g.add_nodes_from(e.id for e in entities)
    for relationship in relationships:
        source_id, target_id = _endpoints(relationship)
        if source_id not in g or target_id not in g:
            logger.debug("Ignoring relationship %s -> %s with unknown endpoint", source_id, target_id)
            continue
        g.add_edge(source_id, target_id)
    return g


def find_central_entity(entities: list[Entity], g: nx.Graph) -> Entity:
    """Entity with the most neighbors; the earliest one wins ties."""
    central = entities[0]
    max_connections = 0
    for entity in entities:
        connections = len(g[entity.id])
        if connections > max_connections:
            max_connections = connections
            central = entity
    return central


def _clamp(value: float, minimum: float) -> float:
    if not math.isfinite(value):
        return minimum
    return max(minimum, value)


def smart_layout(
    entities: Iterable[Entity],
    relationships: Iterable[Any],
    options: LayoutOptions | None = None,
) -> list[Entity]:
    """Place related entities near each other.

    The best connected entity sits at the canvas center. Entities reached by
    a breadth-first walk from it are spread on rings, one ring per BFS level.
    Entities in other components fill rows below the cluster.
    """
    opts = options or LayoutOptions()
    entities = list(entities)
    if not entities:
        return []

    g = build_adjacency(entities, relationships)
    central = find_central_entity(entities, g)
    central_degree = max(len(g[central.id]), 1)
    ring_step = opts.entity_width + opts.horizontal_gap

    positions: dict[str, tuple[float, float]] = {central.id: (opts.center_x, opts.center_y)}
    visited = {central.id}
    queue: deque[tuple[str, int, int]] = deque(
        (neighbor, 1, idx) for idx, neighbor in enumerate(g[central.id])
    )

    while queue:
        entity_id, level, position = queue.popleft()
        if entity_id in visited:
            continue
        visited.add(entity_id)

        angle = position * 2 * math.pi / central_degree
        radius = level * ring_step
        x = opts.center_x + math.cos(angle) * radius
        y = opts.center_y + math.sin(angle) * radius
        positions[entity_id] = (_clamp(x, opts.padding), _clamp(y, opts.padding))

        for idx, neighbor in enumerate(g[entity_id]):
            if neighbor not in visited:
                queue.append((neighbor, level + 1, idx))

    orphan_x = opts.padding
    orphan_y = opts.center_y + opts.orphan_offset_y
    for entity in entities:
        if entity.id in positions:
            continue
        positions[entity.id] = (orphan_x, orphan_y)
        orphan_x += opts.entity_width + opts.horizontal_gap
        if orphan_x > opts.orphan_wrap_x:
            orphan_x = opts.padding
            orphan_y += opts.orphan_row_step

    default = (opts.padding, opts.padding)
    return [_positioned(e, *positions.get(e.id, default), opts) for e in entities]


def minimize_crossings(
    entities: Iterable[Entity],
    relationships: Iterable[Any],
    options: LayoutOptions | None = None,
) -> list[Entity]:
    """Arrange entities to reduce relationship line crossings.

    Currently the same placement as :func:`smart_layout`.
    """
    return smart_layout(entities, relationships, options)


def layout_model(
    model: DataModel,
    mode: LayoutMode = "smart",
    options: LayoutOptions | None = None,
) -> DataModel:
    """Return a copy of ``model`` with its entities repositioned."""
    if mode == "grid":
        entities = auto_layout_entities(model.entities, options)
    elif mode == "smart":
        entities = smart_layout(model.entities, model.relationships, options)
    elif mode == "crossings":
        entities = minimize_crossings(model.entities, model.relationships, options)
    else:
        raise ValueError(f"Unsupported layout mode: {mode}")

    return replace(
        model,
        entities=entities,
        relationships=list(model.relationships),
        updated_at=utc_now_iso(),
    )
