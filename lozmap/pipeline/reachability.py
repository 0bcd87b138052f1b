"""
DUNGEON REACHABILITY
====================
Several dungeons share one underworld room grid. To tell which rooms belong
to the dungeon being exported, walk the grid from its start room through open
doors and transport cellars.

The walk builds a ``networkx.DiGraph`` over room ids:
- one edge per door that is not a wall, towards the neighbouring room
- no edge down out of the bottom row (entry rooms sit there)
- no edge leaving the grid
- an edge from a room to both ends of the cellar its stairs lead into

The visited set is everything reachable from the start room, start included.
"""

import logging
from typing import FrozenSet, Iterator, Optional, Tuple

import networkx as nx

from lozmap.core.definitions import (
    BLOCKING_DOORS,
    DIRECTION_OFFSETS,
    Direction,
)
from lozmap.data.room_attributes import as_dungeon_view

logger = logging.getLogger(__name__)

# Neighbour checks in walk order
WALK_DIRECTIONS: Tuple[Direction, ...] = (
    Direction.UP, Direction.LEFT, Direction.DOWN, Direction.RIGHT,
)


class DungeonReachabilityWalker:
    """Computes the set of rooms reachable inside one dungeon."""

    def __init__(self, resources):
        self.resources = resources

    def iter_door_edges(self, room_id: int) -> Iterator[Tuple[int, int, str]]:
        resources = self.resources
        x, y = resources.room_position(room_id)
        view = as_dungeon_view(resources.attributes(room_id))

        for direction in WALK_DIRECTIONS:
            door = view.door(direction)
            if door in BLOCKING_DOORS:
                continue
            if direction == Direction.DOWN and y == resources.world_height - 1:
                continue
            dx, dy = DIRECTION_OFFSETS[direction]
            if not resources.in_grid(x + dx, y + dy):
                continue
            yield room_id, resources.room_id_at(x + dx, y + dy), door.name.lower()

    def iter_cellar_edges(self, room_id: int) -> Iterator[Tuple[int, int, str]]:
        resources = self.resources
        pair = resources.level_info.find_cellar_room_ids(room_id, resources.room_attributes)
        if pair is None:
            return
        for target in pair:
            if 0 <= target < resources.room_count:
                yield room_id, target, "cellar"

    def build_graph(self) -> nx.DiGraph:
        """Door and cellar connectivity of every room in the grid."""
        graph = nx.DiGraph()
        for room_id in self.resources.iter_room_ids():
            graph.add_node(room_id)
            for src, dst, kind in self.iter_door_edges(room_id):
                graph.add_edge(src, dst, edge_type=kind)
            for src, dst, kind in self.iter_cellar_edges(room_id):
                graph.add_edge(src, dst, edge_type=kind)
        return graph

    def walk(self, start_room: Optional[int] = None) -> FrozenSet[int]:
        """Rooms reachable from ``start_room`` (the level's start room by default)."""
        if start_room is None:
            start_room = self.resources.level_info.start_room_id
        if not 0 <= start_room < self.resources.room_count:
            raise IndexError(f"start room {start_room} outside {self.resources.name}")

        graph = self.build_graph()
        visited = frozenset(nx.descendants(graph, start_room) | {start_room})
        logger.debug(f"{self.resources.name}: {len(visited)} rooms reachable from 0x{start_room:02X}")
        return visited
