"""
Tests for the dungeon reachability walk.

Grid used by most tests (3x2, start room 4 on the bottom row):

    0  1 -key-> 2
       |
    3 -4  5
"""

import sys
from pathlib import Path

import networkx as nx
import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))
sys.path.insert(0, str(Path(__file__).parent))

from lozmap.core.definitions import DoorType
from lozmap.pipeline.reachability import DungeonReachabilityWalker
from rom_builders import cellar_room, dungeon_level_info, dungeon_room, make_dungeon


@pytest.fixture
def grid():
    rooms = [
        dungeon_room(right=DoorType.OPEN),                     # 0: unreachable
        dungeon_room(right=DoorType.KEY),                      # 1
        dungeon_room(right=DoorType.OPEN),                     # 2: door off the grid
        dungeon_room(),                                        # 3
        dungeon_room(up=DoorType.OPEN, left=DoorType.BOMBABLE, down=DoorType.OPEN),  # 4
        dungeon_room(),                                        # 5
    ]
    return make_dungeon(rooms, width=3, height=2, level_info=dungeon_level_info(start_room_id=4))


class TestDoorEdges:

    def test_walk_from_start_room(self, grid):
        assert DungeonReachabilityWalker(grid).walk() == frozenset({1, 2, 3, 4})

    def test_start_room_always_included(self, grid):
        assert DungeonReachabilityWalker(grid).walk(5) == frozenset({5})

    def test_edge_types(self, grid):
        graph = DungeonReachabilityWalker(grid).build_graph()
        assert isinstance(graph, nx.DiGraph)
        assert graph.edges[4, 1]['edge_type'] == "open"
        assert graph.edges[4, 3]['edge_type'] == "bombable"
        assert graph.edges[1, 2]['edge_type'] == "key"

    def test_doors_are_one_way(self, grid):
        graph = DungeonReachabilityWalker(grid).build_graph()
        assert graph.has_edge(1, 2)
        assert not graph.has_edge(2, 1)

    def test_no_edge_down_from_bottom_row(self, grid):
        edges = list(DungeonReachabilityWalker(grid).iter_door_edges(4))
        assert {dst for _, dst, _ in edges} == {1, 3}

    def test_no_edge_off_the_grid(self, grid):
        assert list(DungeonReachabilityWalker(grid).iter_door_edges(2)) == []

    def test_start_room_out_of_range(self, grid):
        with pytest.raises(IndexError):
            DungeonReachabilityWalker(grid).walk(6)


class TestCellarEdges:
    """Stairs connect a room to both ends of its cellar."""

    @pytest.fixture
    def cellar_grid(self):
        rooms = [dungeon_room(uid=2), dungeon_room(), dungeon_room(uid=2), cellar_room(left=0, right=2)]
        level_info = dungeon_level_info(start_room_id=0, cellar_room_ids=bytes([3]))
        return make_dungeon(rooms, width=4, level_info=level_info)

    def test_cellar_edges(self, cellar_grid):
        walker = DungeonReachabilityWalker(cellar_grid)
        assert list(walker.iter_cellar_edges(0)) == [(0, 0, "cellar"), (0, 2, "cellar")]
        assert list(walker.iter_cellar_edges(1)) == []

    def test_walk_crosses_cellar(self, cellar_grid):
        assert DungeonReachabilityWalker(cellar_grid).walk() == frozenset({0, 2})

    def test_cellar_room_itself_not_visited(self, cellar_grid):
        assert 3 not in DungeonReachabilityWalker(cellar_grid).walk()

    def test_exits_outside_grid_are_ignored(self):
        rooms = [dungeon_room(uid=2), cellar_room(left=0, right=0x40)]
        level_info = dungeon_level_info(start_room_id=0, cellar_room_ids=bytes([1]))
        bundle = make_dungeon(rooms, width=2, level_info=level_info)
        assert list(DungeonReachabilityWalker(bundle).iter_cellar_edges(0)) == [(0, 0, "cellar")]
