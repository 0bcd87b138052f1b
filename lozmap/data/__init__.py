"""
Data layer: binary table formats, room attributes, level info, ROM readers
and the per-map resource bundles.
"""

from .heap_table import HeapTable, build_heap_table
from .sparse import (
    SparseAttributeResolver,
    SparseKind,
    SparseMaze,
    SparsePos,
    SparsePos2,
    SparseRoomItem,
    build_sparse_stream,
    rooms_stream,
)
from .room_attributes import (
    DungeonRoomView,
    OverworldRoomView,
    RoomAttributes,
    as_dungeon_view,
    as_overworld_view,
    load_room_attributes,
)
from .level_info import LevelInfoBlock
from .rom import RomImage, RomLayout, RomRegion, build_wall_tile_map
from .resources import (
    MapResources,
    cellar_resources,
    dungeon_resources,
    load_dungeon_resources,
    load_overworld_resources,
    load_underworld_base,
    with_overrides,
)

__all__ = [
    'HeapTable', 'build_heap_table',
    'SparseAttributeResolver', 'SparseKind', 'SparseMaze', 'SparsePos', 'SparsePos2',
    'SparseRoomItem', 'build_sparse_stream', 'rooms_stream',
    'DungeonRoomView', 'OverworldRoomView', 'RoomAttributes', 'as_dungeon_view',
    'as_overworld_view', 'load_room_attributes',
    'LevelInfoBlock',
    'RomImage', 'RomLayout', 'RomRegion', 'build_wall_tile_map',
    'MapResources', 'cellar_resources', 'dungeon_resources',
    'load_dungeon_resources', 'load_overworld_resources', 'load_underworld_base', 'with_overrides',
]
