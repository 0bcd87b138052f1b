"""
MAP RESOURCES
=============
Immutable bundle of every table needed to decode one map.

The overworld bundle is built once. The underworld has one base bundle (with a
cellar sub-bundle that reuses the open room context); each dungeon of each
quest is derived from it by swapping the room attribute group and the level
info block with ``dungeon_resources``.
"""

import logging
from dataclasses import dataclass, replace
from typing import Iterator, Optional, Sequence, Tuple

from lozmap.core.definitions import (
    CLOSED_ROOM,
    OPEN_ROOM,
    WORLD_HEIGHT,
    WORLD_WIDTH,
    GameWorldType,
    RoomContext,
    level_group,
)
from lozmap.data.heap_table import HeapTable
from lozmap.data.level_info import LevelInfoBlock
from lozmap.data.room_attributes import RoomAttributes
from lozmap.data.sparse import SparseAttributeResolver
from lozmap.data import rom as rom_tables

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MapResources:
    name: str
    is_overworld: bool
    room_context: RoomContext
    room_columns: Tuple[bytes, ...]         # Column descriptors per unique room
    column_table: HeapTable
    primary_squares: bytes
    secondary_squares: bytes                # Empty for the closed layout
    tile_attributes: bytes                  # One byte per square
    room_attributes: Tuple[RoomAttributes, ...]
    level_info: LevelInfoBlock
    sparse_table: Optional[HeapTable] = None
    object_lists: Optional[HeapTable] = None
    cellar: Optional['MapResources'] = None
    quest_id: int = 0
    level: int = 0
    world_width: int = WORLD_WIDTH
    world_height: int = WORLD_HEIGHT

    @property
    def room_count(self) -> int:
        return self.world_width * self.world_height

    @property
    def world_type(self) -> GameWorldType:
        return GameWorldType.OVERWORLD if self.is_overworld else GameWorldType.UNDERWORLD

    @property
    def sparse(self) -> SparseAttributeResolver:
        return SparseAttributeResolver(self.sparse_table)

    def attributes(self, room_id: int) -> RoomAttributes:
        if not 0 <= room_id < len(self.room_attributes):
            raise IndexError(f"room id {room_id} outside {self.name} ({len(self.room_attributes)} rooms)")
        return self.room_attributes[room_id]

    def room_position(self, room_id: int) -> Tuple[int, int]:
        """(x, y) of a room on the world grid."""
        if not 0 <= room_id < self.room_count:
            raise IndexError(f"room id {room_id} outside the {self.world_width}x{self.world_height} grid")
        return room_id % self.world_width, room_id // self.world_width

    def room_id_at(self, x: int, y: int) -> int:
        return y * self.world_width + x

    def in_grid(self, x: int, y: int) -> bool:
        return 0 <= x < self.world_width and 0 <= y < self.world_height

    def is_cellar_room(self, room_id: int) -> bool:
        if self.is_overworld:
            return False
        return self.attributes(room_id).is_cellar_layout

    def iter_room_ids(self) -> Iterator[int]:
        return iter(range(self.room_count))


# ==========================================
# BUILDERS
# ==========================================
def with_overrides(resources: MapResources, **changes) -> MapResources:
    """Copy of ``resources`` with some fields replaced."""
    return replace(resources, **changes)


def cellar_resources(base: MapResources, room_columns: Sequence[bytes], column_table: HeapTable,
                     primary_squares: bytes, secondary_squares: bytes,
                     tile_attributes: bytes) -> MapResources:
    """Cellar sub-bundle: the dungeon bundle with the open layout tables swapped in."""
    return replace(
        base,
        name=f"{base.name} cellar",
        room_context=OPEN_ROOM,
        room_columns=tuple(room_columns),
        column_table=column_table,
        primary_squares=primary_squares,
        secondary_squares=secondary_squares,
        tile_attributes=tile_attributes,
        cellar=None,
    )


def dungeon_resources(base: MapResources, room_attributes: Sequence[RoomAttributes],
                      level_info: LevelInfoBlock, quest: int, level: int) -> MapResources:
    """Bundle for one dungeon, keeping the cellar sub-bundle in step."""
    room_attributes = tuple(room_attributes)
    cellar = base.cellar
    if cellar is not None:
        cellar = replace(cellar, room_attributes=room_attributes, level_info=level_info,
                         quest_id=quest, level=level, name=f"Level{quest:02d}_{level:02d} cellar")
    return replace(
        base,
        name=f"Level{quest:02d}_{level:02d}",
        room_attributes=room_attributes,
        level_info=level_info,
        quest_id=quest,
        level=level,
        cellar=cellar,
    )


# ==========================================
# ROM LOADERS
# ==========================================
def load_overworld_resources(rom: 'rom_tables.RomImage') -> MapResources:
    primaries, secondaries, tile_attributes = rom_tables.read_overworld_squares(rom)
    room_columns, column_table = rom_tables.read_overworld_layout(rom)
    resources = MapResources(
        name="Overworld",
        is_overworld=True,
        room_context=OPEN_ROOM,
        room_columns=room_columns,
        column_table=column_table,
        primary_squares=primaries,
        secondary_squares=secondaries,
        tile_attributes=tile_attributes,
        room_attributes=rom_tables.read_overworld_room_attributes(rom),
        level_info=rom_tables.read_overworld_level_info(rom),
        sparse_table=rom_tables.read_overworld_sparse_table(rom),
        object_lists=rom_tables.read_object_lists(rom),
    )
    logger.debug(f"Loaded overworld resources: {len(room_columns)} unique rooms")
    return resources


def load_underworld_base(rom: 'rom_tables.RomImage') -> MapResources:
    """Underworld bundle set up for quest 0, level 1, with its cellar sub-bundle."""
    primaries, tile_attributes = rom_tables.read_underworld_squares(rom)
    room_columns, column_table = rom_tables.read_underworld_layout(rom)
    base = MapResources(
        name="Level00_01",
        is_overworld=False,
        room_context=CLOSED_ROOM,
        room_columns=room_columns,
        column_table=column_table,
        primary_squares=primaries,
        secondary_squares=b'',
        tile_attributes=tile_attributes,
        room_attributes=rom_tables.read_underworld_room_attributes(rom, level_group(0, 1)),
        level_info=rom_tables.read_underworld_level_info(rom, 0, 1),
        # There is no underworld specific sparse table; dungeons share the overworld's
        sparse_table=rom_tables.read_overworld_sparse_table(rom),
        object_lists=rom_tables.read_object_lists(rom),
        quest_id=0,
        level=1,
    )

    cellar_columns, cellar_table = rom_tables.read_cellar_layout(rom)
    cellar_primaries, cellar_secondaries, cellar_attributes = rom_tables.read_cellar_squares(rom)
    return replace(base, cellar=cellar_resources(
        base, cellar_columns, cellar_table, cellar_primaries, cellar_secondaries, cellar_attributes,
    ))


def load_dungeon_resources(rom: 'rom_tables.RomImage', quest: int, level: int,
                           base: Optional[MapResources] = None) -> MapResources:
    if base is None:
        base = load_underworld_base(rom)
    room_attributes = rom_tables.read_underworld_room_attributes(rom, level_group(quest, level))
    level_info = rom_tables.read_underworld_level_info(rom, quest, level)
    return dungeon_resources(base, room_attributes, level_info, quest, level)

