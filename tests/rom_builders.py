"""
Synthetic map bundles for the test suite.

Open tables (overworld and cellars), table 0:
    column 0: square 16 in every cell
    column 1: secondary square 0, using "repeat once"
    column 2: cave square 17 on top, square 16 below
    column 3: bomb square 18 on the top three rows
    column 4: push rock 19 / column 5: raft 20 / column 6: ladder 21 / column 7: armos 22

Closed tables (dungeons), table 0:
    column 0: square 0 repeated to the bottom
    column 1: block square 1 on the block row
    column 2: stairs square 2 on top
"""

from typing import Dict, Optional, Sequence

from lozmap.core.definitions import (
    CLOSED_ROOM,
    OPEN_ROOM,
    DoorType,
    TileAction,
)
from lozmap.data.heap_table import HeapTable, build_heap_table
from lozmap.data.level_info import LevelInfoBlock
from lozmap.data.resources import MapResources, cellar_resources, with_overrides
from lozmap.data.room_attributes import RoomAttributes
from lozmap.data.sparse import SparseKind, build_sparse_stream

# ==========================================
# OPEN LAYOUT
# ==========================================
PLAIN = 16
CAVE = 17
BOMB = 18
PUSH = 19
RAFT = 20
LADDER = 21
ARMOS = 22

OPEN_COLUMNS = [
    [0x80 | PLAIN] + [PLAIN] * 10,
    [0x80 | 0x40 | 0] + [0x40] * 4 + [0],
    [0x80 | CAVE] + [PLAIN] * 10,
    [0x80 | BOMB, BOMB, BOMB] + [PLAIN] * 8,
    [0x80 | PUSH] + [PLAIN] * 10,
    [0x80 | RAFT] + [PLAIN] * 10,
    [0x80 | LADDER] + [PLAIN] * 10,
    [0x80 | ARMOS] + [PLAIN] * 10,
]

OPEN_PRIMARIES = bytes([0xFF] * 16 + [0x40 + 4 * i for i in range(40)])
OPEN_SECONDARIES = bytes((0xA0 + i) & 0xFF for i in range(64))

_OPEN_ACTIONS = {
    CAVE: TileAction.CAVE,
    BOMB: TileAction.BOMB,
    PUSH: TileAction.PUSH,
    RAFT: TileAction.RAFT,
    LADDER: TileAction.LADDER,
    ARMOS: TileAction.ARMOS,
}
OPEN_ATTRIBUTES = bytes(int(_OPEN_ACTIONS.get(i, TileAction.NONE)) << 4 for i in range(56))

OPEN_UNIQUE_ROOMS = (
    bytes([0x00] * 16),                                             # 0: plain
    bytes([0x01] * 16),                                             # 1: secondary squares
    bytes([0x02, 0x03, 0x03, 0x04, 0x05, 0x06, 0x07] + [0x00] * 9),  # 2: features
)


def open_column_table(columns: Sequence[Sequence[int]] = OPEN_COLUMNS) -> HeapTable:
    return HeapTable.load(build_heap_table([b''.join(bytes(c) for c in columns)]))


# ==========================================
# CLOSED LAYOUT
# ==========================================
FLOOR = 0
BLOCK = 1
STAIRS = 2

CLOSED_COLUMNS = [
    [0x80 | 0x60 | FLOOR],
    [0x80 | 0x20 | FLOOR, BLOCK, 0x20 | FLOOR],
    [0x80 | STAIRS, 0x50 | FLOOR],
]

CLOSED_PRIMARIES = bytes([0x20, 0xB0, 0x74, 0x20, 0x20, 0x20, 0x20, 0x20])
CLOSED_ATTRIBUTES = bytes([0, 0, int(TileAction.STAIRS) << 4, 0, 0, 0, 0, 0, 0x0F])

CLOSED_UNIQUE_ROOMS = (
    bytes([0x00] * 12 + [0] * 4),                 # 0: floor
    bytes([0x00, 0x01] + [0x00] * 10 + [0] * 4),  # 1: block at column 6, row 10
    bytes([0x02] + [0x00] * 11 + [0] * 4),        # 2: stairs at column 4, row 4
)


def closed_column_table() -> HeapTable:
    return HeapTable.load(build_heap_table([b''.join(bytes(c) for c in CLOSED_COLUMNS)]))


# ==========================================
# ATTRIBUTES
# ==========================================
def overworld_room(uid: int = 0, exit_position: int = 0, cave_id: int = 0, quest: int = 0,
                   shortcut_index: int = 0, zora: bool = False, monsters_enter: bool = False,
                   sea: bool = False, monster_count: int = 0, monster_list_id: int = 0,
                   inner_palette: int = 0, outer_palette: int = 0) -> RoomAttributes:
    c = shortcut_index & 3 | zora << 2 | monsters_enter << 3 | sea << 4
    return RoomAttributes.pack(
        unique_room_id=uid, outer_palette=outer_palette, inner_palette=inner_palette,
        monster_count=monster_count, monster_list_id=monster_list_id,
        a=exit_position, b=(cave_id & 0x3F) | quest << 6, c=c,
    )


def dungeon_room(uid: int = 0, up: DoorType = DoorType.WALL, down: DoorType = DoorType.WALL,
                 left: DoorType = DoorType.WALL, right: DoorType = DoorType.WALL,
                 item: int = 3, item_position: int = 0, secret: int = 0, push_block: bool = False,
                 dark: bool = False, sound: int = 0, monster_count: int = 0,
                 monster_list_id: int = 0) -> RoomAttributes:
    return RoomAttributes.pack(
        unique_room_id=uid, monster_count=monster_count, monster_list_id=monster_list_id,
        a=int(down) | int(up) << 3,
        b=int(right) | int(left) << 3,
        c=(item & 0x1F) | (item_position & 3) << 5,
        d=(secret & 7) | push_block << 3 | dark << 4 | (sound & 3) << 5,
    )


def cellar_room(left: int, right: int, uid: int = 0x3E) -> RoomAttributes:
    return RoomAttributes.pack(unique_room_id=uid, a=left, b=right, c=3)


def sparse_table(streams: Optional[Dict[SparseKind, bytes]] = None) -> HeapTable:
    streams = streams or {}
    entries = [streams.get(kind, build_sparse_stream([])) for kind in SparseKind]
    return HeapTable.load(build_heap_table(entries))


def object_lists(*lists: Sequence[int]) -> HeapTable:
    return HeapTable.load(build_heap_table([bytes(values) for values in lists] or [b'\x00']))


# ==========================================
# BUNDLES
# ==========================================
def make_overworld(rooms: Sequence[RoomAttributes], width: int = 1, height: int = 1,
                   sparse: Optional[HeapTable] = None, level_info: Optional[LevelInfoBlock] = None,
                   objects: Optional[HeapTable] = None) -> MapResources:
    return MapResources(
        name="Overworld",
        is_overworld=True,
        room_context=OPEN_ROOM,
        room_columns=OPEN_UNIQUE_ROOMS,
        column_table=open_column_table(),
        primary_squares=OPEN_PRIMARIES,
        secondary_squares=OPEN_SECONDARIES,
        tile_attributes=OPEN_ATTRIBUTES,
        room_attributes=tuple(rooms),
        level_info=level_info or LevelInfoBlock.build(),
        sparse_table=sparse if sparse is not None else sparse_table(),
        object_lists=objects if objects is not None else object_lists(),
        world_width=width,
        world_height=height,
    )


def dungeon_level_info(**fields) -> LevelInfoBlock:
    """Level info with no triforce or boss room unless given."""
    values = {'triforce_room_id': 0xFF, 'boss_room_id': 0xFF}
    values.update(fields)
    return LevelInfoBlock.build(**values)


def make_dungeon(rooms: Sequence[RoomAttributes], width: int = 1, height: int = 1,
                 level_info: Optional[LevelInfoBlock] = None, sparse: Optional[HeapTable] = None,
                 objects: Optional[HeapTable] = None) -> MapResources:
    base = MapResources(
        name="Level00_01",
        is_overworld=False,
        room_context=CLOSED_ROOM,
        room_columns=CLOSED_UNIQUE_ROOMS,
        column_table=closed_column_table(),
        primary_squares=CLOSED_PRIMARIES,
        secondary_squares=b'',
        tile_attributes=CLOSED_ATTRIBUTES,
        room_attributes=tuple(rooms),
        level_info=level_info or dungeon_level_info(),
        sparse_table=sparse if sparse is not None else sparse_table(),
        object_lists=objects if objects is not None else object_lists(),
        quest_id=0,
        level=1,
        world_width=width,
        world_height=height,
    )
    cellar = cellar_resources(base, OPEN_UNIQUE_ROOMS[:2], open_column_table(),
                              OPEN_PRIMARIES, OPEN_SECONDARIES, bytes(56))
    return with_overrides(base, cellar=cellar)
