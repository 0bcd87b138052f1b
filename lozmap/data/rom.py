"""
ROM TABLE READERS
=================
Reads the fixed-offset tables of an iNES Legend of Zelda image and converts
them into the structures the decoder works on:

- square tables and the derived tile attribute tables
- room column descriptors and column heap tables (overworld, underworld, cellar)
- room attribute arrays, repacked into 7-byte records
- object lists
- level info blocks (second quest blocks rebuilt from the diff tables)
- the overworld sparse attribute table
- the underworld wall tile map

All offsets are file offsets (iNES header included). No checksum or title
validation is done; a region that runs past the end of the buffer raises
RomFormatError.
"""

import logging
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, Tuple, Union

import numpy as np

from lozmap.core.definitions import (
    CELLAR_UNIQUE_ROOMS,
    MOB_COLUMNS,
    OVERWORLD_UNIQUE_ROOMS,
    SCREEN_COLUMNS,
    SCREEN_ROWS,
    UNDERWORLD_UNIQUE_ROOMS,
    WORLD_ROOMS,
    TileAction,
    TileType,
)
from lozmap.core.errors import RomFormatError
from lozmap.data.heap_table import HeapTable, build_heap_table
from lozmap.data.level_info import (
    CELLAR_ROOM_COUNT,
    DRAWN_MAP_LENGTH,
    LevelInfoBlock,
    PALETTE_SEQUENCE_LENGTH,
    SHORTCUT_COUNT,
)
from lozmap.data.room_attributes import (
    RoomAttributes,
    convert_overworld_attributes,
    convert_underworld_attributes,
)
from lozmap.data.sparse import SparseKind, build_sparse_stream, rooms_stream

logger = logging.getLogger(__name__)

NES_HEADER_SIZE = 0x10
SYSTEM_PALETTE_SIZE = 0x40

_U16 = struct.Struct('<H')


@dataclass(frozen=True)
class RomRegion:
    """Fixed region of the image.

    Attributes:
        file_offset: Offset in the .nes file (header included)
        size: Size of the region in bytes
        description: What lives there
    """
    file_offset: int
    size: int
    description: str = ""

    @property
    def end_offset(self) -> int:
        return self.file_offset + self.size


def _region(cpu_offset: int, size: int, description: str) -> RomRegion:
    return RomRegion(cpu_offset + NES_HEADER_SIZE, size, description)


class RomLayout:
    """File offsets of every table the extractor reads."""

    # ==========================================
    # SQUARES
    # ==========================================
    PRIMARY_SQUARES = _region(0x1697C, 56, "Overworld/cellar primary squares")
    SECRET_SQUARES = _region(0x16976, 6, "Secret replacements for primaries 0xE5-0xEA")
    SECONDARY_SQUARES = _region(0x169B4, 16 * 4, "Overworld/cellar secondary squares")
    UNDERWORLD_SQUARES = _region(0x16718, 8, "Underworld primary squares")

    # ==========================================
    # LAYOUTS
    # ==========================================
    OW_ROOM_COLUMNS = _region(0x15418, OVERWORLD_UNIQUE_ROOMS * MOB_COLUMNS, "Overworld column descriptors")
    OW_COLUMN_DIR = _region(0x19D0F, 16 * 2, "Overworld column table pointers")
    OW_COLUMN_TABLES = _region(0x15BD8, 964, "Overworld column tables")

    UW_ROOM_COLUMNS = _region(0x160DE, UNDERWORLD_UNIQUE_ROOMS * 12, "Underworld column descriptors")
    UW_COLUMN_DIR = _region(0x16704, 10 * 2, "Underworld column table pointers")
    UW_COLUMN_TABLES = _region(0x162D6, 222, "Underworld column tables")

    CELLAR_ROOM_COLUMNS = _region(0x163B4, CELLAR_UNIQUE_ROOMS * MOB_COLUMNS, "Cellar column descriptors")
    CELLAR_COLUMN_TABLES = _region(0x163D4, 34, "Cellar column table")

    WALLS = _region(0x15FA0, 78, "Underworld wall tiles")

    # ==========================================
    # ROOM ATTRIBUTES
    # ==========================================
    OW_OUTER = _region(0x18400, WORLD_ROOMS, "Overworld outer palette, zora, exit column")
    OW_INNER = _region(0x18480, WORLD_ROOMS, "Overworld inner palette, cave index")
    OW_MONSTER_LIST = _region(0x18500, WORLD_ROOMS, "Overworld monster list ids")
    OW_LAYOUT = _region(0x18580, WORLD_ROOMS, "Overworld unique room ids")
    OW_OTHER = _region(0x18680, WORLD_ROOMS, "Overworld exit row, shortcut index, quest")
    OW_MONSTER_COUNTS = _region(0x19324, 4, "Overworld monster counts")

    UW_OUTER = _region(0x18700, WORLD_ROOMS, "Underworld outer palette, south/north doors")
    UW_INNER = _region(0x18780, WORLD_ROOMS, "Underworld inner palette, east/west doors")
    UW_MONSTER_LIST = _region(0x18800, WORLD_ROOMS, "Underworld monster list ids")
    UW_LAYOUT = _region(0x18880, WORLD_ROOMS, "Underworld unique room ids")
    UW_ITEMS = _region(0x18900, WORLD_ROOMS, "Underworld item, sound, darkness")
    UW_SPECIAL = _region(0x18980, WORLD_ROOMS, "Underworld secret, item position")
    UW_MONSTER_COUNTS = _region(0x19420, 4, "Underworld monster counts")
    UW_GROUP_SIZE = 768

    # ==========================================
    # OBJECT LISTS
    # ==========================================
    OBJECT_LISTS = _region(0x14676, 0x1473F - 0x14676, "Object lists")
    OBJECT_LIST_DIR = _region(0x1473F, 30 * 2, "Object list pointers")

    # ==========================================
    # LEVEL INFO
    # ==========================================
    INFO_BLOCK = 0x19300 + NES_HEADER_SIZE
    INFO_BLOCK_SIZE = 0xFC
    INFO_PALETTES = 0x03
    INFO_START_Y = 0x28
    INFO_SHORTCUTS = 0x29
    INFO_DRAWN_MAP_OFFSET = 0x2D
    INFO_START_ROOM = 0x2F
    INFO_TRIFORCE_ROOM = 0x30
    INFO_LEVEL_NUMBER = 0x33
    INFO_CELLAR_ROOMS = 0x34
    INFO_BOSS_ROOM = 0x3E
    INFO_DRAWN_MAP = 0x3F
    INFO_PALETTE_SEQUENCES = (0x7C, 0x9C, 0xBC, 0xDC)
    OW_LAST_SPRITE_PALETTE = _region(0x1A281, 4, "Replacement for the last overworld sprite palette")

    DIFF_POINTERS = 0x183A4 + NES_HEADER_SIZE
    FIRST_DIFF = 0x1816F + NES_HEADER_SIZE
    DIFF_SHORTCUTS = 0x00
    DIFF_DRAWN_MAP_OFFSET = 0x04
    DIFF_START_ROOM = 0x06
    DIFF_TRIFORCE_ROOM = 0x07
    DIFF_EFFECTIVE_LEVEL = 0x0A
    DIFF_CELLAR_ROOMS = 0x0B
    DIFF_BOSS_ROOM = 0x15
    DIFF_DRAWN_MAP = 0x16

    # ==========================================
    # OVERWORLD SPARSE ATTRIBUTES
    # ==========================================
    ARMOS_STAIRS_ROOMS = _region(0x10CB3, 6, "Armos stairs rooms")
    ARMOS_STAIRS_X = _region(0x10CBA, 6, "Armos stairs x")
    ARMOS_STAIRS_Y = _region(0x10CE5, 1, "Armos stairs y")
    ARMOS_ITEM_ROOM = _region(0x10CB2, 1, "Armos item room")
    ARMOS_ITEM_X = _region(0x10CB9, 1, "Armos item x")
    ARMOS_ITEM_ID = _region(0x10CF5, 1, "Armos item id")
    ITEM_ROOM = _region(0x1789A, 1, "Overworld item room")
    ITEM_ID = _region(0x1788A, 1, "Overworld item id")
    ITEM_X = _region(0x1788E, 1, "Overworld item x")
    ITEM_Y = _region(0x17890, 1, "Overworld item y")
    SHORTCUT_ROOMS = _region(0x19334, 4, "Shortcut stairs rooms")
    MAZE_PATHS = _region(0x6D97, 2 * 4, "Maze paths")
    LADDER_ROOMS = _region(0x1F20D, 6, "Ladder rooms")
    RECORDER_ROOMS = _region(0x1EF66, 11, "Recorder stairs rooms")


# Fixed overworld records that are not stored as tables
DOCK_ROOM_IDS: Tuple[int, ...] = (0x3F, 0x55)
MAZE_ROOM_IDS: Tuple[int, ...] = (0x61, 0x1B)
MAZE_EXIT_DIRECTIONS: Tuple[int, ...] = (0x01, 0x02)
SECRET_SCROLL_RECORDS: Tuple[Tuple[int, int], ...] = ((0x1F, 0x08),)
FAIRY_ROOM_IDS: Tuple[int, ...] = (0x39, 0x43)
RECORDER_STAIRS_POSITION = 0x69
SPARSE_ALIGNMENT = 2

# Quest 0, level 3 lists its first cellar room wrongly in the image
LEVEL3_CELLAR_FIX = 0x0F


# ==========================================
# IMAGE
# ==========================================
class RomImage:
    """Read-only view of an iNES image."""

    def __init__(self, data: bytes):
        self.data = bytes(data)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'RomImage':
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"ROM image not found: {path}")
        data = path.read_bytes()
        logger.info(f"Loaded ROM image {path.name} ({len(data)} bytes)")
        return cls(data)

    def read_at(self, offset: int, size: int) -> bytes:
        if offset < 0 or size < 0 or offset + size > len(self.data):
            raise RomFormatError(
                f"read of {size} bytes at 0x{offset:X} runs past the image ({len(self.data)} bytes)"
            )
        return self.data[offset:offset + size]

    def read(self, region: RomRegion, extra_offset: int = 0) -> bytes:
        try:
            return self.read_at(region.file_offset + extra_offset, region.size)
        except RomFormatError as e:
            raise RomFormatError(f"{region.description}: {e}") from e

    def read_byte(self, offset: int) -> int:
        return self.read_at(offset, 1)[0]

    def read_u16(self, offset: int) -> int:
        return _U16.unpack(self.read_at(offset, 2))[0]

    def read_u16_array(self, region: RomRegion) -> Tuple[int, ...]:
        raw = self.read(region)
        return tuple(v for (v,) in _U16.iter_unpack(raw))


# ==========================================
# SQUARES AND TILE ATTRIBUTES
# ==========================================
_OVERWORLD_WALKABLE_EXTRA = frozenset({0xDF, 0xD5, 0xD2, 0xCC, 0xAD, 0xAC, 0x9C, 0x91, 0x8D})

_OVERWORLD_SQUARE_ACTIONS = {
    0x0B: TileAction.RAFT,
    0x0C: TileAction.CAVE,
    0x0F: TileAction.CAVE,
    0x12: TileAction.STAIRS,
    0x14: TileAction.GHOST,
    0x26: TileAction.PUSH,
    0x27: TileAction.BOMB,
    0x28: TileAction.BURN,
    0x29: TileAction.PUSH_HEADSTONE,
    0x2A: TileAction.ARMOS,
    0x2B: TileAction.ARMOS,
    0x2C: TileAction.ARMOS,
}

_UNDERWORLD_SQUARE_ACTIONS = {
    4: TileAction.STAIRS,
    6: TileAction.LADDER,
}

UNDERWORLD_WALKABLE_LIMIT = 0x78
SECRET_PRIMARY_FIRST = 0xE5
SECRET_PRIMARY_LAST = 0xEA
SECONDARY_SQUARE_COUNT = 16


def is_overworld_walkable(tile: int) -> bool:
    return tile < 0x89 or tile in _OVERWORLD_WALKABLE_EXTRA


def is_underworld_walkable(tile: int) -> bool:
    return tile < UNDERWORLD_WALKABLE_LIMIT


def overworld_square_action(square: int) -> TileAction:
    if square in _OVERWORLD_SQUARE_ACTIONS:
        return _OVERWORLD_SQUARE_ACTIONS[square]
    if 0x05 <= square <= 0x09 or 0x15 <= square <= 0x18:
        return TileAction.LADDER
    return TileAction.NONE


def _attribute(tiles: Sequence[int], walkable, action: TileAction) -> int:
    walk_bits = 0
    for j, tile in enumerate(tiles):
        if not walkable(tile):
            walk_bits |= 1 << j
    return walk_bits | int(action) << 4


def substitute_secret_squares(primaries: bytes, secrets: bytes) -> bytes:
    """Mark secondary squares with 0xFF and swap secret placeholders for real primaries."""
    result = bytearray(primaries)
    for i in range(len(result)):
        if i < SECONDARY_SQUARE_COUNT:
            result[i] = 0xFF
        elif SECRET_PRIMARY_FIRST <= result[i] <= SECRET_PRIMARY_LAST:
            result[i] = secrets[result[i] - SECRET_PRIMARY_FIRST]
    return bytes(result)


def overworld_tile_attributes(primaries: bytes, secondaries: bytes, secrets: bytes) -> bytes:
    """One attribute byte per overworld square from the raw square tables."""
    attrs = bytearray()
    for i in range(len(primaries)):
        if i < SECONDARY_SQUARE_COUNT:
            tiles = secondaries[i * 4:i * 4 + 4]
        else:
            primary = primaries[i]
            if SECRET_PRIMARY_FIRST <= primary <= SECRET_PRIMARY_LAST:
                primary = secrets[primary - SECRET_PRIMARY_FIRST]
            tiles = [(primary + j) & 0xFF for j in range(4)]
        attrs.append(_attribute(tiles, is_overworld_walkable, overworld_square_action(i)))
    return bytes(attrs)


def underworld_tile_attributes(primaries: bytes) -> bytes:
    """Attribute bytes for the eight underworld squares plus a solid ninth square."""
    attrs = bytearray()
    for i, primary in enumerate(primaries):
        if primary < 0x70 or primary > 0xF2:
            tiles = [primary] * 4
        else:
            tiles = [(primary + j) & 0xFF for j in range(4)]
        action = _UNDERWORLD_SQUARE_ACTIONS.get(i, TileAction.NONE)
        attrs.append(_attribute(tiles, is_underworld_walkable, action))
    attrs.append(0x0F)
    return bytes(attrs)


def cellar_tile_attributes(primaries: bytes, secondaries: bytes) -> bytes:
    """Cellars use the open square layout with underworld walkability and no actions."""
    attrs = bytearray()
    for i in range(len(primaries)):
        if i < SECONDARY_SQUARE_COUNT:
            tiles = secondaries[i * 4:i * 4 + 4]
        else:
            tiles = [(primaries[i] + j) & 0xFF for j in range(4)]
        attrs.append(_attribute(tiles, is_underworld_walkable, TileAction.NONE))
    return bytes(attrs)


def read_overworld_squares(rom: RomImage) -> Tuple[bytes, bytes, bytes]:
    """(primaries ready for decoding, secondaries, tile attributes)."""
    primaries = rom.read(RomLayout.PRIMARY_SQUARES)
    secrets = rom.read(RomLayout.SECRET_SQUARES)
    secondaries = rom.read(RomLayout.SECONDARY_SQUARES)
    attrs = overworld_tile_attributes(primaries, secondaries, secrets)
    return substitute_secret_squares(primaries, secrets), secondaries, attrs


def read_cellar_squares(rom: RomImage) -> Tuple[bytes, bytes, bytes]:
    primaries = rom.read(RomLayout.PRIMARY_SQUARES)
    secondaries = rom.read(RomLayout.SECONDARY_SQUARES)
    attrs = cellar_tile_attributes(primaries, secondaries)
    marked = bytes([0xFF] * SECONDARY_SQUARE_COUNT) + primaries[SECONDARY_SQUARE_COUNT:]
    return marked, secondaries, attrs


def read_underworld_squares(rom: RomImage) -> Tuple[bytes, bytes]:
    """(primaries, tile attributes)."""
    primaries = rom.read(RomLayout.UNDERWORLD_SQUARES)
    return primaries, underworld_tile_attributes(primaries)


# ==========================================
# LAYOUTS
# ==========================================
def _split_records(data: bytes, count: int, stride: int, pad_to: int = MOB_COLUMNS) -> Tuple[bytes, ...]:
    records = []
    for i in range(count):
        record = data[i * stride:(i + 1) * stride]
        records.append(record + bytes(pad_to - len(record)))
    return tuple(records)


def read_overworld_layout(rom: RomImage) -> Tuple[Tuple[bytes, ...], HeapTable]:
    """(column descriptors per unique room, column heap table)."""
    room_columns = _split_records(rom.read(RomLayout.OW_ROOM_COLUMNS), OVERWORLD_UNIQUE_ROOMS, MOB_COLUMNS)
    pointers = rom.read_u16_array(RomLayout.OW_COLUMN_DIR)
    table = HeapTable.from_pointers(pointers, rom.read(RomLayout.OW_COLUMN_TABLES))
    return room_columns, table


def read_underworld_layout(rom: RomImage) -> Tuple[Tuple[bytes, ...], HeapTable]:
    # Underworld descriptors are 12 bytes wide; pad each to the common 16
    room_columns = _split_records(rom.read(RomLayout.UW_ROOM_COLUMNS), UNDERWORLD_UNIQUE_ROOMS, 12)
    pointers = rom.read_u16_array(RomLayout.UW_COLUMN_DIR)
    table = HeapTable.from_pointers(pointers, rom.read(RomLayout.UW_COLUMN_TABLES))
    return room_columns, table


def read_cellar_layout(rom: RomImage) -> Tuple[Tuple[bytes, ...], HeapTable]:
    room_columns = _split_records(rom.read(RomLayout.CELLAR_ROOM_COLUMNS), CELLAR_UNIQUE_ROOMS, MOB_COLUMNS)
    table = HeapTable(offsets=(0,), heap=rom.read(RomLayout.CELLAR_COLUMN_TABLES))
    return room_columns, table


# ==========================================
# ROOM ATTRIBUTES
# ==========================================
def read_overworld_room_attributes(rom: RomImage) -> Tuple[RoomAttributes, ...]:
    outer = rom.read(RomLayout.OW_OUTER)
    inner = rom.read(RomLayout.OW_INNER)
    monster_lists = rom.read(RomLayout.OW_MONSTER_LIST)
    layouts = rom.read(RomLayout.OW_LAYOUT)
    other = rom.read(RomLayout.OW_OTHER)
    counts = rom.read(RomLayout.OW_MONSTER_COUNTS)
    return tuple(
        convert_overworld_attributes(outer[i], inner[i], monster_lists[i], layouts[i], other[i], counts)
        for i in range(WORLD_ROOMS)
    )


def read_underworld_room_attributes(rom: RomImage, group: int) -> Tuple[RoomAttributes, ...]:
    """Room attributes of one level group (see ``level_group``)."""
    if not 0 <= group < 4:
        raise ValueError(f"level group must be 0..3, got {group}")
    offset = RomLayout.UW_GROUP_SIZE * group
    outer = rom.read(RomLayout.UW_OUTER, offset)
    inner = rom.read(RomLayout.UW_INNER, offset)
    monster_lists = rom.read(RomLayout.UW_MONSTER_LIST, offset)
    layouts = rom.read(RomLayout.UW_LAYOUT, offset)
    items = rom.read(RomLayout.UW_ITEMS, offset)
    special = rom.read(RomLayout.UW_SPECIAL, offset)
    counts = rom.read(RomLayout.UW_MONSTER_COUNTS)
    return tuple(
        convert_underworld_attributes(outer[i], inner[i], monster_lists[i], layouts[i],
                                      items[i], special[i], counts)
        for i in range(WORLD_ROOMS)
    )


def read_object_lists(rom: RomImage) -> HeapTable:
    pointers = rom.read_u16_array(RomLayout.OBJECT_LIST_DIR)
    return HeapTable.from_pointers(pointers, rom.read(RomLayout.OBJECT_LISTS))


# ==========================================
# LEVEL INFO
# ==========================================
def _palette_sequences(rom: RomImage, base: int) -> dict:
    sequences = {}
    names = ('out_of_cellar_palettes', 'in_cellar_palettes', 'dark_palettes', 'death_palettes')
    for name, offset in zip(names, RomLayout.INFO_PALETTE_SEQUENCES):
        raw = rom.read_at(base + offset, PALETTE_SEQUENCE_LENGTH)
        if name != 'death_palettes':
            raw = bytes(c if c < SYSTEM_PALETTE_SIZE else 0 for c in raw)
        sequences[name] = raw
    return sequences


def read_overworld_level_info(rom: RomImage) -> LevelInfoBlock:
    base = RomLayout.INFO_BLOCK
    palettes = bytearray(rom.read_at(base + RomLayout.INFO_PALETTES, 32))
    # The last sprite palette in the block is unused; the game loads this one instead
    palettes[28:32] = rom.read(RomLayout.OW_LAST_SPRITE_PALETTE)
    level_number = rom.read_byte(base + RomLayout.INFO_LEVEL_NUMBER)

    return LevelInfoBlock.build(
        palettes=bytes(palettes),
        start_y=rom.read_byte(base + RomLayout.INFO_START_Y),
        start_room_id=rom.read_byte(base + RomLayout.INFO_START_ROOM),
        triforce_room_id=rom.read_byte(base + RomLayout.INFO_TRIFORCE_ROOM),
        boss_room_id=rom.read_byte(base + RomLayout.INFO_BOSS_ROOM),
        song=2,
        level_number=level_number,
        effective_level_number=level_number,
        drawn_map_offset=rom.read_byte(base + RomLayout.INFO_DRAWN_MAP_OFFSET),
        cellar_room_ids=rom.read_at(base + RomLayout.INFO_CELLAR_ROOMS, CELLAR_ROOM_COUNT),
        shortcut_positions=rom.read_at(base + RomLayout.INFO_SHORTCUTS, SHORTCUT_COUNT),
        drawn_map=rom.read_at(base + RomLayout.INFO_DRAWN_MAP, DRAWN_MAP_LENGTH),
        **_palette_sequences(rom, base),
    )


def read_underworld_level_info(rom: RomImage, quest: int, level: int) -> LevelInfoBlock:
    """Level info block for a 0-based quest and a 1-based level.

    Second quest levels store only the fields that differ, in a diff record
    that also names the first quest level whose block supplies the rest.
    """
    effective_level = level
    diff_addr = None

    if quest == 1:
        first_pointer = rom.read_u16(RomLayout.DIFF_POINTERS)
        pointer = rom.read_u16(RomLayout.DIFF_POINTERS + (level - 1) * 2)
        addr = pointer - first_pointer + RomLayout.FIRST_DIFF
        effective_level = rom.read_byte(addr + RomLayout.DIFF_EFFECTIVE_LEVEL)
        if not 1 <= effective_level <= 9:
            raise RomFormatError(f"quest 2 level {level} names effective level {effective_level}")
        pointer = rom.read_u16(RomLayout.DIFF_POINTERS + (effective_level - 1) * 2)
        diff_addr = pointer - first_pointer + RomLayout.FIRST_DIFF

    base = RomLayout.INFO_BLOCK + RomLayout.INFO_BLOCK_SIZE * effective_level

    def field(block_offset: int, diff_offset: int, size: int = 1) -> bytes:
        if diff_addr is None:
            return rom.read_at(base + block_offset, size)
        return rom.read_at(diff_addr + diff_offset, size)

    cellar_rooms = bytearray(field(RomLayout.INFO_CELLAR_ROOMS, RomLayout.DIFF_CELLAR_ROOMS, CELLAR_ROOM_COUNT))
    if quest == 0 and level == 3:
        cellar_rooms[0] = LEVEL3_CELLAR_FIX

    if quest == 0:
        level_number = rom.read_byte(base + RomLayout.INFO_LEVEL_NUMBER)
    else:
        level_number = level

    logger.debug(f"Level info q{quest} L{level}: effective level {effective_level}")
    return LevelInfoBlock.build(
        palettes=rom.read_at(base + RomLayout.INFO_PALETTES, 32),
        start_y=rom.read_byte(base + RomLayout.INFO_START_Y),
        start_room_id=field(RomLayout.INFO_START_ROOM, RomLayout.DIFF_START_ROOM)[0],
        triforce_room_id=field(RomLayout.INFO_TRIFORCE_ROOM, RomLayout.DIFF_TRIFORCE_ROOM)[0],
        boss_room_id=field(RomLayout.INFO_BOSS_ROOM, RomLayout.DIFF_BOSS_ROOM)[0],
        song=3 if level < 9 else 7,
        level_number=level_number,
        effective_level_number=effective_level,
        drawn_map_offset=field(RomLayout.INFO_DRAWN_MAP_OFFSET, RomLayout.DIFF_DRAWN_MAP_OFFSET)[0],
        cellar_room_ids=bytes(cellar_rooms),
        shortcut_positions=field(RomLayout.INFO_SHORTCUTS, RomLayout.DIFF_SHORTCUTS, SHORTCUT_COUNT),
        drawn_map=field(RomLayout.INFO_DRAWN_MAP, RomLayout.DIFF_DRAWN_MAP, DRAWN_MAP_LENGTH),
        **_palette_sequences(rom, base),
    )


# ==========================================
# OVERWORLD SPARSE ATTRIBUTES
# ==========================================
def read_overworld_sparse_table(rom: RomImage) -> HeapTable:
    """Heap table with one stream per SparseKind, room replacements left out."""
    armos_rooms = rom.read(RomLayout.ARMOS_STAIRS_ROOMS)
    armos_xs = rom.read(RomLayout.ARMOS_STAIRS_X)
    armos_y = rom.read(RomLayout.ARMOS_STAIRS_Y)[0]
    maze_paths = rom.read(RomLayout.MAZE_PATHS)

    streams = {
        SparseKind.ARMOS_STAIRS: build_sparse_stream(
            [bytes([room, x, armos_y]) for room, x in zip(armos_rooms, armos_xs)], record_size=3),
        SparseKind.ARMOS_ITEM: build_sparse_stream([bytes([
            rom.read(RomLayout.ARMOS_ITEM_ROOM)[0],
            rom.read(RomLayout.ARMOS_ITEM_X)[0],
            armos_y,
            rom.read(RomLayout.ARMOS_ITEM_ID)[0],
        ])]),
        SparseKind.DOCK: rooms_stream(DOCK_ROOM_IDS),
        SparseKind.ITEM: build_sparse_stream([bytes([
            rom.read(RomLayout.ITEM_ROOM)[0],
            rom.read(RomLayout.ITEM_X)[0],
            rom.read(RomLayout.ITEM_Y)[0],
            rom.read(RomLayout.ITEM_ID)[0],
        ])]),
        SparseKind.SHORTCUT: rooms_stream(rom.read(RomLayout.SHORTCUT_ROOMS)),
        SparseKind.MAZE: build_sparse_stream([
            bytes([room, exit_dir]) + maze_paths[i * 4:i * 4 + 4]
            for i, (room, exit_dir) in enumerate(zip(MAZE_ROOM_IDS, MAZE_EXIT_DIRECTIONS))
        ], record_size=6),
        SparseKind.SECRET_SCROLL: build_sparse_stream([bytes(r) for r in SECRET_SCROLL_RECORDS], record_size=2),
        SparseKind.LADDER: rooms_stream(rom.read(RomLayout.LADDER_ROOMS)),
        SparseKind.RECORDER: build_sparse_stream(
            [bytes([room, RECORDER_STAIRS_POSITION]) for room in rom.read(RomLayout.RECORDER_ROOMS)],
            record_size=2),
        SparseKind.FAIRY: rooms_stream(FAIRY_ROOM_IDS),
    }
    entries = [streams[kind] for kind in sorted(streams)]
    return HeapTable.load(build_heap_table(entries, alignment=SPARSE_ALIGNMENT))


# ==========================================
# UNDERWORLD WALLS
# ==========================================
_WALL_COLUMN_HEIGHT = 10


def build_wall_tile_map(wall_tiles: bytes) -> np.ndarray:
    """Expand the quarter-screen wall strip into a full 22x32 mirrored frame."""
    wall_map = np.zeros((SCREEN_ROWS, SCREEN_COLUMNS), dtype=np.uint8)
    row = col = 0
    last_row = SCREEN_ROWS - 2
    last_col = SCREEN_COLUMNS - 2

    for tile in wall_tiles:
        if tile != 0:
            wall_map[row + 1, col + 1] = tile
            wall_map[last_row - row, col + 1] = tile if tile in (0xF5, 0xDE) else (tile + 1) & 0xFF

            if tile in (0xDE, 0xDC):
                mirrored = tile + 1
            elif tile in (0xF5, 0xE0):
                mirrored = tile
            else:
                mirrored = tile + 2
            wall_map[last_row - row, last_col - col] = mirrored & 0xFF

            if tile in (0xDE, 0xE0):
                mirrored = tile + 1
            elif tile in (0xF5, 0xDC):
                mirrored = tile
            else:
                mirrored = tile + 3
            wall_map[row + 1, last_col - col] = mirrored & 0xFF

        row += 1
        if row == _WALL_COLUMN_HEIGHT or tile == 0:
            col += 1
            row = 0

    wall_map[0, :] = TileType.WALL_EDGE
    wall_map[-1, :] = TileType.WALL_EDGE
    wall_map[1:-1, 0] = TileType.WALL_EDGE
    wall_map[1:-1, -1] = TileType.WALL_EDGE
    return wall_map


def read_wall_tile_map(rom: RomImage) -> np.ndarray:
    return build_wall_tile_map(rom.read(RomLayout.WALLS))
