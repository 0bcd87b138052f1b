"""
ROOM ATTRIBUTES
===============
Seven bytes per RoomId:

    [0] unique room id (low 7 bits)
    [1] outer palette (bits 0-1), inner palette (bits 2-3), monster count (bits 4-7)
    [2] monster list id
    [3..6] fields A, B, C, D

Fields A-D mean different things on the overworld and in dungeons. The record
itself is one plain value; ``as_overworld_view`` and ``as_dungeon_view`` read
the same bytes under each interpretation.
"""

import logging
from dataclasses import dataclass
from typing import Sequence, Tuple

from lozmap.core.definitions import (
    CELLAR_UNIQUE_ROOM_BASE,
    DUNGEON_NO_ITEM_CODE,
    Direction,
    DoorType,
    ItemId,
    Secret,
)
from lozmap.core.errors import RomFormatError

logger = logging.getLogger(__name__)

ROOM_ATTRIBUTE_SIZE = 7


@dataclass(frozen=True)
class RoomAttributes:
    raw: bytes

    def __post_init__(self):
        if len(self.raw) != ROOM_ATTRIBUTE_SIZE:
            raise RomFormatError(f"room attributes are {ROOM_ATTRIBUTE_SIZE} bytes, got {len(self.raw)}")

    @classmethod
    def from_bytes(cls, data: bytes) -> 'RoomAttributes':
        return cls(bytes(data[:ROOM_ATTRIBUTE_SIZE]))

    @classmethod
    def pack(cls, unique_room_id: int = 0, outer_palette: int = 0, inner_palette: int = 0,
             monster_count: int = 0, monster_list_id: int = 0,
             a: int = 0, b: int = 0, c: int = 0, d: int = 0) -> 'RoomAttributes':
        palettes = (outer_palette & 3) | (inner_palette & 3) << 2 | (monster_count & 0x0F) << 4
        return cls(bytes([unique_room_id & 0xFF, palettes, monster_list_id & 0xFF,
                          a & 0xFF, b & 0xFF, c & 0xFF, d & 0xFF]))

    def _byte(self, offset: int) -> int:
        if not 0 <= offset < ROOM_ATTRIBUTE_SIZE:
            raise IndexError(f"room attribute offset {offset} out of range")
        return self.raw[offset]

    @property
    def unique_room_id(self) -> int:
        return self._byte(0) & 0x7F

    @property
    def outer_palette(self) -> int:
        return self._byte(1) & 0x03

    @property
    def inner_palette(self) -> int:
        return (self._byte(1) >> 2) & 0x03

    @property
    def monster_count(self) -> int:
        return (self._byte(1) >> 4) & 0x0F

    @property
    def monster_list_id(self) -> int:
        return self._byte(2)

    @property
    def a(self) -> int:
        return self._byte(3)

    @property
    def b(self) -> int:
        return self._byte(4)

    @property
    def c(self) -> int:
        return self._byte(5)

    @property
    def d(self) -> int:
        return self._byte(6)

    @property
    def is_cellar_layout(self) -> bool:
        """Only meaningful for dungeon records."""
        return self.unique_room_id >= CELLAR_UNIQUE_ROOM_BASE


# ==========================================
# VIEWS
# ==========================================
@dataclass(frozen=True)
class OverworldRoomView:
    exit_position: int          # Block row (high nibble) and column (low nibble) Link leaves a cave at
    cave_id: int                # < 9: level number, otherwise cave index + 0x10
    quest_number: int           # 0 both quests, 1 first only, 2 second only
    shortcut_stairs_index: int
    has_zora: bool
    monsters_enter: bool        # Monsters walk in from the screen edges
    has_ambient_sound: bool

    def is_in_quest(self, quest: int) -> bool:
        return self.quest_number == 0 or self.quest_number == quest + 1

    @property
    def exit_pixel_position(self) -> Tuple[int, int]:
        x = (self.exit_position & 0x0F) * 16
        y = ((self.exit_position >> 4) + 4) * 16 + 0x0D
        return x, y


@dataclass(frozen=True)
class DungeonRoomView:
    door_right: DoorType
    door_left: DoorType
    door_down: DoorType
    door_up: DoorType
    left_cellar_exit: int       # Cellar rooms only: where the left stairs lead
    right_cellar_exit: int
    item_id: int
    item_position_index: int
    secret: Secret
    has_push_block: bool
    is_dark: bool
    ambient_sound: int

    def door(self, direction: Direction) -> DoorType:
        if direction == Direction.RIGHT:
            return self.door_right
        if direction == Direction.LEFT:
            return self.door_left
        if direction == Direction.DOWN:
            return self.door_down
        if direction == Direction.UP:
            return self.door_up
        return DoorType.WALL


def as_overworld_view(attrs: RoomAttributes) -> OverworldRoomView:
    return OverworldRoomView(
        exit_position=attrs.a,
        cave_id=attrs.b & 0x3F,
        quest_number=attrs.b >> 6,
        shortcut_stairs_index=attrs.c & 0x03,
        has_zora=bool(attrs.c & 0x04),
        monsters_enter=bool(attrs.c & 0x08),
        has_ambient_sound=bool(attrs.c & 0x10),
    )


def as_dungeon_view(attrs: RoomAttributes) -> DungeonRoomView:
    item = attrs.c & 0x1F
    return DungeonRoomView(
        door_right=DoorType(attrs.b & 7),
        door_left=DoorType((attrs.b >> 3) & 7),
        door_down=DoorType(attrs.a & 7),
        door_up=DoorType((attrs.a >> 3) & 7),
        left_cellar_exit=attrs.a,
        right_cellar_exit=attrs.b,
        item_id=int(ItemId.MAX) if item == DUNGEON_NO_ITEM_CODE else item,
        item_position_index=(attrs.c >> 5) & 3,
        secret=Secret(attrs.d & 7),
        has_push_block=bool(attrs.d & 0x08),
        is_dark=bool(attrs.d & 0x10),
        ambient_sound=(attrs.d >> 5) & 3,
    )


# ==========================================
# LOADING AND ROM CONVERSION
# ==========================================
def load_room_attributes(data: bytes, count: int) -> Tuple[RoomAttributes, ...]:
    """Split a packed array of ``count`` seven-byte records."""
    needed = count * ROOM_ATTRIBUTE_SIZE
    if len(data) < needed:
        raise RomFormatError(f"{count} room attribute records need {needed} bytes, got {len(data)}")
    return tuple(
        RoomAttributes(bytes(data[i * ROOM_ATTRIBUTE_SIZE:(i + 1) * ROOM_ATTRIBUTE_SIZE]))
        for i in range(count)
    )


def convert_overworld_attributes(outer: int, inner: int, monster_list: int, layout: int,
                                 other: int, monster_counts: Sequence[int]) -> RoomAttributes:
    """Repack the five parallel overworld ROM arrays into one record.

    outer:  palette (0-1), sea sound (2), zora (3), exit column (4-7)
    inner:  palette (0-1), cave index (2-7)
    monster_list: list id low 6 bits, count index (6-7)
    layout: unique room id (0-6), list id high bit (7)
    other:  exit row (0-2), edge monsters (3), shortcut stairs index (4-5), quest (6-7)
    """
    monster_count = monster_counts[(monster_list & 0xC0) >> 6] & 0x0F
    return RoomAttributes.pack(
        unique_room_id=layout & 0x7F,
        outer_palette=outer & 0x03,
        inner_palette=inner & 0x03,
        monster_count=monster_count,
        monster_list_id=(monster_list & 0x3F) | ((layout & 0x80) >> 7) << 6,
        a=((outer & 0xF0) >> 4) | (other & 0x07) << 4,
        b=((inner & 0xFC) >> 2) | ((other & 0xC0) >> 6) << 6,
        c=((other & 0x30) >> 4) | ((outer & 0x08) >> 3) << 2 | ((other & 0x08) >> 3) << 3 | ((outer & 0x04) >> 2) << 4,
        d=0,
    )


def convert_underworld_attributes(outer: int, inner: int, monster_list: int, layout: int,
                                  items: int, special: int, monster_counts: Sequence[int]) -> RoomAttributes:
    """Repack the six parallel dungeon ROM arrays into one record.

    outer:  palette (0-1), south door (2-4), north door (5-7)
    inner:  palette (0-1), east door (2-4), west door (5-7)
    layout: unique room id (0-5), push block (6), list id high bit (7)
    items:  item (0-4), sound (5-6), dark (7)
    special: secret (0-2), item position index (4-5)

    Cellar layouts keep the raw outer/inner bytes in A/B: they name the rooms
    the two stairways lead back to.
    """
    unique_room_id = layout & 0x3F
    push_block = (layout >> 6) & 1
    monster_count = monster_counts[(monster_list >> 6) & 3] & 0x0F

    if unique_room_id >= CELLAR_UNIQUE_ROOM_BASE:
        a, b = outer, inner
    else:
        a = ((outer >> 2) & 7) | ((outer >> 5) & 7) << 3
        b = ((inner >> 2) & 7) | ((inner >> 5) & 7) << 3

    return RoomAttributes.pack(
        unique_room_id=unique_room_id,
        outer_palette=outer & 0x03,
        inner_palette=inner & 0x03,
        monster_count=monster_count,
        monster_list_id=(monster_list & 0x3F) | ((layout >> 7) & 1) << 6,
        a=a,
        b=b,
        c=(items & 0x1F) | ((special >> 4) & 3) << 5,
        d=(special & 7) | push_block << 3 | ((items >> 7) & 1) << 4 | ((items >> 5) & 3) << 5,
    )
