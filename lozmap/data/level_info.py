"""
LEVEL INFO BLOCK
================
Fixed 200-byte record describing one map (the overworld or one dungeon of one
quest). Every field is read through a bounds-checked (offset, stride) accessor.

    offset  size  field
    0       32    palettes (8 x 4)
    32      1     start y
    33      1     start room id
    34      1     triforce room id
    35      1     boss room id
    36      1     song
    37      1     level number
    38      1     effective level number (second quest levels reuse first quest data)
    39      1     drawn map offset
    40      10    cellar room ids, terminated by a value >= 0x80
    50      4     shortcut / item positions
    54      16    drawn minimap
    70      2     padding
    72      4x32  palette fade sequences: out of cellar, in cellar, dark, death
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Sequence, Tuple

from lozmap.core.errors import RomFormatError
from lozmap.data.room_attributes import RoomAttributes, as_dungeon_view

logger = logging.getLogger(__name__)

LEVEL_INFO_SIZE = 200
PALETTE_LENGTH = 4
LEVEL_PALETTE_COUNT = 8
CELLAR_ROOM_COUNT = 10
SHORTCUT_COUNT = 4
DRAWN_MAP_LENGTH = 16
FADE_LENGTH = 4
FADE_PALETTES = 2
PALETTE_SEQUENCE_LENGTH = FADE_LENGTH * FADE_PALETTES * PALETTE_LENGTH

CELLAR_LIST_END = 0x80

# name -> (offset, stride, count)
FIELDS: Dict[str, Tuple[int, int, int]] = {
    'palettes': (0, PALETTE_LENGTH, LEVEL_PALETTE_COUNT),
    'start_y': (32, 1, 1),
    'start_room_id': (33, 1, 1),
    'triforce_room_id': (34, 1, 1),
    'boss_room_id': (35, 1, 1),
    'song': (36, 1, 1),
    'level_number': (37, 1, 1),
    'effective_level_number': (38, 1, 1),
    'drawn_map_offset': (39, 1, 1),
    'cellar_room_ids': (40, 1, CELLAR_ROOM_COUNT),
    'shortcut_positions': (50, 1, SHORTCUT_COUNT),
    'drawn_map': (54, 1, DRAWN_MAP_LENGTH),
    'out_of_cellar_palettes': (72, PALETTE_LENGTH, FADE_LENGTH * FADE_PALETTES),
    'in_cellar_palettes': (104, PALETTE_LENGTH, FADE_LENGTH * FADE_PALETTES),
    'dark_palettes': (136, PALETTE_LENGTH, FADE_LENGTH * FADE_PALETTES),
    'death_palettes': (168, PALETTE_LENGTH, FADE_LENGTH * FADE_PALETTES),
}


@dataclass(frozen=True)
class LevelInfoBlock:
    raw: bytes

    def __post_init__(self):
        if len(self.raw) != LEVEL_INFO_SIZE:
            raise RomFormatError(f"level info block is {LEVEL_INFO_SIZE} bytes, got {len(self.raw)}")

    @classmethod
    def build(cls, **fields) -> 'LevelInfoBlock':
        """Assemble a block from field values; missing fields are zero.

        Single-byte fields take an int, array fields a byte sequence that
        must fit the field. ``cellar_room_ids`` shorter than ten entries is
        padded with the 0xFF terminator.
        """
        raw = bytearray(LEVEL_INFO_SIZE)
        raw[40:50] = b'\xff' * CELLAR_ROOM_COUNT
        for name, value in fields.items():
            if name not in FIELDS:
                raise KeyError(f"unknown level info field {name!r}")
            offset, stride, count = FIELDS[name]
            size = stride * count
            if isinstance(value, int):
                if size != 1:
                    raise ValueError(f"{name} is a {size}-byte field")
                raw[offset] = value & 0xFF
                continue
            value = bytes(value)
            if len(value) > size:
                raise ValueError(f"{name} holds {size} bytes, got {len(value)}")
            raw[offset:offset + len(value)] = value
        return cls(bytes(raw))

    # ==========================================
    # ACCESSORS
    # ==========================================
    def _slice(self, name: str, index: int = 0) -> bytes:
        offset, stride, count = FIELDS[name]
        if not 0 <= index < count:
            raise IndexError(f"{name}[{index}] out of range (0..{count - 1})")
        start = offset + index * stride
        return self.raw[start:start + stride]

    def _byte(self, name: str, index: int = 0) -> int:
        return self._slice(name, index)[0]

    def _array(self, name: str) -> bytes:
        offset, stride, count = FIELDS[name]
        return self.raw[offset:offset + stride * count]

    @property
    def start_y(self) -> int:
        return self._byte('start_y')

    @property
    def start_room_id(self) -> int:
        return self._byte('start_room_id')

    @property
    def triforce_room_id(self) -> int:
        return self._byte('triforce_room_id')

    @property
    def boss_room_id(self) -> int:
        return self._byte('boss_room_id')

    @property
    def song(self) -> int:
        return self._byte('song')

    @property
    def level_number(self) -> int:
        return self._byte('level_number')

    @property
    def effective_level_number(self) -> int:
        return self._byte('effective_level_number')

    @property
    def drawn_map_offset(self) -> int:
        return self._byte('drawn_map_offset')

    @property
    def cellar_room_ids(self) -> bytes:
        return self._array('cellar_room_ids')

    @property
    def drawn_map(self) -> bytes:
        return self._array('drawn_map')

    def palette(self, index: int) -> bytes:
        return self._slice('palettes', index)

    def palette_sequence(self, kind: str, index: int, fade: int) -> bytes:
        """One 4-color palette out of a fade sequence (``kind`` is e.g. 'dark')."""
        if not 0 <= fade < FADE_PALETTES:
            raise IndexError(f"fade {fade} out of range")
        return self._slice(f'{kind}_palettes', index * FADE_PALETTES + fade)

    def shortcut_position_byte(self, index: int) -> int:
        return self._byte('shortcut_positions', index)

    def shortcut_position(self, index: int) -> Tuple[int, int]:
        """Pixel (x, y) of a dungeon item position."""
        value = self.shortcut_position_byte(index)
        return value & 0xF0, (value << 4) & 0xFF

    def iter_cellar_room_ids(self) -> Iterator[int]:
        for room_id in self.cellar_room_ids:
            if room_id >= CELLAR_LIST_END:
                break
            yield room_id

    # ==========================================
    # CELLAR LOOKUPS
    # ==========================================
    def find_cellar_room_ids(self, room_id: int,
                             room_attributes: Sequence[RoomAttributes]) -> Optional[Tuple[int, int]]:
        """(left, right) exits of the cellar whose stairs connect to ``room_id``."""
        for cellar_room_id in self.iter_cellar_room_ids():
            if cellar_room_id >= len(room_attributes):
                continue
            view = as_dungeon_view(room_attributes[cellar_room_id])
            left, right = view.left_cellar_exit, view.right_cellar_exit
            if room_id == left or room_id == right:
                return left, right
        return None

    def find_cellar_item_room_id(self, room_id: int,
                                 room_attributes: Sequence[RoomAttributes]) -> Optional[int]:
        """Cellar room reached by the stairs in ``room_id``."""
        for cellar_room_id in self.iter_cellar_room_ids():
            if cellar_room_id >= len(room_attributes):
                continue
            view = as_dungeon_view(room_attributes[cellar_room_id])
            if room_id in (view.left_cellar_exit, view.right_cellar_exit):
                return cellar_room_id
        return None

    def world_settings(self, world_type: str) -> Dict[str, object]:
        return {
            'world_type': world_type,
            'song': self.song,
            'level_number': self.level_number,
            'palettes': [list(self.palette(i)) for i in range(LEVEL_PALETTE_COUNT)],
        }
