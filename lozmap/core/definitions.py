"""
LOZMAP DEFINITIONS
==================
Central constants and type definitions for the room decoder and map assembler.

This file is the single place for:
- Screen and world geometry (tiles, blocks, room grid)
- Room contexts (open overworld/cellar rooms, closed underworld rooms)
- Enumerations read out of room attributes and tile attributes
- The (quest, level) -> room attribute group table

Import from here instead of duplicating constants across modules.

"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Tuple

# ==========================================
# SCREEN GEOMETRY
# ==========================================

TILE_WIDTH: int = 8          # Pixels per tile
TILE_HEIGHT: int = 8
BLOCK_WIDTH: int = 16        # Pixels per block (one decoded square)
BLOCK_HEIGHT: int = 16

SCREEN_COLUMNS: int = 32     # Tiles per room screen
SCREEN_ROWS: int = 22

TILE_MAP_BASE_Y: int = 64    # Pixel y of the first playfield row
START_X: int = 0x78          # Link's entry x in every entry room
UW_BLOCK_ROW: int = 10       # Row the first push block of a dungeon room sits on
MOB_COLUMNS: int = 16        # Column descriptors per room record

BLANK_TILE: int = 0          # Empty tile used for margins and excluded rooms

# ==========================================
# WORLD GEOMETRY
# ==========================================

WORLD_WIDTH: int = 16        # Rooms per world row
WORLD_HEIGHT: int = 8        # Rooms per world column
WORLD_ROOMS: int = WORLD_WIDTH * WORLD_HEIGHT

OVERWORLD_UNIQUE_ROOMS: int = 124
UNDERWORLD_UNIQUE_ROOMS: int = 64
CELLAR_UNIQUE_ROOMS: int = 2

# Underworld unique room ids at or above this value are cellar layouts
CELLAR_UNIQUE_ROOM_BASE: int = 0x3E

SHORTCUT_STAIRS_NAME: str = "shortcut stairs"


# ==========================================
# ROOM CONTEXTS
# ==========================================
@dataclass(frozen=True)
class RoomContext:
    """Geometry of one kind of room layout."""
    name: str
    col_count: int           # Active tile columns
    row_count: int           # Active tile rows
    start_row: int           # Offset of the active area inside the screen
    start_col: int
    square_count: int        # Distinct squares addressable by the column cells
    open_layout: bool        # Cell format and square resolution rules
    margin_right: int
    margin_left: int
    margin_top: int
    margin_bottom: int

    @property
    def column_pairs(self) -> int:
        return self.col_count // 2

    @property
    def row_end(self) -> int:
        return self.start_row + self.row_count

    @property
    def max_column_start_offset(self) -> int:
        """Last offset (inclusive) searched when locating a logical column."""
        return (self.col_count // 2 - 1) * self.row_count // 2


OPEN_ROOM = RoomContext(
    name="open",
    col_count=32, row_count=22, start_row=0, start_col=0,
    square_count=56, open_layout=True,
    margin_right=0xE0, margin_left=0x10, margin_top=0x4D, margin_bottom=0xCD,
)

CLOSED_ROOM = RoomContext(
    name="closed",
    col_count=24, row_count=14, start_row=4, start_col=4,
    square_count=9, open_layout=False,
    margin_right=0xD0, margin_left=0x20, margin_top=0x5D, margin_bottom=0xBD,
)


# ==========================================
# ROOM ATTRIBUTE ENUMS
# ==========================================

class Direction(IntEnum):
    NONE = 0
    RIGHT = 1
    LEFT = 2
    DOWN = 4
    UP = 8


# Order doors are listed in room metadata
DOOR_DIRECTION_ORDER: Tuple[Direction, ...] = (
    Direction.RIGHT, Direction.LEFT, Direction.DOWN, Direction.UP,
)

# Grid step for each compass direction: (dx, dy)
DIRECTION_OFFSETS: Dict[Direction, Tuple[int, int]] = {
    Direction.UP: (0, -1),
    Direction.LEFT: (-1, 0),
    Direction.DOWN: (0, 1),
    Direction.RIGHT: (1, 0),
}


class DoorType(IntEnum):
    OPEN = 0
    WALL = 1
    FALSE_WALL = 2
    FALSE_WALL2 = 3
    BOMBABLE = 4
    KEY = 5
    KEY2 = 6
    SHUTTER = 7
    NONE = 8


# Door types that never connect two rooms
BLOCKING_DOORS = frozenset({DoorType.WALL, DoorType.NONE})


class Secret(IntEnum):
    NONE = 0
    FOES_DOOR = 1
    RINGLEADER = 2
    LAST_BOSS = 3
    BLOCK_DOOR = 4
    BLOCK_STAIRS = 5
    MONEY_OR_LIFE = 6
    FOES_ITEM = 7


class TileAction(IntEnum):
    """High nibble of a tile attribute byte."""
    NONE = 0
    PUSH = 1
    BOMB = 2
    BURN = 3
    PUSH_HEADSTONE = 4
    LADDER = 5
    RAFT = 6
    CAVE = 7
    STAIRS = 8
    GHOST = 9
    ARMOS = 10
    PUSH_BLOCK = 11
    RECORDER = 12
    ITEM = 13


class TileType(IntEnum):
    TILE = 0x01
    GROUND = 0x0E
    BLOCK = 0xB0
    HEADSTONE = 0xBC
    ROCK = 0xC8
    WALL_EDGE = 0xF6


class GameWorldType(IntEnum):
    UNDERWORLD = 0
    OVERWORLD = 1
    UNDERWORLD_COMMON = 2
    OVERWORLD_COMMON = 3


WORLD_TYPE_NAMES: Dict[GameWorldType, str] = {
    GameWorldType.UNDERWORLD: "Underworld",
    GameWorldType.OVERWORLD: "Overworld",
    GameWorldType.UNDERWORLD_COMMON: "UnderworldCommon",
    GameWorldType.OVERWORLD_COMMON: "OverworldCommon",
}


# ==========================================
# OBJECT AND ITEM IDS
# ==========================================

class ItemId(IntEnum):
    BOMB = 0x00
    WOOD_SWORD = 0x01
    WHITE_SWORD = 0x02
    MAGIC_SWORD = 0x03
    FOOD = 0x04
    RECORDER = 0x05
    BLUE_CANDLE = 0x06
    RED_CANDLE = 0x07
    WOOD_ARROW = 0x08
    SILVER_ARROW = 0x09
    BOW = 0x0A
    MAGIC_KEY = 0x0B
    RAFT = 0x0C
    LADDER = 0x0D
    POWER_TRIFORCE = 0x0E
    FIVE_RUPEES = 0x0F
    ROD = 0x10
    BOOK = 0x11
    BLUE_RING = 0x12
    RED_RING = 0x13
    BRACELET = 0x14
    LETTER = 0x15
    COMPASS = 0x16
    MAP = 0x17
    RUPEE = 0x18
    KEY = 0x19
    HEART_CONTAINER = 0x1A
    TRIFORCE_PIECE = 0x1B
    MAGIC_SHIELD = 0x1C
    WOOD_BOOMERANG = 0x1D
    MAGIC_BOOMERANG = 0x1E
    BLUE_POTION = 0x1F
    RED_POTION = 0x20
    CLOCK = 0x21
    HEART = 0x22
    FAIRY = 0x23
    MAX = 0x3F               # No item


# Dungeon item byte 3 is stored as "no item"
DUNGEON_NO_ITEM_CODE: int = 3


class ObjType(IntEnum):
    """Object ids as used by monster list ids and object lists."""
    NONE = 0x00
    BLUE_LYNEL = 0x01
    RED_LYNEL = 0x02
    BLUE_MOBLIN = 0x03
    RED_MOBLIN = 0x04
    BLUE_GORIYA = 0x05
    RED_GORIYA = 0x06
    RED_SLOW_OCTOROCK = 0x07
    RED_FAST_OCTOROCK = 0x08
    BLUE_SLOW_OCTOROCK = 0x09
    BLUE_FAST_OCTOROCK = 0x0A
    RED_DARKNUT = 0x0B
    BLUE_DARKNUT = 0x0C
    BLUE_TEKTITE = 0x0D
    RED_TEKTITE = 0x0E
    BLUE_LEEVER = 0x0F
    RED_LEEVER = 0x10
    ZORA = 0x11
    VIRE = 0x12
    ZOL = 0x13
    CHILD_GEL = 0x14
    GEL = 0x15
    POLS_VOICE = 0x16
    LIKE_LIKE = 0x17
    LITTLE_DIGDOGGER = 0x18
    PEAHAT = 0x1A
    BLUE_KEESE = 0x1B
    RED_KEESE = 0x1C
    BLACK_KEESE = 0x1D
    ARMOS = 0x1E
    BOULDERS = 0x1F
    BOULDER = 0x20
    GHINI = 0x21
    FLYING_GHINI = 0x22
    BLUE_WIZZROBE = 0x23
    RED_WIZZROBE = 0x24
    PATRA_CHILD1 = 0x25
    PATRA_CHILD2 = 0x26
    WALLMASTER = 0x27
    ROPE = 0x28
    STALFOS = 0x2A
    BUBBLE1 = 0x2B
    BUBBLE2 = 0x2C
    BUBBLE3 = 0x2D
    WHIRLWIND = 0x2E
    POND_FAIRY = 0x2F
    GIBDO = 0x30
    THREE_DODONGOS = 0x31
    ONE_DODONGO = 0x32
    BLUE_GOHMA = 0x33
    RED_GOHMA = 0x34
    RUPIE_STASH = 0x35
    GRUMBLE = 0x36
    PRINCESS = 0x37
    DIGDOGGER1 = 0x38
    DIGDOGGER2 = 0x39
    RED_LAMNOLA = 0x3A
    BLUE_LAMNOLA = 0x3B
    MANHANDLA = 0x3C
    AQUAMENTUS = 0x3D
    GANON = 0x3E
    GUARD_FIRE = 0x3F
    STANDING_FIRE = 0x40
    MOLDORM = 0x41
    GLEEOK1 = 0x42
    GLEEOK2 = 0x43
    GLEEOK3 = 0x44
    GLEEOK4 = 0x45
    GLEEOK_HEAD = 0x46
    PATRA1 = 0x47
    PATRA2 = 0x48
    TRAP = 0x49
    TRAP_SET4 = 0x4A
    PERSON1 = 0x4B
    PERSON2 = 0x4C
    PERSON3 = 0x4D
    PERSON4 = 0x4E
    PERSON5 = 0x4F
    PERSON6 = 0x50
    PERSON7 = 0x51
    PERSON8 = 0x52
    PERSON_END = 0x53
    OLD_MAN = 0x58
    OLD_WOMAN = 0x59
    MERCHANT = 0x5A
    FRIENDLY_MOBLIN = 0x5B
    DOCK = 0x61
    ROCK = 0x62              # Monster list ids from here on index object lists
    ROCK_WALL = 0x63
    TREE = 0x64
    HEADSTONE = 0x65
    BLOCK = 0x68
    CAVE1 = 0x6A


def camel_name(member: IntEnum) -> str:
    """UPPER_SNAKE enum name -> CamelCase label used in exported properties."""
    return "".join(part.capitalize() for part in member.name.split("_"))


def item_name(value: int) -> str:
    try:
        return camel_name(ItemId(value))
    except ValueError:
        return f"Item{value:02X}"


def obj_type_name(value: int) -> str:
    try:
        return camel_name(ObjType(value))
    except ValueError:
        return f"Obj{value:02X}"


# ==========================================
# COMMON ROOMS
# ==========================================

CAVE_ROOM_NAME: str = "Cave"
SHORTCUT_ROOM_NAME: str = "Shortcut"
ITEM_CELLAR_ROOM_NAME: str = "ItemCellar"
TRANSPORT_ROOM_NAME: str = "Transport"

# Overworld common rooms are addressed by unique room id only
OVERWORLD_COMMON_ROOMS: Tuple[Tuple[int, str], ...] = (
    (0x79, CAVE_ROOM_NAME),
    (0x7A, SHORTCUT_ROOM_NAME),
)

# Underworld common rooms are regular room ids of the first quest, level 1 map
UNDERWORLD_COMMON_ROOMS: Tuple[Tuple[int, str], ...] = (
    (4, ITEM_CELLAR_ROOM_NAME),
    (7, TRANSPORT_ROOM_NAME),
)

# Recorder secrets: the first room is the level 7 pond, the rest are second quest stairs
RECORDER_ROOM_IDS: Tuple[int, ...] = (0x42, 0x06, 0x29, 0x2B, 0x30, 0x3A, 0x3C, 0x58, 0x60, 0x6E, 0x72)

# Unique room ids of the two fireball statue layouts
FIREBALL_LAYOUT_ROOMS: Tuple[int, ...] = (0x24, 0x23)

SECRET_CHIME_UNIQUE_ROOM: int = 0x0F


# ==========================================
# LEVEL GROUPS
# ==========================================
# Room attributes for the dungeons come in four groups:
# quest 0 levels 1-6, quest 0 levels 7-9, quest 1 levels 1-6, quest 1 levels 7-9.

QUEST_COUNT: int = 2
LEVEL_COUNT: int = 9

LEVEL_GROUP_TABLE: Tuple[Tuple[int, ...], ...] = (
    (0, 0, 0, 0, 0, 0, 1, 1, 1),
    (2, 2, 2, 2, 2, 2, 3, 3, 3),
)


def level_group(quest: int, level: int) -> int:
    """Room attribute group for a 0-based quest and a 1-based level number."""
    if not 0 <= quest < QUEST_COUNT:
        raise ValueError(f"quest must be 0 or 1, got {quest}")
    if not 1 <= level <= LEVEL_COUNT:
        raise ValueError(f"level must be in 1..{LEVEL_COUNT}, got {level}")
    return LEVEL_GROUP_TABLE[quest][level - 1]
