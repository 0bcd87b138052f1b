"""
LOZMAP Core Module
==================

Geometry, enumerations and exceptions shared by every stage.

Usage:
    from lozmap.core import OPEN_ROOM, CLOSED_ROOM, DoorType
    from lozmap.core.errors import LayoutDecodeError
"""

from lozmap.core.definitions import (
    BLANK_TILE,
    CLOSED_ROOM,
    OPEN_ROOM,
    SCREEN_COLUMNS,
    SCREEN_ROWS,
    WORLD_HEIGHT,
    WORLD_WIDTH,
    Direction,
    DoorType,
    GameWorldType,
    ItemId,
    ObjType,
    RoomContext,
    Secret,
    TileAction,
    level_group,
)
from lozmap.core.errors import (
    HeapTableError,
    LayoutDecodeError,
    LozMapError,
    RomFormatError,
)

__all__ = [
    'BLANK_TILE',
    'CLOSED_ROOM',
    'OPEN_ROOM',
    'SCREEN_COLUMNS',
    'SCREEN_ROWS',
    'WORLD_HEIGHT',
    'WORLD_WIDTH',
    'Direction',
    'DoorType',
    'GameWorldType',
    'ItemId',
    'ObjType',
    'RoomContext',
    'Secret',
    'TileAction',
    'level_group',
    'HeapTableError',
    'LayoutDecodeError',
    'LozMapError',
    'RomFormatError',
]
