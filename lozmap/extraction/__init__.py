"""
Extraction layer: column walking, tile decoding and action regions.
"""

from .columns import ColumnCell, SquarePlacement, find_column_start, iter_room_placements, room_placements
from .action_regions import (
    ActionRegion,
    ActionRegionExtractor,
    Interaction,
    make_properties,
    merge_horizontal,
)
from .layout_decoder import RoomLayout, RoomLayoutDecoder, resolve_square

__all__ = [
    'ColumnCell', 'SquarePlacement', 'find_column_start', 'iter_room_placements', 'room_placements',
    'ActionRegion', 'ActionRegionExtractor', 'Interaction', 'make_properties', 'merge_horizontal',
    'RoomLayout', 'RoomLayoutDecoder', 'resolve_square',
]
