"""
ROOM LAYOUT DECODER
===================
Turns one room's column descriptors into a tile grid, the drawn room screen
and its action regions.

Open rooms (overworld, cellars) fill the whole 22x32 screen; closed rooms
(dungeons) fill a 14x24 area placed at (4, 4) inside it. A square is written
as a 2x2 block of tiles:

    (r, c)   = top-left      (r, c+1)   = top-right
    (r+1, c) = bottom-left   (r+1, c+1) = bottom-right

Usage:
    decoder = RoomLayoutDecoder(resources)
    layout = decoder.decode(room_id)
    layout.tiles    # active area, read-only
    layout.screen   # full 22x32 screen, read-only
    layout.regions  # ActionRegion tuple
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from lozmap.core.definitions import (
    BLANK_TILE,
    CELLAR_UNIQUE_ROOM_BASE,
    SCREEN_COLUMNS,
    SCREEN_ROWS,
)
from lozmap.core.errors import LayoutDecodeError
from lozmap.extraction.action_regions import ActionRegion, ActionRegionExtractor
from lozmap.extraction.columns import SquarePlacement, room_placements

logger = logging.getLogger(__name__)

SECONDARY_SQUARE = 0xFF

# Closed room primaries outside this range are single-tile squares
CLOSED_SQUARE_FIRST = 0x70
CLOSED_SQUARE_LAST = 0xF2

# Door openings in the wall frame
DOOR_CUTOUT_ROWS = slice(9, 13)
DOOR_CUTOUT_COLUMNS = slice(14, 18)


def resolve_square(resources, square: int) -> Tuple[int, int, int, int]:
    """(top-left, top-right, bottom-left, bottom-right) tiles of a square."""
    primaries = resources.primary_squares
    if not 0 <= square < len(primaries):
        raise LayoutDecodeError(f"square {square} outside {resources.name} ({len(primaries)} primaries)")
    primary = primaries[square]

    if resources.room_context.open_layout:
        if primary == SECONDARY_SQUARE:
            base = square * 4
            secondaries = resources.secondary_squares
            if base + 4 > len(secondaries):
                raise LayoutDecodeError(f"square {square} has no secondary tiles ({len(secondaries)} bytes)")
            return secondaries[base], secondaries[base + 2], secondaries[base + 1], secondaries[base + 3]
        return primary, (primary + 2) & 0xFF, (primary + 1) & 0xFF, (primary + 3) & 0xFF

    if primary < CLOSED_SQUARE_FIRST or primary > CLOSED_SQUARE_LAST:
        return primary, primary, primary, primary
    return primary, primary + 2, primary + 1, primary + 3


@dataclass(frozen=True, eq=False)
class RoomLayout:
    room_id: int
    unique_room_id: int
    is_cellar: bool
    tiles: np.ndarray                       # (row_count, col_count) uint8
    screen: np.ndarray                      # (22, 32) uint8
    regions: Tuple[ActionRegion, ...]

    @property
    def shape(self) -> Tuple[int, int]:
        return self.tiles.shape


def _read_only(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array


class RoomLayoutDecoder:
    """Decodes rooms of one map.

    Args:
        resources: MapResources of the map
        wall_map: optional (22, 32) wall frame drawn under dungeon rooms
    """

    def __init__(self, resources, wall_map: Optional[np.ndarray] = None):
        self.resources = resources
        if wall_map is not None:
            wall_map = np.asarray(wall_map, dtype=np.uint8)
            if wall_map.shape != (SCREEN_ROWS, SCREEN_COLUMNS):
                raise ValueError(f"wall map must be {SCREEN_ROWS}x{SCREEN_COLUMNS}, got {wall_map.shape}")
        self.wall_map = wall_map

    def bundle_for(self, room_id: int, unique_room_id: int) -> Tuple[object, int, bool]:
        """(resources, unique id inside them, is_cellar) for a room."""
        resources = self.resources
        if resources.is_overworld or unique_room_id < CELLAR_UNIQUE_ROOM_BASE:
            return resources, unique_room_id, False
        if resources.cellar is None:
            raise LayoutDecodeError(f"room 0x{room_id:02X} is a cellar but {resources.name} has no cellar tables")
        return resources.cellar, unique_room_id - CELLAR_UNIQUE_ROOM_BASE, True

    def decode(self, room_id: int, unique_room_id: Optional[int] = None) -> RoomLayout:
        """Decode one room. ``unique_room_id`` overrides the attribute byte (common rooms)."""
        if unique_room_id is None:
            unique_room_id = self.resources.attributes(room_id).unique_room_id

        bundle, layout_id, is_cellar = self.bundle_for(room_id, unique_room_id)
        placements = room_placements(bundle, layout_id)

        context = bundle.room_context
        screen = np.full((SCREEN_ROWS, SCREEN_COLUMNS), BLANK_TILE, dtype=np.uint8)
        self.draw(screen, bundle, placements, is_cellar)

        tiles = screen[context.start_row:context.row_end,
                       context.start_col:context.start_col + context.col_count].copy()

        regions = ActionRegionExtractor(bundle).extract(room_id, bundle.tile_attributes, screen, placements)

        logger.debug(f"Decoded {self.resources.name} room 0x{room_id:02X} "
                     f"(unique 0x{unique_room_id:02X}): {len(regions)} regions")
        return RoomLayout(
            room_id=room_id,
            unique_room_id=unique_room_id,
            is_cellar=is_cellar,
            tiles=_read_only(tiles),
            screen=_read_only(screen),
            regions=regions,
        )

    def draw(self, screen: np.ndarray, bundle, placements: Sequence[SquarePlacement],
             is_cellar: bool = False) -> np.ndarray:
        """Write placements (and the wall frame, if any) into a 22x32 screen."""
        if not bundle.is_overworld and not is_cellar and self.wall_map is not None:
            walls = self.wall_map != BLANK_TILE
            cutout = np.zeros_like(walls)
            cutout[DOOR_CUTOUT_ROWS, :] = True
            cutout[:, DOOR_CUTOUT_COLUMNS] = True
            screen[walls] = self.wall_map[walls]
            screen[walls & cutout] = BLANK_TILE

        for placement in placements:
            tl, tr, bl, br = resolve_square(bundle, placement.square)
            row, col = placement.row, placement.column_x
            screen[row:row + 2, col:col + 2] = ((tl, tr), (bl, br))
        return screen
