"""
ACTION REGION EXTRACTION
========================
Finds the interactive parts of a room: cave mouths, bombable walls, pushable
rocks and blocks, armos statues, raft docks, hidden stairs and items.

Regions come from two places:

1. Tile-derived: the high nibble of a square's tile attribute byte names its
   action. Consecutive cells of one column with the same action and
   properties stack into one region; regions of equal row and height that
   touch horizontally are then merged.
2. Synthetic: single-block regions read from room attributes, sparse
   attributes and the level info block (room items, recorder stairs,
   shortcut stairs, triforce, the first push block of a dungeon room).

Coordinates: x and y are 8-pixel tile units on the room screen, width and
height are 16-pixel block units, so a region covers x .. x + width*2.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from lozmap.core.definitions import (
    RECORDER_ROOM_IDS,
    SHORTCUT_STAIRS_NAME,
    TILE_HEIGHT,
    TILE_MAP_BASE_Y,
    TILE_WIDTH,
    UW_BLOCK_ROW,
    SCREEN_COLUMNS,
    SCREEN_ROWS,
    CAVE_ROOM_NAME,
    ITEM_CELLAR_ROOM_NAME,
    TRANSPORT_ROOM_NAME,
    WORLD_TYPE_NAMES,
    GameWorldType,
    ItemId,
    ObjType,
    Secret,
    TileAction,
    TileType,
    camel_name,
    item_name,
)
from lozmap.core.errors import LayoutDecodeError
from lozmap.data.room_attributes import as_dungeon_view, as_overworld_view
from lozmap.data.sparse import SparseKind, SparsePos, SparsePos2, SparseRoomItem
from lozmap.extraction.columns import SquarePlacement

logger = logging.getLogger(__name__)

Properties = Tuple[Tuple[str, Any], ...]


class Interaction(Enum):
    NONE = "none"
    BOMB = "bomb"
    BURN = "burn"
    RECORDER = "recorder"
    TOUCH = "touch"
    TOUCH_ONCE = "touch_once"
    PUSH = "push"
    PUSH_VERTICAL = "push_vertical"
    COVER = "cover"
    REVEALED = "revealed"


# Tile actions that produce regions, and how the player triggers them
TILE_INTERACTIONS: Dict[TileAction, Interaction] = {
    TileAction.CAVE: Interaction.NONE,
    TileAction.STAIRS: Interaction.NONE,
    TileAction.BOMB: Interaction.BOMB,
    TileAction.BURN: Interaction.BURN,
    TileAction.RECORDER: Interaction.RECORDER,
    TileAction.GHOST: Interaction.TOUCH,
    TileAction.ARMOS: Interaction.TOUCH_ONCE,
    TileAction.PUSH_HEADSTONE: Interaction.PUSH,
    TileAction.PUSH: Interaction.PUSH_VERTICAL,
    TileAction.PUSH_BLOCK: Interaction.PUSH,
    TileAction.RAFT: Interaction.COVER,
    TileAction.LADDER: Interaction.NONE,
}

STAIRS_ENTRANCE_ACTIONS = frozenset({TileAction.BURN, TileAction.PUSH_HEADSTONE, TileAction.STAIRS})
CAVE_ENTRANCE_ACTIONS = frozenset({TileAction.CAVE, TileAction.BOMB})
PERSISTED_ACTIONS = frozenset({TileAction.CAVE, TileAction.BOMB, TileAction.BURN})

ALL_ENEMIES_DEFEATED = "AllEnemiesDefeated"
OPEN_SHUTTER_DOORS = "OpenShutterDoors"
DRYOUT_WATER = "DryoutWater"

# Pixel position the block-stairs secret reveals its stairs at
BLOCK_STAIRS_POSITION = (0xD0, 0x60)
TRIFORCE_POSITION = (SCREEN_COLUMNS // 2 - 1, SCREEN_ROWS // 2 - 1)

UNDERWORLD_ENTRY_LEFT_X = 0x30
UNDERWORLD_ENTRY_RIGHT_X = 0xC0
UNDERWORLD_ENTRY_Y = 0x60


def make_properties(values: Dict[str, Any]) -> Properties:
    """Hashable, key-sorted property set; None values are left out."""
    return tuple(sorted((k, v) for k, v in values.items() if v is not None))


def tile_coords(x: int, y: int) -> Tuple[int, int]:
    """Pixel position in play-field space -> (column, row) on the room screen."""
    return x // TILE_WIDTH, (y - TILE_MAP_BASE_Y) // TILE_HEIGHT


@dataclass(frozen=True)
class ActionRegion:
    x: int
    y: int
    width: int
    height: int
    action: TileAction
    quest_id: int = 0
    properties: Properties = ()

    @property
    def right(self) -> int:
        return self.x + self.width * 2

    @property
    def bottom(self) -> int:
        return self.y + self.height * 2

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def name(self) -> str:
        return camel_name(self.action)

    @property
    def merge_key(self) -> Tuple:
        return self.y, self.height, self.action, self.quest_id, self.properties

    def get(self, key: str, default: Any = None) -> Any:
        for name, value in self.properties:
            if name == key:
                return value
        return default


def region_sort_key(region: ActionRegion) -> Tuple:
    return (region.quest_id, region.y, region.x, int(region.action),
            region.width, region.height, repr(region.properties))


def merge_horizontal(regions: Iterable[ActionRegion]) -> Tuple[ActionRegion, ...]:
    """Merge horizontally adjacent regions sharing row, height, action, quest and properties.

    Within each group, sorted by x, a region absorbs the next one when it ends
    exactly where the next begins. Greedy; the result is not a minimal cover.
    """
    groups: Dict[Tuple, List[ActionRegion]] = defaultdict(list)
    for region in regions:
        groups[region.merge_key].append(region)

    merged: List[ActionRegion] = []
    for group in groups.values():
        group = sorted(group, key=lambda r: r.x)
        changed = True
        while changed:
            changed = False
            out: List[ActionRegion] = []
            for region in group:
                if out and out[-1].right == region.x:
                    out[-1] = replace(out[-1], width=out[-1].width + region.width)
                    changed = True
                else:
                    out.append(region)
            group = out
        merged.extend(group)

    return tuple(sorted(merged, key=region_sort_key))


# ==========================================
# EXTRACTOR
# ==========================================
class ActionRegionExtractor:
    """Builds the action regions of one room from its square placements."""

    def __init__(self, resources):
        self.resources = resources

    # ------------------------------------------
    # Entrances
    # ------------------------------------------
    def entrance(self, room_id: int, block_type: str) -> Dict[str, Any]:
        resources = self.resources
        attrs = resources.attributes(room_id)
        props: Dict[str, Any] = {'entrance_block_type': block_type}

        if resources.is_overworld:
            view = as_overworld_view(attrs)
            exit_x, exit_y = view.exit_pixel_position
            props['entrance_exit_x'] = exit_x
            props['entrance_exit_y'] = exit_y
            if view.cave_id < 9:
                props['entrance_destination'] = str(view.cave_id)
                props['entrance_destination_type'] = WORLD_TYPE_NAMES[GameWorldType.UNDERWORLD]
            else:
                props['entrance_destination'] = CAVE_ROOM_NAME
                props['entrance_destination_type'] = WORLD_TYPE_NAMES[GameWorldType.OVERWORLD_COMMON]
                if view.cave_id >= 0x10:
                    props['entrance_cave_index'] = view.cave_id - 0x10
        else:
            pair = resources.level_info.find_cellar_room_ids(room_id, resources.room_attributes)
            left = pair[0] if pair is not None else 0
            if pair is not None and pair[0] == pair[1]:
                props['entrance_destination'] = ITEM_CELLAR_ROOM_NAME
            else:
                props['entrance_destination'] = TRANSPORT_ROOM_NAME
            props['entrance_destination_type'] = WORLD_TYPE_NAMES[GameWorldType.UNDERWORLD_COMMON]
            props['entrance_entry_x'] = UNDERWORLD_ENTRY_LEFT_X if room_id == left else UNDERWORLD_ENTRY_RIGHT_X
            props['entrance_entry_y'] = UNDERWORLD_ENTRY_Y
        return props

    # ------------------------------------------
    # Quests
    # ------------------------------------------
    def room_quest(self, room_id: int) -> int:
        """Quest the room's tile regions belong to; dungeon rooms are shared."""
        if not self.resources.is_overworld:
            return 0
        return as_overworld_view(self.resources.attributes(room_id)).quest_number

    @staticmethod
    def recorder_quest(room_id: int) -> int:
        # The first room is the level 7 pond, the rest only open in the second quest
        if room_id not in RECORDER_ROOM_IDS:
            raise LayoutDecodeError(f"room 0x{room_id:02X} has a recorder secret but is not a recorder room")
        return 1 if RECORDER_ROOM_IDS.index(room_id) == 0 else 2

    # ------------------------------------------
    # Tile regions
    # ------------------------------------------
    def cell_properties(self, room_id: int, action: TileAction, column_x: int, row: int,
                        armos_stairs: Optional[SparsePos2],
                        armos_item: Optional[SparseRoomItem]) -> Tuple[int, Dict[str, Any]]:
        """(quest, properties) of one cell with an interactive action."""
        resources = self.resources
        props: Dict[str, Any] = {'interaction': TILE_INTERACTIONS[action].value}

        is_armos_stairs = (armos_stairs is not None and action == TileAction.ARMOS
                           and tile_coords(armos_stairs.x, armos_stairs.y) == (column_x, row))
        if armos_item is not None and tile_coords(armos_item.x, armos_item.y) == (column_x, row):
            props['item'] = item_name(armos_item.item_id)

        if action in STAIRS_ENTRANCE_ACTIONS:
            props.update(self.entrance(room_id, camel_name(TileAction.STAIRS)))
        elif action in CAVE_ENTRANCE_ACTIONS or is_armos_stairs:
            props.update(self.entrance(room_id, camel_name(TileAction.CAVE)))

        quest = self.room_quest(room_id)

        if action in PERSISTED_ACTIONS:
            props['persisted'] = True
        elif action == TileAction.PUSH_HEADSTONE:
            props['appearance'] = camel_name(TileType.HEADSTONE)
        elif action == TileAction.ARMOS:
            props['spawned'] = camel_name(ObjType.ARMOS)
        elif action == TileAction.GHOST:
            props['spawned'] = camel_name(ObjType.FLYING_GHINI)
            props['repeatable'] = True
        elif action == TileAction.PUSH:
            props['appearance'] = camel_name(TileType.ROCK)
            props['item_requirement'] = "Bracelet:1"
            if resources.is_overworld:
                props['reveals'] = SHORTCUT_STAIRS_NAME
        elif action == TileAction.PUSH_BLOCK:
            props['requirements'] = ALL_ENEMIES_DEFEATED
            props['appearance'] = camel_name(TileType.BLOCK)
            secret = as_dungeon_view(resources.attributes(room_id)).secret
            if secret == Secret.BLOCK_DOOR:
                props['effect'] = OPEN_SHUTTER_DOORS
            elif secret == Secret.BLOCK_STAIRS:
                props['reveals'] = SHORTCUT_STAIRS_NAME
        elif action == TileAction.RAFT:
            props['push_direction'] = "up"
            props['repeatable'] = True
            props['item_requirement'] = "Raft:1"
        elif action == TileAction.LADDER:
            props['item_requirement'] = "Ladder:1"
        elif action == TileAction.RECORDER:
            quest = self.recorder_quest(room_id)
            if quest == 1:
                props['effect'] = DRYOUT_WATER

        return quest, props

    def vertical_regions(self, room_id: int, tile_attributes: bytes,
                         placements: Sequence[SquarePlacement]) -> List[ActionRegion]:
        """Stack consecutive cells of each column with equal action and properties."""
        sparse = self.resources.sparse
        armos_stairs = armos_item = None
        if self.resources.is_overworld:
            armos_stairs = sparse.find_as(SparseKind.ARMOS_STAIRS, room_id, SparsePos2)
            armos_item = sparse.find_as(SparseKind.ARMOS_ITEM, room_id, SparseRoomItem)

        regions: List[ActionRegion] = []
        current: Optional[ActionRegion] = None

        for placement in placements:
            if placement.square >= len(tile_attributes):
                raise LayoutDecodeError(
                    f"square {placement.square} has no tile attribute ({len(tile_attributes)} known)"
                )
            try:
                action = TileAction(tile_attributes[placement.square] >> 4)
            except ValueError as e:
                raise LayoutDecodeError(
                    f"square {placement.square} of room 0x{room_id:02X} has unknown tile action "
                    f"{tile_attributes[placement.square] >> 4}"
                ) from e

            region = None
            if action in TILE_INTERACTIONS:
                quest, props = self.cell_properties(
                    room_id, action, placement.column_x, placement.row, armos_stairs, armos_item)
                region = ActionRegion(placement.column_x, placement.row, 1, 1, action, quest,
                                      make_properties(props))

            if (current is not None and region is not None
                    and current.x == region.x and current.bottom == region.y
                    and (current.action, current.quest_id, current.properties)
                    == (region.action, region.quest_id, region.properties)):
                current = replace(current, height=current.height + 1)
                continue

            if current is not None:
                regions.append(current)
            current = region

        if current is not None:
            regions.append(current)
        return regions

    # ------------------------------------------
    # Synthetic regions
    # ------------------------------------------
    def synthetic_regions(self, room_id: int, screen: np.ndarray,
                          placements: Sequence[SquarePlacement]) -> List[ActionRegion]:
        resources = self.resources
        sparse = resources.sparse
        attrs = resources.attributes(room_id)
        quest = self.room_quest(room_id)
        regions: List[ActionRegion] = []

        def add(position: Tuple[int, int], action: TileAction, props: Dict[str, Any],
                quest_id: int = quest) -> None:
            regions.append(ActionRegion(position[0], position[1], 1, 1, action, quest_id,
                                        make_properties(props)))

        if resources.is_overworld:
            recorder = sparse.find_as(SparseKind.RECORDER, room_id, SparsePos)
            if recorder is not None:
                recorder_quest = self.recorder_quest(room_id)
                col, row = recorder.room_coord
                props = {'interaction': Interaction.RECORDER.value,
                         **self.entrance(room_id, camel_name(TileAction.STAIRS))}
                if recorder_quest == 1:
                    props['effect'] = DRYOUT_WATER
                add((col * 2, row * 2), TileAction.RECORDER, props, recorder_quest)

            item = sparse.find_as(SparseKind.ITEM, room_id, SparseRoomItem)
            if item is not None:
                add(tile_coords(item.x, item.y), TileAction.ITEM,
                    {'interaction': Interaction.NONE.value, 'item': item_name(item.item_id)})

            if sparse.has(SparseKind.SHORTCUT, room_id):
                index = as_overworld_view(attrs).shortcut_stairs_index
                position = resources.level_info.shortcut_position_byte(index)
                col, row = SparsePos(room_id, position).room_coord
                add((col * 2, row * 2), TileAction.CAVE,
                    {'interaction': Interaction.NONE.value,
                     **self.entrance(room_id, camel_name(TileAction.CAVE))})
            return regions

        view = as_dungeon_view(attrs)
        if view.item_id not in (ItemId.MAX, ItemId.TRIFORCE_PIECE):
            x, y = resources.level_info.shortcut_position(view.item_position_index)
            props: Dict[str, Any] = {'interaction': Interaction.NONE.value,
                                     'item': item_name(view.item_id), 'persisted': True}
            if view.secret in (Secret.FOES_ITEM, Secret.LAST_BOSS):
                props['requirements'] = ALL_ENEMIES_DEFEATED
            else:
                props['room_item'] = True
            add(tile_coords(x, y), TileAction.ITEM, props)

        if view.secret == Secret.BLOCK_STAIRS:
            add(tile_coords(*BLOCK_STAIRS_POSITION), TileAction.STAIRS,
                {'interaction': Interaction.REVEALED.value,
                 **self.entrance(room_id, camel_name(TileAction.STAIRS))})

        if resources.level_info.triforce_room_id == room_id:
            add(TRIFORCE_POSITION, TileAction.ITEM,
                {'interaction': Interaction.NONE.value,
                 'item': item_name(ItemId.TRIFORCE_PIECE), 'persisted': True})

        block = self.first_push_block(room_id, screen, placements)
        if block is not None:
            regions.append(block)
        return regions

    def first_push_block(self, room_id: int, screen: np.ndarray,
                         placements: Sequence[SquarePlacement]) -> Optional[ActionRegion]:
        """The movable block of a dungeon room: the first block tile on the block row."""
        view = as_dungeon_view(self.resources.attributes(room_id))
        if not view.has_push_block:
            return None
        if view.secret not in (Secret.BLOCK_DOOR, Secret.BLOCK_STAIRS, Secret.NONE):
            return None

        for placement in placements:
            if placement.row != UW_BLOCK_ROW:
                continue
            if screen[UW_BLOCK_ROW, placement.column_x] != TileType.BLOCK:
                continue

            props: Dict[str, Any] = {
                'interaction': Interaction.PUSH.value,
                'appearance': camel_name(TileType.BLOCK),
                'repeatable': False,
            }
            if view.secret == Secret.BLOCK_STAIRS:
                props['reveals'] = SHORTCUT_STAIRS_NAME
            elif view.secret == Secret.BLOCK_DOOR:
                props['effect'] = OPEN_SHUTTER_DOORS
                props['requirements'] = ALL_ENEMIES_DEFEATED
            return ActionRegion(placement.column_x, UW_BLOCK_ROW, 1, 1, TileAction.PUSH_BLOCK,
                                self.room_quest(room_id), make_properties(props))
        return None

    # ------------------------------------------
    # Entry point
    # ------------------------------------------
    def extract(self, room_id: int, tile_attributes: bytes, screen: np.ndarray,
                placements: Sequence[SquarePlacement]) -> Tuple[ActionRegion, ...]:
        resources = self.resources
        regions = merge_horizontal(self.vertical_regions(room_id, tile_attributes, placements))

        sparse = resources.sparse
        if not sparse.has(SparseKind.LADDER, room_id):
            dropped = sum(1 for r in regions if r.action == TileAction.LADDER)
            if dropped:
                logger.debug(f"Room 0x{room_id:02X}: dropped {dropped} ladder regions")
            regions = tuple(r for r in regions if r.action != TileAction.LADDER)

        if not (resources.is_overworld and sparse.has(SparseKind.DOCK, room_id)):
            regions = tuple(r for r in regions if r.action != TileAction.RAFT)

        synthetic = self.synthetic_regions(room_id, screen, placements)
        return tuple(regions) + tuple(synthetic)
