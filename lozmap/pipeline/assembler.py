"""
WORLD MAP ASSEMBLER
===================
Stitches decoded rooms into one world raster plus object layers.

Raster layout: ``tiles[room_y * 22 + row, room_x * 32 + col]``. Flattened
row-major this is screen row, then pixel row, then screen column, the order a
tile-layer consumer expects. Cellar rooms and rooms outside the visited set
are left blank; cellars get their own one-row map instead.

Object layers hold action regions converted to world pixels, one layer per
quest id: quest 0 always, quests 1 and 2 only when they have objects. A last
``Rooms`` layer holds one room-sized object per included room carrying its
metadata (palettes, monsters, doors, flags...); the same dicts are also kept
per room id in ``WorldMap.rooms``.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from lozmap.core.definitions import (
    BLANK_TILE,
    BLOCK_HEIGHT,
    BLOCK_WIDTH,
    DOOR_DIRECTION_ORDER,
    FIREBALL_LAYOUT_ROOMS,
    SCREEN_COLUMNS,
    SCREEN_ROWS,
    SECRET_CHIME_UNIQUE_ROOM,
    START_X,
    TILE_HEIGHT,
    TILE_WIDTH,
    WORLD_TYPE_NAMES,
    Direction,
    ObjType,
    Secret,
    TileType,
    camel_name,
    obj_type_name,
)
from lozmap.core.errors import LayoutDecodeError
from lozmap.data.room_attributes import as_dungeon_view, as_overworld_view
from lozmap.data.sparse import SparseKind, SparseMaze
from lozmap.extraction.action_regions import (
    ALL_ENEMIES_DEFEATED,
    OPEN_SHUTTER_DOORS,
    ActionRegion,
    Interaction,
    make_properties,
)

logger = logging.getLogger(__name__)

QUEST_LAYER_COUNT = 3
ROOMS_LAYER_NAME = "Rooms"

# Overworld room 0x1F has a wall Link can walk through
WALK_THROUGH_ROOM = 0x1F
WALK_THROUGH_OBJECT = {
    'x': 15 * SCREEN_COLUMNS * TILE_WIDTH + 0x80,
    'y': 1 * SCREEN_ROWS * TILE_HEIGHT,
    'width': BLOCK_WIDTH,
    'height': BLOCK_HEIGHT * 2,
}

# Cellars always hold four blue keese on one row
CELLAR_INNER_PALETTE = 2
CELLAR_OUTER_PALETTE = 3
CELLAR_KEESE_X = (0x20, 0x60, 0x90, 0xD0)
CELLAR_KEESE_Y = 0x9D

MINIMAP_WIDTH = 8
DRAWN_MAP_X_OFFSET = 4

# Room option flags
ENTRY_ROOM = "IsEntryRoom"
LADDER_ALLOWED = "IsLadderAllowed"
BOSS_ROOM = "IsBossRoom"
DARK_ROOM = "IsDark"
SECRET_CHIME = "PlaysSecretChime"
HIDDEN_FROM_MAP = "HiddenFromMap"
SHOW_PREVIOUS_MAP = "ShowPreviousMap"


# ==========================================
# MONSTERS
# ==========================================
@dataclass(frozen=True)
class MonsterEntry:
    obj_type: int
    is_ringleader: bool = False
    count: int = 1
    point: Optional[Tuple[int, int]] = None

    def __str__(self) -> str:
        text = obj_type_name(self.obj_type)
        params = []
        if self.point is not None:
            params.append(f"X={self.point[0]},Y={self.point[1]}")
        if self.is_ringleader:
            params.append("IsRingleader")
        if params:
            text += f"[{','.join(params)}]"
        if self.count > 1:
            text += f"*{self.count}"
        return text


def _add_monster(entries: List[MonsterEntry], obj_type: int, count: int, ringleader: bool) -> bool:
    """Append a monster group, splitting off the ringleader. Returns whether one is still pending."""
    if not ringleader:
        entries.append(MonsterEntry(obj_type, False, count))
        return False
    entries.append(MonsterEntry(obj_type, True, 1))
    if count - 1 > 0:
        entries.append(MonsterEntry(obj_type, False, count - 1))
    return False


def monster_entries(resources, room_id: int) -> Tuple[MonsterEntry, ...]:
    """Monster groups of a room, in the order they are listed."""
    attrs = resources.attributes(room_id)

    if resources.is_cellar_room(room_id):
        return tuple(MonsterEntry(ObjType.BLUE_KEESE, False, 1, (x, CELLAR_KEESE_Y)) for x in CELLAR_KEESE_X)

    count = attrs.monster_count
    if count == 0:
        return ()

    obj_id = attrs.monster_list_id
    if ObjType.ONE_DODONGO <= obj_id < ObjType.ROCK:
        count = 1

    entries: List[MonsterEntry] = []
    if resources.is_overworld and as_overworld_view(attrs).has_zora:
        entries.append(MonsterEntry(ObjType.ZORA))

    ringleader = not resources.is_overworld and as_dungeon_view(attrs).secret == Secret.RINGLEADER

    if obj_id >= ObjType.ROCK:
        if resources.object_lists is None:
            raise LayoutDecodeError(f"room 0x{room_id:02X} uses object list {obj_id - ObjType.ROCK} but none are loaded")
        monsters = resources.object_lists.get(obj_id - ObjType.ROCK)[:count]
        if len(monsters) < count:
            raise LayoutDecodeError(
                f"object list {obj_id - ObjType.ROCK} has {len(monsters)} entries, room 0x{room_id:02X} needs {count}"
            )
        groups: Dict[int, int] = OrderedDict()
        for monster in monsters:
            groups[monster] = groups.get(monster, 0) + 1
        for monster, group_count in groups.items():
            ringleader = _add_monster(entries, monster, group_count, ringleader)
    else:
        _add_monster(entries, obj_id, count, ringleader)

    return tuple(entries)


def format_monsters(entries: Iterable[MonsterEntry]) -> str:
    return ", ".join(str(e) for e in entries if e.obj_type != ObjType.NONE)


# ==========================================
# ROOM METADATA
# ==========================================
def _hidden_from_map(resources, room_id: int, min_x: int, max_x: int) -> bool:
    if min_x == 0 or max_x == 0:
        return False
    x, y = resources.room_position(room_id)
    xoff = (MINIMAP_WIDTH - (max_x - min_x + 1)) // 2
    drawn_x = x - min_x + xoff + DRAWN_MAP_X_OFFSET
    drawn_map = resources.level_info.drawn_map
    if not 0 <= drawn_x < len(drawn_map):
        return True
    return ((drawn_map[drawn_x] << y) & 0x80) == 0


def room_properties(resources, room_id: int, min_x: int = 0, max_x: int = 0,
                    name: Optional[str] = None, options: Sequence[str] = (),
                    unique_room_id: Optional[int] = None) -> Dict[str, Any]:
    """Metadata of one room as written to the ``Rooms`` layer."""
    attrs = resources.attributes(room_id)
    if unique_room_id is None:
        unique_room_id = attrs.unique_room_id
    level_info = resources.level_info
    is_cellar = resources.is_cellar_room(room_id)
    options = list(options)

    props: Dict[str, Any] = {
        'id': name if name is not None else f"{room_id:02X}",
        'unique_room_id': unique_room_id,
    }

    if resources.is_overworld:
        view = as_overworld_view(attrs)
        if view.monsters_enter:
            props['monsters_enter'] = True
        maze = resources.sparse.find_as(SparseKind.MAZE, room_id, SparseMaze)
        if maze is not None:
            props['maze'] = {
                'path': [camel_name(d) for d in maze.directions],
                'exit_direction': camel_name(maze.exit_direction),
            }

    if not resources.is_overworld:
        dungeon = as_dungeon_view(attrs)
        if is_cellar:
            props['cellar_left'] = dungeon.left_cellar_exit
            props['cellar_right'] = dungeon.right_cellar_exit
        else:
            props['doors'] = ", ".join(camel_name(dungeon.door(d)) for d in DOOR_DIRECTION_ORDER)
            if unique_room_id in FIREBALL_LAYOUT_ROOMS:
                props['fireball_layout'] = FIREBALL_LAYOUT_ROOMS.index(unique_room_id)
            if _hidden_from_map(resources, room_id, min_x, max_x):
                options.append(HIDDEN_FROM_MAP)
            cellar = level_info.find_cellar_item_room_id(room_id, resources.room_attributes)
            if cellar is not None:
                props['cellar'] = cellar

    inner_palette, outer_palette = attrs.inner_palette, attrs.outer_palette
    if is_cellar:
        inner_palette, outer_palette = CELLAR_INNER_PALETTE, CELLAR_OUTER_PALETTE

    monsters = format_monsters(monster_entries(resources, room_id))
    if monsters:
        props['monsters'] = monsters

    ambient_sound = None
    if resources.is_overworld:
        if as_overworld_view(attrs).has_ambient_sound:
            ambient_sound = "Sea"
        if unique_room_id == SECRET_CHIME_UNIQUE_ROOM:
            options.append(SECRET_CHIME)
    else:
        dungeon = as_dungeon_view(attrs)
        if dungeon.ambient_sound:
            ambient_sound = f"BossRoar{dungeon.ambient_sound}"
        if level_info.boss_room_id == room_id:
            options.append(BOSS_ROOM)
        if dungeon.is_dark:
            options.append(DARK_ROOM)
        if dungeon.secret == Secret.FOES_DOOR:
            props['interactions'] = [{
                'name': "FoesDoor",
                'interaction': Interaction.NONE.value,
                'requirements': ALL_ENEMIES_DEFEATED,
                'effect': OPEN_SHUTTER_DOORS,
            }]

    if resources.sparse.has(SparseKind.LADDER, room_id):
        options.append(LADDER_ALLOWED)
    if room_id == level_info.start_room_id:
        props['entry_position'] = {'x': START_X, 'y': level_info.start_y, 'direction': camel_name(Direction.UP)}
        options.append(ENTRY_ROOM)

    props['settings'] = {
        'inner_palette': inner_palette,
        'outer_palette': outer_palette,
        'options': tuple(options),
        'ambient_sound': ambient_sound,
        'floor_tile': camel_name(TileType.GROUND if resources.is_overworld else TileType.TILE),
    }
    return props


# ==========================================
# OUTPUT TYPES
# ==========================================
@dataclass(frozen=True)
class MapObject:
    """An action region in world pixel coordinates."""
    name: str
    room_id: int
    x: int
    y: int
    width: int
    height: int
    quest_id: int = 0
    properties: Tuple[Tuple[str, Any], ...] = ()

    def get(self, key: str, default: Any = None) -> Any:
        return dict(self.properties).get(key, default)


@dataclass
class ObjectLayer:
    name: str
    quest_id: Optional[int]                # None for the Rooms layer
    objects: List[MapObject] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.objects)


@dataclass
class WorldMap:
    name: str
    tiles: np.ndarray                      # (height * 22, width * 32) uint8
    tileset: int                           # 0 overworld, 1 underworld
    layers: Tuple[ObjectLayer, ...]
    rooms: Dict[int, Dict[str, Any]] = field(default_factory=dict)
    world_settings: Dict[str, Any] = field(default_factory=dict)
    cellar_map: Optional['WorldMap'] = None

    @property
    def width_rooms(self) -> int:
        return self.tiles.shape[1] // SCREEN_COLUMNS

    @property
    def height_rooms(self) -> int:
        return self.tiles.shape[0] // SCREEN_ROWS

    def layer(self, quest_id: int) -> Optional[ObjectLayer]:
        for layer in self.layers:
            if layer.quest_id == quest_id:
                return layer
        return None

    @property
    def rooms_layer(self) -> Optional[ObjectLayer]:
        for layer in self.layers:
            if layer.name == ROOMS_LAYER_NAME:
                return layer
        return None

    @property
    def object_layers(self) -> Tuple[ObjectLayer, ...]:
        """Quest layers only."""
        return tuple(layer for layer in self.layers if layer.quest_id is not None)

    def room_screen(self, room_x: int, room_y: int) -> np.ndarray:
        return self.tiles[room_y * SCREEN_ROWS:(room_y + 1) * SCREEN_ROWS,
                          room_x * SCREEN_COLUMNS:(room_x + 1) * SCREEN_COLUMNS]

    def emission_order(self) -> np.ndarray:
        """Tiles in tile-layer order: screen row, pixel row, screen column."""
        return self.tiles.reshape(-1)


def layer_name(quest_id: int) -> str:
    return "Object" if quest_id == 0 else f"Object (Quest {quest_id})"


def region_to_object(region: ActionRegion, room_id: int, room_x: int, room_y: int) -> MapObject:
    return MapObject(
        name=region.name,
        room_id=room_id,
        x=(room_x * SCREEN_COLUMNS + region.x) * TILE_WIDTH,
        y=(room_y * SCREEN_ROWS + region.y) * TILE_HEIGHT,
        width=region.width * BLOCK_WIDTH,
        height=region.height * BLOCK_HEIGHT,
        quest_id=region.quest_id,
        properties=region.properties,
    )


def build_layers(objects: Iterable[MapObject]) -> Tuple[ObjectLayer, ...]:
    buckets = [ObjectLayer(layer_name(q), q) for q in range(QUEST_LAYER_COUNT)]
    for obj in objects:
        if not 0 <= obj.quest_id < QUEST_LAYER_COUNT:
            raise LayoutDecodeError(f"object {obj.name} in room 0x{obj.room_id:02X} has quest {obj.quest_id}")
        buckets[obj.quest_id].objects.append(obj)
    return tuple(layer for layer in buckets if layer.quest_id == 0 or layer.objects)


def room_object(props: Dict[str, Any], room_id: int, room_x: int, room_y: int) -> MapObject:
    """A room-sized object carrying the room's metadata."""
    return MapObject(
        name=str(props['id']),
        room_id=room_id,
        x=room_x * SCREEN_COLUMNS * TILE_WIDTH,
        y=room_y * SCREEN_ROWS * TILE_HEIGHT,
        width=SCREEN_COLUMNS * TILE_WIDTH,
        height=SCREEN_ROWS * TILE_HEIGHT,
        quest_id=0,
        properties=make_properties(props),
    )


def build_rooms_layer(room_objects: Iterable[MapObject]) -> ObjectLayer:
    return ObjectLayer(ROOMS_LAYER_NAME, None, list(room_objects))


# ==========================================
# ASSEMBLER
# ==========================================
class WorldMapAssembler:
    """Builds the WorldMap of one map from its decoded rooms."""

    def __init__(self, resources, blank_tile: int = BLANK_TILE):
        self.resources = resources
        self.blank_tile = blank_tile

    def assemble(self, rooms: Mapping[int, Any], visited: Optional[Iterable[int]] = None,
                 cellar_room_ids: Iterable[int] = ()) -> WorldMap:
        """
        Args:
            rooms: room id -> RoomLayout for every decoded room
            visited: rooms that belong to this map; None keeps every room
            cellar_room_ids: rooms drawn on the cellar map instead

        Returns:
            WorldMap with raster, object layers, room metadata and cellar map
        """
        resources = self.resources
        width, height = resources.world_width, resources.world_height
        visited = None if visited is None else frozenset(visited)
        cellar_ids = tuple(dict.fromkeys(cellar_room_ids))
        cellar_set = frozenset(cellar_ids)

        tiles = np.full((height * SCREEN_ROWS, width * SCREEN_COLUMNS), self.blank_tile, dtype=np.uint8)

        included = [
            room_id for room_id in range(resources.room_count)
            if room_id in rooms
            and (visited is None or room_id in visited)
            and room_id not in cellar_set
        ]
        xs = [resources.room_position(r)[0] for r in included]
        min_x, max_x = (min(xs), max(xs)) if xs else (0, 0)

        objects: List[MapObject] = []
        room_objects: List[MapObject] = []
        room_meta: Dict[int, Dict[str, Any]] = {}

        for room_id in included:
            layout = rooms[room_id]
            room_x, room_y = resources.room_position(room_id)
            tiles[room_y * SCREEN_ROWS:(room_y + 1) * SCREEN_ROWS,
                  room_x * SCREEN_COLUMNS:(room_x + 1) * SCREEN_COLUMNS] = layout.screen
            objects.extend(region_to_object(r, room_id, room_x, room_y) for r in layout.regions)
            if resources.is_overworld and room_id == WALK_THROUGH_ROOM:
                objects.append(self.walk_through_object(room_id))
            room_meta[room_id] = room_properties(resources, room_id, min_x, max_x,
                                                 unique_room_id=layout.unique_room_id)
            room_objects.append(room_object(room_meta[room_id], room_id, room_x, room_y))

        world_type = WORLD_TYPE_NAMES[resources.world_type]
        world = WorldMap(
            name=resources.name,
            tiles=tiles,
            tileset=0 if resources.is_overworld else 1,
            layers=build_layers(objects) + (build_rooms_layer(room_objects),),
            rooms=room_meta,
            world_settings=resources.level_info.world_settings(world_type),
            cellar_map=self.assemble_cellars(rooms, cellar_ids) if cellar_ids else None,
        )

        logger.info(f"Assembled {resources.name}: {len(included)} rooms, "
                    f"{len(objects)} objects, {len(cellar_ids)} cellars")
        return world

    def assemble_cellars(self, rooms: Mapping[int, Any], cellar_ids: Sequence[int]) -> WorldMap:
        """Cellar rooms side by side on a single row."""
        present = [room_id for room_id in cellar_ids if room_id in rooms]
        tiles = np.full((SCREEN_ROWS, max(len(present), 1) * SCREEN_COLUMNS), self.blank_tile, dtype=np.uint8)
        objects: List[MapObject] = []
        room_objects: List[MapObject] = []
        room_meta: Dict[int, Dict[str, Any]] = {}

        for index, room_id in enumerate(present):
            layout = rooms[room_id]
            tiles[:, index * SCREEN_COLUMNS:(index + 1) * SCREEN_COLUMNS] = layout.screen
            objects.extend(region_to_object(r, room_id, index, 0) for r in layout.regions)
            room_meta[room_id] = room_properties(self.resources, room_id, unique_room_id=layout.unique_room_id)
            room_objects.append(room_object(room_meta[room_id], room_id, index, 0))

        return WorldMap(
            name=f"{self.resources.name} cellars",
            tiles=tiles,
            tileset=0 if self.resources.is_overworld else 1,
            layers=build_layers(objects) + (build_rooms_layer(room_objects),),
            rooms=room_meta,
        )

    @staticmethod
    def walk_through_object(room_id: int) -> MapObject:
        return MapObject(
            name="TileBehavior",
            room_id=room_id,
            quest_id=0,
            properties=(('tile_behavior', "GenericWalkable"), ('type', "TileBehavior")),
            **WALK_THROUGH_OBJECT,
        )
