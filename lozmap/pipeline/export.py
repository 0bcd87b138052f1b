"""
EXPORT PIPELINE
===============
Runs the per-map flow end to end:

    resources -> reachability walk (dungeons) -> decode rooms -> assemble

and the common rooms every map links into (overworld cave and shortcut rooms,
underworld item cellar and transport rooms).

Usage:
    exporter = MapExporter(ExportConfig(quests=(0,), levels=(1, 2)), rom=RomImage.from_file(path))
    maps = exporter.export_all()
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from lozmap.core.definitions import (
    BLANK_TILE,
    LEVEL_COUNT,
    OVERWORLD_COMMON_ROOMS,
    QUEST_COUNT,
    SCREEN_COLUMNS,
    SCREEN_ROWS,
    UNDERWORLD_COMMON_ROOMS,
    ITEM_CELLAR_ROOM_NAME,
    WORLD_TYPE_NAMES,
    GameWorldType,
)
from lozmap.data import rom as rom_tables
from lozmap.data.resources import (
    MapResources,
    load_dungeon_resources,
    load_overworld_resources,
    load_underworld_base,
)
from lozmap.extraction.action_regions import make_properties
from lozmap.extraction.layout_decoder import RoomLayout, RoomLayoutDecoder
from lozmap.pipeline.assembler import (
    SHOW_PREVIOUS_MAP,
    MapObject,
    WorldMap,
    WorldMapAssembler,
    build_layers,
    build_rooms_layer,
    region_to_object,
    room_object,
    room_properties,
)
from lozmap.pipeline.reachability import DungeonReachabilityWalker

logger = logging.getLogger(__name__)

ARGUMENT_ITEM = "ArgumentItem"
LIFT_OVERHEAD = "LiftOverhead"


@dataclass
class ExportConfig:
    """What to export and how."""
    quests: Tuple[int, ...] = tuple(range(QUEST_COUNT))
    levels: Tuple[int, ...] = tuple(range(1, LEVEL_COUNT + 1))
    include_overworld: bool = True
    include_dungeons: bool = True
    include_common: bool = True
    blank_tile: int = BLANK_TILE
    use_wall_map: bool = True
    wall_map: Optional[np.ndarray] = None

    def __post_init__(self):
        self.quests = tuple(self.quests)
        self.levels = tuple(self.levels)
        for quest in self.quests:
            if not 0 <= quest < QUEST_COUNT:
                raise ValueError(f"quest must be in 0..{QUEST_COUNT - 1}, got {quest}")
        for level in self.levels:
            if not 1 <= level <= LEVEL_COUNT:
                raise ValueError(f"level must be in 1..{LEVEL_COUNT}, got {level}")
        if not 0 <= self.blank_tile <= 0xFF:
            raise ValueError(f"blank tile must be a byte, got {self.blank_tile}")


@dataclass
class ExportSummary:
    maps: Dict[str, WorldMap] = field(default_factory=dict)

    @property
    def room_count(self) -> int:
        return sum(len(m.rooms) for m in self.maps.values())

    @property
    def object_count(self) -> int:
        return sum(len(layer) for m in self.maps.values() for layer in m.object_layers)


class MapExporter:
    """
    Exports maps from a ROM image or from prebuilt resource bundles.

    Args:
        config: ExportConfig
        rom: RomImage to load bundles from (optional when bundles are given)
        overworld: prebuilt overworld bundle
        underworld_base: prebuilt underworld base bundle (quest 0, level 1)
    """

    def __init__(self, config: Optional[ExportConfig] = None, rom: Optional['rom_tables.RomImage'] = None,
                 overworld: Optional[MapResources] = None, underworld_base: Optional[MapResources] = None):
        self.config = config or ExportConfig()
        self.rom = rom
        self._overworld = overworld
        self._underworld_base = underworld_base
        self._wall_map = self.config.wall_map

        if self._wall_map is None and self.config.use_wall_map and rom is not None:
            self._wall_map = rom_tables.read_wall_tile_map(rom)

    # ------------------------------------------
    # Bundles
    # ------------------------------------------
    def _require_rom(self, what: str) -> 'rom_tables.RomImage':
        if self.rom is None:
            raise ValueError(f"no ROM image to load {what} from")
        return self.rom

    @property
    def overworld(self) -> MapResources:
        if self._overworld is None:
            self._overworld = load_overworld_resources(self._require_rom("the overworld"))
        return self._overworld

    @property
    def underworld_base(self) -> MapResources:
        if self._underworld_base is None:
            self._underworld_base = load_underworld_base(self._require_rom("the underworld"))
        return self._underworld_base

    def dungeon(self, quest: int, level: int) -> MapResources:
        if self.rom is None:
            base = self.underworld_base
            if (base.quest_id, base.level) != (quest, level):
                raise ValueError(f"no ROM image to load quest {quest} level {level} from")
            return base
        return load_dungeon_resources(self.rom, quest, level, self.underworld_base)

    def decoder(self, resources: MapResources) -> RoomLayoutDecoder:
        return RoomLayoutDecoder(resources, wall_map=self._wall_map)

    # ------------------------------------------
    # Maps
    # ------------------------------------------
    def export_map(self, resources: MapResources) -> WorldMap:
        """Decode and assemble one map."""
        visited = None
        cellar_ids: Tuple[int, ...] = ()
        if not resources.is_overworld:
            visited = DungeonReachabilityWalker(resources).walk()
            cellar_ids = tuple(
                room_id for room_id in resources.level_info.iter_cellar_room_ids()
                if room_id < resources.room_count
            )

        wanted = set(resources.iter_room_ids()) if visited is None else set(visited) | set(cellar_ids)
        decoder = self.decoder(resources)
        rooms: Dict[int, RoomLayout] = {room_id: decoder.decode(room_id) for room_id in sorted(wanted)}

        assembler = WorldMapAssembler(resources, blank_tile=self.config.blank_tile)
        return assembler.assemble(rooms, visited=visited, cellar_room_ids=cellar_ids)

    def export_overworld(self) -> WorldMap:
        logger.info("Exporting overworld")
        return self.export_map(self.overworld)

    def export_dungeon(self, quest: int, level: int) -> WorldMap:
        logger.info(f"Exporting quest {quest} level {level}")
        return self.export_map(self.dungeon(quest, level))

    def export_common(self, resources: MapResources) -> WorldMap:
        """The shared rooms of the overworld or the underworld, side by side."""
        if resources.is_overworld:
            entries: List[Tuple[int, Optional[int], str]] = [
                (0, unique_room_id, name) for unique_room_id, name in OVERWORLD_COMMON_ROOMS
            ]
            world_type = GameWorldType.OVERWORLD_COMMON
        else:
            entries = [(room_id, None, name) for room_id, name in UNDERWORLD_COMMON_ROOMS]
            world_type = GameWorldType.UNDERWORLD_COMMON

        decoder = self.decoder(resources)
        tiles = np.full((SCREEN_ROWS, len(entries) * SCREEN_COLUMNS), self.config.blank_tile, dtype=np.uint8)
        objects: List[MapObject] = []
        room_objects: List[MapObject] = []
        rooms = {}

        for index, (room_id, unique_room_id, name) in enumerate(entries):
            layout = decoder.decode(room_id, unique_room_id=unique_room_id)
            tiles[:, index * SCREEN_COLUMNS:(index + 1) * SCREEN_COLUMNS] = layout.screen

            regions = [region_to_object(r, room_id, index, 0) for r in layout.regions]
            if name == ITEM_CELLAR_ROOM_NAME:
                regions = [as_argument_item(obj) for obj in regions]
            objects.extend(regions)

            rooms[index] = room_properties(resources, room_id, name=name, options=(SHOW_PREVIOUS_MAP,),
                                           unique_room_id=layout.unique_room_id)
            room_objects.append(room_object(rooms[index], room_id, index, 0))

        common_name = WORLD_TYPE_NAMES[world_type]
        logger.info(f"Exported {common_name}: {len(entries)} rooms")
        return WorldMap(
            name=common_name,
            tiles=tiles,
            tileset=0 if resources.is_overworld else 1,
            layers=build_layers(objects) + (build_rooms_layer(room_objects),),
            rooms=rooms,
            world_settings=resources.level_info.world_settings(common_name),
        )

    def export_all(self) -> ExportSummary:
        """Every map the config asks for. Any failure aborts the run."""
        config = self.config
        summary = ExportSummary()

        if config.include_overworld:
            summary.maps[self.overworld.name] = self.export_overworld()
            if config.include_common:
                common = self.export_common(self.overworld)
                summary.maps[common.name] = common

        if config.include_dungeons:
            for quest in config.quests:
                for level in config.levels:
                    world = self.export_dungeon(quest, level)
                    summary.maps[world.name] = world
            if config.include_common:
                common = self.export_common(self.dungeon(0, 1))
                summary.maps[common.name] = common

        logger.info(f"Exported {len(summary.maps)} maps, {summary.room_count} rooms, "
                    f"{summary.object_count} objects")
        return summary


def as_argument_item(obj: MapObject) -> MapObject:
    """Item cellar items are picked per visit; mark them as lifted argument items."""
    props = dict(obj.properties)
    if 'item' not in props:
        return obj
    props['item'] = ARGUMENT_ITEM
    props['item_options'] = LIFT_OVERHEAD
    return replace(obj, properties=make_properties(props))


def save_rasters(maps: Iterable[WorldMap], path) -> None:
    """Write every raster (and cellar raster) into one compressed .npz archive."""
    arrays = {}
    for world in maps:
        key = world.name.replace(" ", "_")
        arrays[key] = world.tiles
        if world.cellar_map is not None:
            arrays[f"{key}_cellars"] = world.cellar_map.tiles
    np.savez_compressed(path, **arrays)
    logger.info(f"Saved {len(arrays)} rasters to {path}")
