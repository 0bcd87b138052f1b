"""
End-to-end tests of the export pipeline on synthetic bundles:
config validation, overworld and dungeon maps, common rooms and raster
archives.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))
sys.path.insert(0, str(Path(__file__).parent))

from lozmap.core.definitions import BLANK_TILE, DoorType, ItemId
from lozmap.data.resources import with_overrides
from lozmap.extraction.layout_decoder import RoomLayoutDecoder
from lozmap.pipeline.export import ExportConfig, MapExporter, save_rasters
from rom_builders import (
    OPEN_UNIQUE_ROOMS,
    cellar_room,
    dungeon_level_info,
    dungeon_room,
    make_dungeon,
    make_overworld,
    overworld_room,
)


@pytest.fixture
def overworld():
    # 2x2 world: A B / B A
    rooms = [overworld_room(uid=0), overworld_room(uid=2), overworld_room(uid=2), overworld_room(uid=0)]
    bundle = make_overworld(rooms, width=2, height=2)
    # Common rooms are addressed by unique room ids 0x79 and 0x7A
    columns = OPEN_UNIQUE_ROOMS + (bytes(16),) * (0x79 - len(OPEN_UNIQUE_ROOMS)) + (bytes([0x02] * 16), bytes(16))
    return with_overrides(bundle, room_columns=columns)


@pytest.fixture
def dungeon():
    rooms = [
        dungeon_room(uid=2),                                       # 0: stairs into the cellar
        dungeon_room(),                                            # 1: unreachable
        dungeon_room(uid=2, up=DoorType.OPEN),                     # 2
        cellar_room(left=0, right=2),                              # 3
        dungeon_room(item=ItemId.BOW, item_position=1),            # 4: item cellar layout
        dungeon_room(),                                            # 5
        dungeon_room(),                                            # 6
        dungeon_room(),                                            # 7: transport layout
    ]
    level_info = dungeon_level_info(start_room_id=0, cellar_room_ids=bytes([3]),
                                    shortcut_positions=bytes([0x00, 0x8C]))
    return make_dungeon(rooms, width=4, height=2, level_info=level_info)


class TestExportConfig:

    def test_defaults(self):
        config = ExportConfig()
        assert config.quests == (0, 1)
        assert config.levels == tuple(range(1, 10))

    def test_lists_become_tuples(self):
        assert ExportConfig(quests=[1], levels=[3]).levels == (3,)

    @pytest.mark.parametrize("changes", [
        {'quests': (2,)},
        {'levels': (0,)},
        {'levels': (10,)},
        {'blank_tile': 256},
    ])
    def test_invalid(self, changes):
        with pytest.raises(ValueError):
            ExportConfig(**changes)


class TestOverworldExport:

    def test_repeating_rooms(self, overworld):
        world = MapExporter(ExportConfig(), overworld=overworld).export_overworld()
        assert world.tiles.shape == (44, 64)
        assert np.array_equal(world.room_screen(0, 0), world.room_screen(1, 1))
        assert np.array_equal(world.room_screen(1, 0), world.room_screen(0, 1))
        decoder = RoomLayoutDecoder(overworld)
        assert np.array_equal(world.room_screen(0, 0), decoder.decode(0).screen)
        assert np.array_equal(world.room_screen(1, 0), decoder.decode(1).screen)
        assert not np.array_equal(world.room_screen(0, 0), world.room_screen(1, 0))
        assert len(world.rooms) == 4
        assert len(world.layer(0)) == 8

    def test_common_rooms(self, overworld):
        common = MapExporter(overworld=overworld).export_common(overworld)
        assert common.name == "OverworldCommon"
        assert common.tiles.shape == (22, 64)
        assert [common.rooms[i]['id'] for i in (0, 1)] == ["Cave", "Shortcut"]
        assert common.rooms[0]['unique_room_id'] == 0x79
        assert "ShowPreviousMap" in common.rooms[0]['settings']['options']
        assert common.room_screen(0, 0)[0, 0] == 0x44
        assert common.world_settings['world_type'] == "OverworldCommon"
        assert [obj.name for obj in common.rooms_layer.objects] == ["Cave", "Shortcut"]
        assert common.rooms_layer.objects[1].x == 256

    def test_missing_rom(self):
        with pytest.raises(ValueError):
            MapExporter().export_overworld()


class TestDungeonExport:

    def test_only_reachable_rooms(self, dungeon):
        world = MapExporter(underworld_base=dungeon).export_dungeon(0, 1)
        assert world.name == "Level00_01"
        assert set(world.rooms) == {0, 2}
        assert np.all(world.room_screen(1, 0) == BLANK_TILE)
        assert world.room_screen(0, 0)[4, 4] == 0x74

    def test_raster_matches_decoded_rooms(self, dungeon):
        world = MapExporter(underworld_base=dungeon).export_dungeon(0, 1)
        decoder = RoomLayoutDecoder(dungeon)
        assert np.array_equal(world.room_screen(0, 0), decoder.decode(0).screen)
        assert np.array_equal(world.room_screen(2, 0), decoder.decode(2).screen)

    def test_rooms_layer(self, dungeon):
        world = MapExporter(underworld_base=dungeon).export_dungeon(0, 1)
        assert world.layers[-1].name == "Rooms"
        assert [obj.room_id for obj in world.rooms_layer.objects] == [0, 2]
        assert [obj.room_id for obj in world.cellar_map.rooms_layer.objects] == [3]

    def test_cellar_map(self, dungeon):
        world = MapExporter(underworld_base=dungeon).export_dungeon(0, 1)
        assert set(world.cellar_map.rooms) == {3}
        assert np.all(world.room_screen(3, 0) == BLANK_TILE)

    def test_stairs_lead_to_transport(self, dungeon):
        world = MapExporter(underworld_base=dungeon).export_dungeon(0, 1)
        stairs = [obj for obj in world.layer(0).objects if obj.name == "Stairs"]
        assert len(stairs) == 2
        assert {obj.get('entrance_entry_x') for obj in stairs} == {0x30, 0xC0}
        assert all(obj.get('entrance_destination') == "Transport" for obj in stairs)

    def test_other_dungeons_need_a_rom(self, dungeon):
        with pytest.raises(ValueError):
            MapExporter(underworld_base=dungeon).export_dungeon(1, 1)

    def test_common_rooms(self, dungeon):
        exporter = MapExporter(underworld_base=dungeon)
        common = exporter.export_common(exporter.dungeon(0, 1))
        assert common.name == "UnderworldCommon"
        assert [common.rooms[i]['id'] for i in (0, 1)] == ["ItemCellar", "Transport"]
        (item,) = common.layer(0).objects
        assert item.get('item') == "ArgumentItem"
        assert item.get('item_options') == "LiftOverhead"


class TestExportAll:

    def test_every_requested_map(self, overworld, dungeon):
        config = ExportConfig(quests=(0,), levels=(1,))
        summary = MapExporter(config, overworld=overworld, underworld_base=dungeon).export_all()
        assert list(summary.maps) == ["Overworld", "OverworldCommon", "Level00_01", "UnderworldCommon"]
        assert summary.room_count == 4 + 2 + 2 + 2
        every_layer = sum(len(layer) for world in summary.maps.values() for layer in world.layers)
        assert summary.object_count == every_layer - summary.room_count
        assert all(world.rooms_layer is not None for world in summary.maps.values())

    def test_without_common_rooms(self, dungeon):
        config = ExportConfig(quests=(0,), levels=(1,), include_overworld=False, include_common=False)
        summary = MapExporter(config, underworld_base=dungeon).export_all()
        assert list(summary.maps) == ["Level00_01"]

    def test_failure_aborts(self, dungeon):
        config = ExportConfig(quests=(0, 1), levels=(1,), include_overworld=False)
        with pytest.raises(ValueError):
            MapExporter(config, underworld_base=dungeon).export_all()

    def test_save_rasters(self, dungeon, tmp_path):
        config = ExportConfig(quests=(0,), levels=(1,), include_overworld=False, include_common=False)
        summary = MapExporter(config, underworld_base=dungeon).export_all()
        path = tmp_path / "maps.npz"
        save_rasters(summary.maps.values(), path)
        with np.load(path) as archive:
            assert set(archive.files) == {"Level00_01", "Level00_01_cellars"}
            assert np.array_equal(archive["Level00_01"], summary.maps["Level00_01"].tiles)
