"""
Tests for world map assembly: monster summaries, room metadata, object
layers and the stitched raster.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))
sys.path.insert(0, str(Path(__file__).parent))

from lozmap.core.definitions import BLANK_TILE, DoorType, ObjType, Secret, TileAction
from lozmap.core.errors import LayoutDecodeError
from lozmap.data.sparse import SparseKind, build_sparse_stream, rooms_stream
from lozmap.extraction.action_regions import ActionRegion
from lozmap.extraction.layout_decoder import RoomLayoutDecoder
from lozmap.pipeline.assembler import (
    MapObject,
    MonsterEntry,
    WorldMapAssembler,
    build_layers,
    format_monsters,
    monster_entries,
    region_to_object,
    room_properties,
)
from rom_builders import (
    cellar_room,
    dungeon_level_info,
    dungeon_room,
    make_dungeon,
    make_overworld,
    object_lists,
    overworld_room,
    sparse_table,
)


def monsters(resources, room_id=0):
    return format_monsters(monster_entries(resources, room_id))


def decode_all(resources):
    decoder = RoomLayoutDecoder(resources)
    return {room_id: decoder.decode(room_id) for room_id in resources.iter_room_ids()}


class TestMonsters:
    """Monster summary strings."""

    def test_entry_format(self):
        assert str(MonsterEntry(ObjType.RED_LYNEL, count=3)) == "RedLynel*3"
        assert str(MonsterEntry(ObjType.STALFOS, is_ringleader=True)) == "Stalfos[IsRingleader]"
        assert str(MonsterEntry(ObjType.BLUE_KEESE, point=(32, 157))) == "BlueKeese[X=32,Y=157]"

    def test_single_group(self):
        bundle = make_overworld([overworld_room(monster_count=4, monster_list_id=ObjType.RED_LYNEL)])
        assert monsters(bundle) == "RedLynel*4"

    def test_no_monsters(self):
        assert monsters(make_overworld([overworld_room()])) == ""

    def test_zora_comes_first(self):
        bundle = make_overworld([overworld_room(zora=True, monster_count=2, monster_list_id=ObjType.BLUE_MOBLIN)])
        assert monsters(bundle) == "Zora, BlueMoblin*2"

    def test_ringleader_split(self):
        bundle = make_dungeon([dungeon_room(monster_count=3, monster_list_id=ObjType.STALFOS,
                                            secret=Secret.RINGLEADER)])
        assert monsters(bundle) == "Stalfos[IsRingleader], Stalfos*2"

    def test_bosses_count_once(self):
        bundle = make_dungeon([dungeon_room(monster_count=3, monster_list_id=ObjType.ONE_DODONGO)])
        assert monsters(bundle) == "OneDodongo"

    def test_object_list_groups(self):
        objects = object_lists([ObjType.STALFOS, ObjType.STALFOS, ObjType.BLUE_KEESE, ObjType.STALFOS])
        bundle = make_dungeon([dungeon_room(monster_count=3, monster_list_id=ObjType.ROCK)], objects=objects)
        assert monsters(bundle) == "Stalfos*2, BlueKeese"

    def test_object_list_ringleader(self):
        objects = object_lists([ObjType.GIBDO, ObjType.GIBDO, ObjType.RED_DARKNUT])
        bundle = make_dungeon([dungeon_room(monster_count=3, monster_list_id=ObjType.ROCK,
                                            secret=Secret.RINGLEADER)], objects=objects)
        assert monsters(bundle) == "Gibdo[IsRingleader], Gibdo, RedDarknut"

    def test_short_object_list(self):
        objects = object_lists([ObjType.GIBDO])
        bundle = make_dungeon([dungeon_room(monster_count=2, monster_list_id=ObjType.ROCK)], objects=objects)
        with pytest.raises(LayoutDecodeError):
            monster_entries(bundle, 0)

    def test_cellar_keese(self):
        bundle = make_dungeon([cellar_room(left=0, right=0)])
        assert monsters(bundle) == ", ".join(f"BlueKeese[X={x},Y=157]" for x in (32, 96, 144, 208))


class TestRoomProperties:
    """Room metadata."""

    def test_dungeon_room(self):
        level_info = dungeon_level_info(boss_room_id=0, start_room_id=0, start_y=0x8D)
        bundle = make_dungeon([dungeon_room(up=DoorType.OPEN, left=DoorType.KEY, dark=True, sound=2)],
                              level_info=level_info)
        props = room_properties(bundle, 0)
        assert props['id'] == "00"
        assert props['doors'] == "Wall, Key, Wall, Open"
        assert props['entry_position'] == {'x': 0x78, 'y': 0x8D, 'direction': "Up"}
        settings = props['settings']
        assert settings['ambient_sound'] == "BossRoar2"
        assert settings['floor_tile'] == "Tile"
        assert set(settings['options']) == {"IsBossRoom", "IsDark", "IsEntryRoom"}

    def test_foes_door(self):
        bundle = make_dungeon([dungeon_room(secret=Secret.FOES_DOOR)])
        (interaction,) = room_properties(bundle, 0)['interactions']
        assert interaction['name'] == "FoesDoor"
        assert interaction['requirements'] == "AllEnemiesDefeated"
        assert interaction['effect'] == "OpenShutterDoors"

    def test_fireball_layout(self):
        bundle = make_dungeon([dungeon_room(uid=0x23)])
        assert room_properties(bundle, 0)['fireball_layout'] == 1

    def test_cellar_metadata(self):
        rooms = [dungeon_room(uid=2), dungeon_room(), cellar_room(left=0, right=1)]
        bundle = make_dungeon(rooms, width=3, level_info=dungeon_level_info(cellar_room_ids=bytes([2])))
        stairs = room_properties(bundle, 0)
        cellar = room_properties(bundle, 2)
        assert stairs['cellar'] == 2
        assert (cellar['cellar_left'], cellar['cellar_right']) == (0, 1)
        assert 'doors' not in cellar
        assert (cellar['settings']['inner_palette'], cellar['settings']['outer_palette']) == (2, 3)

    def test_hidden_from_map(self):
        rooms = [dungeon_room() for _ in range(3)]
        hidden = make_dungeon(rooms, width=3)
        shown = make_dungeon(rooms, width=3, level_info=dungeon_level_info(drawn_map=bytes([0] * 7 + [0x80])))
        assert "HiddenFromMap" in room_properties(hidden, 1, min_x=1, max_x=2)['settings']['options']
        assert "HiddenFromMap" not in room_properties(shown, 1, min_x=1, max_x=2)['settings']['options']
        assert "HiddenFromMap" not in room_properties(hidden, 1)['settings']['options']

    def test_overworld_room(self):
        sparse = sparse_table({
            SparseKind.LADDER: rooms_stream([0]),
            SparseKind.MAZE: build_sparse_stream([bytes([0, 8, 8, 2, 8, 1])]),
        })
        bundle = make_overworld([overworld_room(uid=0x0F, monsters_enter=True, sea=True, inner_palette=1)],
                                sparse=sparse)
        props = room_properties(bundle, 0, unique_room_id=0x0F)
        assert props['monsters_enter'] is True
        assert props['maze'] == {'path': ["Up", "Left", "Up", "Right"], 'exit_direction': "Up"}
        settings = props['settings']
        assert settings['ambient_sound'] == "Sea"
        assert settings['floor_tile'] == "Ground"
        assert settings['inner_palette'] == 1
        assert "PlaysSecretChime" in settings['options']
        assert "IsLadderAllowed" in settings['options']

    def test_name_and_extra_options(self):
        bundle = make_overworld([overworld_room()])
        props = room_properties(bundle, 0, name="Cave", options=("ShowPreviousMap",))
        assert props['id'] == "Cave"
        assert props['settings']['options'][0] == "ShowPreviousMap"


class TestObjectLayers:

    def test_region_to_world_pixels(self):
        region = ActionRegion(2, 4, 2, 3, TileAction.BOMB)
        obj = region_to_object(region, 5, 1, 1)
        assert (obj.x, obj.y, obj.width, obj.height) == ((32 + 2) * 8, (22 + 4) * 8, 32, 48)
        assert obj.name == "Bomb"
        assert obj.room_id == 5

    def test_quest_zero_layer_always_present(self):
        layers = build_layers([])
        assert [(layer.name, layer.quest_id) for layer in layers] == [("Object", 0)]

    def test_quest_layers_only_when_used(self):
        layers = build_layers([MapObject("Cave", 0, 0, 0, 16, 16, quest_id=2)])
        assert [layer.name for layer in layers] == ["Object", "Object (Quest 2)"]
        assert len(layers[1]) == 1

    def test_unknown_quest(self):
        with pytest.raises(LayoutDecodeError):
            build_layers([MapObject("Cave", 0, 0, 0, 16, 16, quest_id=3)])


class TestAssembly:

    @pytest.fixture
    def overworld(self):
        return make_overworld([overworld_room(uid=0), overworld_room(uid=2, quest=1)], width=2)

    def test_raster_layout(self, overworld):
        world = WorldMapAssembler(overworld).assemble(decode_all(overworld))
        assert world.tiles.shape == (22, 64)
        assert world.tiles.dtype == np.uint8
        assert (world.width_rooms, world.height_rooms) == (2, 1)
        assert world.tileset == 0
        assert world.room_screen(0, 0)[0, 0] == 0x40
        assert np.array_equal(world.room_screen(1, 0), decode_all(overworld)[1].screen)

    def test_emission_order_is_row_major(self, overworld):
        world = WorldMapAssembler(overworld).assemble(decode_all(overworld))
        order = world.emission_order()
        assert order[32] == world.tiles[0, 32]
        assert order[64] == world.tiles[1, 0]

    def test_objects_per_quest(self, overworld):
        world = WorldMapAssembler(overworld).assemble(decode_all(overworld))
        assert len(world.layer(0)) == 0
        quest_one = world.layer(1)
        assert quest_one.name == "Object (Quest 1)"
        cave = next(obj for obj in quest_one.objects if obj.name == "Cave")
        assert (cave.x, cave.y) == (32 * 8, 0)
        assert world.layer(2) is None

    def test_room_metadata(self, overworld):
        world = WorldMapAssembler(overworld).assemble(decode_all(overworld))
        assert set(world.rooms) == {0, 1}
        assert world.rooms[1]['unique_room_id'] == 2
        assert world.world_settings['world_type'] == "Overworld"

    def test_unvisited_rooms_are_blank(self, overworld):
        world = WorldMapAssembler(overworld, blank_tile=0x24).assemble(decode_all(overworld), visited={0})
        assert np.all(world.room_screen(1, 0) == 0x24)
        assert set(world.rooms) == {0}
        assert world.layer(1) is None

    def test_cellar_map(self):
        rooms = [dungeon_room(uid=2), cellar_room(left=0, right=0)]
        bundle = make_dungeon(rooms, width=2, level_info=dungeon_level_info(cellar_room_ids=bytes([1])))
        world = WorldMapAssembler(bundle).assemble(decode_all(bundle), visited={0}, cellar_room_ids=(1,))
        assert world.tileset == 1
        assert np.all(world.room_screen(1, 0) == BLANK_TILE)
        assert set(world.rooms) == {0}
        cellars = world.cellar_map
        assert cellars.tiles.shape == (22, 32)
        assert cellars.tiles[0, 0] == 0x40
        assert set(cellars.rooms) == {1}

    def test_walk_through_wall(self):
        bundle = make_overworld([overworld_room() for _ in range(32)], width=16, height=2)
        layout = RoomLayoutDecoder(bundle).decode(0x1F)
        world = WorldMapAssembler(bundle).assemble({0x1F: layout})
        (obj,) = world.layer(0).objects
        assert obj.name == "TileBehavior"
        assert (obj.x, obj.y, obj.width, obj.height) == (15 * 256 + 0x80, 176, 16, 32)
        assert obj.get('tile_behavior') == "GenericWalkable"

    def test_rooms_layer(self, overworld):
        world = WorldMapAssembler(overworld).assemble(decode_all(overworld))
        assert [layer.name for layer in world.layers] == ["Object", "Object (Quest 1)", "Rooms"]
        rooms = world.rooms_layer
        assert rooms.quest_id is None
        assert [obj.room_id for obj in rooms.objects] == [0, 1]
        second = rooms.objects[1]
        assert (second.x, second.y, second.width, second.height) == (256, 0, 256, 176)
        assert second.name == "01"
        assert second.get('unique_room_id') == 2
        assert second.get('settings') == world.rooms[1]['settings']

    def test_rooms_layer_is_not_a_quest_layer(self, overworld):
        world = WorldMapAssembler(overworld).assemble(decode_all(overworld))
        assert [layer.name for layer in world.object_layers] == ["Object", "Object (Quest 1)"]
        assert world.layer(0).name == "Object"

    def test_cellar_rooms_layer(self):
        rooms = [dungeon_room(uid=2), cellar_room(left=0, right=0)]
        bundle = make_dungeon(rooms, width=2, level_info=dungeon_level_info(cellar_room_ids=bytes([1])))
        world = WorldMapAssembler(bundle).assemble(decode_all(bundle), visited={0}, cellar_room_ids=(1,))
        assert [obj.room_id for obj in world.rooms_layer.objects] == [0]
        (cellar,) = world.cellar_map.rooms_layer.objects
        assert cellar.room_id == 1
        assert (cellar.x, cellar.y) == (0, 0)
        assert cellar.get('cellar_left') == 0

    def test_dungeon_raster_matches_rooms(self):
        rooms = [dungeon_room(uid=0), dungeon_room(uid=1), dungeon_room(uid=2), dungeon_room(uid=1)]
        bundle = make_dungeon(rooms, width=2, height=2)
        layouts = decode_all(bundle)
        world = WorldMapAssembler(bundle).assemble(layouts)
        for room_id, layout in layouts.items():
            room_x, room_y = bundle.room_position(room_id)
            for r, c in ((0, 0), (4, 4), (10, 6), (21, 31)):
                assert world.tiles[room_y * 22 + r, room_x * 32 + c] == layout.screen[r, c]
            assert np.array_equal(world.room_screen(room_x, room_y), layout.screen)
