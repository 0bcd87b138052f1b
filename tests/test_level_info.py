"""
Tests for the 200-byte level info block.
"""

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))
sys.path.insert(0, str(Path(__file__).parent))

from lozmap.core.errors import RomFormatError
from lozmap.data.level_info import LEVEL_INFO_SIZE, LevelInfoBlock
from rom_builders import cellar_room, dungeon_room


class TestLevelInfoFields:
    """Field accessors and the builder."""

    def test_single_byte_fields(self):
        block = LevelInfoBlock.build(start_y=0x8D, start_room_id=0x73, triforce_room_id=0x24,
                                     boss_room_id=0x35, song=2, level_number=4,
                                     effective_level_number=4, drawn_map_offset=1)
        assert block.start_y == 0x8D
        assert block.start_room_id == 0x73
        assert block.triforce_room_id == 0x24
        assert block.boss_room_id == 0x35
        assert block.level_number == 4
        assert len(block.raw) == LEVEL_INFO_SIZE

    def test_wrong_size_rejected(self):
        with pytest.raises(RomFormatError):
            LevelInfoBlock(b'\x00' * 199)

    def test_unknown_field(self):
        with pytest.raises(KeyError):
            LevelInfoBlock.build(not_a_field=1)

    def test_array_field_too_long(self):
        with pytest.raises(ValueError):
            LevelInfoBlock.build(shortcut_positions=bytes(5))

    def test_palettes(self):
        palettes = bytes(range(32))
        block = LevelInfoBlock.build(palettes=palettes)
        assert block.palette(1) == bytes([4, 5, 6, 7])
        with pytest.raises(IndexError):
            block.palette(8)

    def test_palette_sequence(self):
        block = LevelInfoBlock.build(dark_palettes=bytes(range(32)))
        assert block.palette_sequence('dark', 1, 1) == bytes([12, 13, 14, 15])
        with pytest.raises(IndexError):
            block.palette_sequence('dark', 0, 2)

    def test_shortcut_position(self):
        block = LevelInfoBlock.build(shortcut_positions=bytes([0x00, 0x8C]))
        assert block.shortcut_position_byte(1) == 0x8C
        assert block.shortcut_position(1) == (0x80, 0xC0)

    def test_world_settings(self):
        block = LevelInfoBlock.build(level_number=3, song=1)
        settings = block.world_settings("Underworld")
        assert settings['world_type'] == "Underworld"
        assert settings['level_number'] == 3
        assert len(settings['palettes']) == 8


class TestCellarList:
    """Cellar room ids and stair lookups."""

    def test_list_stops_at_terminator(self):
        block = LevelInfoBlock.build(cellar_room_ids=bytes([0x02, 0x05, 0x80, 0x07]))
        assert list(block.iter_cellar_room_ids()) == [0x02, 0x05]

    def test_default_list_is_empty(self):
        assert list(LevelInfoBlock.build().iter_cellar_room_ids()) == []

    def test_find_cellar_pair(self):
        rooms = [dungeon_room() for _ in range(4)]
        rooms[3] = cellar_room(left=0, right=2)
        block = LevelInfoBlock.build(cellar_room_ids=bytes([3]))
        assert block.find_cellar_room_ids(2, rooms) == (0, 2)
        assert block.find_cellar_room_ids(1, rooms) is None
        assert block.find_cellar_item_room_id(0, rooms) == 3
        assert block.find_cellar_item_room_id(1, rooms) is None

    def test_out_of_range_cellar_ids_are_skipped(self):
        rooms = [dungeon_room()]
        block = LevelInfoBlock.build(cellar_room_ids=bytes([0x40]))
        assert block.find_cellar_room_ids(0, rooms) is None
