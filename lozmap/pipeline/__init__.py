"""
Pipeline layer: reachability walk, world assembly and export.
"""

from .reachability import DungeonReachabilityWalker
from .assembler import (
    MapObject,
    MonsterEntry,
    ObjectLayer,
    WorldMap,
    WorldMapAssembler,
    format_monsters,
    monster_entries,
    room_properties,
)
from .export import ExportConfig, ExportSummary, MapExporter, save_rasters

__all__ = [
    'DungeonReachabilityWalker',
    'MapObject', 'MonsterEntry', 'ObjectLayer', 'WorldMap', 'WorldMapAssembler',
    'format_monsters', 'monster_entries', 'room_properties',
    'ExportConfig', 'ExportSummary', 'MapExporter', 'save_rasters',
]
