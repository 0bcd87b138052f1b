"""
LOZMAP - Room Layout Decoder and World Map Assembler
====================================================

Rebuilds the overworld and dungeon maps of the original Legend of Zelda
cartridge from its compressed room tables, and hands back tile rasters
plus annotated object layers for a generic tile-map editor.

Submodules:
- core: geometry, enumerations, exceptions
- data: heap tables, sparse attributes, room attributes, level info, ROM readers
- extraction: column decoder and action region extraction
- pipeline: dungeon reachability, world assembly, export orchestration

Pipeline:
    ROM image -> MapResources -> RoomLayoutDecoder (+ ActionRegionExtractor)
              -> DungeonReachabilityWalker -> WorldMapAssembler -> WorldMap
"""

__version__ = "1.0.0"

__all__ = ['core', 'data', 'extraction', 'pipeline']
