"""
LOZMAP - Main Entry Point
=========================
Load ROM -> Build resources -> Walk dungeons -> Decode rooms -> Assemble maps

Usage:
    # Export the overworld
    python main.py zelda.nes --overworld

    # Export one dungeon (quest 1 = first quest)
    python main.py zelda.nes --level 3 --quest 1

    # Export everything and save the rasters
    python main.py zelda.nes --all --export maps.npz

    # Show which rooms each map kept
    python main.py zelda.nes --level 1 --ascii
"""

import argparse
import logging
import sys

import numpy as np

from lozmap.core.definitions import LEVEL_COUNT, QUEST_COUNT, SCREEN_COLUMNS, SCREEN_ROWS
from lozmap.data.rom import RomImage
from lozmap.pipeline.export import ExportConfig, ExportSummary, MapExporter, save_rasters

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def room_presence(world) -> str:
    """One character per room: '#' exported, '.' blank."""
    lines = []
    for room_y in range(world.height_rooms):
        row = []
        for room_x in range(world.width_rooms):
            screen = world.room_screen(room_x, room_y)
            row.append('#' if np.any(screen) else '.')
        lines.append("".join(row))
    return "\n".join(lines)


def print_summary(summary: ExportSummary, ascii_map: bool = False) -> None:
    # User-facing output - keep print() for CLI summary
    print(f"\n{'='*60}")
    print("EXPORT SUMMARY")
    print(f"{'='*60}")
    for name, world in summary.maps.items():
        layers = ", ".join(f"{layer.name}: {len(layer)}" for layer in world.layers)
        print(f"  ✓ {name}: {len(world.rooms)} rooms, raster {world.tiles.shape} ({layers})")
        if world.cellar_map is not None:
            print(f"    cellars: {len(world.cellar_map.rooms)} rooms")
        if ascii_map and world.tiles.shape[0] > SCREEN_ROWS and world.tiles.shape[1] > SCREEN_COLUMNS:
            print(room_presence(world))
    print(f"\n  Total: {len(summary.maps)} maps, {summary.room_count} rooms, {summary.object_count} objects")


def build_config(args) -> ExportConfig:
    quests = tuple(range(QUEST_COUNT)) if args.quest is None else (args.quest - 1,)
    levels = tuple(range(1, LEVEL_COUNT + 1)) if args.level is None else (args.level,)

    if args.all:
        return ExportConfig(quests=quests, levels=levels, include_common=not args.no_common,
                            use_wall_map=not args.no_walls)

    return ExportConfig(
        quests=quests,
        levels=levels,
        include_overworld=args.overworld,
        include_dungeons=args.level is not None,
        include_common=args.common,
        use_wall_map=not args.no_walls,
    )


def main() -> int:
    parser = argparse.ArgumentParser(
        description='LOZMAP - decode room layouts and assemble world maps from a ROM image'
    )

    parser.add_argument('rom', type=str, help='Path to the iNES ROM image')
    parser.add_argument(
        '--overworld', '-o', action='store_true',
        help='Export the overworld'
    )
    parser.add_argument(
        '--level', '-l', type=int, choices=range(1, LEVEL_COUNT + 1),
        help='Dungeon level (1-9)'
    )
    parser.add_argument(
        '--quest', '-q', type=int, choices=[1, 2],
        help='Quest (1 or 2, default: both)'
    )
    parser.add_argument(
        '--all', '-a', action='store_true',
        help='Export the overworld, every dungeon and the common rooms'
    )
    parser.add_argument(
        '--common', action='store_true',
        help='Also export the common rooms of the selected worlds'
    )
    parser.add_argument(
        '--no-common', action='store_true',
        help='With --all, skip the common rooms'
    )
    parser.add_argument(
        '--no-walls', action='store_true',
        help='Do not draw the dungeon wall frame'
    )
    parser.add_argument(
        '--export', '-e', type=str,
        help='Save all rasters to a compressed NPZ file'
    )
    parser.add_argument(
        '--ascii', action='store_true',
        help='Print which rooms each map kept'
    )
    parser.add_argument(
        '--verbose', '-v', action='store_true',
        help='Debug logging'
    )

    args = parser.parse_args()
    configure_logging(args.verbose)

    if not (args.all or args.overworld or args.level is not None):
        parser.error("one of --all, --overworld or --level is required")

    try:
        config = build_config(args)
        logger.info(f"[STEP 1] Loading ROM image {args.rom}")
        rom = RomImage.from_file(args.rom)

        logger.info("[STEP 2] Exporting maps")
        summary = MapExporter(config, rom=rom).export_all()
    except FileNotFoundError as e:
        logger.error(f"ROM image not found: {e}")
        return 1
    except (ValueError, IndexError) as e:
        logger.error(f"Export failed: {e}")
        return 1

    print_summary(summary, ascii_map=args.ascii)

    if args.export:
        save_rasters(summary.maps.values(), args.export)
        print(f"Exported to: {args.export}")  # User-facing output

    return 0


if __name__ == "__main__":
    sys.exit(main())
