"""
COLUMN WALKER
=============
Expands a room's column descriptors into square placements.

Each room record holds one descriptor byte per pair of tile columns: the high
nibble picks a column table from the heap, the low nibble picks the n-th
logical column inside it. A logical column starts at the n-th byte with bit 7
set and runs until the room's row range is filled; a cell may repeat its
square below itself.

The walk is shared by the tile decoder and the action region extractor, so
both see exactly the same cells in the same order.
"""

from dataclasses import dataclass
from typing import Iterator, Tuple

from lozmap.core.errors import HeapTableError, LayoutDecodeError

COLUMN_START_MASK = 0x80


@dataclass(frozen=True)
class ColumnCell:
    square: int
    repeat: int

    @classmethod
    def parse(cls, value: int, open_layout: bool) -> 'ColumnCell':
        if open_layout:
            # bits 0-5 square, bit 6 "repeat once"
            return cls(square=value & 0x3F, repeat=1 if value & 0x40 else 0)
        # bits 0-2 square, bits 4-6 repeat count
        return cls(square=value & 0x07, repeat=(value >> 4) & 0x07)


@dataclass(frozen=True)
class SquarePlacement:
    """One 2x2 block written at (row, column_x) of the room screen."""
    column_x: int
    row: int
    square: int
    repeated: bool = False


def is_column_start(value: int) -> bool:
    return bool(value & COLUMN_START_MASK)


def find_column_start(column_table: bytes, column_index: int, max_offset: int) -> int:
    """Offset of the ``column_index``-th start marker, searching offsets 0..max_offset."""
    current = 0
    for offset in range(max_offset + 1):
        if offset >= len(column_table):
            raise LayoutDecodeError(
                f"column {column_index} search ran past the column table ({len(column_table)} bytes)"
            )
        if is_column_start(column_table[offset]):
            if current == column_index:
                return offset
            current += 1
    raise LayoutDecodeError(f"column {column_index} not found within {max_offset + 1} bytes")


def room_descriptors(resources, unique_room_id: int) -> bytes:
    if not 0 <= unique_room_id < len(resources.room_columns):
        raise LayoutDecodeError(
            f"unique room id {unique_room_id} outside {resources.name} ({len(resources.room_columns)} layouts)"
        )
    descriptors = resources.room_columns[unique_room_id]
    if len(descriptors) < resources.room_context.column_pairs:
        raise LayoutDecodeError(
            f"unique room {unique_room_id} has {len(descriptors)} column descriptors, "
            f"needs {resources.room_context.column_pairs}"
        )
    return descriptors


def iter_column(resources, descriptor_index: int, descriptor: int) -> Iterator[SquarePlacement]:
    """Placements of one logical column, top to bottom, repeats included."""
    context = resources.room_context
    table_index = (descriptor & 0xF0) >> 4
    column_index = descriptor & 0x0F

    try:
        table = resources.column_table.get(table_index)
    except HeapTableError as e:
        raise LayoutDecodeError(f"column table {table_index}: {e}") from e

    offset = find_column_start(table, column_index, context.max_column_start_offset)
    column_x = context.start_col + descriptor_index * 2
    row = context.start_row
    row_end = context.row_end

    while row < row_end:
        if offset >= len(table):
            raise LayoutDecodeError(
                f"column {column_index} of table {table_index} ends at row {row} of {row_end}"
            )
        cell = ColumnCell.parse(table[offset], context.open_layout)
        offset += 1

        yield SquarePlacement(column_x, row, cell.square)
        row += 2

        for _ in range(cell.repeat):
            if row >= row_end:
                break
            yield SquarePlacement(column_x, row, cell.square, repeated=True)
            row += 2


def iter_room_placements(resources, unique_room_id: int) -> Iterator[SquarePlacement]:
    """All placements of a room, column by column from the left."""
    descriptors = room_descriptors(resources, unique_room_id)
    for index in range(resources.room_context.column_pairs):
        yield from iter_column(resources, index, descriptors[index])


def room_placements(resources, unique_room_id: int) -> Tuple[SquarePlacement, ...]:
    return tuple(iter_room_placements(resources, unique_room_id))
