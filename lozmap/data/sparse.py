"""
SPARSE ROOM ATTRIBUTES
======================
Optional per-room records ("this room has a dock", "this room's armos hides
stairs") stored as one heap table entry per attribute kind.

Stream layout of one entry:
    u8  record_count
    u8  record_size
    record_count * record_size bytes, byte 0 of every record is the RoomId

Most rooms have no record for most kinds; a miss is a normal answer.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Optional, Sequence, Tuple, Type, TypeVar

from lozmap.core.definitions import Direction
from lozmap.core.errors import HeapTableError
from lozmap.data.heap_table import HeapTable

logger = logging.getLogger(__name__)

T = TypeVar('T')


class SparseKind(IntEnum):
    """Heap table index of each sparse attribute stream."""
    ARMOS_STAIRS = 0
    ARMOS_ITEM = 1
    DOCK = 2
    ITEM = 3
    SHORTCUT = 4
    MAZE = 5
    SECRET_SCROLL = 6
    LADDER = 7
    RECORDER = 8
    FAIRY = 9
    ROOM_REPLACEMENT = 10


# ==========================================
# RECORD TYPES
# ==========================================
def _require(data: bytes, size: int, name: str) -> None:
    if len(data) < size:
        raise HeapTableError(f"{name} record needs {size} bytes, got {len(data)}")


@dataclass(frozen=True)
class SparsePos:
    """Room id plus a packed (column, row) block position."""
    room_id: int
    pos: int

    SIZE = 2

    @classmethod
    def from_bytes(cls, data: bytes) -> 'SparsePos':
        _require(data, cls.SIZE, cls.__name__)
        return cls(room_id=data[0], pos=data[1])

    @property
    def room_coord(self) -> Tuple[int, int]:
        """(column, row) in blocks; the row nibble counts from the top of the screen."""
        return (self.pos & 0xF0) >> 4, (self.pos & 0x0F) - 4


@dataclass(frozen=True)
class SparsePos2:
    """Room id plus pixel x/y."""
    room_id: int
    x: int
    y: int

    SIZE = 3

    @classmethod
    def from_bytes(cls, data: bytes) -> 'SparsePos2':
        _require(data, cls.SIZE, cls.__name__)
        return cls(room_id=data[0], x=data[1], y=data[2])


@dataclass(frozen=True)
class SparseRoomItem:
    room_id: int
    x: int
    y: int
    item_id: int

    SIZE = 4

    @classmethod
    def from_bytes(cls, data: bytes) -> 'SparseRoomItem':
        _require(data, cls.SIZE, cls.__name__)
        return cls(room_id=data[0], x=data[1], y=data[2], item_id=data[3])


@dataclass(frozen=True)
class SparseMaze:
    """Lost woods style room: the exit direction and the four-step path that solves it."""
    room_id: int
    exit_dir: int
    path: Tuple[int, int, int, int]

    SIZE = 6

    @classmethod
    def from_bytes(cls, data: bytes) -> 'SparseMaze':
        _require(data, cls.SIZE, cls.__name__)
        return cls(room_id=data[0], exit_dir=data[1], path=tuple(data[2:6]))

    @property
    def exit_direction(self) -> Direction:
        return Direction(self.exit_dir)

    @property
    def directions(self) -> Tuple[Direction, ...]:
        return tuple(Direction(step) for step in self.path)


# ==========================================
# RESOLVER
# ==========================================
class SparseAttributeResolver:
    """Looks up per-room records in a sparse attribute heap table."""

    def __init__(self, table: Optional[HeapTable]):
        self.table = table

    def find(self, kind: SparseKind, room_id: int) -> Optional[bytes]:
        """Return the exact record for ``room_id`` or None when the room has none."""
        if self.table is None or int(kind) >= len(self.table):
            return None

        stream = self.table.get(int(kind))
        if len(stream) < 2:
            raise HeapTableError(f"sparse stream {kind.name} is missing its header")

        count, record_size = stream[0], stream[1]
        if count and record_size == 0:
            raise HeapTableError(f"sparse stream {kind.name} declares zero-sized records")
        end = 2 + count * record_size
        if end > len(stream):
            raise HeapTableError(
                f"sparse stream {kind.name} declares {count}x{record_size} bytes, only {len(stream) - 2} present"
            )

        for start in range(2, end, record_size):
            if stream[start] == room_id:
                return stream[start:start + record_size]
        return None

    def find_as(self, kind: SparseKind, room_id: int, record_type: Type[T]) -> Optional[T]:
        record = self.find(kind, room_id)
        if record is None:
            return None
        return record_type.from_bytes(record)

    def has(self, kind: SparseKind, room_id: int) -> bool:
        return self.find(kind, room_id) is not None


def build_sparse_stream(records: Sequence[bytes], record_size: Optional[int] = None) -> bytes:
    """Pack fixed-size records (each starting with its RoomId) into one stream."""
    records = [bytes(r) for r in records]
    if record_size is None:
        record_size = len(records[0]) if records else 1
    for record in records:
        if len(record) != record_size:
            raise HeapTableError(f"record {record.hex()} is not {record_size} bytes")
    if len(records) > 0xFF or record_size > 0xFF:
        raise HeapTableError("sparse stream header only holds byte-sized counts")
    return bytes([len(records), record_size]) + b''.join(records)


def rooms_stream(room_ids: Iterable[int]) -> bytes:
    """Stream of bare one-byte records, used for flag kinds (dock, ladder, fairy...)."""
    return build_sparse_stream([bytes([room_id]) for room_id in room_ids], record_size=1)
