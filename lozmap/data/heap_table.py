"""
HEAP TABLE
==========
Indexed store of variable-length records.

Binary layout (little-endian):
    u16  entry_count
    i16  offsets[entry_count]    byte offsets relative to the end of this array
    u8   heap[...]

``get(i)`` returns ``heap[offsets[i]:]``; the record's own format decides how
much of that tail belongs to it. Column tables, object lists and sparse
attribute streams all use this layout.
"""

import logging
import struct
from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple, Type, TypeVar

from lozmap.core.errors import HeapTableError

logger = logging.getLogger(__name__)

T = TypeVar('T')

_COUNT = struct.Struct('<H')
_OFFSET = struct.Struct('<h')


@dataclass(frozen=True)
class HeapTable:
    """Read-only heap table loaded from a byte buffer."""
    offsets: Tuple[int, ...]
    heap: bytes

    @classmethod
    def load(cls, data: bytes) -> 'HeapTable':
        data = bytes(data)
        if len(data) < _COUNT.size:
            raise HeapTableError(f"heap table needs at least 2 bytes, got {len(data)}")

        (count,) = _COUNT.unpack_from(data, 0)
        heap_start = _COUNT.size + count * _OFFSET.size
        if heap_start > len(data):
            raise HeapTableError(
                f"offset table for {count} entries needs {heap_start} bytes, buffer has {len(data)}"
            )

        offsets = tuple(
            _OFFSET.unpack_from(data, _COUNT.size + i * _OFFSET.size)[0] for i in range(count)
        )
        return cls(offsets=offsets, heap=data[heap_start:])

    @classmethod
    def from_pointers(cls, pointers: Sequence[int], heap: bytes) -> 'HeapTable':
        """Build a table from a ROM pointer directory, rebased on its first pointer."""
        if not pointers:
            return cls(offsets=(), heap=bytes(heap))
        base = pointers[0]
        return cls(offsets=tuple(p - base for p in pointers), heap=bytes(heap))

    def __len__(self) -> int:
        return len(self.offsets)

    def get(self, index: int) -> bytes:
        if not 0 <= index < len(self.offsets):
            raise HeapTableError(f"entry {index} out of range (table has {len(self.offsets)})")
        offset = self.offsets[index]
        if offset < 0 or offset > len(self.heap):
            raise HeapTableError(f"entry {index} offset {offset} outside heap of {len(self.heap)} bytes")
        return self.heap[offset:]

    def get_as(self, index: int, record_type: Type[T]) -> T:
        """Decode entry ``index`` with ``record_type.from_bytes``."""
        return record_type.from_bytes(self.get(index))

    def to_bytes(self) -> bytes:
        header = _COUNT.pack(len(self.offsets))
        header += b''.join(_OFFSET.pack(o) for o in self.offsets)
        return header + self.heap


def build_heap_table(entries: Iterable[bytes], alignment: int = 1) -> bytes:
    """Serialise ``entries`` into heap table bytes, each entry starting on ``alignment``."""
    entries = [bytes(e) for e in entries]
    heap = bytearray()
    offsets = []
    for entry in entries:
        if alignment > 1 and len(heap) % alignment:
            heap.extend(b'\x00' * (alignment - len(heap) % alignment))
        if len(heap) > 0x7FFF:
            raise HeapTableError(f"heap offset {len(heap)} does not fit a signed 16-bit offset")
        offsets.append(len(heap))
        heap.extend(entry)

    logger.debug("Built heap table: %d entries, %d heap bytes", len(offsets), len(heap))
    return HeapTable(offsets=tuple(offsets), heap=bytes(heap)).to_bytes()
