"""A doubly linked list whose records live in an offset-addressed arena."""

from __future__ import annotations

import enum
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterator

from .coding import decode_fixed64, encode_fixed64

NULL_OFFSET = (1 << 64) - 1
PERSIST_TIME = (1 << 63) - 1
_ID_SIZE = 8


class RecordType(enum.IntEnum):
    """Kinds of records that may be kept in an arena."""

    LIST_RECORD = 1
    LIST_ELEM = 2
    HASH_RECORD = 3
    HASH_ELEM = 4


@dataclass(eq=False)
class DLRecord:
    """A record with links to its neighbours, stored as arena offsets."""

    record_type: RecordType
    timestamp: int
    key: bytes
    value: bytes
    prev: int = NULL_OFFSET
    next: int = NULL_OFFSET
    expire_time: int = PERSIST_TIME


class Arena:
    """Maps offsets to records and back, standing in for persistent space."""

    def __init__(self, block_size: int = 64) -> None:
        if block_size <= 0:
            raise ValueError("block size must be positive")
        self._block_size = block_size
        self._records: dict[int, DLRecord] = {}
        self._offsets: dict[DLRecord, int] = {}
        self._cursor = 0

    def store(self, record: DLRecord) -> int:
        """Store ``record`` at a fresh offset and return that offset."""
        while self._cursor in self._records:
            self._cursor += self._block_size
        offset = self._cursor
        self._place(offset, record)
        return offset

    def _place(self, offset: int, record: DLRecord) -> None:
        if offset < 0 or offset >= NULL_OFFSET:
            raise ValueError(f"invalid offset {offset:#x}")
        if offset in self._records:
            raise ValueError(f"offset {offset:#x} is already in use")
        if record in self._offsets:
            raise ValueError("record is already stored")
        self._records[offset] = record
        self._offsets[record] = offset

    def address_of(self, offset: int) -> DLRecord:
        """The record stored at ``offset``."""
        try:
            return self._records[offset]
        except KeyError:
            raise KeyError(f"no record at offset {offset:#x}") from None

    def offset_of(self, record: DLRecord) -> int:
        """The offset ``record`` is stored at."""
        try:
            return self._offsets[record]
        except KeyError:
            raise KeyError("record is not stored in this arena") from None

    def free(self, record: DLRecord) -> None:
        """Release the space held by ``record``."""
        offset = self.offset_of(record)
        del self._offsets[record]
        del self._records[offset]


def encode_id(collection_id: int) -> bytes:
    """Encode a collection id as 8 little-endian bytes."""
    return encode_fixed64(collection_id)


def decode_id(data: bytes) -> int:
    """Decode the collection id at the start of ``data``."""
    return decode_fixed64(data)


def internal_key(collection_id: int, key: bytes) -> bytes:
    """Prefix a user key with the id of the collection it belongs to."""
    return encode_id(collection_id) + key


def user_key(key: bytes) -> bytes:
    """Strip the collection id prefix from an internal key."""
    return key[_ID_SIZE:]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _text(data: bytes) -> str:
    return data.decode("utf-8", "backslashreplace")


class ListIterator:
    """A position in a :class:`GenericList`.

    The position past both ends serves as head and tail at once; moving
    forward from it reaches the front, moving backward reaches the back.
    """

    def __init__(self, owner: GenericList, record: DLRecord | None = None) -> None:
        self._owner = owner
        self._current = record

    def _copy(self) -> ListIterator:
        return ListIterator(self._owner, self._current)

    def advance(self) -> ListIterator:
        """Move to the next position and return self."""
        if self._current is None:
            self._current = self._owner._first
        elif self._current.next != NULL_OFFSET:
            self._current = self._owner._address_of(self._current.next)
        else:
            self._current = None
        return self

    def retreat(self) -> ListIterator:
        """Move to the previous position and return self."""
        if self._current is None:
            self._current = self._owner._last
        elif self._current.prev != NULL_OFFSET:
            self._current = self._owner._address_of(self._current.prev)
        else:
            self._current = None
        return self

    def record(self) -> DLRecord:
        """The record at this position."""
        if self._current is None:
            raise IndexError("iterator is at head/tail and has no record")
        return self._current

    def offset(self) -> int:
        """The arena offset of the record at this position."""
        return self._owner._offset_of(self.record())

    def at_end(self) -> bool:
        """Whether this is the head/tail position."""
        return self._current is None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ListIterator):
            return NotImplemented
        return self._owner is other._owner and self._current is other._current

    __hash__ = None  # type: ignore[assignment]


class GenericList:
    """A named list of records linked through arena offsets."""

    def __init__(self, data_type: RecordType = RecordType.LIST_ELEM) -> None:
        self.name = b""
        self.id = 0
        self.list_record: DLRecord | None = None
        self._data_type = data_type
        self._arena: Arena | None = None
        self._first: DLRecord | None = None
        self._last: DLRecord | None = None
        self._size = 0
        self._lock = threading.RLock()

    def _address_of(self, offset: int) -> DLRecord:
        assert self._arena is not None
        return self._arena.address_of(offset)

    def _offset_of(self, record: DLRecord) -> int:
        assert self._arena is not None
        return self._arena.offset_of(record)

    def _put(self, offset: int | None, record: DLRecord) -> int:
        assert self._arena is not None
        if offset is None:
            return self._arena.store(record)
        self._arena._place(offset, record)
        return offset

    def _require_valid(self) -> DLRecord:
        if self.list_record is None:
            raise RuntimeError("list is not initialised")
        return self.list_record

    def init(
        self,
        arena: Arena,
        offset: int | None,
        timestamp: int,
        key: bytes,
        collection_id: int,
    ) -> None:
        """Create the list record at ``offset`` (or a fresh offset if None)."""
        self.name = bytes(key)
        self.id = collection_id
        self._arena = arena
        record = DLRecord(
            RecordType.LIST_RECORD, timestamp, self.name, encode_id(collection_id)
        )
        self._put(offset, record)
        self.list_record = record

    def destroy(self, list_deleter: Callable[[DLRecord], object]) -> None:
        """Hand the list record to ``list_deleter``; the list must be empty."""
        if self._size != 0 or self.list_record is None or self._first or self._last:
            raise RuntimeError("Only initialized empty List can be destroyed!")
        list_deleter(self.list_record)
        self.list_record = None
        self._arena = None

    def valid(self) -> bool:
        """Whether the list has a list record."""
        return self.list_record is not None

    def restore(
        self,
        arena: Arena,
        list_record: DLRecord,
        first: DLRecord | None,
        last: DLRecord | None,
        size: int,
    ) -> None:
        """Rebuild the list from its list record, end records and size."""
        if len(list_record.value) != _ID_SIZE:
            raise ValueError("list record value is not a collection id")
        self.name = bytes(list_record.key)
        self.id = decode_id(list_record.value)
        self._arena = arena
        self.list_record = list_record
        self._first = first
        self._last = last
        self._size = size

    def lock(self) -> threading.RLock:
        """The reentrant lock guarding this list."""
        return self._lock

    def expire_time(self) -> int:
        """Expiry time of the list in milliseconds since the epoch."""
        return self._require_valid().expire_time

    def has_expired(self) -> bool:
        """Whether the list's expiry time has passed."""
        expire = self.expire_time()
        return expire != PERSIST_TIME and expire <= _now_ms()

    def set_expire_time(self, time: int) -> None:
        """Set the list's expiry time."""
        self._require_valid().expire_time = time

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[DLRecord]:
        it = self.front()
        while not it.at_end():
            yield it.record()
            it.advance()

    def __reversed__(self) -> Iterator[DLRecord]:
        it = self.back()
        while not it.at_end():
            yield it.record()
            it.retreat()

    def front(self) -> ListIterator:
        """Iterator at the first element (head/tail if empty)."""
        return self.head().advance()

    def back(self) -> ListIterator:
        """Iterator at the last element (head/tail if empty)."""
        return self.tail().retreat()

    def head(self) -> ListIterator:
        """The position before the first element."""
        return ListIterator(self)

    def tail(self) -> ListIterator:
        """The position after the last element."""
        return ListIterator(self)

    def seek(self, index: int) -> ListIterator:
        """Iterator at ``index``; negative counts from the back."""
        if index >= 0:
            it = self.front()
            while index != 0 and not it.at_end():
                it.advance()
                index -= 1
            return it
        it = self.back()
        while index != -1 and not it.at_end():
            it.retreat()
            index += 1
        return it

    def _check_position(self, pos: ListIterator) -> None:
        if pos._owner is not self:
            raise ValueError("iterator belongs to another list")

    def erase(
        self, pos: ListIterator, elem_deleter: Callable[[DLRecord], object]
    ) -> ListIterator:
        """Unlink the element at ``pos``, delete it and return the next position."""
        self._check_position(pos)
        if pos.at_end():
            raise ValueError("Cannot erase Head()")
        if self._size == 0:
            raise RuntimeError("Cannot erase from empty List!")
        record = pos.record()
        if decode_id(record.key) != self.id:
            raise ValueError("Erase from wrong List!")

        prev = pos._copy().retreat()
        nxt = pos._copy().advance()
        if prev.at_end() and nxt.at_end():
            self._first = None
            self._last = None
        elif prev.at_end():
            self._first = nxt.record()
            nxt.record().prev = NULL_OFFSET
        elif nxt.at_end():
            self._last = prev.record()
            prev.record().next = NULL_OFFSET
        else:
            nxt.record().prev = prev.offset()
            prev.record().next = nxt.offset()
        elem_deleter(record)
        self._size -= 1
        return nxt

    def pop_front(self, elem_deleter: Callable[[DLRecord], object]) -> None:
        """Remove the first element."""
        self.erase(self.front(), elem_deleter)

    def pop_back(self, elem_deleter: Callable[[DLRecord], object]) -> None:
        """Remove the last element."""
        self.erase(self.back(), elem_deleter)

    def emplace_before(
        self,
        offset: int | None,
        pos: ListIterator,
        timestamp: int,
        key: bytes,
        value: bytes,
    ) -> ListIterator:
        """Insert a new element before ``pos``."""
        self._check_position(pos)
        prev = pos._copy().retreat()
        result = self._emplace_between(offset, prev, pos._copy(), timestamp, key, value)
        self._size += 1
        return result

    def emplace_after(
        self,
        offset: int | None,
        pos: ListIterator,
        timestamp: int,
        key: bytes,
        value: bytes,
    ) -> ListIterator:
        """Insert a new element after ``pos``."""
        self._check_position(pos)
        nxt = pos._copy().advance()
        result = self._emplace_between(offset, pos._copy(), nxt, timestamp, key, value)
        self._size += 1
        return result

    def push_front(
        self, offset: int | None, timestamp: int, key: bytes, value: bytes
    ) -> ListIterator:
        """Insert a new first element."""
        result = self._emplace_between(
            offset, self.head(), self.front(), timestamp, key, value
        )
        self._size += 1
        return result

    def push_back(
        self, offset: int | None, timestamp: int, key: bytes, value: bytes
    ) -> ListIterator:
        """Insert a new last element."""
        result = self._emplace_between(
            offset, self.back(), self.tail(), timestamp, key, value
        )
        self._size += 1
        return result

    def replace(
        self,
        offset: int | None,
        pos: ListIterator,
        timestamp: int,
        key: bytes,
        value: bytes,
        elem_deleter: Callable[[DLRecord], object],
    ) -> ListIterator:
        """Put a new element in place of the one at ``pos`` and delete the old one."""
        self._check_position(pos)
        old = pos.record()
        if decode_id(old.key) != self.id:
            raise ValueError("Wrong List!")
        prev = pos._copy().retreat()
        nxt = pos._copy().advance()
        result = self._emplace_between(offset, prev, nxt, timestamp, key, value)
        elem_deleter(old)
        return result

    def _emplace_between(
        self,
        offset: int | None,
        prev: ListIterator,
        nxt: ListIterator,
        timestamp: int,
        key: bytes,
        value: bytes,
    ) -> ListIterator:
        self._require_valid()
        once = prev._copy().advance()
        if once != nxt and once.advance() != nxt:
            raise ValueError("Should only insert or replace")

        prev_off = NULL_OFFSET if prev.at_end() else prev.offset()
        next_off = NULL_OFFSET if nxt.at_end() else nxt.offset()
        record = DLRecord(
            self._data_type,
            timestamp,
            internal_key(self.id, key),
            bytes(value),
            prev_off,
            next_off,
        )
        new_off = self._put(offset, record)

        if prev.at_end() and nxt.at_end():
            self._first = record
            self._last = record
        elif prev.at_end():
            nxt.record().prev = new_off
            self._first = record
        elif nxt.at_end():
            prev.record().next = new_off
            self._last = record
        else:
            prev.record().next = new_off
            nxt.record().prev = new_off
        return ListIterator(self, record)

    def dump(self) -> str:
        """A human-readable listing of every element."""
        lines = ["Contents of List:\n"]
        for record in self:
            lines.append(
                f"Type:\t{int(record.record_type):#x}\t"
                f"Prev:\t{record.prev:#x}\t"
                f"Offset:\t{self._offset_of(record):#x}\t"
                f"Next:\t{record.next:#x}\t"
                f"ID:\t{decode_id(record.key):#x}\t"
                f"Key: {_text(user_key(record.key))}\t"
                f"Value: {_text(record.value)}\n"
            )
        return "".join(lines)