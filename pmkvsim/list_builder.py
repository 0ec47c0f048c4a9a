"""Recovery of linked lists from the records found in an arena."""

from __future__ import annotations

import enum
import random
import threading
from dataclasses import dataclass
from typing import Any, Callable

from .generic_list import (
    NULL_OFFSET,
    Arena,
    DLRecord,
    GenericList,
    RecordType,
    decode_id,
)

MIDDLE_POINTS = 1024
_ID_SIZE = 8


class ListRecordKind(enum.Enum):
    """Where an element sits judging only by its own links."""

    UNIQUE = "unique"
    FIRST = "first"
    LAST = "last"
    MIDDLE = "middle"


def kind_of(elem: DLRecord) -> ListRecordKind:
    """Classify ``elem`` by which of its links are null."""
    if elem.prev == NULL_OFFSET:
        return ListRecordKind.UNIQUE if elem.next == NULL_OFFSET else ListRecordKind.FIRST
    return ListRecordKind.LAST if elem.next == NULL_OFFSET else ListRecordKind.MIDDLE


@dataclass
class _Primer:
    list_record: DLRecord | None = None
    unique: DLRecord | None = None
    first: DLRecord | None = None
    last: DLRecord | None = None
    size: int = 0


class GenericListBuilder:
    """Collects list and element records and rebuilds the lists they form.

    Elements left behind by interrupted operations are either repaired
    into their list or set aside as broken, to be cleaned afterwards:
    unfinished insertions and replacements are rolled back, unfinished
    removals are completed.
    """

    def __init__(
        self,
        arena: Arena,
        worker_count: int = 1,
        data_type: RecordType = RecordType.LIST_ELEM,
        seed: int | None = None,
    ) -> None:
        if worker_count <= 0:
            raise ValueError("worker count must be positive")
        self.arena = arena
        self.worker_count = worker_count
        self.data_type = data_type
        self._primers: dict[int, _Primer] = {}
        self._primers_lock = threading.Lock()
        self._brokens: list[DLRecord] = []
        self._brokens_lock = threading.Lock()
        self._rng = random.Random(seed)
        self._mpoint_count = 0
        self._mpoints: list[DLRecord | None] = [None] * MIDDLE_POINTS
        self._mpoints_lock = threading.Lock()

    @property
    def brokens(self) -> list[DLRecord]:
        """Elements set aside as broken so far."""
        with self._brokens_lock:
            return list(self._brokens)

    def _primer(self, collection_id: int) -> _Primer:
        return self._primers.setdefault(collection_id, _Primer())

    def add_list_record(self, record: DLRecord) -> None:
        """Register the record that names a list and holds its id."""
        if len(record.value) != _ID_SIZE:
            raise ValueError("list record value is not a collection id")
        collection_id = decode_id(record.value)
        with self._primers_lock:
            primer = self._primer(collection_id)
            if primer.list_record is not None:
                raise RuntimeError(f"duplicate list record for id {collection_id}")
            primer.list_record = record

    def add_list_elem(self, elem: DLRecord) -> None:
        """Register one element record."""
        if elem.record_type != self.data_type:
            raise ValueError(
                f"expected record type {self.data_type!r}, got {elem.record_type!r}"
            )
        kind = kind_of(elem)
        if kind is ListRecordKind.UNIQUE:
            self._add_unique(elem)
        elif kind is ListRecordKind.FIRST:
            self._add_first(elem)
        elif kind is ListRecordKind.LAST:
            self._add_last(elem)
        else:
            self._add_middle(elem)

    def process_cached_elems(self, func: Callable[[list, Any], Any], args: Any) -> Any:
        """Call ``func`` with the sampled middle elements and ``args``."""
        return func(self._mpoints, args)

    def rebuild_lists(self) -> list[GenericList]:
        """Build one list per list record, in order of collection id."""
        lists = []
        for collection_id in sorted(self._primers):
            primer = self._primers[collection_id]
            if primer.list_record is None:
                if primer.first or primer.last or primer.unique or primer.size:
                    raise RuntimeError(
                        f"elements found for id {collection_id} without a list record"
                    )
                continue
            rebuilt = GenericList(self.data_type)
            if primer.size == 0:
                if primer.first or primer.last or primer.unique:
                    raise RuntimeError(f"inconsistent empty list {collection_id}")
                rebuilt.restore(self.arena, primer.list_record, None, None, 0)
            elif primer.size == 1:
                if primer.first or primer.last or primer.unique is None:
                    raise RuntimeError(f"inconsistent one-element list {collection_id}")
                rebuilt.restore(
                    self.arena, primer.list_record, primer.unique, primer.unique, 1
                )
            else:
                if primer.first is None or primer.last is None or primer.unique:
                    raise RuntimeError(f"inconsistent list {collection_id}")
                rebuilt.restore(
                    self.arena, primer.list_record, primer.first, primer.last, primer.size
                )
            lists.append(rebuilt)
        return lists

    def clean_brokens(self, elem_deleter: Callable[[DLRecord], object]) -> None:
        """Check each broken element is really detached and hand it to the deleter."""
        for elem in self.brokens:
            kind = kind_of(elem)
            if kind is ListRecordKind.UNIQUE:
                raise RuntimeError("a unique element cannot be broken")
            if kind is ListRecordKind.FIRST and self._is_valid_first(elem):
                raise RuntimeError("broken first element is linked")
            if kind is ListRecordKind.LAST and self._is_valid_last(elem):
                raise RuntimeError("broken last element is linked")
            if kind is ListRecordKind.MIDDLE and not self._is_discarded_middle(elem):
                raise RuntimeError("broken middle element is linked")
            elem_deleter(elem)

    def _set_aside(self, elem: DLRecord) -> None:
        with self._brokens_lock:
            self._brokens.append(elem)

    def _add_unique(self, elem: DLRecord) -> None:
        collection_id = decode_id(elem.key)
        with self._primers_lock:
            primer = self._primer(collection_id)
            if primer.unique or primer.first or primer.last:
                raise RuntimeError(f"conflicting ends in list {collection_id}")
            primer.unique = elem
            primer.size += 1

    def _add_first(self, elem: DLRecord) -> None:
        if not self._is_valid_first(elem):
            self._set_aside(elem)
            return
        collection_id = decode_id(elem.key)
        with self._primers_lock:
            primer = self._primer(collection_id)
            if primer.first or primer.unique:
                raise RuntimeError(f"duplicate first element in list {collection_id}")
            primer.first = elem
            primer.size += 1

    def _add_last(self, elem: DLRecord) -> None:
        if not self._is_valid_last(elem):
            self._set_aside(elem)
            return
        collection_id = decode_id(elem.key)
        with self._primers_lock:
            primer = self._primer(collection_id)
            if primer.last or primer.unique:
                raise RuntimeError(f"duplicate last element in list {collection_id}")
            primer.last = elem
            primer.size += 1

    def _add_middle(self, elem: DLRecord) -> None:
        if not self._try_fix_middle(elem):
            self._set_aside(elem)
            return
        collection_id = decode_id(elem.key)
        with self._primers_lock:
            self._primer(collection_id).size += 1

        # Reservoir sampling: the k-th round replaces a slot with chance 1/(k+1).
        with self._mpoints_lock:
            count = self._mpoint_count
            self._mpoint_count += 1
            pos, rounds = count % MIDDLE_POINTS, count // MIDDLE_POINTS
            if self._rng.random() < 1.0 / (rounds + 1):
                self._mpoints[pos] = elem

    def _is_valid_first(self, elem: DLRecord) -> bool:
        successor = self.arena.address_of(elem.next)
        if successor.prev == NULL_OFFSET:
            return False  # interrupted push or pop at the front
        if successor.prev == self.arena.offset_of(elem):
            return True
        # interrupted replacement of the front
        if self.arena.address_of(successor.prev).next != elem.next:
            raise RuntimeError("corrupted links around first element")
        return False

    def _is_valid_last(self, elem: DLRecord) -> bool:
        predecessor = self.arena.address_of(elem.prev)
        if predecessor.next == NULL_OFFSET:
            return False  # interrupted push or pop at the back
        if predecessor.next == self.arena.offset_of(elem):
            return True
        # interrupted replacement of the back
        if self.arena.address_of(predecessor.next).prev != elem.prev:
            raise RuntimeError("corrupted links around last element")
        return False

    def _is_discarded_middle(self, elem: DLRecord) -> bool:
        if kind_of(elem) is not ListRecordKind.MIDDLE:
            raise ValueError("not a middle element")
        offset = self.arena.offset_of(elem)
        return (
            offset != self.arena.address_of(elem.prev).next
            and offset != self.arena.address_of(elem.next).prev
        )

    def _try_fix_middle(self, elem: DLRecord) -> bool:
        offset = self.arena.offset_of(elem)
        predecessor = self.arena.address_of(elem.prev)
        successor = self.arena.address_of(elem.next)
        if offset == predecessor.next:
            # normal middle, or a newer node whose linking was interrupted
            return offset == successor.prev
        if offset == successor.prev:
            # older node only half linked: complete the link from its predecessor
            predecessor.next = offset
            return True
        return False