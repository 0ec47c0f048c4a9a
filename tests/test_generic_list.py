import pytest

from pmkvsim.generic_list import (
    NULL_OFFSET,
    PERSIST_TIME,
    Arena,
    DLRecord,
    GenericList,
    RecordType,
    decode_id,
    encode_id,
    internal_key,
    user_key,
)


def make_list(values=(), collection_id=7):
    arena = Arena()
    lst = GenericList(RecordType.LIST_ELEM)
    lst.init(arena, None, 1, b"mylist", collection_id)
    for value in values:
        lst.push_back(None, 2, b"", value)
    return arena, lst


def values(records):
    return [r.value for r in records]


def check_links(arena, lst):
    records = list(lst)
    if not records:
        return
    assert records[0].prev == NULL_OFFSET
    assert records[-1].next == NULL_OFFSET
    for a, b in zip(records, records[1:]):
        assert a.next == arena.offset_of(b)
        assert b.prev == arena.offset_of(a)


def test_init_creates_list_record():
    arena, lst = make_list()
    assert lst.valid()
    assert lst.name == b"mylist"
    assert lst.id == 7
    assert len(lst) == 0
    assert lst.list_record.value == encode_id(7)
    assert lst.list_record.record_type is RecordType.LIST_RECORD
    assert arena.address_of(arena.offset_of(lst.list_record)) is lst.list_record


def test_push_back_keeps_order_and_links():
    arena, lst = make_list([b"a", b"b", b"c"])
    assert values(lst) == [b"a", b"b", b"c"]
    assert values(reversed(lst)) == [b"c", b"b", b"a"]
    assert len(lst) == 3
    check_links(arena, lst)


def test_push_front_prepends():
    arena, lst = make_list()
    for v in (b"a", b"b", b"c"):
        lst.push_front(None, 2, b"", v)
    assert values(lst) == [b"c", b"b", b"a"]
    check_links(arena, lst)


def test_element_keys_carry_collection_id():
    _, lst = make_list(collection_id=9)
    lst.push_back(None, 2, b"k", b"v")
    record = lst.front().record()
    assert decode_id(record.key) == 9
    assert user_key(record.key) == b"k"
    assert record.record_type is RecordType.LIST_ELEM


def test_seek_positive_and_negative():
    _, lst = make_list([b"a", b"b", b"c", b"d"])
    assert lst.seek(0).record().value == b"a"
    assert lst.seek(2).record().value == b"c"
    assert lst.seek(-1).record().value == b"d"
    assert lst.seek(-4).record().value == b"a"
    assert lst.seek(4).at_end()
    assert lst.seek(-5).at_end()


def test_head_advances_to_front_and_tail_retreats_to_back():
    _, lst = make_list([b"a", b"b"])
    assert lst.head().advance() == lst.front()
    assert lst.tail().retreat() == lst.back()
    assert lst.back().advance() == lst.tail()


def test_iterator_at_end_has_no_record():
    _, lst = make_list()
    with pytest.raises(IndexError):
        lst.head().record()


def test_erase_middle_relinks_and_returns_next():
    arena, lst = make_list([b"a", b"b", b"c"])
    deleted = []
    nxt = lst.erase(lst.seek(1), deleted.append)
    assert nxt.record().value == b"c"
    assert values(deleted) == [b"b"]
    assert values(lst) == [b"a", b"c"]
    check_links(arena, lst)


def test_erase_last_returns_tail():
    _, lst = make_list([b"a", b"b"])
    assert lst.erase(lst.back(), lambda r: None).at_end()
    assert values(lst) == [b"a"]


def test_pop_front_and_back_free_records():
    arena, lst = make_list([b"a", b"b", b"c"])
    first_offset = lst.front().offset()
    lst.pop_front(arena.free)
    lst.pop_back(arena.free)
    assert values(lst) == [b"b"]
    assert len(lst) == 1
    check_links(arena, lst)
    with pytest.raises(KeyError):
        arena.address_of(first_offset)


def test_pop_until_empty():
    _, lst = make_list([b"a"])
    lst.pop_back(lambda r: None)
    assert len(lst) == 0
    assert lst.front().at_end()
    assert list(lst) == []


def test_pop_from_empty_list_raises():
    _, lst = make_list()
    with pytest.raises(ValueError):
        lst.pop_front(lambda r: None)


def test_erase_with_foreign_iterator_raises():
    _, lst = make_list([b"a"])
    _, other = make_list([b"x"])
    with pytest.raises(ValueError):
        lst.erase(other.front(), lambda r: None)


def test_emplace_before_and_after():
    arena, lst = make_list([b"a", b"c"])
    lst.emplace_before(None, lst.seek(1), 3, b"", b"b")
    lst.emplace_after(None, lst.back(), 3, b"", b"d")
    lst.emplace_before(None, lst.front(), 3, b"", b"0")
    assert values(lst) == [b"0", b"a", b"b", b"c", b"d"]
    assert len(lst) == 5
    check_links(arena, lst)


def test_emplace_returns_iterator_at_new_record():
    _, lst = make_list([b"a"])
    it = lst.emplace_after(None, lst.front(), 3, b"", b"b")
    assert it.record().value == b"b"
    assert it == lst.back()


def test_replace_keeps_size_and_deletes_old():
    arena, lst = make_list([b"a", b"b", b"c"])
    old = lst.seek(1).record()
    old_offset = arena.offset_of(old)
    lst.replace(None, lst.seek(1), 4, b"", b"B", arena.free)
    assert values(lst) == [b"a", b"B", b"c"]
    assert len(lst) == 3
    check_links(arena, lst)
    with pytest.raises(KeyError):
        arena.address_of(old_offset)


def test_replace_single_element():
    arena, lst = make_list([b"a"])
    lst.replace(None, lst.front(), 4, b"", b"z", arena.free)
    assert values(lst) == [b"z"]
    assert lst.front() == lst.back()


def test_explicit_offset_is_used():
    arena, lst = make_list()
    lst.push_back(1000, 2, b"", b"v")
    assert arena.offset_of(lst.front().record()) == 1000
    with pytest.raises(ValueError):
        lst.push_back(1000, 2, b"", b"w")


def test_destroy_requires_empty_list():
    _, lst = make_list([b"a"])
    with pytest.raises(RuntimeError):
        lst.destroy(lambda r: None)


def test_destroy_empty_list_hands_over_record():
    _, lst = make_list()
    record = lst.list_record
    deleted = []
    lst.destroy(deleted.append)
    assert deleted == [record]
    assert not lst.valid()


def test_restore_from_existing_records():
    arena, lst = make_list([b"a", b"b", b"c"])
    rebuilt = GenericList(RecordType.LIST_ELEM)
    rebuilt.restore(
        arena, lst.list_record, lst.front().record(), lst.back().record(), len(lst)
    )
    assert rebuilt.name == b"mylist"
    assert rebuilt.id == 7
    assert values(rebuilt) == [b"a", b"b", b"c"]
    assert values(reversed(rebuilt)) == [b"c", b"b", b"a"]


def test_restore_rejects_bad_list_record():
    arena = Arena()
    bad = DLRecord(RecordType.LIST_RECORD, 1, b"name", b"short")
    with pytest.raises(ValueError):
        GenericList().restore(arena, bad, None, None, 0)


def test_expire_time():
    _, lst = make_list()
    assert lst.expire_time() == PERSIST_TIME
    assert not lst.has_expired()
    lst.set_expire_time(1)
    assert lst.expire_time() == 1
    assert lst.has_expired()


def test_lock_is_reentrant():
    _, lst = make_list()
    with lst.lock():
        with lst.lock():
            lst.push_back(None, 2, b"", b"x")
    assert values(lst) == [b"x"]


def test_dump_lists_every_element():
    _, lst = make_list([b"a", b"b"])
    text = lst.dump()
    assert text.startswith("Contents of List:\n")
    assert "Value: a" in text and "Value: b" in text
    assert len(text.splitlines()) == len(lst) + 1


def test_id_helpers_round_trip():
    key = internal_key(5, b"user")
    assert decode_id(key) == 5
    assert user_key(key) == b"user"
    assert encode_id(1) == b"\x01" + b"\x00" * 7


def test_arena_store_and_lookup():
    arena = Arena()
    a = DLRecord(RecordType.LIST_ELEM, 1, b"", b"a")
    b = DLRecord(RecordType.LIST_ELEM, 1, b"", b"b")
    off_a = arena.store(a)
    off_b = arena.store(b)
    assert off_a != off_b
    assert arena.address_of(off_a) is a
    assert arena.offset_of(b) == off_b
    with pytest.raises(KeyError):
        arena.address_of(NULL_OFFSET)
    with pytest.raises(ValueError):
        arena.store(a)