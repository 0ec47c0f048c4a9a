import pytest

from pmkvsim.kv_engines import (
    EngineFactory,
    KVEngine,
    MemoryEngine,
    NotFoundError,
    create_engine,
)


def test_memory_engine_basic():
    engine = create_engine("memory")
    engine.put(b"key1", b"value1")
    engine.put(b"key2", b"value2")
    engine.put(b"key3", b"value3")
    engine.put(b"key4", b"value3")

    assert engine.get(b"key2") == b"value2"
    engine.delete(b"key2")
    with pytest.raises(NotFoundError):
        engine.get(b"key2")
    engine.put(b"key2", b"value2")

    keys = [key for key, _ in engine.items()]
    assert keys == [b"key1", b"key2", b"key3", b"key4"]


def test_items_are_sorted_with_values():
    engine = MemoryEngine("mem")
    engine.put(b"b", b"2")
    engine.put(b"a", b"1")
    assert list(engine.items()) == [(b"a", b"1"), (b"b", b"2")]


def test_put_overwrites():
    engine = MemoryEngine()
    engine.put(b"k", b"old")
    engine.put(b"k", b"new")
    assert engine.get(b"k") == b"new"


def test_delete_missing_is_silent():
    engine = MemoryEngine()
    engine.delete(b"absent")
    assert list(engine.items()) == []


def test_not_found_is_lookup_error():
    engine = MemoryEngine()
    with pytest.raises(LookupError):
        engine.get(b"nothing")


def test_created_engine_gets_name():
    engine = create_engine("memory")
    assert isinstance(engine, MemoryEngine)
    assert engine.path == "memory"


def test_unknown_engine_raises():
    with pytest.raises(KeyError):
        create_engine("no-such-engine")


def test_factory_register_custom():
    class Custom(MemoryEngine):
        pass

    factory = EngineFactory()
    factory.register("custom", Custom)
    engine = factory.create("custom")
    assert type(engine) is Custom
    assert engine.path == "custom"
    with pytest.raises(KeyError):
        factory.create("memory")


def test_abstract_engine_cannot_instantiate():
    with pytest.raises(TypeError):
        KVEngine()