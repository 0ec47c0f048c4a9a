from dataclasses import dataclass

import pytest

from pmkvsim.configs import ImmutableConfigs


@dataclass
class _Configs:
    pmem_block_size: int = 0
    pmem_segment_blocks: int = 0


def test_fresh_configs_are_not_valid():
    assert ImmutableConfigs().valid() is False


def test_persist_copies_settings_and_validates():
    stored = ImmutableConfigs()
    stored.persist(_Configs(64, 256))
    assert stored.valid() is True
    assert stored.pmem_block_size == 64
    assert stored.pmem_segment_blocks == 256


def test_assign_to_overwrites_configs():
    stored = ImmutableConfigs()
    stored.persist(_Configs(32, 1024))
    target = _Configs(8, 8)
    stored.assign_to(target)
    assert target == _Configs(32, 1024)


def test_bytes_round_trip():
    stored = ImmutableConfigs()
    stored.persist(_Configs(16, 1 << 20))
    restored = ImmutableConfigs.from_bytes(stored.to_bytes())
    assert restored == stored
    assert restored.valid()


def test_layout_size_is_fixed():
    assert len(ImmutableConfigs(1, 64, 256).to_bytes()) == 24


def test_unpersisted_round_trip_stays_invalid():
    restored = ImmutableConfigs.from_bytes(ImmutableConfigs().to_bytes())
    assert restored.valid() is False


def test_from_bytes_rejects_wrong_length():
    with pytest.raises(ValueError):
        ImmutableConfigs.from_bytes(b"\x00" * 5)


def test_to_bytes_rejects_out_of_range_block_size():
    with pytest.raises(ValueError):
        ImmutableConfigs(1, 1 << 32, 1).to_bytes()