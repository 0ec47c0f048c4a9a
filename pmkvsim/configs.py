"""Configuration values fixed when an engine instance is first created."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any

# validation flag (u64), block size (u32), padding, segment blocks (u64)
_LAYOUT = struct.Struct("<QI4xQ")


@dataclass
class ImmutableConfigs:
    """Settings that must not change once an instance has been created.

    ``configs`` arguments are any object carrying ``pmem_block_size`` and
    ``pmem_segment_blocks`` attributes.
    """

    validation_flag: int = 0
    pmem_block_size: int = 0
    pmem_segment_blocks: int = 0

    def assign_to(self, configs: Any) -> None:
        """Copy the stored settings onto ``configs``."""
        configs.pmem_block_size = self.pmem_block_size
        configs.pmem_segment_blocks = self.pmem_segment_blocks

    def persist(self, configs: Any) -> None:
        """Take the settings from ``configs`` and mark this record valid."""
        self.pmem_block_size = configs.pmem_block_size
        self.pmem_segment_blocks = configs.pmem_segment_blocks
        self.validation_flag = 1

    def valid(self) -> bool:
        """Whether the settings have been persisted."""
        return bool(self.validation_flag)

    def to_bytes(self) -> bytes:
        """Serialise to the fixed on-media layout."""
        try:
            return _LAYOUT.pack(
                self.validation_flag, self.pmem_block_size, self.pmem_segment_blocks
            )
        except struct.error as exc:
            raise ValueError(f"configs out of range: {exc}") from exc

    @classmethod
    def from_bytes(cls, data: bytes) -> ImmutableConfigs:
        """Read settings back from the on-media layout."""
        if len(data) != _LAYOUT.size:
            raise ValueError(f"expected {_LAYOUT.size} bytes, got {len(data)}")
        flag, block_size, segment_blocks = _LAYOUT.unpack(data)
        return cls(flag, block_size, segment_blocks)