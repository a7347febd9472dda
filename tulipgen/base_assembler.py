"""A little-endian machine code buffer with labels."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class LabelUpdate:
    """A place in the buffer to patch once a label's address is known."""

    address: int
    name: str
    size: int


class BaseAssembler:
    """Collects bytes as if they were placed at ``base_address``."""

    def __init__(self, base_address: int) -> None:
        self.base_address = base_address
        self.data = bytearray()
        self.labels: dict[str, int] = {}
        self.label_updates: list[LabelUpdate] = []
        self.absolute_label_updates: list[LabelUpdate] = []

    def current_address(self) -> int:
        """The address the next byte will be written at."""
        return self.base_address + len(self.data)

    def buffer(self) -> bytes:
        """The bytes assembled so far."""
        return bytes(self.data)

    def _offset(self, address: int, width: int) -> int:
        offset = address - self.base_address
        if offset < 0 or offset + width > len(self.data):
            raise IndexError(f"address {address:#x} is outside the assembled code")
        return offset

    def _read(self, address: int, width: int) -> int:
        offset = self._offset(address, width)
        return int.from_bytes(self.data[offset : offset + width], "little", signed=True)

    def _write(self, value: int, width: int) -> None:
        mask = (1 << (8 * width)) - 1
        self.data += (value & mask).to_bytes(width, "little")

    def _rewrite(self, address: int, value: int, width: int) -> None:
        offset = self._offset(address, width)
        mask = (1 << (8 * width)) - 1
        self.data[offset : offset + width] = (value & mask).to_bytes(width, "little")

    def _resolve(self, name: str) -> int:
        try:
            return self.labels[name]
        except KeyError:
            raise KeyError(f"undefined label {name!r}") from None

    def read8(self, address: int) -> int:
        return self._read(address, 1)

    def read16(self, address: int) -> int:
        return self._read(address, 2)

    def read32(self, address: int) -> int:
        return self._read(address, 4)

    def read64(self, address: int) -> int:
        return self._read(address, 8)

    def write8(self, value: int) -> None:
        self._write(value, 1)

    def write16(self, value: int) -> None:
        self._write(value, 2)

    def write32(self, value: int) -> None:
        self._write(value, 4)

    def write64(self, value: int) -> None:
        self._write(value, 8)

    def rewrite8(self, address: int, value: int) -> None:
        self._rewrite(address, value, 1)

    def rewrite16(self, address: int, value: int) -> None:
        self._rewrite(address, value, 2)

    def rewrite32(self, address: int, value: int) -> None:
        self._rewrite(address, value, 4)

    def rewrite64(self, address: int, value: int) -> None:
        self._rewrite(address, value, 8)

    def label(self, name: str) -> None:
        """Mark the current address with ``name``."""
        self.labels[name] = self.current_address()

    def get_label(self, name: str) -> int | None:
        """The address of ``name``, or None if it was never marked."""
        return self.labels.get(name)

    def update_labels(self) -> None:
        """Patch pending label references; the base assembler has none."""