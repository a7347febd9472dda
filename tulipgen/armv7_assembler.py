"""An encoder for the Thumb-2 instructions used by hook code."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from tulipgen.base_assembler import BaseAssembler, LabelUpdate


class ArmV7Register(Enum):
    """Core and double-precision VFP registers."""

    R0 = 0x0
    R1 = 0x1
    R2 = 0x2
    R3 = 0x3
    R4 = 0x4
    R5 = 0x5
    R6 = 0x6
    R7 = 0x7
    R8 = 0x8
    R9 = 0x9
    R10 = 0xA
    R11 = 0xB
    R12 = 0xC
    SP = 0xD
    LR = 0xE
    PC = 0xF
    D0 = 0x40
    D1 = 0x41
    D2 = 0x42
    D3 = 0x43
    D4 = 0x44
    D5 = 0x45
    D6 = 0x46
    D7 = 0x47


def _val(reg: ArmV7Register) -> int:
    return reg.value & 0xF


def _vall(reg: ArmV7Register) -> int:
    return reg.value & 0x7


def _valh(reg: ArmV7Register) -> int:
    return (reg.value & 0x8) >> 3


def _mask(registers: Iterable[ArmV7Register]) -> int:
    mask = 0
    for reg in registers:
        mask |= 1 << reg.value
    return mask


def _nonempty(registers: Iterable[ArmV7Register]) -> list[ArmV7Register]:
    regs = list(registers)
    if not regs:
        raise ValueError("register list is empty")
    return regs


class ArmV7Assembler(BaseAssembler):
    """Assembles Thumb instructions into a buffer."""

    def rwl(self, offset: int, size: int, value: int) -> None:
        """Set a bit field of the last 16-bit halfword written."""
        address = self.current_address() - 2
        current = self.read16(address) & 0xFFFF
        mask = ((1 << size) - 1) << offset
        self.rewrite16(address, (current & ~mask) | (value << offset))

    def label8(self, name: str) -> None:
        """Emit an 8-bit word offset to ``name`` for a literal load."""
        self.label_updates.append(LabelUpdate(self.current_address(), name, 1))
        self.write8(0)

    def update_labels(self) -> None:
        for update in self.label_updates:
            aligned = (update.address & ~0x3) + 0x4
            diff = self._resolve(update.name) - aligned
            words = abs(diff) // 4
            self.rewrite8(update.address, words if diff >= 0 else -words)

    def nop(self) -> None:
        self.write16(0xBF00)

    def push(self, registers: Iterable[ArmV7Register]) -> None:
        self.write16(0xB400)
        self.rwl(0, 8, _mask(registers))

    def vpush(self, registers: Iterable[ArmV7Register]) -> None:
        regs = _nonempty(registers)
        self.write16(0xED2D)
        self.write16(0x0B00)
        self.rwl(1, 7, len(regs))
        self.rwl(12, 4, _val(regs[0]))

    def pop(self, registers: Iterable[ArmV7Register]) -> None:
        self.write16(0xBC00)
        self.rwl(0, 8, _mask(registers))

    def vpop(self, registers: Iterable[ArmV7Register]) -> None:
        regs = _nonempty(registers)
        self.write16(0xECBD)
        self.write16(0x0B00)
        self.rwl(1, 7, len(regs))
        self.rwl(12, 4, _val(regs[0]))

    def ldr(self, dst: ArmV7Register, label: str) -> None:
        """Load a word from the literal at ``label``."""
        self.label8(label)
        self.write8(0x48)
        self.rwl(8, 3, _vall(dst))

    def ldrpcn(self) -> None:
        """``ldr.w pc, [pc, #-0x4]`` in Thumb."""
        self.write16(0xF85F)
        self.write16(0xF000)

    def ldrpcn2(self) -> None:
        """``ldr pc, [pc, #-0x4]`` in ARM."""
        self.write16(0xF004)
        self.write16(0xE51F)

    def mov(self, dst: ArmV7Register, src: ArmV7Register) -> None:
        self.write16(0x4600)
        self.rwl(0, 3, _vall(dst))
        self.rwl(3, 4, _val(src))
        self.rwl(7, 1, _valh(dst))

    def blx(self, dst: ArmV7Register) -> None:
        self.write16(0x4780)
        self.rwl(3, 4, _val(dst))

    def bx(self, dst: ArmV7Register) -> None:
        self.write16(0x4700)
        self.rwl(3, 4, _val(dst))