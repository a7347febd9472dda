"""An encoder for the AArch64 instructions used by hook code."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from tulipgen.base_assembler import BaseAssembler, LabelUpdate


class ArmV8Register(Enum):
    """General purpose and SIMD/floating-point registers."""

    X0 = 0
    X1 = 1
    X2 = 2
    X3 = 3
    X4 = 4
    X5 = 5
    X6 = 6
    X7 = 7
    X8 = 8
    X9 = 9
    X10 = 10
    X11 = 11
    X12 = 12
    X13 = 13
    X14 = 14
    X15 = 15
    X16 = 16
    X17 = 17
    X18 = 18
    X19 = 19
    X20 = 20
    X21 = 21
    X22 = 22
    X23 = 23
    X24 = 24
    X25 = 25
    X26 = 26
    X27 = 27
    X28 = 28
    X29 = 29
    X30 = 30
    SP = 31
    PC = 32
    D0 = 0x40
    D1 = 0x41
    D2 = 0x42
    D3 = 0x43
    D4 = 0x44
    D5 = 0x45
    D6 = 0x46
    D7 = 0x47
    D8 = 0x48
    D9 = 0x49
    D10 = 0x4A
    D11 = 0x4B
    D12 = 0x4C
    D13 = 0x4D
    D14 = 0x4E
    D15 = 0x4F
    D16 = 0x50
    D17 = 0x51
    D18 = 0x52
    D19 = 0x53
    D20 = 0x54
    D21 = 0x55
    D22 = 0x56
    D23 = 0x57
    D24 = 0x58
    D25 = 0x59
    D26 = 0x5A
    D27 = 0x5B
    D28 = 0x5C
    D29 = 0x5D
    D30 = 0x5E
    D31 = 0x5F

    @property
    def is_simd(self) -> bool:
        return self.value >= 0x40

    @property
    def number(self) -> int:
        """The register number used in encodings."""
        return self.value - 0x40 if self.is_simd else self.value


class ArmV8IndexKind(Enum):
    """Addressing modes of load/store pair instructions."""

    PRE_INDEX = "pre_index"
    POST_INDEX = "post_index"
    SIGNED_OFFSET = "signed_offset"


_LDP_OPCODES = {
    ArmV8IndexKind.PRE_INDEX: (0x1B7, 0x2A7),
    ArmV8IndexKind.POST_INDEX: (0x1B3, 0x2A3),
    ArmV8IndexKind.SIGNED_OFFSET: (0x1B5, 0x2A5),
}

_STP_OPCODES = {
    ArmV8IndexKind.PRE_INDEX: (0x1B6, 0x2A6),
    ArmV8IndexKind.POST_INDEX: (0x1B2, 0x2A2),
    ArmV8IndexKind.SIGNED_OFFSET: (0x1B4, 0x2A4),
}


class ArmV8Assembler(BaseAssembler):
    """Assembles AArch64 instructions into a buffer."""

    def update_labels(self) -> None:
        for update in self.label_updates:
            diff = self._resolve(update.name) - update.address
            opcode = self.read32(update.address)
            self.rewrite32(update.address, opcode | ((diff >> 2) << 5))

    def mov(self, dst: ArmV8Register, src: ArmV8Register) -> None:
        self.write32(0xAA0003E0 | (src.number << 16) | dst.number)

    def ldr(self, dst: ArmV8Register, label: str) -> None:
        """Load a 64-bit literal from ``label``."""
        self.label_updates.append(LabelUpdate(self.current_address(), label, 4))
        self.write32((0x58 << 24) | dst.number)

    def _pair(
        self,
        opcodes: dict[ArmV8IndexKind, tuple[int, int]],
        reg1: ArmV8Register,
        reg2: ArmV8Register,
        base: ArmV8Register,
        imm: int,
        kind: ArmV8IndexKind,
    ) -> None:
        simd, general = opcodes[kind]
        opcode = (simd if reg1.is_simd and reg2.is_simd else general) << 22
        imm_field = ((imm >> 3) & 0x7F) << 15
        self.write32(opcode | (reg2.number << 10) | (base.number << 5) | imm_field | reg1.number)

    def ldp(self, reg1, reg2, base, imm, kind) -> None:
        self._pair(_LDP_OPCODES, reg1, reg2, base, imm, kind)

    def stp(self, reg1, reg2, base, imm, kind) -> None:
        self._pair(_STP_OPCODES, reg1, reg2, base, imm, kind)

    def adrp(self, dst: ArmV8Register, imm: int) -> None:
        immlo = ((imm >> 12) & 0x3) << 29
        immhi = ((imm >> 14) & 0x7FFFF) << 5
        self.write32(0x90000000 | immlo | immhi | dst.number)

    def add(self, dst: ArmV8Register, src: ArmV8Register, imm: int) -> None:
        self.write32(0x91000000 | (src.number << 5) | ((imm & 0xFFFF) << 10) | dst.number)

    def b(self, imm: int) -> None:
        """Branch by a byte offset from this instruction."""
        self.write32(0x14000000 | (((imm & 0xFFFFFFFF) >> 2) & 0x3FFFFFF))

    def br(self, reg: ArmV8Register) -> None:
        self.write32(0xD61F0000 | (reg.number << 5))

    def blr(self, reg: ArmV8Register) -> None:
        self.write32(0xD63F0000 | (reg.number << 5))

    def nop(self) -> None:
        self.write32(0xD503201F)

    def push(self, registers: Iterable[ArmV8Register]) -> None:
        """Store registers in pairs below the stack pointer; an odd last one is left out."""
        regs = list(registers)
        paired = len(regs) & ~1
        for first, second in zip(regs[0:paired:2], regs[1:paired:2]):
            self.stp(first, second, ArmV8Register.SP, -0x10, ArmV8IndexKind.PRE_INDEX)

    def pop(self, registers: Iterable[ArmV8Register]) -> None:
        """Load registers pushed by ``push`` with the same list."""
        regs = list(registers)
        paired = len(regs) & ~1
        pairs = list(zip(regs[0:paired:2], regs[1:paired:2]))
        for first, second in reversed(pairs):
            self.ldp(first, second, ArmV8Register.SP, 0x10, ArmV8IndexKind.POST_INDEX)