"""An encoder for the 32-bit x86 instructions used by hook code."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from tulipgen.base_assembler import BaseAssembler, LabelUpdate


class X86Register(Enum):
    """General purpose and SSE registers."""

    EAX = 0x0
    ECX = 0x1
    EDX = 0x2
    EBX = 0x3
    ESP = 0x4
    EBP = 0x5
    ESI = 0x6
    EDI = 0x7
    XMM0 = 0x80
    XMM1 = 0x81
    XMM2 = 0x82
    XMM3 = 0x83
    XMM4 = 0x84
    XMM5 = 0x85
    XMM6 = 0x86
    XMM7 = 0x87

    def __add__(self, offset: int) -> X86Pointer:
        return X86Pointer(self, offset)

    def __sub__(self, offset: int) -> X86Pointer:
        return X86Pointer(self, -offset)

    @property
    def index(self) -> int:
        """The 3-bit register number used in encodings."""
        if self.value >= X86Register.XMM0.value:
            return self.value - X86Register.XMM0.value
        return self.value


@dataclass(frozen=True)
class X86Pointer:
    """A memory operand ``[reg + offset]``."""

    reg: X86Register
    offset: int = 0


def _small(value: int) -> bool:
    return -0x80 <= value <= 0x7F


class X86Assembler(BaseAssembler):
    """Assembles x86 instructions into a buffer."""

    def _encode_modrm(self, operand: X86Register | X86Pointer, digit: int) -> None:
        if isinstance(operand, X86Register):
            self.write8(0xC0 | (digit << 3) | operand.index)
            return
        reg, value = operand.reg, operand.offset
        # [ebp] has no zero-displacement form
        if value or reg is X86Register.EBP:
            mod = 0b01 if _small(value) else 0b10
        else:
            mod = 0b00
        self.write8((mod << 6) | (digit << 3) | reg.index)
        if reg is X86Register.ESP:
            self.write8(0x24)
        if mod == 0b01:
            self.write8(value)
        elif mod == 0b10:
            self.write32(value)

    def label32(self, name: str) -> None:
        """Emit a 32-bit placeholder for a relative reference to ``name``."""
        self.label_updates.append(LabelUpdate(self.current_address(), name, 4))
        self.write32(0)

    def abslabel32(self, name: str) -> None:
        """Emit a 32-bit placeholder for the absolute address of ``name``."""
        self.absolute_label_updates.append(LabelUpdate(self.current_address(), name, 4))
        self.write32(0)

    def update_labels(self) -> None:
        for update in self.label_updates:
            self.rewrite32(update.address, self._resolve(update.name) - update.address - 4)
        for update in self.absolute_label_updates:
            self.rewrite32(update.address, self._resolve(update.name))

    def nop(self) -> None:
        self.write8(0x90)

    def int3(self) -> None:
        self.write8(0xCC)

    def ret(self, offset: int | None = None) -> None:
        if offset is None:
            self.write8(0xC3)
        else:
            self.write8(0xC2)
            self.write16(offset)

    def _arith(self, reg: X86Register, value: int, code: int) -> None:
        if _small(value):
            self.write8(0x83)
            self.write8(code | reg.index)
            self.write8(value)
        else:
            self.write8(0x81)
            self.write8(code | reg.index)
            self.write32(value)

    def add(self, reg: X86Register, value: int) -> None:
        self._arith(reg, value, 0xC0)

    def sub(self, reg: X86Register, value: int) -> None:
        self._arith(reg, value, 0xE8)

    def push(self, operand: X86Register | X86Pointer) -> None:
        if isinstance(operand, X86Register):
            self.write8(0x50 | operand.index)
        elif isinstance(operand, X86Pointer):
            self.write8(0xFF)
            self._encode_modrm(operand, 6)
        else:
            raise TypeError(f"cannot push {operand!r}")

    def pop(self, reg: X86Register) -> None:
        self.write8(0x58 | reg.index)

    def _branch(self, target: X86Register | int | str, opcode: int, digit: int) -> None:
        if isinstance(target, X86Register):
            self.write8(0xFF)
            self._encode_modrm(target, digit)
        elif isinstance(target, str):
            self.write8(opcode)
            self.label32(target)
        elif isinstance(target, int):
            start = self.current_address()
            self.write8(opcode)
            self.write32(target - start - 5)
        else:
            raise TypeError(f"cannot branch to {target!r}")

    def jmp(self, target: X86Register | int | str) -> None:
        """Jump to a register, an absolute address, or a label."""
        self._branch(target, 0xE9, 4)

    def call(self, target: X86Register | int | str) -> None:
        """Call a register, an absolute address, or a label."""
        self._branch(target, 0xE8, 2)

    def _sse_move(self, prefix: bytes, load: int, store: int, dst, src) -> None:
        if isinstance(dst, X86Register) and isinstance(src, X86Pointer):
            self.data += prefix
            self.write8(load)
            self._encode_modrm(src, dst.index)
        elif isinstance(dst, X86Pointer) and isinstance(src, X86Register):
            self.data += prefix
            self.write8(store)
            self._encode_modrm(dst, src.index)
        else:
            raise TypeError(f"unsupported operands {dst!r}, {src!r}")

    def movsd(self, dst, src) -> None:
        self._sse_move(b"\xf2\x0f", 0x10, 0x11, dst, src)

    def movss(self, dst, src) -> None:
        self._sse_move(b"\xf3\x0f", 0x10, 0x11, dst, src)

    def movaps(self, dst, src) -> None:
        self._sse_move(b"\x0f", 0x28, 0x29, dst, src)

    def lea(self, reg: X86Register, label: str) -> None:
        self.write8(0x8D)
        self.write8(0x05 | (reg.index << 3))
        self.abslabel32(label)

    def mov(self, dst, src) -> None:
        """Move between registers, memory, immediates and labelled memory."""
        if isinstance(dst, X86Register):
            if isinstance(src, X86Register):
                self.write8(0x89)
                self._encode_modrm(dst, src.index)
            elif isinstance(src, X86Pointer):
                self.write8(0x8B)
                self._encode_modrm(src, dst.index)
            elif isinstance(src, str):
                self.write8(0x8B)
                self.write8(0x05 | (dst.index << 3))
                self.abslabel32(src)
            elif isinstance(src, int):
                self.write8(0xB8 | dst.index)
                self.write32(src)
            else:
                raise TypeError(f"unsupported source {src!r}")
        elif isinstance(dst, X86Pointer) and isinstance(src, X86Register):
            self.write8(0x89)
            self._encode_modrm(dst, src.index)
        else:
            raise TypeError(f"unsupported operands {dst!r}, {src!r}")

    def fstps(self, ptr: X86Pointer) -> None:
        self.write8(0xD9)
        self._encode_modrm(ptr, 3)

    def flds(self, ptr: X86Pointer) -> None:
        self.write8(0xD9)
        self._encode_modrm(ptr, 0)

    def fstpd(self, ptr: X86Pointer) -> None:
        self.write8(0xDD)
        self._encode_modrm(ptr, 3)

    def fldd(self, ptr: X86Pointer) -> None:
        self.write8(0xDD)
        self._encode_modrm(ptr, 0)

    def shr(self, reg: X86Register, value: int) -> None:
        self.write8(0xC1)
        self.write8(0xE8 | reg.index)
        self.write8(value)

    def shl(self, reg: X86Register, value: int) -> None:
        self.write8(0xC1)
        self.write8(0xE0 | reg.index)
        self.write8(value)

    def xchg(self, reg: X86Register, reg2: X86Register) -> None:
        self.write8(0x87)
        self._encode_modrm(reg, reg2.index)

    def cmp(self, reg: X86Register, other: X86Register | int) -> None:
        if isinstance(other, X86Register):
            self.write8(0x39)
            self._encode_modrm(reg, other.index)
        elif isinstance(other, int):
            self._arith(reg, other, 0xF8)
        else:
            raise TypeError(f"cannot compare with {other!r}")