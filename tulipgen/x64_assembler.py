"""An encoder for the x86-64 instructions used by hook code."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from tulipgen.x86_assembler import X86Assembler, X86Pointer, X86Register


class X64Register(Enum):
    """General purpose and SSE registers."""

    RAX = 0x0
    RCX = 0x1
    RDX = 0x2
    RBX = 0x3
    RSP = 0x4
    RBP = 0x5
    RSI = 0x6
    RDI = 0x7
    R8 = 0x8
    R9 = 0x9
    R10 = 0xA
    R11 = 0xB
    R12 = 0xC
    R13 = 0xD
    R14 = 0xE
    R15 = 0xF
    XMM0 = 0x80
    XMM1 = 0x81
    XMM2 = 0x82
    XMM3 = 0x83
    XMM4 = 0x84
    XMM5 = 0x85
    XMM6 = 0x86
    XMM7 = 0x87

    def __add__(self, offset: int) -> X64Pointer:
        return X64Pointer(self, offset)

    def __sub__(self, offset: int) -> X64Pointer:
        return X64Pointer(self, -offset)


@dataclass(frozen=True)
class X64Pointer:
    """A memory operand ``[reg + offset]``."""

    reg: X64Register
    offset: int = 0


def _x86reg(reg: X64Register) -> X86Register:
    return X86Register(reg.value & 0xF7)


def _x86ptr(ptr: X64Pointer) -> X86Pointer:
    return X86Pointer(_x86reg(ptr.reg), ptr.offset)


def _x86(operand: X64Register | X64Pointer) -> X86Register | X86Pointer:
    if isinstance(operand, X64Register):
        return _x86reg(operand)
    if isinstance(operand, X64Pointer):
        return _x86ptr(operand)
    raise TypeError(f"unsupported operand {operand!r}")


class X64Assembler(X86Assembler):
    """Assembles x86-64 instructions into a buffer."""

    def _rex(self, base: X64Register | X64Pointer, reg: X64Register, wide: bool) -> None:
        if isinstance(base, X64Pointer):
            base = base.reg
        value = 0x40 | (base.value >> 3) | ((reg.value >> 3) << 2) | (int(wide) << 3)
        if value != 0x40:
            self.write8(value)

    def update_labels(self) -> None:
        # label references are rip-relative in 64-bit code, absolute ones too
        for update in [*self.label_updates, *self.absolute_label_updates]:
            self.rewrite32(update.address, self._resolve(update.name) - update.address - 4)

    def nop(self) -> None:
        super().nop()

    def add(self, reg: X64Register, value: int) -> None:
        self._rex(reg, X64Register.RAX, True)
        super().add(_x86reg(reg), value)

    def sub(self, reg: X64Register, value: int) -> None:
        self._rex(reg, X64Register.RAX, True)
        super().sub(_x86reg(reg), value)

    def push(self, operand: X64Register | X64Pointer) -> None:
        if not isinstance(operand, (X64Register, X64Pointer)):
            raise TypeError(f"cannot push {operand!r}")
        self._rex(operand, X64Register.RAX, False)
        super().push(_x86(operand))

    def pop(self, reg: X64Register) -> None:
        self._rex(reg, X64Register.RAX, False)
        super().pop(_x86reg(reg))

    def jmp(self, target: X64Register | int | str) -> None:
        """Jump to a register, an absolute address, or a label."""
        if isinstance(target, X64Register):
            self._rex(target, X64Register.RAX, False)
            super().jmp(_x86reg(target))
        else:
            super().jmp(target)

    def jmpip(self, label: str) -> None:
        """Jump through the 64-bit pointer stored at ``label``."""
        self.write8(0xFF)
        self.write8(0x25)
        self.label32(label)

    def call(self, target: X64Register | int | str) -> None:
        """Call a register, an absolute address, or a label."""
        if isinstance(target, X64Register):
            self._rex(target, X64Register.RAX, False)
            super().call(_x86reg(target))
        else:
            super().call(target)

    def callip(self, label: str) -> None:
        """Call through the 64-bit pointer stored at ``label``."""
        self.write8(0xFF)
        self.write8(0x15)
        self.label32(label)

    def lea(self, reg: X64Register, label: str) -> None:
        self._rex(X64Register.RAX, reg, True)
        super().lea(_x86reg(reg), label)

    def _sse(self, method, dst, src) -> None:
        if isinstance(dst, X64Register) and isinstance(src, X64Pointer):
            self._rex(src, X64Register.RAX, False)
        elif isinstance(dst, X64Pointer) and isinstance(src, X64Register):
            self._rex(dst, X64Register.RAX, False)
        else:
            raise TypeError(f"unsupported operands {dst!r}, {src!r}")
        method(_x86(dst), _x86(src))

    def movsd(self, dst, src) -> None:
        self._sse(super().movsd, dst, src)

    def movss(self, dst, src) -> None:
        self._sse(super().movss, dst, src)

    def movaps(self, dst, src) -> None:
        self._sse(super().movaps, dst, src)

    def mov(self, dst, src) -> None:
        """Move between registers, memory, immediates and labelled memory."""
        rax = X64Register.RAX
        if isinstance(dst, X64Register):
            if isinstance(src, X64Register):
                self._rex(dst, src, True)
                super().mov(_x86reg(dst), _x86reg(src))
            elif isinstance(src, X64Pointer):
                self._rex(src, dst, True)
                super().mov(_x86reg(dst), _x86ptr(src))
            elif isinstance(src, str):
                self._rex(rax, dst, True)
                super().mov(_x86reg(dst), src)
            elif isinstance(src, int):
                self._rex(dst, rax, True)
                self.write8(0xC7)
                self.write8(0xC0 | (dst.value & 0x7))
                self.write32(src)
            else:
                raise TypeError(f"unsupported source {src!r}")
        elif isinstance(dst, X64Pointer) and isinstance(src, X64Register):
            self._rex(dst, src, True)
            super().mov(_x86ptr(dst), _x86reg(src))
        else:
            raise TypeError(f"unsupported operands {dst!r}, {src!r}")

    def shr(self, reg: X64Register, value: int) -> None:
        self._rex(reg, X64Register.RAX, True)
        super().shr(_x86reg(reg), value)

    def shl(self, reg: X64Register, value: int) -> None:
        self._rex(reg, X64Register.RAX, True)
        super().shl(_x86reg(reg), value)

    def xchg(self, reg: X64Register, reg2: X64Register) -> None:
        self._rex(reg, reg2, True)
        super().xchg(_x86reg(reg), _x86reg(reg2))

    def cmp(self, reg: X64Register, other: X64Register | int) -> None:
        if isinstance(other, X64Register):
            self._rex(reg, other, True)
            super().cmp(_x86reg(reg), _x86reg(other))
        elif isinstance(other, int):
            self._rex(reg, X64Register.RAX, True)
            super().cmp(_x86reg(reg), other)
        else:
            raise TypeError(f"cannot compare with {other!r}")

    def align16(self) -> None:
        """Pad with nops to the next 16-byte boundary (a full 16 if already aligned)."""
        for _ in range(16 - self.current_address() % 16):
            self.write8(0x90)