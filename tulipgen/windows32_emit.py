"""Code that moves arguments between a 32-bit Windows convention and cdecl."""

from __future__ import annotations

from tulipgen.windows32_layout import ParameterLayout, Win32Register, param_size
from tulipgen.x86_assembler import X86Assembler, X86Register

_RETURN_ADDRESS = 4

_XMM_NAMES = {
    Win32Register.XMM0: X86Register.XMM0,
    Win32Register.XMM1: X86Register.XMM1,
    Win32Register.XMM2: X86Register.XMM2,
    Win32Register.XMM3: X86Register.XMM3,
}


def _xmm(register: Win32Register) -> X86Register:
    return _XMM_NAMES.get(register, X86Register.XMM0)


def emit_into_default(layout: ParameterLayout, assembler: X86Assembler) -> None:
    """Copy every argument into a fresh cdecl frame below the stack pointer."""
    esp, eax = X86Register.ESP, X86Register.EAX
    if layout.result_stack_size:
        assembler.sub(esp, layout.result_stack_size)
    place_at = 0
    for param in layout.params:
        size = param_size(param.abstract_type)
        location = param.location
        if isinstance(location, int):
            for i in range(0, size, 4):
                source = location + layout.result_stack_size + i + _RETURN_ADDRESS
                assembler.mov(eax, esp + source)
                assembler.mov(esp + (place_at + i), eax)
        elif location is Win32Register.ECX:
            assembler.mov(esp + place_at, X86Register.ECX)
        elif location is Win32Register.EDX:
            assembler.mov(esp + place_at, X86Register.EDX)
        elif param.abstract_type.size == 8:
            assembler.movsd(esp + place_at, _xmm(location))
        else:
            assembler.movss(esp + place_at, _xmm(location))
        place_at += size


def emit_default_cleanup(layout: ParameterLayout, assembler: X86Assembler) -> None:
    """Drop the cdecl frame, move a float result into xmm0 if needed, and return."""
    esp = X86Register.ESP
    assembler.add(esp, layout.result_stack_size)
    if layout.returns_in_xmm0:
        size = layout.return_type.size
        assembler.sub(esp, size)
        if size == 4:
            assembler.fstps(esp + 0)
            assembler.movss(X86Register.XMM0, esp + 0)
        else:
            assembler.fstpd(esp + 0)
            assembler.movsd(X86Register.XMM0, esp + 0)
        assembler.add(esp, size)
    if layout.caller_cleanup:
        assembler.ret()
    else:
        assembler.ret(layout.original_stack_size)


def emit_into_original(layout: ParameterLayout, assembler: X86Assembler) -> None:
    """Load cdecl arguments into the registers and stack slots of the convention."""
    esp, eax = X86Register.ESP, X86Register.EAX
    if layout.original_stack_size:
        assembler.sub(esp, layout.original_stack_size)
    for param in layout.params:
        source = layout.original_stack_size + param.result_location + _RETURN_ADDRESS
        location = param.location
        if isinstance(location, int):
            for i in range(0, param.abstract_type.size, 4):
                assembler.mov(eax, esp + (source + i))
                assembler.mov(esp + (param.original_location + i), eax)
        elif location is Win32Register.ECX:
            assembler.mov(X86Register.ECX, esp + source)
        elif location is Win32Register.EDX:
            assembler.mov(X86Register.EDX, esp + source)
        elif param.abstract_type.size == 4:
            assembler.movss(_xmm(location), esp + source)
        else:
            assembler.movsd(_xmm(location), esp + source)


def emit_original_cleanup(layout: ParameterLayout, assembler: X86Assembler) -> None:
    """Move an xmm0 result onto the x87 stack, drop the frame if needed, and return."""
    esp = X86Register.ESP
    if layout.returns_in_xmm0:
        size = layout.return_type.size
        assembler.sub(esp, size)
        if size == 4:
            assembler.movss(esp + 0, X86Register.XMM0)
            assembler.flds(esp + 0)
        else:
            assembler.movsd(esp + 0, X86Register.XMM0)
            assembler.fldd(esp + 0)
        assembler.add(esp, size)
    if layout.caller_cleanup:
        assembler.add(esp, layout.original_stack_size)
    assembler.ret()