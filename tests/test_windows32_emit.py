from tulipgen.types import AbstractFunction, AbstractType
from tulipgen.windows32_emit import (
    emit_default_cleanup,
    emit_into_default,
    emit_into_original,
    emit_original_cleanup,
)
from tulipgen.windows32_layout import ParameterLayout
from tulipgen.x86_assembler import X86Assembler, X86Register

ESP = X86Register.ESP
EAX = X86Register.EAX
ECX = X86Register.ECX
XMM0 = X86Register.XMM0
INT = AbstractType.primitive(4)
FLOAT = AbstractType.floating(4)
DOUBLE = AbstractType.floating(8)
VOID = AbstractType.void()


def _emit(emit, layout):
    assembler = X86Assembler(0)
    emit(layout, assembler)
    return assembler.buffer()


def test_no_arguments_emit_nothing_on_entry():
    layout = ParameterLayout.from_cdecl(AbstractFunction.of(INT))
    assert _emit(emit_into_default, layout) == b""
    assert _emit(emit_into_original, layout) == b""


def test_cdecl_default_cleanup_returns_plainly():
    layout = ParameterLayout.from_cdecl(AbstractFunction.of(INT))
    assert _emit(emit_default_cleanup, layout) == b"\x83\xc4\x00\xc3"


def test_stdcall_default_cleanup_pops_arguments():
    layout = ParameterLayout.from_stdcall(AbstractFunction.of(INT, INT, INT))
    code = _emit(emit_default_cleanup, layout)
    assert code[-3:] == b"\xc2" + layout.original_stack_size.to_bytes(2, "little")


def test_thiscall_into_default_stores_ecx():
    layout = ParameterLayout.from_thiscall(AbstractFunction.of(VOID, INT))
    expected = X86Assembler(0)
    expected.sub(ESP, 4)
    expected.mov(ESP + 0, ECX)
    assert _emit(emit_into_default, layout) == expected.buffer()


def test_cdecl_into_default_copies_stack_argument():
    layout = ParameterLayout.from_cdecl(AbstractFunction.of(VOID, INT))
    expected = X86Assembler(0)
    expected.sub(ESP, 4)
    expected.mov(EAX, ESP + 8)
    expected.mov(ESP + 0, EAX)
    assert _emit(emit_into_default, layout) == expected.buffer()


def test_cdecl_into_original_copies_stack_argument():
    layout = ParameterLayout.from_cdecl(AbstractFunction.of(VOID, INT))
    expected = X86Assembler(0)
    expected.sub(ESP, 4)
    expected.mov(EAX, ESP + 8)
    expected.mov(ESP + 0, EAX)
    assert _emit(emit_into_original, layout) == expected.buffer()


def test_optcall_double_argument_uses_movsd():
    layout = ParameterLayout.from_optcall(AbstractFunction.of(VOID, DOUBLE))
    into_default = X86Assembler(0)
    into_default.sub(ESP, 8)
    into_default.movsd(ESP + 0, XMM0)
    assert _emit(emit_into_default, layout) == into_default.buffer()

    into_original = X86Assembler(0)
    into_original.movsd(XMM0, ESP + 4)
    assert _emit(emit_into_original, layout) == into_original.buffer()


def test_optcall_float_return_moves_st0_into_xmm0():
    layout = ParameterLayout.from_optcall(AbstractFunction.of(FLOAT))
    expected = X86Assembler(0)
    expected.add(ESP, 0)
    expected.sub(ESP, 4)
    expected.fstps(ESP + 0)
    expected.movss(XMM0, ESP + 0)
    expected.add(ESP, 4)
    expected.ret()
    assert _emit(emit_default_cleanup, layout) == expected.buffer()


def test_optcall_double_return_moves_xmm0_onto_x87_stack():
    layout = ParameterLayout.from_optcall(AbstractFunction.of(DOUBLE))
    expected = X86Assembler(0)
    expected.sub(ESP, 8)
    expected.movsd(ESP + 0, XMM0)
    expected.fldd(ESP + 0)
    expected.add(ESP, 8)
    expected.add(ESP, 0)
    expected.ret()
    assert _emit(emit_original_cleanup, layout) == expected.buffer()


def test_original_cleanup_only_pops_for_caller_cleanup():
    function = AbstractFunction.of(INT, INT, INT)
    cdecl = _emit(emit_original_cleanup, ParameterLayout.from_cdecl(function))
    stdcall = _emit(emit_original_cleanup, ParameterLayout.from_stdcall(function))
    assert stdcall == b"\xc3"
    assert cdecl.endswith(b"\xc3")
    assert len(cdecl) > len(stdcall)


def test_into_default_size_grows_with_stack_arguments():
    one = _emit(emit_into_default, ParameterLayout.from_cdecl(AbstractFunction.of(VOID, INT)))
    two = _emit(emit_into_default, ParameterLayout.from_cdecl(AbstractFunction.of(VOID, INT, INT)))
    assert len(two) > len(one)