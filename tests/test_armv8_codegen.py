import pytest

from tulipgen.armv8_assembler import ArmV8Assembler, ArmV8IndexKind, ArmV8Register
from tulipgen.armv8_codegen import armv8_handler_bytes, armv8_intervener_bytes

X16 = ArmV8Register.X16
NOP = (0xD503201F).to_bytes(4, "little")
PRE, POST, CONTENT = 0x7F0000001000, 0x7F0000002000, 0x7F0000003000


def _words(code):
    return [int.from_bytes(code[i : i + 4], "little") for i in range(0, len(code), 4)]


def _single(emit):
    a = ArmV8Assembler(0)
    emit(a)
    return a.buffer()


def test_near_handler_uses_direct_branch():
    code = armv8_intervener_bytes(0x1000, 0x2000)
    assert code == _single(lambda a: a.b(0x1000))


def test_backward_near_branch():
    code = armv8_intervener_bytes(0x5000, 0x1000)
    assert len(code) == 4
    assert (_words(code)[0] & 0xFC000000) == 0x14000000


def test_medium_distance_uses_adrp_add_br():
    address, handler = 0x10000000, 0x10000000 + 0x40000123
    code = armv8_intervener_bytes(address, handler)
    assert len(code) == 12
    words = _words(code)
    assert words[0] & 0x9F00001F == 0x90000000 | X16.number
    assert code[4:8] == _single(lambda a: a.add(X16, X16, handler & 0xFFF))
    assert code[8:] == _single(lambda a: a.br(X16))


@pytest.mark.parametrize("address", [0x1000, 0x1004])
def test_far_handler_loads_literal(address):
    handler = 0x7F0000000000
    code = armv8_intervener_bytes(address, handler)
    padded = address & 7
    if padded:
        assert code[:4] == NOP
    body = code[4:] if padded else code
    assert len(body) == 16
    assert body[4:8] == _single(lambda a: a.br(X16))
    assert body[8:] == handler.to_bytes(8, "little")
    ldr = _words(body)[0]
    assert ldr & 0xFF00001F == 0x58000000 | X16.number
    # the literal sits two instructions after the load
    assert (ldr >> 5) & 0x7FFFF == 2


def test_handler_ends_with_literals():
    address = 0x40000
    code = armv8_handler_bytes(address, PRE, POST, CONTENT)
    assert code[-24:-16] == PRE.to_bytes(8, "little")
    assert code[-16:-8] == POST.to_bytes(8, "little")
    assert code[-8:] == CONTENT.to_bytes(8, "little")
    assert (address + len(code) - 24) % 8 == 0


def test_handler_starts_by_saving_registers():
    code = armv8_handler_bytes(0, PRE, POST, CONTENT)
    first = _single(
        lambda a: a.stp(
            ArmV8Register.X0, ArmV8Register.X1, ArmV8Register.SP, -0x10, ArmV8IndexKind.PRE_INDEX
        )
    )
    assert code[:4] == first


def test_handler_returns_through_x30():
    code = armv8_handler_bytes(0, PRE, POST, CONTENT)
    ret = _single(lambda a: a.br(ArmV8Register.X30))
    assert ret in [code[i : i + 4] for i in range(0, len(code) - 24, 4)]


def test_handler_is_position_independent():
    first = armv8_handler_bytes(0x10000, PRE, POST, CONTENT)
    second = armv8_handler_bytes(0x80000, PRE, POST, CONTENT)
    assert first == second


def test_handler_literal_loads_point_at_literals():
    code = armv8_handler_bytes(0, PRE, POST, CONTENT)
    literals = {len(code) - 24, len(code) - 16, len(code) - 8}
    targets = set()
    for index, word in enumerate(_words(code[:-24])):
        if word & 0xFF000000 == 0x58000000:
            targets.add(index * 4 + ((word >> 5) & 0x7FFFF) * 4)
    assert targets == literals