import pytest

from tulipgen.armv7_assembler import ArmV7Assembler, ArmV7Register

R = ArmV7Register


def halfwords(asm):
    data = asm.buffer()
    return [int.from_bytes(data[i : i + 2], "little") for i in range(0, len(data), 2)]


def assemble(emit):
    asm = ArmV7Assembler(0)
    emit(asm)
    return halfwords(asm)


def test_fixed_encodings():
    assert assemble(lambda a: a.nop()) == [0xBF00]
    assert assemble(lambda a: a.ldrpcn()) == [0xF85F, 0xF000]
    assert assemble(lambda a: a.ldrpcn2()) == [0xF004, 0xE51F]


def test_push_empty_list():
    assert assemble(lambda a: a.push([])) == [0xB400]


def test_push_mask_is_union_of_single_pushes():
    regs = [R.R0, R.R1, R.R2, R.R3]
    combined = assemble(lambda a: a.push(regs))[0]
    union = 0
    for reg in regs:
        union |= assemble(lambda a, r=reg: a.push([r]))[0]
    assert combined == union


def test_pop_and_push_share_mask():
    regs = [R.R0, R.R1]
    pushed = assemble(lambda a: a.push(regs))[0]
    popped = assemble(lambda a: a.pop(regs))[0]
    assert pushed & 0xFF == popped & 0xFF
    assert popped & 0xFF00 == 0xBC00


def test_mov_zero_registers():
    assert assemble(lambda a: a.mov(R.R0, R.R0)) == [0x4600]


def test_mov_high_destination_sets_high_bit():
    low = assemble(lambda a: a.mov(R.R6, R.R0))[0]
    high = assemble(lambda a: a.mov(R.LR, R.R0))[0]
    assert high & 0x7 == low & 0x7
    assert high & 0x80
    assert not low & 0x80


def test_bx_and_blx_differ_only_in_link_bit():
    bx = assemble(lambda a: a.bx(R.LR))[0]
    blx = assemble(lambda a: a.blx(R.LR))[0]
    assert bx | 0x80 == blx
    assert bx & 0xFF00 == 0x4700


def test_vpush_and_vpop_use_same_fields():
    regs = [R.D0, R.D1, R.D2, R.D3]
    pushed = assemble(lambda a: a.vpush(regs))
    popped = assemble(lambda a: a.vpop(regs))
    assert pushed[0] == 0xED2D
    assert popped[0] == 0xECBD
    assert pushed[1] == popped[1]
    assert (pushed[1] >> 1) & 0x7F == len(regs)


def test_vpush_empty_list():
    with pytest.raises(ValueError):
        ArmV7Assembler(0).vpush([])


def test_ldr_to_next_word():
    asm = ArmV7Assembler(0)
    asm.ldr(R.R0, "data")
    asm.nop()
    asm.label("data")
    asm.update_labels()
    assert asm.buffer()[0] == 0
    assert asm.buffer()[1] == 0x48


def test_ldr_offset_counts_words():
    asm = ArmV7Assembler(0)
    asm.ldr(R.R2, "data")
    asm.nop()
    asm.nop()
    asm.nop()
    asm.label("data")
    asm.update_labels()
    assert asm.buffer()[0] == 1
    assert asm.buffer()[1] & 0x7 == R.R2.value


def test_rwl_replaces_field():
    asm = ArmV7Assembler(0)
    asm.write16(0xFFFF)
    asm.rwl(4, 4, 0)
    assert halfwords(asm) == [0xFF0F]


def test_rwl_needs_a_halfword():
    with pytest.raises(IndexError):
        ArmV7Assembler(0).rwl(0, 3, 1)


def test_undefined_label():
    asm = ArmV7Assembler(0)
    asm.ldr(R.R0, "missing")
    with pytest.raises(KeyError):
        asm.update_labels()