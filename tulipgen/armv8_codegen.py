"""AArch64 handler and intervener code for hooked functions."""

from __future__ import annotations

from tulipgen.armv8_assembler import ArmV8Assembler, ArmV8Register

_X = [ArmV8Register[f"X{i}"] for i in range(16)]
_D_ARGS = [ArmV8Register[f"D{i}"] for i in range(8)]
# d8..d15 are callee saved
_D_SCRATCH = [ArmV8Register[f"D{i}"] for i in range(16, 32)]
_X_RETURN = _X[:8]

_BRANCH_MIN, _BRANCH_MAX = -0x8000000, 0x7FFFFFF
_ADRP_MIN, _ADRP_MAX = -0x100000000, 0xFFFFFFFF


def armv8_handler_bytes(address: int, pre_handler: int, post_handler: int, content: int) -> bytes:
    """Code that calls the next hook between the pre- and post-handler callbacks."""
    a = ArmV8Assembler(address)
    r = ArmV8Register

    a.push(_X)
    a.push(_D_ARGS)
    a.push(_D_SCRATCH)

    a.ldr(r.X0, "content")
    a.mov(r.X1, r.X30)

    a.ldr(r.X2, "handlerPre")
    a.blr(r.X2)
    a.mov(r.X30, r.X0)

    a.pop(_D_SCRATCH)
    a.pop(_D_ARGS)
    a.pop(_X)

    a.blr(r.X30)

    a.push(_X_RETURN)
    a.push(_D_ARGS)

    a.ldr(r.X0, "handlerPost")
    a.blr(r.X0)

    a.mov(r.X30, r.X0)

    a.pop(_D_ARGS)
    a.pop(_X_RETURN)

    a.br(r.X30)

    # literals must be 8-byte aligned for ldr
    if a.current_address() & 7:
        a.nop()

    a.label("handlerPre")
    a.write64(pre_handler)
    a.label("handlerPost")
    a.write64(post_handler)
    a.label("content")
    a.write64(content)

    a.update_labels()
    return a.buffer()


def armv8_intervener_bytes(address: int, handler: int) -> bytes:
    """The jump to ``handler`` written over the start of the hooked function."""
    a = ArmV8Assembler(address)
    x16 = ArmV8Register.X16

    aligned_address = address & ~0xFFF
    aligned_handler = handler & ~0xFFF
    delta = handler - address

    if _BRANCH_MIN <= delta <= _BRANCH_MAX:
        a.b(delta)
    elif _ADRP_MIN <= delta <= _ADRP_MAX:
        a.adrp(x16, aligned_handler - aligned_address)
        a.add(x16, x16, handler & 0xFFF)
        a.br(x16)
    else:
        if address & 7:
            a.nop()
        a.ldr(x16, "handler")
        a.br(x16)
        a.label("handler")
        a.write64(handler)

    a.update_labels()
    return a.buffer()