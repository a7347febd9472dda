# tulipgen

`tulipgen` builds the pieces of machine code and bookkeeping that a
function-hooking engine needs. It uses only the standard library and never
touches live process memory: code comes back as plain `bytes`, assembled as if
placed at a base address you choose.

## Modules

- `tulipgen.types` – `AbstractType` (size and `AbstractTypeKind`),
  `AbstractFunction` (return type and parameters), `FunctionData`, and the
  records `HookMetadata`, `HandlerMetadata` and `WrapperMetadata`.
- `tulipgen.base_assembler` – `BaseAssembler`, a little-endian byte buffer with
  `read*`/`write*`/`rewrite*` helpers, labels (`label`, `get_label`) and
  pending label fix-ups (`LabelUpdate`, `update_labels`).
- `tulipgen.x86_assembler` – `X86Assembler`, `X86Register`, `X86Pointer`.
- `tulipgen.x64_assembler` – `X64Assembler`, `X64Register`, `X64Pointer`
  (REX prefixes, rip-relative `jmpip`/`callip`, `align16`).
- `tulipgen.armv7_assembler` – `ArmV7Assembler`, `ArmV7Register` (Thumb
  push/pop, vpush/vpop, literal `ldr`, `mov`, `blx`, `bx`).
- `tulipgen.armv8_assembler` – `ArmV8Assembler`, `ArmV8Register`,
  `ArmV8IndexKind` (`ldp`/`stp`, `adrp`, `add`, `b`, `br`, `blr`, pair-wise
  `push`/`pop`).
- `tulipgen.armv8_codegen` – `armv8_handler_bytes` and
  `armv8_intervener_bytes` for AArch64 hooks.
- `tulipgen.windows32_layout` – `ParameterLayout`, which places each argument of
  a 32-bit Windows function in a register or a stack slot for cdecl, stdcall,
  thiscall, fastcall, optcall and membercall (`from_cdecl`, `from_stdcall`,
  `from_thiscall`, `from_fastcall`, `from_optcall`, `from_membercall`).
- `tulipgen.windows32_emit` – `emit_into_default`, `emit_default_cleanup`,
  `emit_into_original` and `emit_original_cleanup`, which write the x86 code
  that moves arguments between such a layout and cdecl.
- `tulipgen.hooks` – `HookChain`, which keeps the hooks of one function sorted
  by priority with the original last, and `CallStack`, which tracks per thread
  which hook of a chain runs next.

## Examples

Assemble x86-64 code with a label:

```python
from tulipgen.x64_assembler import X64Assembler, X64Register

a = X64Assembler(0x1000)
a.push(X64Register.RBP)
a.mov(X64Register.RBP, X64Register.RSP)
a.sub(X64Register.RSP, 0x20)
a.mov(X64Register.RAX, X64Register.RSP + 0x10)
a.jmp("done")
a.label("done")
a.add(X64Register.RSP, 0x20)
a.pop(X64Register.RBP)
a.ret()
a.update_labels()
code = a.buffer()
```

Lay out a 32-bit fastcall function and emit its glue code:

```python
from tulipgen.types import AbstractFunction, AbstractType
from tulipgen.windows32_layout import ParameterLayout
from tulipgen.windows32_emit import emit_into_default, emit_default_cleanup
from tulipgen.x86_assembler import X86Assembler

fn = AbstractFunction.of(
    AbstractType.primitive(4), AbstractType.primitive(4), AbstractType.floating(4)
)
layout = ParameterLayout.from_fastcall(fn)
a = X86Assembler(0)
emit_into_default(layout, a)
emit_default_cleanup(layout, a)
```

Order hooks by priority:

```python
from tulipgen.hooks import HookChain
from tulipgen.types import HookMetadata

chain = HookChain(original=0x2000)
chain.create_hook(0x3000, HookMetadata(priority=0))
chain.functions()  # (0x3000, 0x2000)
```

Jump from a hooked AArch64 function to its handler:

```python
from tulipgen.armv8_codegen import armv8_intervener_bytes

patch = armv8_intervener_bytes(0x1000, 0x2000)
```

## What it does not do

- It writes no memory, allocates no executable pages and installs no hooks; it
  only returns bytes and bookkeeping.
- There are no calling-convention objects and no way to pick a convention for a
  platform: the 32-bit Windows conventions are available only as layouts plus
  the `emit_*` functions, and there is no x86-64 (Windows or System V) argument
  conversion.
- It has no x86-64, x86 or ARMv7 handler, trampoline or wrapper generators, and
  does not relocate instructions from the original function.

## Tests

```
pip install -e .[test]
pytest
```