"""Where each argument of a 32-bit Windows function lives, per calling convention."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Union

from tulipgen.types import AbstractFunction, AbstractType, AbstractTypeKind

_POINTER_SIZE = 4
_POINTER = AbstractType.primitive(_POINTER_SIZE)
_XMM_ARGS = 4


class Win32Register(Enum):
    """Registers that carry arguments or return values."""

    EAX = "eax"
    ECX = "ecx"
    EDX = "edx"
    XMM0 = "xmm0"
    XMM1 = "xmm1"
    XMM2 = "xmm2"
    XMM3 = "xmm3"
    ST0 = "st0"


# an int location is an offset into the caller's stack arguments
Location = Union[int, Win32Register]

_XMM_BY_INDEX = (Win32Register.XMM0, Win32Register.XMM1, Win32Register.XMM2, Win32Register.XMM3)


def _xmm(index: int) -> Win32Register:
    return _XMM_BY_INDEX[index] if 0 <= index < len(_XMM_BY_INDEX) else Win32Register.XMM0


@dataclass
class PushParameter:
    """One argument: its type, where it arrives, and where it goes."""

    abstract_type: AbstractType
    location: Location
    original_index: int
    result_location: int = 0
    original_location: int = 0

    @property
    def on_stack(self) -> bool:
        return isinstance(self.location, int)


def param_size(abstract_type: AbstractType) -> int:
    """The stack space an argument takes, rounded up to a multiple of 4."""
    return (abstract_type.size + 3) // 4 * 4


def return_location(function: AbstractFunction) -> Location:
    """Where the default convention returns a value; structs go through a hidden pointer."""
    kind = function.return_type.kind
    if kind is AbstractTypeKind.FLOATING_POINT:
        return Win32Register.ST0
    if kind is AbstractTypeKind.OTHER:
        return 0x4
    return Win32Register.EAX


def optimized_return_location(function: AbstractFunction) -> Location:
    """Where optcall and membercall return a value: floats come back in xmm0."""
    kind = function.return_type.kind
    if kind is AbstractTypeKind.FLOATING_POINT:
        return Win32Register.XMM0
    if kind is AbstractTypeKind.OTHER:
        return 0x4
    return Win32Register.EAX


def _structs_last(function: AbstractFunction, is_struct: Callable[[AbstractType], bool]):
    indexed = list(enumerate(function.parameters))
    plain = [(index, param) for index, param in indexed if not is_struct(param)]
    structs = [(index, param) for index, param in indexed if is_struct(param)]
    return plain + structs


def _fits_register(param: AbstractType) -> bool:
    return param.kind is AbstractTypeKind.PRIMITIVE and param.size <= _POINTER_SIZE


@dataclass
class ParameterLayout:
    """The arguments of a function as one convention passes them."""

    params: list[PushParameter] = field(default_factory=list)
    return_value_location: Location = Win32Register.EAX
    return_type: AbstractType = field(default_factory=AbstractType.void)
    original_stack_size: int = 0
    result_stack_size: int = 0
    caller_cleanup: bool = False

    @property
    def returns_in_xmm0(self) -> bool:
        return self.return_value_location is Win32Register.XMM0

    @classmethod
    def _start(cls, function: AbstractFunction, location: Location) -> ParameterLayout:
        return cls(return_value_location=location, return_type=function.return_type)

    @classmethod
    def from_cdecl(cls, function: AbstractFunction) -> ParameterLayout:
        """Everything on the stack; the caller cleans up."""
        layout = cls._start(function, return_location(function))
        if isinstance(layout.return_value_location, int):
            layout.push_stack(_POINTER)
        for param in function.parameters:
            layout.push_stack(param)
        layout.reorder()
        layout.caller_cleanup = True
        return layout

    @classmethod
    def from_stdcall(cls, function: AbstractFunction) -> ParameterLayout:
        """Like cdecl, but the callee cleans up."""
        layout = cls.from_cdecl(function)
        layout.caller_cleanup = False
        return layout

    @classmethod
    def from_thiscall(cls, function: AbstractFunction) -> ParameterLayout:
        """The first primitive argument in ecx, the rest on the stack."""
        layout = cls._start(function, return_location(function))
        if isinstance(layout.return_value_location, int):
            layout.push_stack(_POINTER)
        ecx_used = False
        for param in function.parameters:
            if not ecx_used and param.kind is AbstractTypeKind.PRIMITIVE:
                layout.push_register(param, Win32Register.ECX)
                ecx_used = True
            else:
                layout.push_stack(param)
        layout.reorder()
        return layout

    @classmethod
    def from_fastcall(cls, function: AbstractFunction) -> ParameterLayout:
        """The first two primitive arguments in ecx and edx."""
        layout = cls._start(function, return_location(function))
        used = 0
        if isinstance(layout.return_value_location, int):
            layout.push_register(_POINTER, Win32Register.ECX)
            used = 1
        for param in function.parameters:
            if used == 0 and param.kind is AbstractTypeKind.PRIMITIVE:
                layout.push_register(param, Win32Register.ECX)
                used = 1
            elif used == 1 and param.kind is AbstractTypeKind.PRIMITIVE:
                layout.push_register(param, Win32Register.EDX)
                used = 2
            else:
                layout.push_stack(param)
        layout.reorder()
        return layout

    @classmethod
    def from_optcall(cls, function: AbstractFunction) -> ParameterLayout:
        """Fastcall with floats 0..3 in xmm0..xmm3 and large structs passed last."""
        layout = cls._start(function, optimized_return_location(function))
        used = 0
        if isinstance(layout.return_value_location, int):
            layout.push_register(_POINTER, Win32Register.ECX)
            used = 1
        ordered = _structs_last(
            function, lambda p: p.kind is AbstractTypeKind.OTHER and p.size > _POINTER_SIZE
        )
        for index, (original, param) in enumerate(ordered):
            if used == 0 and _fits_register(param):
                layout.push_register(param, Win32Register.ECX, original)
                used = 1
            elif used == 1 and _fits_register(param):
                layout.push_register(param, Win32Register.EDX, original)
                used = 2
            elif index < _XMM_ARGS and param.kind is AbstractTypeKind.FLOATING_POINT:
                layout.push_register(param, _xmm(index), original)
            else:
                layout.push_stack(param, original)
        layout.reorder()
        layout.caller_cleanup = True
        return layout

    @classmethod
    def from_membercall(cls, function: AbstractFunction) -> ParameterLayout:
        """Thiscall with floats 0..3 in xmm0..xmm3 and structs passed last."""
        layout = cls._start(function, optimized_return_location(function))
        used = 0
        if isinstance(layout.return_value_location, int):
            layout.push_stack(_POINTER)
        ordered = _structs_last(function, lambda p: p.kind is AbstractTypeKind.OTHER)
        for index, (original, param) in enumerate(ordered):
            if used == 0 and _fits_register(param):
                layout.push_register(param, Win32Register.ECX, original)
                used = 1
            elif index < _XMM_ARGS and param.kind is AbstractTypeKind.FLOATING_POINT:
                layout.push_register(param, _xmm(index), original)
            else:
                layout.push_stack(param, original)
        layout.reorder()
        return layout

    def push_register(
        self,
        abstract_type: AbstractType,
        register: Win32Register,
        original_index: int | None = None,
    ) -> None:
        """Add an argument that arrives in ``register``."""
        index = len(self.params) if original_index is None else original_index
        self.params.append(PushParameter(abstract_type, register, index))
        self.result_stack_size += param_size(abstract_type)

    def push_stack(self, abstract_type: AbstractType, original_index: int | None = None) -> None:
        """Add an argument that arrives on the stack after those already pushed."""
        index = len(self.params) if original_index is None else original_index
        self.params.append(PushParameter(abstract_type, self.original_stack_size, index))
        self.original_stack_size += param_size(abstract_type)
        self.result_stack_size += param_size(abstract_type)

    def reorder(self) -> None:
        """Put arguments back in declaration order and assign their stack slots."""
        offset = 0
        for param in self.params:
            if param.on_stack:
                param.original_location = offset
                offset += param_size(param.abstract_type)
        self.params.sort(key=lambda param: param.original_index)
        offset = 0
        for param in self.params:
            param.result_location = offset
            offset += param_size(param.abstract_type)