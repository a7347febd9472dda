"""Descriptions of function signatures and the metadata attached to hooks."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

POINTER_SIZE = 8


class AbstractTypeKind(Enum):
    """How a value is passed: integer-like, floating point, or an aggregate."""

    PRIMITIVE = "primitive"
    FLOATING_POINT = "floating_point"
    OTHER = "other"


@dataclass(frozen=True)
class AbstractType:
    """The size and kind of a parameter or return value."""

    size: int
    kind: AbstractTypeKind

    @classmethod
    def void(cls) -> AbstractType:
        """The type of a function that returns nothing."""
        return cls(1, AbstractTypeKind.PRIMITIVE)

    @classmethod
    def primitive(cls, size: int) -> AbstractType:
        """An integer, pointer, reference or enumeration of ``size`` bytes."""
        return cls(size, AbstractTypeKind.PRIMITIVE)

    @classmethod
    def floating(cls, size: int) -> AbstractType:
        """A floating-point value of ``size`` bytes."""
        return cls(size, AbstractTypeKind.FLOATING_POINT)

    @classmethod
    def other(cls, size: int) -> AbstractType:
        """A class or struct of ``size`` bytes."""
        return cls(size, AbstractTypeKind.OTHER)

    @classmethod
    def pointer(cls) -> AbstractType:
        """A 64-bit pointer."""
        return cls(POINTER_SIZE, AbstractTypeKind.PRIMITIVE)


@dataclass(frozen=True)
class AbstractFunction:
    """A function signature: its return type and parameter types."""

    return_type: AbstractType = field(default_factory=AbstractType.void)
    parameters: tuple[AbstractType, ...] = ()

    @classmethod
    def of(cls, return_type: AbstractType, *args: AbstractType) -> AbstractFunction:
        """Build a signature from a return type and the parameter types in order."""
        return cls(return_type, tuple(args))


@dataclass(frozen=True)
class FunctionData:
    """Where a piece of generated code lives and how long it is."""

    address: int
    size: int


@dataclass(frozen=True)
class HookMetadata:
    """Per-hook settings; lower priorities run first."""

    priority: int = 0


@dataclass(frozen=True)
class HandlerMetadata:
    """The calling convention and signature of a hooked function."""

    convention: Any = None
    abstract: AbstractFunction = field(default_factory=AbstractFunction)


@dataclass(frozen=True)
class WrapperMetadata:
    """The calling convention and signature of a function to be wrapped."""

    convention: Any = None
    abstract: AbstractFunction = field(default_factory=AbstractFunction)