import dataclasses

import pytest

from tulipgen.types import (
    AbstractFunction,
    AbstractType,
    AbstractTypeKind,
    FunctionData,
    HandlerMetadata,
    HookMetadata,
    WrapperMetadata,
)


def test_void_is_one_byte_primitive():
    void = AbstractType.void()
    assert void.kind is AbstractTypeKind.PRIMITIVE
    assert void.size == 1


def test_pointer_is_primitive_of_pointer_size():
    ptr = AbstractType.pointer()
    assert ptr.kind is AbstractTypeKind.PRIMITIVE
    assert ptr.size == 8


@pytest.mark.parametrize(
    "factory, kind",
    [
        (AbstractType.primitive, AbstractTypeKind.PRIMITIVE),
        (AbstractType.floating, AbstractTypeKind.FLOATING_POINT),
        (AbstractType.other, AbstractTypeKind.OTHER),
    ],
)
def test_factories_keep_size_and_set_kind(factory, kind):
    made = factory(12)
    assert made.size == 12
    assert made.kind is kind


def test_types_compare_by_value():
    assert AbstractType.floating(8) == AbstractType(8, AbstractTypeKind.FLOATING_POINT)
    assert AbstractType.floating(4) != AbstractType.primitive(4)


def test_abstract_type_is_immutable():
    with pytest.raises(dataclasses.FrozenInstanceError):
        AbstractType.void().size = 4


def test_function_of_keeps_parameter_order():
    params = (AbstractType.pointer(), AbstractType.floating(4), AbstractType.other(16))
    func = AbstractFunction.of(AbstractType.primitive(4), *params)
    assert func.return_type == AbstractType.primitive(4)
    assert func.parameters == params


def test_default_function_returns_void_with_no_parameters():
    func = AbstractFunction()
    assert func.return_type == AbstractType.void()
    assert func.parameters == ()


def test_hook_metadata_default_priority():
    assert HookMetadata().priority == 0
    assert HookMetadata(priority=5).priority == 5


def test_metadata_defaults():
    handler = HandlerMetadata()
    wrapper = WrapperMetadata()
    assert handler.convention is None
    assert handler.abstract == AbstractFunction()
    assert wrapper.abstract == AbstractFunction()


def test_function_data_fields():
    data = FunctionData(address=0x1000, size=32)
    assert (data.address, data.size) == (0x1000, 32)