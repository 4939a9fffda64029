# Copyright 2026 The mlir-bridge Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Helpers shared by the generated-style operation builders."""

from typing import Optional, Sequence, Union

from .. import ir
from ..version import mlir_version

__all__ = [
    "get_default_loc",
    "get_op_result_or_value",
    "get_op_results_or_values",
    "namedattribute",
    "operandsegmentsizes",
    "to_attribute",
]

AttrArg = Union[ir.Attribute, ir.Type, bool, int, float, str, Sequence]


def get_default_loc(loc: Optional[ir.Location] = None) -> ir.Location:
    if loc is None:
        return ir.Location.unknown()
    return loc


def get_op_result_or_value(arg: Union[ir.Operation, ir.Value]) -> ir.Value:
    """Returns the given value or the single result of the given op."""
    if isinstance(arg, ir.Operation):
        return arg.result
    if isinstance(arg, ir.Value):
        return arg
    raise TypeError(f"Expected an Operation or a Value, got {type(arg).__name__}")


def get_op_results_or_values(args) -> list:
    return [get_op_result_or_value(arg) for arg in args]


def to_attribute(value: AttrArg) -> ir.Attribute:
    # bool before int: bool is an int subclass.
    if isinstance(value, ir.Attribute):
        return value
    if isinstance(value, ir.Type):
        return ir.Attribute.get_type(value)
    if isinstance(value, bool):
        return ir.Attribute.get_bool(value)
    if isinstance(value, int):
        return ir.Attribute.get_integer(value)
    if isinstance(value, float):
        return ir.Attribute.get_float(value)
    if isinstance(value, str):
        return ir.Attribute.get_string(value)
    if isinstance(value, Sequence):
        return ir.Attribute.get_array([to_attribute(v) for v in value])
    raise TypeError(f"Cannot convert {value!r} to an attribute")


def namedattribute(name: str, value: AttrArg) -> ir.NamedAttribute:
    return ir.NamedAttribute(name, to_attribute(value))


def operandsegmentsizes(segments: Sequence[int]) -> ir.NamedAttribute:
    """The segment sizes attribute of ops with variadic operand groups."""
    if mlir_version().major >= 16:
        attr = ir.Attribute.dense_i32_array(segments)
    else:
        attr = ir.Attribute.dense_i32_elements(segments)
    return ir.NamedAttribute(ir.segment_sizes_attr_name(), attr)
