# Copyright 2026 The mlir-bridge Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Builders for the `arith` dialect.

Binary ops take two same-typed operands; their result type is inferred by
MLIR unless given. Casts always take their destination type (`out`).
"""

from typing import Optional

import enum

from .. import ir
from ._ods_common import (
    get_default_loc,
    get_op_result_or_value,
    namedattribute,
    to_attribute,
)
from ..version import mlir_version, require_version


class CmpIPredicate(enum.IntEnum):
    eq = 0
    ne = 1
    slt = 2
    sle = 3
    sgt = 4
    sge = 5
    ult = 6
    ule = 7
    ugt = 8
    uge = 9


class CmpFPredicate(enum.IntEnum):
    false = 0
    oeq = 1
    ogt = 2
    oge = 3
    olt = 4
    ole = 5
    one = 6
    ord = 7
    ueq = 8
    ugt = 9
    uge = 10
    ult = 11
    ule = 12
    une = 13
    uno = 14
    true = 15


def _inferred(op_name, operands, attributes=(), result=None, loc=None):
    results = [result] if result is not None else []
    return ir.create_operation(
        op_name,
        get_default_loc(loc),
        operands=[get_op_result_or_value(v) for v in operands],
        attributes=list(attributes),
        results=results,
        result_inference=not results,
    )


def _cast(op_name, in_, out: ir.Type, loc=None):
    return ir.create_operation(
        op_name,
        get_default_loc(loc),
        operands=[get_op_result_or_value(in_)],
        results=[out],
        result_inference=False,
    )


def _binary_op(op_name: str, doc: str):
    def builder(lhs, rhs, *, result: Optional[ir.Type] = None, loc=None):
        return _inferred(op_name, [lhs, rhs], result=result, loc=loc)

    builder.__name__ = op_name.split(".", 1)[1]
    builder.__doc__ = doc
    return builder


# `maxf`/`minf` were split into `maximumf`/`minimumf` and `maxnumf`/`minnumf`.
_FLOAT_MINMAX_RENAME_VERSION = 18


def _renamed_binary_op(legacy_name: str, op_name: str, doc: str):
    def builder(lhs, rhs, *, result: Optional[ir.Type] = None, loc=None):
        name = op_name
        if mlir_version().major < _FLOAT_MINMAX_RENAME_VERSION:
            name = legacy_name
        return _inferred(name, [lhs, rhs], result=result, loc=loc)

    builder.__name__ = legacy_name.split(".", 1)[1]
    builder.__doc__ = doc
    return builder


def _new_binary_op(op_name: str, doc: str):
    short_name = op_name.split(".", 1)[1]

    def builder(lhs, rhs, *, result: Optional[ir.Type] = None, loc=None):
        require_version(_FLOAT_MINMAX_RENAME_VERSION, f"arith.{short_name}")
        return _inferred(op_name, [lhs, rhs], result=result, loc=loc)

    builder.__name__ = short_name
    builder.__doc__ = doc
    return builder


def _cast_op(op_name: str, doc: str):
    def builder(in_, *, out: ir.Type, loc=None):
        return _cast(op_name, in_, out, loc=loc)

    builder.__name__ = op_name.split(".", 1)[1]
    builder.__doc__ = doc
    return builder


# Integer arithmetic.
addi = _binary_op("arith.addi", "Integer addition.")
subi = _binary_op("arith.subi", "Integer subtraction.")
muli = _binary_op("arith.muli", "Integer multiplication.")
divsi = _binary_op("arith.divsi", "Signed integer division, rounding towards zero.")
divui = _binary_op("arith.divui", "Unsigned integer division.")
ceildivsi = _binary_op("arith.ceildivsi", "Signed division rounding towards +inf.")
ceildivui = _binary_op("arith.ceildivui", "Unsigned division rounding towards +inf.")
floordivsi = _binary_op("arith.floordivsi", "Signed division rounding towards -inf.")
remsi = _binary_op("arith.remsi", "Signed integer remainder.")
remui = _binary_op("arith.remui", "Unsigned integer remainder.")
maxsi = _binary_op("arith.maxsi", "Signed integer maximum.")
maxui = _binary_op("arith.maxui", "Unsigned integer maximum.")
minsi = _binary_op("arith.minsi", "Signed integer minimum.")
minui = _binary_op("arith.minui", "Unsigned integer minimum.")

# Bitwise.
andi = _binary_op("arith.andi", "Bitwise and.")
ori = _binary_op("arith.ori", "Bitwise or.")
xori = _binary_op("arith.xori", "Bitwise xor.")
shli = _binary_op("arith.shli", "Shift left.")
shrsi = _binary_op("arith.shrsi", "Arithmetic shift right.")
shrui = _binary_op("arith.shrui", "Logical shift right.")

# Floating point.
addf = _binary_op("arith.addf", "Floating point addition.")
subf = _binary_op("arith.subf", "Floating point subtraction.")
mulf = _binary_op("arith.mulf", "Floating point multiplication.")
divf = _binary_op("arith.divf", "Floating point division.")
remf = _binary_op("arith.remf", "Floating point remainder.")
maxf = _renamed_binary_op(
    "arith.maxf", "arith.maximumf", "Floating point maximum, propagating NaN."
)
minf = _renamed_binary_op(
    "arith.minf", "arith.minimumf", "Floating point minimum, propagating NaN."
)
maximumf = _new_binary_op("arith.maximumf", "Floating point maximum, propagating NaN.")
minimumf = _new_binary_op("arith.minimumf", "Floating point minimum, propagating NaN.")
maxnumf = _new_binary_op("arith.maxnumf", "Floating point maximum, ignoring NaN.")
minnumf = _new_binary_op("arith.minnumf", "Floating point minimum, ignoring NaN.")

# Casts.
bitcast = _cast_op("arith.bitcast", "Reinterprets the bits as another same-width type.")
extf = _cast_op("arith.extf", "Widens a floating point value.")
extsi = _cast_op("arith.extsi", "Sign-extends an integer.")
extui = _cast_op("arith.extui", "Zero-extends an integer.")
truncf = _cast_op("arith.truncf", "Narrows a floating point value.")
trunci = _cast_op("arith.trunci", "Truncates an integer.")
fptosi = _cast_op("arith.fptosi", "Floating point to signed integer.")
fptoui = _cast_op("arith.fptoui", "Floating point to unsigned integer.")
sitofp = _cast_op("arith.sitofp", "Signed integer to floating point.")
uitofp = _cast_op("arith.uitofp", "Unsigned integer to floating point.")
index_cast = _cast_op("arith.index_cast", "Casts between index and integer types.")


def negf(operand, *, result: Optional[ir.Type] = None, loc=None):
    """Floating point negation."""
    return _inferred("arith.negf", [operand], result=result, loc=loc)


def cmpi(lhs, rhs, *, predicate, result: Optional[ir.Type] = None, loc=None):
    """Integer comparison; `predicate` is a `CmpIPredicate` (or its value)."""
    predicate = ir.Attribute.get_integer(int(CmpIPredicate(predicate)))
    return _inferred(
        "arith.cmpi",
        [lhs, rhs],
        attributes=[ir.NamedAttribute("predicate", predicate)],
        result=result,
        loc=loc,
    )


def cmpf(lhs, rhs, *, predicate, result: Optional[ir.Type] = None, loc=None):
    """Floating point comparison; `predicate` is a `CmpFPredicate`."""
    predicate = ir.Attribute.get_integer(int(CmpFPredicate(predicate)))
    return _inferred(
        "arith.cmpf",
        [lhs, rhs],
        attributes=[ir.NamedAttribute("predicate", predicate)],
        result=result,
        loc=loc,
    )


def select(condition, true_value, false_value, *, result=None, loc=None):
    return _inferred(
        "arith.select", [condition, true_value, false_value], result=result, loc=loc
    )


def constant(value, *, result: Optional[ir.Type] = None, loc=None):
    """A constant. Typed integers and floats are best passed as attributes,
    e.g. `ir.Attribute.get_integer(42, ir.Type.integer(32))`."""
    return _inferred(
        "arith.constant",
        [],
        attributes=[namedattribute("value", to_attribute(value))],
        result=result,
        loc=loc,
    )
