# Copyright 2026 The mlir-bridge Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Builders for the `func` dialect."""

from typing import Optional, Sequence

from .. import ir
from ._ods_common import get_default_loc, get_op_results_or_values, namedattribute


def func_(
    sym_name: str,
    function_type: ir.Type,
    body: ir.Region,
    *,
    sym_visibility: Optional[str] = None,
    arg_attrs=None,
    res_attrs=None,
    loc=None,
):
    attributes = [
        namedattribute("sym_name", sym_name),
        namedattribute("function_type", function_type),
    ]
    if sym_visibility is not None:
        attributes.append(namedattribute("sym_visibility", sym_visibility))
    if arg_attrs is not None:
        attributes.append(namedattribute("arg_attrs", arg_attrs))
    if res_attrs is not None:
        attributes.append(namedattribute("res_attrs", res_attrs))
    return ir.create_operation(
        "func.func",
        get_default_loc(loc),
        owned_regions=[body],
        attributes=attributes,
        results=[],
        result_inference=False,
    )


def return_(operands: Sequence = (), *, loc=None):
    return ir.create_operation(
        "func.return",
        get_default_loc(loc),
        operands=get_op_results_or_values(operands),
        results=[],
        result_inference=False,
    )


def call(
    callee: str, operands: Sequence = (), *, result_types: Sequence[ir.Type] = (), loc=None
):
    callee_attr = ir.Attribute.parse(f"@{callee}")
    return ir.create_operation(
        "func.call",
        get_default_loc(loc),
        operands=get_op_results_or_values(operands),
        attributes=[ir.NamedAttribute("callee", callee_attr)],
        results=list(result_types),
        result_inference=False,
    )


def constant(function: str, *, result: ir.Type, loc=None):
    """A reference to the function `@function` as an SSA value."""
    return ir.create_operation(
        "func.constant",
        get_default_loc(loc),
        attributes=[ir.NamedAttribute("value", ir.Attribute.parse(f"@{function}"))],
        results=[result],
        result_inference=False,
    )
