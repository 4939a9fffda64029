# Copyright 2026 The mlir-bridge Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Builders for the `linalg` dialect.

Structured ops take their operands as two variadic groups, `inputs` and
`outputs`, flattened into one operand list. The segment sizes attribute
records where one group ends and the next begins; `Operation.operand_segments`
splits them again:

    op = linalg.add([a, b], [init], result_tensors=[t], region=region)
    op.operand_segments(["inputs", "outputs"])  # {"inputs": [a, b], ...}
"""

from typing import Optional, Sequence

from .. import ir
from ._ods_common import (
    get_default_loc,
    get_op_result_or_value,
    get_op_results_or_values,
    namedattribute,
    operandsegmentsizes,
)

STRUCTURED_OPERAND_SEGMENTS = ("inputs", "outputs")


def _structured(
    op_name: str,
    inputs: Sequence,
    outputs: Sequence,
    result_tensors: Sequence[ir.Type],
    region: ir.Region,
    attributes=(),
    loc=None,
) -> ir.Operation:
    inputs = get_op_results_or_values(inputs)
    outputs = get_op_results_or_values(outputs)
    attributes = list(attributes)
    attributes.append(operandsegmentsizes([len(inputs), len(outputs)]))
    return ir.create_operation(
        op_name,
        get_default_loc(loc),
        operands=inputs + outputs,
        owned_regions=[region],
        attributes=attributes,
        results=list(result_tensors),
        result_inference=False,
    )


def fill(inputs, outputs, *, result_tensors=(), region: ir.Region, loc=None):
    """Fills the output with the scalar input value."""
    return _structured("linalg.fill", inputs, outputs, result_tensors, region, loc=loc)


def copy(inputs, outputs, *, result_tensors=(), region: ir.Region, cast=None, loc=None):
    attributes = []
    if cast is not None:
        attributes.append(namedattribute("cast", cast))
    return _structured(
        "linalg.copy", inputs, outputs, result_tensors, region, attributes, loc=loc
    )


def add(inputs, outputs, *, result_tensors=(), region: ir.Region, loc=None):
    """Elementwise addition of two identically shaped inputs."""
    return _structured("linalg.add", inputs, outputs, result_tensors, region, loc=loc)


def matmul(
    inputs, outputs, *, result_tensors=(), region: ir.Region, cast=None, loc=None
):
    attributes = []
    if cast is not None:
        attributes.append(namedattribute("cast", cast))
    return _structured(
        "linalg.matmul", inputs, outputs, result_tensors, region, attributes, loc=loc
    )


def generic(
    inputs,
    outputs,
    *,
    result_tensors=(),
    indexing_maps,
    iterator_types,
    region: ir.Region,
    doc: Optional[str] = None,
    library_call: Optional[str] = None,
    loc=None,
):
    attributes = [
        namedattribute("indexing_maps", indexing_maps),
        namedattribute("iterator_types", iterator_types),
    ]
    if doc is not None:
        attributes.append(namedattribute("doc", doc))
    if library_call is not None:
        attributes.append(namedattribute("library_call", library_call))
    return _structured(
        "linalg.generic", inputs, outputs, result_tensors, region, attributes, loc=loc
    )


def broadcast(
    input, init, *, result=(), dimensions: Sequence[int], region: ir.Region, loc=None
):
    # Fixed operands, hence no segment sizes.
    dims = ", ".join(str(int(d)) for d in dimensions)
    dimensions_attr = ir.Attribute.parse(
        f"array<i64: {dims}>" if dims else "array<i64>"
    )
    return ir.create_operation(
        "linalg.broadcast",
        get_default_loc(loc),
        operands=[get_op_result_or_value(input), get_op_result_or_value(init)],
        owned_regions=[region],
        attributes=[ir.NamedAttribute("dimensions", dimensions_attr)],
        results=list(result),
        result_inference=False,
    )


def index(*, dim: int, result: Optional[ir.Type] = None, loc=None):
    """The iteration index along `dim` of the enclosing structured op."""
    results = [result] if result is not None else []
    return ir.create_operation(
        "linalg.index",
        get_default_loc(loc),
        attributes=[namedattribute("dim", dim)],
        results=results,
        result_inference=not results,
    )


def yield_(values: Sequence = (), *, loc=None):
    return ir.create_operation(
        "linalg.yield",
        get_default_loc(loc),
        operands=get_op_results_or_values(values),
        results=[],
        result_inference=False,
    )
