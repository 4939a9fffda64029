# Copyright 2026 The mlir-bridge Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception
"""IR objects of the MLIR C API.

These are deliberately thin: each class holds one C API handle plus enough
bookkeeping to release it exactly once. Objects that are owned by a parent
in the IR (an operation in a block, a block in a region, ...) are non-owning
views which keep a reference to the Python object of their owner.

Most constructors take an optional `context=`. When omitted, the innermost
active context of the calling thread is used (see `Context.__enter__`).
"""

# pylint: disable=protected-access

from __future__ import annotations

__all__ = [
    "activate",
    "Attribute",
    "Block",
    "Context",
    "create_operation",
    "current_context",
    "current_context_or_none",
    "deactivate",
    "DialectHandle",
    "DialectRegistry",
    "Location",
    "Module",
    "NamedAttribute",
    "Operation",
    "Region",
    "register_all_dialects",
    "register_all_passes",
    "segment_sizes_attr_name",
    "Type",
    "Value",
]

from ctypes import POINTER, c_int32, c_int64, pointer
from typing import Dict, Iterator, List, Optional, Sequence

import threading

import numpy as np

from . import _capi
from .exception import MLIRError
from .version import mlir_version

# ------------------------------------------------------------------------------
# Context activation
# ------------------------------------------------------------------------------

_activation = threading.local()


def _active_contexts() -> List["Context"]:
    stack = getattr(_activation, "stack", None)
    if stack is None:
        stack = _activation.stack = []
    return stack


def activate(context: "Context"):
    """Makes `context` the default context of the calling thread."""
    _active_contexts().append(context)


def deactivate(context: "Context"):
    """Undoes the matching `activate(context)`."""
    stack = _active_contexts()
    if not stack or stack[-1] is not context:
        raise MLIRError("Deactivating a context that is not the active context")
    stack.pop()


def current_context_or_none() -> Optional["Context"]:
    stack = _active_contexts()
    return stack[-1] if stack else None


def current_context() -> "Context":
    context = current_context_or_none()
    if context is None:
        raise MLIRError(
            "No MLIR context is active: pass `context=` or enter a Context"
        )
    return context


def _resolve_context(context: Optional["Context"]) -> "Context":
    return context if context is not None else current_context()


def _print_to_str(print_fn, handle) -> str:
    capture = _capi.StringCapture()
    print_fn(handle, capture.callback, None)
    return capture.getvalue()


def segment_sizes_attr_name() -> str:
    """Name of the attribute holding operand segment sizes."""
    if mlir_version().major >= 17:
        return "operandSegmentSizes"
    return "operand_segment_sizes"


# ------------------------------------------------------------------------------
# Context and dialects
# ------------------------------------------------------------------------------


class Context:
    """Wraps an MlirContext.

    Contexts created from Python own their native context. Contexts handed
    out by MLIR (e.g. to an external pass) are borrowed and never destroyed
    from Python.
    """

    def __init__(self, *, allow_unregistered_dialects: bool = False):
        self._context_p = _capi.MlirContext()
        lib = _capi.dylib()
        context_p = lib.mlirContextCreate()
        if _capi.is_null(context_p):
            raise MLIRError("Failed to create MLIR context")
        self._context_p = context_p
        self._owned = True
        self._local_dylib = lib
        if allow_unregistered_dialects:
            self.allow_unregistered_dialects = True

    @classmethod
    def _borrow(cls, context_p: _capi.MlirContext) -> "Context":
        if _capi.is_null(context_p):
            raise MLIRError("Cannot wrap a null MlirContext")
        context = cls.__new__(cls)
        context._context_p = context_p
        context._owned = False
        context._local_dylib = _capi.dylib()
        return context

    def __del__(self):
        self.close()

    def close(self):
        context_p = getattr(self, "_context_p", None)
        if context_p is None or not context_p.ptr or not self._owned:
            return
        self._context_p = type(context_p)()
        self._local_dylib.mlirContextDestroy(context_p)

    def __enter__(self) -> "Context":
        activate(self)
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        deactivate(self)

    def __eq__(self, other):
        if not isinstance(other, Context):
            return NotImplemented
        return self._context_p.ptr == other._context_p.ptr

    def __hash__(self):
        return hash(self._context_p.ptr)

    def __repr__(self):
        kind = "owned" if self._owned else "borrowed"
        return f"<Context {kind} {self._context_p.ptr or 0:#x}>"

    @property
    def allow_unregistered_dialects(self) -> bool:
        return getattr(self, "_allow_unregistered", False)

    @allow_unregistered_dialects.setter
    def allow_unregistered_dialects(self, allow: bool):
        _capi.dylib().mlirContextSetAllowUnregisteredDialects(self._context_p, allow)
        self._allow_unregistered = allow

    def append_dialect_registry(self, registry: "DialectRegistry"):
        _capi.dylib().mlirContextAppendDialectRegistry(
            self._context_p, registry._registry_p
        )

    def load_all_available_dialects(self):
        _capi.dylib().mlirContextLoadAllAvailableDialects(self._context_p)

    def enable_multithreading(self, enable: bool = True):
        _capi.dylib().mlirContextEnableMultithreading(self._context_p, enable)

    def register_dialect(self, namespace: str):
        """Registers and loads the dialect `namespace` into this context."""
        handle = DialectHandle.get(namespace)
        handle.register(self)
        handle.load(self)


class DialectRegistry:
    """Wraps an owned MlirDialectRegistry."""

    def __init__(self):
        self._local_dylib = _capi.dylib()
        self._registry_p = self._local_dylib.mlirDialectRegistryCreate()

    def __del__(self):
        registry_p = getattr(self, "_registry_p", None)
        if registry_p is not None and registry_p.ptr:
            self._registry_p = type(registry_p)()
            self._local_dylib.mlirDialectRegistryDestroy(registry_p)

    def insert(self, namespace: str):
        DialectHandle.get(namespace).insert_into(self)


class DialectHandle:
    """Wraps an MlirDialectHandle, e.g. for external pass dependencies."""

    def __init__(self, handle: _capi.MlirDialectHandle, namespace: str = ""):
        self._handle = handle
        self.namespace = namespace

    @staticmethod
    def get(namespace: str) -> "DialectHandle":
        getter = _capi.dialect_handle_getter(_capi.dylib(), namespace)
        return DialectHandle(getter(), namespace)

    def insert_into(self, registry: DialectRegistry):
        _capi.dylib().mlirDialectHandleInsertDialect(self._handle, registry._registry_p)

    def register(self, context: Context):
        _capi.dylib().mlirDialectHandleRegisterDialect(self._handle, context._context_p)

    def load(self, context: Context):
        _capi.dylib().mlirDialectHandleLoadDialect(self._handle, context._context_p)

    def __repr__(self):
        return f"<DialectHandle {self.namespace}>"


def register_all_dialects(registry: DialectRegistry):
    lib = _capi.dylib()
    if not hasattr(lib, "mlirRegisterAllDialects"):
        raise MLIRError("The loaded MLIR library does not export mlirRegisterAllDialects")
    lib.mlirRegisterAllDialects(registry._registry_p)


def register_all_passes():
    lib = _capi.dylib()
    for name in ("mlirRegisterAllPasses", "mlirRegisterTransformsPasses"):
        if hasattr(lib, name):
            getattr(lib, name)()
            return
    raise MLIRError("The loaded MLIR library does not export pass registration")


# ------------------------------------------------------------------------------
# Locations, types and attributes
# ------------------------------------------------------------------------------


class Location:
    def __init__(self, location: _capi.MlirLocation, context: Context):
        self._location = location
        self.context = context

    @staticmethod
    def unknown(context: Optional[Context] = None) -> "Location":
        context = _resolve_context(context)
        return Location(
            _capi.dylib().mlirLocationUnknownGet(context._context_p), context
        )

    @staticmethod
    def file(
        filename: str, line: int, col: int, context: Optional[Context] = None
    ) -> "Location":
        context = _resolve_context(context)
        return Location(
            _capi.dylib().mlirLocationFileLineColGet(
                context._context_p, _capi.string_ref(filename), line, col
            ),
            context,
        )


class Type:
    """Wraps an MlirType (uniqued by the context, never destroyed)."""

    def __init__(self, type_: _capi.MlirType):
        if _capi.is_null(type_):
            raise MLIRError("Cannot wrap a null MlirType")
        self._type = type_

    @staticmethod
    def parse(text: str, context: Optional[Context] = None) -> "Type":
        context = _resolve_context(context)
        type_ = _capi.dylib().mlirTypeParseGet(
            context._context_p, _capi.string_ref(text)
        )
        if _capi.is_null(type_):
            raise MLIRError(f"Unable to parse type: '{text}'")
        return Type(type_)

    @staticmethod
    def integer(width: int, context: Optional[Context] = None) -> "Type":
        context = _resolve_context(context)
        return Type(_capi.dylib().mlirIntegerTypeGet(context._context_p, width))

    @staticmethod
    def index(context: Optional[Context] = None) -> "Type":
        context = _resolve_context(context)
        return Type(_capi.dylib().mlirIndexTypeGet(context._context_p))

    @staticmethod
    def f32(context: Optional[Context] = None) -> "Type":
        context = _resolve_context(context)
        return Type(_capi.dylib().mlirF32TypeGet(context._context_p))

    @staticmethod
    def f64(context: Optional[Context] = None) -> "Type":
        context = _resolve_context(context)
        return Type(_capi.dylib().mlirF64TypeGet(context._context_p))

    @staticmethod
    def vector(shape: Sequence[int], element_type: "Type") -> "Type":
        dims = (c_int64 * len(shape))(*shape)
        return Type(
            _capi.dylib().mlirVectorTypeGet(len(shape), dims, element_type._type)
        )

    def __eq__(self, other):
        if not isinstance(other, Type):
            return NotImplemented
        return bool(_capi.dylib().mlirTypeEqual(self._type, other._type))

    def __str__(self):
        return _print_to_str(_capi.dylib().mlirTypePrint, self._type)

    def __repr__(self):
        return f"Type({self})"


class Attribute:
    """Wraps an MlirAttribute (uniqued by the context, never destroyed)."""

    def __init__(self, attr: _capi.MlirAttribute):
        if _capi.is_null(attr):
            raise MLIRError("Cannot wrap a null MlirAttribute")
        self._attr = attr

    @staticmethod
    def parse(text: str, context: Optional[Context] = None) -> "Attribute":
        context = _resolve_context(context)
        attr = _capi.dylib().mlirAttributeParseGet(
            context._context_p, _capi.string_ref(text)
        )
        if _capi.is_null(attr):
            raise MLIRError(f"Unable to parse attribute: '{text}'")
        return Attribute(attr)

    @staticmethod
    def get_integer(
        value: int, type_: Optional[Type] = None, context: Optional[Context] = None
    ) -> "Attribute":
        if type_ is None:
            type_ = Type.integer(64, context=context)
        return Attribute(_capi.dylib().mlirIntegerAttrGet(type_._type, value))

    @staticmethod
    def get_float(
        value: float, type_: Optional[Type] = None, context: Optional[Context] = None
    ) -> "Attribute":
        context = _resolve_context(context)
        if type_ is None:
            type_ = Type.f64(context=context)
        return Attribute(
            _capi.dylib().mlirFloatAttrDoubleGet(context._context_p, type_._type, value)
        )

    @staticmethod
    def get_bool(value: bool, context: Optional[Context] = None) -> "Attribute":
        context = _resolve_context(context)
        return Attribute(
            _capi.dylib().mlirBoolAttrGet(context._context_p, 1 if value else 0)
        )

    @staticmethod
    def get_string(value: str, context: Optional[Context] = None) -> "Attribute":
        context = _resolve_context(context)
        return Attribute(
            _capi.dylib().mlirStringAttrGet(
                context._context_p, _capi.string_ref(value)
            )
        )

    @staticmethod
    def get_type(type_: Type) -> "Attribute":
        return Attribute(_capi.dylib().mlirTypeAttrGet(type_._type))

    @staticmethod
    def get_array(
        elements: Sequence["Attribute"], context: Optional[Context] = None
    ) -> "Attribute":
        context = _resolve_context(context)
        array = _capi.handle_array(_capi.MlirAttribute, [e._attr for e in elements])
        return Attribute(
            _capi.dylib().mlirArrayAttrGet(context._context_p, len(elements), array)
        )

    @staticmethod
    def dense_i32_array(
        values: Sequence[int], context: Optional[Context] = None
    ) -> "Attribute":
        """Creates a `array<i32: ...>` attribute."""
        context = _resolve_context(context)
        data = np.ascontiguousarray(values, dtype=np.int32)
        return Attribute(
            _capi.dylib().mlirDenseI32ArrayGet(
                context._context_p, data.size, data.ctypes.data_as(POINTER(c_int32))
            )
        )

    @staticmethod
    def dense_i32_elements(
        values: Sequence[int], context: Optional[Context] = None
    ) -> "Attribute":
        """Creates a `dense<...> : vector<Nxi32>` attribute."""
        data = np.ascontiguousarray(values, dtype=np.int32)
        shaped = Type.vector([data.size], Type.integer(32, context=context))
        return Attribute(
            _capi.dylib().mlirDenseElementsAttrInt32Get(
                shaped._type, data.size, data.ctypes.data_as(POINTER(c_int32))
            )
        )

    def i32_values(self) -> np.ndarray:
        """Reads back a dense i32 array or dense i32 elements attribute."""
        lib = _capi.dylib()
        if mlir_version().major >= 16 and lib.mlirAttributeIsADenseI32Array(self._attr):
            count = lib.mlirDenseArrayGetNumElements(self._attr)
            return np.fromiter(
                (lib.mlirDenseI32ArrayGetElement(self._attr, i) for i in range(count)),
                dtype=np.int32,
                count=count,
            )
        if lib.mlirAttributeIsADenseElements(self._attr):
            count = lib.mlirElementsAttrGetNumElements(self._attr)
            return np.fromiter(
                (
                    lib.mlirDenseElementsAttrGetInt32Value(self._attr, i)
                    for i in range(count)
                ),
                dtype=np.int32,
                count=count,
            )
        raise MLIRError(f"Attribute {self} does not hold dense i32 values")

    def __eq__(self, other):
        if not isinstance(other, Attribute):
            return NotImplemented
        return bool(_capi.dylib().mlirAttributeEqual(self._attr, other._attr))

    def __str__(self):
        return _print_to_str(_capi.dylib().mlirAttributePrint, self._attr)

    def __repr__(self):
        return f"Attribute({self})"


class NamedAttribute:
    def __init__(self, name: str, attr: Attribute, context: Optional[Context] = None):
        context = _resolve_context(context)
        lib = _capi.dylib()
        identifier = lib.mlirIdentifierGet(context._context_p, _capi.string_ref(name))
        self.name = name
        self.attr = attr
        self._named_attribute = lib.mlirNamedAttributeGet(identifier, attr._attr)

    def __repr__(self):
        return f"NamedAttribute({self.name}={self.attr})"


# ------------------------------------------------------------------------------
# Values, blocks, regions and operations
# ------------------------------------------------------------------------------


class Value:
    def __init__(self, value: _capi.MlirValue, owner=None):
        if _capi.is_null(value):
            raise MLIRError("Cannot wrap a null MlirValue")
        self._value = value
        self._owner = owner

    @property
    def type(self) -> Type:
        return Type(_capi.dylib().mlirValueGetType(self._value))

    def __eq__(self, other):
        if not isinstance(other, Value):
            return NotImplemented
        return bool(_capi.dylib().mlirValueEqual(self._value, other._value))

    def __str__(self):
        return _print_to_str(_capi.dylib().mlirValuePrint, self._value)


class Block:
    """Wraps an MlirBlock, owned until appended to a region."""

    def __init__(self, block: _capi.MlirBlock, owned: bool = False, owner=None):
        if _capi.is_null(block):
            raise MLIRError("Cannot wrap a null MlirBlock")
        self._block = block
        self._owned = owned
        self._owner = owner
        self._local_dylib = _capi.dylib()

    @staticmethod
    def create(
        arg_types: Sequence[Type] = (),
        arg_locs: Optional[Sequence[Location]] = None,
        context: Optional[Context] = None,
    ) -> "Block":
        if arg_locs is None:
            unknown = Location.unknown(context)
            arg_locs = [unknown] * len(arg_types)
        if len(arg_locs) != len(arg_types):
            raise ValueError(
                f"Expected {len(arg_types)} argument locations, got {len(arg_locs)}"
            )
        block = _capi.dylib().mlirBlockCreate(
            len(arg_types),
            _capi.handle_array(_capi.MlirType, [t._type for t in arg_types]),
            _capi.handle_array(_capi.MlirLocation, [loc._location for loc in arg_locs]),
        )
        return Block(block, owned=True)

    def __del__(self):
        if getattr(self, "_owned", False):
            self._owned = False
            self._local_dylib.mlirBlockDestroy(self._block)

    @property
    def arguments(self) -> List[Value]:
        lib = _capi.dylib()
        count = lib.mlirBlockGetNumArguments(self._block)
        return [Value(lib.mlirBlockGetArgument(self._block, i), self) for i in range(count)]

    def append(self, operation: "Operation") -> "Operation":
        """Transfers ownership of `operation` to this block."""
        if not operation._owned:
            raise MLIRError("Only detached (owned) operations can be appended")
        _capi.dylib().mlirBlockAppendOwnedOperation(self._block, operation._operation)
        operation._owned = False
        operation._owner = self
        return operation

    @property
    def operations(self) -> Iterator["Operation"]:
        lib = _capi.dylib()
        operation = lib.mlirBlockGetFirstOperation(self._block)
        while not _capi.is_null(operation):
            yield Operation(operation, owner=self)
            operation = lib.mlirOperationGetNextInBlock(operation)


class Region:
    """Wraps an MlirRegion, owned until handed to `create_operation`."""

    def __init__(self, region: Optional[_capi.MlirRegion] = None, owner=None):
        self._local_dylib = _capi.dylib()
        if region is None:
            region = self._local_dylib.mlirRegionCreate()
            self._owned = True
        else:
            self._owned = False
        if _capi.is_null(region):
            raise MLIRError("Cannot wrap a null MlirRegion")
        self._region = region
        self._owner = owner

    def __del__(self):
        if getattr(self, "_owned", False):
            self._owned = False
            self._local_dylib.mlirRegionDestroy(self._region)

    def append(self, block: Block) -> Block:
        """Transfers ownership of `block` to this region."""
        if not block._owned:
            raise MLIRError("Only detached (owned) blocks can be appended")
        _capi.dylib().mlirRegionAppendOwnedBlock(self._region, block._block)
        block._owned = False
        block._owner = self
        return block

    @property
    def blocks(self) -> Iterator[Block]:
        lib = _capi.dylib()
        block = lib.mlirRegionGetFirstBlock(self._region)
        while not _capi.is_null(block):
            yield Block(block, owner=self)
            block = lib.mlirBlockGetNextInRegion(block)


class Operation:
    """Wraps an MlirOperation.

    Operations returned by `create_operation` are owned until they are
    appended to a block. Operations reached through the IR (or handed to a
    pass) are non-owning views.
    """

    def __init__(self, operation: _capi.MlirOperation, owned: bool = False, owner=None):
        if _capi.is_null(operation):
            raise MLIRError("Cannot wrap a null MlirOperation")
        self._operation = operation
        self._owned = owned
        self._owner = owner
        self._local_dylib = _capi.dylib()

    def __del__(self):
        if getattr(self, "_owned", False):
            self._owned = False
            self._local_dylib.mlirOperationDestroy(self._operation)

    @property
    def name(self) -> str:
        lib = _capi.dylib()
        return _capi.string_ref_value(
            lib.mlirIdentifierStr(lib.mlirOperationGetName(self._operation))
        )

    @property
    def context(self) -> Context:
        return Context._borrow(_capi.dylib().mlirOperationGetContext(self._operation))

    @property
    def operands(self) -> List[Value]:
        lib = _capi.dylib()
        count = lib.mlirOperationGetNumOperands(self._operation)
        return [
            Value(lib.mlirOperationGetOperand(self._operation, i), self)
            for i in range(count)
        ]

    @property
    def results(self) -> List[Value]:
        lib = _capi.dylib()
        count = lib.mlirOperationGetNumResults(self._operation)
        return [
            Value(lib.mlirOperationGetResult(self._operation, i), self)
            for i in range(count)
        ]

    @property
    def result(self) -> Value:
        results = self.results
        if len(results) != 1:
            raise ValueError(
                f"Operation '{self.name}' has {len(results)} results, expected 1"
            )
        return results[0]

    @property
    def regions(self) -> List[Region]:
        lib = _capi.dylib()
        count = lib.mlirOperationGetNumRegions(self._operation)
        return [
            Region(lib.mlirOperationGetRegion(self._operation, i), owner=self)
            for i in range(count)
        ]

    def attribute(self, name: str) -> Optional[Attribute]:
        attr = _capi.dylib().mlirOperationGetAttributeByName(
            self._operation, _capi.string_ref(name)
        )
        if _capi.is_null(attr):
            return None
        return Attribute(attr)

    def operand_segments(
        self, names: Sequence[str], attr_name: Optional[str] = None
    ) -> Dict[str, List[Value]]:
        """Splits the operands into named groups by the segment sizes attribute."""
        attr_name = attr_name or segment_sizes_attr_name()
        attr = self.attribute(attr_name)
        if attr is None:
            raise MLIRError(f"Operation '{self.name}' has no '{attr_name}' attribute")
        sizes = attr.i32_values()
        if len(sizes) != len(names):
            raise ValueError(
                f"Operation '{self.name}' has {len(sizes)} operand segments, "
                f"got {len(names)} names"
            )
        operands = self.operands
        if int(sizes.sum()) != len(operands):
            raise MLIRError(
                f"Operand segment sizes {sizes.tolist()} do not add up to "
                f"{len(operands)} operands"
            )
        bounds = np.concatenate(([0], np.cumsum(sizes)))
        return {
            name: operands[bounds[i] : bounds[i + 1]] for i, name in enumerate(names)
        }

    def verify(self) -> bool:
        return bool(_capi.dylib().mlirOperationVerify(self._operation))

    def __eq__(self, other):
        if not isinstance(other, Operation):
            return NotImplemented
        return bool(
            _capi.dylib().mlirOperationEqual(self._operation, other._operation)
        )

    def __str__(self):
        return _print_to_str(_capi.dylib().mlirOperationPrint, self._operation)

    def __repr__(self):
        return f"<Operation '{self.name}'>"


class Module:
    """Wraps an owned MlirModule."""

    def __init__(self, module: _capi.MlirModule, context: Context):
        if _capi.is_null(module):
            raise MLIRError("Cannot wrap a null MlirModule")
        self._module = module
        self._context = context
        self._local_dylib = _capi.dylib()

    @staticmethod
    def parse(asm: str, context: Optional[Context] = None) -> "Module":
        context = _resolve_context(context)
        module = _capi.dylib().mlirModuleCreateParse(
            context._context_p, _capi.string_ref(asm)
        )
        if _capi.is_null(module):
            raise MLIRError("Unable to parse module assembly")
        return Module(module, context)

    @staticmethod
    def create(loc: Optional[Location] = None) -> "Module":
        if loc is None:
            loc = Location.unknown()
        return Module(_capi.dylib().mlirModuleCreateEmpty(loc._location), loc.context)

    def __del__(self):
        module = getattr(self, "_module", None)
        if module is not None and module.ptr:
            self._module = type(module)()
            self._local_dylib.mlirModuleDestroy(module)

    @property
    def context(self) -> Context:
        return self._context

    @property
    def operation(self) -> Operation:
        return Operation(_capi.dylib().mlirModuleGetOperation(self._module), owner=self)

    @property
    def body(self) -> Block:
        return Block(_capi.dylib().mlirModuleGetBody(self._module), owner=self)

    def __str__(self):
        return str(self.operation)


# ------------------------------------------------------------------------------
# Operation creation
# ------------------------------------------------------------------------------


def create_operation(
    name: str,
    location: Optional[Location] = None,
    *,
    operands: Sequence[Value] = (),
    owned_regions: Sequence[Region] = (),
    successors: Sequence[Block] = (),
    attributes: Sequence[NamedAttribute] = (),
    results: Optional[Sequence[Type]] = None,
    result_inference: Optional[bool] = None,
) -> Operation:
    """Creates a detached operation through `mlirOperationCreate`.

    Ownership of `owned_regions` moves to the new operation. Result types are
    inferred by MLIR when `results` is empty, unless `result_inference` says
    otherwise.
    """
    lib = _capi.dylib()
    if location is None:
        location = Location.unknown()
    results = list(results) if results is not None else []
    if result_inference is None:
        result_inference = not results

    name_ref = _capi.string_ref(name)
    state = lib.mlirOperationStateGet(name_ref, location._location)
    state_p = pointer(state)
    if results:
        lib.mlirOperationStateAddResults(
            state_p,
            len(results),
            _capi.handle_array(_capi.MlirType, [t._type for t in results]),
        )
    if operands:
        lib.mlirOperationStateAddOperands(
            state_p,
            len(operands),
            _capi.handle_array(_capi.MlirValue, [v._value for v in operands]),
        )
    if owned_regions:
        for region in owned_regions:
            if not region._owned:
                raise MLIRError("Regions passed to an operation must be detached")
        lib.mlirOperationStateAddOwnedRegions(
            state_p,
            len(owned_regions),
            _capi.handle_array(_capi.MlirRegion, [r._region for r in owned_regions]),
        )
    if successors:
        lib.mlirOperationStateAddSuccessors(
            state_p,
            len(successors),
            _capi.handle_array(_capi.MlirBlock, [b._block for b in successors]),
        )
    if attributes:
        lib.mlirOperationStateAddAttributes(
            state_p,
            len(attributes),
            _capi.handle_array(
                _capi.MlirNamedAttribute, [a._named_attribute for a in attributes]
            ),
        )
    if result_inference:
        lib.mlirOperationStateEnableResultTypeInference(state_p)

    operation_p = lib.mlirOperationCreate(state_p)
    # The state consumed the regions whether or not creation succeeded.
    for region in owned_regions:
        region._owned = False
    if _capi.is_null(operation_p):
        raise MLIRError(f"Failed to create operation '{name}'")
    operation = Operation(operation_p, owned=True)
    for region in owned_regions:
        region._owner = operation
    return operation
