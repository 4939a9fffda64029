# Copyright 2026 The mlir-bridge Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Dynamic library binding to the MLIR C API, using ctypes.

Every value type of the C API (`MlirContext`, `MlirOperation`, ...) is a
struct wrapping a single pointer and is mirrored here as a ctypes Structure.
The library itself is loaded lazily by `dylib()`. Anything that quacks like
the loaded library (i.e. exposes the same entry point names) may be installed
in its place with `set_dylib()`.
"""

from ctypes import *
from pathlib import Path
from typing import List, Optional

import importlib.util
import io
import logging
import platform

from . import flags
from .version import mlir_version

__all__ = [
    "dylib",
    "is_available",
    "set_dylib",
]

logger = logging.getLogger(__name__)

_dylib = None


def _handle_type(name: str):
    return type(name, (Structure,), {"_fields_": [("ptr", c_void_p)]})


MlirAttribute = _handle_type("MlirAttribute")
MlirBlock = _handle_type("MlirBlock")
MlirContext = _handle_type("MlirContext")
MlirDialect = _handle_type("MlirDialect")
MlirDialectHandle = _handle_type("MlirDialectHandle")
MlirDialectRegistry = _handle_type("MlirDialectRegistry")
MlirExternalPass = _handle_type("MlirExternalPass")
MlirIdentifier = _handle_type("MlirIdentifier")
MlirLocation = _handle_type("MlirLocation")
MlirModule = _handle_type("MlirModule")
MlirOperation = _handle_type("MlirOperation")
MlirOpPassManager = _handle_type("MlirOpPassManager")
MlirOpPrintingFlags = _handle_type("MlirOpPrintingFlags")
MlirPass = _handle_type("MlirPass")
MlirPassManager = _handle_type("MlirPassManager")
MlirRegion = _handle_type("MlirRegion")
MlirType = _handle_type("MlirType")
MlirTypeID = _handle_type("MlirTypeID")
MlirTypeIDAllocator = _handle_type("MlirTypeIDAllocator")
MlirValue = _handle_type("MlirValue")


class MlirStringRef(Structure):
    _fields_ = [("data", c_void_p), ("length", c_size_t)]


class MlirLogicalResult(Structure):
    _fields_ = [("value", c_int8)]


class MlirNamedAttribute(Structure):
    _fields_ = [("name", MlirIdentifier), ("attribute", MlirAttribute)]


class MlirOperationState(Structure):
    _fields_ = [
        ("name", MlirStringRef),
        ("location", MlirLocation),
        ("nResults", c_ssize_t),
        ("results", POINTER(MlirType)),
        ("nOperands", c_ssize_t),
        ("operands", POINTER(MlirValue)),
        ("nRegions", c_ssize_t),
        ("regions", POINTER(MlirRegion)),
        ("nSuccessors", c_ssize_t),
        ("successors", POINTER(MlirBlock)),
        ("nAttributes", c_ssize_t),
        ("attributes", POINTER(MlirNamedAttribute)),
        ("enableResultTypeInference", c_bool),
    ]


# void (*MlirStringCallback)(MlirStringRef, void *userData)
STRING_CALLBACK = CFUNCTYPE(None, MlirStringRef, c_void_p)

# External pass callbacks. ctypes cannot return structs from callbacks, so
# single-pointer handles are received as plain pointers and MlirLogicalResult
# is returned as its int8 payload. Both are ABI-identical to the structs.
PASS_CONSTRUCT_CALLBACK = CFUNCTYPE(None, c_void_p)
PASS_DESTRUCT_CALLBACK = CFUNCTYPE(None, c_void_p)
PASS_INITIALIZE_CALLBACK = CFUNCTYPE(c_int8, c_void_p, c_void_p)
PASS_CLONE_CALLBACK = CFUNCTYPE(c_void_p, c_void_p)
PASS_RUN_CALLBACK = CFUNCTYPE(None, c_void_p, c_void_p, c_void_p)


class MlirExternalPassCallbacks(Structure):
    _fields_ = [
        ("construct", PASS_CONSTRUCT_CALLBACK),
        ("destruct", PASS_DESTRUCT_CALLBACK),
        ("initialize", PASS_INITIALIZE_CALLBACK),
        ("clone", PASS_CLONE_CALLBACK),
        ("run", PASS_RUN_CALLBACK),
    ]


def _setsig(f, restype, argtypes):
    f.restype = restype
    f.argtypes = argtypes


def _init_dylib():
    global _dylib
    if _dylib:
        return
    dylib_path = _probe_mlir_capi_dylib()
    lib = cdll.LoadLibrary(dylib_path)
    _setup_signatures(lib)
    _dylib = lib


def _setup_signatures(lib):
    version = mlir_version()

    # Context
    _setsig(lib.mlirContextCreate, MlirContext, [])
    _setsig(lib.mlirContextDestroy, None, [MlirContext])
    _setsig(lib.mlirContextSetAllowUnregisteredDialects, None, [MlirContext, c_bool])
    _setsig(lib.mlirContextAppendDialectRegistry, None, [MlirContext, MlirDialectRegistry])
    _setsig(lib.mlirContextLoadAllAvailableDialects, None, [MlirContext])
    _setsig(lib.mlirContextEnableMultithreading, None, [MlirContext, c_bool])
    _setsig(lib.mlirDialectRegistryCreate, MlirDialectRegistry, [])
    _setsig(lib.mlirDialectRegistryDestroy, None, [MlirDialectRegistry])
    _setsig(lib.mlirDialectHandleInsertDialect, None, [MlirDialectHandle, MlirDialectRegistry])
    _setsig(lib.mlirDialectHandleRegisterDialect, None, [MlirDialectHandle, MlirContext])
    _setsig(lib.mlirDialectHandleLoadDialect, MlirDialect, [MlirDialectHandle, MlirContext])

    # Location / Identifier
    _setsig(lib.mlirLocationUnknownGet, MlirLocation, [MlirContext])
    _setsig(
        lib.mlirLocationFileLineColGet,
        MlirLocation,
        [MlirContext, MlirStringRef, c_uint, c_uint],
    )
    _setsig(lib.mlirIdentifierGet, MlirIdentifier, [MlirContext, MlirStringRef])
    _setsig(lib.mlirIdentifierStr, MlirStringRef, [MlirIdentifier])

    # Type
    _setsig(lib.mlirTypeParseGet, MlirType, [MlirContext, MlirStringRef])
    _setsig(lib.mlirIntegerTypeGet, MlirType, [MlirContext, c_uint])
    _setsig(lib.mlirIndexTypeGet, MlirType, [MlirContext])
    _setsig(lib.mlirF32TypeGet, MlirType, [MlirContext])
    _setsig(lib.mlirF64TypeGet, MlirType, [MlirContext])
    _setsig(lib.mlirVectorTypeGet, MlirType, [c_ssize_t, POINTER(c_int64), MlirType])
    _setsig(lib.mlirTypeEqual, c_bool, [MlirType, MlirType])
    _setsig(lib.mlirTypePrint, None, [MlirType, STRING_CALLBACK, c_void_p])

    # Attribute
    _setsig(lib.mlirAttributeParseGet, MlirAttribute, [MlirContext, MlirStringRef])
    _setsig(lib.mlirAttributeEqual, c_bool, [MlirAttribute, MlirAttribute])
    _setsig(lib.mlirAttributePrint, None, [MlirAttribute, STRING_CALLBACK, c_void_p])
    _setsig(lib.mlirIntegerAttrGet, MlirAttribute, [MlirType, c_int64])
    _setsig(lib.mlirFloatAttrDoubleGet, MlirAttribute, [MlirContext, MlirType, c_double])
    _setsig(lib.mlirBoolAttrGet, MlirAttribute, [MlirContext, c_int])
    _setsig(lib.mlirStringAttrGet, MlirAttribute, [MlirContext, MlirStringRef])
    _setsig(lib.mlirTypeAttrGet, MlirAttribute, [MlirType])
    _setsig(
        lib.mlirArrayAttrGet,
        MlirAttribute,
        [MlirContext, c_ssize_t, POINTER(MlirAttribute)],
    )
    _setsig(
        lib.mlirDenseElementsAttrInt32Get,
        MlirAttribute,
        [MlirType, c_ssize_t, POINTER(c_int32)],
    )
    _setsig(lib.mlirAttributeIsADenseElements, c_bool, [MlirAttribute])
    _setsig(lib.mlirElementsAttrGetNumElements, c_int64, [MlirAttribute])
    _setsig(lib.mlirDenseElementsAttrGetInt32Value, c_int32, [MlirAttribute, c_ssize_t])
    if version.major >= 16:
        _setsig(
            lib.mlirDenseI32ArrayGet,
            MlirAttribute,
            [MlirContext, c_ssize_t, POINTER(c_int32)],
        )
        _setsig(lib.mlirAttributeIsADenseI32Array, c_bool, [MlirAttribute])
        _setsig(lib.mlirDenseArrayGetNumElements, c_ssize_t, [MlirAttribute])
        _setsig(lib.mlirDenseI32ArrayGetElement, c_int32, [MlirAttribute, c_ssize_t])
    _setsig(lib.mlirNamedAttributeGet, MlirNamedAttribute, [MlirIdentifier, MlirAttribute])

    # Operation
    _setsig(lib.mlirOperationStateGet, MlirOperationState, [MlirStringRef, MlirLocation])
    state_p = POINTER(MlirOperationState)
    _setsig(lib.mlirOperationStateAddResults, None, [state_p, c_ssize_t, POINTER(MlirType)])
    _setsig(lib.mlirOperationStateAddOperands, None, [state_p, c_ssize_t, POINTER(MlirValue)])
    _setsig(
        lib.mlirOperationStateAddOwnedRegions,
        None,
        [state_p, c_ssize_t, POINTER(MlirRegion)],
    )
    _setsig(lib.mlirOperationStateAddSuccessors, None, [state_p, c_ssize_t, POINTER(MlirBlock)])
    _setsig(
        lib.mlirOperationStateAddAttributes,
        None,
        [state_p, c_ssize_t, POINTER(MlirNamedAttribute)],
    )
    _setsig(lib.mlirOperationStateEnableResultTypeInference, None, [state_p])
    _setsig(lib.mlirOperationCreate, MlirOperation, [state_p])
    _setsig(lib.mlirOperationDestroy, None, [MlirOperation])
    _setsig(lib.mlirOperationEqual, c_bool, [MlirOperation, MlirOperation])
    _setsig(lib.mlirOperationGetContext, MlirContext, [MlirOperation])
    _setsig(lib.mlirOperationGetName, MlirIdentifier, [MlirOperation])
    _setsig(lib.mlirOperationGetNumOperands, c_ssize_t, [MlirOperation])
    _setsig(lib.mlirOperationGetOperand, MlirValue, [MlirOperation, c_ssize_t])
    _setsig(lib.mlirOperationGetNumResults, c_ssize_t, [MlirOperation])
    _setsig(lib.mlirOperationGetResult, MlirValue, [MlirOperation, c_ssize_t])
    _setsig(lib.mlirOperationGetNumRegions, c_ssize_t, [MlirOperation])
    _setsig(lib.mlirOperationGetRegion, MlirRegion, [MlirOperation, c_ssize_t])
    _setsig(lib.mlirOperationGetNextInBlock, MlirOperation, [MlirOperation])
    _setsig(
        lib.mlirOperationGetAttributeByName,
        MlirAttribute,
        [MlirOperation, MlirStringRef],
    )
    _setsig(lib.mlirOperationPrint, None, [MlirOperation, STRING_CALLBACK, c_void_p])
    _setsig(lib.mlirOperationVerify, c_bool, [MlirOperation])

    # Value / Block / Region
    _setsig(lib.mlirValueGetType, MlirType, [MlirValue])
    _setsig(lib.mlirValueEqual, c_bool, [MlirValue, MlirValue])
    _setsig(lib.mlirValuePrint, None, [MlirValue, STRING_CALLBACK, c_void_p])
    _setsig(
        lib.mlirBlockCreate,
        MlirBlock,
        [c_ssize_t, POINTER(MlirType), POINTER(MlirLocation)],
    )
    _setsig(lib.mlirBlockDestroy, None, [MlirBlock])
    _setsig(lib.mlirBlockGetNumArguments, c_ssize_t, [MlirBlock])
    _setsig(lib.mlirBlockGetArgument, MlirValue, [MlirBlock, c_ssize_t])
    _setsig(lib.mlirBlockAppendOwnedOperation, None, [MlirBlock, MlirOperation])
    _setsig(lib.mlirBlockGetFirstOperation, MlirOperation, [MlirBlock])
    _setsig(lib.mlirBlockGetNextInRegion, MlirBlock, [MlirBlock])
    _setsig(lib.mlirRegionCreate, MlirRegion, [])
    _setsig(lib.mlirRegionDestroy, None, [MlirRegion])
    _setsig(lib.mlirRegionAppendOwnedBlock, None, [MlirRegion, MlirBlock])
    _setsig(lib.mlirRegionGetFirstBlock, MlirBlock, [MlirRegion])

    # Module
    _setsig(lib.mlirModuleCreateEmpty, MlirModule, [MlirLocation])
    _setsig(lib.mlirModuleCreateParse, MlirModule, [MlirContext, MlirStringRef])
    _setsig(lib.mlirModuleGetOperation, MlirOperation, [MlirModule])
    _setsig(lib.mlirModuleGetBody, MlirBlock, [MlirModule])
    _setsig(lib.mlirModuleDestroy, None, [MlirModule])

    # TypeID
    _setsig(lib.mlirTypeIDAllocatorCreate, MlirTypeIDAllocator, [])
    _setsig(lib.mlirTypeIDAllocatorDestroy, None, [MlirTypeIDAllocator])
    _setsig(lib.mlirTypeIDAllocatorAllocateTypeID, MlirTypeID, [MlirTypeIDAllocator])
    _setsig(lib.mlirTypeIDEqual, c_bool, [MlirTypeID, MlirTypeID])
    _setsig(lib.mlirTypeIDHashValue, c_size_t, [MlirTypeID])

    # PassManager
    _setsig(lib.mlirPassManagerCreate, MlirPassManager, [MlirContext])
    if version.major >= 16:
        _setsig(
            lib.mlirPassManagerCreateOnOperation,
            MlirPassManager,
            [MlirContext, MlirStringRef],
        )
    _setsig(lib.mlirPassManagerDestroy, None, [MlirPassManager])
    _setsig(lib.mlirPassManagerGetAsOpPassManager, MlirOpPassManager, [MlirPassManager])
    if version.major >= 17:
        _setsig(
            lib.mlirPassManagerRunOnOp,
            MlirLogicalResult,
            [MlirPassManager, MlirOperation],
        )
    else:
        _setsig(lib.mlirPassManagerRun, MlirLogicalResult, [MlirPassManager, MlirModule])
    if version.major >= 20:
        _setsig(lib.mlirOpPrintingFlagsCreate, MlirOpPrintingFlags, [])
        _setsig(lib.mlirOpPrintingFlagsDestroy, None, [MlirOpPrintingFlags])
        _setsig(
            lib.mlirPassManagerEnableIRPrinting,
            None,
            [
                MlirPassManager,
                c_bool,  # printBeforeAll
                c_bool,  # printAfterAll
                c_bool,  # printModuleScope
                c_bool,  # printAfterOnlyOnChange
                c_bool,  # printAfterOnlyOnFailure
                MlirOpPrintingFlags,  # flags
                MlirStringRef,  # treePrintingPath
            ],
        )
    elif version.major >= 19:
        _setsig(
            lib.mlirPassManagerEnableIRPrinting,
            None,
            [MlirPassManager, c_bool, c_bool, c_bool, c_bool, c_bool],
        )
    else:
        _setsig(lib.mlirPassManagerEnableIRPrinting, None, [MlirPassManager])
    _setsig(lib.mlirPassManagerEnableVerifier, None, [MlirPassManager, c_bool])
    _setsig(
        lib.mlirPassManagerGetNestedUnder,
        MlirOpPassManager,
        [MlirPassManager, MlirStringRef],
    )
    _setsig(
        lib.mlirOpPassManagerGetNestedUnder,
        MlirOpPassManager,
        [MlirOpPassManager, MlirStringRef],
    )
    _setsig(lib.mlirPassManagerAddOwnedPass, None, [MlirPassManager, MlirPass])
    _setsig(lib.mlirOpPassManagerAddOwnedPass, None, [MlirOpPassManager, MlirPass])
    _setsig(
        lib.mlirPrintPassPipeline,
        None,
        [MlirOpPassManager, STRING_CALLBACK, c_void_p],
    )
    if version.major >= 16:
        _setsig(
            lib.mlirParsePassPipeline,
            MlirLogicalResult,
            [MlirOpPassManager, MlirStringRef, STRING_CALLBACK, c_void_p],
        )
        _setsig(
            lib.mlirOpPassManagerAddPipeline,
            MlirLogicalResult,
            [MlirOpPassManager, MlirStringRef, STRING_CALLBACK, c_void_p],
        )
    else:
        _setsig(
            lib.mlirParsePassPipeline,
            MlirLogicalResult,
            [MlirOpPassManager, MlirStringRef],
        )

    # External passes
    if version.major >= 15:
        _setsig(
            lib.mlirCreateExternalPass,
            MlirPass,
            [
                MlirTypeID,  # passID
                MlirStringRef,  # name
                MlirStringRef,  # argument
                MlirStringRef,  # description
                MlirStringRef,  # opName
                c_ssize_t,  # nDependentDialects
                POINTER(MlirDialectHandle),  # dependentDialects
                MlirExternalPassCallbacks,  # callbacks
                c_void_p,  # userData
            ],
        )
        _setsig(lib.mlirExternalPassSignalFailure, None, [MlirExternalPass])

    # Registration entry points live in optional libraries.
    if hasattr(lib, "mlirRegisterAllDialects"):
        _setsig(lib.mlirRegisterAllDialects, None, [MlirDialectRegistry])
    for name in ("mlirRegisterAllPasses", "mlirRegisterTransformsPasses"):
        if hasattr(lib, name):
            _setsig(getattr(lib, name), None, [])


def dylib():
    """Returns the loaded C API library, loading it on first use."""
    if _dylib is None:
        _init_dylib()
    return _dylib


def set_dylib(lib):
    """Installs `lib` as the C API implementation. Returns the previous one."""
    global _dylib
    previous = _dylib
    _dylib = lib
    return previous


def is_available() -> bool:
    try:
        dylib()
    except (AttributeError, OSError, RuntimeError) as e:
        logger.debug("MLIR C API library not available: %s", e)
        return False
    return True


def dialect_handle_getter(lib, namespace: str):
    """Returns the `mlirGetDialectHandle__<ns>__` entry point of `lib`."""
    name = f"mlirGetDialectHandle__{namespace}__"
    try:
        f = getattr(lib, name)
    except AttributeError:
        raise ValueError(
            f"Dialect '{namespace}' is not available in the loaded MLIR library"
        ) from None
    if isinstance(lib, CDLL):
        _setsig(f, MlirDialectHandle, [])
    return f


def string_ref(value) -> MlirStringRef:
    """Creates an MlirStringRef borrowing an owned copy of `value`."""
    if isinstance(value, str):
        value = value.encode("UTF-8")
    buffer = create_string_buffer(value, len(value) + 1)
    ref = MlirStringRef(addressof(buffer), len(value))
    # The struct only holds the address, so keep the storage alive with it.
    ref._keepalive = buffer
    return ref


def string_ref_value(ref: MlirStringRef) -> str:
    if not ref.length:
        return ""
    return string_at(ref.data, ref.length).decode("UTF-8")


def is_null(handle) -> bool:
    return not handle.ptr


def succeeded(result) -> bool:
    return result.value != 0


def handle_array(handle_type, handles):
    """Packs a sequence of handles into a ctypes array (or None if empty)."""
    handles = list(handles)
    if not handles:
        return None
    return (handle_type * len(handles))(*handles)


class StringCapture:
    """Accumulates text streamed through an MlirStringCallback.

    The callback object must stay referenced for as long as native code can
    invoke it, which the capture guarantees by owning it.
    """

    def __init__(self):
        self._buffer = io.StringIO()

        @STRING_CALLBACK
        def callback(ref, user_data):
            self._buffer.write(string_ref_value(ref))

        self.callback = callback

    def getvalue(self) -> str:
        return self._buffer.getvalue()


def _candidate_paths() -> List[Path]:
    """Directories of installed packages known to ship the MLIR C API."""
    paths = []
    for package in ("mlir._mlir_libs", "iree.compiler._mlir_libs"):
        try:
            spec = importlib.util.find_spec(package)
        except ImportError:
            continue
        if spec is None or not spec.submodule_search_locations:
            continue
        paths.extend(Path(p) for p in spec.submodule_search_locations)
    return paths


def _dylib_basenames() -> List[str]:
    system = platform.system()
    if system == "Darwin":
        return ["libMLIRPythonCAPI.dylib", "libIREECompiler.dylib"]
    elif system == "Windows":
        return ["MLIRPythonCAPI.dll", "IREECompiler.dll"]
    return ["libMLIRPythonCAPI.so", "libIREECompiler.so"]


def _probe_mlir_capi_dylib() -> str:
    """Probes the environment and installed packages for the C API dylib."""
    explicit_path: Optional[str] = flags.CAPI_LIB_PATH
    if explicit_path:
        logger.debug("Using MLIR C API dylib from %s", flags.CAPI_LIB_ENV_KEY)
        return explicit_path

    paths = _candidate_paths()
    basenames = _dylib_basenames()
    for p in paths:
        for basename in basenames:
            dylib_path = p / basename
            if dylib_path.exists():
                logger.debug("Found MLIR C API dylib=%s", dylib_path)
                return str(dylib_path)
    raise RuntimeError(
        f"Could not find any of {basenames} in {[str(p) for p in paths]}: "
        f"install an MLIR python package or set {flags.CAPI_LIB_ENV_KEY}"
    )
