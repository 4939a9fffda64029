# Copyright 2026 The mlir-bridge Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Pass managers, and passes implemented in Python.

The objects in the C API are represented in Python as classes:

* `MlirPassManager`: `PassManager` class (owns the native manager).
* `MlirOpPassManager`: `OpPassManager` class (non-owning view into a
  `PassManager`, which it keeps alive).
* `MlirPass` created by `mlirCreateExternalPass`: backed by a `Pass` instance
  registered in the owning `PassManager`.

Python passes are registered with MLIR as external passes. MLIR drives them
through five callbacks (construct, destruct, initialize, clone, run) which
receive an opaque user data value. That value is a slot in a process wide
handle table rather than the address of a Python object, and it stays valid
for as long as the registering `PassManager` is alive.
"""

# pylint: disable=protected-access

from typing import Dict, List, Optional, Sequence, Union

import copy
import itertools
import logging
import threading

from . import _capi
from . import flags
from . import ir
from .exception import (
    AddPipelineError,
    ExternalPassContractError,
    MLIRError,
    PassManagerRunError,
)
from .tracing import get_default_tracer
from .typeid import TypeID, TypeIDAllocator
from .version import mlir_version, require_version

__all__ = [
    "create_external_pass",
    "ExternalPassHandle",
    "OpPassManager",
    "Pass",
    "PassManager",
    "PassRegistry",
    "register",
]

logger = logging.getLogger(__name__)


class Pass:
    """Base class of passes implemented in Python.

    Subclasses implement `run(context, op)`. A pass fails by raising or by
    returning False. `op_name` restricts the pass to operations of that name;
    the empty string means any operation.

    MLIR may clone a pass (e.g. once per thread when running nested pipelines
    in parallel). Clones are made with `copy.deepcopy`, so pass state must
    support it.
    """

    op_name = ""

    def run(self, context: ir.Context, op: ir.Operation):
        raise NotImplementedError(f"pass {type(self).__name__} does not implement `run`")


class ExternalPassHandle:
    """Host side state of one instance of an external pass."""

    def __init__(
        self,
        context: Optional[ir.Context],
        pass_: Pass,
        registry: "PassRegistry",
    ):
        self.context = context
        self.pass_ = pass_
        self.registry = registry
        self.user_data = registry._adopt(self)

    def __repr__(self):
        return f"<ExternalPassHandle {self.user_data} {type(self.pass_).__name__}>"


class _HandleTable:
    """Maps the user data handed to MLIR back to live pass handles."""

    def __init__(self):
        self._lock = threading.Lock()
        self._slots = itertools.count(1)
        self._handles = {}  # type: Dict[int, ExternalPassHandle]

    def add(self, handle: ExternalPassHandle) -> int:
        with self._lock:
            slot = next(self._slots)
            self._handles[slot] = handle
        return slot

    def get(self, user_data) -> ExternalPassHandle:
        with self._lock:
            handle = self._handles.get(user_data)
        if handle is None:
            raise ExternalPassContractError(
                f"External pass callback received unknown user data {user_data!r}"
            )
        return handle

    def release(self, slots: Sequence[int]):
        with self._lock:
            for slot in slots:
                self._handles.pop(slot, None)

    def __len__(self):
        with self._lock:
            return len(self._handles)


_handles = _HandleTable()


class PassRegistry:
    """The Python passes of one PassManager, keyed by their TypeID.

    Entries are never removed individually: the registry, its allocator and
    every handle it adopted (including clones made by MLIR) are released
    together by `close()` when the owning PassManager goes away.
    """

    def __init__(self):
        self.allocator = TypeIDAllocator()
        self.passes = {}  # type: Dict[TypeID, ExternalPassHandle]
        self._slots = []  # type: List[int]
        # close() may run after module globals are torn down.
        self._table = _handles

    def register(self, pass_: Pass) -> TypeID:
        typeid = self.allocator.allocate()
        self.passes[typeid] = ExternalPassHandle(None, pass_, self)
        return typeid

    def _adopt(self, handle: ExternalPassHandle) -> int:
        slot = self._table.add(handle)
        self._slots.append(slot)
        return slot

    def close(self):
        self._table.release(self._slots)
        self._slots = []
        self.passes.clear()
        self.allocator.close()


def register(manager: Union["PassManager", "OpPassManager"], pass_: Pass) -> TypeID:
    """Registers `pass_` with the manager and returns its fresh identity."""
    return _owning_manager(manager).registry.register(pass_)


# ------------------------------------------------------------------------------
# External pass callbacks
# ------------------------------------------------------------------------------


def _pass_construct(user_data):
    return None


def _pass_destruct(user_data):
    return None


def _pass_initialize(context_p, user_data) -> int:
    try:
        handle = _handles.get(user_data)
        handle.context = ir.Context._borrow(_capi.MlirContext(context_p))
    except Exception:
        logger.exception("Failed to initialize external pass")
        return 0
    return 1


def _pass_clone(user_data) -> int:
    handle = _handles.get(user_data)
    clone = ExternalPassHandle(
        handle.context, copy.deepcopy(handle.pass_), handle.registry
    )
    clone._strings = getattr(handle, "_strings", None)
    return clone.user_data


def _pass_run(operation_p, external_pass_p, user_data):
    handle = _handles.get(user_data)
    if handle.context is None:
        raise ExternalPassContractError(
            f"Failed to run external pass {type(handle.pass_).__name__}: "
            f"the pass was never initialized with a context"
        )

    op = ir.Operation(_capi.MlirOperation(operation_p), owned=False)
    active = ir._active_contexts()
    depth = len(active)
    ir.activate(handle.context)
    try:
        succeeded = handle.pass_.run(handle.context, op) is not False
    except Exception:
        logger.exception(
            "Something went wrong running external pass %s on %s",
            type(handle.pass_).__name__,
            op.name,
        )
        succeeded = False
    finally:
        if len(active) != depth + 1 or active[-1] is not handle.context:
            logger.warning(
                "External pass %s left the context stack unbalanced (%+d)",
                type(handle.pass_).__name__,
                len(active) - depth - 1,
            )
        del active[depth:]
    if not succeeded:
        _capi.dylib().mlirExternalPassSignalFailure(
            _capi.MlirExternalPass(external_pass_p)
        )


# Native entry points. Nothing may propagate out of these into MLIR's frames.


@_capi.PASS_CLONE_CALLBACK
def _clone_trampoline(user_data):
    try:
        return _pass_clone(user_data)
    except Exception:
        logger.critical("Failed to clone external pass", exc_info=True)
        return None


@_capi.PASS_RUN_CALLBACK
def _run_trampoline(operation_p, external_pass_p, user_data):
    try:
        _pass_run(operation_p, external_pass_p, user_data)
    except Exception:
        logger.critical("External pass contract violated", exc_info=True)
        _capi.dylib().mlirExternalPassSignalFailure(
            _capi.MlirExternalPass(external_pass_p)
        )


_CALLBACKS = _capi.MlirExternalPassCallbacks(
    _capi.PASS_CONSTRUCT_CALLBACK(_pass_construct),
    _capi.PASS_DESTRUCT_CALLBACK(_pass_destruct),
    _capi.PASS_INITIALIZE_CALLBACK(_pass_initialize),
    _clone_trampoline,
    _run_trampoline,
)


def _owning_manager(manager) -> "PassManager":
    if isinstance(manager, OpPassManager):
        return manager.pass_manager
    if flags.PASS_INPUT_VALIDATION and not isinstance(manager, PassManager):
        raise TypeError(
            f"Expected a PassManager or OpPassManager, got {type(manager).__name__}"
        )
    return manager


def create_external_pass(
    manager: Union["PassManager", "OpPassManager"],
    pass_: Pass,
    name: Optional[str] = None,
    argument: Optional[str] = None,
    description: str = "",
    op_name: Optional[str] = None,
    dependent_dialects: Sequence[ir.DialectHandle] = (),
) -> _capi.MlirPass:
    """Creates a native pass that runs `pass_`.

    The pass is registered with (and must not outlive) the PassManager owning
    `manager`. The returned MlirPass is meant for `add_owned_pass`.
    """
    require_version(15, "create_external_pass")
    manager = _owning_manager(manager)
    manager._check_open()
    if name is None:
        name = type(pass_).__name__
    if argument is None:
        argument = name
    if op_name is None:
        op_name = getattr(pass_, "op_name", "")

    typeid = manager.registry.register(pass_)
    handle = manager.registry.passes[typeid]
    # MLIR may keep borrowing these (e.g. the op name), so they live as long
    # as the handle does.
    strings = tuple(
        _capi.string_ref(s) for s in (name, argument, description, op_name)
    )
    handle._strings = strings
    dialects = _capi.handle_array(
        _capi.MlirDialectHandle, [d._handle for d in dependent_dialects]
    )
    pass_p = _capi.dylib().mlirCreateExternalPass(
        typeid._typeid,
        *strings,
        len(dependent_dialects),
        dialects,
        _CALLBACKS,
        handle.user_data,
    )
    if _capi.is_null(pass_p):
        raise MLIRError(f"Failed to create external pass '{name}'")
    return pass_p


# ------------------------------------------------------------------------------
# Pass managers
# ------------------------------------------------------------------------------


class PassManager:
    """Wraps an owned MlirPassManager.

    The manager also owns the registry of Python passes created against it,
    so it must outlive every OpPassManager and pass derived from it (the
    views keep it alive).
    """

    def __init__(
        self,
        context: Optional[ir.Context] = None,
        anchor_op: Union[ir.Operation, str, None] = None,
    ):
        self._pass_manager_p = _capi.MlirPassManager()
        context = ir._resolve_context(context)
        lib = _capi.dylib()
        if anchor_op is not None:
            require_version(16, "PassManager(anchor_op=...)")
            anchor_name = (
                anchor_op.name if isinstance(anchor_op, ir.Operation) else anchor_op
            )
            pass_manager_p = lib.mlirPassManagerCreateOnOperation(
                context._context_p, _capi.string_ref(anchor_name)
            )
        else:
            pass_manager_p = lib.mlirPassManagerCreate(context._context_p)
        if _capi.is_null(pass_manager_p):
            raise MLIRError("cannot create PassManager with null MlirPassManager")
        self._pass_manager_p = pass_manager_p
        self._context = context
        self._local_dylib = lib
        self.registry = PassRegistry()
        self._tracer = get_default_tracer()
        self._run_tracer = None

        if flags.PRINT_IR:
            self.enable_ir_printing()
        if flags.VERIFY_EACH is not None:
            self.enable_verifier(flags.VERIFY_EACH)

    @staticmethod
    def parse(pipeline: str, context: Optional[ir.Context] = None) -> "PassManager":
        """Creates a PassManager from a textual pipeline (anchor included)."""
        pm = PassManager(context)
        pm.as_op_pass_manager().parse(pipeline)
        return pm

    def __del__(self):
        self.close()

    def close(self):
        pass_manager_p = getattr(self, "_pass_manager_p", None)
        if pass_manager_p is not None and pass_manager_p.ptr:
            self._pass_manager_p = type(pass_manager_p)()
            self._local_dylib.mlirPassManagerDestroy(pass_manager_p)
        # Passes reference their TypeIDs and handles until destroyed above.
        registry = getattr(self, "registry", None)
        if registry is not None:
            registry.close()

    @property
    def closed(self) -> bool:
        return _capi.is_null(self._pass_manager_p)

    def _check_open(self):
        if self.closed:
            raise MLIRError("PassManager is closed")

    @property
    def context(self) -> ir.Context:
        return self._context

    def as_op_pass_manager(self) -> "OpPassManager":
        self._check_open()
        return OpPassManager(
            _capi.dylib().mlirPassManagerGetAsOpPassManager(self._pass_manager_p),
            self,
        )

    def nest(self, op_name: str) -> "OpPassManager":
        """Nests an OpPassManager running on operations named `op_name`."""
        self._check_open()
        return OpPassManager(
            _capi.dylib().mlirPassManagerGetNestedUnder(
                self._pass_manager_p, _capi.string_ref(op_name)
            ),
            self,
        )

    def enable_ir_printing(
        self,
        print_before_all: bool = False,
        print_after_all: bool = True,
        print_module_scope: bool = False,
        print_after_only_on_change: bool = False,
        print_after_only_on_failure: bool = False,
        tree_printing_path: Optional[str] = None,
    ) -> "PassManager":
        """Enables IR printing (by default, mlir-print-ir-after-all)."""
        self._check_open()
        lib = _capi.dylib()
        version = mlir_version()
        options = (
            print_before_all,
            print_after_all,
            print_module_scope,
            print_after_only_on_change,
            print_after_only_on_failure,
        )
        if version.major >= 20:
            # The manager copies the flags.
            printing_flags = lib.mlirOpPrintingFlagsCreate()
            try:
                lib.mlirPassManagerEnableIRPrinting(
                    self._pass_manager_p,
                    *options,
                    printing_flags,
                    _capi.string_ref(tree_printing_path or ""),
                )
            finally:
                lib.mlirOpPrintingFlagsDestroy(printing_flags)
        elif version.major >= 19:
            if tree_printing_path is not None:
                require_version(20, "enable_ir_printing(tree_printing_path=...)")
            lib.mlirPassManagerEnableIRPrinting(self._pass_manager_p, *options)
        else:
            if options != (False, True, False, False, False) or tree_printing_path:
                require_version(19, "enable_ir_printing(<options>)")
            lib.mlirPassManagerEnableIRPrinting(self._pass_manager_p)
        return self

    def enable_verifier(self, enable: bool = True) -> "PassManager":
        """Enables / disables verify-each."""
        self._check_open()
        _capi.dylib().mlirPassManagerEnableVerifier(self._pass_manager_p, enable)
        return self

    def add_owned_pass(self, pass_p: _capi.MlirPass) -> "PassManager":
        """Adds a pass and transfers its ownership to this PassManager.

        If the pass does not run on the anchor operation, MLIR implicitly
        nests a new OpPassManager for it.
        """
        self._check_open()
        _capi.dylib().mlirPassManagerAddOwnedPass(self._pass_manager_p, pass_p)
        return self

    def add_pipeline(self, pipeline: str) -> "PassManager":
        self.as_op_pass_manager().add_pipeline(pipeline)
        return self

    def add_external_pass(self, pass_: Pass, **kwargs) -> "PassManager":
        """Creates an external pass for `pass_` and adds it to this manager."""
        return self.add_owned_pass(create_external_pass(self, pass_, **kwargs))

    def run(self, target: Union[ir.Module, ir.Operation]):
        """Runs the pipeline on `target`. Returns `target`.

        Raises PassManagerRunError when the run fails; the IR may have been
        partially transformed by then.
        """
        self._check_open()
        if flags.PASS_INPUT_VALIDATION and not isinstance(
            target, (ir.Module, ir.Operation)
        ):
            raise TypeError(
                f"Expected a Module or Operation to run on, got "
                f"{type(target).__name__}"
            )
        operation = target.operation if isinstance(target, ir.Module) else target

        trace = None
        if self._tracer is not None and self._tracer.enabled:
            if self._run_tracer is None:
                self._run_tracer = self._tracer.trace_pass_manager()
            trace = self._run_tracer.start_run(str(self), operation)

        lib = _capi.dylib()
        if mlir_version().major >= 17:
            result = lib.mlirPassManagerRunOnOp(
                self._pass_manager_p, operation._operation
            )
        else:
            if not isinstance(target, ir.Module):
                require_version(17, "PassManager.run(Operation)")
            result = lib.mlirPassManagerRun(self._pass_manager_p, target._module)
        success = _capi.succeeded(result)

        if trace is not None:
            trace.end_run(operation, success)
        if not success:
            raise PassManagerRunError()
        return target

    def __str__(self):
        return str(self.as_op_pass_manager())


class OpPassManager:
    """A position in the pipeline of a PassManager.

    Views do not own native resources. The native OpPassManager is destroyed
    with its PassManager, which every view keeps alive.
    """

    def __init__(
        self, op_pass_manager_p: _capi.MlirOpPassManager, pass_manager: PassManager
    ):
        if _capi.is_null(op_pass_manager_p):
            raise MLIRError("cannot create OpPassManager with null MlirOpPassManager")
        self._op_pass_manager_p = op_pass_manager_p
        self.pass_manager = pass_manager

    def nest(self, op_name: str) -> "OpPassManager":
        """Nests an OpPassManager running on operations named `op_name`."""
        self.pass_manager._check_open()
        return OpPassManager(
            _capi.dylib().mlirOpPassManagerGetNestedUnder(
                self._op_pass_manager_p, _capi.string_ref(op_name)
            ),
            self.pass_manager,
        )

    def add_owned_pass(self, pass_p: _capi.MlirPass) -> "OpPassManager":
        """Adds a pass and transfers its ownership to this OpPassManager.

        If the pass does not run on operations of this manager, MLIR
        implicitly nests a new OpPassManager for it.
        """
        self.pass_manager._check_open()
        _capi.dylib().mlirOpPassManagerAddOwnedPass(self._op_pass_manager_p, pass_p)
        return self

    def add_external_pass(self, pass_: Pass, **kwargs) -> "OpPassManager":
        return self.add_owned_pass(create_external_pass(self, pass_, **kwargs))

    def parse(self, pipeline: str) -> "OpPassManager":
        """Parses a textual pipeline (e.g. `builtin.module(cse)`) into this
        OpPassManager, replacing its contents."""
        self.pass_manager._check_open()
        lib = _capi.dylib()
        if mlir_version().major >= 16:
            capture = _capi.StringCapture()
            result = lib.mlirParsePassPipeline(
                self._op_pass_manager_p,
                _capi.string_ref(pipeline),
                capture.callback,
                None,
            )
            if not _capi.succeeded(result):
                raise AddPipelineError(capture.getvalue())
        else:
            result = lib.mlirParsePassPipeline(
                self._op_pass_manager_p, _capi.string_ref(pipeline)
            )
            if not _capi.succeeded(result):
                raise AddPipelineError(f"could not parse '{pipeline}'")
        return self

    def add_pipeline(self, pipeline: str) -> "OpPassManager":
        """Parses pipeline elements (e.g. `cse,canonicalize`) and appends them."""
        self.pass_manager._check_open()
        lib = _capi.dylib()
        if mlir_version().major >= 16:
            capture = _capi.StringCapture()
            result = lib.mlirOpPassManagerAddPipeline(
                self._op_pass_manager_p,
                _capi.string_ref(pipeline),
                capture.callback,
                None,
            )
            if not _capi.succeeded(result):
                raise AddPipelineError(capture.getvalue())
        else:
            result = lib.mlirParsePassPipeline(
                self._op_pass_manager_p, _capi.string_ref(pipeline)
            )
            if not _capi.succeeded(result):
                raise AddPipelineError(f"could not parse '{pipeline}'")
        return self

    def __str__(self):
        self.pass_manager._check_open()
        capture = _capi.StringCapture()
        _capi.dylib().mlirPrintPassPipeline(
            self._op_pass_manager_p, capture.callback, None
        )
        return capture.getvalue()

    def __repr__(self):
        return f'OpPassManager("""{self}""")'
