# Copyright 2026 The mlir-bridge Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""MLIR C API bindings.

This package wraps the MLIR C API (the `mlir-c/*.h` headers) as exported by
an installed MLIR or IREE compiler shared library, loaded with ctypes. Refer
to the C headers for the most up to date documentation of each entry point.

Passes can be written in Python by subclassing `Pass` and adding them to a
`PassManager` with `add_external_pass`. MLIR calls back into Python for each
operation the pass is scheduled on; while the pass runs, the context it was
initialized with is the active context of the calling thread, so IR can be
built without passing `context=` around.
"""

from .exception import (
    AddPipelineError,
    ExternalPassContractError,
    MLIRError,
    MLIRVersionError,
    PassManagerRunError,
)
from .ir import (
    Attribute,
    Block,
    Context,
    Location,
    Module,
    NamedAttribute,
    Operation,
    Region,
    Type,
    Value,
    create_operation,
    current_context,
)
from .passmanager import (
    OpPassManager,
    Pass,
    PassManager,
    create_external_pass,
)
from .typeid import TypeID, TypeIDAllocator
from .version import mlir_version, require_version, set_mlir_version
