# Copyright 2026 The mlir-bridge Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

__all__ = [
    "AddPipelineError",
    "ExternalPassContractError",
    "MLIRError",
    "MLIRVersionError",
    "PassManagerRunError",
]


class MLIRError(RuntimeError):
    """Base class of errors raised by the binding."""


class MLIRVersionError(MLIRError):
    """
    The requested feature postdates the installed MLIR version. This is
    raised before any call into the library and is never worth retrying.
    """


class AddPipelineError(MLIRError):
    """
    A textual pass pipeline could not be parsed. `message` holds the
    diagnostics reported by MLIR; callers may retry with corrected text.
    """

    def __init__(self, message: str):
        super().__init__(f"failed to add pipeline: {message}")
        self.message = message


class PassManagerRunError(MLIRError):
    """
    A pass manager run completed with a failure status. Passes may have been
    partially applied, so the IR should be treated as indeterminate.
    """

    def __init__(self, message: str = "failed to run pass manager on module"):
        super().__init__(message)


class ExternalPassContractError(MLIRError):
    """The native side broke the external pass callback protocol.

    Raised when a pass is run before it was successfully initialized, or when
    a callback receives user data that names no live pass.
    """
