# Copyright 2026 The mlir-bridge Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception
"""Version marker of the loaded MLIR C API.

The C API has no way of reporting its own release, so the version is
configured (`MLIR_BRIDGE_MLIR_VERSION`) and defaults to `DEFAULT_MLIR_VERSION`.
Entry points that only exist from a given release onwards call
`require_version` before touching the library.
"""

from typing import Optional, Union

from packaging.version import Version

from . import flags
from .exception import MLIRVersionError

__all__ = [
    "DEFAULT_MLIR_VERSION",
    "mlir_version",
    "require_version",
    "set_mlir_version",
]

DEFAULT_MLIR_VERSION = Version("19.0")

_override: Optional[Version] = None


def mlir_version() -> Version:
    if _override is not None:
        return _override
    if flags.MLIR_VERSION is not None:
        return flags.MLIR_VERSION
    return DEFAULT_MLIR_VERSION


def set_mlir_version(version: Union[str, Version, None]) -> Optional[Version]:
    """Overrides the installed version marker. Returns the previous override.

    Must be called before the library is first loaded: entry point signatures
    are selected by version at load time. Passing None restores the configured
    default.
    """
    global _override
    previous = _override
    if version is not None and not isinstance(version, Version):
        version = Version(str(version))
    _override = version
    return previous


def require_version(minimum: Union[int, str], feature: str):
    """Raises MLIRVersionError if the installed MLIR predates `minimum`."""
    if mlir_version() < Version(str(minimum)):
        raise MLIRVersionError(
            f"`{feature}` requires MLIR version {minimum} or later "
            f"(installed: {mlir_version()})"
        )
