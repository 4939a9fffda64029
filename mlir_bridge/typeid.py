# Copyright 2026 The mlir-bridge Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Process unique type identities for kinds registered from Python."""

from . import _capi
from .exception import MLIRError

__all__ = [
    "TypeID",
    "TypeIDAllocator",
]


class TypeID:
    """Wraps an MlirTypeID. Hashable, compares by identity of the kind."""

    def __init__(self, typeid: _capi.MlirTypeID):
        if _capi.is_null(typeid):
            raise MLIRError("cannot create TypeID from a null MlirTypeID")
        self._typeid = typeid

    def __eq__(self, other):
        if not isinstance(other, TypeID):
            return NotImplemented
        return bool(_capi.dylib().mlirTypeIDEqual(self._typeid, other._typeid))

    def __hash__(self):
        return _capi.dylib().mlirTypeIDHashValue(self._typeid)

    def __repr__(self):
        return f"<TypeID {self._typeid.ptr:#x}>"


class TypeIDAllocator:
    """Wraps an MlirTypeIDAllocator.

    Identities stay valid for as long as the allocator is alive, so the
    allocator must outlive everything that was registered with them.
    """

    def __init__(self):
        self._allocator_p = _capi.dylib().mlirTypeIDAllocatorCreate()
        if _capi.is_null(self._allocator_p):
            raise MLIRError("failed to create TypeIDAllocator")
        self._local_dylib = _capi.dylib()

    def __del__(self):
        self.close()

    def close(self):
        allocator_p = getattr(self, "_allocator_p", None)
        if allocator_p is not None and allocator_p.ptr:
            self._allocator_p = type(allocator_p)()
            self._local_dylib.mlirTypeIDAllocatorDestroy(allocator_p)

    @property
    def closed(self) -> bool:
        return _capi.is_null(self._allocator_p)

    def allocate(self) -> TypeID:
        if self.closed:
            raise MLIRError("TypeIDAllocator is closed")
        return TypeID(
            _capi.dylib().mlirTypeIDAllocatorAllocateTypeID(self._allocator_p)
        )
