# Copyright 2026 The mlir-bridge Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Process wide binding configuration.

Obligatory disclaimer: most of these have a library friendly API as well
(e.g. `PassManager.enable_ir_printing()`), and those are almost always better.
The environment variables below are read once at import time:

* `MLIR_BRIDGE_CAPI_LIB`: path of the MLIR C API shared library to load.
* `MLIR_BRIDGE_MLIR_VERSION`: version of that library (e.g. `17.0`).
* `MLIR_BRIDGE_PRINT_IR`: enable IR printing on newly created pass managers.
* `MLIR_BRIDGE_VERIFY_EACH`: set to `0` to disable the verifier on newly
  created pass managers.
* `MLIR_BRIDGE_SAVE_RUNS`: directory to save pass manager run traces to.
"""

import os

CAPI_LIB_ENV_KEY = "MLIR_BRIDGE_CAPI_LIB"
MLIR_VERSION_ENV_KEY = "MLIR_BRIDGE_MLIR_VERSION"
PRINT_IR_ENV_KEY = "MLIR_BRIDGE_PRINT_IR"
VERIFY_EACH_ENV_KEY = "MLIR_BRIDGE_VERIFY_EACH"

# When enabled, pass manager entry points check the types of their arguments.
# In the event of errors, this yields nicer error messages than a ctypes
# conversion failure.
PASS_INPUT_VALIDATION = True

CAPI_LIB_PATH = None
MLIR_VERSION = None
PRINT_IR = False
VERIFY_EACH = None

_TRUE_VALUES = ("1", "true", "on", "yes")
_FALSE_VALUES = ("0", "false", "off", "no")


def _parse_bool(env_key: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise RuntimeError(
        f"Bad flag value in environment variable {env_key}='{value}': "
        f"expected one of {_TRUE_VALUES + _FALSE_VALUES}"
    )


def _load_default_flags_from_env():
    global CAPI_LIB_PATH, MLIR_VERSION, PRINT_IR, VERIFY_EACH
    from packaging.version import InvalidVersion, Version

    CAPI_LIB_PATH = os.getenv(CAPI_LIB_ENV_KEY) or None

    version_str = os.getenv(MLIR_VERSION_ENV_KEY)
    if version_str:
        try:
            MLIR_VERSION = Version(version_str)
        except InvalidVersion as e:
            raise RuntimeError(
                f"Bad flag value in environment variable {MLIR_VERSION_ENV_KEY}="
                f"'{version_str}': {e}"
            ) from e
    else:
        MLIR_VERSION = None

    print_ir = os.getenv(PRINT_IR_ENV_KEY)
    PRINT_IR = _parse_bool(PRINT_IR_ENV_KEY, print_ir) if print_ir else False

    verify_each = os.getenv(VERIFY_EACH_ENV_KEY)
    VERIFY_EACH = (
        _parse_bool(VERIFY_EACH_ENV_KEY, verify_each) if verify_each else None
    )


_load_default_flags_from_env()
