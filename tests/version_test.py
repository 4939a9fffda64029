# Copyright 2026 The mlir-bridge Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

import unittest

from packaging.version import Version

from mlir_bridge import flags, version
from mlir_bridge.exception import MLIRError, MLIRVersionError


class VersionTest(unittest.TestCase):
    def setUp(self):
        self._previous = version.set_mlir_version(None)
        self._flag = flags.MLIR_VERSION
        flags.MLIR_VERSION = None

    def tearDown(self):
        flags.MLIR_VERSION = self._flag
        version.set_mlir_version(self._previous)

    def testDefault(self):
        self.assertEqual(version.mlir_version(), version.DEFAULT_MLIR_VERSION)

    def testFlag(self):
        flags.MLIR_VERSION = Version("17.0")
        self.assertEqual(version.mlir_version(), Version("17.0"))

    def testOverride(self):
        flags.MLIR_VERSION = Version("17.0")
        self.assertIsNone(version.set_mlir_version("15.0"))
        self.assertEqual(version.mlir_version(), Version("15.0"))
        self.assertEqual(version.set_mlir_version(None), Version("15.0"))
        self.assertEqual(version.mlir_version(), Version("17.0"))

    def testRequireVersion(self):
        version.set_mlir_version("15.0")
        version.require_version(15, "create_external_pass")
        with self.assertRaisesRegex(
            MLIRVersionError,
            r"`PassManager\(anchor_op=...\)` requires MLIR version 16 or later "
            r"\(installed: 15.0\)",
        ):
            version.require_version(16, "PassManager(anchor_op=...)")

    def testVersionErrorIsAnMLIRError(self):
        self.assertTrue(issubclass(MLIRVersionError, MLIRError))


if __name__ == "__main__":
    unittest.main()
