# Copyright 2026 The mlir-bridge Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

"""Operation builders, one module per dialect.

Every builder assembles the operand, result, attribute, region and successor
lists of one operation and hands them to `ir.create_operation`.
"""
