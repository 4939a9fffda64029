# Copyright 2026 The mlir-bridge Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

from setuptools import find_namespace_packages, setup

setup(
    name=f"mlir-bridge",
    version=f"0.1dev1",
    packages=find_namespace_packages(
        include=[
            "mlir_bridge",
            "mlir_bridge.*",
        ],
    ),
    install_requires=[
        "numpy",
        "packaging",
        "PyYAML",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-xdist",
        ],
        "iree": [
            "iree-base-compiler",
        ],
    },
)
