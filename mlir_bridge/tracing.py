"""Tracing support."""

# Copyright 2026 The mlir-bridge Authors
#
# Licensed under the Apache License v2.0 with LLVM Exceptions.
# See https://llvm.org/LICENSE.txt for license information.
# SPDX-License-Identifier: Apache-2.0 WITH LLVM-exception

from typing import Dict, Optional

import logging
import os

try:
    import yaml
except ModuleNotFoundError:
    _has_yaml = False
else:
    _has_yaml = True

__all__ = [
    "get_default_tracer",
    "Tracer",
    "TRACE_PATH_ENV_KEY",
]

TRACE_PATH_ENV_KEY = "MLIR_BRIDGE_SAVE_RUNS"

logger = logging.getLogger(__name__)


class Tracer:
    """Object for tracing pass manager runs."""

    def __init__(self, trace_path: str):
        if not _has_yaml:
            self.enabled = False
            logger.warning("PyYAML not installed: tracing will be disabled")
            return
        self.enabled = True
        self.trace_path = trace_path
        os.makedirs(trace_path, exist_ok=True)
        self._name_count = dict()  # type: Dict[str, int]

    def trace_pass_manager(self) -> "PassManagerTracer":
        return PassManagerTracer(self)

    def get_unique_name(self, local_name: str) -> str:
        if local_name not in self._name_count:
            self._name_count[local_name] = 1
            return local_name
        stem, ext = os.path.splitext(local_name)
        index = self._name_count[local_name]
        self._name_count[local_name] += 1
        unique_name = f"{stem}__{index}{ext}"
        return unique_name


class PassManagerTracer:
    """Traces the runs of one pass manager to a YAML stream."""

    def __init__(self, parent: Tracer):
        self._parent = parent
        self._frame_count = 0
        self.file_path = os.path.join(
            parent.trace_path, parent.get_unique_name("runs.yaml")
        )
        if os.path.exists(self.file_path):
            # Truncate the file.
            with open(self.file_path, "wt"):
                pass
        logger.info("Tracing pass manager runs to: %s", self.file_path)

    def start_run(self, pipeline: str, operation) -> "RunTrace":
        logger.info("Tracing run of '%s' on %s", pipeline, operation.name)
        record = {
            "type": "run",
            "pipeline": pipeline,
            "operation": operation.name,
            "input": str(operation),
        }
        return RunTrace(self, record)

    def emit_frame(self, frame: dict):
        self._frame_count += 1
        with open(self.file_path, "at") as f:
            if self._frame_count != 1:
                f.write("---\n")
            contents = yaml.dump(frame, sort_keys=False)
            f.write(contents)


class RunTrace:
    def __init__(self, parent: PassManagerTracer, record: dict):
        self._parent = parent
        self._record = record

    def end_run(self, operation, success: bool):
        self._record["status"] = "success" if success else "failure"
        self._record["output"] = str(operation)
        self._parent.emit_frame(self._record)


_default_tracers = dict()  # type: Dict[str, Tracer]


def get_default_tracer() -> Optional[Tracer]:
    """Gets a default run tracer based on environment variables.

    Pass managers tracing to the same path share one tracer, so each gets its
    own `runs*.yaml` file.
    """
    default_path = os.getenv(TRACE_PATH_ENV_KEY)
    if not default_path:
        return None
    tracer = _default_tracers.get(default_path)
    if tracer is None:
        tracer = Tracer(default_path)
        _default_tracers[default_path] = tracer
    return tracer
