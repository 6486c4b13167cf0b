# SPDX-License-Identifier: Apache-2.0
"""Document assembly pipeline package."""

from .assembler import (
    AssemblerConfig,
    AssemblyResult,
    AssemblyState,
    DocumentAssembler,
)
from .errors import PipelineError, SinkError
from .progress import ProgressCallback
from .sink import write_document

__all__ = [
    "AssemblerConfig",
    "AssemblyResult",
    "AssemblyState",
    "DocumentAssembler",
    "PipelineError",
    "ProgressCallback",
    "SinkError",
    "write_document",
]
