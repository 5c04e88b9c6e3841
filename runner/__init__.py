"""Runner - Program helpers, hint resolution and dispatch over the cairo-lang VM.

The run harness lives in runner.cairo_runner; it depends on the hints package
and is imported from there directly.
"""

from runner.errors import (
    EntrypointNotFound,
    HarnessError,
    HintError,
    RelocationError,
    ResolutionError,
    TypeMismatch,
    VmError,
)
from runner.references import ApTracking, HintReference
from runner.hint_processor import ExecutionScopes, HintData, HintKind, HintRegistry
from runner.output import CapturingChannel, LoggingChannel, OutputChannel, StdoutChannel
from runner.hint_vm import HintVm
from runner.program import get_entrypoint_pc, load_program
from runner.config import RunConfig

__all__ = [
    # Errors
    "HarnessError",
    "EntrypointNotFound",
    "ResolutionError",
    "TypeMismatch",
    "RelocationError",
    "VmError",
    "HintError",
    # Program
    "load_program",
    "get_entrypoint_pc",
    "ApTracking",
    "HintReference",
    # Hints
    "HintKind",
    "HintRegistry",
    "HintData",
    "ExecutionScopes",
    "HintVm",
    # Output
    "OutputChannel",
    "StdoutChannel",
    "LoggingChannel",
    "CapturingChannel",
    # Configuration
    "RunConfig",
]
