"""Exceptions raised while loading, running and relocating a program.

Hierarchy:

    HarnessError
    ├── EntrypointNotFound
    ├── ResolutionError
    │   └── TypeMismatch
    ├── RelocationError
    └── VmError
        └── HintError
"""

from starkware.cairo.lang.vm.relocatable import RelocatableValue


class HarnessError(Exception):
    """Base class of every error raised by the runner."""


class EntrypointNotFound(HarnessError, KeyError):
    """The entrypoint label is not an identifier of the program."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Entrypoint '{self.name}' not found"


class ResolutionError(HarnessError):
    """A hint variable could not be resolved to an address or value."""


class TypeMismatch(ResolutionError):
    """A cell holds an address where a scalar was expected, or vice versa."""


class RelocationError(HarnessError):
    """Memory could not be relocated into a flat address space."""


class VmError(HarnessError):
    """Failure raised by the interpreter itself."""


class HintError(VmError):
    """A hint failed; the run is aborted.

    The original exception is chained as __cause__.
    """

    def __init__(self, pc: RelocatableValue, cause: Exception) -> None:
        super().__init__(f"Hint at pc {pc} failed: {cause}")
        self.pc = pc
        self.cause = cause
