"""Capability handed to native hints.

Hints see the registers, read and write memory cells, add segments and emit
values. They never see the interpreter itself. HintVm wraps the run context
and memory of a cairo-lang VirtualMachine together with the runner's segment
manager; scalars cross the boundary as FELT.
"""

import logging

from starkware.cairo.lang.vm.relocatable import RelocatableValue

from primitives.field import CellValue, format_value, to_felt, to_memory_value
from runner.output import OutputChannel

logger = logging.getLogger(__name__)


class HintVm:
    """Registers, memory and segments of a running VM, as seen by hints.

    Args:
        run_context: The VM's RunContext (pc, ap, fp and its MemoryDict)
        segments: MemorySegmentManager of the run
        output: Sink of emitted values
        memory: Where writes go; the VM's validated memory during a run,
            run_context.memory when omitted
    """

    def __init__(self, run_context, segments, output: OutputChannel, memory=None) -> None:
        self.run_context = run_context
        self.memory = memory if memory is not None else run_context.memory
        self.segments = segments
        self.output = output

    @classmethod
    def from_vm(cls, vm, segments, output: OutputChannel) -> "HintVm":
        return cls(vm.run_context, segments, output, memory=vm.validated_memory)

    # --- Registers ---

    def get_pc(self) -> RelocatableValue:
        return self.run_context.pc

    def get_ap(self) -> RelocatableValue:
        return self.run_context.ap

    def get_fp(self) -> RelocatableValue:
        return self.run_context.fp

    # --- Memory ---

    def read_cell(self, addr: RelocatableValue) -> CellValue | None:
        """Content of addr, None if the cell was never written."""
        value = self.run_context.memory.get(addr)
        if value is None:
            return None
        return to_felt(value)

    def insert(self, addr: RelocatableValue, value) -> None:
        """Write value at addr. Cells are write-once; rewriting a cell with a
        different value raises the VM's memory error."""
        self.memory[addr] = to_memory_value(value)

    def add_segment(self) -> RelocatableValue:
        base = self.segments.add()
        logger.debug("Hint added segment %s", format_value(base))
        return base

    # --- Output ---

    def emit(self, value: CellValue) -> None:
        self.output.emit(value)
