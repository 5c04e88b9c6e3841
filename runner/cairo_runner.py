"""Run harness.

Drives one program run on cairo-lang's CairoRunner through its states:

    LOADED -> BUILTINS_INIT -> SEGMENTS_INIT -> RUNNING -> RAN -> RELOCATED
                                                   \\
                                                    -> FAILED

Each operation checks the state it is called in and raises VmError when
called out of order. A failure during the run records FAILED and re-raises.

The VM executes a copy of the program without hints. Before every step the
harness runs the native callbacks bound to the hints of the current pc.

Segment layout of a run:

    0        program
    1        execution (stack)
    2..      one segment per builtin the program declares, in order
    next     return address of the entrypoint (end)
    after    segments created by hints
"""

import logging
from enum import Enum
from pathlib import Path

import numpy as np
from starkware.cairo.lang.compiler.program import Program
from starkware.cairo.lang.vm.cairo_runner import CairoRunner
from starkware.cairo.lang.vm.memory_dict import MemoryDict
from starkware.cairo.lang.vm.relocatable import RelocatableValue
from starkware.cairo.lang.vm.security import verify_secure_runner
from starkware.cairo.lang.vm.vm import VirtualMachine

from hints.alloc import alloc
from hints.print_arrays import PrintTwoArraysHint
from primitives.field import format_value
from runner.config import RunConfig, get_layout
from runner.errors import HintError, RelocationError, VmError
from runner.hint_processor import ExecutionScopes, HintData, HintKind, HintRegistry
from runner.hint_vm import HintVm
from runner.output import OutputChannel, StdoutChannel
from runner.program import (
    compile_hints,
    get_constants,
    get_entrypoint_pc,
    get_references,
    load_program,
    strip_hints,
)

logger = logging.getLogger(__name__)


class RunnerState(Enum):
    LOADED = "loaded"
    BUILTINS_INIT = "builtins_init"
    SEGMENTS_INIT = "segments_init"
    RUNNING = "running"
    RAN = "ran"
    RELOCATED = "relocated"
    FAILED = "failed"


# --- Runner ---

class HintRunner:
    """Runs one program on one cairo-lang VM with native hints."""

    def __init__(self, program: Program, config: RunConfig | None = None) -> None:
        self.program = program
        self.config = config if config is not None else RunConfig()
        self.state = RunnerState.LOADED

        self.constants = get_constants(program)
        self.references = get_references(program)
        self.exec_scopes = ExecutionScopes()

        self.runner: CairoRunner | None = None
        self.end: RelocatableValue | None = None
        self.hint_vm: HintVm | None = None

        # Filled by relocate()
        self.relocation_table: np.ndarray | None = None
        self.relocated_memory: MemoryDict | None = None
        self.relocated_trace: np.ndarray | None = None

    def _expect(self, *states: RunnerState) -> None:
        if self.state not in states:
            expected = ", ".join(s.name for s in states)
            raise VmError(f"Runner is {self.state.name}, expected {expected}")

    def _transition(self, state: RunnerState) -> None:
        logger.debug("Runner %s -> %s", self.state.name, state.name)
        self.state = state

    @property
    def segments(self):
        return self.runner.segments

    @property
    def vm(self) -> VirtualMachine:
        return self.runner.vm

    # --- Initialization ---

    def initialize_builtins(self) -> None:
        """Create the cairo-lang runner and a builtin runner per declared builtin.

        Raises:
            VmError: The layout does not provide a declared builtin
        """
        self._expect(RunnerState.LOADED)
        layout = get_layout(self.config.layout)
        missing = [name for name in self.program.builtins if name not in layout.builtins]
        if missing:
            raise VmError(f"Builtins {missing} are not available in layout '{self.config.layout}'")

        self.runner = CairoRunner(
            program=strip_hints(self.program),
            layout=layout,
            memory=MemoryDict(),
            proof_mode=False,
            allow_missing_builtins=False,
        )
        self._transition(RunnerState.BUILTINS_INIT)

    def initialize_segments(self) -> None:
        """Allocate the program, execution and builtin segments."""
        self._expect(RunnerState.BUILTINS_INIT)
        self.runner.initialize_segments()
        self._transition(RunnerState.SEGMENTS_INIT)

    def get_builtin_bases(self) -> list[RelocatableValue]:
        """Initial pointer of every declared builtin, in declaration order."""
        bases = []
        for name in self.program.builtins:
            bases.extend(self.runner.builtin_runners[f"{name}_builtin"].initial_stack())
        return bases

    # --- Execution ---

    def run_from_entrypoint(
        self,
        entrypoint_pc: int,
        args: list,
        hint_registry: HintRegistry,
        verify_secure: bool | None = None,
        output: OutputChannel | None = None,
    ) -> None:
        """Call the function at entrypoint_pc with args and run it to completion.

        The stack is args followed by the return frame (fp = 0, pc = end),
        where end is the base of a fresh segment; the run stops when pc
        reaches end.

        Raises:
            VmError: The VM failed, a hint is not bound, or a secure-run check failed
            HintError: A hint callback raised
        """
        self._expect(RunnerState.SEGMENTS_INIT)
        self._transition(RunnerState.RUNNING)
        try:
            runner = self.runner
            self.end = runner.segments.add()
            stack = [runner.segments.gen_arg(arg) for arg in args] + [0, self.end]

            runner.initial_pc = runner.program_base + entrypoint_pc
            runner.load_data(runner.program_base, runner.program.data)
            runner.load_data(runner.execution_base, stack)
            runner.initial_fp = runner.initial_ap = runner.execution_base + len(stack)
            runner.initialize_vm(hint_locals={}, vm_class=VirtualMachine)

            self.hint_vm = HintVm.from_vm(runner.vm, runner.segments, output or StdoutChannel())
            hints_by_pc = {
                runner.program_base + pc: hints
                for pc, hints in compile_hints(self.program, hint_registry, self.references).items()
            }
            logger.debug(
                "Running from pc %s with %d arguments, %d hint sites",
                format_value(runner.initial_pc), len(args), len(hints_by_pc),
            )
            self._run_until_end(hint_registry, hints_by_pc)

            runner.end_run(disable_trace_padding=False)
            logger.debug("Run ended after %d steps", runner.vm.current_step)
            if verify_secure if verify_secure is not None else self.config.verify_secure:
                self.verify_secure_run()
        except Exception:
            self._transition(RunnerState.FAILED)
            raise
        self._transition(RunnerState.RAN)

    def _run_until_end(
        self,
        hint_registry: HintRegistry,
        hints_by_pc: dict[RelocatableValue, list[HintData]],
    ) -> None:
        vm = self.runner.vm
        max_steps = self.config.max_steps
        while vm.run_context.pc != self.end:
            if max_steps is not None and vm.current_step >= max_steps:
                raise VmError(f"Run exceeded {max_steps} steps")
            for hint in hints_by_pc.get(vm.run_context.pc, ()):
                self._execute_hint(hint_registry, hint)
            try:
                vm.step()
            except Exception as exc:
                raise VmError(f"VM failed at pc {format_value(vm.run_context.pc)}: {exc}") from exc

    def _execute_hint(self, hint_registry: HintRegistry, hint: HintData) -> None:
        pc = self.runner.vm.run_context.pc
        if hint.key not in hint_registry:
            raise VmError(f"Unknown hint at pc {format_value(pc)}: {hint.code!r}")
        try:
            hint_registry.execute_hint(self.hint_vm, self.exec_scopes, hint, self.constants)
        except Exception as exc:
            raise HintError(pc, exc) from exc

    def verify_secure_run(self) -> None:
        """Stop pointers of the builtins, then cairo-lang's segment checks.

        The entrypoint returns its builtin pointers last, so they sit just
        below the final ap, in declaration order.

        Raises:
            VmError: A check failed
        """
        runner = self.runner
        pointer = runner.vm.run_context.ap
        for name in reversed(self.program.builtins):
            builtin = runner.builtin_runners[f"{name}_builtin"]
            stop_ptr = runner.vm.run_context.memory.get(pointer - 1)
            expected = builtin.base + runner.segments.get_segment_used_size(builtin.base.segment_index)
            if stop_ptr != expected:
                found = "nothing" if stop_ptr is None else format_value(stop_ptr)
                raise VmError(
                    f"Invalid stop pointer for {name}: expected {format_value(expected)}, found {found}"
                )
            pointer = builtin.final_stack(runner, pointer)

        try:
            verify_secure_runner(runner)
        except Exception as exc:
            raise VmError(f"Secure run verification failed: {exc}") from exc

    # --- Relocation ---

    def relocate(self) -> None:
        """Lay the segments out in one flat address space, starting at 1.

        Fills relocation_table (segment index -> first address),
        relocated_memory and, when the trace is enabled, relocated_trace
        (an (n_steps, 3) uint64 array of pc, ap, fp).

        Raises:
            RelocationError: Run not completed, or a value lives in or points
                to a temporary segment
        """
        if self.state != RunnerState.RAN:
            raise RelocationError(f"Cannot relocate a runner in state {self.state.name}")

        runner = self.runner
        for addr, value in runner.vm.run_context.memory.items():
            for v in (addr, value):
                if isinstance(v, RelocatableValue) and v.segment_index < 0:
                    raise RelocationError(f"Temporary segment address {format_value(v)} was never relocated")

        runner.relocate()
        offsets = runner.get_segment_offsets()
        self.relocation_table = np.array([offsets[i] for i in range(len(offsets))], dtype=np.uint64)
        self.relocated_memory = runner.relocated_memory
        if self.config.trace_enabled:
            self.relocated_trace = np.array(
                [[entry.pc, entry.ap, entry.fp] for entry in runner.relocated_trace],
                dtype=np.uint64,
            ).reshape(-1, 3)
        self._transition(RunnerState.RELOCATED)
        logger.debug("Relocated %d cells over %d segments", len(self.relocated_memory), len(offsets))


# --- Harness ---

def build_hint_registry() -> HintRegistry:
    """Registry with the hints shipped with the runner."""
    registry = HintRegistry()
    registry.register(HintKind.ALLOC, alloc)
    registry.register(HintKind.PRINT_TWO_ARRAYS, PrintTwoArraysHint())
    return registry


def run_program(
    path: str | Path,
    entrypoint: str,
    user_args: list[int],
    output: OutputChannel,
    config: RunConfig | None = None,
    hint_registry: HintRegistry | None = None,
) -> HintRunner:
    """Load, run and relocate a compiled program.

    The entrypoint receives the builtin bases followed by user_args. Hints
    write to output.

    Raises:
        EntrypointNotFound: entrypoint is not a label of the program
        VmError: The run failed (HintError when a hint failed)
    """
    program = load_program(path)
    entrypoint_pc = get_entrypoint_pc(program, entrypoint)
    logger.info("Loaded %s, entrypoint %s at pc %d", path, entrypoint, entrypoint_pc)

    runner = HintRunner(program, config)
    runner.initialize_builtins()
    runner.initialize_segments()

    registry = hint_registry if hint_registry is not None else build_hint_registry()
    args = runner.get_builtin_bases() + list(user_args)
    runner.run_from_entrypoint(entrypoint_pc, args, registry, output=output)
    runner.relocate()
    logger.info(
        "Run finished: %d steps, %d memory cells",
        runner.vm.current_step, len(runner.relocated_memory),
    )
    return runner
