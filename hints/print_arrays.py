"""Array extraction hint.

Emits two scalar arrays, x then y, one element per line:

    for i in range(ids.x_fp_s_len):
        print(memory[ids.x_fp_s + i])
    for i in range(ids.y_fp_s_len):
        print(memory[ids.y_fp_s + i])

Each array is described by two hint variables, a length and a pointer to the
first element. Element i lives at (base.segment_index, base.offset + i): the
walk never leaves the base's segment, and a cell past the written region is
an error rather than a value.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from starkware.cairo.lang.vm.relocatable import RelocatableValue

from primitives.field import FELT, format_value
from runner.hint_processor import ExecutionScopes
from runner.references import ApTracking, HintReference
from runner.resolver import get_length_from_var_name, get_ptr_from_var_name, read_integer

if TYPE_CHECKING:
    from runner.hint_vm import HintVm

logger = logging.getLogger(__name__)


class PrintTwoArraysHint:
    """Callback for HintKind.PRINT_TWO_ARRAYS.

    Args:
        x_len, x_base: Names of the first array's length and pointer variables
        y_len, y_base: Names of the second array's length and pointer variables
    """

    def __init__(
        self,
        x_len: str = "x_fp_s_len",
        x_base: str = "x_fp_s",
        y_len: str = "y_fp_s_len",
        y_base: str = "y_fp_s",
    ) -> None:
        self.x_len = x_len
        self.x_base = x_base
        self.y_len = y_len
        self.y_base = y_base

    def __call__(
        self,
        vm: HintVm,
        exec_scopes: ExecutionScopes,
        ids_data: dict[str, HintReference],
        ap_tracking: ApTracking,
        constants: dict[str, FELT],
    ) -> None:
        # Resolve all four variables before emitting anything
        x_len = get_length_from_var_name(self.x_len, vm, ids_data, ap_tracking)
        y_len = get_length_from_var_name(self.y_len, vm, ids_data, ap_tracking)
        x_base = get_ptr_from_var_name(self.x_base, vm, ids_data, ap_tracking)
        y_base = get_ptr_from_var_name(self.y_base, vm, ids_data, ap_tracking)
        logger.debug(
            "Printing %d values from %s and %d values from %s",
            x_len, format_value(x_base), y_len, format_value(y_base),
        )

        emit_array(vm, x_base, x_len)
        emit_array(vm, y_base, y_len)


def emit_array(vm: HintVm, base: RelocatableValue, length: int) -> None:
    """Emit length scalars starting at base.

    Raises:
        ResolutionError: An element was never written
        TypeMismatch: An element is an address
    """
    for i in range(length):
        vm.emit(read_integer(vm, RelocatableValue(base.segment_index, base.offset + i)))
