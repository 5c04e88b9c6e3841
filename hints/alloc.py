"""Allocation hint: `memory[ap] = segments.add()`."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from primitives.field import FELT, format_value
from runner.hint_processor import ExecutionScopes
from runner.references import ApTracking, HintReference

if TYPE_CHECKING:
    from runner.hint_vm import HintVm

logger = logging.getLogger(__name__)


def alloc(
    vm: HintVm,
    exec_scopes: ExecutionScopes,
    ids_data: dict[str, HintReference],
    ap_tracking: ApTracking,
    constants: dict[str, FELT],
) -> None:
    """Create a segment and store its base at ap."""
    base = vm.add_segment()
    vm.insert(vm.get_ap(), base)
    logger.debug("alloc: segment %d at %s", base.segment_index, format_value(vm.get_ap()))
