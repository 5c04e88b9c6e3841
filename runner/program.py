"""Helpers over a compiled cairo-lang Program.

The compiled JSON is loaded with cairo-lang's own schema. Everything the
native hint machinery needs is then derived from it once, at load time:

    get_entrypoint_pc    label -> offset in the program segment
    get_constants        `const` identifiers -> FELT
    get_references       reference manager -> parsed HintReference (or None)
    compile_hints        hint sites -> HintData, keyed by pc offset
    strip_hints          copy of the program the VM can run without exec()
"""

import dataclasses
import json
import logging
from pathlib import Path

from starkware.cairo.lang.compiler.identifier_definition import ConstDefinition
from starkware.cairo.lang.compiler.identifier_manager import MissingIdentifierError
from starkware.cairo.lang.compiler.program import Program

from primitives.field import CAIRO_PRIME, FELT, felt
from runner.errors import EntrypointNotFound, VmError
from runner.hint_processor import HintData, HintRegistry
from runner.references import ApTracking, HintReference

logger = logging.getLogger(__name__)


def load_program(path: str | Path) -> Program:
    """Load a compiled program from a JSON file.

    Raises:
        VmError: The program was compiled for another prime
    """
    with open(path) as f:
        j = json.load(f)
    program = Program.Schema().load(j)
    if program.prime != CAIRO_PRIME:
        raise VmError(f"Unsupported program prime {program.prime:#x}")
    logger.debug("Loaded %s: %d words, %d hint sites", path, len(program.data), len(program.hints))
    return program


def get_entrypoint_pc(program: Program, name: str) -> int:
    """Offset in the program segment of a function label.

    Raises:
        EntrypointNotFound: No label of this name
    """
    try:
        return program.get_label(name)
    except MissingIdentifierError:
        raise EntrypointNotFound(name) from None


def get_constants(program: Program) -> dict[str, FELT]:
    """Every `const` of the program, by fully qualified name."""
    return {
        str(name): felt(definition.value)
        for name, definition in program.identifiers.as_dict().items()
        if isinstance(definition, ConstDefinition)
    }


def get_references(program: Program) -> list[HintReference | None]:
    """Reference manager entries, parsed.

    Entries outside the supported reference grammar are kept as None so that
    reference ids stay valid; hints simply do not see those names.
    """
    references = []
    for i, ref in enumerate(program.reference_manager.references):
        value = ref.value.format()
        tracking = ref.ap_tracking_data
        try:
            references.append(HintReference.from_value(value, ApTracking(tracking.group, tracking.offset)))
        except ValueError:
            logger.debug("Skipping reference %d: %s", i, value)
            references.append(None)
    return references


def compile_hints(
    program: Program,
    registry: HintRegistry,
    references: list[HintReference | None] | None = None,
) -> dict[int, list[HintData]]:
    """Prepare every hint site of program for dispatch through registry."""
    if references is None:
        references = get_references(program)
    compiled = {}
    for pc, hints in program.hints.items():
        compiled[pc] = [
            registry.compile_hint(
                hint.code,
                ApTracking(
                    hint.flow_tracking_data.ap_tracking.group,
                    hint.flow_tracking_data.ap_tracking.offset,
                ),
                {str(name): ref_id for name, ref_id in hint.flow_tracking_data.reference_ids.items()},
                references,
                [str(scope) for scope in hint.accessible_scopes],
            )
            for hint in hints
        ]
    return compiled


def strip_hints(program: Program) -> Program:
    """Copy of program without hints.

    Hints run natively; the cairo-lang VM must not exec their source.
    """
    return dataclasses.replace(program, hints={})
