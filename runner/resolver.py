"""Symbolic reference resolver.

Translates the name of a hint variable into an address or a value, using the
variable descriptors of the hint site (ids_data), the ap tracking in effect at
the hint, and the current registers and memory.

fp-based references resolve directly against fp. ap-based references were
recorded at a point where ap may have been lower than it is when the hint
runs; inside one ap-tracking group the difference is known statically and
the register is corrected by it:

    ap_at_reference = ap - (hint.offset - reference.offset)

References from a different group cannot be resolved.

All functions are pure lookups and raise ResolutionError (or its subclass
TypeMismatch) on failure.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from starkware.cairo.lang.compiler.instruction import Register
from starkware.cairo.lang.vm.relocatable import RelocatableValue

from primitives.field import FELT, CellValue, felt, felt_to_signed, felt_to_usize, format_value, is_felt
from runner.errors import ResolutionError, TypeMismatch
from runner.references import ApTracking, HintReference, OffsetKind, OffsetValue

if TYPE_CHECKING:
    from runner.hint_vm import HintVm


# --- Register Correction ---

def apply_ap_tracking_correction(
    ap: RelocatableValue,
    reference_ap_tracking: ApTracking | None,
    hint_ap_tracking: ApTracking,
) -> RelocatableValue:
    """Value ap had where the reference was created."""
    if reference_ap_tracking is None:
        raise ResolutionError("ap-based reference has no ap tracking data")
    if reference_ap_tracking.group != hint_ap_tracking.group:
        raise ResolutionError(
            f"ap tracking group mismatch: reference in group {reference_ap_tracking.group}, "
            f"hint in group {hint_ap_tracking.group}"
        )
    return _shift(ap, -(hint_ap_tracking.offset - reference_ap_tracking.offset))


def _shift(addr: RelocatableValue, delta: int) -> RelocatableValue:
    if addr.offset + delta < 0:
        raise ResolutionError(f"Address {format_value(addr)} shifted by {delta} is out of its segment")
    return addr + delta


# --- Address Computation ---

def get_reference_from_var_name(name: str, ids_data: dict[str, HintReference]) -> HintReference:
    """Descriptor of name at this hint site."""
    try:
        return ids_data[name]
    except KeyError:
        raise ResolutionError(f"Unknown identifier '{name}' at hint site") from None


def _read_offset_reference(
    vm: HintVm,
    reference: HintReference,
    hint_ap_tracking: ApTracking,
    operand: OffsetValue,
) -> CellValue:
    if operand.register == Register.FP:
        base = vm.get_fp()
    else:
        base = apply_ap_tracking_correction(vm.get_ap(), reference.ap_tracking, hint_ap_tracking)

    addr = _shift(base, operand.value)
    if not operand.dereference:
        return addr

    value = vm.read_cell(addr)
    if value is None:
        raise ResolutionError(f"Memory cell {format_value(addr)} was never written")
    return value


def compute_addr_from_reference(
    reference: HintReference,
    vm: HintVm,
    hint_ap_tracking: ApTracking,
) -> RelocatableValue:
    """Address described by offset1 + offset2 of a reference."""
    if reference.offset1.kind != OffsetKind.REFERENCE:
        raise ResolutionError("Immediate reference has no address")

    base = _read_offset_reference(vm, reference, hint_ap_tracking, reference.offset1)
    if not isinstance(base, RelocatableValue):
        raise TypeMismatch(f"Expected an address as reference base, found scalar {int(base)}")

    offset2 = reference.offset2
    if offset2.kind == OffsetKind.REFERENCE:
        value = _read_offset_reference(vm, reference, hint_ap_tracking, offset2)
        if not is_felt(value):
            raise TypeMismatch(f"Expected a scalar offset, found address {format_value(value)}")
        return _shift(base, felt_to_signed(value))
    return _shift(base, offset2.value)


# --- Typed Reads ---

def read_integer(vm: HintVm, addr: RelocatableValue) -> FELT:
    """Scalar stored at addr."""
    value = vm.read_cell(addr)
    if value is None:
        raise ResolutionError(f"Memory cell {format_value(addr)} was never written")
    if isinstance(value, RelocatableValue):
        raise TypeMismatch(f"Expected a scalar at {format_value(addr)}, found address {format_value(value)}")
    return value


def read_relocatable(vm: HintVm, addr: RelocatableValue) -> RelocatableValue:
    """Address stored at addr."""
    value = vm.read_cell(addr)
    if value is None:
        raise ResolutionError(f"Memory cell {format_value(addr)} was never written")
    if not isinstance(value, RelocatableValue):
        raise TypeMismatch(f"Expected an address at {format_value(addr)}, found scalar {int(value)}")
    return value


# --- Variable Accessors ---

def get_relocatable_from_var_name(
    name: str,
    vm: HintVm,
    ids_data: dict[str, HintReference],
    ap_tracking: ApTracking,
) -> RelocatableValue:
    """Address where the variable lives."""
    reference = get_reference_from_var_name(name, ids_data)
    return compute_addr_from_reference(reference, vm, ap_tracking)


def get_integer_from_var_name(
    name: str,
    vm: HintVm,
    ids_data: dict[str, HintReference],
    ap_tracking: ApTracking,
) -> FELT:
    """Scalar value of the variable.

    Raises:
        ResolutionError: Unknown name or unwritten cell
        TypeMismatch: The variable holds an address
    """
    reference = get_reference_from_var_name(name, ids_data)
    if reference.offset1.kind == OffsetKind.IMMEDIATE:
        return felt(reference.offset1.value + reference.offset2.value)

    addr = compute_addr_from_reference(reference, vm, ap_tracking)
    if not reference.dereference:
        raise TypeMismatch(f"Identifier '{name}' is the address {format_value(addr)}, not a scalar")
    return read_integer(vm, addr)


def get_ptr_from_var_name(
    name: str,
    vm: HintVm,
    ids_data: dict[str, HintReference],
    ap_tracking: ApTracking,
) -> RelocatableValue:
    """Address held by a pointer variable.

    Raises:
        ResolutionError: Unknown name or unwritten cell
        TypeMismatch: The variable holds a scalar
    """
    reference = get_reference_from_var_name(name, ids_data)
    if reference.offset1.kind == OffsetKind.IMMEDIATE:
        raise TypeMismatch(f"Identifier '{name}' is an immediate, not a pointer")

    addr = compute_addr_from_reference(reference, vm, ap_tracking)
    if reference.dereference:
        return read_relocatable(vm, addr)
    return addr


def get_maybe_relocatable_from_var_name(
    name: str,
    vm: HintVm,
    ids_data: dict[str, HintReference],
    ap_tracking: ApTracking,
) -> CellValue:
    """Value of the variable, whatever its type."""
    reference = get_reference_from_var_name(name, ids_data)
    if reference.offset1.kind == OffsetKind.IMMEDIATE:
        return felt(reference.offset1.value + reference.offset2.value)

    addr = compute_addr_from_reference(reference, vm, ap_tracking)
    if not reference.dereference:
        return addr
    value = vm.read_cell(addr)
    if value is None:
        raise ResolutionError(f"Memory cell {format_value(addr)} was never written")
    return value


def get_length_from_var_name(
    name: str,
    vm: HintVm,
    ids_data: dict[str, HintReference],
    ap_tracking: ApTracking,
) -> int:
    """Scalar variable converted to a native unsigned integer.

    Raises:
        ResolutionError: The value does not fit in 64 bits
    """
    value = get_integer_from_var_name(name, vm, ids_data, ap_tracking)
    length = felt_to_usize(value)
    if length is None:
        raise ResolutionError(f"Identifier '{name}' = {int(value)} does not fit in a native unsigned integer")
    return length


def get_constant_from_var_name(name: str, constants: dict[str, FELT]) -> FELT:
    """Program constant by short or fully qualified name."""
    if name in constants:
        return constants[name]
    suffix = "." + name
    for full_name, value in constants.items():
        if full_name.endswith(suffix):
            return value
    raise ResolutionError(f"Unknown constant '{name}'")
