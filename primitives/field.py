"""VM prime field GF(p), p = 2^251 + 17 * 2^192 + 1.

Uses galois library for all field arithmetic. FELT is the field type handed to
hints for every scalar memory cell. The VM itself (cairo-lang) stores scalars
as Python ints reduced modulo p; to_felt/to_memory_value convert at the
boundary.

galois.GF() needs a primitive element of the field. Finding one requires
factoring p - 1, so the well known generator 3 is supplied directly.
"""

from typing import Union

import galois
from starkware.cairo.lang.cairo_constants import DEFAULT_PRIME
from starkware.cairo.lang.vm.relocatable import RelocatableValue

# --- Field Construction ---

CAIRO_PRIME = DEFAULT_PRIME
FIELD_GENERATOR = 3

FELT = galois.GF(CAIRO_PRIME, primitive_element=FIELD_GENERATOR, verify=False)
"""Base field GF(p) of the VM."""

# Largest value a native unsigned integer (usize) may take
USIZE_BOUND = 2**64

HALF_PRIME = CAIRO_PRIME // 2

CellValue = Union[FELT, RelocatableValue]
"""Content of a memory cell as seen by hints: a field element or an address."""


# --- Conversions ---

def felt(value: int) -> FELT:
    """Construct a FELT from any Python integer, reducing modulo p.

    galois rejects integers outside [0, p), so negative offsets such as -1 must
    go through here.
    """
    return FELT(int(value) % CAIRO_PRIME)


def is_felt(value) -> bool:
    """Check whether value is a scalar element of the VM field."""
    return isinstance(value, FELT)


def felt_to_signed(value: FELT) -> int:
    """Interpret a FELT as a signed integer in (-p/2, p/2]."""
    v = int(value)
    return v - CAIRO_PRIME if v > HALF_PRIME else v


def felt_to_usize(value: FELT) -> int | None:
    """Convert a FELT to a native unsigned integer.

    Returns:
        The integer, or None when the value does not fit in 64 bits.
    """
    v = int(value)
    if v >= USIZE_BOUND:
        return None
    return v


def to_felt(value: int | RelocatableValue) -> CellValue:
    """VM memory value -> hint value. Addresses pass through."""
    if isinstance(value, RelocatableValue):
        return value
    return felt(value)


def to_memory_value(value) -> int | RelocatableValue:
    """Hint value -> VM memory value (ints reduced modulo p)."""
    if isinstance(value, RelocatableValue):
        return value
    if is_felt(value):
        return int(value)
    if isinstance(value, int) and not isinstance(value, bool):
        return value % CAIRO_PRIME
    raise TypeError(f"Cannot store {value!r} in VM memory")


def format_value(value: CellValue | int) -> str:
    """Decimal for scalars, segment:offset for addresses."""
    if isinstance(value, RelocatableValue):
        return f"{value.segment_index}:{value.offset}"
    return str(int(value))
