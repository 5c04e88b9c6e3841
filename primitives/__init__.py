"""Primitives - Field elements of the VM and their conversion to memory values."""

from primitives.field import (
    CAIRO_PRIME,
    FELT,
    USIZE_BOUND,
    CellValue,
    felt,
    felt_to_signed,
    felt_to_usize,
    format_value,
    is_felt,
    to_felt,
    to_memory_value,
)

__all__ = [
    # Field
    "CAIRO_PRIME",
    "FELT",
    "USIZE_BOUND",
    "felt",
    "felt_to_signed",
    "felt_to_usize",
    "is_felt",
    # Memory values
    "CellValue",
    "to_felt",
    "to_memory_value",
    "format_value",
]
