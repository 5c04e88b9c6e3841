"""Hints - Native callbacks shipped with the runner."""

from hints.alloc import alloc
from hints.print_arrays import PrintTwoArraysHint

__all__ = [
    "alloc",
    "PrintTwoArraysHint",
]
