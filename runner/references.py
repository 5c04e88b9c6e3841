"""Variable descriptors of hint sites.

A compiled program records, for every variable visible to a hint, a reference
expression such as

    [cast(fp + (-3), felt*)]          value stored at fp - 3
    [cast(fp, felt**)]                pointer stored at fp
    cast(ap + (-1), felt*)            the address ap - 1 itself
    [cast([fp + (-4)] + 2, felt*)]    value at ([fp - 4] + 2)
    cast(17, felt)                    immediate value

together with the ap tracking data in effect where the reference was created.
These are parsed once at load time into HintReference objects.
"""

import re
from dataclasses import dataclass, field
from enum import Enum

from starkware.cairo.lang.compiler.instruction import Register


# --- Ap Tracking ---

@dataclass(frozen=True)
class ApTracking:
    """Static position of ap: a group (reset at every label/jump join) and an
    offset counted in ap increments since the start of the group."""
    group: int = 0
    offset: int = 0

    @classmethod
    def from_dict(cls, j: dict | None) -> "ApTracking":
        if not j:
            return cls()
        return cls(group=j["group"], offset=j["offset"])


# --- Offset Values ---

class OffsetKind(Enum):
    IMMEDIATE = 0   # constant value, no address
    VALUE = 1       # integer added to offset1
    REFERENCE = 2   # register + offset, optionally dereferenced


@dataclass(frozen=True)
class OffsetValue:
    """One operand of a reference expression."""
    kind: OffsetKind
    value: int = 0
    register: Register | None = None
    dereference: bool = False

    @classmethod
    def immediate(cls, value: int) -> "OffsetValue":
        return cls(OffsetKind.IMMEDIATE, value)

    @classmethod
    def constant(cls, value: int) -> "OffsetValue":
        return cls(OffsetKind.VALUE, value)

    @classmethod
    def reference(cls, register: Register, offset: int, dereference: bool = False) -> "OffsetValue":
        return cls(OffsetKind.REFERENCE, offset, register, dereference)


@dataclass(frozen=True)
class HintReference:
    """Parsed reference of one variable at one hint site.

    Attributes:
        offset1: Base operand (register reference or immediate)
        offset2: Operand added to offset1 (constant or register reference)
        dereference: The variable is the cell at the computed address
        ap_tracking: Ap tracking where the reference was created
        cairo_type: Declared type (e.g. 'felt', 'felt*')
    """
    offset1: OffsetValue
    offset2: OffsetValue = field(default_factory=lambda: OffsetValue.constant(0))
    dereference: bool = True
    ap_tracking: ApTracking | None = None
    cairo_type: str | None = None

    @classmethod
    def from_value(cls, value: str, ap_tracking: ApTracking | None = None) -> "HintReference":
        """Parse a reference expression as stored in the compiled program."""
        offset1, offset2, dereference, cairo_type = parse_reference_value(value)
        return cls(offset1, offset2, dereference, ap_tracking, cairo_type)


# --- Parser ---

_CAST_RE = re.compile(r"^cast\((?P<expr>.+),\s*(?P<type>[\w.]+\**)\)$")
_REGISTER_RE = re.compile(r"^(?P<reg>ap|fp)$")
_INT_RE = re.compile(r"^\(?\s*(?P<value>-?\d+)\s*\)?$")


def parse_reference_value(value: str) -> tuple[OffsetValue, OffsetValue, bool, str | None]:
    """Parse a reference expression.

    Returns:
        (offset1, offset2, dereference, cairo_type)

    Raises:
        ValueError: If the expression is not a supported reference
    """
    text = value.strip()
    dereference = False
    if text.startswith("[") and text.endswith("]") and _matching_bracket(text, 0) == len(text) - 1:
        dereference = True
        text = text[1:-1].strip()

    cairo_type = None
    m = _CAST_RE.match(text)
    if m:
        text = m.group("expr").strip()
        cairo_type = m.group("type")

    terms = _split_top_level(text, "+")
    if not terms or any(not t for t in terms):
        raise ValueError(f"Invalid reference expression: {value!r}")

    offset1 = _parse_term(terms[0], value)
    offset2 = OffsetValue.constant(0)
    for term in terms[1:]:
        operand = _parse_term(term, value)
        if operand.kind == OffsetKind.IMMEDIATE:
            if offset1.kind == OffsetKind.REFERENCE and not offset1.dereference:
                offset1 = OffsetValue.reference(offset1.register, offset1.value + operand.value)
            elif offset1.kind == OffsetKind.IMMEDIATE:
                offset1 = OffsetValue.immediate(offset1.value + operand.value)
            elif offset2.kind == OffsetKind.VALUE:
                offset2 = OffsetValue.constant(offset2.value + operand.value)
            else:
                raise ValueError(f"Unsupported reference expression: {value!r}")
        elif offset2.kind == OffsetKind.VALUE and offset2.value == 0:
            offset2 = operand
        else:
            raise ValueError(f"Unsupported reference expression: {value!r}")

    if offset1.kind == OffsetKind.IMMEDIATE and dereference:
        raise ValueError(f"Cannot dereference an immediate: {value!r}")

    return offset1, offset2, dereference, cairo_type


def _parse_term(term: str, source: str) -> OffsetValue:
    term = term.strip()

    m = _INT_RE.match(term)
    if m:
        return OffsetValue.immediate(int(m.group("value")))

    m = _REGISTER_RE.match(term)
    if m:
        return OffsetValue.reference(_register(m.group("reg")), 0)

    if term.startswith("[") and _matching_bracket(term, 0) == len(term) - 1:
        inner = _split_top_level(term[1:-1].strip(), "+")
        m = _REGISTER_RE.match(inner[0].strip())
        if not m or len(inner) > 2:
            raise ValueError(f"Unsupported reference expression: {source!r}")
        offset = 0
        if len(inner) == 2:
            n = _INT_RE.match(inner[1].strip())
            if not n:
                raise ValueError(f"Unsupported reference expression: {source!r}")
            offset = int(n.group("value"))
        return OffsetValue.reference(_register(m.group("reg")), offset, dereference=True)

    raise ValueError(f"Unsupported reference expression: {source!r}")


def _register(name: str) -> Register:
    return Register.AP if name == "ap" else Register.FP


def _matching_bracket(text: str, start: int) -> int:
    """Index of the bracket closing the one at start, or -1."""
    depth = 0
    for i in range(start, len(text)):
        if text[i] == "[":
            depth += 1
        elif text[i] == "]":
            depth -= 1
            if depth == 0:
                return i
    return -1


def _split_top_level(text: str, sep: str) -> list[str]:
    """Split on sep outside of brackets and parentheses."""
    parts = []
    depth = 0
    current = []
    for ch in text:
        if ch in "[(":
            depth += 1
        elif ch in "])":
            depth -= 1
        if ch == sep and depth == 0:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
    parts.append("".join(current).strip())
    return parts
