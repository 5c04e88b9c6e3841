"""Hint binding registry.

A hint is identified by its source text. The registry maps the *normalized*
source text (dedented, trailing whitespace removed, surrounding blank lines
dropped) to a native callback, so the binding does not depend on how the
compiler indented the hint.

Keys are computed once, when the program is loaded (compile_hint); at run
time the VM only looks the precomputed key up.

Registration policy: registering a key that is already bound replaces the
previous callback (last write wins).
"""

from __future__ import annotations

import logging
import textwrap
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from primitives.field import FELT
from runner.errors import VmError
from runner.references import ApTracking, HintReference

if TYPE_CHECKING:
    from runner.hint_vm import HintVm

logger = logging.getLogger(__name__)


# --- Hint Kinds ---

class HintKind(Enum):
    """Hints shipped with the runner; the value is the canonical source text."""
    ALLOC = "memory[ap] = segments.add()"
    PRINT_TWO_ARRAYS = (
        "for i in range(ids.x_fp_s_len):\n"
        "    print(memory[ids.x_fp_s + i])\n"
        "for i in range(ids.y_fp_s_len):\n"
        "    print(memory[ids.y_fp_s + i])"
    )


def normalize_hint_code(code: str) -> str:
    """Canonical form of a hint's source text used as the registry key."""
    lines = [line.rstrip() for line in textwrap.dedent(code).splitlines()]
    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines)


_KIND_BY_KEY = {normalize_hint_code(kind.value): kind for kind in HintKind}


def hint_kind_of(code: str) -> HintKind | None:
    """HintKind whose source text matches code, if any."""
    return _KIND_BY_KEY.get(normalize_hint_code(code))


# --- Execution Scopes ---

class ExecutionScopes:
    """Stack of variable scopes shared by the hints of one run."""

    def __init__(self) -> None:
        self.data: list[dict[str, Any]] = [{}]

    def enter_scope(self, new_scope_locals: dict[str, Any] | None = None) -> None:
        self.data.append(dict(new_scope_locals or {}))

    def exit_scope(self) -> None:
        if len(self.data) == 1:
            raise VmError("Cannot exit main scope")
        self.data.pop()

    def get_local_variables(self) -> dict[str, Any]:
        return self.data[-1]

    def get(self, name: str) -> Any:
        try:
            return self.data[-1][name]
        except KeyError:
            raise VmError(f"Variable '{name}' not in scope") from None

    def assign(self, name: str, value: Any) -> None:
        self.data[-1][name] = value


# --- Compiled Hints ---

HintFunc = Callable[
    ["HintVm", ExecutionScopes, dict[str, HintReference], ApTracking, dict[str, FELT]],
    None,
]
"""(vm, exec_scopes, ids_data, ap_tracking, constants) -> None"""


@dataclass
class HintData:
    """A hint site prepared at load time.

    Attributes:
        code: Source text as found in the program
        key: Normalized source text, the registry key
        ids_data: Variable descriptors visible at the site, by short name
        ap_tracking: Ap tracking at the site
        kind: Matching HintKind, None for user hints
    """
    code: str
    key: str
    ids_data: dict[str, HintReference] = field(default_factory=dict)
    ap_tracking: ApTracking = field(default_factory=ApTracking)
    kind: HintKind | None = None


# --- Registry ---

class HintRegistry:
    """Maps hint keys to native callbacks and dispatches to them."""

    def __init__(self) -> None:
        self._bindings: dict[str, HintFunc] = {}

    @staticmethod
    def _key(key: str | HintKind) -> str:
        if isinstance(key, HintKind):
            key = key.value
        return normalize_hint_code(key)

    def register(self, key: str | HintKind, callback: HintFunc) -> None:
        """Bind callback to a hint; an existing binding is replaced."""
        k = self._key(key)
        if k in self._bindings:
            logger.debug("Replacing binding of hint %r", k)
        self._bindings[k] = callback

    def lookup(self, key: str | HintKind) -> HintFunc | None:
        return self._bindings.get(self._key(key))

    def __contains__(self, key: str | HintKind) -> bool:
        return self._key(key) in self._bindings

    def __len__(self) -> int:
        return len(self._bindings)

    def compile_hint(
        self,
        code: str,
        ap_tracking: ApTracking,
        reference_ids: dict[str, int],
        references: list[HintReference | None],
        accessible_scopes: list[str] | None = None,
    ) -> HintData:
        """Prepare a hint site of a program.

        Args:
            code: Hint source text
            ap_tracking: Ap tracking at the hint
            reference_ids: Fully qualified variable name -> index in references
            references: Parsed reference manager of the program
            accessible_scopes: Scopes visible at the hint, outermost first

        Returns:
            HintData with ids_data keyed by the last component of each name.
            When two names share a last component, the one declared in the
            innermost accessible scope wins.
        """
        depth = {scope: i for i, scope in enumerate(accessible_scopes or [])}

        def scope_depth(full_name: str) -> int:
            return depth.get(full_name.rpartition(".")[0], -1)

        ids_data = {}
        for full_name in sorted(reference_ids, key=scope_depth):
            ref_id = reference_ids[full_name]
            if not 0 <= ref_id < len(references):
                raise ValueError(f"Reference id {ref_id} of '{full_name}' out of range")
            if references[ref_id] is None:
                continue
            ids_data[full_name.rsplit(".", 1)[-1]] = references[ref_id]

        key = normalize_hint_code(code)
        return HintData(
            code=code,
            key=key,
            ids_data=ids_data,
            ap_tracking=ap_tracking,
            kind=_KIND_BY_KEY.get(key),
        )

    def execute_hint(
        self,
        vm: HintVm,
        exec_scopes: ExecutionScopes,
        hint_data: HintData,
        constants: dict[str, FELT],
    ) -> None:
        """Run the callback bound to the hint.

        Raises:
            VmError: No callback is bound to the hint's key
        """
        callback = self._bindings.get(hint_data.key)
        if callback is None:
            raise VmError(f"Unknown hint: {hint_data.code!r}")
        logger.debug("Executing hint %s", hint_data.kind.name if hint_data.kind else repr(hint_data.key))
        callback(vm, exec_scopes, hint_data.ids_data, hint_data.ap_tracking, constants)
