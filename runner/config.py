"""Run configuration."""

import json
from dataclasses import dataclass

import starkware.cairo.lang.instances as instances


def get_layout(name: str):
    """cairo-lang CairoLayout of a layout name (e.g. 'all_cairo', 'small')."""
    layout = getattr(instances, f"{name}_instance", None)
    if layout is None:
        raise ValueError(f"Unknown layout '{name}'")
    return layout


@dataclass
class RunConfig:
    """Options of a single program run.

    Attributes:
        layout: cairo-lang layout name
        trace_enabled: Keep the relocated (pc, ap, fp) trace
        verify_secure: Check stop pointers and segment bounds after the run
        proof_mode: Not supported; must be False
        max_steps: Abort the run after this many steps (None: no limit)
    """
    layout: str = "all_cairo"
    trace_enabled: bool = True
    verify_secure: bool = True
    proof_mode: bool = False
    max_steps: int | None = None

    def __post_init__(self) -> None:
        get_layout(self.layout)
        if self.proof_mode:
            raise ValueError("Proof mode is not supported")
        if self.max_steps is not None and self.max_steps <= 0:
            raise ValueError(f"max_steps must be positive, got {self.max_steps}")

    @classmethod
    def from_json(cls, path: str) -> "RunConfig":
        """Load a RunConfig from a JSON file (camelCase keys, all optional)."""
        with open(path) as f:
            j = json.load(f)
        return cls.from_dict(j)

    @classmethod
    def from_dict(cls, j: dict) -> "RunConfig":
        return cls(
            layout=j.get("layout", "all_cairo"),
            trace_enabled=bool(j.get("traceEnabled", True)),
            verify_secure=bool(j.get("verifySecure", True)),
            proof_mode=bool(j.get("proofMode", False)),
            max_steps=j.get("maxSteps"),
        )
