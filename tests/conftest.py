"""Pytest configuration and shared fixtures.

The trajectory program (tests/data/projectile_path.cairo) is compiled once per
session with cairo-lang and written as compiled JSON, the way cairo-compile
would write it. Variants are derived from the same source or from its JSON.
"""

import json
import sys
from pathlib import Path

import pytest

# Add the repository root to the path so absolute imports work
# (tests/ is inside the repository root, so parent is the root)
root_dir = Path(__file__).parent.parent
if str(root_dir) not in sys.path:
    sys.path.insert(0, str(root_dir))

from starkware.cairo.lang.compiler.cairo_compile import compile_cairo  # noqa: E402
from starkware.cairo.lang.compiler.program import Program  # noqa: E402

from primitives.field import CAIRO_PRIME  # noqa: E402

DATA_DIR = Path(__file__).parent / "data"
SOURCE = (DATA_DIR / "projectile_path.cairo").read_text()

# Line whose removal leaves the returned range check pointer unadvanced
ADVANCE_RANGE_CHECK = "    let range_check_ptr = range_check_ptr + 1;\n"


def compile_source(source: str) -> dict:
    """Compiled program JSON of a Cairo source."""
    program = compile_cairo(source, CAIRO_PRIME)
    return Program.Schema().dump(program)


def write_program(path: Path, program_json: dict) -> Path:
    with open(path, "w") as f:
        json.dump(program_json, f)
    return path


def replace_hint_code(program_json: dict, marker: str, code: str) -> dict:
    """Copy of program_json with the code of every hint containing marker replaced."""
    j = json.loads(json.dumps(program_json))
    for hints in j["hints"].values():
        for hint in hints:
            if marker in hint["code"]:
                hint["code"] = code
    return j


def print_hint_pc(program_json: dict) -> int:
    """Offset of the array printing hint in the program segment."""
    for pc, hints in program_json["hints"].items():
        if any("x_fp_s_len" in hint["code"] for hint in hints):
            return int(pc)
    raise KeyError("print hint")


@pytest.fixture(scope="session")
def projectile_json() -> dict:
    return compile_source(SOURCE)


@pytest.fixture(scope="session")
def projectile_path(projectile_json: dict, tmp_path_factory) -> Path:
    """Trajectory program written as compiled JSON."""
    return write_program(tmp_path_factory.mktemp("programs") / "projectile.json", projectile_json)


@pytest.fixture(scope="session")
def unadvanced_range_check_path(tmp_path_factory) -> Path:
    """Trajectory program that uses a range check cell without advancing the pointer."""
    source = SOURCE.replace(ADVANCE_RANGE_CHECK, "")
    assert source != SOURCE
    return write_program(tmp_path_factory.mktemp("programs") / "unadvanced.json", compile_source(source))


@pytest.fixture
def golden_lines() -> list[str]:
    with open(DATA_DIR / "projectile_path.golden") as f:
        return f.read().split()
