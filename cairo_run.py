#!/usr/bin/env python3
"""
Run a compiled program and write its relocated trace and memory.

Usage:
    python cairo_run.py program.json \
        --entrypoint projectile_path \
        --args 25 60 40 \
        --trace_file trace.bin \
        --memory_file memory.bin \
        --print_output

Values emitted by hints are printed to standard output, one per line.

The trace and memory files use cairo-lang's binary formats:
    trace   per step: ap, fp, pc as little-endian u64
    memory  per written address: address as little-endian u64, then the
            value as 32 little-endian bytes
"""

import argparse
import logging
import math
import sys
from dataclasses import replace
from pathlib import Path

from starkware.cairo.lang.vm.cairo_run import write_binary_memory, write_binary_trace
from starkware.cairo.lang.vm.relocatable import RelocatableValue

from primitives.field import CAIRO_PRIME, format_value
from runner.cairo_runner import HintRunner, run_program
from runner.config import RunConfig
from runner.errors import EntrypointNotFound, HarnessError
from runner.output import StdoutChannel

logger = logging.getLogger("cairo_run")

FIELD_BYTES = math.ceil(CAIRO_PRIME.bit_length() / 8)


def print_output_segment(runner: HintRunner) -> None:
    """Print the values written to the output builtin, if the program has one."""
    builtin = runner.runner.builtin_runners.get("output_builtin")
    if builtin is None:
        return
    print("Program output:")
    memory = runner.vm.run_context.memory
    for i in range(runner.segments.get_segment_used_size(builtin.base.segment_index)):
        value = memory.get(RelocatableValue(builtin.base.segment_index, i))
        print(f"  {format_value(value) if value is not None else '<missing>'}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description='Run a compiled program with native hints'
    )
    parser.add_argument(
        'program',
        type=Path,
        help='Path to the compiled program JSON'
    )
    parser.add_argument(
        '--entrypoint',
        type=str,
        default='main',
        help='Function label to run (default: main)'
    )
    parser.add_argument(
        '--args',
        type=int,
        nargs='*',
        default=[],
        help='Scalar arguments passed after the builtin bases'
    )
    parser.add_argument(
        '--layout',
        type=str,
        default=None,
        help='cairo-lang layout, e.g. plain, small or all_cairo (overrides --config)'
    )
    parser.add_argument(
        '--config',
        type=Path,
        default=None,
        help='Path to a run configuration JSON'
    )
    parser.add_argument(
        '--trace_file',
        type=Path,
        default=None,
        help='Output path for the binary trace'
    )
    parser.add_argument(
        '--memory_file',
        type=Path,
        default=None,
        help='Output path for the binary memory'
    )
    parser.add_argument(
        '--print_output',
        action='store_true',
        help='Print the output builtin segment after the run'
    )
    parser.add_argument(
        '--no-verify-secure',
        action='store_true',
        help='Skip the post-run security checks'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Log level: -v for INFO, -vv for DEBUG'
    )

    args = parser.parse_args(argv)

    level = logging.WARNING - 10 * min(args.verbose, 2)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)

    if not args.program.exists():
        print(f"Error: Program file not found: {args.program}", file=sys.stderr)
        return 1

    try:
        config = RunConfig.from_json(str(args.config)) if args.config else RunConfig()
        if args.layout is not None:
            config = replace(config, layout=args.layout)
        if args.no_verify_secure:
            config = replace(config, verify_secure=False)
        if args.trace_file is not None:
            config = replace(config, trace_enabled=True)

        runner = run_program(args.program, args.entrypoint, args.args, StdoutChannel(), config)
    except EntrypointNotFound as e:
        logger.error("%s", e)
        return 1
    except (HarnessError, ValueError) as e:
        logger.error("Run failed: %s", e)
        return 1

    if args.print_output:
        print_output_segment(runner)
    if args.trace_file is not None:
        with open(args.trace_file, 'wb') as f:
            write_binary_trace(f, runner.runner.relocated_trace)
        logger.info("Wrote trace to %s", args.trace_file)
    if args.memory_file is not None:
        with open(args.memory_file, 'wb') as f:
            write_binary_memory(f, runner.relocated_memory, FIELD_BYTES)
        logger.info("Wrote memory to %s", args.memory_file)
    return 0


if __name__ == '__main__':
    sys.exit(main())
