#!/usr/bin/env python3
"""
tilyrun — Tily program runner

Usage:
    tilyrun <input.tily> [--trace] [--memory] [--listing] [--strict]
                         [--max-steps N] [-v|-vv] [--log-file PATH]

Prints the outcome on stdout: yes, no, or none.

Exit codes:
    0  STOP yes
    1  STOP no
    2  no result (other STOP, or ran off the end)
    3  parse error or runtime fault
    4  input file could not be read

Examples:
    tilyrun count.tily
    tilyrun count.tily --trace --memory
    tilyrun count.tily --listing          # decoded program, no execution
"""

import argparse
import logging
import sys
from typing import List, Optional

from tily import __version__, parse, Program, Result, DEFAULT_MAX_STEPS
from tily.errors import TilyFault, TilyParseError
from tily.log import setup_logging

logger = logging.getLogger("tily.cli")

EXIT_CODES = {
    Result.SUCCESS: 0,
    Result.FAILURE: 1,
    Result.NO_RESULT: 2,
}
EXIT_ERROR = 3
EXIT_IO = 4

OUTCOME_WORDS = {
    Result.SUCCESS: "yes",
    Result.FAILURE: "no",
    Result.NO_RESULT: "none",
}


def positive_int_arg(value: str) -> int:
    """argparse type for counts that must be at least 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tilyrun",
        description="Run a Tily tile-language program",
    )
    parser.add_argument("input", help="Tily source file")
    parser.add_argument("--trace", action="store_true",
                        help="Print every executed instruction after the run")
    parser.add_argument("--memory", action="store_true",
                        help="Print final memory after the run")
    parser.add_argument("--listing", action="store_true",
                        help="Dump decoded instructions, tags and tiles, then exit")
    parser.add_argument("--strict", action="store_true",
                        help="Reject unknown opcodes at parse time")
    parser.add_argument("--max-steps", type=positive_int_arg,
                        default=DEFAULT_MAX_STEPS,
                        help=f"Runaway ceiling (default: {DEFAULT_MAX_STEPS})")
    parser.add_argument("--verbose", "-v", action="count", default=0,
                        help="Increase log verbosity (-v, -vv)")
    parser.add_argument("--log-file", help="Also write a DEBUG log to this file")
    parser.add_argument("--version", action="version",
                        version=f"tilyrun {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    try:
        with open(args.input, "r", encoding="utf-8") as f:
            source = f.read()
    except OSError as e:
        logger.error("Cannot read %s: %s", args.input, e)
        return EXIT_IO

    logger.info("Input: %s", args.input)

    try:
        program = parse(source, strict=args.strict, max_steps=args.max_steps)
    except TilyParseError as e:
        logger.error("Parse error: %s", e)
        return EXIT_ERROR

    logger.info("Loaded %d instructions, %d tags, %d tiles",
                len(program.instructions), len(program.tags), len(program.tiles))

    if args.listing:
        _print_listing(program)
        return 0

    program.enable_trace(args.trace)
    try:
        result = program.execute()
    except TilyFault as e:
        logger.error("Runtime fault: %s", e)
        _print_after_run(program, args)
        return EXIT_ERROR

    logger.info("Finished after %d instructions", program.executed)
    _print_after_run(program, args)
    print(OUTCOME_WORDS[result])
    return EXIT_CODES[result]


def _print_after_run(program: Program, args):
    if args.trace:
        print(program.get_trace())
    if args.memory:
        for name, value in program.memory.items():
            print(f"{name} = {value}")


def _print_listing(program: Program):
    """Decoded program dump (debug helper)."""
    print("tiles: " + " ".join(program.tiles))
    targets = {}
    for tag, index in program.tags.items():
        targets.setdefault(index, []).append(tag)
    for index, instr in enumerate(program.instructions):
        for tag in targets.get(index, []):
            print(f"#{tag}")
        print(f"{index:04d}  L{instr.line:<4d} {instr}")
    for tag in targets.get(len(program.instructions), []):
        print(f"#{tag}")


if __name__ == "__main__":
    sys.exit(main())
