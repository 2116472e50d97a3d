"""
Tily — interpreter for a tiny line-oriented tile language
==========================================================
Programs shuffle a fixed row of single-character tiles through a handful
of named memory slots, loop with tags and jumps, and end with STOP yes/no.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌──────────────┐    ┌──────────┐
    │  Source  │───>│  Parser  │───>│   Program    │───>│  Result  │
    │  (.tily) │    │ (lines)  │    │ step/execute │    │ yes/no/- │
    └──────────┘    └──────────┘    └──────────────┘    └──────────┘

    - instruction.py: Opcode enum, typed args, one-line decoder
    - parser.py:      Line classifier (tiles / tag / comment / instruction)
    - program.py:     ProgramImage + MachineState, pure run_step(), Program
    - values.py:      Unset / Integer / Letter memory values
    - errors.py:      Parse errors and runtime faults
"""

__version__ = "0.1.0"

from .errors import *
from .instruction import (
    Opcode, Instruction, IntegerLiteral, TextToken, TagRef, CountToken,
    decode_instruction,
)
from .values import Value, Unset, Integer, Letter, UNSET
from .program import (
    DEFAULT_MAX_STEPS, Result, Program, ProgramImage, MachineState, run_step,
)
from .parser import parse


def execute(source: str, *, strict: bool = False,
            max_steps: int = DEFAULT_MAX_STEPS) -> Result:
    """Parse source and run it to completion.

    Raises TilyParseError (strict mode only) or a TilyFault subclass.
    """
    return parse(source, strict=strict, max_steps=max_steps).execute()
