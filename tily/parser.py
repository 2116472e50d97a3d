"""
Line parser for the Tily language.

Single forward pass. Each stripped line is exactly one of, in priority order:

  {A B C D}        tile declaration (tokens exploded into characters)
  #LOOP_BEGIN      tag declaration (points at the next instruction)
  // note          comment
  ASSIGN count 0   instruction (anything else, blank lines included)

Tags are resolved as they are read: a tag's value is the number of
instructions emitted before it, so a tag on the last line points one past
the end.
"""

from __future__ import annotations
import logging
import re
from types import MappingProxyType
from typing import Dict, List

from .errors import UnknownOpcodeError
from .instruction import Instruction, Opcode, decode_instruction, TAG_MARKER
from .program import DEFAULT_MAX_STEPS, Program, ProgramImage

__all__ = ['parse', 'COMMENT_MARKER', 'TILES_RE', 'TAG_RE']

logger = logging.getLogger(__name__)

COMMENT_MARKER = "//"

TILES_RE = re.compile(r"^\{([\w\s]*)\}$", re.ASCII)
TAG_RE = re.compile(r'^' + re.escape(TAG_MARKER) + r'(\w+)', re.ASCII)


def parse(source: str, *, strict: bool = False,
          max_steps: int = DEFAULT_MAX_STEPS) -> Program:
    """Parse source text into a Program ready to execute.

    Args:
        source: Program text, one declaration or instruction per line.
        strict: Reject unrecognized opcodes (and blank lines) with
            UnknownOpcodeError instead of keeping them as no-ops.
        max_steps: Runaway ceiling for the resulting Program.
    """
    tiles: List[str] = []
    instructions: List[Instruction] = []
    tags: Dict[str, int] = {}

    for line_num, raw in enumerate(_lines(source), start=1):
        text = raw.strip()

        m = TILES_RE.match(text)
        if m:
            tiles = [ch for token in m.group(1).split() for ch in token]
            continue

        m = TAG_RE.match(text)
        if m:
            tags[m.group(1)] = len(instructions)
            continue

        if text.startswith(COMMENT_MARKER):
            continue

        instr = decode_instruction(text, line_num)
        if strict and instr.opcode is Opcode.UNKNOWN:
            raise UnknownOpcodeError(instr.name, line_num)
        instructions.append(instr)

    logger.debug("Parsed %d instructions, %d tags, %d tiles",
                 len(instructions), len(tags), len(tiles))

    image = ProgramImage(tiles=tuple(tiles),
                         instructions=tuple(instructions),
                         tags=MappingProxyType(tags))
    return Program(image, max_steps=max_steps)


def _lines(source: str) -> List[str]:
    """Split on '\\n' only; other Unicode line breaks stay inside the line."""
    lines = source.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines
