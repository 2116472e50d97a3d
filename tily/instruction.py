"""
Instruction decoding for the Tily interpreter.

One source line becomes one immutable Instruction:

    JUMP_IF_EQUAL count max #EXIT
    ─────┬─────── ──┬── ─┬─ ──┬──
      opcode      TextToken   TagRef

Argument kinds are fixed here, at decode time, so the engine never has to
re-inspect a token's shape:

  IntegerLiteral   all ASCII digits          42
  TagRef           '#' followed by a name    #LOOP_BEGIN
  CountToken       the literal '{N}'         {N}
  TextToken        anything else, verbatim   count, J
"""

from __future__ import annotations
import enum
import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

__all__ = [
    'Opcode', 'IntegerLiteral', 'TextToken', 'TagRef', 'CountToken',
    'Arg', 'Instruction', 'decode_instruction', 'decode_arg',
    'TAG_MARKER', 'COUNT_TOKEN',
]

TAG_MARKER = "#"
COUNT_TOKEN = "{N}"

_INTEGER_RE = re.compile(r'[0-9]+')
_TAG_REF_RE = re.compile(re.escape(TAG_MARKER) + r"(\w+)", re.ASCII)


class Opcode(enum.Enum):
    ALLOCATE = "ALLOCATE"
    ASSIGN = "ASSIGN"
    COPY = "COPY"
    INCREMENT = "INCREMENT"
    JUMP = "JUMP"
    JUMP_IF_EQUAL = "JUMP_IF_EQUAL"
    STOP = "STOP"

    # Anything the vocabulary doesn't cover, blank lines included
    UNKNOWN = "UNKNOWN"

    @classmethod
    def lookup(cls, name: str) -> Opcode:
        """Case-sensitive match against the vocabulary."""
        return _OPCODES_BY_NAME.get(name, cls.UNKNOWN)


_OPCODES_BY_NAME: Dict[str, Opcode] = {
    op.value: op for op in Opcode if op is not Opcode.UNKNOWN
}


# ──────────────────────────────────────────────
# Arguments
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class IntegerLiteral:
    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class TextToken:
    text: str

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class TagRef(TextToken):
    """Reference to a tag, e.g. '#EXIT'. `text` keeps the marker."""

    @property
    def tag(self) -> str:
        return _TAG_REF_RE.match(self.text).group(1)


@dataclass(frozen=True)
class CountToken(TextToken):
    """The '{N}' token: resolves to the tile count when assigned."""


Arg = Union[IntegerLiteral, TextToken]


def decode_arg(token: str) -> Arg:
    if _INTEGER_RE.fullmatch(token):
        return IntegerLiteral(int(token))
    if token == COUNT_TOKEN:
        return CountToken(token)
    if _TAG_REF_RE.match(token):
        return TagRef(token)
    return TextToken(token)


# ──────────────────────────────────────────────
# Instruction
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Instruction:
    """A decoded source line. `name` is the opcode exactly as written."""
    opcode: Opcode
    name: str
    args: Tuple[Arg, ...] = ()
    line: int = 0

    def arg(self, index: int) -> Optional[Arg]:
        if index < len(self.args):
            return self.args[index]
        return None

    def __str__(self) -> str:
        return " ".join([self.name, *(str(a) for a in self.args)])


def decode_instruction(text: str, line: int = 0) -> Instruction:
    """Split a line on whitespace into opcode + typed args.

    Never fails: an unrecognized (or empty) opcode name decodes to
    Opcode.UNKNOWN with the raw name preserved.
    """
    parts = text.split()
    if not parts:
        return Instruction(Opcode.UNKNOWN, "", (), line)
    name = parts[0]
    args = tuple(decode_arg(tok) for tok in parts[1:])
    return Instruction(Opcode.lookup(name), name, args, line)
