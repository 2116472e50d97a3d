"""
Tily execution engine.

A Program is split in two:

  ProgramImage   tiles, instructions, tags      built once by the parser
  MachineState   cursor, executed, memory       replaced on every step

`run_step(image, state)` is the single fetch-decode-execute iteration. It
never mutates its inputs; it returns the next state and, when the step
ended the run, a Result. Program.step() and Program.execute() are thin
wrappers that store the returned state.

Execution model:
  1. Count the instruction; fault once the ceiling is reached
  2. Fetch the instruction at the cursor
  3. Execute its handler
  4. Advance the cursor unless the handler jumped or stopped
  5. Falling off the end finishes the run with NO_RESULT

Outcomes:
  - SUCCESS:    STOP yes
  - FAILURE:    STOP no
  - NO_RESULT:  any other STOP, or ran past the last instruction
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Tuple, Union

from .errors import (
    TilyFault, RunawayExecutionFault, UndefinedTagFault, UndefinedMemoryFault,
    TypeMismatchFault, IndexOutOfRangeFault, MissingOperandFault,
)
from .instruction import (
    Instruction, Opcode, IntegerLiteral, TagRef, CountToken, COUNT_TOKEN,
)
from .values import Value, Integer, Letter, UNSET

__all__ = [
    'DEFAULT_MAX_STEPS', 'Result', 'ProgramImage', 'MachineState',
    'Program', 'run_step',
]

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 10_000


class Result(Enum):
    SUCCESS = 'SUCCESS'
    FAILURE = 'FAILURE'
    NO_RESULT = 'NO_RESULT'


@dataclass(frozen=True)
class ProgramImage:
    """Everything the parser produces. Never changes during a run."""
    tiles: Tuple[str, ...] = ()
    instructions: Tuple[Instruction, ...] = ()
    tags: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True)
class MachineState:
    cursor: int = 0
    executed: int = 0
    memory: Mapping[str, Value] = field(
        default_factory=lambda: MappingProxyType({}))


# Handler return: None advances, an int jumps there, a Result stops the run
_Effect = Union[None, int, Result]
_Handler = Callable[[ProgramImage, Dict[str, Value], Instruction], _Effect]


# ──────────────────────────────────────────────
# Operand helpers
# ──────────────────────────────────────────────

def _operand(instr: Instruction, index: int):
    arg = instr.arg(index)
    if arg is None:
        raise MissingOperandFault(
            f"{instr.name} is missing operand {index + 1}", instr.line)
    return arg


def _slot(memory: Dict[str, Value], instr: Instruction, index: int) -> str:
    """Name of an already-allocated memory slot."""
    name = str(_operand(instr, index))
    if name not in memory:
        raise UndefinedMemoryFault(name, instr.line)
    return name


def _jump_target(image: ProgramImage, instr: Instruction, index: int) -> int:
    arg = _operand(instr, index)
    if not isinstance(arg, TagRef):
        raise UndefinedTagFault(str(arg), instr.line)
    if arg.tag not in image.tags:
        raise UndefinedTagFault(arg.tag, instr.line)
    return image.tags[arg.tag]


# ──────────────────────────────────────────────
# Opcode handlers
# ──────────────────────────────────────────────

def _op_allocate(image, memory, instr):
    memory[str(_operand(instr, 0))] = UNSET


def _op_assign(image, memory, instr):
    name = _slot(memory, instr, 0)
    arg = _operand(instr, 1)
    if isinstance(arg, CountToken):
        value = Integer(len(image.tiles))
    elif isinstance(arg, IntegerLiteral):
        value = Integer(arg.value)
    elif len(arg.text) == 1:
        value = Letter(arg.text)
    else:
        raise TypeMismatchFault(
            f"Cannot assign {arg.text!r}: expected an integer, "
            f"a single letter or {COUNT_TOKEN}", instr.line)
    memory[name] = value


def _op_copy(image, memory, instr):
    src = _slot(memory, instr, 0)
    dst = _slot(memory, instr, 1)
    index = memory[src]
    if not isinstance(index, Integer):
        raise TypeMismatchFault(
            f"COPY index {src!r} holds {index}, not an integer", instr.line)
    if not 0 <= index.value < len(image.tiles):
        raise IndexOutOfRangeFault(index.value, len(image.tiles), instr.line)
    memory[dst] = Letter(image.tiles[index.value])


def _op_increment(image, memory, instr):
    name = _slot(memory, instr, 0)
    value = memory[name]
    if isinstance(value, Integer):
        memory[name] = Integer(value.value + 1)
    elif isinstance(value, Letter) and value.value == 'Z':
        memory[name] = Letter('A')
    elif isinstance(value, Letter) and 'A' <= value.value < 'Z':
        memory[name] = Letter(chr(ord(value.value) + 1))
    else:
        raise TypeMismatchFault(
            f"Cannot increment {name!r} holding {value}", instr.line)


def _op_jump(image, memory, instr):
    return _jump_target(image, instr, 0)


def _op_jump_if_equal(image, memory, instr):
    a = _slot(memory, instr, 0)
    b = _slot(memory, instr, 1)
    if memory[a] == memory[b]:
        return _jump_target(image, instr, 2)
    return None


def _op_stop(image, memory, instr):
    arg = instr.arg(0)
    word = str(arg).lower() if arg is not None else ""
    if word == "yes":
        return Result.SUCCESS
    if word == "no":
        return Result.FAILURE
    return Result.NO_RESULT


def _op_unknown(image, memory, instr):
    pass


_DISPATCH: Dict[Opcode, _Handler] = {
    Opcode.ALLOCATE:      _op_allocate,
    Opcode.ASSIGN:        _op_assign,
    Opcode.COPY:          _op_copy,
    Opcode.INCREMENT:     _op_increment,
    Opcode.JUMP:          _op_jump,
    Opcode.JUMP_IF_EQUAL: _op_jump_if_equal,
    Opcode.STOP:          _op_stop,
    Opcode.UNKNOWN:       _op_unknown,
}


# ──────────────────────────────────────────────
# Single step
# ──────────────────────────────────────────────

def run_step(image: ProgramImage, state: MachineState,
             max_steps: int = DEFAULT_MAX_STEPS
             ) -> Tuple[MachineState, Optional[Result]]:
    """Execute one instruction. Returns (next_state, Result or None).

    A cursor already past the end yields NO_RESULT without counting a step.
    Raises TilyFault subclasses; the input state is left untouched.
    """
    instructions = image.instructions
    if state.cursor >= len(instructions):
        return state, Result.NO_RESULT

    instr = instructions[state.cursor]
    executed = state.executed + 1
    if executed >= max_steps:
        raise RunawayExecutionFault(executed, instr.line)

    memory = dict(state.memory)
    effect = _DISPATCH[instr.opcode](image, memory, instr)
    frozen = MappingProxyType(memory)

    if isinstance(effect, Result):
        # STOP leaves the cursor on itself
        return replace(state, executed=executed, memory=frozen), effect

    cursor = effect if effect is not None else state.cursor + 1
    next_state = MachineState(cursor=cursor, executed=executed, memory=frozen)
    if cursor >= len(instructions):
        return next_state, Result.NO_RESULT
    return next_state, None


# ──────────────────────────────────────────────
# Program
# ──────────────────────────────────────────────

class Program:
    """A parsed Tily program plus its execution state.

    Usage:
        program = parse(source)
        result = program.execute()
        program.memory["count"]   # Integer(4)
    """

    def __init__(self, image: Optional[ProgramImage] = None,
                 max_steps: int = DEFAULT_MAX_STEPS):
        self.image = image if image is not None else ProgramImage()
        self.max_steps = max_steps
        self.state = MachineState()
        self._trace = False
        self._trace_output: List[str] = []

    # ── Inspection ──

    @property
    def tiles(self) -> List[str]:
        return list(self.image.tiles)

    @property
    def instructions(self) -> List[Instruction]:
        return list(self.image.instructions)

    @property
    def tags(self) -> Dict[str, int]:
        return dict(self.image.tags)

    @property
    def memory(self) -> Dict[str, Value]:
        return dict(self.state.memory)

    @property
    def cursor(self) -> int:
        return self.state.cursor

    @property
    def executed(self) -> int:
        return self.state.executed

    # ── Execution ──

    def step(self) -> Optional[Result]:
        """Execute one instruction. Returns a Result if the run ended, else None."""
        state = self.state
        try:
            self.state, outcome = run_step(self.image, state, self.max_steps)
        except TilyFault as e:
            logger.debug("Run aborted after %d instructions: %s",
                         state.executed, e)
            raise
        # Only instructions that actually ran are traced
        if self._trace and self.state.executed > state.executed:
            instr = self.image.instructions[state.cursor]
            self._trace_output.append(
                f"{state.cursor:04d}  L{instr.line:<4d} {instr}")
        if outcome is not None:
            logger.debug("Run finished: %s after %d instructions",
                         outcome.name, self.state.executed)
        return outcome

    def execute(self) -> Result:
        """Run until STOP, falling off the end, or a fault."""
        while True:
            outcome = self.step()
            if outcome is not None:
                return outcome

    def reset(self):
        """Discard memory, cursor and counter. Tiles and code are kept."""
        self.state = MachineState()
        self._trace_output.clear()

    # ── Trace ──

    def enable_trace(self, enable: bool = True):
        self._trace = enable

    def get_trace(self) -> str:
        return '\n'.join(self._trace_output)

    def clear_trace(self):
        self._trace_output.clear()

    def __repr__(self) -> str:
        return (f"Program(instructions={len(self.image.instructions)}, "
                f"tags={len(self.image.tags)}, tiles={len(self.image.tiles)}, "
                f"cursor={self.state.cursor})")
