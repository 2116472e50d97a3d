"""
Error hierarchy for the Tily interpreter.

Parse errors are only raised in strict mode; lenient parsing never fails.
Runtime faults abort the current run and propagate to the caller. None of
them are recovered or retried inside the engine.
"""

from __future__ import annotations
from typing import Optional

__all__ = [
    'TilyError', 'TilyParseError', 'UnknownOpcodeError',
    'TilyFault', 'RunawayExecutionFault', 'UndefinedTagFault',
    'UndefinedMemoryFault', 'TypeMismatchFault', 'IndexOutOfRangeFault',
    'MissingOperandFault',
]


class TilyError(Exception):
    """Base class for all interpreter errors."""
    def __init__(self, message: str, line: Optional[int] = None):
        self.line = line
        super().__init__(f"Line {line}: {message}" if line else message)


# ──────────────────────────────────────────────
# Parse-time
# ──────────────────────────────────────────────

class TilyParseError(TilyError):
    """Raised when source text cannot be turned into a program."""


class UnknownOpcodeError(TilyParseError):
    def __init__(self, name: str, line: Optional[int] = None):
        self.name = name
        shown = name if name else "<blank line>"
        super().__init__(f"Unknown opcode {shown!r}", line)


# ──────────────────────────────────────────────
# Runtime faults
# ──────────────────────────────────────────────

class TilyFault(TilyError):
    """Raised when a running program hits an unrecoverable condition."""


class RunawayExecutionFault(TilyFault):
    def __init__(self, executed: int, line: Optional[int] = None):
        self.executed = executed
        super().__init__(f"Runaway execution: {executed} instructions executed", line)


class UndefinedTagFault(TilyFault):
    def __init__(self, tag: str, line: Optional[int] = None):
        self.tag = tag
        super().__init__(f"Undefined tag: {tag!r}", line)


class UndefinedMemoryFault(TilyFault):
    def __init__(self, name: str, line: Optional[int] = None):
        self.name = name
        super().__init__(f"Memory slot {name!r} was never allocated", line)


class TypeMismatchFault(TilyFault):
    pass


class IndexOutOfRangeFault(TilyFault):
    def __init__(self, index: int, size: int, line: Optional[int] = None):
        self.index = index
        self.size = size
        super().__init__(f"Tile index {index} out of range (0..{size - 1})"
                         if size else f"Tile index {index} out of range (no tiles)", line)


class MissingOperandFault(TilyFault):
    pass
