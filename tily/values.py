"""
Memory values.

A memory slot holds exactly one of three shapes:

  Unset     freshly ALLOCATEd, never assigned
  Integer   non-negative counter / tile index
  Letter    a single character (tiles and letter literals)

Equality is by variant and payload, so Integer(4) != Letter('4').
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Unset:
    def __str__(self) -> str:
        return "<unset>"


@dataclass(frozen=True)
class Integer:
    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Letter:
    value: str

    def __post_init__(self):
        if len(self.value) != 1:
            raise ValueError(f"Letter must be a single character, got {self.value!r}")

    def __str__(self) -> str:
        return self.value


Value = Union[Unset, Integer, Letter]

UNSET = Unset()
