"""
goal: positional character diff between a reference address (the one you meant to copy) and a
candidate (what actually landed in the clipboard). strictly index-by-index, no alignment or
SequenceMatcher: a poisoned address has the same length with a few swapped characters, and every
swapped position has to come back as its own mismatch.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

from dataclasses import dataclass  # per-position verdicts
from typing import Any  # type hint for flexible dictionary values


@dataclass(frozen=True)
class DiffCell:
    index: int
    char: str  # candidate's character in its original case, "" past the end of the candidate
    is_match: bool

    def to_dict(self) -> dict[str, Any]:
        return {"index": self.index, "char": self.char, "isMatch": self.is_match}


def diff(reference: str, candidate: str, ignore_case: bool = False) -> list[DiffCell]:
    """Compare reference and candidate position by position, max(len) cells long."""
    length = max(len(reference), len(candidate))
    cells: list[DiffCell] = []
    for i in range(length):
        in_ref = i < len(reference)
        in_cand = i < len(candidate)
        char = candidate[i] if in_cand else ""
        if not (in_ref and in_cand):
            # one string ran out, never a match
            cells.append(DiffCell(i, char, False))
            continue
        a, b = reference[i], candidate[i]
        if ignore_case:
            a, b = a.lower(), b.lower()
        cells.append(DiffCell(i, char, a == b))
    return cells


def mismatch_positions(cells: list[DiffCell]) -> list[int]:
    return [c.index for c in cells if not c.is_match]


def identical(reference: str, candidate: str) -> bool:
    # exact compare verdict shown above the per-character view
    return reference == candidate
