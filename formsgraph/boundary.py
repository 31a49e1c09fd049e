"""Unit boundary extraction for PL/SQL source text.

Locates ``PROCEDURE`` / ``FUNCTION`` declarations line by line and finds
where each unit ends by tracking ``BEGIN`` / ``END`` nesting:

- every standalone ``BEGIN`` opens a level
- every ``END`` that is not ``END IF`` / ``END LOOP`` / ``END CASE`` closes one
- ``END <unit_name>;`` always closes the unit

The scan for one unit never runs into the next declaration. Source that
never closes its unit is cut just before the next declaration (or at EOF).
This is a best-effort approximation, not a PL/SQL grammar.
"""

from __future__ import annotations

import logging
import re
from typing import List, NamedTuple

from .models import UnitBoundary

logger = logging.getLogger(__name__)

_INLINE_COMMENT = re.compile(r"--.*$")
_STRING_LITERAL = re.compile(r"'[^']*'")

_PROCEDURE_DECL = re.compile(
    r"^(?:CREATE\s+(?:OR\s+REPLACE\s+)?)?PROCEDURE\s+([A-Z_][A-Z0-9_$#]*)",
    re.IGNORECASE,
)
_FUNCTION_DECL = re.compile(
    r"^(?:CREATE\s+(?:OR\s+REPLACE\s+)?)?FUNCTION\s+([A-Z_][A-Z0-9_$#]*)",
    re.IGNORECASE,
)

_BEGIN = re.compile(r"\bBEGIN\b")
# END, an optional label, then ";"; the label is inspected to skip block closers
_END_STATEMENT = re.compile(r"\bEND\b\s*([A-Z_][A-Z0-9_$#]*)?\s*;")
_BLOCK_CLOSERS = {"IF", "LOOP", "CASE"}


class UnitStart(NamedTuple):
    name: str
    type: str
    index: int


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def strip_line(line: str) -> str:
    """Drop the trailing ``--`` comment and blank out string literals."""
    without_comment = _INLINE_COMMENT.sub("", line)
    return _STRING_LITERAL.sub("''", without_comment)


def find_unit_starts(lines: List[str]) -> List[UnitStart]:
    """Return every procedure/function declaration in file order."""
    starts: List[UnitStart] = []
    for index, line in enumerate(lines):
        if line.strip().startswith("--"):
            continue
        clean = _INLINE_COMMENT.sub("", line).strip().upper()
        if not clean:
            continue

        match = _PROCEDURE_DECL.match(clean)
        if match:
            starts.append(UnitStart(match.group(1), "Procedure", index))
            continue
        match = _FUNCTION_DECL.match(clean)
        if match:
            starts.append(UnitStart(match.group(1), "Function", index))
    return starts


def _count_simple_ends(clean: str) -> int:
    count = 0
    for match in _END_STATEMENT.finditer(clean):
        label = match.group(1)
        if label is None or label not in _BLOCK_CLOSERS:
            count += 1
    return count


def find_unit_end(lines: List[str], start: int, limit: int, unit_name: str) -> int:
    """Find the 0-based index of the line closing the unit at *start*.

    Args:
        lines: All source lines.
        start: Index of the declaration line.
        limit: Index of the next declaration (or ``len(lines)``); never scanned.
        unit_name: Upper-cased unit name, used for ``END <name>;``.
    """
    named_end = re.compile(rf"\bEND\s+{re.escape(unit_name)}\s*;")
    depth = 0
    found_begin = False
    last_scanned = start

    for index in range(start, limit):
        line = lines[index]
        last_scanned = index
        if line.strip().startswith("--"):
            continue

        clean = strip_line(line).upper()
        if named_end.search(clean):
            return index

        begins = len(_BEGIN.findall(clean))
        if begins:
            found_begin = True
            depth += begins

        ends = _count_simple_ends(clean)
        if ends and found_begin:
            depth -= ends
            if depth <= 0:
                return index

    logger.debug(
        "No terminating END found for %s (line %d); closing at line %d",
        unit_name, start + 1, last_scanned + 1,
    )
    return min(last_scanned, limit - 1)


def extract_boundaries(source: str) -> List[UnitBoundary]:
    """Locate every procedure and function in *source*.

    Returns:
        Boundaries in file order with 1-based inclusive line numbers.
    """
    lines = normalize_newlines(source).split("\n")
    starts = find_unit_starts(lines)
    boundaries: List[UnitBoundary] = []

    for position, unit_start in enumerate(starts):
        limit = starts[position + 1].index if position + 1 < len(starts) else len(lines)
        end = find_unit_end(lines, unit_start.index, limit, unit_start.name)
        boundaries.append(UnitBoundary(
            name=unit_start.name,
            type=unit_start.type,
            start_line=unit_start.index + 1,
            end_line=end + 1,
        ))

    return boundaries
