"""Detection and commenting-out of Forms-only runtime built-ins."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import List, Pattern, Tuple

from .models import CommentedBuiltin
from .rules import DEFAULT_CATALOG, BuiltinCatalog


@lru_cache(maxsize=None)
def _line_start_call(builtin: str) -> Pattern[str]:
    # Optional indentation, the name, then "(" or ";"
    return re.compile(rf"^(\s*){re.escape(builtin)}\s*[(;]", re.IGNORECASE)


@lru_cache(maxsize=None)
def _anywhere_call(builtin: str) -> Pattern[str]:
    return re.compile(rf"\b{re.escape(builtin)}\s*[(;]", re.IGNORECASE)


def _is_comment(line: str) -> bool:
    return line.strip().startswith("--")


def detect_forms_builtins(code: str, catalog: BuiltinCatalog = DEFAULT_CATALOG) -> List[str]:
    """Return the distinct built-ins called anywhere in *code*.

    Names are returned in catalog order so the result is stable.
    """
    found = set()
    for line in code.split("\n"):
        if _is_comment(line):
            continue
        for builtin in catalog.names:
            if builtin not in found and _anywhere_call(builtin).search(line):
                found.add(builtin)
    return [name for name in catalog.names if name in found]


def match_line_builtin(line: str, catalog: BuiltinCatalog = DEFAULT_CATALOG) -> str:
    """Return the built-in called at the start of *line*, or ``""``."""
    if _is_comment(line):
        return ""
    for builtin in catalog.names:
        if _line_start_call(builtin).match(line):
            return builtin
    return ""


def comment_out_builtins(
    code: str,
    first_line: int = 1,
    catalog: BuiltinCatalog = DEFAULT_CATALOG,
) -> Tuple[str, List[CommentedBuiltin]]:
    """Comment out statements that start with a Forms built-in call.

    Only the matching lines change; each becomes the original statement
    behind ``--`` followed by a second comment line carrying the reason,
    both at the original indentation. Logic is never altered.

    Args:
        code: Unit source text.
        first_line: File line number of the first line of *code*, so the
            recorded occurrences use file coordinates.
        catalog: Built-in vocabulary to match against.

    Returns:
        Tuple of (transformed code, recorded occurrences).
    """
    transformed: List[str] = []
    commented: List[CommentedBuiltin] = []

    for offset, line in enumerate(code.split("\n")):
        builtin = match_line_builtin(line, catalog)
        if not builtin:
            transformed.append(line)
            continue

        indent = line[: len(line) - len(line.lstrip())]
        reason = catalog.reason_for(builtin)
        transformed.append(f"{indent}-- {line.strip()}\n{indent}-- ({reason})")
        commented.append(CommentedBuiltin(
            builtin=builtin,
            line=first_line + offset,
            original_line=line.strip(),
            reason=reason,
        ))

    return "\n".join(transformed), commented
