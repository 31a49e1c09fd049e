"""Dependency extraction for extracted PL/SQL units.

Phase 1 (per unit, independent): page items, tables, cursors, and the
built-in flag. ``called_procedures`` stays empty.

Phase 2 (per file, after every unit is known): :func:`resolve_called_procedures`
fills ``called_procedures`` from the registry of unit names.
"""

from __future__ import annotations

import re
from dataclasses import replace
from typing import Iterable, List, Sequence

from .builtins import detect_forms_builtins
from .models import ChecklistItem, CursorInfo, ExtractedUnit, UnitComplexity, UnitDependencies
from .rules import DEFAULT_CATALOG, BuiltinCatalog

_PAGE_ITEM = r"P\d+_[A-Z0-9_]+"

PAGE_ITEM_PATTERNS = (
    re.compile(rf"APEX_UTIL\.GET_SESSION_STATE\s*\(\s*['\"]({_PAGE_ITEM})['\"]\s*\)", re.IGNORECASE),
    re.compile(rf"APEX_UTIL\.SET_SESSION_STATE\s*\(\s*['\"]({_PAGE_ITEM})['\"]", re.IGNORECASE),
    re.compile(rf"\bV\s*\(\s*['\"]({_PAGE_ITEM})['\"]\s*\)", re.IGNORECASE),
    re.compile(rf":({_PAGE_ITEM})", re.IGNORECASE),
    re.compile(rf"['\"]({_PAGE_ITEM})['\"]", re.IGNORECASE),
)

_IDENT = r"([A-Z][A-Z0-9_$#]*)"

TABLE_PATTERNS = (
    re.compile(rf"\bFROM\s+{_IDENT}"),
    re.compile(rf"\bINSERT\s+INTO\s+{_IDENT}"),
    re.compile(rf"\bUPDATE\s+{_IDENT}"),
    re.compile(rf"\bDELETE\s+FROM\s+{_IDENT}"),
    re.compile(rf"\bJOIN\s+{_IDENT}"),
    re.compile(rf"\bINTO\s+{_IDENT}"),
)

TABLE_STOPLIST = frozenset({"DUAL", "SELECT", "WHERE", "AND", "OR", "SET", "VALUES", "NULL"})

_LINE_COMMENT = re.compile(r"--.*$", re.MULTILINE)
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_STRING_LITERAL = re.compile(r"'[^']*'")
_CURSOR_DECL = re.compile(r"\bCURSOR\s+([A-Z][A-Z0-9_]*)\s+(?:IS\s+)?", re.IGNORECASE)

_LOOP_KEYWORDS = re.compile(r"\b(?:FOR|WHILE|LOOP)\b", re.IGNORECASE)
_CURSOR_COUNT = re.compile(r"\bCURSOR\s+[A-Z]", re.IGNORECASE)
_CONDITION_KEYWORDS = re.compile(r"\b(?:IF|ELSIF|WHEN)\b", re.IGNORECASE)


def strip_comments_and_strings(code: str) -> str:
    """Upper-cased *code* without comments or string literal contents."""
    without_block = _BLOCK_COMMENT.sub(" ", code)
    without_line = _LINE_COMMENT.sub("", without_block)
    return _STRING_LITERAL.sub("''", without_line).upper()


def extract_page_items(code: str) -> List[str]:
    """Return session-state item names referenced by *code*, sorted."""
    items = set()
    for pattern in PAGE_ITEM_PATTERNS:
        for match in pattern.finditer(code):
            items.add(match.group(1).upper())
    return sorted(items)


def extract_tables(code: str) -> List[str]:
    """Return table names read or written by *code*, sorted."""
    clean = strip_comments_and_strings(code)
    tables = set()
    for pattern in TABLE_PATTERNS:
        for match in pattern.finditer(clean):
            name = match.group(1)
            if name not in TABLE_STOPLIST:
                tables.add(name)
    return sorted(tables)


def extract_cursors(code: str) -> List[CursorInfo]:
    """Return cursor declarations with the items and tables of their query.

    A cursor's span runs from its ``CURSOR`` keyword to the next ``;``.
    """
    cursors: List[CursorInfo] = []
    for match in _CURSOR_DECL.finditer(code):
        end = code.find(";", match.start())
        if end == -1:
            end = len(code)
        body = code[match.start():end]
        cursors.append(CursorInfo(
            name=match.group(1).upper(),
            uses_page_items=bool(extract_page_items(body)),
            tables=extract_tables(body),
        ))
    return cursors


def calculate_unit_complexity(code: str) -> UnitComplexity:
    lines = [line for line in code.split("\n") if line.strip() and not line.strip().startswith("--")]
    return UnitComplexity(
        lines=len(lines),
        loops=len(_LOOP_KEYWORDS.findall(code)),
        cursors=len(_CURSOR_COUNT.findall(code)),
        conditions=len(_CONDITION_KEYWORDS.findall(code)),
    )


def extract_dependencies(code: str, catalog: BuiltinCatalog = DEFAULT_CATALOG) -> UnitDependencies:
    """Phase-1 dependencies of one unit; ``called_procedures`` is left empty."""
    return UnitDependencies(
        page_items=extract_page_items(code),
        tables=extract_tables(code),
        cursors=extract_cursors(code),
        called_procedures=[],
        has_forms_builtins=bool(detect_forms_builtins(code, catalog)),
    )


def detect_called_procedures(code: str, registry: Iterable[str], self_name: str) -> List[str]:
    """Return registry names that *code* calls as ``name(`` or ``name;``."""
    upper_code = code.upper()
    own = self_name.upper()
    called = set()
    for name in registry:
        upper_name = name.upper()
        if upper_name == own:
            continue
        if re.search(rf"\b{re.escape(upper_name)}\s*[(;]", upper_code):
            called.add(name)
    return sorted(called)


def resolve_called_procedures(units: Sequence[ExtractedUnit]) -> List[ExtractedUnit]:
    """Fill ``called_procedures`` for every unit of one file.

    Pure: returns new units and only touches that one field.
    """
    registry = [unit.name for unit in units]
    resolved: List[ExtractedUnit] = []
    for unit in units:
        called = detect_called_procedures(unit.original_code, registry, unit.name)
        dependencies = replace(unit.dependencies, called_procedures=called)
        resolved.append(replace(unit, dependencies=dependencies))
    return resolved


def generate_checklist(dependencies: UnitDependencies, has_commented_builtins: bool) -> List[ChecklistItem]:
    """Build the APEX verification checklist for one unit."""
    checklist = [
        ChecklistItem("page-item", item, "check", f"Page item {item} exists in APEX")
        for item in dependencies.page_items
    ]
    checklist.extend(
        ChecklistItem("table", table, "check", f"Table {table} is accessible")
        for table in dependencies.tables
    )
    if has_commented_builtins:
        checklist.append(ChecklistItem(
            "navigation", "Forms Built-ins", "warning",
            "Forms navigation logic has been commented out",
        ))
    if dependencies.has_forms_builtins:
        checklist.append(ChecklistItem(
            "commit", "Commit Handling", "warning",
            "Commit handling must be reviewed for APEX",
        ))
    return checklist
