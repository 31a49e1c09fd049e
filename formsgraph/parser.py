"""PL/SQL source parser: text in, extracted units out.

Two phases:

1. per unit (independent): boundaries, APEX-safe rendering, dependencies,
   checklist, raw complexity, semantic patterns
2. per file: called-procedure resolution against the registry of unit names
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set

from .boundary import extract_boundaries, normalize_newlines
from .builtins import comment_out_builtins
from .dependencies import (
    calculate_unit_complexity,
    extract_dependencies,
    generate_checklist,
    resolve_called_procedures,
)
from .models import ExtractedUnit, UnitBoundary
from .patterns import MAX_EXCERPTS, detect_semantic_patterns
from .rules import DEFAULT_CATALOG, BuiltinCatalog

logger = logging.getLogger(__name__)

SKIP_DIRS: Set[str] = {
    ".venv", "venv", "__pycache__", "node_modules", ".git",
    "build", "dist", ".formsgraph",
}


class PLSQLParser:
    """Line-oriented, error-tolerant extractor of PL/SQL program units."""

    def __init__(
        self,
        catalog: BuiltinCatalog = DEFAULT_CATALOG,
        excerpt_limit: int = MAX_EXCERPTS,
    ) -> None:
        self.catalog = catalog
        self.excerpt_limit = excerpt_limit

    # ------------------------------------------------------------------
    # Phase 1
    # ------------------------------------------------------------------

    def create_unit(self, boundary: UnitBoundary, lines: List[str]) -> ExtractedUnit:
        """Extract everything that only depends on the unit's own text."""
        code = "\n".join(lines[boundary.start_line - 1: boundary.end_line])

        apex_safe_code, commented = comment_out_builtins(code, boundary.start_line, self.catalog)
        dependencies = extract_dependencies(code, self.catalog)

        return ExtractedUnit(
            name=boundary.name,
            type=boundary.type,
            start_line=boundary.start_line,
            end_line=boundary.end_line,
            original_code=code,
            apex_safe_code=apex_safe_code,
            commented_builtins=commented,
            dependencies=dependencies,
            checklist=generate_checklist(dependencies, bool(commented)),
            complexity=calculate_unit_complexity(code),
            semantic_patterns=detect_semantic_patterns(
                code, boundary.start_line, self.excerpt_limit,
            ),
        )

    # ------------------------------------------------------------------
    # Full parse
    # ------------------------------------------------------------------

    def parse(self, content: str, file_name: str = "<source>") -> List[ExtractedUnit]:
        """Parse *content* into units, in file order.

        Returns an empty list when no procedure or function is declared.
        """
        normalized = normalize_newlines(content)
        lines = normalized.split("\n")
        boundaries = extract_boundaries(normalized)
        logger.debug("%s: %d unit(s) found", file_name, len(boundaries))

        units = [self.create_unit(boundary, lines) for boundary in boundaries]
        return resolve_called_procedures(units)

    def parse_file(self, file_path: Path, source: Optional[str] = None) -> List[ExtractedUnit]:
        if source is None:
            source = file_path.read_text(encoding="utf-8", errors="ignore")
        return self.parse(source, file_path.name)


def iter_source_files(root: Path, extensions: Set[str]) -> Iterator[Path]:
    """Yield PL/SQL files under *root* in sorted order, skipping tool dirs."""
    for path in sorted(root.rglob("*")):
        if not path.is_file() or path.suffix.lower() not in extensions:
            continue
        if any(part in SKIP_DIRS for part in path.parts):
            continue
        yield path


def units_by_name(units: List[ExtractedUnit]) -> Dict[str, ExtractedUnit]:
    """Map unit name to unit; overloads keep the first declaration."""
    mapping: Dict[str, ExtractedUnit] = {}
    for unit in units:
        mapping.setdefault(unit.name, unit)
    return mapping
