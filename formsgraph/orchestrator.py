"""Pipeline orchestrator: source text or Forms XML in, analysis results out."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Sequence, Union

from .forms_xml import load_form_module
from .hierarchy import DEFAULT_MAX_DEPTH, build_form_logic_hierarchy
from .models import ExtractedUnit, FileAnalysis, FormAnalysis, ProgramUnit, Trigger
from .parser import PLSQLParser
from .patterns import MAX_EXCERPTS
from .program_units import analyze_program_unit, identify_main_functions
from .readiness import DEFAULT_EFFORT_OVERHEAD, DEFAULT_PRIORITY_LIMIT, analyze_migration_readiness
from .rules import DEFAULT_CATALOG, BuiltinCatalog
from .triggers import analyze_trigger

logger = logging.getLogger(__name__)


class AnalysisOrchestrator:
    """Coordinates extraction, enrichment, hierarchy, and readiness."""

    def __init__(
        self,
        catalog: BuiltinCatalog = DEFAULT_CATALOG,
        max_depth: int = DEFAULT_MAX_DEPTH,
        priority_limit: int = DEFAULT_PRIORITY_LIMIT,
        effort_overhead: float = DEFAULT_EFFORT_OVERHEAD,
        excerpt_limit: int = MAX_EXCERPTS,
    ):
        self.catalog = catalog
        self.max_depth = max_depth
        self.priority_limit = priority_limit
        self.effort_overhead = effort_overhead
        self.parser = PLSQLParser(catalog=catalog, excerpt_limit=excerpt_limit)

    @classmethod
    def from_config(cls) -> "AnalysisOrchestrator":
        from . import config

        return cls(
            max_depth=config.MAX_HIERARCHY_DEPTH,
            priority_limit=config.PRIORITY_LIMIT,
            effort_overhead=config.EFFORT_OVERHEAD,
            excerpt_limit=config.EXCERPT_LIMIT,
        )

    # ------------------------------------------------------------------
    # Source files
    # ------------------------------------------------------------------

    def parse_source(self, content: str, file_name: str = "<source>") -> List[ExtractedUnit]:
        return self.parser.parse(content, file_name)

    def process_file(self, source: Union[Path, str], file_name: str = "") -> FileAnalysis:
        """Analyze one file, never raising.

        *source* is a path, or the file content itself when *file_name* is
        given. Failures come back in ``FileAnalysis.error`` with no units.
        """
        if isinstance(source, Path):
            file_name = file_name or source.name
        name = file_name or "<source>"
        try:
            if isinstance(source, Path):
                content = source.read_text(encoding="utf-8", errors="ignore")
            else:
                content = source
            units = self.parse_source(content, name)
        except Exception as exc:
            logger.warning("Failed to process %s: %s", name, exc)
            return FileAnalysis(file_name=name, error=f"Failed to process {name}: {exc}")

        if not units:
            return FileAnalysis(file_name=name, message=f"No procedures or functions found in {name}")
        return FileAnalysis(file_name=name, units=units)

    # ------------------------------------------------------------------
    # Forms
    # ------------------------------------------------------------------

    def analyze_form(
        self,
        program_units: Sequence[ProgramUnit],
        triggers: Sequence[Trigger],
        form_name: str = "",
    ) -> FormAnalysis:
        enriched = [
            analyze_program_unit(unit, program_units, triggers, self.catalog)
            for unit in program_units
        ]
        enriched = identify_main_functions(enriched)
        analyzed = [analyze_trigger(trigger, enriched) for trigger in triggers]
        return FormAnalysis(
            form_name=form_name,
            program_units=enriched,
            triggers=analyzed,
            hierarchy=build_form_logic_hierarchy(analyzed, enriched, self.max_depth),
            readiness=analyze_migration_readiness(enriched, self.priority_limit, self.effort_overhead),
        )

    def analyze_form_xml(self, source: Union[Path, str]) -> FormAnalysis:
        """Analyze a Forms XML export; raises ``FormsXmlError`` when unreadable."""
        module = load_form_module(source)
        return self.analyze_form(module.program_units, module.triggers, module.name)

    def analyze_units_as_form(self, units: Sequence[ExtractedUnit], form_name: str = "<source>") -> FormAnalysis:
        """Analyze already extracted units as a form with no triggers."""
        program_units = [
            ProgramUnit(name=unit.name, program_unit_type=unit.type, text=unit.original_code)
            for unit in units
        ]
        return self.analyze_form(program_units, [], form_name)

    def analyze_plb_as_form(self, content: str, form_name: str = "<source>") -> FormAnalysis:
        """Analyze a PL/SQL library as a form with no triggers."""
        return self.analyze_units_as_form(self.parse_source(content, form_name), form_name)
