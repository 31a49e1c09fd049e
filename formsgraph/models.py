"""Core data models produced by extraction, classification, and aggregation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


# ---------------------------------------------------------------------------
# Per-unit extraction (PL/SQL source files)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CommentedBuiltin:
    builtin: str
    line: int
    original_line: str
    reason: str


@dataclass(frozen=True)
class CursorInfo:
    name: str
    uses_page_items: bool
    tables: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class UnitDependencies:
    page_items: List[str] = field(default_factory=list)
    tables: List[str] = field(default_factory=list)
    cursors: List[CursorInfo] = field(default_factory=list)
    called_procedures: List[str] = field(default_factory=list)
    has_forms_builtins: bool = False


@dataclass(frozen=True)
class ChecklistItem:
    type: str
    item: str
    status: str
    message: str


@dataclass(frozen=True)
class UnitComplexity:
    lines: int
    loops: int
    cursors: int
    conditions: int


@dataclass(frozen=True)
class SemanticPattern:
    id: str
    label: str
    severity: str
    description: str
    line_numbers: List[int]
    matched_code: List[str]
    apex_consideration: str


@dataclass(frozen=True)
class PatternDetectionResult:
    patterns: List[SemanticPattern] = field(default_factory=list)
    summary: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class UnitBoundary:
    name: str
    type: str
    start_line: int
    end_line: int


@dataclass(frozen=True)
class ExtractedUnit:
    """A procedure or function cut out of a source file.

    Created once per parse and never patched; the call-resolution pass
    returns new instances.
    """

    name: str
    type: str
    start_line: int
    end_line: int
    original_code: str
    apex_safe_code: str
    commented_builtins: List[CommentedBuiltin]
    dependencies: UnitDependencies
    checklist: List[ChecklistItem]
    complexity: UnitComplexity
    semantic_patterns: Optional[PatternDetectionResult] = None


@dataclass
class FileAnalysis:
    """Outcome of processing one source file.

    Exactly one of ``units``, ``message`` (nothing found), or ``error``
    (processing failed) carries the result.
    """

    file_name: str
    units: List[ExtractedUnit] = field(default_factory=list)
    message: str = ""
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error


# ---------------------------------------------------------------------------
# Form-level intelligence (program units + triggers)
# ---------------------------------------------------------------------------

@dataclass
class Parameter:
    name: str
    mode: str
    data_type: str
    default_value: Optional[str] = None


@dataclass
class ProgramUnit:
    name: str
    program_unit_type: str
    text: str


@dataclass
class Trigger:
    name: str
    text: str
    block_name: str = ""
    item_name: str = ""
    fire_in_query: bool = False


@dataclass
class ApexTarget:
    type: str
    point: str
    code: str
    instructions: List[str]
    support_level: str


@dataclass
class ProgramUnitEnriched:
    name: str
    program_unit_type: str
    text: str
    parameters: List[Parameter]
    return_type: Optional[str]
    line_count: int
    dependencies: List[str]
    called_by: List[str]
    classification: str
    impact_score: str
    complexity: int
    risk_flags: List[str]
    is_main_function: bool = False
    main_function_reason: Optional[str] = None
    business_responsibility: Optional[str] = None


@dataclass
class TriggerAnalysis:
    name: str
    text: str
    block_name: str
    item_name: str
    fire_in_query: bool
    classification: str
    apex_target: ApexTarget
    called_program_units: List[str]
    direct_dml: bool
    logic_depth: str
    responsibility: str
    impact_score: str


@dataclass
class HierarchyNode:
    type: str
    name: str
    description: str
    classification: str
    impact_score: str
    call_depth: int
    children: List["HierarchyNode"] = field(default_factory=list)


@dataclass
class FormLogicHierarchy:
    entry_points: List[HierarchyNode] = field(default_factory=list)
    core_business_controllers: List[HierarchyNode] = field(default_factory=list)
    supporting_utilities: List[HierarchyNode] = field(default_factory=list)
    ui_glue_logic: List[HierarchyNode] = field(default_factory=list)


@dataclass
class RiskItem:
    unit_name: str
    risk_type: str
    description: str
    severity: str


@dataclass
class PriorityItem:
    unit_name: str
    priority: int
    reason: str
    estimated_hours: int


@dataclass
class MigrationReadiness:
    overall_complexity: int
    total_program_units: int
    high_complexity_units: int
    medium_complexity_units: int
    low_complexity_units: int
    critical_risks: List[RiskItem]
    priority_list: List[PriorityItem]
    estimated_effort: str


@dataclass
class FormAnalysis:
    form_name: str
    program_units: List[ProgramUnitEnriched]
    triggers: List[TriggerAnalysis]
    hierarchy: FormLogicHierarchy
    readiness: MigrationReadiness
