"""Behavior-aware semantic pattern detection.

Ten independent heuristics scan a unit's lines for control and data
patterns that change meaning when moved off the Forms runtime. Each one
yields at most one :class:`SemanticPattern` per unit (an aggregate signal,
not one finding per occurrence) or ``None`` when its threshold is unmet.
Severity and APEX guidance are fixed per pattern id.

Detection only: nothing here rewrites code.
"""

from __future__ import annotations

import math
import re
from typing import Callable, Dict, List, NamedTuple, Optional, Pattern, Sequence, Tuple

from .boundary import strip_line
from .models import PatternDetectionResult, SemanticPattern

NumberedLine = Tuple[int, str]
Detector = Callable[[Sequence[NumberedLine], int], Optional[SemanticPattern]]

MAX_EXCERPTS = 5

SEVERITIES = ("CRITICAL", "IMPORTANT", "INFO")


class PatternInfo(NamedTuple):
    label: str
    severity: str
    description: str
    apex_consideration: str


PATTERN_INFO: Dict[str, PatternInfo] = {
    "multi-record-processing": PatternInfo(
        "Multi-Record Processing",
        "CRITICAL",
        "Procedure processes multiple records in a single invocation. Logic runs per record, not once.",
        "In APEX, use FOR loops with cursors, or APEX_COLLECTION for multi-record operations.",
    ),
    "selection-driven-execution": PatternInfo(
        "Selection-Driven Execution",
        "CRITICAL",
        "Execution depends on user selection of records. "
        "Processing is gated by a record-level selection indicator.",
        "Use Interactive Grid row selection or APEX_COLLECTION to track selected records.",
    ),
    "multiple-execution-modes": PatternInfo(
        "Multiple Execution Modes",
        "IMPORTANT",
        "Procedure contains multiple execution modes with different effects. "
        "Same procedure supports different behaviors based on runtime state.",
        "Consider splitting into separate processes or use Dynamic Actions with conditional logic.",
    ),
    "user-decision-gated-logic": PatternInfo(
        "User-Decision-Gated Business Logic",
        "IMPORTANT",
        "User confirmation directly controls business logic flow. "
        "User input decides whether logic continues or aborts.",
        "Use apex.confirm() or apex.message.confirm() in Dynamic Actions before processing.",
    ),
    "implicit-abort-flow": PatternInfo(
        "Implicit Abort / Early-Exit Flow",
        "IMPORTANT",
        "Procedure uses early-exit or abort control flow. "
        "Non-linear control flow is used to stop execution.",
        "Replace GOTO with proper exception handling. Use APEX error handling for user feedback.",
    ),
    "cross-entity-side-effects": PatternInfo(
        "Cross-Entity Side Effects",
        "CRITICAL",
        "Procedure performs coordinated updates across {count} entities: {tables}",
        "Review transaction boundaries. Consider using a single API package for coordinated DML.",
    ),
    "state-accumulation": PatternInfo(
        "State Accumulation for Deferred Processing",
        "CRITICAL",
        "Procedure accumulates state for deferred processing. "
        "Data is collected for later use instead of immediately committed.",
        "Use APEX_COLLECTION or application state items for accumulating data across requests.",
    ),
    "outcome-dependent-chaining": PatternInfo(
        "Outcome-Dependent Chaining",
        "IMPORTANT",
        "Subsequent logic depends on prior DML outcome. "
        "Later processing is conditional on whether earlier operations succeeded.",
        "Use APEX error handling and page item state to track operation outcomes.",
    ),
    "mixed-responsibilities": PatternInfo(
        "Mixed Responsibilities",
        "INFO",
        "Procedure combines validation, processing, and feedback responsibilities. "
        "Single unit handles multiple concerns.",
        "Consider separating into validation process, DML process, and feedback Dynamic Actions.",
    ),
    "business-outcome-ui-feedback": PatternInfo(
        "Business-Outcome-Driven UI Feedback",
        "INFO",
        "User feedback is driven by processing outcome. "
        "UI messages reflect the result of business logic processing.",
        "Use APEX_APPLICATION.ADD_MESSAGE or apex.message API for success/error feedback.",
    ),
}


class _Matches:
    """Ordered, de-duplicated line matches for one detector."""

    def __init__(self) -> None:
        self.line_numbers: List[int] = []
        self.code: List[str] = []

    def add(self, number: int, text: str) -> None:
        if number not in self.line_numbers:
            self.line_numbers.append(number)
            self.code.append(text.strip())

    def __len__(self) -> int:
        return len(self.line_numbers)


def _build(
    pattern_id: str,
    line_numbers: List[int],
    matched_code: List[str],
    description: Optional[str] = None,
) -> SemanticPattern:
    info = PATTERN_INFO[pattern_id]
    return SemanticPattern(
        id=pattern_id,
        label=info.label,
        severity=info.severity,
        description=description or info.description,
        line_numbers=line_numbers,
        matched_code=matched_code,
        apex_consideration=info.apex_consideration,
    )


# ---------------------------------------------------------------------------
# 1. Multi-record processing: LOOP + exit condition or record navigation
# ---------------------------------------------------------------------------

_LOOP_OPEN = re.compile(r"\bLOOP\b")
_END_LOOP = re.compile(r"\bEND\s+LOOP\b")
_LOOP_EXIT = re.compile(r"\bEXIT\b|\bLAST_RECORD\b|\bNO_DATA_FOUND\b|%NOTFOUND")
_RECORD_NAVIGATION = re.compile(r"\bFIRST_RECORD\b|\bNEXT_RECORD\b|\bFETCH\b")


def detect_multi_record_processing(lines: Sequence[NumberedLine], limit: int) -> Optional[SemanticPattern]:
    matches = _Matches()
    has_loop = has_exit = has_navigation = False

    for number, line in lines:
        upper = line.upper()
        if _LOOP_OPEN.search(upper) and not _END_LOOP.search(upper):
            has_loop = True
            matches.add(number, line)
        if _LOOP_EXIT.search(upper):
            has_exit = True
            matches.add(number, line)
        if _RECORD_NAVIGATION.search(upper):
            has_navigation = True
            matches.add(number, line)

    if has_loop and (has_exit or has_navigation):
        return _build("multi-record-processing", matches.line_numbers[:limit], matches.code[:limit])
    return None


# ---------------------------------------------------------------------------
# 2. Selection-driven execution: IF sel_flag = 'Y'
# ---------------------------------------------------------------------------

_SELECTION_CHECKS = (
    re.compile(r"\bIF\b.*\b(?:SEL|SELECT|SELECTED|CHK|CHECK|FLAG)\b.*=.*['\"](?:Y|1|TRUE)['\"]"),
    re.compile(r"NVL\s*\(.*\b(?:SEL|SELECT|CHK|FLAG)\b.*['\"](?:Y|1)['\"]"),
    re.compile(r"\b(?:SEL|SELECT|SELECTED)\b\s*=\s*['\"](?:Y|1)['\"]"),
)


def detect_selection_driven_execution(lines: Sequence[NumberedLine], limit: int) -> Optional[SemanticPattern]:
    matches = _Matches()
    for number, line in lines:
        upper = line.upper()
        if any(check.search(upper) for check in _SELECTION_CHECKS):
            matches.add(number, line)

    if matches:
        return _build("selection-driven-execution", matches.line_numbers[:limit], matches.code[:limit])
    return None


# ---------------------------------------------------------------------------
# 3. Multiple execution modes: mode/type condition + ELSIF/ELSE branches
# ---------------------------------------------------------------------------

_MODE_CONDITIONS = (
    re.compile(r"\bIF\b.*\b(?:MODE|ACCESS|TYPE|OPERATION|RIGHT|PERMISSION|LEVEL)\b.*[=<>]"),
    re.compile(r"\bIF\b.*=\s*['\"]\d+['\"]"),
    re.compile(r"\bCASE\b.*\b(?:MODE|TYPE|OPERATION)\b"),
)
_BRANCH = re.compile(r"^\s*(?:ELSIF|ELSE)\b", re.IGNORECASE)


def detect_multiple_execution_modes(lines: Sequence[NumberedLine], limit: int) -> Optional[SemanticPattern]:
    matches = _Matches()
    has_mode = has_branches = False

    for number, line in lines:
        upper = line.upper()
        if any(check.search(upper) for check in _MODE_CONDITIONS):
            has_mode = True
            matches.add(number, line)
        if _BRANCH.search(line):
            has_branches = True
            matches.add(number, line)

    if has_mode and has_branches:
        return _build("multiple-execution-modes", matches.line_numbers[:limit], matches.code[:limit])
    return None


# ---------------------------------------------------------------------------
# 4. User-decision-gated logic: alert/confirm + branching on the answer
# ---------------------------------------------------------------------------

_DIALOG_CALLS = (
    re.compile(r"\bSHOW_ALERT\b|\bALERT\b|\bCONFIRM\b|\bDIALOG\b|\bASK\b|\bMESSAGE\b.*\bQUESTION\b"),
    re.compile(r"\bGET_ALERT_PROPERTY\b|\bALERT_BUTTON\b"),
    re.compile(r"\bFDMSG\b|\bFD_DIALOG\b|\bFD_CONFIRM\b"),
)
_RESPONSE_BRANCH = (
    re.compile(r"\bIF\b.*\b(?:BUTTON|ANSWER|RESPONSE|RESULT)\b.*="),
    re.compile(r"\bIF\b.*\bALERT\b"),
    re.compile(r"\bIF\b.*\bALERT_BUTTON\d\b"),
)


def detect_user_decision_gated_logic(lines: Sequence[NumberedLine], limit: int) -> Optional[SemanticPattern]:
    matches = _Matches()
    has_dialog = has_branch = False
    for number, line in lines:
        upper = line.upper()
        if any(check.search(upper) for check in _DIALOG_CALLS):
            has_dialog = True
            matches.add(number, line)
        if any(check.search(upper) for check in _RESPONSE_BRANCH):
            has_branch = True
            matches.add(number, line)

    if has_dialog and has_branch:
        return _build("user-decision-gated-logic", matches.line_numbers[:limit], matches.code[:limit])
    return None


# ---------------------------------------------------------------------------
# 5. Implicit abort / early exit: GOTO, RAISE, bare RETURN, labels
# ---------------------------------------------------------------------------

_GOTO = re.compile(r"\bGOTO\b")
_RAISE = re.compile(r"\bRAISE\b|\bRAISE_APPLICATION_ERROR\b|\bFORM_TRIGGER_FAILURE\b")
_LABEL = re.compile(r"<<\s*\w+\s*>>")
_BARE_RETURN = re.compile(r"^\s*RETURN\s*;", re.IGNORECASE)


def detect_implicit_abort_flow(lines: Sequence[NumberedLine], limit: int) -> Optional[SemanticPattern]:
    matches = _Matches()
    has_exit = has_label = False

    for number, line in lines:
        upper = strip_line(line).upper()
        if _GOTO.search(upper) or _RAISE.search(upper) or _BARE_RETURN.search(upper):
            has_exit = True
            matches.add(number, line)
        if _LABEL.search(line):
            has_label = True
            matches.add(number, line)

    # A label on its own is structure; it only counts next to another signal
    if has_exit or (has_label and len(matches) > 1):
        return _build("implicit-abort-flow", matches.line_numbers[:limit], matches.code[:limit])
    return None


# ---------------------------------------------------------------------------
# 6. Cross-entity side effects: DML against more than one table
# ---------------------------------------------------------------------------

_DML_TARGET = re.compile(
    r"\bUPDATE\s+([A-Z_][A-Z0-9_$#]*)"
    r"|\bINSERT\s+INTO\s+([A-Z_][A-Z0-9_$#]*)"
    r"|\bDELETE\s+FROM\s+([A-Z_][A-Z0-9_$#]*)"
)


def detect_cross_entity_side_effects(lines: Sequence[NumberedLine], limit: int) -> Optional[SemanticPattern]:
    tables: Dict[str, List[int]] = {}

    for number, line in lines:
        upper = strip_line(line).upper()
        for match in _DML_TARGET.finditer(upper):
            table = next(group for group in match.groups() if group)
            if table == "DUAL":
                continue
            numbers = tables.setdefault(table, [])
            if number not in numbers:
                numbers.append(number)

    if len(tables) > 1:
        names = list(tables)
        line_numbers = sorted({n for numbers in tables.values() for n in numbers})
        description = PATTERN_INFO["cross-entity-side-effects"].description.format(
            count=len(names), tables=", ".join(names),
        )
        return _build("cross-entity-side-effects", line_numbers[:limit], names, description)
    return None


# ---------------------------------------------------------------------------
# 7. State accumulation: globals, collections, index increments
# ---------------------------------------------------------------------------

_STATE_SIGNALS = (
    re.compile(r"\bGLOBAL\.\w+"),
    re.compile(r"\.(?:DELETE|EXTEND|FIRST|LAST|COUNT|EXISTS)\b"),
    re.compile(r"\(\s*V_INDEX\s*\)|\(\s*I\s*\)|\(\s*J\s*\)"),
    re.compile(r"V_INDEX\s*:=\s*V_INDEX\s*\+\s*1|:=\s*\w+\s*\+\s*1"),
    re.compile(r"\bTABLE\s+OF\b|\bVARRAY\b|\bARRAY\b"),
)


def detect_state_accumulation(lines: Sequence[NumberedLine], limit: int) -> Optional[SemanticPattern]:
    matches = _Matches()
    for number, line in lines:
        upper = line.upper()
        if any(signal.search(upper) for signal in _STATE_SIGNALS):
            matches.add(number, line)

    if matches:
        return _build("state-accumulation", matches.line_numbers[:limit], matches.code[:limit])
    return None


# ---------------------------------------------------------------------------
# 8. Outcome-dependent chaining: needs at least two signals
# ---------------------------------------------------------------------------

_OUTCOME_SIGNALS = (
    re.compile(r"SQL%ROWCOUNT|SQL%FOUND|SQL%NOTFOUND"),
    re.compile(r"V_\w*(?:FLG|FLAG|UPD|SUCCESS|DONE|FOUND)\w*\s*:="),
    re.compile(r"\bIF\b.*V_\w*(?:FLG|FLAG|UPD|SUCCESS)\b"),
    re.compile(r"V_CRETOUR|C_RETOUR|CRETOUR|RETURN_CODE"),
)


def detect_outcome_dependent_chaining(lines: Sequence[NumberedLine], limit: int) -> Optional[SemanticPattern]:
    matches = _Matches()
    for number, line in lines:
        upper = line.upper()
        if any(signal.search(upper) for signal in _OUTCOME_SIGNALS):
            matches.add(number, line)

    if len(matches) >= 2:
        return _build("outcome-dependent-chaining", matches.line_numbers[:limit], matches.code[:limit])
    return None


# ---------------------------------------------------------------------------
# 9. Mixed responsibilities: three of validation / DML / messaging / workflow
# ---------------------------------------------------------------------------

class _Responsibility(NamedTuple):
    marker: str
    checks: Tuple[Pattern[str], ...]
    skip_commented: bool = False


_RESPONSIBILITIES = (
    _Responsibility("Validation logic", (
        re.compile(r"\bIF\b.*\bIS\s+NULL\b|\bIF\b.*\bNOT\s+NULL\b|\bIF\b.*[<>=].*\bTHEN\b"),
        re.compile(r"\bVALIDATE\b|\bCHECK\b.*\bVALID\b"),
    )),
    _Responsibility("DML operations", (re.compile(r"\b(?:INSERT|UPDATE|DELETE)\b"),), skip_commented=True),
    _Responsibility("User messaging", (
        re.compile(r"\bMESSAGE\b|\bALERT\b|\bAFF_MSG\b|\bSET.*MESSAGE\b|\bAPEX_DEBUG\b"),
    )),
    _Responsibility("Workflow/procedure calls", (
        re.compile(r"\bXCALL\b|\bCALL\b.*\bPROC\b|\bPKG_\w+\.\w+"),
    )),
)


def detect_mixed_responsibilities(lines: Sequence[NumberedLine], limit: int) -> Optional[SemanticPattern]:
    first_seen: Dict[str, int] = {}

    for number, line in lines:
        upper = line.upper()
        for responsibility in _RESPONSIBILITIES:
            if responsibility.marker in first_seen:
                continue
            if responsibility.skip_commented and "--" in line:
                continue
            if any(check.search(upper) for check in responsibility.checks):
                first_seen[responsibility.marker] = number

    if len(first_seen) >= 3:
        ordered = sorted(first_seen.items(), key=lambda item: item[1])
        return _build(
            "mixed-responsibilities",
            [number for _, number in ordered],
            [marker for marker, _ in ordered],
        )
    return None


# ---------------------------------------------------------------------------
# 10. Business-outcome UI feedback: closing messages or conditional messaging
# ---------------------------------------------------------------------------

_CLOSING_MESSAGE = (
    re.compile(r"\bMESSAGE\b|\bAFF_MSG\b|\bALERT_MSG\b|\bSET.*MESSAGE\b"),
    re.compile(r"\bAPEX_UTIL\.SET_SESSION_STATE\b.*\bMSG\b"),
    re.compile(r"\b(?:SUCCESS|ERROR|ERREUR|FAILED|COMPLETE|DONE)\b"),
)
_CONDITIONAL_MESSAGE = (
    re.compile(r"\bIF\b.*\bTHEN\b.*\b(?:MESSAGE|AFF_MSG)\b"),
    re.compile(r"\bELSE\b.*\b(?:MESSAGE|AFF_MSG)\b"),
)


def detect_business_outcome_ui_feedback(lines: Sequence[NumberedLine], limit: int) -> Optional[SemanticPattern]:
    matches = _Matches()
    closing_start = math.floor(len(lines) * 0.7)

    for number, line in lines[closing_start:]:
        upper = line.upper()
        if any(check.search(upper) for check in _CLOSING_MESSAGE):
            matches.add(number, line)

    for number, line in lines:
        upper = line.upper()
        if any(check.search(upper) for check in _CONDITIONAL_MESSAGE):
            matches.add(number, line)

    if matches:
        return _build("business-outcome-ui-feedback", matches.line_numbers[:limit], matches.code[:limit])
    return None


DETECTORS: Tuple[Detector, ...] = (
    detect_multi_record_processing,
    detect_selection_driven_execution,
    detect_multiple_execution_modes,
    detect_user_decision_gated_logic,
    detect_implicit_abort_flow,
    detect_cross_entity_side_effects,
    detect_state_accumulation,
    detect_outcome_dependent_chaining,
    detect_mixed_responsibilities,
    detect_business_outcome_ui_feedback,
)


def summarize(patterns: Sequence[SemanticPattern]) -> Dict[str, int]:
    return {
        severity.lower(): sum(1 for p in patterns if p.severity == severity)
        for severity in SEVERITIES
    }


def detect_semantic_patterns(
    code: str,
    first_line: int = 1,
    excerpt_limit: int = MAX_EXCERPTS,
    detectors: Sequence[Detector] = DETECTORS,
) -> PatternDetectionResult:
    """Run every detector over *code*.

    Args:
        code: Unit source text.
        first_line: File line number of the first line of *code*.
        excerpt_limit: Maximum line numbers / excerpts kept per pattern.
        detectors: Detector functions to run, in reporting order.
    """
    numbered = [(first_line + offset, line) for offset, line in enumerate(code.split("\n"))]
    patterns = [
        pattern
        for pattern in (detector(numbered, excerpt_limit) for detector in detectors)
        if pattern is not None
    ]
    return PatternDetectionResult(patterns=patterns, summary=summarize(patterns))
