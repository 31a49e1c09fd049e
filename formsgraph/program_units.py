"""Program unit enrichment: classification, impact, complexity, risk flags.

Keyword scans run over the upper-cased code with comments and string
literal contents removed, so commented-out statements do not count.
"""

from __future__ import annotations

import math
import re
from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

from .builtins import detect_forms_builtins
from .dependencies import detect_called_procedures, strip_comments_and_strings
from .models import Parameter, ProgramUnit, ProgramUnitEnriched, Trigger
from .rules import (
    CLASSIFICATION_RULES,
    DEFAULT_CATALOG,
    IMPACT_WEIGHTS,
    INCOMPATIBLE_CALLS,
    UNKNOWN_CATEGORY,
    BuiltinCatalog,
    ClassificationRule,
    Clause,
    Weight,
    score_to_impact,
)
from .triggers import trigger_label

TRIGGER_CALLER_PREFIX = "Trigger: "

_SIGNATURE = re.compile(r"\b(?:PROCEDURE|FUNCTION)\s+[\w$#]+\s*", re.IGNORECASE)
_PARAMETER = re.compile(
    r"^([\w$#]+)\s+(?:(IN\s+OUT|IN|OUT)\s+)?(?:NOCOPY\s+)?([\w.%$#]+(?:\s*\([^)]*\))?)"
    r"\s*(?:(?:DEFAULT|:=)\s*(.+))?$",
    re.IGNORECASE | re.DOTALL,
)
_RETURN_TYPE = re.compile(r"\bRETURN\s+([\w.%$#]+(?:\s*\([^)]*\))?)", re.IGNORECASE)

_IF = re.compile(r"\bIF\b", re.IGNORECASE)
_LOOP = re.compile(r"\b(?:FOR|WHILE|LOOP)\b", re.IGNORECASE)
_CASE = re.compile(r"\bCASE\b", re.IGNORECASE)
_NESTED_IF = re.compile(
    r"(?<!END\s)\bIF\b.*?(?<!END\s)\bIF\b.*?\bEND\s+IF\b.*?\bEND\s+IF\b",
    re.IGNORECASE | re.DOTALL,
)
_DML = re.compile(r"\b(?:INSERT|UPDATE|DELETE)\b", re.IGNORECASE)
_DML_STATEMENT = re.compile(r"\bINSERT\s+INTO\b|\bUPDATE\b|\bDELETE\s+FROM\b")


def count_lines(code: str) -> int:
    """Non-blank, non-comment lines."""
    return sum(1 for line in code.split("\n") if line.strip() and not line.strip().startswith("--"))


def _split_top_level(text: str) -> List[str]:
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return parts


def _parameter_list(code: str) -> Tuple[str, int]:
    """Return the text between the signature's parentheses and the end offset."""
    clean = re.sub(r"--.*$", "", code, flags=re.MULTILINE)
    match = _SIGNATURE.search(clean)
    if not match or clean[match.end():match.end() + 1] != "(":
        return "", match.end() if match else 0

    depth = 0
    start = match.end()
    for offset in range(start, len(clean)):
        if clean[offset] == "(":
            depth += 1
        elif clean[offset] == ")":
            depth -= 1
            if depth == 0:
                return clean[start + 1:offset], offset + 1
    return clean[start + 1:], len(clean)


def extract_parameters(code: str) -> List[Parameter]:
    """Parse ``name [IN|OUT|IN OUT] type [DEFAULT value]`` entries."""
    text, _ = _parameter_list(code)
    parameters: List[Parameter] = []
    for part in _split_top_level(text):
        trimmed = " ".join(part.split())
        if not trimmed:
            continue
        match = _PARAMETER.match(trimmed)
        if not match:
            continue
        mode = " ".join((match.group(2) or "IN").upper().split())
        default = match.group(4).strip() if match.group(4) else None
        parameters.append(Parameter(
            name=match.group(1),
            mode=mode,
            data_type=match.group(3),
            default_value=default,
        ))
    return parameters


def extract_return_type(code: str, unit_type: str) -> Optional[str]:
    if unit_type.upper() != "FUNCTION":
        return None
    _, offset = _parameter_list(code)
    match = _RETURN_TYPE.search(code, offset) or _RETURN_TYPE.search(code)
    return match.group(1) if match else None


def _clause_matches(text: str, clause: Clause) -> bool:
    return all(fragment in text for fragment in clause)


def classify_program_unit(
    code: str,
    unit_type: str,
    rules: Sequence[ClassificationRule] = CLASSIFICATION_RULES,
) -> str:
    """First matching rule wins; ``Unknown`` when nothing matches."""
    text = strip_comments_and_strings(code)
    is_function = unit_type.upper() == "FUNCTION"
    for rule in rules:
        if rule.functions_only and not is_function:
            continue
        if any(_clause_matches(text, clause) for clause in rule.clauses):
            return rule.category
    return UNKNOWN_CATEGORY


def calculate_impact_score(code: str, weights: Sequence[Weight] = IMPACT_WEIGHTS) -> str:
    text = strip_comments_and_strings(code)
    score = sum(weight.points for weight in weights if _clause_matches(text, weight.clause))

    lines = count_lines(code)
    if lines > 100:
        score += 2
    elif lines > 50:
        score += 1
    return score_to_impact(score)


def calculate_complexity(code: str) -> int:
    """Heuristic 1-10 complexity score."""
    text = strip_comments_and_strings(code)
    complexity = 1.0
    complexity += len(_IF.findall(text)) * 0.5
    complexity += len(_LOOP.findall(text)) * 1
    complexity += len(_CASE.findall(text)) * 0.5

    lines = count_lines(code)
    if lines > 200:
        complexity += 3
    elif lines > 100:
        complexity += 2
    elif lines > 50:
        complexity += 1

    complexity += len(_NESTED_IF.findall(text)) * 1.5
    complexity += len(_DML.findall(text)) * 0.5

    rounded = int(math.floor(complexity + 0.5))
    return max(1, min(rounded, 10))


def detect_risk_flags(code: str, catalog: BuiltinCatalog = DEFAULT_CATALOG) -> List[str]:
    flags = [f"Forms builtin: {name}" for name in detect_forms_builtins(code, catalog)]
    text = strip_comments_and_strings(code)

    for call in INCOMPATIBLE_CALLS:
        flag = f"Forms builtin: {call}"
        if flag not in flags and re.search(rf"\b{call}\b", text):
            flags.append(flag)

    if _DML_STATEMENT.search(text) and "COMMIT" not in text:
        flags.append("Direct DML without explicit COMMIT")
    if "EXECUTE IMMEDIATE" in text:
        flags.append("Dynamic SQL detected")
    if "UTL_" in text or "DBMS_" in text:
        flags.append("External package dependencies")
    return flags


def find_callers(
    unit_name: str,
    program_units: Sequence[ProgramUnit],
    triggers: Sequence[Trigger],
) -> List[str]:
    """Triggers (``"Trigger: <label>"``) and units whose code calls *unit_name*."""
    callers: List[str] = []
    for trigger in triggers:
        if detect_called_procedures(trigger.text, [unit_name], ""):
            label = TRIGGER_CALLER_PREFIX + trigger_label(trigger.name, trigger.block_name, trigger.item_name)
            if label not in callers:
                callers.append(label)
    for unit in program_units:
        if unit.name.upper() == unit_name.upper():
            continue
        if detect_called_procedures(unit.text, [unit_name], unit.name) and unit.name not in callers:
            callers.append(unit.name)
    return callers


def count_trigger_callers(unit: ProgramUnitEnriched) -> int:
    return sum(1 for caller in unit.called_by if caller.startswith(TRIGGER_CALLER_PREFIX))


def analyze_program_unit(
    unit: ProgramUnit,
    program_units: Sequence[ProgramUnit],
    triggers: Sequence[Trigger],
    catalog: BuiltinCatalog = DEFAULT_CATALOG,
) -> ProgramUnitEnriched:
    """Enrich one raw program unit with call, classification, and score data."""
    code = unit.text
    return ProgramUnitEnriched(
        name=unit.name,
        program_unit_type=unit.program_unit_type,
        text=code,
        parameters=extract_parameters(code),
        return_type=extract_return_type(code, unit.program_unit_type),
        line_count=count_lines(code),
        dependencies=detect_called_procedures(code, [u.name for u in program_units], unit.name),
        called_by=find_callers(unit.name, program_units, triggers),
        classification=classify_program_unit(code, unit.program_unit_type),
        impact_score=calculate_impact_score(code),
        complexity=calculate_complexity(code),
        risk_flags=detect_risk_flags(code, catalog),
    )


def main_function_reasons(unit: ProgramUnitEnriched) -> List[str]:
    """Every heuristic that marks *unit* as a core business controller."""
    reasons: List[str] = []
    text = strip_comments_and_strings(unit.text)

    trigger_calls = count_trigger_callers(unit)
    if trigger_calls >= 2:
        reasons.append(f"Called by {trigger_calls} triggers")
    if unit.classification == "Transaction Logic" and ("COMMIT" in text or "ROLLBACK" in text):
        reasons.append("Transaction controller")
    if len(unit.dependencies) >= 3:
        reasons.append(f"Orchestrates {len(unit.dependencies)} program units")
    if unit.complexity >= 7 and unit.impact_score == "high":
        reasons.append("High complexity and high impact")
    if unit.classification == "Business Logic" and unit.line_count > 50:
        reasons.append("Substantial business logic")
    return reasons


def generate_business_responsibility(unit: ProgramUnitEnriched) -> str:
    name = unit.name.lower().replace("_", " ")
    if unit.classification == "Transaction Logic":
        return f"Manages data persistence and transaction control for {name}"
    if unit.classification == "Validation Logic":
        return f"Validates and enforces business rules for {name}"
    if unit.classification == "Business Logic":
        return f"Implements core business logic for {name}"
    return f"Orchestrates {len(unit.dependencies)} related operations for {name}"


def identify_main_functions(units: Sequence[ProgramUnitEnriched]) -> List[ProgramUnitEnriched]:
    """Return copies of *units* with the main-function fields filled in."""
    identified: List[ProgramUnitEnriched] = []
    for unit in units:
        reasons = main_function_reasons(unit)
        if not reasons:
            identified.append(replace(unit))
            continue
        flagged = replace(unit, is_main_function=True, main_function_reason="; ".join(reasons))
        flagged.business_responsibility = generate_business_responsibility(flagged)
        identified.append(flagged)
    return identified
