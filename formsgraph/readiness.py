"""Migration readiness: complexity tiers, critical risks, priority plan."""

from __future__ import annotations

import math
import re
from typing import List, Sequence, Tuple

from .models import MigrationReadiness, PriorityItem, ProgramUnitEnriched, RiskItem
from .program_units import count_trigger_callers
from .rules import UI_COUPLING_CALLS

DEFAULT_PRIORITY_LIMIT = 20
DEFAULT_EFFORT_OVERHEAD = 1.3

_UI_CALL = re.compile("|".join(UI_COUPLING_CALLS), re.IGNORECASE)
_SEVERITY_ORDER = {"high": 0, "medium": 1, "low": 2}


def _round(value: float) -> int:
    return int(math.floor(value + 0.5))


def count_ui_calls(unit: ProgramUnitEnriched) -> int:
    return len(_UI_CALL.findall(unit.text))


def count_builtin_flags(unit: ProgramUnitEnriched) -> int:
    return sum(1 for flag in unit.risk_flags if "Forms builtin" in flag)


def complexity_tier(complexity: int) -> str:
    if complexity >= 7:
        return "high"
    if complexity >= 4:
        return "medium"
    return "low"


def calculate_overall_complexity(units: Sequence[ProgramUnitEnriched]) -> int:
    if not units:
        return 1
    average = sum(unit.complexity for unit in units) / len(units)
    high_impact = sum(1 for unit in units if unit.impact_score == "high")
    weight = 1.5 if high_impact > 5 else 1.2
    return min(_round(average * weight), 10)


def identify_critical_risks(units: Sequence[ProgramUnitEnriched]) -> List[RiskItem]:
    """Collect risks per unit, ordered high to medium to low (stable)."""
    risks: List[RiskItem] = []
    for unit in units:
        builtins = count_builtin_flags(unit)
        if builtins:
            risks.append(RiskItem(
                unit_name=unit.name,
                risk_type="forms-builtins",
                description=f"Uses {builtins} Forms-specific builtins that must be rewritten for APEX",
                severity="high" if builtins > 3 else "medium",
            ))

        ui_calls = count_ui_calls(unit)
        if ui_calls > 5:
            risks.append(RiskItem(
                unit_name=unit.name,
                risk_type="tight-ui-coupling",
                description=f"Contains {ui_calls} UI-specific calls - requires significant refactoring for APEX",
                severity="high",
            ))

        if unit.complexity >= 8:
            risks.append(RiskItem(
                unit_name=unit.name,
                risk_type="complex-logic",
                description=f"High complexity ({unit.complexity}/10) - requires careful analysis and testing",
                severity="high" if unit.complexity >= 9 else "medium",
            ))

        if any("Dynamic SQL" in flag for flag in unit.risk_flags):
            risks.append(RiskItem(
                unit_name=unit.name,
                risk_type="complex-logic",
                description="Uses dynamic SQL - requires validation and security review",
                severity="medium",
            ))

    return sorted(risks, key=lambda risk: _SEVERITY_ORDER[risk.severity])


def priority_score(unit: ProgramUnitEnriched) -> int:
    """Lower scores are migrated first."""
    score = 100
    if unit.is_main_function:
        score -= 30
    if unit.impact_score == "high":
        score -= 20
    elif unit.impact_score == "medium":
        score -= 10
    if unit.classification == "Transaction Logic":
        score -= 15
    elif unit.classification == "Business Logic":
        score -= 10
    score -= count_trigger_callers(unit) * 5
    # simpler units first
    score += unit.complexity * 2
    return score


def priority_reason(unit: ProgramUnitEnriched) -> str:
    reasons: List[str] = []
    trigger_callers = count_trigger_callers(unit)
    if unit.is_main_function:
        reasons.append("Main function")
    if trigger_callers:
        reasons.append(f"called by {trigger_callers} trigger{'s' if trigger_callers > 1 else ''}")
    if unit.impact_score == "high":
        reasons.append("high impact on data")
    if unit.classification == "Transaction Logic":
        reasons.append("transaction controller")
    if unit.complexity < 5:
        reasons.append("relatively simple to migrate")
    return "; ".join(reasons) or "Standard migration"


def estimate_unit_hours(unit: ProgramUnitEnriched) -> int:
    hours = 2.0
    hours += unit.complexity * 0.5
    hours += count_builtin_flags(unit) * 0.5
    if unit.line_count > 100:
        hours += 2
    elif unit.line_count > 50:
        hours += 1
    hours += min(count_ui_calls(unit) * 0.3, 4)
    return _round(hours)


def generate_priority_list(
    units: Sequence[ProgramUnitEnriched],
    limit: int = DEFAULT_PRIORITY_LIMIT,
) -> List[PriorityItem]:
    scored: List[Tuple[int, ProgramUnitEnriched]] = [(priority_score(unit), unit) for unit in units]
    scored.sort(key=lambda pair: pair[0])
    return [
        PriorityItem(
            unit_name=unit.name,
            priority=rank,
            reason=priority_reason(unit),
            estimated_hours=estimate_unit_hours(unit),
        )
        for rank, (_, unit) in enumerate(scored[:limit], start=1)
    ]


def estimate_effort(
    units: Sequence[ProgramUnitEnriched],
    overhead: float = DEFAULT_EFFORT_OVERHEAD,
) -> str:
    """Total hours with integration/testing overhead, as a +/-20% range."""
    total = _round(sum(estimate_unit_hours(unit) for unit in units) * overhead)
    return f"{_round(total * 0.8)}-{_round(total * 1.2)} hours"


def analyze_migration_readiness(
    units: Sequence[ProgramUnitEnriched],
    priority_limit: int = DEFAULT_PRIORITY_LIMIT,
    overhead: float = DEFAULT_EFFORT_OVERHEAD,
) -> MigrationReadiness:
    tiers = [complexity_tier(unit.complexity) for unit in units]
    return MigrationReadiness(
        overall_complexity=calculate_overall_complexity(units),
        total_program_units=len(units),
        high_complexity_units=tiers.count("high"),
        medium_complexity_units=tiers.count("medium"),
        low_complexity_units=tiers.count("low"),
        critical_risks=identify_critical_risks(units),
        priority_list=generate_priority_list(units, priority_limit),
        estimated_effort=estimate_effort(units, overhead),
    )
