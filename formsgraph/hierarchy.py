"""Form logic hierarchy: entry points, controllers, utilities, UI glue.

Trees are expanded by recursive descent over call lists. The set of names
already on the current path is passed down explicitly, and nodes at
``max_depth`` are leaves, so cyclic call graphs still yield a
finite tree.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, List, Sequence

from .models import FormLogicHierarchy, HierarchyNode, ProgramUnitEnriched, TriggerAnalysis
from .rules import TRIGGER_CATEGORY_MAP, UNKNOWN_CATEGORY
from .triggers import is_entry_point_trigger, trigger_label

# Hard cap on call_depth; larger max_depth values are clamped to it
MAX_CALL_DEPTH = 3
DEFAULT_MAX_DEPTH = MAX_CALL_DEPTH


def format_program_unit_name(name: str) -> str:
    return name.replace("_", " ").lower()


def trigger_category(classification: str) -> str:
    return TRIGGER_CATEGORY_MAP.get(classification, UNKNOWN_CATEGORY)


def _index(units: Sequence[ProgramUnitEnriched]) -> Dict[str, ProgramUnitEnriched]:
    registry: Dict[str, ProgramUnitEnriched] = {}
    for unit in units:
        registry.setdefault(unit.name.upper(), unit)
    return registry


def build_program_unit_node(
    unit: ProgramUnitEnriched,
    registry: Dict[str, ProgramUnitEnriched],
    visited: FrozenSet[str] = frozenset(),
    depth: int = 0,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> HierarchyNode:
    node = HierarchyNode(
        type="program-unit",
        name=unit.name,
        description=unit.business_responsibility or format_program_unit_name(unit.name),
        classification=unit.classification,
        impact_score=unit.impact_score,
        call_depth=depth,
    )
    key = unit.name.upper()
    if key in visited or depth >= min(max_depth, MAX_CALL_DEPTH):
        return node

    path = visited | {key}
    for dependency in unit.dependencies:
        callee = registry.get(dependency.upper())
        if callee is not None:
            node.children.append(
                build_program_unit_node(callee, registry, path, depth + 1, max_depth)
            )
    return node


def build_trigger_node(
    trigger: TriggerAnalysis,
    registry: Dict[str, ProgramUnitEnriched],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> HierarchyNode:
    node = HierarchyNode(
        type="trigger",
        name=trigger_label(trigger.name, trigger.block_name, trigger.item_name),
        description=trigger.responsibility,
        classification=trigger_category(trigger.classification),
        impact_score=trigger.impact_score,
        call_depth=0,
    )
    if max_depth <= 0:
        return node
    for unit_name in trigger.called_program_units:
        unit = registry.get(unit_name.upper())
        if unit is not None:
            node.children.append(build_program_unit_node(unit, registry, frozenset(), 1, max_depth))
    return node


def build_form_logic_hierarchy(
    triggers: Sequence[TriggerAnalysis],
    units: Sequence[ProgramUnitEnriched],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> FormLogicHierarchy:
    """Group a form's logic into the four hierarchy sections.

    ``call_depth`` never exceeds *max_depth* or ``MAX_CALL_DEPTH``.
    """
    registry = _index(units)
    entry_triggers = [t for t in triggers if is_entry_point_trigger(t.name)]
    glue_triggers = [
        t for t in triggers if not is_entry_point_trigger(t.name) and t.impact_score == "low"
    ]

    return FormLogicHierarchy(
        entry_points=[build_trigger_node(t, registry, max_depth) for t in entry_triggers],
        core_business_controllers=[
            build_program_unit_node(u, registry, max_depth=max_depth)
            for u in units if u.is_main_function
        ],
        supporting_utilities=[
            build_program_unit_node(u, registry, max_depth=0)
            for u in units if not u.is_main_function and u.classification == "Utility/Helper"
        ],
        ui_glue_logic=[build_trigger_node(t, registry, 0) for t in glue_triggers],
    )


def iter_nodes(nodes: Sequence[HierarchyNode]) -> List[HierarchyNode]:
    """Flatten *nodes* and their descendants, depth first."""
    flat: List[HierarchyNode] = []
    stack = list(reversed(nodes))
    while stack:
        node = stack.pop()
        flat.append(node)
        stack.extend(reversed(node.children))
    return flat
