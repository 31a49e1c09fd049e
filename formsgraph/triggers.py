"""Trigger lifecycle classification and APEX target mapping."""

from __future__ import annotations

import re
from typing import List, Sequence

from .dependencies import detect_called_procedures, strip_comments_and_strings
from .models import ApexTarget, ProgramUnitEnriched, Trigger, TriggerAnalysis
from .rules import (
    ENTRY_POINT_TRIGGERS,
    INCOMPATIBLE_CALLS,
    INCOMPATIBLE_WARNING,
    MANUAL_REPLACEMENT_BUILTINS,
    TRIGGER_RULES,
    TRIGGER_TARGETS,
    UNKNOWN_TRIGGER,
    TriggerRule,
    first_matching_trigger_rule,
    score_to_impact,
)

_GLOBAL_REF = re.compile(r":GLOBAL\.(\w+)", re.IGNORECASE)
_PARAMETER_REF = re.compile(r":PARAMETER\.(\w+)", re.IGNORECASE)
_BLOCK_ITEM_REF = re.compile(r":(\w+)\.(\w+)")
_DIRECT_DML = re.compile(r"\bINSERT\s+INTO\b|\bUPDATE\b.*?\bSET\b|\bDELETE\s+FROM\b", re.DOTALL)
_IF = re.compile(r"\bIF\b", re.IGNORECASE)
_LOOP = re.compile(r"\b(?:FOR|WHILE|LOOP)\b", re.IGNORECASE)

# Name fragment -> description, checked in order.
_RESPONSIBILITIES = (
    (("PRE-FORM", "WHEN-NEW-FORM"), "Initializes form state and prepares the UI when the form loads"),
    (("PRE-BLOCK", "WHEN-NEW-BLOCK"), "Sets up block-level defaults and configurations when entering the block"),
    (("PRE-QUERY",), "Modifies query criteria before data is retrieved from the database"),
    (("POST-QUERY",), "Enriches or transforms data after it has been queried from the database"),
    (("WHEN-VALIDATE-ITEM", "WHEN-VALIDATE-RECORD"), "Validates user input and enforces business rules"),
    (("PRE-INSERT",), "Prepares and validates data before inserting a new record"),
    (("POST-INSERT",), "Performs follow-up actions after a record has been inserted"),
    (("PRE-UPDATE",), "Validates and prepares changes before updating a record"),
    (("POST-UPDATE",), "Performs follow-up actions after a record has been updated"),
    (("PRE-DELETE",), "Validates and confirms deletion before removing a record"),
    (("POST-DELETE",), "Performs cleanup actions after a record has been deleted"),
    (("ON-COMMIT", "KEY-COMMIT"), "Validates all changes and commits the transaction to the database"),
    (("WHEN-NEW-RECORD-INSTANCE",), "Initializes default values when creating a new record"),
    (("WHEN-NEW-ITEM-INSTANCE",), "Performs actions when focus moves to a new item"),
    (("WHEN-LIST-CHANGED", "WHEN-CHECKBOX-CHANGED"), "Responds to user selection changes and updates dependent fields"),
    (("ON-ERROR",), "Intercepts runtime errors and replaces the default error messages"),
)

_HIGH_IMPACT_TRIGGERS = ("WHEN-NEW-FORM", "PRE-FORM", "WHEN-BUTTON-PRESSED", "ON-COMMIT")


def trigger_label(name: str, block_name: str = "", item_name: str = "") -> str:
    """``NAME``, ``NAME (BLOCK)`` or ``NAME (BLOCK.ITEM)``."""
    if not block_name:
        return name
    if item_name:
        return f"{name} ({block_name}.{item_name})"
    return f"{name} ({block_name})"


def classify_trigger(name: str, rules: Sequence[TriggerRule] = TRIGGER_RULES) -> str:
    rule = first_matching_trigger_rule(name, tuple(rules))
    return rule.classification if rule else UNKNOWN_TRIGGER


def has_incompatible_calls(code: str) -> bool:
    text = strip_comments_and_strings(code)
    return any(re.search(rf"\b{call}\b", text) for call in INCOMPATIBLE_CALLS)


def transform_code_for_apex(code: str) -> str:
    """Rewrite Forms bind references for APEX and flag builtins needing a rewrite.

    ``:GLOBAL.x`` and ``:PARAMETER.x`` become session-state lookups,
    ``:block.item`` becomes ``:Pxx_item`` with the original kept in a comment.
    """
    transformed = _GLOBAL_REF.sub(r"apex_util.get_session_state('G_\1')", code)
    transformed = _PARAMETER_REF.sub(r"apex_util.get_session_state('P\1')", transformed)
    transformed = _BLOCK_ITEM_REF.sub(r":Pxx_\2 /* was :\1.\2 */", transformed)
    for builtin in MANUAL_REPLACEMENT_BUILTINS:
        transformed = re.sub(
            rf"\b({builtin})(?=\s*[(;])",
            rf"/* APEX: Replace {builtin} */ \1",
            transformed,
            flags=re.IGNORECASE,
        )
    return transformed


def map_trigger_to_apex(name: str, code: str) -> ApexTarget:
    """Map a trigger to its APEX construct.

    Forms-only calls with no APEX counterpart force ``manual`` support
    whatever the lifecycle category.
    """
    target = TRIGGER_TARGETS[classify_trigger(name)]
    instructions = [target.instruction]
    support_level = target.support_level

    if has_incompatible_calls(code):
        support_level = "manual"
        instructions.append(INCOMPATIBLE_WARNING)

    return ApexTarget(
        type=target.type,
        point=target.point,
        code=transform_code_for_apex(code),
        instructions=instructions,
        support_level=support_level,
    )


def detect_direct_dml(code: str) -> bool:
    return bool(_DIRECT_DML.search(strip_comments_and_strings(code)))


def calculate_logic_depth(code: str) -> str:
    lines = sum(1 for line in code.split("\n") if line.strip() and not line.strip().startswith("--"))
    score = lines + len(_IF.findall(code)) * 2 + len(_LOOP.findall(code)) * 3
    if score > 50:
        return "complex"
    if score > 15:
        return "moderate"
    return "simple"


def generate_responsibility(trigger: Trigger) -> str:
    name = trigger.name.upper()
    text = strip_comments_and_strings(trigger.text)

    if "WHEN-BUTTON-PRESSED" in name:
        item = trigger.item_name or "button"
        if "COMMIT" in text or "POST" in text:
            return f"Saves data to the database when {item} is clicked"
        if "DELETE" in text:
            return f"Deletes the current record when {item} is clicked"
        if "QUERY" in text:
            return f"Retrieves data from the database when {item} is clicked"
        return f"Executes custom logic when {item} is clicked"

    for fragments, description in _RESPONSIBILITIES:
        if any(fragment in name for fragment in fragments):
            return description

    if "SET_ITEM_PROPERTY" in text or "GO_ITEM" in text:
        return "Controls UI behavior and navigation"
    if "MESSAGE" in text or "SHOW_ALERT" in text:
        return "Displays messages or alerts to the user"
    return "Executes custom business logic"


def calculate_trigger_impact_score(trigger: Trigger) -> str:
    text = strip_comments_and_strings(trigger.text)
    score = 0
    if "COMMIT" in text:
        score += 3
    if "ROLLBACK" in text:
        score += 2
    if "INSERT INTO" in text:
        score += 2
    if "UPDATE" in text and "SET" in text:
        score += 2
    if "DELETE FROM" in text:
        score += 2
    if any(fragment in trigger.name.upper() for fragment in _HIGH_IMPACT_TRIGGERS):
        score += 2
    if "EXECUTE_QUERY" in text:
        score += 1
    if "CLEAR_BLOCK" in text:
        score += 1
    if sum(1 for line in trigger.text.split("\n") if line.strip()) > 30:
        score += 1
    return score_to_impact(score)


def is_entry_point_trigger(name: str) -> bool:
    upper = name.upper()
    return any(fragment in upper for fragment in ENTRY_POINT_TRIGGERS)


def analyze_trigger(trigger: Trigger, program_units: Sequence[ProgramUnitEnriched]) -> TriggerAnalysis:
    classification = classify_trigger(trigger.name)
    called: List[str] = detect_called_procedures(
        trigger.text, [unit.name for unit in program_units], "",
    )
    return TriggerAnalysis(
        name=trigger.name,
        text=trigger.text,
        block_name=trigger.block_name,
        item_name=trigger.item_name,
        fire_in_query=trigger.fire_in_query,
        classification=classification,
        apex_target=map_trigger_to_apex(trigger.name, trigger.text),
        called_program_units=called,
        direct_dml=detect_direct_dml(trigger.text),
        logic_depth=calculate_logic_depth(trigger.text),
        responsibility=generate_responsibility(trigger),
        impact_score=calculate_trigger_impact_score(trigger),
    )
