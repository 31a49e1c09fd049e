"""Immutable rule tables driving every heuristic in the engine.

Each table is ordered where order matters: classification and trigger
rules are evaluated top to bottom and the first match wins. Nothing in
here is mutated at runtime; analysis functions accept alternative tables
as parameters, which keeps them testable in isolation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, NamedTuple, Optional, Pattern, Tuple

# ---------------------------------------------------------------------------
# Forms built-ins
# ---------------------------------------------------------------------------

BUILTIN_GROUPS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "navigation": (
        "GO_BLOCK", "GO_ITEM", "GO_RECORD", "FIRST_RECORD", "NEXT_RECORD",
        "PREVIOUS_RECORD", "LAST_RECORD", "UP", "DOWN",
    ),
    "query": ("EXECUTE_QUERY", "ENTER_QUERY", "COUNT_QUERY"),
    "clear": ("CLEAR_BLOCK", "CLEAR_FORM", "CLEAR_ITEM", "CLEAR_RECORD"),
    "commit": ("COMMIT_FORM", "POST", "DO_KEY"),
    "display": ("SYNCHRONIZE", "REDISPLAY", "BELL"),
    "property": (
        "SET_ITEM_PROPERTY", "GET_ITEM_PROPERTY",
        "SET_BLOCK_PROPERTY", "GET_BLOCK_PROPERTY",
        "SET_RECORD_PROPERTY", "GET_RECORD_PROPERTY",
        "SET_FORM_PROPERTY", "GET_FORM_PROPERTY",
        "SET_WINDOW_PROPERTY", "GET_WINDOW_PROPERTY",
        "SET_CANVAS_PROPERTY", "GET_CANVAS_PROPERTY",
        "SET_LOV_PROPERTY", "GET_LOV_PROPERTY",
        "SET_MENU_ITEM_PROPERTY", "GET_MENU_ITEM_PROPERTY",
        "SET_ALERT_PROPERTY", "GET_ALERT_PROPERTY",
    ),
    "record": ("CREATE_RECORD", "DELETE_RECORD", "DUPLICATE_RECORD", "LOCK_RECORD"),
    "lov": (
        "SHOW_LOV", "LIST_VALUES", "POPULATE_LIST", "ADD_LIST_ELEMENT",
        "DELETE_LIST_ELEMENT", "CLEAR_LIST", "GET_LIST_ELEMENT_COUNT",
        "GET_LIST_ELEMENT_VALUE", "GET_LIST_ELEMENT_LABEL",
    ),
    "alert": ("SHOW_ALERT", "SET_ALERT_BUTTON_PROPERTY"),
    "message": ("MESSAGE", "ERASE"),
    "timer": ("CREATE_TIMER", "DELETE_TIMER", "FIND_TIMER"),
    "transaction": ("ENTER", "EXIT_FORM", "NEW_FORM", "CALL_FORM", "OPEN_FORM", "CLOSE_FORM"),
    "window": ("SHOW_VIEW", "HIDE_VIEW", "SET_VIEW_PROPERTY", "GO_CANVAS", "SHOW_WINDOW", "HIDE_WINDOW"),
    "misc": (
        "DEFAULT_VALUE", "COPY", "NAME_IN", "COPY_REGION", "CUT_REGION",
        "PASTE_REGION", "HOST", "USER_EXIT", "CALL_OLE", "PAUSE", "PRINT",
        "RUN_PRODUCT", "BLOCK_MENU", "CHECK_RECORD_UNIQUENESS", "DISPLAY_ERROR",
        "ISSUE_ROLLBACK", "ISSUE_SAVEPOINT", "LOGON", "LOGON_SCREEN", "LOGOUT",
    ),
})

FORMS_BUILTINS: Tuple[str, ...] = tuple(
    name for group in BUILTIN_GROUPS.values() for name in group
)

_NAV = "Forms navigation logic – not applicable in APEX"
_REC_NAV = "Forms record navigation – APEX uses Interactive Grid/Report"

BUILTIN_REASONS: Mapping[str, str] = MappingProxyType({
    "GO_BLOCK": _NAV,
    "GO_ITEM": _NAV,
    "GO_RECORD": _NAV,
    "FIRST_RECORD": _REC_NAV,
    "NEXT_RECORD": _REC_NAV,
    "PREVIOUS_RECORD": _REC_NAV,
    "LAST_RECORD": _REC_NAV,
    "EXECUTE_QUERY": "Forms query execution – APEX uses page refresh or DA",
    "ENTER_QUERY": "Forms query mode – not applicable in APEX",
    "CLEAR_BLOCK": "Forms block clear – use APEX clear process or JS",
    "CLEAR_FORM": "Forms form clear – use APEX page redirect",
    "COMMIT_FORM": "Forms commit – APEX handles via DML processes",
    "POST": "Forms post – APEX handles via DML processes",
    "SYNCHRONIZE": "Forms display sync – not needed in APEX",
    "SET_ITEM_PROPERTY": "Forms item property – use APEX Dynamic Actions",
    "GET_ITEM_PROPERTY": "Forms item property – use APEX_UTIL functions",
    "SET_BLOCK_PROPERTY": "Forms block property – use APEX region settings",
    "GET_BLOCK_PROPERTY": "Forms block property – use APEX region settings",
    "SHOW_LOV": "Forms LOV popup – use an APEX Popup LOV item",
    "SHOW_ALERT": "Forms alert – use apex.message.confirm() in a Dynamic Action",
    "MESSAGE": "Forms message – use APEX_APPLICATION.ADD_MESSAGE or JS",
    "HOST": "Forms host command – no client OS access in APEX",
})

DEFAULT_BUILTIN_REASON = "Forms runtime built-in – not applicable in APEX"


@dataclass(frozen=True)
class BuiltinCatalog:
    """Vocabulary of Forms-only built-ins with their migration reasons."""

    names: Tuple[str, ...] = FORMS_BUILTINS
    reasons: Mapping[str, str] = field(default_factory=lambda: BUILTIN_REASONS)
    default_reason: str = DEFAULT_BUILTIN_REASON

    def reason_for(self, builtin: str) -> str:
        return self.reasons.get(builtin.upper(), self.default_reason)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.upper() in self.names


DEFAULT_CATALOG = BuiltinCatalog()

# Calls with no APEX counterpart at all; they force manual migration.
INCOMPATIBLE_CALLS: Tuple[str, ...] = ("SYNCHRONIZE", "FORMS_OLE", "HOST")

# Built-ins whose presence is listed as a risk even outside call syntax.
UI_COUPLING_CALLS: Tuple[str, ...] = (
    "SET_ITEM_PROPERTY", "GET_ITEM_PROPERTY", "GO_ITEM", "GO_BLOCK",
)

# ---------------------------------------------------------------------------
# Program unit classification
# ---------------------------------------------------------------------------

# A clause is a tuple of substrings that must all occur in the upper-cased
# code; a rule matches when any one of its clauses matches.
Clause = Tuple[str, ...]


class ClassificationRule(NamedTuple):
    category: str
    clauses: Tuple[Clause, ...]
    functions_only: bool = False


UNKNOWN_CATEGORY = "Unknown"

LOGIC_CATEGORIES: Tuple[str, ...] = (
    "UI Logic",
    "Transaction Logic",
    "Validation Logic",
    "Integration Logic",
    "Security/Access Control",
    "Business Logic",
    "Utility/Helper",
    UNKNOWN_CATEGORY,
)

CLASSIFICATION_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule("UI Logic", (
        ("SET_ITEM_PROPERTY",), ("GO_ITEM",), ("GO_BLOCK",),
        ("SHOW_VIEW",), ("HIDE_VIEW",), ("SET_WINDOW_PROPERTY",),
    )),
    ClassificationRule("Transaction Logic", (
        ("COMMIT",), ("ROLLBACK",), ("INSERT INTO", "VALUES"),
        ("UPDATE", "SET"), ("DELETE FROM",),
    )),
    ClassificationRule("Validation Logic", (
        ("VALIDATE",), ("CHECK_",), ("IS_VALID",), ("RAISE_APPLICATION_ERROR",),
        ("IF", "THEN", "ERROR"),
    )),
    ClassificationRule("Integration Logic", (
        ("UTL_HTTP",), ("UTL_FILE",), ("DBMS_",), ("EXTERNAL",), ("WEB_SERVICE",),
    )),
    ClassificationRule("Security/Access Control", (
        ("CHECK_ACCESS",), ("AUTHORIZE",), ("USER_ROLE",), ("PERMISSION",),
        ("AUTHENTICATE",),
    )),
    ClassificationRule("Business Logic", (
        ("CALCULATE",), ("PROCESS",), ("APPROVE",), ("SUBMIT",), ("STATUS",),
    )),
    ClassificationRule("Utility/Helper", (
        ("TO_",), ("GET_",), ("FORMAT_",), ("CONVERT_",),
    ), functions_only=True),
)

# ---------------------------------------------------------------------------
# Impact scoring
# ---------------------------------------------------------------------------

class Weight(NamedTuple):
    clause: Clause
    points: int


IMPACT_WEIGHTS: Tuple[Weight, ...] = (
    Weight(("COMMIT",), 3),
    Weight(("ROLLBACK",), 2),
    Weight(("INSERT INTO",), 2),
    Weight(("UPDATE", "SET"), 2),
    Weight(("DELETE FROM",), 2),
    Weight(("EXECUTE_QUERY",), 1),
    Weight(("CLEAR_BLOCK",), 1),
    Weight(("SHOW_LOV",), 1),
)

HIGH_IMPACT_THRESHOLD = 5
MEDIUM_IMPACT_THRESHOLD = 2

# ---------------------------------------------------------------------------
# Triggers
# ---------------------------------------------------------------------------

class TriggerRule(NamedTuple):
    classification: str
    pattern: Pattern[str]


TRIGGER_RULES: Tuple[TriggerRule, ...] = (
    TriggerRule("pre-render", re.compile(r"PRE-FORM|PRE-BLOCK|WHEN-NEW-FORM|WHEN-NEW-BLOCK")),
    TriggerRule("post-query", re.compile(r"POST-QUERY")),
    TriggerRule("validation", re.compile(r"VALIDATE")),
    TriggerRule(
        "user-action",
        re.compile(r"WHEN-BUTTON|WHEN-MOUSE|WHEN-TREE|KEY-(?!COMMIT|NEXT|PREV)"),
    ),
    TriggerRule("pre-dml", re.compile(r"PRE-(?:INSERT|UPDATE|DELETE)")),
    TriggerRule("post-dml", re.compile(r"POST-(?:INSERT|UPDATE|DELETE)")),
    TriggerRule("commit", re.compile(r"KEY-COMMIT|ON-COMMIT")),
    TriggerRule("navigation", re.compile(r"WHEN-NEW-RECORD|WHEN-NEW-ITEM|KEY-NEXT|KEY-PREV")),
    TriggerRule("error", re.compile(r"ON-ERROR")),
)

UNKNOWN_TRIGGER = "unknown"


class TargetMapping(NamedTuple):
    type: str
    point: str
    support_level: str
    instruction: str


TRIGGER_TARGETS: Mapping[str, TargetMapping] = MappingProxyType({
    "pre-render": TargetMapping(
        "Process", "Before Header", "full", 'Create process at "Before Header" point'),
    "post-query": TargetMapping(
        "Process", "After Header", "full",
        'Create "After Header" process or modify Region Source SQL'),
    "validation": TargetMapping(
        "Validation", "Before Submit", "full", "Create PL/SQL Validation returning Boolean"),
    "user-action": TargetMapping(
        "Dynamic Action", "On Click / On Change", "partial",
        "Create Dynamic Action on element click/change"),
    "pre-dml": TargetMapping(
        "Process", "Processing (Before DML)", "full",
        "Create process before Automatic Row Processing"),
    "post-dml": TargetMapping(
        "Process", "Processing (After DML)", "full",
        "Create process after Automatic Row Processing"),
    "commit": TargetMapping(
        "Process", "Processing", "full", "Create Submit Button + Processing process"),
    "navigation": TargetMapping(
        "Dynamic Action", "Page Load / On Focus", "partial",
        "Create Dynamic Action on page load or item focus"),
    "error": TargetMapping(
        "Manual", "Error Handling Function", "manual",
        "Move error handling into the application Error Handling Function"),
    UNKNOWN_TRIGGER: TargetMapping("Manual", "", "manual", "Review and implement manually"),
})

INCOMPATIBLE_WARNING = "⚠️ Contains Forms-specific builtins"

# Builtins annotated (not removed) when trigger code is rewritten.
MANUAL_REPLACEMENT_BUILTINS: Tuple[str, ...] = (
    "GO_BLOCK", "GO_ITEM", "EXECUTE_QUERY", "CLEAR_BLOCK", "SHOW_LOV", "SET_ITEM_PROPERTY",
)

# Name fragments marking the start of a user-visible interaction or transaction.
ENTRY_POINT_TRIGGERS: Tuple[str, ...] = (
    "WHEN-NEW-FORM-INSTANCE",
    "PRE-FORM",
    "PRE-QUERY",
    "WHEN-BUTTON-PRESSED",
    "ON-COMMIT",
    "KEY-COMMIT",
)

TRIGGER_CATEGORY_MAP: Mapping[str, str] = MappingProxyType({
    "validation": "Validation Logic",
    "pre-dml": "Transaction Logic",
    "post-dml": "Transaction Logic",
    "commit": "Transaction Logic",
    "user-action": "UI Logic",
    "navigation": "UI Logic",
    "pre-render": "Business Logic",
    "post-query": "Business Logic",
})


def first_matching_trigger_rule(
    name: str, rules: Tuple[TriggerRule, ...] = TRIGGER_RULES
) -> Optional[TriggerRule]:
    upper = name.upper()
    for rule in rules:
        if rule.pattern.search(upper):
            return rule
    return None


def score_to_impact(score: int) -> str:
    if score >= HIGH_IMPACT_THRESHOLD:
        return "high"
    if score >= MEDIUM_IMPACT_THRESHOLD:
        return "medium"
    return "low"
