"""Export helpers for JSON, Graphviz DOT, and APEX-ready SQL outputs."""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, List, Sequence

from .hierarchy import iter_nodes
from .models import ExtractedUnit, FormLogicHierarchy, HierarchyNode

_SECTIONS = (
    ("entry_points", "Entry Points"),
    ("core_business_controllers", "Core Business Controllers"),
    ("supporting_utilities", "Supporting Utilities"),
    ("ui_glue_logic", "UI Glue Logic"),
)


def _to_data(obj: Any) -> Any:
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    if isinstance(obj, (list, tuple)):
        return [_to_data(item) for item in obj]
    if isinstance(obj, dict):
        return {key: _to_data(value) for key, value in obj.items()}
    return obj


def to_json(obj: Any) -> str:
    """Serialize analysis results; identical input gives identical text."""
    return json.dumps(_to_data(obj), indent=2, ensure_ascii=False)


def export_json(obj: Any, output_file: Path) -> None:
    output_file.write_text(to_json(obj) + "\n", encoding="utf-8")


def _esc(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def render_dot(hierarchy: FormLogicHierarchy) -> str:
    lines = ["digraph FormLogic {"]
    lines.append("  rankdir=LR;")
    lines.append("  node [shape=box];")

    counter = 0
    for attr, title in _SECTIONS:
        roots: List[HierarchyNode] = getattr(hierarchy, attr)
        if not roots:
            continue
        lines.append(f'  subgraph "cluster_{attr}" {{')
        lines.append(f'    label="{_esc(title)}";')

        ids = {}
        for node in iter_nodes(roots):
            counter += 1
            ids[id(node)] = f"n{counter}"
            shape = "ellipse" if node.type == "trigger" else "box"
            label = _esc(node.name) + "\\n" + _esc(f"{node.classification} / {node.impact_score}")
            lines.append(f'    "n{counter}" [label="{label}", shape={shape}];')
        for node in iter_nodes(roots):
            for child in node.children:
                lines.append(f'    "{ids[id(node)]}" -> "{ids[id(child)]}";')
        lines.append("  }")

    lines.append("}")
    return "\n".join(lines)


def export_dot(hierarchy: FormLogicHierarchy, output_file: Path) -> None:
    output_file.write_text(render_dot(hierarchy), encoding="utf-8")


def render_sql(units: Sequence[ExtractedUnit]) -> str:
    chunks: List[str] = []
    for unit in units:
        header = [
            "-- " + "=" * 60,
            f"-- {unit.type}: {unit.name} (lines {unit.start_line}-{unit.end_line})",
        ]
        if unit.commented_builtins:
            header.append(f"-- Forms built-ins commented out: {len(unit.commented_builtins)}")
        header.append("-- " + "=" * 60)
        chunks.append("\n".join(header) + "\n" + unit.apex_safe_code.rstrip() + "\n")
    return "\n".join(chunks)


def export_sql(units: Sequence[ExtractedUnit], output_file: Path) -> None:
    output_file.write_text(render_sql(units), encoding="utf-8")
