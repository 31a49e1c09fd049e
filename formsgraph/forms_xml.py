"""Oracle Forms XML export reader (``frmf2xml`` output).

Only the pieces the analysis needs are read: program units and the
form-, block- and item-level triggers.
"""

from __future__ import annotations

import logging
import re
import sys
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from .boundary import normalize_newlines
from .errors import FormsXmlError
from .models import ProgramUnit, Trigger

logger = logging.getLogger(__name__)

_CHAR_REF = re.compile(r"&#(\d+);")
_NAMED_REF = re.compile(r"&(amp|lt|gt|quot|apos);")
_NAMED_ENTITIES = {"amp": "&", "lt": "<", "gt": ">", "quot": "\"", "apos": "'"}


@dataclass
class FormModuleSource:
    name: str
    program_units: List[ProgramUnit] = field(default_factory=list)
    triggers: List[Trigger] = field(default_factory=list)


def _local(tag: str) -> str:
    """Tag name without its ``{namespace}`` prefix."""
    return tag.rsplit("}", 1)[-1]


def _children(element: ET.Element, name: str) -> List[ET.Element]:
    return [child for child in element if _local(child.tag) == name]


def _char_ref(match: re.Match) -> str:
    code = int(match.group(1))
    if code > sys.maxunicode:
        return match.group(0)
    return chr(code)


def decode_text(raw: str) -> str:
    """Decode entities left over after XML parsing and normalize newlines.

    The XML parser already resolves ``&#10;`` and friends; exports that were
    escaped twice still carry them as text. References outside the Unicode
    range are kept as written.
    """
    decoded = _CHAR_REF.sub(_char_ref, raw)
    decoded = _NAMED_REF.sub(lambda m: _NAMED_ENTITIES[m.group(1)], decoded)
    return normalize_newlines(decoded)


def _find_form_module(root: ET.Element) -> Optional[ET.Element]:
    if _local(root.tag) == "FormModule":
        return root
    for element in root.iter():
        if _local(element.tag) == "FormModule":
            return element
    return None


def _parse_trigger(element: ET.Element, block_name: str = "", item_name: str = "") -> Trigger:
    return Trigger(
        name=element.get("Name", ""),
        text=decode_text(element.get("TriggerText", "")),
        block_name=block_name,
        item_name=item_name,
        fire_in_query=element.get("FireInQueryMode") == "true",
    )


def parse_form_module(xml_text: str) -> FormModuleSource:
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        raise FormsXmlError(f"Invalid Oracle Forms XML: {exc}") from exc

    module = _find_form_module(root)
    if module is None:
        raise FormsXmlError("Invalid Oracle Forms XML: No FormModule found")

    source = FormModuleSource(name=module.get("Name", "Unknown"))

    for element in module.iter():
        if _local(element.tag) == "ProgramUnit":
            source.program_units.append(ProgramUnit(
                name=element.get("Name", ""),
                program_unit_type=element.get("ProgramUnitType", "Procedure"),
                text=decode_text(element.get("ProgramUnitText", "")),
            ))

    source.triggers.extend(_parse_trigger(t) for t in _children(module, "Trigger"))
    for block in _children(module, "Block"):
        block_name = block.get("Name", "")
        source.triggers.extend(_parse_trigger(t, block_name) for t in _children(block, "Trigger"))
        for item in _children(block, "Item"):
            item_name = item.get("Name", "")
            source.triggers.extend(
                _parse_trigger(t, block_name, item_name) for t in _children(item, "Trigger")
            )

    logger.debug(
        "Form %s: %d program unit(s), %d trigger(s)",
        source.name, len(source.program_units), len(source.triggers),
    )
    return source


def load_form_module(source: Union[str, Path]) -> FormModuleSource:
    """Read a Forms XML export from a path or from XML text."""
    if isinstance(source, Path) or not source.lstrip().startswith("<"):
        path = Path(source)
        try:
            xml_text = path.read_text(encoding="utf-8", errors="ignore")
        except OSError as exc:
            raise FormsXmlError(f"Cannot read {path}: {exc}") from exc
        return parse_form_module(xml_text)
    return parse_form_module(source)
