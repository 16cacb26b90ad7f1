"""
Field type registry.

Maps each field type tag to the input capability that renders it and to the
builder palette metadata (default label, description, placeholder).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from anamnesis.models.template import FieldType


class InputCapability(str, Enum):
    """Input widgets the dispatcher knows how to produce."""
    SINGLE_LINE = "single_line"
    MULTI_LINE = "multi_line"
    NUMERIC = "numeric"
    DATE = "date"
    SINGLE_CHOICE = "single_choice"
    MULTI_CHOICE = "multi_choice"
    SIGNATURE = "signature"


@dataclass(frozen=True)
class FieldTypeSpec:
    tipo: FieldType
    capability: InputCapability
    default_label: str
    description: str
    input_type: str = "text"
    placeholder: Optional[str] = None
    max_length: Optional[int] = None
    requires_options: bool = False


FIELD_TYPES: Dict[FieldType, FieldTypeSpec] = {
    spec.tipo: spec
    for spec in (
        FieldTypeSpec(FieldType.TEXT, InputCapability.SINGLE_LINE, "Text",
                      "Single-line text input"),
        FieldTypeSpec(FieldType.TEXTAREA, InputCapability.MULTI_LINE, "Long Text",
                      "Multi-line text input"),
        FieldTypeSpec(FieldType.EMAIL, InputCapability.SINGLE_LINE, "Email",
                      "Validated e-mail address", input_type="email",
                      placeholder="you@email.com"),
        FieldTypeSpec(FieldType.PHONE, InputCapability.SINGLE_LINE, "Phone",
                      "Phone number with mask", input_type="tel",
                      placeholder="(00) 00000-0000"),
        FieldTypeSpec(FieldType.CPF, InputCapability.SINGLE_LINE, "CPF",
                      "Brazilian tax id with mask", placeholder="000.000.000-00",
                      max_length=14),
        FieldTypeSpec(FieldType.DATE, InputCapability.DATE, "Date",
                      "Date picker", input_type="date"),
        FieldTypeSpec(FieldType.NUMBER, InputCapability.NUMERIC, "Number",
                      "Numeric input", input_type="number"),
        FieldTypeSpec(FieldType.SELECT, InputCapability.SINGLE_CHOICE, "Dropdown",
                      "Dropdown menu with options", input_type="select",
                      placeholder="Select an option", requires_options=True),
        FieldTypeSpec(FieldType.RADIO, InputCapability.SINGLE_CHOICE, "Single Choice",
                      "Radio buttons", input_type="radio", requires_options=True),
        FieldTypeSpec(FieldType.CHECKBOX, InputCapability.MULTI_CHOICE, "Multiple Choice",
                      "Checkboxes", input_type="checkbox", requires_options=True),
        FieldTypeSpec(FieldType.SIGNATURE, InputCapability.SIGNATURE, "Signature",
                      "Typed signature", input_type="signature"),
    )
}

# Palette order shown in the builder sidebar
PALETTE: List[FieldTypeSpec] = list(FIELD_TYPES.values())

DEFAULT_OPTIONS = ["Option 1", "Option 2"]


def get_field_type(tipo) -> FieldTypeSpec:
    """Resolve a type tag; unknown tags fall back to short text."""
    try:
        return FIELD_TYPES[FieldType(tipo)]
    except ValueError:
        return FIELD_TYPES[FieldType.TEXT]


def default_label(tipo) -> str:
    return get_field_type(tipo).default_label


def next_default_label(tipo, existing_fields: Iterable) -> str:
    """
    Default label for a new field, disambiguated within its section.

    The first field of a type gets the bare label; the Nth gets ``"<label> N"``
    (``Text``, ``Text 2``, ``Text 3``). A number whose label is already taken
    in the section is skipped.
    """
    existing_fields = list(existing_fields)
    tag = FieldType(tipo).value
    same_type = sum(1 for field in existing_fields if field.tipo_campo == tag)
    taken = {getattr(field, "label", None) for field in existing_fields}
    label = default_label(tipo)
    number = same_type + 1
    candidate = f"{label} {number}" if number > 1 else label
    while candidate in taken:
        number += 1
        candidate = f"{label} {number}"
    return candidate


def default_options(tipo) -> Optional[List[str]]:
    """Starter choices for choice types; ``None`` for everything else."""
    if get_field_type(tipo).requires_options:
        return list(DEFAULT_OPTIONS)
    return None


def search_palette(query: str) -> List[FieldTypeSpec]:
    """Filter the palette by label or description, case-insensitively."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(PALETTE)
    return [
        spec for spec in PALETTE
        if needle in spec.default_label.lower() or needle in spec.description.lower()
    ]
