"""
Rendering dispatcher.

Turns a field plus its current value into a ``RenderedInput``: a plain
description of the widget to show. The widget is chosen from a dispatch
table keyed by the field type's input capability. Every widget reports edits
through the same ``on_change(field_id, value)`` callback, so the public
runtime and the builder preview share this module with different stores.
"""

from dataclasses import dataclass, field as dataclass_field
from typing import Any, Callable, Dict, List, Mapping, Optional

from anamnesis.engine.field_types import InputCapability, get_field_type
from anamnesis.engine.signature import render_typed_signature
from anamnesis.schemas.template import FieldRead, SectionRead

OnChange = Callable[[int, Any], None]

# 12-column grid spans for the display width tags
WIDTH_COLUMNS = {"full": 12, "half": 6, "third": 4}

REQUIRED_MESSAGE = "This field is required"


@dataclass
class RenderedInput:
    field_id: int
    capability: InputCapability
    input_type: str
    label: str
    value: Any
    on_change: OnChange
    required: bool = False
    placeholder: Optional[str] = None
    help_text: Optional[str] = None
    columns: int = 12
    options: List[str] = dataclass_field(default_factory=list)
    error: Optional[str] = None
    max_length: Optional[int] = None
    rows: Optional[int] = None

    def change(self, value: Any) -> None:
        self.value = value
        self.on_change(self.field_id, value)

    def toggle_option(self, option: str, checked: bool) -> None:
        """Multi-choice: add or remove one option from the selection."""
        if self.capability is not InputCapability.MULTI_CHOICE:
            raise TypeError(f"toggle_option on a {self.capability.value} input")
        current = list(self.value) if isinstance(self.value, list) else []
        if checked and option not in current:
            current.append(option)
        elif not checked:
            current = [v for v in current if v != option]
        self.change(current)

    def sign(self, name: str) -> None:
        """Signature: render the typed name and report the image as the value."""
        if self.capability is not InputCapability.SIGNATURE:
            raise TypeError(f"sign on a {self.capability.value} input")
        self.change(render_typed_signature(name))


@dataclass
class RenderedSection:
    section_id: int
    title: str
    description: Optional[str]
    required: bool
    inputs: List[RenderedInput]


def _base(field: FieldRead, value, on_change: OnChange, error: Optional[str]) -> RenderedInput:
    spec = get_field_type(field.tipo_campo)
    return RenderedInput(
        field_id=field.id,
        capability=spec.capability,
        input_type=spec.input_type,
        label=field.label,
        value=value,
        on_change=on_change,
        required=field.obrigatorio,
        placeholder=field.placeholder or spec.placeholder,
        help_text=field.ajuda,
        columns=WIDTH_COLUMNS.get(field.largura, 12),
        error=error,
        max_length=spec.max_length,
    )


def _text_value(value) -> str:
    if value is None or isinstance(value, (list, dict)):
        return ""
    return str(value)


def render_single_line(field, value, on_change, error=None) -> RenderedInput:
    return _base(field, _text_value(value), on_change, error)


def render_multi_line(field, value, on_change, error=None) -> RenderedInput:
    rendered = _base(field, _text_value(value), on_change, error)
    rendered.rows = 4
    return rendered


def render_numeric(field, value, on_change, error=None) -> RenderedInput:
    return _base(field, _text_value(value), on_change, error)


def render_date(field, value, on_change, error=None) -> RenderedInput:
    rendered = _base(field, _text_value(value), on_change, error)
    rendered.placeholder = None
    return rendered


def render_single_choice(field, value, on_change, error=None) -> RenderedInput:
    rendered = _base(field, _text_value(value), on_change, error)
    rendered.options = list(field.opcoes or [])
    return rendered


def render_multi_choice(field, value, on_change, error=None) -> RenderedInput:
    rendered = _base(field, list(value) if isinstance(value, list) else [], on_change, error)
    rendered.options = list(field.opcoes or [])
    rendered.placeholder = None
    return rendered


def render_signature(field, value, on_change, error=None) -> RenderedInput:
    rendered = _base(field, _text_value(value), on_change, error)
    rendered.placeholder = "Type your full name to sign"
    return rendered


RENDERERS: Dict[InputCapability, Callable[..., RenderedInput]] = {
    InputCapability.SINGLE_LINE: render_single_line,
    InputCapability.MULTI_LINE: render_multi_line,
    InputCapability.NUMERIC: render_numeric,
    InputCapability.DATE: render_date,
    InputCapability.SINGLE_CHOICE: render_single_choice,
    InputCapability.MULTI_CHOICE: render_multi_choice,
    InputCapability.SIGNATURE: render_signature,
}


def render_field(field: FieldRead, value: Any, on_change: OnChange,
                 error: Optional[str] = None) -> RenderedInput:
    """Render one field; unknown type tags render as single-line text."""
    capability = get_field_type(field.tipo_campo).capability
    renderer = RENDERERS.get(capability, render_single_line)
    return renderer(field, value, on_change, error)


def render_section(section: SectionRead, fields: List[FieldRead], answers: Mapping[int, Any],
                   errors: Mapping[int, str], on_change: OnChange) -> RenderedSection:
    """Render a section header and its fields in order."""
    return RenderedSection(
        section_id=section.id,
        title=section.titulo,
        description=section.descricao,
        required=section.obrigatorio,
        inputs=[
            render_field(f, answers.get(f.id), on_change, errors.get(f.id))
            for f in sorted(fields, key=lambda f: f.ordem)
        ],
    )
