"""Tests for the field type registry."""

from types import SimpleNamespace

from anamnesis.engine.field_types import (
    FIELD_TYPES,
    InputCapability,
    default_options,
    get_field_type,
    next_default_label,
    search_palette,
)
from anamnesis.models.template import FieldType


def _fields(*tipos):
    return [SimpleNamespace(tipo_campo=t) for t in tipos]


def test_every_field_type_is_registered():
    assert set(FIELD_TYPES) == set(FieldType)


def test_capabilities():
    assert get_field_type("textarea").capability is InputCapability.MULTI_LINE
    assert get_field_type("checkbox").capability is InputCapability.MULTI_CHOICE
    assert get_field_type("radio").capability is InputCapability.SINGLE_CHOICE
    assert get_field_type("signature").capability is InputCapability.SIGNATURE
    assert get_field_type("cpf").max_length == 14


def test_unknown_tag_falls_back_to_text():
    assert get_field_type("color_picker").tipo is FieldType.TEXT


def test_next_default_label_numbers_same_type_only():
    assert next_default_label(FieldType.TEXT, []) == "Text"
    assert next_default_label(FieldType.TEXT, _fields("text")) == "Text 2"
    assert next_default_label(FieldType.TEXT, _fields("text", "email", "text")) == "Text 3"
    assert next_default_label(FieldType.EMAIL, _fields("text", "text")) == "Email"


def test_next_default_label_skips_labels_in_use():
    remaining = [SimpleNamespace(tipo_campo="text", label="Text 2")]
    assert next_default_label(FieldType.TEXT, remaining) == "Text 3"

    renamed = [SimpleNamespace(tipo_campo="email", label="Text")]
    assert next_default_label(FieldType.TEXT, renamed) == "Text 2"


def test_default_options_only_for_choice_types():
    assert default_options(FieldType.SELECT) == ["Option 1", "Option 2"]
    assert default_options(FieldType.TEXT) is None

    options = default_options(FieldType.RADIO)
    options.append("Option 3")
    assert default_options(FieldType.RADIO) == ["Option 1", "Option 2"]


def test_search_palette():
    assert len(search_palette("")) == len(FIELD_TYPES)
    labels = [spec.default_label for spec in search_palette("choice")]
    assert labels == ["Single Choice", "Multiple Choice"]
    assert [spec.tipo for spec in search_palette("MASK")] == [FieldType.PHONE, FieldType.CPF]
