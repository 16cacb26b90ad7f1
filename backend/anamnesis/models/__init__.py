"""SQLAlchemy models for the anamnesis form engine."""

from anamnesis.models.template import (
    Template,
    Section,
    Field,
    TemplateCategory,
    FieldType,
    FieldWidth,
    SystemField,
    CHOICE_FIELD_TYPES,
)
from anamnesis.models.anamnesis import Anamnesis, AnamnesisResponse, AnamnesisStatus

__all__ = [
    "Template",
    "Section",
    "Field",
    "TemplateCategory",
    "FieldType",
    "FieldWidth",
    "SystemField",
    "CHOICE_FIELD_TYPES",
    "Anamnesis",
    "AnamnesisResponse",
    "AnamnesisStatus",
]
