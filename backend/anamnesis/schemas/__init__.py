"""Pydantic schemas for request/response validation."""

from anamnesis.schemas.envelope import ApiResponse, ok, fail
from anamnesis.schemas.template import (
    OrderItem,
    SectionCreate,
    SectionUpdate,
    SectionRead,
    FieldCreate,
    FieldUpdate,
    FieldRead,
    SectionDocument,
    TemplateCreate,
    TemplateUpdate,
    TemplateToggle,
    TemplateDuplicate,
    TemplateRead,
    TemplateDocument,
)
from anamnesis.schemas.anamnesis import (
    AnamnesisCreate,
    AnamnesisRead,
    AnswerIn,
    DraftSave,
    FinalizeRequest,
    PublicAnamnesisSummary,
    PublicTemplate,
    PublicAnamnesisDocument,
)

__all__ = [
    # Envelope
    "ApiResponse",
    "ok",
    "fail",
    # Template
    "OrderItem",
    "SectionCreate",
    "SectionUpdate",
    "SectionRead",
    "FieldCreate",
    "FieldUpdate",
    "FieldRead",
    "SectionDocument",
    "TemplateCreate",
    "TemplateUpdate",
    "TemplateToggle",
    "TemplateDuplicate",
    "TemplateRead",
    "TemplateDocument",
    # Anamnesis
    "AnamnesisCreate",
    "AnamnesisRead",
    "AnswerIn",
    "DraftSave",
    "FinalizeRequest",
    "PublicAnamnesisSummary",
    "PublicTemplate",
    "PublicAnamnesisDocument",
]
