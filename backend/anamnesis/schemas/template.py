"""Template, section and field Pydantic schemas."""

from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field, model_validator

from anamnesis.models.template import (
    CHOICE_FIELD_TYPES,
    FieldType,
    FieldWidth,
    SystemField,
    TemplateCategory,
)


class OrderItem(BaseModel):
    """One entry of a reorder request."""
    id: int
    ordem: int = Field(..., ge=0)


class SectionCreate(BaseModel):
    """Schema for creating a section."""
    titulo: str = Field(..., min_length=1, max_length=255)
    descricao: Optional[str] = None
    obrigatorio: bool = False
    ordem: Optional[int] = Field(None, ge=0, description="Insert position; appended when omitted")


class SectionUpdate(BaseModel):
    """Schema for a partial section update."""
    titulo: Optional[str] = Field(None, min_length=1, max_length=255)
    descricao: Optional[str] = None
    obrigatorio: Optional[bool] = None


class SectionRead(BaseModel):
    """Canonical section record."""
    id: int
    template_id: int
    titulo: str
    descricao: Optional[str] = None
    ordem: int
    obrigatorio: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FieldCreate(BaseModel):
    """Schema for creating a field inside a section."""
    tipo_campo: FieldType
    label: str = Field(..., min_length=1, max_length=255)
    placeholder: Optional[str] = None
    ajuda: Optional[str] = Field(None, description="Help text shown under the label")
    obrigatorio: bool = False
    largura: FieldWidth = FieldWidth.FULL
    ordem: Optional[int] = Field(None, ge=0, description="Insert position; appended when omitted")
    opcoes: Optional[List[str]] = Field(None, description="Choices for select/radio/checkbox")
    campo_sistema: Optional[SystemField] = None

    @model_validator(mode="after")
    def check_options(self):
        if self.tipo_campo in CHOICE_FIELD_TYPES and not self.opcoes:
            raise ValueError(f"Field type '{self.tipo_campo.value}' requires at least one option")
        return self


class FieldUpdate(BaseModel):
    """Schema for a partial field update."""
    tipo_campo: Optional[FieldType] = None
    label: Optional[str] = Field(None, min_length=1, max_length=255)
    placeholder: Optional[str] = None
    ajuda: Optional[str] = None
    obrigatorio: Optional[bool] = None
    largura: Optional[FieldWidth] = None
    opcoes: Optional[List[str]] = None
    campo_sistema: Optional[SystemField] = None


class FieldRead(BaseModel):
    """
    Canonical field record.

    ``tipo_campo`` and ``largura`` are plain strings here: readers must cope
    with tags they do not know.
    """
    id: int
    secao_id: int
    tipo_campo: str
    label: str
    placeholder: Optional[str] = None
    ajuda: Optional[str] = None
    obrigatorio: bool = False
    largura: str = FieldWidth.FULL.value
    ordem: int
    opcoes: Optional[List[str]] = None
    campo_sistema: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SectionDocument(BaseModel):
    """A section with its ordered fields."""
    secao: SectionRead
    campos: List[FieldRead] = []


class TemplateCreate(BaseModel):
    """Schema for creating a new template."""
    nome: str = Field(..., min_length=1, max_length=255)
    descricao: Optional[str] = None
    tipo: TemplateCategory = TemplateCategory.GERAL


class TemplateUpdate(BaseModel):
    """Schema for updating template metadata."""
    nome: Optional[str] = Field(None, min_length=1, max_length=255)
    descricao: Optional[str] = None
    tipo: Optional[TemplateCategory] = None


class TemplateToggle(BaseModel):
    """Schema for activating/deactivating a template."""
    ativo: bool


class TemplateDuplicate(BaseModel):
    """Schema for duplicating a template."""
    novo_nome: Optional[str] = Field(None, min_length=1, max_length=255)


class TemplateRead(BaseModel):
    """Template metadata."""
    id: int
    nome: str
    descricao: Optional[str] = None
    tipo: str
    versao: int
    ativo: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TemplateDocument(TemplateRead):
    """Template with its full section/field structure."""
    secoes: List[SectionDocument] = []
