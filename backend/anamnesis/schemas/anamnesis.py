"""Anamnesis dispatch and public filling schemas."""

from datetime import datetime
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, Field

from anamnesis.models.anamnesis import AnamnesisStatus
from anamnesis.schemas.template import SectionDocument


class AnamnesisCreate(BaseModel):
    """Schema for dispatching a template to a recipient."""
    template_id: int
    paciente: Dict[str, Any] = Field(default_factory=dict)
    link_expira_em: Optional[datetime] = None


class AnamnesisRead(BaseModel):
    """Staff-side view of an anamnesis."""
    id: int
    template_id: int
    template_versao: int
    link_token: str
    link_expira_em: datetime
    status: AnamnesisStatus
    progresso_percentual: int
    consentimento_lgpd: bool
    consentimento_fotos: bool
    consentimento_tratamento: bool
    paciente: Dict[str, Any] = {}
    data_preenchimento: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AnswerIn(BaseModel):
    """A single field answer, serialized to text."""
    campo_id: int
    resposta: str = ""


class DraftSave(BaseModel):
    """Schema for a draft (autosave) call."""
    respostas: List[AnswerIn] = []
    progresso: int = Field(0, ge=0, le=100)


class FinalizeRequest(BaseModel):
    """Schema for the one-way finalize call."""
    respostas: List[AnswerIn] = []
    consentimento_lgpd: bool = False
    consentimento_fotos: bool = False
    consentimento_tratamento: bool = False


class PublicAnamnesisSummary(BaseModel):
    """What the public side may see about the instance itself."""
    id: int
    status: AnamnesisStatus
    progresso_percentual: int = 0
    link_expira_em: Optional[datetime] = None

    class Config:
        from_attributes = True


class PublicTemplate(BaseModel):
    """Frozen template structure as shown to the recipient."""
    nome: str
    tipo: str
    secoes: List[SectionDocument] = []


class PublicAnamnesisDocument(BaseModel):
    """Everything a public filling session needs, fetched by token."""
    anamnese: PublicAnamnesisSummary
    template: PublicTemplate
    paciente: Dict[str, Any] = {}
    respostas_salvas: List[AnswerIn] = []
