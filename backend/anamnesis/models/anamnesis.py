"""Anamnesis instance and response models."""

from datetime import datetime
from typing import Optional, List, Dict, Any
from enum import Enum as PyEnum

from sqlalchemy import (
    String, Text, DateTime, ForeignKey, JSON, Enum, Integer, Boolean, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from anamnesis.database import Base


class AnamnesisStatus(str, PyEnum):
    """Lifecycle states of a dispatched anamnesis."""
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    EXPIRED = "expired"


class Anamnesis(Base):
    """
    Anamnesis represents one dispatched copy of a template.

    The template structure is frozen into ``template_snapshot`` at dispatch
    time, so later template edits never change what the recipient fills in.
    Access from the public side is only through ``link_token``.
    """

    __tablename__ = "anamneses"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    # Template reference
    template_id: Mapped[int] = mapped_column(
        ForeignKey("anamnese_templates.id"),
        nullable=False,
        index=True
    )
    template_versao: Mapped[int] = mapped_column(Integer, nullable=False)
    template_snapshot: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    # Public access
    link_token: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    link_expira_em: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    status: Mapped[AnamnesisStatus] = mapped_column(
        Enum(AnamnesisStatus),
        default=AnamnesisStatus.IN_PROGRESS,
        nullable=False,
        index=True
    )
    progresso_percentual: Mapped[int] = mapped_column(Integer, default=0)

    # Consents
    consentimento_lgpd: Mapped[bool] = mapped_column(Boolean, default=False)
    consentimento_fotos: Mapped[bool] = mapped_column(Boolean, default=False)
    consentimento_tratamento: Mapped[bool] = mapped_column(Boolean, default=False)

    # Recipient record; system-field answers are merged in on finalize
    paciente: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        onupdate=datetime.utcnow,
        nullable=True
    )
    data_preenchimento: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Relationships
    template: Mapped["Template"] = relationship("Template", back_populates="anamneses")
    respostas: Mapped[List["AnamnesisResponse"]] = relationship(
        "AnamnesisResponse",
        back_populates="anamnesis",
        cascade="all, delete-orphan",
        order_by="AnamnesisResponse.campo_id",
    )

    def __repr__(self) -> str:
        return f"<Anamnesis(id={self.id}, template_id={self.template_id}, status='{self.status}')>"

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Whether the public link is past its expiry instant."""
        return (now or datetime.utcnow()) >= self.link_expira_em


class AnamnesisResponse(Base):
    """
    One answer of an anamnesis, always stored as text.

    There is at most one row per (anamnesis, field); saves upsert.
    """

    __tablename__ = "anamnese_respostas"
    __table_args__ = (
        UniqueConstraint("anamnesis_id", "campo_id", name="uq_resposta_anamnesis_campo"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    anamnesis_id: Mapped[int] = mapped_column(
        ForeignKey("anamneses.id"),
        nullable=False,
        index=True
    )
    campo_id: Mapped[int] = mapped_column(Integer, nullable=False)
    resposta: Mapped[str] = mapped_column(Text, nullable=False, default="")

    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow
    )

    anamnesis: Mapped["Anamnesis"] = relationship("Anamnesis", back_populates="respostas")

    def __repr__(self) -> str:
        return f"<AnamnesisResponse(anamnesis_id={self.anamnesis_id}, campo_id={self.campo_id})>"
