"""Template, section and field models for intake questionnaires."""

from datetime import datetime
from typing import Optional, List
from enum import Enum as PyEnum

from sqlalchemy import String, Text, DateTime, Boolean, JSON, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from anamnesis.database import Base


class TemplateCategory(str, PyEnum):
    """Category tag of a template."""
    ESTETICA_FACIAL = "estetica_facial"
    ESTETICA_CORPORAL = "estetica_corporal"
    ODONTOLOGICO = "odontologico"
    GERAL = "geral"
    OUTRO = "outro"


class FieldType(str, PyEnum):
    """Closed set of field type tags."""
    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    CPF = "cpf"
    TEXTAREA = "textarea"
    NUMBER = "number"
    DATE = "date"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    SIGNATURE = "signature"

    def __str__(self) -> str:
        return self.value


CHOICE_FIELD_TYPES = (FieldType.SELECT, FieldType.RADIO, FieldType.CHECKBOX)


class FieldWidth(str, PyEnum):
    """Display width of a field in the form grid."""
    FULL = "full"
    HALF = "half"
    THIRD = "third"


class SystemField(str, PyEnum):
    """Patient-record attributes a field can populate on finalize."""
    NOME_COMPLETO = "nome_completo"
    NOME_PREFERENCIA = "nome_preferencia"
    CPF = "cpf"
    RG = "rg"
    DATA_NASCIMENTO = "data_nascimento"
    GENERO = "genero"
    ESTADO_CIVIL = "estado_civil"
    TELEFONE = "telefone"
    TELEFONE_SECUNDARIO = "telefone_secundario"
    WHATSAPP = "whatsapp"
    EMAIL = "email"
    ENDERECO_CEP = "endereco_cep"
    ENDERECO_LOGRADOURO = "endereco_logradouro"
    ENDERECO_NUMERO = "endereco_numero"
    ENDERECO_COMPLEMENTO = "endereco_complemento"
    ENDERECO_BAIRRO = "endereco_bairro"
    ENDERECO_CIDADE = "endereco_cidade"
    ENDERECO_ESTADO = "endereco_estado"
    ENDERECO_PAIS = "endereco_pais"


class Template(Base):
    """
    Template model representing a reusable intake questionnaire.

    The structure lives in related Section and Field rows. ``versao`` is
    bumped on every structural change so dispatched anamneses can record
    which revision they were built from.
    """

    __tablename__ = "anamnese_templates"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    nome: Mapped[str] = mapped_column(String(255), nullable=False)
    descricao: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tipo: Mapped[str] = mapped_column(String(50), default=TemplateCategory.GERAL.value)
    versao: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    ativo: Mapped[bool] = mapped_column(Boolean, default=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        onupdate=datetime.utcnow,
        nullable=True
    )

    # Relationships
    secoes: Mapped[List["Section"]] = relationship(
        "Section",
        back_populates="template",
        order_by="Section.ordem",
        cascade="all, delete-orphan",
    )
    anamneses: Mapped[List["Anamnesis"]] = relationship(
        "Anamnesis",
        back_populates="template"
    )

    def __repr__(self) -> str:
        return f"<Template(id={self.id}, nome='{self.nome}', versao={self.versao})>"


class Section(Base):
    """A named, orderable group of fields within a template."""

    __tablename__ = "anamnese_secoes"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    template_id: Mapped[int] = mapped_column(
        ForeignKey("anamnese_templates.id"),
        nullable=False,
        index=True
    )
    titulo: Mapped[str] = mapped_column(String(255), nullable=False)
    descricao: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ordem: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    obrigatorio: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        onupdate=datetime.utcnow,
        nullable=True
    )

    template: Mapped["Template"] = relationship("Template", back_populates="secoes")
    campos: Mapped[List["Field"]] = relationship(
        "Field",
        back_populates="secao",
        order_by="Field.ordem",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Section(id={self.id}, titulo='{self.titulo}', ordem={self.ordem})>"


class Field(Base):
    """A single input definition within a section."""

    __tablename__ = "anamnese_campos"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    secao_id: Mapped[int] = mapped_column(
        ForeignKey("anamnese_secoes.id"),
        nullable=False,
        index=True
    )
    tipo_campo: Mapped[str] = mapped_column(String(30), nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    placeholder: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    ajuda: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    obrigatorio: Mapped[bool] = mapped_column(Boolean, default=False)
    largura: Mapped[str] = mapped_column(String(10), default=FieldWidth.FULL.value)
    ordem: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Choice list for select/radio/checkbox
    opcoes: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)

    # Optional patient-record binding
    campo_sistema: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        onupdate=datetime.utcnow,
        nullable=True
    )

    secao: Mapped["Section"] = relationship("Section", back_populates="campos")

    def __repr__(self) -> str:
        return f"<Field(id={self.id}, tipo='{self.tipo_campo}', label='{self.label}')>"
