"""Template service: template metadata, section/field CRUD and reordering."""

import logging
from typing import Optional, List, Dict, Any, Sequence

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from anamnesis.models.template import Template, Section, Field, CHOICE_FIELD_TYPES, FieldType
from anamnesis.models.anamnesis import Anamnesis
from anamnesis.schemas.template import (
    OrderItem,
    SectionCreate,
    SectionUpdate,
    FieldCreate,
    FieldUpdate,
    TemplateCreate,
    TemplateUpdate,
    SectionRead,
    FieldRead,
)

logger = logging.getLogger(__name__)


def _not_found(what: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")


class TemplateService:
    """Service for template structure management."""

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    @staticmethod
    def get_template(db: Session, template_id: int) -> Optional[Template]:
        """Get a template by ID with its sections and fields loaded."""
        return db.query(Template).options(
            selectinload(Template.secoes).selectinload(Section.campos)
        ).filter(Template.id == template_id).first()

    @staticmethod
    def require_template(db: Session, template_id: int) -> Template:
        """Get a template or raise 404."""
        template = TemplateService.get_template(db, template_id)
        if not template:
            raise _not_found("Template")
        return template

    @staticmethod
    def get_templates(
        db: Session,
        tipo: Optional[str] = None,
        ativo: Optional[bool] = None,
        busca: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Template]:
        """List templates, optionally filtered by category, active flag and name."""
        query = db.query(Template)
        if tipo:
            query = query.filter(Template.tipo == tipo)
        if ativo is not None:
            query = query.filter(Template.ativo == ativo)
        if busca:
            query = query.filter(Template.nome.ilike(f"%{busca}%"))
        return query.order_by(Template.nome).offset(skip).limit(limit).all()

    @staticmethod
    def create_template(db: Session, template_data: TemplateCreate) -> Template:
        """Create an empty template at version 1."""
        db_template = Template(
            nome=template_data.nome,
            descricao=template_data.descricao,
            tipo=template_data.tipo.value,
            versao=1,
            ativo=True,
        )
        db.add(db_template)
        db.commit()
        db.refresh(db_template)
        logger.info("Template %s created: %s", db_template.id, db_template.nome)
        return db_template

    @staticmethod
    def update_template(db: Session, template_id: int, template_data: TemplateUpdate) -> Template:
        """Update template metadata (does not bump the version)."""
        db_template = TemplateService.require_template(db, template_id)
        update_data = template_data.model_dump(exclude_unset=True)
        if update_data.get("tipo") is not None:
            update_data["tipo"] = update_data["tipo"].value
        for key, value in update_data.items():
            setattr(db_template, key, value)
        db.commit()
        db.refresh(db_template)
        return db_template

    @staticmethod
    def set_active(db: Session, template_id: int, ativo: bool) -> Template:
        """Activate or deactivate a template."""
        db_template = TemplateService.require_template(db, template_id)
        db_template.ativo = ativo
        db.commit()
        db.refresh(db_template)
        return db_template

    @staticmethod
    def delete_template(db: Session, template_id: int) -> None:
        """
        Delete a template and its structure.

        Rejected with 409 while any anamnesis references it.
        """
        db_template = TemplateService.require_template(db, template_id)

        dependents = db.query(func.count(Anamnesis.id)).filter(
            Anamnesis.template_id == template_id
        ).scalar()
        if dependents:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Template is used by {dependents} anamnesis record(s) and cannot be deleted"
            )

        db.delete(db_template)
        db.commit()
        logger.info("Template %s deleted", template_id)

    @staticmethod
    def duplicate_template(db: Session, template_id: int, novo_nome: Optional[str] = None) -> Template:
        """Deep-copy a template (sections and fields) into a new version-1 template."""
        source = TemplateService.require_template(db, template_id)

        copy = Template(
            nome=novo_nome or f"{source.nome} (copy)",
            descricao=source.descricao,
            tipo=source.tipo,
            versao=1,
            ativo=True,
        )
        db.add(copy)
        db.flush()

        for secao in source.secoes:
            new_secao = Section(
                template_id=copy.id,
                titulo=secao.titulo,
                descricao=secao.descricao,
                ordem=secao.ordem,
                obrigatorio=secao.obrigatorio,
            )
            db.add(new_secao)
            db.flush()
            for campo in secao.campos:
                db.add(TemplateService._clone_field(campo, new_secao.id, campo.ordem))

        db.commit()
        return TemplateService.require_template(db, copy.id)

    @staticmethod
    def build_document(template: Template) -> Dict[str, Any]:
        """Serialize a template's structure as ``{nome, tipo, secoes: [{secao, campos}]}``."""
        secoes = []
        for secao in sorted(template.secoes, key=lambda s: s.ordem):
            campos = sorted(secao.campos, key=lambda c: c.ordem)
            secoes.append({
                "secao": SectionRead.model_validate(secao).model_dump(mode="json"),
                "campos": [FieldRead.model_validate(c).model_dump(mode="json") for c in campos],
            })
        return {"nome": template.nome, "tipo": template.tipo, "secoes": secoes}

    @staticmethod
    def _bump_version(template: Template) -> None:
        """Structural changes move the template to a new version."""
        template.versao = (template.versao or 0) + 1

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    @staticmethod
    def get_section(db: Session, section_id: int) -> Section:
        """Get a section or raise 404."""
        secao = db.query(Section).options(
            selectinload(Section.campos)
        ).filter(Section.id == section_id).first()
        if not secao:
            raise _not_found("Section")
        return secao

    @staticmethod
    def get_sections(db: Session, template_id: int) -> List[Section]:
        """Ordered sections of a template."""
        TemplateService.require_template(db, template_id)
        return db.query(Section).filter(
            Section.template_id == template_id
        ).order_by(Section.ordem).all()

    @staticmethod
    def create_section(db: Session, template_id: int, section_data: SectionCreate) -> Section:
        """Insert a section at the requested position (default: end)."""
        template = TemplateService.require_template(db, template_id)
        siblings = sorted(template.secoes, key=lambda s: s.ordem)

        position = TemplateService._insert_position(section_data.ordem, len(siblings))
        for sibling in siblings[position:]:
            sibling.ordem += 1

        db_section = Section(
            template_id=template_id,
            titulo=section_data.titulo,
            descricao=section_data.descricao,
            obrigatorio=section_data.obrigatorio,
            ordem=position,
        )
        db.add(db_section)
        TemplateService._bump_version(template)
        db.commit()
        db.refresh(db_section)
        return db_section

    @staticmethod
    def update_section(db: Session, section_id: int, section_data: SectionUpdate) -> Section:
        """Apply a partial update to a section."""
        db_section = TemplateService.get_section(db, section_id)
        for key, value in section_data.model_dump(exclude_unset=True).items():
            setattr(db_section, key, value)
        TemplateService._bump_version(db_section.template)
        db.commit()
        db.refresh(db_section)
        return db_section

    @staticmethod
    def delete_section(db: Session, section_id: int) -> None:
        """Delete an empty section and close the gap in the order."""
        db_section = TemplateService.get_section(db, section_id)
        if db_section.campos:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Section is not empty; remove its fields first"
            )

        template = db_section.template
        db.delete(db_section)
        db.flush()
        remaining = db.query(Section).filter(
            Section.template_id == template.id
        ).order_by(Section.ordem).all()
        TemplateService._densify(remaining)
        TemplateService._bump_version(template)
        db.commit()

    @staticmethod
    def reorder_sections(db: Session, template_id: int, items: List[OrderItem]) -> List[Section]:
        """Apply a full new order to a template's sections."""
        template = TemplateService.require_template(db, template_id)
        ordered = TemplateService._apply_order(template.secoes, items, "section")
        TemplateService._bump_version(template)
        db.commit()
        for secao in ordered:
            db.refresh(secao)
        return ordered

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    @staticmethod
    def get_field(db: Session, field_id: int) -> Field:
        """Get a field or raise 404."""
        campo = db.query(Field).filter(Field.id == field_id).first()
        if not campo:
            raise _not_found("Field")
        return campo

    @staticmethod
    def get_fields(db: Session, section_id: int) -> List[Field]:
        """Ordered fields of a section."""
        TemplateService.get_section(db, section_id)
        return db.query(Field).filter(Field.secao_id == section_id).order_by(Field.ordem).all()

    @staticmethod
    def create_field(db: Session, section_id: int, field_data: FieldCreate) -> Field:
        """Insert a field into a section at the requested position (default: end)."""
        db_section = TemplateService.get_section(db, section_id)
        siblings = sorted(db_section.campos, key=lambda c: c.ordem)

        position = TemplateService._insert_position(field_data.ordem, len(siblings))
        for sibling in siblings[position:]:
            sibling.ordem += 1

        db_field = Field(
            secao_id=section_id,
            tipo_campo=field_data.tipo_campo.value,
            label=field_data.label,
            placeholder=field_data.placeholder,
            ajuda=field_data.ajuda,
            obrigatorio=field_data.obrigatorio,
            largura=field_data.largura.value,
            ordem=position,
            opcoes=field_data.opcoes,
            campo_sistema=field_data.campo_sistema.value if field_data.campo_sistema else None,
        )
        db.add(db_field)
        TemplateService._bump_version(db_section.template)
        db.commit()
        db.refresh(db_field)
        return db_field

    @staticmethod
    def update_field(db: Session, field_id: int, field_data: FieldUpdate) -> Field:
        """Apply a partial update to a field."""
        db_field = TemplateService.get_field(db, field_id)
        update_data = field_data.model_dump(exclude_unset=True)

        for key in ("tipo_campo", "largura", "campo_sistema"):
            if update_data.get(key) is not None:
                update_data[key] = update_data[key].value

        # Choice types must keep a non-empty option list
        new_type = update_data.get("tipo_campo", db_field.tipo_campo)
        new_options = update_data.get("opcoes", db_field.opcoes)
        if FieldType(new_type) in CHOICE_FIELD_TYPES and not new_options:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Field type '{new_type}' requires at least one option"
            )

        for key, value in update_data.items():
            setattr(db_field, key, value)
        TemplateService._bump_version(db_field.secao.template)
        db.commit()
        db.refresh(db_field)
        return db_field

    @staticmethod
    def delete_field(db: Session, field_id: int) -> None:
        """Delete a field and close the gap in its section's order."""
        db_field = TemplateService.get_field(db, field_id)
        db_section = db_field.secao
        db.delete(db_field)
        db.flush()
        remaining = db.query(Field).filter(
            Field.secao_id == db_section.id
        ).order_by(Field.ordem).all()
        TemplateService._densify(remaining)
        TemplateService._bump_version(db_section.template)
        db.commit()

    @staticmethod
    def duplicate_field(db: Session, field_id: int) -> Field:
        """Clone a field (everything but identity) to the end of its section."""
        source = TemplateService.get_field(db, field_id)
        db_section = source.secao
        next_order = len(db_section.campos)

        clone = TemplateService._clone_field(source, db_section.id, next_order)
        db.add(clone)
        TemplateService._bump_version(db_section.template)
        db.commit()
        db.refresh(clone)
        return clone

    @staticmethod
    def reorder_fields(db: Session, section_id: int, items: List[OrderItem]) -> List[Field]:
        """Apply a full new order to a section's fields."""
        db_section = TemplateService.get_section(db, section_id)
        ordered = TemplateService._apply_order(db_section.campos, items, "field")
        TemplateService._bump_version(db_section.template)
        db.commit()
        for campo in ordered:
            db.refresh(campo)
        return ordered

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _clone_field(source: Field, secao_id: int, ordem: int) -> Field:
        return Field(
            secao_id=secao_id,
            tipo_campo=source.tipo_campo,
            label=source.label,
            placeholder=source.placeholder,
            ajuda=source.ajuda,
            obrigatorio=source.obrigatorio,
            largura=source.largura,
            ordem=ordem,
            opcoes=list(source.opcoes) if source.opcoes is not None else None,
            campo_sistema=source.campo_sistema,
        )

    @staticmethod
    def _insert_position(requested: Optional[int], count: int) -> int:
        if requested is None or requested > count:
            return count
        return requested

    @staticmethod
    def _densify(items: Sequence) -> None:
        """Renumber ``ordem`` to 0..N-1 keeping the current relative order."""
        for index, item in enumerate(items):
            item.ordem = index

    @staticmethod
    def _apply_order(children: Sequence, items: List[OrderItem], kind: str) -> list:
        """
        Validate a reorder request against the current children and apply it.

        The request must name every child exactly once. Positions are taken
        from the requested ``ordem`` values and then renumbered densely.
        """
        by_id = {child.id: child for child in children}
        requested_ids = [item.id for item in items]

        if len(set(requested_ids)) != len(requested_ids) or set(requested_ids) != set(by_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Reorder must list every {kind} of the parent exactly once"
            )

        ordered_items = sorted(items, key=lambda item: item.ordem)
        ordered = [by_id[item.id] for item in ordered_items]
        TemplateService._densify(ordered)
        return ordered
