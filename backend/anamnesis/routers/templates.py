"""Template management router."""

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from anamnesis.database import get_db
from anamnesis.schemas.envelope import ApiResponse, ok
from anamnesis.schemas.template import (
    OrderItem,
    SectionCreate,
    SectionRead,
    TemplateCreate,
    TemplateUpdate,
    TemplateToggle,
    TemplateDuplicate,
    TemplateRead,
    TemplateDocument,
)
from anamnesis.services.template import TemplateService

router = APIRouter()


def _document(template) -> TemplateDocument:
    return TemplateDocument(
        **TemplateRead.model_validate(template).model_dump(),
        secoes=TemplateService.build_document(template)["secoes"],
    )


@router.get("", response_model=ApiResponse[List[TemplateRead]])
async def list_templates(
    tipo: Optional[str] = None,
    ativo: Optional[bool] = None,
    busca: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    """List templates filtered by category, active flag and name search."""
    templates = TemplateService.get_templates(db, tipo, ativo, busca, skip, limit)
    return ok([TemplateRead.model_validate(t) for t in templates])


@router.post("", response_model=ApiResponse[TemplateRead])
async def create_template(template_data: TemplateCreate, db: Session = Depends(get_db)):
    """Create an empty template."""
    template = TemplateService.create_template(db, template_data)
    return ok(TemplateRead.model_validate(template))


@router.get("/{template_id}", response_model=ApiResponse[TemplateDocument])
async def get_template(template_id: int, db: Session = Depends(get_db)):
    """Get a template with all its sections and fields."""
    template = TemplateService.require_template(db, template_id)
    return ok(_document(template))


@router.patch("/{template_id}", response_model=ApiResponse[TemplateRead])
async def update_template(
    template_id: int,
    template_data: TemplateUpdate,
    db: Session = Depends(get_db),
):
    """Update template metadata."""
    template = TemplateService.update_template(db, template_id, template_data)
    return ok(TemplateRead.model_validate(template))


@router.delete("/{template_id}", response_model=ApiResponse[None])
async def delete_template(template_id: int, db: Session = Depends(get_db)):
    """Delete a template that no anamnesis references."""
    TemplateService.delete_template(db, template_id)
    return ok(message="Template deleted successfully")


@router.patch("/{template_id}/toggle", response_model=ApiResponse[TemplateRead])
async def toggle_template(
    template_id: int,
    toggle: TemplateToggle,
    db: Session = Depends(get_db),
):
    """Activate or deactivate a template."""
    template = TemplateService.set_active(db, template_id, toggle.ativo)
    return ok(TemplateRead.model_validate(template))


@router.post("/{template_id}/duplicate", response_model=ApiResponse[TemplateDocument])
async def duplicate_template(
    template_id: int,
    body: Optional[TemplateDuplicate] = None,
    db: Session = Depends(get_db),
):
    """Deep-copy a template."""
    novo_nome = body.novo_nome if body else None
    template = TemplateService.duplicate_template(db, template_id, novo_nome)
    return ok(_document(template))


@router.get("/{template_id}/sections", response_model=ApiResponse[List[SectionRead]])
async def list_sections(template_id: int, db: Session = Depends(get_db)):
    """Ordered sections of a template."""
    sections = TemplateService.get_sections(db, template_id)
    return ok([SectionRead.model_validate(s) for s in sections])


@router.post("/{template_id}/sections", response_model=ApiResponse[SectionRead])
async def create_section(
    template_id: int,
    section_data: SectionCreate,
    db: Session = Depends(get_db),
):
    """Create a section in a template."""
    section = TemplateService.create_section(db, template_id, section_data)
    return ok(SectionRead.model_validate(section))


@router.patch("/{template_id}/sections/reorder", response_model=ApiResponse[List[SectionRead]])
async def reorder_sections(
    template_id: int,
    items: List[OrderItem],
    db: Session = Depends(get_db),
):
    """Apply a new section order; returns the ordered sections."""
    sections = TemplateService.reorder_sections(db, template_id, items)
    return ok([SectionRead.model_validate(s) for s in sections])
