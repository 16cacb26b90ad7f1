"""Section router: update, delete and the section's fields."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from anamnesis.database import get_db
from anamnesis.schemas.envelope import ApiResponse, ok
from anamnesis.schemas.template import (
    OrderItem,
    SectionUpdate,
    SectionRead,
    FieldCreate,
    FieldRead,
)
from anamnesis.services.template import TemplateService

router = APIRouter()


@router.patch("/{section_id}", response_model=ApiResponse[SectionRead])
async def update_section(
    section_id: int,
    section_data: SectionUpdate,
    db: Session = Depends(get_db),
):
    """Partially update a section."""
    section = TemplateService.update_section(db, section_id, section_data)
    return ok(SectionRead.model_validate(section))


@router.delete("/{section_id}", response_model=ApiResponse[None])
async def delete_section(section_id: int, db: Session = Depends(get_db)):
    """Delete a section; rejected while it has fields."""
    TemplateService.delete_section(db, section_id)
    return ok(message="Section deleted successfully")


@router.get("/{section_id}/fields", response_model=ApiResponse[List[FieldRead]])
async def list_fields(section_id: int, db: Session = Depends(get_db)):
    """Ordered fields of a section."""
    fields = TemplateService.get_fields(db, section_id)
    return ok([FieldRead.model_validate(f) for f in fields])


@router.post("/{section_id}/fields", response_model=ApiResponse[FieldRead])
async def create_field(
    section_id: int,
    field_data: FieldCreate,
    db: Session = Depends(get_db),
):
    """Create a field in a section."""
    field = TemplateService.create_field(db, section_id, field_data)
    return ok(FieldRead.model_validate(field))


@router.patch("/{section_id}/fields/reorder", response_model=ApiResponse[List[FieldRead]])
async def reorder_fields(
    section_id: int,
    items: List[OrderItem],
    db: Session = Depends(get_db),
):
    """Apply a new field order; returns the ordered fields."""
    fields = TemplateService.reorder_fields(db, section_id, items)
    return ok([FieldRead.model_validate(f) for f in fields])
