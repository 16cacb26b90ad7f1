"""Field router."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from anamnesis.database import get_db
from anamnesis.schemas.envelope import ApiResponse, ok
from anamnesis.schemas.template import FieldUpdate, FieldRead
from anamnesis.services.template import TemplateService

router = APIRouter()


@router.patch("/{field_id}", response_model=ApiResponse[FieldRead])
async def update_field(
    field_id: int,
    field_data: FieldUpdate,
    db: Session = Depends(get_db),
):
    """Partially update a field."""
    field = TemplateService.update_field(db, field_id, field_data)
    return ok(FieldRead.model_validate(field))


@router.delete("/{field_id}", response_model=ApiResponse[None])
async def delete_field(field_id: int, db: Session = Depends(get_db)):
    """Delete a field."""
    TemplateService.delete_field(db, field_id)
    return ok(message="Field deleted successfully")


@router.post("/{field_id}/duplicate", response_model=ApiResponse[FieldRead])
async def duplicate_field(field_id: int, db: Session = Depends(get_db)):
    """Clone a field to the end of its section."""
    field = TemplateService.duplicate_field(db, field_id)
    return ok(FieldRead.model_validate(field))
