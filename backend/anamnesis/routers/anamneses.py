"""Staff-side anamnesis router: dispatch and listing."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from anamnesis.database import get_db
from anamnesis.models.anamnesis import AnamnesisStatus
from anamnesis.schemas.anamnesis import AnamnesisCreate, AnamnesisRead
from anamnesis.schemas.envelope import ApiResponse, ok
from anamnesis.services.anamnesis import AnamnesisService

router = APIRouter()


@router.post("", response_model=ApiResponse[AnamnesisRead])
async def create_anamnesis(anamnesis_data: AnamnesisCreate, db: Session = Depends(get_db)):
    """Dispatch a template to a recipient; the response carries the public token."""
    anamnesis = AnamnesisService.create_anamnesis(db, anamnesis_data)
    return ok(AnamnesisRead.model_validate(anamnesis))


@router.get("", response_model=ApiResponse[List[AnamnesisRead]])
async def list_anamneses(
    template_id: Optional[int] = None,
    status_filter: Optional[AnamnesisStatus] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    """List dispatched anamneses."""
    items = AnamnesisService.get_anamneses(db, template_id, status_filter, skip, limit)
    return ok([AnamnesisRead.model_validate(a) for a in items])


@router.get("/{anamnesis_id}", response_model=ApiResponse[AnamnesisRead])
async def get_anamnesis(anamnesis_id: int, db: Session = Depends(get_db)):
    """Get an anamnesis by ID."""
    anamnesis = AnamnesisService.get_anamnesis(db, anamnesis_id)
    if not anamnesis:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Anamnesis not found"
        )
    return ok(AnamnesisRead.model_validate(anamnesis))
