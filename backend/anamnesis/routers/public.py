"""Public (token-bound, unauthenticated) filling endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from anamnesis.database import get_db
from anamnesis.schemas.anamnesis import DraftSave, FinalizeRequest, PublicAnamnesisDocument
from anamnesis.schemas.envelope import ApiResponse, ok
from anamnesis.services.anamnesis import AnamnesisService

router = APIRouter()


@router.get("/{token}", response_model=ApiResponse[PublicAnamnesisDocument])
async def get_public_anamnesis(token: str, db: Session = Depends(get_db)):
    """Fetch the frozen template, saved answers and status for a token."""
    return ok(AnamnesisService.get_public_document(db, token))


@router.post("/{token}/draft", response_model=ApiResponse[None])
async def save_draft(token: str, draft: DraftSave, db: Session = Depends(get_db)):
    """Save the full current answer set (autosave)."""
    AnamnesisService.save_draft(db, token, draft)
    return ok(message="Draft saved")


@router.post("/{token}/finalize", response_model=ApiResponse[None])
async def finalize(token: str, request: FinalizeRequest, db: Session = Depends(get_db)):
    """Finalize the anamnesis; it becomes read-only."""
    AnamnesisService.finalize(db, token, request)
    return ok(message="Anamnesis completed")
