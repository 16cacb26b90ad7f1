"""Anamnesis service: dispatch, public fetch, draft save and finalize."""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any, Iterable

from fastapi import HTTPException, status
from sqlalchemy.orm import Session, selectinload

from anamnesis.config import get_settings
from anamnesis.models.anamnesis import Anamnesis, AnamnesisResponse, AnamnesisStatus
from anamnesis.models.template import Template
from anamnesis.schemas.anamnesis import AnamnesisCreate, AnswerIn, DraftSave, FinalizeRequest
from anamnesis.services.template import TemplateService

settings = get_settings()
logger = logging.getLogger(__name__)


class AnamnesisService:
    """Service for anamnesis instances and their public filling session."""

    @staticmethod
    def create_anamnesis(db: Session, anamnesis_data: AnamnesisCreate) -> Anamnesis:
        """Dispatch a template: freeze its structure and issue a public token."""
        template = db.query(Template).filter(
            Template.id == anamnesis_data.template_id,
            Template.ativo == True
        ).first()

        if not template:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Template not found or inactive"
            )

        expires_at = anamnesis_data.link_expira_em or (
            datetime.utcnow() + timedelta(days=settings.public_link_expiry_days)
        )

        db_anamnesis = Anamnesis(
            template_id=template.id,
            template_versao=template.versao,
            template_snapshot=TemplateService.build_document(template),
            link_token=secrets.token_urlsafe(32),
            link_expira_em=expires_at,
            status=AnamnesisStatus.IN_PROGRESS,
            progresso_percentual=0,
            paciente=dict(anamnesis_data.paciente),
        )
        db.add(db_anamnesis)
        db.commit()
        db.refresh(db_anamnesis)

        logger.info(
            "Anamnesis %s dispatched from template %s v%s",
            db_anamnesis.id, template.id, template.versao
        )
        return db_anamnesis

    @staticmethod
    def get_anamnesis(db: Session, anamnesis_id: int) -> Optional[Anamnesis]:
        """Get an anamnesis by ID."""
        return db.query(Anamnesis).filter(Anamnesis.id == anamnesis_id).first()

    @staticmethod
    def get_anamneses(
        db: Session,
        template_id: Optional[int] = None,
        status_filter: Optional[AnamnesisStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Anamnesis]:
        """List anamneses, newest first."""
        query = db.query(Anamnesis)
        if template_id is not None:
            query = query.filter(Anamnesis.template_id == template_id)
        if status_filter:
            query = query.filter(Anamnesis.status == status_filter)
        return query.order_by(Anamnesis.created_at.desc()).offset(skip).limit(limit).all()

    # ------------------------------------------------------------------
    # Public (token-bound) operations
    # ------------------------------------------------------------------

    @staticmethod
    def get_by_token(db: Session, token: str) -> Anamnesis:
        """
        Resolve a public token.

        Unknown tokens are 404. An in-progress instance past its expiry is
        moved to ``expired`` and reported as 410; completed instances stay
        readable.
        """
        db_anamnesis = db.query(Anamnesis).options(
            selectinload(Anamnesis.respostas)
        ).filter(Anamnesis.link_token == token).first()

        if not db_anamnesis:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Invalid link"
            )

        if db_anamnesis.status == AnamnesisStatus.IN_PROGRESS and db_anamnesis.is_expired():
            db_anamnesis.status = AnamnesisStatus.EXPIRED
            db.commit()
            logger.info("Anamnesis %s expired", db_anamnesis.id)

        if db_anamnesis.status == AnamnesisStatus.EXPIRED:
            raise HTTPException(
                status_code=status.HTTP_410_GONE,
                detail="This link has expired"
            )

        return db_anamnesis

    @staticmethod
    def get_public_document(db: Session, token: str) -> Dict[str, Any]:
        """Build the ``{anamnese, template, paciente, respostas_salvas}`` payload."""
        db_anamnesis = AnamnesisService.get_by_token(db, token)
        return {
            "anamnese": {
                "id": db_anamnesis.id,
                "status": db_anamnesis.status,
                "progresso_percentual": db_anamnesis.progresso_percentual,
                "link_expira_em": db_anamnesis.link_expira_em,
            },
            "template": db_anamnesis.template_snapshot,
            "paciente": db_anamnesis.paciente or {},
            "respostas_salvas": [
                {"campo_id": r.campo_id, "resposta": r.resposta}
                for r in db_anamnesis.respostas
            ],
        }

    @staticmethod
    def save_draft(db: Session, token: str, draft: DraftSave) -> Anamnesis:
        """Upsert the full answer set and the client's progress."""
        db_anamnesis = AnamnesisService._require_editable(db, token)

        AnamnesisService._upsert_answers(db, db_anamnesis, draft.respostas)
        db_anamnesis.progresso_percentual = draft.progresso

        db.commit()
        db.refresh(db_anamnesis)
        return db_anamnesis

    @staticmethod
    def finalize(db: Session, token: str, request: FinalizeRequest) -> Anamnesis:
        """
        Complete an anamnesis.

        Requires the data-use and treatment consents and every required field
        of the snapshot answered. The transition is one-way.
        """
        db_anamnesis = AnamnesisService._require_editable(db, token)

        missing_consents = []
        if not request.consentimento_lgpd:
            missing_consents.append("consentimento_lgpd")
        if not request.consentimento_tratamento:
            missing_consents.append("consentimento_tratamento")
        if missing_consents:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Missing mandatory consent: {', '.join(missing_consents)}"
            )

        answers = {a.campo_id: a.resposta for a in request.respostas}
        missing = [
            campo["label"]
            for campo in AnamnesisService._snapshot_fields(db_anamnesis.template_snapshot)
            if campo.get("obrigatorio") and not _has_answer(answers.get(campo["id"]))
        ]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Required fields not answered: {', '.join(missing)}"
            )

        AnamnesisService._upsert_answers(db, db_anamnesis, request.respostas)
        db_anamnesis.paciente = AnamnesisService.apply_system_fields(
            db_anamnesis.template_snapshot, answers, db_anamnesis.paciente
        )
        db_anamnesis.consentimento_lgpd = request.consentimento_lgpd
        db_anamnesis.consentimento_fotos = request.consentimento_fotos
        db_anamnesis.consentimento_tratamento = request.consentimento_tratamento
        db_anamnesis.progresso_percentual = 100
        db_anamnesis.status = AnamnesisStatus.COMPLETED
        db_anamnesis.data_preenchimento = datetime.utcnow()

        db.commit()
        db.refresh(db_anamnesis)
        logger.info("Anamnesis %s completed", db_anamnesis.id)
        return db_anamnesis

    @staticmethod
    def apply_system_fields(
        snapshot: Dict[str, Any],
        answers: Dict[int, str],
        paciente: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Copy answers of system-bound fields into the patient record.

        Fields are applied in section/field order; when two fields claim the
        same binding the last one applied wins.
        """
        record = dict(paciente or {})
        for campo in AnamnesisService._snapshot_fields(snapshot):
            binding = campo.get("campo_sistema")
            if not binding:
                continue
            value = answers.get(campo["id"])
            if _has_answer(value):
                record[binding] = value
        return record

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require_editable(db: Session, token: str) -> Anamnesis:
        db_anamnesis = AnamnesisService.get_by_token(db, token)
        if db_anamnesis.status == AnamnesisStatus.COMPLETED:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This anamnesis has already been completed"
            )
        return db_anamnesis

    @staticmethod
    def _upsert_answers(db: Session, db_anamnesis: Anamnesis, respostas: Iterable[AnswerIn]) -> None:
        """Insert or overwrite one row per field; unknown field ids are ignored."""
        known_ids = {
            campo["id"] for campo in AnamnesisService._snapshot_fields(db_anamnesis.template_snapshot)
        }
        existing = {r.campo_id: r for r in db_anamnesis.respostas}

        for answer in respostas:
            if answer.campo_id not in known_ids:
                logger.warning(
                    "Anamnesis %s: ignoring answer for unknown field %s",
                    db_anamnesis.id, answer.campo_id
                )
                continue
            row = existing.get(answer.campo_id)
            if row is None:
                row = AnamnesisResponse(campo_id=answer.campo_id, resposta=answer.resposta)
                db_anamnesis.respostas.append(row)
                existing[answer.campo_id] = row
            else:
                row.resposta = answer.resposta

    @staticmethod
    def _snapshot_fields(snapshot: Dict[str, Any]) -> List[Dict[str, Any]]:
        fields = []
        for secao_data in snapshot.get("secoes", []):
            fields.extend(secao_data.get("campos", []))
        return fields


def _has_answer(value: Optional[str]) -> bool:
    """Text answers count as empty when blank or an empty JSON list."""
    if value is None:
        return False
    text = value.strip()
    return text not in ("", "[]")
