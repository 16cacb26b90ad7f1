"""
Public runtime engine.

Drives one public filling session bound to an access token:

    loading --fetch ok--> active(step=0) --finalize ok--> completed
       |                      |
       +--fetch failed--> invalid
       +--already completed--> completed

While active it owns the answer map and the error map, recomputes progress
from the answers, saves drafts on "next" and on a fixed autosave interval,
and finalizes once the required fields and the mandatory consents are in.
"""

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Set

from pydantic import ValidationError as PydanticValidationError

from anamnesis.config import get_settings
from anamnesis.engine.errors import AutosaveFailure, InvalidOrExpiredLink, PersistenceError
from anamnesis.engine.field_types import InputCapability, get_field_type
from anamnesis.engine.notifications import Notifier
from anamnesis.engine.rendering import REQUIRED_MESSAGE, RenderedSection, render_section
from anamnesis.engine.transport import ApiTransport
from anamnesis.models.anamnesis import AnamnesisStatus
from anamnesis.schemas.anamnesis import PublicAnamnesisDocument
from anamnesis.schemas.template import FieldRead, SectionDocument

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    LOADING = "loading"
    ACTIVE = "active"
    INVALID = "invalid"
    COMPLETED = "completed"


CONSENTS = ("consentimento_lgpd", "consentimento_fotos", "consentimento_tratamento")

REQUIRED_CONSENTS = {
    "consentimento_lgpd": "You must authorize the use of your data (LGPD)",
    "consentimento_tratamento": "You must authorize the proposed treatment",
}


def is_empty(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, (list, tuple)) and not value)


def serialize_answer(value: Any) -> str:
    """Answers are persisted as text; structured values as JSON."""
    if value is None:
        return ""
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def serialize_answers(answers: Mapping[int, Any]) -> List[Dict[str, Any]]:
    """Full answer set in a stable order, as sent by every save."""
    return [
        {"campo_id": field_id, "resposta": serialize_answer(answers[field_id])}
        for field_id in sorted(answers)
    ]


def deserialize_answer(field: Optional[FieldRead], text: str) -> Any:
    """Inverse of ``serialize_answer`` for a known field; multi-choice back to a list."""
    if field is not None and get_field_type(field.tipo_campo).capability is InputCapability.MULTI_CHOICE:
        if not text:
            return []
        try:
            value = json.loads(text)
        except ValueError:
            return [text]
        return value if isinstance(value, list) else [str(value)]
    return text


def compute_progress(fields: List[FieldRead], answers: Mapping[int, Any]) -> int:
    """Share of all fields (every section) that currently hold an answer, 0-100."""
    if not fields:
        return 0
    filled = sum(1 for f in fields if not is_empty(answers.get(f.id)))
    return round(100 * filled / len(fields))


class PublicRuntimeEngine:
    """State machine for one token-bound filling session."""

    def __init__(
        self,
        transport: ApiTransport,
        token: str,
        notifier: Optional[Notifier] = None,
        autosave_interval: Optional[float] = None,
    ):
        self.transport = transport
        self.token = token
        self.notifier = notifier or Notifier()
        self.autosave_interval = (
            autosave_interval if autosave_interval is not None
            else get_settings().autosave_interval_seconds
        )

        self.state = SessionState.LOADING
        self.document: Optional[PublicAnamnesisDocument] = None
        self.sections: List[SectionDocument] = []
        self.step = 0
        self.answers: Dict[int, Any] = {}
        self.errors: Dict[int, str] = {}
        self.consents: Dict[str, bool] = {name: False for name in CONSENTS}
        self.consent_errors: Dict[str, str] = {}
        self.submitting = False

        self._fields_by_id: Dict[int, FieldRead] = {}
        self._autosave_task: Optional[asyncio.Task] = None
        self._pending: Set[asyncio.Task] = set()

    @property
    def base_path(self) -> str:
        return f"/public/anamnesis/{self.token}"

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self) -> SessionState:
        """Fetch the session by token and enter the matching state."""
        try:
            self.document = await self._fetch()
        except InvalidOrExpiredLink as exc:
            logger.warning("Public link %s rejected: %s", self.token, exc)
            self.state = SessionState.INVALID
            return self.state

        self.sections = [
            SectionDocument(secao=s.secao, campos=sorted(s.campos, key=lambda c: c.ordem))
            for s in sorted(self.document.template.secoes, key=lambda s: s.secao.ordem)
        ]
        self._fields_by_id = {f.id: f for f in self.all_fields}

        for saved in self.document.respostas_salvas:
            field = self._fields_by_id.get(saved.campo_id)
            self.answers[saved.campo_id] = deserialize_answer(field, saved.resposta)

        status = self.document.anamnese.status
        if status == AnamnesisStatus.COMPLETED:
            self.state = SessionState.COMPLETED
        elif status == AnamnesisStatus.EXPIRED:
            self.state = SessionState.INVALID
        else:
            self.state = SessionState.ACTIVE
            self.step = 0
            self.start_autosave()
        return self.state

    async def _fetch(self) -> PublicAnamnesisDocument:
        try:
            data = await self.transport.get(self.base_path)
            return PublicAnamnesisDocument.model_validate(data)
        except PersistenceError as exc:
            raise InvalidOrExpiredLink(exc.message) from exc
        except PydanticValidationError as exc:
            raise InvalidOrExpiredLink(f"malformed session document: {exc}") from exc

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def total_steps(self) -> int:
        return len(self.sections)

    @property
    def is_last_step(self) -> bool:
        return self.step >= self.total_steps - 1

    @property
    def current_section(self) -> Optional[SectionDocument]:
        if 0 <= self.step < self.total_steps:
            return self.sections[self.step]
        return None

    @property
    def all_fields(self) -> List[FieldRead]:
        return [campo for secao in self.sections for campo in secao.campos]

    @property
    def progress(self) -> int:
        return compute_progress(self.all_fields, self.answers)

    def render_step(self) -> Optional[RenderedSection]:
        """Current step through the shared dispatcher, bound to this session."""
        current = self.current_section
        if current is None:
            return None
        return render_section(current.secao, current.campos, self.answers, self.errors, self.set_answer)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def set_answer(self, field_id: int, value: Any) -> None:
        """Dispatcher callback; ignored once the session left ``active``."""
        if self.state is not SessionState.ACTIVE:
            logger.debug("Ignoring answer for field %s in state %s", field_id, self.state.value)
            return
        self.answers[field_id] = value

    def set_consent(self, name: str, value: bool) -> None:
        if name not in self.consents:
            raise KeyError(name)
        if self.state is SessionState.ACTIVE:
            self.consents[name] = bool(value)

    def validate_step(self, index: int) -> Dict[int, str]:
        """Required fields of one step that are still empty, with their message."""
        if not 0 <= index < self.total_steps:
            return {}
        return {
            campo.id: REQUIRED_MESSAGE
            for campo in self.sections[index].campos
            if campo.obrigatorio and is_empty(self.answers.get(campo.id))
        }

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def next_step(self) -> bool:
        """
        Validate the current step, save a draft in the background and advance.

        Returns ``False`` (staying on the step, with ``errors`` filled) when a
        required field is empty.
        """
        if self.state is not SessionState.ACTIVE:
            return False

        errors = self.validate_step(self.step)
        if errors:
            self.errors = errors
            self.notifier.error(
                "Required fields", "Fill in all required fields before continuing."
            )
            return False

        self.errors = {}
        self._spawn(self.save_draft())
        if self.step < self.total_steps - 1:
            self.step += 1
        return True

    def previous_step(self) -> None:
        """Go back one step; no validation, no save."""
        if self.state is SessionState.ACTIVE and self.step > 0:
            self.step -= 1
            self.errors = {}

    async def finalize(self) -> bool:
        """
        Submit the answers and consents and complete the session.

        Only allowed on the last step. Stays ``active`` and returns ``False``
        when a required field or a mandatory consent is missing, or when the
        server rejects the call.
        """
        if self.state is not SessionState.ACTIVE or self.submitting:
            return False
        if not self.is_last_step:
            self.notifier.error("Not finished", "Complete every step before finishing.")
            return False

        errors = self.validate_step(self.step)
        if errors:
            self.errors = errors
            self.notifier.error(
                "Required fields", "Fill in all required fields before finishing."
            )
            return False
        self.errors = {}

        self.consent_errors = {
            name: message for name, message in REQUIRED_CONSENTS.items()
            if not self.consents[name]
        }
        if self.consent_errors:
            self.notifier.error("Mandatory consents", "You must accept the mandatory terms.")
            return False

        payload = {"respostas": serialize_answers(self.answers), **self.consents}
        self.submitting = True
        try:
            await self.transport.post(f"{self.base_path}/finalize", payload)
        except PersistenceError as exc:
            logger.error("Finalize of %s failed: %s", self.token, exc.message)
            self.notifier.error("Could not finish", exc.message)
            return False
        finally:
            self.submitting = False

        self.state = SessionState.COMPLETED
        await self.stop_autosave()
        self.notifier.success("Anamnesis completed", "Your answers were sent successfully.")
        return True

    # ------------------------------------------------------------------
    # Draft persistence
    # ------------------------------------------------------------------

    async def save_draft(self) -> bool:
        """
        Send the full answer set with its progress. Silent: failures are
        only logged.
        """
        if self.state is not SessionState.ACTIVE:
            return False

        try:
            await self._post_draft(dict(self.answers))
        except AutosaveFailure as exc:
            logger.warning(
                "Draft save for %s failed (%s): %s", self.token, exc.status_code, exc.message
            )
            return False
        return True

    async def _post_draft(self, answers: Dict[int, Any]) -> None:
        payload = {
            "respostas": serialize_answers(answers),
            "progresso": compute_progress(self.all_fields, answers),
        }
        try:
            await self.transport.post(f"{self.base_path}/draft", payload)
        except PersistenceError as exc:
            raise AutosaveFailure(exc.message, exc.status_code) from exc

    def start_autosave(self) -> None:
        if self._autosave_task is None or self._autosave_task.done():
            self._autosave_task = asyncio.get_running_loop().create_task(self._autosave_loop())

    async def stop_autosave(self) -> None:
        task, self._autosave_task = self._autosave_task, None
        if task is None or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _autosave_loop(self) -> None:
        while self.state is SessionState.ACTIVE:
            await asyncio.sleep(self.autosave_interval)
            if self.state is not SessionState.ACTIVE:
                break
            await self.save_draft()

    async def settle(self) -> None:
        """Wait for the draft saves fired by ``next_step``."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        """End the session: stop autosave and let in-flight saves finish."""
        await self.stop_autosave()
        await self.settle()

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task
