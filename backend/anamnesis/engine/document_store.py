"""
Template document store.

Holds one template's sections and fields while it is being edited. Entities
live in flat maps keyed by id; order is kept in explicit id lists
(``section_order`` for the template, ``field_order[section_id]`` per section).
The id lists are the source of truth for position, so a reorder only ever
touches a list, and ``ordered_sections``/``fields_of`` report ``ordem`` as the
entity's position in it.

Every mutation goes to the server first and the store then adopts the record
the server returned.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from anamnesis.engine.errors import PersistenceError, ReorderConflict, ValidationError
from anamnesis.engine.field_types import default_options, next_default_label
from anamnesis.engine.notifications import Notifier
from anamnesis.engine.transport import ApiTransport
from anamnesis.models.template import FieldType
from anamnesis.schemas.template import (
    FieldRead,
    SectionDocument,
    SectionRead,
    TemplateDocument,
)

logger = logging.getLogger(__name__)


def _wire(value: Any) -> Any:
    """Enum members go over the wire as their value."""
    return value.value if isinstance(value, Enum) else value


def _at_position(entity, position: int):
    if entity.ordem == position:
        return entity
    return entity.model_copy(update={"ordem": position})


class TemplateDocumentStore:
    """In-memory section/field structure of one template, synced with the server."""

    def __init__(
        self,
        transport: ApiTransport,
        template_id: int,
        notifier: Optional[Notifier] = None,
    ):
        self.transport = transport
        self.template_id = template_id
        self.notifier = notifier or Notifier()

        self.sections: Dict[int, SectionRead] = {}
        self.fields: Dict[int, FieldRead] = {}
        self.section_order: List[int] = []
        self.field_order: Dict[int, List[int]] = {}
        self.loading = False

    # ------------------------------------------------------------------
    # Loading and reads
    # ------------------------------------------------------------------

    def load(self, document: Union[TemplateDocument, Dict[str, Any]]) -> None:
        """Replace local state with a full ``{secoes: [{secao, campos}]}`` document."""
        if not isinstance(document, TemplateDocument):
            secoes = [SectionDocument.model_validate(s) for s in document.get("secoes", [])]
        else:
            secoes = document.secoes

        self.sections = {}
        self.fields = {}
        self.field_order = {}

        for secao_data in secoes:
            secao = secao_data.secao
            self.sections[secao.id] = secao
            campos = sorted(secao_data.campos, key=lambda c: c.ordem)
            for campo in campos:
                self.fields[campo.id] = campo
            self.field_order[secao.id] = [c.id for c in campos]

        self.section_order = [
            s.id for s in sorted(self.sections.values(), key=lambda s: s.ordem)
        ]

    async def fetch(self) -> TemplateDocument:
        """Load the template document from the server."""
        data = await self._persist(
            "Could not load template", "GET", f"/templates/{self.template_id}"
        )
        document = TemplateDocument.model_validate(data)
        self.load(document)
        return document

    def ordered_sections(self) -> List[SectionRead]:
        return [
            _at_position(self.sections[sid], index)
            for index, sid in enumerate(self.section_order)
        ]

    def fields_of(self, section_id: int) -> List[FieldRead]:
        return [
            _at_position(self.fields[fid], index)
            for index, fid in enumerate(self.field_order.get(section_id, []))
        ]

    def document(self) -> List[SectionDocument]:
        """Current structure as section documents, in order."""
        return [
            SectionDocument(secao=secao, campos=self.fields_of(secao.id))
            for secao in self.ordered_sections()
        ]

    @property
    def total_fields(self) -> int:
        return sum(len(ids) for ids in self.field_order.values())

    def section_of(self, field_id: int) -> Optional[int]:
        field = self.fields.get(field_id)
        return field.secao_id if field else None

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    async def create_section(
        self,
        titulo: str,
        descricao: Optional[str] = None,
        obrigatorio: bool = False,
    ) -> SectionRead:
        """Create a section at the end of the template."""
        payload = {
            "titulo": titulo,
            "descricao": descricao,
            "obrigatorio": obrigatorio,
            "ordem": len(self.section_order),
        }
        data = await self._persist(
            "Could not create section", "POST",
            f"/templates/{self.template_id}/sections", payload,
        )
        secao = SectionRead.model_validate(data)

        self.sections[secao.id] = secao
        self._insert(self.section_order, secao.id, secao.ordem)
        self.field_order.setdefault(secao.id, [])

        self.notifier.success("Section created", f'"{secao.titulo}" was added to the template.')
        return secao

    async def update_section(self, section_id: int, **changes) -> SectionRead:
        """Partially update a section."""
        self._require_section(section_id)
        payload = {key: _wire(value) for key, value in changes.items()}
        data = await self._persist(
            "Could not update section", "PATCH", f"/sections/{section_id}", payload
        )
        self.sections[section_id] = SectionRead.model_validate(data)
        self.notifier.success("Section updated", "Changes saved.")
        return self.sections[section_id]

    async def delete_section(self, section_id: int) -> None:
        """
        Delete a section.

        A section that still owns fields is rejected locally, before any
        network call.
        """
        self._require_section(section_id)
        if self.field_order.get(section_id):
            self.notifier.error(
                "Cannot delete section", "Remove all fields from this section first."
            )
            raise ValidationError("section not empty")

        await self._persist("Could not delete section", "DELETE", f"/sections/{section_id}")

        del self.sections[section_id]
        self.section_order.remove(section_id)
        self.field_order.pop(section_id, None)
        self._compact_sections()
        self.notifier.success("Section deleted", "The section was removed from the template.")

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    async def create_field(
        self,
        section_id: int,
        tipo: Union[FieldType, str],
        label: Optional[str] = None,
        **attrs,
    ) -> FieldRead:
        """
        Create a field at the end of a section.

        Without an explicit label the type's default label is used,
        numbered when the section already has fields of that type.
        """
        self._require_section(section_id)
        try:
            tipo = FieldType(tipo)
        except ValueError:
            raise ValidationError(f"unknown field type: {tipo}")

        existing = self.fields_of(section_id)
        payload = {
            "tipo_campo": tipo.value,
            "label": label or next_default_label(tipo, existing),
            "ordem": len(existing),
            "obrigatorio": False,
            "largura": "full",
        }
        if "opcoes" not in attrs and default_options(tipo):
            payload["opcoes"] = default_options(tipo)
        payload.update({key: _wire(value) for key, value in attrs.items()})

        data = await self._persist(
            "Could not create field", "POST", f"/sections/{section_id}/fields", payload
        )
        campo = FieldRead.model_validate(data)

        self.fields[campo.id] = campo
        self._insert(self.field_order.setdefault(campo.secao_id, []), campo.id, campo.ordem)
        self.notifier.success("Field created", f'"{campo.label}" was added to the section.')
        return campo

    async def update_field(self, field_id: int, **changes) -> FieldRead:
        """Partially update a field."""
        self._require_field(field_id)
        payload = {key: _wire(value) for key, value in changes.items()}
        data = await self._persist(
            "Could not update field", "PATCH", f"/fields/{field_id}", payload
        )
        self.fields[field_id] = FieldRead.model_validate(data)
        self.notifier.success("Field updated", "Changes saved.")
        return self.fields[field_id]

    async def delete_field(self, field_id: int) -> None:
        """Delete a field and close the gap in its section."""
        campo = self._require_field(field_id)
        await self._persist("Could not delete field", "DELETE", f"/fields/{field_id}")

        del self.fields[field_id]
        self.field_order[campo.secao_id].remove(field_id)
        self._compact_fields(campo.secao_id)
        self.notifier.success("Field deleted", "The field was removed from the section.")

    async def duplicate_field(self, field_id: int) -> FieldRead:
        """Clone a field; the copy is appended to the end of its section."""
        self._require_field(field_id)
        data = await self._persist(
            "Could not duplicate field", "POST", f"/fields/{field_id}/duplicate"
        )
        campo = FieldRead.model_validate(data)

        self.fields[campo.id] = campo
        self._insert(self.field_order.setdefault(campo.secao_id, []), campo.id, campo.ordem)
        self.notifier.success("Field duplicated", f'"{campo.label}" was created.')
        return campo

    # ------------------------------------------------------------------
    # Reorder persistence (driven by the reordering engine)
    # ------------------------------------------------------------------

    async def persist_section_order(self, order: List[int]) -> List[SectionRead]:
        """Send a section order; raises ``ReorderConflict`` on failure."""
        payload = [{"id": sid, "ordem": index} for index, sid in enumerate(order)]
        try:
            data = await self.transport.patch(
                f"/templates/{self.template_id}/sections/reorder", payload
            )
        except PersistenceError as exc:
            raise ReorderConflict(exc.message, exc.status_code) from exc
        return [SectionRead.model_validate(item) for item in data or []]

    async def persist_field_order(self, section_id: int, order: List[int]) -> List[FieldRead]:
        """Send a field order for one section; raises ``ReorderConflict`` on failure."""
        payload = [{"id": fid, "ordem": index} for index, fid in enumerate(order)]
        try:
            data = await self.transport.patch(f"/sections/{section_id}/fields/reorder", payload)
        except PersistenceError as exc:
            raise ReorderConflict(exc.message, exc.status_code) from exc
        return [FieldRead.model_validate(item) for item in data or []]

    def reconcile_sections(self, records: List[SectionRead], sent_order: List[int]) -> None:
        """
        Adopt the server's records after a successful section reorder.

        The server's order only replaces the local one if nothing moved
        locally since ``sent_order`` was sent.
        """
        for record in records:
            if record.id in self.sections:
                self.sections[record.id] = record
        if self.section_order == sent_order:
            self.section_order = [r.id for r in sorted(records, key=lambda r: r.ordem)]

    def reconcile_fields(
        self, section_id: int, records: List[FieldRead], sent_order: List[int]
    ) -> None:
        """Field counterpart of ``reconcile_sections``."""
        for record in records:
            if record.id in self.fields:
                self.fields[record.id] = record
        if self.field_order.get(section_id) == sent_order:
            self.field_order[section_id] = [
                r.id for r in sorted(records, key=lambda r: r.ordem)
            ]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _persist(self, failure_title: str, method: str, path: str, payload: Any = None) -> Any:
        """Run an awaited remote call; failures are notified, logged and re-raised."""
        self.loading = True
        try:
            return await self.transport.request(method, path, payload)
        except PersistenceError as exc:
            logger.error("%s (%s %s): %s", failure_title, method, path, exc.message)
            self.notifier.error(failure_title, exc.message)
            raise
        finally:
            self.loading = False

    def _require_section(self, section_id: int) -> SectionRead:
        if section_id not in self.sections:
            raise ValidationError(f"unknown section {section_id}")
        return self.sections[section_id]

    def _require_field(self, field_id: int) -> FieldRead:
        if field_id not in self.fields:
            raise ValidationError(f"unknown field {field_id}")
        return self.fields[field_id]

    @staticmethod
    def _insert(order: List[int], entity_id: int, position: int) -> None:
        order.insert(min(max(position, 0), len(order)), entity_id)

    def _compact_sections(self) -> None:
        for index, sid in enumerate(self.section_order):
            self.sections[sid] = _at_position(self.sections[sid], index)

    def _compact_fields(self, section_id: int) -> None:
        for index, fid in enumerate(self.field_order.get(section_id, [])):
            self.fields[fid] = _at_position(self.fields[fid], index)
