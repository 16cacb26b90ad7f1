"""Builder live preview: the template as the recipient will see it, never saved."""

from typing import Any, Dict, List, Optional

from anamnesis.engine.document_store import TemplateDocumentStore
from anamnesis.engine.rendering import RenderedSection, render_section


class PreviewSession:
    """Local answer map rendered through the shared dispatcher."""

    def __init__(self, store: TemplateDocumentStore):
        self.store = store
        self.answers: Dict[int, Any] = {}
        self.step = 0

    def set_answer(self, field_id: int, value: Any) -> None:
        self.answers[field_id] = value

    def reset(self) -> None:
        self.answers.clear()
        self.step = 0

    @property
    def total_steps(self) -> int:
        return len(self.store.section_order)

    def go_to(self, step: int) -> None:
        self.step = max(0, min(step, self.total_steps - 1))

    def render_step(self) -> Optional[RenderedSection]:
        """Render the current step; ``None`` while the template has no sections."""
        sections = self.store.ordered_sections()
        if not sections:
            self.step = 0
            return None
        # Sections may have been deleted since the step was chosen
        self.step = min(self.step, len(sections) - 1)
        secao = sections[self.step]
        return render_section(
            secao, self.store.fields_of(secao.id), self.answers, {}, self.set_answer
        )

    def render_all(self) -> List[RenderedSection]:
        return [
            render_section(doc.secao, doc.campos, self.answers, {}, self.set_answer)
            for doc in self.store.document()
        ]
