"""
Builder reordering engine.

Drag-and-drop reorders are applied to the document store's id lists
immediately and persisted in the background. If persistence fails the exact
pre-move list is put back. Sections and the fields of each section are
separate sortable regions; a drop that crosses regions is ignored.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Generic, List, Optional, Set, TypeVar

from anamnesis.engine.document_store import TemplateDocumentStore
from anamnesis.engine.errors import PersistenceError, ReorderConflict
from anamnesis.engine.notifications import Notifier
from anamnesis.schemas.template import FieldRead

logger = logging.getLogger(__name__)

S = TypeVar("S")


class ActionState(str, Enum):
    PENDING = "pending"
    APPLIED = "applied"
    COMMITTED = "committed"
    REVERTED = "reverted"


class OptimisticAction(Generic[S]):
    """
    Snapshot, apply, then commit or revert.

    ``snapshot`` captures the state the action may need to restore and
    ``restore`` puts it back. ``apply`` runs the local mutation right away.
    """

    def __init__(self, snapshot: Callable[[], S], restore: Callable[[S], None]):
        self._snapshot_fn = snapshot
        self._restore_fn = restore
        self.snapshot: Optional[S] = None
        self.state = ActionState.PENDING

    def apply(self, mutate: Callable[[], None]) -> None:
        if self.state is not ActionState.PENDING:
            raise RuntimeError(f"action already {self.state.value}")
        self.snapshot = self._snapshot_fn()
        mutate()
        self.state = ActionState.APPLIED

    def commit(self) -> None:
        if self.state is ActionState.APPLIED:
            self.state = ActionState.COMMITTED

    def revert(self) -> None:
        if self.state is ActionState.APPLIED:
            self._restore_fn(self.snapshot)
            self.state = ActionState.REVERTED


def array_move(items: List[Any], old_index: int, new_index: int) -> List[Any]:
    """Return a copy of ``items`` with the element at ``old_index`` moved to ``new_index``."""
    moved = list(items)
    item = moved.pop(old_index)
    moved.insert(new_index, item)
    return moved


class BuilderReorderingEngine:
    """Optimistic reordering plus the builder's transient view state."""

    def __init__(self, store: TemplateDocumentStore, notifier: Optional[Notifier] = None):
        self.store = store
        self.notifier = notifier or store.notifier

        # View state, never persisted
        self.expanded: Set[int] = set(store.section_order)
        self.selected_section: Optional[int] = None
        self.selected_field: Optional[int] = None
        self.drop_target: Optional[int] = None

        self._pending: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # View state
    # ------------------------------------------------------------------

    def toggle_section(self, section_id: int) -> bool:
        """Collapse or expand a section; returns whether it is now expanded."""
        if section_id in self.expanded:
            self.expanded.discard(section_id)
            return False
        self.expanded.add(section_id)
        return True

    def expand_all(self) -> None:
        self.expanded = set(self.store.section_order)

    def select_section(self, section_id: Optional[int]) -> None:
        self.selected_section = section_id

    def select_field(self, field_id: Optional[int]) -> None:
        self.selected_field = field_id

    def drag_over(self, section_id: int) -> None:
        """A palette item hovers over a section: highlight it as drop zone."""
        self.drop_target = section_id

    def drag_leave(self) -> None:
        self.drop_target = None

    async def drop_field_type(self, section_id: int, tipo) -> Optional[FieldRead]:
        """
        A palette item was dropped on a section: create a field of that type.

        The drop highlight is cleared first, whatever the create call does.
        Failures are already notified by the store; ``None`` is returned.
        """
        self.drop_target = None
        try:
            return await self.store.create_field(section_id, tipo)
        except PersistenceError:
            return None

    async def create_section(self, titulo: str, descricao: Optional[str] = None,
                             obrigatorio: bool = False):
        """Create a section through the store and show it expanded."""
        secao = await self.store.create_section(titulo, descricao, obrigatorio)
        self.expanded.add(secao.id)
        return secao

    async def delete_section(self, section_id: int) -> None:
        await self.store.delete_section(section_id)
        self.expanded.discard(section_id)
        if self.selected_section == section_id:
            self.selected_section = None

    async def delete_field(self, field_id: int) -> None:
        await self.store.delete_field(field_id)
        if self.selected_field == field_id:
            self.selected_field = None

    # ------------------------------------------------------------------
    # Reordering
    # ------------------------------------------------------------------

    def move_section(self, active_id: int, over_id: Optional[int]) -> Optional[asyncio.Task]:
        """
        Drop section ``active_id`` onto the position of ``over_id``.

        The new order is visible as soon as this returns; the returned task
        persists it. ``None`` means the drop was a no-op or was rejected.
        """
        order = self.store.section_order
        if over_id is None or active_id == over_id:
            return None
        if active_id not in order or over_id not in order:
            logger.warning("Ignoring section drop %s -> %s outside the section list", active_id, over_id)
            return None

        action = OptimisticAction(
            snapshot=lambda: list(self.store.section_order),
            restore=self._restore_sections,
        )
        new_order = array_move(order, order.index(active_id), order.index(over_id))
        action.apply(lambda: self._restore_sections(new_order))

        return self._spawn(self._commit_sections(action, list(new_order)))

    def move_field(self, section_id: int, active_id: int, over_id: Optional[int]) -> Optional[asyncio.Task]:
        """
        Drop field ``active_id`` onto the position of ``over_id`` inside ``section_id``.

        Both ids must belong to that section's field list; fields cannot be
        dragged into another section.
        """
        order = self.store.field_order.get(section_id)
        if order is None or over_id is None or active_id == over_id:
            return None
        if active_id not in order or over_id not in order:
            logger.warning(
                "Ignoring field drop %s -> %s across sections (region %s)",
                active_id, over_id, section_id
            )
            return None

        action = OptimisticAction(
            snapshot=lambda: list(self.store.field_order[section_id]),
            restore=lambda ids: self._restore_fields(section_id, ids),
        )
        new_order = array_move(order, order.index(active_id), order.index(over_id))
        action.apply(lambda: self._restore_fields(section_id, new_order))

        return self._spawn(self._commit_fields(action, section_id, list(new_order)))

    async def settle(self) -> None:
        """Wait for every background persistence call to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    # ------------------------------------------------------------------
    # Background commit
    # ------------------------------------------------------------------

    async def _commit_sections(self, action: OptimisticAction, sent_order: List[int]) -> bool:
        try:
            records = await self.store.persist_section_order(sent_order)
        except ReorderConflict as exc:
            action.revert()
            logger.error("Section reorder failed, rolled back: %s", exc.message)
            self.notifier.error("Could not reorder sections", exc.message)
            return False
        action.commit()
        self.store.reconcile_sections(records, sent_order)
        return True

    async def _commit_fields(self, action: OptimisticAction, section_id: int,
                             sent_order: List[int]) -> bool:
        try:
            records = await self.store.persist_field_order(section_id, sent_order)
        except ReorderConflict as exc:
            action.revert()
            logger.error("Field reorder in section %s failed, rolled back: %s", section_id, exc.message)
            self.notifier.error("Could not reorder fields", exc.message)
            return False
        action.commit()
        self.store.reconcile_fields(section_id, records, sent_order)
        return True

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def _restore_sections(self, ids: List[int]) -> None:
        self.store.section_order[:] = ids

    def _restore_fields(self, section_id: int, ids: List[int]) -> None:
        order = self.store.field_order.get(section_id)
        if order is None:
            logger.warning("Section %s is gone, skipping field order restore", section_id)
            return
        order[:] = ids
