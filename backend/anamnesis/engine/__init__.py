"""Client-side form engine: builder store, reordering, rendering and public runtime."""

from anamnesis.engine.document_store import TemplateDocumentStore
from anamnesis.engine.errors import (
    AutosaveFailure,
    EngineError,
    InvalidOrExpiredLink,
    PersistenceError,
    ReorderConflict,
    ValidationError,
)
from anamnesis.engine.notifications import Notification, Notifier
from anamnesis.engine.preview import PreviewSession
from anamnesis.engine.rendering import RenderedInput, RenderedSection, render_field, render_section
from anamnesis.engine.reordering import BuilderReorderingEngine, OptimisticAction
from anamnesis.engine.runtime import PublicRuntimeEngine, SessionState
from anamnesis.engine.transport import ApiTransport

__all__ = [
    "ApiTransport",
    "TemplateDocumentStore",
    "BuilderReorderingEngine",
    "OptimisticAction",
    "PreviewSession",
    "PublicRuntimeEngine",
    "SessionState",
    "RenderedInput",
    "RenderedSection",
    "render_field",
    "render_section",
    "Notification",
    "Notifier",
    "EngineError",
    "ValidationError",
    "PersistenceError",
    "ReorderConflict",
    "AutosaveFailure",
    "InvalidOrExpiredLink",
]
