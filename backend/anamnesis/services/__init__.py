"""Service layer for business logic."""

from anamnesis.services.template import TemplateService
from anamnesis.services.anamnesis import AnamnesisService

__all__ = [
    "TemplateService",
    "AnamnesisService",
]
