"""Dynamic form template engine for anamnesis (intake) questionnaires."""

__version__ = "1.0.0"
