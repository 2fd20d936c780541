"""Intake Dossier backend: intake submissions, asynchronous AI analysis and token-scoped polling."""

__version__ = "1.0.0"
