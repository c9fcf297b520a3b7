"""
Model registry for the licenses app.

Models live in the infrastructure layer; importing them here lets Django
discover them when the app is loaded.
"""
from licenses.infrastructure.models import AuditLog, License, ProcessedEvent  # noqa: F401
