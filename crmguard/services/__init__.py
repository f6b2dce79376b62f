"""Services - stateless transformations that do one thing well."""

from crmguard.services.base import Service
from crmguard.services.audit import AuditEntry, AuditService

__all__ = [
    "Service",
    "AuditEntry",
    "AuditService",
]
