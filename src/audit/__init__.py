"""Audit logging package."""

from src.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
