"""Infra layer utilities (state documents, audit log)."""

from .audit import AuditLog
from .storage import StateStore, StoredState

__all__ = ["AuditLog", "StateStore", "StoredState"]
