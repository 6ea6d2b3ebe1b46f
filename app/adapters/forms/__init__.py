"""Form repository adapters.

The durable form store is an external collaborator. Services depend on
``AbstractFormRepository``; the in-memory adapter backs development and tests.
"""

from app.adapters.forms.base import AbstractFormRepository
from app.adapters.forms.in_memory import InMemoryFormRepository

__all__ = ["AbstractFormRepository", "InMemoryFormRepository"]
