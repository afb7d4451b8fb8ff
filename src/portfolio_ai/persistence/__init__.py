"""Pluggable key/value persistence and typed record repositories."""

from __future__ import annotations

from portfolio_ai.persistence.file_backend import FilePersistenceBackend
from portfolio_ai.persistence.memory_backend import MemoryPersistenceBackend
from portfolio_ai.persistence.protocols import IPersistenceBackend
from portfolio_ai.persistence.store import PortfolioStore

__all__ = [
    "FilePersistenceBackend",
    "IPersistenceBackend",
    "MemoryPersistenceBackend",
    "PortfolioStore",
]
