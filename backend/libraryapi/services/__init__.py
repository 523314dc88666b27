"""
Módulo de serviços - transações e regras entre entidades.
"""

from libraryapi.services.transaction import (
    Propagation,
    Transaction,
    TransactionManager,
    TransactionState,
)
from libraryapi.services.library import LibraryService

__all__ = [
    "Propagation",
    "Transaction",
    "TransactionManager",
    "TransactionState",
    "LibraryService",
]
