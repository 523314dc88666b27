"""
Módulo de repositórios - acesso a dados.
"""

from libraryapi.repositories.base import BaseRepository, TRANSACTION_KEY
from libraryapi.repositories.author import AuthorRepository
from libraryapi.repositories.book import BookRepository

__all__ = [
    "BaseRepository",
    "TRANSACTION_KEY",
    "AuthorRepository",
    "BookRepository",
]
