"""
Models SQLAlchemy da aplicação.

Importar todos os models aqui para que init_db registre as tabelas.
"""

from libraryapi.models.enums import BookGenre
from libraryapi.models.author import Author
from libraryapi.models.book import Book

__all__ = [
    "BookGenre",
    "Author",
    "Book",
]
