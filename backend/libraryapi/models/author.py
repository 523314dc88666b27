"""
Model de autor de livros.
"""

from datetime import date
from typing import TYPE_CHECKING, List

from sqlalchemy import Date, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from libraryapi.db.session import Base
from libraryapi.models.base import UUIDMixin

if TYPE_CHECKING:
    from libraryapi.models.book import Book


class Author(Base, UUIDMixin):
    """
    Autor de livros.

    Attributes:
        id: UUID único do autor
        name: Nome do autor (até 100 caracteres)
        birth_date: Data de nascimento
        nationality: Nacionalidade (até 50 caracteres)
        books: Livros do autor, somente leitura

    books não é coluna: é uma visão carregada a partir de book.author_id.
    Salvar ou remover livros junto com o autor é feito explicitamente
    pelo LibraryService.
    """
    __tablename__ = "author"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    birth_date: Mapped[date] = mapped_column(Date, nullable=False)
    nationality: Mapped[str] = mapped_column(String(50), nullable=False)

    # Relationships
    books: Mapped[List["Book"]] = relationship(
        "Book",
        viewonly=True,
        lazy="selectin",
        order_by="Book.title",
    )

    def __repr__(self) -> str:
        return f"<Author {self.name}>"
