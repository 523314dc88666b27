"""
Model de livro.
"""

import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Date, Enum, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from libraryapi.db.session import Base
from libraryapi.models.base import UUIDMixin
from libraryapi.models.enums import BookGenre

if TYPE_CHECKING:
    from libraryapi.models.author import Author


class Book(Base, UUIDMixin):
    """
    Livro cadastrado.

    Attributes:
        id: UUID único do livro
        isbn: ISBN (até 20 caracteres)
        title: Título (até 200 caracteres)
        publication_date: Data de publicação (opcional)
        genre: Gênero, gravado pelo nome
        price: Preço com 18 dígitos e 2 casas decimais (opcional)
        author_id: FK para o autor (opcional)
        author: Autor do livro, pode ser trocado após a criação
    """
    __tablename__ = "book"

    isbn: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    publication_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    genre: Mapped[BookGenre] = mapped_column(
        Enum(BookGenre, name="book_genre", native_enum=False, length=100),
        nullable=False,
        index=True,
    )
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 2), nullable=True)
    author_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("author.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )

    # Relationships
    author: Mapped[Optional["Author"]] = relationship(
        "Author",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Book {self.title}>"
