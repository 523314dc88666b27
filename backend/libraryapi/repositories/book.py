"""
Repository para operações de Book no banco de dados.

Cada consulta nomeada é um método com predicado explícito; todas
retornam listas (possivelmente vazias) e não alteram nada. As operações
em massa retornam a quantidade de registros afetados.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from libraryapi.core.logging import get_logger
from libraryapi.models.author import Author
from libraryapi.models.book import Book
from libraryapi.models.enums import BookGenre
from libraryapi.repositories.base import BaseRepository

logger = get_logger(__name__)

BRITISH = "British"


class BookRepository(BaseRepository[Book]):
    """Repository para operações CRUD e consultas de Book."""

    def __init__(self, db: AsyncSession):
        super().__init__(Book, db)

    # ==========================================
    # Consultas por campo
    # ==========================================

    async def find_by_author(self, author: Author | UUID) -> list[Book]:
        """Lista os livros de um autor (entidade ou ID), ordenados por título."""
        author_id = author.id if isinstance(author, Author) else author
        result = await self.db.execute(
            select(Book)
            .where(Book.author_id == author_id)
            .order_by(Book.title)
        )
        return list(result.scalars().all())

    async def find_by_title(self, title: str) -> list[Book]:
        """Livros com título exatamente igual."""
        result = await self.db.execute(select(Book).where(Book.title == title))
        return list(result.scalars().all())

    async def find_by_isbn(self, isbn: str) -> list[Book]:
        """Livros com ISBN exatamente igual."""
        result = await self.db.execute(select(Book).where(Book.isbn == isbn))
        return list(result.scalars().all())

    async def find_by_title_and_price(self, title: str, price: Decimal) -> list[Book]:
        """Livros com o título E o preço informados."""
        result = await self.db.execute(
            select(Book).where(Book.title == title, Book.price == price)
        )
        return list(result.scalars().all())

    async def find_by_title_or_isbn(self, title: str, isbn: str) -> list[Book]:
        """Livros com o título OU o ISBN informados."""
        result = await self.db.execute(
            select(Book).where(or_(Book.title == title, Book.isbn == isbn))
        )
        return list(result.scalars().all())

    async def find_by_publication_date_between(
        self,
        start: date,
        end: date,
    ) -> list[Book]:
        """Livros publicados entre start e end, inclusive."""
        result = await self.db.execute(
            select(Book)
            .where(Book.publication_date.between(start, end))
            .order_by(Book.publication_date)
        )
        return list(result.scalars().all())

    async def find_by_genre(self, genre: BookGenre) -> list[Book]:
        """Livros de um gênero, do mais barato para o mais caro."""
        result = await self.db.execute(
            select(Book).where(Book.genre == genre).order_by(Book.price)
        )
        return list(result.scalars().all())

    # ==========================================
    # Projeções e joins
    # ==========================================

    async def list_all_ordered_by_title_and_price(self) -> list[Book]:
        """Todos os livros ordenados por título e depois por preço."""
        result = await self.db.execute(
            select(Book).order_by(Book.title, Book.price)
        )
        return list(result.scalars().all())

    async def list_authors_of_books(self) -> list[Author]:
        """
        Autores dos livros cadastrados (join livro -> autor).

        Uma linha por livro com autor: um autor com dois livros aparece
        duas vezes.
        """
        result = await self.db.execute(
            select(Author)
            .join_from(Book, Book.author)
            .order_by(Book.title)
        )
        return list(result.scalars().all())

    async def list_distinct_titles(self) -> list[str]:
        """Títulos sem repetição, em ordem alfabética."""
        result = await self.db.execute(
            select(Book.title).distinct().order_by(Book.title)
        )
        return list(result.scalars().all())

    async def list_books_by_author_nationality(
        self,
        nationality: str = BRITISH,
    ) -> list[Book]:
        """Livros de autores de uma nacionalidade, ordenados por preço."""
        result = await self.db.execute(
            select(Book)
            .join(Book.author)
            .where(Author.nationality == nationality)
            .order_by(Book.price)
        )
        return list(result.scalars().all())

    # ==========================================
    # Operações em massa
    # ==========================================

    async def delete_by_genre(self, genre: BookGenre) -> int:
        """Remove todos os livros de um gênero."""
        total = await self._execute_modifying(
            delete(Book).where(Book.genre == genre)
        )
        logger.info(f"{total} livro(s) do gênero {genre.value} removido(s)")
        return total

    async def delete_by_author(self, author_id: UUID) -> int:
        """Remove todos os livros de um autor."""
        total = await self._execute_modifying(
            delete(Book).where(Book.author_id == author_id)
        )
        logger.info(f"{total} livro(s) do autor {author_id} removido(s)")
        return total

    async def update_publication_date(self, publication_date: date) -> int:
        """Define a mesma data de publicação para todos os livros."""
        total = await self._execute_modifying(
            update(Book).values(publication_date=publication_date)
        )
        logger.info(f"Data de publicação atualizada em {total} livro(s)")
        return total
