"""
Repository para operações de Author no banco de dados.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from libraryapi.core.exceptions import ConstraintError
from libraryapi.models.author import Author
from libraryapi.models.book import Book
from libraryapi.repositories.base import BaseRepository


class AuthorRepository(BaseRepository[Author]):
    """
    Repository para operações CRUD de Author.

    Remoção é restritiva: autor com livros não pode ser removido.
    Para remover em cascata use LibraryService.delete_author_cascade.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Author, db)

    async def find_by_name(self, name: str) -> list[Author]:
        """Busca autores por nome exato."""
        result = await self.db.execute(
            select(Author).where(Author.name == name).order_by(Author.birth_date)
        )
        return list(result.scalars().all())

    async def find_by_nationality(self, nationality: str) -> list[Author]:
        """Busca autores por nacionalidade exata, ordenados por nome."""
        result = await self.db.execute(
            select(Author)
            .where(Author.nationality == nationality)
            .order_by(Author.name)
        )
        return list(result.scalars().all())

    async def count_books(self, author_id) -> int:
        """Conta livros que referenciam o autor."""
        result = await self.db.execute(
            select(func.count(Book.id)).where(Book.author_id == author_id)
        )
        return result.scalar_one()

    async def _before_delete(self, instance: Author) -> None:
        total = await self.count_books(instance.id)
        if total:
            raise ConstraintError(
                self.entity_name,
                f"Não é possível remover autor com {total} livro(s) cadastrado(s)",
            )
