"""
Script de seed para criar as tabelas e dados de exemplo no banco.

Uso:
    python -m libraryapi.db.seed

Cria a autora Ada Lovelace com o livro "Notes" se ela ainda não existir.
"""

import asyncio
from datetime import date
from decimal import Decimal

from libraryapi.core.logging import get_logger, setup_logging
from libraryapi.db.session import async_session_factory, engine, init_db
from libraryapi.models.author import Author
from libraryapi.models.book import Book
from libraryapi.models.enums import BookGenre
from libraryapi.repositories.author import AuthorRepository
from libraryapi.services.library import LibraryService
from libraryapi.services.transaction import TransactionManager

logger = get_logger(__name__)


async def seed_authors() -> None:
    """Cria a autora de exemplo e seus livros, uma única vez."""
    async with async_session_factory() as db:
        existing = await AuthorRepository(db).find_by_name("Ada Lovelace")

    if existing:
        logger.info(f"Autora de exemplo já existe: {existing[0].id}")
        return

    service = LibraryService(TransactionManager(async_session_factory))
    author, books = await service.save_author_with_books(
        Author(
            name="Ada Lovelace",
            nationality="British",
            birth_date=date(1815, 12, 10),
        ),
        [
            Book(
                isbn="000-1",
                title="Notes",
                genre=BookGenre.SCIENCE,
                publication_date=date(1843, 9, 1),
                price=Decimal("49.90"),
            ),
        ],
    )
    logger.info(f"Autora criada: {author.name} (ID: {author.id}, livros: {len(books)})")


async def main() -> None:
    """Executa todos os seeds."""
    setup_logging()
    logger.info("Executando seeds...")
    try:
        await init_db()
        await seed_authors()
    finally:
        await engine.dispose()
    logger.info("Seeds concluídos!")


if __name__ == "__main__":
    asyncio.run(main())
