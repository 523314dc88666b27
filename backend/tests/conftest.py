"""
Fixtures compartilhadas para testes.

Cada teste recebe um banco SQLite novo em arquivo (tmp_path), com as
tabelas criadas e FOREIGN KEY ligada.
"""

import os

# Antes de importar libraryapi: o engine padrão é criado no import
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator, Callable

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from libraryapi.db.session import build_engine, build_session_factory, init_db
from libraryapi.models.author import Author
from libraryapi.models.book import Book
from libraryapi.models.enums import BookGenre
from libraryapi.repositories.author import AuthorRepository
from libraryapi.repositories.book import BookRepository
from libraryapi.services.library import LibraryService
from libraryapi.services.transaction import TransactionManager


# ==========================================
# Event loop configuration
# ==========================================

@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


# ==========================================
# Database fixtures
# ==========================================

@pytest.fixture
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Engine de teste apontando para um arquivo SQLite temporário."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'library.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    """Factory de sessões ligada ao engine de teste."""
    return build_session_factory(test_engine)


@pytest.fixture
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Sessão avulsa (fora de transação) para preparar e conferir dados.

    Repositórios criados com ela fazem commit a cada escrita.
    """
    async with session_factory() as session:
        yield session


@pytest.fixture
def author_repo(test_db) -> AuthorRepository:
    return AuthorRepository(test_db)


@pytest.fixture
def book_repo(test_db) -> BookRepository:
    return BookRepository(test_db)


@pytest.fixture
def transactions(session_factory) -> TransactionManager:
    """TransactionManager com propagação padrão (REQUIRED)."""
    return TransactionManager(session_factory)


@pytest.fixture
def library(transactions) -> LibraryService:
    return LibraryService(transactions)


# ==========================================
# Entity factories
# ==========================================

@pytest.fixture
def make_author() -> Callable[..., Author]:
    """Cria Author válido (não salvo), aceitando sobrescrita de campos."""

    def factory(**overrides) -> Author:
        data = {
            "name": "Ada Lovelace",
            "nationality": "British",
            "birth_date": date(1815, 12, 10),
        }
        data.update(overrides)
        return Author(**data)

    return factory


@pytest.fixture
def make_book() -> Callable[..., Book]:
    """Cria Book válido (não salvo), aceitando sobrescrita de campos."""

    def factory(**overrides) -> Book:
        data = {
            "isbn": "978-85-85940-00-1",
            "title": "Notes",
            "genre": BookGenre.SCIENCE,
            "publication_date": date(1843, 9, 1),
            "price": Decimal("49.90"),
        }
        data.update(overrides)
        return Book(**data)

    return factory
