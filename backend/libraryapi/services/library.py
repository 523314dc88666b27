"""
Service com as operações que envolvem Author e Book juntos.

Cascatas entre autor e livros são explícitas aqui; o relacionamento
Author.books é apenas leitura.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from libraryapi.core.exceptions import NotFoundError, RollbackRequested
from libraryapi.core.logging import get_logger
from libraryapi.models.author import Author
from libraryapi.models.book import Book
from libraryapi.models.enums import BookGenre
from libraryapi.services.transaction import Transaction, TransactionManager

logger = get_logger(__name__)


class LibraryService:
    """Service para operações transacionais de autores e livros."""

    def __init__(self, transaction_manager: TransactionManager):
        self.transactions = transaction_manager

    async def save_author_with_books(
        self,
        author: Author,
        books: Iterable[Book],
    ) -> tuple[Author, list[Book]]:
        """
        Salva o autor e seus livros em uma única transação.

        Returns:
            Tupla (autor salvo, livros salvos)

        Raises:
            TransactionAbortedError: Autor ou algum livro inválido;
                nada é gravado
        """
        books = list(books)

        async def unit(tx: Transaction) -> tuple[Author, list[Book]]:
            saved_author = await tx.authors.save_and_flush(author)
            for book in books:
                book.author = saved_author
            saved_books = await tx.books.save_all(books)
            return saved_author, saved_books

        saved_author, saved_books = await self.transactions.run_in_transaction(unit)
        logger.info(f"Autor {saved_author.id} salvo com {len(saved_books)} livro(s)")
        return saved_author, saved_books

    async def delete_author_cascade(self, author_id: UUID) -> int:
        """
        Remove o autor e todos os seus livros.

        Returns:
            Quantidade de livros removidos

        Raises:
            TransactionAbortedError: Autor não encontrado (causa NotFoundError)
        """

        async def unit(tx: Transaction) -> int:
            if not await tx.authors.exists_by_id(author_id):
                raise NotFoundError("Author", author_id)
            removed = await tx.books.delete_by_author(author_id)
            await tx.authors.delete_by_id(author_id)
            return removed

        removed = await self.transactions.run_in_transaction(unit)
        logger.info(f"Autor {author_id} removido junto com {removed} livro(s)")
        return removed

    async def reassign_author(self, book_id: UUID, author_id: UUID) -> Book:
        """
        Troca o autor de um livro.

        Raises:
            TransactionAbortedError: Livro ou autor não encontrado
        """

        async def unit(tx: Transaction) -> Book:
            book = await tx.books.find_by_id(book_id)
            if book is None:
                raise NotFoundError("Book", book_id)
            author = await tx.authors.find_by_id(author_id)
            if author is None:
                raise NotFoundError("Author", author_id)
            book.author = author
            return book

        return await self.transactions.run_in_transaction(unit)

    async def update_publication_date_without_save(
        self,
        book_id: UUID,
        publication_date: date,
    ) -> Book:
        """
        Altera a data de publicação sem chamar save.

        O livro fica rastreado pela transação, então a alteração é gravada
        no commit.

        Raises:
            TransactionAbortedError: Livro não encontrado
        """

        async def unit(tx: Transaction) -> Book:
            book = await tx.books.find_by_id(book_id)
            if book is None:
                raise NotFoundError("Book", book_id)
            book.publication_date = publication_date
            return book

        return await self.transactions.run_in_transaction(unit)

    async def run_rollback_demo(self) -> None:
        """
        Grava autor e livro com save_and_flush e então pede rollback.

        Mesmo com os dados já enviados ao banco, nada permanece.

        Raises:
            TransactionAbortedError: Sempre, com causa RollbackRequested
        """

        async def unit(tx: Transaction) -> None:
            author = Author(
                name="Teste Francisco",
                nationality="British",
                birth_date=date(1992, 1, 3),
            )
            await tx.authors.save_and_flush(author)

            book = Book(
                isbn="578-81-68090-00-1",
                title="Teste Livro do Francisco",
                price=Decimal("100"),
                genre=BookGenre.SCIENCE,
                publication_date=date(1707, 10, 5),
                author=author,
            )
            await tx.books.save_and_flush(book)

            if author.name.lower() == "teste francisco":
                raise RollbackRequested("Rollback")

        await self.transactions.run_in_transaction(unit)
