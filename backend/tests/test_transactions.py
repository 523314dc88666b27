"""
Testes do TransactionManager.

Testa:
    - Commit / rollback e transições de estado
    - Alteração de entidade rastreada gravada sem save
    - save adiado x save_and_flush imediato
    - Propagação REQUIRED e REQUIRES_NEW
"""

import uuid
from datetime import date
from decimal import Decimal

import pytest

from libraryapi.core.exceptions import (
    ConstraintError,
    RollbackRequested,
    TransactionAbortedError,
    TransactionStateError,
    ValidationError,
)
from libraryapi.models.enums import BookGenre
from libraryapi.repositories.author import AuthorRepository
from libraryapi.repositories.base import TRANSACTION_KEY
from libraryapi.repositories.book import BookRepository
from libraryapi.services.transaction import (
    Propagation,
    Transaction,
    TransactionManager,
    TransactionState,
)


class TestTransactionStateMachine:
    """Transições válidas e inválidas de Transaction."""

    @pytest.mark.anyio
    async def test_commit_path(self, session_factory):
        async with session_factory() as session:
            tx = Transaction(session)
            assert tx.state is TransactionState.NOT_STARTED

            with pytest.raises(TransactionStateError):
                await tx.commit()
            with pytest.raises(TransactionStateError):
                await tx.rollback()

            await tx.begin()
            assert tx.state is TransactionState.ACTIVE
            assert session.info[TRANSACTION_KEY] is tx
            assert tx.authors.in_transaction is True

            with pytest.raises(TransactionStateError):
                await tx.begin()

            await tx.commit()
            assert tx.state is TransactionState.COMMITTED

            with pytest.raises(TransactionStateError):
                await tx.rollback()

            await tx.release()
            assert TRANSACTION_KEY not in session.info

    @pytest.mark.anyio
    async def test_rollback_is_terminal(self, session_factory):
        async with session_factory() as session:
            tx = Transaction(session)
            await tx.begin()
            await tx.rollback()

            assert tx.state is TransactionState.ROLLED_BACK
            with pytest.raises(TransactionStateError):
                await tx.commit()
            await tx.release()


class TestRunInTransaction:
    """Commit em caso de sucesso, rollback em qualquer falha."""

    @pytest.mark.anyio
    async def test_commit_persists_and_returns_result(
        self, transactions, author_repo, make_author
    ):
        seen = {}

        async def unit(tx: Transaction):
            seen["tx"] = tx
            seen["state"] = tx.state
            seen["current"] = transactions.current
            return await tx.authors.save(make_author())

        author = await transactions.run_in_transaction(unit)

        assert seen["state"] is TransactionState.ACTIVE
        assert seen["current"] is seen["tx"]
        assert seen["tx"].state is TransactionState.COMMITTED
        assert transactions.current is None
        assert await author_repo.find_by_id(author.id) == author

    @pytest.mark.anyio
    async def test_arguments_are_forwarded(self, transactions, make_author):
        async def unit(tx: Transaction, name: str, *, nationality: str):
            return await tx.authors.save(make_author(name=name, nationality=nationality))

        author = await transactions.run_in_transaction(unit, "Clarice", nationality="Brazilian")

        assert author.name == "Clarice"
        assert author.nationality == "Brazilian"

    @pytest.mark.anyio
    async def test_failure_rolls_back_flushed_writes(
        self, transactions, author_repo, make_author
    ):
        """Autor gravado e passo seguinte falha: contagem não muda."""
        await author_repo.save(make_author(name="Existente"))
        before = await author_repo.count()
        seen = {}

        async def unit(tx: Transaction):
            seen["tx"] = tx
            await tx.authors.save_and_flush(make_author())
            assert await tx.authors.count() == before + 1
            raise ValueError("falha proposital")

        with pytest.raises(TransactionAbortedError) as exc_info:
            await transactions.run_in_transaction(unit)

        cause = exc_info.value.cause
        assert isinstance(cause, ValueError)
        assert str(cause) == "falha proposital"
        assert exc_info.value.__cause__ is cause
        assert seen["tx"].state is TransactionState.ROLLED_BACK
        assert await author_repo.count() == before

    @pytest.mark.anyio
    async def test_explicit_rollback_request(self, transactions, author_repo, make_author):
        async def unit(tx: Transaction):
            await tx.authors.save_and_flush(make_author())
            raise RollbackRequested()

        with pytest.raises(TransactionAbortedError) as exc_info:
            await transactions.run_in_transaction(unit)

        assert isinstance(exc_info.value.cause, RollbackRequested)
        assert await author_repo.count() == 0

    @pytest.mark.anyio
    async def test_rollback_only(self, transactions, author_repo, make_author):
        async def unit(tx: Transaction):
            await tx.authors.save(make_author())
            tx.set_rollback_only()

        with pytest.raises(TransactionAbortedError) as exc_info:
            await transactions.run_in_transaction(unit)

        assert isinstance(exc_info.value.cause, RollbackRequested)
        assert await author_repo.count() == 0

    @pytest.mark.anyio
    async def test_touched_entities_are_restored_after_rollback(
        self, transactions, author_repo, make_author
    ):
        author = await author_repo.save(make_author())
        seen = {}

        async def unit(tx: Transaction):
            loaded = await tx.authors.find_by_id(author.id)
            loaded.name = "Nome Alterado"
            await tx.authors.save_and_flush(loaded)
            seen["author"] = loaded
            raise ValueError("falha")

        with pytest.raises(TransactionAbortedError):
            await transactions.run_in_transaction(unit)

        assert seen["author"] is not author
        assert seen["author"].name == "Ada Lovelace"

    @pytest.mark.anyio
    async def test_entities_created_in_aborted_transaction_lose_identity(
        self, transactions, author_repo, make_author, make_book
    ):
        """Entidades novas voltam sem ID e podem ser salvas de novo."""
        author = make_author()
        pending = make_book()

        async def unit(tx: Transaction):
            await tx.authors.save_and_flush(author)
            await tx.books.save(pending)
            assert author.id is not None
            raise ValueError("falha")

        with pytest.raises(TransactionAbortedError):
            await transactions.run_in_transaction(unit)

        assert author.id is None
        assert pending.id is None

        saved = await author_repo.save(author)
        assert saved is author
        assert await author_repo.find_by_id(author.id) == author
        assert await author_repo.count() == 1

    @pytest.mark.anyio
    async def test_retry_in_new_transaction(self, transactions, author_repo, make_author):
        author = make_author()

        async def unit(tx: Transaction, fail: bool):
            await tx.authors.save_and_flush(author)
            if fail:
                raise ValueError("falha")

        with pytest.raises(TransactionAbortedError):
            await transactions.run_in_transaction(unit, True)
        await transactions.run_in_transaction(unit, False)

        assert author.id is not None
        assert await author_repo.count() == 1


class TestManagedEntities:
    """Entidades rastreadas são gravadas no commit sem chamar save."""

    @pytest.mark.anyio
    async def test_mutated_price_persisted_on_commit(
        self, transactions, book_repo, session_factory, make_book
    ):
        book = await book_repo.save(make_book(price=Decimal("100.00")))

        async def unit(tx: Transaction):
            loaded = await tx.books.find_by_id(book.id)
            loaded.price = Decimal("150.00")

        await transactions.run_in_transaction(unit)

        async with session_factory() as db:
            found = await BookRepository(db).find_by_id(book.id)
            assert found.price == Decimal("150.00")

    @pytest.mark.anyio
    async def test_invalid_mutation_is_rejected_on_commit(
        self, transactions, book_repo, session_factory, make_book
    ):
        book = await book_repo.save(make_book())

        async def unit(tx: Transaction):
            loaded = await tx.books.find_by_id(book.id)
            loaded.title = ""

        with pytest.raises(TransactionAbortedError) as exc_info:
            await transactions.run_in_transaction(unit)

        assert isinstance(exc_info.value.cause, ValidationError)
        async with session_factory() as db:
            found = await BookRepository(db).find_by_id(book.id)
            assert found.title == "Notes"


class TestWriteVisibility:
    """save adia a escrita; save_and_flush envia na hora."""

    @pytest.mark.anyio
    async def test_save_deferred_save_and_flush_visible(
        self, transactions, author_repo, make_author
    ):
        async def unit(tx: Transaction):
            await tx.authors.save(make_author(name="Adiado"))
            after_save = await tx.authors.count()
            await tx.authors.save_and_flush(make_author(name="Imediato"))
            after_flush = await tx.authors.count()
            return after_save, after_flush

        after_save, after_flush = await transactions.run_in_transaction(unit)

        assert after_save == 0
        assert after_flush == 2
        assert await author_repo.count() == 2

    @pytest.mark.anyio
    async def test_save_and_flush_raises_constraint_error_immediately(
        self, transactions, book_repo, make_book
    ):
        reached = []

        async def unit(tx: Transaction):
            await tx.books.save_and_flush(make_book(author_id=uuid.uuid4()))
            reached.append(True)

        with pytest.raises(TransactionAbortedError) as exc_info:
            await transactions.run_in_transaction(unit)

        assert isinstance(exc_info.value.cause, ConstraintError)
        assert reached == []
        assert await book_repo.count() == 0

    @pytest.mark.anyio
    async def test_deferred_constraint_error_surfaces_on_commit(
        self, transactions, book_repo, make_book
    ):
        reached = []

        async def unit(tx: Transaction):
            await tx.books.save(make_book(author_id=uuid.uuid4()))
            reached.append(True)

        with pytest.raises(TransactionAbortedError) as exc_info:
            await transactions.run_in_transaction(unit)

        assert reached == [True]
        assert isinstance(exc_info.value.cause, ConstraintError)
        assert await book_repo.count() == 0

    @pytest.mark.anyio
    async def test_save_all_inside_transaction_aborts_everything(
        self, transactions, author_repo, make_author
    ):
        async def unit(tx: Transaction):
            await tx.authors.save_all([
                make_author(name="Válido"),
                make_author(name="x" * 101),
                make_author(name="Outro válido"),
            ])

        with pytest.raises(TransactionAbortedError) as exc_info:
            await transactions.run_in_transaction(unit)

        assert isinstance(exc_info.value.cause, ValidationError)
        assert await author_repo.count() == 0


class TestBulkOperationsInTransaction:
    """Operações em massa participam da transação."""

    @pytest.mark.anyio
    async def test_bulk_delete_is_rolled_back(
        self, transactions, book_repo, make_book
    ):
        await book_repo.save(make_book(genre=BookGenre.SCIENCE))

        async def unit(tx: Transaction):
            assert await tx.books.delete_by_genre(BookGenre.SCIENCE) == 1
            assert await tx.books.count() == 0
            raise ValueError("falha depois do delete")

        with pytest.raises(TransactionAbortedError):
            await transactions.run_in_transaction(unit)

        assert await book_repo.count() == 1

    @pytest.mark.anyio
    async def test_bulk_delete_includes_pending_saves(
        self, transactions, book_repo, make_book
    ):
        async def unit(tx: Transaction):
            await tx.books.save(make_book(isbn="1", genre=BookGenre.FANTASY))
            await tx.books.save(make_book(isbn="2", genre=BookGenre.FANTASY))
            await tx.books.save(make_book(isbn="3", genre=BookGenre.ROMANCE))
            return await tx.books.delete_by_genre(BookGenre.FANTASY)

        removed = await transactions.run_in_transaction(unit)

        assert removed == 2
        assert await book_repo.count() == 1

    @pytest.mark.anyio
    async def test_bulk_update_committed(
        self, transactions, book_repo, session_factory, make_book
    ):
        await book_repo.save_all([make_book(isbn="1"), make_book(isbn="2")])

        async def unit(tx: Transaction):
            return await tx.books.update_publication_date(date(2023, 1, 1))

        assert await transactions.run_in_transaction(unit) == 2
        async with session_factory() as db:
            books = await BookRepository(db).find_all()
            assert {b.publication_date for b in books} == {date(2023, 1, 1)}


class TestPropagation:
    """Chamadas aninhadas de run_in_transaction."""

    @pytest.mark.anyio
    async def test_required_joins_active_transaction(
        self, transactions, author_repo, make_author
    ):
        seen = {}

        async def inner(tx: Transaction):
            seen["inner"] = tx
            await tx.authors.save_and_flush(make_author(name="Interno"))

        async def outer(tx: Transaction):
            seen["outer"] = tx
            await transactions.run_in_transaction(inner)
            assert tx.state is TransactionState.ACTIVE
            raise ValueError("falha no externo")

        with pytest.raises(TransactionAbortedError):
            await transactions.run_in_transaction(outer)

        assert seen["inner"] is seen["outer"]
        assert await author_repo.count() == 0

    @pytest.mark.anyio
    async def test_required_nested_commit_happens_once(
        self, transactions, author_repo, make_author
    ):
        async def inner(tx: Transaction):
            await tx.authors.save(make_author(name="Interno"))

        async def outer(tx: Transaction):
            await tx.authors.save(make_author(name="Externo"))
            await transactions.run_in_transaction(inner)
            return tx

        tx = await transactions.run_in_transaction(outer)

        assert tx.state is TransactionState.COMMITTED
        assert await author_repo.count() == 2

    @pytest.mark.anyio
    async def test_inner_failure_caught_by_outer_still_rolls_back(
        self, transactions, author_repo, make_author
    ):
        """Falha interna capturada no externo marca a transação como rollback-only."""

        async def inner(tx: Transaction):
            await tx.authors.save(make_author(name="Interno"))
            raise ValueError("falha interna")

        async def outer(tx: Transaction):
            await tx.authors.save_and_flush(make_author(name="Externo"))
            try:
                await transactions.run_in_transaction(inner)
            except ValueError:
                pass

        with pytest.raises(TransactionAbortedError) as exc_info:
            await transactions.run_in_transaction(outer)

        assert isinstance(exc_info.value.cause, RollbackRequested)
        assert await author_repo.count() == 0

    @pytest.mark.anyio
    async def test_requires_new_commits_independently(
        self, transactions, session_factory, make_author
    ):
        independent = TransactionManager(session_factory, propagation=Propagation.REQUIRES_NEW)
        seen = {}

        async def inner(tx: Transaction):
            seen["inner"] = tx
            await tx.authors.save(make_author(name="Independente"))

        async def outer(tx: Transaction):
            seen["outer"] = tx
            await independent.run_in_transaction(inner)
            assert transactions.current is tx
            raise ValueError("falha no externo")

        with pytest.raises(TransactionAbortedError):
            await transactions.run_in_transaction(outer)

        assert seen["inner"] is not seen["outer"]
        assert seen["inner"].state is TransactionState.COMMITTED
        assert seen["outer"].state is TransactionState.ROLLED_BACK
        async with session_factory() as db:
            names = [a.name for a in await AuthorRepository(db).find_all()]
            assert names == ["Independente"]


@pytest.mark.anyio
async def test_transaction_context_manager(transactions, author_repo, make_author):
    async with transactions.transaction() as tx:
        await tx.authors.save(make_author())
        assert author_repo.in_transaction is False
        assert tx.authors.in_transaction is True

    assert tx.state is TransactionState.COMMITTED
    assert await author_repo.count() == 1
