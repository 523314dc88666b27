"""
Gerenciamento de transações (unidade de trabalho).

Ciclo de vida de uma transação:
    NOT_STARTED -> ACTIVE -> COMMITTED   (unidade concluída sem erro)
    NOT_STARTED -> ACTIVE -> ROLLED_BACK (qualquer exceção)

Entidades lidas ou gravadas dentro da transação ficam rastreadas pela
sessão: alterar um atributo de uma delas já basta para que a mudança seja
validada e gravada no commit, sem chamar save.
"""

import enum
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, InvalidRequestError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from libraryapi.core.exceptions import (
    ConstraintError,
    RollbackRequested,
    TransactionAbortedError,
    TransactionStateError,
)
from libraryapi.core.logging import get_logger
from libraryapi.repositories.author import AuthorRepository
from libraryapi.repositories.base import TRANSACTION_KEY
from libraryapi.repositories.book import BookRepository
from libraryapi.schemas.validation import validate_entities

logger = get_logger(__name__)

T = TypeVar("T")

_current_transaction: ContextVar[Optional["Transaction"]] = ContextVar(
    "current_transaction",
    default=None,
)


class TransactionState(str, enum.Enum):
    """Estados de uma transação."""
    NOT_STARTED = "NOT_STARTED"
    ACTIVE = "ACTIVE"
    COMMITTED = "COMMITTED"    # final
    ROLLED_BACK = "ROLLED_BACK"  # final


class Propagation(str, enum.Enum):
    """
    Política para run_in_transaction chamado dentro de outra transação.

    REQUIRED: participa da transação ativa, sem commit/rollback próprio.
    REQUIRES_NEW: abre sessão e transação independentes.
    """
    REQUIRED = "REQUIRED"
    REQUIRES_NEW = "REQUIRES_NEW"


_TRANSITIONS = {
    TransactionState.NOT_STARTED: {TransactionState.ACTIVE},
    TransactionState.ACTIVE: {TransactionState.COMMITTED, TransactionState.ROLLED_BACK},
    TransactionState.COMMITTED: set(),
    TransactionState.ROLLED_BACK: set(),
}


class Transaction:
    """
    Contexto transacional entregue à unidade de trabalho.

    Attributes:
        session: Sessão exclusiva desta transação
        state: Estado atual
        authors: AuthorRepository ligado à sessão
        books: BookRepository ligado à sessão
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.state = TransactionState.NOT_STARTED
        self.rollback_only = False
        self.authors = AuthorRepository(session)
        self.books = BookRepository(session)

    def __repr__(self) -> str:
        return f"<Transaction {id(self):#x} {self.state.value}>"

    @property
    def is_active(self) -> bool:
        return self.state is TransactionState.ACTIVE

    def set_rollback_only(self) -> None:
        """Marca a transação para terminar em rollback."""
        self.rollback_only = True

    def _transition(self, target: TransactionState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise TransactionStateError(self.state.value, target.value)
        self.state = target

    async def begin(self) -> None:
        """Inicia a transação e liga a sessão aos repositórios."""
        self._transition(TransactionState.ACTIVE)
        self.session.info[TRANSACTION_KEY] = self
        await self.session.begin()
        logger.debug(f"{self!r} iniciada")

    async def commit(self) -> None:
        """
        Valida as entidades novas e alteradas e efetiva a transação.

        Raises:
            RollbackRequested: Transação marcada como rollback-only
            ValidationError: Entidade rastreada com campo inválido
            ConstraintError: Violação de integridade no banco
        """
        if not self.is_active:
            raise TransactionStateError(self.state.value, TransactionState.COMMITTED.value)
        if self.rollback_only:
            raise RollbackRequested("Transação marcada como rollback-only")

        validate_entities([*self.session.new, *self.session.dirty])
        try:
            await self.session.commit()
        except IntegrityError as e:
            raise ConstraintError("Transaction", str(e.orig)) from e

        self._transition(TransactionState.COMMITTED)
        logger.debug(f"{self!r} efetivada")

    async def rollback(self) -> None:
        """Desfaz tudo e recarrega as entidades rastreadas com o estado anterior."""
        self._transition(TransactionState.ROLLED_BACK)
        await self.session.rollback()
        await self._restore_tracked()
        logger.debug(f"{self!r} desfeita")

    async def _restore_tracked(self) -> None:
        # Objetos inseridos nesta transação já saíram da sessão no rollback
        for instance in list(self.session.identity_map.values()):
            try:
                await self.session.refresh(instance)
            except InvalidRequestError:
                # Registro removido por outra transação
                self.session.expunge(instance)
            except SQLAlchemyError as e:
                logger.warning(f"Não foi possível restaurar entidades após rollback: {e}")
                self.session.expunge_all()
                return

    async def release(self) -> None:
        """Desliga a sessão dos repositórios e devolve a conexão."""
        self.session.info.pop(TRANSACTION_KEY, None)
        await self.session.close()


class TransactionManager:
    """
    Executa unidades de trabalho de forma atômica.

    Uso:
        manager = TransactionManager(async_session_factory)

        async def cadastrar(tx: Transaction) -> Author:
            return await tx.authors.save(author)

        author = await manager.run_in_transaction(cadastrar)
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        propagation: Propagation = Propagation.REQUIRED,
    ):
        if session_factory is None:
            from libraryapi.db.session import async_session_factory

            session_factory = async_session_factory
        self.session_factory = session_factory
        self.propagation = propagation

    @property
    def current(self) -> Optional[Transaction]:
        """Transação ativa no contexto atual, se houver."""
        active = _current_transaction.get()
        return active if active is not None and active.is_active else None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        """
        Abre (ou participa de) uma transação.

        Raises:
            TransactionAbortedError: Qualquer falha dentro do bloco; a causa
                original fica em .cause e no encadeamento da exceção
        """
        active = self.current
        if active is not None and self.propagation is Propagation.REQUIRED:
            logger.debug(f"Participando de {active!r}")
            try:
                yield active
            except Exception:
                # A falha chega ao dono da transação, mesmo se for capturada no caminho
                active.set_rollback_only()
                raise
            return

        async with self.session_factory() as session:
            tx = Transaction(session)
            token = _current_transaction.set(tx)
            try:
                await tx.begin()
                try:
                    yield tx
                    await tx.commit()
                except Exception as e:
                    logger.warning(f"Rollback de {tx!r}: {type(e).__name__}: {e}")
                    await tx.rollback()
                    raise TransactionAbortedError(e) from e
            finally:
                _current_transaction.reset(token)
                await tx.release()

    async def run_in_transaction(
        self,
        unit_of_work: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """
        Executa unit_of_work(tx, *args, **kwargs) dentro de uma transação.

        Returns:
            O retorno da unidade de trabalho, após o commit

        Raises:
            TransactionAbortedError: A unidade falhou e tudo foi desfeito
        """
        async with self.transaction() as tx:
            return await unit_of_work(tx, *args, **kwargs)
