"""
Repository base com operações CRUD genéricas.

O comportamento de escrita depende da sessão recebida:

- Sessão avulsa (sem transação): cada escrita é validada, enviada e
  commitada na hora; em caso de erro a sessão sofre rollback.
- Sessão de uma Transaction: escritas ficam pendentes até o commit da
  transação (ou até um flush explícito, como em save_and_flush).
"""

import uuid
from contextlib import contextmanager
from typing import Any, Generic, Iterable, Iterator, Optional, Type, TypeVar

from sqlalchemy import func, inspect, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Executable

from libraryapi.core.exceptions import (
    ConstraintError,
    LibraryError,
    NotFoundError,
    ValidationError,
)
from libraryapi.core.logging import get_logger
from libraryapi.db.session import Base
from libraryapi.schemas.validation import validate_entities, validate_entity

ModelType = TypeVar("ModelType", bound=Base)

# Chave em AsyncSession.info que marca a sessão como transacional
TRANSACTION_KEY = "libraryapi.transaction"

logger = get_logger(__name__)


class BaseRepository(Generic[ModelType]):
    """
    Repository base com operações CRUD.

    Fornece métodos genéricos para:
    - save / save_and_flush / save_all: Inserir ou atualizar
    - find_by_id / find_all / exists_by_id: Consultas
    - update_by_id: Atualizar campos de um registro existente
    - delete_by_id: Remover registro
    - count: Contar registros
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    @property
    def entity_name(self) -> str:
        return self.model.__name__

    @property
    def in_transaction(self) -> bool:
        """True quando a sessão pertence a uma Transaction ativa."""
        return self.db.info.get(TRANSACTION_KEY) is not None

    # ==========================================
    # Escrita
    # ==========================================

    async def save(self, entity: ModelType) -> ModelType:
        """
        Insere a entidade se ela não tem ID, ou atualiza se já tem.

        Returns:
            Instância persistente (a cópia mesclada, quando a entidade
            veio de outra sessão)

        Raises:
            ValidationError: Restrição de campo violada
            ConstraintError: Violação de integridade no banco
            NotFoundError: Entidade com ID que não existe no banco
        """
        entity = await self._attach(entity)
        await self._sync()
        return entity

    async def save_and_flush(self, entity: ModelType) -> ModelType:
        """
        Igual a save, mas envia a escrita ao banco antes de retornar.

        Dentro de uma transação, a escrita passa a ser visível para as
        consultas seguintes e violações de integridade aparecem na hora.
        """
        entity = await self._attach(entity)
        await self._sync(flush=True)
        return entity

    async def save_all(self, entities: Iterable[ModelType]) -> list[ModelType]:
        """
        Aplica save a cada entidade, na ordem recebida.

        Dentro de uma transação, qualquer falha aborta a transação inteira.
        Fora dela, cada entidade é tentada e commitada de forma
        independente: as válidas ficam gravadas mesmo que outras falhem,
        e a primeira falha é propagada depois que todas foram tentadas.

        Raises:
            LibraryError: Primeira falha de validação ou integridade
        """
        if self.in_transaction:
            return [await self.save(entity) for entity in entities]

        saved = []
        failures: list[LibraryError] = []
        for entity in entities:
            try:
                saved.append(await self.save(entity))
            except LibraryError as e:
                logger.warning(f"{self.entity_name} não salvo em save_all: {e.message}")
                failures.append(e)

        if failures:
            raise failures[0]
        return saved

    async def update_by_id(self, id: uuid.UUID, /, **values: Any) -> ModelType:
        """
        Atualiza campos de um registro existente.

        Raises:
            NotFoundError: Nenhum registro com o ID informado
            ValidationError: Campo desconhecido ou valor inválido
        """
        instance = await self.find_by_id(id)
        if instance is None:
            raise NotFoundError(self.entity_name, id)

        columns = inspect(self.model).attrs
        unknown = [key for key in values if key not in columns or key == "id"]
        if unknown:
            raise ValidationError(
                self.entity_name,
                [{"field": key, "message": "Campo não pode ser atualizado"} for key in unknown],
            )

        for key, value in values.items():
            setattr(instance, key, value)
        await self._validate_tracked(instance)
        await self._sync()
        return instance

    async def delete_by_id(self, id: uuid.UUID) -> None:
        """
        Remove o registro. ID inexistente não é erro.

        Raises:
            ConstraintError: Remoção violaria a integridade referencial
        """
        instance = await self.find_by_id(id)
        if instance is None:
            logger.debug(f"{self.entity_name} {id} já não existe, nada a remover")
            return

        await self._before_delete(instance)
        await self.db.delete(instance)
        await self._sync(flush=True)
        logger.debug(f"{self.entity_name} removido: {id}")

    # ==========================================
    # Leitura
    # ==========================================

    async def find_by_id(self, id: uuid.UUID) -> ModelType | None:
        """Busca registro por ID."""
        result = await self.db.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.scalar_one_or_none()

    async def find_all(self) -> list[ModelType]:
        """Lista todos os registros, sem ordem definida."""
        result = await self.db.execute(select(self.model))
        return list(result.scalars().all())

    async def exists_by_id(self, id: uuid.UUID) -> bool:
        """Verifica se existe registro com o ID."""
        result = await self.db.execute(
            select(func.count(self.model.id)).where(self.model.id == id)
        )
        return result.scalar_one() > 0

    async def count(self) -> int:
        """Conta total de registros."""
        result = await self.db.execute(
            select(func.count(self.model.id))
        )
        return result.scalar_one()

    # ==========================================
    # Internos
    # ==========================================

    async def _before_delete(self, instance: ModelType) -> None:
        """Gancho para regras de remoção das subclasses."""

    async def _validate_tracked(self, entity: ModelType) -> None:
        """Valida entidade já presente na sessão."""
        try:
            validate_entity(entity)
        except ValidationError:
            # Fora de transação a alteração inválida não fica pendente na sessão
            if not self.in_transaction and inspect(entity).persistent:
                await self.db.refresh(entity)
            raise

    async def _attach(self, entity: ModelType) -> ModelType:
        """Valida a entidade e a coloca sob controle da sessão."""
        if entity in self.db:
            await self._validate_tracked(entity)
            return entity

        if entity.id is None:
            validate_entity(entity)
            entity.id = uuid.uuid4()
            self.db.add(entity)
            logger.debug(f"{self.entity_name} novo: {entity.id}")
            return entity

        if await self.db.get(self.model, entity.id) is None:
            raise NotFoundError(self.entity_name, entity.id)
        validate_entity(entity)
        merged = await self.db.merge(entity)
        logger.debug(f"{self.entity_name} mesclado: {entity.id}")
        return merged

    @contextmanager
    def _integrity_guard(self) -> Iterator[None]:
        """Traduz IntegrityError do SQLAlchemy em ConstraintError."""
        try:
            yield
        except IntegrityError as e:
            logger.warning(f"Violação de integridade em {self.entity_name}: {e.orig}")
            raise ConstraintError(self.entity_name, str(e.orig)) from e

    async def _flush(self) -> None:
        """Valida tudo que está pendente e envia ao banco."""
        validate_entities([*self.db.new, *self.db.dirty])
        with self._integrity_guard():
            await self.db.flush()

    async def _sync(self, flush: bool = False) -> None:
        """
        Fora de transação: flush + commit, com rollback em caso de erro.
        Dentro de transação: flush apenas quando pedido.
        """
        if self.in_transaction:
            if flush:
                await self._flush()
            return

        try:
            await self._flush()
            with self._integrity_guard():
                await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    async def _execute_modifying(self, statement: Executable) -> int:
        """
        Executa um DELETE/UPDATE em massa de forma atômica.

        Escritas pendentes são enviadas antes, para entrarem no critério.

        Returns:
            Quantidade de registros afetados
        """
        if self.in_transaction:
            await self._flush()
            with self._integrity_guard():
                result = await self.db.execute(statement)
            return result.rowcount

        try:
            await self._flush()
            with self._integrity_guard():
                result = await self.db.execute(statement)
                await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return result.rowcount
