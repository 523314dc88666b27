"""
Exceções da camada de persistência.

Nenhuma delas é re-tentada automaticamente: corrigir a entrada ou repetir a
transação é responsabilidade de quem chama.
"""

from typing import Any, Optional


class LibraryError(Exception):
    """Exceção base para todos os erros da camada de persistência."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(LibraryError):
    """
    Campo obrigatório ausente ou restrição de tamanho/formato violada.

    Attributes:
        entity: Nome da entidade rejeitada
        errors: Lista de dicts com "field" e "message"
    """

    def __init__(self, entity: str, errors: list[dict[str, Any]]):
        self.entity = entity
        self.errors = errors
        fields = ", ".join(str(e["field"]) for e in errors)
        super().__init__(
            message=f"Dados inválidos para {entity}: {fields}",
            details={"entity": entity, "errors": errors},
        )

    @property
    def fields(self) -> list[str]:
        """Nomes dos campos rejeitados."""
        return [str(e["field"]) for e in self.errors]


class ConstraintError(LibraryError):
    """Regra de unicidade ou integridade referencial violada no banco."""

    def __init__(self, entity: str, reason: str):
        self.entity = entity
        self.reason = reason
        super().__init__(
            message=f"Violação de integridade em {entity}: {reason}",
            details={"entity": entity, "reason": reason},
        )


class NotFoundError(LibraryError):
    """Operação exige um registro existente que não foi encontrado."""

    def __init__(self, entity: str, identifier: Any):
        self.entity = entity
        self.identifier = identifier
        super().__init__(
            message=f"{entity} não encontrado: {identifier}",
            details={"entity": entity, "id": str(identifier)},
        )


class TransactionAbortedError(LibraryError):
    """
    Unidade de trabalho falhou e a transação foi desfeita.

    Attributes:
        cause: Exceção original que provocou o rollback
    """

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(
            message=f"Transação desfeita: {cause}",
            details={"cause": type(cause).__name__},
        )


class TransactionStateError(LibraryError):
    """Transição de estado inválida em uma transação."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(
            message=f"Transição inválida: {current} -> {target}",
            details={"current": current, "target": target},
        )


class RollbackRequested(LibraryError):
    """Levantada pela unidade de trabalho para pedir rollback explícito."""

    def __init__(self, reason: str = "Rollback solicitado"):
        super().__init__(message=reason)
