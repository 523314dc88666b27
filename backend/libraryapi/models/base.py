"""
Mixins para models SQLAlchemy.
"""

import uuid
from typing import Any, Optional

from sqlalchemy import Uuid
from sqlalchemy.orm import Mapped, mapped_column


class UUIDMixin:
    """
    Mixin que adiciona ID do tipo UUID como primary key.

    O ID é atribuído no primeiro save e nunca muda depois disso.
    Igualdade é por identidade: duas entidades da mesma classe são iguais
    quando ambas têm ID e os IDs coincidem; sem ID, só a própria instância.
    """
    id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    def __eq__(self, other: Any) -> bool:
        if self is other:
            return True
        if type(self) is not type(other):
            return False
        # __dict__ evita disparar carga de atributo expirado
        own_id = self.__dict__.get("id")
        return own_id is not None and own_id == other.__dict__.get("id")

    def __hash__(self) -> int:
        # Estável antes e depois do ID ser atribuído
        return hash(type(self).__name__)
