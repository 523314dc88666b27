"""
Validação de entidades na fronteira de persistência.
"""

from typing import Any

from pydantic import ValidationError as PydanticValidationError

from libraryapi.core.exceptions import ValidationError
from libraryapi.models.author import Author
from libraryapi.models.book import Book
from libraryapi.schemas.author import AuthorSchema
from libraryapi.schemas.base import BaseSchema, field_errors
from libraryapi.schemas.book import BookSchema

ENTITY_SCHEMAS: dict[type, type[BaseSchema]] = {
    Author: AuthorSchema,
    Book: BookSchema,
}


def validate_entity(entity: Any) -> None:
    """
    Valida os campos de uma entidade contra o schema correspondente.

    Entidades sem schema registrado passam sem verificação.

    Raises:
        ValidationError: Campo obrigatório ausente ou fora do limite
    """
    schema = ENTITY_SCHEMAS.get(type(entity))
    if schema is None:
        return
    try:
        schema.model_validate(entity)
    except PydanticValidationError as e:
        raise ValidationError(type(entity).__name__, field_errors(e)) from e


def validate_entities(entities: Any) -> None:
    """Valida cada entidade do iterável, parando no primeiro erro."""
    for entity in entities:
        validate_entity(entity)
