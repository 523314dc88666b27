"""
Schemas Pydantic com as restrições de campo das entidades.
"""

from libraryapi.schemas.base import BaseSchema
from libraryapi.schemas.author import AuthorSchema
from libraryapi.schemas.book import BookSchema
from libraryapi.schemas.validation import validate_entities, validate_entity

__all__ = [
    "BaseSchema",
    "AuthorSchema",
    "BookSchema",
    "validate_entity",
    "validate_entities",
]
