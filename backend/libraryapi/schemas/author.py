"""
Schemas Pydantic para Author.
"""

from datetime import date

from pydantic import Field

from libraryapi.schemas.base import BaseSchema


class AuthorSchema(BaseSchema):
    """Restrições de Author aplicadas antes da escrita no banco."""
    name: str = Field(..., min_length=1, max_length=100, examples=["Ada Lovelace"])
    birth_date: date
    nationality: str = Field(..., min_length=1, max_length=50, examples=["British"])
