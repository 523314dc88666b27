"""
Schemas Pydantic para Book.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import Field

from libraryapi.models.enums import BookGenre
from libraryapi.schemas.base import BaseSchema


class BookSchema(BaseSchema):
    """Restrições de Book aplicadas antes da escrita no banco."""
    isbn: str = Field(..., min_length=1, max_length=20, examples=["978-85-85940-00-1"])
    title: str = Field(..., min_length=1, max_length=200)
    publication_date: Optional[date] = None
    genre: BookGenre
    price: Optional[Decimal] = Field(None, max_digits=18, decimal_places=2)
    author_id: Optional[UUID] = None
