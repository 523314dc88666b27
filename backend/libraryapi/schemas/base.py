"""
Schemas base reutilizáveis em toda a aplicação.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError


class BaseSchema(BaseModel):
    """
    Schema base com configurações padrão.

    from_attributes permite validar diretamente uma entidade SQLAlchemy;
    str_strip_whitespace faz textos só com espaços contarem como vazios.
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
    )


def field_errors(exc: PydanticValidationError) -> list[dict[str, Any]]:
    """Converte erros do Pydantic em uma lista de {"field", "message"}."""
    return [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
