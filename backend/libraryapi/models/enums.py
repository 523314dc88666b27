"""
Enums utilizados nos models da aplicação.
"""

import enum


class BookGenre(str, enum.Enum):
    """
    Gênero de um livro.

    Persistido pelo nome simbólico, nunca pela posição, para que
    reordenar o enum não corrompa dados já gravados.
    """
    FICTION = "FICTION"
    FANTASY = "FANTASY"
    MYSTERY = "MYSTERY"
    ROMANCE = "ROMANCE"
    BIOGRAPHY = "BIOGRAPHY"
    SCIENCE = "SCIENCE"
