"""
Configuração de logging da camada de persistência.

Nível configurável via LOG_LEVEL. O SQL emitido pelo SQLAlchemy passa
pelo mesmo handler quando DATABASE_ECHO está ligado, em vez de usar o
handler próprio do echo do engine.
"""

import logging
import sys
from typing import Optional, TextIO

from libraryapi.core.config import get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Drivers que só interessam em caso de problema
QUIET_LOGGERS = ("sqlalchemy.pool", "aiosqlite", "asyncpg")


def setup_logging(
    level: Optional[str] = None,
    log_sql: Optional[bool] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Configura o logging da aplicação.

    Args:
        level: Nível de logging (padrão: LOG_LEVEL)
        log_sql: Loga cada comando SQL em INFO (padrão: DATABASE_ECHO)
        stream: Destino dos logs (padrão: stdout)
    """
    settings = get_settings()
    log_level = (level or settings.LOG_LEVEL).upper()
    if log_sql is None:
        log_sql = settings.DATABASE_ECHO

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove handlers existentes para evitar duplicação
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if log_sql else logging.WARNING
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configurado com nível: {log_level} (SQL: {'sim' if log_sql else 'não'})")


def get_logger(name: str) -> logging.Logger:
    """Retorna o logger do módulo (geralmente __name__)."""
    return logging.getLogger(name)
