"""
Módulo de banco de dados - conexões e sessões.

Exports:
    - Base: Classe base para modelos SQLAlchemy
    - LibrarySession: Session síncrona por trás das AsyncSession
    - engine: Engine async do SQLAlchemy
    - async_session_factory: Factory de sessões async
    - build_engine / build_session_factory: Criação com URL arbitrária
    - get_db: Sessão fora de transação explícita
    - init_db / drop_db: Criação e remoção das tabelas
"""

from libraryapi.db.session import (
    Base,
    LibrarySession,
    async_session_factory,
    build_engine,
    build_session_factory,
    check_database_connection,
    drop_db,
    engine,
    get_db,
    init_db,
)

__all__ = [
    "Base",
    "LibrarySession",
    "engine",
    "async_session_factory",
    "build_engine",
    "build_session_factory",
    "check_database_connection",
    "get_db",
    "init_db",
    "drop_db",
]
