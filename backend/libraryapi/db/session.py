"""
Configuração de sessão do banco de dados com SQLAlchemy async.

Este módulo fornece o engine async, a session factory e helpers para
criação das tabelas e verificação da conexão.
"""

from typing import Any, AsyncGenerator, Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncAttrs,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Session

from libraryapi.core.config import get_settings
from libraryapi.core.logging import get_logger

settings = get_settings()
logger = get_logger(__name__)


class Base(AsyncAttrs, DeclarativeBase):
    """
    Classe base para todos os modelos SQLAlchemy.

    Relacionamentos não carregados são lidos com
    `await entidade.awaitable_attrs.<nome>`.
    """
    pass


class LibrarySession(Session):
    """Session síncrona usada por trás de cada AsyncSession da aplicação."""


@event.listens_for(LibrarySession, "pending_to_transient")
@event.listens_for(LibrarySession, "persistent_to_transient")
def _forget_unsaved_identity(session: Session, instance: Any) -> None:
    """
    Entidade inserida em uma transação desfeita volta a não ter ID.

    Assim um novo save da mesma instância insere de novo em vez de
    procurar um registro que nunca foi gravado.
    """
    if getattr(instance, "id", None) is not None:
        instance.id = None


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    """SQLite só respeita FOREIGN KEY com o pragma ligado em cada conexão."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(
    url: str,
    echo: bool = False,
    isolation_level: Optional[str] = None,
    pool_size: int = 10,
    max_overflow: int = 10,
) -> AsyncEngine:
    """
    Cria um engine async para a URL informada.

    Args:
        url: URL SQLAlchemy com driver async (asyncpg, aiosqlite)
        echo: Loga o SQL emitido
        isolation_level: Nível de isolamento (None = padrão do driver)
        pool_size: Conexões mantidas no pool (ignorado no SQLite)
        max_overflow: Conexões extras além do pool (ignorado no SQLite)

    Returns:
        Engine async configurado
    """
    options: dict[str, Any] = {"echo": echo, "pool_pre_ping": True}
    if isolation_level:
        options["isolation_level"] = isolation_level

    is_sqlite = url.startswith("sqlite")
    if not is_sqlite:
        options["pool_size"] = pool_size
        options["max_overflow"] = max_overflow

    engine = create_async_engine(url, **options)

    if is_sqlite:
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Cria a factory de sessões usada por repositórios e transações.

    expire_on_commit=False mantém as entidades legíveis após o commit;
    autoflush=False faz com que escritas pendentes só fiquem visíveis
    após um flush explícito ou o commit.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        sync_session_class=LibrarySession,
        expire_on_commit=False,
        autoflush=False,
    )


# Engine async com pool de conexões (SQL logado via setup_logging)
engine = build_engine(
    settings.DATABASE_URL,
    isolation_level=None if settings.is_sqlite else settings.DATABASE_ISOLATION_LEVEL,
    pool_size=settings.DATABASE_POOL_SIZE,
    max_overflow=settings.DATABASE_MAX_OVERFLOW,
)

# Factory de sessões async
async_session_factory = build_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Fornece uma sessão de banco de dados fora de transação explícita.

    Repositórios criados com esta sessão fazem commit a cada escrita.
    A sessão é sempre fechada ao final.
    """
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db(target: Optional[AsyncEngine] = None) -> None:
    """
    Cria as tabelas author e book caso não existam.

    Args:
        target: Engine a usar (padrão: engine da aplicação)
    """
    # Registra os models no metadata
    import libraryapi.models  # noqa: F401

    target = target or engine
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Tabelas criadas/verificadas")


async def drop_db(target: Optional[AsyncEngine] = None) -> None:
    """Remove todas as tabelas conhecidas pelo metadata."""
    import libraryapi.models  # noqa: F401

    target = target or engine
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.info("Tabelas removidas")


async def check_database_connection(
    target: Optional[AsyncEngine] = None,
) -> tuple[bool, str | None]:
    """
    Verifica se a conexão com o banco de dados está funcionando.

    Returns:
        Tupla (sucesso, mensagem_erro)
    """
    target = target or engine
    try:
        async with target.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True, None
    except Exception as e:
        logger.warning(f"Banco de dados indisponível: {e}")
        return False, str(e)
