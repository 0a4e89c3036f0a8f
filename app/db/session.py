# app/db/session.py

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings
from app.db.base import Base


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """
    Cria o engine assíncrono.

    Para SQLite liberamos o uso da conexão fora da thread que a criou
    (o aiosqlite roda o sqlite3 numa thread própria).
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_async_engine(url, future=True, echo=False, **kwargs)


def build_session_factory(bind: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# ----------------------------------------------------------------------
# Engine assíncrono usando a URL já tratada em settings.database_url
# ----------------------------------------------------------------------
engine = build_engine(settings.database_url)

# ----------------------------------------------------------------------
# Factory de sessão assíncrona
# ----------------------------------------------------------------------
AsyncSessionLocal = build_session_factory(engine)


# ----------------------------------------------------------------------
# Inicialização do banco (chamada no startup)
# ----------------------------------------------------------------------
async def init_db(bind: AsyncEngine | None = None) -> None:
    """
    Cria as tabelas no banco com base no Base.metadata.

    Em produção, o ideal é usar Alembic para migrations.
    Para desenvolvimento/local (e nos testes), isso aqui resolve.
    """
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
