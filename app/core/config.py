# app/core/config.py
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """
    Configurações globais da aplicação.

    Variáveis aceitas no .env:
    - DATABASE_URL (opcional) ou kidwatch_db_path
    - LOG_LEVEL
    - PRIVACY_*, CALL_WATCHDOG_*, DEVICE_ID_*, ACTIVITY_LOG_*

    E expõe propriedades amigáveis que usamos no código:
    - settings.database_url
    """

    # Config Pydantic v2
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # ignora qualquer variável extra que não tenhamos declarado
    )

    APP_NAME: str = "KidWatch Monitoring"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    # ------------------------------------------------------------------
    # Banco
    # ------------------------------------------------------------------
    kidwatch_db_path: str = "kidwatch.db"

    # Opcional: se você quiser setar DATABASE_URL direto no .env
    DATABASE_URL: Optional[str] = Field(
        default=None,
        alias="DATABASE_URL",
    )

    # ------------------------------------------------------------------
    # Device registry
    # ------------------------------------------------------------------
    DEVICE_ID_PREFIX: str = "DEV-"
    DEVICE_ID_MAX_ATTEMPTS: int = 5

    # ------------------------------------------------------------------
    # Modo privacidade
    # ------------------------------------------------------------------
    PRIVACY_TICK_SECONDS: float = 1.0
    PRIVACY_DEFAULT_MINUTES: int = 30
    PRIVACY_MAX_MINUTES: int = 240

    # ------------------------------------------------------------------
    # Watchdog de duração máxima de chamada
    # ------------------------------------------------------------------
    CALL_WATCHDOG_ENABLED: bool = True
    CALL_WATCHDOG_INTERVAL_SECONDS: int = 15

    # ------------------------------------------------------------------
    # Activity log
    # ------------------------------------------------------------------
    ACTIVITY_LOG_DEFAULT_LIMIT: int = 50
    ACTIVITY_LOG_MAX_LIMIT: int = 500

    # ==================================================================
    # Propriedades derivadas
    # ==================================================================

    @property
    def database_url(self) -> str:
        """
        URL async do banco para o SQLAlchemy.

        Prioridade:
        1) se DATABASE_URL estiver setada no .env, usa ela
        2) senão, SQLite local em kidwatch_db_path

        URLs síncronas são convertidas para o driver async
        (sqlite -> aiosqlite, postgresql -> asyncpg).
        """
        url = self.DATABASE_URL
        if not url:
            url = f"sqlite+aiosqlite:///{self.kidwatch_db_path}"

        if url.startswith("sqlite://"):
            url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        elif url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)

        return url


settings = Settings()
