"""
Setting persistence using PostgreSQL

Each row holds one raw (already serialized, possibly encrypted) value.
Rows with model_id NULL are the default rows, overriding a setting's
declared default for every id.
"""

import asyncpg
from abc import ABC, abstractmethod
from typing import Optional

from appsettings.core.config import get_config
from appsettings.core.exceptions import PersistedSettingNotFound
from appsettings.core.logging import get_logger
from appsettings.models.setting import Setting

logger = get_logger(__name__)


class PersistedSettingRepository(ABC):
    """
    Where setting values live.

    Lookups raise PersistedSettingNotFound when there is no row, so a stored
    None can be told apart from a missing value.
    """

    @abstractmethod
    async def get_value_with_id(self, setting: Setting, model_id: str):
        ...

    @abstractmethod
    async def get_default_value(self, setting: Setting):
        ...

    @abstractmethod
    async def set_value(self, setting: Setting, value, model_id: str) -> None:
        ...

    @abstractmethod
    async def set_default_value(self, setting: Setting, value) -> None:
        ...

    @abstractmethod
    async def forget_value(self, setting: Setting, model_id: Optional[str]) -> bool:
        """Delete a row. Returns whether a row existed."""


class DatabaseSettingRepository(PersistedSettingRepository):
    """
    PostgreSQL-based setting storage

    Table (name from config.settings_table):
    - id, key, value, model_id, created_at, updated_at
    - unique on (key, COALESCE(model_id, ''))
    """

    def __init__(self):
        self._config = get_config()
        self._pool: Optional[asyncpg.Pool] = None

    @property
    def table(self) -> str:
        return self._config.settings_table

    async def connect(self) -> None:
        """Initialize the database connection pool and create the table"""
        self._pool = await asyncpg.create_pool(
            self._config.database_url,
            min_size=2,
            max_size=10,
        )

        async with self._pool.acquire() as conn:
            await conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    id BIGSERIAL PRIMARY KEY,
                    key TEXT NOT NULL,
                    value TEXT,
                    model_id TEXT,
                    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                )
            """)

            await conn.execute(f"""
                CREATE UNIQUE INDEX IF NOT EXISTS idx_{self.table}_key_model
                ON {self.table} (key, (COALESCE(model_id, '')))
            """)

        logger.info("setting_db_connected", database="postgresql", table=self.table)

    async def disconnect(self) -> None:
        """Close the database connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("setting_db_disconnected")

    async def ping(self) -> bool:
        if self._pool is None:
            return False
        async with self._pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
        return True

    async def _fetch(self, setting: Setting, model_id: Optional[str]) -> Optional[str]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(f"""
                SELECT value
                FROM {self.table}
                WHERE key = $1 AND model_id IS NOT DISTINCT FROM $2
            """, setting.key, model_id)

        if row is None:
            raise PersistedSettingNotFound(setting.key, model_id)
        return row["value"]

    async def _upsert(self, setting: Setting, value: Optional[str], model_id: Optional[str]) -> None:
        async with self._pool.acquire() as conn:
            await conn.execute(f"""
                INSERT INTO {self.table} (key, value, model_id)
                VALUES ($1, $2, $3)
                ON CONFLICT (key, (COALESCE(model_id, '')))
                DO UPDATE SET value = EXCLUDED.value, updated_at = NOW()
            """, setting.key, value, model_id)

        logger.info("setting_value_stored", key=setting.key, model_id=model_id)

    async def get_value_with_id(self, setting: Setting, model_id: str) -> Optional[str]:
        return await self._fetch(setting, model_id)

    async def get_default_value(self, setting: Setting) -> Optional[str]:
        return await self._fetch(setting, None)

    async def set_value(self, setting: Setting, value: Optional[str], model_id: str) -> None:
        await self._upsert(setting, value, model_id)

    async def set_default_value(self, setting: Setting, value: Optional[str]) -> None:
        await self._upsert(setting, value, None)

    async def forget_value(self, setting: Setting, model_id: Optional[str]) -> bool:
        async with self._pool.acquire() as conn:
            result = await conn.execute(f"""
                DELETE FROM {self.table}
                WHERE key = $1 AND model_id IS NOT DISTINCT FROM $2
            """, setting.key, model_id)

        # Status is "DELETE <count>"
        deleted = result.split()[-1] != "0"
        if deleted:
            logger.info("setting_value_forgotten", key=setting.key, model_id=model_id)
        return deleted


# Singleton instance
setting_db = DatabaseSettingRepository()
