"""
User database service using PostgreSQL

Persistent storage for users, their tenant and their API keys
"""

import asyncpg
import hashlib
import secrets
from typing import Optional

from appsettings.core.config import get_config
from appsettings.core.logging import get_logger

logger = get_logger(__name__)

class UserDB:
    """
    PostgreSQL-based user and API key storage

    Tables:
    - users: id, tenant_id, is_admin, is_superuser, api_key_hash, created_at
    """

    def __init__(self):
        self._config = get_config()
        self._pool: Optional[asyncpg.Pool] = None

    @staticmethod
    def hash_key(api_key: str) -> str:
        """Hash an API key for secure storage"""
        return hashlib.sha256(api_key.encode()).hexdigest()

    async def connect(self) -> None:
        """Initialize the database connection pool and create tables"""
        self._pool = await asyncpg.create_pool(
            self._config.database_url,
            min_size=1,
            max_size=5,
        )

        async with self._pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    tenant_id TEXT,
                    is_admin BOOLEAN NOT NULL DEFAULT FALSE,
                    is_superuser BOOLEAN NOT NULL DEFAULT FALSE,
                    api_key_hash TEXT UNIQUE NOT NULL,
                    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                )
            """)

            # Tables created before superusers existed
            await conn.execute("""
                ALTER TABLE users
                ADD COLUMN IF NOT EXISTS is_superuser BOOLEAN NOT NULL DEFAULT FALSE
            """)

            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_users_api_key_hash
                ON users(api_key_hash)
            """)

        logger.info("user_db_connected", database="postgresql")

    async def disconnect(self) -> None:
        """Close the database connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("user_db_disconnected")

    async def ping(self) -> bool:
        if self._pool is None:
            return False
        async with self._pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
        return True

    async def get_user_by_api_key(self, api_key: str) -> Optional[dict]:
        """
        Look up a user by their API key.

        Returns dict with user info, or None if key is invalid.
        """
        key_hash = self.hash_key(api_key)

        async with self._pool.acquire() as conn:
            row = await conn.fetchrow("""
                SELECT id, tenant_id, is_admin, is_superuser, created_at
                FROM users
                WHERE api_key_hash = $1
            """, key_hash)

            if row is None:
                logger.info("api_key_invalid", key_prefix=api_key[:10])
                return None

        logger.info("api_key_used", user_id=row["id"])

        return {
            "id": row["id"],
            "tenant_id": row["tenant_id"],
            "is_admin": row["is_admin"],
            "is_superuser": row["is_superuser"],
            "created_at": row["created_at"].isoformat(),
        }

    async def create_user(
        self,
        user_id: str,
        tenant_id: Optional[str] = None,
        is_admin: bool = False,
        is_superuser: bool = False,
    ) -> Optional[str]:
        """
        Create a new user with an API key.

        Returns the plaintext API key, or None if user already exists.
        """
        api_key = f"sk_{secrets.token_urlsafe(24)}"
        key_hash = self.hash_key(api_key)

        try:
            async with self._pool.acquire() as conn:
                await conn.execute("""
                    INSERT INTO users (id, tenant_id, is_admin, is_superuser, api_key_hash)
                    VALUES ($1, $2, $3, $4, $5)
                """, user_id, tenant_id, is_admin, is_superuser, key_hash)

            logger.info(
                "user_created",
                user_id=user_id,
                tenant_id=tenant_id,
                is_admin=is_admin,
                is_superuser=is_superuser,
            )
            return api_key

        except asyncpg.UniqueViolationError:
            logger.info("user_exists", user_id=user_id)
            return None

    async def seed_demo_users(self) -> dict:
        """
        Create demo users for development.

        Returns dict of user id -> api_key for newly created users.
        """
        demo_keys = {}

        demo_users = [
            ("demo_superuser", None, False, True),
            ("demo_admin", "demo_tenant", True, False),
            ("demo_member", "demo_tenant", False, False),
        ]

        for user_id, tenant_id, is_admin, is_superuser in demo_users:
            api_key = await self.create_user(user_id, tenant_id, is_admin, is_superuser)
            if api_key:
                demo_keys[user_id] = api_key

        return demo_keys


# Singleton instance
user_db = UserDB()
