"""
Tests for the PostgreSQL setting repository.
"""

import pytest

from appsettings.core.context import acting_as
from appsettings.core.exceptions import PersistedSettingNotFound
from appsettings.services.factory import build_repository, build_setting_service

from catalog import SiteName, Theme


@pytest.mark.anyio
async def test_missing_rows_raise(pg_setting_db):
    with pytest.raises(PersistedSettingNotFound):
        await pg_setting_db.get_value_with_id(Theme(), "u1")
    with pytest.raises(PersistedSettingNotFound):
        await pg_setting_db.get_default_value(Theme())


@pytest.mark.anyio
async def test_value_and_default_rows_are_separate(pg_setting_db):
    theme = Theme()

    await pg_setting_db.set_value(theme, '"dark"', "u1")
    await pg_setting_db.set_default_value(theme, '"light"')

    assert await pg_setting_db.get_value_with_id(theme, "u1") == '"dark"'
    assert await pg_setting_db.get_default_value(theme) == '"light"'


@pytest.mark.anyio
async def test_upsert_overwrites(pg_setting_db):
    """Writing twice keeps one row per key and id."""
    theme = Theme()

    await pg_setting_db.set_value(theme, '"dark"', "u1")
    await pg_setting_db.set_value(theme, '"light"', "u1")
    await pg_setting_db.set_default_value(theme, '"dark"')
    await pg_setting_db.set_default_value(theme, '"light"')

    async with pg_setting_db._pool.acquire() as conn:
        count = await conn.fetchval(f"SELECT COUNT(*) FROM {pg_setting_db.table} WHERE key = 'theme'")

    assert count == 2
    assert await pg_setting_db.get_value_with_id(theme, "u1") == '"light"'


@pytest.mark.anyio
async def test_forget_value(pg_setting_db):
    theme = Theme()
    await pg_setting_db.set_value(theme, '"dark"', "u1")

    assert await pg_setting_db.forget_value(theme, "u1") is True
    assert await pg_setting_db.forget_value(theme, "u1") is False


@pytest.mark.anyio
async def test_full_chain_over_postgres(pg_setting_db, store, fake_cache, encrypter, loaded, member):
    service = build_setting_service(store, build_repository(pg_setting_db, fake_cache, encrypter), loaded)

    await service.set("site_name", "Acme")
    with acting_as(member):
        await service.set("theme", "dark")
        assert await service.get("theme") == "dark"
        assert await service.get("site_name") == "Acme"

    # site_name is encrypted at rest, theme is not
    assert "Acme" not in await pg_setting_db.get_default_value(SiteName())
    assert await pg_setting_db.get_value_with_id(Theme(), "test_member") == '"dark"'
