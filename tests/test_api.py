"""
Tests for the /api/settings endpoints and /settings.js
"""

import pytest
from httpx import AsyncClient

from appsettings.services.decorators import AppNotBootedDecorator

API = "/api/settings"


@pytest.mark.anyio
async def test_read_settings(client: AsyncClient, member_headers):
    """Unset settings come back with their declared defaults."""
    response = await client.get(
        f"{API}/setting",
        params={"settings": ["site_name", "theme"]},
        headers=member_headers,
    )

    assert response.status_code == 200
    assert response.json() == {"settings": {"site_name": "My App", "theme": "light"}}


@pytest.mark.anyio
async def test_read_by_alias(client: AsyncClient, store, member_headers):
    store.alias("siteName", "site_name")

    response = await client.get(f"{API}/setting", params={"settings": "siteName"}, headers=member_headers)

    assert response.status_code == 200
    assert response.json()["settings"] == {"siteName": "My App"}


@pytest.mark.anyio
async def test_update_user_setting(client: AsyncClient, member_headers, other_headers):
    response = await client.post(
        f"{API}/setting",
        json={"settings": {"theme": "dark", "items_per_page": "50"}},
        headers=member_headers,
    )

    assert response.status_code == 200
    assert response.json()["settings"] == {"theme": "dark", "items_per_page": 50}

    # Another user still sees the defaults
    response = await client.get(f"{API}/setting", params={"settings": "theme"}, headers=other_headers)
    assert response.json()["settings"]["theme"] == "light"


@pytest.mark.anyio
async def test_unknown_key_returns_422(client: AsyncClient, member_headers):
    response = await client.post(
        f"{API}/setting",
        json={"settings": {"theme": "dark", "nope": 1}},
        headers=member_headers,
    )

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail == [
        {"loc": ["settings", "nope"], "msg": "The nope setting key does not exist.", "type": "setting_key_invalid"}
    ]

    # Nothing was written
    response = await client.get(f"{API}/setting", params={"settings": "theme"}, headers=member_headers)
    assert response.json()["settings"]["theme"] == "light"


@pytest.mark.anyio
async def test_empty_update_returns_422(client: AsyncClient, member_headers):
    response = await client.post(f"{API}/setting", json={"settings": {}}, headers=member_headers)

    assert response.status_code == 422


@pytest.mark.anyio
async def test_invalid_value_returns_422(client: AsyncClient, member_headers):
    response = await client.post(
        f"{API}/setting",
        json={"settings": {"theme": "blue"}},
        headers=member_headers,
    )

    assert response.status_code == 422
    data = response.json()
    assert data["error"] == "Invalid Setting Value"
    assert "theme" in data["detail"]
    assert data["errors"][0]["input"] == "blue"


@pytest.mark.anyio
async def test_member_cannot_update_global_setting(client: AsyncClient, member_headers):
    response = await client.post(
        f"{API}/setting",
        json={"settings": {"site_name": "Hacked"}},
        headers=member_headers,
    )

    assert response.status_code == 403
    assert response.json()["error"] == "Forbidden"


@pytest.mark.anyio
async def test_superuser_updates_global_setting(client: AsyncClient, super_headers, member_headers):
    response = await client.post(
        f"{API}/setting",
        json={"settings": {"site_name": "Acme"}},
        headers=super_headers,
    )
    assert response.status_code == 200

    response = await client.get(f"{API}/setting", params={"settings": "site_name"}, headers=member_headers)
    assert response.json()["settings"]["site_name"] == "Acme"


@pytest.mark.anyio
async def test_tenant_admin_cannot_update_global_setting(client: AsyncClient, admin_headers, other_headers):
    response = await client.post(
        f"{API}/setting",
        json={"settings": {"site_name": "Tenant A Inc"}},
        headers=admin_headers,
    )
    assert response.status_code == 403

    response = await client.get(f"{API}/setting", params={"settings": "site_name"}, headers=other_headers)
    assert response.json()["settings"]["site_name"] == "My App"


@pytest.mark.anyio
async def test_unreadable_setting_returns_403(client: AsyncClient, member_headers):
    response = await client.get(f"{API}/setting", params={"settings": "api_secret"}, headers=member_headers)

    assert response.status_code == 403


@pytest.mark.anyio
async def test_update_defaults_requires_superuser(client: AsyncClient, super_headers, admin_headers, member_headers):
    for headers in (member_headers, admin_headers):
        response = await client.post(
            f"{API}/setting/default",
            json={"settings": {"billing_email": "a-admin@tenant-a.test"}},
            headers=headers,
        )
        assert response.status_code == 403

    response = await client.post(
        f"{API}/setting/default",
        json={"settings": {"theme": "dark"}},
        headers=super_headers,
    )
    assert response.status_code == 204

    response = await client.get(f"{API}/setting", params={"settings": "theme"}, headers=member_headers)
    assert response.json()["settings"]["theme"] == "dark"


@pytest.mark.anyio
async def test_reset_setting(client: AsyncClient, member_headers):
    await client.post(f"{API}/setting", json={"settings": {"theme": "dark"}}, headers=member_headers)

    response = await client.delete(f"{API}/setting/theme", headers=member_headers)
    assert response.status_code == 204

    response = await client.get(f"{API}/setting", params={"settings": "theme"}, headers=member_headers)
    assert response.json()["settings"]["theme"] == "light"

    response = await client.delete(f"{API}/setting/theme", headers=member_headers)
    assert response.status_code == 404


@pytest.mark.anyio
async def test_schema_lists_readable_settings(client: AsyncClient, store, member_headers):
    store.register_group("branding", "Branding", "How the site looks")

    response = await client.get(f"{API}/setting/schema", headers=member_headers)

    assert response.status_code == 200
    data = response.json()
    keys = {s["key"] for s in data["settings"]}
    assert keys == {"site_name", "theme", "items_per_page", "billing_email"}

    site_name = next(s for s in data["settings"] if s["key"] == "site_name")
    assert site_name["field"]["label"] == "Site name"
    assert site_name["value"] == "My App"
    assert data["groups"][0] == {"key": "branding", "title": "Branding", "subtitle": "How the site looks"}


@pytest.mark.anyio
async def test_schema_filtered_by_group(client: AsyncClient, member_headers):
    response = await client.get(f"{API}/setting/schema", params={"group": "appearance"}, headers=member_headers)

    data = response.json()
    assert {s["key"] for s in data["settings"]} == {"theme", "items_per_page"}
    assert [g["key"] for g in data["groups"]] == ["appearance"]


@pytest.mark.anyio
async def test_settings_js(client: AsyncClient):
    """Anonymous visitors get the global settings they ask for."""
    response = await client.get("/settings.js", params={"settings": ["site_name", "api_secret"]})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/javascript")
    assert response.text.startswith("window.ESSettings = ")
    assert '"site_name": "My App"' in response.text
    assert "api_secret" not in response.text


@pytest.mark.anyio
async def test_requests_before_boot_return_503(client: AsyncClient, member_headers):
    AppNotBootedDecorator.booted = False

    response = await client.get(f"{API}/setting", params={"settings": "theme"}, headers=member_headers)

    assert response.status_code == 503
    assert response.json()["error"] == "Service Unavailable"
