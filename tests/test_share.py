"""
Tests for sharing settings with the front end.
"""

import json

import pytest

from appsettings.core.context import acting_as
from appsettings.services.share import ShareConfig, ShareJavaScript

PREFIX = "window.ESSettings = "


def parse(script: str) -> dict:
    assert script.startswith(PREFIX) and script.endswith(";")
    return json.loads(script[len(PREFIX):-1])


@pytest.mark.anyio
async def test_shares_autoload_and_loaded_settings(service, loaded, member):
    loaded.start()
    config = ShareConfig()
    config.add("api_url", "/api/settings")
    share = ShareJavaScript(service, loaded, config, autoload=["site_name"])

    with acting_as(member):
        await service.set("theme", "dark")
        await service.get("theme")
        payload = parse(await share.to_string())

    assert payload["settings"] == {"site_name": "My App", "theme": "dark"}
    assert payload["config"] == {"api_url": "/api/settings"}


@pytest.mark.anyio
async def test_skips_unknown_and_unreadable_settings(service, loaded, member):
    loaded.start()
    share = ShareJavaScript(service, loaded, ShareConfig())

    with acting_as(member):
        payload = parse(await share.to_string(["api_secret", "nope", "items_per_page"]))

    assert payload["settings"] == {"items_per_page": 25}


@pytest.mark.anyio
async def test_script_tag_cannot_be_closed_by_a_value(service, loaded):
    loaded.start()
    await service.set("site_name", "</script><script>alert(1)")
    share = ShareJavaScript(service, loaded, ShareConfig(), autoload=["site_name"])

    tag = await share.to_script_tag()

    assert tag.startswith("<script>window.ESSettings = ")
    assert tag.count("</script>") == 1
    assert parse(tag[len("<script>"):-len("</script>")])["settings"]["site_name"] == "</script><script>alert(1)"
