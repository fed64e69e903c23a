"""
Tests for plugin.py companion plugin checks.
"""

import pytest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

from wp_cpt_bridge.exceptions import IntegrationWarning
from wp_cpt_bridge.plugin import (
    IntegrationTestHelper,
    check_for_plugin_installation,
    install_plugin,
    plugin_source,
    plugin_target,
)


def _loader(post_types):
    loader = MagicMock()
    loader.get_post_types = AsyncMock(return_value=post_types)
    return loader


class TestPaths:
    def test_target(self):
        target = plugin_target("/var/www/wordpress/")
        assert target == Path(
            "/var/www/wordpress/wp-content/plugins/wp-cpt-bridge/custom-post-types.php"
        )

    def test_target_without_path(self):
        assert plugin_target(None) is None
        assert plugin_target("") is None

    def test_bundled_source_exists(self):
        source = plugin_source()
        assert source.is_file()
        assert "wp-cpt-bridge/v1" in source.read_text(encoding="utf-8")


class TestInstallPlugin:
    def test_copies_when_missing(self, tmp_path):
        source = tmp_path / "source.php"
        source.write_text("<?php // plugin")
        target = plugin_target(str(tmp_path / "wp"))

        assert install_plugin(target, source) is True
        assert target.read_text() == "<?php // plugin"

    def test_existing_file_is_kept(self, tmp_path):
        source = tmp_path / "source.php"
        source.write_text("new")
        target = plugin_target(str(tmp_path / "wp"))
        target.parent.mkdir(parents=True)
        target.write_text("customised")

        assert install_plugin(target, source) is True
        assert target.read_text() == "customised"

    def test_unknown_target(self, tmp_path):
        assert install_plugin(None, tmp_path / "source.php") is False

    def test_copy_failure(self, tmp_path):
        target = plugin_target(str(tmp_path / "wp"))
        assert install_plugin(target, tmp_path / "does-not-exist.php") is False


class TestCheckForPluginInstallation:
    @pytest.mark.asyncio
    async def test_passes(self, tmp_path):
        await check_for_plugin_installation(
            str(tmp_path), _loader({"news": object()}), store_id=1
        )
        assert plugin_target(str(tmp_path)).is_file()

    @pytest.mark.asyncio
    async def test_plugin_missing(self):
        loader = _loader({"news": object()})
        with pytest.raises(IntegrationWarning) as excinfo:
            await check_for_plugin_installation(None, loader)

        warning = excinfo.value
        assert warning.title == "Custom Post Types"
        assert "Unable to find" in warning.message
        assert warning.link
        loader.get_post_types.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_metadata(self, tmp_path):
        loader = _loader({})
        with pytest.raises(IntegrationWarning, match="No custom post type data"):
            await check_for_plugin_installation(str(tmp_path), loader, store_id=4)
        loader.get_post_types.assert_awaited_once_with(4)


class TestIntegrationTestHelper:
    @pytest.mark.asyncio
    async def test_collects_warnings(self):
        helper = IntegrationTestHelper()

        async def failing():
            raise IntegrationWarning("Custom Post Types", "broken", "README.md")

        async def passing():
            return None

        assert await helper.apply_test(failing) is False
        assert await helper.apply_test(passing) is True
        assert [w.message for w in helper.warnings] == ["broken"]
        assert helper.warnings[0].to_dict() == {
            "level": "warning",
            "title": "Custom Post Types",
            "message": "broken",
            "link": "README.md",
        }

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self):
        helper = IntegrationTestHelper()

        async def crashing():
            raise ValueError("bug")

        with pytest.raises(ValueError):
            await helper.apply_test(crashing)
