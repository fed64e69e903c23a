"""
Companion plugin presence check.

The WordPress side needs the bundled `custom-post-types.php` plugin to
publish introspection data. The check copies it into place when missing and
reports administrator-facing warnings when the integration cannot work.
"""

import logging
import shutil
from importlib import resources
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Union

from .exceptions import IntegrationWarning

log = logging.getLogger("wp-cpt-bridge.plugin")

PLUGIN_TITLE = "Custom Post Types"
PLUGIN_DIRNAME = "wp-cpt-bridge"
PLUGIN_FILENAME = "custom-post-types.php"
INSTALL_HELP_URL = "README.md#companion-plugin"


def plugin_target(wordpress_path: Optional[str]) -> Optional[Path]:
    if not wordpress_path:
        return None
    return (
        Path(wordpress_path) / "wp-content" / "plugins" / PLUGIN_DIRNAME / PLUGIN_FILENAME
    )


def plugin_source() -> Path:
    return Path(str(resources.files("wp_cpt_bridge") / "data" / PLUGIN_FILENAME))


def install_plugin(target: Optional[Path], source: Path) -> bool:
    """Copy `source` to `target` unless it is already there."""
    if target is None:
        return False
    if target.is_file():
        return True
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, target)
        log.info("Installed companion plugin at %s", target)
    except OSError as e:
        log.error("Unable to install companion plugin at %s: %s", target, e)
    return target.is_file()


async def check_for_plugin_installation(
    wordpress_path: Optional[str],
    loader,
    store_id: Union[int, str] = 0,
) -> None:
    """Raise IntegrationWarning when the companion plugin cannot be used."""
    if not install_plugin(plugin_target(wordpress_path), plugin_source()):
        raise IntegrationWarning(
            PLUGIN_TITLE,
            "Unable to find the required Custom Post Types plugin installed "
            "in WordPress.",
            INSTALL_HELP_URL,
        )

    if not await loader.get_post_types(store_id):
        raise IntegrationWarning(
            PLUGIN_TITLE,
            "No custom post type data found. Activate the Custom Post Types "
            "plugin in your WordPress Admin and flush the cache.",
        )


class IntegrationTestHelper:
    """Runs integration checks and collects the warnings they raise."""

    def __init__(self) -> None:
        self.warnings: List[IntegrationWarning] = []

    async def apply_test(self, test: Callable[[], Awaitable[object]]) -> bool:
        try:
            await test()
        except IntegrationWarning as e:
            log.warning("Integration check failed: %s", e)
            self.warnings.append(e)
            return False
        return True
