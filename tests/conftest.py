"""
SECURITY-FIRST test configuration for wp-cpt-bridge.

CRITICAL: This configuration prevents ANY real HTTP requests during testing.
"""

from __future__ import annotations

import sys
import pytest
from pathlib import Path
from unittest.mock import MagicMock, patch, AsyncMock


def _ensure_project_root_on_syspath() -> None:
    # tests/ directory
    here = Path(__file__).resolve()
    # project root = parent of tests/
    project_root = here.parent.parent

    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))


_ensure_project_root_on_syspath()

from wp_cpt_bridge.schemas import WPPostTypeObject, WPTaxonomyObject  # noqa: E402

ENV_VARS = [
    "WP_BASE_URL",
    "WP_USERNAME",
    "WP_APP_PASSWORD",
    "WP_PATH",
    "WP_STORE_ID",
    "WP_REQUEST_TIMEOUT",
    "CACHE_DIR",
    "POST_TYPE_IGNORELIST",
    "TAXONOMY_IGNORELIST",
    "CPT_PERMALINK_PLUGIN",
]


@pytest.fixture(autouse=True)
def block_all_real_network_requests(monkeypatch):
    """
    SECURITY FIX: Block ALL real network requests during testing.

    All HTTP calls MUST go through mocks; only local test client requests
    are let through.
    """
    try:
        import httpx

        original_async_get = httpx.AsyncClient.get
        original_async_post = httpx.AsyncClient.post

        def _is_external(url) -> bool:
            return isinstance(url, str) and (
                "fail.org" in url
                or (
                    url.startswith("http")
                    and not (
                        "testserver" in url or "localhost" in url or "127.0.0.1" in url
                    )
                )
            )

        def smart_async_get(self, url, **kwargs):
            if _is_external(url):
                raise RuntimeError(
                    f"🚨 SECURITY: Real HTTP request blocked! URL: {url}"
                )
            return original_async_get(self, url, **kwargs)

        def smart_async_post(self, url, **kwargs):
            if _is_external(url):
                raise RuntimeError(
                    f"🚨 SECURITY: Real HTTP request blocked! URL: {url}"
                )
            return original_async_post(self, url, **kwargs)

        monkeypatch.setattr("httpx.AsyncClient.get", smart_async_get)
        monkeypatch.setattr("httpx.AsyncClient.post", smart_async_post)

    except ImportError:
        pass


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """
    Clean and reset settings singleton for each test.

    SECURITY: This ensures no .env file values leak into tests.
    """
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.setenv("WP_BASE_URL", "http://localhost:8080")
    monkeypatch.setenv("WP_USERNAME", "admin")
    monkeypatch.setenv("WP_APP_PASSWORD", "app-password-from-wordpress")

    import wp_cpt_bridge.config as config_module
    from pydantic_settings import SettingsConfigDict

    # Temporarily disable .env file loading for tests
    test_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    monkeypatch.setattr(config_module.Settings, "model_config", test_config)

    fresh = config_module.Settings()
    monkeypatch.setattr(config_module, "settings", fresh)

    import wp_cpt_bridge.wordpress_api as wordpress_api_module

    monkeypatch.setattr(wordpress_api_module, "settings", fresh)


@pytest.fixture
def pure_defaults_only(monkeypatch):
    """
    Create completely clean environment for testing actual defaults.
    """
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)

    import wp_cpt_bridge.config as config_module
    from pydantic_settings import SettingsConfigDict

    test_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    monkeypatch.setattr(config_module.Settings, "model_config", test_config)
    monkeypatch.setattr(config_module, "settings", config_module.Settings())


@pytest.fixture
def safe_settings():
    """
    Create a fresh, safe settings object for testing.
    """
    settings = MagicMock()
    settings.wp_base_url = None
    settings.wp_username = None
    settings.wp_app_password = None
    settings.wp_path = None
    settings.wp_request_timeout = 10.0
    settings.store_id = 0
    settings.cache_dir = None

    return settings


@pytest.fixture
def safe_mock_async_client():
    """
    Create a PROPERLY mocked AsyncClient for httpx.
    """
    client = MagicMock()

    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=None)
    client.get = AsyncMock()
    client.post = AsyncMock()
    client.aclose = AsyncMock()

    return client


@pytest.fixture
def safe_httpx_client(safe_mock_async_client):
    """
    Mock httpx.AsyncClient with SECURITY-first approach.
    """
    with patch("httpx.AsyncClient", return_value=safe_mock_async_client):
        yield safe_mock_async_client


def make_response(payload, status_code=200):
    """Mock httpx response returning `payload` from .json()."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.raise_for_status = MagicMock()
    resp.json = MagicMock(return_value=payload)
    resp.text = ""
    return resp


# ---------------------------------------------------------------------------
# WordPress fakes
# ---------------------------------------------------------------------------


SAMPLE_POST_TYPES = {
    "post": {
        "label": "Posts",
        "labels": {"name": "Posts", "singular_name": "Post"},
        "has_archive": False,
        "rewrite": False,
        "taxonomies": ["category"],
        "_builtin": True,
        "rest_base": "posts",
    },
    "page": {
        "label": "Pages",
        "labels": {"name": "Pages", "singular_name": "Page"},
        "has_archive": False,
        "rewrite": False,
        "_builtin": True,
        "rest_base": "pages",
    },
    "attachment": {
        "label": "Media",
        "labels": {"name": "Media", "singular_name": "Media"},
        "_builtin": True,
    },
    "revision": {"label": "Revisions", "_builtin": True},
    "nav_menu_item": {"label": "Navigation Menu Items", "_builtin": True},
    "news": {
        "label": "News",
        "labels": {"name": "News items", "singular_name": "News item"},
        "has_archive": True,
        "rewrite": {"slug": "news", "with_front": True},
        "taxonomies": ["topic"],
        "rest_base": "news",
    },
    "recipe": {
        "label": "Recipes",
        "labels": {"name": "Recipes", "singular_name": "Recipe"},
        "has_archive": "cookbook",
        "rewrite": {"slug": "recipe"},
        "exclude_from_search": True,
        "rest_base": "recipes",
    },
}

SAMPLE_TAXONOMIES = {
    "category": {
        "label": "Categories",
        "rewrite": {"slug": "blog/category"},
        "_builtin": True,
    },
    "post_tag": {"label": "Tags", "rewrite": {"slug": "tag"}, "_builtin": True},
    "nav_menu": {"label": "Menus", "rewrite": False, "_builtin": True},
    "link_category": {"label": "Link Categories", "_builtin": True},
    "post_format": {"label": "Formats", "rewrite": {"slug": "type"}, "_builtin": True},
    "topic": {"label": "Topics", "rewrite": {"slug": "blog/news/topic"}},
}


class FakeWordPressContext:
    """
    Stand-in for WordPressContext recording how often it is entered/exited.

    Reuse one instance as the loader's context factory: `lambda: fake`.
    """

    def __init__(
        self,
        post_types=None,
        taxonomies=None,
        options=None,
        active_plugins=(),
        blog_prefixed=False,
        error=None,
    ):
        self.post_types = SAMPLE_POST_TYPES if post_types is None else post_types
        self.taxonomies = SAMPLE_TAXONOMIES if taxonomies is None else taxonomies
        self.options = {"permalink_structure": "/blog/%postname%/"}
        self.options.update(options or {})
        self.active_plugins = list(active_plugins)
        self.blog_prefixed = blog_prefixed
        self.error = error
        self.events = []
        self.enter_count = 0
        self.exit_count = 0
        self.queries = 0

    async def __aenter__(self):
        self.enter_count += 1
        self.events.append("enter")
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.exit_count += 1
        self.events.append("exit")
        return False

    def _query(self):
        self.queries += 1
        if self.error is not None:
            raise self.error

    async def get_post_types(self):
        self._query()
        return {
            key: WPPostTypeObject.model_validate({"name": key, **value})
            for key, value in self.post_types.items()
        }

    async def get_taxonomies(self):
        self._query()
        return {
            key: WPTaxonomyObject.model_validate({"name": key, **value})
            for key, value in self.taxonomies.items()
        }

    async def get_option(self, name, default=None):
        value = self.options.get(name)
        return default if value is None else value

    async def is_plugin_active(self, plugin_file):
        return plugin_file in self.active_plugins

    async def is_blog_prefixed(self):
        return self.blog_prefixed


@pytest.fixture
def fake_wp():
    return FakeWordPressContext()


@pytest.fixture
def memory_cache():
    from wp_cpt_bridge.cache import MemoryCache

    return MemoryCache()


@pytest.fixture
def loader(memory_cache, fake_wp):
    from wp_cpt_bridge.loader import MetadataLoader

    return MetadataLoader(memory_cache, lambda: fake_wp)
