"""
WordPress REST API helpers.

Responsibilities:
- Use Settings for configuration.
- Provide helpers to:
  * Build auth header
  * Ping the site and verify credentials
  * List posts of a given type (search and feed listings)
- Provide WordPressContext, the simulated WordPress execution context used to
  introspect registered post types, taxonomies, options and plugins through
  the companion plugin's REST namespace.
"""

import base64
import logging
from contextvars import ContextVar
from typing import Any, Dict, List, Optional

import httpx

from .config import settings
from .schemas import WPListedPost, WPPostTypeObject, WPTaxonomyObject

log = logging.getLogger("wp-cpt-bridge.wordpress")

COMPANION_NAMESPACE = "wp-cpt-bridge/v1"

_active_context: ContextVar[Optional["WordPressContext"]] = ContextVar(
    "wp_cpt_bridge_active_context", default=None
)


def _ensure_wp_base_url() -> str:
    if not settings.wp_base_url:
        raise RuntimeError("WP_BASE_URL is not set; cannot talk to WordPress.")
    return str(settings.wp_base_url).rstrip("/")


def _ensure_wp_auth() -> None:
    if not settings.wp_username or not settings.wp_app_password:
        raise RuntimeError(
            "WP_USERNAME / WP_APP_PASSWORD not set; cannot auth to WordPress."
        )


def wp_auth_header() -> Dict[str, str]:
    """Build Basic Auth header for WordPress Application Passwords."""
    _ensure_wp_auth()
    token = f"{settings.wp_username}:{settings.wp_app_password}".encode("utf-8")
    b64 = base64.b64encode(token).decode("ascii")
    return {"Authorization": f"Basic {b64}"}


def _optional_auth_header() -> Dict[str, str]:
    if settings.wp_username and settings.wp_app_password:
        return wp_auth_header()
    return {}


def current_context() -> Optional["WordPressContext"]:
    """Return the simulated context active in this task, if any."""
    return _active_context.get()


class WordPressContext:
    """
    Simulated WordPress execution context.

    Entering swaps the active-context marker for the current task and opens
    an HTTP session authenticated as the configured WordPress user; exiting
    closes the session and restores the marker. The context is not
    reentrant.

    Usage:
        async with WordPressContext() as wp:
            post_types = await wp.get_post_types()
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/") if base_url else None
        self._timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None
        self._token = None
        self._active_plugins: Optional[List[str]] = None

    @property
    def active(self) -> bool:
        return self._client is not None and _active_context.get() is self

    async def __aenter__(self) -> "WordPressContext":
        if _active_context.get() is not None:
            raise RuntimeError("A simulated WordPress context is already active.")

        if not self._base_url:
            self._base_url = _ensure_wp_base_url()
        timeout = self._timeout or settings.wp_request_timeout

        self._client = httpx.AsyncClient(
            headers=_optional_auth_header(), timeout=timeout
        )
        self._token = _active_context.set(self)
        log.debug("Entered simulated WordPress context for %s", self._base_url)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        client, self._client = self._client, None
        try:
            if client is not None:
                await client.aclose()
        finally:
            if self._token is not None:
                _active_context.reset(self._token)
                self._token = None
            self._active_plugins = None
            log.debug("Left simulated WordPress context for %s", self._base_url)
        return False

    # -- queries -----------------------------------------------------------

    def _require_active(self) -> httpx.AsyncClient:
        if not self.active:
            raise RuntimeError(
                "WordPress introspection requires an active simulated context."
            )
        return self._client

    def _url(self, path: str) -> str:
        return f"{self._base_url}/wp-json/{COMPANION_NAMESPACE}/{path.lstrip('/')}"

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None):
        client = self._require_active()
        resp = await client.get(self._url(path), params=params)
        resp.raise_for_status()
        return resp.json()

    async def get_post_types(self) -> Dict[str, WPPostTypeObject]:
        """Registered post types keyed by identifier."""
        data = await self._get_json("post-types")
        if not isinstance(data, dict):
            log.warning("Unexpected post type payload: %r", type(data).__name__)
            return {}
        return {
            key: WPPostTypeObject.model_validate({"name": key, **value})
            for key, value in data.items()
            if isinstance(value, dict)
        }

    async def get_taxonomies(self) -> Dict[str, WPTaxonomyObject]:
        """Registered taxonomies keyed by identifier."""
        data = await self._get_json("taxonomies")
        if not isinstance(data, dict):
            log.warning("Unexpected taxonomy payload: %r", type(data).__name__)
            return {}
        return {
            key: WPTaxonomyObject.model_validate({"name": key, **value})
            for key, value in data.items()
            if isinstance(value, dict)
        }

    async def get_option(self, name: str, default: Any = None) -> Any:
        data = await self._get_json(f"options/{name}")
        value = data.get("value") if isinstance(data, dict) else None
        return default if value is None else value

    async def is_plugin_active(self, plugin_file: str) -> bool:
        if self._active_plugins is None:
            data = await self._get_json("plugins/active")
            self._active_plugins = [str(p) for p in data] if isinstance(data, list) else []
        return plugin_file in self._active_plugins

    async def is_blog_prefixed(self) -> bool:
        """True on the main site of a sub-directory multisite network."""
        data = await self._get_json("environment")
        return bool(isinstance(data, dict) and data.get("blog_prefix"))


# ---------------------------------------------------------------------------
# Plain REST helpers
# ---------------------------------------------------------------------------


async def ping_wp_api() -> Dict[str, Any]:
    """Fetch the REST index; raises when WordPress is unreachable."""
    base = _ensure_wp_base_url()
    async with httpx.AsyncClient() as client:
        resp = await client.get(
            f"{base}/wp-json/", timeout=settings.wp_request_timeout
        )
        resp.raise_for_status()
        return resp.json()


async def check_wp_credentials() -> Dict[str, Any]:
    """Return the authenticated user; raises on bad credentials."""
    base = _ensure_wp_base_url()
    async with httpx.AsyncClient() as client:
        resp = await client.get(
            f"{base}/wp-json/wp/v2/users/me",
            headers=wp_auth_header(),
            params={"context": "edit"},
            timeout=settings.wp_request_timeout,
        )
        resp.raise_for_status()
        return resp.json()


async def list_posts(
    rest_base: str,
    search: Optional[str] = None,
    per_page: int = 10,
) -> List[WPListedPost]:
    """
    List published items of a post type through its wp/v2 collection.

    Returns an empty list on error.
    """
    base = _ensure_wp_base_url()
    params: Dict[str, Any] = {"per_page": per_page, "status": "publish"}
    if search:
        params["search"] = search

    try:
        async with httpx.AsyncClient() as client:
            resp = await client.get(
                f"{base}/wp-json/wp/v2/{rest_base}",
                params=params,
                headers=_optional_auth_header(),
                timeout=settings.wp_request_timeout,
            )
            resp.raise_for_status()
            payload = resp.json()
    except Exception as e:
        log.exception("Failed to list %s from WordPress: %s", rest_base, e)
        return []

    if not isinstance(payload, list):
        return []
    return [WPListedPost.model_validate(item) for item in payload]
