"""
Read-through cache of WordPress post type and taxonomy metadata.

For each store the loader consults the cache first. On a miss it enters a
simulated WordPress context, introspects the registered post types or
taxonomies, normalizes them into plain mappings and stores the JSON text
back under `{kind}_{store_id}`. Failures never propagate: they are logged and
the caller receives an empty mapping.
"""

import json
import logging
from typing import Any, Callable, Dict, Iterable, Optional, Union

from pydantic import ValidationError

from .cache import (
    POST_TYPE_NAMESPACE,
    TAXONOMY_NAMESPACE,
    CacheStore,
    cache_key,
)
from .config import DEFAULT_POST_TYPE_IGNORELIST, DEFAULT_TAXONOMY_IGNORELIST
from .exceptions import DataUnavailableError
from .schemas import PostType, Taxonomy, WPPostTypeObject, WPTaxonomyObject
from .wordpress_api import WordPressContext

log = logging.getLogger("wp-cpt-bridge.loader")

PAGE_REWRITE_SLUG = "%postname%/"
POST_DEFAULT_TAXONOMIES = ("category", "post_tag")
BLOG_PREFIX = "blog/"

StoreId = Union[int, str]
RawMapping = Dict[str, Dict[str, Any]]


def decode_entry(blob: Optional[str]) -> Optional[RawMapping]:
    """Decode a cache value; anything but a non-empty JSON object is a miss."""
    if not blob:
        return None
    try:
        data = json.loads(blob)
    except (TypeError, ValueError):
        log.warning("Discarding undecodable cache entry")
        return None
    if not isinstance(data, dict) or not data:
        return None
    if not all(isinstance(v, dict) for v in data.values()):
        log.warning("Discarding malformed cache entry")
        return None
    return data


def encode_entry(data: RawMapping) -> str:
    return json.dumps(data, separators=(",", ":"))


def _post_type_models(raw: RawMapping) -> Dict[str, PostType]:
    return {
        key: PostType.model_validate({**data, "post_type": key})
        for key, data in raw.items()
    }


def _taxonomy_models(raw: RawMapping) -> Dict[str, Taxonomy]:
    return {
        key: Taxonomy.model_validate({**data, "taxonomy_type": key})
        for key, data in raw.items()
    }


class MetadataLoader:
    """
    Store-scoped loader for post types and taxonomies.

    `context_factory` returns a fresh simulated WordPress context each time it
    is called; it is entered once per fetch.
    """

    def __init__(
        self,
        cache: CacheStore,
        context_factory: Callable[[], WordPressContext] = WordPressContext,
        *,
        post_type_ignore: Iterable[str] = DEFAULT_POST_TYPE_IGNORELIST,
        taxonomy_ignore: Iterable[str] = DEFAULT_TAXONOMY_IGNORELIST,
        permalink_plugin: Optional[str] = None,
    ) -> None:
        self.cache = cache
        self.context_factory = context_factory
        self.post_type_ignore = frozenset(post_type_ignore)
        self.taxonomy_ignore = frozenset(taxonomy_ignore)
        self.permalink_plugin = permalink_plugin

    # -- public API --------------------------------------------------------

    async def get_post_types(self, store_id: StoreId) -> Dict[str, PostType]:
        return await self._load(
            POST_TYPE_NAMESPACE, store_id, self._fetch_post_types, _post_type_models
        )

    async def get_taxonomies(self, store_id: StoreId) -> Dict[str, Taxonomy]:
        return await self._load(
            TAXONOMY_NAMESPACE, store_id, self._fetch_taxonomies, _taxonomy_models
        )

    def flush(self, store_id: Optional[StoreId] = None) -> None:
        """Drop cached metadata for one store, or for every store."""
        if store_id is None:
            self.cache.clean()
            log.info("Flushed all cached WordPress metadata")
            return
        for kind in (POST_TYPE_NAMESPACE, TAXONOMY_NAMESPACE):
            self.cache.remove(cache_key(kind, store_id))
        log.info("Flushed cached WordPress metadata for store %s", store_id)

    # -- read-through ------------------------------------------------------

    async def _load(self, kind: str, store_id: StoreId, fetch, build) -> Dict[str, Any]:
        key = cache_key(kind, store_id)

        try:
            cached = decode_entry(self.cache.load(key))
        except Exception:
            log.exception("Failed to read cached %s data under %s", kind, key)
            cached = None

        if cached is not None:
            try:
                return build(cached)
            except ValidationError as e:
                log.warning("Discarding invalid cache entry %s: %s", key, e)

        try:
            data = await fetch()
            if not data:
                raise DataUnavailableError(
                    f"No {kind} data available for store {store_id}"
                )
            models = build(data)
        except DataUnavailableError as e:
            log.warning("%s", e)
            return {}
        except Exception:
            log.exception("Failed to fetch %s data for store %s", kind, store_id)
            return {}

        try:
            self.cache.save(key, encode_entry(data))
        except Exception:
            log.exception("Failed to cache %s data under %s", kind, key)

        return models

    async def _fetch_post_types(self) -> RawMapping:
        async with self.context_factory() as wp:
            post_types = await wp.get_post_types()
            permalink_structure = None
            if "post" in post_types:
                permalink_structure = await wp.get_option("permalink_structure", "")
            plugin_options: Dict[str, Any] = {}
            if self.permalink_plugin and await wp.is_plugin_active(
                self.permalink_plugin
            ):
                for name in post_types:
                    if name not in self.post_type_ignore:
                        plugin_options[name] = await wp.get_option(f"{name}_structure")

        return normalize_post_types(
            post_types,
            ignore=self.post_type_ignore,
            permalink_structure=permalink_structure,
            plugin_structures=plugin_options,
        )

    async def _fetch_taxonomies(self) -> RawMapping:
        async with self.context_factory() as wp:
            taxonomies = await wp.get_taxonomies()
            blog_prefixed = await wp.is_blog_prefixed()

        return normalize_taxonomies(
            taxonomies, ignore=self.taxonomy_ignore, blog_prefixed=blog_prefixed
        )


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def normalize_post_types(
    post_types: Dict[str, WPPostTypeObject],
    *,
    ignore: Iterable[str] = DEFAULT_POST_TYPE_IGNORELIST,
    permalink_structure: Optional[str] = None,
    plugin_structures: Optional[Dict[str, Any]] = None,
) -> RawMapping:
    """Turn introspected post types into cacheable descriptor fields."""
    ignore = frozenset(ignore)
    plugin_structures = plugin_structures or {}
    result: RawMapping = {}

    for key, obj in post_types.items():
        if key in ignore:
            continue

        labels = obj.labels or {}
        data: Dict[str, Any] = {
            "name": labels.get("singular_name") or obj.label or key,
            "plural_name": labels.get("name") or obj.label,
            "has_archive": obj.has_archive,
            "rewrite_slug": obj.rewrite_slug,
            "taxonomies": list(obj.taxonomies),
            "exclude_from_search": int(bool(obj.exclude_from_search)),
            "builtin": obj.builtin,
            "rest_base": obj.rest_base,
        }

        if key == "post":
            data["rewrite_slug"] = (permalink_structure or "").strip("/") or None
            for taxonomy in POST_DEFAULT_TAXONOMIES:
                if taxonomy not in data["taxonomies"]:
                    data["taxonomies"].append(taxonomy)
        elif key == "page":
            data["rewrite_slug"] = PAGE_REWRITE_SLUG

        structure = plugin_structures.get(key)
        if structure:
            data["rewrite_slug"] = str(structure).strip("/")

        result[key] = data

    return result


def strip_blog_prefix(slug: Optional[str]) -> Optional[str]:
    if slug and slug.startswith(BLOG_PREFIX):
        return slug[len(BLOG_PREFIX):]
    return slug


def normalize_taxonomies(
    taxonomies: Dict[str, WPTaxonomyObject],
    *,
    ignore: Iterable[str] = DEFAULT_TAXONOMY_IGNORELIST,
    blog_prefixed: bool = False,
) -> RawMapping:
    """Turn introspected taxonomies into cacheable descriptor fields."""
    ignore = frozenset(ignore)
    result: RawMapping = {}

    for key, obj in taxonomies.items():
        if key in ignore:
            continue

        slug = obj.rewrite_slug
        if blog_prefixed:
            slug = strip_blog_prefix(slug)

        result[key] = {
            "name": obj.label or key,
            "rewrite_slug": slug,
            "builtin": obj.builtin,
        }

    return result
