"""
FastAPI application exposing WordPress post types and taxonomies to the shop.

Orchestration layer:
- Builds the metadata loader, observers and event bus from Settings.
- Defines FastAPI routes:
  * GET  /healthz                         – health check
  * GET  /stores/{store_id}/post-types    – post type descriptors
  * GET  /stores/{store_id}/taxonomies    – taxonomy descriptors
  * POST /cache/flush                     – drop cached metadata
  * GET  /search                          – search result tabs
  * GET  /integration-tests               – companion plugin diagnostics
  * GET  /{slug} and /{slug}/feed         – post type archive and RSS feed
"""

import logging
from datetime import datetime, timezone
from email.utils import format_datetime
from html import escape
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import Response

from . import wordpress_api
from .cache import build_cache
from .config import settings
from .events import EventBus, RequestContext, Transport
from .loader import MetadataLoader
from .observers import (
    INIT_POST_TYPES_EVENT,
    INIT_TAXONOMIES_EVENT,
    INTEGRATION_TESTS_EVENT,
    MATCH_ROUTES_EVENT,
    SEARCH_TABS_EVENT,
    Observer,
    register_observers,
)
from .plugin import IntegrationTestHelper
from .routing import FEED_ACTION, VIEW_ACTION, Router
from .schemas import ArchivePage, PostType, WPListedPost

logging.basicConfig(level=logging.INFO)
log = logging.getLogger("wp-cpt-bridge.app")


# ---------------------------------------------------------------------------
# Listing rendering
# ---------------------------------------------------------------------------


def _rest_base(post_type: PostType) -> str:
    return post_type.rest_base or post_type.post_type


def _build_post_list(post_type: PostType, items: List[WPListedPost]) -> str:
    entries: List[str] = []
    for item in items:
        title = escape(item.title_text or f"#{item.id}")
        if item.link:
            entries.append(f'<li><a href="{escape(str(item.link))}">{title}</a></li>')
        else:
            entries.append(f"<li>{title}</li>")
    if not entries:
        return ""
    css = escape(f"post-list post-list-{post_type.post_type}")
    return f'<ul class="{css}">{"".join(entries)}</ul>'


async def render_post_list(post_type: PostType, search_term: Optional[str]) -> str:
    """Render the search listing of one post type; empty when nothing matches."""
    items = await wordpress_api.list_posts(_rest_base(post_type), search=search_term)
    return _build_post_list(post_type, items)


def _rfc822(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    return format_datetime(parsed.replace(tzinfo=timezone.utc), usegmt=True)


def _build_feed(post_type: PostType, items: List[WPListedPost], link: str) -> str:
    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<rss version="2.0"><channel>',
        f"<title>{escape(post_type.display_title)}</title>",
        f"<link>{escape(link)}</link>",
        f"<description>{escape(post_type.display_title)} &#187; Feed</description>",
    ]
    for item in items:
        parts.append("<item>")
        parts.append(f"<title>{escape(item.title_text)}</title>")
        if item.link:
            parts.append(f"<link>{escape(str(item.link))}</link>")
            parts.append(f"<guid>{escape(str(item.link))}</guid>")
        pub_date = _rfc822(item.date_gmt)
        if pub_date:
            parts.append(f"<pubDate>{pub_date}</pubDate>")
        excerpt = str(item.excerpt.get("rendered") or "")
        if excerpt:
            parts.append(f"<description>{escape(excerpt)}</description>")
        parts.append("</item>")
    parts.append("</channel></rss>")
    return "".join(parts)


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


loader = MetadataLoader(
    build_cache(settings.cache_dir),
    wordpress_api.WordPressContext,
    post_type_ignore=settings.post_type_ignorelist,
    taxonomy_ignore=settings.taxonomy_ignorelist,
    permalink_plugin=settings.cpt_permalink_plugin,
)
observer = Observer(loader, renderer=render_post_list, wordpress_path=settings.wp_path)
bus = register_observers(EventBus(), observer)

app = FastAPI()


# ---------------------------------------------------------------------------
# FastAPI endpoints
# ---------------------------------------------------------------------------


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}


@app.get("/stores/{store_id}/post-types")
async def http_post_types(store_id: int):
    event = await bus.dispatch(INIT_POST_TYPES_EVENT, store_id=store_id)
    post_types = event.transport.post_types or {}
    return {key: value.model_dump() for key, value in post_types.items()}


@app.get("/stores/{store_id}/taxonomies")
async def http_taxonomies(store_id: int):
    event = await bus.dispatch(INIT_TAXONOMIES_EVENT, store_id=store_id)
    taxonomies = event.transport.taxonomies or {}
    return {key: value.model_dump() for key, value in taxonomies.items()}


@app.post("/cache/flush")
async def http_flush_cache(store_id: Optional[int] = None):
    """
    Drop cached WordPress metadata.

    NOTE: Restrict access to this endpoint in production.
    """
    loader.flush(store_id)
    return {"ok": True, "store_id": store_id}


@app.get("/search")
async def http_search(
    q: str = "",
    post_type: Optional[str] = None,
    store_id: int = settings.store_id,
):
    request = RequestContext(store_id=store_id, params={"post_type": post_type, "q": q})
    event = await bus.dispatch(
        SEARCH_TABS_EVENT,
        transport=Transport(tabs=[]),
        request=request,
        parsed_search_term=q,
    )
    return {"tabs": [tab.model_dump() for tab in event.transport.tabs or []]}


@app.get("/integration-tests")
async def http_integration_tests(store_id: int = settings.store_id):
    helper = IntegrationTestHelper()
    await bus.dispatch(INTEGRATION_TESTS_EVENT, helper=helper, store_id=store_id)
    return {
        "ok": not helper.warnings,
        "warnings": [w.to_dict() for w in helper.warnings],
    }


@app.get("/{path:path}")
async def http_post_type_archive(path: str, http_request: Request):
    """Serve a post type archive, or its RSS feed, when the path matches."""
    request = RequestContext(
        store_id=settings.store_id, params=dict(http_request.query_params)
    )
    router = Router()
    await bus.dispatch(MATCH_ROUTES_EVENT, router=router, request=request)

    action = await router.match(path, request)
    post_type = request.post_type
    if action is None or post_type is None:
        raise HTTPException(status_code=404, detail="Not Found")

    items = await wordpress_api.list_posts(_rest_base(post_type))
    slug = post_type.archive_slug

    if action == FEED_ACTION:
        link = str(http_request.base_url).rstrip("/") + f"/{slug}/"
        return Response(
            _build_feed(post_type, items, link), media_type="application/rss+xml"
        )

    if action == VIEW_ACTION:
        page = ArchivePage(
            post_type=post_type.post_type,
            title=post_type.name or post_type.post_type,
            archive_slug=slug,
            feed_url=f"/{slug}/feed/",
        )
        return {
            **page.model_dump(),
            "posts": [
                {"id": item.id, "title": item.title_text, "link": str(item.link or "")}
                for item in items
            ],
        }

    raise HTTPException(status_code=404, detail="Not Found")
