"""
Event handlers wiring WordPress post types and taxonomies into the shop.

Every handler takes an Event and degrades to a no-op when no metadata is
available, so a missing or broken WordPress never breaks the page.
"""

import logging
from functools import partial
from typing import Awaitable, Callable, Optional, Union

from .events import Event, EventBus, RequestContext
from .loader import MetadataLoader
from .plugin import check_for_plugin_installation
from .routing import FEED_ACTION, VIEW_ACTION, Router
from .schemas import PostType, SearchTab

log = logging.getLogger("wp-cpt-bridge.observers")

MATCH_ROUTES_EVENT = "wordpress_match_routes_before"
INIT_POST_TYPES_EVENT = "wordpress_app_init_post_types"
INIT_TAXONOMIES_EVENT = "wordpress_app_init_taxonomies"
ASSOCIATION_COLLECTION_EVENT = "wordpress_association_post_collection_load_before"
SEARCH_TABS_EVENT = "wordpress_search_result_tabs"
INTEGRATION_TESTS_EVENT = "wordpress_integration_tests_apply"

ListingRenderer = Callable[[PostType, Optional[str]], Awaitable[str]]


def _store_id(event: Event) -> Union[int, str]:
    if event.store_id is not None:
        return event.store_id
    if event.request is not None:
        return event.request.store_id
    return 0


class Observer:
    def __init__(
        self,
        loader: MetadataLoader,
        *,
        renderer: Optional[ListingRenderer] = None,
        translate: Callable[[str], str] = lambda text: text,
        wordpress_path: Optional[str] = None,
    ) -> None:
        self.loader = loader
        self.renderer = renderer
        self.translate = translate
        self.wordpress_path = wordpress_path

    # -- routing -----------------------------------------------------------

    async def match_routes(self, event: Event) -> None:
        event.router.add_route_callback(self.get_routes)

    async def get_routes(
        self, router: Router, uri: str, request: RequestContext
    ) -> Router:
        """Register archive routes for the first post type whose slug is `uri`."""
        post_types = await self.loader.get_post_types(request.store_id)
        for post_type in post_types.values():
            if not post_type.has_archive_page():
                continue

            slug = post_type.archive_slug
            if not slug or uri != slug:
                continue

            router.add_route(slug, VIEW_ACTION).add_route(f"{slug}/feed", FEED_ACTION)
            request.post_type = post_type
            log.debug("Matched %r to post type %s", uri, post_type.post_type)
            break

        return router

    # -- app init ----------------------------------------------------------

    async def init_post_types(self, event: Event) -> None:
        post_types = await self.loader.get_post_types(_store_id(event))
        if post_types:
            event.transport.post_types = post_types

    async def init_taxonomies(self, event: Event) -> None:
        taxonomies = await self.loader.get_taxonomies(_store_id(event))
        if taxonomies:
            event.transport.taxonomies = taxonomies

    # -- admin grid --------------------------------------------------------

    async def association_collection_load_before(self, event: Event) -> None:
        """Add custom post types to association collections and their grid."""
        posts = event.collection
        if posts is None:
            return

        post_types = await self.loader.get_post_types(_store_id(event))
        if not post_types:
            return

        types = ["post"] + [key for key in post_types if key != "post"]
        posts.add_post_type_filter(types)

        grid = event.grid
        if grid is not None:
            grid.add_column_after(
                "post_type",
                {
                    "header": "Type",
                    "index": "post_type",
                    "type": "options",
                    "options": {t: t for t in types},
                },
                "post_title",
            )
            grid.sort_columns_by_order()

    # -- search ------------------------------------------------------------

    async def add_posts_to_search(self, event: Event) -> None:
        """Add a result tab per searchable custom post type."""
        request = event.request
        if request is not None and request.get_param("post_type") == "*":
            return

        if self.renderer is None:
            log.warning("No listing renderer configured; skipping search tabs")
            return

        post_types = await self.loader.get_post_types(_store_id(event))
        if not post_types:
            return

        tabs = list(event.transport.tabs or [])
        search_term = event.parsed_search_term

        for alias, post_type in post_types.items():
            if alias == "post":
                continue
            if int(post_type.exclude_from_search) == 1:
                continue

            html = (await self.renderer(post_type, search_term) or "").strip()
            if html:
                tabs.append(
                    SearchTab(
                        alias=alias,
                        html=html,
                        title=self.translate(post_type.display_title),
                    )
                )

        event.transport.tabs = tabs

    # -- diagnostics -------------------------------------------------------

    async def apply_integration_tests(self, event: Event) -> None:
        await event.helper.apply_test(
            partial(
                check_for_plugin_installation,
                self.wordpress_path,
                self.loader,
                _store_id(event),
            )
        )


def register_observers(bus: EventBus, observer: Observer) -> EventBus:
    bus.observe(MATCH_ROUTES_EVENT, observer.match_routes)
    bus.observe(INIT_POST_TYPES_EVENT, observer.init_post_types)
    bus.observe(INIT_TAXONOMIES_EVENT, observer.init_taxonomies)
    bus.observe(
        ASSOCIATION_COLLECTION_EVENT, observer.association_collection_load_before
    )
    bus.observe(SEARCH_TABS_EVENT, observer.add_posts_to_search)
    bus.observe(INTEGRATION_TESTS_EVENT, observer.apply_integration_tests)
    return bus
