"""
Host router: a route table that callbacks can extend lazily per request.
"""

import logging
from typing import Awaitable, Callable, Dict, List, Optional

from .events import RequestContext

log = logging.getLogger("wp-cpt-bridge.routing")

VIEW_ACTION = "post_type/view"
FEED_ACTION = "post_type/feed"

RouteCallback = Callable[["Router", str, RequestContext], Awaitable[object]]


class Router:
    """Route table for a single request; create one per request."""

    def __init__(self) -> None:
        self.routes: Dict[str, str] = {}
        self._callbacks: List[RouteCallback] = []

    def add_route(self, path: str, action: str) -> "Router":
        self.routes[path.strip("/")] = action
        return self

    def add_route_callback(self, callback: RouteCallback) -> "Router":
        self._callbacks.append(callback)
        return self

    async def match(self, uri: str, request: RequestContext) -> Optional[str]:
        """Return the action registered for `uri`, running callbacks first."""
        uri = uri.strip("/")
        if uri not in self.routes:
            # a feed request matches against its archive path
            base = uri[: -len("/feed")] if uri.endswith("/feed") else uri
            for callback in self._callbacks:
                await callback(self, base, request)
                if uri in self.routes:
                    break
        action = self.routes.get(uri)
        log.debug("Route %r -> %s", uri, action)
        return action
