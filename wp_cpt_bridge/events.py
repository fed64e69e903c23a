"""
Minimal host-side event plumbing.

Handlers receive an Event carrying a Transport (their output channel) and
the payload given to dispatch(). Payload attributes that were not supplied
read as None, so handlers can test for optional collaborators.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from .schemas import PostType

log = logging.getLogger("wp-cpt-bridge.events")

Handler = Callable[["Event"], Awaitable[Any]]


class Transport:
    """Attribute bag handlers write their results into."""

    def __init__(self, **values: Any) -> None:
        self.__dict__.update(values)

    def __getattr__(self, name: str) -> Any:
        # only reached for attributes that were never set
        if name.startswith("__"):
            raise AttributeError(name)
        return None

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)


class Event:
    def __init__(
        self, name: str, transport: Optional[Transport] = None, **payload: Any
    ) -> None:
        self.name = name
        self.transport = transport if transport is not None else Transport()
        self._payload = payload

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return self._payload.get(name)

    def __repr__(self) -> str:
        return f"Event({self.name!r}, payload={sorted(self._payload)})"


class EventBus:
    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = {}

    def observe(self, name: str, handler: Handler) -> None:
        self._handlers.setdefault(name, []).append(handler)

    def handlers(self, name: str) -> List[Handler]:
        return list(self._handlers.get(name, ()))

    async def dispatch(
        self, name: str, transport: Optional[Transport] = None, **payload: Any
    ) -> Event:
        """Run every handler for `name` in registration order."""
        event = Event(name, transport=transport, **payload)
        for handler in self.handlers(name):
            log.debug("Dispatching %s to %s", name, getattr(handler, "__name__", handler))
            await handler(event)
        return event


class RequestContext:
    """
    Request-scoped state shared between the router and the page handlers.

    `post_type` is filled in by the route matcher when a post type archive
    matches the requested path.
    """

    def __init__(
        self,
        store_id: Union[int, str] = 0,
        params: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.store_id = store_id
        self.params: Dict[str, Any] = dict(params or {})
        self.post_type: Optional[PostType] = None

    def get_param(self, name: str, default: Any = None) -> Any:
        return self.params.get(name, default)
