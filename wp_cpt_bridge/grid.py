"""
Admin association collection and grid used by the product/category
association screens.
"""

from typing import Any, Dict, List, Optional, Sequence


class PostCollection:
    """Lazy association collection; filters apply when it is loaded."""

    def __init__(self, items: Optional[Sequence[Dict[str, Any]]] = None) -> None:
        self._items = list(items or [])
        self.post_types: List[str] = ["post"]

    def add_post_type_filter(self, post_types: Sequence[str]) -> "PostCollection":
        self.post_types = list(post_types)
        return self

    def load(self) -> List[Dict[str, Any]]:
        return [
            item
            for item in self._items
            if item.get("post_type", "post") in self.post_types
        ]


class Grid:
    """Ordered set of columns. `order` is the declared position of each column."""

    def __init__(self) -> None:
        self.columns: Dict[str, Dict[str, Any]] = {}
        self._next_order = 0

    def add_column(self, column_id: str, spec: Dict[str, Any]) -> "Grid":
        self.columns[column_id] = {**spec, "order": self._next_order}
        self._next_order += 1
        return self

    def add_column_after(
        self, column_id: str, spec: Dict[str, Any], after: str
    ) -> "Grid":
        if after not in self.columns:
            return self.add_column(column_id, spec)
        anchor = self.columns[after]["order"]
        for column in self.columns.values():
            if column["order"] > anchor:
                column["order"] += 1
        self.columns[column_id] = {**spec, "order": anchor + 1}
        self._next_order += 1
        return self

    def sort_columns_by_order(self) -> "Grid":
        self.columns = dict(
            sorted(self.columns.items(), key=lambda item: item[1]["order"])
        )
        return self

    @property
    def column_ids(self) -> List[str]:
        return list(self.columns)
