#!/usr/bin/env python3
"""
Pydantic models for external I/O:

- WordPress introspection responses (post types, taxonomies)
- Normalized descriptors handed to the shop side
- Search tabs and archive listings
"""

import re
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, HttpUrl

_PERMALINK_TAG = re.compile(r"%[^%/]+%")


# ---------------------------------------------------------------------------
# WordPress models (as returned by the companion plugin)
# ---------------------------------------------------------------------------


class WPPostTypeObject(BaseModel):
    name: str
    label: Optional[str] = None
    labels: Dict[str, Any] = Field(default_factory=dict)
    has_archive: Union[bool, str] = False
    rewrite: Union[Dict[str, Any], bool, None] = None
    taxonomies: List[str] = Field(default_factory=list)
    exclude_from_search: bool = False
    builtin: bool = Field(default=False, alias="_builtin")
    rest_base: Optional[str] = None

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @property
    def rewrite_slug(self) -> Optional[str]:
        if isinstance(self.rewrite, dict):
            return self.rewrite.get("slug") or None
        return None


class WPTaxonomyObject(BaseModel):
    name: str
    label: Optional[str] = None
    rewrite: Union[Dict[str, Any], bool, None] = None
    builtin: bool = Field(default=False, alias="_builtin")
    object_type: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @property
    def rewrite_slug(self) -> Optional[str]:
        if isinstance(self.rewrite, dict):
            return self.rewrite.get("slug") or None
        return None


class WPListedPost(BaseModel):
    """Subset of a wp/v2 collection item used for listings and feeds."""

    id: int
    link: Optional[HttpUrl] = None
    date_gmt: Optional[str] = None
    title: Dict[str, Any] = Field(default_factory=dict)
    excerpt: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="allow")

    @property
    def title_text(self) -> str:
        return str(self.title.get("rendered") or "").strip()


# ---------------------------------------------------------------------------
# Descriptors (immutable, request lifetime)
# ---------------------------------------------------------------------------


class PostType(BaseModel):
    post_type: str
    name: Optional[str] = None
    plural_name: Optional[str] = None
    has_archive: Union[bool, str] = False
    rewrite_slug: Optional[str] = None
    taxonomies: List[str] = Field(default_factory=list)
    exclude_from_search: int = 0
    builtin: bool = False
    rest_base: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="ignore")

    def has_archive_page(self) -> bool:
        return bool(self.has_archive)

    @property
    def archive_slug(self) -> str:
        """URL segment of the archive listing."""
        if isinstance(self.has_archive, str) and self.has_archive.strip("/"):
            return self.has_archive.strip("/")
        if self.rewrite_slug:
            slug = _PERMALINK_TAG.sub("", self.rewrite_slug)
            slug = re.sub(r"/{2,}", "/", slug).strip("/")
            if slug:
                return slug
        return self.post_type

    @property
    def display_title(self) -> str:
        return self.plural_name or self.name or self.post_type


class Taxonomy(BaseModel):
    taxonomy_type: str
    name: Optional[str] = None
    rewrite_slug: Optional[str] = None
    builtin: bool = False

    model_config = ConfigDict(frozen=True, extra="ignore")


# ---------------------------------------------------------------------------
# Shop-side payloads
# ---------------------------------------------------------------------------


class SearchTab(BaseModel):
    alias: str
    html: str
    title: str


class ArchivePage(BaseModel):
    post_type: str
    title: str
    archive_slug: str
    feed_url: str
