"""
navconv — Remote route catalog

A catalog is a tree of categories served as GPX 1.1 documents: the
metadata names the category and links its sub categories, each rte entry
links a route file. The transport is injected as a CatalogBackend.

Every category caches its document. Fetching holds the category's lock,
so concurrent readers of one category wait for a single fetch and share
its result. Changing a category drops the cached documents of its whole
cached subtree.
"""

from __future__ import annotations
import logging
import threading
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

from .formats.base import XmlNavigationFormat, local_name
from .formats.gpx import Gpx11Format

log = logging.getLogger(__name__)

_ns = Gpx11Format.namespace
_xml = XmlNavigationFormat


class CatalogBackend(Protocol):
    """Transport used by RemoteCategory; URLs are opaque strings."""

    def fetch(self, url: str) -> Optional[bytes]: ...

    def add_category(self, parent_url: str, name: str) -> str: ...

    def update_category(self, url: str, parent_url: Optional[str], name: str) -> str: ...

    def delete_category(self, url: str) -> None: ...

    def add_route(self, category_url: str, description: str, file_url: str) -> str: ...

    def update_route(self, route_url: str, category_url: str, description: str) -> None: ...

    def delete_route(self, route_url: str) -> None: ...


@dataclass
class CatalogRoute:
    """A route entry of a category; `url` locates the entry, not the file."""
    url: str
    name: Optional[str] = None
    description: Optional[str] = None
    source: Optional[str] = None


def empty_category_document() -> ET.Element:
    """Stands in for a category whose document could not be fetched."""
    root = ET.Element(f"{{{_ns}}}gpx", {"version": "1.1"})
    ET.SubElement(root, f"{{{_ns}}}metadata")
    return root


class RemoteCategory:

    def __init__(self, backend: CatalogBackend, url: str, name: Optional[str] = None,
                 parent: Optional[RemoteCategory] = None):
        self.backend = backend
        self.url = url
        self.parent = parent
        self._name = name
        self._document: Optional[ET.Element] = None
        self._children: Dict[str, RemoteCategory] = {}
        self._lock = threading.RLock()

    # ─── Cached document ──────────────────────────────────────

    def _get_document(self) -> ET.Element:
        with self._lock:
            if self._document is None:
                self._document = self._fetch()
            return self._document

    def _fetch(self) -> ET.Element:
        log.debug("Fetching category %s", self.url)
        try:
            data = self.backend.fetch(self.url)
            root = ET.fromstring(data) if data else None
        except (OSError, ValueError, ET.ParseError) as e:
            log.warning("Cannot fetch category %s: %s", self.url, e)
            root = None
        if root is None or local_name(root.tag) != "gpx":
            return empty_category_document()
        return root

    def _metadata(self) -> ET.Element:
        metadata = _xml.child(self._get_document(), "metadata")
        return metadata if metadata is not None else ET.Element(f"{{{_ns}}}metadata")

    @property
    def is_cached(self) -> bool:
        return self._document is not None

    def invalidate(self, recursive: bool = False):
        with self._lock:
            if recursive:
                for child in list(self._children.values()):
                    child.invalidate(recursive=True)
            self._document = None
            self._name = None

    # ─── Queries ──────────────────────────────────────────────

    @property
    def name(self) -> Optional[str]:
        with self._lock:
            if self._name is not None:
                return self._name
        return _xml.child_text(self._metadata(), "name")

    @property
    def description(self) -> Optional[str]:
        return _xml.child_text(self._metadata(), "desc")

    def _child(self, url: str, name: Optional[str]) -> RemoteCategory:
        with self._lock:
            child = self._children.get(url)
            if child is None:
                child = RemoteCategory(self.backend, url, name, parent=self)
                self._children[url] = child
            return child

    def get_sub_categories(self) -> List[RemoteCategory]:
        return [self._child(link.get("href"), _xml.child_text(link, "text"))
                for link in _xml.children(self._metadata(), "link") if link.get("href")]

    def get_routes(self) -> List[CatalogRoute]:
        routes = []
        for rte in _xml.children(self._get_document(), "rte"):
            link = _xml.child(rte, "link")
            if link is None or not link.get("href"):
                log.debug("Skipping catalog route without link in %s", self.url)
                continue
            routes.append(CatalogRoute(link.get("href"), _xml.child_text(rte, "name"),
                                       _xml.child_text(rte, "desc"), _xml.child_text(rte, "src")))
        return routes

    # ─── Changes ──────────────────────────────────────────────

    def add_sub_category(self, name: str) -> RemoteCategory:
        url = self.backend.add_category(self.url, name)
        self.invalidate()
        return self._child(url, name)

    def update_category(self, parent: Optional[RemoteCategory], name: str):
        """Rename the category and/or move it below `parent`."""
        self.url = self.backend.update_category(self.url, parent.url if parent is not None else None, name)
        self.invalidate(recursive=True)
        if parent is not None:
            parent.invalidate()

    def delete(self):
        self.backend.delete_category(self.url)
        if self.parent is not None:
            self.parent.invalidate()

    def add_route(self, description: str, file_url: str) -> CatalogRoute:
        url = self.backend.add_route(self.url, description, file_url)
        self.invalidate()
        return CatalogRoute(url, description=description, source=file_url)

    def update_route(self, route: CatalogRoute, category: RemoteCategory, description: str):
        """Change the description of a route and/or move it to `category`."""
        self.backend.update_route(route.url, category.url, description)
        self.invalidate()
        category.invalidate()

    def delete_route(self, route: CatalogRoute):
        self.backend.delete_route(route.url)
        self.invalidate()

    def __eq__(self, other) -> bool:
        return (isinstance(other, RemoteCategory) and self.backend is other.backend
                and self.url == other.url)

    def __hash__(self) -> int:
        return hash((id(self.backend), self.url))

    def __repr__(self) -> str:
        return f"<RemoteCategory {self.url}>"
