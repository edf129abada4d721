"""
Item catalog - load the vault listing once and index it for the session.
"""

import json
import logging
from dataclasses import dataclass
from urllib.parse import urlsplit

from op_cli import ITEM_LIST_ARGS, CatalogDecodeFailure, Runner, run_op

logger = logging.getLogger(__name__)

SUPPORTED_CATEGORIES = frozenset({"LOGIN", "PASSWORD", "CREDIT_CARD"})


@dataclass(frozen=True)
class CatalogItem:
    external_id: str
    title: str
    category: str
    domains: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "CatalogItem":
        for key in ("id", "title", "category"):
            if not isinstance(data.get(key), str):
                raise CatalogDecodeFailure(f"Catalog item without string '{key}'")

        urls = data.get("urls") or []
        if not isinstance(urls, list):
            raise CatalogDecodeFailure("Catalog item 'urls' is not a list")

        domains = []
        for url in urls:
            href = url.get("href") if isinstance(url, dict) else None
            if not isinstance(href, str):
                continue
            domain = host_from_url(href)
            if domain:
                domains.append(domain)

        return cls(
            external_id=data["id"],
            title=data["title"],
            category=data["category"],
            domains=tuple(domains),
        )


@dataclass(frozen=True)
class IndexedItem:
    handle: int
    item: CatalogItem


def host_from_url(value: str) -> str | None:
    """Host of an absolute URL, or the raw value when it is not one.

    A URL with a scheme but no host (mailto:, about:blank) has no domain.
    """
    try:
        parts = urlsplit(value)
        host = parts.hostname
    except ValueError:
        return value
    if not parts.scheme:
        return value
    return host


def parse_catalog(text: str) -> list[CatalogItem]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise CatalogDecodeFailure(f"Item list is not JSON: {e.msg}") from e
    if not isinstance(data, list):
        raise CatalogDecodeFailure("Item list is not a JSON array")
    items = []
    for entry in data:
        if not isinstance(entry, dict):
            raise CatalogDecodeFailure("Item list entry is not an object")
        items.append(CatalogItem.from_dict(entry))
    return items


def build_index(items: list[CatalogItem]) -> tuple[IndexedItem, ...]:
    supported = [i for i in items if i.category in SUPPORTED_CATEGORIES]
    return tuple(IndexedItem(handle, item) for handle, item in enumerate(supported))


def load_index(op_path: str, runner: Runner = run_op) -> tuple[IndexedItem, ...]:
    """List the vault once and index it.

    Raises OpError when the listing fails twice or cannot be decoded, so an
    unreachable vault never looks like an empty one.
    """
    output = runner(op_path, ITEM_LIST_ARGS, retries=1)
    items = parse_catalog(output)
    index = build_index(items)
    logger.debug("Indexed %d of %d items", len(index), len(items))
    return index
