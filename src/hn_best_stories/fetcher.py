from __future__ import annotations

import logging
import threading
from typing import Any, Protocol

from hn_best_stories.cache import RANKED_IDS_KEY, MemoryCache, item_cache_key
from hn_best_stories.domain import RawItem, parse_ranked_ids, parse_raw_item
from hn_best_stories.transport import TransportError

LOGGER = logging.getLogger("hn_best_stories")

RANKED_IDS_PATH = "beststories.json"
RANKED_IDS_TTL_SEC = 30.0
ITEM_TTL_SEC = 60.0


class JsonTransport(Protocol):
    def fetch_json(self, resource_path: str, cancel: threading.Event | None = None) -> Any: ...


def item_path(item_id: int) -> str:
    return f"item/{item_id}.json"


def get_ranked_ids(
    transport: JsonTransport,
    cache: MemoryCache,
    cancel: threading.Event | None = None,
    ttl_sec: float = RANKED_IDS_TTL_SEC,
) -> list[int]:
    cached = cache.get(RANKED_IDS_KEY)
    if cached is not None:
        return list(cached)

    try:
        payload = transport.fetch_json(RANKED_IDS_PATH, cancel)
    except TransportError as exc:
        LOGGER.warning("ranked id fetch failed, continuing with no candidates: %s", exc)
        return []
    if not isinstance(payload, list):
        LOGGER.warning("ranked id payload is not a list: %r", type(payload).__name__)
        return []

    ids = parse_ranked_ids(payload)
    cache.set(RANKED_IDS_KEY, tuple(ids), ttl_sec)
    return ids


def get_detail(
    item_id: int,
    transport: JsonTransport,
    cache: MemoryCache,
    cancel: threading.Event | None = None,
    ttl_sec: float = ITEM_TTL_SEC,
) -> RawItem | None:
    key = item_cache_key(item_id)
    cached = cache.get(key)
    if cached is not None:
        return cached

    try:
        payload = transport.fetch_json(item_path(item_id), cancel)
    except TransportError as exc:
        LOGGER.warning("item %s fetch failed, skipping: %s", item_id, exc)
        return None

    item = parse_raw_item(payload)
    if item is None:
        LOGGER.debug("item %s payload is empty or malformed, skipping", item_id)
        return None
    cache.set(key, item, ttl_sec)
    return item
