from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class RawItem:
    id: int
    time: int
    by: str | None = None
    descendants: int | None = None
    kids: tuple[int, ...] = ()
    score: int | None = None
    text: str | None = None
    title: str | None = None
    type: str | None = None
    url: str | None = None


@dataclass(frozen=True)
class Summary:
    title: str
    uri: str
    posted_by: str
    time: str
    score: int
    comment_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "uri": self.uri,
            "postedBy": self.posted_by,
            "time": self.time,
            "score": self.score,
            "commentCount": self.comment_count,
        }


def _is_int(value: Any) -> bool:
    # bool is a subclass of int; JSON true/false must not pass as a count.
    return isinstance(value, int) and not isinstance(value, bool)


def _is_valid_timestamp(value: int) -> bool:
    try:
        datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return False
    return True


def _optional_int(payload: dict[str, Any], key: str) -> int | None:
    value = payload.get(key)
    return value if _is_int(value) else None


def _optional_str(payload: dict[str, Any], key: str) -> str | None:
    value = payload.get(key)
    return value if isinstance(value, str) else None


def parse_raw_item(payload: Any) -> RawItem | None:
    """Build a RawItem from a decoded item payload, or None if it is unusable."""
    if not isinstance(payload, dict):
        return None
    item_id = payload.get("id")
    created = payload.get("time")
    if not _is_int(item_id) or not _is_int(created):
        return None
    if not _is_valid_timestamp(created):
        return None

    raw_kids = payload.get("kids")
    kids: tuple[int, ...] = ()
    if isinstance(raw_kids, list):
        kids = tuple(kid for kid in raw_kids if _is_int(kid))

    return RawItem(
        id=item_id,
        time=created,
        by=_optional_str(payload, "by"),
        descendants=_optional_int(payload, "descendants"),
        kids=kids,
        score=_optional_int(payload, "score"),
        text=_optional_str(payload, "text"),
        title=_optional_str(payload, "title"),
        type=_optional_str(payload, "type"),
        url=_optional_str(payload, "url"),
    )


def parse_ranked_ids(payload: Any) -> list[int]:
    if not isinstance(payload, list):
        return []
    return [value for value in payload if _is_int(value)]
