from __future__ import annotations

from datetime import datetime, timezone

from hn_best_stories.domain import RawItem, Summary

UNKNOWN_AUTHOR = "unknown"


def format_unix_time(seconds: int) -> str:
    return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat(timespec="seconds")


def to_summary(item: RawItem | None) -> Summary | None:
    """Convert a detail record into a Summary.

    Only the title gates qualification: items of any type with a non-empty
    title are kept. Scores and comment counts are passed through as given.
    """
    if item is None or not item.title:
        return None
    return Summary(
        title=item.title,
        uri=item.url or "",
        posted_by=item.by if item.by is not None else UNKNOWN_AUTHOR,
        time=format_unix_time(item.time),
        score=item.score if item.score is not None else 0,
        comment_count=item.descendants if item.descendants is not None else 0,
    )
