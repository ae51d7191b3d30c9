from __future__ import annotations

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait

from hn_best_stories.cache import MemoryCache
from hn_best_stories.cancellation import OperationCancelled, raise_if_cancelled
from hn_best_stories.domain import Summary
from hn_best_stories.fetcher import ITEM_TTL_SEC, RANKED_IDS_TTL_SEC, JsonTransport, get_detail, get_ranked_ids
from hn_best_stories.normalize import to_summary

LOGGER = logging.getLogger("hn_best_stories")

MAX_PARALLELISM = 8
CANCEL_POLL_SEC = 0.05


def select_candidates(ranked_ids: list[int], n: int) -> list[int]:
    if n <= 0:
        return []
    return ranked_ids[:n]


def _sort_key(summary: Summary) -> tuple[int, int]:
    return (-summary.score, -summary.comment_count)


def sort_summaries(summaries: list[Summary]) -> list[Summary]:
    # Full ties (same score and comment count) have no defined order.
    return sorted(summaries, key=_sort_key)


class BestStoriesPipeline:
    """Resolve the top-N ranked items into sorted summaries.

    Detail lookups run on a thread pool capped at ``max_parallelism``. The
    cache is injected so callers decide its lifetime; one cache shared by
    several pipelines behaves as a single process-wide cache.
    """

    def __init__(
        self,
        transport: JsonTransport,
        cache: MemoryCache,
        max_parallelism: int = MAX_PARALLELISM,
        ranked_ids_ttl_sec: float = RANKED_IDS_TTL_SEC,
        item_ttl_sec: float = ITEM_TTL_SEC,
    ) -> None:
        if max_parallelism <= 0:
            raise ValueError("max_parallelism must be > 0")
        self.transport = transport
        self.cache = cache
        self.max_parallelism = max_parallelism
        self.ranked_ids_ttl_sec = ranked_ids_ttl_sec
        self.item_ttl_sec = item_ttl_sec

    def _resolve(self, item_id: int, cancel: threading.Event | None) -> Summary | None:
        raise_if_cancelled(cancel)
        item = get_detail(
            item_id,
            transport=self.transport,
            cache=self.cache,
            cancel=cancel,
            ttl_sec=self.item_ttl_sec,
        )
        summary = to_summary(item)
        if summary is None:
            LOGGER.debug("item %s dropped: no qualifying record", item_id)
        return summary

    def _collect(self, candidates: list[int], cancel: threading.Event | None) -> list[Summary]:
        summaries: list[Summary] = []
        executor = ThreadPoolExecutor(
            max_workers=min(self.max_parallelism, len(candidates)),
            thread_name_prefix="hn-detail",
        )
        try:
            futures: dict[Future[Summary | None], int] = {
                executor.submit(self._resolve, item_id, cancel): item_id for item_id in candidates
            }
            pending = set(futures)
            poll = CANCEL_POLL_SEC if cancel is not None else None
            while pending:
                done, pending = wait(pending, timeout=poll, return_when=FIRST_COMPLETED)
                raise_if_cancelled(cancel)
                for future in done:
                    try:
                        summary = future.result()
                    except OperationCancelled:
                        raise
                    except Exception:  # noqa: BLE001
                        LOGGER.warning("item %s dropped after unexpected error", futures[future], exc_info=True)
                        continue
                    if summary is not None:
                        summaries.append(summary)
        finally:
            # On cancellation in-flight workers are abandoned, not joined.
            executor.shutdown(wait=False, cancel_futures=True)
        return summaries

    def get_best_stories(self, n: int, cancel: threading.Event | None = None) -> list[Summary]:
        raise_if_cancelled(cancel)
        ranked_ids = get_ranked_ids(
            transport=self.transport,
            cache=self.cache,
            cancel=cancel,
            ttl_sec=self.ranked_ids_ttl_sec,
        )
        candidates = select_candidates(ranked_ids, n)
        raise_if_cancelled(cancel)

        summaries = self._collect(candidates, cancel) if candidates else []
        result = sort_summaries(summaries)
        LOGGER.info(
            "best stories resolved: requested=%s candidates=%s returned=%s",
            n,
            len(candidates),
            len(result),
        )
        return result
