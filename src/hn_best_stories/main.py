from __future__ import annotations

import argparse
import json
import logging
import sys
import threading

from hn_best_stories.cache import MemoryCache
from hn_best_stories.cancellation import OperationCancelled
from hn_best_stories.config import AppConfig, load_app_config
from hn_best_stories.domain import Summary
from hn_best_stories.pipeline import BestStoriesPipeline
from hn_best_stories.transport import build_transport

LOGGER = logging.getLogger("hn_best_stories")

EXIT_CANCELLED = 130


def configure_logging(log_level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def clamp_count(count: int | None, config: AppConfig) -> int:
    requested = config.default_count if count is None else count
    return max(1, min(requested, config.max_count))


def build_pipeline(config: AppConfig, cache: MemoryCache | None = None) -> BestStoriesPipeline:
    return BestStoriesPipeline(
        transport=build_transport(config),
        cache=cache if cache is not None else MemoryCache(),
        max_parallelism=config.max_parallelism,
        ranked_ids_ttl_sec=config.ranked_ids_ttl_sec,
        item_ttl_sec=config.item_ttl_sec,
    )


def _print_table(summaries: list[Summary]) -> None:
    print("score\tcomments\tposted_by\ttime\ttitle\turi")
    for summary in summaries:
        print(
            f"{summary.score}\t{summary.comment_count}\t{summary.posted_by}\t"
            f"{summary.time}\t{summary.title}\t{summary.uri}"
        )
    print(f"count={len(summaries)}")


def _run_cancellable(pipeline: BestStoriesPipeline, count: int) -> list[Summary]:
    cancel = threading.Event()
    try:
        return pipeline.get_best_stories(count, cancel=cancel)
    except KeyboardInterrupt:
        cancel.set()
        raise OperationCancelled("interrupted") from None


def run_best_command(args: argparse.Namespace) -> int:
    config = load_app_config(args.config)
    count = clamp_count(args.count, config)
    pipeline = build_pipeline(config)
    try:
        summaries = _run_cancellable(pipeline, count)
    except OperationCancelled:
        LOGGER.warning("best stories request cancelled")
        return EXIT_CANCELLED
    finally:
        pipeline.transport.close()

    if args.json:
        print(json.dumps([summary.to_dict() for summary in summaries], ensure_ascii=False, indent=2))
        return 0
    _print_table(summaries)
    return 0


def run_self_test(args: argparse.Namespace) -> int:
    config = load_app_config(args.config)
    LOGGER.info(
        "config ok: base_url=%s max_parallelism=%s ttl_ids=%ss ttl_item=%ss",
        config.base_url,
        config.max_parallelism,
        config.ranked_ids_ttl_sec,
        config.item_ttl_sec,
    )
    print("self-test: ok")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fetch the current best Hacker News stories.")
    parser.add_argument("--log-level", default="INFO", help="DEBUG/INFO/WARNING/ERROR")
    parser.add_argument("--config", default=None, help="YAML config file (defaults are used when omitted).")
    subparsers = parser.add_subparsers(dest="command", required=True)

    best_parser = subparsers.add_parser("best", help="Print the top N best stories.")
    best_parser.add_argument("--count", type=int, default=None)
    best_parser.add_argument("--json", action="store_true")
    best_parser.set_defaults(handler=run_best_command)

    self_test_parser = subparsers.add_parser("self-test", help="Validate config.")
    self_test_parser.set_defaults(handler=run_self_test)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        return args.handler(args)
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Unhandled error: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
