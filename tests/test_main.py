import json

from hn_best_stories import main as main_module
from hn_best_stories.cache import MemoryCache
from hn_best_stories.cancellation import OperationCancelled
from hn_best_stories.config import AppConfig
from hn_best_stories.pipeline import BestStoriesPipeline


class _DummyTransport:
    def __init__(self) -> None:
        self.closed = False

    def fetch_json(self, resource_path, cancel=None):  # type: ignore[no-untyped-def]
        if resource_path == "beststories.json":
            return [1, 2]
        item_id = int(resource_path.split("/")[1].split(".")[0])
        return {"id": item_id, "title": f"T{item_id}", "time": 0, "score": item_id}

    def close(self) -> None:
        self.closed = True


class _CancelledTransport(_DummyTransport):
    def fetch_json(self, resource_path, cancel=None):  # type: ignore[no-untyped-def]
        raise OperationCancelled("stop")


def test_clamp_count_uses_default_and_bounds() -> None:
    config = AppConfig()
    assert main_module.clamp_count(None, config) == 10
    assert main_module.clamp_count(0, config) == 1
    assert main_module.clamp_count(-5, config) == 1
    assert main_module.clamp_count(42, config) == 42
    assert main_module.clamp_count(10_000, config) == 500


def test_best_command_prints_json(monkeypatch, capsys) -> None:
    transport = _DummyTransport()
    requested: list[int] = []

    def _fake_build_pipeline(config, cache=None):  # type: ignore[no-untyped-def]
        pipeline = BestStoriesPipeline(transport=transport, cache=MemoryCache())
        original = pipeline.get_best_stories

        def _record(n, cancel=None):  # type: ignore[no-untyped-def]
            requested.append(n)
            return original(n, cancel=cancel)

        pipeline.get_best_stories = _record  # type: ignore[method-assign]
        return pipeline

    monkeypatch.setattr(main_module, "build_pipeline", _fake_build_pipeline)
    exit_code = main_module.main(["best", "--count", "9999", "--json"])

    assert exit_code == 0
    assert requested == [500]
    assert transport.closed
    payload = json.loads(capsys.readouterr().out)
    assert [story["title"] for story in payload] == ["T2", "T1"]
    assert set(payload[0]) == {"title", "uri", "postedBy", "time", "score", "commentCount"}


def test_best_command_prints_table(monkeypatch, capsys) -> None:
    monkeypatch.setattr(
        main_module,
        "build_pipeline",
        lambda config, cache=None: BestStoriesPipeline(transport=_DummyTransport(), cache=MemoryCache()),
    )
    assert main_module.main(["best", "--count", "1"]) == 0
    out = capsys.readouterr().out
    assert "T1" in out
    assert out.rstrip().endswith("count=1")


def test_best_command_reports_cancellation(monkeypatch) -> None:
    monkeypatch.setattr(
        main_module,
        "build_pipeline",
        lambda config, cache=None: BestStoriesPipeline(transport=_CancelledTransport(), cache=MemoryCache()),
    )
    assert main_module.main(["best"]) == main_module.EXIT_CANCELLED


def test_self_test_validates_config(capsys) -> None:
    assert main_module.main(["--config", "data/config.yaml", "self-test"]) == 0
    assert "self-test: ok" in capsys.readouterr().out


def test_main_returns_one_on_config_error(tmp_path) -> None:
    assert main_module.main(["--config", str(tmp_path / "missing.yaml"), "self-test"]) == 1
