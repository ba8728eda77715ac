"""Tests for file sources and generation-guarded loading."""

import asyncio
import json

import pandas as pd
import pytest

from tradelens.errors import DataLoadError
from tradelens.loading import FileDataSource, LoadCoordinator
from tradelens.models import ViewStatus
from tradelens.views.map import MapView
from tradelens.views.network import NetworkView


class GatedSource:
    """Fetches that complete only when the test opens their gate."""

    def __init__(self, payloads):
        self.payloads = payloads
        self.gates: dict[str, asyncio.Event] = {}

    def gate(self, key: str) -> asyncio.Event:
        return self.gates.setdefault(key, asyncio.Event())

    async def fetch(self, key):
        await self.gate(key).wait()
        value = self.payloads[key]
        if isinstance(value, Exception):
            raise value
        return value


class FailingSource:
    def __init__(self, exc):
        self.exc = exc

    async def fetch(self, key):
        raise self.exc


class TestFileDataSource:
    def test_reads_json_and_csv(self, tmp_path):
        (tmp_path / "doc.json").write_text(json.dumps({"a": 1}))
        (tmp_path / "rows.csv").write_text("suppliers,recipients,year,quantity\nFrance,India,2020,36\n")
        source = FileDataSource(tmp_path)
        assert asyncio.run(source.fetch("doc.json")) == {"a": 1}
        frame = asyncio.run(source.fetch("rows.csv"))
        assert isinstance(frame, pd.DataFrame)
        assert list(frame.columns) == ["suppliers", "recipients", "year", "quantity"]

    def test_absolute_key(self, tmp_path):
        path = tmp_path / "doc.json"
        path.write_text("[]")
        assert asyncio.run(FileDataSource("/nonexistent").fetch(str(path))) == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(DataLoadError) as exc:
            asyncio.run(FileDataSource(tmp_path).fetch("nope.json"))
        assert exc.value.key == "nope.json"

    def test_unsupported_type(self, tmp_path):
        (tmp_path / "data.xml").write_text("<x/>")
        with pytest.raises(DataLoadError, match="unsupported"):
            asyncio.run(FileDataSource(tmp_path).fetch("data.xml"))

    def test_malformed_json(self, tmp_path):
        (tmp_path / "bad.json").write_text("{not json")
        with pytest.raises(DataLoadError):
            asyncio.run(FileDataSource(tmp_path).fetch("bad.json"))


class TestLoadCoordinator:
    def test_stale_result_discarded(self):
        applied = []

        async def scenario():
            source = GatedSource({"old": "old-payload", "new": "new-payload"})
            coordinator = LoadCoordinator(source)
            first = asyncio.create_task(coordinator.load("old", on_result=applied.append))
            await asyncio.sleep(0)
            second = asyncio.create_task(coordinator.load("new", on_result=applied.append))
            await asyncio.sleep(0)
            source.gate("new").set()
            newer = await second
            source.gate("old").set()
            older = await first
            return older, newer

        older, newer = asyncio.run(scenario())
        assert applied == ["new-payload"]
        assert older.stale and not older.ok
        assert newer.ok and newer.generation == 2

    def test_stale_error_not_reported(self):
        errors = []

        async def scenario():
            source = GatedSource({"a": DataLoadError("a", "boom"), "b": [1]})
            coordinator = LoadCoordinator(source)
            first = asyncio.create_task(coordinator.load("a", on_error=errors.append))
            await asyncio.sleep(0)
            second = asyncio.create_task(coordinator.load("b", on_error=errors.append))
            await asyncio.sleep(0)
            source.gate("a").set()
            source.gate("b").set()
            return await asyncio.gather(first, second)

        older, newer = asyncio.run(scenario())
        assert errors == []
        assert older.stale and older.error is not None
        assert newer.payload == [1]

    def test_unexpected_source_failure_becomes_load_error(self):
        errors = []
        outcome = asyncio.run(LoadCoordinator(FailingSource(RuntimeError("upstream 503"))).load("feed", on_error=errors.append))
        assert isinstance(outcome.error, DataLoadError)
        assert outcome.error.reason == "upstream 503"
        assert errors == [outcome.error]

    def test_error_callback(self, tmp_path):
        errors = []
        outcome = asyncio.run(LoadCoordinator(FileDataSource(tmp_path)).load("gone.json", on_error=errors.append))
        assert not outcome.ok
        assert errors == [outcome.error]


class TestViewLoading:
    def test_load_error_sets_error_status(self, tmp_path, session, config):
        view = NetworkView(config)
        view.mount(session)
        outcome = asyncio.run(view.load(LoadCoordinator(FileDataSource(tmp_path)), "missing.json"))
        assert outcome.error is not None
        assert view.status is ViewStatus.ERROR
        scene = view.render()
        assert scene.is_placeholder
        assert "no such file" in scene.message

    def test_unexpected_failure_sets_error_status(self, session, config):
        view = NetworkView(config)
        view.mount(session)
        asyncio.run(view.load(LoadCoordinator(FailingSource(RuntimeError("upstream 503"))), "feed"))
        assert view.status is ViewStatus.ERROR
        assert "upstream 503" in view.render().message

    def test_csv_into_map(self, tmp_path, session, config):
        (tmp_path / "transfers.csv").write_text(
            "suppliers,recipients,year,quantity,weapon description,status\n"
            "France,India,2020,36,Fighter aircraft,New\n"
            "USA,Japan,2020,12,Fighter aircraft,New\n"
        )
        view = MapView(config)
        view.mount(session)
        asyncio.run(view.load(LoadCoordinator(FileDataSource(tmp_path)), "transfers.csv"))
        assert view.status is ViewStatus.READY
        assert {r.supplier for r in view.records} == {"France", "United States"}

    def test_newer_load_wins_for_view(self, session, config, nested_payload):
        view = NetworkView(config)
        view.mount(session)

        async def scenario():
            source = GatedSource({"old": [], "new": nested_payload})
            coordinator = LoadCoordinator(source)
            first = asyncio.create_task(view.load(coordinator, "old"))
            await asyncio.sleep(0)
            second = asyncio.create_task(view.load(coordinator, "new"))
            await asyncio.sleep(0)
            source.gate("new").set()
            await second
            source.gate("old").set()
            await first

        asyncio.run(scenario())
        assert view.status is ViewStatus.READY
        assert len(view.records) == 11
