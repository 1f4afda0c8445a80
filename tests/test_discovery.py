"""Path discovery tests (batch and streaming)."""

from __future__ import annotations

import threading

import pytest

import pyjson2sql
from pyjson2sql._errors import DocumentParseError
from pyjson2sql.discovery import (
    DiscoveryComplete,
    PathDiscovered,
    PathInfo,
    describe_path,
    discover_paths,
    format_sample,
    infer_type,
    iter_paths,
    stream_paths,
)
from pyjson2sql.progress import CancellationToken

DOC = {
    "meta": {"version": 2, "source": None},
    "users": [
        {"id": 1, "name": "Alice", "tags": ["a", "b"], "address": {"city": "Paris"}},
        {"id": 2, "name": "Bob", "extra": True},
    ],
    "empty": [],
}


def _nested(depth: int) -> dict:
    doc: dict = {"leaf": 1}
    for _ in range(depth):
        doc = {"n": doc}
    return doc


class TestIterPaths:
    def test_paths_in_first_seen_order(self):
        assert list(iter_paths(DOC)) == [
            "meta",
            "meta.version",
            "meta.source",
            "users[]",
            "users[].id",
            "users[].name",
            "users[].tags[]",
            "users[].address",
            "users[].address.city",
            "empty[]",
        ]

    def test_only_first_array_element_descended(self):
        assert "users[].extra" not in list(iter_paths(DOC))

    def test_unique(self):
        paths = list(iter_paths(DOC))
        assert len(paths) == len(set(paths))

    def test_root_array_paths_are_relative(self):
        assert list(iter_paths([{"a": 1, "b": {"c": 2}}])) == ["a", "b", "b.c"]

    def test_scalar_root(self):
        assert list(iter_paths(5)) == []

    def test_depth_cap(self):
        paths = list(iter_paths(_nested(15)))
        assert max(p.count(".") + 1 for p in paths) == 10
        assert not any(p.endswith("leaf") for p in paths)

    def test_shallow_document_reaches_leaf(self):
        paths = list(iter_paths(_nested(3)))
        assert "n.n.n.leaf" in paths

    def test_cancelled_token_stops_walk(self):
        token = CancellationToken()
        token.cancel()
        assert list(iter_paths(DOC, token)) == []


class TestSamples:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, "null"),
            (True, "boolean"),
            (3, "number"),
            (2.5, "number"),
            ("s", "string"),
            ([1], "array"),
            ({}, "object"),
        ],
    )
    def test_infer_type(self, value, expected):
        assert infer_type(value) == expected

    def test_short_sample_is_json_text(self):
        assert format_sample("Alice") == '"Alice"'
        assert format_sample(42) == "42"

    def test_long_sample_truncated(self):
        sample = format_sample("x" * 80)
        assert len(sample) == 50
        assert sample.endswith("...")

    def test_fifty_chars_not_truncated(self):
        text = "y" * 48
        assert format_sample(text) == f'"{text}"'

    def test_describe_null_value(self):
        assert describe_path(DOC, "meta.source") == PathInfo("meta.source", "null", "null")

    def test_describe_missing(self):
        assert describe_path(DOC, "nope") == PathInfo("nope", "unknown", "")


class TestDiscoverPaths:
    def test_types_and_samples(self):
        infos = {i.path: i for i in discover_paths(DOC)}
        assert infos["users[].name"] == PathInfo("users[].name", "string", '"Alice"')
        assert infos["meta.version"].data_type == "number"
        assert infos["users[]"].data_type == "object"
        assert infos["users[].tags[]"].sample == '"a"'
        assert infos["empty[]"].data_type == "unknown"

    def test_root_array_sampled_from_first_record(self):
        infos = discover_paths([{"a": 1}, {"a": 2}])
        assert infos == [PathInfo("a", "number", "1")]

    def test_as_dict(self):
        info = PathInfo("a", "number", "1")
        assert info.as_dict() == {"path": "a", "data_type": "number", "sample": "1"}


class TestStreamPaths:
    def test_events_match_batch_and_complete_last(self):
        events: list = []
        stream_paths(DOC, events.append).join(timeout=10)

        assert isinstance(events[-1], DiscoveryComplete)
        discovered = [e.info for e in events[:-1]]
        assert all(isinstance(e, PathDiscovered) for e in events[:-1])
        assert discovered == discover_paths(DOC)
        assert events[-1].count == len(discovered)
        assert events[-1].cancelled is False

    def test_exactly_one_completion(self):
        events: list = []
        stream = stream_paths(DOC, events.append)
        stream.join(timeout=10)
        assert stream.done
        assert sum(isinstance(e, DiscoveryComplete) for e in events) == 1

    def test_sink_runs_off_caller_thread(self):
        threads: set[str] = set()
        stream_paths(DOC, lambda e: threads.add(threading.current_thread().name)).join(timeout=10)
        assert threads == {"discovery-consumer"}

    def test_cancelled_stream_still_completes(self):
        token = CancellationToken()
        token.cancel()
        events: list = []
        stream_paths(DOC, events.append, token).join(timeout=10)
        assert len(events) == 1
        assert events[0] == DiscoveryComplete(count=0, cancelled=True)

    def test_sink_error_reraised_on_join(self):
        def sink(event):
            if isinstance(event, PathDiscovered):
                raise RuntimeError("boom")

        stream = stream_paths({"a": 1}, sink)
        with pytest.raises(RuntimeError, match="boom"):
            stream.join(timeout=10)


class TestDocumentEntryPoints:
    def test_discover_file(self, rows_json):
        assert [i.path for i in pyjson2sql.discover_paths(rows_json)] == [
            "rows[]",
            "rows[].id",
            "rows[].name",
        ]

    def test_stream_file(self, rows_json):
        events: list = []
        pyjson2sql.stream_discovery(rows_json, events.append).join(timeout=10)
        assert events[-1] == DiscoveryComplete(count=3)

    def test_stream_parse_error_raised_on_caller(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("[")
        with pytest.raises(DocumentParseError):
            pyjson2sql.stream_discovery(path, lambda e: None)
