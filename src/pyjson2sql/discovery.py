"""Enumerate the distinct structural paths of a JSON document.

Discovery walks objects fully but descends only into the first element of
each array, so cost stays bounded on large arrays. Array-valued paths are
reported with the ``[]`` marker. Traversal stops at
:data:`~pyjson2sql._constants.MAX_DISCOVERY_DEPTH`.

Two delivery modes share the traversal:

* :func:`discover_paths` returns every path with its type and a sample.
* :class:`DiscoveryStream` runs a producer thread that walks the tree and a
  consumer thread that samples each path and forwards events to a sink,
  finishing with a single :class:`DiscoveryComplete` event.
"""

from __future__ import annotations

import json
import logging
import queue
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from pyjson2sql._constants import (
    ARRAY_MARKER,
    MAX_DISCOVERY_DEPTH,
    SAMPLE_MAX_LENGTH,
    SAMPLE_TRUNCATED_LENGTH,
)
from pyjson2sql.paths import get_value_by_path
from pyjson2sql.progress import CancellationToken

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PathInfo:
    """A discovered path with its inferred type and a short sample."""

    path: str
    data_type: str
    sample: str

    def as_dict(self) -> dict[str, str]:
        return {"path": self.path, "data_type": self.data_type, "sample": self.sample}


@dataclass(frozen=True)
class PathDiscovered:
    info: PathInfo


@dataclass(frozen=True)
class DiscoveryComplete:
    count: int
    cancelled: bool = False


DiscoveryEvent = PathDiscovered | DiscoveryComplete
DiscoverySink = Callable[[DiscoveryEvent], None]


def _walk(
    value: Any,
    prefix: str,
    depth: int,
    cancel_token: CancellationToken | None,
) -> Iterator[str]:
    if depth > MAX_DISCOVERY_DEPTH:
        return
    if cancel_token is not None and cancel_token.cancelled:
        return

    if isinstance(value, dict):
        if prefix:
            yield prefix
        for key, child in value.items():
            child_prefix = f"{prefix}.{key}" if prefix else key
            yield from _walk(child, child_prefix, depth + 1, cancel_token)
    elif isinstance(value, list):
        array_prefix = prefix + ARRAY_MARKER if prefix else ""
        if array_prefix:
            yield array_prefix
        if value:
            # A root array holds the records themselves; their paths stay relative.
            yield from _walk(value[0], array_prefix, depth + 1, cancel_token)
    elif prefix:
        yield prefix


def iter_paths(
    document: Any,
    cancel_token: CancellationToken | None = None,
) -> Iterator[str]:
    """Yield each distinct path once, in first-seen order."""
    seen: set[str] = set()
    for path in _walk(document, "", 0, cancel_token):
        if path in seen:
            continue
        seen.add(path)
        yield path


def infer_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return "unknown"


def format_sample(value: Any) -> str:
    """Render ``value`` as JSON text, truncated to a short preview."""
    text = json.dumps(value, ensure_ascii=False)
    if len(text) > SAMPLE_MAX_LENGTH:
        return text[:SAMPLE_TRUNCATED_LENGTH] + "..."
    return text


def describe_path(document: Any, path: str) -> PathInfo:
    """Sample the value at ``path`` and infer its type."""
    marker = object()
    value = _lookup(document, path, marker)
    if value is marker:
        return PathInfo(path=path, data_type="unknown", sample="")
    return PathInfo(path=path, data_type=infer_type(value), sample=format_sample(value))


def _lookup(document: Any, path: str, missing: Any) -> Any:
    # get_value_by_path conflates JSON null with absence; tell them apart here.
    value = get_value_by_path(document, path)
    if value is not None:
        return value
    parent, _, last = path.rpartition(".")
    holder = get_value_by_path(document, parent) if parent else document
    if isinstance(holder, dict) and last in holder and holder[last] is None:
        return None
    return missing


def _sample_root(document: Any) -> Any:
    # Paths under a root array are relative to its first record.
    while isinstance(document, list) and document:
        document = document[0]
    return document


def discover_paths(
    document: Any,
    cancel_token: CancellationToken | None = None,
) -> list[PathInfo]:
    """Return every distinct path of ``document`` with type and sample."""
    root = _sample_root(document)
    return [describe_path(root, p) for p in iter_paths(document, cancel_token)]


_END = object()


class DiscoveryStream:
    """Producer/consumer discovery delivering events to ``sink``.

    The producer walks the document and pushes new path strings into an
    unbounded queue, followed by an end marker. The consumer samples each
    path and calls ``sink``. The completion event is sent only after the end
    marker is read, so every path is delivered exactly once before it.
    """

    def __init__(
        self,
        document: Any,
        sink: DiscoverySink,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        self._document = document
        self._sink = sink
        self._cancel_token = cancel_token
        self._channel: queue.Queue[Any] = queue.Queue()
        self._error: BaseException | None = None
        self._producer = threading.Thread(
            target=self._produce, name="discovery-producer", daemon=True
        )
        self._consumer = threading.Thread(
            target=self._consume, name="discovery-consumer", daemon=True
        )

    def start(self) -> DiscoveryStream:
        self._consumer.start()
        self._producer.start()
        return self

    def join(self, timeout: float | None = None) -> None:
        """Wait for both workers; re-raise a producer or sink failure."""
        self._producer.join(timeout)
        self._consumer.join(timeout)
        if self._error is not None:
            raise self._error

    @property
    def done(self) -> bool:
        return not self._producer.is_alive() and not self._consumer.is_alive()

    def _produce(self) -> None:
        try:
            for path in iter_paths(self._document, self._cancel_token):
                self._channel.put(path)
        except Exception as e:
            logger.exception("discovery producer failed")
            self._error = e
        finally:
            self._channel.put(_END)

    def _consume(self) -> None:
        count = 0
        root = _sample_root(self._document)
        while True:
            item = self._channel.get()
            if item is _END:
                break
            try:
                self._sink(PathDiscovered(describe_path(root, item)))
            except Exception as e:
                logger.exception("discovery sink failed on %r", item)
                self._error = self._error or e
            count += 1
        cancelled = self._cancel_token is not None and self._cancel_token.cancelled
        logger.info("discovery complete: %d paths%s", count, " (cancelled)" if cancelled else "")
        try:
            self._sink(DiscoveryComplete(count=count, cancelled=cancelled))
        except Exception as e:
            logger.exception("discovery sink failed on completion")
            self._error = self._error or e


def stream_paths(
    document: Any,
    sink: DiscoverySink,
    cancel_token: CancellationToken | None = None,
) -> DiscoveryStream:
    """Start streaming discovery of ``document``; returns the running stream."""
    return DiscoveryStream(document, sink, cancel_token).start()
