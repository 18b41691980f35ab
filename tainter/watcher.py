"""List-then-watch event source for node objects."""

import random
import time
from collections import deque
from collections.abc import Callable, Iterator

from kubernetes import client, watch
from kubernetes.client import V1Node
from kubernetes.client.rest import ApiException

from tainter.exceptions import WatchError
from tainter.logging_config import TRACE, get_logger

logger = get_logger(__name__)

LIST_PAGE_SIZE = 500
WATCH_TIMEOUT_SECONDS = 290

LISTING = "listing"
WATCHING = "watching"


class Backoff:
    """Exponential backoff with jitter.

    Each failure doubles the base delay up to ``maximum``; the actual sleep is
    the base delay scaled by a random factor in ``[0.5, 1.5)``.
    """

    def __init__(
        self,
        initial: float = 0.8,
        maximum: float = 30.0,
        multiplier: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.initial = initial
        self.maximum = maximum
        self.multiplier = multiplier
        self._sleep = sleep
        self._current = initial
        self.failures = 0

    def fail(self) -> None:
        self.failures += 1

    def reset(self) -> None:
        self._current = self.initial
        self.failures = 0

    def next_delay(self) -> float:
        delay = self._current * (0.5 + random.random())  # noqa: S311
        self._current = min(self._current * self.multiplier, self.maximum)
        return delay

    def wait(self) -> None:
        """Sleep if the last attempt failed."""
        if not self.failures:
            return
        delay = self.next_delay()
        logger.debug(f"Backing off for {delay:.2f}s after {self.failures} failures")
        self._sleep(delay)


class NodeWatcher:
    """Delivers every node once on start, then every node that changes.

    Iterating yields ``V1Node`` objects, or ``None`` when a watch window closed
    without anything new. Failures surface as ``WatchError`` from ``next()``;
    the iterator stays usable and backs off before its next attempt, so it never
    ends on its own.
    """

    def __init__(
        self,
        api: client.CoreV1Api,
        backoff: Backoff | None = None,
        watch_factory: Callable[[], watch.Watch] = watch.Watch,
        page_size: int = LIST_PAGE_SIZE,
        timeout_seconds: int = WATCH_TIMEOUT_SECONDS,
    ):
        self.api = api
        self.backoff = backoff or Backoff()
        self.watch_factory = watch_factory
        self.page_size = page_size
        self.timeout_seconds = timeout_seconds
        self.state = LISTING
        self.resource_version: str | None = None
        self._pending: deque[V1Node] = deque()
        self._watch: watch.Watch | None = None
        self._stream: Iterator[dict] | None = None

    def __iter__(self) -> "NodeWatcher":
        return self

    def __next__(self) -> V1Node | None:
        if self._pending:
            return self._pending.popleft()

        self.backoff.wait()
        try:
            if self.state == LISTING:
                self._list()
                if self._pending:
                    return self._pending.popleft()
                return None
            return self._next_event()
        except ApiException as e:
            if e.status == 410:
                logger.warning(
                    f"Watch resource version {self.resource_version} expired, re-listing nodes"
                )
                self._restart()
                return None
            self._fail()
            raise WatchError(
                f"Failed to {self._describe_state()} nodes: {e.status} {e.reason}", str(e.body or "")
            )
        except Exception as e:
            self._fail()
            raise WatchError(f"Failed to {self._describe_state()} nodes: {type(e).__name__}: {e}")

    def stop(self) -> None:
        """Interrupt the open watch window, if any."""
        if self._watch is not None:
            self._watch.stop()

    def _describe_state(self) -> str:
        return "list" if self.state == LISTING else "watch"

    def _list(self) -> None:
        """Fetch every node, page by page, and queue them for delivery."""
        logger.debug("Listing nodes")
        nodes: list[V1Node] = []
        continue_token = None
        while True:
            kwargs = {"limit": self.page_size}
            if continue_token:
                kwargs["_continue"] = continue_token
            page = self.api.list_node(**kwargs)
            nodes.extend(page.items or [])
            metadata = page.metadata
            self.resource_version = metadata.resource_version if metadata else None
            continue_token = metadata._continue if metadata else None
            if not continue_token:
                break

        logger.info(
            f"Listed {len(nodes)} nodes, watching from resource version {self.resource_version}"
        )
        self._pending.extend(nodes)
        self.state = WATCHING
        self.backoff.reset()

    def _next_event(self) -> V1Node | None:
        """Read watch events until a node is delivered or the window closes."""
        if self._stream is None:
            self._watch = self.watch_factory()
            self._stream = iter(
                self._watch.stream(
                    self.api.list_node,
                    resource_version=self.resource_version,
                    timeout_seconds=self.timeout_seconds,
                    allow_watch_bookmarks=True,
                )
            )

        for event in self._stream:
            event_type = event.get("type")
            obj = event.get("object")
            self._remember_resource_version(event)

            if event_type in ("ADDED", "MODIFIED") and obj is not None:
                self.backoff.reset()
                return obj
            if event_type == "ERROR":
                raw = event.get("raw_object") or {}
                raise ApiException(status=raw.get("code"), reason=raw.get("message"))
            logger.log(TRACE, f"Ignoring {event_type} watch event")

        # The window timed out; the next call opens a new one.
        self._close_stream()
        return None

    def _remember_resource_version(self, event: dict) -> None:
        raw = event.get("raw_object")
        if isinstance(raw, dict):
            version = (raw.get("metadata") or {}).get("resourceVersion")
        else:
            metadata = getattr(event.get("object"), "metadata", None)
            version = getattr(metadata, "resource_version", None)
        if version:
            self.resource_version = version

    def _close_stream(self) -> None:
        if self._watch is not None:
            self._watch.stop()
        self._watch = None
        self._stream = None

    def _restart(self) -> None:
        self._close_stream()
        self.state = LISTING

    def _fail(self) -> None:
        # A failed list is retried as a list; a failed watch resumes from the
        # last resource version seen.
        self._close_stream()
        self.backoff.fail()
