"""Tail loop — polls the backend and prints new documents in time order.

The loop owns the watermark: the timestamp of the last printed document.
Until a first document is seen the initial query is repeated; after that
every poll asks only for documents strictly newer than the watermark.
"""

import logging
import time
from typing import Callable

from logstasher.client import SearchClient, SearchResult
from logstasher.config import Config
from logstasher.errors import DocumentError
from logstasher.indices import select_indices
from logstasher.query import build_search_body, build_search_query, build_timestamp_filtered_query

logger = logging.getLogger(__name__)


class PollDelay:
    """Sleep interval between polls.

    Busy tail -> floor. Idle tail -> grows by ``step`` up to ``ceiling``.
    """

    def __init__(self, floor: float = 0.5, ceiling: float = 2.0, step: float = 0.5):
        self.floor = floor
        self.ceiling = ceiling
        self.step = step
        self.current = floor

    def update(self, hits: int) -> float:
        if hits > 0:
            self.current = self.floor
        else:
            self.current = min(self.current + self.step, self.ceiling)
        return self.current


class Tail:
    def __init__(self, client: SearchClient, config: Config,
                 printer: Callable[[dict], object],
                 sleep: Callable[[float], None] = time.sleep):
        self._client = client
        self._config = config
        self._query = config.query_definition
        self._printer = printer
        self._sleep = sleep
        self.delay = PollDelay()
        self.last_timestamp = ""
        self.indices = self._select_indices()
        # Starting from a point in the past needs oldest-first to build the watermark.
        self.order = bool(self._query.after_date_time)

    def _select_indices(self) -> list[str]:
        target = self._config.search_target
        indices = select_indices(
            self._client.list_index_names(),
            target.index_pattern,
            self._query.after_date_time,
            self._query.before_date_time,
        )
        logger.info("Using indices: %s", indices)
        return indices

    def initial_search(self) -> SearchResult:
        body = build_search_body(
            build_search_query(self._query),
            self._query.timestamp_field,
            ascending=self.order,
            from_=0,
            size=self._config.initial_entries,
        )
        return self._client.search(self.indices, body)

    def follow_search(self) -> SearchResult:
        """Fetch documents newer than the watermark, oldest first.

        At most ``follow_page_size`` documents are fetched per poll. There is
        no scroll continuation: a burst larger than one page within a single
        poll interval is not fully retrieved.
        """
        size = self._config.follow_page_size
        body = build_search_body(
            build_timestamp_filtered_query(self._query, self.last_timestamp),
            self._query.timestamp_field,
            ascending=True,
            from_=0,
            size=size,
        )
        result = self._client.search(self.indices, body)
        if result.total_hits > size:
            logger.warning("Follow page is full: %d new documents, only %d fetched",
                           result.total_hits, len(result.hits))
        return result

    def process_results(self, result: SearchResult, ascending: bool) -> int:
        """Print a batch oldest first and advance the watermark past it."""
        hits = result.hits if ascending else list(reversed(result.hits))
        field = self._query.timestamp_field
        for hit in hits:
            document = hit.source
            if not isinstance(document, dict):
                raise DocumentError(
                    f"Failed parsing document {hit.id!r} from {hit.index!r}: not a JSON object"
                )
            self._printer(document)
            timestamp = document.get(field)
            if not isinstance(timestamp, str):
                raise DocumentError(
                    f"Document {hit.id!r} has no string timestamp field {field!r}"
                )
            self.last_timestamp = timestamp
        return len(hits)

    def poll_once(self) -> SearchResult:
        """Run one poll cycle: query, print, and adapt the delay."""
        if self.last_timestamp:
            result = self.follow_search()
            self.process_results(result, ascending=True)
        else:
            # No watermark yet, keep repeating the initial query.
            result = self.initial_search()
            self.process_results(result, ascending=self.order)
        self.delay.update(result.total_hits)
        return result

    def start(self, follow: bool = True) -> None:
        """Print the initial entries, then poll forever when *follow* is set."""
        result = self.initial_search()
        self.process_results(result, ascending=self.order)
        while follow:
            self._sleep(self.delay.current)
            self.poll_once()
