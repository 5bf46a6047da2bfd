"""Shared pytest fixtures for the logstasher test suite."""

import pytest

from logstasher.client import SearchHit, SearchResult
from logstasher.config import Config, QueryDefinition, SearchTarget


class FakeClient:
    """In-memory stand-in for SearchClient that replays queued results."""

    def __init__(self, indices=None, results=None):
        self.indices = indices if indices is not None else ["logs-2024.01.01"]
        self.results = list(results or [])
        self.searches = []

    def list_index_names(self):
        return list(self.indices)

    def search(self, indices, body):
        self.searches.append((list(indices), body))
        if self.results:
            return self.results.pop(0)
        return SearchResult()


def make_result(*timestamps, field="@timestamp", total=None, **extra) -> SearchResult:
    hits = [
        SearchHit(index="logs", id=str(i), source={field: ts, "message": f"msg {ts}", **extra})
        for i, ts in enumerate(timestamps)
    ]
    return SearchResult(hits=hits, total_hits=len(hits) if total is None else total)


def make_config(**query_overrides) -> Config:
    return Config(
        search_target=SearchTarget(url="http://es:9200", index_pattern=r"logs-.*"),
        query_definition=QueryDefinition(format="%message", **query_overrides),
        initial_entries=10,
        follow_page_size=100,
    )


@pytest.fixture()
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture()
def printed() -> list:
    """Collects documents passed to the printer callback."""
    return []
