"""Search backend client — the two Elasticsearch calls the tailer needs."""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

import requests

from logstasher.errors import BackendError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 9200


@dataclass(frozen=True)
class SearchHit:
    index: str
    id: str
    source: Any


@dataclass(frozen=True)
class SearchResult:
    hits: list[SearchHit] = field(default_factory=list)
    total_hits: int = 0


def normalize_url(url: str) -> str:
    """Add a missing scheme, and the default port when only a host is given."""
    if not url.startswith("http"):
        url = "http://" + url
        logger.debug("Adding http:// prefix to given url. Url: %s", url)
    if not re.search(r":\d+", url) and re.fullmatch(r"https?://[^/]+/?", url):
        url = url.rstrip("/") + f":{DEFAULT_PORT}"
        logger.debug("No port was specified, adding default port %d. Url: %s",
                     DEFAULT_PORT, url)
    return url.rstrip("/")


def _total_hits(hits: dict) -> int:
    total = hits.get("total", 0)
    if isinstance(total, dict):
        return int(total.get("value", 0))
    return int(total or 0)


class SearchClient:
    def __init__(self, url: str, user: str = "", password: str = "",
                 timeout: float = 10.0, trace: bool = False):
        self._base_url = normalize_url(url)
        self._timeout = timeout
        self._trace = trace
        self._session = requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})
        if user:
            self._session.auth = (user, password)

    @property
    def base_url(self) -> str:
        return self._base_url

    def close(self):
        self._session.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self._base_url}{path}"
        if self._trace:
            logger.debug("%s %s %s", method, url, json.dumps(kwargs.get("json", {})))
        try:
            response = self._session.request(method, url, timeout=self._timeout, **kwargs)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise BackendError(f"{method} {url} failed: {exc}") from exc
        if self._trace:
            logger.debug("Response %d: %s", response.status_code, response.text)
        try:
            return response.json()
        except ValueError as exc:
            raise BackendError(f"{method} {url} returned invalid JSON: {exc}") from exc

    def list_index_names(self) -> list[str]:
        """Return the names of all indices known to the cluster."""
        rows = self._request("GET", "/_cat/indices", params={"format": "json", "h": "index"})
        if not isinstance(rows, list):
            raise BackendError("Unexpected response listing indices")
        return [row["index"] for row in rows if row.get("index")]

    def search(self, indices: list[str], body: dict) -> SearchResult:
        """Run a search across *indices* and return its hits in backend order."""
        path = "/" + ",".join(indices) + "/_search" if indices else "/_search"
        payload = self._request("POST", path, json=body)
        hits = payload.get("hits") if isinstance(payload, dict) else None
        if not isinstance(hits, dict):
            raise BackendError("Search response has no hits section")
        result = SearchResult(
            hits=[
                SearchHit(index=h.get("_index", ""), id=h.get("_id", ""),
                          source=h.get("_source"))
                for h in hits.get("hits", [])
            ],
            total_hits=_total_hits(hits),
        )
        logger.debug("Fetched page of %d results out of %d total",
                     len(result.hits), result.total_hits)
        return result
